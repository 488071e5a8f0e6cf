"""Enrichment orchestration for FieldLog.

The ReconciliationService merges two independent lookups into the Catalog:

- taxonomy: encyclopedia markup and summary, parsed into a classification
  and common names; decides the species' terminal status
- photos: a media search; additive only, never changes the status

Both run concurrently on the event loop. The blocking HTTP clients are
off-loaded with ``asyncio.to_thread`` and every lookup resolves into an
explicit result object, so the catalog is only ever mutated from the loop.
Results are applied as they arrive, in whatever order that is.
"""

import asyncio
import logging
from typing import Any, Dict, Iterable, List, Optional, Tuple

from tqdm import tqdm

from fieldlog.catalog import Catalog, is_same_observation
from fieldlog.config import config
from fieldlog.constants import FLICKR_PHOTO_PAGE_URL, UNTITLED_PHOTO
from fieldlog.exceptions import NoCommonNamesFound, PhotoLookupFailed, TaxonomyLookupFailed
from fieldlog.parser.taxonomy_parser import extract_common_names, extract_taxon
from fieldlog.reconciliation.attempt_manager import EnrichmentAttemptManager, EnrichmentState
from fieldlog.types.data_classes import (
    EnrichmentStatus,
    EntryOutcome,
    Photo,
    PhotoLookupResult,
    Sighting,
    SightingInput,
    TaxonomyLookupResult,
)

logger = logging.getLogger(__name__)


def revision_text(page: Dict[str, Any]) -> str:
    """Return the raw markup of a page's first revision, or an empty string."""
    revisions = page.get("revisions") or []
    if not revisions:
        return ""
    revision = revisions[0]
    if "slots" in revision:
        revision = revision["slots"].get("main", {})
    return revision.get("*") or revision.get("content") or ""


def resolve_requested_names(
    title: str,
    requested: Iterable[str],
    redirects: List[Dict[str, str]],
    normalized: Optional[List[Dict[str, str]]] = None,
) -> List[str]:
    """Map a page title back to the name(s) it was requested under.

    The requester's spelling wins over the server's canonical title. Several
    requested names may land on one page (two redirects to the same
    article), in which case all of them are returned.

    Args:
        title: The page's canonical title
        requested: Names that were sent in the request
        redirects: ``{"from", "to"}`` pairs reported by the server
        normalized: Optional ``{"from", "to"}`` title normalizations

    Returns:
        Requested names that resolve to this title; empty when none do
    """
    # The server normalizes first and follows redirects second, so unwind
    # in the opposite order.
    candidates = [title]
    for pairs in (redirects or [], normalized or []):
        for candidate in list(candidates):
            for pair in pairs:
                if pair.get("to") == candidate and pair.get("from") not in candidates:
                    candidates.append(pair["from"])

    requested = list(requested)
    matches = [name for name in candidates if name in requested]
    return sorted(matches, key=requested.index)


def derive_photos(response: Dict[str, Any]) -> List[Photo]:
    """Build Photo objects from a photo search response.

    Entries without a thumbnail URL are skipped.
    """
    photos = []
    for descriptor in (response.get("photos") or {}).get("photo", []):
        src = descriptor.get("url_q") or descriptor.get("thumbnailUrl")
        if not src:
            logger.debug(f"Skipping photo without thumbnail: {descriptor.get('id')}")
            continue
        photos.append(Photo(
            src=src,
            title=descriptor.get("title") or UNTITLED_PHOTO,
            url=FLICKR_PHOTO_PAGE_URL.format(owner=descriptor.get("owner"), id=descriptor.get("id")),
        ))
    return photos


class ReconciliationService:
    """Merges taxonomy and photo lookups into a Catalog.

    Args:
        catalog: The catalog to enrich
        taxonomy_client: Object with ``fetch_taxonomy(names) -> dict``
        photo_client: Optional object with ``fetch_photos(name) -> dict``;
            photos are skipped when absent
        attempt_manager: Optional tracker of per-species enrichment states
        batch_size: Maximum number of names per taxonomy request
    """

    def __init__(
        self,
        catalog: Catalog,
        taxonomy_client,
        photo_client=None,
        attempt_manager: Optional[EnrichmentAttemptManager] = None,
        batch_size: Optional[int] = None,
    ):
        self.catalog = catalog
        self.taxonomy_client = taxonomy_client
        self.photo_client = photo_client
        self.attempt_manager = attempt_manager or EnrichmentAttemptManager()
        self.batch_size = batch_size or config.batch_size
        self._read_only = False
        # (species name, sighting, whether the entry created the species)
        self._last_entry: Optional[Tuple[str, Sighting, bool]] = None
        # Running verifications of newly submitted species, by name
        self._verifications: Dict[str, "asyncio.Future[EnrichmentStatus]"] = {}

    @property
    def read_only(self) -> bool:
        """True after a taxonomy transport failure, until a lookup succeeds again.

        New entries cannot be verified while this is set.
        """
        return self._read_only

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    async def lookup_taxonomy(self, names: List[str]) -> TaxonomyLookupResult:
        """Run one taxonomy request off the event loop."""
        try:
            response = await asyncio.to_thread(self.taxonomy_client.fetch_taxonomy, list(names))
        except TaxonomyLookupFailed as e:
            return TaxonomyLookupResult(names=tuple(names), error=e)
        return TaxonomyLookupResult(names=tuple(names), response=response)

    async def lookup_photos(self, name: str) -> PhotoLookupResult:
        """Run one photo request off the event loop."""
        try:
            response = await asyncio.to_thread(self.photo_client.fetch_photos, name)
        except PhotoLookupFailed as e:
            return PhotoLookupResult(name=name, error=e)
        return PhotoLookupResult(name=name, response=response)

    # ------------------------------------------------------------------
    # Applying results
    # ------------------------------------------------------------------

    def apply_taxonomy_result(self, result: TaxonomyLookupResult) -> Dict[str, EnrichmentStatus]:
        """Apply a taxonomy lookup result to the catalog.

        A failed lookup marks every requested name unverifiable. It is not
        retried.

        Returns:
            The resulting status of every requested name still catalogued
        """
        if not result.ok:
            self._read_only = True
            logger.warning(f"Taxonomy lookup failed for {len(result.names)} name(s): {result.error}")
            outcomes = {}
            for name in result.names:
                self.catalog.mark_unverifiable(name)
                self._finish(
                    name, EnrichmentState.TAXONOMY_FAILED, {"reason": str(result.error)}
                )
                record = self.catalog.get(name)
                if record is not None:
                    outcomes[name] = record.status
            return outcomes

        self._read_only = False
        return self.process_taxonomy_response(result.response, list(result.names))

    def process_taxonomy_response(
        self, response: Dict[str, Any], requested: List[str]
    ) -> Dict[str, EnrichmentStatus]:
        """Demultiplex a (possibly batched) taxonomy response into the catalog.

        Pages are keyed by an opaque page id. Requested names that have no
        page in the response are skipped and stay pending.

        Args:
            response: Decoded encyclopedia response
            requested: Names sent in the request

        Returns:
            The resulting status of every name that received a page and is
            still catalogued
        """
        query = response.get("query") or {}
        pages = query.get("pages") or {}
        if isinstance(pages, dict):
            pages = list(pages.values())
        redirects = query.get("redirects") or []
        normalized = query.get("normalized") or []

        outcomes: Dict[str, EnrichmentStatus] = {}
        for page in pages:
            title = page.get("title", "")
            if "missing" in page or "invalid" in page or int(page.get("pageid", 0) or 0) < 0:
                logger.debug(f"No article for '{title}'")
                continue
            names = resolve_requested_names(title, requested, redirects, normalized)
            if not names:
                logger.debug(f"Ignoring page '{title}': matches no requested name")
            for name in names:
                outcome = self._apply_page(name, page)
                if outcome is not None:
                    outcomes[name] = outcome

        skipped = [name for name in requested if name not in outcomes and name in self.catalog]
        if skipped:
            logger.info(f"No usable page for {len(skipped)} requested name(s): {', '.join(skipped)}")
        return outcomes

    def _apply_page(self, name: str, page: Dict[str, Any]) -> Optional[EnrichmentStatus]:
        extract = page.get("extract") or ""
        try:
            common_names = extract_common_names(extract)
        except NoCommonNamesFound:
            logger.info(f"No common names for {name}; treating as unverifiable")
            self.catalog.mark_unverifiable(name)
            self._finish(
                name, EnrichmentState.TAXONOMY_FAILED, {"reason": "no common names"}
            )
        else:
            taxon = extract_taxon(revision_text(page))
            applied = self.catalog.apply_enrichment(
                name,
                taxon,
                common_names,
                article_url=page.get("canonicalurl") or page.get("fullurl"),
                extract_html=extract,
            )
            self._finish(
                name,
                EnrichmentState.TAXONOMY_OK,
                {"applied": applied, "kingdom": taxon.kingdom},
            )

        record = self.catalog.get(name)
        return record.status if record is not None else None

    def apply_photo_result(self, result: PhotoLookupResult) -> bool:
        """Attach photos from a lookup result. A failure leaves photos absent.

        Returns:
            True if photos were attached
        """
        if not result.ok:
            logger.info(f"Photos unavailable for {result.name}: {result.error}")
            self._finish(
                result.name, EnrichmentState.PHOTOS_FAILED, {"reason": str(result.error)}
            )
            return False
        photos = derive_photos(result.response)
        attached = self.catalog.attach_photos(result.name, photos)
        self._finish(
            result.name, EnrichmentState.PHOTOS_OK, {"count": len(photos), "applied": attached}
        )
        return attached

    def _finish(self, name: str, state: EnrichmentState, metadata=None) -> None:
        # Results can be applied without going through a channel coroutine
        # (a response processed directly, or a second page for one name)
        awaiting = {
            EnrichmentState.TAXONOMY_OK: EnrichmentState.AWAITING_TAXONOMY,
            EnrichmentState.TAXONOMY_FAILED: EnrichmentState.AWAITING_TAXONOMY,
            EnrichmentState.PHOTOS_OK: EnrichmentState.AWAITING_PHOTOS,
            EnrichmentState.PHOTOS_FAILED: EnrichmentState.AWAITING_PHOTOS,
        }[state]
        if self.attempt_manager.get_state(name, state.channel) is not awaiting:
            self.attempt_manager.record(name, awaiting)
        self.attempt_manager.record(name, state, metadata)

    # ------------------------------------------------------------------
    # Channels
    # ------------------------------------------------------------------

    async def _taxonomy_channel(self, names: List[str]) -> Dict[str, EnrichmentStatus]:
        for name in names:
            self.attempt_manager.record(name, EnrichmentState.AWAITING_TAXONOMY)
        result = await self.lookup_taxonomy(names)
        return self.apply_taxonomy_result(result)

    async def _photo_channel(self, name: str) -> bool:
        self.attempt_manager.record(name, EnrichmentState.AWAITING_PHOTOS)
        result = await self.lookup_photos(name)
        return self.apply_photo_result(result)

    async def enrich_species(self, name: str) -> EnrichmentStatus:
        """Enrich a single species with concurrent taxonomy and photo lookups.

        Returns:
            The species' status afterwards; PENDING if it received no page
            or was removed in the meantime
        """
        channels = [self._taxonomy_channel([name])]
        if self.photo_client is not None:
            channels.append(self._photo_channel(name))
        await asyncio.gather(*channels)
        record = self.catalog.get(name)
        return record.status if record is not None else EnrichmentStatus.PENDING

    async def enrich_all(
        self,
        names: Optional[List[str]] = None,
        progress_bar: bool = False,
    ) -> Dict[str, EnrichmentStatus]:
        """Enrich many species at once.

        Taxonomy lookups are batched ``batch_size`` names per request; the
        photo source does not batch, so it gets one request per species.

        Args:
            names: Names to enrich; defaults to every pending species
            progress_bar: Whether to show a progress bar

        Returns:
            Status of every requested name still catalogued
        """
        if names is None:
            names = [
                record.scientific_name for record in self.catalog
                if record.status is EnrichmentStatus.PENDING
            ]
        names = list(dict.fromkeys(names))
        if not names:
            return {}

        batches = [names[i:i + self.batch_size] for i in range(0, len(names), self.batch_size)]
        logger.info(f"Enriching {len(names)} species in {len(batches)} taxonomy batch(es)")

        tasks = [self._taxonomy_channel(batch) for batch in batches]
        if self.photo_client is not None:
            tasks.extend(self._photo_channel(name) for name in names)

        for next_done in tqdm(
            asyncio.as_completed(tasks),
            total=len(tasks),
            desc="Enriching species",
            disable=not progress_bar,
        ):
            await next_done

        return {
            name: self.catalog.get(name).status
            for name in names if name in self.catalog
        }

    # ------------------------------------------------------------------
    # Entry flow
    # ------------------------------------------------------------------

    def load_initial_dataset(self, inputs: Iterable[SightingInput]) -> List[str]:
        """Seed the catalog from sighting inputs without enriching.

        Returns:
            Names of the species that were created
        """
        created = []
        for entry in inputs:
            if self.catalog.add_species(entry.name):
                created.append(entry.name)
            self.catalog.add_sighting(entry.name, entry.to_sighting())
        logger.info(f"Loaded {len(created)} species from the initial dataset")
        return created

    async def submit_entry(self, entry: SightingInput) -> EntryOutcome:
        """Add a user-submitted sighting.

        A sighting of a known species is accepted as is. A new species is
        enriched first and kept only if it ends up ENRICHED; otherwise the
        entry's sighting is removed again, and the species with it once it
        has no sightings left. Entries for a species whose verification is
        still running wait for that verification instead of being accepted
        against an unverified record.
        """
        name = entry.name
        sighting = entry.to_sighting()

        verification = self._verifications.get(name)
        if verification is not None:
            logger.debug(f"Waiting for the running verification of {name}")
            status = await asyncio.shield(verification)
            if status is not EnrichmentStatus.ENRICHED:
                return self._rejected(name, status, new_species=False)

        is_new = self.catalog.add_species(name, user_added=True)
        self.catalog.add_sighting(name, sighting)

        if is_new:
            verification = asyncio.ensure_future(self.enrich_species(name))
            self._verifications[name] = verification
            try:
                status = await verification
            finally:
                self._verifications.pop(name, None)
            if status is not EnrichmentStatus.ENRICHED:
                self.catalog.remove_sighting(name, sighting)
                record = self.catalog.get(name)
                if record is not None and not record.sightings:
                    self.catalog.remove_species(name)
                return self._rejected(name, status, new_species=True)
        else:
            status = self.catalog.get(name).status

        self._last_entry = (name, sighting, is_new)
        logger.info(f"Saved new entry for {name}")
        return EntryOutcome(name=name, accepted=True, new_species=is_new, status=status)

    def _rejected(self, name: str, status: EnrichmentStatus, new_species: bool) -> EntryOutcome:
        logger.info(f"Rejected entry for {name} ({status.name})")
        return EntryOutcome(
            name=name,
            accepted=False,
            new_species=new_species,
            status=status,
            message=f"Unable to verify '{name}' against the encyclopedia",
        )

    def undo_last_entry(self) -> bool:
        """Undo the most recent accepted entry.

        A new species is removed with its sighting only if no other sighting
        has been added to it since. An entry for a known species removes just
        that sighting, and only while it is still the latest one.

        Returns:
            True if something was undone
        """
        if self._last_entry is None:
            return False
        name, sighting, is_new = self._last_entry
        record = self.catalog.get(name)
        if record is None or not record.sightings or not is_same_observation(record.sightings[-1], sighting):
            logger.info(f"Cannot undo entry for {name}: catalog has changed since")
            self._last_entry = None
            return False

        if is_new:
            if not record.user_added or len(record.sightings) != 1:
                self._last_entry = None
                return False
            undone = self.catalog.remove_species(name)
        else:
            undone = self.catalog.remove_sighting(name, sighting)
        self._last_entry = None
        logger.info(f"Undid last entry for {name}")
        return undone
