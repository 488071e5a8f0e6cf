"""Species catalog for FieldLog.

The Catalog is the authoritative mapping from scientific name to its
SpeciesRecord. It is the single shared mutable resource of the enrichment
workflow: lookups for the same species may finish in any order, and a
species may be removed (undo) while a lookup for it is still in flight.
Every mutator therefore checks that the record exists and does nothing
otherwise. Nothing here raises for a missing name.
"""

import dataclasses
import logging
from typing import Dict, Iterator, List, Optional

from fieldlog.icon_classifier import classify
from fieldlog.types.data_classes import (
    EnrichmentStatus,
    Photo,
    Sighting,
    SpeciesRecord,
    SpeciesView,
    Taxon,
)

logger = logging.getLogger(__name__)


class Catalog:
    """In-memory catalog of species records keyed by scientific name."""

    def __init__(self):
        self._species: Dict[str, SpeciesRecord] = {}

    def __contains__(self, name: str) -> bool:
        return name in self._species

    def __len__(self) -> int:
        return len(self._species)

    def __iter__(self) -> Iterator[SpeciesRecord]:
        return iter(list(self._species.values()))

    @property
    def names(self) -> List[str]:
        """Scientific names in insertion order."""
        return list(self._species)

    def get(self, name: str) -> Optional[SpeciesRecord]:
        return self._species.get(name)

    def add_species(self, name: str, user_added: bool = False) -> bool:
        """Insert a new pending record unless the name is already catalogued.

        Args:
            name: Scientific name, already normalized by the caller
            user_added: Whether the record comes from a user entry in this session

        Returns:
            True if a new record was created
        """
        if name in self._species:
            return False
        self._species[name] = SpeciesRecord(scientific_name=name, user_added=user_added)
        logger.debug(f"Added species: {name}")
        return True

    def add_sighting(self, species_name: str, sighting: Sighting) -> bool:
        """Append a sighting to an existing species.

        The sighting takes the species' current display category. A sighting
        for a name that is not catalogued is dropped.

        Returns:
            True if the sighting was appended
        """
        record = self._species.get(species_name)
        if record is None:
            logger.debug(f"Dropping sighting for unknown species: {species_name}")
            return False
        category = classify(record.classification)
        if sighting.species_name != species_name or sighting.display_category != category:
            sighting = dataclasses.replace(
                sighting, species_name=species_name, display_category=category
            )
        record.sightings.append(sighting)
        return True

    def apply_enrichment(
        self,
        species_name: str,
        taxon: Taxon,
        common_names: List[str],
        article_url: Optional[str] = None,
        extract_html: Optional[str] = None,
    ) -> bool:
        """Store a successful taxonomy lookup on a pending record.

        Sets the classification and common names, appends both to the
        keywords, and moves every sighting to the new display category. A
        classification without a recognized kingdom leaves the record
        UNVERIFIABLE rather than ENRICHED.

        Returns:
            True if the record was updated; False if it is absent or no
            longer pending
        """
        record = self._species.get(species_name)
        if record is None:
            logger.debug(f"Ignoring enrichment for absent species: {species_name}")
            return False
        if record.status.is_terminal:
            logger.debug(f"Ignoring enrichment for {species_name}: already {record.status.name}")
            return False

        record.classification = taxon
        record.common_names = list(common_names)
        record.article_url = article_url
        record.extract_html = extract_html
        for value in taxon.values():
            record.keywords.append(value.lower())
        for common_name in common_names:
            record.keywords.append(common_name.lower())

        self._refresh_display_category(record)
        record.status = (
            EnrichmentStatus.ENRICHED if taxon.is_known else EnrichmentStatus.UNVERIFIABLE
        )
        logger.debug(f"Enriched {species_name}: {taxon.to_dict()} ({record.status.name})")
        return True

    def mark_unverifiable(self, species_name: str) -> bool:
        """Mark a pending record as unverifiable without classification data."""
        record = self._species.get(species_name)
        if record is None or record.status.is_terminal:
            return False
        record.status = EnrichmentStatus.UNVERIFIABLE
        logger.debug(f"Marked {species_name} as unverifiable")
        return True

    def attach_photos(self, species_name: str, photos: List[Photo]) -> bool:
        """Attach a photo list to a record. Never changes the status."""
        record = self._species.get(species_name)
        if record is None:
            return False
        record.photos = list(photos)
        return True

    def remove_species(self, species_name: str) -> bool:
        """Delete a record together with all its sightings."""
        if self._species.pop(species_name, None) is None:
            return False
        logger.debug(f"Removed species: {species_name}")
        return True

    def remove_sighting(self, species_name: str, sighting: Sighting) -> bool:
        """Remove the most recent occurrence of a sighting from a record."""
        record = self._species.get(species_name)
        if record is None:
            return False
        for index in range(len(record.sightings) - 1, -1, -1):
            if is_same_observation(record.sightings[index], sighting):
                del record.sightings[index]
                return True
        return False

    def search(self, substring: str) -> List[SpeciesRecord]:
        """Return the records whose keywords contain the substring, ignoring case."""
        return [record for record in self._species.values() if record.matches(substring)]

    def species_view(self, name: str) -> Optional[SpeciesView]:
        """Return the rendering projection of a record, or None if absent."""
        record = self._species.get(name)
        if record is None:
            return None
        return SpeciesView(
            scientific_name=record.scientific_name,
            common_names_summary=record.common_names_summary,
            taxon_summary=record.taxon_summary,
            sightings=tuple(record.sightings),
        )

    def _refresh_display_category(self, record: SpeciesRecord) -> None:
        category = classify(record.classification)
        record.sightings = [
            dataclasses.replace(sighting, display_category=category)
            for sighting in record.sightings
        ]


def is_same_observation(left: Sighting, right: Sighting) -> bool:
    """Return whether two sightings record the same observation."""
    # Display category is derived, so it does not identify a sighting
    return (
        left.species_name == right.species_name
        and left.location == right.location
        and left.observed_at == right.observed_at
    )
