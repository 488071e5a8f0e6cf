"""Core data classes for FieldLog.

This module defines the data classes that flow through the enrichment
workflow, from a raw sighting input to a catalogued, enriched species.

Design Principles:
- Value objects (Taxon, Sighting, Photo, lookup results) are frozen
- The SpeciesRecord is the one mutable aggregate, owned by the Catalog
- Reference-based Relationships: a Sighting refers to its species by name
  rather than embedding the record
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Set, Tuple

from fieldlog.constants import (
    COMMON_NAMES_PREFIX,
    TAXON_LEVELS,
    TAXON_LEVEL_LABELS,
    TAXON_SUMMARY_SEPARATOR,
    UNKNOWN_CATEGORY,
)


class EnrichmentStatus(Enum):
    """The enrichment status of a species record."""
    def __init__(self, groups: Tuple[str, ...]):
        self.groups: Set[str] = set(groups)

    # Non-terminal status group
    PENDING = (("non-terminal", "pending"),)

    # Terminal success status group
    ENRICHED = (("terminal", "success"),)

    # Terminal failure status group
    UNVERIFIABLE = (("terminal", "failure"),)

    @property
    def is_terminal(self) -> bool:
        """Return whether the status can no longer change."""
        return "terminal" in self.groups

    @property
    def is_successful(self) -> bool:
        """Return whether the species was verified against the encyclopedia."""
        return "success" in self.groups


@dataclass(frozen=True)
class LatLng:
    """A latitude/longitude pair in decimal degrees."""
    lat: float
    lng: float


@dataclass(frozen=True)
class Taxon:
    """A structured classification extracted from encyclopedia markup.

    Only ``kingdom`` is always present; it is ``"unknown"`` when the markup
    did not name a recognized kingdom.
    """

    kingdom: str = UNKNOWN_CATEGORY
    division: Optional[str] = None
    class_: Optional[str] = None  # Using class_ to avoid conflict with Python keyword
    order: Optional[str] = None

    @property
    def is_known(self) -> bool:
        """Return whether a recognized kingdom was found."""
        return bool(self.kingdom) and self.kingdom != UNKNOWN_CATEGORY

    def items(self) -> List[Tuple[str, str]]:
        """Return the present (level, value) pairs, least specific first."""
        result = []
        for level in TAXON_LEVELS:
            value = getattr(self, level)
            if value:
                result.append((level, value))
        return result

    def values(self) -> List[str]:
        """Return the present values, least specific first."""
        return [value for _, value in self.items()]

    def to_dict(self) -> Dict[str, str]:
        """Convert the present levels to a dictionary keyed by display label."""
        return {TAXON_LEVEL_LABELS[level]: value for level, value in self.items()}


@dataclass(frozen=True)
class Sighting:
    """One observed instance of a species at a place and time."""

    species_name: str
    location: LatLng
    observed_at: datetime
    display_category: str = UNKNOWN_CATEGORY

    @property
    def title(self) -> str:
        """Marker title in the form 'Genus species, Sun Oct 13 2013'."""
        return f"{self.species_name}, {self.observed_at.strftime('%a %b %d %Y')}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "species_name": self.species_name,
            "lat": self.location.lat,
            "lng": self.location.lng,
            "observed_at": self.observed_at,
            "display_category": self.display_category,
        }


@dataclass(frozen=True)
class Photo:
    """A photo attached to a species record."""

    src: str
    title: str
    url: str


@dataclass(frozen=True)
class SightingInput:
    """A sighting as supplied by the add-new-entry collaborator or an input file."""

    name: str
    lat: float
    lng: float
    date: datetime

    def to_sighting(self) -> Sighting:
        """Build a Sighting with no display category yet."""
        return Sighting(
            species_name=self.name,
            location=LatLng(self.lat, self.lng),
            observed_at=self.date,
        )


@dataclass
class SpeciesRecord:
    """Aggregated catalog entry for one scientific name.

    Owned and mutated by the Catalog only.
    """

    scientific_name: str
    keywords: List[str] = field(default_factory=list)
    classification: Optional[Taxon] = None
    common_names: List[str] = field(default_factory=list)
    status: EnrichmentStatus = EnrichmentStatus.PENDING
    sightings: List[Sighting] = field(default_factory=list)
    photos: Optional[List[Photo]] = None
    article_url: Optional[str] = None
    extract_html: Optional[str] = None
    user_added: bool = False

    def __post_init__(self):
        if not self.keywords:
            self.keywords = [self.scientific_name.lower()]

    @property
    def common_names_summary(self) -> str:
        """Common names as 'Also known as: a, b.' or an empty string."""
        if not self.common_names:
            return ""
        return f"{COMMON_NAMES_PREFIX}{', '.join(self.common_names)}."

    @property
    def taxon_summary(self) -> str:
        """Classification as 'kingdom: animals | class: birds' or an empty string."""
        if self.classification is None:
            return ""
        return TAXON_SUMMARY_SEPARATOR.join(
            f"{label}: {value}" for label, value in self.classification.to_dict().items()
        )

    def matches(self, substring: str) -> bool:
        """Return whether any keyword contains the substring, ignoring case."""
        needle = substring.lower()
        return any(needle in keyword for keyword in self.keywords)


@dataclass(frozen=True)
class SpeciesView:
    """Read-only projection of a species record for the rendering collaborator."""

    scientific_name: str
    common_names_summary: str
    taxon_summary: str
    sightings: Tuple[Sighting, ...] = ()


@dataclass(frozen=True)
class TaxonomyLookupResult:
    """Outcome of one (possibly batched) taxonomy lookup."""

    names: Tuple[str, ...]
    response: Optional[Dict[str, Any]] = None
    error: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.response is not None


@dataclass(frozen=True)
class PhotoLookupResult:
    """Outcome of one photo lookup for a single species."""

    name: str
    response: Optional[Dict[str, Any]] = None
    error: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.response is not None


@dataclass(frozen=True)
class EntryOutcome:
    """Result of a user-submitted entry."""

    name: str
    accepted: bool
    new_species: bool
    status: EnrichmentStatus
    message: str = ""
