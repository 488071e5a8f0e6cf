"""FieldLog: a catalog of field sightings enriched with taxonomy and photos.

FieldLog groups sightings by scientific name, looks every species up in the
Wikipedia API for its taxonomy and common names and in Flickr for photos,
and keeps only species that can be verified.
"""

__version__ = "0.1.0"

from fieldlog.types.data_classes import (
    EnrichmentStatus,
    Photo,
    Sighting,
    SightingInput,
    SpeciesRecord,
    Taxon,
)
from fieldlog.catalog import Catalog
from fieldlog.reconciliation.service import ReconciliationService

__all__ = [
    "EnrichmentStatus",
    "Photo",
    "Sighting",
    "SightingInput",
    "SpeciesRecord",
    "Taxon",
    "Catalog",
    "ReconciliationService",
]
