"""Output generation for FieldLog.

This module turns an enriched Catalog into polars DataFrames (one row per
species, one row per sighting) and writes them as CSV or Parquet files.
"""

import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

import polars as pl

from fieldlog.catalog import Catalog
from fieldlog.config import config
from fieldlog.constants import TAXON_LEVELS, TAXON_LEVEL_LABELS
from fieldlog.icon_classifier import icon_for
from fieldlog.types.data_classes import SpeciesRecord

logger = logging.getLogger(__name__)

SPECIES_SCHEMA = {
    "scientific_name": pl.Utf8,
    "status": pl.Utf8,
    "kingdom": pl.Utf8,
    "division": pl.Utf8,
    "class": pl.Utf8,
    "order": pl.Utf8,
    "common_names": pl.Utf8,
    "taxon_summary": pl.Utf8,
    "article_url": pl.Utf8,
    "sighting_count": pl.Int64,
    "photo_count": pl.Int64,
    "user_added": pl.Boolean,
}

SIGHTINGS_SCHEMA = {
    "species_name": pl.Utf8,
    "lat": pl.Float64,
    "lng": pl.Float64,
    "observed_at": pl.Datetime,
    "display_category": pl.Utf8,
    "icon": pl.Utf8,
    "title": pl.Utf8,
}


def map_record_to_output_format(record: SpeciesRecord) -> Dict[str, Any]:
    """Map a species record to one row of the species table.

    Levels missing from the classification are empty strings, as are all
    levels of a record that was never classified.
    """
    result = {
        "scientific_name": record.scientific_name,
        "status": record.status.name,
    }
    for level in TAXON_LEVELS:
        value = getattr(record.classification, level) if record.classification else None
        result[TAXON_LEVEL_LABELS[level]] = value or ""

    result["common_names"] = "; ".join(record.common_names)
    result["taxon_summary"] = record.taxon_summary
    result["article_url"] = record.article_url or ""
    result["sighting_count"] = len(record.sightings)
    result["photo_count"] = len(record.photos) if record.photos is not None else 0
    result["user_added"] = record.user_added
    return result


def catalog_to_species_df(catalog: Catalog) -> pl.DataFrame:
    """Build the species table, in catalog insertion order."""
    rows = [map_record_to_output_format(record) for record in catalog]
    return pl.DataFrame(rows, schema=SPECIES_SCHEMA)


def catalog_to_sightings_df(catalog: Catalog) -> pl.DataFrame:
    """Build the sightings table with each sighting's marker icon."""
    rows = []
    for record in catalog:
        for sighting in record.sightings:
            row = sighting.to_dict()
            row["icon"] = icon_for(sighting.display_category)
            row["title"] = sighting.title
            rows.append(row)
    return pl.DataFrame(rows, schema=SIGHTINGS_SCHEMA)


def _write(df: pl.DataFrame, path: Path, output_format: str) -> None:
    if output_format == "parquet":
        df.write_parquet(path)
    elif output_format == "csv":
        df.write_csv(path)
    else:
        raise ValueError(f"Unsupported output format: {output_format}")


def generate_catalog_output(
    catalog: Catalog,
    output_dir: str,
    output_format: Optional[str] = None,
) -> List[str]:
    """Write the species and sightings tables of a catalog.

    Args:
        catalog: The catalog to export
        output_dir: Directory to write to; created if missing
        output_format: 'csv' or 'parquet'; defaults to the configured format

    Returns:
        Paths of the generated files
    """
    output_format = output_format or config.output_format
    output_dir_path = Path(output_dir)
    output_dir_path.mkdir(parents=True, exist_ok=True)

    generated_files = []
    for stem, df in (
        ("species", catalog_to_species_df(catalog)),
        ("sightings", catalog_to_sightings_df(catalog)),
    ):
        file_path = output_dir_path / f"{stem}.{output_format}"
        try:
            _write(df, file_path, output_format)
        except Exception as e:
            logger.error(f"Error writing {stem} output to {file_path}: {e}")
            raise
        logger.info(f"Wrote {len(df)} {stem} row(s) to {file_path}")
        generated_files.append(str(file_path))
    return generated_files
