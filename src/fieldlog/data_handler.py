"""Sighting input for FieldLog.

Reads sighting tables (CSV or Parquet) with polars and turns their rows into
SightingInput objects. Also carries the built-in starter dataset.
"""

import logging
from datetime import date, datetime
from pathlib import Path
from typing import Iterable, List, Optional

import polars as pl

from fieldlog.constants import SIGHTING_INPUT_COLUMNS
from fieldlog.types.data_classes import SightingInput

logger = logging.getLogger(__name__)

# Starter sightings used when no input file is given
STARTER_SIGHTINGS = [
    SightingInput("Erithacus rubecula", -33.844263, 151.113756, datetime(2013, 10, 13)),
    SightingInput("Erithacus rubecula", -33.843263, 151.111756, datetime(2014, 9, 14)),
    SightingInput("Fuchsia magellanica", -33.844548, 151.110811, datetime(2015, 10, 1)),
    SightingInput("Polyommatus icarus", -33.845096, 151.113337, datetime(2014, 9, 13)),
    SightingInput("Geranium robertianum", -33.844717, 151.110467, datetime(2013, 9, 13)),
    SightingInput("Arenaria interpres", -33.844948, 151.111011, datetime(2012, 1, 1)),
    SightingInput("Marchantia polymorpha", -33.845343, 151.110789, datetime(2014, 1, 2)),
]


def normalize_scientific_name(name: str) -> str:
    """Normalize a name to 'Genus species' form (first letter upper-case, rest lower-case)."""
    name = " ".join(name.split())
    if not name:
        raise ValueError("Scientific name must not be empty")
    return name[0].upper() + name[1:].lower()


def infer_format(input_file: str) -> str:
    """Infer 'csv' or 'parquet' from a file extension."""
    suffix = Path(input_file).suffix.lower()
    if suffix == ".parquet":
        return "parquet"
    if suffix == ".csv":
        return "csv"
    raise ValueError(f"Unsupported input file type: {input_file}")


def read_input_file(input_file: str, input_format: Optional[str] = None) -> pl.DataFrame:
    """Read a sightings file into a Polars DataFrame based on the format."""
    input_format = input_format or infer_format(input_file)
    logger.info(f"Reading input {input_format.upper()} file: {input_file}")
    if input_format == "parquet":
        try:
            return pl.read_parquet(input_file)
        except Exception as e:
            logger.error(f"Error reading Parquet file '{input_file}': {e}")
            raise
    elif input_format == "csv":
        try:
            return pl.read_csv(input_file, try_parse_dates=True)
        except Exception as e:
            logger.error(f"Error reading CSV file '{input_file}': {e}")
            raise
    else:
        raise ValueError(f"Unsupported input format: {input_format}")


def validate_input_df(input_df: pl.DataFrame) -> None:
    """Validate that the input DataFrame contains all required columns."""
    missing = set(SIGHTING_INPUT_COLUMNS) - set(input_df.columns)
    if missing:
        raise ValueError(f"Input data is missing required columns: {sorted(missing)}")


def _to_datetime(value) -> datetime:
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if isinstance(value, str):
        return datetime.fromisoformat(value.strip())
    raise ValueError(f"Unsupported date value: {value!r}")


def rows_to_sighting_inputs(input_df: pl.DataFrame) -> List[SightingInput]:
    """Convert validated rows to SightingInput objects.

    Names are normalized; rows with an empty name are skipped.
    """
    validate_input_df(input_df)
    inputs = []
    for row in input_df.select(SIGHTING_INPUT_COLUMNS).iter_rows(named=True):
        if not row["name"] or not str(row["name"]).strip():
            logger.warning(f"Skipping sighting without a name: {row}")
            continue
        inputs.append(SightingInput(
            name=normalize_scientific_name(str(row["name"])),
            lat=float(row["lat"]),
            lng=float(row["lng"]),
            date=_to_datetime(row["date"]),
        ))
    return inputs


def load_sightings(input_file: Optional[str] = None) -> List[SightingInput]:
    """Load sightings from a file, or return the starter dataset."""
    if input_file is None:
        return list(STARTER_SIGHTINGS)
    return rows_to_sighting_inputs(read_input_file(input_file))


def sighting_inputs_to_df(inputs: Iterable[SightingInput]) -> pl.DataFrame:
    """Build a sightings DataFrame, the inverse of rows_to_sighting_inputs."""
    inputs = list(inputs)
    return pl.DataFrame({
        "name": [entry.name for entry in inputs],
        "lat": [entry.lat for entry in inputs],
        "lng": [entry.lng for entry in inputs],
        "date": [entry.date for entry in inputs],
    }, schema={"name": pl.Utf8, "lat": pl.Float64, "lng": pl.Float64, "date": pl.Datetime})
