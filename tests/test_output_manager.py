from datetime import datetime
from pathlib import Path

import polars as pl
import pytest

from fieldlog.catalog import Catalog
from fieldlog.output_manager import (
    catalog_to_sightings_df,
    catalog_to_species_df,
    generate_catalog_output,
)
from fieldlog.types.data_classes import LatLng, Photo, Sighting, Taxon

ROBIN = "Erithacus rubecula"


@pytest.fixture
def catalog():
    catalog = Catalog()
    catalog.add_species(ROBIN)
    catalog.add_sighting(ROBIN, Sighting(ROBIN, LatLng(-33.844263, 151.113756), datetime(2013, 10, 13)))
    catalog.apply_enrichment(
        ROBIN,
        Taxon(kingdom="animals", class_="birds"),
        ["european robin", "robin"],
        article_url="https://en.wikipedia.org/wiki/European_robin",
    )
    catalog.attach_photos(ROBIN, [Photo("https://x/1_q.jpg", "untitled", "https://www.flickr.com/photos/o/1")])
    catalog.add_species("Nonexistus fakeus", user_added=True)
    return catalog


def test_species_table(catalog):
    df = catalog_to_species_df(catalog)

    assert df["scientific_name"].to_list() == [ROBIN, "Nonexistus fakeus"]
    robin = df.row(0, named=True)
    assert robin["status"] == "ENRICHED"
    assert robin["kingdom"] == "animals"
    assert robin["class"] == "birds"
    assert robin["order"] == ""
    assert robin["common_names"] == "european robin; robin"
    assert robin["taxon_summary"] == "kingdom: animals | class: birds"
    assert robin["sighting_count"] == 1
    assert robin["photo_count"] == 1

    pending = df.row(1, named=True)
    assert pending["status"] == "PENDING"
    assert pending["kingdom"] == ""
    assert pending["user_added"] is True


def test_sightings_table(catalog):
    df = catalog_to_sightings_df(catalog)

    assert df.height == 1
    row = df.row(0, named=True)
    assert row["species_name"] == ROBIN
    assert row["display_category"] == "birds"
    assert row["icon"] == "images/bird.png"
    assert row["observed_at"] == datetime(2013, 10, 13)


def test_empty_catalog():
    assert catalog_to_species_df(Catalog()).height == 0
    assert catalog_to_sightings_df(Catalog()).height == 0


@pytest.mark.parametrize("output_format", ["csv", "parquet"])
def test_generate_catalog_output(catalog, tmp_path, output_format):
    files = generate_catalog_output(catalog, str(tmp_path / "out"), output_format)

    assert [Path(f).name for f in files] == [f"species.{output_format}", f"sightings.{output_format}"]
    reader = pl.read_csv if output_format == "csv" else pl.read_parquet
    assert reader(files[0]).height == 2
    assert reader(files[1]).height == 1


def test_unsupported_format(catalog, tmp_path):
    with pytest.raises(ValueError):
        generate_catalog_output(catalog, str(tmp_path), "xlsx")
