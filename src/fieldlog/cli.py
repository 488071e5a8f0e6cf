"""FieldLog command-line interface.

This module provides the argument parser and command dispatching for
FieldLog. The 'enrich' command loads sightings, enriches every species and
exports the catalog; 'search' does the same and prints the matching species.
"""

import argparse
import asyncio
import logging
import sys
import time
from typing import List, Optional

from fieldlog import __version__
from fieldlog.cache_manager import clear_cache, get_cache_stats
from fieldlog.catalog import Catalog
from fieldlog.clients.flickr_client import FlickrClient, search_flickr
from fieldlog.clients.wikipedia_client import WikipediaClient, query_wikipedia
from fieldlog.config import config
from fieldlog.data_handler import load_sightings
from fieldlog.logging_config import setup_logging
from fieldlog.output_manager import generate_catalog_output
from fieldlog.reconciliation.service import ReconciliationService


def _add_run_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "-i", "--input",
        type=str,
        default=None,
        help="Path to a CSV or Parquet sightings file (columns: name, lat, lng, date). "
             "The starter dataset is used when omitted."
    )
    parser.add_argument(
        "--batch-size",
        type=int,
        default=config.batch_size,
        help="Number of names per encyclopedia request"
    )
    parser.add_argument(
        "--no-photos",
        action="store_true",
        default=False,
        help="Skip the photo lookups"
    )
    parser.add_argument(
        "--refresh-cache",
        action="store_true",
        default=False,
        help="Drop cached lookup responses before running"
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        default="INFO",
        help="Set logging level"
    )
    parser.add_argument(
        "--log-file",
        type=str,
        help="Optional file to write logs to (in addition to console output)"
    )


def create_parser() -> argparse.ArgumentParser:
    """Create and configure the argument parser with the 'enrich' and 'search' commands."""
    parser = argparse.ArgumentParser(
        description="FieldLog: Catalog field sightings enriched with encyclopedia taxonomy and photos.",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter
    )

    # Global options for cache management and application metadata
    parser.add_argument(
        "--cache-stats",
        action="store_true",
        default=False,
        help="Display statistics about the cache and exit"
    )
    parser.add_argument(
        "--clear-cache",
        action="store_true",
        default=False,
        help="Clear the FieldLog lookup cache. May be used in isolation."
    )
    parser.add_argument(
        "--show-config",
        action="store_true",
        help="Show current configuration and exit"
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
        help="Show version number and exit"
    )

    subparsers = parser.add_subparsers(dest="command")

    # --- 'enrich' command ---
    parser_enrich = subparsers.add_parser(
        "enrich", help="Enrich all sightings and export the catalog"
    )
    _add_run_arguments(parser_enrich)
    parser_enrich.add_argument(
        "-o", "--output-dir",
        type=str,
        required=True,
        help="Directory to save the species and sightings tables"
    )
    parser_enrich.add_argument(
        "--output-format",
        choices=["csv", "parquet"],
        default=config.output_format,
        help="Output file format"
    )

    # --- 'search' command ---
    parser_search = subparsers.add_parser(
        "search", help="Enrich all sightings and list species matching a keyword"
    )
    _add_run_arguments(parser_search)
    parser_search.add_argument(
        "query",
        type=str,
        help="Case-insensitive substring of a scientific name, common name or taxon"
    )

    return parser


def build_service(args: argparse.Namespace) -> ReconciliationService:
    """Create a catalog and a service wired to the configured clients."""
    photo_client = None
    if not args.no_photos:
        if config.flickr_api_key:
            photo_client = FlickrClient()
        else:
            logging.warning("FIELDLOG_FLICKR_API_KEY is not set; skipping photo lookups")
    return ReconciliationService(
        Catalog(),
        WikipediaClient(),
        photo_client=photo_client,
        batch_size=args.batch_size,
    )


async def enrich_sightings(service: ReconciliationService, input_file: Optional[str]) -> None:
    """Load sightings into the service's catalog and enrich every species."""
    service.load_initial_dataset(load_sightings(input_file))
    statuses = await service.enrich_all(progress_bar=True)
    logging.info(f"Enrichment statistics: {service.attempt_manager.get_statistics()}")
    enriched = sum(1 for status in statuses.values() if status.is_successful)
    logging.info(f"{enriched} of {len(statuses)} species enriched")
    if service.read_only:
        logging.warning("Encyclopedia unreachable; new entries cannot be verified")


def _prepare(args: argparse.Namespace) -> None:
    config.update_from_args(vars(args))
    config.ensure_directories()
    setup_logging(args.log_level, args.log_file)
    if args.refresh_cache:
        count = query_wikipedia.clear_cache() + search_flickr.clear_cache()
        logging.info(f"Dropped {count} cached lookup responses")


def run_enrich(args: argparse.Namespace) -> int:
    """Run the enrichment workflow and export the catalog."""
    _prepare(args)
    try:
        start_time = time.time()
        service = build_service(args)
        asyncio.run(enrich_sightings(service, args.input))
        generated_files = generate_catalog_output(
            service.catalog, args.output_dir, args.output_format
        )
        logging.info(f"Generated {len(generated_files)} output files:")
        for file_path in generated_files:
            logging.info(f"  {file_path}")
        elapsed_time = time.time() - start_time
        logging.info(f"Processing completed in {elapsed_time:.2f} seconds")
        return 0
    except Exception as e:
        logging.error(f"Error processing sightings: {str(e)}", exc_info=True)
        return 1


def run_search(args: argparse.Namespace) -> int:
    """Enrich the sightings and print the species matching the query."""
    _prepare(args)
    try:
        service = build_service(args)
        asyncio.run(enrich_sightings(service, args.input))
    except Exception as e:
        logging.error(f"Error processing sightings: {str(e)}", exc_info=True)
        return 1

    matches = service.catalog.search(args.query)
    print(f"\n{len(matches)} species match '{args.query}':")
    for record in matches:
        view = service.catalog.species_view(record.scientific_name)
        print(f"\n{view.scientific_name} [{record.status.name}]")
        if view.common_names_summary:
            print(f"  {view.common_names_summary}")
        if view.taxon_summary:
            print(f"  {view.taxon_summary}")
        for sighting in view.sightings:
            print(f"  - {sighting.title} ({sighting.location.lat}, {sighting.location.lng})")
    return 0


# -----------------------------------------------------------------------------
# Main Entry Point
# -----------------------------------------------------------------------------
def main(args: Optional[List[str]] = None) -> int:
    parser = create_parser()
    parsed_args = parser.parse_args(args)

    # Global commands run before subcommand dispatch
    if parsed_args.show_config:
        print("\nFieldLog Configuration:")
        for key, value in config.to_dict().items():
            print(f"  {key}: {value}")
        return 0

    if parsed_args.cache_stats:
        stats = get_cache_stats()
        print("\nFieldLog Cache Statistics:")
        for key, value in stats.items():
            print(f"  {key}: {value}")
        return 0

    if parsed_args.clear_cache:
        count = clear_cache()
        print(f"\nCleared {count} cache entries")
        if parsed_args.command is None:
            return 0

    if parsed_args.command == "enrich":
        return run_enrich(parsed_args)
    elif parsed_args.command == "search":
        return run_search(parsed_args)
    else:
        parser.error("a command is required: enrich or search")
        return 1


if __name__ == "__main__":
    sys.exit(main())
