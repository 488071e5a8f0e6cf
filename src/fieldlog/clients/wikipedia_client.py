"""Encyclopedia lookup client for FieldLog.

Fetches the lead-section markup, the HTML summary extract and the canonical
URL of one or more articles from the MediaWiki API. MediaWiki prefers many
titles batched into one request, so titles are pipe-joined.
"""

import logging
from typing import Any, Dict, List, Optional

import requests

from fieldlog.cache_manager import cached
from fieldlog.config import config
from fieldlog.exceptions import TaxonomyLookupFailed

logger = logging.getLogger(__name__)

BASE_PARAMS = {
    "action": "query",
    "format": "json",
    "redirects": "",
    "prop": "revisions|extracts|info",
    "rvprop": "content",
    "rvslots": "main",
    "rvsection": "0",
    "exlimit": "max",
    "exintro": "",
    "inprop": "url",
}


@cached(prefix="wikipedia")
def query_wikipedia(endpoint: str, titles: str, timeout: Optional[int] = None) -> Dict[str, Any]:
    """Run one MediaWiki query for pipe-joined titles and return the JSON body.

    API-level errors are raised here so that they never reach the cache.
    """
    params = dict(BASE_PARAMS, titles=titles)
    response = requests.get(
        endpoint,
        params=params,
        timeout=timeout,
        headers={"User-Agent": config.user_agent},
    )
    response.raise_for_status()
    data = response.json()
    if not isinstance(data, dict):
        raise TaxonomyLookupFailed("Taxonomy lookup rejected: unexpected response body", titles.split("|"))
    if "error" in data or not isinstance(data.get("query"), dict):
        error = data.get("error")
        if isinstance(error, dict):
            message = error.get("info", "unknown error")
        elif error is not None:
            message = str(error)
        else:
            message = "response has no query section"
        raise TaxonomyLookupFailed(f"Taxonomy lookup rejected: {message}", titles.split("|"))
    return data


class WikipediaClient:
    """Client for taxonomy and common-name lookups."""

    def __init__(self, endpoint: Optional[str] = None, timeout: Optional[int] = None):
        self.endpoint = endpoint or config.wikipedia_endpoint
        self.timeout = timeout if timeout is not None else config.request_timeout

    def fetch_taxonomy(self, names: List[str], refresh_cache: bool = False) -> Dict[str, Any]:
        """Look up one or more scientific names in a single request.

        Args:
            names: Scientific names to look up
            refresh_cache: Bypass any cached response

        Returns:
            The decoded MediaWiki response

        Raises:
            TaxonomyLookupFailed: On transport errors, undecodable bodies or
                API-level errors
        """
        if not names:
            raise ValueError("At least one name is required")
        titles = "|".join(names)
        try:
            return query_wikipedia(
                self.endpoint, titles, timeout=self.timeout, refresh_cache=refresh_cache
            )
        except TaxonomyLookupFailed as e:
            logger.error(f"{e} ({titles})")
            raise
        except (requests.RequestException, ValueError) as e:
            logger.error(f"Taxonomy lookup failed for {titles}: {e}")
            raise TaxonomyLookupFailed(f"Taxonomy lookup failed: {e}", names) from e
