"""Photo lookup client for FieldLog.

Flickr only searches one term per request, so each species gets its own
``flickr.photos.search`` call.
"""

import logging
from typing import Any, Dict, Optional

import requests

from fieldlog.cache_manager import cached
from fieldlog.config import config
from fieldlog.exceptions import PhotoLookupFailed

logger = logging.getLogger(__name__)

BASE_PARAMS = {
    "method": "flickr.photos.search",
    "safe_search": "1",
    "content_type": "1",
    "extras": "url_q",
    "page": "1",
    "format": "json",
    "nojsoncallback": "1",
}


@cached(prefix="flickr")
def search_flickr(
    endpoint: str,
    api_key: str,
    text: str,
    per_page: int,
    timeout: Optional[int] = None,
) -> Dict[str, Any]:
    """Run one photo search and return the JSON body.

    Flickr reports API errors with ``stat: fail`` and HTTP 200; those are
    raised here so that they never reach the cache.
    """
    params = dict(BASE_PARAMS, api_key=api_key, text=text, per_page=str(per_page))
    response = requests.get(
        endpoint,
        params=params,
        timeout=timeout,
        headers={"User-Agent": config.user_agent},
    )
    response.raise_for_status()
    data = response.json()
    if not isinstance(data, dict):
        raise PhotoLookupFailed("Photo search rejected: unexpected response body", [text])
    if data.get("stat") != "ok":
        raise PhotoLookupFailed(f"Photo search rejected: {data.get('message', 'unknown error')}", [text])
    return data


class FlickrClient:
    """Client for photo lookups."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        endpoint: Optional[str] = None,
        per_page: Optional[int] = None,
        timeout: Optional[int] = None,
    ):
        self.api_key = api_key or config.flickr_api_key
        self.endpoint = endpoint or config.flickr_endpoint
        self.per_page = per_page or config.photos_per_page
        self.timeout = timeout if timeout is not None else config.request_timeout

    def fetch_photos(self, name: str, refresh_cache: bool = False) -> Dict[str, Any]:
        """Search photos for one scientific name.

        Raises:
            PhotoLookupFailed: If no API key is configured or the search fails
        """
        if not self.api_key:
            raise PhotoLookupFailed("No Flickr API key configured", [name])
        try:
            return search_flickr(
                self.endpoint,
                self.api_key,
                name,
                self.per_page,
                timeout=self.timeout,
                refresh_cache=refresh_cache,
            )
        except PhotoLookupFailed as e:
            logger.warning(f"{e} ({name})")
            raise
        except (requests.RequestException, ValueError) as e:
            logger.warning(f"Photo lookup failed for {name}: {e}")
            raise PhotoLookupFailed(f"Photo lookup failed: {e}", [name]) from e
