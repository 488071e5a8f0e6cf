"""Configuration for FieldLog.

A single module-level ``config`` object holds the settings shared by the
lookup clients, the cache and the command-line interface. Values can be
overridden from the environment (``FIELDLOG_*``) or from parsed CLI args.
"""

import os
from pathlib import Path
from typing import Any, Dict, Optional


def _env_int(name: str, default: int) -> int:
    value = os.environ.get(name)
    if value is None or value == "":
        return default
    try:
        return int(value)
    except ValueError:
        raise ValueError(f"Environment variable {name} must be an integer, got {value!r}")


class Config:
    """Runtime configuration for FieldLog."""

    def __init__(self):
        # Encyclopedia (taxonomy and common names) lookup
        self.wikipedia_endpoint = os.environ.get(
            "FIELDLOG_WIKIPEDIA_ENDPOINT", "https://en.wikipedia.org/w/api.php"
        )
        # MediaWiki accepts at most 50 titles per query
        self.batch_size = _env_int("FIELDLOG_BATCH_SIZE", 50)

        # Photo lookup
        self.flickr_endpoint = os.environ.get(
            "FIELDLOG_FLICKR_ENDPOINT", "https://api.flickr.com/services/rest/"
        )
        self.flickr_api_key: Optional[str] = os.environ.get("FIELDLOG_FLICKR_API_KEY")
        self.photos_per_page = _env_int("FIELDLOG_PHOTOS_PER_PAGE", 6)

        # Transport timeout in seconds, applied by the HTTP clients only
        self.request_timeout = _env_int("FIELDLOG_REQUEST_TIMEOUT", 30)
        self.user_agent = "fieldlog/0.1 (field sightings catalog)"

        # Lookup response cache
        self.use_cache = os.environ.get("FIELDLOG_NO_CACHE", "") == ""
        self.cache_base_dir = os.environ.get(
            "FIELDLOG_CACHE_DIR", str(Path.home() / ".cache" / "fieldlog")
        )
        self.cache_dir = self.cache_base_dir
        # One week
        self.cache_max_age: Optional[int] = _env_int("FIELDLOG_CACHE_MAX_AGE", 7 * 24 * 3600)

        # Catalog export
        self.output_format = "csv"

    def update_from_args(self, args: Dict[str, Any]) -> None:
        """Update configuration from parsed command-line arguments.

        Only keys that match an existing attribute and carry a non-None value
        are applied.

        Args:
            args: Dictionary of argument names to values (e.g. ``vars(namespace)``)
        """
        for key, value in args.items():
            if value is None:
                continue
            if hasattr(self, key):
                setattr(self, key, value)

    def ensure_directories(self) -> None:
        """Create the cache directories if they do not exist yet."""
        Path(self.cache_base_dir).mkdir(parents=True, exist_ok=True)
        Path(self.cache_dir).mkdir(parents=True, exist_ok=True)

    def to_dict(self) -> Dict[str, Any]:
        """Return the configuration as a dictionary, hiding secrets."""
        result = dict(vars(self))
        if result.get("flickr_api_key"):
            result["flickr_api_key"] = "***"
        return result


config = Config()
