"""Caching of lookup responses for FieldLog.

Raw encyclopedia and photo responses are stored in a diskcache Cache so
that repeated runs over the same sightings do not hit the remote services
again. Entries carry a timestamp and expire after ``config.cache_max_age``
seconds. Only successful responses are cached; a lookup that raises is
never stored.
"""

import functools
import hashlib
import logging
import os
import time
from collections import defaultdict
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Dict, Optional

from diskcache import Cache

from fieldlog.config import config

logger = logging.getLogger(__name__)

# Module-level handle shared by all callers for the current cache directory.
# diskcache Cache objects are thread-safe, which matters because the lookup
# clients run in worker threads.
_cache_instance: Optional[Cache] = None
_cache_path: Optional[Path] = None
META_SUFFIX = "::meta"
META_VERSION = 1


def _close_cache() -> None:
    """Close the active diskcache instance."""
    global _cache_instance, _cache_path
    if _cache_instance is not None:
        _cache_instance.close()
        _cache_instance = None
        _cache_path = None


def get_cache() -> Cache:
    """Return a diskcache instance rooted at the current config cache dir."""
    global _cache_instance, _cache_path
    cache_dir = Path(config.cache_dir)
    cache_dir.mkdir(parents=True, exist_ok=True)
    if _cache_instance is None or _cache_path != cache_dir:
        if _cache_instance is not None:
            _cache_instance.close()
        _cache_instance = Cache(directory=str(cache_dir))
        _cache_path = cache_dir
    return _cache_instance


def set_cache_namespace(namespace: str) -> Path:
    """Set the effective cache directory to a namespace under the base dir."""
    target_dir = Path(config.cache_base_dir) / namespace
    config.cache_dir = str(target_dir)
    _close_cache()
    target_dir.mkdir(parents=True, exist_ok=True)
    return target_dir


def make_cache_key(prefix: str, *parts: Any) -> str:
    """Build a deterministic cache key from a prefix and arguments."""
    digest = hashlib.sha256(repr(parts).encode("utf-8")).hexdigest()
    return f"{prefix}_{digest[:32]}"


def save_cache(key: str, obj: Any, metadata: Optional[Dict[str, Any]] = None) -> None:
    """Save an object to the cache.

    Args:
        key: Cache key for the object
        obj: The object to cache
        metadata: Additional metadata to store with the cache entry
    """
    cache = get_cache()
    meta_key = f"{key}{META_SUFFIX}"
    meta = {
        "timestamp": datetime.now().isoformat(),
        "version": META_VERSION,
    }
    if metadata:
        meta.update(metadata)

    try:
        cache.set(key, obj)
        cache.set(meta_key, meta)
        logger.debug(f"Saved object to cache: {key}")
    except Exception as exc:
        # A half-written entry would be served without metadata; drop both
        logger.error(f"Failed to save to cache: {key}, {exc}")
        cache.delete(key)
        cache.delete(meta_key)


def load_cache(key: str, max_age: Optional[int] = None) -> Optional[Any]:
    """Load an object from the cache if present and fresh.

    Args:
        key: Cache key for the object
        max_age: Maximum age in seconds; defaults to ``config.cache_max_age``

    Returns:
        The cached object, or None on a miss
    """
    cache = get_cache()
    meta = cache.get(f"{key}{META_SUFFIX}", default=None)
    if meta is None:
        logger.debug(f"Cache miss (metadata not found): {key}")
        return None

    if max_age is None:
        max_age = config.cache_max_age
    if max_age is not None:
        timestamp = datetime.fromisoformat(meta.get("timestamp", "2000-01-01T00:00:00"))
        age = (datetime.now() - timestamp).total_seconds()
        if age > max_age:
            logger.debug(f"Cache miss (expired after {age:.1f}s): {key}")
            return None

    obj = cache.get(key, default=None)
    if obj is None:
        logger.debug(f"Cache miss (value not found): {key}")
        return None
    logger.debug(f"Cache hit: {key}")
    return obj


def clear_cache(pattern: Optional[str] = None) -> int:
    """Clear cache entries whose key contains the given pattern.

    Args:
        pattern: Optional key substring, or None for all entries

    Returns:
        Number of entries removed
    """
    cache = get_cache()
    if pattern is None:
        count = len(cache)
        cache.clear()
        logger.info(f"Cleared {count} cache entries")
        return count

    keys_to_delete = [key for key in cache if pattern in str(key)]
    for key in keys_to_delete:
        cache.delete(key)
    logger.info(f"Cleared {len(keys_to_delete)} cache entries matching '{pattern}'")
    return len(keys_to_delete)


def get_cache_stats() -> Dict[str, Any]:
    """Get statistics about the cache.

    Returns:
        Dictionary with cache statistics
    """
    cache_dir = Path(config.cache_dir)
    cache_dir.mkdir(parents=True, exist_ok=True)
    stats: Dict[str, Any] = {
        "namespace": str(cache_dir),
        "total_size_bytes": 0,
        "entry_count": 0,
        "prefix_counts": {},
    }

    for root, _, files in os.walk(cache_dir):
        for file_name in files:
            try:
                stats["total_size_bytes"] += (Path(root) / file_name).stat().st_size
            except OSError:
                continue

    prefix_counts: Dict[str, int] = defaultdict(int)
    for key in get_cache():
        key_str = str(key)
        if key_str.endswith(META_SUFFIX):
            continue
        stats["entry_count"] += 1
        prefix_counts[key_str.rsplit("_", 1)[0]] += 1
    stats["prefix_counts"] = dict(prefix_counts)
    return stats


def cached(prefix: Optional[str] = None, max_age: Optional[int] = None):
    """Decorator caching a lookup function's result by its arguments.

    The wrapped function accepts an extra ``refresh_cache`` keyword that
    bypasses the cached value and stores a fresh one. Caching is skipped
    entirely when ``config.use_cache`` is false.

    Args:
        prefix: Optional prefix for the cache key (defaults to function name)
        max_age: Maximum age of cache entries in seconds

    Returns:
        Decorated function with caching
    """
    def decorator(func: Callable) -> Callable:
        func_prefix = prefix or func.__name__

        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            refresh = kwargs.pop("refresh_cache", False)
            if not config.use_cache:
                return func(*args, **kwargs)

            cache_key = make_cache_key(func_prefix, args, sorted(kwargs.items()))
            if not refresh:
                cached_result = load_cache(cache_key, max_age=max_age)
                if cached_result is not None:
                    return cached_result

            start_time = time.time()
            result = func(*args, **kwargs)
            elapsed = time.time() - start_time
            save_cache(cache_key, result, metadata={
                "function": func.__name__,
                "execution_time": elapsed,
            })
            return result

        def clear_function_cache() -> int:
            """Clear all cache entries for this function."""
            return clear_cache(func_prefix)

        wrapper.clear_cache = clear_function_cache
        return wrapper

    return decorator
