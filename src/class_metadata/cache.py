"""
Caching layer for class metadata.

Architecture:
- CacheStore: minimal store contract (has/get/set/clear) keyed by legal keys
- MemoryCacheStore: process-local dict store
- FileCacheStore: one JSON file per key with version and age validation
- CacheClassMetadataFactory: factory decorator serving records from a store

The decorator never evicts; expiry is the store's business. It takes no lock
around the read-check-build-write sequence: two concurrent misses on the same
class may both build and write (last write wins). Builds are deterministic, so
the race only costs duplicated work, never wrong data.

Usage:
    factory = CacheClassMetadataFactory(
        ClassMetadataFactory(loader),
        FileCacheStore(directory=Path("var/cache")),
        prefix="class_metadata"
    )
    metadata = factory.get_class_metadata("app.models.Model")
"""

import json
import logging
import re
import tempfile
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, Generic, Optional, TypeVar, Union

from . import _paths
from .discovery import ClassRef, class_name_of
from .exceptions import CacheError
from .factory import ClassMetadataFactory, EventClassMetadataFactory
from .metadata import ClassMetadata

logger = logging.getLogger(__name__)

T = TypeVar('T')  # Type of cached items

_ILLEGAL_KEY_CHARS = re.compile(r'[^A-Za-z0-9_.]')
_LEGAL_KEY = re.compile(r'^[A-Za-z0-9_.]+$')


def cache_key(class_name: str, prefix: str = "") -> str:
    """
    Compute the cache key of a class.

    Every character outside ``[A-Za-z0-9_.]`` is replaced by ``_``.

    Args:
        class_name: Fully-qualified class name
        prefix: Optional key namespace, joined with ``_``

    Returns:
        Key legal in every store
    """
    key = _ILLEGAL_KEY_CHARS.sub('_', class_name)
    if prefix:
        key = f"{_ILLEGAL_KEY_CHARS.sub('_', prefix)}_{key}"
    return key


def _check_key(key: str) -> None:
    if not _LEGAL_KEY.match(key):
        raise CacheError(f'Invalid cache key "{key}": only [A-Za-z0-9_.] are allowed.')


class CacheStore(ABC, Generic[T]):
    """Store contract consumed by the caching factory and the warmer."""

    @abstractmethod
    def get(self, key: str) -> Optional[T]:
        """Return the stored item, or None on a miss."""

    @abstractmethod
    def set(self, key: str, item: T) -> None:
        """Store an item under a key."""

    @abstractmethod
    def clear(self) -> None:
        """Remove every item."""

    def has(self, key: str) -> bool:
        return self.get(key) is not None


class MemoryCacheStore(CacheStore[T]):
    """In-memory store; lives as long as the process."""

    def __init__(self):
        self._items: Dict[str, T] = {}

    def get(self, key: str) -> Optional[T]:
        _check_key(key)
        return self._items.get(key)

    def set(self, key: str, item: T) -> None:
        _check_key(key)
        self._items[key] = item

    def has(self, key: str) -> bool:
        _check_key(key)
        return key in self._items

    def clear(self) -> None:
        self._items.clear()

    def __len__(self) -> int:
        return len(self._items)


def _package_version() -> str:
    """Lazy import to avoid a circular import with the package root."""
    from class_metadata import __version__
    return __version__


@dataclass
class CacheConfig:
    """Configuration for file cache validation."""
    max_age_days: Optional[float] = None  # None keeps entries until cleared
    cache_version: str = "1.0"  # Cache format version


class FileCacheStore(CacheStore[T]):
    """
    Store persisting each item as a JSON file named after its key.

    Entries are invalid (read as a miss) when the cache format version or the
    library version changed, or when they are older than ``max_age_days``.
    A corrupt file is deleted and read as a miss.
    """

    def __init__(
        self,
        directory: Optional[Path] = None,
        version_getter: Callable[[], str] = _package_version,
        serializer: Callable[[T], Dict[str, Any]] = ClassMetadata.to_dict,
        deserializer: Callable[[Dict[str, Any]], T] = ClassMetadata.from_dict,
        config: Optional[CacheConfig] = None
    ):
        """
        Initialize the file store.

        Args:
            directory: Cache directory (defaults to the XDG cache location)
            version_getter: Function returning the current library version
            serializer: Function converting an item to a JSON-compatible dict
            deserializer: Function rebuilding an item from that dict
            config: Optional validation configuration
        """
        self.directory = Path(directory) if directory is not None else _paths.get_cache_dir()
        self.version_getter = version_getter
        self.serializer = serializer
        self.deserializer = deserializer
        self.config = config or CacheConfig()

    def _path(self, key: str) -> Path:
        _check_key(key)
        return self.directory / f"{key}.json"

    def get(self, key: str) -> Optional[T]:
        path = self._path(key)
        if not path.exists():
            return None

        try:
            with open(path, 'r', encoding='utf-8') as f:
                entry = json.load(f)
        except (json.JSONDecodeError, UnicodeDecodeError):
            entry = None
        except OSError as e:
            raise CacheError(f'Unable to read cache entry "{path}": {e}') from e

        if not isinstance(entry, dict):
            logger.warning(f"Corrupt cache entry {path}, discarding")
            path.unlink(missing_ok=True)
            return None

        if entry.get('cache_version') != self.config.cache_version:
            logger.debug(f"Cache format mismatch for {key}")
            return None

        cached_version = entry.get('version', 'unknown')
        if cached_version != self.version_getter():
            logger.debug(f"Library version changed since {key} was cached ({cached_version})")
            return None

        if self.config.max_age_days is not None:
            age_days = (time.time() - entry.get('timestamp', 0)) / (24 * 3600)
            if age_days > self.config.max_age_days:
                logger.debug(f"Cache entry {key} is {age_days:.1f} days old - expired")
                return None

        try:
            return self.deserializer(entry['item'])
        except (KeyError, TypeError, ValueError) as e:
            logger.warning(f"Failed to deserialize cache entry {key}: {e}")
            return None

    def set(self, key: str, item: T) -> None:
        path = self._path(key)
        entry = {
            'cache_version': self.config.cache_version,
            'version': self.version_getter(),
            'timestamp': time.time(),
            'item': self.serializer(item),
        }
        tmp_path = None
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            # Write to a private file then rename so readers never see a partial entry
            with tempfile.NamedTemporaryFile(
                'w', encoding='utf-8', dir=self.directory,
                prefix=f"{key}.", suffix='.tmp', delete=False
            ) as f:
                tmp_path = Path(f.name)
                json.dump(entry, f, indent=2)
            tmp_path.replace(path)
            tmp_path = None
        except (OSError, TypeError) as e:
            raise CacheError(f'Unable to write cache entry "{path}": {e}') from e
        finally:
            if tmp_path is not None:
                tmp_path.unlink(missing_ok=True)

    def clear(self) -> None:
        if not self.directory.exists():
            return
        removed = 0
        for path in self.directory.glob('*.json'):
            path.unlink(missing_ok=True)
            removed += 1
        logger.info(f"🧹 Cleared {removed} entries from {self.directory}")


class CacheClassMetadataFactory:
    """
    Factory decorator caching class metadata in a store.

    A hit is served from the store without calling the wrapped factory; a
    miss builds, stores and returns. Store failures are logged and fall back
    to the uncached build.
    """

    def __init__(
        self,
        factory: Union[ClassMetadataFactory, EventClassMetadataFactory],
        store: CacheStore[ClassMetadata],
        prefix: str = ""
    ):
        self.factory = factory
        self.store = store
        self.prefix = prefix

    def cache_key(self, class_name: ClassRef) -> str:
        return cache_key(class_name_of(class_name), self.prefix)

    def get_class_metadata(self, class_name: ClassRef) -> ClassMetadata:
        """
        Resolve the metadata of a class through the cache.

        Raises:
            ConfigurationError: Propagated from the wrapped factory
        """
        class_name = class_name_of(class_name)
        key = cache_key(class_name, self.prefix)

        try:
            cached = self.store.get(key)
        except (CacheError, OSError) as e:
            logger.warning(f"Cache read failed for {class_name}: {e}")
            cached = None

        if cached is not None:
            logger.debug(f"Cache hit for {class_name}")
            return cached

        logger.debug(f"Cache miss for {class_name}, building metadata")
        metadata = self.factory.get_class_metadata(class_name)

        try:
            self.store.set(key, metadata)
        except (CacheError, OSError) as e:
            logger.warning(f"Cache write failed for {class_name}: {e}")

        return metadata
