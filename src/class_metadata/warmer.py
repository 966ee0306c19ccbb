"""
Cache warmer for class metadata.

Populates the metadata cache ahead of time for every class an enumerable
loader knows about, so runtime lookups never pay the build cost. Loaders that
cannot enumerate (reflection, annotations) are skipped: partial warming is
expected.

Warming is optional. Errors are logged and never propagate, a failed warm-up
only costs first-request latency.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import List, Optional, Union

from .cache import CacheClassMetadataFactory
from .loader import ClassMetadataLoader

logger = logging.getLogger(__name__)


class ClassMetadataCacheWarmer:
    """
    Eagerly resolve every enumerable class through the caching factory.

    Each class is warmed independently; with ``max_workers`` above one the
    classes are spread over a thread pool and their order is not guaranteed.
    """

    def __init__(
        self,
        factory: CacheClassMetadataFactory,
        loader: ClassMetadataLoader,
        max_workers: Optional[int] = None
    ):
        """
        Args:
            factory: Caching factory whose store is populated
            loader: Loader asked for the classes it knows
            max_workers: Thread pool size; None or 1 warms sequentially
        """
        self.factory = factory
        self.loader = loader
        self.max_workers = max_workers

    def is_optional(self) -> bool:
        return True

    def warm_up(self, target_directory: Optional[Union[str, Path]] = None) -> List[str]:
        """
        Warm the cache.

        Args:
            target_directory: Cache directory being warmed, reported in logs

        Returns:
            Names of the classes warmed successfully
        """
        if not self.loader.supports_enumeration():
            logger.debug(
                f"Loader {type(self.loader).__name__} cannot enumerate classes, nothing to warm"
            )
            return []

        try:
            class_names = list(self.loader.enumerate_known_classes())
        except Exception as e:
            logger.warning(f"Failed to enumerate classes for cache warm-up: {e}")
            return []

        if self.max_workers and self.max_workers > 1 and len(class_names) > 1:
            with ThreadPoolExecutor(max_workers=self.max_workers) as pool:
                results = list(pool.map(self._warm_class, class_names))
        else:
            results = [self._warm_class(class_name) for class_name in class_names]

        warmed = [name for name, ok in zip(class_names, results) if ok]
        target = f" in {target_directory}" if target_directory else ""
        logger.info(
            f"✅ Warmed class metadata cache{target}: "
            f"{len(warmed)}/{len(class_names)} classes"
        )
        return warmed

    def _warm_class(self, class_name: str) -> bool:
        try:
            self.factory.get_class_metadata(class_name)
        except Exception as e:
            logger.warning(f"Failed to warm class metadata for {class_name}: {e}")
            return False
        return True
