"""
Exclusion strategies.

An exclusion strategy decides, per property, whether the navigator omits it
from (de)serialization. Strategies are combined by ChainExclusionStrategy,
which excludes a property as soon as one child excludes it.
"""

import functools
import re
from abc import ABC, abstractmethod
from typing import Any, Iterable, Tuple

from .exceptions import InvalidArgumentError
from .metadata import ClassMetadata, PropertyMetadata

_VERSION_PATTERN = re.compile(r'^v?(\d+(?:\.\d+)*)')


@functools.lru_cache(maxsize=256)
def parse_version(version: str) -> Tuple[int, ...]:
    """
    Parse a dotted version into a comparable tuple.

    Trailing zero components are dropped so ``"1.0"`` equals ``"1.0.0"``.
    Anything after the numeric part (``-beta``, ``+build``) is ignored.

    Raises:
        InvalidArgumentError: If the string does not start with a number
    """
    match = _VERSION_PATTERN.match(str(version).strip())
    if match is None:
        raise InvalidArgumentError(f'Invalid version "{version}".')
    parts = [int(part) for part in match.group(1).split('.')]
    while len(parts) > 1 and parts[-1] == 0:
        parts.pop()
    return tuple(parts)


class ExclusionStrategy(ABC):
    """Predicate deciding whether a property is omitted."""

    @abstractmethod
    def should_exclude(
        self,
        property_metadata: PropertyMetadata,
        class_metadata: ClassMetadata,
        context: Any
    ) -> bool:
        """
        Args:
            property_metadata: Property being visited
            class_metadata: Metadata of the class owning the property
            context: Serialization context (exposes ``depth``)

        Returns:
            True if the property must be skipped
        """


class NoopExclusionStrategy(ExclusionStrategy):
    """Never excludes."""

    def should_exclude(self, property_metadata, class_metadata, context) -> bool:
        return False


class GroupsExclusionStrategy(ExclusionStrategy):
    """
    Keep properties sharing a group with the active ones.

    Properties without groups belong to the default group and are always kept.
    """

    def __init__(self, groups: Iterable[str]):
        self.groups = frozenset(groups)

    def should_exclude(self, property_metadata, class_metadata, context) -> bool:
        if not property_metadata.groups:
            return False
        return self.groups.isdisjoint(property_metadata.groups)


class VersionExclusionStrategy(ExclusionStrategy):
    """Keep properties whose since/until bounds (inclusive) contain the version."""

    def __init__(self, version: str):
        self.version = version
        self._parsed = parse_version(version)

    def should_exclude(self, property_metadata, class_metadata, context) -> bool:
        since = property_metadata.since
        if since is not None and parse_version(since) > self._parsed:
            return True

        until = property_metadata.until
        if until is not None and parse_version(until) < self._parsed:
            return True

        return False


class MaxDepthExclusionStrategy(ExclusionStrategy):
    """Exclude properties once the traversal depth exceeds their max_depth."""

    def should_exclude(self, property_metadata, class_metadata, context) -> bool:
        if property_metadata.max_depth is None:
            return False
        return getattr(context, 'depth', 0) > property_metadata.max_depth


class ChainExclusionStrategy(ExclusionStrategy):
    """Exclude when any child strategy excludes."""

    def __init__(self, strategies: Iterable[ExclusionStrategy]):
        self.strategies = tuple(strategies)

    def should_exclude(self, property_metadata, class_metadata, context) -> bool:
        return any(
            strategy.should_exclude(property_metadata, class_metadata, context)
            for strategy in self.strategies
        )
