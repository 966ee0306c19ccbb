"""
Serialization context options and their compilation.

ContextOptions is the typed record of runtime options a caller passes for one
(de)serialization. ``compile_exclusion_strategy`` turns it into a single
exclusion strategy; ``create_context`` wraps that strategy, the null handling
flag and the remaining attributes into the SerializationContext the navigator
consumes.

Shape is validated here, at the boundary, so the navigator never meets a
malformed option during traversal.
"""

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, List, Mapping, Optional, Union

from .exceptions import InvalidArgumentError
from .exclusion import (
    ChainExclusionStrategy,
    ExclusionStrategy,
    GroupsExclusionStrategy,
    MaxDepthExclusionStrategy,
    NoopExclusionStrategy,
    VersionExclusionStrategy,
)
from .metadata import ClassMetadata, PropertyMetadata

logger = logging.getLogger(__name__)

SERIALIZE_NULL_OPTION = 'serialize_null'
GROUPS_OPTION = 'groups'
VERSION_OPTION = 'version'
MAX_DEPTH_OPTION = 'max_depth'
CUSTOM_STRATEGIES_OPTION = 'custom_strategies'

_OPTION_NAMES = (
    SERIALIZE_NULL_OPTION,
    GROUPS_OPTION,
    VERSION_OPTION,
    MAX_DEPTH_OPTION,
    CUSTOM_STRATEGIES_OPTION,
)


def _normalize_option_name(name: str) -> str:
    return name.replace('_', '').replace('-', '').lower()


_NORMALIZED_OPTION_NAMES = {_normalize_option_name(name): name for name in _OPTION_NAMES}


def _is_collection(value: Any) -> bool:
    return isinstance(value, Iterable) and not isinstance(value, (str, bytes))


@dataclass
class ContextOptions:
    """
    Runtime options of one serialization.

    Attributes:
        serialize_null: False drops null values (navigator concern, not a filter)
        groups: Active groups; properties outside them are excluded
        version: Active version for since/until filtering
        max_depth: True (or a positive int) enables max-depth filtering
        custom_strategies: Iterable of additional ExclusionStrategy objects,
            validated when compiled
        attributes: Open extension map passed through to the context
    """
    serialize_null: Optional[bool] = None
    groups: Optional[FrozenSet[str]] = None
    version: Optional[str] = None
    max_depth: Union[bool, int, None] = None
    custom_strategies: Any = None
    attributes: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        if self.serialize_null is not None and not isinstance(self.serialize_null, bool):
            raise InvalidArgumentError(
                f'The "{SERIALIZE_NULL_OPTION}" context option must be a boolean, '
                f'got "{type(self.serialize_null).__name__}".'
            )

        if self.groups is not None:
            if not _is_collection(self.groups) or not all(isinstance(g, str) for g in self.groups):
                raise InvalidArgumentError(
                    f'The "{GROUPS_OPTION}" context option must be a collection of strings.'
                )
            self.groups = frozenset(self.groups)

        if self.version is not None and not isinstance(self.version, str):
            raise InvalidArgumentError(
                f'The "{VERSION_OPTION}" context option must be a string, '
                f'got "{type(self.version).__name__}".'
            )

        if self.max_depth is not None and (
            not isinstance(self.max_depth, int) or self.max_depth < 0
        ):
            raise InvalidArgumentError(
                f'The "{MAX_DEPTH_OPTION}" context option must be a boolean or a '
                f'non-negative integer, got {self.max_depth!r}.'
            )

    @property
    def max_depth_enabled(self) -> bool:
        return bool(self.max_depth)

    @classmethod
    def from_mapping(cls, options: Mapping[str, Any]) -> 'ContextOptions':
        """
        Build options from a loose mapping.

        Known option names fill the matching fields; any other key lands in
        ``attributes``. Keys that differ from an option name only by case,
        underscores or dashes (``maxDepth``) are kept as attributes and logged.
        """
        known = {name: options[name] for name in _OPTION_NAMES if name in options}
        attributes = {key: value for key, value in options.items() if key not in _OPTION_NAMES}
        for key in attributes:
            option = _NORMALIZED_OPTION_NAMES.get(_normalize_option_name(str(key)))
            if option is not None:
                logger.warning(
                    f'Context attribute "{key}" looks like the "{option}" option and is '
                    f'not applied as one.'
                )
        return cls(attributes=attributes, **known)


def _custom_strategies(value: Any) -> List[ExclusionStrategy]:
    if not _is_collection(value):
        raise InvalidArgumentError(
            f'The "{CUSTOM_STRATEGIES_OPTION}" context option must be an iterable, '
            f'got "{type(value).__name__}".'
        )

    strategies = list(value)
    for strategy in strategies:
        if not isinstance(strategy, ExclusionStrategy):
            raise InvalidArgumentError(
                f'The "{CUSTOM_STRATEGIES_OPTION}" context option must be an iterable of '
                f'"{ExclusionStrategy.__name__}", got "{type(strategy).__name__}".'
            )
    return strategies


def _as_options(options: Union[ContextOptions, Mapping[str, Any], None]) -> ContextOptions:
    if options is None:
        return ContextOptions()
    if isinstance(options, ContextOptions):
        return options
    return ContextOptions.from_mapping(options)


def compile_exclusion_strategy(
    options: Union[ContextOptions, Mapping[str, Any], None]
) -> ExclusionStrategy:
    """
    Compile context options into one exclusion strategy.

    Filters are collected in order: groups, version, max depth, then custom
    strategies. A single filter is returned as is, several are wrapped in a
    ChainExclusionStrategy, none gives a NoopExclusionStrategy.

    Raises:
        InvalidArgumentError: If an option is malformed
    """
    options = _as_options(options)
    strategies: List[ExclusionStrategy] = []

    if options.groups:
        strategies.append(GroupsExclusionStrategy(options.groups))

    if options.version is not None:
        strategies.append(VersionExclusionStrategy(options.version))

    if options.max_depth_enabled:
        strategies.append(MaxDepthExclusionStrategy())

    if options.custom_strategies is not None:
        strategies.extend(_custom_strategies(options.custom_strategies))

    if not strategies:
        return NoopExclusionStrategy()
    if len(strategies) == 1:
        return strategies[0]
    return ChainExclusionStrategy(strategies)


@dataclass
class SerializationContext:
    """
    Compiled context handed to the navigator.

    ``depth`` is maintained by the navigator through ``enter``/``leave`` and
    read by MaxDepthExclusionStrategy.
    """
    exclusion_strategy: ExclusionStrategy = field(default_factory=NoopExclusionStrategy)
    ignore_null: bool = False
    options: Dict[str, Any] = field(default_factory=dict)
    depth: int = 0

    def enter(self) -> None:
        self.depth += 1

    def leave(self) -> None:
        if self.depth > 0:
            self.depth -= 1

    def should_exclude(
        self,
        property_metadata: PropertyMetadata,
        class_metadata: ClassMetadata
    ) -> bool:
        return self.exclusion_strategy.should_exclude(property_metadata, class_metadata, self)


def create_context(
    options: Union[ContextOptions, Mapping[str, Any], None] = None
) -> SerializationContext:
    """
    Build the serialization context for a set of options.

    Raises:
        InvalidArgumentError: If an option is malformed
    """
    options = _as_options(options)
    return SerializationContext(
        exclusion_strategy=compile_exclusion_strategy(options),
        ignore_null=options.serialize_null is False,
        options=dict(options.attributes),
    )
