"""
Configuration loading and component assembly.

Loads a YAML configuration file and assembles the loader chain, the metadata
factory (cached unless in debug mode) and the cache warmer.

Example config:
    debug: false
    mapping:
      reflection: true
      annotations: true
      auto:
        enabled: true
        packages: [app.models]
        paths: [serializer_mapping]
      paths:
        - config/serializer
    events:
      enabled: true
    cache:
      enabled: true
      prefix: class_metadata
      directory: var/cache/serializer
    warmer:
      workers: 4

Loader precedence follows the chain order: explicit paths, auto-discovered
package directories, extra loaders, annotations, reflection. Factories are
stacked as cache, then events, then the plain factory.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Union

import jsonschema
import yaml

from .cache import CacheClassMetadataFactory, CacheStore, FileCacheStore, MemoryCacheStore
from .discovery import discover_package_mapping_dirs
from .exceptions import ConfigurationError
from .factory import ClassMetadataFactory, EventClassMetadataFactory, MetadataListener
from .loader import (
    AnnotationClassMetadataLoader,
    ChainClassMetadataLoader,
    ClassMetadataLoader,
    ReflectionClassMetadataLoader,
)
from .mapping import DirectoryClassMetadataLoader, FileClassMetadataLoader
from .warmer import ClassMetadataCacheWarmer

logger = logging.getLogger(__name__)

DEFAULT_AUTO_PATHS = ["serializer_mapping"]
DEFAULT_CACHE_PREFIX = "class_metadata"

_STRING_LIST = {"type": "array", "items": {"type": "string"}}

CONFIG_SCHEMA: Dict[str, Any] = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "type": "object",
    "additionalProperties": False,
    "properties": {
        "debug": {"type": "boolean"},
        "mapping": {
            "type": "object",
            "additionalProperties": False,
            "properties": {
                "reflection": {"type": "boolean"},
                "annotations": {"type": "boolean"},
                "auto": {
                    "type": "object",
                    "additionalProperties": False,
                    "properties": {
                        "enabled": {"type": "boolean"},
                        "packages": _STRING_LIST,
                        "paths": _STRING_LIST,
                    },
                },
                "paths": _STRING_LIST,
            },
        },
        "events": {
            "type": "object",
            "additionalProperties": False,
            "properties": {
                "enabled": {"type": "boolean"},
            },
        },
        "cache": {
            "type": "object",
            "additionalProperties": False,
            "properties": {
                "enabled": {"type": "boolean"},
                "prefix": {"type": "string"},
                "directory": {"type": ["string", "null"]},
            },
        },
        "warmer": {
            "type": "object",
            "additionalProperties": False,
            "properties": {
                "workers": {"type": ["integer", "null"], "minimum": 1},
            },
        },
    },
}


@dataclass
class CacheSettings:
    """Cache settings; no directory means an in-memory store."""
    enabled: bool = True
    prefix: str = DEFAULT_CACHE_PREFIX
    directory: Optional[Path] = None


@dataclass
class MappingConfig:
    """
    Configuration of the metadata system.

    Attributes:
        debug: Debug mode bypasses the cache decorator
        reflection: Register the reflection loader
        annotations: Register the annotation loader
        auto_enabled: Look for mapping directories inside ``auto_packages``
        auto_packages: Importable packages scanned for mapping directories
        auto_paths: Package-relative mapping directory names
        paths: Explicit mapping files or directories
        events: Wrap the factory in EventClassMetadataFactory
        cache: Cache settings
        warmer_workers: Thread pool size of the cache warmer
    """
    debug: bool = False
    reflection: bool = True
    annotations: bool = True
    auto_enabled: bool = True
    auto_packages: List[str] = field(default_factory=list)
    auto_paths: List[str] = field(default_factory=lambda: list(DEFAULT_AUTO_PATHS))
    paths: List[Path] = field(default_factory=list)
    events: bool = True
    cache: CacheSettings = field(default_factory=CacheSettings)
    warmer_workers: Optional[int] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any], base_dir: Optional[Path] = None) -> 'MappingConfig':
        """
        Build a configuration from its parsed YAML form.

        Args:
            data: Parsed configuration
            base_dir: Directory relative paths are resolved against

        Raises:
            ConfigurationError: If the configuration does not match the schema
        """
        try:
            jsonschema.validate(data, CONFIG_SCHEMA)
        except jsonschema.ValidationError as e:
            location = '.'.join(str(part) for part in e.absolute_path) or '<root>'
            raise ConfigurationError(f"Invalid configuration at {location}: {e.message}") from e

        base_dir = base_dir or Path.cwd()

        def resolve(path: str) -> Path:
            path = Path(path)
            return path if path.is_absolute() else base_dir / path

        mapping = data.get('mapping', {})
        auto = mapping.get('auto', {})
        cache = data.get('cache', {})
        directory = cache.get('directory')

        return cls(
            debug=data.get('debug', False),
            reflection=mapping.get('reflection', True),
            annotations=mapping.get('annotations', True),
            auto_enabled=auto.get('enabled', True),
            auto_packages=list(auto.get('packages', [])),
            auto_paths=list(auto.get('paths', DEFAULT_AUTO_PATHS)),
            paths=[resolve(path) for path in mapping.get('paths', [])],
            events=data.get('events', {}).get('enabled', True),
            cache=CacheSettings(
                enabled=cache.get('enabled', True),
                prefix=cache.get('prefix', DEFAULT_CACHE_PREFIX),
                directory=resolve(directory) if directory else None,
            ),
            warmer_workers=data.get('warmer', {}).get('workers'),
        )


def load_config(config_path: Union[str, Path]) -> MappingConfig:
    """
    Load a YAML configuration file.

    Relative paths inside the file are resolved against its directory. An
    empty file yields the defaults.

    Raises:
        ConfigurationError: If the file is missing, unparsable or invalid
    """
    config_path = Path(config_path)
    if not config_path.exists():
        raise ConfigurationError(f'The path "{config_path}" does not exist.')

    try:
        with open(config_path, 'r', encoding='utf-8') as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigurationError(f'Unable to parse the configuration "{config_path}": {e}') from e

    return MappingConfig.from_dict(data or {}, base_dir=config_path.parent)


def build_loader(
    config: MappingConfig,
    extra_loaders: Iterable[ClassMetadataLoader] = ()
) -> ChainClassMetadataLoader:
    """
    Assemble the loader chain.

    Raises:
        ConfigurationError: If a mapping path does not exist or no loader is enabled
    """
    loaders: List[ClassMetadataLoader] = []

    for path in config.paths:
        path = Path(path)
        if not path.exists():
            raise ConfigurationError(f'The path "{path}" does not exist.')
        if path.is_dir():
            loaders.append(DirectoryClassMetadataLoader(path))
        else:
            loaders.append(FileClassMetadataLoader(path))

    if config.auto_enabled and config.auto_packages:
        directories = discover_package_mapping_dirs(config.auto_packages, config.auto_paths)
        if directories:
            loaders.append(DirectoryClassMetadataLoader(*directories))

    loaders.extend(extra_loaders)

    if config.annotations:
        loaders.append(AnnotationClassMetadataLoader())
    if config.reflection:
        loaders.append(ReflectionClassMetadataLoader())

    if not loaders:
        raise ConfigurationError(
            "You must define at least one class metadata loader by enabling the "
            "reflection loader in your configuration or by registering an extra loader."
        )

    logger.debug(f"Assembled loader chain: {[type(loader).__name__ for loader in loaders]}")
    return ChainClassMetadataLoader(loaders)


def build_cache_store(settings: CacheSettings) -> CacheStore:
    if settings.directory is None:
        return MemoryCacheStore()
    return FileCacheStore(directory=settings.directory)


MetadataFactory = Union[ClassMetadataFactory, EventClassMetadataFactory, CacheClassMetadataFactory]


def build_metadata_factory(
    config: MappingConfig,
    loader: Optional[ClassMetadataLoader] = None,
    listeners: Iterable[MetadataListener] = ()
) -> MetadataFactory:
    """
    Build the metadata factory stack.

    The plain factory is wrapped in the event factory when events are enabled,
    then in the cache decorator unless debug mode or the cache is off.

    Args:
        config: Configuration
        loader: Loader to use (built from ``config`` when omitted)
        listeners: Load event listeners (ignored when events are disabled)
    """
    factory = ClassMetadataFactory(loader if loader is not None else build_loader(config))

    listeners = list(listeners)
    if config.events:
        factory = EventClassMetadataFactory(factory, listeners)
    elif listeners:
        logger.warning(f"Events are disabled, ignoring {len(listeners)} class metadata listeners")

    if config.debug or not config.cache.enabled:
        return factory
    return CacheClassMetadataFactory(factory, build_cache_store(config.cache), config.cache.prefix)


@dataclass
class MetadataServices:
    """Components assembled from one configuration."""
    loader: ChainClassMetadataLoader
    factory: MetadataFactory
    warmer: Optional[ClassMetadataCacheWarmer]


def build_services(
    config: MappingConfig,
    extra_loaders: Iterable[ClassMetadataLoader] = (),
    listeners: Iterable[MetadataListener] = ()
) -> MetadataServices:
    """
    Assemble loader, factory and warmer sharing the same loader chain.

    The warmer is None when the factory is not cached.
    """
    loader = build_loader(config, extra_loaders)
    factory = build_metadata_factory(config, loader, listeners)
    warmer = None
    if isinstance(factory, CacheClassMetadataFactory):
        warmer = ClassMetadataCacheWarmer(factory, loader, max_workers=config.warmer_workers)
    return MetadataServices(loader=loader, factory=factory, warmer=warmer)
