"""
class-metadata: class metadata resolution and caching for serializers.

This package resolves, per class, the mapping rules a serializer applies
(aliases, versions, groups, XML styling) from chained loaders, caches the
result, warms the cache ahead of time and compiles runtime context options
into exclusion strategies.
"""

__version__ = "0.1.0"

from .metadata import ClassMetadata, PropertyMetadata, merge_class_metadata
from .loader import (
    AnnotationClassMetadataLoader,
    ChainClassMetadataLoader,
    ClassMetadataLoader,
    Property,
    ReflectionClassMetadataLoader,
)
from .mapping import DirectoryClassMetadataLoader, FileClassMetadataLoader
from .factory import ClassMetadataFactory, EventClassMetadataFactory
from .cache import (
    CacheClassMetadataFactory,
    CacheStore,
    FileCacheStore,
    MemoryCacheStore,
    cache_key,
)
from .warmer import ClassMetadataCacheWarmer
from .exclusion import (
    ChainExclusionStrategy,
    ExclusionStrategy,
    GroupsExclusionStrategy,
    MaxDepthExclusionStrategy,
    NoopExclusionStrategy,
    VersionExclusionStrategy,
)
from .context import (
    ContextOptions,
    SerializationContext,
    compile_exclusion_strategy,
    create_context,
)
from .config import MappingConfig, build_services, load_config
from .exceptions import CacheError, ConfigurationError, InvalidArgumentError, MetadataError

__all__ = [
    # Model
    "ClassMetadata",
    "PropertyMetadata",
    "merge_class_metadata",
    # Loaders
    "ClassMetadataLoader",
    "ReflectionClassMetadataLoader",
    "AnnotationClassMetadataLoader",
    "Property",
    "FileClassMetadataLoader",
    "DirectoryClassMetadataLoader",
    "ChainClassMetadataLoader",
    # Factory and cache
    "ClassMetadataFactory",
    "EventClassMetadataFactory",
    "CacheClassMetadataFactory",
    "CacheStore",
    "MemoryCacheStore",
    "FileCacheStore",
    "cache_key",
    "ClassMetadataCacheWarmer",
    # Exclusion
    "ExclusionStrategy",
    "NoopExclusionStrategy",
    "GroupsExclusionStrategy",
    "VersionExclusionStrategy",
    "MaxDepthExclusionStrategy",
    "ChainExclusionStrategy",
    "ContextOptions",
    "SerializationContext",
    "compile_exclusion_strategy",
    "create_context",
    # Configuration
    "MappingConfig",
    "load_config",
    "build_services",
    # Exceptions
    "MetadataError",
    "ConfigurationError",
    "InvalidArgumentError",
    "CacheError",
]
