"""
Class metadata factory.

The public lookup API: ``get_class_metadata(class_name)`` delegates to the
configured loader and always returns a record. An unknown class yields empty
metadata; only a factory without any loader is an error.

EventClassMetadataFactory decorates a factory so listeners can adjust each
record after it is built.
"""

import logging
from typing import Callable, Iterable, List, Optional, Tuple

from .discovery import ClassRef, class_name_of, resolve_class
from .exceptions import ConfigurationError
from .loader import ChainClassMetadataLoader, ClassMetadataLoader
from .metadata import ClassMetadata, merge_class_metadata

logger = logging.getLogger(__name__)


class ClassMetadataFactory:
    """
    Build class metadata from a loader.

    Stateless: every call builds a fresh record, so the factory may be shared
    between threads.

    When ``inherit`` is enabled and the class is importable, metadata of its
    base classes is merged in after the class's own data (nearest base first),
    filling only what the class leaves unset.
    """

    def __init__(self, loader: Optional[ClassMetadataLoader], inherit: bool = True):
        self.loader = loader
        self.inherit = inherit

    def has_loader(self) -> bool:
        if self.loader is None:
            return False
        if isinstance(self.loader, ChainClassMetadataLoader):
            return bool(self.loader.loaders)
        return True

    def get_class_metadata(self, class_name: ClassRef) -> ClassMetadata:
        """
        Resolve the metadata of a class.

        Args:
            class_name: Dotted class name or class object

        Returns:
            ClassMetadata (empty when no loader knows the class)

        Raises:
            ConfigurationError: If no loader is registered
        """
        class_name = class_name_of(class_name)
        if not self.has_loader():
            raise ConfigurationError(
                f'Unable to load the metadata of "{class_name}": '
                f'no class metadata loader is registered.'
            )

        metadata = self.loader.load(class_name)
        if metadata is None:
            logger.debug(f"No loader has metadata for {class_name}")
            metadata = ClassMetadata(name=class_name)

        if self.inherit:
            metadata = self._merge_parents(metadata)

        return metadata

    def _merge_parents(self, metadata: ClassMetadata) -> ClassMetadata:
        cls = resolve_class(metadata.name)
        if cls is None:
            return metadata

        for base in cls.__mro__[1:]:
            if base is object:
                continue
            parent = self.loader.load(class_name_of(base))
            if parent is not None:
                metadata = merge_class_metadata(metadata, parent)
        return metadata


MetadataListener = Callable[[ClassMetadata], Optional[ClassMetadata]]


class EventClassMetadataFactory:
    """
    Factory decorator dispatching a load event for every built record.

    Each listener receives the record and may return a replacement; returning
    None keeps the current record. Listeners run in registration order, each
    one seeing the result of the previous. When wrapped by the cache decorator
    listeners run once per cache miss.

    Usage:
        def hide_password(metadata):
            ...
            return ClassMetadata(metadata.name, metadata.xml_root, properties)

        factory = EventClassMetadataFactory(ClassMetadataFactory(loader), [hide_password])
    """

    def __init__(self, factory: ClassMetadataFactory, listeners: Iterable[MetadataListener] = ()):
        self.factory = factory
        self._listeners: List[MetadataListener] = list(listeners)

    @property
    def listeners(self) -> Tuple[MetadataListener, ...]:
        return tuple(self._listeners)

    def add_listener(self, listener: MetadataListener) -> None:
        self._listeners.append(listener)

    def get_class_metadata(self, class_name: ClassRef) -> ClassMetadata:
        """
        Build the metadata of a class and pass it through the listeners.

        Raises:
            ConfigurationError: Propagated from the wrapped factory
            TypeError: If a listener returns something other than ClassMetadata or None
        """
        metadata = self.factory.get_class_metadata(class_name)

        for listener in self._listeners:
            result = listener(metadata)
            if result is None:
                continue
            if not isinstance(result, ClassMetadata):
                raise TypeError(
                    f"Class metadata listener {listener!r} must return ClassMetadata "
                    f"or None, got {type(result).__name__}"
                )
            metadata = result

        logger.debug(f"Dispatched load event for {metadata.name} to {len(self._listeners)} listeners")
        return metadata
