"""
Class metadata loaders.

A loader answers ``load(class_name)`` with a ClassMetadata, or ``None`` when
it has no opinion about the class. Loaders that know every class they can
answer for (mapping files and directories) advertise it through
``supports_enumeration()``; the cache warmer relies on that capability rather
than on the loader type.

Loaders in this module:
- ReflectionClassMetadataLoader: declared properties of the class (names only)
- AnnotationClassMetadataLoader: ``Annotated[..., Property(...)]`` markers
- ChainClassMetadataLoader: ordered composite folding child results

File and directory loaders live in ``class_metadata.mapping``.
"""

import dataclasses
import inspect
import logging
import typing
from abc import ABC, abstractmethod
from typing import Any, Dict, Iterable, List, Optional, Tuple, Type

from .discovery import resolve_class
from .exclusion import parse_version
from .metadata import ClassMetadata, PropertyMetadata, merge_class_metadata

logger = logging.getLogger(__name__)

_PROPERTY_OPTIONS = frozenset(
    f.name for f in dataclasses.fields(PropertyMetadata) if f.name != 'name'
)


class ClassMetadataLoader(ABC):
    """Strategy producing metadata for zero or more classes."""

    @abstractmethod
    def load(self, class_name: str) -> Optional[ClassMetadata]:
        """
        Load metadata for a class.

        Args:
            class_name: Fully-qualified dotted class name

        Returns:
            ClassMetadata, or None if this loader has no data for the class
        """

    def supports_enumeration(self) -> bool:
        return False

    def enumerate_known_classes(self) -> List[str]:
        return []


def declared_property_names(cls: Type) -> List[str]:
    """
    List the public properties a class declares.

    Dataclass fields win; otherwise annotated attributes across the MRO
    (base classes first); otherwise ``__slots__``.
    """
    if dataclasses.is_dataclass(cls):
        names = [f.name for f in dataclasses.fields(cls)]
    else:
        names = []
        for klass in reversed(cls.__mro__):
            if klass is object:
                continue
            for name in inspect.get_annotations(klass):
                if name not in names:
                    names.append(name)
        if not names:
            for klass in reversed(cls.__mro__):
                slots = vars(klass).get('__slots__', ())
                if isinstance(slots, str):
                    slots = (slots,)
                names.extend(name for name in slots if name not in names)

    return [name for name in names if not name.startswith('_')]


class ReflectionClassMetadataLoader(ClassMetadataLoader):
    """
    Build skeletal metadata from the class definition itself.

    Only property names are produced, every other field stays unset so that
    loaders registered earlier in a chain keep precedence.
    """

    def load(self, class_name: str) -> Optional[ClassMetadata]:
        cls = resolve_class(class_name)
        if cls is None:
            return None

        properties = {
            name: PropertyMetadata(name=name) for name in declared_property_names(cls)
        }
        logger.debug(f"Reflected {len(properties)} properties for {class_name}")
        return ClassMetadata(name=class_name, properties=properties)


class Property:
    """
    Declarative metadata marker for ``typing.Annotated`` class annotations.

    Usage:
        class Model:
            __xml_root__ = 'model'

            foo: Annotated[int, Property(alias='bar', groups=['public'])]

    Accepts any PropertyMetadata field except ``name``. ``since`` and
    ``until`` are stored as strings and must be valid versions.

    Raises:
        TypeError: If an option is not a PropertyMetadata field
        InvalidArgumentError: If ``since`` or ``until`` is not a version
    """

    def __init__(self, **options: Any):
        unknown = set(options) - _PROPERTY_OPTIONS
        if unknown:
            raise TypeError(f"Unknown Property options: {sorted(unknown)}")
        for bound in ('since', 'until'):
            if options.get(bound) is not None:
                options[bound] = str(options[bound])
                parse_version(options[bound])
        self.options = options

    def __repr__(self) -> str:
        args = ', '.join(f"{key}={value!r}" for key, value in self.options.items())
        return f"Property({args})"


class AnnotationClassMetadataLoader(ClassMetadataLoader):
    """
    Read metadata declared on the class with ``Property`` markers.

    The XML root name comes from the ``__xml_root__`` class attribute. Classes
    without any marker or root yield None.
    """

    def load(self, class_name: str) -> Optional[ClassMetadata]:
        cls = resolve_class(class_name)
        if cls is None:
            return None

        try:
            hints = typing.get_type_hints(cls, include_extras=True)
        except (NameError, TypeError) as e:
            logger.warning(f"Unable to evaluate annotations of {class_name}: {e}")
            hints = {}

        properties: Dict[str, PropertyMetadata] = {}
        for name, hint in hints.items():
            if typing.get_origin(hint) is not typing.Annotated:
                continue
            options: Dict[str, Any] = {}
            for marker in hint.__metadata__:
                if isinstance(marker, Property):
                    # First marker wins for a repeated option
                    for key, value in marker.options.items():
                        options.setdefault(key, value)
            if options:
                properties[name] = PropertyMetadata(name=name, **options)

        xml_root = vars(cls).get('__xml_root__')
        if not properties and xml_root is None:
            return None

        logger.debug(f"Read {len(properties)} annotated properties for {class_name}")
        return ClassMetadata(name=class_name, xml_root=xml_root, properties=properties)


class ChainClassMetadataLoader(ClassMetadataLoader):
    """
    Ordered composite of loaders.

    ``load`` is a left fold over the children's results: the first result is
    the base, later results only fill properties and fields the base leaves
    unset. Earlier loaders therefore take precedence.
    """

    def __init__(self, loaders: Iterable[ClassMetadataLoader] = ()):
        self._loaders: List[ClassMetadataLoader] = list(loaders)

    @property
    def loaders(self) -> Tuple[ClassMetadataLoader, ...]:
        return tuple(self._loaders)

    def add_loader(self, loader: ClassMetadataLoader) -> None:
        self._loaders.append(loader)

    def load(self, class_name: str) -> Optional[ClassMetadata]:
        result = None
        for loader in self._loaders:
            metadata = loader.load(class_name)
            if metadata is None:
                continue
            result = metadata if result is None else merge_class_metadata(result, metadata)
        return result

    def supports_enumeration(self) -> bool:
        return any(loader.supports_enumeration() for loader in self._loaders)

    def enumerate_known_classes(self) -> List[str]:
        class_names = []
        for loader in self._loaders:
            if not loader.supports_enumeration():
                logger.debug(f"Skipping non-enumerable loader {type(loader).__name__}")
                continue
            for class_name in loader.enumerate_known_classes():
                if class_name not in class_names:
                    class_names.append(class_name)
        return class_names
