"""
Class and property metadata records.

A ClassMetadata describes the serializable shape of one class: its optional
XML root name and an ordered mapping of PropertyMetadata. Records are frozen;
loaders build them, the chain loader folds them together and the factory
hands them out.

Every optional field of PropertyMetadata uses ``None`` for "unset". The merge
helpers rely on that: when two records describe the same property, only the
fields still unset in the first one are filled from the second.
"""

from dataclasses import dataclass, field, fields, replace
from types import MappingProxyType
from typing import Any, Dict, FrozenSet, Mapping, Optional

# XML styling precedence used by visitors when several flags are set
XML_STYLES = ('attribute', 'value', 'inline')


@dataclass(frozen=True)
class PropertyMetadata:
    """
    Serialization rules for a single property.

    Attributes:
        name: In-memory property name
        alias: External name used on the wire (defaults to ``name``)
        type: Declared type hint used when deserializing
        readable: Whether the property is serialized (unset means True)
        writable: Whether the property is deserialized (unset means True)
        accessor: Method name used to read the value
        mutator: Method name used to write the value
        since: First version the property is exposed in
        until: Last version the property is exposed in
        max_depth: Traversal depth after which the property is excluded
        groups: Group labels; empty or unset means the default group
        xml_attribute: Serialize as an XML attribute
        xml_inline: Inline collection items into the parent node
        xml_value: Serialize as the text value of the parent node
        xml_entry: Element name of collection items
        xml_entry_attribute: Attribute name holding collection keys
        xml_key_as_attribute: Map keys as attributes (None inherits)
        xml_key_as_node: Map keys as node names (None inherits)
    """
    name: str
    alias: Optional[str] = None
    type: Optional[str] = None
    readable: Optional[bool] = None
    writable: Optional[bool] = None
    accessor: Optional[str] = None
    mutator: Optional[str] = None
    since: Optional[str] = None
    until: Optional[str] = None
    max_depth: Optional[int] = None
    groups: Optional[FrozenSet[str]] = None
    xml_attribute: Optional[bool] = None
    xml_inline: Optional[bool] = None
    xml_value: Optional[bool] = None
    xml_entry: Optional[str] = None
    xml_entry_attribute: Optional[str] = None
    xml_key_as_attribute: Optional[bool] = None
    xml_key_as_node: Optional[bool] = None

    def __post_init__(self):
        if self.groups is not None and not isinstance(self.groups, frozenset):
            object.__setattr__(self, 'groups', frozenset(self.groups))

    @property
    def serialized_name(self) -> str:
        return self.alias if self.alias is not None else self.name

    def is_readable(self) -> bool:
        return self.readable is not False

    def is_writable(self) -> bool:
        return self.writable is not False

    def xml_style(self) -> Optional[str]:
        """Return the XML style that wins: attribute, then value, then inline."""
        for style in XML_STYLES:
            if getattr(self, f'xml_{style}'):
                return style
        return None

    def to_dict(self) -> Dict[str, Any]:
        """Serialize the set fields to a JSON-compatible dict (without name)."""
        data = {}
        for f in fields(self):
            if f.name == 'name':
                continue
            value = getattr(self, f.name)
            if value is None:
                continue
            data[f.name] = sorted(value) if f.name == 'groups' else value
        return data

    @classmethod
    def from_dict(cls, name: str, data: Mapping[str, Any]) -> 'PropertyMetadata':
        """
        Build a property from the dict produced by ``to_dict``.

        Raises:
            ValueError: If ``data`` holds keys that are not property fields
        """
        known = {f.name for f in fields(cls)} - {'name'}
        unknown = set(data) - known
        if unknown:
            raise ValueError(
                f"Unknown metadata fields for property '{name}': {sorted(unknown)}"
            )
        return cls(name=name, **data)


@dataclass(frozen=True)
class ClassMetadata:
    """
    Resolved serialization rules for one class.

    ``properties`` is exposed read-only and keeps insertion order, which is
    the field order used on the wire.
    """
    name: str
    xml_root: Optional[str] = None
    properties: Mapping[str, PropertyMetadata] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, 'properties', MappingProxyType(dict(self.properties)))

    def has_property(self, name: str) -> bool:
        return name in self.properties

    def get_property(self, name: str) -> Optional[PropertyMetadata]:
        return self.properties.get(name)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to the mapping document shape."""
        data: Dict[str, Any] = {'class': self.name}
        if self.xml_root is not None:
            data['xml_root'] = self.xml_root
        data['properties'] = {
            name: prop.to_dict() for name, prop in self.properties.items()
        }
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'ClassMetadata':
        """Rebuild a record from the dict produced by ``to_dict``."""
        properties = {
            name: PropertyMetadata.from_dict(name, prop_data or {})
            for name, prop_data in (data.get('properties') or {}).items()
        }
        return cls(name=data['class'], xml_root=data.get('xml_root'), properties=properties)


def merge_property_metadata(
    base: PropertyMetadata,
    other: PropertyMetadata
) -> PropertyMetadata:
    """
    Fill the unset fields of ``base`` from ``other``.

    Fields already set on ``base`` are never replaced.
    """
    updates = {}
    for f in fields(PropertyMetadata):
        if f.name == 'name':
            continue
        if getattr(base, f.name) is None:
            value = getattr(other, f.name)
            if value is not None:
                updates[f.name] = value
    return replace(base, **updates) if updates else base


def merge_class_metadata(base: ClassMetadata, other: ClassMetadata) -> ClassMetadata:
    """
    Merge ``other`` into ``base`` and return a new record.

    Properties missing from ``base`` are appended in ``other``'s order;
    properties present in both are merged field by field. ``xml_root`` keeps
    the first value set.
    """
    properties = dict(base.properties)
    for name, prop in other.properties.items():
        if name in properties:
            properties[name] = merge_property_metadata(properties[name], prop)
        else:
            properties[name] = prop

    xml_root = base.xml_root if base.xml_root is not None else other.xml_root
    return ClassMetadata(name=base.name, xml_root=xml_root, properties=properties)
