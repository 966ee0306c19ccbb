"""
Mapping document loaders.

A mapping document is a YAML or JSON file declaring the metadata of exactly
one class:

    class: app.models.Model
    xml_root: model
    properties:
      foo:
        alias: bar
        since: 1.0.0
        groups: [public]

Documents are validated against ``MAPPING_SCHEMA`` with jsonschema. Both
loaders here know the classes they can answer for and are therefore used by
the cache warmer.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import jsonschema
import yaml

from .discovery import MAPPING_EXTENSIONS, discover_mapping_files
from .exceptions import ConfigurationError, InvalidArgumentError
from .exclusion import parse_version
from .loader import ClassMetadataLoader
from .metadata import ClassMetadata, merge_class_metadata

logger = logging.getLogger(__name__)

_VERSION = {"type": ["string", "number"]}
_BOOLEAN = {"type": "boolean"}
_STRING = {"type": "string"}

MAPPING_SCHEMA: Dict[str, Any] = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "type": "object",
    "required": ["class"],
    "additionalProperties": False,
    "properties": {
        "class": {"type": "string", "minLength": 1},
        "xml_root": _STRING,
        "properties": {
            "type": ["object", "null"],
            "additionalProperties": {
                "type": ["object", "null"],
                "additionalProperties": False,
                "properties": {
                    "alias": _STRING,
                    "type": _STRING,
                    "readable": _BOOLEAN,
                    "writable": _BOOLEAN,
                    "accessor": _STRING,
                    "mutator": _STRING,
                    "since": _VERSION,
                    "until": _VERSION,
                    "max_depth": {"type": "integer", "minimum": 0},
                    "groups": {"type": "array", "items": _STRING, "uniqueItems": True},
                    "xml_attribute": _BOOLEAN,
                    "xml_inline": _BOOLEAN,
                    "xml_value": _BOOLEAN,
                    "xml_entry": _STRING,
                    "xml_entry_attribute": _STRING,
                    "xml_key_as_attribute": _BOOLEAN,
                    "xml_key_as_node": _BOOLEAN,
                },
            },
        },
    },
}

PathLike = Union[str, Path]


def _read_document(path: Path) -> Any:
    try:
        with open(path, 'r', encoding='utf-8') as f:
            if path.suffix.lower() == '.json':
                return json.load(f)
            return yaml.safe_load(f)
    except (OSError, json.JSONDecodeError, yaml.YAMLError) as e:
        raise ConfigurationError(f'Unable to parse the mapping file "{path}": {e}') from e


def parse_mapping_file(path: PathLike) -> ClassMetadata:
    """
    Parse and validate one mapping document.

    Args:
        path: Path to a ``.yml``, ``.yaml`` or ``.json`` document

    Returns:
        ClassMetadata declared by the document

    Raises:
        ConfigurationError: If the document cannot be read, parsed or validated
    """
    path = Path(path)
    document = _read_document(path)

    try:
        jsonschema.validate(document, MAPPING_SCHEMA)
    except jsonschema.ValidationError as e:
        location = '/'.join(str(part) for part in e.absolute_path) or '<root>'
        raise ConfigurationError(
            f'Invalid mapping file "{path}" at {location}: {e.message}'
        ) from e

    # YAML reads "1.0" as a float; versions are kept as strings
    for name, prop in (document.get('properties') or {}).items():
        for bound in ('since', 'until'):
            if prop and bound in prop:
                prop[bound] = str(prop[bound])
                try:
                    parse_version(prop[bound])
                except InvalidArgumentError as e:
                    raise ConfigurationError(
                        f'Invalid mapping file "{path}" at properties/{name}/{bound}: {e}'
                    ) from e

    return ClassMetadata.from_dict(document)


def _check_exists(path: Path) -> None:
    if not path.exists():
        raise ConfigurationError(f'The path "{path}" does not exist.')


class FileClassMetadataLoader(ClassMetadataLoader):
    """Loader backed by a single mapping document."""

    def __init__(self, path: PathLike):
        """
        Args:
            path: Mapping document path

        Raises:
            ConfigurationError: If the path does not exist or is not a mapping document
        """
        self.path = Path(path)
        _check_exists(self.path)
        if not self.path.is_file() or self.path.suffix.lower() not in MAPPING_EXTENSIONS:
            raise ConfigurationError(
                f'The path "{self.path}" is not a mapping file '
                f'({", ".join(MAPPING_EXTENSIONS)}).'
            )
        self._metadata: Optional[ClassMetadata] = None

    def _get_metadata(self) -> ClassMetadata:
        if self._metadata is None:
            self._metadata = parse_mapping_file(self.path)
            logger.debug(f"Parsed mapping file {self.path} for {self._metadata.name}")
        return self._metadata

    def load(self, class_name: str) -> Optional[ClassMetadata]:
        metadata = self._get_metadata()
        return metadata if metadata.name == class_name else None

    def supports_enumeration(self) -> bool:
        return True

    def enumerate_known_classes(self) -> List[str]:
        return [self._get_metadata().name]


class DirectoryClassMetadataLoader(ClassMetadataLoader):
    """
    Loader backed by every mapping document found under one or more directories.

    Documents are indexed by the class they declare. When several documents
    declare the same class they are merged in path order, first one wins.
    """

    def __init__(self, *directories: PathLike):
        """
        Args:
            directories: Root directories scanned recursively

        Raises:
            ConfigurationError: If a directory does not exist
        """
        if not directories:
            raise ConfigurationError("A directory loader needs at least one directory.")

        self.directories = [Path(directory) for directory in directories]
        for directory in self.directories:
            _check_exists(directory)
            if not directory.is_dir():
                raise ConfigurationError(f'The path "{directory}" is not a directory.')
        self._index: Optional[Dict[str, ClassMetadata]] = None

    def _get_index(self) -> Dict[str, ClassMetadata]:
        if self._index is None:
            index: Dict[str, ClassMetadata] = {}
            for directory in self.directories:
                for path in discover_mapping_files(directory):
                    metadata = parse_mapping_file(path)
                    if metadata.name in index:
                        logger.debug(f"Merging duplicate mapping for {metadata.name} from {path}")
                        metadata = merge_class_metadata(index[metadata.name], metadata)
                    index[metadata.name] = metadata
            logger.info(
                f"Indexed {len(index)} mapped classes under "
                f"{', '.join(str(d) for d in self.directories)}"
            )
            self._index = index
        return self._index

    def load(self, class_name: str) -> Optional[ClassMetadata]:
        return self._get_index().get(class_name)

    def supports_enumeration(self) -> bool:
        return True

    def enumerate_known_classes(self) -> List[str]:
        return list(self._get_index())
