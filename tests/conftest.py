"""Pytest configuration and fixtures for class_metadata tests."""

import sys
import textwrap
from pathlib import Path
from types import SimpleNamespace

import pytest
import yaml

from class_metadata.loader import ClassMetadataLoader

MODELS_PACKAGE = "cm_models"

MODELS_SOURCE = '''
from dataclasses import dataclass
from typing import Annotated

from class_metadata import Property


class Model:
    __xml_root__ = 'model'

    foo: Annotated[int, Property(alias='bar')]
    baz: str


class Child(Model):
    qux: Annotated[str, Property(groups=['child'])]


@dataclass
class Point:
    x: int
    y: int
    _hidden: int = 0


class Slotted:
    __slots__ = ('a', 'b')


class Plain:
    pass


class Outer:
    class Inner:
        value: int
'''


class StaticLoader(ClassMetadataLoader):
    """Loader answering from fixed records, optionally enumerable."""

    def __init__(self, *records, enumerable=False):
        self.records = {record.name: record for record in records}
        self.enumerable = enumerable
        self.calls = []

    def load(self, class_name):
        self.calls.append(class_name)
        return self.records.get(class_name)

    def supports_enumeration(self):
        return self.enumerable

    def enumerate_known_classes(self):
        return list(self.records) if self.enumerable else []


def write_mapping(path: Path, document: dict) -> Path:
    """Write a YAML mapping document, creating parent directories."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(yaml.safe_dump(document, sort_keys=False))
    return path


@pytest.fixture(autouse=True)
def reset_models_modules():
    """
    Drop the temporary models package from sys.modules after each test.

    This prevents one test's package layout from leaking into another test.
    """
    yield
    to_remove = [key for key in sys.modules if key.startswith(MODELS_PACKAGE)]
    for key in to_remove:
        del sys.modules[key]


@pytest.fixture
def static_loader():
    return StaticLoader


@pytest.fixture
def models_package(tmp_path, monkeypatch):
    """
    Create an importable package with model classes and a mapping directory.

    Returns a namespace with the package directory, the mapping directory and
    the dotted names of the model classes.
    """
    root = tmp_path / "site"
    pkg_dir = root / MODELS_PACKAGE
    pkg_dir.mkdir(parents=True)
    (pkg_dir / "__init__.py").write_text("")
    (pkg_dir / "models.py").write_text(textwrap.dedent(MODELS_SOURCE))

    mapping_dir = pkg_dir / "serializer_mapping"
    write_mapping(mapping_dir / "model.yml", {
        'class': f"{MODELS_PACKAGE}.models.Model",
        'properties': {
            'foo': {
                'readable': False,
                'writable': False,
                'since': '1.0.0',
                'until': '2.0.0',
                'groups': ['bar'],
                'type': 'int',
            },
        },
    })

    monkeypatch.syspath_prepend(str(root))

    return SimpleNamespace(
        root=root,
        package=MODELS_PACKAGE,
        package_dir=pkg_dir,
        mapping_dir=mapping_dir,
        model=f"{MODELS_PACKAGE}.models.Model",
        child=f"{MODELS_PACKAGE}.models.Child",
        point=f"{MODELS_PACKAGE}.models.Point",
        slotted=f"{MODELS_PACKAGE}.models.Slotted",
        plain=f"{MODELS_PACKAGE}.models.Plain",
        inner=f"{MODELS_PACKAGE}.models.Outer.Inner",
    )
