"""
Class and mapping document discovery utilities.

Consolidates the lookups shared by loaders, the factory and the configuration
layer:
- Resolving a dotted class name to the class object (reflection/annotations)
- Recursively finding mapping documents under a directory (directory loader)
- Locating mapping directories shipped inside importable packages (auto mapping)
"""

import importlib
import logging
from pathlib import Path
from typing import Iterable, List, Optional, Sequence, Type, Union

from .exceptions import ConfigurationError

logger = logging.getLogger(__name__)

MAPPING_EXTENSIONS = ('.yml', '.yaml', '.json')

ClassRef = Union[str, Type]


def class_name_of(class_ref: ClassRef) -> str:
    """
    Return the fully-qualified dotted name of a class reference.

    Args:
        class_ref: Class object or dotted class name

    Returns:
        Dotted name, e.g. ``"app.models.Model"``
    """
    if isinstance(class_ref, type):
        return f"{class_ref.__module__}.{class_ref.__qualname__}"
    return class_ref


def resolve_class(class_name: str) -> Optional[Type]:
    """
    Import the class a dotted name points to.

    The longest importable module prefix is imported, the remaining parts are
    looked up as (possibly nested) attributes.

    Args:
        class_name: Dotted class name, e.g. ``"app.models.Outer.Inner"``

    Returns:
        The class, or None if the name cannot be resolved to a class
    """
    parts = class_name.split('.')
    for split in range(len(parts) - 1, 0, -1):
        module_name = '.'.join(parts[:split])
        try:
            obj = importlib.import_module(module_name)
        except ImportError:
            continue
        except Exception as e:
            # Module exists but fails while executing
            logger.warning(f"Failed to import module {module_name}: {e}")
            return None

        for attr in parts[split:]:
            obj = getattr(obj, attr, None)
            if obj is None:
                break
        if isinstance(obj, type):
            return obj
        break

    logger.debug(f"Could not resolve class {class_name}")
    return None


def discover_mapping_files(
    root: Path,
    extensions: Sequence[str] = MAPPING_EXTENSIONS
) -> List[Path]:
    """
    Recursively discover mapping documents under a directory.

    Args:
        root: Directory to scan
        extensions: File suffixes treated as mapping documents

    Returns:
        Sorted list of document paths (sorted for deterministic merging)
    """
    files = sorted(
        path for path in Path(root).rglob('*')
        if path.is_file() and path.suffix.lower() in extensions
    )
    logger.debug(f"Discovered {len(files)} mapping files under {root}")
    return files


def discover_package_mapping_dirs(
    packages: Iterable[str],
    relative_paths: Iterable[str]
) -> List[Path]:
    """
    Find mapping directories shipped inside importable packages.

    For every package and every relative path, ``<package dir>/<relative path>``
    is returned when it is an existing directory. Packages without such a
    directory are skipped.

    Args:
        packages: Importable package names (e.g. ``"app.models"``)
        relative_paths: Directory names relative to each package directory

    Returns:
        List of existing mapping directories

    Raises:
        ConfigurationError: If a package cannot be imported or is a plain module
    """
    relative_paths = list(relative_paths)
    directories = []

    for package in packages:
        try:
            pkg = importlib.import_module(package)
        except ImportError as e:
            raise ConfigurationError(
                f'The package "{package}" configured for mapping discovery '
                f'cannot be imported: {e}'
            ) from e

        if not hasattr(pkg, '__path__'):
            raise ConfigurationError(
                f'"{package}" configured for mapping discovery is a module, not a package.'
            )

        for pkg_dir in pkg.__path__:
            for relative in relative_paths:
                candidate = Path(pkg_dir) / relative
                if candidate.is_dir():
                    logger.debug(f"Found mapping directory {candidate} in {package}")
                    directories.append(candidate)

    logger.info(f"Discovered {len(directories)} package mapping directories")
    return directories
