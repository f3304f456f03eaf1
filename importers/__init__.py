"""
Importers - one plugin per importable resource type.

Each module registers a ResourceImporter subclass under the resource type
name used on the command line, e.g. ``sceptre_import.py iam-role NAME``.
"""

import importlib
import logging
from typing import Callable, Dict, List, Type

from silib.errors import UnknownResourceTypeError
from silib.importer import ResourceImporter

logger = logging.getLogger(__name__)

IMPORTER_MODULES = [
    "iam_role",
    "s3_bucket",
    "security_group",
    "redshift_cluster",
    "lambda_function",
]

IMPORTERS: Dict[str, Type[ResourceImporter]] = {}


def register(name: str) -> Callable[[Type[ResourceImporter]], Type[ResourceImporter]]:
    """Class decorator adding an importer to the registry."""
    def decorator(cls: Type[ResourceImporter]) -> Type[ResourceImporter]:
        cls.resource_type_name = name
        IMPORTERS[name] = cls
        return cls
    return decorator


def load_importers() -> Dict[str, Type[ResourceImporter]]:
    """Import every bundled importer module so they register themselves."""
    for module in IMPORTER_MODULES:
        importlib.import_module(f"{__name__}.{module}")
    return IMPORTERS


def available_types() -> List[str]:
    return sorted(load_importers())


def get_importer(name: str) -> Type[ResourceImporter]:
    """
    Look up the importer class for a resource type.

    Raises:
        UnknownResourceTypeError: nothing is registered under name
    """
    importers = load_importers()
    if name not in importers:
        raise UnknownResourceTypeError(
            f"Unknown resource type {name!r}. Available: {', '.join(sorted(importers))}"
        )
    return importers[name]


__all__ = [
    "IMPORTERS",
    "IMPORTER_MODULES",
    "available_types",
    "get_importer",
    "load_importers",
    "register",
]
