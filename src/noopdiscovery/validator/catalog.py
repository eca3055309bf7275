#!/usr/bin/env python3
"""
NOOPDISCOVERY CATALOG - The Rulebook
------------------------------------
Loads the resource type catalog (a YAML file bundled with the package) and
exposes, per resource type, which settings are required and which values
an enum-constrained setting accepts.

Author: NoopDiscovery Team
Date: 2026-10-19
"""

import logging
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

from ruamel.yaml import YAML
from ruamel.yaml.error import YAMLError

from noopdiscovery.core.config import DEFAULT_CATALOG
from noopdiscovery.core.errors import CatalogError

logger = logging.getLogger("noopdiscovery.catalog")


@dataclass(frozen=True)
class SettingSpec:
    name: str
    required: bool = False
    enum: Optional[Tuple[str, ...]] = None

    def accepts(self, value: str) -> bool:
        return self.enum is None or value in self.enum


@dataclass(frozen=True)
class ResourceType:
    name: str
    family: str
    settings: Dict[str, SettingSpec] = field(default_factory=dict, hash=False)


class ResourceCatalog:
    """The set of resource types a manifest may reference."""

    def __init__(self, types: Dict[str, ResourceType]):
        self.types = types

    def get(self, type_name: str) -> Optional[ResourceType]:
        return self.types.get(type_name)

    @classmethod
    def load(cls, path: Path) -> "ResourceCatalog":
        """Reads and structurally checks a catalog file."""
        yaml = YAML(typ='safe')
        try:
            with open(path, 'r', encoding='utf-8') as f:
                raw = yaml.load(f)
        except (OSError, YAMLError) as e:
            logger.error(f"Unable to load resource catalog from {path}")
            raise CatalogError(f"Failed to load resource catalog: {e}", str(path))

        if not isinstance(raw, dict):
            raise CatalogError("Resource catalog must be a mapping of type names", str(path))

        types = {}
        for type_name, body in raw.items():
            types[str(type_name)] = cls._parse_type(str(type_name), body or {}, path)
        logger.debug(f"Loaded {len(types)} resource types from {path}")
        return cls(types)

    @staticmethod
    def _parse_type(type_name: str, body: Any, path: Path) -> ResourceType:
        if not isinstance(body, dict):
            raise CatalogError(f"Resource type '{type_name}' must be a mapping", str(path))

        settings = {}
        for setting_name, spec in (body.get("settings") or {}).items():
            spec = spec or {}
            if not isinstance(spec, dict):
                raise CatalogError(f"Setting '{type_name}.{setting_name}' must be a mapping", str(path))
            enum = spec.get("enum")
            if enum is not None and not isinstance(enum, list):
                raise CatalogError(f"Setting '{type_name}.{setting_name}' enum must be a list", str(path))
            settings[setting_name] = SettingSpec(
                name=setting_name,
                required=bool(spec.get("required", False)),
                enum=tuple(str(v) for v in enum) if enum is not None else None,
            )
        return ResourceType(name=type_name, family=str(body.get("family", type_name)), settings=settings)


@lru_cache(maxsize=8)
def load_catalog(path: Path = DEFAULT_CATALOG) -> ResourceCatalog:
    """Cached catalog loader; catalogs are read-only once loaded."""
    return ResourceCatalog.load(Path(path))
