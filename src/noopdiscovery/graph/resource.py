#!/usr/bin/env python3
"""
NOOPDISCOVERY RESOURCES - Shared Dependencies
---------------------------------------------
A Resource is a named external dependency (bucket, database, table) that
any number of components reference with RESOURCE directives. The first
declaration fixes its type; later declarations of the same name merge into
the same object. Settings are merged and checked against the catalog only
once every contributing directive is known.

Author: NoopDiscovery Team
Date: 2026-10-19
"""

import logging
import threading
from typing import Dict, List, Optional, Tuple, TYPE_CHECKING

from noopdiscovery.core.errors import ResourceError
from noopdiscovery.core.models import Directive
from noopdiscovery.validator.catalog import ResourceCatalog, ResourceType

if TYPE_CHECKING:
    from noopdiscovery.graph.component import Component

logger = logging.getLogger("noopdiscovery.resource")


class Resource:
    def __init__(self, name: str):
        self.name = name
        self.type: Optional[str] = None
        self.settings: Dict[str, str] = {}
        self.directives: List[Directive] = []
        self.consumers: List[str] = []
        # (key, kept value, rejected value, rejecting directive)
        self.conflicts: List[Tuple[str, str, str, Directive]] = []

    @property
    def declarations(self) -> List[str]:
        return [d.location for d in self._ordered_directives()]

    def _ordered_directives(self) -> List[Directive]:
        return sorted(self.directives, key=lambda d: (d.file, d.line_no))

    def merge_settings(self, resource_type: ResourceType):
        """
        Folds every 'setting=key=value' parameter into self.settings in
        source order. The first recorded value of a key wins; a differing
        later value is kept as a conflict and logged.
        """
        self.settings = {}
        self.conflicts = []

        for directive in self._ordered_directives():
            for setting in directive.params.get("setting", []):
                key, sep, value = setting.partition('=')
                if not sep or not key or not value:
                    logger.warning(f"Malformed setting '{setting}' for resource '{self.name}' [{directive.location}]")
                    continue
                if key not in resource_type.settings:
                    logger.warning(f"Ignoring unknown setting '{key}' for {self.type} resource '{self.name}' [{directive.location}]")
                    continue

                current = self.settings.get(key)
                if current is None:
                    self.settings[key] = value
                elif current != value:
                    self.conflicts.append((key, current, value, directive))
                    logger.warning(
                        f"Conflicting value '{value}' for setting '{key}' of resource '{self.name}', "
                        f"keeping '{current}' [{directive.location}]"
                    )

    def check(self, catalog: ResourceCatalog) -> List[ResourceError]:
        """Returns every schema violation; an empty list means valid."""
        if not self.type:
            return [ResourceError(f"Resource '{self.name}' missing type", *self._origin())]

        resource_type = catalog.get(self.type)
        if resource_type is None:
            return [ResourceError(f"Unknown resource type '{self.type}' for resource '{self.name}'", *self._origin())]

        self.merge_settings(resource_type)

        errors = []
        for spec in resource_type.settings.values():
            value = self.settings.get(spec.name)
            if spec.required and value is None:
                errors.append(ResourceError(
                    f"Missing required resource setting '{spec.name}' for resource '{self.name}'", *self._origin()
                ))
            elif value is not None and not spec.accepts(value):
                errors.append(ResourceError(
                    f"Invalid resource setting value '{value}' for '{spec.name}' of resource '{self.name}' "
                    f"(expected one of {', '.join(spec.enum)})", *self._origin()
                ))
        return errors

    def validate(self, catalog: ResourceCatalog) -> "Resource":
        errors = self.check(catalog)
        if errors:
            raise errors[0]
        return self

    def _origin(self) -> Tuple[Optional[str], Optional[int]]:
        ordered = self._ordered_directives()
        if not ordered:
            return None, None
        return ordered[0].file, ordered[0].line_no

    def __repr__(self) -> str:
        return f"Resource(name={self.name!r}, type={self.type!r})"


class ResourceRegistry:
    """Name-keyed resources shared by every component of one discovery run."""

    def __init__(self):
        self._resources: Dict[str, Resource] = {}
        self._lock = threading.Lock()

    def register(self, component: "Component", directive: Directive) -> Resource:
        name = directive.params.get("name")
        declared_type = directive.params.get("type")
        if not name:
            raise ResourceError("RESOURCE requires 'name=<name>'", directive.file, directive.line_no)

        with self._lock:
            resource = self._resources.get(name)
            if resource is None:
                resource = Resource(name)
                self._resources[name] = resource
                logger.debug(f"Declared resource '{name}' [{directive.location}]")

            if directive not in resource.directives:
                resource.directives.append(directive)
            if component.name not in resource.consumers:
                resource.consumers.append(component.name)
                resource.consumers.sort()

            if declared_type:
                if resource.type is None:
                    resource.type = declared_type
                elif resource.type != declared_type:
                    raise ResourceError(
                        f"Resource '{name}' already declared as type '{resource.type}'",
                        directive.file, directive.line_no,
                    )
        return resource

    def resources(self) -> Dict[str, Resource]:
        with self._lock:
            return dict(self._resources)
