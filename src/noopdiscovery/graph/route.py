#!/usr/bin/env python3
"""
NOOPDISCOVERY ROUTES
--------------------
HTTP routes declared by ROUTE directives. Each route belongs to exactly one
component; the registry keeps them in registration order.
"""

import threading
from dataclasses import dataclass
from typing import List, Optional, TYPE_CHECKING

from noopdiscovery.core.errors import RouteError
from noopdiscovery.core.models import Directive

if TYPE_CHECKING:
    from noopdiscovery.graph.component import Component

VISIBILITIES = ("public", "internal", "private")


@dataclass(frozen=True)
class Route:
    pattern: str
    method: str
    visibility: str
    component: str                    # Owning component name
    directive: Directive
    condition: Optional[str] = None

    @property
    def internal(self) -> bool:
        return self.visibility != "public"

    @property
    def private(self) -> bool:
        return self.visibility == "private"


class RouteRegistry:
    """Collects routes across all components of one discovery run."""

    def __init__(self):
        self._routes: List[Route] = []
        self._lock = threading.Lock()

    def register(self, component: "Component", directive: Directive) -> Route:
        params = directive.params
        if not params.get("pattern"):
            raise RouteError("ROUTE requires a path pattern", directive.file, directive.line_no)
        if params.get("visibility", "public") not in VISIBILITIES:
            raise RouteError(f"Unknown route visibility '{params['visibility']}'", directive.file, directive.line_no)

        route = Route(
            pattern=params["pattern"],
            method=params.get("method", "*"),
            visibility=params.get("visibility", "public"),
            condition=params.get("condition"),
            component=component.name,
            directive=directive,
        )
        with self._lock:
            # Re-validating a component must not register its routes twice
            for existing in self._routes:
                if existing.directive == directive and existing.component == route.component:
                    return existing
            self._routes.append(route)
        return route

    def routes(self) -> List[Route]:
        """Routes in source order (file, then line)."""
        with self._lock:
            return sorted(self._routes, key=lambda r: (r.directive.file, r.directive.line_no))
