#!/usr/bin/env python3
"""
NOOPDISCOVERY ERRORS - Failure Taxonomy
---------------------------------------
Every failure raised while discovering an application derives from
DiscoveryError. Only ParseError is non-fatal: the parser collects it as a
warning and keeps going. Filesystem errors are never wrapped.

Author: NoopDiscovery Team
Date: 2026-10-19
"""

from typing import Optional


class DiscoveryError(Exception):
    """Base error carrying the manifest location that triggered it."""

    def __init__(self, message: str, file: Optional[str] = None, line_no: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.file = file
        self.line_no = line_no

    @property
    def location(self) -> Optional[str]:
        if self.file is None:
            return None
        if self.line_no is None:
            return self.file
        return f"{self.file}:{self.line_no}"

    def __str__(self) -> str:
        if self.location:
            return f"{self.message} [{self.location}]"
        return self.message


class ParseError(DiscoveryError):
    """Malformed or unrecognized directive line. Tolerated as a warning."""


class ComponentError(DiscoveryError):
    """Directive not legal for the component type, or a broken COMPONENT header."""


class RouteError(ComponentError):
    """ROUTE directive that cannot be registered."""


class ResourceError(DiscoveryError):
    """Missing or conflicting resource type, or a settings schema violation."""


class CatalogError(DiscoveryError):
    """The resource type catalog itself is unreadable or malformed."""
