#!/usr/bin/env python3
"""
NOOPDISCOVERY CONFIG
--------------------
Tunables for a discovery run. Defaults match the Noopfile conventions; the
CLI maps its flags onto a DiscoveryConfig.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Tuple

MANIFEST_FILENAME = "Noopfile"
IGNORE_FILENAMES: Tuple[str, ...] = (".gitignore",)
VCS_DIRECTORIES: Tuple[str, ...] = (".git",)

DEFAULT_CATALOG = Path(__file__).resolve().parent.parent / "validator" / "resource_types.yaml"


def _default_workers() -> int:
    return min(8, (os.cpu_count() or 1) + 4)


@dataclass(frozen=True)
class DiscoveryConfig:
    manifest_filename: str = MANIFEST_FILENAME
    ignore_filenames: Tuple[str, ...] = IGNORE_FILENAMES
    vcs_directories: Tuple[str, ...] = VCS_DIRECTORIES
    max_workers: int = field(default_factory=_default_workers)
    catalog_path: Path = DEFAULT_CATALOG

    def is_manifest(self, path: str) -> bool:
        return os.path.basename(path) == self.manifest_filename

    def is_ignore_file(self, path: str) -> bool:
        return os.path.basename(path) in self.ignore_filenames

    def is_topology_file(self, path: str) -> bool:
        """Manifest and ignore files both shape the graph or its scopes."""
        return self.is_manifest(path) or self.is_ignore_file(path)
