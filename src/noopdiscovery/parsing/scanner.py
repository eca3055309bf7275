#!/usr/bin/env python3
"""
NOOPDISCOVERY SCANNER - The Archeologist
----------------------------------------
Enumerates candidate files under an application root: manifests and, in
watch mode, ignore files. Version-control metadata directories are pruned
and symlinked directories are not followed. Enumeration errors propagate.

Author: NoopDiscovery Team
Date: 2026-10-19
"""

import os
from dataclasses import dataclass, field
from typing import List

from noopdiscovery.core.config import DiscoveryConfig


def _raise(error: OSError):
    raise error


@dataclass
class ScanResult:
    manifest_files: List[str] = field(default_factory=list)
    ignore_files: List[str] = field(default_factory=list)


class DirectoryScanner:
    """Walks a root directory and classifies the files the engine cares about."""

    def __init__(self, config: DiscoveryConfig):
        self.config = config

    def scan(self, root: str, include_ignore_files: bool = False) -> ScanResult:
        result = ScanResult()

        for dirpath, dirnames, filenames in os.walk(root, onerror=_raise):
            # Prune in place so os.walk never descends into VCS metadata
            dirnames[:] = sorted(d for d in dirnames if d not in self.config.vcs_directories)

            for name in sorted(filenames):
                full_path = os.path.join(dirpath, name)
                if self.config.is_manifest(full_path):
                    result.manifest_files.append(full_path)
                elif include_ignore_files and self.config.is_ignore_file(full_path):
                    result.ignore_files.append(full_path)

        return result
