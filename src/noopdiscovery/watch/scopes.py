#!/usr/bin/env python3
"""
NOOPDISCOVERY SCOPES - Layered Pattern Tables
---------------------------------------------
Two directory-rooted pattern tables drive change attribution:

* the ignore-scope table holds the exclusion patterns of every ignore file,
  keyed by the directory the file lives in;
* the watch-scope table holds, per directory and per component, the
  inclusion patterns derived from ADD/COPY source arguments.

Pattern matching itself is delegated to pathspec's gitwildmatch patterns.
Paths are tested relative to the scope directory, and within one scope
the last matching pattern decides (so '!pattern' re-includes).

Author: NoopDiscovery Team
Date: 2026-10-19
"""

import logging
import os
from typing import Dict, Iterable, Iterator, List, Optional, Tuple

from pathspec import PathSpec

from noopdiscovery.core.errors import ParseError
from noopdiscovery.core.models import Command
from noopdiscovery.graph.component import Component

logger = logging.getLogger("noopdiscovery.watch")


def contains(directory: str, path: str) -> bool:
    """True when path is directory itself or lies beneath it."""
    if path == directory:
        return True
    prefix = directory if directory.endswith(os.sep) else directory + os.sep
    return path.startswith(prefix)


def relative(directory: str, path: str, is_dir: bool = False) -> str:
    rel = os.path.relpath(path, directory).replace(os.sep, "/")
    if rel == ".":
        rel = ""
    return rel + "/" if is_dir and rel else rel


class PatternScope:
    """An ordered gitignore-style pattern list rooted at one directory."""

    def __init__(self, directory: str, lines: Iterable[str] = (), blanket: bool = False):
        self.directory = directory
        self.lines: List[str] = []
        self.blanket = blanket
        self._spec = PathSpec.from_lines("gitwildmatch", [])
        self.extend(lines)

    def extend(self, lines: Iterable[str]):
        cleaned = [line.rstrip("\n") for line in lines]
        self.lines.extend(line for line in cleaned if line.strip() and not line.lstrip().startswith("#"))
        self._spec = PathSpec.from_lines("gitwildmatch", self.lines)

    def evaluate(self, rel_path: str) -> Optional[bool]:
        """
        Returns the verdict of the last pattern matching rel_path:
        True if it is a plain pattern, False if negated, None if nothing matched.
        """
        if self.blanket:
            return True
        verdict = None
        for pattern in self._spec.patterns:
            if pattern.include is None:
                continue
            if pattern.match_file(rel_path) is not None:
                verdict = pattern.include
        return verdict

    def __repr__(self) -> str:
        return f"PatternScope(directory={self.directory!r}, blanket={self.blanket}, lines={self.lines!r})"


class IgnoreScopeTable:
    """directory -> exclusion patterns merged from the ignore files there."""

    def __init__(self):
        self.scopes: Dict[str, PatternScope] = {}

    def add(self, directory: str, lines: Iterable[str]):
        directory = os.path.normpath(directory)
        scope = self.scopes.get(directory)
        if scope is None:
            self.scopes[directory] = PatternScope(directory, lines)
        else:
            scope.extend(lines)

    def add_file(self, path: str):
        """Reads an ignore file. OS errors propagate to the caller."""
        try:
            with open(path, 'r', encoding='utf-8-sig') as f:
                lines = f.read().splitlines()
        except UnicodeDecodeError as e:
            raise ParseError(f"Ignore file is not valid UTF-8 (byte {e.start}: {e.reason})", path)
        self.add(os.path.dirname(path), lines)
        logger.debug(f"Loaded ignore scope {path} ({len(lines)} lines)")

    def _layers(self, path: str) -> List[PatternScope]:
        """Scopes covering path, shallowest first so deeper files override."""
        covering = [s for d, s in self.scopes.items() if contains(d, path) and d != path]
        return sorted(covering, key=lambda s: len(s.directory))

    def _verdict(self, layers: List[PatternScope], path: str, is_dir: bool) -> bool:
        verdict = False
        for scope in layers:
            if not contains(scope.directory, path) or scope.directory == path:
                continue
            result = scope.evaluate(relative(scope.directory, path, is_dir))
            if result is not None:
                verdict = result
        return verdict

    def is_excluded(self, path: str, is_dir: bool = False) -> bool:
        """
        gitignore semantics across nested ignore files: a path is excluded
        when it, or any directory between the scope roots and it, is
        excluded by the deepest matching pattern.
        """
        path = os.path.normpath(path)
        layers = self._layers(path)
        if not layers:
            return False

        # An excluded parent directory cannot have its contents re-included
        top = layers[0].directory
        parent = os.path.dirname(path)
        ancestors = []
        while parent != top and contains(top, parent):
            ancestors.append(parent)
            parent = os.path.dirname(parent)
        for ancestor in reversed(ancestors):
            if self._verdict(layers, ancestor, True):
                return True

        return self._verdict(layers, path, is_dir)

    def __len__(self) -> int:
        return len(self.scopes)


class WatchScopeTable:
    """directory -> {component name -> inclusion patterns}."""

    def __init__(self):
        self.scopes: Dict[str, Dict[str, PatternScope]] = {}

    def _scope(self, directory: str, component: str) -> PatternScope:
        per_component = self.scopes.setdefault(directory, {})
        if component not in per_component:
            per_component[component] = PatternScope(directory)
        return per_component[component]

    def add_source(self, component: str, root: str, source: str):
        """Anchors one ADD/COPY source argument to a scope directory."""
        if "://" in source:
            return
        root = os.path.normpath(root)
        resolved = os.path.normpath(os.path.join(root, source.lstrip("/")))

        if resolved == root:
            self._scope(root, component).blanket = True
        elif contains(root, resolved):
            self._scope(root, component).extend(["/" + relative(root, resolved)])
        else:
            # Sources outside the component directory get their own scope
            parent = os.path.dirname(resolved)
            self._scope(parent, component).extend(["/" + os.path.basename(resolved)])

    def add_component(self, component: Component):
        for directive in component.directives:
            if directive.command not in (Command.ADD.value, Command.COPY.value):
                continue
            # --from copies out of another build stage, not the local tree
            if any(arg.startswith("--from") for arg in directive.args):
                continue
            for source in directive.params.get("sources", []):
                self.add_source(component.name, component.root_path, source)

    def matches(self, path: str, is_dir: bool = False) -> Iterator[Tuple[str, PatternScope]]:
        """Yields (component, scope) for every scope whose patterns include path."""
        path = os.path.normpath(path)
        for directory, per_component in self.scopes.items():
            if not contains(directory, path):
                continue
            rel = relative(directory, path, is_dir)
            for component, scope in per_component.items():
                if scope.blanket or (rel and scope.evaluate(rel)):
                    yield component, scope

    def components(self) -> List[str]:
        return sorted({c for per_component in self.scopes.values() for c in per_component})

    def __len__(self) -> int:
        return len(self.scopes)
