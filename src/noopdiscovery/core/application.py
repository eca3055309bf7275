#!/usr/bin/env python3
"""
NOOPDISCOVERY APPLICATION - The High Orchestrator
-------------------------------------------------
The Application owns the complete graph of one application root:
components, resources, routes, manifests and the two watch-scope tables.

discover() runs a fixed, stage-barriered pipeline:

    scan -> parse manifests (+ read ignore files) -> validate components
         -> validate resources -> build scopes -> (start watch engine)

Items inside a stage fan out over a thread pool; a stage starts only once
the previous one has finished. The first failure in fan-out order aborts
the call. The new graph is published atomically at the very end, so
callers see either the previous complete graph or the new one.

Author: NoopDiscovery Team
Date: 2026-10-19
"""

import hashlib
import logging
import os
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, Iterator, List, Optional, Tuple, TypeVar

from noopdiscovery.core.config import DiscoveryConfig
from noopdiscovery.core.errors import ParseError
from noopdiscovery.graph.component import Component
from noopdiscovery.graph.resource import Resource, ResourceRegistry
from noopdiscovery.graph.route import Route, RouteRegistry
from noopdiscovery.parsing.manifest import Manifest
from noopdiscovery.parsing.scanner import DirectoryScanner
from noopdiscovery.validator.catalog import load_catalog
from noopdiscovery.watch.engine import ChangeEvent, WatchEngine
from noopdiscovery.watch.scopes import IgnoreScopeTable, WatchScopeTable

logger = logging.getLogger("noopdiscovery.application")

T = TypeVar("T")
R = TypeVar("R")


@dataclass(frozen=True)
class ApplicationGraph:
    """An immutable snapshot produced by one successful discovery."""
    components: Dict[str, Component] = field(default_factory=dict)
    resources: Dict[str, Resource] = field(default_factory=dict)
    routes: Tuple[Route, ...] = ()
    manifests: Tuple[Manifest, ...] = ()
    ignore_scopes: IgnoreScopeTable = field(default_factory=IgnoreScopeTable)
    watch_scopes: WatchScopeTable = field(default_factory=WatchScopeTable)


class Application:
    """
    Aggregate root for one application directory.
    Multiple instances share no mutable state.
    """

    def __init__(self, root_path: str, watch: bool = False, config: Optional[DiscoveryConfig] = None):
        self.root_path = os.path.abspath(root_path)
        self.id = hashlib.sha256(self.root_path.encode("utf-8")).hexdigest()[:8]
        self.watch = watch
        self.config = config or DiscoveryConfig()
        self.graph = ApplicationGraph()
        self.watcher: Optional[WatchEngine] = None
        self._lock = threading.Lock()

    # --- GRAPH ACCESS ---

    @property
    def components(self) -> Dict[str, Component]:
        return self.graph.components

    @property
    def resources(self) -> Dict[str, Resource]:
        return self.graph.resources

    @property
    def routes(self) -> Tuple[Route, ...]:
        return self.graph.routes

    @property
    def manifests(self) -> Tuple[Manifest, ...]:
        return self.graph.manifests

    @property
    def ignore_scopes(self) -> IgnoreScopeTable:
        return self.graph.ignore_scopes

    @property
    def watch_scopes(self) -> WatchScopeTable:
        return self.graph.watch_scopes

    @property
    def warnings(self) -> List[ParseError]:
        return [w for manifest in self.manifests for w in manifest.warnings]

    # --- PIPELINE ---

    def discover(self) -> "Application":
        """Builds and publishes a fresh graph; starts watching if requested."""
        if self.watcher is not None and not self.watcher.closed:
            raise RuntimeError("Application is already being watched; use reload()")

        graph = self._build_graph()

        watcher = None
        if self.watch:
            watcher = WatchEngine(self.root_path, self.config, graph.ignore_scopes, graph.watch_scopes)
            watcher.start()

        with self._lock:
            self.graph = graph
            self.watcher = watcher

        logger.info(
            f"Discovered {len(graph.components)} components, {len(graph.resources)} resources "
            f"and {len(graph.routes)} routes in {self.root_path}"
        )
        return self

    def reload(self) -> "Application":
        """Discards the whole graph and every scope table, then discovers again."""
        self.close()
        with self._lock:
            self.graph = ApplicationGraph()
            self.watcher = None
        return self.discover()

    def close(self):
        """Stops the watch subscription, if any, and waits for it to shut down."""
        watcher = self.watcher
        if watcher is not None:
            watcher.stop()

    def _stage(self, pool: ThreadPoolExecutor, fn: Callable[[T], R], items: Iterable[T]) -> List[R]:
        # map() re-raises the first failure in submission order
        return list(pool.map(fn, items))

    def _build_graph(self) -> ApplicationGraph:
        # Phase 1: File discovery
        scan = DirectoryScanner(self.config).scan(self.root_path, include_ignore_files=self.watch)
        logger.debug(f"Found {len(scan.manifest_files)} manifests, {len(scan.ignore_files)} ignore files")

        catalog = load_catalog(self.config.catalog_path)
        resource_registry = ResourceRegistry()
        route_registry = RouteRegistry()

        with ThreadPoolExecutor(max_workers=max(1, self.config.max_workers)) as pool:
            # Phase 2: Parse manifests and read ignore files
            manifests = self._stage(pool, Manifest.from_file, sorted(scan.manifest_files))
            ignore_scopes = IgnoreScopeTable()
            for path in sorted(scan.ignore_files):
                ignore_scopes.add_file(path)

            components = self._merge_components(manifests)

            # Phase 3: Component validation (routes and resources register here)
            self._stage(pool, lambda c: c.validate(resource_registry, route_registry), list(components.values()))

            # Phase 4: Resource validation, after every contribution merged
            resources = resource_registry.resources()
            self._stage(pool, lambda r: r.validate(catalog), list(resources.values()))

        # Phase 5: Watch scopes
        watch_scopes = WatchScopeTable()
        if self.watch:
            for component in components.values():
                watch_scopes.add_component(component)

        return ApplicationGraph(
            components=components,
            resources=resources,
            routes=tuple(route_registry.routes()),
            manifests=tuple(manifests),
            ignore_scopes=ignore_scopes,
            watch_scopes=watch_scopes,
        )

    def _merge_components(self, manifests: List[Manifest]) -> Dict[str, Component]:
        """Later manifests (in path order) overwrite same-named components."""
        components: Dict[str, Component] = {}
        for manifest in manifests:
            for component in manifest.components:
                previous = components.get(component.name)
                if previous is not None:
                    logger.warning(
                        f"Component '{component.name}' at {component.declaration} "
                        f"overwrites the one declared at {previous.declaration}"
                    )
                components[component.name] = component
        return components

    # --- EVENT CHANNEL ---

    def next_event(self, timeout: Optional[float] = None) -> Optional[ChangeEvent]:
        if self.watcher is None:
            raise RuntimeError("Application is not being watched")
        return self.watcher.get(timeout=timeout)

    def events(self) -> Iterator[ChangeEvent]:
        if self.watcher is None:
            raise RuntimeError("Application is not being watched")
        return iter(self.watcher)

    def __enter__(self) -> "Application":
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def __repr__(self) -> str:
        return f"Application(id={self.id!r}, root_path={self.root_path!r})"


def discover(root: str, watch: bool = False, config: Optional[DiscoveryConfig] = None) -> Application:
    """Entry point: a fully validated Application, or the first failure raised."""
    return Application(root, watch=watch, config=config).discover()
