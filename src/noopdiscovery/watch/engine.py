#!/usr/bin/env python3
"""
NOOPDISCOVERY WATCH ENGINE - Change Attribution
-----------------------------------------------
Maps raw filesystem events onto the application graph:

1. A change to a manifest or ignore file is reported as ManifestChange;
   the caller must re-discover because the topology may have changed.
2. Anything else is dropped if it lies in VCS metadata or is excluded by
   the ignore scopes, then tested against every watch scope rooted above
   it. Each owning component gets one ComponentChange.

Events are pushed onto a queue the caller consumes. stop() closes the
channel with a None sentinel.

Author: NoopDiscovery Team
Date: 2026-10-19
"""

import logging
import os
import queue
import threading
from typing import Dict, Iterator, List, Optional, Union

from noopdiscovery.core.config import DiscoveryConfig
from noopdiscovery.core.models import ComponentChange, ManifestChange
from noopdiscovery.watch.scopes import IgnoreScopeTable, WatchScopeTable, contains
from noopdiscovery.watch.observer import start_observer

logger = logging.getLogger("noopdiscovery.watch")

ChangeEvent = Union[ManifestChange, ComponentChange]


class WatchEngine:
    """
    Attributes events for one Application. Each event is fully attributed
    and emitted before the next one is processed.
    """

    def __init__(self, root: str, config: DiscoveryConfig,
                 ignore_scopes: IgnoreScopeTable, watch_scopes: WatchScopeTable):
        self.root = os.path.normpath(root)
        self.config = config
        self.ignore_scopes = ignore_scopes
        self.watch_scopes = watch_scopes
        self.channel: "queue.Queue[Optional[ChangeEvent]]" = queue.Queue()
        self._entry_counts: Dict[str, int] = {}
        self._lock = threading.Lock()
        self._observer = None
        self._closed = False

    # --- ATTRIBUTION ---

    def attribute(self, path: str, is_dir: bool = False) -> List[ChangeEvent]:
        """Pure attribution of one path against the scope tables."""
        path = os.path.normpath(path)

        if self.config.is_topology_file(path):
            return [ManifestChange(path)]

        if not contains(self.root, path):
            logger.debug(f"Dropping event outside root: {path}")
            return []

        rel_parts = os.path.relpath(path, self.root).split(os.sep)
        if any(part in self.config.vcs_directories for part in rel_parts):
            return []

        if self.ignore_scopes.is_excluded(path, is_dir):
            logger.debug(f"Ignored by scope: {path}")
            return []

        owners = sorted({component for component, _ in self.watch_scopes.matches(path, is_dir)})
        if not owners:
            logger.debug(f"No component owns {path}")
        return [ComponentChange(component, path) for component in owners]

    def _directory_changed(self, path: str) -> bool:
        """
        Coalesces directory touches: unchanged immediate entry count since
        the last observation means nothing worth reporting happened. A
        directory that can no longer be read is evicted and always reported.
        """
        try:
            with os.scandir(path) as entries:
                count = sum(1 for _ in entries)
        except OSError:
            self._entry_counts.pop(path, None)
            return True

        previous = self._entry_counts.get(path)
        self._entry_counts[path] = count
        return previous != count

    def handle(self, event_kind: str, path: str, is_dir: bool = False) -> List[ChangeEvent]:
        """Processes one raw event and emits its attribution onto the channel."""
        with self._lock:
            if self._closed:
                return []
            path = os.path.normpath(path)
            events = self.attribute(path, is_dir)
            # Only directories some component still watches are coalesced
            if is_dir and events and isinstance(events[0], ComponentChange) and not self._directory_changed(path):
                logger.debug(f"Coalesced directory {event_kind}: {path}")
                return []

            for event in events:
                logger.info(f"{event_kind}: {event}")
                self.channel.put(event)
            return events

    # --- SUBSCRIPTION ---

    def start(self):
        """Starts the live filesystem subscription. One-shot."""
        if self._observer is not None or self._closed:
            raise RuntimeError("Watch engine already started; reload the application to restart it")
        self._observer = start_observer(self, self.root)
        logger.info(f"Watching {self.root}")

    def stop(self):
        """Closes the subscription and blocks until the observer thread exits."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
        if self._observer is not None:
            self._observer.stop()
            self._observer.join()
            self._observer = None
        self.channel.put(None)
        logger.info(f"Stopped watching {self.root}")

    @property
    def closed(self) -> bool:
        return self._closed

    def get(self, timeout: Optional[float] = None) -> Optional[ChangeEvent]:
        """Next event, or None once closed. Raises queue.Empty on timeout."""
        event = self.channel.get(timeout=timeout)
        if event is None:
            # Keep the sentinel for any other consumer
            self.channel.put(None)
        return event

    def __iter__(self) -> Iterator[ChangeEvent]:
        while True:
            event = self.get()
            if event is None:
                return
            yield event
