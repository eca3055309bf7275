#!/usr/bin/env python3
"""
Bridges watchdog's Observer to the WatchEngine. Only content events are
forwarded; moves are attributed on both the source and destination path.
"""

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

FORWARDED = ("created", "modified", "deleted", "moved")


class ChangeHandler(FileSystemEventHandler):
    def __init__(self, engine):
        super().__init__()
        self.engine = engine

    def on_any_event(self, event: FileSystemEvent):
        if event.event_type not in FORWARDED:
            return
        self.engine.handle(event.event_type, event.src_path, event.is_directory)
        dest_path = getattr(event, "dest_path", "")
        if event.event_type == "moved" and dest_path:
            self.engine.handle(event.event_type, dest_path, event.is_directory)


def start_observer(engine, root: str) -> Observer:
    observer = Observer()
    observer.schedule(ChangeHandler(engine), root, recursive=True)
    observer.daemon = True
    observer.start()
    return observer
