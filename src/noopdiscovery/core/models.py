#!/usr/bin/env python3
"""
NOOPDISCOVERY CORE MODELS
-------------------------
Defines the fundamental data structures shared across the discovery engine.
These models represent the lowest level of manifest abstraction, plus the
typed events emitted by the watch engine.

Author: NoopDiscovery Team
Date: 2026-10-19
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Tuple


class Command(str, Enum):
    """The closed directive vocabulary of a manifest."""
    COMPONENT = "COMPONENT"
    FROM = "FROM"
    RUN = "RUN"
    COPY = "COPY"
    ADD = "ADD"
    ENTRYPOINT = "ENTRYPOINT"
    CMD = "CMD"
    WORKDIR = "WORKDIR"
    USER = "USER"
    ENV = "ENV"
    EXPOSE = "EXPOSE"
    LIFECYCLE = "LIFECYCLE"
    CRON = "CRON"
    CPU = "CPU"
    MEMORY = "MEMORY"
    ROUTE = "ROUTE"
    RESOURCE = "RESOURCE"
    STATIC = "STATIC"
    ASSETS = "ASSETS"
    TEST = "TEST"
    SPECIAL = "SPECIAL"

    @classmethod
    def lookup(cls, token: str) -> Optional["Command"]:
        """Case-sensitive lookup; 'run' is not RUN."""
        try:
            return cls(token)
        except ValueError:
            return None


# Commands whose raw text is copied into the component build text
PASSTHROUGH_COMMANDS = frozenset({
    Command.FROM, Command.RUN, Command.COPY, Command.ADD, Command.ENTRYPOINT,
    Command.CMD, Command.WORKDIR, Command.USER, Command.ENV, Command.TEST,
})


@dataclass(frozen=True)
class Directive:
    """
    The atomic unit of a manifest.

    A Directive represents one non-blank, non-comment line of a manifest,
    split into its command token and arguments, plus whatever named
    parameters the command-specific rules could derive.
    """
    command: str                     # Command token exactly as written (may be unknown)
    args: Tuple[str, ...] = ()       # Positional arguments after the command
    params: Dict[str, Any] = field(default_factory=dict, hash=False, compare=True)
    raw: str = ""                    # Trimmed source text, used verbatim in build text
    file: str = ""                   # Absolute path of the declaring manifest
    line_no: int = 0                 # 1-based line number in that manifest

    @property
    def location(self) -> str:
        return f"{self.file}:{self.line_no}"

    @property
    def known(self) -> bool:
        return Command.lookup(self.command) is not None


@dataclass(frozen=True)
class ManifestChange:
    """A manifest or ignore file changed; the graph topology may be stale."""
    path: str


@dataclass(frozen=True)
class ComponentChange:
    """A file inside one component's declared inputs changed."""
    component: str
    path: str
