#!/usr/bin/env python3
"""
NOOPDISCOVERY COMPONENT - The Builder
-------------------------------------
A Component is one deployable unit (service, task or static site) declared
by a COMPONENT directive and every directive up to the next one. The
builder derives settings and variables from that directive slice, checks
that every directive is legal for the component type, then hands ROUTE and
RESOURCE directives to their registries.

Author: NoopDiscovery Team
Date: 2026-10-19
"""

import logging
import re
from enum import Enum
from typing import Any, Dict, FrozenSet, List, Sequence, TYPE_CHECKING

from noopdiscovery.core.errors import ComponentError
from noopdiscovery.core.models import PASSTHROUGH_COMMANDS, Command, Directive

if TYPE_CHECKING:
    from noopdiscovery.graph.resource import Resource, ResourceRegistry
    from noopdiscovery.graph.route import Route, RouteRegistry

logger = logging.getLogger("noopdiscovery.component")

_TEST_FORM = re.compile(r'^TEST\s+\S')


class ComponentType(str, Enum):
    SERVICE = "service"
    TASK = "task"
    STATIC = "static"

    @property
    def allowed_directives(self) -> FrozenSet[Command]:
        return ALLOWED_DIRECTIVES[self]

    def default_settings(self) -> Dict[str, Any]:
        return dict(DEFAULT_SETTINGS[self])


ALLOWED_DIRECTIVES: Dict[ComponentType, FrozenSet[Command]] = {
    ComponentType.SERVICE: frozenset({
        Command.ROUTE, Command.RESOURCE, Command.ENV, Command.SPECIAL, Command.EXPOSE,
        Command.FROM, Command.COPY, Command.ADD, Command.RUN, Command.WORKDIR,
        Command.ENTRYPOINT, Command.CMD, Command.USER, Command.CPU, Command.MEMORY,
    }),
    ComponentType.TASK: frozenset({
        Command.LIFECYCLE, Command.CRON, Command.RESOURCE, Command.ENV,
        Command.FROM, Command.COPY, Command.ADD, Command.RUN, Command.WORKDIR,
        Command.ENTRYPOINT, Command.CMD, Command.USER, Command.CPU, Command.MEMORY,
    }),
    ComponentType.STATIC: frozenset({
        Command.ROUTE, Command.FROM, Command.COPY, Command.ADD, Command.RUN,
        Command.WORKDIR, Command.ENTRYPOINT, Command.USER, Command.ASSETS,
    }),
}

DEFAULT_SETTINGS: Dict[ComponentType, Dict[str, Any]] = {
    ComponentType.SERVICE: {"port": 80, "cpu": 0.1, "memory": 128},
    ComponentType.TASK: {"cpu": 0.1, "memory": 128},
    ComponentType.STATIC: {},
}


def generate_dockerfile(directives: Sequence[Directive]) -> str:
    """Concatenates passthrough directives into Dockerfile text."""
    lines = []
    for directive in directives:
        command = Command.lookup(directive.command)
        if command is Command.TEST:
            if _TEST_FORM.match(directive.raw):
                lines.append("CMD" + directive.raw[len("TEST"):])
        elif command in PASSTHROUGH_COMMANDS:
            lines.append(directive.raw)
    return "".join(line + "\n" for line in lines)


class Component:
    """
    One deployable unit and everything derived from its directive slice.
    Derived state is rebuilt from scratch by every validate() call.
    """

    def __init__(self, directives: Sequence[Directive], root_path: str):
        if not directives or directives[0].command != Command.COMPONENT.value:
            raise ComponentError("Component block must start with a COMPONENT directive")

        header = directives[0]
        name = header.params.get("name")
        type_name = header.params.get("type")
        if not name or not type_name:
            raise ComponentError("COMPONENT requires a name and a type", header.file, header.line_no)
        try:
            self.type = ComponentType(type_name)
        except ValueError:
            raise ComponentError(f"Unknown component type '{type_name}'", header.file, header.line_no)

        self.name: str = name
        self.directives: List[Directive] = list(directives)
        self.root_path = root_path
        self.dockerfile = generate_dockerfile(self.directives)
        self._reset()

    def _reset(self):
        self.settings: Dict[str, Any] = self.type.default_settings()
        self.variables: Dict[str, Dict[str, Any]] = {}
        self.routes: List["Route"] = []
        self.resources: List["Resource"] = []

    @property
    def declaration(self) -> str:
        return self.directives[0].location

    def directives_for(self, command: Command) -> List[Directive]:
        return [d for d in self.directives if d.command == command.value]

    def validate(self, resources: "ResourceRegistry", routes: "RouteRegistry") -> "Component":
        """
        Derives variables and settings, enforces directive legality and
        registers routes and resources. Raises on the first failure.
        """
        self._reset()

        # 1. Variables
        for directive in self.directives_for(Command.ENV):
            if "key" in directive.params:
                self.variables[directive.params["key"]] = {
                    "default": directive.params.get("default"),
                    "secret": directive.params.get("secret", False),
                }

        # 2. Settings side effects
        for directive in self.directives:
            self._apply_setting(directive)

        # 3. Legality
        for directive in self.directives:
            command = Command.lookup(directive.command)
            if command is Command.COMPONENT:
                continue
            if command is None or command not in self.type.allowed_directives:
                raise ComponentError(
                    f"Directive '{directive.command}' not supported for {self.type.value} components",
                    directive.file, directive.line_no,
                )

        # 4. Routes and resources
        self.routes = [routes.register(self, d) for d in self.directives_for(Command.ROUTE)]
        self.resources = [resources.register(self, d) for d in self.directives_for(Command.RESOURCE)]
        logger.debug(f"Validated {self.type.value} component '{self.name}' ({self.declaration})")
        return self

    def _apply_setting(self, directive: Directive):
        command = Command.lookup(directive.command)
        params = directive.params

        if command is Command.EXPOSE and "port" in params:
            self.settings["port"] = params["port"]
        elif command is Command.LIFECYCLE and "lifecycle" in params:
            self.settings.setdefault("lifecycles", []).append(params["lifecycle"])
        elif command is Command.CRON and "schedule" in params:
            self.settings["cron"] = params["schedule"]
        elif command is Command.CPU and "units" in params:
            self.settings["cpu"] = params["units"]
        elif command is Command.MEMORY and "units" in params:
            self.settings["memory"] = params["units"]
        elif command is Command.STATIC and "content_directory" in params:
            self.settings["content_directory"] = params["content_directory"]

    def __repr__(self) -> str:
        return f"Component(name={self.name!r}, type={self.type.value!r}, declaration={self.declaration!r})"


