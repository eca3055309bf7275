#!/usr/bin/env python3
"""
NOOPDISCOVERY COMPONENT SUITE
-----------------------------
Component grouping, default settings, directive legality per type and
build-text generation.
"""

import pytest

from noopdiscovery.core.errors import ComponentError
from noopdiscovery.core.models import Command
from noopdiscovery.graph.component import ALLOWED_DIRECTIVES, DEFAULT_SETTINGS, ComponentType
from noopdiscovery.graph.resource import ResourceRegistry
from noopdiscovery.graph.route import RouteRegistry
from noopdiscovery.parsing.manifest import Manifest

PATH = "/app/api/Noopfile"

# One legal sample line for every directive a component type may use
SAMPLE_LINES = {
    Command.ROUTE: "ROUTE /api GET",
    Command.RESOURCE: "RESOURCE name=bucket type=s3",
    Command.ENV: "ENV PORT=3000",
    Command.SPECIAL: "SPECIAL",
    Command.EXPOSE: "EXPOSE 8080",
    Command.FROM: "FROM node:20",
    Command.COPY: "COPY . .",
    Command.ADD: "ADD ./src ./src",
    Command.RUN: "RUN npm install",
    Command.WORKDIR: "WORKDIR /app",
    Command.ENTRYPOINT: "ENTRYPOINT node",
    Command.CMD: "CMD index.js",
    Command.USER: "USER node",
    Command.CPU: "CPU 0.5",
    Command.MEMORY: "MEMORY 256",
    Command.LIFECYCLE: "LIFECYCLE migrate",
    Command.CRON: "CRON 0 * * * *",
    Command.ASSETS: "ASSETS dist",
    Command.STATIC: "STATIC public",
    Command.TEST: "TEST npm test",
}


def build(text: str, path: str = PATH):
    return Manifest.from_text(text, path).components


def validate(component):
    return component.validate(ResourceRegistry(), RouteRegistry())


@pytest.mark.parametrize("component_type", list(ComponentType))
def test_every_allowed_directive_validates(component_type):
    """A component using only its type's directives validates."""
    lines = [f"COMPONENT sample {component_type.value}"]
    lines += [SAMPLE_LINES[c] for c in sorted(ALLOWED_DIRECTIVES[component_type], key=lambda c: c.value)]
    component, = build("\n".join(lines))

    validate(component)
    assert component.type is component_type


@pytest.mark.parametrize("component_type", list(ComponentType))
def test_one_disallowed_directive_fails(component_type):
    """Adding a single directive outside the allowed set fails and names it."""
    disallowed = sorted(
        (c for c in SAMPLE_LINES if c not in ALLOWED_DIRECTIVES[component_type]),
        key=lambda c: c.value,
    )
    for command in disallowed:
        text = f"COMPONENT sample {component_type.value}\nFROM alpine\n{SAMPLE_LINES[command]}"
        component, = build(text)
        with pytest.raises(ComponentError) as exc:
            validate(component)
        assert f"Directive '{command.value}' not supported for {component_type.value}" in str(exc.value)
        assert exc.value.line_no == 3
        assert str(exc.value).endswith(f"[{PATH}:3]")


def test_unknown_directive_fails_validation():
    component, = build("COMPONENT api service\nHEALTHCHECK /ping")
    with pytest.raises(ComponentError, match="HEALTHCHECK"):
        validate(component)


@pytest.mark.parametrize("component_type, expected", [
    ("service", {"port": 80, "cpu": 0.1, "memory": 128}),
    ("task", {"cpu": 0.1, "memory": 128}),
    ("static", {}),
])
def test_default_settings(component_type, expected):
    component, = build(f"COMPONENT bare {component_type}")
    validate(component)
    assert component.settings == expected


def test_settings_side_effects():
    component, = build(
        "COMPONENT worker task\n"
        "LIFECYCLE migrate\n"
        "LIFECYCLE seed\n"
        "LIFECYCLE migrate\n"
        "CRON 0 3 * * *\n"
        "CPU 1.5\n"
        "MEMORY 1024\n"
    )
    validate(component)
    assert component.settings == {
        "cpu": 1.5,
        "memory": 1024,
        "lifecycles": ["migrate", "seed", "migrate"],
        "cron": "0 3 * * *",
    }


def test_variables_and_port():
    component, = build("COMPONENT api service\nENV PORT=3000\nENV TOKEN SECRET\nEXPOSE 8080")
    validate(component)
    assert component.settings["port"] == 8080
    assert component.variables == {
        "PORT": {"default": "3000", "secret": False},
        "TOKEN": {"default": None, "secret": True},
    }


def test_validate_is_idempotent():
    component, = build("COMPONENT worker task\nLIFECYCLE migrate\nENV A=1\nRESOURCE name=q type=s3")
    resources, routes = ResourceRegistry(), RouteRegistry()
    component.validate(resources, routes)
    first = (dict(component.settings), dict(component.variables))
    component.validate(resources, routes)

    assert (component.settings, component.variables) == first
    assert component.settings["lifecycles"] == ["migrate"]
    assert len(resources.resources()["q"].directives) == 1


def test_multiple_components_per_manifest():
    components = build(
        "FROM orphan\n"
        "COMPONENT api service\n"
        "EXPOSE 3000\n"
        "COMPONENT site static\n"
        "ASSETS dist\n"
    )
    assert [c.name for c in components] == ["api", "site"]
    assert [d.command for d in components[0].directives] == ["COMPONENT", "EXPOSE"]
    assert components[1].declaration == f"{PATH}:4"
    assert components[0].root_path == "/app/api"


def test_orphan_directives_are_warned():
    manifest = Manifest.from_text("FROM orphan\nCOMPONENT api service", PATH)
    assert len(manifest.warnings) == 1
    assert "precedes any COMPONENT" in manifest.warnings[0].message


@pytest.mark.parametrize("header, message", [
    ("COMPONENT api database", "Unknown component type 'database'"),
    ("COMPONENT api", "requires a name and a type"),
])
def test_broken_component_header(header, message):
    with pytest.raises(ComponentError, match=message):
        build(header)


def test_dockerfile_generation():
    component, = build(
        "COMPONENT api service\n"
        "FROM node:20\n"
        "ENV PORT=3000\n"
        "EXPOSE 3000\n"
        "COPY  package.json  .\n"
        "RUN npm install\n"
        "ROUTE /api\n"
        "CMD node index.js\n"
    )
    assert component.dockerfile == (
        "FROM node:20\n"
        "ENV PORT=3000\n"
        "COPY  package.json  .\n"
        "RUN npm install\n"
        "CMD node index.js\n"
    )


def test_test_directive_rewritten_to_cmd():
    component, = build("COMPONENT suite task\nFROM node\nTEST npm test\nTEST")
    assert component.dockerfile == "FROM node\nCMD npm test\n"


def test_routes_registered_with_owner():
    component, = build("COMPONENT api service\nROUTE /api/* GET\nROUTE -i /internal")
    routes = RouteRegistry()
    component.validate(ResourceRegistry(), routes)

    assert [(r.pattern, r.method, r.visibility, r.component) for r in routes.routes()] == [
        ("/api/*", "GET", "public", "api"),
        ("/internal", "*", "internal", "api"),
    ]
    assert component.routes[1].internal
    assert not component.routes[1].private


def test_every_type_declares_directives_and_defaults():
    assert set(ALLOWED_DIRECTIVES) == set(ComponentType) == set(DEFAULT_SETTINGS)
