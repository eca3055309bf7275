#!/usr/bin/env python3
"""
NOOPDISCOVERY APPLICATION SUITE
-------------------------------
End-to-end discovery over real directory trees: the staged pipeline,
all-or-nothing failure semantics, determinism and reload.
"""

import hashlib

import pytest

from noopdiscovery.core.application import Application, discover
from noopdiscovery.core.config import DiscoveryConfig
from noopdiscovery.core.errors import ComponentError, ResourceError
from noopdiscovery.validator.catalog import load_catalog

SAMPLE_APP = {
    "api/Noopfile": (
        "# API service\n"
        "COMPONENT api service\n"
        "FROM node:20\n"
        "ENV PORT=3000\n"
        "EXPOSE 8080\n"
        "ADD . .\n"
        "ROUTE /api/* GET\n"
        "RESOURCE name=db type=postgresql\n"
    ),
    "worker/Noopfile": (
        "COMPONENT worker task\n"
        "FROM python:3.12\n"
        "CRON */10 * * * *\n"
        "RESOURCE name=db type=postgresql\n"
        "RESOURCE name=jobs type=dynamodb setting=hashKeyName=id setting=hashKeyType=S\n"
    ),
    "web/Noopfile": (
        "COMPONENT web static\n"
        "FROM nginx\n"
        "ADD ./src ./src\n"
        "ROUTE / GET\n"
    ),
    "web/src/index.js": "console.log('hi')\n",
}


def snapshot(app):
    """Field values of the graph, independent of ordering."""
    return {
        "components": {
            name: (c.type.value, c.settings, c.variables, c.dockerfile, c.declaration,
                   sorted(r.name for r in c.resources))
            for name, c in app.components.items()
        },
        "resources": {
            name: (r.type, r.settings, sorted(r.declarations)) for name, r in app.resources.items()
        },
        "routes": sorted((r.pattern, r.method, r.visibility, r.component) for r in app.routes),
    }


def test_end_to_end_single_manifest(make_tree):
    root = make_tree({
        "Noopfile": (
            "COMPONENT api service\n"
            "ENV PORT=3000\n"
            "EXPOSE 8080\n"
            "RESOURCE name=db type=postgresql\n"
        ),
    })
    app = discover(str(root))

    assert list(app.components) == ["api"]
    api = app.components["api"]
    assert api.type.value == "service"
    assert api.settings["port"] == 8080
    assert api.variables == {"PORT": {"default": "3000", "secret": False}}

    assert list(app.resources) == ["db"]
    db = app.resources["db"]
    assert db.type == "postgresql"
    assert db.check(load_catalog()) == []


def test_full_tree(make_tree):
    root = make_tree(SAMPLE_APP)
    app = discover(str(root))

    assert sorted(app.components) == ["api", "web", "worker"]
    assert sorted(app.resources) == ["db", "jobs"]
    assert sorted(app.resources["db"].consumers) == ["api", "worker"]
    assert app.components["worker"].settings["cron"] == "*/10 * * * *"
    assert [(r.pattern, r.component) for r in app.routes] == [("/api/*", "api"), ("/", "web")]
    assert len(app.manifests) == 3
    assert app.warnings == []


def test_application_identity(tmp_path):
    app = Application(str(tmp_path))
    assert app.id == hashlib.sha256(str(tmp_path).encode("utf-8")).hexdigest()[:8]
    assert len(app.id) == 8


def test_repeated_discovery_is_stable(make_tree):
    root = make_tree(SAMPLE_APP)
    app = Application(str(root))
    first = snapshot(app.discover())
    second = snapshot(app.discover())
    assert first == second
    assert snapshot(discover(str(root))) == first


def test_vcs_metadata_is_skipped(make_tree):
    root = make_tree({
        "Noopfile": "COMPONENT api service\n",
        ".git/Noopfile": "COMPONENT hidden service\n",
    })
    assert list(discover(str(root)).components) == ["api"]


def test_resource_type_conflict_fails_discovery(make_tree):
    root = make_tree({
        "a/Noopfile": "COMPONENT a service\nRESOURCE name=db type=postgresql\n",
        "b/Noopfile": "COMPONENT b service\nRESOURCE name=db type=mysql\n",
    })
    with pytest.raises(ResourceError, match="already declared as type"):
        discover(str(root))


def test_failure_keeps_previous_graph(make_tree):
    """A failed discovery never publishes a partial graph."""
    root = make_tree(SAMPLE_APP)
    app = Application(str(root)).discover()
    before = snapshot(app)

    (root / "broken").mkdir()
    (root / "broken" / "Noopfile").write_text("COMPONENT broken static\nEXPOSE 80\n")
    with pytest.raises(ComponentError, match="'EXPOSE' not supported for static"):
        app.discover()

    assert snapshot(app) == before


def test_schema_failure_fails_discovery(make_tree):
    root = make_tree({"Noopfile": "COMPONENT api service\nRESOURCE name=t type=dynamodb setting=hashKeyType=Z\n"})
    with pytest.raises(ResourceError, match="hashKeyName"):
        discover(str(root))


def test_duplicate_component_last_manifest_wins(make_tree, caplog):
    root = make_tree({
        "a/Noopfile": "COMPONENT api service\nEXPOSE 1000\n",
        "b/Noopfile": "COMPONENT api service\nEXPOSE 2000\n",
    })
    app = discover(str(root))
    assert app.components["api"].settings["port"] == 2000
    assert "overwrites" in caplog.text


def test_parse_warnings_are_not_fatal(make_tree):
    root = make_tree({"Noopfile": "COMPONENT api service\nEXPOSE http\n"})
    app = discover(str(root))
    assert app.components["api"].settings["port"] == 80
    assert len(app.warnings) == 1


def test_custom_manifest_name(make_tree):
    root = make_tree({
        "Noopfile": "COMPONENT ignored service\n",
        "svc/Appfile": "COMPONENT api service\n",
    })
    app = discover(str(root), config=DiscoveryConfig(manifest_filename="Appfile", max_workers=1))
    assert list(app.components) == ["api"]


def test_reload_rebuilds_from_scratch(make_tree):
    root = make_tree(SAMPLE_APP)
    app = Application(str(root)).discover()
    (root / "worker" / "Noopfile").unlink()

    app.reload()
    assert sorted(app.components) == ["api", "web"]
    assert sorted(app.resources) == ["db"]
    assert app.resources["db"].consumers == ["api"]


def test_missing_root_raises_os_error(tmp_path):
    with pytest.raises(OSError):
        discover(str(tmp_path / "nope"))
