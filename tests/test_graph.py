"""Tests for the module-graph walker."""

import asyncio

import pytest

from cdnresolve.graph import GraphWalker

UNPKG = "https://unpkg.com"
APP = f"{UNPKG}/app@1.0.0"


@pytest.fixture
def app_cdn(transport):
    """A small package graph with a cycle, a dependency and a CSS import."""
    transport.add_json(
        f"{UNPKG}/app@latest/package.json",
        {"name": "app", "version": "1.0.0", "main": "index.js", "dependencies": {"dep": "^2.0.0"}},
    )
    transport.add(
        f"{APP}/index.js",
        "import { x } from './util.js';\nimport dep from 'dep';\nimport './style.css';\n"
        "const w = new URL('./worker.js', import.meta.url);\n",
    )
    transport.add(f"{APP}/util.js", "import './index.js';\nexport const x = 1;\n")
    transport.add(f"{APP}/style.css", "@import './ignored.css';\n")
    transport.add(f"{APP}/worker.js", "self.onmessage = () => {};")
    transport.add_json(f"{UNPKG}/dep@^2.0.0/package.json", {"name": "dep", "version": "2.1.0", "module": "esm/index.js"})
    transport.add(f"{UNPKG}/dep@2.1.0/esm/index.js", "export default 1;\nrequire('node:fs');\n")
    return transport


class TestGraphWalker:
    """Tests for walking, deduplication and error collection."""

    def test_walks_whole_graph_once_per_url(self, app_cdn, make_resolver):
        """Every reachable module is recorded and loaded exactly once."""
        graph = asyncio.run(GraphWalker(make_resolver()).walk(["app"]))

        assert graph.entries == {"app": f"{APP}/index.js"}
        assert set(graph.modules) == {
            f"{APP}/index.js",
            f"{APP}/util.js",
            f"{APP}/style.css",
            f"{UNPKG}/dep@2.1.0/esm/index.js",
            "node:fs",
        }
        assert graph.errors == []
        loads = [url for url, headers_only in app_cdn.calls if url == f"{APP}/index.js" and not headers_only]
        assert len(loads) == 1

    def test_records_edges_and_metadata(self, app_cdn, make_resolver):
        """Edges point at resolved URLs; cycles are edges, not reloads."""
        graph = asyncio.run(GraphWalker(make_resolver()).walk(["app"]))

        index = graph.modules[f"{APP}/index.js"]
        assert index.imports == {
            "./util.js": f"{APP}/util.js",
            "dep": f"{UNPKG}/dep@2.1.0/esm/index.js",
            "./style.css": f"{APP}/style.css",
        }
        assert index.package == "app"
        assert index.loader == "js"
        assert graph.modules[f"{APP}/util.js"].imports == {"./index.js": f"{APP}/index.js"}
        assert graph.modules[f"{APP}/style.css"].loader == "css"
        assert graph.modules[f"{APP}/style.css"].imports == {}
        assert graph.modules["node:fs"].external is True
        assert [a.path for a in graph.assets] == ["./worker.js"]

    def test_errors_are_collected_and_walk_continues(self, app_cdn, make_resolver):
        """An unresolvable entry is reported while the others complete."""
        graph = asyncio.run(GraphWalker(make_resolver(), max_concurrency=2).walk(["missing-pkg", "app"]))

        assert [e.specifier for e in graph.errors] == ["missing-pkg"]
        assert f"{APP}/index.js" in graph.modules
        assert len(graph.warnings) == 2

    def test_missing_relative_import_is_an_error(self, transport, make_resolver):
        """A relative import with no file behind it is reported with its importer."""
        transport.add_json(f"{UNPKG}/solo@1.0.0/package.json", {"name": "solo", "version": "1.0.0", "main": "i.js"})
        transport.add(f"{UNPKG}/solo@1.0.0/i.js", "import './gone.js';")

        graph = asyncio.run(GraphWalker(make_resolver()).walk(["solo@1.0.0"]))

        assert len(graph.errors) == 1
        assert graph.errors[0].specifier == "./gone.js"
        assert graph.errors[0].importer == f"{UNPKG}/solo@1.0.0/i.js"

    def test_to_dict(self, app_cdn, make_resolver):
        """The graph serializes to plain data."""
        data = asyncio.run(GraphWalker(make_resolver()).walk(["app"])).to_dict()
        assert data["entries"] == {"app": f"{APP}/index.js"}
        assert {m["url"] for m in data["modules"]} >= {f"{APP}/index.js"}
        assert data["assets"][0]["url"] == f"{APP}/worker.js"
        assert data["errors"] == []

    def test_cancel_cancels_pending_loads(self, app_cdn, make_resolver):
        """Cancelling a walk cancels the in-flight tasks; blocked loads store nothing."""
        blocked_url = f"{APP}/util.js"
        stub_get = app_cdn.get
        blocked = []

        async def scenario():
            gate = asyncio.Event()
            entered = asyncio.Event()

            async def gated_get(url, **kwargs):
                if url == blocked_url:
                    blocked.append(asyncio.current_task())
                    entered.set()
                    await gate.wait()
                return await stub_get(url, **kwargs)

            app_cdn.get = gated_get
            resolver = make_resolver()
            walk = asyncio.ensure_future(GraphWalker(resolver).walk(["app"]))
            await entered.wait()
            walk.cancel()
            with pytest.raises(asyncio.CancelledError):
                await walk
            return resolver

        resolver = asyncio.run(scenario())

        assert len(blocked) == 1
        assert blocked[0].cancelled()
        assert resolver.store.get(f"http:{blocked_url}") is None
        assert resolver.store.get(f"http:{APP}/index.js") is not None
