"""Tests for manifest interpretation: exports maps, legacy fields, versions."""

import pytest

from cdnresolve.errors import ManifestParseError
from cdnresolve.manifest.exports import ExportsError, conditions_for, legacy, resolve
from cdnresolve.manifest.model import Manifest, deep_assign
from cdnresolve.manifest.resolver import (
    merge_peer_dependencies,
    resolve_legacy,
    resolve_manifest,
    resolve_modern,
    scope_manifest,
    select_version,
)
from cdnresolve.models import PackageCoordinate


def _m(**data):
    return Manifest.from_dict(data)


class TestManifestModel:
    """Tests for the manifest record."""

    def test_from_json_rejects_non_objects(self):
        """Only a JSON object is a manifest."""
        with pytest.raises(ManifestParseError):
            Manifest.from_json("[1, 2]")
        with pytest.raises(ManifestParseError):
            Manifest.from_json("<html>")

    def test_typed_fields(self):
        """Malformed fields read as absent instead of raising."""
        manifest = Manifest.from_json(
            '{"name": "x", "version": 1, "sideEffects": ["*.css"], "dependencies": {"a": "1", "b": 2}}'
        )
        assert manifest.name == "x"
        assert manifest.version is None
        assert manifest.side_effects is None
        assert manifest.dependencies == {"a": "1"}

    def test_deep_assign_merges_nested(self):
        """Nested maps merge key by key; None sources are skipped."""
        target = {"dependencies": {"a": "1"}, "name": "x"}
        deep_assign(target, None, {"dependencies": {"b": "2"}, "name": "y"})
        assert target == {"dependencies": {"a": "1", "b": "2"}, "name": "y"}

    def test_merged_does_not_mutate(self):
        """merged() returns a new manifest."""
        base = _m(name="x", dependencies={"a": "1"})
        merged = base.merged({"dependencies": {"a": "2"}})
        assert base.dependencies == {"a": "1"}
        assert merged.dependencies == {"a": "2"}


class TestExportsMap:
    """Tests for conditional exports/imports walking."""

    def test_condition_order_follows_map_keys(self):
        """The first key present in the active set wins, in map order."""
        manifest = _m(name="pkg", exports={".": {"require": "./cjs.js", "import": "./esm.js"}})
        assert resolve(manifest, ".", conditions_for(browser=True)) == ["./esm.js"]
        assert resolve(manifest, ".", conditions_for(require=True)) == ["./cjs.js"]

    def test_nested_conditions(self):
        """Condition objects nest."""
        manifest = _m(
            name="pkg",
            exports={".": {"browser": {"import": "./browser.mjs"}, "default": "./node.js"}},
        )
        assert resolve(manifest, ".", conditions_for(browser=True)) == ["./browser.mjs"]
        assert resolve(manifest, ".", conditions_for()) == ["./node.js"]

    def test_star_pattern(self):
        """./* patterns substitute the matched segment."""
        manifest = _m(name="pkg", exports={"./features/*": "./dist/features/*.js"})
        assert resolve(manifest, "./features/a", conditions_for()) == ["./dist/features/a.js"]

    def test_directory_pattern(self):
        """./dir/ keys map a whole directory."""
        manifest = _m(name="pkg", exports={"./lib/": "./dist/lib/"})
        assert resolve(manifest, "./lib/x.js", conditions_for()) == ["./dist/lib/x.js"]

    def test_sugar_forms(self):
        """A string or a condition object alone stands for the root entry."""
        assert resolve(_m(name="a", exports="./a.js"), ".") == ["./a.js"]
        assert resolve(_m(name="b", exports={"import": "./b.mjs"}), ".") == ["./b.mjs"]

    def test_missing_entry_raises(self):
        """An entry not in the map is an error."""
        with pytest.raises(ExportsError):
            resolve(_m(name="pkg", exports={".": "./i.js"}), "./nope")

    def test_imports_map(self):
        """#subpaths go through imports."""
        manifest = _m(name="pkg", imports={"#dep": {"browser": "./dep-browser.js", "default": "./dep.js"}})
        assert resolve(manifest, "#dep", conditions_for(browser=True)) == ["./dep-browser.js"]

    def test_no_map_resolves_to_none(self):
        """No exports map is not an error, just no answer."""
        assert resolve(_m(name="pkg", main="index.js"), ".") is None


class TestLegacyFields:
    """Tests for module/main/browser fallbacks."""

    def test_browser_string_wins(self):
        """A browser string beats module and main."""
        manifest = _m(name="p", browser="b.js", module="m.js", main="c.js")
        assert legacy(manifest, browser=True) == "./b.js"
        assert legacy(manifest) == "./m.js"

    def test_all_falsy_browser_map_disables_browser(self):
        """A browser map of only false values falls back to the plain fields."""
        manifest = _m(name="p", browser={"./node.js": False}, main="index.js")
        assert resolve_legacy(manifest) == "./index.js"

    def test_browser_map_prefers_esm_keys(self):
        """cjs and src/ keys lose to other entries in a browser map."""
        manifest = _m(
            name="p",
            browser={"./index.cjs": "./a.cjs", "./src/x.js": "./b.js", "./index.js": "./c.js"},
        )
        assert resolve_legacy(manifest) == "./c.js"

    def test_unpkg_then_bin(self):
        """unpkg and bin are last resorts."""
        assert resolve_legacy(_m(name="p", unpkg="dist/p.umd.js")) == "./dist/p.umd.js"
        assert resolve_legacy(_m(name="p", bin="cli.js")) == "./cli.js"
        assert resolve_legacy(_m(name="p", bin={"p": "cli.js"})) is None


class TestResolveManifest:
    """Tests for the full strategy order."""

    def test_browser_strategy_first(self):
        """The browser+module condition set is tried before the others."""
        manifest = _m(
            name="p",
            exports={".": {"worker": "./worker.js", "module": "./module.js", "default": "./d.js"}},
        )
        assert resolve_modern(manifest, ".") == "./module.js"

    def test_unsafe_strategy_after_browser(self):
        """deno/worker/production conditions are used when browser misses."""
        manifest = _m(name="p", exports={".": {"worker": "./worker.js"}})
        assert resolve_modern(manifest, ".") == "./worker.js"

    def test_require_strategy_last(self):
        """require is the final modern attempt."""
        manifest = _m(name="p", exports={".": {"require": "./c.cjs"}})
        assert resolve_modern(manifest, ".") == "./c.cjs"

    def test_exports_block_legacy(self):
        """With an exports map, a miss does not fall back to main."""
        manifest = _m(name="p", exports={"./only": "./only.js"}, main="index.js")
        assert resolve_manifest(manifest, "") is None

    def test_legacy_only_when_scoped(self):
        """Legacy fields describe the manifest's own directory."""
        manifest = _m(name="p", main="index.js")
        assert resolve_manifest(manifest, "", scoped=True) == "./index.js"
        assert resolve_manifest(manifest, "/sub/file.js", scoped=False) is None

    def test_subpath_through_exports(self):
        """A subpath is looked up as ./subpath."""
        manifest = _m(name="p", exports={"./feature": {"import": "./esm/feature.js"}})
        assert resolve_manifest(manifest, "/feature") == "./esm/feature.js"


class TestVersionSelection:
    """Tests for dependency-driven version selection."""

    def test_explicit_version_wins(self):
        """name@version in the specifier is never overridden."""
        ctx = _m(dependencies={"react": "^17.0.0"})
        coord = PackageCoordinate("react", "18.2.0")
        assert select_version("react@18.2.0", coord, ctx) == "18.2.0"

    def test_dependency_precedence(self):
        """dependencies beat peerDependencies beat devDependencies."""
        ctx = _m(
            devDependencies={"a": "1.0.0", "b": "1.0.0", "c": "1.0.0"},
            peerDependencies={"a": "2.0.0", "b": "2.0.0"},
            dependencies={"a": "3.0.0"},
        )
        assert select_version("a", PackageCoordinate("a"), ctx) == "3.0.0"
        assert select_version("b", PackageCoordinate("b"), ctx) == "2.0.0"
        assert select_version("c", PackageCoordinate("c"), ctx) == "1.0.0"
        assert select_version("d", PackageCoordinate("d"), ctx) == "latest"

    def test_scope_manifest_keeps_root_pins(self):
        """The root's dependency versions win over the importing package's."""
        root = _m(name="app", dependencies={"react": "18.2.0"})
        carried = _m(name="lib", sideEffects=False, dependencies={"react": "^16.0.0", "x": "1.0.0"})
        scoped = scope_manifest(root, carried)
        assert scoped.dependencies == {"react": "18.2.0", "x": "1.0.0"}
        assert scoped.side_effects is None
        assert scoped.name == "lib"

    def test_peer_override_outside_range_warns(self):
        """Peers are pinned to the context; out-of-range pins warn."""
        ctx = _m(dependencies={"react": "2.0.0"})
        resolved = _m(name="react-dom", peerDependencies={"react": "^1.0.0", "scheduler": "^0.1.0"})
        merged, warnings = merge_peer_dependencies(ctx, resolved)
        assert merged.peer_dependencies == {"react": "2.0.0", "scheduler": "^0.1.0"}
        assert len(warnings) == 1
        assert "react" in warnings[0]

    def test_peer_override_in_range_is_silent(self):
        """An in-range pin does not warn."""
        ctx = _m(dependencies={"react": "1.4.0"})
        resolved = _m(name="react-dom", peerDependencies={"react": "^1.0.0"})
        merged, warnings = merge_peer_dependencies(ctx, resolved)
        assert merged.peer_dependencies == {"react": "1.4.0"}
        assert warnings == []
