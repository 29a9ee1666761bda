"""Manifest-based subpath resolution and dependency version selection."""

from __future__ import annotations

import logging
from typing import Dict, List, Optional, Tuple

from cdnresolve.common.logging_utils import extra_context, is_debug_enabled
from cdnresolve.constants import Constants
from cdnresolve.manifest.exports import ExportsError, conditions_for, legacy, resolve
from cdnresolve.manifest.model import Manifest
from cdnresolve.models import PackageCoordinate
from cdnresolve.specifier import has_version, satisfies

logger = logging.getLogger(__name__)

# (label, condition set) in strict order; first success wins
MODERN_STRATEGIES = (
    ("browser", conditions_for(Constants.BROWSER_CONDITIONS, browser=True)),
    ("unsafe", conditions_for(Constants.UNSAFE_CONDITIONS, unsafe=True)),
    ("require", conditions_for(require=True)),
)


def to_relative(subpath: str) -> str:
    """``/sub/path`` -> ``./sub/path``; an empty subpath is the package root."""
    if not subpath or subpath == "/":
        return "."
    return "./" + subpath.lstrip("/")


def resolve_modern(manifest: Manifest, entry: str) -> Optional[str]:
    """Resolve ``entry`` through exports/imports, trying each condition set."""
    for label, keys in MODERN_STRATEGIES:
        try:
            resolved = resolve(manifest, entry, keys)
        except ExportsError as exc:
            if is_debug_enabled(logger):
                logger.debug(
                    "Modern resolution miss",
                    extra=extra_context(
                        event="manifest_resolve",
                        component="manifest",
                        action=label,
                        outcome="miss",
                        target=f"{manifest.name}:{entry}",
                        reason=str(exc),
                    ),
                )
            continue
        if resolved:
            return resolved[0]
    return None


def _pick_from_map(mapping: Dict[str, object]) -> Optional[str]:
    keys = list(mapping.keys())
    preferred = [
        key for key in keys
        if not key.endswith(".cjs") and "src/" not in key and mapping[key]
    ]
    chosen = mapping[(preferred or keys)[0]] if keys else None
    return chosen if isinstance(chosen, str) else None


def resolve_legacy(manifest: Manifest) -> Optional[str]:
    """Entry from ``browser``, then ``module``/``main``, then ``unpkg``/``bin``.

    A ``browser`` map whose values are all falsy disables browser
    substitution for the whole package, so the plain fields are used.
    """
    value = legacy(manifest, browser=True)
    if isinstance(value, dict) and not any(value.values()):
        value = legacy(manifest)
    if not value:
        value = legacy(manifest, fields=Constants.LEGACY_FALLBACK_FIELDS)

    if isinstance(value, list):
        value = value[0] if value else None
    if isinstance(value, dict):
        return _pick_from_map(value)
    return value if isinstance(value, str) else None


def resolve_manifest(manifest: Manifest, subpath: str, scoped: bool = True) -> Optional[str]:
    """Resolve a package subpath against a manifest.

    Args:
        manifest: The fetched package.json.
        subpath: ``/``-prefixed path within the package, or "" for the root.
        scoped: True when the manifest sits in the directory the subpath
            names, so its legacy entry fields describe that directory.

    Returns:
        The ``./``-relative resolved path, or None when every strategy
        fails and the subpath should be used literally.
    """
    entry = to_relative(subpath)
    resolved = resolve_modern(manifest, entry)
    if resolved:
        return resolved

    if manifest.exports is None and scoped:
        resolved = resolve_legacy(manifest)
        if resolved:
            return resolved
    return None


def scope_manifest(root: Manifest, carried: Optional[Manifest]) -> Manifest:
    """Manifest context for an import: root, overlaid by the importing
    package's manifest, with the root's dependency lists re-applied last so
    versions the build pins always win.
    """
    overlay = carried.without_side_effects() if carried else None
    return root.merged(
        overlay.data if overlay else None,
        {"devDependencies": root.dev_dependencies} if root.has("devDependencies") else None,
        {"peerDependencies": root.peer_dependencies} if root.has("peerDependencies") else None,
        {"dependencies": root.dependencies} if root.has("dependencies") else None,
    )


def select_version(specifier: str, coordinate: PackageCoordinate, context: Manifest) -> str:
    """Version to request for ``coordinate``.

    An explicit ``name@version`` wins; otherwise a range declared in the
    context's dependency lists is substituted, ``dependencies`` taking
    precedence over ``peerDependencies`` over ``devDependencies``.
    """
    if has_version(specifier) or not context.has_dependency_lists():
        return coordinate.version
    declared = {**context.dev_dependencies, **context.peer_dependencies, **context.dependencies}
    return declared.get(coordinate.name, coordinate.version)


def merge_peer_dependencies(context: Manifest, resolved: Manifest) -> Tuple[Manifest, List[str]]:
    """Pin ``resolved``'s peer ranges to versions the context already fixed.

    Returns the updated manifest and a warning for every override that
    falls outside the range the package itself declares.
    """
    peers = resolved.peer_dependencies
    if not peers:
        return resolved, []

    known = {**context.dev_dependencies, **context.dependencies, **context.peer_dependencies}
    warnings = []
    merged = {}
    for name, declared in peers.items():
        pinned = known.get(name)
        if pinned is None:
            merged[name] = declared
            continue
        merged[name] = pinned
        if pinned != declared and satisfies(pinned, declared) is False:
            warnings.append(
                f'Peer dependency "{name}" of "{resolved.name}" pinned to {pinned}, '
                f"outside its declared range {declared}"
            )
    return resolved.with_peer_dependencies(merged), warnings
