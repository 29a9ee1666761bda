"""Specifier classification and package-name parsing.

Pure functions only; nothing here touches the network.
"""

import re
from typing import Optional

import semantic_version

from cdnresolve.models import Classification, PackageCoordinate, ResolutionMode, SpecifierKind

_URL_RE = re.compile(r"^[a-zA-Z][a-zA-Z\d+\-.]*://")
_HTTP_RE = re.compile(r"^https?://")
_NODE_PREFIX_RE = re.compile(r"^node:")

_SCOPED_RE = re.compile(r"^(@[^/]+/[^@/]+)(?:@([^/]+))?(/.*)?$")
_NON_SCOPED_RE = re.compile(r"^([^@/]+)(?:@([^/]+))?(/.*)?$")
_VERSIONED_RE = re.compile(r"\S+@\S+")


def strip_node_prefix(specifier: str) -> str:
    return _NODE_PREFIX_RE.sub("", specifier)


def is_builtin(specifier: str) -> bool:
    return bool(_NODE_PREFIX_RE.match(specifier))


def is_absolute_path(specifier: str) -> bool:
    return specifier.startswith("/")


def is_http_url(specifier: str) -> bool:
    return bool(_HTTP_RE.match(specifier))


def is_bare_import(specifier: str) -> bool:
    """An import is bare if it is neither relative (``.``) nor an absolute path."""
    return not specifier.startswith(".") and not is_absolute_path(specifier)


def has_version(specifier: str) -> bool:
    """True when the specifier already carries ``name@version``."""
    return bool(_VERSIONED_RE.search(specifier.lstrip("@")))


def classify(specifier: str) -> Classification:
    """Classify an import string. Total over all inputs.

    ``node:`` prefixes are stripped before classification and reported
    through ``builtin``. Absolute filesystem-style paths (``/x``) are
    path-like and classify as RELATIVE; the HTTP stage roots them at the
    CDN origin.
    """
    builtin = is_builtin(specifier)
    path = strip_node_prefix(specifier)

    if _URL_RE.match(path):
        kind = SpecifierKind.ABSOLUTE_URL
    elif path.startswith("#"):
        kind = SpecifierKind.SUBPATH_IMPORT
    elif path.startswith(".") or is_absolute_path(path):
        kind = SpecifierKind.RELATIVE
    else:
        kind = SpecifierKind.BARE
    return Classification(kind=kind, path=path, builtin=builtin)


def parse_package_name(specifier: str) -> PackageCoordinate:
    """Split ``@scope/name@version/sub/path`` into its coordinate parts.

    Raises:
        ValueError: If the input cannot be a package name (e.g. empty).
    """
    match = _SCOPED_RE.match(specifier) or _NON_SCOPED_RE.match(specifier)
    if not match:
        raise ValueError(f"Invalid package name: {specifier!r}")
    return PackageCoordinate(
        name=match.group(1) or "",
        version=match.group(2) or "latest",
        subpath=match.group(3) or "",
    )


def resolution_mode(spec: Optional[str]) -> ResolutionMode:
    """Classify a version spec as exact, range or latest."""
    if spec is None or not spec.strip() or spec.strip().lower() == "latest":
        return ResolutionMode.LATEST
    try:
        semantic_version.Version(spec.strip().lstrip("v="))
        return ResolutionMode.EXACT
    except ValueError:
        return ResolutionMode.RANGE


def satisfies(version: str, spec: str) -> Optional[bool]:
    """Whether ``version`` falls inside the npm range ``spec``.

    Returns None when either side is not parseable semver (dist-tags,
    URLs, git refs), i.e. when the question cannot be answered.
    """
    try:
        candidate = semantic_version.Version(version.strip().lstrip("v="))
    except ValueError:
        try:
            candidate = semantic_version.Version.coerce(version.strip().lstrip("v=^~"))
        except ValueError:
            return None
    try:
        npm_spec = semantic_version.NpmSpec(spec)
    except ValueError:
        return None
    return npm_spec.match(candidate)
