"""CDN origin selection, style detection and URL building.

Specifiers may carry a shorthand scheme (``unpkg:react``, ``esm.sh:react``,
``github:user/repo/file.js``) that picks a CDN for that import alone.
"""

from __future__ import annotations

import re
import urllib.parse
from dataclasses import dataclass
from typing import Iterable, Optional

from cdnresolve.constants import CdnStyle, Constants

_SCHEME_RE = re.compile(r"^([\w.\-]+):(?!//)")
_STYLE_PREFIX_RE = re.compile(r"^(?:https?://)?(?:cdn\.)?")


@dataclass(frozen=True)
class CdnUrl:
    """A specifier split into the origin it targets and its pure path."""
    specifier: str
    path: str
    origin: str
    url: str


def _with_trailing_slash(origin: str) -> str:
    return origin if origin.endswith("/") else origin + "/"


def _scheme_of(specifier: str) -> Optional[str]:
    match = _SCHEME_RE.match(specifier)
    if match and match.group(1) in Constants.CDN_SCHEMES:
        return match.group(1)
    return None


def get_cdn_origin(specifier: str, cdn: str = Constants.DEFAULT_CDN_HOST) -> str:
    """Origin a specifier should be fetched from, always ``/``-terminated."""
    scheme = _scheme_of(specifier)
    origin = Constants.CDN_SCHEMES[scheme] if scheme else cdn
    return _with_trailing_slash(origin)


def get_pure_import_path(specifier: str) -> str:
    """Drop a CDN shorthand scheme (``unpkg:``) from a specifier."""
    scheme = _scheme_of(specifier)
    if scheme:
        return specifier[len(scheme) + 1:]
    return specifier


def url_join(base: str, *parts: str) -> str:
    """Join path segments onto ``base`` the way a path join would.

    ``..`` segments are resolved but never climb above the base origin.
    Leading slashes on parts do not reset to the host root.
    """
    split = urllib.parse.urlsplit(base)
    segments = [s for s in split.path.split("/")]
    if segments and segments[-1] == "" and len(segments) > 1:
        segments = segments[:-1]
    trailing = False
    for part in parts:
        if not part:
            continue
        pieces = part.split("/")
        trailing = part.endswith("/")
        for piece in pieces:
            if piece in ("", "."):
                continue
            if piece == "..":
                if len(segments) > 1:
                    segments.pop()
                continue
            segments.append(piece)
    path = "/".join(segments)
    if not path.startswith("/"):
        path = "/" + path
    if trailing and not path.endswith("/"):
        path += "/"
    return urllib.parse.urlunsplit((split.scheme, split.netloc, path, "", ""))


def get_cdn_url(specifier: str, cdn: str = Constants.DEFAULT_CDN_HOST) -> CdnUrl:
    """Resolve a specifier to a full URL rooted under its CDN origin."""
    origin = get_cdn_origin(specifier, cdn)
    path = get_pure_import_path(specifier)
    return CdnUrl(specifier=specifier, path=path, origin=origin, url=url_join(origin, path))


def normalize_cdn(cdn: Optional[str]) -> str:
    """Turn a configured CDN (URL or shorthand like ``esm.sh``) into an origin."""
    if not cdn:
        return get_cdn_origin("", Constants.DEFAULT_CDN_HOST)
    if ":" not in cdn:
        cdn = cdn + ":"
    if _scheme_of(cdn):
        return get_cdn_origin(cdn)
    return _with_trailing_slash(cdn)


def get_cdn_style(url: str, extra_npm_hosts: Iterable[str] = ()) -> CdnStyle:
    """Classify a CDN URL by how it serves packages."""
    stripped = _STYLE_PREFIX_RE.sub("", url, count=1)

    def _matches(hosts: Iterable[str]) -> bool:
        for host in hosts:
            host = _STYLE_PREFIX_RE.sub("", host.rstrip("/"), count=1)
            if stripped == host or stripped.startswith(host + "/"):
                return True
        return False

    if _matches(Constants.NPM_CDN_HOSTS) or _matches(extra_npm_hosts):
        return CdnStyle.NPM
    if _matches(Constants.GITHUB_CDN_HOSTS):
        return CdnStyle.GITHUB
    if _matches(Constants.DENO_CDN_HOSTS):
        return CdnStyle.DENO
    return CdnStyle.OTHER


def url_origin(url: str) -> str:
    """Scheme and host of a URL, ``/``-terminated."""
    split = urllib.parse.urlsplit(url)
    return f"{split.scheme}://{split.netloc}/"
