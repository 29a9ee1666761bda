"""CDN stage: bare specifiers to concrete, versioned CDN URLs."""

from __future__ import annotations

import logging
import posixpath
import re
from typing import List, Optional, Tuple

from cdnresolve.cdn import get_cdn_url
from cdnresolve.common.logging_utils import extra_context, is_debug_enabled, safe_url
from cdnresolve.constants import Constants, Namespace
from cdnresolve.errors import CdnResolveError, ExtensionNotFoundError, ManifestFetchError, ManifestParseError, ResolveError
from cdnresolve.fetch import fetch_package
from cdnresolve.manifest.model import Manifest
from cdnresolve.manifest.resolver import (
    merge_peer_dependencies,
    resolve_manifest,
    resolve_modern,
    scope_manifest,
    select_version,
)
from cdnresolve.models import PackageCoordinate, ResolutionResult, ResolveContext, SpecifierKind
from cdnresolve.specifier import classify, parse_package_name, resolution_mode

logger = logging.getLogger(__name__)

_UNPKG_RE = re.compile(r"unpkg\.com")


def _cdn_support_warning(origin: str, path: str) -> str:
    if not _UNPKG_RE.search(origin):
        where = f'The current CDN "{origin}" doesn\'t'
    else:
        where = f'The current CDN path "{origin}{path}" may not'
    return (
        f"You may want to change CDNs. {where} support package.json files.\n"
        "There is a chance the CDN you're using doesn't support looking through the "
        "package.json of packages. Resolution will fall back to inaccurate guesses for "
        "package versions. For package.json support you may wish to use https://unpkg.com "
        "or other CDNs that support package.json."
    )


class CdnStage:
    """Resolve bare package imports against the configured (or per-import) CDN."""

    name = "cdn"

    def __init__(self, session):
        self._session = session

    def setup(self, host) -> None:
        host.on_resolve(r".*", self.resolve, namespaces=(Namespace.FILE, Namespace.CDN), plugin=self.name)

    def _subpath_import(self, specifier: str, context: ResolveContext) -> str:
        """Rewrite ``#sub`` through the importing package's ``imports`` map."""
        if context.manifest is not None:
            pkg = context.manifest.without_side_effects()
        else:
            pkg = self._session.root_manifest
        resolved = resolve_modern(pkg, specifier)
        if not resolved:
            raise ResolveError(
                specifier,
                context.importer,
                CdnResolveError(f'No "imports" entry matches "{specifier}" in "{pkg.name}"'),
            )
        if not resolved.startswith("./"):
            return resolved
        return posixpath.join(f"{pkg.name}@{pkg.version}", resolved[2:])

    async def _fetch_manifest(self, coordinate: PackageCoordinate, origin: str) -> Tuple[Manifest, bool]:
        """Fetch the manifest nearest to the requested subpath.

        A directory-like subpath first tries its own package.json, then the
        package root's. Returns the manifest and whether it was the one
        scoped to the subpath.

        Raises:
            ManifestFetchError: When every variant failed.
        """
        subpath = coordinate.subpath
        base = f"{coordinate.name}@{coordinate.version}"
        is_dir = not posixpath.splitext(subpath)[1]
        at_root = subpath in ("", "/")

        variants: List[Tuple[str, bool]] = []
        if is_dir and not at_root:
            variants.append((f"{base}{subpath.rstrip('/')}/{Constants.MANIFEST_FILE}", True))
        variants.append((f"{base}/{Constants.MANIFEST_FILE}", at_root))

        failed = self._session.caches.manifests
        last = len(variants) - 1
        for i, (path, scoped) in enumerate(variants):
            url = get_cdn_url(path, origin).url
            if url in failed and i < last:
                continue
            try:
                result = await fetch_package(self._session.transport, url, error_cls=ManifestFetchError)
                manifest = Manifest.from_json((result.content or b"").decode("utf-8", errors="replace"))
                return manifest, scoped
            except ManifestParseError as exc:
                failed.add(url)
                if i >= last:
                    raise ManifestFetchError(url, str(exc)) from exc
            except ManifestFetchError as exc:
                if exc.status is not None:
                    failed.add(url)
                if i >= last:
                    raise
        raise ManifestFetchError(origin, "No package.json variants to try")

    @staticmethod
    def _final_subpath(manifest: Manifest, subpath: str, scoped: bool) -> str:
        # A subdirectory's own package.json describes that directory, so its
        # entry points resolve from "." and are re-rooted under the subpath.
        at_root = subpath in ("", "/")
        resolved = resolve_manifest(manifest, "" if scoped else subpath, scoped)
        if not resolved:
            return subpath
        final = "/" + re.sub(r"^\./", "", resolved).lstrip("/")
        if scoped and not at_root:
            final = subpath.rstrip("/") + final
        return final

    async def resolve(
        self,
        specifier: str,
        context: ResolveContext,
        origin: Optional[str] = None,
    ) -> Optional[ResolutionResult]:
        """Resolve a bare specifier; None for anything that is not bare.

        Raises:
            ResolveError: When the specifier cannot be resolved to an
                existing file.
        """
        session = self._session
        path = specifier
        if specifier.startswith("#"):
            path = self._subpath_import(specifier, context)

        classified = classify(path)
        if classified.kind != SpecifierKind.BARE:
            return None

        cdn_url = get_cdn_url(classified.path, origin or session.origin)
        npm_cdn = session.is_npm_cdn(cdn_url.origin)
        try:
            coordinate = parse_package_name(cdn_url.path)
        except ValueError as exc:
            raise ResolveError(specifier, context.importer, exc) from exc

        scoped_context = scope_manifest(session.root_manifest, context.manifest)
        coordinate.version = select_version(cdn_url.path, coordinate, scoped_context)
        if is_debug_enabled(logger):
            logger.debug(
                "Selected version %s@%s",
                coordinate.name,
                coordinate.version,
                extra=extra_context(
                    event="version_select",
                    component="cdn",
                    action=resolution_mode(coordinate.version).value,
                    target=specifier,
                ),
            )

        manifest: Optional[Manifest] = None
        final_subpath = coordinate.subpath
        if npm_cdn:
            try:
                manifest, scoped = await self._fetch_manifest(coordinate, cdn_url.origin)
                final_subpath = self._final_subpath(manifest, coordinate.subpath, scoped)
            except ManifestFetchError as exc:
                logger.debug(
                    "Manifest fetch failed",
                    extra=extra_context(
                        event="manifest_fetch",
                        component="cdn",
                        outcome="failed",
                        target=safe_url(exc.url),
                        status_code=exc.status,
                    ),
                )
                session.warn(_cdn_support_warning(cdn_url.origin, cdn_url.path), specifier, context.importer)
                session.warn(str(exc), specifier, context.importer)

        version = ""
        if npm_cdn:
            version = "@" + ((manifest.version if manifest else None) or coordinate.version)
        url = get_cdn_url(f"{coordinate.name}{version}{final_subpath}", cdn_url.origin).url

        carried, peer_warnings = merge_peer_dependencies(scoped_context, manifest or scoped_context)
        for message in peer_warnings:
            session.warn(message, specifier, context.importer)

        try:
            probed = await session.prober.probe(url)
        except ExtensionNotFoundError as exc:
            raise ResolveError(specifier, context.importer, exc) from exc

        return ResolutionResult(
            url=probed.url,
            namespace=Namespace.HTTP,
            side_effects=manifest.side_effects if manifest else None,
            manifest=carried,
        )
