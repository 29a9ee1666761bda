"""HTTP stage: URLs and imports found inside already-fetched files."""

from __future__ import annotations

import logging
import posixpath
from typing import Optional

from cdnresolve.cdn import url_join, url_origin
from cdnresolve.constants import Constants, Namespace
from cdnresolve.loader import infer_loader
from cdnresolve.models import LoadResult, ResolutionResult, ResolveContext
from cdnresolve.specifier import is_absolute_path, is_http_url

logger = logging.getLogger(__name__)


class HttpStage:
    """Resolve and load modules in the ``http`` namespace.

    Bare imports inside fetched files go back through the CDN stage,
    rooted at the CDN the importing file came from when that CDN is
    npm-style; absolute paths stay under the CDN root; relative paths
    resolve against the importing file's directory.
    """

    name = "http"

    def __init__(self, session, cdn_stage):
        self._session = session
        self._cdn = cdn_stage

    def setup(self, host) -> None:
        host.on_resolve(r"^https?://", self.resolve, plugin=self.name)
        host.on_resolve(r".*", self.resolve, namespaces=(Namespace.HTTP,), plugin=self.name)
        host.on_load(r".*", self.load, namespaces=(Namespace.HTTP,), plugin=self.name)

    def cdn_root(self, url: Optional[str]) -> str:
        """The CDN root a URL lives under: the configured CDN, a known
        shorthand CDN, or failing those the URL's plain origin."""
        origin = self._session.origin
        if not url or url.startswith(origin):
            return origin
        known = [o if o.endswith("/") else o + "/" for o in Constants.CDN_SCHEMES.values()]
        matches = [o for o in known if url.startswith(o)]
        if matches:
            return max(matches, key=len)
        return url_origin(url)

    @staticmethod
    def _result(url: str, context: ResolveContext) -> ResolutionResult:
        manifest = context.manifest
        return ResolutionResult(
            url=url,
            namespace=Namespace.HTTP,
            side_effects=manifest.side_effects if manifest else None,
            manifest=manifest,
        )

    async def resolve(self, specifier: str, context: ResolveContext) -> Optional[ResolutionResult]:
        if is_http_url(specifier):
            return self._result(specifier, context)

        if not specifier.startswith(".") and not is_absolute_path(specifier):
            root = self.cdn_root(context.url)
            origin = root if self._session.is_npm_cdn(root) else self._session.origin
            return await self._cdn.resolve(specifier, context, origin=origin)

        if is_absolute_path(specifier):
            # Rooted at the CDN root, never the host root, so an absolute
            # import cannot climb out of the CDN's package namespace.
            root = self.cdn_root(context.url)
            return self._result(url_join(root, posixpath.normpath(specifier)), context)

        base = context.url or self._session.origin
        return self._result(url_join(base, "../", specifier), context)

    async def load(self, result: ResolutionResult) -> Optional[LoadResult]:
        """Download a resolved module and its sibling assets.

        Raises:
            ExtensionNotFoundError: If no variant of the URL exists.
        """
        session = self._session
        fetched = await session.prober.probe(result.url, headers_only=False)
        content = fetched.content or b""
        session.store.put(f"{result.namespace.value}:{result.url}", content)

        assets = await session.assets.discover(fetched.url, content, result.namespace.value)
        return LoadResult(
            contents=content,
            loader=infer_loader(fetched.url, fetched.content_type),
            url=fetched.url,
            manifest=result.manifest,
            assets=assets,
        )
