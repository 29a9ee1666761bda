"""Public entry point: resolve and load module specifiers against a CDN."""

from __future__ import annotations

import logging
from typing import List, Optional

from cdnresolve.cache import FailureCaches
from cdnresolve.common.http_client import create_transport
from cdnresolve.common.logging_utils import Timer, extra_context
from cdnresolve.config import BuildConfig
from cdnresolve.errors import CdnResolveError, ResolveError
from cdnresolve.models import Diagnostic, LoadResult, ResolutionResult, ResolveContext
from cdnresolve.plugins import PluginHost
from cdnresolve.session import BuildSession
from cdnresolve.stages import AliasStage, CdnStage, HttpStage
from cdnresolve.store import VirtualStore

logger = logging.getLogger(__name__)


class Resolver:
    """Alias, CDN and HTTP stages wired into one hook chain.

    Usage::

        async with Resolver(BuildConfig(cdn="esm.sh")) as resolver:
            result = await resolver.resolve("react")
            loaded = await resolver.load(result)

    When no transport is given one is created from the config and closed
    with the resolver. Pass ``caches`` to share failure knowledge between
    builds.
    """

    def __init__(
        self,
        config: Optional[BuildConfig] = None,
        transport=None,
        caches: Optional[FailureCaches] = None,
        store: Optional[VirtualStore] = None,
    ):
        self.config = config if config is not None else BuildConfig()
        self._owns_transport = transport is None
        if transport is None:
            transport = create_transport(
                self.config.transport,
                timeout=self.config.request_timeout,
                max_connections=self.config.max_concurrency,
                user_agent=self.config.user_agent,
            )
        self.session = BuildSession(self.config, transport, caches=caches, store=store)

        self.cdn_stage = CdnStage(self.session)
        self.http_stage = HttpStage(self.session, self.cdn_stage)
        self.alias_stage = AliasStage(self.session, self.http_stage)
        self.host = PluginHost().use(self.alias_stage, self.cdn_stage, self.http_stage)

    @property
    def diagnostics(self) -> List[Diagnostic]:
        return self.session.diagnostics

    @property
    def store(self) -> VirtualStore:
        return self.session.store

    async def resolve(
        self,
        specifier: str,
        context: Optional[ResolveContext] = None,
    ) -> ResolutionResult:
        """Resolve one specifier.

        Raises:
            ResolveError: If no stage can resolve it, or a stage failed.
        """
        context = context if context is not None else ResolveContext()
        with Timer() as t:
            try:
                result = await self.host.resolve(specifier, context)
            except ResolveError:
                raise
            except CdnResolveError as exc:
                raise ResolveError(specifier, context.importer, exc) from exc
        if result is None:
            raise ResolveError(specifier, context.importer, CdnResolveError("no stage handles this specifier"))
        logger.info(
            "Resolved %s -> %s",
            specifier,
            result.url,
            extra=extra_context(
                event="resolve",
                component="resolver",
                outcome=result.namespace.value,
                duration_ms=t.duration_ms(),
            ),
        )
        return result

    async def load(self, result: ResolutionResult) -> Optional[LoadResult]:
        """Load a resolved module; None for externals and other unloadable results."""
        if result.external:
            return None
        return await self.host.load(result)

    async def close(self) -> None:
        if self._owns_transport:
            await self.session.transport.close()

    async def __aenter__(self) -> "Resolver":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()
