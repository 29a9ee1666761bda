"""Resolve/load hook registry.

Stages register ``on_resolve``/``on_load`` hooks with a path filter and,
optionally, the namespaces they serve. A specifier tagged with a
namespace is only offered to hooks registered for that namespace and to
catch-all hooks (``namespaces=None``), in registration order; the first
hook returning a result wins.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Awaitable, Callable, FrozenSet, Iterable, List, Optional, Pattern, Union

from cdnresolve.common.logging_utils import extra_context, is_debug_enabled
from cdnresolve.constants import Namespace
from cdnresolve.models import LoadResult, ResolutionResult, ResolveContext

logger = logging.getLogger(__name__)

ResolveHandler = Callable[[str, ResolveContext], Awaitable[Optional[ResolutionResult]]]
LoadHandler = Callable[[ResolutionResult], Awaitable[Optional[LoadResult]]]


@dataclass(frozen=True)
class _Hook:
    plugin: str
    filter: Pattern
    namespaces: Optional[FrozenSet[Namespace]]
    handler: Callable

    def accepts(self, path: str, namespace: Namespace) -> bool:
        if self.namespaces is not None and namespace not in self.namespaces:
            return False
        return bool(self.filter.search(path))


def _compile(pattern: Union[str, Pattern]) -> Pattern:
    return re.compile(pattern) if isinstance(pattern, str) else pattern


class PluginHost:
    """Ordered collection of resolve and load hooks."""

    def __init__(self) -> None:
        self._resolve_hooks: List[_Hook] = []
        self._load_hooks: List[_Hook] = []

    def use(self, *plugins) -> "PluginHost":
        """Let each plugin register its hooks via ``plugin.setup(host)``."""
        for plugin in plugins:
            plugin.setup(self)
        return self

    def on_resolve(
        self,
        pattern: Union[str, Pattern],
        handler: ResolveHandler,
        namespaces: Optional[Iterable[Namespace]] = None,
        plugin: str = "",
    ) -> None:
        self._resolve_hooks.append(
            _Hook(plugin, _compile(pattern), frozenset(namespaces) if namespaces is not None else None, handler)
        )

    def on_load(
        self,
        pattern: Union[str, Pattern],
        handler: LoadHandler,
        namespaces: Optional[Iterable[Namespace]] = None,
        plugin: str = "",
    ) -> None:
        self._load_hooks.append(
            _Hook(plugin, _compile(pattern), frozenset(namespaces) if namespaces is not None else None, handler)
        )

    async def resolve(self, specifier: str, context: ResolveContext) -> Optional[ResolutionResult]:
        """Offer ``specifier`` to each matching hook until one resolves it."""
        for hook in self._resolve_hooks:
            if not hook.accepts(specifier, context.namespace):
                continue
            result = await hook.handler(specifier, context)
            if result is not None:
                if is_debug_enabled(logger):
                    logger.debug(
                        "Resolved %s -> %s",
                        specifier,
                        result.url,
                        extra=extra_context(
                            event="resolve",
                            component="plugins",
                            action=hook.plugin,
                            outcome=result.namespace.value,
                        ),
                    )
                return result
        return None

    async def load(self, result: ResolutionResult) -> Optional[LoadResult]:
        """Run the first matching load hook for a resolved module."""
        for hook in self._load_hooks:
            if not hook.accepts(result.url, result.namespace):
                continue
            loaded = await hook.handler(result)
            if loaded is not None:
                return loaded
        return None
