"""Module-graph walker: resolve, load and rescan until the graph is closed.

Each discovered specifier becomes its own task. Tasks suspend on network
I/O independently; a semaphore bounds how many run at once. Modules are
loaded once per resolved URL, so import cycles terminate.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Set, Tuple

from cdnresolve.common.logging_utils import Timer, extra_context
from cdnresolve.constants import Constants
from cdnresolve.errors import FetchError, ResolveError
from cdnresolve.loader import SCRIPT_LOADERS
from cdnresolve.models import Asset, Diagnostic, ResolutionResult, ResolveContext
from cdnresolve.scanner import scan_imports

logger = logging.getLogger(__name__)


@dataclass
class ModuleRecord:
    """One resolved module and the edges leaving it."""

    url: str
    namespace: str
    external: bool = False
    loader: Optional[str] = None
    final_url: Optional[str] = None
    size: int = 0
    side_effects: Optional[bool] = None
    package: Optional[str] = None
    version: Optional[str] = None
    imports: Dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "url": self.url,
            "namespace": self.namespace,
            "external": self.external,
            "loader": self.loader,
            "finalUrl": self.final_url,
            "size": self.size,
            "sideEffects": self.side_effects,
            "package": self.package,
            "version": self.version,
            "imports": dict(self.imports),
        }


@dataclass
class ModuleGraph:
    """Result of a walk. ``entries`` maps each entry specifier to its URL."""

    entries: Dict[str, str] = field(default_factory=dict)
    modules: Dict[str, ModuleRecord] = field(default_factory=dict)
    assets: List[Asset] = field(default_factory=list)
    errors: List[ResolveError] = field(default_factory=list)
    warnings: List[Diagnostic] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "entries": dict(self.entries),
            "modules": [record.to_dict() for record in self.modules.values()],
            "assets": [{"path": asset.path, "url": asset.url, "size": len(asset.contents)} for asset in self.assets],
            "warnings": [w.to_dict() for w in self.warnings],
            "errors": [
                {"specifier": e.specifier, "importer": e.importer, "message": str(e)} for e in self.errors
            ],
        }


_Work = Tuple[str, ResolveContext]


class GraphWalker:
    """Walk the import graph reachable from a set of entry specifiers."""

    def __init__(self, resolver, max_concurrency: Optional[int] = None):
        self._resolver = resolver
        self._max_concurrency = max_concurrency or resolver.config.max_concurrency or Constants.MAX_CONCURRENCY

    async def walk(self, entries: Iterable[str]) -> ModuleGraph:
        """Resolve every entry and everything it transitively imports.

        Unresolvable specifiers are collected in ``graph.errors`` and the
        walk continues. Any other exception cancels the pending tasks and
        propagates.
        """
        graph = ModuleGraph()
        semaphore = asyncio.Semaphore(self._max_concurrency)
        loaded: Set[str] = set()
        pending: Set[asyncio.Task] = set()

        def schedule(work: _Work, parent: Optional[ModuleRecord]) -> None:
            pending.add(asyncio.ensure_future(self._visit(work, parent, graph, loaded, semaphore)))

        with Timer() as t:
            for entry in entries:
                schedule((entry, ResolveContext()), None)
            try:
                while pending:
                    done, _ = await asyncio.wait(pending, return_when=asyncio.FIRST_COMPLETED)
                    for task in done:
                        pending.discard(task)
                        record, children = task.result()
                        for child in children:
                            schedule(child, record)
            finally:
                for task in pending:
                    task.cancel()
                if pending:
                    await asyncio.gather(*pending, return_exceptions=True)

        graph.warnings = list(self._resolver.diagnostics)
        logger.info(
            "Walked %d modules (%d errors, %d warnings)",
            len(graph.modules),
            len(graph.errors),
            len(graph.warnings),
            extra=extra_context(event="walk", component="graph", duration_ms=t.duration_ms()),
        )
        return graph

    async def _visit(
        self,
        work: _Work,
        parent: Optional[ModuleRecord],
        graph: ModuleGraph,
        loaded: Set[str],
        semaphore: asyncio.Semaphore,
    ) -> Tuple[Optional[ModuleRecord], List[_Work]]:
        specifier, context = work
        async with semaphore:
            try:
                result = await self._resolver.resolve(specifier, context)
            except ResolveError as exc:
                graph.errors.append(exc)
                return None, []

            if parent is None:
                graph.entries[specifier] = result.url
            else:
                parent.imports[specifier] = result.url

            if result.url in loaded:
                return None, []
            loaded.add(result.url)
            record = self._record(result)
            graph.modules[result.url] = record
            if result.external:
                return record, []

            try:
                loaded_module = await self._resolver.load(result)
            except FetchError as exc:
                graph.errors.append(ResolveError(specifier, context.importer, exc))
                return record, []

        if loaded_module is None:
            return record, []
        record.loader = loaded_module.loader
        record.final_url = loaded_module.url
        record.size = len(loaded_module.contents)
        graph.assets.extend(loaded_module.assets)
        if loaded_module.loader not in SCRIPT_LOADERS:
            return record, []

        child_context = ResolveContext(
            importer=loaded_module.url,
            namespace=result.namespace,
            manifest=loaded_module.manifest,
            url=loaded_module.url,
        )
        code = loaded_module.contents.decode("utf-8", errors="replace")
        return record, [(child, child_context) for child in scan_imports(code)]

    @staticmethod
    def _record(result: ResolutionResult) -> ModuleRecord:
        manifest = result.manifest
        return ModuleRecord(
            url=result.url,
            namespace=result.namespace.value,
            external=result.external,
            side_effects=result.side_effects,
            package=manifest.name if manifest else None,
            version=manifest.version if manifest else None,
        )
