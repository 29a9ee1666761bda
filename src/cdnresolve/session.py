"""Per-build state shared by the resolution stages."""

from __future__ import annotations

import logging
from typing import List, Optional

from cdnresolve.assets import AssetDiscoverer
from cdnresolve.cache import FailureCaches
from cdnresolve.cdn import get_cdn_style
from cdnresolve.common.logging_utils import extra_context
from cdnresolve.config import BuildConfig
from cdnresolve.constants import CdnStyle
from cdnresolve.models import Diagnostic
from cdnresolve.prober import ExtensionProber
from cdnresolve.store import VirtualStore

logger = logging.getLogger(__name__)


class BuildSession:
    """Collaborators and diagnostics for one build.

    Everything here lives for a single build except ``caches``, which the
    host may pass in again to reuse failure knowledge across builds.
    """

    def __init__(
        self,
        config: BuildConfig,
        transport,
        caches: Optional[FailureCaches] = None,
        store: Optional[VirtualStore] = None,
    ):
        self.config = config
        self.transport = transport
        self.caches = caches if caches is not None else FailureCaches()
        self.store = store if store is not None else VirtualStore()
        self.origin = config.origin
        self.root_manifest = config.root_manifest
        self.prober = ExtensionProber(transport, self.caches.extensions)
        self.assets = AssetDiscoverer(
            transport, self.store, on_warning=lambda message, url: self._record("warning", message, None, url)
        )
        self.diagnostics: List[Diagnostic] = []

    def _record(self, level: str, message: str, specifier: Optional[str], importer: Optional[str]) -> None:
        self.diagnostics.append(
            Diagnostic(level=level, message=message, specifier=specifier, importer=importer)
        )

    def warn(self, message: str, specifier: Optional[str] = None, importer: Optional[str] = None) -> None:
        """Log a recoverable problem and keep it for the bundler to report."""
        logger.warning(
            message,
            extra=extra_context(event="build_warning", component="session", specifier=specifier, importer=importer),
        )
        self._record("warning", message, specifier, importer)

    @property
    def warnings(self) -> List[Diagnostic]:
        return [d for d in self.diagnostics if d.level == "warning"]

    def is_npm_cdn(self, url: str) -> bool:
        return get_cdn_style(url, self.config.npm_cdn_hosts) == CdnStyle.NPM
