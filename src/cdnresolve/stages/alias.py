"""Alias stage: user alias table and Node built-ins, before any network work."""

from __future__ import annotations

import logging
from typing import Mapping, Optional

from cdnresolve.cdn import get_pure_import_path
from cdnresolve.constants import Namespace
from cdnresolve.models import ResolutionResult, ResolveContext
from cdnresolve.specifier import is_bare_import, is_http_url, parse_package_name, strip_node_prefix

logger = logging.getLogger(__name__)


def find_alias(specifier: str, aliases: Mapping[str, str]) -> Optional[str]:
    """Name of the alias entry matching the specifier's package, if any.

    ``import 'foo/bar'`` matches ``{'foo': 'baz@5.0'}``.
    """
    if not aliases or not is_bare_import(specifier) or is_http_url(specifier):
        return None
    path = get_pure_import_path(strip_node_prefix(specifier))
    try:
        name = parse_package_name(path).name
    except ValueError:
        return None
    return name if name in aliases else None


class AliasStage:
    """Rewrite aliased packages and externalize ``node:`` built-ins."""

    name = "alias"

    def __init__(self, session, http_stage):
        self._session = session
        self._http = http_stage
        self._aliases = dict(session.config.alias)
        self._polyfill = session.config.polyfill

    def setup(self, host) -> None:
        host.on_resolve(r"^node:", self.resolve_builtin, plugin=self.name)
        host.on_resolve(r".*", self.resolve, plugin=self.name)

    async def resolve_builtin(self, specifier: str, context: ResolveContext) -> Optional[ResolutionResult]:
        """Alias a ``node:`` import, else mark it external unless polyfilling."""
        if find_alias(specifier, self._aliases):
            return await self.resolve(specifier, context)
        if not self._polyfill:
            return ResolutionResult(url=specifier, namespace=Namespace.EXTERNAL, external=True)
        return None

    async def resolve(self, specifier: str, context: ResolveContext) -> Optional[ResolutionResult]:
        name = find_alias(specifier, self._aliases)
        if name is None:
            return None
        target = self._aliases[name]
        logger.debug("Aliasing %s -> %s", specifier, target)
        return await self._http.resolve(target, context)
