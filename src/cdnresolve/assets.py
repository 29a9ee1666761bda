"""Sibling-asset discovery in fetched code.

Workers, wasm binaries and similar files are referenced as
``new URL("./file", import.meta.url)``; they are not part of the import
graph but must ship with the output.
"""

from __future__ import annotations

import asyncio
import logging
import re
import urllib.parse
from typing import Callable, List, Optional

from cdnresolve.common.logging_utils import extra_context, safe_url
from cdnresolve.errors import AssetFetchError
from cdnresolve.fetch import fetch_package
from cdnresolve.models import Asset

logger = logging.getLogger(__name__)

# Whitespace and comments allowed between the call's tokens
_GAP = r"(?:\s+|/\*[\s\S]*?\*/|//[^\n]*\n)*"
ASSET_RE = re.compile(
    r"new\s+URL\(" + _GAP
    + r"(['\"`])((?:(?!\1)[^\n])*)\1" + _GAP + "," + _GAP
    + r"import\.meta\.url" + _GAP + r"\)"
)


def find_asset_references(code: str) -> List[str]:
    """String literals passed to ``new URL(..., import.meta.url)``, in order."""
    found = []
    for match in ASSET_RE.finditer(code):
        quote, literal = match.group(1), match.group(2)
        if quote == "`" and "${" in literal:
            continue
        found.append(literal)
    return found


class AssetDiscoverer:
    """Fetch and stage the assets a module references."""

    def __init__(self, transport, store, on_warning: Optional[Callable[[str, str], None]] = None):
        self._transport = transport
        self._store = store
        self._on_warning = on_warning

    async def _fetch_one(self, parent_url: str, literal: str, namespace: str) -> Asset:
        url = urllib.parse.urljoin(parent_url, literal)
        result = await fetch_package(self._transport, url, error_cls=AssetFetchError)
        contents = result.content or b""
        self._store.put(f"{namespace}:{result.url}", contents)
        return Asset(path=literal, url=result.url, contents=contents)

    async def discover(self, url: str, content: bytes, namespace: str) -> List[Asset]:
        """Fetch every asset referenced from ``content``.

        Failures are logged as warnings and left out of the result; the
        code path constructing the asset may never run.
        """
        code = content.decode("utf-8", errors="replace")
        literals = find_asset_references(code)
        if not literals:
            return []

        outcomes = await asyncio.gather(
            *(self._fetch_one(url, literal, namespace) for literal in literals),
            return_exceptions=True,
        )
        assets = []
        for literal, outcome in zip(literals, outcomes):
            if isinstance(outcome, AssetFetchError):
                message = f"Asset fetch failed.\n{outcome}"
                logger.warning(
                    message,
                    extra=extra_context(
                        event="asset_fetch",
                        component="assets",
                        outcome="failed",
                        target=safe_url(outcome.url),
                    ),
                )
                if self._on_warning:
                    self._on_warning(message, url)
                continue
            if isinstance(outcome, BaseException):
                raise outcome
            assets.append(outcome)
        return assets

