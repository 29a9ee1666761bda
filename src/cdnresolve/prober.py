"""Extension probing for URLs written without a definitive file suffix.

Imports such as ``./lib`` may mean ``./lib.js``, ``./lib/index.mjs`` or
``./lib.ts``; the remote host is asked for each variant in a fixed order.
"""

from __future__ import annotations

import logging
from typing import List, Optional, Tuple

from cdnresolve.cache import FailedURLCache
from cdnresolve.common.logging_utils import extra_context, safe_url
from cdnresolve.constants import Constants
from cdnresolve.errors import ExtensionNotFoundError, FetchError
from cdnresolve.fetch import fetch_package
from cdnresolve.models import FetchResult

logger = logging.getLogger(__name__)


def ending_variants(
    endings: Tuple[str, ...] = Constants.PROBE_ENDINGS,
    extensions: Tuple[str, ...] = Constants.PROBE_EXTENSIONS,
) -> List[str]:
    """Every ending x extension suffix, deduplicated, plain path first."""
    return list(dict.fromkeys(ending + ext for ending in endings for ext in extensions))


ENDING_VARIANTS = ending_variants()


class ExtensionProber:
    """Find the first suffix variant of a URL that exists."""

    def __init__(self, transport, failed: Optional[FailedURLCache] = None):
        self._transport = transport
        self._failed = failed if failed is not None else FailedURLCache()

    @property
    def failed(self) -> FailedURLCache:
        return self._failed

    async def probe(self, base_url: str, headers_only: bool = True) -> FetchResult:
        """Return the first existing variant of ``base_url``.

        Variants already known to fail are skipped, except the last one,
        which is always retried so the reported error is current.

        Raises:
            ExtensionNotFoundError: Carrying the first real fetch error.
        """
        first_error: Optional[FetchError] = None
        last = len(ENDING_VARIANTS) - 1

        for i, suffix in enumerate(ENDING_VARIANTS):
            candidate = base_url + suffix
            if candidate in self._failed and i < last:
                continue
            try:
                return await fetch_package(self._transport, candidate, headers_only=headers_only)
            except FetchError as exc:
                # Only an HTTP answer proves the file is missing.
                if exc.status is not None:
                    self._failed.add(candidate)
                if first_error is None:
                    first_error = exc

        if first_error is None:
            first_error = FetchError(base_url, "No extension variants to try")
        logger.error(
            "No extension variant found for %s",
            safe_url(base_url),
            extra=extra_context(
                event="probe",
                component="prober",
                outcome="not_found",
                target=safe_url(base_url),
                status_code=first_error.status,
            ),
        )
        raise ExtensionNotFoundError(base_url, first_error)
