"""Download package content through a transport."""

from __future__ import annotations

import logging
import re
from typing import Type

from cdnresolve.common.logging_utils import extra_context, safe_url
from cdnresolve.errors import FetchError, TransportError
from cdnresolve.models import FetchResult

logger = logging.getLogger(__name__)

_HTML_RE = re.compile(r"text/html")
_BODY_PREVIEW = 512


async def fetch_package(
    transport,
    url: str,
    headers_only: bool = False,
    error_cls: Type[FetchError] = FetchError,
) -> FetchResult:
    """Fetch ``url`` as package content.

    A non-2xx status, an HTML content type (the usual shape of a CDN error
    page) or a transport failure raise ``error_cls``.
    """
    try:
        response = await transport.get(url, headers_only=headers_only)
    except TransportError as exc:
        raise error_cls(url, str(exc)) from exc

    final_url = response.url or url
    if not response.ok:
        body = response.text[:_BODY_PREVIEW] if response.body else None
        raise error_cls(
            url,
            f"Couldn't load {final_url} ({response.status} code)",
            status=response.status,
            body=body,
        )

    content_type = response.content_type
    if content_type and _HTML_RE.search(content_type):
        raise error_cls(
            url,
            "Can't load HTML as a package",
            status=response.status,
            body=response.text[:_BODY_PREVIEW] if response.body else None,
        )

    logger.info(
        "Fetch %s%s",
        "(test) " if headers_only else "",
        safe_url(final_url),
        extra=extra_context(event="fetch", component="fetch", outcome="success", target=safe_url(final_url)),
    )
    return FetchResult(
        url=final_url,
        content_type=content_type,
        content=None if headers_only else response.body,
    )
