"""Shared fixtures: an in-memory transport standing in for the CDN."""

import json
import logging

import pytest

from cdnresolve.cache import FailureCaches
from cdnresolve.common.http_client import TransportResponse
from cdnresolve.config import BuildConfig
from cdnresolve.resolver import Resolver

_CONTENT_TYPES = {
    ".json": "application/json",
    ".css": "text/css",
    ".wasm": "application/wasm",
}


class StubTransport:
    """URL -> canned response map that records every request.

    Unknown URLs answer 404; a route holding an exception raises it, the
    way a real transport reports connection failures.
    """

    def __init__(self):
        self.routes = {}
        self.calls = []
        self.closed = False

    def add(self, url, body=b"", status=200, content_type=None):
        if content_type is None:
            ext = url[url.rfind("."):] if "." in url.rsplit("/", 1)[-1] else ""
            content_type = _CONTENT_TYPES.get(ext, "application/javascript")
        if isinstance(body, str):
            body = body.encode("utf-8")
        self.routes[url] = (status, {"content-type": content_type}, body)
        return self

    def add_json(self, url, data, status=200):
        return self.add(url, json.dumps(data), status=status, content_type="application/json")

    def fail(self, url, exc):
        self.routes[url] = exc
        return self

    async def get(self, url, *, headers_only=False, headers=None):
        self.calls.append((url, headers_only))
        route = self.routes.get(url)
        if route is None:
            return TransportResponse(404, url, {"content-type": "text/plain"}, b"Not found")
        if isinstance(route, Exception):
            raise route
        status, response_headers, body = route
        return TransportResponse(status, url, dict(response_headers), b"" if headers_only else body)

    async def close(self):
        self.closed = True

    @property
    def urls(self):
        return [url for url, _ in self.calls]


@pytest.fixture
def transport():
    """Fresh stub transport per test."""
    return StubTransport()


@pytest.fixture
def caches():
    """Isolated failure caches per test."""
    return FailureCaches()


@pytest.fixture
def make_resolver(transport, caches):
    """Factory building a Resolver over the stub transport."""

    def _make(**config):
        return Resolver(BuildConfig.from_mapping(config), transport=transport, caches=caches)

    return _make


@pytest.fixture
def restore_logging():
    """Undo configure_logging's changes to the root logger."""
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield
    for handler in list(root.handlers):
        root.removeHandler(handler)
    for handler in handlers:
        root.addHandler(handler)
    root.setLevel(level)
