"""Negative-result caches for URLs known not to exist."""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import Iterator, Set


class FailedURLCache:
    """Append-only set of URLs whose fetch was confirmed to fail.

    Entries are only added after a real failed attempt and are never
    removed, so concurrent readers can at worst miss a very recent entry
    and issue one redundant request.
    """

    def __init__(self) -> None:
        self._urls: Set[str] = set()
        self._lock = threading.Lock()

    def add(self, url: str) -> None:
        with self._lock:
            self._urls.add(url)

    def __contains__(self, url: object) -> bool:
        return url in self._urls

    def __len__(self) -> int:
        return len(self._urls)

    def __iter__(self) -> Iterator[str]:
        with self._lock:
            return iter(sorted(self._urls))

    def stats(self) -> dict:
        """Get cache statistics."""
        return {"total_entries": len(self._urls)}


@dataclass
class FailureCaches:
    """The failure caches a resolver shares across stages.

    A host process may hand the same instance to several builds; tests
    pass a fresh one to stay isolated.
    """

    extensions: FailedURLCache = field(default_factory=FailedURLCache)
    manifests: FailedURLCache = field(default_factory=FailedURLCache)

    def stats(self) -> dict:
        return {
            "extensions": self.extensions.stats(),
            "manifests": self.manifests.stats(),
        }
