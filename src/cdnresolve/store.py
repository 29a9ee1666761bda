"""In-memory virtual store for fetched modules and assets."""

from __future__ import annotations

import threading
from typing import Dict, Iterator, Optional, Union


class VirtualStore:
    """Key -> bytes mapping; the last write to a key wins."""

    def __init__(self) -> None:
        self._files: Dict[str, bytes] = {}
        self._lock = threading.Lock()

    def put(self, key: str, content: Union[bytes, str]) -> None:
        data = content.encode("utf-8") if isinstance(content, str) else bytes(content)
        with self._lock:
            self._files[key] = data

    def get(self, key: str) -> Optional[bytes]:
        return self._files.get(key)

    def __contains__(self, key: object) -> bool:
        return key in self._files

    def __len__(self) -> int:
        return len(self._files)

    def keys(self) -> Iterator[str]:
        with self._lock:
            return iter(list(self._files))
