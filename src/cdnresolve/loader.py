"""Loader hints for fetched modules."""

import posixpath
import urllib.parse
from typing import Optional

EXTENSION_LOADERS = {
    ".js": "js",
    ".mjs": "js",
    ".cjs": "js",
    ".jsx": "jsx",
    ".ts": "ts",
    ".mts": "ts",
    ".cts": "ts",
    ".tsx": "tsx",
    ".css": "css",
    ".json": "json",
    ".txt": "text",
    ".md": "text",
    ".wasm": "binary",
    ".png": "file",
    ".jpg": "file",
    ".jpeg": "file",
    ".gif": "file",
    ".svg": "file",
    ".woff": "file",
    ".woff2": "file",
}

# Loaders whose output may contain further imports
SCRIPT_LOADERS = frozenset({"js", "jsx", "ts", "tsx"})


def infer_loader(url: str, content_type: Optional[str] = None) -> str:
    """Pick a loader from the URL extension, else from the content type."""
    path = urllib.parse.urlsplit(url).path
    if path.endswith(".d.ts"):
        return "ts"
    ext = posixpath.splitext(path)[1].lower()
    if ext in EXTENSION_LOADERS:
        return EXTENSION_LOADERS[ext]

    ctype = (content_type or "").lower()
    if "typescript" in ctype:
        return "ts"
    if "javascript" in ctype or "ecmascript" in ctype:
        return "js"
    if "css" in ctype:
        return "css"
    if "json" in ctype:
        return "json"
    if "wasm" in ctype:
        return "binary"
    if ctype.startswith("text/"):
        return "text"
    return "js"
