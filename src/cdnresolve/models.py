"""Data models shared by the resolution stages."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from cdnresolve.constants import Namespace
from cdnresolve.manifest.model import Manifest


class SpecifierKind(Enum):
    """Classification of a raw import string."""
    BARE = "bare"
    ABSOLUTE_URL = "absolute_url"
    SUBPATH_IMPORT = "subpath_import"
    RELATIVE = "relative"


class ResolutionMode(Enum):
    """Resolution strategy derived from a version spec."""
    EXACT = "exact"
    RANGE = "range"
    LATEST = "latest"


@dataclass(frozen=True)
class Classification:
    """Classifier output; ``builtin`` is set for ``node:`` specifiers."""
    kind: SpecifierKind
    path: str
    builtin: bool = False


@dataclass
class PackageCoordinate:
    """Package name, version (range or exact) and subpath of a bare specifier."""
    name: str
    version: str = "latest"
    subpath: str = ""

    @property
    def has_explicit_version(self) -> bool:
        return self.version != "latest"


@dataclass
class ResolveContext:
    """Importer-side state threaded into a resolve hook."""
    importer: Optional[str] = None
    namespace: Namespace = Namespace.FILE
    manifest: Optional[Manifest] = None
    url: Optional[str] = None  # URL of the importing file, for http-namespaced importers


@dataclass
class ResolutionResult:
    """Terminal output of the resolver chain for one specifier."""
    url: str
    namespace: Namespace
    side_effects: Optional[bool] = None
    manifest: Optional[Manifest] = None
    external: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "url": self.url,
            "namespace": self.namespace.value,
            "sideEffects": self.side_effects,
            "external": self.external,
            "package": (self.manifest.name if self.manifest else None),
            "version": (self.manifest.version if self.manifest else None),
        }


@dataclass
class FetchResult:
    """Downloaded content; ``content`` is None for header-only requests."""
    url: str
    content_type: Optional[str]
    content: Optional[bytes] = None


@dataclass
class Asset:
    """A sibling file referenced via ``new URL(..., import.meta.url)``."""
    path: str
    url: str
    contents: bytes

    @property
    def text(self) -> str:
        return self.contents.decode("utf-8", errors="replace")


@dataclass
class LoadResult:
    """Output of the HTTP stage load hook."""
    contents: bytes
    loader: str
    url: str
    manifest: Optional[Manifest] = None
    assets: List[Asset] = field(default_factory=list)


@dataclass
class Diagnostic:
    """A recoverable problem reported to the consuming bundler."""
    level: str
    message: str
    specifier: Optional[str] = None
    importer: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "level": self.level,
            "message": self.message,
            "specifier": self.specifier,
            "importer": self.importer,
        }
