"""cdnresolve: resolve bare module specifiers to CDN URLs and fetch them."""

__version__ = "0.1.0"

from cdnresolve.cache import FailedURLCache, FailureCaches  # noqa: E402
from cdnresolve.config import BuildConfig, load_config  # noqa: E402
from cdnresolve.errors import (  # noqa: E402
    CdnResolveError,
    ConfigError,
    ExtensionNotFoundError,
    FetchError,
    ResolveError,
)
from cdnresolve.graph import GraphWalker, ModuleGraph  # noqa: E402
from cdnresolve.models import LoadResult, ResolutionResult, ResolveContext  # noqa: E402
from cdnresolve.resolver import Resolver  # noqa: E402

__all__ = [
    "BuildConfig",
    "CdnResolveError",
    "ConfigError",
    "ExtensionNotFoundError",
    "FailedURLCache",
    "FailureCaches",
    "FetchError",
    "GraphWalker",
    "LoadResult",
    "ModuleGraph",
    "ResolutionResult",
    "ResolveContext",
    "ResolveError",
    "Resolver",
    "load_config",
]
