"""Constants used in the project."""

from enum import Enum


class ExitCodes(Enum):
    """Exit codes for the program.

    Args:
        Enum (int): Exit codes for the program.
    """

    SUCCESS = 0
    FILE_ERROR = 1
    CONNECTION_ERROR = 2
    RESOLUTION_ERROR = 3
    EXIT_WARNINGS = 4


class Namespace(Enum):
    """Routing labels attached to every resolution.

    Args:
        Enum (string): Namespace tag values.
    """

    FILE = "file"
    ALIAS = "alias"
    CDN = "cdn"
    HTTP = "http"
    EXTERNAL = "external"


class CdnStyle(Enum):
    """How a content host lays out packages.

    Args:
        Enum (string): CDN style values.
    """

    NPM = "npm"
    GITHUB = "github"
    DENO = "deno"
    OTHER = "other"


class Constants:  # pylint: disable=too-few-public-methods
    """General constants used in the project.
    Data holder for configuration constants; not intended to provide behavior.
    """

    DEFAULT_CDN_HOST = "https://unpkg.com"

    # Shorthand scheme -> origin; matched against "<scheme>:" prefixes
    CDN_SCHEMES = {
        "skypack": "https://cdn.skypack.dev",
        "esm.sh": "https://esm.sh",
        "esm": "https://esm.sh",
        "unpkg": "https://unpkg.com",
        "jsdelivr": "https://cdn.jsdelivr.net/npm",
        "esm.run": "https://cdn.jsdelivr.net/npm",
        "jsdelivr.gh": "https://cdn.jsdelivr.net/gh",
        "github": "https://raw.githubusercontent.com",
        "deno": "https://deno.land/x",
        "jsr": "https://esm.sh/jsr",
    }
    # Matched after stripping the scheme and an optional "cdn." prefix
    NPM_CDN_HOSTS = ("skypack.dev", "esm.sh", "esm.run", "jsdelivr.net/npm", "unpkg.com")
    GITHUB_CDN_HOSTS = ("jsdelivr.net/gh", "raw.githubusercontent.com")
    DENO_CDN_HOSTS = ("deno.land/x",)

    # Extension probing: path endings x extensions, deduplicated in order
    PROBE_ENDINGS = ("", "/index")
    PROBE_EXTENSIONS = ("", ".js", ".mjs", "/index.js", ".ts", ".tsx", ".cjs", ".d.ts")

    # Manifest condition sets, tried in order
    BROWSER_CONDITIONS = ("module",)
    UNSAFE_CONDITIONS = ("deno", "worker", "production")
    LEGACY_FALLBACK_FIELDS = ("unpkg", "bin")

    DEFAULT_PACKAGE_JSON = {"name": "bundled-code", "version": "0.0.0"}
    MANIFEST_FILE = "package.json"

    LOG_FORMAT = "[%(levelname)s] %(message)s"
    ENV_LOG_LEVEL = "CDNRESOLVE_LOG_LEVEL"
    REQUEST_TIMEOUT = 30  # Timeout in seconds for all HTTP requests
    HTTP_RETRY_MAX = 3
    HTTP_RETRY_BASE_DELAY_SEC = 0.3
    MAX_CONCURRENCY = 16
    USER_AGENT = "cdnresolve/0.1"
