"""Exception taxonomy for resolution and fetching.

Only errors that leave a specifier truly unresolvable reach the bundler as
failures; the recoverable ones are logged and recorded as build warnings.
"""

from __future__ import annotations

from typing import Optional


class CdnResolveError(Exception):
    """Base class for every error raised by this package."""


class TransportError(CdnResolveError):
    """Raised by a transport when no HTTP response could be obtained."""


class FetchError(CdnResolveError):
    """A URL could not be downloaded as package content.

    Carries the response status and body (when there was a response) so
    the failure can be diagnosed from the message alone.
    """

    def __init__(
        self,
        url: str,
        message: str,
        status: Optional[int] = None,
        body: Optional[str] = None,
    ):
        self.url = url
        self.status = status
        self.body = body
        super().__init__(f"[fetch] Failed at request ({url})\n{message}")


class ManifestFetchError(FetchError):
    """No manifest variant for a package could be fetched. Recoverable."""


class ManifestParseError(CdnResolveError, ValueError):
    """A manifest body was not a JSON object. Treated as a missing manifest."""


class ExtensionNotFoundError(FetchError):
    """No suffix variant of a URL exists on the remote host."""

    def __init__(self, url: str, first_error: FetchError):
        self.first_error = first_error
        super().__init__(
            url,
            f"No file found for any extension variant; first error:\n{first_error}",
            status=first_error.status,
            body=first_error.body,
        )


class AssetFetchError(FetchError):
    """A sibling asset referenced from fetched code could not be fetched. Recoverable."""


class ResolveError(CdnResolveError):
    """A specifier could not be resolved; names the importing file."""

    def __init__(self, specifier: str, importer: Optional[str], cause: Exception):
        self.specifier = specifier
        self.importer = importer
        self.cause = cause
        where = f' imported from "{importer}"' if importer else ""
        super().__init__(f'Could not resolve "{specifier}"{where}: {cause}')


class ConfigError(CdnResolveError, ValueError):
    """Raised when a build configuration is invalid."""
