"""Build configuration: defaults, file loading and validation.

Configuration files are YAML or JSON. Keys follow the bundler's own
config format (``cdn``, ``alias``, ``polyfill``, ``package.json``) plus the
resolver's tunables in snake_case. Unknown keys, such as bundler-only
options, are accepted and ignored.
"""

from __future__ import annotations

import copy
import logging
import os
from dataclasses import dataclass, field, fields, replace
from typing import Any, Dict, List, Mapping, Optional

import yaml
from jsonschema import Draft7Validator

from cdnresolve.cdn import normalize_cdn
from cdnresolve.constants import Constants
from cdnresolve.errors import ConfigError
from cdnresolve.manifest.model import Manifest

logger = logging.getLogger(__name__)

_STRING_MAP = {"type": "object", "additionalProperties": {"type": "string"}}

CONFIG_SCHEMA: Dict[str, Any] = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "type": "object",
    "properties": {
        "cdn": {"type": "string", "minLength": 1},
        "alias": _STRING_MAP,
        "polyfill": {"type": "boolean"},
        "package.json": {
            "type": "object",
            "properties": {
                "name": {"type": "string"},
                "version": {"type": "string"},
                "dependencies": _STRING_MAP,
                "devDependencies": _STRING_MAP,
                "peerDependencies": _STRING_MAP,
            },
        },
        "npm_cdn_hosts": {"type": "array", "items": {"type": "string"}},
        "request_timeout": {"type": "integer", "minimum": 1},
        "max_concurrency": {"type": "integer", "minimum": 1},
        "user_agent": {"type": "string"},
        "transport": {"enum": ["aiohttp", "requests"]},
    },
}

# Accepted spellings -> canonical schema key
_KEY_ALIASES = {
    "package_json": "package.json",
    "packageJson": "package.json",
    "npmCdnHosts": "npm_cdn_hosts",
    "requestTimeout": "request_timeout",
    "maxConcurrency": "max_concurrency",
    "userAgent": "user_agent",
}


def validate_config(data: Mapping[str, Any]) -> None:
    """Validate a raw configuration mapping and raise on the first error."""
    validator = Draft7Validator(CONFIG_SCHEMA)
    errs = sorted(validator.iter_errors(data), key=lambda e: list(e.path))
    if errs:
        first = errs[0]
        path = "/".join([str(p) for p in first.path])
        raise ConfigError(f"Invalid config at '{path}': {first.message}")


@dataclass
class BuildConfig:
    """Everything a build needs to resolve and fetch modules."""

    cdn: str = Constants.DEFAULT_CDN_HOST
    alias: Dict[str, str] = field(default_factory=dict)
    polyfill: bool = False
    package_json: Dict[str, Any] = field(default_factory=lambda: copy.deepcopy(Constants.DEFAULT_PACKAGE_JSON))
    npm_cdn_hosts: List[str] = field(default_factory=list)
    request_timeout: int = Constants.REQUEST_TIMEOUT
    max_concurrency: int = Constants.MAX_CONCURRENCY
    user_agent: str = Constants.USER_AGENT
    transport: str = "aiohttp"

    @property
    def origin(self) -> str:
        """The configured CDN as a ``/``-terminated origin URL."""
        return normalize_cdn(self.cdn)

    @property
    def root_manifest(self) -> Manifest:
        return Manifest.from_dict(self.package_json)

    @classmethod
    def from_mapping(cls, data: Optional[Mapping[str, Any]]) -> "BuildConfig":
        """Build a config from a raw mapping, validating it first.

        Raises:
            ConfigError: If the mapping does not match the config schema.
        """
        if data is None:
            return cls()
        if not isinstance(data, Mapping):
            raise ConfigError("Invalid config: top-level value must be a mapping")
        canonical = {_KEY_ALIASES.get(key, key): value for key, value in data.items()}
        validate_config(canonical)

        known = {f.name for f in fields(cls)}
        kwargs: Dict[str, Any] = {}
        for key, value in canonical.items():
            attr = "package_json" if key == "package.json" else key
            if attr in known:
                kwargs[attr] = copy.deepcopy(value)
            else:
                logger.debug("Ignoring unknown config key: %s", key)
        return cls(**kwargs)

    def with_overrides(self, **overrides: Any) -> "BuildConfig":
        """Copy with every non-None override applied; overrides win over file values."""
        applied = {key: value for key, value in overrides.items() if value is not None}
        if "alias" in applied:
            applied["alias"] = {**self.alias, **applied["alias"]}
        return replace(self, **applied)


def load_config(path: Optional[str]) -> BuildConfig:
    """Load a YAML/JSON configuration file; defaults when ``path`` is None.

    Raises:
        ConfigError: If the file is missing, unparsable or invalid.
    """
    if not path:
        return BuildConfig()
    if not os.path.isfile(path):
        raise ConfigError(f"Config file not found: {path}")
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Failed to parse config {path}: {exc}") from exc
    return BuildConfig.from_mapping(data or {})


def load_package_json(path: str) -> Dict[str, Any]:
    """Read a root package.json for use as the build manifest.

    Raises:
        ConfigError: If the file is missing or not a JSON object.
    """
    if not os.path.isfile(path):
        raise ConfigError(f"package.json not found: {path}")
    with open(path, "r", encoding="utf-8") as f:
        text = f.read()
    try:
        return Manifest.from_json(text).to_dict()
    except ValueError as exc:
        raise ConfigError(f"Invalid package.json {path}: {exc}") from exc
