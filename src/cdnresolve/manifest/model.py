"""Manifest record: a package.json with explicit, type-checked field access."""

from __future__ import annotations

import copy
import json
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional

from cdnresolve.errors import ManifestParseError

DEPENDENCY_FIELDS = ("dependencies", "devDependencies", "peerDependencies")


def deep_assign(target: Dict[str, Any], *sources: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
    """Recursively merge ``sources`` into ``target``; later sources win.

    Nested mappings are merged key by key, every other value is replaced.
    ``None`` sources are skipped.
    """
    for source in sources:
        if not source:
            continue
        for key, value in source.items():
            current = target.get(key)
            if isinstance(value, Mapping) and isinstance(current, dict):
                deep_assign(current, value)
            elif isinstance(value, Mapping):
                target[key] = deep_assign({}, value)
            else:
                target[key] = copy.deepcopy(value)
    return target


def _string_map(value: Any) -> Dict[str, str]:
    if not isinstance(value, Mapping):
        return {}
    return {str(k): v for k, v in value.items() if isinstance(v, str)}


@dataclass(frozen=True)
class Manifest:
    """Interpreted package descriptor.

    The raw JSON object is kept as-is; accessors check the type of each
    field before returning it, so a malformed manifest degrades to
    "field absent" instead of raising halfway through resolution.
    """

    data: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_json(cls, text: str) -> "Manifest":
        """Parse a manifest body.

        Raises:
            ManifestParseError: If the body is not a JSON object.
        """
        try:
            parsed = json.loads(text)
        except (TypeError, ValueError) as exc:
            raise ManifestParseError(f"Invalid package.json: {exc}") from exc
        if not isinstance(parsed, dict):
            raise ManifestParseError("Invalid package.json: top-level value is not an object")
        return cls(parsed)

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> "Manifest":
        return cls(deep_assign({}, data) if data else {})

    def get(self, key: str) -> Any:
        return self.data.get(key)

    def has(self, key: str) -> bool:
        return key in self.data

    def __bool__(self) -> bool:
        return bool(self.data)

    @property
    def name(self) -> Optional[str]:
        value = self.data.get("name")
        return value if isinstance(value, str) else None

    @property
    def version(self) -> Optional[str]:
        value = self.data.get("version")
        return value if isinstance(value, str) and value else None

    @property
    def exports(self) -> Any:
        value = self.data.get("exports")
        return value if isinstance(value, (str, list, dict)) else None

    @property
    def imports(self) -> Optional[Dict[str, Any]]:
        value = self.data.get("imports")
        return value if isinstance(value, dict) else None

    @property
    def side_effects(self) -> Optional[bool]:
        """``sideEffects`` when it is a plain boolean, else None."""
        value = self.data.get("sideEffects")
        return value if isinstance(value, bool) else None

    @property
    def dependencies(self) -> Dict[str, str]:
        return _string_map(self.data.get("dependencies"))

    @property
    def dev_dependencies(self) -> Dict[str, str]:
        return _string_map(self.data.get("devDependencies"))

    @property
    def peer_dependencies(self) -> Dict[str, str]:
        return _string_map(self.data.get("peerDependencies"))

    def has_dependency_lists(self) -> bool:
        return any(key in self.data for key in DEPENDENCY_FIELDS)

    def without_side_effects(self) -> "Manifest":
        data = deep_assign({}, self.data)
        data.pop("sideEffects", None)
        return Manifest(data)

    def merged(self, *others: Optional[Mapping[str, Any]]) -> "Manifest":
        """Return a new manifest with ``others`` deep-merged over this one."""
        return Manifest(deep_assign(deep_assign({}, self.data), *others))

    def with_peer_dependencies(self, peers: Mapping[str, str]) -> "Manifest":
        data = deep_assign({}, self.data)
        data["peerDependencies"] = dict(peers)
        return Manifest(data)

    def to_dict(self) -> Dict[str, Any]:
        return deep_assign({}, self.data)
