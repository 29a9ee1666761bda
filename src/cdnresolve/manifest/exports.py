"""Conditional ``exports``/``imports`` map walking and legacy entry fields.

Follows the Node.js package entry-point rules as browser bundlers apply
them: an entry is looked up exactly, then by longest ``./dir/`` or
``./*`` pattern; conditional objects are walked in key order and the
first key present in the active condition set wins.
"""

from __future__ import annotations

import re
from typing import Any, Iterable, List, Optional, Set, Union

from cdnresolve.manifest.model import Manifest

LegacyValue = Union[str, dict]


class ExportsError(LookupError):
    """An entry is missing from, or unmatched by, an exports/imports map."""


def _to_entry(name: Optional[str], ident: str) -> str:
    if not ident or ident == "." or ident == name:
        return "."
    root = f"{name}/" if name else None
    if root and ident.startswith(root):
        ident = ident[len(root):]
    if ident.startswith("#"):
        return ident
    return ident if ident.startswith("./") else "./" + ident.lstrip("/")


def conditions_for(
    conditions: Iterable[str] = (),
    browser: bool = False,
    require: bool = False,
    unsafe: bool = False,
) -> Set[str]:
    """Active condition set; ``unsafe`` skips the implicit import/browser keys."""
    active = {"default", *conditions}
    if not unsafe:
        active.add("require" if require else "import")
        active.add("browser" if browser else "node")
    return active


def _loop(value: Any, keys: Set[str], found: Optional[List[str]] = None) -> Optional[List[str]]:
    if not value:
        return None
    if isinstance(value, str):
        if found is not None:
            found.append(value)
        return [value]
    if isinstance(value, list):
        acc: List[str] = found if found is not None else []
        for item in value:
            _loop(item, keys, acc)
        if found is None and acc:
            return list(dict.fromkeys(acc))
        return None
    if isinstance(value, dict):
        for key, target in value.items():
            if key in keys:
                return _loop(target, keys, found)
    return None


def _inject(targets: List[str], replacement: str) -> List[str]:
    out = []
    for target in targets:
        if "*" in target:
            out.append(target.replace("*", replacement))
        elif target.endswith("/"):
            out.append(target + replacement)
        else:
            out.append(target)
    return out


def _walk(name: Optional[str], mapping: dict, ident: str, keys: Set[str]) -> List[str]:
    entry = _to_entry(name, ident)
    value = mapping.get(entry)
    replacement = None

    if value is None:
        longest = None
        for key in mapping:
            if replacement is not None and longest is not None and len(key) < len(longest):
                continue
            if key.endswith("/") and entry.startswith(key):
                replacement, longest = entry[len(key):], key
            elif len(key) > 1:
                star = key.find("*", 1)
                if star != -1:
                    pattern = "^" + re.escape(key[:star]) + "(.*)" + re.escape(key[star + 1:]) + "$"
                    match = re.match(pattern, entry)
                    if match and match.group(1):
                        replacement, longest = match.group(1), key
        value = mapping.get(longest) if longest is not None else None

    if not value:
        raise ExportsError(f'Missing "{entry}" specifier in "{name}" package')
    resolved = _loop(value, keys)
    if not resolved:
        raise ExportsError(f'No known conditions for "{entry}" specifier in "{name}" package')
    if replacement:
        resolved = _inject(resolved, replacement)
    return resolved


def resolve_exports(manifest: Manifest, ident: str = ".", keys: Optional[Set[str]] = None) -> Optional[List[str]]:
    """Resolve ``ident`` through the ``exports`` map, or None when there is none."""
    mapping = manifest.exports
    if mapping is None:
        return None
    if isinstance(mapping, (str, list)):
        mapping = {".": mapping}
    elif mapping and not next(iter(mapping)).startswith("."):
        mapping = {".": mapping}
    return _walk(manifest.name, mapping, ident, keys or conditions_for())


def resolve_imports(manifest: Manifest, ident: str, keys: Optional[Set[str]] = None) -> Optional[List[str]]:
    """Resolve a ``#subpath`` through the ``imports`` map, or None when there is none."""
    mapping = manifest.imports
    if mapping is None:
        return None
    return _walk(manifest.name, mapping, ident, keys or conditions_for())


def resolve(manifest: Manifest, ident: str = ".", keys: Optional[Set[str]] = None) -> Optional[List[str]]:
    """Dispatch to ``imports`` for ``#`` entries and ``exports`` otherwise.

    Raises:
        ExportsError: When a map exists but has no match for the entry.
    """
    entry = _to_entry(manifest.name, ident)
    if entry.startswith("#"):
        return resolve_imports(manifest, entry, keys)
    if entry.startswith("."):
        return resolve_exports(manifest, entry, keys)
    return None


def legacy(
    manifest: Manifest,
    browser: Union[bool, str] = False,
    fields: Optional[Iterable[str]] = None,
) -> Optional[LegacyValue]:
    """Entry from the legacy ``browser``/``module``/``main`` style fields.

    A ``browser`` object map is returned as-is unless ``browser`` names a
    specific file to look up in it. String values are normalised to ``./``.
    """
    field_list = list(fields) if fields is not None else ["module", "main"]
    if browser and "browser" not in field_list:
        field_list.insert(0, "browser")
    browser_key = None
    if isinstance(browser, str):
        browser_key = "./" + re.sub(r"^\.?/*", "", browser)

    for field_name in field_list:
        value = manifest.get(field_name)
        if not value:
            continue
        if isinstance(value, str):
            return "./" + re.sub(r"^\.?/", "", value)
        if isinstance(value, dict) and field_name == "browser":
            if browser_key is None:
                return value
            mapped = value.get(browser_key)
            if mapped is None:
                return browser_key
            if isinstance(mapped, str):
                return "./" + re.sub(r"^\.?/", "", mapped)
            return mapped
    return None
