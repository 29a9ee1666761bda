"""Regex-based import scanner for fetched JS/TS sources.

Finds the specifiers a module pulls in without parsing it. The scan
recognizes the four forms below; type-only imports are skipped since
they never reach the runtime graph.

Comments are blanked and every string literal is swapped for a numbered
placeholder before matching, so import-like text inside a string or a
comment never becomes an edge.
"""

from __future__ import annotations

import re
from typing import List, Tuple

# Strings are matched so comment markers inside them are left alone.
_STRING_OR_COMMENT_RE = re.compile(
    r"""("(?:\\.|[^"\\\n])*"|'(?:\\.|[^'\\\n])*'|`(?:\\.|[^`\\])*`)|(/\*.*?\*/|//[^\n]*)""",
    re.DOTALL,
)

# import x from 'm' / import { a, b as c } from 'm' / export * from 'm'
_FROM_RE = re.compile(
    r"""\b(?:import|export)\s+(?!type\s+[{*]|type\s+\w+\s+from\b)[\w$*{}\s,]*?\bfrom\s*(['"])(\d+)\1"""
)

# import 'm'  (side-effect)
_SIDE_EFFECT_RE = re.compile(r"""(?<![.\w$])import\s*(['"])(\d+)\1""")

# import('m') with a string literal
_DYNAMIC_RE = re.compile(r"""(?<![.\w$])import\s*\(\s*(['"])(\d+)\1\s*[,)]""")

# require('m')
_REQUIRE_RE = re.compile(r"""(?<![.\w$])require\s*\(\s*(['"])(\d+)\1\s*\)""")

_PATTERNS = (_FROM_RE, _SIDE_EFFECT_RE, _DYNAMIC_RE, _REQUIRE_RE)


def strip_comments(code: str) -> str:
    """Blank out ``//`` and ``/* */`` comments, leaving string literals intact."""
    return _STRING_OR_COMMENT_RE.sub(lambda m: m.group(1) if m.group(1) is not None else " ", code)


def _mask_strings(code: str) -> Tuple[str, List[str]]:
    """Blank comments and replace each string literal with its index.

    ``'react'`` becomes ``'0'``; the returned list maps indexes back to
    the literal's contents. Quotes are kept so the import patterns still
    see a quoted argument.
    """
    literals: List[str] = []

    def replace(match: re.Match) -> str:
        literal = match.group(1)
        if literal is None:
            return " "
        literals.append(literal[1:-1])
        quote = literal[0]
        return f"{quote}{len(literals) - 1}{quote}"

    return _STRING_OR_COMMENT_RE.sub(replace, code), literals


def scan_imports(code: str) -> List[str]:
    """Specifiers imported by ``code``, in source order, without duplicates."""
    text, literals = _mask_strings(code)
    found = []
    for pattern in _PATTERNS:
        for match in pattern.finditer(text):
            found.append((match.start(), literals[int(match.group(2))]))
    found.sort(key=lambda item: item[0])

    seen = set()
    specifiers: List[str] = []
    for _, specifier in found:
        specifier = specifier.strip()
        if specifier and specifier not in seen:
            seen.add(specifier)
            specifiers.append(specifier)
    return specifiers
