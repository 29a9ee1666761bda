"""Command-line interface: resolve specifiers or walk a module graph."""

import argparse
import asyncio
import json
import logging
import sys
from typing import Any, Dict, List, Optional

from cdnresolve import __version__
from cdnresolve.common.logging_utils import configure_logging, extra_context
from cdnresolve.config import BuildConfig, load_config, load_package_json
from cdnresolve.constants import ExitCodes
from cdnresolve.errors import ConfigError, ResolveError, TransportError
from cdnresolve.graph import GraphWalker
from cdnresolve.resolver import Resolver

logger = logging.getLogger(__name__)


def _alias_pair(value: str):
    name, sep, target = value.partition("=")
    if not sep or not name or not target:
        raise argparse.ArgumentTypeError(f"expected NAME=SPEC, got {value!r}")
    return name, target


def _add_common_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("-c", "--config",
                        dest="CONFIG",
                        help="Path to a YAML or JSON build config",
                        action="store",
                        type=str)
    parser.add_argument("--cdn",
                        dest="CDN",
                        help="CDN host or shorthand, e.g. https://unpkg.com, esm.sh, skypack",
                        action="store",
                        type=str)
    parser.add_argument("--alias",
                        dest="ALIAS",
                        help="Replace a package with another specifier (repeatable), e.g. react=preact/compat",
                        action="append",
                        type=_alias_pair,
                        default=[])
    parser.add_argument("--polyfill",
                        dest="POLYFILL",
                        help="Resolve node: built-ins instead of marking them external",
                        action="store_true",
                        default=None)
    parser.add_argument("--package-json",
                        dest="PACKAGE_JSON",
                        help="Root package.json whose dependency versions pin bare imports",
                        action="store",
                        type=str)
    parser.add_argument("--transport",
                        dest="TRANSPORT",
                        help="HTTP client to use",
                        action="store",
                        type=str,
                        choices=["aiohttp", "requests"])
    parser.add_argument("-o", "--output",
                        dest="OUTPUT",
                        help="Write JSON output to this file instead of stdout",
                        action="store",
                        type=str)
    parser.add_argument("--loglevel",
                        dest="LOG_LEVEL",
                        help="Set the logging level",
                        action="store",
                        type=str,
                        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"])
    parser.add_argument("--logfile",
                        dest="LOG_FILE",
                        help="Log output file",
                        action="store",
                        type=str)
    parser.add_argument("--error-on-warnings",
                        dest="ERROR_ON_WARNINGS",
                        help="Exit with a non-zero status code if warnings are present.",
                        action="store_true")


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parses the arguments passed to the program."""
    parser = argparse.ArgumentParser(
        prog="cdnresolve",
        description="Resolve bare module specifiers to CDN URLs",
        add_help=True,
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    sub = parser.add_subparsers(dest="COMMAND", required=True)

    resolve_parser = sub.add_parser("resolve", help="Resolve specifiers and print the results")
    resolve_parser.add_argument("SPECIFIERS", nargs="+", help="Module specifiers, e.g. react lodash/debounce")
    _add_common_arguments(resolve_parser)

    graph_parser = sub.add_parser("graph", help="Walk the import graph reachable from entry specifiers")
    graph_parser.add_argument("ENTRIES", nargs="+", help="Entry specifiers or URLs")
    graph_parser.add_argument("--max-concurrency",
                              dest="MAX_CONCURRENCY",
                              help="Maximum in-flight resolutions",
                              action="store",
                              type=int)
    _add_common_arguments(graph_parser)

    return parser.parse_args(argv)


def build_config(args: argparse.Namespace) -> BuildConfig:
    """Load the config file (if any) and apply CLI overrides on top.

    Raises:
        ConfigError: If the config file or package.json is invalid.
    """
    config = load_config(args.CONFIG)
    package_json = load_package_json(args.PACKAGE_JSON) if args.PACKAGE_JSON else None
    return config.with_overrides(
        cdn=args.CDN,
        alias=dict(args.ALIAS) if args.ALIAS else None,
        polyfill=args.POLYFILL,
        package_json=package_json,
        transport=args.TRANSPORT,
        max_concurrency=getattr(args, "MAX_CONCURRENCY", None),
    )


def _is_connection_error(exc: BaseException) -> bool:
    seen = set()
    current: Optional[BaseException] = exc
    while current is not None and id(current) not in seen:
        if isinstance(current, TransportError):
            return True
        seen.add(id(current))
        current = (
            getattr(current, "first_error", None)
            or getattr(current, "cause", None)
            or current.__cause__
        )
    return False


def _failure_code(errors: List[ResolveError]) -> int:
    if errors and all(_is_connection_error(e) for e in errors):
        return ExitCodes.CONNECTION_ERROR.value
    return ExitCodes.RESOLUTION_ERROR.value


async def _run_resolve(config: BuildConfig, specifiers: List[str]):
    results: List[Dict[str, Any]] = []
    errors: List[ResolveError] = []
    async with Resolver(config) as resolver:
        for specifier in specifiers:
            try:
                result = await resolver.resolve(specifier)
            except ResolveError as exc:
                logger.error(str(exc))
                errors.append(exc)
                results.append({"specifier": specifier, "error": str(exc)})
                continue
            results.append({"specifier": specifier, **result.to_dict()})
        warnings = [d.to_dict() for d in resolver.diagnostics]
    return {"results": results, "warnings": warnings}, errors, bool(warnings)


async def _run_graph(config: BuildConfig, entries: List[str], max_concurrency: Optional[int]):
    async with Resolver(config) as resolver:
        graph = await GraphWalker(resolver, max_concurrency=max_concurrency).walk(entries)
    for exc in graph.errors:
        logger.error(str(exc))
    return graph.to_dict(), graph.errors, bool(graph.warnings)


def write_output(data: Dict[str, Any], path: Optional[str]) -> None:
    """Print JSON to stdout, or write it to ``path``.

    Raises:
        OSError: If the output file cannot be written.
    """
    text = json.dumps(data, ensure_ascii=False, indent=4)
    if not path:
        print(text)
        return
    with open(path, "w", encoding="utf-8") as file:
        file.write(text)
    logger.info("JSON file has been successfully exported at: %s", path)


def main(argv: Optional[List[str]] = None) -> int:
    """Main function of the program; returns the process exit code."""
    args = parse_args(argv)
    configure_logging(args.LOG_LEVEL, args.LOG_FILE)

    try:
        config = build_config(args)
    except ConfigError as exc:
        logger.error(str(exc), extra=extra_context(event="config_error", component="cli"))
        return ExitCodes.FILE_ERROR.value

    if args.COMMAND == "resolve":
        data, errors, has_warnings = asyncio.run(_run_resolve(config, args.SPECIFIERS))
    else:
        data, errors, has_warnings = asyncio.run(_run_graph(config, args.ENTRIES, args.MAX_CONCURRENCY))

    try:
        write_output(data, args.OUTPUT)
    except OSError as exc:
        logger.error("JSON file couldn't be written to disk: %s", exc)
        return ExitCodes.FILE_ERROR.value

    if errors:
        return _failure_code(errors)
    if has_warnings:
        logger.warning("One or more warnings were reported.")
        if args.ERROR_ON_WARNINGS:
            logger.error("Warnings present, exiting with non-zero status code.")
            return ExitCodes.EXIT_WARNINGS.value
    return ExitCodes.SUCCESS.value


if __name__ == "__main__":
    sys.exit(main())
