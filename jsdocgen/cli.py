"""CLI entrypoints for jsdocgen commands."""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path

from .config import CONFIG_FILENAME, ConfigError
from .errors import CacheError, GenerationServiceError
from .logging import configure_logging
from .pipeline import FileStatus, RunReport
from .runtime import run_from_config


def _add_verbose_option(
    parser: argparse.ArgumentParser, *, suppress_default: bool = False
) -> None:
    kwargs: dict[str, object] = {
        "action": "store_true",
        "help": "Increase log verbosity for troubleshooting.",
    }
    kwargs["default"] = argparse.SUPPRESS if suppress_default else False
    parser.add_argument("-v", "--verbose", **kwargs)


def _add_log_file_option(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--log-file",
        type=Path,
        default=None,
        help="Also write DEBUG-level logs to this file.",
    )


def _non_negative_float(value: str) -> float:
    number = float(value)
    if number < 0:
        raise argparse.ArgumentTypeError("must not be negative")
    return number


def _positive_int(value: str) -> int:
    number = int(value)
    if number < 1:
        raise argparse.ArgumentTypeError("must be at least 1")
    return number


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="jsdocgen",
        description="Generate JSDoc comments for TypeScript and JavaScript sources.",
    )
    _add_verbose_option(parser)
    subparsers = parser.add_subparsers(dest="command", required=True)

    generate_parser = subparsers.add_parser(
        "generate",
        help="Document every uncached declaration matched by the configured globs.",
    )
    _add_verbose_option(generate_parser, suppress_default=True)
    _add_log_file_option(generate_parser)
    generate_parser.add_argument(
        "path",
        nargs="?",
        default=".",
        help="Project root containing the configuration (defaults to current directory).",
    )
    generate_parser.add_argument(
        "--config",
        default=None,
        help=f"Path to the configuration file (defaults to <path>/{CONFIG_FILENAME}).",
    )
    generate_parser.add_argument(
        "--no-cache",
        action="store_true",
        default=None,
        help="Ignore and do not update the node cache for this run.",
    )
    generate_parser.add_argument(
        "--retries",
        type=_positive_int,
        default=None,
        help="Attempts per generation call (1 means no retry).",
    )
    generate_parser.add_argument(
        "--rate-limit-ms",
        type=_non_negative_float,
        default=None,
        help="Serialize generation calls and wait this long after each success.",
    )

    serve_parser = subparsers.add_parser("serve", help="Run the HTTP service mode.")
    _add_verbose_option(serve_parser, suppress_default=True)
    _add_log_file_option(serve_parser)
    serve_parser.add_argument("--host", default="127.0.0.1", help="Interface to bind.")
    serve_parser.add_argument("--port", type=int, default=8000, help="Port to listen on.")

    return parser


def main(argv: list[str] | None = None) -> None:
    """CLI entrypoint for jsdocgen commands."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    configure_logging(verbose=bool(args.verbose), log_file=args.log_file)

    if args.command == "generate":
        config_path = Path(args.config) if args.config else Path(args.path)
        try:
            report = asyncio.run(
                run_from_config(
                    config_path,
                    disable_cache=args.no_cache,
                    retries=args.retries,
                    rate_limit_ms=args.rate_limit_ms,
                )
            )
        except ConfigError as exc:
            parser.exit(1, f"jsdocgen: configuration error: {exc}\n")
        except CacheError as exc:
            parser.exit(1, f"jsdocgen: {exc}\n")
        except GenerationServiceError as exc:
            parser.exit(1, f"jsdocgen generate failed: {exc}\n")
        print(_summarize(report))
    elif args.command == "serve":
        from .service.app import run_service

        run_service(host=args.host, port=args.port)
    else:  # pragma: no cover - argparse enforces choices
        parser.exit(1, "Unknown command\n")


def _summarize(report: RunReport) -> str:
    lines = [
        f"Documented {report.generated} node(s), {report.cached} cached, {report.failed} failed."
    ]
    for outcome in report.files:
        if outcome.status is FileStatus.UNCHANGED:
            continue
        line = f"  {_relativize(outcome.path)}: {outcome.status.value}"
        if outcome.failed:
            line += f" ({outcome.failed} failed)"
        lines.append(line)
    if report.cache_path is not None:
        lines.append(f"Cache written to {_relativize(report.cache_path)}")
    return "\n".join(lines)


def _relativize(path: Path) -> str:
    try:
        return str(path.relative_to(Path.cwd()))
    except ValueError:
        return str(path)


if __name__ == "__main__":
    main(sys.argv[1:])
