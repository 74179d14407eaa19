"""CLI entrypoints for pkgverify commands."""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from pathlib import Path

from . import __version__, verify_manifest
from .errors import FilesystemError, ManifestError
from .events import LoggingObserver
from .logging import configure_logging, get_logger
from .manifest import default_manifest_path
from .report import format_summary, passed, render_markdown, write_json_report
from .schema import MANIFEST_SCHEMA
from .verifier import DEFAULT_CONCURRENCY

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_FATAL = 2


def _add_verbose_option(
    parser: argparse.ArgumentParser, *, suppress_default: bool = False
) -> None:
    kwargs: dict[str, object] = {
        "action": "store_true",
        "help": "Log every check, not only failures.",
    }
    if suppress_default:
        kwargs["default"] = argparse.SUPPRESS
    else:
        kwargs["default"] = False
    parser.add_argument(
        "-v",
        "--verbose",
        **kwargs,
    )


def _positive_int(value: str) -> int:
    number = int(value)
    if number < 1:
        raise argparse.ArgumentTypeError("must be a positive integer")
    return number


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pkgverify",
        description="Verify a built package's file layout against a declarative manifest.",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    _add_verbose_option(parser)
    subparsers = parser.add_subparsers(dest="command", required=True)

    check_parser = subparsers.add_parser(
        "check",
        help="Verify the package tree described by a manifest.",
    )
    _add_verbose_option(check_parser, suppress_default=True)
    check_parser.add_argument(
        "-m",
        "--manifest",
        default=None,
        help="Manifest path relative to --cwd (defaults to $PKGVERIFY_MANIFEST or verify.manifest.json).",
    )
    check_parser.add_argument(
        "--cwd",
        default=".",
        help="Working directory that manifest paths are resolved against.",
    )
    check_parser.add_argument(
        "--report",
        type=Path,
        default=None,
        help="Write the full result as JSON to this file.",
    )
    check_parser.add_argument(
        "--markdown",
        type=Path,
        default=None,
        help="Write a Markdown summary to this file.",
    )
    check_parser.add_argument(
        "--fail-on-warnings",
        action="store_true",
        help="Treat warnings as a failed verification.",
    )
    check_parser.add_argument(
        "--concurrency",
        type=_positive_int,
        default=DEFAULT_CONCURRENCY,
        help="Maximum number of concurrent filesystem operations.",
    )
    check_parser.add_argument(
        "--log-file",
        type=Path,
        default=None,
        help="Also write logs to this file.",
    )

    subparsers.add_parser(
        "schema",
        help="Print the manifest JSON schema.",
    )

    serve_parser = subparsers.add_parser(
        "serve",
        help="Run the verification HTTP service.",
    )
    _add_verbose_option(serve_parser, suppress_default=True)
    serve_parser.add_argument("--host", default="127.0.0.1", help="Interface to bind.")
    serve_parser.add_argument("--port", type=int, default=8000, help="Port to listen on.")

    return parser


def run_check(args: argparse.Namespace) -> int:
    """Execute ``pkgverify check`` and return the process exit code."""
    logger = get_logger("cli")
    cwd = Path(args.cwd).expanduser().resolve()
    manifest_path = args.manifest or default_manifest_path()

    config, result = asyncio.run(
        verify_manifest(manifest_path, cwd, observer=LoggingObserver(), concurrency=args.concurrency)
    )
    fail_on_warnings = bool(args.fail_on_warnings) or config.policy.fail_on_warnings

    if args.report is not None:
        report_path = write_json_report(result, args.report)
        logger.info("JSON report written to %s", report_path)
    if args.markdown is not None:
        args.markdown.parent.mkdir(parents=True, exist_ok=True)
        args.markdown.write_text(
            render_markdown(result, package_root=config.package_root, fail_on_warnings=fail_on_warnings),
            encoding="utf-8",
        )
        logger.info("Markdown summary written to %s", args.markdown)

    ok = passed(result, fail_on_warnings)
    print(f"{'PASSED' if ok else 'FAILED'}: {format_summary(result)}")
    return EXIT_OK if ok else EXIT_FAILED


def main(argv: list[str] | None = None) -> None:
    """CLI entrypoint for pkgverify commands."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    configure_logging(verbose=bool(args.verbose), log_file=getattr(args, "log_file", None))

    if args.command == "check":
        try:
            code = run_check(args)
        except ManifestError as exc:
            parser.exit(EXIT_FATAL, f"{exc}\n")
        except FilesystemError as exc:
            parser.exit(EXIT_FATAL, f"pkgverify check failed: {exc}\n")
        parser.exit(code)
    elif args.command == "schema":
        print(json.dumps(MANIFEST_SCHEMA, indent=2))
    elif args.command == "serve":
        from .service import run_service

        run_service(host=args.host, port=args.port)
    else:  # pragma: no cover - argparse enforces choices
        parser.exit(EXIT_FATAL, "Unknown command\n")


if __name__ == "__main__":
    main(sys.argv[1:])
