"""Reporting helpers: pass/fail decision, JSON reports, and Markdown summaries."""

from __future__ import annotations

import json
from pathlib import Path

from jinja2 import Environment, FileSystemLoader

from .models import VerificationResult

_TEMPLATES_DIR = Path(__file__).with_name("templates")
_SUMMARY_TEMPLATE = "summary.md.j2"


def passed(result: VerificationResult, fail_on_warnings: bool = False) -> bool:
    """Return True when the result should be treated as a successful gate."""
    if result.summary.errors:
        return False
    if fail_on_warnings and result.summary.warnings:
        return False
    return True


def write_json_report(result: VerificationResult, path: Path) -> Path:
    """Persist ``result`` as pretty-printed JSON, creating parent directories."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(result.to_dict(), indent=2) + "\n", encoding="utf-8")
    return path


def render_markdown(
    result: VerificationResult,
    *,
    package_root: Path | str,
    fail_on_warnings: bool = False,
) -> str:
    env = Environment(
        loader=FileSystemLoader(str(_TEMPLATES_DIR)),
        autoescape=False,
        trim_blocks=True,
        lstrip_blocks=True,
    )
    template = env.get_template(_SUMMARY_TEMPLATE)
    payload = result.to_dict()
    return template.render(
        package_root=str(package_root),
        passed=passed(result, fail_on_warnings),
        **payload,
    ).rstrip() + "\n"


def format_summary(result: VerificationResult) -> str:
    """One-line console summary of the check counts."""
    missing_files = sum(1 for check in result.files if not check.exists)
    empty_patterns = sum(1 for check in result.patterns if not check.exists)
    invalid_groups = sum(1 for check in result.at_least_one if not check.valid)
    derive_failures = sum(1 for check in result.derive if not check.exists)
    return (
        f"{result.summary.errors} error(s), {result.summary.warnings} warning(s) "
        f"[missing files: {missing_files}, empty patterns: {empty_patterns}, "
        f"unsatisfied groups: {invalid_groups}, derive failures: {derive_failures}, "
        f"unexpected files: {len(result.unexpected)}]"
    )


__all__ = ["format_summary", "passed", "render_markdown", "write_json_report"]
