"""Core data models shared across pkgverify components."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from re import Pattern
from typing import Any, Dict, Mapping, Optional, Tuple

from .paths import PathMatcher


class Severity(str, Enum):
    """Resolved policy level for a check category."""

    ERROR = "error"
    WARN = "warn"
    IGNORE = "ignore"


@dataclass(frozen=True)
class Policy:
    """Severity for every policy knob, with defaults already applied."""

    default_severity: Severity
    unexpected_files: Severity
    missing_expected: Severity
    empty_pattern: Severity
    derive_failure: Severity
    fail_on_warnings: bool = False


@dataclass(frozen=True)
class ExpectedPath:
    """A declared path in display form and resolved against the package root."""

    relative: str
    absolute: Path


@dataclass(frozen=True)
class CompiledPattern:
    """A glob from ``expect.patterns`` and the directory it is evaluated under."""

    pattern: str
    base: Path
    regex: Pattern[str]


@dataclass(frozen=True)
class Expectations:
    files: Tuple[ExpectedPath, ...] = ()
    patterns: Tuple[CompiledPattern, ...] = ()
    at_least_one: Tuple[Tuple[ExpectedPath, ...], ...] = ()


@dataclass(frozen=True)
class DeriveRule:
    """Maps source files to a target mode."""

    mode: str
    match: Tuple[str, ...] = ()
    default: bool = False


@dataclass(frozen=True)
class DeriveConfig:
    source_root: Path
    include: PathMatcher
    exclude: Tuple[PathMatcher, ...]
    rules: Tuple[DeriveRule, ...]
    targets: Mapping[str, Tuple[str, ...]]


@dataclass(frozen=True)
class NormalizedConfig:
    """Fully resolved manifest consumed by the tree verifier."""

    package_root: Path
    policy: Policy
    expect: Expectations = field(default_factory=Expectations)
    derive: Optional[DeriveConfig] = None


@dataclass(frozen=True)
class FileCheck:
    relative: str
    absolute: Path
    exists: bool
    severity: Severity


@dataclass(frozen=True)
class PatternCheck:
    pattern: str
    base: Path
    regex: Pattern[str]
    exists: bool
    matches: Tuple[str, ...]
    severity: Severity


@dataclass(frozen=True)
class GroupCheck:
    group: Tuple[FileCheck, ...]
    valid: bool
    severity: Severity


@dataclass(frozen=True)
class DeriveCheck:
    """Outcome for one derived target, or a derivation failure for a source file.

    ``failure`` is None for target probes; for failures it names the reason and
    ``target``/``absolute`` are None.
    """

    source: str
    mode: Optional[str]
    target: Optional[str]
    absolute: Optional[Path]
    exists: bool
    severity: Severity
    failure: Optional[str] = None


@dataclass(frozen=True)
class UnexpectedFile:
    relative: str
    absolute: Path
    severity: Severity


@dataclass(frozen=True)
class Summary:
    errors: int = 0
    warnings: int = 0


@dataclass(frozen=True)
class VerificationResult:
    """Final, read-only outcome of one verification run."""

    files: Tuple[FileCheck, ...] = ()
    patterns: Tuple[PatternCheck, ...] = ()
    at_least_one: Tuple[GroupCheck, ...] = ()
    derive: Tuple[DeriveCheck, ...] = ()
    unexpected: Tuple[UnexpectedFile, ...] = ()
    summary: Summary = field(default_factory=Summary)

    def to_dict(self) -> Dict[str, Any]:
        """Return the JSON-compatible report shape."""
        return {
            "files": [_file_to_dict(check) for check in self.files],
            "patterns": [
                {
                    "base": str(check.base),
                    "pattern": check.pattern,
                    "regex": check.regex.pattern,
                    "exists": check.exists,
                    "matches": list(check.matches),
                    "severity": check.severity.value,
                }
                for check in self.patterns
            ],
            "atLeastOne": [
                {
                    "group": [_file_to_dict(member) for member in check.group],
                    "valid": check.valid,
                    "severity": check.severity.value,
                }
                for check in self.at_least_one
            ],
            "derive": [
                {
                    "source": check.source,
                    "mode": check.mode,
                    "target": check.target,
                    "absolute": str(check.absolute) if check.absolute is not None else None,
                    "exists": check.exists,
                    "severity": check.severity.value,
                    "failure": check.failure,
                }
                for check in self.derive
            ],
            "unexpected": [
                {
                    "relative": item.relative,
                    "absolute": str(item.absolute),
                    "severity": item.severity.value,
                }
                for item in self.unexpected
            ],
            "summary": {"errors": self.summary.errors, "warnings": self.summary.warnings},
        }


def _file_to_dict(check: FileCheck) -> Dict[str, Any]:
    return {
        "relative": check.relative,
        "absolute": str(check.absolute),
        "exists": check.exists,
        "severity": check.severity.value,
    }
