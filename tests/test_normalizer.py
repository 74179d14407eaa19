"""Tests for pkgverify.normalizer."""

from __future__ import annotations

from pathlib import Path

import pytest

from pkgverify.errors import ManifestError
from pkgverify.models import Severity
from pkgverify.normalizer import normalize, resolve_severity


def _manifest(**sections):
    manifest = {
        "meta": {"manifestVersion": 1},
        "context": {"packageRoot": "dist"},
        "policy": {"defaultSeverity": "error"},
        "expect": {},
    }
    manifest.update(sections)
    return manifest


def test_resolve_severity_is_case_insensitive_with_fallback() -> None:
    assert resolve_severity("ERROR", Severity.WARN) is Severity.ERROR
    assert resolve_severity("Warn", Severity.ERROR) is Severity.WARN
    assert resolve_severity(" warn ", Severity.ERROR) is Severity.ERROR
    assert resolve_severity(None, Severity.WARN) is Severity.WARN
    assert resolve_severity("bogus", Severity.WARN) is Severity.WARN
    assert resolve_severity(3, Severity.IGNORE) is Severity.IGNORE


def test_normalize_requires_package_root(tmp_path: Path) -> None:
    manifest = _manifest()
    del manifest["context"]
    with pytest.raises(ManifestError, match="packageRoot"):
        normalize(manifest, tmp_path)


def test_normalize_applies_documented_policy_defaults(tmp_path: Path) -> None:
    manifest = _manifest()
    del manifest["policy"]

    config = normalize(manifest, tmp_path)

    assert config.policy.default_severity is Severity.ERROR
    assert config.policy.unexpected_files is Severity.WARN
    assert config.policy.missing_expected is Severity.ERROR
    assert config.policy.empty_pattern is Severity.WARN
    assert config.policy.derive_failure is Severity.WARN
    assert config.policy.fail_on_warnings is False


def test_normalize_honours_policy_overrides(tmp_path: Path) -> None:
    manifest = _manifest(
        policy={
            "defaultSeverity": "warn",
            "failOnWarnings": True,
            "unexpectedFiles": "IGNORE",
            "on": {"missingExpected": "warn", "emptyPattern": "error", "deriveFailure": "nonsense"},
        }
    )

    policy = normalize(manifest, tmp_path).policy

    assert policy.default_severity is Severity.WARN
    assert policy.unexpected_files is Severity.IGNORE
    assert policy.missing_expected is Severity.WARN
    assert policy.empty_pattern is Severity.ERROR
    assert policy.derive_failure is Severity.WARN
    assert policy.fail_on_warnings is True


def test_normalize_resolves_paths_against_working_directory(tmp_path: Path) -> None:
    manifest = _manifest(
        expect={
            "files": ["./lib\\index.js", "/package.json"],
            "patterns": ["*.d.ts"],
            "atLeastOne": [["README.md", "README"]],
        }
    )

    config = normalize(manifest, tmp_path)
    root = tmp_path / "dist"

    assert config.package_root == root
    assert [item.relative for item in config.expect.files] == ["lib/index.js", "package.json"]
    assert config.expect.files[0].absolute == root / "lib" / "index.js"
    assert config.expect.patterns[0].base == root
    assert config.expect.patterns[0].regex.match("index.d.ts")
    group = config.expect.at_least_one[0]
    assert [member.relative for member in group] == ["README.md", "README"]
    assert group[1].absolute == root / "README"


def test_normalize_does_not_touch_the_filesystem(tmp_path: Path) -> None:
    manifest = _manifest(context={"packageRoot": "nowhere/at/all"}, expect={"files": ["a.txt"]})

    config = normalize(manifest, tmp_path)

    assert config.package_root == tmp_path / "nowhere" / "at" / "all"
    assert not config.package_root.exists()


def test_normalize_is_idempotent(tmp_path: Path) -> None:
    manifest = _manifest(
        expect={"files": ["a.txt"], "patterns": ["*.js"], "atLeastOne": [["b", "c"]]},
        derive={
            "sources": {"root": "src", "include": "**/*.ts"},
            "rules": [{"default": True, "mode": "js"}],
            "targets": {"js": ["{dir}/{name}.js"]},
        },
    )

    first = normalize(manifest, tmp_path)
    second = normalize(manifest, tmp_path)

    assert first.package_root == second.package_root
    assert first.policy == second.policy
    assert first.expect.files == second.expect.files
    assert [p.regex.pattern for p in first.expect.patterns] == [
        p.regex.pattern for p in second.expect.patterns
    ]
    assert first.derive is not None and second.derive is not None
    assert first.derive.rules == second.derive.rules
    assert dict(first.derive.targets) == dict(second.derive.targets)


def test_normalize_without_derive_section(tmp_path: Path) -> None:
    assert normalize(_manifest(), tmp_path).derive is None


def test_normalize_derive_defaults_rules_and_compiles_matchers(tmp_path: Path) -> None:
    manifest = _manifest(
        derive={
            "sources": {"root": "src", "include": "**/*.ts", "exclude": ["__tests__", "*.spec.ts"]},
            "rules": [{"mode": "js"}, {"match": ["./lib/a.ts"], "default": True, "mode": "cjs"}],
            "targets": {"js": ["{dir}/{name}.js"], "cjs": ["{dir}/{name}.cjs"]},
        }
    )

    derive = normalize(manifest, tmp_path).derive

    assert derive is not None
    assert derive.source_root == tmp_path / "src"
    assert derive.include.matches("lib/a.ts")
    assert derive.exclude[0].matches("__tests__/a.ts")
    assert derive.exclude[1].matches("a.spec.ts")
    assert derive.rules[0].match == ()
    assert derive.rules[0].default is False
    assert derive.rules[1].match == ("lib/a.ts",)
    assert derive.rules[1].default is True
    assert derive.targets["cjs"] == ("{dir}/{name}.cjs",)
