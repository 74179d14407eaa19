"""Tests for pkgverify.manifest and pkgverify.schema."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from pkgverify.errors import ManifestError
from pkgverify.manifest import DEFAULT_MANIFEST, MANIFEST_ENV_VAR, ManifestLoader, default_manifest_path
from pkgverify.schema import MANIFEST_SCHEMA, build_validator

_VALID = {
    "meta": {"manifestVersion": 1},
    "context": {"packageRoot": "dist"},
    "policy": {"defaultSeverity": "ERROR", "unexpectedFiles": "warn", "on": {"emptyPattern": "Ignore"}},
    "expect": {"files": ["index.js"], "patterns": ["*.d.ts"], "atLeastOne": [["README.md", "README"]]},
    "derive": {
        "sources": {"root": "src", "include": "**/*.ts", "exclude": ["__tests__"]},
        "rules": [{"default": True, "mode": "js"}],
        "targets": {"js": ["{dir}/{name}.js"]},
    },
}


def test_load_json_manifest_relative_to_cwd(tmp_path: Path) -> None:
    (tmp_path / "verify.manifest.json").write_text(json.dumps(_VALID), encoding="utf-8")

    manifest = ManifestLoader().load("verify.manifest.json", tmp_path)

    assert manifest == _VALID


def test_load_yaml_manifest(tmp_path: Path) -> None:
    (tmp_path / "verify.yml").write_text(
        """
meta:
  manifestVersion: 1
context:
  packageRoot: dist
policy:
  defaultSeverity: warn
expect:
  files:
    - index.js
  atLeastOne:
    - [README.md, README]
""",
        encoding="utf-8",
    )

    manifest = ManifestLoader().load("verify.yml", tmp_path)

    assert manifest["context"]["packageRoot"] == "dist"
    assert manifest["expect"]["atLeastOne"] == [["README.md", "README"]]


def test_invalid_manifest_lists_every_violation(tmp_path: Path) -> None:
    broken = {
        "meta": {"manifestVersion": 2},
        "policy": {"defaultSeverity": "loud"},
        "expect": {"files": "index.js"},
    }
    (tmp_path / "verify.manifest.json").write_text(json.dumps(broken), encoding="utf-8")

    with pytest.raises(ManifestError) as excinfo:
        ManifestLoader().load("verify.manifest.json", tmp_path)

    violations = excinfo.value.violations
    assert len(violations) == 4
    assert any("context" in violation for violation in violations)
    assert any(violation.startswith("data/meta/manifestVersion") for violation in violations)
    assert any(violation.startswith("data/policy/defaultSeverity") for violation in violations)
    assert any(violation.startswith("data/expect/files") for violation in violations)
    assert str(excinfo.value).startswith("Invalid manifest:")


def test_unparseable_manifest_raises_manifest_error(tmp_path: Path) -> None:
    (tmp_path / "verify.manifest.json").write_text("{not json", encoding="utf-8")

    with pytest.raises(ManifestError, match="Failed to parse"):
        ManifestLoader().load("verify.manifest.json", tmp_path)


def test_missing_manifest_raises_manifest_error(tmp_path: Path) -> None:
    with pytest.raises(ManifestError, match="Unable to read manifest"):
        ManifestLoader().load("absent.json", tmp_path)


def test_loader_uses_the_validator_it_is_given(tmp_path: Path) -> None:
    (tmp_path / "loose.json").write_text(json.dumps({"context": {"packageRoot": "x"}}), encoding="utf-8")
    loose = build_validator({"type": "object"})

    manifest = ManifestLoader(loose).load("loose.json", tmp_path)

    assert manifest == {"context": {"packageRoot": "x"}}
    with pytest.raises(ManifestError):
        ManifestLoader().load("loose.json", tmp_path)


def test_build_validator_does_not_share_schema_state() -> None:
    validator = build_validator()
    validator.schema["required"].append("extra")

    assert "extra" not in MANIFEST_SCHEMA["required"]
    assert build_validator().is_valid(_VALID)


def test_default_manifest_path_honours_environment(monkeypatch) -> None:
    monkeypatch.delenv(MANIFEST_ENV_VAR, raising=False)
    assert default_manifest_path() == DEFAULT_MANIFEST

    monkeypatch.setenv(MANIFEST_ENV_VAR, "release/verify.yml")
    assert default_manifest_path() == "release/verify.yml"
