"""Manifest loading (verify.manifest.json / .yml)."""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from jsonschema import Draft7Validator
from jsonschema.exceptions import ValidationError

from .errors import ManifestError
from .logging import get_logger
from .schema import build_validator

DEFAULT_MANIFEST = "verify.manifest.json"
MANIFEST_ENV_VAR = "PKGVERIFY_MANIFEST"

_JSON_SUFFIXES = {".json"}


class ManifestLoader:
    """Reads a manifest file and validates it against a caller-owned validator."""

    def __init__(self, validator: Optional[Draft7Validator] = None) -> None:
        self.validator = validator if validator is not None else build_validator()
        self.logger = get_logger("manifest")

    def load(self, path: str | Path, cwd: str | Path | None = None) -> Dict[str, Any]:
        manifest_path = Path(cwd if cwd is not None else os.getcwd()) / Path(path).expanduser()
        self.logger.debug("Loading manifest from %s", manifest_path)
        try:
            text = manifest_path.read_text(encoding="utf-8")
        except OSError as exc:
            raise ManifestError(f"Unable to read manifest {manifest_path}: {exc}") from exc

        data = _parse(text, manifest_path)
        self.validate(data)
        return data

    def validate(self, data: Any) -> None:
        """Raise ManifestError listing every schema violation in ``data``."""
        violations = [_describe(error) for error in _sorted_errors(self.validator, data)]
        if violations:
            raise ManifestError(
                "Invalid manifest:\n" + "\n".join(violations),
                violations=violations,
            )


def default_manifest_path() -> str:
    return os.environ.get(MANIFEST_ENV_VAR) or DEFAULT_MANIFEST


def _parse(text: str, path: Path) -> Any:
    if path.suffix.lower() in _JSON_SUFFIXES:
        try:
            return json.loads(text)
        except json.JSONDecodeError as exc:
            raise ManifestError(f"Failed to parse {path.name}: {exc}") from exc
    try:
        return yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ManifestError(f"Failed to parse {path.name}: {exc}") from exc


def _sorted_errors(validator: Draft7Validator, data: Any) -> List[ValidationError]:
    return sorted(
        validator.iter_errors(data),
        key=lambda error: ([str(part) for part in error.absolute_path], error.message),
    )


def _describe(error: ValidationError) -> str:
    location = "/".join(str(part) for part in error.absolute_path)
    return f"data/{location} {error.message}" if location else f"data {error.message}"


__all__ = ["DEFAULT_MANIFEST", "MANIFEST_ENV_VAR", "ManifestLoader", "default_manifest_path"]
