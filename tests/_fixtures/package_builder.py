"""Helper utilities for constructing throwaway package trees in tests."""

from __future__ import annotations

import asyncio
import copy
import json
import textwrap
from pathlib import Path
from typing import Any, Dict, Iterable, Mapping

from pkgverify.models import NormalizedConfig, VerificationResult
from pkgverify.normalizer import normalize
from pkgverify.verifier import verify


class PackageBuilder:
    """Writes files under ``<tmp>/pkg`` and runs verification against them."""

    def __init__(self, tmp_path: Path) -> None:
        self.cwd = tmp_path
        self.root = tmp_path / "pkg"
        self.root.mkdir()

    def write(self, files: Mapping[str, str] | Iterable[str], *, base: Path | None = None) -> None:
        """Write `path -> contents` entries (or empty files) under the package root."""
        target_root = base or self.root
        items = files.items() if isinstance(files, Mapping) else ((name, "") for name in files)
        for relative, content in items:
            path = target_root / relative
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(textwrap.dedent(content).lstrip("\n"), encoding="utf-8")

    def write_sources(self, files: Iterable[str]) -> None:
        self.write(files, base=self.cwd / "src")

    def manifest(self, **sections: Any) -> Dict[str, Any]:
        """Return a manifest rooted at the package, with ``sections`` merged in."""
        manifest: Dict[str, Any] = {
            "meta": {"manifestVersion": 1},
            "context": {"packageRoot": "pkg"},
            "policy": {"defaultSeverity": "error"},
            "expect": {},
        }
        for key, value in sections.items():
            manifest[key] = copy.deepcopy(value)
        return manifest

    def write_manifest(self, manifest: Mapping[str, Any], name: str = "verify.manifest.json") -> Path:
        path = self.cwd / name
        path.write_text(json.dumps(manifest, indent=2), encoding="utf-8")
        return path

    def normalize(self, manifest: Mapping[str, Any]) -> NormalizedConfig:
        return normalize(manifest, self.cwd)

    def verify(self, manifest: Mapping[str, Any]) -> VerificationResult:
        return asyncio.run(verify(self.normalize(manifest)))


__all__ = ["PackageBuilder"]
