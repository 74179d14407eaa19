"""Fatal error types raised by pkgverify."""

from __future__ import annotations

from pathlib import Path
from typing import Sequence


class ManifestError(RuntimeError):
    """Raised when a manifest cannot be loaded, validated, or normalized."""

    def __init__(self, message: str, violations: Sequence[str] = ()) -> None:
        super().__init__(message)
        self.violations = list(violations)


class FilesystemError(RuntimeError):
    """Raised when a directory that must be readable cannot be listed or probed."""

    def __init__(self, message: str, path: Path | str) -> None:
        super().__init__(message)
        self.path = Path(path)


__all__ = ["FilesystemError", "ManifestError"]
