"""Post-build package layout verification driven by a declarative manifest."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

from jsonschema import Draft7Validator

from .errors import FilesystemError, ManifestError
from .events import LoggingObserver, Observer, VerificationEvent
from .manifest import ManifestLoader
from .models import NormalizedConfig, Severity, Summary, VerificationResult
from .normalizer import normalize, resolve_severity
from .verifier import DEFAULT_CONCURRENCY, TreeVerifier, verify

__version__ = "1.0.0"


async def verify_manifest(
    path: str | Path,
    cwd: str | Path | None = None,
    *,
    validator: Optional[Draft7Validator] = None,
    observer: Optional[Observer] = None,
    concurrency: int = DEFAULT_CONCURRENCY,
) -> tuple[NormalizedConfig, VerificationResult]:
    """Load, normalize and verify the manifest at ``path`` relative to ``cwd``."""
    manifest = ManifestLoader(validator).load(path, cwd)
    config = normalize(manifest, cwd)
    result = await verify(config, observer, concurrency=concurrency)
    return config, result


__all__ = [
    "FilesystemError",
    "LoggingObserver",
    "ManifestError",
    "ManifestLoader",
    "NormalizedConfig",
    "Observer",
    "Severity",
    "Summary",
    "TreeVerifier",
    "VerificationEvent",
    "VerificationResult",
    "normalize",
    "resolve_severity",
    "verify",
    "verify_manifest",
]
