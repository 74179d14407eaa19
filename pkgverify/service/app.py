"""FastAPI application entrypoint for pkgverify service mode."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Callable, Dict, Optional

import uvicorn
from fastapi import FastAPI
from fastapi.responses import JSONResponse
from jsonschema import Draft7Validator
from pydantic import BaseModel

from .. import __version__, verify_manifest
from ..errors import FilesystemError, ManifestError
from ..events import LoggingObserver
from ..manifest import DEFAULT_MANIFEST
from ..report import passed
from ..schema import build_validator
from ..verifier import DEFAULT_CONCURRENCY


class VerifyRequest(BaseModel):
    manifest_path: str = DEFAULT_MANIFEST
    cwd: Optional[str] = None
    fail_on_warnings: bool = False


class VerifyResponse(BaseModel):
    passed: bool
    package_root: str
    result: Dict[str, Any]


class HealthResponse(BaseModel):
    status: str


def create_app(
    validator_factory: Callable[[], Draft7Validator] = build_validator,
    *,
    concurrency: int = DEFAULT_CONCURRENCY,
) -> FastAPI:
    """Create the FastAPI application exposing manifest verification."""

    app = FastAPI(title="pkgverify service", version=__version__)
    validator = validator_factory()

    @app.get("/health", response_model=HealthResponse)
    async def health() -> HealthResponse:
        return HealthResponse(status="ok")

    @app.post("/verify", response_model=VerifyResponse)
    async def verify_package(payload: VerifyRequest) -> VerifyResponse:
        cwd = Path(payload.cwd).expanduser().resolve() if payload.cwd else Path.cwd()
        config, result = await verify_manifest(
            payload.manifest_path,
            cwd,
            validator=validator,
            observer=LoggingObserver(),
            concurrency=concurrency,
        )
        fail_on_warnings = payload.fail_on_warnings or config.policy.fail_on_warnings
        return VerifyResponse(
            passed=passed(result, fail_on_warnings),
            package_root=str(config.package_root),
            result=result.to_dict(),
        )

    @app.exception_handler(ManifestError)
    async def manifest_error_handler(_: Any, exc: ManifestError) -> JSONResponse:
        return JSONResponse(
            status_code=422,
            content={"detail": str(exc), "violations": exc.violations},
        )

    @app.exception_handler(FilesystemError)
    async def filesystem_error_handler(_: Any, exc: FilesystemError) -> JSONResponse:
        return JSONResponse(status_code=404, content={"detail": str(exc), "path": str(exc.path)})

    return app


def run_service(host: str = "127.0.0.1", port: int = 8000) -> None:  # pragma: no cover - integration path
    uvicorn.run(create_app(), host=host, port=port)
