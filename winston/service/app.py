"""FastAPI application entrypoint for winston service mode."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any, Callable, List, Optional

from fastapi import Depends, FastAPI
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from ..auditor import AuditOutcome, AuditRequest, Auditor
from ..config import ConfigError, load_config
from ..errors import FetchError, NothingToAnalyzeError, StageError, WinstonError
from ..models import StageSelection


class AuditPayload(BaseModel):
    input: str
    force_git: bool = False
    stages: List[str] = []
    output_dir: Optional[str] = None
    rust_only: bool = False


class StageFailure(BaseModel):
    file: str
    stage: str
    error: str


class AuditResponse(BaseModel):
    status: str
    solidity_files: List[str]
    rust_files: List[str]
    artifacts: List[str]
    failures: List[StageFailure] = []


class HealthResponse(BaseModel):
    status: str


def _default_auditor() -> Auditor:
    return Auditor(load_config())


def _to_response(outcome: AuditOutcome) -> AuditResponse:
    failures = [
        StageFailure(file=str(item.item.path), stage=item.item.stage.value, error=str(item.error))
        for item in outcome.report.failures
    ]
    return AuditResponse(
        status="ok" if outcome.succeeded else "partial",
        solidity_files=[str(path) for path in outcome.file_set.solidity_files],
        rust_files=[str(path) for path in outcome.file_set.rust_files],
        artifacts=[str(path) for path in outcome.artifacts],
        failures=failures,
    )


def create_app(
    auditor_factory: Callable[[], Auditor] = _default_auditor,
) -> FastAPI:
    """Create the FastAPI application exposing winston audits."""

    app = FastAPI(title="Winston Service", version="1.0.0")

    async def get_auditor() -> Auditor:
        # One auditor per request; run state is not shared between requests.
        return auditor_factory()

    @app.get("/health", response_model=HealthResponse)
    async def health() -> HealthResponse:
        return HealthResponse(status="ok")

    @app.post("/audit", response_model=AuditResponse)
    async def audit(
        payload: AuditPayload,
        auditor: Auditor = Depends(get_auditor),
    ) -> AuditResponse:
        request = AuditRequest(
            input=payload.input,
            force_git=payload.force_git,
            selection=StageSelection.from_flags(payload.stages),
            output_dir=Path(payload.output_dir) if payload.output_dir else None,
            rust_only=payload.rust_only,
        )

        def _run_audit() -> AuditOutcome:
            return auditor.run(request)

        loop = asyncio.get_running_loop()
        outcome = await loop.run_in_executor(None, _run_audit)
        return _to_response(outcome)

    @app.exception_handler(NothingToAnalyzeError)
    async def nothing_to_analyze_handler(_: Any, exc: NothingToAnalyzeError) -> JSONResponse:
        return JSONResponse(status_code=422, content={"detail": str(exc)})

    @app.exception_handler(FetchError)
    async def fetch_error_handler(_: Any, exc: FetchError) -> JSONResponse:
        return JSONResponse(status_code=502, content={"detail": str(exc), "url": exc.url})

    @app.exception_handler(StageError)
    async def stage_error_handler(_: Any, exc: StageError) -> JSONResponse:
        return JSONResponse(status_code=500, content={"detail": str(exc), "stage": exc.stage})

    @app.exception_handler(WinstonError)
    async def winston_error_handler(_: Any, exc: WinstonError) -> JSONResponse:
        return JSONResponse(status_code=400, content={"detail": str(exc)})

    @app.exception_handler(ConfigError)
    async def config_error_handler(_: Any, exc: ConfigError) -> JSONResponse:
        return JSONResponse(status_code=400, content={"detail": str(exc)})

    @app.exception_handler(ValueError)
    async def value_error_handler(_: Any, exc: ValueError) -> JSONResponse:
        return JSONResponse(status_code=400, content={"detail": str(exc)})

    return app


def run_service(host: str = "127.0.0.1", port: int = 8000) -> None:  # pragma: no cover - integration path
    import uvicorn

    app = create_app()
    uvicorn.run(app, host=host, port=port)


__all__ = ["create_app", "run_service"]
