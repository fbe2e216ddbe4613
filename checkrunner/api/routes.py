"""Runner API endpoints — health, readiness, catalog, execute."""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, BackgroundTasks, HTTPException, Request

from ..errors import CatalogNotReadyError, CheckRunnerError, WorkspaceError
from ..inventory import ExecutionRequest
from ..service import RunnerService, RunnerState

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["runner"])


# ── Helpers ──────────────────────────────────────────────────────────────────


def _get_runner(request: Request) -> RunnerService:
    """Get the RunnerService from app state."""
    return request.app.state.runner  # type: ignore[no-any-return]


def _execute_in_background(runner: RunnerService, body: ExecutionRequest) -> None:
    try:
        passed = runner.execute(body)
    except CheckRunnerError:
        logger.exception("Execution %s could not be started", body.id)
        return
    logger.info("Execution %s finished (passed=%s)", body.id, passed)


# ── Endpoints ────────────────────────────────────────────────────────────────


@router.get("/health")
def health(request: Request) -> dict[str, Any]:
    """Process health; 503 once the runner loop has stopped."""
    runner = _get_runner(request)
    if runner.state == RunnerState.STOPPED:
        raise HTTPException(status_code=503, detail="Runner loop is stopped")
    return {"status": "ok", "state": runner.state.value}


@router.get("/ready")
def ready(request: Request) -> dict[str, bool]:
    return {"ready": _get_runner(request).is_catalog_ready()}


@router.get("/catalog")
def get_catalog(request: Request) -> Any:
    """Return the checks catalog built by the meta playbook."""
    runner = _get_runner(request)
    try:
        return runner.get_catalog()
    except CatalogNotReadyError as e:
        raise HTTPException(status_code=503, detail=str(e))
    except WorkspaceError as e:
        logger.error("Cannot serve the catalog: %s", e)
        raise HTTPException(status_code=500, detail=str(e))


@router.post("/catalog")
def build_catalog(request: Request) -> dict[str, bool]:
    """Rebuild the catalog synchronously."""
    runner = _get_runner(request)
    try:
        runner.build_catalog()
    except CheckRunnerError as e:
        raise HTTPException(status_code=500, detail=str(e))
    return {"ready": runner.is_catalog_ready()}


@router.post("/execute", status_code=202)
def execute(
    body: ExecutionRequest,
    request: Request,
    background_tasks: BackgroundTasks,
) -> dict[str, Any]:
    """Queue a check run against the clusters in the request body."""
    runner = _get_runner(request)
    background_tasks.add_task(_execute_in_background, runner, body)
    return {"execution_id": str(body.id), "accepted": True}
