"""Runner FastAPI application — wires the RunnerService into the app lifespan."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from .. import __version__
from ..config import RunnerSettings, settings
from ..errors import CheckRunnerError
from ..service import RunnerService
from .routes import router

logger = logging.getLogger(__name__)

PROVISION_WAIT_SECONDS = 30.0


def _initial_catalog_build(runner: RunnerService, wait: float) -> None:
    # start() re-provisions the workspace, which would wipe a catalog built before it
    runner.provisioned.wait(timeout=wait)
    try:
        runner.build_catalog()
    except CheckRunnerError as e:
        logger.error("Initial catalog build failed: %s", e)


def _log_runner_exit(task: asyncio.Task[None]) -> None:
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.critical("Runner service failed to start: %s", exc)


# ── App factory ──────────────────────────────────────────────────────────────


def create_app(runner_settings: RunnerSettings | None = None) -> FastAPI:
    """Create the runner FastAPI application."""
    runner_settings = runner_settings or settings

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        """Start the runner loop and the first catalog build on startup."""
        runner = RunnerService(runner_settings)
        app.state.runner = runner

        shutdown = asyncio.Event()
        loop = asyncio.get_running_loop()
        catalog_future = loop.run_in_executor(
            None, _initial_catalog_build, runner, PROVISION_WAIT_SECONDS,
        )
        runner_task = asyncio.create_task(runner.start(shutdown), name="runner-service")
        runner_task.add_done_callback(_log_runner_exit)
        logger.info(
            "Runner service started: api=%s:%s folder=%s interval=%ds",
            runner_settings.api_host,
            runner_settings.api_port,
            runner_settings.ansible_folder,
            runner_settings.interval,
        )

        yield

        shutdown.set()
        await asyncio.gather(runner_task, catalog_future, return_exceptions=True)
        logger.info("Runner service stopped")

    app = FastAPI(
        title="Check Runner",
        version=__version__,
        lifespan=lifespan,
    )
    app.include_router(router)
    return app
