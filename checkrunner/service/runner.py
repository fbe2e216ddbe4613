"""Runner service — owns readiness, the startup sequence and the check loop.

Lifecycle:
    service = RunnerService(settings)
    await service.start(shutdown)   # blocks until shutdown is set
    ...
    shutdown.set()

Every operation that touches the workspace (provisioning, playbook runs,
inventory writes) takes ``_workspace_lock``, so the scheduled tick and
on-demand calls from HTTP handlers never interleave.
"""

from __future__ import annotations

import asyncio
import json
import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from enum import Enum
from pathlib import Path
from typing import Any

from ..ansible import (
    ANSIBLE_HOST_FILE,
    CATALOG_DESTINATION_FILE,
    AnsibleRunner,
    new_check_runner,
    new_meta_runner,
)
from ..api_connector.client import ApiClient, ApiError, ApiOfflineError
from ..config import RunnerSettings
from ..errors import (
    CatalogNotReadyError,
    CheckRunnerError,
    MissingArtifactError,
    PlaybookError,
    RetryCancelledError,
    WorkspaceError,
)
from ..inventory import ExecutionRequest, create_inventory, render_inventory
from ..workspace import (
    BundledTemplateSource,
    DirectoryTemplateSource,
    TemplateSource,
    create_ansible_files,
)
from .backoff import BackoffPolicy, retry
from .scheduler import repeat

logger = logging.getLogger(__name__)

LOOP_NAME = "runner.ansible_playbook"


class RunnerState(str, Enum):
    INITIALIZING = "initializing"
    AWAITING_API = "awaiting_api"
    RUNNING = "running"
    STOPPED = "stopped"


class RunnerService:
    """Periodically runs the catalog + check playbooks against the fleet."""

    def __init__(
        self,
        settings: RunnerSettings,
        api_client: ApiClient | None = None,
        template_source: TemplateSource | None = None,
        backoff: BackoffPolicy | None = None,
    ) -> None:
        self.settings = settings
        self.api_client = api_client or ApiClient(
            settings.api_host, settings.api_port,
            timeout=settings.api_timeout, ping_timeout=settings.api_ping_timeout,
        )
        if template_source is None:
            if settings.templates_folder:
                template_source = DirectoryTemplateSource(settings.templates_folder)
            else:
                template_source = BundledTemplateSource()
        self.template_source = template_source
        self.backoff = backoff or BackoffPolicy(
            attempts=settings.retry_attempts,
            delay=settings.retry_delay,
            max_jitter=settings.retry_max_jitter,
            max_delay=settings.retry_max_delay,
        )

        self._workspace_lock = threading.Lock()
        self._ready_lock = threading.Lock()
        self._ready = False
        self.provisioned = threading.Event()
        self._state = RunnerState.INITIALIZING
        self._started = False
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="checkrunner")
        self._meta_runner: AnsibleRunner | None = None
        self._check_runner: AnsibleRunner | None = None

    # ── Properties ───────────────────────────────────────────────────────

    @property
    def state(self) -> RunnerState:
        return self._state

    @property
    def inventory_file(self) -> Path:
        return Path(self.settings.ansible_folder) / ANSIBLE_HOST_FILE

    @property
    def catalog_file(self) -> Path:
        return Path(self.settings.ansible_folder) / CATALOG_DESTINATION_FILE

    # ── Readiness ────────────────────────────────────────────────────────

    def is_catalog_ready(self) -> bool:
        with self._ready_lock:
            return self._ready

    def _mark_ready(self) -> None:
        with self._ready_lock:
            if not self._ready:
                logger.info("Checks catalog is ready")
            self._ready = True

    # ── On-demand operations ─────────────────────────────────────────────

    def provision(self) -> None:
        """Reset the workspace from the template source."""
        with self._workspace_lock:
            create_ansible_files(self.settings.ansible_folder, self.template_source)
        self.provisioned.set()

    def build_catalog(self) -> None:
        """Re-provision the workspace and rebuild catalog.json synchronously.

        Raises the underlying CheckRunnerError on failure; readiness is only
        ever set, never cleared.
        """
        with self._workspace_lock:
            create_ansible_files(self.settings.ansible_folder, self.template_source)
            meta_runner = new_meta_runner(self.settings)
            try:
                meta_runner.run_playbook()
            except PlaybookError:
                logger.error("Error running the catalog meta-playbook")
                raise
        self._mark_ready()

    def get_catalog(self) -> Any:
        """Return the parsed catalog.json built by the meta playbook."""
        if not self.is_catalog_ready():
            raise CatalogNotReadyError("Checks catalog has not been built yet")
        path = self.catalog_file
        try:
            return json.loads(path.read_text(encoding="utf-8"))
        except OSError as e:
            raise WorkspaceError(str(path), f"cannot read catalog: {e}") from e
        except json.JSONDecodeError as e:
            raise WorkspaceError(str(path), f"invalid catalog JSON: {e}") from e

    def execute(self, request: ExecutionRequest) -> bool:
        """Run the checks against a caller-supplied request.

        Returns the check playbook outcome. Inventory errors are raised.
        """
        with self._workspace_lock:
            check_runner = new_check_runner(self.settings)
            return self._run_checks(check_runner, request)

    # ── Pipeline ─────────────────────────────────────────────────────────

    def _run_checks(self, check_runner: AnsibleRunner, request: ExecutionRequest) -> bool:
        """Render the inventory, bind it and run the check playbook (lock held)."""
        inventory_file = self.inventory_file
        create_inventory(inventory_file, render_inventory(request))
        check_runner.set_inventory(inventory_file)

        try:
            check_runner.run_playbook()
        except PlaybookError as e:
            logger.warning("Checks for execution %s reported failures: %s", request.id, e)
            return False

        logger.info(
            "Checks for execution %s completed (%d clusters)",
            request.id, len(request.clusters),
        )
        return True

    def _ensure_runners(self) -> tuple[AnsibleRunner, AnsibleRunner]:
        """Build the meta and check runners once (lock held)."""
        if self._meta_runner is None or self._check_runner is None:
            self._meta_runner = new_meta_runner(self.settings)
            self._check_runner = new_check_runner(self.settings)
        return self._meta_runner, self._check_runner

    def prepare_runners(self) -> None:
        with self._workspace_lock:
            self._ensure_runners()

    def tick(self) -> bool:
        """One pipeline run. Returns False when a precondition stage failed.

        A failing check playbook still counts as a completed tick.
        """
        with self._workspace_lock:
            try:
                meta_runner, check_runner = self._ensure_runners()
            except MissingArtifactError as e:
                logger.error("Cannot build the ansible runners: %s", e)
                return False

            try:
                meta_runner.run_playbook()
            except CheckRunnerError as e:
                logger.error("Error running the catalog meta-playbook: %s", e)
                return False

            try:
                request = self.api_client.fetch_topology()
            except (ApiOfflineError, ApiError, ValueError) as e:
                logger.error("Error fetching the fleet topology: %s", e)
                return False

            try:
                self._run_checks(check_runner, request)
            except WorkspaceError as e:
                logger.error("Error creating the ansible inventory file: %s", e)
                return False
            except MissingArtifactError as e:
                logger.error("Error setting the ansible inventory file: %s", e)
                return False
            return True

    # ── Lifecycle ────────────────────────────────────────────────────────

    def _probe(self) -> None:
        if not self.api_client.is_web_server_up():
            raise ApiOfflineError("Web API not available")

    async def _run_loop(self, shutdown: asyncio.Event) -> None:
        loop = asyncio.get_running_loop()
        try:
            await loop.run_in_executor(self._executor, self.prepare_runners)
        except MissingArtifactError as e:
            logger.error("Cannot build the ansible runners: %s", e)
            return

        async def _tick() -> None:
            await loop.run_in_executor(self._executor, self.tick)

        await repeat(LOOP_NAME, _tick, self.settings.interval, shutdown)

    async def start(self, shutdown: asyncio.Event | None = None) -> None:
        """Provision, wait for the web API, then run the check loop.

        Returns when ``shutdown`` is set. Raises WorkspaceError or
        RetryExhaustedError when startup fails; the loop is never started then.
        """
        if self._started:
            raise RuntimeError("RunnerService.start() can only be called once")
        self._started = True
        shutdown = shutdown or asyncio.Event()
        loop = asyncio.get_running_loop()

        def _log_retry(attempt: int, err: Exception) -> None:
            logger.error("Web API probe %d/%d failed: %s", attempt, self.backoff.attempts, err)

        try:
            self._state = RunnerState.INITIALIZING
            await loop.run_in_executor(self._executor, self.provision)

            self._state = RunnerState.AWAITING_API
            try:
                await retry(
                    lambda: loop.run_in_executor(self._executor, self._probe),
                    self.backoff,
                    shutdown,
                    on_retry=_log_retry,
                )
            except RetryCancelledError:
                logger.info("Startup cancelled while waiting for the web API")
                return
            logger.info("Web API is up at %s", self.api_client.base_url)

            self._state = RunnerState.RUNNING
            logger.info("Starting the runner loop...")
            task = asyncio.create_task(self._run_loop(shutdown), name=LOOP_NAME)
            await task
            logger.info("Runner loop stopped.")
        finally:
            self._state = RunnerState.STOPPED
            self._executor.shutdown(wait=False)
