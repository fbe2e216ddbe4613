"""Shared test fixtures."""

from __future__ import annotations

import json
import threading
from pathlib import Path
from typing import Any
from unittest.mock import MagicMock, patch

import pytest
import yaml

from checkrunner.ansible.runner import AnsibleRunner
from checkrunner.api_connector.client import ApiClient
from checkrunner.config import RunnerSettings
from checkrunner.errors import PlaybookError
from checkrunner.inventory import ExecutionRequest
from checkrunner.service import BackoffPolicy
from checkrunner.workspace import DirectoryTemplateSource

CLUSTER_ID = "5b6f0e7a-3c0b-4f55-9a6e-1f4b3c2d1a00"
HOST_A = "0f3c2b1a-1111-4a4a-8b8b-000000000001"
HOST_B = "0f3c2b1a-2222-4a4a-8b8b-000000000002"


@pytest.fixture
def template_dir(tmp_path: Path) -> Path:
    """A minimal template tree with the files the runners expect."""
    root = tmp_path / "templates"
    (root / "roles" / "checks" / "1.1.1" / "tasks").mkdir(parents=True)
    (root / "check.yml").write_text("- hosts: all\n")
    (root / "meta.yml").write_text("- hosts: localhost\n")
    (root / "ansible.cfg").write_text("[defaults]\n")
    (root / "roles" / "checks" / "1.1.1" / "tasks" / "main.yml").write_text("---\n")
    return root


@pytest.fixture
def template_source(template_dir: Path) -> DirectoryTemplateSource:
    return DirectoryTemplateSource(template_dir)


@pytest.fixture
def runner_settings(tmp_path: Path) -> RunnerSettings:
    return RunnerSettings(
        api_host="web.example",
        api_port=4000,
        ansible_folder=str(tmp_path / "workspace"),
        interval=3600,
        retry_attempts=3,
        retry_delay=0.01,
        retry_max_jitter=0.0,
        playbook_timeout=60,
    )


@pytest.fixture
def fast_backoff() -> BackoffPolicy:
    return BackoffPolicy(attempts=3, delay=0.01, max_jitter=0.0)


def make_request(hosts: list[tuple[str, str]] | None = None) -> ExecutionRequest:
    hosts = hosts or [(HOST_A, "10.0.0.1"), (HOST_B, "10.0.0.2")]
    return ExecutionRequest.model_validate({
        "execution_id": "9d1c4a4e-6a1f-4c8e-9e52-7c0d5e3a2b10",
        "clusters": [{
            "cluster_id": CLUSTER_ID,
            "provider": "azure",
            "checks": ["1.1.1", "1.2.1"],
            "hosts": [
                {"host_id": host_id, "address": address, "user": "cloudadmin"}
                for host_id, address in hosts
            ],
        }],
    })


@pytest.fixture
def sample_request() -> ExecutionRequest:
    return make_request()


@pytest.fixture
def mock_api(sample_request: ExecutionRequest) -> MagicMock:
    """ApiClient stand-in: server up, returns the sample topology."""
    api = MagicMock(spec=ApiClient)
    api.base_url = "http://web.example:4000"
    api.is_web_server_up.return_value = True
    api.fetch_topology.return_value = sample_request
    return api


class FakePlaybooks:
    """Records ansible-playbook runs instead of spawning processes.

    The meta playbook writes a small catalog.json like the real one does.
    """

    def __init__(self) -> None:
        self.calls: list[dict[str, Any]] = []
        self.fail_meta = False
        self.fail_check = False
        self._lock = threading.Lock()

    def __call__(self, runner: AnsibleRunner) -> None:
        kind = "meta" if runner.playbook.endswith("meta.yml") else "check"
        inventory_content = None
        if runner.inventory:
            inventory_content = Path(runner.inventory).read_text()
        with self._lock:
            self.calls.append({"kind": kind, "inventory": inventory_content})

        if kind == "meta":
            if self.fail_meta:
                raise PlaybookError(runner.playbook, 2, "meta failed")
            destination = Path(runner.envs["CATALOG_DESTINATION"])
            destination.write_text(json.dumps([{"id": "1.1.1"}]))
        elif self.fail_check:
            raise PlaybookError(runner.playbook, 2, "check failed")

    def kinds(self) -> list[str]:
        with self._lock:
            return [c["kind"] for c in self.calls]


@pytest.fixture
def playbooks():
    """Patch AnsibleRunner.run_playbook with a FakePlaybooks recorder."""
    fake = FakePlaybooks()
    with patch.object(AnsibleRunner, "run_playbook", autospec=True, side_effect=fake):
        yield fake


def inventory_hosts(content: str) -> dict[str, Any]:
    """Parse a rendered inventory back into ``{group: hosts}``."""
    data = yaml.safe_load(content)
    return {group: body["hosts"] for group, body in data["all"]["children"].items()}
