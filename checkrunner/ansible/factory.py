"""Factories for the two preconfigured runners: catalog meta and health check."""

from __future__ import annotations

from pathlib import Path

from ..config import RunnerSettings
from .runner import AnsibleRunner

ANSIBLE_MAIN = "ansible/check.yml"
ANSIBLE_META = "ansible/meta.yml"
ANSIBLE_CONFIG_FILE = "ansible/ansible.cfg"
ANSIBLE_HOST_FILE = "ansible/ansible_hosts"
CATALOG_DESTINATION_FILE = "ansible/catalog.json"


def _path(settings: RunnerSettings, relative: str) -> Path:
    return Path(settings.ansible_folder) / relative


def new_meta_runner(settings: RunnerSettings) -> AnsibleRunner:
    """Runner that rebuilds catalog.json on the control node (no inventory)."""
    runner = AnsibleRunner(timeout_sec=settings.playbook_timeout)
    runner.set_playbook(_path(settings, ANSIBLE_META))
    runner.set_config_file(_path(settings, ANSIBLE_CONFIG_FILE))
    runner.set_catalog_destination(_path(settings, CATALOG_DESTINATION_FILE))
    return runner


def new_check_runner(settings: RunnerSettings) -> AnsibleRunner:
    """Runner for the health checks. The inventory is bound later, per tick."""
    runner = AnsibleRunner(timeout_sec=settings.playbook_timeout)
    runner.set_playbook(_path(settings, ANSIBLE_MAIN))
    runner.check = True
    runner.set_config_file(_path(settings, ANSIBLE_CONFIG_FILE))
    runner.set_web_api_data(settings.api_host, settings.api_port)
    return runner
