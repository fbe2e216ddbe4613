"""Thin wrapper around the ``ansible-playbook`` command."""

from __future__ import annotations

import logging
import os
import subprocess
import time
from pathlib import Path

from ..errors import MissingArtifactError, PlaybookError

logger = logging.getLogger(__name__)

ANSIBLE_PLAYBOOK_BIN = "ansible-playbook"


class AnsibleRunner:
    """One configured ansible-playbook invocation.

    Setters that take a path validate it exists so a broken workspace is
    reported before anything is executed.
    """

    def __init__(self, timeout_sec: int = 1800, binary: str = ANSIBLE_PLAYBOOK_BIN) -> None:
        self.playbook: str = ""
        self.config_file: str = ""
        self.inventory: str = ""
        self.check: bool = False
        self.envs: dict[str, str] = {}
        self.timeout_sec = timeout_sec
        self.binary = binary

    def set_playbook(self, playbook: str | Path) -> None:
        if not Path(playbook).is_file():
            raise MissingArtifactError(str(playbook))
        self.playbook = str(playbook)

    def set_inventory(self, inventory: str | Path) -> None:
        if not Path(inventory).is_file():
            raise MissingArtifactError(str(inventory))
        self.inventory = str(inventory)

    def set_config_file(self, config_file: str | Path) -> None:
        self.config_file = str(config_file)

    def set_catalog_destination(self, destination: str | Path) -> None:
        self.envs["CATALOG_DESTINATION"] = str(destination)

    def set_web_api_data(self, host: str, port: int) -> None:
        self.envs["WEB_API_HOST"] = host
        self.envs["WEB_API_PORT"] = str(port)

    def command(self) -> list[str]:
        cmd = [self.binary, self.playbook]
        if self.check:
            cmd.append("--check")
        if self.inventory:
            cmd.append(f"--inventory={self.inventory}")
        return cmd

    def environment(self) -> dict[str, str]:
        env = dict(os.environ)
        if self.config_file:
            env["ANSIBLE_CONFIG"] = self.config_file
        env.update(self.envs)
        return env

    def run_playbook(self) -> None:
        """Run the playbook. Raises PlaybookError on failure or timeout."""
        cmd = self.command()
        logger.info("Running ansible: %s", " ".join(cmd))
        t0 = time.perf_counter()
        try:
            result = subprocess.run(
                cmd,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
                timeout=self.timeout_sec,
                env=self.environment(),
                encoding="utf-8",
                errors="replace",
            )
        except subprocess.TimeoutExpired as e:
            logger.error("Ansible timed out after %ss: %s", self.timeout_sec, self.playbook)
            output = e.stdout or ""
            if isinstance(output, bytes):
                output = output.decode("utf-8", errors="replace")
            raise PlaybookError(self.playbook, -1, output) from e
        except FileNotFoundError as e:
            logger.error("Ansible binary not found: %s", self.binary)
            raise PlaybookError(self.playbook, -1, str(e)) from e
        except OSError as e:
            logger.error("Cannot execute %s: %s", self.binary, e)
            raise PlaybookError(self.playbook, -1, str(e)) from e

        duration_ms = int((time.perf_counter() - t0) * 1000)
        logger.debug("Ansible output (%dms):\n%s", duration_ms, result.stdout)
        if result.returncode != 0:
            logger.error(
                "An error occurred while running ansible: %s exited with %d",
                self.playbook, result.returncode,
            )
            raise PlaybookError(self.playbook, result.returncode, result.stdout)
