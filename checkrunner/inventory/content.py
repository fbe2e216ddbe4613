"""Render an ExecutionRequest into an Ansible YAML inventory.

One group per cluster (named by cluster id) with the provider and the
selected checks as group vars; one host entry per cluster host.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any

import yaml

from ..errors import WorkspaceError
from .models import Cluster, ExecutionRequest

logger = logging.getLogger(__name__)


def _cluster_group(cluster: Cluster) -> dict[str, Any]:
    hosts = {
        str(host.id): {
            "ansible_host": host.address,
            "ansible_user": host.user,
        }
        for host in cluster.hosts
    }
    return {
        "hosts": hosts,
        "vars": {
            "provider": cluster.provider,
            "selected_checks": list(cluster.checks),
        },
    }


def build_inventory(request: ExecutionRequest) -> dict[str, Any]:
    """Return the inventory as a plain dict (the structure Ansible expects)."""
    children = {str(cluster.id): _cluster_group(cluster) for cluster in request.clusters}
    return {"all": {"children": children}}


def render_inventory(request: ExecutionRequest) -> str:
    """Render the inventory file content for an execution request."""
    return yaml.safe_dump(build_inventory(request), default_flow_style=False, sort_keys=False)


def create_inventory(path: str | Path, content: str) -> None:
    """Write inventory content to ``path``, replacing whatever was there.

    The content goes to a sibling temp file first and is then renamed over the
    target, so a reader never sees a half-written inventory.
    """
    path = Path(path)
    tmp = path.with_name(path.name + ".tmp")
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp.write_text(content, encoding="utf-8")
        os.replace(tmp, path)
    except OSError as e:
        tmp.unlink(missing_ok=True)
        raise WorkspaceError(str(path), f"cannot write inventory: {e}") from e
    logger.debug("Inventory written to %s (%d bytes)", path, len(content))
