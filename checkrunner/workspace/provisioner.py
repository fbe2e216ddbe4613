"""Workspace provisioner: resets ``<folder>/ansible`` from a read-only template.

The template is reached through the ``TemplateSource`` protocol so the bundled
package data, an on-disk override and test fixtures are interchangeable.
"""

from __future__ import annotations

import logging
import shutil
from collections.abc import Iterator
from importlib import resources
from pathlib import Path
from typing import TYPE_CHECKING, Protocol

from ..errors import WorkspaceError

if TYPE_CHECKING:
    from importlib.resources.abc import Traversable

logger = logging.getLogger(__name__)

ANSIBLE_DIR = "ansible"


class TemplateSource(Protocol):
    """Read-only tree of template files."""

    def iter_entries(self) -> Iterator[tuple[str, bool]]:
        """Yield ``(relative_path, is_dir)`` with parents before children."""
        ...

    def read_bytes(self, relative_path: str) -> bytes:
        ...


class DirectoryTemplateSource:
    """Template tree rooted at an on-disk directory."""

    def __init__(self, root: str | Path) -> None:
        self.root = Path(root)

    def iter_entries(self) -> Iterator[tuple[str, bool]]:
        for entry in sorted(self.root.rglob("*")):
            yield entry.relative_to(self.root).as_posix(), entry.is_dir()

    def read_bytes(self, relative_path: str) -> bytes:
        return (self.root / relative_path).read_bytes()


class BundledTemplateSource:
    """Template tree shipped as package data under ``workspace/templates/ansible``."""

    def __init__(self, package: str = __package__) -> None:
        self._root = resources.files(package).joinpath("templates").joinpath("ansible")

    def _walk(self, node: Traversable, prefix: str) -> Iterator[tuple[str, bool]]:
        for child in sorted(node.iterdir(), key=lambda c: c.name):
            if child.name == "__pycache__":
                continue
            rel = f"{prefix}{child.name}"
            if child.is_dir():
                yield rel, True
                yield from self._walk(child, rel + "/")
            else:
                yield rel, False

    def iter_entries(self) -> Iterator[tuple[str, bool]]:
        yield from self._walk(self._root, "")

    def read_bytes(self, relative_path: str) -> bytes:
        node = self._root
        for part in relative_path.split("/"):
            node = node.joinpath(part)
        return node.read_bytes()


def create_ansible_files(folder: str | Path, source: TemplateSource | None = None) -> Path:
    """Recreate ``<folder>/ansible`` as an exact copy of the template source.

    Any previous content is removed first. Returns the ansible directory path.
    Raises WorkspaceError on any filesystem failure.
    """
    source = source or BundledTemplateSource()
    ansible_folder = Path(folder) / ANSIBLE_DIR
    logger.info("Creating the ansible file structure in %s", folder)

    try:
        if ansible_folder.is_symlink() or ansible_folder.is_file():
            ansible_folder.unlink()
        elif ansible_folder.is_dir():
            shutil.rmtree(ansible_folder)
    except OSError as e:
        logger.error("Cannot clean %s: %s", ansible_folder, e)
        raise WorkspaceError(str(ansible_folder), f"cannot remove old files: {e}") from e

    try:
        ansible_folder.mkdir(parents=True, mode=0o755)
    except OSError as e:
        raise WorkspaceError(str(ansible_folder), f"cannot create folder: {e}") from e

    for rel, is_dir in source.iter_entries():
        dest = ansible_folder / rel
        try:
            if is_dir:
                dest.mkdir(parents=True, exist_ok=True, mode=0o755)
            else:
                dest.parent.mkdir(parents=True, exist_ok=True)
                dest.write_bytes(source.read_bytes(rel))
        except OSError as e:
            logger.error("Error creating %s: %s", dest, e)
            raise WorkspaceError(str(dest), f"cannot copy template entry: {e}") from e

    logger.info("Ansible file structure successfully created")
    return ansible_folder
