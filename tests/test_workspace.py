"""Tests for the workspace provisioner and template sources."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import patch

import pytest

from checkrunner.errors import WorkspaceError
from checkrunner.workspace import (
    BundledTemplateSource,
    DirectoryTemplateSource,
    create_ansible_files,
)


def _snapshot(root: Path) -> dict[str, bytes | None]:
    """Map every relative path under root to its bytes (None for dirs)."""
    return {
        p.relative_to(root).as_posix(): (None if p.is_dir() else p.read_bytes())
        for p in sorted(root.rglob("*"))
    }


class TestDirectoryTemplateSource:
    def test_parents_listed_before_children(self, template_source: DirectoryTemplateSource) -> None:
        entries = [rel for rel, _ in template_source.iter_entries()]
        assert entries.index("roles") < entries.index("roles/checks")
        assert entries.index("roles/checks/1.1.1/tasks") < entries.index(
            "roles/checks/1.1.1/tasks/main.yml"
        )

    def test_read_bytes(self, template_source: DirectoryTemplateSource) -> None:
        assert template_source.read_bytes("ansible.cfg") == b"[defaults]\n"


class TestBundledTemplateSource:
    def test_ships_required_artifacts(self) -> None:
        entries = dict(BundledTemplateSource().iter_entries())
        for name in ("check.yml", "meta.yml", "ansible.cfg"):
            assert entries.get(name) is False
        assert entries.get("roles") is True

    def test_bundled_roles_have_metadata(self) -> None:
        source = BundledTemplateSource()
        defaults = [
            rel for rel, is_dir in source.iter_entries()
            if not is_dir and rel.endswith("defaults/main.yml")
        ]
        assert defaults
        for rel in defaults:
            assert b"metadata:" in source.read_bytes(rel)


class TestCreateAnsibleFiles:
    def test_mirrors_template(
        self, tmp_path: Path, template_dir: Path, template_source: DirectoryTemplateSource,
    ) -> None:
        ansible_dir = create_ansible_files(tmp_path / "ws", template_source)
        assert ansible_dir == tmp_path / "ws" / "ansible"
        assert _snapshot(ansible_dir) == _snapshot(template_dir)

    def test_idempotent_over_stale_and_corrupted_files(
        self, tmp_path: Path, template_dir: Path, template_source: DirectoryTemplateSource,
    ) -> None:
        folder = tmp_path / "ws"
        create_ansible_files(folder, template_source)

        # Leftovers from a previous run plus a corrupted playbook
        ansible_dir = folder / "ansible"
        (ansible_dir / "ansible_hosts").write_text("[old]\nhost1\n")
        (ansible_dir / "catalog.json").write_text("[]")
        (ansible_dir / "check.yml").write_text("garbage")
        (ansible_dir / "extra" / "nested").mkdir(parents=True)

        create_ansible_files(folder, template_source)
        first = _snapshot(ansible_dir)
        create_ansible_files(folder, template_source)

        assert first == _snapshot(template_dir)
        assert _snapshot(ansible_dir) == first

    def test_replaces_regular_file_at_ansible_path(
        self, tmp_path: Path, template_dir: Path, template_source: DirectoryTemplateSource,
    ) -> None:
        (tmp_path / "ansible").write_text("not a directory")
        ansible_dir = create_ansible_files(tmp_path, template_source)
        assert ansible_dir.is_dir()
        assert _snapshot(ansible_dir) == _snapshot(template_dir)

    def test_replaces_symlink_without_touching_its_target(
        self, tmp_path: Path, template_dir: Path, template_source: DirectoryTemplateSource,
    ) -> None:
        target = tmp_path / "elsewhere"
        target.mkdir()
        (target / "precious.txt").write_text("keep")
        folder = tmp_path / "ws"
        folder.mkdir()
        (folder / "ansible").symlink_to(target, target_is_directory=True)

        ansible_dir = create_ansible_files(folder, template_source)

        assert not ansible_dir.is_symlink()
        assert _snapshot(ansible_dir) == _snapshot(template_dir)
        assert (target / "precious.txt").read_text() == "keep"

    def test_leaves_siblings_of_ansible_dir_alone(
        self, tmp_path: Path, template_source: DirectoryTemplateSource,
    ) -> None:
        folder = tmp_path / "ws"
        folder.mkdir()
        (folder / "keep.txt").write_text("mine")
        create_ansible_files(folder, template_source)
        assert (folder / "keep.txt").read_text() == "mine"

    def test_bundled_templates_by_default(self, tmp_path: Path) -> None:
        ansible_dir = create_ansible_files(tmp_path)
        assert (ansible_dir / "check.yml").is_file()
        assert (ansible_dir / "meta.yml").is_file()
        assert (ansible_dir / "ansible.cfg").is_file()

    def test_delete_failure_is_fatal(
        self, tmp_path: Path, template_source: DirectoryTemplateSource,
    ) -> None:
        (tmp_path / "ansible").mkdir()
        with patch(
            "checkrunner.workspace.provisioner.shutil.rmtree",
            side_effect=PermissionError("read-only"),
        ):
            with pytest.raises(WorkspaceError, match="read-only") as exc:
                create_ansible_files(tmp_path, template_source)
        assert exc.value.path == str(tmp_path / "ansible")

    def test_copy_failure_names_the_file(
        self, tmp_path: Path, template_source: DirectoryTemplateSource,
    ) -> None:
        with patch.object(
            DirectoryTemplateSource, "read_bytes", side_effect=OSError("gone"),
        ):
            with pytest.raises(WorkspaceError) as exc:
                create_ansible_files(tmp_path, template_source)
        assert exc.value.path.startswith(str(tmp_path / "ansible"))
