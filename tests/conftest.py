"""
Shared fixtures for dep-unifier tests.
"""

import logging
import textwrap
from pathlib import Path
from typing import Dict, List, Optional, Set

import pytest

from src.dep_unifier.cli_config import reset_config
from src.dep_unifier.error_handling import ManifestTooLargeError, setup_error_handling
from src.dep_unifier.filesystem import BaseFileSystem
from src.dep_unifier.structured_logging import configure_logging


class InMemoryFileSystem(BaseFileSystem):
    """A fake directory tree for exercising member resolution without disk I/O."""

    def __init__(self):
        self.files: Dict[Path, str] = {}
        self.dirs: Set[Path] = set()
        self.symlinks: Set[Path] = set()
        self.reads: List[Path] = []
        self.read_limits: List[Optional[int]] = []

    def _add_parents(self, path: Path) -> None:
        for parent in path.parents:
            self.dirs.add(parent)

    def add_file(self, path: str, content: str = "") -> Path:
        file_path = Path(path)
        self.files[file_path] = textwrap.dedent(content)
        self._add_parents(file_path)
        return file_path

    def add_dir(self, path: str) -> Path:
        dir_path = Path(path)
        self.dirs.add(dir_path)
        self._add_parents(dir_path)
        return dir_path

    def add_symlink(self, path: str) -> Path:
        link_path = Path(path)
        self.symlinks.add(link_path)
        self._add_parents(link_path)
        return link_path

    def read_text(self, path: Path, max_bytes: Optional[int] = None) -> str:
        path = Path(path)
        self.reads.append(path)
        self.read_limits.append(max_bytes)
        if path not in self.files:
            raise FileNotFoundError(2, "No such file or directory", str(path))
        content = self.files[path]
        if max_bytes is not None and len(content.encode("utf-8")) > max_bytes:
            raise ManifestTooLargeError(max_bytes, str(path))
        return content

    def list_dir(self, path: Path) -> List[Path]:
        path = Path(path)
        if path not in self.dirs:
            raise FileNotFoundError(2, "No such file or directory", str(path))
        children = set()
        for candidate in list(self.files) + list(self.dirs) + list(self.symlinks):
            if candidate.parent == path and candidate != path:
                children.add(candidate)
        return list(children)

    def is_file(self, path: Path) -> bool:
        return Path(path) in self.files

    def is_dir(self, path: Path) -> bool:
        # Links in this fake always point at directories.
        return Path(path) in self.dirs or Path(path) in self.symlinks

    def is_symlink(self, path: Path) -> bool:
        return Path(path) in self.symlinks


def write_manifest(directory: Path, content: str) -> Path:
    """Write a Cargo.toml into ``directory``, creating it if needed."""
    directory.mkdir(parents=True, exist_ok=True)
    manifest = directory / "Cargo.toml"
    manifest.write_text(textwrap.dedent(content), encoding="utf-8")
    return manifest


@pytest.fixture(autouse=True)
def isolated_config(monkeypatch, tmp_path_factory):
    """Keep user config files and environment overrides out of every test."""
    for key in (
        "DEP_UNIFIER_MANIFEST_NAME",
        "DEP_UNIFIER_FAIL_ON_DUPLICATES",
        "DEP_UNIFIER_MAX_FILE_SIZE_MB",
        "DEP_UNIFIER_LOG_LEVEL",
        "DEP_UNIFIER_OUTPUT_FORMAT",
    ):
        monkeypatch.delenv(key, raising=False)
    monkeypatch.setenv("HOME", str(tmp_path_factory.mktemp("home")))
    reset_config()
    setup_error_handling(log_level=logging.CRITICAL)
    yield
    reset_config()
    configure_logging()


@pytest.fixture
def temp_dir(tmp_path):
    """Temporary directory for workspace trees."""
    return tmp_path


@pytest.fixture
def memory_fs():
    return InMemoryFileSystem()


@pytest.fixture
def duplicated_workspace(temp_dir):
    """Workspace where member ``b`` pins serde independently of the workspace table."""
    write_manifest(
        temp_dir,
        """
        [workspace]
        members = ["a", "b"]

        [workspace.dependencies]
        serde = "1.0"
        """,
    )
    write_manifest(
        temp_dir / "a",
        """
        [package]
        name = "a"

        [dependencies]
        serde = { workspace = true }
        """,
    )
    write_manifest(
        temp_dir / "b",
        """
        [package]
        name = "b"

        [dependencies]
        serde = "1.0"
        """,
    )
    return temp_dir


@pytest.fixture
def clean_workspace(temp_dir):
    """Workspace where every member inherits serde from the workspace table."""
    write_manifest(
        temp_dir,
        """
        [workspace]
        members = ["a", "b"]

        [workspace.dependencies]
        serde = "1.0"
        """,
    )
    for member in ("a", "b"):
        write_manifest(
            temp_dir / member,
            f"""
            [package]
            name = "{member}"

            [dependencies]
            serde = {{ workspace = true }}
            """,
        )
    return temp_dir


def make_manifest_text(
    package: Optional[str] = None,
    dependencies: Optional[Dict[str, str]] = None,
) -> str:
    """Render a small member manifest; dependency values are raw TOML."""
    lines = []
    if package is not None:
        lines += ["[package]", f'name = "{package}"', ""]
    if dependencies is not None:
        lines.append("[dependencies]")
        lines += [f"{name} = {value}" for name, value in dependencies.items()]
    return "\n".join(lines) + "\n"
