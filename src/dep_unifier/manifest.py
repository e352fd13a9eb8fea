"""
Manifest model, parser and loader.

A manifest is the ``Cargo.toml`` file describing a package, a workspace root,
or both. Only the keys needed for duplicate analysis are decoded; everything
else in the document is ignored.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import toml

from .cli_config import get_config
from .dependency import Dependency, DetailedDependency, SimpleDependency
from .error_handling import (
    ManifestIOError,
    ManifestParseError,
    ManifestTooLargeError,
    log_filesystem_error,
    log_parsing_error,
)
from .filesystem import BaseFileSystem, get_local_filesystem
from .structured_logging import log_manifest_loaded

DependencyTable = Dict[str, Dependency]


@dataclass(frozen=True)
class Package:
    """Identity of a single buildable unit."""

    name: str


@dataclass(frozen=True)
class Workspace:
    """The ``[workspace]`` section of a root manifest."""

    members: List[str] = field(default_factory=list)
    dependencies: Optional[DependencyTable] = None


@dataclass(frozen=True)
class Manifest:
    """A parsed manifest document."""

    workspace: Optional[Workspace] = None
    package: Optional[Package] = None
    dependencies: Optional[DependencyTable] = None
    source: Optional[str] = None


def _require_table(value: Any, key: str, source: Optional[str]) -> Dict[str, Any]:
    if not isinstance(value, dict):
        raise ManifestParseError(
            f"Expected '{key}' to be a table, found {type(value).__name__}", source
        )
    return value


def _decode_dependency(
    name: str, value: Any, key: str, source: Optional[str]
) -> Dependency:
    if isinstance(value, str):
        return SimpleDependency(value)
    if isinstance(value, dict):
        return DetailedDependency(value)
    raise ManifestParseError(
        f"Dependency '{key}.{name}' must be a version string or a table, "
        f"found {type(value).__name__}",
        source,
    )


def _decode_dependency_table(
    value: Any, key: str, source: Optional[str]
) -> DependencyTable:
    table = _require_table(value, key, source)
    return {
        name: _decode_dependency(name, entry, key, source)
        for name, entry in table.items()
    }


def _decode_workspace(value: Any, source: Optional[str]) -> Workspace:
    table = _require_table(value, "workspace", source)

    members = table.get("members", [])
    if not isinstance(members, list) or not all(
        isinstance(member, str) for member in members
    ):
        raise ManifestParseError(
            "Expected 'workspace.members' to be a list of strings", source
        )

    dependencies = None
    if "dependencies" in table:
        dependencies = _decode_dependency_table(
            table["dependencies"], "workspace.dependencies", source
        )

    return Workspace(members=list(members), dependencies=dependencies)


def _decode_package(value: Any, source: Optional[str]) -> Package:
    table = _require_table(value, "package", source)
    name = table.get("name")
    if not isinstance(name, str):
        raise ManifestParseError("Expected 'package.name' to be a string", source)
    return Package(name=name)


def parse_manifest(content: str, source: Optional[str] = None) -> Manifest:
    """
    Parse manifest text into a Manifest.

    Args:
        content: Raw TOML text
        source: Where the text came from, used in error messages

    Returns:
        Manifest: The decoded document

    Raises:
        ManifestParseError: If the text is not valid TOML or a recognized
            key has the wrong type
    """
    try:
        data = toml.loads(content)
    except toml.TomlDecodeError as e:
        log_parsing_error(
            f"Invalid TOML format: {e}",
            "manifest",
            "parse_manifest",
            file_path=source,
            exception=e,
        )
        raise ManifestParseError(f"Invalid TOML format: {e}", source) from e

    try:
        workspace = (
            _decode_workspace(data["workspace"], source)
            if "workspace" in data
            else None
        )
        package = _decode_package(data["package"], source) if "package" in data else None
        dependencies = (
            _decode_dependency_table(data["dependencies"], "dependencies", source)
            if "dependencies" in data
            else None
        )
    except ManifestParseError as e:
        log_parsing_error(e.message, "manifest", "parse_manifest", file_path=source)
        raise

    return Manifest(
        workspace=workspace,
        package=package,
        dependencies=dependencies,
        source=source,
    )


def load_manifest(
    path: Path,
    filesystem: Optional[BaseFileSystem] = None,
    max_file_size_bytes: Optional[int] = None,
) -> Manifest:
    """
    Read a manifest from disk and parse it.

    Args:
        path: Manifest file to read
        filesystem: Filesystem to read from (local by default)
        max_file_size_bytes: Size limit (configured limit by default)

    Raises:
        ManifestIOError: If the file cannot be read or is too large
        ManifestParseError: If the content cannot be parsed
    """
    filesystem = filesystem or get_local_filesystem()
    if max_file_size_bytes is None:
        max_file_size_bytes = get_config().security.max_file_size_bytes
    source = str(path)

    try:
        content = filesystem.read_text(Path(path), max_file_size_bytes)
    except ManifestTooLargeError as e:
        log_filesystem_error(
            "Manifest exceeds the configured size limit",
            "manifest",
            "load_manifest",
            file_path=source,
            exception=e,
        )
        raise
    except UnicodeDecodeError as e:
        log_parsing_error(
            "Manifest contains invalid UTF-8",
            "manifest",
            "load_manifest",
            file_path=source,
            exception=e,
        )
        raise ManifestParseError("Manifest contains invalid UTF-8", source) from e
    except OSError as e:
        reason = e.strerror or str(e)
        log_filesystem_error(
            f"Cannot read manifest: {reason}",
            "manifest",
            "load_manifest",
            file_path=source,
            exception=e,
        )
        raise ManifestIOError(f"Cannot read manifest: {reason}", source) from e

    manifest = parse_manifest(content, source)
    log_manifest_loaded(
        source,
        has_workspace=manifest.workspace is not None,
        package_name=manifest.package.name if manifest.package else None,
    )
    return manifest
