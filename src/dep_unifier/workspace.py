"""
Workspace member resolution.

Expands the ``workspace.members`` patterns of a root manifest into the
dependency tables declared by each member. Literal patterns name a member
directory directly; a pattern ending in ``/*`` stands for every immediate
subdirectory that contains a manifest.
"""

from pathlib import Path
from typing import Dict, Optional

from .cli_config import get_config
from .error_handling import (
    ErrorCategory,
    ManifestIOError,
    MissingRequiredFieldError,
    get_error_handler,
    log_filesystem_error,
)
from .filesystem import BaseFileSystem, get_local_filesystem
from .manifest import DependencyTable, Workspace, load_manifest
from .structured_logging import log_member_resolved, log_member_skipped

WILDCARD_SUFFIX = "/*"

MemberDependencyMap = Dict[str, DependencyTable]


def is_wildcard_pattern(pattern: str) -> bool:
    return pattern == "*" or pattern.endswith(WILDCARD_SUFFIX)


def _wildcard_parent(base_dir: Path, pattern: str) -> Path:
    if pattern == "*":
        return base_dir
    return base_dir / pattern[: -len(WILDCARD_SUFFIX)]


class WorkspaceMemberResolver:
    """Resolves workspace members against a base directory."""

    def __init__(
        self,
        base_dir: Path,
        filesystem: Optional[BaseFileSystem] = None,
        manifest_name: Optional[str] = None,
        max_file_size_bytes: Optional[int] = None,
    ):
        config = get_config()
        self.base_dir = Path(base_dir)
        self.filesystem = filesystem or get_local_filesystem()
        self.manifest_name = manifest_name or config.scan.manifest_name
        self.max_file_size_bytes = (
            max_file_size_bytes or config.security.max_file_size_bytes
        )

    def resolve(self, workspace: Workspace) -> MemberDependencyMap:
        """
        Produce the member dependency map for a workspace.

        Raises:
            ManifestIOError: If a literal member manifest or a wildcard
                directory cannot be read
            ManifestParseError: If a member manifest is malformed
            MissingRequiredFieldError: If a wildcard-discovered manifest
                declares dependencies without a package name
        """
        members: MemberDependencyMap = {}
        for pattern in workspace.members:
            if is_wildcard_pattern(pattern):
                self._resolve_wildcard(pattern, members)
            else:
                self._resolve_literal(pattern, members)
        return members

    def _resolve_literal(self, pattern: str, members: MemberDependencyMap) -> None:
        manifest_path = self.base_dir / pattern / self.manifest_name
        manifest = load_manifest(
            manifest_path, self.filesystem, self.max_file_size_bytes
        )
        if manifest.dependencies is not None:
            members[pattern] = manifest.dependencies
            log_member_resolved(
                pattern, str(manifest_path), len(manifest.dependencies)
            )

    def _resolve_wildcard(self, pattern: str, members: MemberDependencyMap) -> None:
        parent = _wildcard_parent(self.base_dir, pattern)
        try:
            entries = sorted(self.filesystem.list_dir(parent))
        except OSError as e:
            reason = e.strerror or str(e)
            log_filesystem_error(
                f"Cannot list member directory: {reason}",
                "workspace",
                "_resolve_wildcard",
                file_path=str(parent),
                exception=e,
            )
            raise ManifestIOError(
                f"Cannot list member directory for pattern '{pattern}': {reason}",
                str(parent),
            ) from e

        for entry in entries:
            # Symlinks are never followed, so a link back up the tree cannot loop.
            if self.filesystem.is_symlink(entry):
                log_member_skipped(str(entry), "symlink")
                continue
            if not self.filesystem.is_dir(entry):
                log_member_skipped(str(entry), "not_a_directory")
                continue

            manifest_path = entry / self.manifest_name
            if not self.filesystem.is_file(manifest_path):
                log_member_skipped(str(entry), "no_manifest")
                continue

            manifest = load_manifest(
                manifest_path, self.filesystem, self.max_file_size_bytes
            )
            if manifest.package is None:
                if manifest.dependencies is None:
                    log_member_skipped(str(entry), "no_package")
                    continue
                message = "Member manifest declares dependencies but no package name"
                get_error_handler().error(
                    ErrorCategory.VALIDATION,
                    message,
                    "workspace",
                    "_resolve_wildcard",
                    details={"file_path": str(manifest_path), "pattern": pattern},
                    suggestions=["Add a [package] section with a name"],
                )
                raise MissingRequiredFieldError(
                    message, "package.name", str(manifest_path)
                )

            if manifest.dependencies is not None:
                members[manifest.package.name] = manifest.dependencies
                log_member_resolved(
                    manifest.package.name,
                    str(manifest_path),
                    len(manifest.dependencies),
                )


def resolve_members(
    workspace: Workspace,
    base_dir: Path,
    filesystem: Optional[BaseFileSystem] = None,
    manifest_name: Optional[str] = None,
    max_file_size_bytes: Optional[int] = None,
) -> MemberDependencyMap:
    """Resolve every member of ``workspace`` relative to ``base_dir``."""
    resolver = WorkspaceMemberResolver(
        base_dir, filesystem, manifest_name, max_file_size_bytes
    )
    return resolver.resolve(workspace)
