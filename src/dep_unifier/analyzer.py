"""
Duplicate dependency analysis.

A dependency is duplicated when its version is pinned independently in more
than one place: the workspace-level table counts as one place, every member
declaration that is not a ``path`` or ``workspace = true`` reference counts as
another.
"""

import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Set

from .cli_config import DepUnifierConfig, get_config
from .dependency import is_independent_pin
from .filesystem import BaseFileSystem
from .manifest import DependencyTable, load_manifest
from .structured_logging import log_analysis_complete, log_analysis_start
from .workspace import MemberDependencyMap, resolve_members

WORKSPACE_SOURCE = "[workspace]"


@dataclass(frozen=True)
class DuplicateAnalysis:
    """Duplicated dependency names and where each one is pinned."""

    duplicates: Set[str] = field(default_factory=set)
    occurrences: Dict[str, List[str]] = field(default_factory=dict)

    @property
    def has_duplicates(self) -> bool:
        return bool(self.duplicates)

    def sorted_duplicates(self) -> List[str]:
        return sorted(self.duplicates)


@dataclass(frozen=True)
class WorkspaceCheckResult:
    """Outcome of checking one workspace root."""

    root: str
    manifest_path: str
    has_workspace: bool
    members: List[str] = field(default_factory=list)
    analysis: DuplicateAnalysis = field(default_factory=DuplicateAnalysis)
    check_duration_ms: int = 0

    @property
    def has_duplicates(self) -> bool:
        return self.analysis.has_duplicates


class DuplicateDependencyAnalyzer:
    """Counts independent pins per dependency name."""

    def analyze(
        self,
        workspace_dependencies: Optional[DependencyTable],
        member_dependencies: Mapping[str, DependencyTable],
    ) -> DuplicateAnalysis:
        counts: Dict[str, int] = {}
        occurrences: Dict[str, List[str]] = {}

        # Seeding with the workspace table makes one extra member pin a duplicate.
        for name in workspace_dependencies or {}:
            counts[name] = 1
            occurrences[name] = [WORKSPACE_SOURCE]

        for member, dependencies in member_dependencies.items():
            for name, dependency in dependencies.items():
                if not is_independent_pin(dependency):
                    continue
                counts[name] = counts.get(name, 0) + 1
                occurrences.setdefault(name, []).append(member)

        duplicates = {name for name, count in counts.items() if count > 1}
        return DuplicateAnalysis(
            duplicates=duplicates,
            occurrences={name: occurrences[name] for name in sorted(duplicates)},
        )


def find_duplicate_dependencies(
    workspace_dependencies: Optional[DependencyTable],
    member_dependencies: Mapping[str, DependencyTable],
) -> Set[str]:
    """Return the names pinned independently in more than one place."""
    analysis = DuplicateDependencyAnalyzer().analyze(
        workspace_dependencies, member_dependencies
    )
    return analysis.duplicates


def check_workspace(
    root_dir: Path,
    filesystem: Optional[BaseFileSystem] = None,
    config: Optional[DepUnifierConfig] = None,
) -> WorkspaceCheckResult:
    """
    Load the root manifest under ``root_dir`` and analyze its workspace.

    Args:
        root_dir: Directory holding the root manifest
        filesystem: Filesystem to read from (local by default)
        config: Configuration to use (global by default)

    Returns:
        WorkspaceCheckResult: The analysis outcome

    Raises:
        ManifestIOError, ManifestParseError, MissingRequiredFieldError:
            Propagated unchanged from loading and member resolution
    """
    config = config or get_config()
    start_time = time.time()
    root_dir = Path(root_dir)
    manifest_path = root_dir / config.scan.manifest_name
    max_file_size_bytes = config.security.max_file_size_bytes

    root_manifest = load_manifest(manifest_path, filesystem, max_file_size_bytes)
    workspace = root_manifest.workspace
    if workspace is None:
        return WorkspaceCheckResult(
            root=str(root_dir),
            manifest_path=str(manifest_path),
            has_workspace=False,
            check_duration_ms=int((time.time() - start_time) * 1000),
        )

    members: MemberDependencyMap = resolve_members(
        workspace,
        root_dir,
        filesystem,
        config.scan.manifest_name,
        max_file_size_bytes,
    )
    log_analysis_start(str(root_dir), len(members))

    analysis = DuplicateDependencyAnalyzer().analyze(workspace.dependencies, members)

    duration_ms = int((time.time() - start_time) * 1000)
    log_analysis_complete(duration_ms, len(members), len(analysis.duplicates))

    return WorkspaceCheckResult(
        root=str(root_dir),
        manifest_path=str(manifest_path),
        has_workspace=True,
        members=sorted(members),
        analysis=analysis,
        check_duration_ms=duration_ms,
    )
