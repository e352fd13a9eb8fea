# In src/dep_unifier/dependency.py
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Mapping, Optional, Union

# Keys that mark a dependency as a local or centrally managed reference.
LOCAL_OR_WORKSPACE_KEYS = ("path", "workspace")


@dataclass(frozen=True)
class SimpleDependency:
    """A dependency declared as a bare version requirement string."""

    version: str


@dataclass(frozen=True)
class DetailedDependency:
    """A dependency declared as a key/value table (path, workspace, features...)."""

    table: Mapping[str, Any]

    def __post_init__(self):
        object.__setattr__(self, "table", MappingProxyType(dict(self.table)))

    @property
    def version(self) -> Optional[str]:
        value = self.table.get("version")
        return value if isinstance(value, str) else None

    @property
    def is_path(self) -> bool:
        return "path" in self.table

    @property
    def is_workspace_inherited(self) -> bool:
        return "workspace" in self.table

    def references_local_or_workspace(self) -> bool:
        """True when the table carries a ``path`` or ``workspace`` key."""
        return any(key in self.table for key in LOCAL_OR_WORKSPACE_KEYS)


Dependency = Union[SimpleDependency, DetailedDependency]


def is_independent_pin(dependency: Dependency) -> bool:
    """Whether a declaration pins its own version instead of deferring elsewhere."""
    if isinstance(dependency, DetailedDependency):
        return not dependency.references_local_or_workspace()
    return True
