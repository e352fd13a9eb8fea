"""
Filesystem access used by manifest loading and workspace member discovery.
"""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import List, Optional

from .error_handling import ManifestTooLargeError

READ_CHUNK_SIZE = 8192


class BaseFileSystem(ABC):
    """The directory-listing and file-reading operations the core relies on."""

    @abstractmethod
    def read_text(self, path: Path, max_bytes: Optional[int] = None) -> str:
        """
        Return the full UTF-8 text of a file.

        Raises:
            OSError: If the file cannot be read
            UnicodeDecodeError: If the content is not valid UTF-8
            ManifestTooLargeError: If the file holds more than ``max_bytes``
        """

    @abstractmethod
    def list_dir(self, path: Path) -> List[Path]:
        """Return the immediate entries of a directory."""

    @abstractmethod
    def is_file(self, path: Path) -> bool:
        pass

    @abstractmethod
    def is_dir(self, path: Path) -> bool:
        pass

    @abstractmethod
    def is_symlink(self, path: Path) -> bool:
        pass


class LocalFileSystem(BaseFileSystem):
    """The real filesystem."""

    def __init__(self, chunk_size: int = READ_CHUNK_SIZE):
        self.chunk_size = chunk_size

    def read_text(self, path: Path, max_bytes: Optional[int] = None) -> str:
        content_parts = []
        total_size = 0

        # Read in chunks so an oversized file is rejected before it is fully loaded.
        with open(path, "rb") as f:
            while True:
                chunk = f.read(self.chunk_size)
                if not chunk:
                    break

                total_size += len(chunk)
                if max_bytes is not None and total_size > max_bytes:
                    raise ManifestTooLargeError(max_bytes, str(path))

                content_parts.append(chunk)

        return b"".join(content_parts).decode("utf-8")

    def list_dir(self, path: Path) -> List[Path]:
        return list(Path(path).iterdir())

    def is_file(self, path: Path) -> bool:
        return Path(path).is_file()

    def is_dir(self, path: Path) -> bool:
        return Path(path).is_dir()

    def is_symlink(self, path: Path) -> bool:
        return Path(path).is_symlink()


_local_filesystem = LocalFileSystem()


def get_local_filesystem() -> LocalFileSystem:
    return _local_filesystem
