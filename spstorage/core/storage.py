"""Read-only file store contract consumed by the host application.

Backends expose existence, type, stat, listing and read operations over a
virtual path namespace rooted at a mount. Mutating operations are part of
the contract so hosts can call them uniformly; read-only backends refuse
them.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import IntFlag
from typing import IO, Literal

# Mimetype hosts expect for directories
DIRECTORY_MIME_TYPE = "httpd/unix-directory"

FileType = Literal["dir", "file"]


class Permission(IntFlag):
    """Capabilities reported for a path."""

    NONE = 0
    READ = 1


@dataclass(frozen=True)
class FileStat:
    """Attributes of a single path."""

    size: int = 0
    mtime: int = 0
    type: FileType | None = None
    mimetype: str = ""
    permissions: Permission = Permission.NONE

    @classmethod
    def missing(cls) -> "FileStat":
        """Zeroed stat for a path that could not be resolved."""
        return cls()

    @property
    def exists(self) -> bool:
        return self.type is not None


@dataclass(frozen=True)
class DirectoryEntry:
    """One child of a directory listing."""

    name: str
    size: int
    mtime: int
    type: FileType
    mimetype: str
    etag: str
    permissions: Permission = Permission.READ


class ReadOnlyStorage(ABC):
    """Abstract interface for mountable read-only storage backends."""

    @abstractmethod
    def get_id(self) -> str:
        """Stable identifier for this storage configuration."""

    @abstractmethod
    async def test(self) -> bool:
        """Check the configuration; raises on configuration failures."""

    @abstractmethod
    async def file_exists(self, path: str) -> bool:
        """Check if a path exists."""

    @abstractmethod
    async def is_dir(self, path: str) -> bool:
        """Check if a path is a directory."""

    @abstractmethod
    async def is_file(self, path: str) -> bool:
        """Check if a path is a file."""

    @abstractmethod
    async def filetype(self, path: str) -> FileType | None:
        """Return "dir", "file", or None when the path does not resolve."""

    @abstractmethod
    async def stat(self, path: str) -> FileStat:
        """Return attributes of a path; zeroed when it does not resolve."""

    @abstractmethod
    async def get_directory_content(self, path: str) -> list[DirectoryEntry]:
        """List a directory; empty when it cannot be listed."""

    @abstractmethod
    async def open(self, path: str, mode: str = "rb") -> IO[bytes] | None:
        """Open a file for reading; None when it cannot be opened."""

    @abstractmethod
    async def mkdir(self, path: str) -> bool:
        """Create a directory."""

    @abstractmethod
    async def rmdir(self, path: str) -> bool:
        """Remove a directory."""

    @abstractmethod
    async def unlink(self, path: str) -> bool:
        """Delete a file."""

    @abstractmethod
    async def touch(self, path: str, mtime: int | None = None) -> bool:
        """Create a file or update its modification time."""

    @abstractmethod
    async def rename(self, source: str, target: str) -> bool:
        """Move a path."""

    @abstractmethod
    async def copy(self, source: str, target: str) -> bool:
        """Copy a path."""

    @abstractmethod
    async def write(self, path: str, data: bytes) -> bool:
        """Replace a file's content."""

    @abstractmethod
    async def close(self) -> None:
        """Release resources held by the backend."""
