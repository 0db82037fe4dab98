"""
Document root lookup for the docs preview server.

Every request path is resolved explicitly against its root and rejected if
the result lands outside of it, instead of trusting the file-serving layer
to do so.
"""

import os
import stat
from dataclasses import dataclass
from pathlib import Path

from loguru import logger

from core.errors import InternalReadError, NotFound, PathTraversalRejected

INDEX_FILE = "index.html"


def resolve_path(root: Path, relative: str) -> Path:
    """
    Resolve a URL path below root.

    Dot segments and symlinks are resolved first, so the containment check
    sees the real location of the file.

    Raises:
        PathTraversalRejected: If the resolved path is outside of root
        NotFound: If the path cannot exist on this filesystem
    """
    root = root.resolve()
    parts = [part for part in relative.replace("\\", "/").split("/") if part]

    try:
        candidate = root.joinpath(*parts).resolve()
    except (ValueError, OSError, RuntimeError) as e:
        # Embedded NUL bytes, names too long, symlink loops
        raise NotFound(relative) from e

    if not candidate.is_relative_to(root):
        raise PathTraversalRejected(relative)

    return candidate


@dataclass(frozen=True)
class Lookup:
    path: Path
    is_directory: bool


@dataclass(frozen=True)
class DocumentRoot:
    """A directory exposed over HTTP under a URL prefix."""

    mount: str
    directory: Path

    def matches(self, request_path: str) -> bool:
        prefix = self.mount.rstrip("/")
        return prefix == "" or request_path == prefix or request_path.startswith(prefix + "/")

    def relative(self, request_path: str) -> str:
        """Strip the mount prefix from a request path."""
        prefix = self.mount.rstrip("/")
        return request_path[len(prefix) :]

    def lookup(self, relative: str) -> Lookup:
        """
        Find the file to serve for a path relative to this root.

        Directories are served through their index.html.

        Raises:
            NotFound: Nothing servable at this path
            PathTraversalRejected: Path escapes the root
            InternalReadError: File exists but cannot be read
        """
        path = resolve_path(self.directory, relative)
        is_directory = False

        st = _stat(path)
        if stat.S_ISDIR(st.st_mode):
            is_directory = True
            # The index may itself be a symlink, so it goes through the same check
            path = resolve_path(self.directory, f"{relative.rstrip('/')}/{INDEX_FILE}")
            st = _stat(path)

        if not stat.S_ISREG(st.st_mode):
            raise NotFound(relative)

        if not os.access(path, os.R_OK):
            raise InternalReadError(f"{path} is not readable")

        return Lookup(path=path, is_directory=is_directory)

    def exists(self) -> bool:
        return self.directory.is_dir()


def _stat(path: Path) -> os.stat_result:
    try:
        return path.stat()
    except (FileNotFoundError, NotADirectoryError, ValueError) as e:
        raise NotFound(str(path)) from e
    except OSError as e:
        logger.error(f"Cannot stat {path}: {e}")
        raise InternalReadError(str(path)) from e
