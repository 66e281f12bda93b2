# File: laragen/filesystem.py
"""
laragen - Project Filesystem
=============================

The only place the generator touches the disk.  Every path handed in or
returned is relative to the project root and uses ``/`` separators, which
is also the form recorded in the manifest.

Every ``OSError`` surfaces as ``IOFailure`` so callers can collect
per-file failures without catching a zoo of OS exceptions.
"""

from __future__ import annotations

import logging
from pathlib import Path, PurePosixPath
from typing import List, Union

from laragen.errors import IOFailure
from laragen.utils import ensure_directory, write_file

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("laragen.filesystem")


class ProjectFilesystem:
    """
    Filesystem operations rooted at a project directory.

    Writes are atomic (temp file + rename) by default.
    """

    def __init__(self, root: Union[str, Path], atomic_writes: bool = True) -> None:
        self.root: Path = Path(root)
        self.atomic_writes: bool = atomic_writes

    def __repr__(self) -> str:
        return f"<ProjectFilesystem {self.root}>"

    # -- Path helpers -------------------------------------------------------

    def resolve(self, path: str) -> Path:
        """Absolute path for a project-relative *path*."""
        relative = PurePosixPath(path)
        if relative.is_absolute() or ".." in relative.parts:
            raise IOFailure("resolve", path, ValueError("path escapes project root"))
        return self.root.joinpath(*relative.parts)

    def relative(self, path: Path) -> str:
        return path.relative_to(self.root).as_posix()

    # -- Queries ------------------------------------------------------------

    def exists(self, path: str) -> bool:
        return self.resolve(path).exists()

    def is_directory(self, path: str) -> bool:
        return self.resolve(path).is_dir()

    def glob(self, pattern: str) -> List[str]:
        """Files matching *pattern*, as sorted project-relative paths."""
        try:
            matches: List[str] = sorted(
                self.relative(p) for p in self.root.glob(pattern) if p.is_file()
            )
        except (OSError, ValueError) as exc:
            raise IOFailure("glob", pattern, exc) from exc
        logger.debug("glob(%s) → %d match(es).", pattern, len(matches))
        return matches

    # -- Reads --------------------------------------------------------------

    def read(self, path: str) -> bytes:
        try:
            return self.resolve(path).read_bytes()
        except OSError as exc:
            raise IOFailure("read", path, exc) from exc

    def read_text(self, path: str) -> str:
        try:
            return self.read(path).decode("utf-8")
        except UnicodeDecodeError as exc:
            raise IOFailure("decode", path, exc) from exc

    # -- Mutations ----------------------------------------------------------

    def write(self, path: str, data: bytes) -> int:
        try:
            return write_file(self.resolve(path), data, atomic=self.atomic_writes)
        except OSError as exc:
            raise IOFailure("write", path, exc) from exc

    def write_text(self, path: str, text: str) -> int:
        return self.write(path, text.encode("utf-8"))

    def delete(self, path: str) -> bool:
        """Remove a file; False when it was already gone."""
        target: Path = self.resolve(path)
        try:
            target.unlink()
        except FileNotFoundError:
            logger.debug("delete(%s): already absent.", path)
            return False
        except OSError as exc:
            raise IOFailure("delete", path, exc) from exc
        logger.debug("Deleted %s", path)
        return True

    def make_directory(self, path: str) -> None:
        try:
            ensure_directory(self.resolve(path))
        except OSError as exc:
            raise IOFailure("create directory", path, exc) from exc


__all__: List[str] = ["ProjectFilesystem"]

logger.debug("laragen.filesystem loaded — %d public symbols.", len(__all__))
