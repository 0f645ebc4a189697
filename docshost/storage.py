"""File storage for rendered docs and static assets."""

from __future__ import annotations

import logging
import mimetypes
from pathlib import Path

logger = logging.getLogger(__name__)


class PathNotFoundError(Exception):
    """The requested path does not exist in storage."""

    def __init__(self, path: str) -> None:
        self.path = path
        super().__init__(f"path not found: {path}")


class Storage:
    """Read-only view of a directory tree, addressed by relative paths."""

    def __init__(self, root: Path) -> None:
        self.root = Path(root).resolve()

    def _resolve(self, path: str) -> Path:
        candidate = (self.root / path.lstrip("/")).resolve()
        # Refuse anything that climbs out of the root ("../", symlinks)
        if candidate != self.root and self.root not in candidate.parents:
            raise PathNotFoundError(path)
        return candidate

    def get(self, path: str) -> bytes:
        """Return the file contents, or raise PathNotFoundError."""
        full = self._resolve(path)
        if not full.is_file():
            logger.debug("Storage miss for %s", path)
            raise PathNotFoundError(path)
        return full.read_bytes()

    @staticmethod
    def mime_type(path: str) -> str:
        guessed, _ = mimetypes.guess_type(path)
        return guessed or "application/octet-stream"
