"""
Scoped temporary directory shared by one extraction service.

Holds the copied Tesseract language data and every prepared raster. Files
are never deleted one by one; an explicit cleanup sweep empties the
directory, and close() removes it. Create one per service and close it at
shutdown (or use it as a context manager).
"""

import logging
import os
import tempfile
import threading
from pathlib import Path
from typing import Optional, Union

from bfvocr.constants import TEMP_DIR_PREFIX
from bfvocr.exceptions import ConfigurationError

logger = logging.getLogger(__name__)


class TempDirectory:
    """
    Lazily created temporary directory with an idempotent cleanup sweep.

    The root is created on first use. Creating files inside it is safe
    from several threads; cleanup is expected to run only once in-flight
    work has finished.
    """

    def __init__(
        self,
        prefix: str = TEMP_DIR_PREFIX,
        base_dir: Optional[Union[str, Path]] = None,
    ):
        """
        Initialize the temporary directory handle.

        Args:
            prefix: Name prefix of the root directory
            base_dir: Parent directory (system temp directory if not provided)
        """
        self.prefix = prefix
        self.base_dir = Path(base_dir) if base_dir is not None else None
        self._path: Optional[Path] = None
        self._lock = threading.Lock()
        self._closed = False

    @property
    def path(self) -> Path:
        """Root directory, created on first access."""
        if self._closed:
            raise ConfigurationError("Temporary directory has already been closed")
        if self._path is None:
            with self._lock:
                if self._path is None:
                    self._path = self._create_root()
        return self._path

    @property
    def closed(self) -> bool:
        return self._closed

    def _create_root(self) -> Path:
        if self._closed:
            raise ConfigurationError("Temporary directory has already been closed")
        try:
            root = Path(tempfile.mkdtemp(prefix=self.prefix, dir=self.base_dir))
        except OSError as e:
            raise ConfigurationError(f"Could not create temporary directory: {e}") from e
        logger.info(f"Created temporary directory: {root}")
        return root

    def create_file(self, prefix: str, suffix: str) -> Path:
        """Create a new, uniquely named empty file in the directory."""
        fd, name = tempfile.mkstemp(prefix=prefix, suffix=suffix, dir=self.path)
        os.close(fd)
        return Path(name)

    def create_directory(self, name: str) -> Path:
        """Create (or reuse) a named subdirectory."""
        directory = self.path / name
        try:
            directory.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise ConfigurationError(f"Could not create directory {directory}: {e}") from e
        return directory

    def cleanup(self) -> int:
        """
        Delete everything below the root, deepest entries first.

        Entries that have already disappeared are skipped. The root itself
        is kept.

        Returns:
            Number of entries removed
        """
        root = self._path
        if root is None or not root.exists():
            return 0

        logger.info(f"Cleaning up temporary directory: {root}")
        removed = 0
        for dirpath, dirnames, filenames in os.walk(root, topdown=False):
            current = Path(dirpath)
            for filename in filenames:
                removed += self._remove(current / filename, is_dir=False)
            for dirname in dirnames:
                removed += self._remove(current / dirname, is_dir=True)
        return removed

    def _remove(self, path: Path, is_dir: bool) -> int:
        try:
            if is_dir and not path.is_symlink():
                path.rmdir()
            else:
                path.unlink()
            logger.debug(f"Deleted: {path}")
            return 1
        except FileNotFoundError:
            return 0
        except OSError as e:
            logger.warning(f"Failed to delete {path}: {e}")
            return 0

    def close(self) -> None:
        """Empty and remove the root directory. Safe to call repeatedly."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
            root = self._path
        if root is None:
            return
        self.cleanup()
        try:
            root.rmdir()
            logger.debug(f"Removed temporary directory: {root}")
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning(f"Temporary directory partially removed: {root} ({e})")

    def __enter__(self) -> "TempDirectory":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"TempDirectory(path={self._path}, closed={self._closed})"
