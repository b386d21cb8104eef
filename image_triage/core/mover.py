"""Single-file moves that never overwrite and never lose data."""

import errno
import logging
import os
import shutil
from pathlib import Path

from .exceptions import CollisionError, PathNotFoundError, FileSystemError
from .error_handler import ErrorHandler


class FileMover:
    """
    Moves one file at a time.

    Same-device moves are a single os.rename and therefore atomic. Moves that
    cross a device boundary fall back to copy-then-delete, which is not atomic:
    the copy is written under a temporary name, renamed into place, and only
    then is the source removed. A crash during the fallback can leave both
    copies on disk but never neither.
    """

    TEMP_PREFIX = ".image-triage-"

    def __init__(self, error_handler: ErrorHandler = None):
        self.error_handler = error_handler or ErrorHandler()
        self.logger = logging.getLogger(__name__)

    def move(self, source: Path, target: Path) -> Path:
        """
        Move source to target.

        Args:
            source: Existing file
            target: Destination path, which must not exist

        Returns:
            The target path

        Raises:
            CollisionError: If target already exists
            PathNotFoundError: If source does not exist
            FileSystemError: For any other failure; nothing has moved
        """
        source = Path(source)
        target = Path(target)

        try:
            source_exists = source.exists()
        except OSError as e:
            self.error_handler.handle_file_system_error(e, source)
        if not source_exists:
            raise PathNotFoundError(f"File no longer exists: {source}")

        try:
            target_taken = target.exists() or target.is_symlink()
        except OSError as e:
            self.error_handler.handle_file_system_error(e, target)
        if target_taken:
            raise CollisionError(f"Destination already exists: {target}", path=target)

        try:
            os.rename(source, target)
        except OSError as e:
            if e.errno != errno.EXDEV:
                self.error_handler.handle_file_system_error(e, source)
            self.logger.info(f"{source} and {target} are on different devices, copying")
            self._copy_then_delete(source, target)

        self.logger.debug(f"Moved {source} -> {target}")
        return target

    def _copy_then_delete(self, source: Path, target: Path) -> None:
        staging = target.with_name(f"{self.TEMP_PREFIX}{target.name}.partial")

        try:
            shutil.copy2(source, staging)
            if target.exists():
                raise CollisionError(f"Destination already exists: {target}", path=target)
            os.rename(staging, target)
        except (OSError, CollisionError) as e:
            self._discard(staging)
            if isinstance(e, CollisionError):
                raise
            self.error_handler.handle_file_system_error(e, target)

        try:
            os.unlink(source)
        except OSError as e:
            # The source is still in place: drop the copy so nothing moved
            self.logger.error(f"Could not remove {source} after copying: {e}")
            self._discard(target)
            self.error_handler.handle_file_system_error(e, source)

    def _discard(self, path: Path) -> None:
        try:
            if path.exists():
                path.unlink()
        except OSError as e:
            self.logger.error(f"Could not remove leftover copy {path}: {e}")
            raise FileSystemError(f"Leftover copy could not be removed: {path}") from e
