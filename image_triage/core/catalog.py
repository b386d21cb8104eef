"""Ordered catalog of the images waiting to be triaged."""

import logging
from pathlib import Path
from typing import Iterable, List, Optional, Tuple

from .models import ImageEntry, SUPPORTED_IMAGE_EXTENSIONS, is_supported_image
from .exceptions import FileSystemError, PathNotFoundError
from .error_handler import ErrorHandler, translate_os_errors


@translate_os_errors
def _list_directory(path: Path) -> List[Path]:
    return list(path.iterdir())


@translate_os_errors
def _path_exists(path: Path) -> bool:
    return path.exists()


@translate_os_errors
def _is_directory(path: Path) -> bool:
    return path.is_dir()


class FileCatalog:
    """
    Holds the ordered image listing and a cursor into it.

    Entries before the cursor have been triaged; the entry at the cursor is the
    current candidate. Entries are never mutated, and a vanished file is only
    noticed when an operation touches it.
    """

    def __init__(self, entries: Iterable[ImageEntry] = ()):
        """
        Initialize the catalog from an ordered listing.

        Args:
            entries: Image entries in triage order
        """
        self._entries: List[ImageEntry] = list(entries)
        self._cursor = 0
        self.logger = logging.getLogger(__name__)

    @classmethod
    def build(
        cls,
        input_dir: Path,
        extensions: Iterable[str] = SUPPORTED_IMAGE_EXTENSIONS,
        include_hidden: bool = False,
    ) -> "FileCatalog":
        """
        Scan a folder (non-recursively) for supported images.

        Args:
            input_dir: Folder to scan
            extensions: Allowed lower-case extensions including the dot
            include_hidden: Include files whose name starts with a dot

        Returns:
            FileCatalog ordered by file name

        Raises:
            PathNotFoundError: If the folder does not exist
            FileSystemError: If the folder cannot be read
        """
        logger = logging.getLogger(__name__)
        input_dir = Path(input_dir)
        allowed = frozenset(ext.lower() for ext in extensions)

        if not _path_exists(input_dir):
            raise PathNotFoundError(f"Input folder does not exist: {input_dir}")
        if not _is_directory(input_dir):
            raise FileSystemError(f"Input path is not a directory: {input_dir}")

        entries = []
        skipped = []
        for item in _list_directory(input_dir):
            if not include_hidden and item.name.startswith('.'):
                continue
            if not is_supported_image(item, allowed):
                continue
            try:
                # is_file() follows symlinks; only real regular files qualify
                if item.is_symlink() or not item.is_file():
                    continue
            except OSError as e:
                logger.debug(f"Could not access {item}: {e}")
                skipped.append(e)
                continue
            entries.append(ImageEntry.create(item))

        if skipped:
            ErrorHandler(logger).log_error_summary(skipped, f"cataloging {input_dir}")

        entries.sort(key=lambda entry: entry.file_name)
        logger.info(f"Cataloged {len(entries)} images in {input_dir}")
        return cls(entries)

    def current(self) -> Optional[ImageEntry]:
        """Return the entry at the cursor, or None if the catalog is exhausted."""
        if self._cursor < len(self._entries):
            return self._entries[self._cursor]
        return None

    def advance(self) -> None:
        """Move the cursor past the current entry."""
        if self._cursor < len(self._entries):
            self._cursor += 1

    def retreat(self) -> None:
        """Move the cursor back one position, never before the first entry."""
        if self._cursor > 0:
            self._cursor -= 1

    def drop_current(self) -> Optional[ImageEntry]:
        """Remove the current entry from the listing without touching the filesystem."""
        entry = self.current()
        if entry is not None:
            del self._entries[self._cursor]
            self.logger.info(f"Dropped {entry.file_name} from the catalog")
        return entry

    def remaining_count(self) -> int:
        return len(self._entries) - self._cursor

    def is_exhausted(self) -> bool:
        return self.remaining_count() == 0

    @property
    def position(self) -> int:
        """Number of entries already triaged."""
        return self._cursor

    @property
    def entries(self) -> Tuple[ImageEntry, ...]:
        return tuple(self._entries)

    def pending(self) -> Tuple[ImageEntry, ...]:
        """Entries not yet triaged, current first."""
        return tuple(self._entries[self._cursor:])

    def __len__(self) -> int:
        return len(self._entries)
