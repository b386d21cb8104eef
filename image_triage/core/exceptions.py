"""Custom exceptions for the Image Triage System."""

from pathlib import Path
from typing import Optional


class ImageTriageError(Exception):
    """Base exception for image triage errors."""
    pass


class FileSystemError(ImageTriageError):
    """Exception for scan, move and read failures."""
    pass


class PermissionDeniedError(FileSystemError):
    """Exception for file permission errors."""
    pass


class PathNotFoundError(FileSystemError):
    """Exception for path not found errors."""
    pass


class CollisionError(ImageTriageError):
    """Raised when the destination of a move is already occupied."""

    def __init__(self, message, path: Optional[Path] = None):
        super().__init__(message)
        self.path = path


class ConfigurationError(ImageTriageError):
    """Exception for invalid folder sets and configuration errors."""
    pass


class ValidationError(ImageTriageError):
    """Exception for invalid requests against the engine."""
    pass


class UnknownCategoryError(ValidationError):
    """Raised when a category label is not part of the folder set."""

    def __init__(self, label: str):
        super().__init__(f"Unknown category: {label}")
        self.label = label


class CatalogExhaustedError(ValidationError):
    """Raised when assign or discard is requested with no image left."""
    pass


class NothingToUndoError(ImageTriageError):
    """Raised when undo is requested with an empty history."""
    pass
