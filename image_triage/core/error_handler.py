"""Error handling utilities for the Image Triage System."""

import errno
import logging
from pathlib import Path
from typing import Callable, Optional, Union, List
from functools import wraps

from .exceptions import (
    ImageTriageError, FileSystemError, PermissionDeniedError, PathNotFoundError
)


logger = logging.getLogger(__name__)


class ErrorHandler:
    """Centralized translation of OS level failures into triage errors."""

    def __init__(self, logger: Optional[logging.Logger] = None):
        """
        Initialize error handler.

        Args:
            logger: Logger instance to use for error reporting
        """
        self.logger = logger or logging.getLogger(__name__)

    def handle_file_system_error(self, error: Exception, file_path: Union[str, Path]):
        """
        Translate a file system error and raise the matching triage error.

        Args:
            error: The exception that occurred
            file_path: Path where the error occurred

        Raises:
            PermissionDeniedError, PathNotFoundError or FileSystemError
        """
        file_path = Path(file_path) if isinstance(file_path, str) else file_path

        if isinstance(error, ImageTriageError):
            raise error

        if isinstance(error, OSError):
            if error.errno in (errno.EACCES, errno.EPERM):
                self.logger.warning(f"Permission denied accessing {file_path}: {error}")
                raise PermissionDeniedError(f"Permission denied: {file_path}") from error
            elif error.errno == errno.ENOENT:
                self.logger.warning(f"File not found: {file_path}")
                raise PathNotFoundError(f"Path not found: {file_path}") from error
            elif error.errno == errno.ENOSPC:
                self.logger.error(f"No space left on device: {error}")
                raise FileSystemError("No space left on device") from error
            elif error.errno == errno.ENAMETOOLONG:
                self.logger.error(f"Path too long: {file_path}")
                raise FileSystemError(f"Path too long: {file_path}") from error
            else:
                self.logger.error(f"File system error accessing {file_path}: {error}")
                raise FileSystemError(f"File system error: {error}") from error

        self.logger.error(f"Unexpected file system error: {error}")
        raise FileSystemError(f"Unexpected file system error: {error}") from error

    def log_error_summary(self, errors: List[Exception], operation: str = "operation"):
        """
        Log a summary of errors that occurred during an operation.

        Args:
            errors: List of exceptions that occurred
            operation: Description of the operation
        """
        if not errors:
            return

        error_counts = {}
        for error in errors:
            error_type = type(error).__name__
            error_counts[error_type] = error_counts.get(error_type, 0) + 1

        self.logger.warning(f"Error summary for {operation}:")
        for error_type, count in error_counts.items():
            self.logger.warning(f"  {error_type}: {count} occurrences")

        unique_messages = set()
        for error in errors[:10]:
            message = str(error)
            if message not in unique_messages:
                unique_messages.add(message)
                self.logger.warning(f"  Example: {message}")


def translate_os_errors(func: Callable) -> Callable:
    """
    Decorator that turns OSError raised by a path operation into triage errors.

    The first str or Path positional argument is reported as the failing path.
    """
    @wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except OSError as e:
            file_path = None
            for arg in args:
                if isinstance(arg, (str, Path)):
                    file_path = arg
                    break

            ErrorHandler().handle_file_system_error(e, file_path or "unknown")

    return wrapper
