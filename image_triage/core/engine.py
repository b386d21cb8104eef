"""Categorization state machine and filesystem transaction engine."""

import logging
from typing import Optional, Tuple

from .catalog import FileCatalog
from .folders import FolderSet
from .models import (
    DispatchResult, EngineState, ImageEntry, Intent, IntentKind, Operation
)
from .mover import FileMover
from .transaction_log import TransactionLog
from .logging_config import AUDIT_LOGGER_NAME
from .exceptions import (
    CatalogExhaustedError, CollisionError, FileSystemError, NothingToUndoError,
    ValidationError
)


class CategorizationEngine:
    """
    Applies user intents to the current image.

    Every successful assign, discard or undo performs exactly one file move.
    The transaction log and catalog cursor only ever change after the move
    has completed, so a failed call leaves the engine as it was.
    """

    def __init__(
        self,
        folders: FolderSet,
        catalog: FileCatalog,
        mover: Optional[FileMover] = None,
    ):
        """
        Initialize the engine.

        Args:
            folders: Validated folder set, never modified by the engine
            catalog: Catalog of images to triage; the engine owns its cursor
            mover: File mover, mainly replaced in tests
        """
        self.folders = folders
        self.catalog = catalog
        self.mover = mover or FileMover()
        self.log = TransactionLog()
        self.logger = logging.getLogger(__name__)
        self.audit = logging.getLogger(AUDIT_LOGGER_NAME)

    @classmethod
    def for_folders(cls, folders: FolderSet, **catalog_options) -> "CategorizationEngine":
        """Build the catalog from the folder set's input folder and wrap it."""
        return cls(folders, FileCatalog.build(folders.input_dir, **catalog_options))

    @property
    def state(self) -> EngineState:
        if self.catalog.is_exhausted():
            return EngineState.EXHAUSTED
        return EngineState.ACTIVE

    def current_entry(self) -> Optional[ImageEntry]:
        return self.catalog.current()

    def remaining_count(self) -> int:
        return self.catalog.remaining_count()

    def can_undo(self) -> bool:
        return not self.log.is_empty()

    def history(self) -> Tuple[Operation, ...]:
        """Committed operations, oldest first."""
        return tuple(self.log)

    def dispatch(self, intent: Intent) -> DispatchResult:
        """
        Apply one user intent.

        Raises:
            ValidationError: For an assign intent without a category
        """
        if intent.kind is IntentKind.ASSIGN:
            if not intent.category:
                raise ValidationError("Assign requires a category label")
            operation = self._apply(intent, self._plan_assign(intent.category))
        elif intent.kind is IntentKind.DISCARD:
            operation = self._apply(intent, self._plan_discard())
        elif intent.kind is IntentKind.UNDO:
            operation = self._reverse_last()
        else:
            raise ValidationError(f"Unsupported intent: {intent.kind}")

        return DispatchResult(
            intent=intent,
            operation=operation,
            state=self.state,
            remaining=self.remaining_count(),
            current=self.current_entry(),
        )

    def assign(self, category: str) -> DispatchResult:
        """Move the current image into the labeled category folder."""
        return self.dispatch(Intent.assign(category))

    def discard(self) -> DispatchResult:
        """Move the current image into the trash folder."""
        return self.dispatch(Intent.discard())

    def undo(self) -> DispatchResult:
        """Reverse the most recent operation."""
        return self.dispatch(Intent.undo())

    def skip_missing(self) -> ImageEntry:
        """
        Drop the current entry when its file has vanished out-of-band.

        Raises:
            CatalogExhaustedError: If there is no current entry
            ValidationError: If the file is still present
        """
        entry = self._require_current()
        try:
            still_there = entry.path.exists()
        except OSError as e:
            self.mover.error_handler.handle_file_system_error(e, entry.path)
        if still_there:
            raise ValidationError(f"{entry.file_name} still exists; assign or discard it instead")
        self.catalog.drop_current()
        self.audit.info(f"skip {entry.path} (missing)")
        return entry

    def _require_current(self) -> ImageEntry:
        entry = self.catalog.current()
        if entry is None:
            raise CatalogExhaustedError("No images left to triage")
        return entry

    def _plan_assign(self, label: str) -> Operation:
        entry = self._require_current()
        folder = self.folders.category(label)
        return Operation.move(entry, folder.directory / entry.file_name, folder.label)

    def _plan_discard(self) -> Operation:
        entry = self._require_current()
        return Operation.delete(entry, self.folders.trash_dir / entry.file_name)

    def _apply(self, intent: Intent, planned: Operation) -> Operation:
        try:
            self.mover.move(planned.source_path, planned.target_path)
        except CollisionError:
            self.logger.warning(f"Refusing to overwrite {planned.target_path}")
            raise
        except FileSystemError as e:
            self.logger.error(f"{intent.kind.value} failed for {planned.entry.file_name}: {e}")
            raise

        operation = self.log.record(planned)
        self.catalog.advance()
        self.logger.info(f"{operation.describe()} ({self.remaining_count()} remaining)")
        self.audit.info(f"{operation.kind.value} #{operation.sequence} "
                        f"{operation.source_path} -> {operation.target_path}")
        return operation

    def _reverse_last(self) -> Operation:
        operation = self.log.pop_last()
        if operation is None:
            raise NothingToUndoError("Nothing to undo")

        try:
            self.mover.move(operation.target_path, operation.source_path)
        except CollisionError as e:
            self.log.restore(operation)
            self.logger.error(f"Cannot undo {operation.describe()}: original location is occupied")
            raise FileSystemError(
                f"Cannot restore {operation.entry.file_name}: {operation.source_path} is occupied"
            ) from e
        except Exception as e:
            self.log.restore(operation)
            self.logger.error(f"Cannot undo {operation.describe()}: {e}")
            raise

        self.catalog.retreat()
        self.logger.info(f"Undid {operation.describe()} ({self.remaining_count()} remaining)")
        self.audit.info(f"undo #{operation.sequence} "
                        f"{operation.target_path} -> {operation.source_path}")
        return operation
