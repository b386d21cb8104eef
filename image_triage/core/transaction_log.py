"""
In-memory history of committed triage operations.

Backs the undo feature. The log only grows through record() and only shrinks
through pop_last(); recorded operations are never modified.
"""

import dataclasses
import logging
from typing import Iterator, List, Optional

from .models import Operation

logger = logging.getLogger(__name__)


class TransactionLog:
    """Append-only list of operations, truncated from the tail by undo."""

    def __init__(self):
        self._operations: List[Operation] = []
        self._last_sequence = 0

    def record(self, operation: Operation) -> Operation:
        """
        Append an operation, stamping the next sequence number.

        Sequence numbers increase monotonically and are never reused, even
        after an undo.

        Args:
            operation: Operation describing a completed filesystem move

        Returns:
            The recorded operation carrying its sequence number
        """
        self._last_sequence += 1
        recorded = dataclasses.replace(operation, sequence=self._last_sequence)
        self._operations.append(recorded)
        logger.debug(f"Recorded {recorded.describe()}")
        return recorded

    def pop_last(self) -> Optional[Operation]:
        """Remove and return the most recent operation, or None if empty."""
        if not self._operations:
            return None
        operation = self._operations.pop()
        logger.debug(f"Popped {operation.describe()}")
        return operation

    def restore(self, operation: Operation) -> None:
        """
        Put back an operation whose reversal failed.

        Only the operation that was just popped may be restored, so the
        sequence order of the log is preserved.
        """
        if operation.sequence <= 0 or operation.sequence > self._last_sequence:
            raise ValueError(f"Operation {operation.sequence} was never recorded")
        if self._operations and self._operations[-1].sequence >= operation.sequence:
            raise ValueError(f"Operation {operation.sequence} is older than the log tail")
        self._operations.append(operation)
        logger.debug(f"Restored {operation.describe()}")

    def peek_last(self) -> Optional[Operation]:
        return self._operations[-1] if self._operations else None

    def is_empty(self) -> bool:
        return not self._operations

    @property
    def last_sequence(self) -> int:
        return self._last_sequence

    def __len__(self) -> int:
        return len(self._operations)

    def __iter__(self) -> Iterator[Operation]:
        return iter(list(self._operations))
