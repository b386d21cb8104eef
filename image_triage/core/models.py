"""Core data models and enums for the Image Triage System."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Optional, FrozenSet


SUPPORTED_IMAGE_EXTENSIONS: FrozenSet[str] = frozenset({
    ".png",
    ".jpg",
    ".jpeg",
    ".webp",
    ".bmp",
    ".tiff",
    ".tif",
    ".gif",
})


def is_supported_image(file_path: Path, extensions=SUPPORTED_IMAGE_EXTENSIONS) -> bool:
    """Check a file name against the image extension allowlist."""
    return file_path.suffix.lower() in extensions


@dataclass(frozen=True)
class ImageEntry:
    """One source image as seen when the catalog was built."""
    path: Path
    file_name: str

    @classmethod
    def create(cls, file_path: Path) -> "ImageEntry":
        """Create an ImageEntry from a file path."""
        resolved = file_path.resolve()
        return cls(path=resolved, file_name=resolved.name)

    @property
    def identity(self) -> str:
        """Stable identity: the path at catalog construction time."""
        return str(self.path)


@dataclass(frozen=True)
class CategoryFolder:
    """A labeled destination directory."""
    label: str
    directory: Path

    @classmethod
    def from_path(cls, directory: Path) -> "CategoryFolder":
        """Create a CategoryFolder labeled after its directory name."""
        resolved = Path(directory).expanduser().resolve()
        return cls(label=resolved.name, directory=resolved)


class OperationKind(Enum):
    """Kinds of committed filesystem operations."""
    MOVE = "move"
    DELETE = "delete"


@dataclass(frozen=True)
class Operation:
    """
    One committed, reversible filesystem move.

    source_path is where the file lived before the operation and target_path is
    where it lives afterwards (a category folder for MOVE, the trash for DELETE).
    """
    kind: OperationKind
    entry: ImageEntry
    source_path: Path
    target_path: Path
    category: Optional[str] = None
    sequence: int = 0
    timestamp: datetime = field(default_factory=datetime.now)

    @classmethod
    def move(cls, entry: ImageEntry, target_path: Path, category: str) -> "Operation":
        return cls(OperationKind.MOVE, entry, entry.path, target_path, category=category)

    @classmethod
    def delete(cls, entry: ImageEntry, trash_path: Path) -> "Operation":
        return cls(OperationKind.DELETE, entry, entry.path, trash_path)

    @property
    def trash_path(self) -> Optional[Path]:
        return self.target_path if self.kind is OperationKind.DELETE else None

    @property
    def dest_path(self) -> Optional[Path]:
        return self.target_path if self.kind is OperationKind.MOVE else None

    def describe(self) -> str:
        """Short human readable description used by logs and drivers."""
        if self.kind is OperationKind.MOVE:
            return f"#{self.sequence} move {self.entry.file_name} -> {self.category}"
        return f"#{self.sequence} discard {self.entry.file_name}"


class EngineState(Enum):
    """States of the categorization engine."""
    ACTIVE = "active"
    EXHAUSTED = "exhausted"


class IntentKind(Enum):
    """User intents understood by the engine."""
    ASSIGN = "assign"
    DISCARD = "discard"
    UNDO = "undo"


@dataclass(frozen=True)
class Intent:
    """A single user action to dispatch to the engine."""
    kind: IntentKind
    category: Optional[str] = None

    @classmethod
    def assign(cls, category: str) -> "Intent":
        return cls(IntentKind.ASSIGN, category)

    @classmethod
    def discard(cls) -> "Intent":
        return cls(IntentKind.DISCARD)

    @classmethod
    def undo(cls) -> "Intent":
        return cls(IntentKind.UNDO)


@dataclass(frozen=True)
class DispatchResult:
    """Result of a successful assign, discard or undo."""
    intent: Intent
    operation: Operation
    state: EngineState
    remaining: int
    current: Optional[ImageEntry]

    @property
    def reversed(self) -> bool:
        """True when the operation was undone rather than applied."""
        return self.intent.kind is IntentKind.UNDO
