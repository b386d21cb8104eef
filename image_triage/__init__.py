"""Image Triage System - sort a folder of images into category folders with undo."""

__version__ = "0.1.0"
__author__ = "Image Triage Team"
__description__ = "Manual image triage into category folders with reversible trash and undo"

# Import main components for programmatic access
from .core.models import ImageEntry, CategoryFolder, Operation, OperationKind, Intent, EngineState
from .core.folders import FolderSet
from .core.catalog import FileCatalog
from .core.transaction_log import TransactionLog
from .core.engine import CategorizationEngine
from .cli.main import cli

__all__ = [
    "ImageEntry",
    "CategoryFolder",
    "Operation",
    "OperationKind",
    "Intent",
    "EngineState",
    "FolderSet",
    "FileCatalog",
    "TransactionLog",
    "CategorizationEngine",
    "cli"
]
