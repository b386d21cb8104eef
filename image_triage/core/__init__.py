"""Core engine for image triage: catalog, transaction log and state machine."""

from .models import (
    ImageEntry, CategoryFolder, Operation, OperationKind, Intent, IntentKind,
    EngineState, DispatchResult, SUPPORTED_IMAGE_EXTENSIONS
)
from .folders import FolderSet
from .catalog import FileCatalog
from .transaction_log import TransactionLog
from .mover import FileMover
from .engine import CategorizationEngine

__all__ = [
    "ImageEntry",
    "CategoryFolder",
    "Operation",
    "OperationKind",
    "Intent",
    "IntentKind",
    "EngineState",
    "DispatchResult",
    "SUPPORTED_IMAGE_EXTENSIONS",
    "FolderSet",
    "FileCatalog",
    "TransactionLog",
    "FileMover",
    "CategorizationEngine"
]
