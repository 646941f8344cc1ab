"""Core workflow engine: parsing, store, graph checks, templates, sync."""

from mdflow.core.config import MdflowSettings, load_config
from mdflow.core.errors import (
    ErrorCode,
    WorkflowError,
    WorkflowIOError,
    WorkflowNotFoundError,
    WorkflowParseError,
    WorkflowValidationError,
)
from mdflow.core.models import (
    Entrypoint,
    InvalidLink,
    OperationResult,
    OrphanedWorkflow,
    Step,
    WorkflowAction,
    WorkflowRequest,
)
from mdflow.core.notifications import NotificationGateway, NotificationService
from mdflow.core.references import extract_references
from mdflow.core.store import StoreState, WorkflowStore
from mdflow.core.sync import FileEvent, SyncState, WorkflowSynchronizer

__all__ = [
    # Config
    "MdflowSettings",
    "load_config",
    # Errors
    "ErrorCode",
    "WorkflowError",
    "WorkflowIOError",
    "WorkflowNotFoundError",
    "WorkflowParseError",
    "WorkflowValidationError",
    # Models
    "Entrypoint",
    "InvalidLink",
    "OperationResult",
    "OrphanedWorkflow",
    "Step",
    "WorkflowAction",
    "WorkflowRequest",
    # Engine
    "extract_references",
    "StoreState",
    "WorkflowStore",
    # Sync
    "NotificationGateway",
    "NotificationService",
    "FileEvent",
    "SyncState",
    "WorkflowSynchronizer",
]
