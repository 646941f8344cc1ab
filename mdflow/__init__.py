"""
mdflow - markdown workflow engine

Indexes a directory of markdown files into a navigable step graph, keeps the
index in sync with the filesystem, checks the graph's links, and renders each
entrypoint as a self-contained instruction prompt.

Core components:
- WorkflowStore: In-memory step/entrypoint index with single-flight refresh
- WorkflowSynchronizer: watchfiles-driven refresh and change notifications
- extract_references: Code-aware ``@step_id@`` reference extraction
- NotificationService: Fire-and-forget notification gateway
"""

__version__ = "0.1.0"

from mdflow.core import (
    Entrypoint,
    ErrorCode,
    FileEvent,
    InvalidLink,
    MdflowSettings,
    NotificationGateway,
    NotificationService,
    OperationResult,
    OrphanedWorkflow,
    Step,
    StoreState,
    SyncState,
    WorkflowAction,
    WorkflowError,
    WorkflowIOError,
    WorkflowNotFoundError,
    WorkflowParseError,
    WorkflowRequest,
    WorkflowStore,
    WorkflowSynchronizer,
    WorkflowValidationError,
    extract_references,
    load_config,
)

__all__ = [
    "Entrypoint",
    "ErrorCode",
    "FileEvent",
    "InvalidLink",
    "MdflowSettings",
    "NotificationGateway",
    "NotificationService",
    "OperationResult",
    "OrphanedWorkflow",
    "Step",
    "StoreState",
    "SyncState",
    "WorkflowAction",
    "WorkflowError",
    "WorkflowIOError",
    "WorkflowNotFoundError",
    "WorkflowParseError",
    "WorkflowRequest",
    "WorkflowStore",
    "WorkflowSynchronizer",
    "WorkflowValidationError",
    "extract_references",
    "load_config",
]
