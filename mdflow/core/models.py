"""Records shared by the workflow engine components.

All records are plain dataclasses. ``to_dict()`` gives the JSON-ready shape used
by the MCP adapter and the CLI.
"""

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from mdflow.core.errors import ErrorCode


@dataclass
class Step:
    """One parsed workflow file."""

    id: str
    title: str
    content: str  # markdown body (after frontmatter)
    next_steps: List[str] = field(default_factory=list)
    is_entrypoint: bool = False
    filename: str = ""  # relative to the workflow root
    description: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class Entrypoint:
    """A step flagged as a valid starting point."""

    id: str
    title: str
    filename: str
    description: Optional[str] = None

    @classmethod
    def from_step(cls, step: Step) -> "Entrypoint":
        return cls(
            id=step.id,
            title=step.title,
            filename=step.filename,
            description=step.description,
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class OrphanedWorkflow:
    id: str
    title: str
    filename: str
    reason: str

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class InvalidLink:
    source_workflow: str
    source_title: str
    invalid_reference: str
    line: Optional[int] = None  # 1-based line in the step body

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class WorkflowRequest:
    """Input for create-or-update."""

    filename: str
    title: str
    content: str
    description: Optional[str] = None
    is_entrypoint: bool = False


class WorkflowAction(Enum):
    CREATED = "created"
    UPDATED = "updated"
    DELETED = "deleted"


@dataclass
class OperationResult:
    """Typed outcome of a mutation. Mutations never raise, they return one of these."""

    success: bool
    message: str
    step_id: Optional[str] = None
    action: Optional[WorkflowAction] = None
    error_code: Optional[ErrorCode] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"success": self.success, "message": self.message}
        if self.step_id is not None:
            data["step_id"] = self.step_id
        if self.action is not None:
            data["action"] = self.action.value
        if self.error_code is not None:
            data["error_code"] = self.error_code.value
        return data


@dataclass
class PromptArgument:
    name: str
    description: str
    required: bool = False


@dataclass
class PromptTemplate:
    """Rendered instruction template for one entrypoint."""

    name: str
    description: str
    template: str
    arguments: List[PromptArgument] = field(default_factory=list)


@dataclass
class GraphNode:
    id: str
    label: str
    entrypoint: bool = False
    missing: bool = False  # referenced but no such step


@dataclass
class GraphEdge:
    source: str
    target: str


@dataclass
class GraphData:
    nodes: List[GraphNode] = field(default_factory=list)
    edges: List[GraphEdge] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


__all__ = [
    "Step",
    "Entrypoint",
    "OrphanedWorkflow",
    "InvalidLink",
    "WorkflowRequest",
    "WorkflowAction",
    "OperationResult",
    "PromptArgument",
    "PromptTemplate",
    "GraphNode",
    "GraphEdge",
    "GraphData",
]
