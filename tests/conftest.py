"""
Shared pytest fixtures for mdflow tests.

Provides fixtures for:
- Temporary workflow directories
- A small sample workflow graph
- Stores and recording notifiers
"""

from pathlib import Path
from typing import Any, List, Tuple

import pytest

from mdflow.core.config import MdflowSettings
from mdflow.core.store import WorkflowStore


def write_workflow(
    root: Path,
    filename: str,
    body: str,
    title: str = None,
    entrypoint: bool = False,
    description: str = None,
) -> Path:
    """Write a workflow file with frontmatter."""
    lines = ["---"]
    if title is not None:
        lines.append(f"title: {title}")
    if description is not None:
        lines.append(f"description: {description}")
    if entrypoint:
        lines.append("entrypoint: true")
    lines.append("---")
    path = root / filename
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text("\n".join(lines) + "\n\n" + body, encoding="utf-8")
    return path


class RecordingNotifier:
    """NotificationGateway that records every call in order."""

    def __init__(self):
        self.calls: List[Tuple[Any, ...]] = []

    async def notify_workflow_updated(self, workflow_id: str, action: str) -> None:
        self.calls.append(("updated", workflow_id, action))

    async def notify_workflow_list_changed(self) -> None:
        self.calls.append(("list_changed",))

    async def notify_diagnostic(self, message: str, level: str = "info") -> None:
        self.calls.append(("diagnostic", message, level))

    async def notify_file_watcher_event(self, event: str, filename: str) -> None:
        self.calls.append(("file", event, filename))

    def of_kind(self, kind: str) -> List[Tuple[Any, ...]]:
        return [c for c in self.calls if c[0] == kind]


@pytest.fixture
def workflows_dir(tmp_path: Path) -> Path:
    root = tmp_path / "workflows"
    root.mkdir()
    return root


@pytest.fixture
def sample_workflows(workflows_dir: Path) -> Path:
    """start (entrypoint) -> build -> deploy, plus an orphan and a broken link.

    - start.md: entrypoint, references @build@
    - build.md: references @deploy@ and @missing@
    - deploy.md: terminal step
    - orphan.md: nobody references it
    """
    write_workflow(
        workflows_dir,
        "start.md",
        "Begin here.\n\nThen go to @build@.\n",
        title="Start",
        entrypoint=True,
        description="Kick off a release",
    )
    write_workflow(
        workflows_dir,
        "build.md",
        "Build it.\n\nNext: @deploy@\nOr maybe @missing@\n",
        title="Build",
    )
    write_workflow(workflows_dir, "deploy.md", "Ship it.\n", title="Deploy")
    write_workflow(workflows_dir, "orphan.md", "Nobody links here.\n", title="Orphan")
    return workflows_dir


@pytest.fixture
def settings(workflows_dir: Path) -> MdflowSettings:
    return MdflowSettings(workflows_path=workflows_dir, watch=False)


@pytest.fixture
def store(workflows_dir: Path, settings: MdflowSettings) -> WorkflowStore:
    return WorkflowStore(workflows_dir, settings)


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()
