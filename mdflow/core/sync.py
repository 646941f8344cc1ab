"""
Filesystem synchronizer: keeps a WorkflowStore in step with its directory.

Watches the workflow root with watchfiles. Each debounced batch of changes
triggers one full store refresh, then one semantic notification per changed
file. Nothing is announced until the initial scan has completed.

The preamble control file is handled on its own: it reloads the preamble and
re-renders templates without going through the created/updated/deleted mapping.
"""

import asyncio
import logging
from enum import Enum
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Set, Tuple

from watchfiles import Change, DefaultFilter, awatch

from mdflow.core.config import MdflowSettings
from mdflow.core.notifications import NotificationGateway
from mdflow.core.store import WorkflowStore

logger = logging.getLogger(__name__)


class SyncState(Enum):
    STARTING_UP = "starting_up"  # initial scan running, notifications suppressed
    ACTIVE = "active"
    STOPPED = "stopped"


class FileEvent(Enum):
    ADD = "added"
    CHANGE = "changed"
    UNLINK = "removed"


class WorkflowFileFilter(DefaultFilter):
    """Admit workflow files outside hidden directories, plus the preamble file."""

    def __init__(self, root: Path, extension: str, preamble_filename: str):
        super().__init__()
        self.root = Path(root)
        self.extension = extension
        self.preamble_path = self.root / preamble_filename

    def __call__(self, change: Change, path: str) -> bool:
        file_path = Path(path)
        if file_path == self.preamble_path:
            return True
        if not file_path.name.endswith(self.extension):
            return False
        try:
            parts = file_path.relative_to(self.root).parts
        except ValueError:
            return False
        if any(part.startswith(".") for part in parts):
            return False
        return super().__call__(change, path)


def coalesce_changes(changes: Iterable[Tuple[Change, str]]) -> List[Tuple[FileEvent, Path]]:
    """Collapse a watchfiles batch into at most one event per path.

    The batch is a set, so ordering inside it is unknown; the file's current
    existence decides between add/change and removal. Whether an add is really
    a rewrite of a known step is settled by the synchronizer against the store.
    """
    seen: Dict[str, Set[Change]] = {}
    for change, path in changes:
        seen.setdefault(path, set()).add(change)

    events: List[Tuple[FileEvent, Path]] = []
    for path in sorted(seen):
        kinds = seen[path]
        file_path = Path(path)
        if file_path.exists():
            event = FileEvent.ADD if Change.added in kinds else FileEvent.CHANGE
        elif Change.deleted in kinds and Change.added not in kinds:
            event = FileEvent.UNLINK
        else:
            # created and removed inside one debounce window
            continue
        events.append((event, file_path))
    return events


class WorkflowSynchronizer:
    """Maps filesystem events to store refreshes and notifications."""

    def __init__(
        self,
        store: WorkflowStore,
        notifier: NotificationGateway,
        settings: Optional[MdflowSettings] = None,
    ):
        self.store = store
        self.notifier = notifier
        self.settings = settings or store.settings
        self._state = SyncState.STARTING_UP
        self._stop_event = asyncio.Event()

    @property
    def state(self) -> SyncState:
        return self._state

    @property
    def is_active(self) -> bool:
        return self._state is SyncState.ACTIVE

    async def start(self) -> None:
        """Run the initial scan, then enable notifications."""
        try:
            await self.store.refresh()
        except Exception:
            logger.exception("Initial workflow scan failed for %s", self.store.root)
        if self._state is SyncState.STARTING_UP:
            self._state = SyncState.ACTIVE
            logger.info("Workflow synchronizer active, notifications enabled")

    async def run(self) -> None:
        """Watch the workflow root until stop() is called."""
        root = self.store.root
        await asyncio.to_thread(root.mkdir, parents=True, exist_ok=True)
        root = root.resolve()

        watch_task = asyncio.create_task(self._watch(root))
        try:
            await self.start()
            await watch_task
        finally:
            if not watch_task.done():
                watch_task.cancel()
            self._state = SyncState.STOPPED

    def stop(self) -> None:
        self._stop_event.set()

    async def _watch(self, root: Path) -> None:
        watch_filter = WorkflowFileFilter(
            root, self.settings.extension, self.settings.preamble_filename
        )
        async for changes in awatch(
            root,
            watch_filter=watch_filter,
            debounce=self.settings.debounce_ms,
            stop_event=self._stop_event,
        ):
            events = await asyncio.to_thread(coalesce_changes, changes)
            if events:
                await self.handle_changes(events)

    async def handle_event(self, event: FileEvent, path: Path) -> None:
        await self.handle_changes([(event, Path(path))])

    async def handle_changes(self, events: Iterable[Tuple[FileEvent, Path]]) -> None:
        """Refresh once for the batch, then announce each change."""
        preamble_events, workflow_events = await asyncio.to_thread(
            self._split_preamble, list(events)
        )
        known = set(self.store.snapshot())

        if workflow_events:
            try:
                # A full refresh re-reads the preamble too
                await self.store.refresh()
            except Exception as e:
                logger.exception("Failed to refresh workflows after file change")
                if self.is_active:
                    await self._notify(
                        self.notifier.notify_diagnostic(f"Failed to refresh workflows: {e}", "error")
                    )
                return
        elif preamble_events:
            try:
                await self.store.reload_preamble()
                self.store.rebuild_templates()
            except Exception:
                logger.exception("Failed to reload preamble")
                return

        if not self.is_active:
            return

        for event, path in preamble_events:
            await self._notify(self.notifier.notify_file_watcher_event(event.value, path.name))

        current = self.store.snapshot()
        for event, path in workflow_events:
            # Atomic saves arrive as add or unlink for a step that already existed
            if event is FileEvent.ADD and path.stem in known:
                event = FileEvent.CHANGE
            elif event is FileEvent.UNLINK and path.stem in current:
                event = FileEvent.CHANGE
            await self._announce(event, path)

    def _split_preamble(
        self, events: List[Tuple[FileEvent, Path]]
    ) -> Tuple[List[Tuple[FileEvent, Path]], List[Tuple[FileEvent, Path]]]:
        preamble_path = self.store.preamble_path.resolve()
        preamble_events: List[Tuple[FileEvent, Path]] = []
        workflow_events: List[Tuple[FileEvent, Path]] = []
        for event, path in events:
            path = Path(path)
            if path.resolve() == preamble_path:
                preamble_events.append((event, path))
            else:
                workflow_events.append((event, path))
        return preamble_events, workflow_events

    async def _announce(self, event: FileEvent, path: Path) -> None:
        workflow_id = path.stem
        await self._notify(self.notifier.notify_file_watcher_event(event.value, path.name))

        if event is FileEvent.ADD:
            await self._notify(self.notifier.notify_workflow_updated(workflow_id, "created"))
            await self._notify(self.notifier.notify_workflow_list_changed())
        elif event is FileEvent.CHANGE:
            await self._notify(self.notifier.notify_workflow_updated(workflow_id, "updated"))
        elif event is FileEvent.UNLINK:
            await self._notify(self.notifier.notify_workflow_updated(workflow_id, "deleted"))
            await self._notify(self.notifier.notify_workflow_list_changed())

    @staticmethod
    async def _notify(coro) -> None:
        try:
            await coro
        except Exception as e:
            logger.warning("Notification delivery failed: %s", e)


__all__ = [
    "SyncState",
    "FileEvent",
    "WorkflowFileFilter",
    "coalesce_changes",
    "WorkflowSynchronizer",
]
