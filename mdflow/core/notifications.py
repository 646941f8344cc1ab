"""Notification gateway used by the synchronizer.

The engine only calls the four ``notify_*`` coroutines. Delivery is
fire-and-forget: failures are logged and never reach engine state.
"""

import logging
from typing import Any, Awaitable, Callable, Dict, Optional, Protocol

logger = logging.getLogger(__name__)

# (method, params) -> None, e.g. bound to an MCP session by the server
NotificationSender = Callable[[str, Dict[str, Any]], Awaitable[None]]

WORKFLOW_URI_SCHEME = "workflow://"


def workflow_uri(workflow_id: str) -> str:
    return f"{WORKFLOW_URI_SCHEME}{workflow_id}"


class NotificationGateway(Protocol):
    async def notify_workflow_updated(self, workflow_id: str, action: str) -> None: ...

    async def notify_workflow_list_changed(self) -> None: ...

    async def notify_diagnostic(self, message: str, level: str = "info") -> None: ...

    async def notify_file_watcher_event(self, event: str, filename: str) -> None: ...


class NotificationService:
    """NotificationGateway that forwards to an optional sender.

    Without a sender every notification is only logged at DEBUG.
    """

    def __init__(self, sender: Optional[NotificationSender] = None):
        self._sender = sender

    def set_sender(self, sender: Optional[NotificationSender]) -> None:
        self._sender = sender

    @property
    def has_sender(self) -> bool:
        return self._sender is not None

    async def _send(self, method: str, params: Dict[str, Any], what: str) -> None:
        if self._sender is None:
            logger.debug("No notification sender available for %s", what)
            return
        try:
            await self._sender(method, params)
        except Exception as e:
            logger.debug("Failed to send notification (%s): %s", what, e)

    async def notify_workflow_updated(self, workflow_id: str, action: str) -> None:
        await self._send(
            "notifications/resources/updated",
            {"uri": workflow_uri(workflow_id)},
            f"workflow {action}: {workflow_id}",
        )
        logger.debug("Workflow %s: %s", action, workflow_id)

    async def notify_workflow_list_changed(self) -> None:
        await self._send("notifications/resources/list_changed", {}, "workflow list change")

    async def notify_diagnostic(self, message: str, level: str = "info") -> None:
        await self._send(
            "notifications/message",
            {"level": level, "data": message, "logger": "workflow-diagnostics"},
            f"diagnostic: {message}",
        )

    async def notify_file_watcher_event(self, event: str, filename: str) -> None:
        # Logged only, never forwarded to the client
        logger.debug("File %s: %s", event, filename)


__all__ = [
    "NotificationGateway",
    "NotificationSender",
    "NotificationService",
    "workflow_uri",
]
