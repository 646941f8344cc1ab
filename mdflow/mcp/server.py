"""mdflow MCP Server - exposes the workflow engine over the Model Context Protocol.

Tools (7):
- workflow_list_entrypoints: List entrypoints, optional search
- workflow_get_step: Step content and next step ids
- workflow_get_raw_content: Raw markdown of a workflow file
- workflow_create_or_update: Write a workflow file (frontmatter + body)
- workflow_delete: Delete a workflow file
- workflow_find_orphans: Non-entrypoint steps nobody references
- workflow_find_invalid_links: References to steps that don't exist

Prompts: one per entrypoint, with an optional ``additional_instructions`` argument.
Resources: ``workflow://{id}`` for every step.

The store, notifier and synchronizer are built in run_server() and passed to
create_server(); there is no module-level state.
"""

import asyncio
import json
import logging
from typing import Any, Dict, List, Optional

from mcp.server import NotificationOptions, Server
from mcp.server.lowlevel.helper_types import ReadResourceContents
from mcp.server.stdio import stdio_server
from mcp.types import (
    GetPromptResult,
    Prompt,
    PromptArgument,
    PromptMessage,
    Resource,
    TextContent,
    Tool,
)
from pydantic import AnyUrl

from mdflow.core.config import MdflowSettings, load_config
from mdflow.core.errors import ErrorCode, WorkflowError, WorkflowNotFoundError
from mdflow.core.notifications import (
    WORKFLOW_URI_SCHEME,
    NotificationSender,
    NotificationService,
    workflow_uri,
)
from mdflow.core.store import WorkflowStore
from mdflow.core.sync import WorkflowSynchronizer
from mdflow.mcp.validation import (
    build_workflow_request,
    error_from_exception,
    error_response,
    optional_string,
    require_string,
)

logger = logging.getLogger(__name__)


# ============================================================================
# Tool Handlers
# ============================================================================


async def handle_workflow_list_entrypoints(
    store: WorkflowStore, search: Optional[str] = None
) -> List[Dict[str, Any]]:
    entrypoints = await store.list_entrypoints(search)
    return [e.to_dict() for e in entrypoints]


async def handle_workflow_get_step(store: WorkflowStore, step_id: str) -> Dict[str, Any]:
    """Step record, or a not_found error response."""
    step = await store.get_step(step_id)
    if step is None:
        return error_response(
            ErrorCode.NOT_FOUND,
            f"Workflow step not found: {step_id}",
            hint="Use workflow_list_entrypoints to discover step ids",
        )
    return step.to_dict()


async def handle_workflow_get_raw_content(store: WorkflowStore, filename: str) -> str:
    return await store.get_raw_file_content(filename)


async def handle_workflow_create_or_update(
    store: WorkflowStore, arguments: Dict[str, Any]
) -> Dict[str, Any]:
    request = build_workflow_request(arguments)
    result = await store.create_or_update_workflow(request)
    return result.to_dict()


async def handle_workflow_delete(store: WorkflowStore, filename: str) -> Dict[str, Any]:
    result = await store.delete_workflow(filename)
    return result.to_dict()


async def handle_workflow_find_orphans(store: WorkflowStore) -> List[Dict[str, Any]]:
    return [o.to_dict() for o in await store.find_orphaned_workflows()]


async def handle_workflow_find_invalid_links(store: WorkflowStore) -> List[Dict[str, Any]]:
    return [link.to_dict() for link in await store.find_invalid_links()]


async def dispatch_tool(store: WorkflowStore, name: str, arguments: Dict[str, Any]) -> Any:
    """Route a tool call to its handler. Raises WorkflowError on bad input."""
    if name == "workflow_list_entrypoints":
        return await handle_workflow_list_entrypoints(store, optional_string(arguments, "search"))
    elif name == "workflow_get_step":
        return await handle_workflow_get_step(store, require_string(arguments, "step_id"))
    elif name == "workflow_get_raw_content":
        return await handle_workflow_get_raw_content(store, require_string(arguments, "filename"))
    elif name == "workflow_create_or_update":
        return await handle_workflow_create_or_update(store, arguments)
    elif name == "workflow_delete":
        return await handle_workflow_delete(store, require_string(arguments, "filename"))
    elif name == "workflow_find_orphans":
        return await handle_workflow_find_orphans(store)
    elif name == "workflow_find_invalid_links":
        return await handle_workflow_find_invalid_links(store)
    return {"error": f"Unknown tool: {name}"}


# ============================================================================
# Notifications
# ============================================================================


def session_sender(session: Any) -> NotificationSender:
    """Sender that forwards gateway notifications to an MCP client session."""

    async def send(method: str, params: Dict[str, Any]) -> None:
        if method == "notifications/resources/updated":
            await session.send_resource_updated(AnyUrl(params["uri"]))
        elif method == "notifications/resources/list_changed":
            await session.send_resource_list_changed()
        elif method == "notifications/message":
            await session.send_log_message(
                level=params.get("level", "info"),
                data=params.get("data"),
                logger=params.get("logger"),
            )
        else:
            logger.debug("Dropping unsupported notification %s", method)

    return send


# ============================================================================
# MCP Server Setup
# ============================================================================


TOOLS = [
    Tool(
        name="workflow_list_entrypoints",
        description="List available workflow entrypoints",
        inputSchema={
            "type": "object",
            "properties": {
                "search": {
                    "type": "string",
                    "description": "Optional search term to filter entrypoints",
                },
            },
            "additionalProperties": False,
        },
    ),
    Tool(
        name="workflow_get_step",
        description="Get step content and next step IDs (works for both entrypoints and regular steps)",
        inputSchema={
            "type": "object",
            "properties": {
                "step_id": {"type": "string", "description": "The ID of the step to retrieve"},
            },
            "required": ["step_id"],
            "additionalProperties": False,
        },
    ),
    Tool(
        name="workflow_get_raw_content",
        description="Get the raw markdown (including frontmatter) of a workflow file",
        inputSchema={
            "type": "object",
            "properties": {
                "filename": {
                    "type": "string",
                    "description": "Workflow filename (with or without .md extension)",
                },
            },
            "required": ["filename"],
            "additionalProperties": False,
        },
    ),
    Tool(
        name="workflow_create_or_update",
        description="Create a new workflow or update an existing one",
        inputSchema={
            "type": "object",
            "properties": {
                "filename": {"type": "string", "description": "Workflow filename (with .md extension)"},
                "title": {"type": "string", "description": "Workflow title"},
                "description": {"type": "string", "description": "Workflow description"},
                "content": {"type": "string", "description": "Workflow content in Markdown format"},
                "is_entrypoint": {
                    "type": "boolean",
                    "description": "Whether this workflow is an entrypoint",
                    "default": False,
                },
            },
            "required": ["filename", "title", "content"],
            "additionalProperties": False,
        },
    ),
    Tool(
        name="workflow_delete",
        description="Delete a workflow file",
        inputSchema={
            "type": "object",
            "properties": {
                "filename": {
                    "type": "string",
                    "description": "Workflow filename to delete (with or without .md extension)",
                },
            },
            "required": ["filename"],
            "additionalProperties": False,
        },
    ),
    Tool(
        name="workflow_find_orphans",
        description="Find orphaned workflows (non-entrypoints that are not referenced by any other workflow)",
        inputSchema={"type": "object", "properties": {}, "additionalProperties": False},
    ),
    Tool(
        name="workflow_find_invalid_links",
        description="Find invalid references to non-existent workflow steps",
        inputSchema={"type": "object", "properties": {}, "additionalProperties": False},
    ),
]


def create_server(
    store: WorkflowStore,
    notifier: Optional[NotificationService] = None,
    name: str = "mdflow",
) -> Server:
    """Create and configure the MCP server around an existing store."""
    server: Server = Server(name)

    def _bind_session() -> None:
        # Notifications need a session; the first request provides one
        if notifier is None or notifier.has_sender:
            return
        try:
            session = server.request_context.session
        except LookupError:
            return
        notifier.set_sender(session_sender(session))

    @server.list_tools()
    async def list_tools() -> List[Tool]:
        _bind_session()
        return TOOLS

    @server.call_tool()
    async def call_tool(name: str, arguments: Optional[Dict[str, Any]]):
        _bind_session()
        try:
            result = await dispatch_tool(store, name, arguments or {})
        except WorkflowError as e:
            result = error_from_exception(e)
        except Exception as e:
            logger.exception("Error executing workflow operation %s", name)
            result = {"error": str(e), "type": type(e).__name__}

        if isinstance(result, str):
            return [TextContent(type="text", text=result)]
        return [TextContent(type="text", text=json.dumps(result, indent=2, default=str))]

    @server.list_prompts()
    async def list_prompts() -> List[Prompt]:
        _bind_session()
        return [
            Prompt(
                name=p.name,
                description=p.description,
                arguments=[
                    PromptArgument(name=a.name, description=a.description, required=a.required)
                    for a in p.arguments
                ],
            )
            for p in await store.list_prompts()
        ]

    @server.get_prompt()
    async def get_prompt(name: str, arguments: Optional[Dict[str, str]]) -> GetPromptResult:
        _bind_session()
        try:
            text = await store.get_prompt(name, arguments)
        except WorkflowNotFoundError as e:
            raise ValueError(e.message) from e
        return GetPromptResult(
            description=f"Workflow prompt: {name}",
            messages=[PromptMessage(role="user", content=TextContent(type="text", text=text))],
        )

    @server.list_resources()
    async def list_resources() -> List[Resource]:
        _bind_session()
        return [
            Resource(
                uri=AnyUrl(workflow_uri(step.id)),
                name=step.id,
                description=step.title,
                mimeType="text/markdown",
            )
            for step in await store.list_steps()
        ]

    @server.read_resource()
    async def read_resource(uri: AnyUrl):
        _bind_session()
        text = str(uri)
        if not text.startswith(WORKFLOW_URI_SCHEME):
            raise ValueError(f"Unsupported resource URI: {text}")
        step = await store.get_step(text[len(WORKFLOW_URI_SCHEME):].rstrip("/"))
        if step is None:
            raise ValueError(f"Workflow not found: {text}")
        content = await store.get_raw_file_content(step.filename)
        return [ReadResourceContents(content=content, mime_type="text/markdown")]

    return server


async def run_server(settings: Optional[MdflowSettings] = None) -> None:
    """Run the MCP server over stdio, watching the workflow root if enabled."""
    settings = settings or load_config()
    store = WorkflowStore.from_settings(settings)
    notifier = NotificationService()
    server = create_server(store, notifier, settings.server_name)

    synchronizer: Optional[WorkflowSynchronizer] = None
    sync_task: Optional["asyncio.Task[None]"] = None
    if settings.watch:
        synchronizer = WorkflowSynchronizer(store, notifier, settings)
        sync_task = asyncio.create_task(synchronizer.run())
    else:
        await store.refresh()

    logger.info("Serving workflows from %s", store.root)
    try:
        async with stdio_server() as (read_stream, write_stream):
            await server.run(
                read_stream,
                write_stream,
                server.create_initialization_options(
                    notification_options=NotificationOptions(resources_changed=True),
                ),
            )
    finally:
        if synchronizer is not None and sync_task is not None:
            synchronizer.stop()
            sync_task.cancel()
            await asyncio.gather(sync_task, return_exceptions=True)


def main():
    """Entry point for ``python -m mdflow.mcp.server``."""
    asyncio.run(run_server())


if __name__ == "__main__":
    main()
