"""
WorkflowStore - the authoritative in-memory index of a workflow directory.

Owns:
- the step cache (id -> Step)
- the entrypoint cache (id -> Entrypoint, one entry per id)
- the global preamble read from the reserved control file
- the prompt templates rendered for every entrypoint

Every refresh rebuilds all of it from the markdown files on disk. Nothing is
persisted. The new caches are assembled off to the side and swapped in with no
await in between, so readers see either the old snapshot or the new one.
"""

import asyncio
import logging
from enum import Enum
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional

from mdflow.core.config import MdflowSettings
from mdflow.core.errors import (
    ErrorCode,
    WorkflowError,
    WorkflowIOError,
    WorkflowNotFoundError,
    WorkflowParseError,
    WorkflowValidationError,
)
from mdflow.core.frontmatter import compose_document
from mdflow.core.graph import find_invalid_links, find_orphans
from mdflow.core.models import (
    Entrypoint,
    InvalidLink,
    OperationResult,
    OrphanedWorkflow,
    PromptTemplate,
    Step,
    WorkflowAction,
    WorkflowRequest,
)
from mdflow.core.parser import parse_step, relative_filename
from mdflow.core.templates import apply_parameters, build_prompt

logger = logging.getLogger(__name__)


class StoreState(Enum):
    UNINITIALIZED = "uninitialized"
    LOADING = "loading"
    READY = "ready"


class WorkflowStore:
    """In-memory workflow index with single-flight refresh.

    All public operations are coroutines meant to run on one event loop.
    Filesystem calls are pushed to a worker thread; cache state is only
    touched on the loop.
    """

    def __init__(self, root: Path, settings: Optional[MdflowSettings] = None):
        self.root = Path(root)
        self.settings = settings or MdflowSettings(workflows_path=self.root)

        self._steps: Dict[str, Step] = {}
        self._entrypoints: Dict[str, Entrypoint] = {}
        self._prompts: Dict[str, PromptTemplate] = {}
        self._preamble = ""
        self._parse_errors: Dict[str, str] = {}
        self._state = StoreState.UNINITIALIZED

        self._inflight: Optional["asyncio.Future[None]"] = None
        self._rerun = False
        self.refresh_count = 0

    @classmethod
    def from_settings(cls, settings: MdflowSettings) -> "WorkflowStore":
        return cls(settings.workflows_path, settings)

    # ------------------------------------------------------------------
    # Properties and path helpers
    # ------------------------------------------------------------------

    @property
    def state(self) -> StoreState:
        return self._state

    @property
    def preamble(self) -> str:
        return self._preamble

    @property
    def parse_errors(self) -> Mapping[str, str]:
        """Files skipped by the last refresh, keyed by relative filename."""
        return MappingProxyType(self._parse_errors)

    @property
    def preamble_path(self) -> Path:
        return self.root / self.settings.preamble_filename

    def snapshot(self) -> Mapping[str, Step]:
        """Read-only view of the current step cache.

        Refresh replaces the dict instead of mutating it, so a view taken
        now keeps describing this generation.
        """
        return MappingProxyType(self._steps)

    def normalize_filename(self, filename: str) -> str:
        """Strip whitespace and append the workflow extension if missing."""
        if not isinstance(filename, str) or not filename.strip():
            raise WorkflowValidationError("filename is required")
        filename = filename.strip()
        if not filename.endswith(self.settings.extension):
            filename += self.settings.extension
        return filename

    def _resolve(self, filename: str) -> Path:
        """Absolute path for a workflow file, refusing anything outside the root."""
        root = self.root.resolve()
        path = (root / filename).resolve()
        if root not in path.parents:
            raise WorkflowValidationError(
                f"Workflow path escapes the workflow root: {filename}"
            )
        return path

    # ------------------------------------------------------------------
    # Refresh protocol
    # ------------------------------------------------------------------

    async def refresh(self) -> None:
        """Rebuild every cache from disk.

        A call made while another refresh is running does not start a second
        one: it asks the running refresh to go around once more and waits for
        it to finish.
        """
        if self._inflight is not None:
            self._rerun = True
            await asyncio.shield(self._inflight)
            return

        inflight = asyncio.get_running_loop().create_future()
        self._inflight = inflight
        try:
            while True:
                self._rerun = False
                await self._reload()
                if not self._rerun:
                    break
        except Exception as e:
            inflight.set_exception(e)
            # there may be no waiters
            inflight.exception()
            raise
        else:
            inflight.set_result(None)
        finally:
            self._inflight = None
            if not inflight.done():
                inflight.cancel()

    async def _reload(self) -> None:
        previous_state = self._state
        self._state = StoreState.LOADING
        try:
            preamble = await self._read_preamble()
            files = await asyncio.to_thread(self._list_markdown_files)

            steps: Dict[str, Step] = {}
            entrypoints: Dict[str, Entrypoint] = {}
            parse_errors: Dict[str, str] = {}
            for path in files:
                step = await self._load_step(path, parse_errors)
                if step is None:
                    continue
                if step.id in steps:
                    logger.warning(
                        "Duplicate workflow id %r: %s replaces %s",
                        step.id,
                        step.filename,
                        steps[step.id].filename,
                    )
                steps[step.id] = step
                if step.is_entrypoint:
                    entrypoints[step.id] = Entrypoint.from_step(step)
                else:
                    entrypoints.pop(step.id, None)
        except BaseException:
            self._state = previous_state
            raise

        self._preamble = preamble
        self._parse_errors = parse_errors
        self._steps = steps
        self._entrypoints = entrypoints
        self.rebuild_templates()
        self._state = StoreState.READY
        self.refresh_count += 1
        logger.info(
            "Loaded %d workflow steps (%d entrypoints) from %s",
            len(steps),
            len(entrypoints),
            self.root,
        )

    def _list_markdown_files(self) -> List[Path]:
        """Recursive, name-sorted walk. Skips dotfiles and hidden directories."""
        files: List[Path] = []

        def _walk(directory: Path) -> None:
            try:
                entries = sorted(directory.iterdir(), key=lambda p: p.name)
            except OSError as e:
                logger.warning("Cannot list %s: %s", directory, e)
                return

            for entry in entries:
                if entry.name.startswith("."):
                    continue
                if entry.is_dir() and not entry.is_symlink():
                    _walk(entry)
                elif entry.is_file() and entry.name.endswith(self.settings.extension):
                    files.append(entry)

        if self.root.is_dir():
            _walk(self.root)
        return files

    async def _load_step(self, path: Path, errors: Dict[str, str]) -> Optional[Step]:
        """Parse one file. Failures are logged, recorded in ``errors`` and skipped."""
        try:
            raw = await asyncio.to_thread(path.read_text, encoding="utf-8")
            return parse_step(path, raw, self.root, self.settings.ignored_references)
        except WorkflowParseError as e:
            logger.error("Error parsing workflow file %s: %s", path, e)
            errors[e.path] = e.reason
        except (OSError, UnicodeDecodeError) as e:
            logger.error("Error reading workflow file %s: %s", path, e)
            errors[relative_filename(path, self.root)] = str(e)
        return None

    async def _read_preamble(self) -> str:
        try:
            return await asyncio.to_thread(self.preamble_path.read_text, encoding="utf-8")
        except FileNotFoundError:
            return ""
        except (OSError, UnicodeDecodeError) as e:
            logger.warning("Cannot read preamble %s: %s", self.preamble_path, e)
            return ""

    async def reload_preamble(self) -> str:
        """Re-read the preamble file only. Call rebuild_templates() afterwards."""
        self._preamble = await self._read_preamble()
        return self._preamble

    def rebuild_templates(self) -> None:
        """Re-render the prompt template of every entrypoint."""
        prompts: Dict[str, PromptTemplate] = {}
        for step_id in self._entrypoints:
            step = self._steps.get(step_id)
            if step is None:
                continue
            prompts[step_id] = build_prompt(step, self._preamble)
        self._prompts = prompts

    async def _ensure_loaded(self, cache: Mapping[str, Any]) -> None:
        if not cache:
            await self.refresh()

    # ------------------------------------------------------------------
    # Read operations
    # ------------------------------------------------------------------

    async def list_entrypoints(self, search: Optional[str] = None) -> List[Entrypoint]:
        """Entrypoints, optionally filtered by a case-insensitive substring.

        The search matches title, description or id; any field is enough.
        """
        await self._ensure_loaded(self._entrypoints)
        entrypoints = list(self._entrypoints.values())

        if search:
            needle = search.lower()
            entrypoints = [
                e
                for e in entrypoints
                if needle in e.title.lower()
                or (e.description is not None and needle in e.description.lower())
                or needle in e.id.lower()
            ]

        return entrypoints

    async def get_step(self, step_id: str) -> Optional[Step]:
        await self._ensure_loaded(self._steps)
        return self._steps.get(step_id)

    async def list_steps(self) -> List[Step]:
        await self._ensure_loaded(self._steps)
        return list(self._steps.values())

    async def get_raw_file_content(self, filename: str) -> str:
        """Read a workflow file straight from disk, bypassing the cache.

        Raises:
            WorkflowValidationError: Blank filename or path outside the root
            WorkflowNotFoundError: File doesn't exist
            WorkflowIOError: Any other read failure
        """
        filename = self.normalize_filename(filename)
        path = self._resolve(filename)
        try:
            return await asyncio.to_thread(path.read_text, encoding="utf-8")
        except FileNotFoundError as e:
            raise WorkflowNotFoundError(f"Workflow file {filename} does not exist") from e
        except (OSError, UnicodeDecodeError) as e:
            raise WorkflowIOError(f"Failed to read workflow file {filename}: {e}") from e

    async def find_orphaned_workflows(self) -> List[OrphanedWorkflow]:
        await self._ensure_loaded(self._steps)
        return find_orphans(self.snapshot())

    async def find_invalid_links(self) -> List[InvalidLink]:
        await self._ensure_loaded(self._steps)
        return find_invalid_links(self.snapshot())

    async def list_prompts(self) -> List[PromptTemplate]:
        await self._ensure_loaded(self._prompts)
        return list(self._prompts.values())

    async def get_prompt(self, name: str, arguments: Optional[Mapping[str, Any]] = None) -> str:
        """Rendered template for an entrypoint with caller parameters applied.

        Raises:
            WorkflowNotFoundError: No entrypoint prompt with that name
        """
        await self._ensure_loaded(self._prompts)
        prompt = self._prompts.get(name)
        if prompt is None:
            available = ", ".join(self._prompts) or "none"
            raise WorkflowNotFoundError(
                f'Prompt "{name}" not found. Available prompts: {available}'
            )
        return apply_parameters(prompt.template, arguments)

    # ------------------------------------------------------------------
    # Mutations (never raise, always return an OperationResult)
    # ------------------------------------------------------------------

    def _validate_request(self, request: WorkflowRequest) -> str:
        filename = self.normalize_filename(request.filename)
        if any(part.startswith(".") for part in Path(filename).parts):
            raise WorkflowValidationError(
                f"Hidden files are not indexed as workflows: {filename}"
            )
        if not isinstance(request.title, str) or not request.title.strip():
            raise WorkflowValidationError("title is required")
        if not isinstance(request.content, str):
            raise WorkflowValidationError("content is required")
        return filename

    @staticmethod
    def _write_file(path: Path, text: str) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text, encoding="utf-8")

    async def create_or_update_workflow(self, request: WorkflowRequest) -> OperationResult:
        """Write a workflow file (frontmatter + body) and refresh.

        Whether this is a create or an update is decided before writing.
        """
        try:
            filename = self._validate_request(request)
            path = self._resolve(filename)
            step_id = path.stem
            existed = await asyncio.to_thread(path.exists)

            meta: Dict[str, Any] = {"title": request.title}
            if request.description:
                meta["description"] = request.description
            if request.is_entrypoint:
                meta["entrypoint"] = True

            await asyncio.to_thread(
                self._write_file, path, compose_document(meta, request.content)
            )
            await self.refresh()
        except WorkflowError as e:
            logger.error("Error creating/updating workflow: %s", e)
            return OperationResult(
                success=False,
                message=f"Failed to create/update workflow: {e.message}",
                error_code=e.code,
            )
        except OSError as e:
            logger.error("Error creating/updating workflow: %s", e)
            return OperationResult(
                success=False,
                message=f"Failed to create/update workflow: {e}",
                error_code=ErrorCode.IO_ERROR,
            )

        action = WorkflowAction.UPDATED if existed else WorkflowAction.CREATED
        return OperationResult(
            success=True,
            message=f"Workflow {filename} {action.value} successfully",
            step_id=step_id,
            action=action,
        )

    async def delete_workflow(self, filename: str) -> OperationResult:
        """Delete a workflow file and refresh. A missing file is a failure result."""
        try:
            filename = self.normalize_filename(filename)
            path = self._resolve(filename)

            if not await asyncio.to_thread(path.is_file):
                return OperationResult(
                    success=False,
                    message=f"Workflow file {filename} does not exist",
                    error_code=ErrorCode.NOT_FOUND,
                )

            await asyncio.to_thread(path.unlink)
            await self.refresh()
        except WorkflowError as e:
            logger.error("Error deleting workflow: %s", e)
            return OperationResult(
                success=False,
                message=f"Failed to delete workflow: {e.message}",
                error_code=e.code,
            )
        except OSError as e:
            logger.error("Error deleting workflow: %s", e)
            return OperationResult(
                success=False,
                message=f"Failed to delete workflow: {e}",
                error_code=ErrorCode.IO_ERROR,
            )

        return OperationResult(
            success=True,
            message=f"Workflow {filename} deleted successfully",
            step_id=path.stem,
            action=WorkflowAction.DELETED,
        )


__all__ = ["StoreState", "WorkflowStore"]
