"""Parse a single workflow markdown file into a Step."""

from pathlib import Path
from typing import Any, Iterable

from mdflow.core.errors import WorkflowParseError
from mdflow.core.frontmatter import FrontmatterError, parse_frontmatter
from mdflow.core.models import Step
from mdflow.core.references import DEFAULT_IGNORED_REFERENCES, extract_references

TRUTHY_STRINGS = {"true", "yes", "on", "1"}


def _as_flag(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in TRUTHY_STRINGS
    return bool(value)


def relative_filename(path: Path, root: Path) -> str:
    """Path of a workflow file relative to the root, with forward slashes."""
    try:
        return path.relative_to(root).as_posix()
    except ValueError:
        return path.name


def parse_step(
    path: Path,
    raw_text: str,
    root: Path,
    ignored: Iterable[str] = DEFAULT_IGNORED_REFERENCES,
) -> Step:
    """Build a Step from a file's text.

    The id is the filename stem. Title falls back to the id when the
    frontmatter has none.

    Raises:
        WorkflowParseError: If the frontmatter is present but malformed
    """
    path = Path(path)
    filename = relative_filename(path, Path(root))

    try:
        meta, body = parse_frontmatter(raw_text, strict=True)
    except FrontmatterError as e:
        raise WorkflowParseError(filename, str(e)) from e

    step_id = path.stem
    title = meta.get("title")
    description = meta.get("description")

    return Step(
        id=step_id,
        title=str(title) if title not in (None, "") else step_id,
        content=body,
        next_steps=extract_references(body, ignored),
        is_entrypoint=_as_flag(meta.get("entrypoint", False)),
        filename=filename,
        description=str(description) if description is not None else None,
    )


__all__ = ["parse_step", "relative_filename"]
