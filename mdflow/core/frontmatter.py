"""YAML frontmatter parsing for workflow markdown files."""

import yaml
from typing import Any, Dict, Tuple


class FrontmatterError(ValueError):
    """Frontmatter block is present but is not a YAML mapping."""


def parse_frontmatter(content: str, strict: bool = False) -> Tuple[Dict[str, Any], str]:
    """Parse YAML frontmatter from markdown content.

    Frontmatter is enclosed between --- markers at the start of the file:
    ```
    ---
    title: Deploy
    entrypoint: true
    ---

    # Markdown content
    ```

    Args:
        content: Full markdown file content
        strict: Raise FrontmatterError on invalid YAML or a non-mapping
            document instead of treating the whole file as body.

    Returns:
        Tuple of (frontmatter_dict, remaining_content).
        If no frontmatter found, returns ({}, original_content).
    """
    if not content.startswith("---"):
        return {}, content

    # Find closing ---
    end = content.find("\n---", 3)
    if end == -1:
        return {}, content

    yaml_content = content[4:end]
    remaining = content[end + 4 :].lstrip("\n")

    try:
        meta = yaml.safe_load(yaml_content)
    except yaml.YAMLError as e:
        if strict:
            raise FrontmatterError(f"invalid YAML frontmatter: {e}") from e
        return {}, content

    if meta is None:
        return {}, remaining
    if not isinstance(meta, dict):
        if strict:
            raise FrontmatterError(
                f"frontmatter must be a mapping, got {type(meta).__name__}"
            )
        return {}, content

    return meta, remaining


def build_frontmatter(meta: Dict[str, Any]) -> str:
    """Frontmatter block for ``meta``, keys in insertion order, blank line after."""
    yaml_str = yaml.safe_dump(meta, default_flow_style=False, allow_unicode=True, sort_keys=False)
    return f"---\n{yaml_str}---\n\n"


def compose_document(meta: Dict[str, Any], body: str) -> str:
    """Full workflow file text. An empty ``meta`` yields the body alone."""
    if not meta:
        return body
    return build_frontmatter(meta) + body
