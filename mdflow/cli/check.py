"""Workflow graph checker, suitable for a pre-commit or editor hook.

Checks:
1. ORPHAN: Non-entrypoint steps that nothing references
2. LINK: ``@id@`` references to steps that don't exist
3. PARSE: Files skipped because their frontmatter is malformed

Exit codes:
    0 = All checks pass (silent)
    1 = Warnings found (one summary line)
"""

import asyncio
import sys
from typing import List, Mapping

import click

from mdflow.core.config import MdflowSettings
from mdflow.core.models import InvalidLink, OrphanedWorkflow
from mdflow.core.store import WorkflowStore

MAX_LISTED = 3


def check_orphans(orphans: List[OrphanedWorkflow]) -> List[str]:
    return [f"ORPHAN: {o.filename} ({o.id})" for o in orphans]


def check_links(links: List[InvalidLink]) -> List[str]:
    lines = []
    for link in links:
        source = link.source_workflow
        if link.line is not None:
            source = f"{source}:{link.line}"
        lines.append(f"LINK: {source} references missing step @{link.invalid_reference}@")
    return lines


def check_parse(parse_errors: Mapping[str, str]) -> List[str]:
    return [f"PARSE: {filename}: {error}" for filename, error in sorted(parse_errors.items())]


async def collect_warnings(store: WorkflowStore) -> List[str]:
    """Refresh the store once and run every check against that snapshot."""
    await store.refresh()

    warnings: List[str] = []
    warnings.extend(check_parse(store.parse_errors))
    warnings.extend(check_links(await store.find_invalid_links()))
    warnings.extend(check_orphans(await store.find_orphaned_workflows()))
    return warnings


@click.command("check")
@click.option("--verbose", "-v", is_flag=True, help="Print every issue, one per line")
@click.pass_obj
def check_workflows(settings: MdflowSettings, verbose: bool) -> None:
    """Check workflow integrity (orphans, broken links, unparseable files)."""
    if not settings.workflows_path.is_dir():
        # Nothing to check
        sys.exit(0)

    all_warnings = asyncio.run(collect_warnings(WorkflowStore.from_settings(settings)))

    if not all_warnings:
        sys.exit(0)

    if verbose:
        for warning in all_warnings:
            click.echo(warning)
    else:
        msg = f"[mdflow] {len(all_warnings)} issues: {'; '.join(all_warnings[:MAX_LISTED])}"
        if len(all_warnings) > MAX_LISTED:
            msg += f" (+{len(all_warnings) - MAX_LISTED} more)"
        click.echo(msg)
    sys.exit(1)
