import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Optional

import click

from mdflow.cli.check import check_workflows
from mdflow.core.config import MdflowSettings, load_config
from mdflow.core.errors import WorkflowError
from mdflow.core.graph import build_graph
from mdflow.core.store import WorkflowStore
from mdflow.core.templates import INSTRUCTIONS_PARAM, apply_parameters, render_step

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def _configure_logging(level: str) -> None:
    # stdout belongs to the MCP stdio transport
    logging.basicConfig(level=level, stream=sys.stderr, format=LOG_FORMAT)
    logging.getLogger("mdflow").setLevel(level)


def _load_store(settings: MdflowSettings) -> WorkflowStore:
    store = WorkflowStore.from_settings(settings)
    asyncio.run(store.refresh())
    return store


# -------------------------
# CLI
# -------------------------


@click.group()
@click.option(
    "--config",
    "config_path",
    type=click.Path(path_type=Path),
    default=None,
    help="YAML config file (defaults to ./mdflow.yaml)",
)
@click.option(
    "--root",
    type=click.Path(path_type=Path),
    default=None,
    help="Workflow directory (overrides config and environment)",
)
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default=None,
    help="Logging verbosity",
)
@click.pass_context
def cli(
    ctx: click.Context,
    config_path: Optional[Path],
    root: Optional[Path],
    log_level: Optional[str],
) -> None:
    """mdflow CLI.

    Inspect, check and serve a directory of markdown workflows.
    """
    try:
        settings = load_config(
            config_path,
            cli_overrides={
                "workflows_path": str(root) if root is not None else None,
                "log_level": log_level,
            },
        )
    except ValueError as e:
        raise click.ClickException(f"Invalid configuration: {e}") from e

    _configure_logging(settings.log_level)
    ctx.obj = settings


cli.add_command(check_workflows)


@cli.command("serve")
@click.option("--watch/--no-watch", default=None, help="Watch the workflow directory for changes")
@click.pass_obj
def serve(settings: MdflowSettings, watch: Optional[bool]) -> None:
    """Run the MCP server over stdio."""
    from mdflow.mcp.server import run_server

    if watch is not None:
        settings = settings.model_copy(update={"watch": watch})
    asyncio.run(run_server(settings))


@cli.command("list")
@click.option("--search", default=None, help="Filter entrypoints by title, description or id")
@click.option("--json", "as_json", is_flag=True, help="Print JSON instead of a table")
@click.pass_obj
def list_entrypoints(settings: MdflowSettings, search: Optional[str], as_json: bool) -> None:
    """List workflow entrypoints."""
    store = _load_store(settings)
    entrypoints = asyncio.run(store.list_entrypoints(search))

    if as_json:
        click.echo(json.dumps([e.to_dict() for e in entrypoints], indent=2))
        return

    if not entrypoints:
        click.echo("No entrypoints found.")
        return

    for e in entrypoints:
        line = f"{e.id}\t{e.title}"
        if e.description:
            line += f" - {e.description}"
        click.echo(line)


@cli.command("show")
@click.argument("step_id")
@click.option("--render", is_flag=True, help="Render the full instruction template")
@click.option("--instructions", default=None, help="Additional instructions (with --render)")
@click.pass_obj
def show_step(
    settings: MdflowSettings, step_id: str, render: bool, instructions: Optional[str]
) -> None:
    """Show one step's content and next steps."""
    store = _load_store(settings)
    step = asyncio.run(store.get_step(step_id))
    if step is None:
        raise click.ClickException(f"Workflow step not found: {step_id}")

    if render:
        template = render_step(step, store.preamble)
        click.echo(apply_parameters(template, {INSTRUCTIONS_PARAM: instructions or ""}))
        return

    click.echo(json.dumps(step.to_dict(), indent=2))


@cli.command("raw")
@click.argument("filename")
@click.pass_obj
def show_raw(settings: MdflowSettings, filename: str) -> None:
    """Print a workflow file exactly as stored on disk."""
    store = WorkflowStore.from_settings(settings)
    try:
        click.echo(asyncio.run(store.get_raw_file_content(filename)), nl=False)
    except WorkflowError as e:
        raise click.ClickException(e.message) from e


@cli.command("graph")
@click.pass_obj
def graph(settings: MdflowSettings) -> None:
    """Print the step graph reachable from the entrypoints as JSON."""
    store = _load_store(settings)
    click.echo(json.dumps(build_graph(store.snapshot()).to_dict(), indent=2))


if __name__ == "__main__":
    cli()
