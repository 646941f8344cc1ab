"""Render workflow steps into self-contained instruction templates."""

from typing import Any, Mapping, Optional

from mdflow.core.models import PromptArgument, PromptTemplate, Step

INSTRUCTIONS_PARAM = "additional_instructions"
INSTRUCTIONS_PLACEHOLDER = "{{" + INSTRUCTIONS_PARAM + "}}"

TOOLS_BLOCK = """## Available Tools

You can use these workflow tools to navigate and manage workflows:

- **workflow_list_entrypoints**: List all available workflow entrypoints
- **workflow_get_step**: Get details for a specific workflow step
- **workflow_get_raw_content**: Read the raw markdown of a workflow file
- **workflow_create_or_update**: Create or update workflow files
- **workflow_delete**: Delete workflow files
- **workflow_find_orphans**: Find orphaned workflows
- **workflow_find_invalid_links**: Find invalid workflow references"""

GETTING_STARTED_BLOCK = """## Getting Started

1. Review the workflow content above
2. Follow any instructions or guidelines provided
3. Use the workflow tools to navigate to next steps if available
4. Use workflow_get_step to continue the workflow with the next step ID

**Execute this workflow step now by following the content and instructions above.**"""

TERMINAL_STEP_NOTE = (
    "This workflow step has no next steps defined. "
    "This may be a terminal step in the workflow."
)


def render_step(step: Step, preamble: str = "") -> str:
    """Render a step as an instruction document.

    The result still contains the ``{{additional_instructions}}`` placeholder;
    apply_parameters() fills or removes it.
    """
    parts = []

    if preamble:
        parts.append(f"{preamble.strip()}\n\n---")

    parts.append(f"# {step.title}")
    parts.append(INSTRUCTIONS_PLACEHOLDER)
    parts.append(
        f"## Workflow Step\n\n**Step ID:** {step.id}\n\n**Content:**\n{step.content.strip()}"
    )

    if step.next_steps:
        listing = "\n".join(f"- @{ref}@" for ref in step.next_steps)
        parts.append(
            f"**Next Steps:**\n{listing}\n\n"
            "To continue this workflow, use the workflow_get_step tool "
            "with one of the next step IDs."
        )

    parts.append(TOOLS_BLOCK)

    if step.next_steps:
        navigation = "\n".join(
            f'- **{ref}**: Use `workflow_get_step` with step_id="{ref}" to continue'
            for ref in step.next_steps
        )
        parts.append(
            "## Workflow Navigation\n\n"
            f"This workflow step references the following next steps:\n{navigation}"
        )
    else:
        parts.append(f"## Workflow Navigation\n\n{TERMINAL_STEP_NOTE}")

    parts.append(GETTING_STARTED_BLOCK)

    return "\n\n".join(parts) + "\n"


def apply_parameters(template: str, parameters: Optional[Mapping[str, Any]] = None) -> str:
    """Substitute caller parameters into a rendered template.

    ``additional_instructions`` becomes its own labeled subsection, or the
    placeholder is dropped when absent. Any other ``name`` replaces every
    ``{{name}}`` literally.
    """
    parameters = parameters or {}

    instructions = parameters.get(INSTRUCTIONS_PARAM)
    if isinstance(instructions, str) and instructions.strip():
        section = f"## Additional Instructions\n\n{instructions}\n\n---"
        result = template.replace(INSTRUCTIONS_PLACEHOLDER, section)
    else:
        result = template.replace(INSTRUCTIONS_PLACEHOLDER + "\n\n", "")
        result = result.replace(INSTRUCTIONS_PLACEHOLDER, "")

    for key, value in parameters.items():
        if key == INSTRUCTIONS_PARAM:
            continue
        result = result.replace("{{" + key + "}}", str(value))

    return result


def build_prompt(step: Step, preamble: str = "") -> PromptTemplate:
    """Prompt definition plus rendered template for an entrypoint step."""
    description = f"Execute workflow: {step.title}"
    if step.description:
        description += f" - {step.description}"

    return PromptTemplate(
        name=step.id,
        description=description,
        template=render_step(step, preamble),
        arguments=[
            PromptArgument(
                name=INSTRUCTIONS_PARAM,
                description="Optional additional instructions or context for executing this workflow",
                required=False,
            )
        ],
    )


__all__ = [
    "INSTRUCTIONS_PARAM",
    "INSTRUCTIONS_PLACEHOLDER",
    "TERMINAL_STEP_NOTE",
    "render_step",
    "apply_parameters",
    "build_prompt",
]
