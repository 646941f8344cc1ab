"""Graph checks over a snapshot of parsed steps.

All functions are pure. They take the store's id -> Step mapping and never
touch the filesystem. Cycles are legal (a step may loop back to an earlier
one) so nothing here looks for them.
"""

from typing import Iterable, List, Mapping, Set

from mdflow.core.models import (
    GraphData,
    GraphEdge,
    GraphNode,
    InvalidLink,
    OrphanedWorkflow,
    Step,
)
from mdflow.core.references import find_reference_line

ORPHAN_REASON = "Not referenced by any workflow and not an entrypoint"


def find_orphans(steps: Mapping[str, Step]) -> List[OrphanedWorkflow]:
    """Non-entrypoint steps that no other step references.

    A step referencing only itself is still an orphan.
    """
    referenced: Set[str] = set()
    for step_id, step in steps.items():
        referenced.update(ref for ref in step.next_steps if ref != step_id)

    return [
        OrphanedWorkflow(
            id=step_id,
            title=step.title,
            filename=step.filename,
            reason=ORPHAN_REASON,
        )
        for step_id, step in steps.items()
        if not step.is_entrypoint and step_id not in referenced
    ]


def find_invalid_links(steps: Mapping[str, Step]) -> List[InvalidLink]:
    """One entry per (step, reference) pair naming an unknown step id."""
    known = set(steps)
    links: List[InvalidLink] = []

    for step_id, step in steps.items():
        for reference in step.next_steps:
            if reference in known:
                continue
            links.append(
                InvalidLink(
                    source_workflow=step_id,
                    source_title=step.title,
                    invalid_reference=reference,
                    line=find_reference_line(step.content, reference),
                )
            )

    return links


def reachable_ids(steps: Mapping[str, Step], roots: Iterable[str]) -> Set[str]:
    """Ids of existing steps reachable from ``roots`` (roots included)."""
    seen: Set[str] = set()
    stack = [r for r in roots if r in steps]

    while stack:
        step_id = stack.pop()
        if step_id in seen:
            continue
        seen.add(step_id)
        stack.extend(ref for ref in steps[step_id].next_steps if ref in steps)

    return seen


def build_graph(steps: Mapping[str, Step]) -> GraphData:
    """Nodes and edges reachable from the entrypoints.

    References to unknown ids become ``missing`` nodes so a renderer can flag them.
    """
    graph = GraphData()
    added: Set[str] = set()
    roots = [step_id for step_id, step in steps.items() if step.is_entrypoint]
    order = {step_id: i for i, step_id in enumerate(steps)}

    for step_id in sorted(reachable_ids(steps, roots), key=order.__getitem__):
        step = steps[step_id]
        graph.nodes.append(
            GraphNode(id=step_id, label=step.title, entrypoint=step.is_entrypoint)
        )
        added.add(step_id)

    for node in list(graph.nodes):
        for target in steps[node.id].next_steps:
            if target not in steps and target not in added:
                graph.nodes.append(GraphNode(id=target, label=target, missing=True))
                added.add(target)
            graph.edges.append(GraphEdge(source=node.id, target=target))

    return graph


__all__ = [
    "ORPHAN_REASON",
    "find_orphans",
    "find_invalid_links",
    "reachable_ids",
    "build_graph",
]
