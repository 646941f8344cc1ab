"""Tests for orphan detection, link validation and graph building."""

from mdflow.core.graph import (
    ORPHAN_REASON,
    build_graph,
    find_invalid_links,
    find_orphans,
    reachable_ids,
)
from mdflow.core.models import Step


def _step(step_id, next_steps=(), entrypoint=False, content=None):
    if content is None:
        content = " ".join(f"@{r}@" for r in next_steps)
    return Step(
        id=step_id,
        title=step_id.title(),
        content=content,
        next_steps=list(next_steps),
        is_entrypoint=entrypoint,
        filename=f"{step_id}.md",
    )


def _steps(*steps):
    return {s.id: s for s in steps}


class TestFindOrphans:
    def test_unreferenced_step_is_orphan(self):
        steps = _steps(_step("a", ["b"], entrypoint=True), _step("b"), _step("c"))
        orphans = find_orphans(steps)
        assert [o.id for o in orphans] == ["c"]
        assert orphans[0].reason == ORPHAN_REASON
        assert orphans[0].filename == "c.md"
        assert orphans[0].title == "C"

    def test_entrypoint_never_orphan(self):
        steps = _steps(_step("a", entrypoint=True))
        assert find_orphans(steps) == []

    def test_referenced_by_non_entrypoint_counts(self):
        # Reachability is not required, any reference rescues a step
        steps = _steps(_step("x", ["y"]), _step("y", ["x"]))
        assert find_orphans(steps) == []

    def test_self_reference_does_not_rescue(self):
        steps = _steps(_step("loop", ["loop"]))
        assert [o.id for o in find_orphans(steps)] == ["loop"]

    def test_empty(self):
        assert find_orphans({}) == []


class TestFindInvalidLinks:
    def test_reports_unknown_reference(self):
        steps = _steps(
            _step("a", ["b", "ghost"], entrypoint=True, content="line one\nsee @b@\nand @ghost@"),
            _step("b"),
        )
        links = find_invalid_links(steps)
        assert len(links) == 1
        link = links[0]
        assert link.source_workflow == "a"
        assert link.source_title == "A"
        assert link.invalid_reference == "ghost"
        assert link.line == 3

    def test_one_entry_per_pair(self):
        steps = _steps(_step("a", ["ghost"]), _step("b", ["ghost"]))
        links = find_invalid_links(steps)
        assert [(link.source_workflow, link.invalid_reference) for link in links] == [
            ("a", "ghost"),
            ("b", "ghost"),
        ]

    def test_cycles_are_valid(self):
        steps = _steps(_step("a", ["b"], entrypoint=True), _step("b", ["a"]))
        assert find_invalid_links(steps) == []


class TestGraph:
    def test_reachable_ids(self):
        steps = _steps(
            _step("a", ["b"], entrypoint=True), _step("b", ["c", "ghost"]), _step("c"), _step("d")
        )
        assert reachable_ids(steps, ["a"]) == {"a", "b", "c"}

    def test_build_graph_marks_missing(self):
        steps = _steps(_step("a", ["b", "ghost"], entrypoint=True), _step("b"), _step("lonely"))
        graph = build_graph(steps)

        ids = [n.id for n in graph.nodes]
        assert ids == ["a", "b", "ghost"]
        ghost = graph.nodes[2]
        assert ghost.missing is True
        assert graph.nodes[0].entrypoint is True
        assert {(e.source, e.target) for e in graph.edges} == {("a", "b"), ("a", "ghost")}

    def test_to_dict(self):
        graph = build_graph(_steps(_step("a", entrypoint=True)))
        data = graph.to_dict()
        assert data["nodes"][0]["id"] == "a"
        assert data["edges"] == []
