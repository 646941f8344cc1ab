"""Tests for parsing a workflow file into a Step."""

from pathlib import Path

import pytest

from mdflow.core.errors import ErrorCode, WorkflowParseError
from mdflow.core.parser import parse_step, relative_filename


class TestParseStep:
    def test_full_frontmatter(self, tmp_path):
        raw = "---\ntitle: Start\ndescription: Begin\nentrypoint: true\n---\n\nGo to @next@.\n"
        step = parse_step(tmp_path / "start.md", raw, tmp_path)

        assert step.id == "start"
        assert step.title == "Start"
        assert step.description == "Begin"
        assert step.is_entrypoint is True
        assert step.next_steps == ["next"]
        assert step.filename == "start.md"
        assert step.content == "Go to @next@.\n"

    def test_title_defaults_to_id(self, tmp_path):
        step = parse_step(tmp_path / "plain.md", "Just a body.", tmp_path)
        assert step.title == "plain"
        assert step.is_entrypoint is False
        assert step.description is None
        assert step.content == "Just a body."

    def test_nested_file(self, tmp_path):
        step = parse_step(tmp_path / "ops" / "deploy.md", "Body", tmp_path)
        assert step.id == "deploy"
        assert step.filename == "ops/deploy.md"

    @pytest.mark.parametrize("value", ["true", "yes", "on", "1", "TRUE"])
    def test_entrypoint_truthy_strings(self, tmp_path, value):
        raw = f"---\nentrypoint: '{value}'\n---\n\nBody"
        assert parse_step(tmp_path / "a.md", raw, tmp_path).is_entrypoint is True

    @pytest.mark.parametrize("value", ["false", "no", "0", "nope"])
    def test_entrypoint_falsy_strings(self, tmp_path, value):
        raw = f"---\nentrypoint: '{value}'\n---\n\nBody"
        assert parse_step(tmp_path / "a.md", raw, tmp_path).is_entrypoint is False

    def test_ignored_placeholder(self, tmp_path):
        step = parse_step(tmp_path / "a.md", "Write @step-id@ to link.", tmp_path)
        assert step.next_steps == []

    def test_malformed_frontmatter_raises(self, tmp_path):
        raw = "---\ntitle: [unclosed\n---\n\nBody"
        with pytest.raises(WorkflowParseError) as exc_info:
            parse_step(tmp_path / "bad.md", raw, tmp_path)
        assert exc_info.value.path == "bad.md"
        assert exc_info.value.code is ErrorCode.PARSE_ERROR


class TestRelativeFilename:
    def test_inside_root(self, tmp_path):
        assert relative_filename(tmp_path / "a" / "b.md", tmp_path) == "a/b.md"

    def test_outside_root_falls_back_to_name(self, tmp_path):
        assert relative_filename(Path("/elsewhere/x.md"), tmp_path) == "x.md"
