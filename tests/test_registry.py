"""Tests for the tool call registry and result summaries."""

from __future__ import annotations

import pytest

from agentwizard.session.registry import (
    ToolCallRegistry,
    count_lines,
    diff_line_counts,
    summarize_result,
)
from agentwizard.ui.store import UIStateStore
from agentwizard.ui.types import HistoryKind, ToolCallStatus

# =============================================================================
# Summaries
# =============================================================================


class TestSummarizeResult:
    """Tests for human summaries of tool results."""

    def test_read_ignores_trailing_newline(self):
        """Test a Read of two lines ending in a newline reports 2 lines."""
        assert summarize_result("Read", "l1\nl2\n") == "Read 2 lines"

    def test_glob_counts_non_blank_lines(self):
        """Test Glob counts file paths, skipping blank lines."""
        assert summarize_result("Glob", "a.py\n\nb.py\n") == "Found 2 files"

    def test_grep_counts_matches(self):
        """Test Grep summary."""
        assert summarize_result("Grep", "a.py:1:x\na.py:7:x\nb.py:2:x") == "Found 3 matches"

    def test_write_uses_input_content(self):
        """Test Write counts the lines it was asked to write."""
        assert summarize_result("Write", "File created", {"content": "a\nb\n"}) == "Wrote 2 lines"
        assert summarize_result("Write", "File created", {"content": "a"}) == "Wrote 1 line"

    def test_edit_counts_added_and_removed(self):
        """Test Edit reports added and removed lines from its input."""
        summary = summarize_result(
            "Edit",
            "The file has been updated",
            {"old_string": "a\nb", "new_string": "a\nc\nd"},
        )
        assert summary == "Added 2 lines, removed 1 line"

    def test_content_blocks_are_flattened(self):
        """Test list-of-blocks content is joined before counting."""
        content = [{"type": "text", "text": "one\ntwo"}]
        assert summarize_result("Read", content) == "Read 2 lines"

    def test_unknown_tool_has_no_summary(self):
        """Test tools without a summary rule return None."""
        assert summarize_result("Bash", "output") is None

    @pytest.mark.parametrize("content", [None, "", 42, {"text": "x"}, []])
    def test_malformed_or_empty_content(self, content):
        """Test malformed content yields None instead of raising."""
        assert summarize_result("Read", content) is None

    def test_write_without_content_input(self):
        """Test Write with no content input has no summary."""
        assert summarize_result("Write", "done", {}) is None


class TestLineCounting:
    """Tests for the line counting helpers."""

    def test_count_lines(self):
        """Test line counts with and without trailing newline."""
        assert count_lines("") == 0
        assert count_lines("a") == 1
        assert count_lines("a\n") == 1
        assert count_lines("a\n\nb") == 3

    def test_diff_line_counts(self):
        """Test diff counting ignores unchanged lines."""
        assert diff_line_counts("x\ny\nz", "x\nY\nz") == (1, 1)
        assert diff_line_counts("", "a\nb") == (2, 0)


# =============================================================================
# Registry
# =============================================================================


class TestToolCallRegistry:
    """Tests for registering and closing tool calls."""

    @pytest.fixture
    def registry(self, store: UIStateStore) -> ToolCallRegistry:
        return ToolCallRegistry(store)

    def test_register_and_complete(self, registry, store):
        """Test a completed call leaves one success entry with its summary."""
        assert registry.register("t1", "Read", {"file_path": "/p/a.py"})
        assert "t1" in registry
        assert store.history == ()

        item = registry.complete("t1", False, "l1\nl2\n")

        assert item is not None
        assert item.kind is HistoryKind.TOOL_CALL
        assert item.tool_call.status is ToolCallStatus.SUCCESS
        assert item.tool_call.result == "Read 2 lines"
        assert item.tool_call.input["file_path"] == "/p/a.py"
        assert len(registry) == 0
        assert len(store.history) == 1

    def test_error_result(self, registry, store):
        """Test an error result records the error text."""
        registry.register("t1", "Bash", {"command": "false"})
        registry.complete("t1", True, "exit code 1")

        record = store.history[0].tool_call
        assert record.status is ToolCallStatus.ERROR
        assert record.error == "exit code 1"

    def test_unknown_result_is_ignored(self, registry, store):
        """Test a result for an unregistered id changes nothing."""
        assert registry.complete("nope", False, "ok") is None
        assert store.history == ()

    def test_duplicate_register_is_ignored(self, registry, store):
        """Test the second registration of an id is dropped."""
        assert registry.register("t1", "Read", {"file_path": "a"})
        assert not registry.register("t1", "Read", {"file_path": "b"})
        registry.complete("t1", False, "x")
        assert store.history[0].tool_call.input["file_path"] == "a"

    @pytest.mark.parametrize("name", ["Task", "AskUserQuestion", "TodoWrite"])
    def test_internal_tools_are_skipped(self, registry, name):
        """Test bookkeeping tools never enter the registry."""
        assert not registry.register("t1", name, {})
        assert len(registry) == 0

    def test_input_is_frozen(self, registry):
        """Test registered input cannot be mutated afterwards."""
        registry.register("t1", "Read", {"file_path": "a"})
        call = next(iter(registry))
        with pytest.raises(TypeError):
            call.input["file_path"] = "b"  # type: ignore[index]

    def test_description_is_kept(self, registry, store):
        """Test the input description is carried onto the record."""
        registry.register("t1", "Bash", {"command": "ls", "description": "List files"})
        registry.complete("t1", False, "a\nb")
        assert store.history[0].tool_call.description == "List files"

    def test_flush_interrupted(self, registry, store):
        """Test flushing records every open call once and empties the registry."""
        registry.register("t1", "Read", {"file_path": "a"})
        registry.register("t2", "Bash", {"command": "make"})

        assert registry.flush_interrupted() == 2
        assert len(registry) == 0
        statuses = [item.tool_call.status for item in store.history]
        assert statuses == [ToolCallStatus.INTERRUPTED, ToolCallStatus.INTERRUPTED]

        # A late result for a flushed call adds nothing
        assert registry.complete("t1", False, "x") is None
        assert len(store.history) == 2

    def test_flush_empty(self, registry, store):
        """Test flushing with nothing open reports zero."""
        assert registry.flush_interrupted() == 0
        assert store.history == ()

    def test_deny_open_call(self, registry, store):
        """Test denying an open call closes it as denied."""
        registry.register("t1", "Bash", {"command": "rm -rf /"})
        registry.deny("Bash", {"command": "rm -rf /"})

        assert "t1" not in registry
        assert store.history[0].tool_call.status is ToolCallStatus.DENIED
        # The engine's error result for the denied call is ignored
        assert registry.complete("t1", True, "denied") is None
        assert len(store.history) == 1

    def test_deny_before_request(self, registry, store):
        """Test a denial that arrives first closes the call when it is requested."""
        registry.deny("Bash", {"command": "rm -rf /"})
        assert store.history == ()

        registry.register("t1", "Bash", {"command": "rm -rf /"})

        assert "t1" not in registry
        assert store.history[0].tool_call.status is ToolCallStatus.DENIED

    def test_deny_only_matches_same_input(self, registry, store):
        """Test a denial does not close a call with different input."""
        registry.register("t1", "Bash", {"command": "ls"})
        registry.deny("Bash", {"command": "rm -rf /"})
        assert "t1" in registry
        assert store.history == ()

    def test_deny_internal_tool(self, registry, store):
        """Test denying an internal tool is recorded even though it never registers."""
        registry.deny("Task", {"description": "explore", "prompt": "look around"})

        assert len(store.history) == 1
        denied = store.history[0].tool_call
        assert denied.tool_name == "Task"
        assert denied.status is ToolCallStatus.DENIED
        assert denied.description == "explore"

        assert registry.register("t1", "Task", {"description": "explore", "prompt": "look around"}) is False
        assert len(store.history) == 1
        assert registry.drop_early_denials() == 0

    def test_unmatched_denial_dropped(self, registry, store):
        """Test a denial whose request never arrives does not outlive the iteration."""
        registry.deny("Bash", {"command": "rm -rf /"})
        assert registry.drop_early_denials() == 1

        registry.register("t1", "Bash", {"command": "rm -rf /"})

        assert "t1" in registry
        assert store.history == ()
