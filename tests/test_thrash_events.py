"""Tests for event classification and host input parsing."""

import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent / "lib"))

from _thrash_events import (
    Event,
    EventCategory,
    MalformedEvent,
    classify,
    event_from_hook_input,
)


class TestClassify:
    def test_nonzero_exit_is_error(self):
        assert classify("Bash", "all good", 2) is EventCategory.ERROR

    def test_failure_marker_in_output_head_is_error(self):
        assert classify("Bash", "FAILED tests/test_x.py::test_y") is EventCategory.ERROR

    def test_marker_past_scan_window_ignored(self):
        output = "ok\n" * 100 + "error at the very end"

        assert classify("Bash", output, 0) is EventCategory.TOOL_CALL

    def test_zero_exit_ignores_failure_words(self):
        output = "Build succeeded: 0 errors, 0 warnings"

        assert classify("Bash", output, 0) is EventCategory.TOOL_CALL

    def test_zero_exit_edit_ignores_failure_words(self):
        assert classify("Edit", "Removed error handling branch", 0) is EventCategory.EDIT

    def test_edit_tools(self):
        for tool in ("Edit", "MultiEdit", "Write", "NotebookEdit"):
            assert classify(tool, "", 0) is EventCategory.EDIT

    def test_failing_edit_is_error(self):
        assert classify("Edit", "Error: old_string not found", None) is EventCategory.ERROR

    def test_other_tools(self):
        assert classify("Read", "file contents", None) is EventCategory.TOOL_CALL


class TestEventFacets:
    def test_plain_tool_call(self):
        event = Event.create("Grep", {"pattern": "x"}, timestamp=0)

        assert event.facets() == [EventCategory.TOOL_CALL]

    def test_edit_counts_as_edit_and_tool_call(self):
        event = Event.create("Edit", {"file_path": "/a/Foo.ts"}, timestamp=0)

        assert event.facets() == [EventCategory.EDIT, EventCategory.TOOL_CALL]

    def test_failing_edit_has_all_facets(self):
        event = Event.create("Edit", {"file_path": "/a/Foo.ts"}, "Error: no match", timestamp=0)

        assert event.failed
        assert event.facets() == [
            EventCategory.ERROR,
            EventCategory.EDIT,
            EventCategory.TOOL_CALL,
        ]

    def test_edit_without_path_is_only_tool_call(self):
        event = Event.create("Write", {"content": "x"}, timestamp=0)

        assert event.facets() == [EventCategory.TOOL_CALL]

    def test_payload_per_category(self):
        event = Event.create("Edit", {"file_path": "/a/b.py"}, "Error: x", timestamp=0)

        assert event.payload(EventCategory.ERROR) == "Error: x"
        assert event.payload(EventCategory.EDIT) == "/a/b.py"
        assert event.payload(EventCategory.TOOL_CALL) == {"file_path": "/a/b.py"}


class TestEventFromHookInput:
    def test_camel_case_schema(self):
        # Arrange
        data = {
            "toolName": "Bash",
            "toolInput": {"command": "make"},
            "toolOutput": "make: *** [all] Error 2",
            "exitCode": 2,
            "timestamp": 1234.5,
        }

        # Act
        event = event_from_hook_input(data)

        # Assert
        assert event.tool_name == "Bash"
        assert event.category is EventCategory.ERROR
        assert event.exit_code == 2
        assert event.timestamp == 1234.5

    def test_host_snake_case_with_result_dict(self):
        data = {
            "tool_name": "Bash",
            "tool_input": {"command": "ls /nope"},
            "tool_response": {"stdout": "", "stderr": "ls: cannot access '/nope'", "exit_code": 2},
        }

        event = event_from_hook_input(data, now=99.0)

        assert event.failed
        assert "cannot access" in event.tool_output
        assert event.timestamp == 99.0

    def test_explicit_error_flag_marks_failure(self):
        data = {"tool_name": "Read", "tool_input": {}, "tool_response": {"is_error": True}}

        event = event_from_hook_input(data, now=1.0)

        assert event.failed
        assert event.exit_code == 1

    def test_string_result(self):
        data = {"tool_name": "WebFetch", "tool_input": {"url": "x"}, "tool_response": "page body"}

        event = event_from_hook_input(data, now=1.0)

        assert event.tool_output == "page body"
        assert event.category is EventCategory.TOOL_CALL

    def test_missing_optional_fields_default(self):
        event = event_from_hook_input({"tool_name": "Glob"}, now=5.0)

        assert event.tool_input == {}
        assert event.tool_output == ""
        assert event.exit_code is None

    def test_bad_timestamp_uses_now(self):
        event = event_from_hook_input({"tool_name": "Glob", "timestamp": "soon"}, now=7.0)

        assert event.timestamp == 7.0

    @pytest.mark.parametrize(
        "data",
        [
            None,
            [],
            {},
            {"tool_name": ""},
            {"tool_name": "   "},
            {"toolName": 42},
            {"tool_name": "Bash", "tool_input": "ls"},
        ],
    )
    def test_malformed_input_raises(self, data):
        with pytest.raises(MalformedEvent):
            event_from_hook_input(data)
