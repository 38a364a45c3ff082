#!/usr/bin/env python3
"""
Thrash Events - Event model, classification, and host input parsing.

Every host action is observed as a ToolCallEvent. Edit tools with a file path
are additionally counted as EditEvents, and failing actions as ErrorEvents.
The primary category on the Event is the most specific one.
"""

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

# =============================================================================
# ERRORS
# =============================================================================


class ThrashError(Exception):
    """Base class for thrash detector errors."""


class MalformedEvent(ThrashError):
    """Host input is missing a required field."""


class StoreIOError(ThrashError):
    """Window store could not be read or written."""


# =============================================================================
# CATEGORIES
# =============================================================================


class EventCategory(str, Enum):
    ERROR = "error"
    EDIT = "edit"
    TOOL_CALL = "tool_call"


EDIT_TOOLS = frozenset({"Edit", "MultiEdit", "Write", "NotebookEdit"})

# Argument keys holding the edited path, in lookup order
PATH_KEYS = ("file_path", "notebook_path", "path")

# Only the head of the output is scanned for failure markers
FAILURE_MARKERS = ("error", "failed")
FAILURE_SCAN_CHARS = 150


def classify(
    tool_name: str, tool_output: str = "", exit_code: Optional[int] = None
) -> EventCategory:
    """Classify a host action into its primary category."""
    if exit_code is not None:
        if exit_code != 0:
            return EventCategory.ERROR
    else:
        # No structured status from the host; fall back to the output head
        head = (tool_output or "")[:FAILURE_SCAN_CHARS].lower()
        if any(marker in head for marker in FAILURE_MARKERS):
            return EventCategory.ERROR
    if tool_name in EDIT_TOOLS:
        return EventCategory.EDIT
    return EventCategory.TOOL_CALL


def edited_path(tool_input: dict) -> str:
    """Return the edited file path from tool arguments, or empty string."""
    for key in PATH_KEYS:
        value = tool_input.get(key)
        if isinstance(value, str) and value.strip():
            return value
    return ""


# =============================================================================
# EVENT
# =============================================================================


@dataclass(frozen=True)
class Event:
    """One observed host action."""

    tool_name: str
    category: EventCategory
    timestamp: float
    tool_input: dict = field(default_factory=dict)
    tool_output: str = ""
    exit_code: Optional[int] = None

    @property
    def failed(self) -> bool:
        return self.category is EventCategory.ERROR

    def facets(self) -> list[EventCategory]:
        """Categories this event is counted under, in rule order."""
        facets = []
        if self.failed:
            facets.append(EventCategory.ERROR)
        if self.tool_name in EDIT_TOOLS and edited_path(self.tool_input):
            facets.append(EventCategory.EDIT)
        facets.append(EventCategory.TOOL_CALL)
        return facets

    def payload(self, category: Optional[EventCategory] = None) -> Any:
        """Payload for a category: output text, edited path, or arguments."""
        category = category or self.category
        if category is EventCategory.ERROR:
            return self.tool_output
        if category is EventCategory.EDIT:
            return edited_path(self.tool_input)
        return self.tool_input

    @classmethod
    def create(
        cls,
        tool_name: str,
        tool_input: Optional[dict] = None,
        tool_output: str = "",
        exit_code: Optional[int] = None,
        timestamp: Optional[float] = None,
    ) -> "Event":
        """Build a classified event; timestamp defaults to now."""
        return cls(
            tool_name=tool_name,
            category=classify(tool_name, tool_output, exit_code),
            timestamp=time.time() if timestamp is None else float(timestamp),
            tool_input=dict(tool_input or {}),
            tool_output=tool_output or "",
            exit_code=exit_code,
        )


# =============================================================================
# HOST INPUT PARSING
# =============================================================================


def _first(data: dict, *keys: str) -> Any:
    for key in keys:
        if key in data and data[key] is not None:
            return data[key]
    return None


def _coerce_exit_code(value: Any) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _flatten_result(result: Any) -> tuple[str, Optional[int], bool]:
    """Flatten a host tool result into (text, exit_code, explicit_error).

    Claude sometimes returns plain strings, sometimes dicts with
    stdout/stderr/output/error fields.
    """
    if result is None:
        return "", None, False
    if isinstance(result, str):
        return result, None, False
    if not isinstance(result, dict):
        return str(result), None, False

    error = result.get("error") or ""
    parts = [
        str(result[key])
        for key in ("error", "stderr", "stdout", "output")
        if result.get(key)
    ]
    exit_code = _coerce_exit_code(_first(result, "exit_code", "exitCode", "returncode"))
    explicit = bool(error) or bool(result.get("is_error")) or bool(result.get("interrupted"))
    return "\n".join(parts), exit_code, explicit


def event_from_hook_input(data: Any, now: Optional[float] = None) -> Event:
    """Build an Event from host hook JSON.

    Raises:
        MalformedEvent: tool name missing or arguments not a mapping
    """
    if not isinstance(data, dict):
        raise MalformedEvent("hook input is not an object")

    tool_name = _first(data, "toolName", "tool_name")
    if not isinstance(tool_name, str) or not tool_name.strip():
        raise MalformedEvent("missing toolName")

    tool_input = _first(data, "toolInput", "tool_input")
    if tool_input is None:
        tool_input = {}
    if not isinstance(tool_input, dict):
        raise MalformedEvent("toolInput is not an object")

    output, result_exit, explicit_error = _flatten_result(
        _first(data, "toolOutput", "tool_output", "tool_response", "tool_result")
    )
    exit_code = _coerce_exit_code(_first(data, "exitCode", "exit_code"))
    if exit_code is None:
        exit_code = result_exit
    if explicit_error and exit_code in (None, 0):
        exit_code = 1

    timestamp = _first(data, "timestamp")
    try:
        timestamp = float(timestamp) if timestamp is not None else None
    except (TypeError, ValueError):
        timestamp = None
    if timestamp is None:
        timestamp = time.time() if now is None else now

    return Event.create(
        tool_name=tool_name,
        tool_input=tool_input,
        tool_output=output,
        exit_code=exit_code,
        timestamp=timestamp,
    )
