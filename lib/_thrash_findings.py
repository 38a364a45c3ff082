#!/usr/bin/env python3
"""
Thrash Findings - Finding records and their text rendering.

Rendering has no side effects; the caller decides where the text goes
(hook additionalContext, stderr, logs).
"""

from dataclasses import dataclass
from enum import Enum

MAX_RECOVERY_STEPS = 4


class Trigger(str, Enum):
    REPEATED_ERROR = "RepeatedError"
    EDIT_LOOP = "EditLoop"
    IDENTICAL_TOOL_CALL = "IdenticalToolCall"
    HIGH_FAILURE_RATE = "HighFailureRate"


RECOVERY_STEPS = {
    Trigger.REPEATED_ERROR: (
        "Read the full error output, not just the first line",
        "Question the assumption behind the last fix",
        "Search docs or past notes for this exact error",
        "Try a different approach instead of retrying",
    ),
    Trigger.EDIT_LOOP: (
        "Re-read the file before editing it again",
        "Trace the data flow into this file",
        "Simplify the change to the smallest testable step",
        "Step back: is this the right file?",
    ),
    Trigger.IDENTICAL_TOOL_CALL: (
        "Check whether the previous result already answered this",
        "Change the arguments or use a different tool",
        "State what the repeated call is expected to reveal",
    ),
    Trigger.HIGH_FAILURE_RATE: (
        "Stop and list what has failed so far",
        "Verify the environment: paths, dependencies, permissions",
        "Run one small command that is known to succeed",
        "Ask for clarification if the goal is unclear",
    ),
}

_HEADLINES = {
    Trigger.REPEATED_ERROR: ("🔴", "REPEATED ERROR"),
    Trigger.EDIT_LOOP: ("🔁", "EDIT LOOP"),
    Trigger.IDENTICAL_TOOL_CALL: ("♻️", "IDENTICAL TOOL CALL"),
    Trigger.HIGH_FAILURE_RATE: ("⚠️", "HIGH FAILURE RATE"),
}


@dataclass(frozen=True)
class Finding:
    trigger: Trigger
    occurrences: int
    evidence: str
    recovery_steps: tuple[str, ...] = ()

    @classmethod
    def for_trigger(cls, trigger: Trigger, occurrences: int, evidence: str) -> "Finding":
        return cls(trigger, occurrences, evidence, RECOVERY_STEPS[trigger])

    def to_dict(self) -> dict:
        return {
            "trigger": self.trigger.value,
            "occurrences": self.occurrences,
            "evidence": self.evidence,
            "recovery_steps": list(self.recovery_steps),
        }


def render(finding: Finding) -> str:
    """Render a finding as a short markdown warning."""
    icon, title = _HEADLINES[finding.trigger]
    lines = [
        f"{icon} **{title}** ({finding.trigger.value}, {finding.occurrences}x)",
        f"⚡ {finding.evidence}",
    ]
    for i, step in enumerate(finding.recovery_steps[:MAX_RECOVERY_STEPS], 1):
        lines.append(f"   {i}. {step}")
    return "\n".join(lines)


def render_all(findings: list[Finding]) -> str:
    return "\n\n".join(render(f) for f in findings)
