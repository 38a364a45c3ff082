#!/usr/bin/env python3
"""
Thrash Thresholds - Typed detector configuration and rule evaluation.

Rules are independent and evaluated on every call. Findings come back in
rule declaration order (not ranked by severity):
  1. RepeatedError      - same error signature N times within the window
  2. EditLoop           - same basename edited N times within the window
  3. IdenticalToolCall  - same tool + arguments N times within the window
  4. HighFailureRate    - M failures among the last K tool calls (count-based)
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional

from _thrash_events import EventCategory
from _thrash_findings import Finding, Trigger
from _thrash_store import WindowStore

logger = logging.getLogger(__name__)

# =============================================================================
# CONFIGURATION
# =============================================================================

DEFAULT_THRESHOLD = 3
DEFAULT_WINDOW_SECONDS = 600.0
DEFAULT_RECENT_SAMPLE_SIZE = 10
DEFAULT_FAILURE_COUNT = 7

# Recognized option names -> accepted aliases
OPTION_ALIASES = {
    "errorThreshold": ("errorThreshold", "error_threshold"),
    "editThreshold": ("editThreshold", "edit_threshold"),
    "toolCallThreshold": ("toolCallThreshold", "tool_call_threshold"),
    "windowSeconds": ("windowSeconds", "window_seconds"),
    "recentSampleSize": ("recentSampleSize", "recent_sample_size"),
    "failureRateThreshold": ("failureRateThreshold", "failure_rate_threshold"),
}


@dataclass(frozen=True)
class ThresholdConfig:
    count: int = DEFAULT_THRESHOLD
    window: float = DEFAULT_WINDOW_SECONDS


@dataclass(frozen=True)
class FailureRateConfig:
    recent_sample_size: int = DEFAULT_RECENT_SAMPLE_SIZE
    failure_count: int = DEFAULT_FAILURE_COUNT


@dataclass(frozen=True)
class DetectorConfig:
    error: ThresholdConfig = field(default_factory=ThresholdConfig)
    edit: ThresholdConfig = field(default_factory=ThresholdConfig)
    tool_call: ThresholdConfig = field(default_factory=ThresholdConfig)
    failure_rate: FailureRateConfig = field(default_factory=FailureRateConfig)

    def for_category(self, category: EventCategory) -> ThresholdConfig:
        return {
            EventCategory.ERROR: self.error,
            EventCategory.EDIT: self.edit,
            EventCategory.TOOL_CALL: self.tool_call,
        }[category]

    @classmethod
    def from_options(cls, options: Optional[Mapping[str, Any]] = None) -> "DetectorConfig":
        """Build config from flat option names; bad values fall back to defaults."""
        options = options or {}

        def pick(name: str, default, cast):
            for alias in OPTION_ALIASES[name]:
                if alias not in options:
                    continue
                raw = options[alias]
                try:
                    value = cast(raw)
                except (TypeError, ValueError):
                    value = None
                if value is None or isinstance(raw, bool) or value <= 0:
                    logger.warning(
                        "thrash config: invalid %s=%r, using default %s", alias, raw, default
                    )
                    return default
                return value
            return default

        window = pick("windowSeconds", DEFAULT_WINDOW_SECONDS, float)
        sample = pick("recentSampleSize", DEFAULT_RECENT_SAMPLE_SIZE, int)
        failures = pick("failureRateThreshold", DEFAULT_FAILURE_COUNT, int)
        if failures > sample:
            logger.warning(
                "thrash config: failureRateThreshold %s exceeds recentSampleSize %s, clamping",
                failures,
                sample,
            )
            failures = sample

        return cls(
            error=ThresholdConfig(pick("errorThreshold", DEFAULT_THRESHOLD, int), window),
            edit=ThresholdConfig(pick("editThreshold", DEFAULT_THRESHOLD, int), window),
            tool_call=ThresholdConfig(pick("toolCallThreshold", DEFAULT_THRESHOLD, int), window),
            failure_rate=FailureRateConfig(sample, failures),
        )


# =============================================================================
# EVALUATOR
# =============================================================================

# Windowed counting rules in declaration order
_WINDOW_RULES = (
    (Trigger.REPEATED_ERROR, EventCategory.ERROR),
    (Trigger.EDIT_LOOP, EventCategory.EDIT),
    (Trigger.IDENTICAL_TOOL_CALL, EventCategory.TOOL_CALL),
)


def _minutes(seconds: float) -> str:
    if seconds % 60 == 0:
        return f"{int(seconds // 60)}m"
    return f"{seconds:g}s"


class ThresholdEvaluator:
    """Apply counting rules to a (pruned) window store."""

    def __init__(self, config: Optional[DetectorConfig] = None):
        self.config = config or DetectorConfig()

    def evaluate(
        self, store: WindowStore, signatures: Mapping[EventCategory, str]
    ) -> list[Finding]:
        """Evaluate all rules for the incoming event's signatures.

        Args:
            store: Store already appended to and pruned for this event
            signatures: Incoming signature per observed category. Categories
                absent here (or with a None signature) do not fire.
        """
        findings = []
        for trigger, category in _WINDOW_RULES:
            signature = signatures.get(category)
            if not signature:
                continue
            threshold = self.config.for_category(category)
            occurrences = store.count(category, signature)
            if occurrences >= threshold.count:
                findings.append(
                    Finding.for_trigger(
                        trigger,
                        occurrences,
                        f"`{signature}` seen {occurrences}x in {_minutes(threshold.window)}",
                    )
                )

        if signatures.get(EventCategory.TOOL_CALL):
            finding = self.failure_rate(store)
            if finding:
                findings.append(finding)
        return findings

    def failure_rate(self, store: WindowStore) -> Optional[Finding]:
        rate = self.config.failure_rate
        recent = store.tail(EventCategory.TOOL_CALL, rate.recent_sample_size)
        failures = sum(1 for entry in recent if entry.failed)
        if failures < rate.failure_count:
            return None
        return Finding.for_trigger(
            Trigger.HIGH_FAILURE_RATE,
            failures,
            f"{failures} of the last {len(recent)} tool calls failed",
        )
