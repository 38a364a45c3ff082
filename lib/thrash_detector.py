#!/usr/bin/env python3
"""
Thrash Detector: circuit breaker for repetitive tool-call failures.

Watches the stream of host tool events and reports when the session is
thrashing:
- the same error keeps coming back
- the same file keeps getting edited
- the same tool call keeps being repeated
- most of the recent tool calls are failing

The detector only counts and reports. It never blocks the host: every
failure inside it is logged and turned into "no findings".

This file holds the Detector and re-exports the public API. Implementation
is in the _thrash_*.py modules.
"""

import logging
from typing import Any, Optional

from _thrash_events import (
    EDIT_TOOLS,
    Event,
    EventCategory,
    MalformedEvent,
    StoreIOError,
    ThrashError,
    classify,
    event_from_hook_input,
)
from _thrash_findings import Finding, Trigger, render, render_all
from _thrash_signature import extract_signature
from _thrash_store import FileWindowStore, WindowEntry, WindowStore, reset_state_dir
from _thrash_thresholds import (
    DetectorConfig,
    FailureRateConfig,
    ThresholdConfig,
    ThresholdEvaluator,
)

logger = logging.getLogger(__name__)

__all__ = [
    "EDIT_TOOLS",
    "Detector",
    "DetectorConfig",
    "Event",
    "EventCategory",
    "FailureRateConfig",
    "FileWindowStore",
    "Finding",
    "MalformedEvent",
    "StoreIOError",
    "ThrashError",
    "ThresholdConfig",
    "ThresholdEvaluator",
    "Trigger",
    "WindowEntry",
    "WindowStore",
    "classify",
    "event_from_hook_input",
    "extract_signature",
    "render",
    "render_all",
    "reset_state_dir",
]


class Detector:
    """Ingest one event, update the window store, return findings."""

    def __init__(
        self,
        store: Optional[WindowStore] = None,
        config: Optional[DetectorConfig] = None,
    ):
        self.config = config or DetectorConfig()
        sample_size = self.config.failure_rate.recent_sample_size
        if store is None:
            store = WindowStore(tail_size=sample_size)
        elif store.tail_size < sample_size:
            store.resize_tail(sample_size)
        self.store = store
        self.evaluator = ThresholdEvaluator(self.config)

    def process(self, event: Any) -> list[Finding]:
        """Process one event. Never raises."""
        if (
            not isinstance(event, Event)
            or not isinstance(event.tool_name, str)
            or not event.tool_name.strip()
        ):
            logger.debug("thrash detector: skipping malformed event %r", event)
            return []
        try:
            with self.store.session():
                return self._process(event)
        except Exception as e:
            logger.warning("thrash detector: failed on %s event: %s", event.tool_name, e)
            return []

    def process_hook_input(self, data: Any, now: Optional[float] = None) -> list[Finding]:
        """Parse host hook JSON and process it. Malformed input yields []."""
        try:
            event = event_from_hook_input(data, now=now)
        except MalformedEvent as e:
            logger.debug("thrash detector: malformed hook input: %s", e)
            return []
        return self.process(event)

    def _process(self, event: Event) -> list[Finding]:
        signatures: dict[EventCategory, str] = {}
        for category in event.facets():
            signature = extract_signature(event, category)
            if signature is None:
                # Nothing countable for this rule; other facets still run
                continue
            failed = event.failed if category is EventCategory.TOOL_CALL else False
            self.store.append(category, signature, event.timestamp, failed=failed)
            signatures[category] = signature

        for category in EventCategory:
            self.store.prune(event.timestamp, self.config.for_category(category).window, category)

        findings = self.evaluator.evaluate(self.store, signatures)
        for finding in findings:
            logger.debug(
                "thrash detector: %s x%d (%s)",
                finding.trigger.value,
                finding.occurrences,
                finding.evidence,
            )
        return findings
