#!/usr/bin/env python3
"""
PostToolUse Runner: thrash detection (circuit breaker) for every tool call.

Reads the hook JSON from stdin, feeds it to the Detector backed by the
project-isolated window store, and injects any findings as additional
context. Never blocks: every path exits 0 with valid hook output.

  RULES (declaration order):
    RepeatedError      - same normalized error 3x in 10 minutes
    EditLoop           - same file name edited 3x in 10 minutes
    IdenticalToolCall  - same tool + arguments 3x in 10 minutes
    HighFailureRate    - 7 of the last 10 tool calls failed

Thresholds come from the "thrash" section of hook_settings.json.
"""

import _lib_path  # noqa: F401
import json
import sys
import time

from _config import (
    get_detector_config,
    get_max_findings,
    get_state_dir,
    is_enabled,
)
from _hook_result import HookResult
from thrash_detector import Detector, FileWindowStore, render_all

# =============================================================================
# MAIN RUNNER
# =============================================================================


def build_detector() -> Detector:
    """Detector over the configured on-disk store."""
    detector_config = get_detector_config()
    store = FileWindowStore(
        get_state_dir(), tail_size=detector_config.failure_rate.recent_sample_size
    )
    return Detector(store=store, config=detector_config)


def run_detector(data: dict, detector: Detector = None) -> HookResult:
    """Process one hook payload and wrap findings in a HookResult."""
    if not is_enabled():
        return HookResult.none()

    detector = detector or build_detector()
    findings = detector.process_hook_input(data)
    if not findings:
        return HookResult.none()

    limit = get_max_findings()
    if len(findings) > limit:
        print(
            f"[thrash-runner] Truncated {len(findings) - limit} findings",
            file=sys.stderr,
        )
    shown = findings[:limit]
    return HookResult.with_findings(render_all(shown), [f.to_dict() for f in shown])


def main():
    """Main entry point."""
    start = time.time()

    try:
        data = json.load(sys.stdin)
    except (json.JSONDecodeError, ValueError):
        print(json.dumps(HookResult.none().to_hook_output()))
        sys.exit(0)

    try:
        result = run_detector(data)
    except Exception as e:
        print(f"[thrash-runner] Detector error: {e}", file=sys.stderr)
        result = HookResult.none()

    print(json.dumps(result.to_hook_output()))

    # Debug timing (to stderr)
    elapsed = (time.time() - start) * 1000
    if elapsed > 100:
        print(f"[thrash-runner] Slow: {elapsed:.1f}ms", file=sys.stderr)

    sys.exit(0)


if __name__ == "__main__":
    main()
