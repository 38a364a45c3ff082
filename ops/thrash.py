#!/usr/bin/env python3
"""
The Thrash Inspector - Look at or clear the circuit breaker's window store.

Usage:
    thrash.py status                  # Per-category counts for this project
    thrash.py status --json           # Same, machine-readable
    thrash.py reset                   # Clear the store (the only way it is cleared)
    thrash.py reset --dry-run         # Show what would be removed
    thrash.py --state-dir DIR status  # Inspect another store
"""

import argparse
import json
import logging
import sys
import time
from pathlib import Path

# Add lib and hooks to path
_ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(_ROOT / "lib"))
sys.path.insert(0, str(_ROOT / "hooks"))

from _config import get_detector_config, get_state_dir  # noqa: E402
from thrash_detector import EventCategory, FileWindowStore, reset_state_dir  # noqa: E402

logger = logging.getLogger("thrash-ops")


def _setup_logging(debug: bool) -> None:
    """Operator-facing log format; --debug also opens up the library loggers."""
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.INFO,
        format="%(asctime)s | %(levelname)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    if debug:
        logger.debug("Debug mode enabled")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Inspect or reset the thrash detector window store",
        epilog=__doc__,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("command", choices=["status", "reset"])
    parser.add_argument(
        "--state-dir", type=Path, help="Store directory (default: configured for this project)"
    )
    parser.add_argument("--json", action="store_true", help="Output status as JSON")
    parser.add_argument("--dry-run", action="store_true", help="Show what reset would remove")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    return parser


def resolve_state_dir(args: argparse.Namespace) -> Path:
    """--state-dir wins; otherwise the hook's own resolution (env, settings, cwd hash)."""
    if args.state_dir:
        return args.state_dir.expanduser()
    return get_state_dir()


def collect_status(state_dir: Path, now: float = None) -> dict:
    """Load the store, prune it to the configured windows, and summarize."""
    detector_config = get_detector_config()
    store = FileWindowStore(
        state_dir, tail_size=detector_config.failure_rate.recent_sample_size
    )
    store.load()
    now = time.time() if now is None else now
    for category in EventCategory:
        store.prune(now, detector_config.for_category(category).window, category)

    rate = detector_config.failure_rate
    recent = store.tail(EventCategory.TOOL_CALL, rate.recent_sample_size)
    return {
        "state_dir": str(state_dir),
        "categories": store.stats(),
        "failure_density": {
            "failed": sum(1 for e in recent if e.failed),
            "sample": len(recent),
            "threshold": rate.failure_count,
        },
    }


def print_status(status: dict) -> None:
    print(f"\n📂 {status['state_dir']}")
    categories = status["categories"]
    if not categories:
        print("   (empty - no events recorded)")
    for name, info in categories.items():
        print(f"\n   {name}: {info['windowed']} in window")
        for signature, count in info["top"]:
            print(f"      {count}x  {signature}")
    density = status["failure_density"]
    print(
        f"\n   failure density: {density['failed']}/{density['sample']}"
        f" (fires at {density['threshold']})\n"
    )


def reset(state_dir: Path, dry_run: bool = False) -> bool:
    """Remove the store. Returns True if anything was (or would be) removed."""
    if dry_run:
        logger.warning(f"⚠️  DRY RUN: Would remove {state_dir}")
        return state_dir.exists()
    removed = reset_state_dir(state_dir)
    if removed:
        logger.info(f"✅ Removed {state_dir}")
    else:
        logger.info(f"Nothing to reset at {state_dir}")
    return removed


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    _setup_logging(args.debug)
    state_dir = resolve_state_dir(args)

    try:
        if args.command == "status":
            status = collect_status(state_dir)
            if args.json:
                print(json.dumps(status, indent=2))
            else:
                print_status(status)
        else:
            reset(state_dir, dry_run=args.dry_run)
    except KeyboardInterrupt:
        logger.warning("Operation cancelled by user")
        return 1
    except (OSError, ValueError) as e:
        logger.error(f"❌ {args.command} failed: {e}", exc_info=args.debug)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
