#!/usr/bin/env python3
"""
Thrash Signatures - Normalized fingerprints used for deduplication.

- Errors: first error-like line, digit runs collapsed, capped at 100 chars
- Edits: basename of the edited file (directories deliberately ignored)
- Tool calls: short hash of tool name + canonical JSON arguments
"""

import hashlib
import json
import re
from pathlib import PurePath
from typing import Optional

from _thrash_events import Event, EventCategory

MAX_SIGNATURE_LENGTH = 100
TOOL_HASH_LENGTH = 16
DIGIT_PLACEHOLDER = "#"

ERROR_LINE_PATTERN = re.compile(r"error|failed|exception|cannot|unable", re.IGNORECASE)
_DIGIT_RUN = re.compile(r"\d+")


def normalize_error_text(text: str) -> Optional[str]:
    """Return the normalized first error-like line of text, or None."""
    for line in (text or "").splitlines():
        if ERROR_LINE_PATTERN.search(line):
            line = _DIGIT_RUN.sub(DIGIT_PLACEHOLDER, line.strip())
            return line[:MAX_SIGNATURE_LENGTH]
    return None


def basename_signature(path: str) -> Optional[str]:
    # Handles both separators so Windows paths from the host dedup too
    name = PurePath(path.replace("\\", "/")).name if path else ""
    return name[:MAX_SIGNATURE_LENGTH] or None


def canonical_arguments(tool_input: dict) -> str:
    """Serialize arguments with sorted keys so equal calls serialize equally."""
    return json.dumps(tool_input, sort_keys=True, separators=(",", ":"), default=str)


def tool_call_signature(tool_name: str, tool_input: dict) -> str:
    digest = hashlib.sha256(
        f"{tool_name}:{canonical_arguments(tool_input)}".encode()
    ).hexdigest()
    return digest[:TOOL_HASH_LENGTH]


def extract_signature(
    event: Event, category: Optional[EventCategory] = None
) -> Optional[str]:
    """Derive the signature of an event under a category.

    Args:
        event: Classified event
        category: Facet to fingerprint; defaults to the event's own category

    Returns:
        Signature string, or None when the payload has nothing countable
        (e.g. failing output without an error-like line).
    """
    category = category or event.category
    payload = event.payload(category)
    if category is EventCategory.ERROR:
        return normalize_error_text(payload)
    if category is EventCategory.EDIT:
        return basename_signature(payload)
    return tool_call_signature(event.tool_name, payload)
