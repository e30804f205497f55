from __future__ import annotations

from typing import Any

ESCALATION_METADATA_KEY = "escalation"


def as_mapping(value: Any) -> dict[str, Any]:
    return dict(value) if isinstance(value, dict) else {}


def merge_escalation_metadata(existing: Any, escalation: dict[str, Any]) -> dict[str, Any]:
    """Return a copy of ``existing`` with ``escalation`` merged into its escalation sub-record.

    Keys outside the escalation sub-record are carried over untouched, as are any
    escalation keys that ``escalation`` does not overwrite.
    """
    merged = as_mapping(existing)
    current = as_mapping(merged.get(ESCALATION_METADATA_KEY))
    merged[ESCALATION_METADATA_KEY] = {**current, **escalation}
    return merged
