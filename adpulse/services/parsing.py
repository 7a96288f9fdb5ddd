"""
Parsing helpers for Meta Graph API values.

The Graph API returns every number as a string and action types in mixed
case. These helpers turn them into canonical forms. Pure functions, no I/O.
"""

import math
from typing import Any, Mapping, Optional

from .result_rules import (
    ACTION_TYPE_LABELS,
    LEAD_ACTION_TYPES,
    OPTIMIZATION_GOAL_ALIASES,
)


def _to_float(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return None
    try:
        parsed = float(value)
    except (TypeError, ValueError):
        return None
    return parsed if math.isfinite(parsed) else None


def parse_number(value: Any) -> float:
    """
    Parse a volume field (spend, impressions, ...) from the wire.

    Returns:
        The number, or 0 when the value is missing or not numeric
    """
    parsed = _to_float(value)
    return parsed if parsed is not None else 0.0


def parse_percent_to_ratio(value: Any) -> Optional[float]:
    """
    Parse a percentage string such as CTR ("1.25") into a ratio (0.0125).

    Returns:
        The ratio, or None when unknown. 0 is a real value and is kept.
    """
    parsed = _to_float(value)
    if parsed is None:
        return None
    return parsed / 100


def normalize_action_type(action_type: Optional[str]) -> Optional[str]:
    if not action_type or not isinstance(action_type, str):
        return None
    return action_type.lower()


def normalize_optimization_goal(goal: Optional[str]) -> Optional[str]:
    """
    Upper-case a goal and collapse synonyms onto the canonical goal.

    Unknown goals are kept (upper-cased) so they still group together.

    Args:
        goal: Raw optimization goal or objective from the Graph API

    Returns:
        Canonical goal string, or None for empty input
    """
    if not goal or not isinstance(goal, str):
        return None
    upper = goal.strip().upper()
    if not upper:
        return None
    canonical = OPTIMIZATION_GOAL_ALIASES.get(upper)
    return canonical.value if canonical is not None else upper


def extract_entry_total(entry: Optional[Mapping[str, Any]]) -> float:
    """Value of an action / cost entry, falling back to its 28d_value."""
    if not entry:
        return 0.0
    value = entry.get("value")
    if value is None:
        value = entry.get("28d_value")
    return parse_number(value)


def format_result_label(action_type: Optional[str]) -> str:
    """
    Human label for an action type.

    Lead-like types all read "Leads"; unknown types become title case, e.g.
    "onsite_conversion.flow_complete" -> "Onsite Conversion.flow Complete".
    """
    if not action_type:
        return "Results"

    normalized = action_type.lower()
    if normalized in LEAD_ACTION_TYPES:
        return "Leads"

    label = ACTION_TYPE_LABELS.get(normalized)
    if label is not None:
        return label

    return " ".join(
        segment[:1].upper() + segment[1:]
        for segment in normalized.split("_")
        if segment
    )
