"""
Date windows for dashboard requests.

A request either names both ``startDate`` and ``endDate`` or neither. The
comparison window is the equally long period that ends the day before
``startDate``.
"""

import re
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Iterable, List, Optional, Union

from ..core.errors import ValidationError
from .models import DateRange, TimeRange

DATE_FORMAT = "%Y-%m-%d"
_DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")


@dataclass(frozen=True)
class DateWindow:
    """Current range plus the comparison range (both None = all history)."""
    current: Optional[TimeRange] = None
    previous: Optional[TimeRange] = None

    def to_date_range(self) -> DateRange:
        return DateRange(
            start=self.current.since if self.current else None,
            end=self.current.until if self.current else None,
            previous_start=self.previous.since if self.previous else None,
            previous_end=self.previous.until if self.previous else None,
        )


def parse_iso_date(value: str, name: str = "date") -> date:
    """Parse a strict YYYY-MM-DD string, raising ValidationError otherwise."""
    if not isinstance(value, str) or not _DATE_PATTERN.match(value):
        raise ValidationError(f"Invalid {name}: expected YYYY-MM-DD, got {value!r}")
    try:
        return datetime.strptime(value, DATE_FORMAT).date()
    except ValueError as e:
        raise ValidationError(f"Invalid {name}: {value}") from e


def resolve_date_window(start_date: Optional[str], end_date: Optional[str]) -> DateWindow:
    """
    Validate a requested range and derive the comparison range.

    Args:
        start_date: Inclusive start (YYYY-MM-DD) or None
        end_date: Inclusive end (YYYY-MM-DD) or None

    Returns:
        DateWindow; both ranges are None when no dates were given

    Raises:
        ValidationError: If only one date is given, a date is malformed, or
            start is after end
    """
    start_date = start_date or None
    end_date = end_date or None

    if (start_date is None) != (end_date is None):
        raise ValidationError("Provide startDate and endDate together, or neither")
    if start_date is None:
        return DateWindow()

    start = parse_iso_date(start_date, "startDate")
    end = parse_iso_date(end_date, "endDate")
    if start > end:
        raise ValidationError("startDate must be on or before endDate")

    range_days = (end - start).days + 1
    previous_end = start - timedelta(days=1)
    previous_start = previous_end - timedelta(days=max(range_days - 1, 0))

    return DateWindow(
        current=TimeRange(since=start.strftime(DATE_FORMAT), until=end.strftime(DATE_FORMAT)),
        previous=TimeRange(
            since=previous_start.strftime(DATE_FORMAT),
            until=previous_end.strftime(DATE_FORMAT),
        ),
    )


def split_list_param(values: Union[None, str, Iterable[str]]) -> Optional[List[str]]:
    """
    Flatten repeated and comma-separated query values.

    ``["a,b", " c "]`` -> ``["a", "b", "c"]``; empty input -> None.
    """
    if values is None:
        return None
    if isinstance(values, str):
        values = [values]

    entries = [
        part.strip()
        for value in values
        if isinstance(value, str)
        for part in value.split(",")
        if part.strip()
    ]
    return entries or None


def parse_int_list_param(values: Union[None, str, Iterable[str]]) -> Optional[List[int]]:
    """Like split_list_param, keeping only entries that parse as integers."""
    numbers = []
    for entry in split_list_param(values) or []:
        try:
            numbers.append(int(entry))
        except ValueError:
            continue
    return numbers or None
