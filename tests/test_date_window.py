"""
Tests for date window resolution and list query parameters.

Run with: pytest tests/test_date_window.py -v
"""

import pytest

from adpulse.core.errors import ValidationError
from adpulse.services.date_window import (
    parse_int_list_param,
    resolve_date_window,
    split_list_param,
)


class TestResolveDateWindow:

    def test_previous_window_has_same_length(self):
        window = resolve_date_window("2024-03-08", "2024-03-14")
        assert (window.current.since, window.current.until) == ("2024-03-08", "2024-03-14")
        assert (window.previous.since, window.previous.until) == ("2024-03-01", "2024-03-07")

    def test_single_day(self):
        window = resolve_date_window("2024-03-01", "2024-03-01")
        assert (window.previous.since, window.previous.until) == ("2024-02-29", "2024-02-29")

    def test_crosses_year(self):
        window = resolve_date_window("2024-01-01", "2024-01-31")
        assert (window.previous.since, window.previous.until) == ("2023-12-01", "2023-12-31")

    def test_no_dates(self):
        window = resolve_date_window(None, None)
        assert window.current is None
        assert window.previous is None
        assert resolve_date_window("", "").current is None

    def test_date_range_payload(self):
        date_range = resolve_date_window("2024-03-08", "2024-03-14").to_date_range()
        assert date_range.model_dump(by_alias=True) == {
            "start": "2024-03-08",
            "end": "2024-03-14",
            "previousStart": "2024-03-01",
            "previousEnd": "2024-03-07",
        }

    @pytest.mark.parametrize("start,end", [("2024-03-01", None), (None, "2024-03-01")])
    def test_only_one_date(self, start, end):
        with pytest.raises(ValidationError) as exc_info:
            resolve_date_window(start, end)
        assert exc_info.value.status_code == 400

    def test_start_after_end(self):
        with pytest.raises(ValidationError, match="on or before"):
            resolve_date_window("2024-03-10", "2024-03-01")

    @pytest.mark.parametrize("value", ["2024-3-1", "03/01/2024", "2024-02-30", "yesterday"])
    def test_malformed(self, value):
        with pytest.raises(ValidationError):
            resolve_date_window(value, "2024-03-31")


class TestListParams:

    def test_split_repeated_and_comma_separated(self):
        assert split_list_param(["a,b", " c ", ""]) == ["a", "b", "c"]

    def test_split_single_string(self):
        assert split_list_param("x, y") == ["x", "y"]

    def test_split_empty(self):
        assert split_list_param(None) is None
        assert split_list_param([" , "]) is None

    def test_int_list_skips_garbage(self):
        assert parse_int_list_param(["1,2", "abc", "3"]) == [1, 2, 3]
        assert parse_int_list_param(["abc"]) is None
