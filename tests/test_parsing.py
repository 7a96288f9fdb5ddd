"""
Tests for Graph value parsing and the result rule tables.

Run with: pytest tests/test_parsing.py -v
"""

import pytest

from adpulse.services.parsing import (
    extract_entry_total,
    format_result_label,
    normalize_action_type,
    normalize_optimization_goal,
    parse_number,
    parse_percent_to_ratio,
)
from adpulse.services.result_rules import (
    CAMPAIGN_OBJECTIVE_ALIASES,
    OBJECTIVE_RESULT_RULES,
    OPTIMIZATION_GOAL_ALIASES,
    OPTIMIZATION_GOAL_TO_ACTION_TYPES,
    CampaignObjective,
    OptimizationGoal,
    ResultMode,
)


# ---------------------------------------------------------------------------
# Numbers
# ---------------------------------------------------------------------------

class TestParseNumber:
    """Volume fields default to 0."""

    def test_numeric_string(self):
        assert parse_number("12.50") == 12.5

    def test_integer_string(self):
        assert parse_number("1000") == 1000

    @pytest.mark.parametrize("value", [None, "", "   ", "abc", "NaN", "Infinity"])
    def test_non_numeric_is_zero(self, value):
        assert parse_number(value) == 0

    def test_passes_numbers_through(self):
        assert parse_number(7) == 7.0


class TestParsePercent:
    """CTR style percentages become ratios, unknown stays None."""

    def test_percent_to_ratio(self):
        assert parse_percent_to_ratio("1.25") == pytest.approx(0.0125)

    def test_zero_is_a_real_value(self):
        assert parse_percent_to_ratio("0") == 0.0

    @pytest.mark.parametrize("value", [None, "", "n/a"])
    def test_unknown_is_none(self, value):
        assert parse_percent_to_ratio(value) is None


class TestExtractEntryTotal:

    def test_uses_value(self):
        assert extract_entry_total({"action_type": "lead", "value": "4"}) == 4

    def test_falls_back_to_28d_value(self):
        assert extract_entry_total({"action_type": "lead", "28d_value": "9"}) == 9

    def test_value_wins_over_28d_value(self):
        assert extract_entry_total({"value": "2", "28d_value": "9"}) == 2

    def test_garbage_is_zero(self):
        assert extract_entry_total({"value": "x"}) == 0
        assert extract_entry_total({}) == 0
        assert extract_entry_total(None) == 0


# ---------------------------------------------------------------------------
# Identifiers
# ---------------------------------------------------------------------------

class TestNormalizeActionType:

    def test_lowercases(self):
        assert normalize_action_type("Offsite_Conversion.FB_Pixel_Purchase") == "offsite_conversion.fb_pixel_purchase"

    def test_empty_is_none(self):
        assert normalize_action_type("") is None
        assert normalize_action_type(None) is None


class TestNormalizeOptimizationGoal:

    @pytest.mark.parametrize("raw,expected", [
        ("offsite_conversions", "PURCHASE"),
        ("VALUE", "PURCHASE"),
        ("outcome_leads", "LEAD_GENERATION"),
        ("REPLIES", "MESSAGES"),
        ("OUTCOME_TRAFFIC", "LANDING_PAGE_VIEWS"),
        ("link_clicks", "LINK_CLICKS"),
        ("ENGAGEMENT", "OUTCOME_ENGAGEMENT"),
        ("awareness", "BRAND_AWARENESS"),
    ])
    def test_aliases_collapse(self, raw, expected):
        assert normalize_optimization_goal(raw) == expected

    def test_unknown_goal_is_upper_cased(self):
        assert normalize_optimization_goal(" thruplay ") == "THRUPLAY"

    def test_empty_is_none(self):
        assert normalize_optimization_goal("") is None
        assert normalize_optimization_goal("   ") is None
        assert normalize_optimization_goal(None) is None


# ---------------------------------------------------------------------------
# Labels
# ---------------------------------------------------------------------------

class TestFormatResultLabel:

    def test_none_is_generic(self):
        assert format_result_label(None) == "Results"

    def test_known_type(self):
        assert format_result_label("link_click") == "Link clicks"
        assert format_result_label("PURCHASE") == "Purchases"

    def test_every_lead_type_reads_leads(self):
        assert format_result_label("leadgen_qualified_lead") == "Leads"
        assert format_result_label("contact") == "Leads"

    def test_unknown_type_is_title_cased(self):
        assert format_result_label("video_view") == "Video View"
        assert format_result_label("some__odd_type") == "Some Odd Type"


# ---------------------------------------------------------------------------
# Rule tables
# ---------------------------------------------------------------------------

class TestRuleTables:
    """Every alias resolves to something the lookup tables know about."""

    def test_goal_aliases_target_goals_with_actions(self):
        for alias, goal in OPTIMIZATION_GOAL_ALIASES.items():
            assert goal is not OptimizationGoal.UNKNOWN, alias
            assert OPTIMIZATION_GOAL_TO_ACTION_TYPES[goal], alias

    def test_objective_aliases_target_rules(self):
        for alias, objective in CAMPAIGN_OBJECTIVE_ALIASES.items():
            assert objective in OBJECTIVE_RESULT_RULES, alias

    def test_unknown_has_no_rule(self):
        assert CampaignObjective.UNKNOWN not in OBJECTIVE_RESULT_RULES

    def test_tables_are_read_only(self):
        with pytest.raises(TypeError):
            OBJECTIVE_RESULT_RULES[CampaignObjective.UNKNOWN] = None

    def test_action_types_are_lower_case(self):
        for rule in OBJECTIVE_RESULT_RULES.values():
            assert rule.mode in (ResultMode.FIRST, ResultMode.SUM)
            assert all(t == t.lower() for t in rule.action_types)

    def test_lookup_falls_back_to_unknown(self):
        assert OptimizationGoal.lookup("NOT_A_GOAL") is OptimizationGoal.UNKNOWN
        assert OptimizationGoal.lookup(None) is OptimizationGoal.UNKNOWN
        assert CampaignObjective.lookup("PURCHASE") is CampaignObjective.PURCHASE
