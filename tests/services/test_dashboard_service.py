"""
Tests for DashboardService - rollups, filters, comparison totals and failures.

Uses an in-memory Graph client, no network.

Run with: pytest tests/services/test_dashboard_service.py -v
"""

import asyncio

import pytest

from adpulse.core.errors import MetaApiError
from adpulse.services.dashboard_service import (
    DashboardFilters,
    DashboardOptions,
    DashboardService,
    PERIOD_CURRENT,
    PERIOD_PREVIOUS,
)
from adpulse.services.date_window import resolve_date_window
from adpulse.services.models import AccountResource, GraphCampaign, InsightRow


WINDOW = resolve_date_window("2024-03-08", "2024-03-14")


class FakeGraphClient:
    """Serves campaigns and ad-set rows per account; rows keyed by range start."""

    def __init__(self, campaigns, rows, failures=None, delay=0.0):
        self.campaigns = campaigns
        self.rows = rows
        self.failures = failures or {}
        self.delay = delay
        self.campaign_calls = []
        self.insight_calls = []
        self.active = 0
        self.max_active = 0

    async def _maybe_fail(self, account_id, period):
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
        finally:
            self.active -= 1
        failure = self.failures.get((account_id, period))
        if failure is not None:
            raise failure

    async def fetch_campaigns(self, account_id):
        self.campaign_calls.append(account_id)
        await self._maybe_fail(account_id, "campaigns")
        return [GraphCampaign.model_validate(c) for c in self.campaigns.get(account_id, [])]

    async def fetch_adset_insights(self, account_id, time_range=None):
        period = time_range.since if time_range else None
        self.insight_calls.append((account_id, period))
        await self._maybe_fail(account_id, period)
        raw = self.rows.get((account_id, period), [])
        return [InsightRow.model_validate(r) for r in raw]


def lead_row(campaign_id, adset_id, spend, leads, goal="LEAD_GENERATION"):
    return {
        "campaign_id": campaign_id,
        "adset_id": adset_id,
        "optimization_goal": goal,
        "spend": str(spend),
        "impressions": "100",
        "clicks": "10",
        "actions": [{"action_type": "lead", "value": str(leads)}],
    }


ACCOUNTS = [
    AccountResource(id=1, name="Alpha", value="act_1"),
    AccountResource(id=2, name="Beta", value="act_2"),
]

CAMPAIGNS = {
    "act_1": [
        {"id": "c1", "name": "Leads small", "status": "ACTIVE", "objective": "OUTCOME_LEADS"},
        {"id": "c2", "name": "Leads big", "status": "PAUSED", "objective": "OUTCOME_LEADS"},
        {"id": "c3", "name": "Traffic", "status": "ACTIVE", "objective": "OUTCOME_TRAFFIC"},
    ],
    "act_2": [
        {"id": "c4", "name": "Sales", "status": "ACTIVE", "objective": "OUTCOME_SALES"},
    ],
}

ROWS = {
    ("act_1", "2024-03-08"): [
        lead_row("c1", "a1", 20, 4),
        lead_row("c2", "a2", 80, 8),
        lead_row("c3", "a3", 30, 0, goal="LINK_CLICKS"),
    ],
    ("act_2", "2024-03-08"): [
        {"campaign_id": "c4", "adset_id": "a4", "optimization_goal": "PURCHASE", "spend": "500",
         "impressions": "1000", "clicks": "50",
         "actions": [{"action_type": "purchase", "value": "5"}]},
    ],
    ("act_1", "2024-03-01"): [
        lead_row("c1", "a1", 10, 2),
        lead_row("c2", "a2", 10, 1),
    ],
    ("act_2", "2024-03-01"): [],
}


def service(client, **options):
    return DashboardService(client, DashboardOptions(**options))


# ---------------------------------------------------------------------------
# Rollups
# ---------------------------------------------------------------------------

class TestRollups:

    @pytest.mark.asyncio
    async def test_totals_and_ordering(self):
        client = FakeGraphClient(CAMPAIGNS, ROWS)
        result = await service(client).fetch_dashboard_metrics(ACCOUNTS, WINDOW)

        assert [a.value for a in result.accounts] == ["act_2", "act_1"]
        alpha = result.accounts[1]
        assert [c.id for c in alpha.campaigns] == ["c2", "c3", "c1"]
        assert alpha.metrics.spend == 130
        assert alpha.metrics.results == 12
        assert alpha.metrics.result_spend == 100

        assert result.totals.spend == 630
        assert result.totals.results == 17
        assert result.totals.impressions == 1300
        assert result.totals.cost_per_result == pytest.approx(600 / 17)

    @pytest.mark.asyncio
    async def test_date_range_and_previous_totals(self):
        client = FakeGraphClient(CAMPAIGNS, ROWS)
        result = await service(client).fetch_dashboard_metrics(ACCOUNTS, WINDOW)

        assert result.date_range.start == "2024-03-08"
        assert result.date_range.previous_start == "2024-03-01"
        assert result.date_range.previous_end == "2024-03-07"
        assert result.previous_totals.spend == 20
        assert result.previous_totals.results == 3

    @pytest.mark.asyncio
    async def test_previous_period_reuses_campaign_list(self):
        client = FakeGraphClient(CAMPAIGNS, ROWS)
        await service(client).fetch_dashboard_metrics(ACCOUNTS, WINDOW)

        assert client.campaign_calls == ["act_1", "act_2"]
        assert sorted(client.insight_calls) == sorted([
            ("act_1", "2024-03-08"), ("act_2", "2024-03-08"),
            ("act_1", "2024-03-01"), ("act_2", "2024-03-01"),
        ])

    @pytest.mark.asyncio
    async def test_no_window_no_comparison(self):
        rows = {("act_1", None): [lead_row("c1", "a1", 5, 1)]}
        client = FakeGraphClient(CAMPAIGNS, rows)
        result = await service(client).fetch_dashboard_metrics(ACCOUNTS[:1])

        assert result.date_range.start is None
        assert result.previous_totals.spend == 0
        assert client.insight_calls == [("act_1", None)]
        assert result.totals.spend == 5

    @pytest.mark.asyncio
    async def test_no_accounts(self):
        client = FakeGraphClient(CAMPAIGNS, ROWS)
        result = await service(client).fetch_dashboard_metrics([], WINDOW)

        assert result.accounts == []
        assert result.totals.spend == 0
        assert client.campaign_calls == []

    @pytest.mark.asyncio
    async def test_campaign_without_insights_still_listed(self):
        client = FakeGraphClient({"act_1": CAMPAIGNS["act_1"]}, {})
        result = await service(client).fetch_dashboard_metrics(ACCOUNTS[:1], WINDOW)

        campaigns = result.accounts[0].campaigns
        assert {c.id for c in campaigns} == {"c1", "c2", "c3"}
        assert all(c.result is None for c in campaigns)
        assert "resultado" not in campaigns[0].model_dump(by_alias=True)


# ---------------------------------------------------------------------------
# Filters
# ---------------------------------------------------------------------------

class TestFilters:

    def test_build_normalizes(self):
        filters = DashboardFilters.build(
            campaign_ids=["c1", ""],
            objectives=["outcome_leads", " "],
            statuses=["active"],
            optimization_goals=["offsite_conversions", ""],
        )
        assert filters.campaign_ids == {"c1"}
        assert filters.objectives == {"OUTCOME_LEADS"}
        assert filters.statuses == {"ACTIVE"}
        assert filters.optimization_goals == {"PURCHASE"}

    def test_empty_means_off(self):
        assert DashboardFilters.build([], [], [" "], None) == DashboardFilters()

    @pytest.mark.asyncio
    async def test_filters_apply_to_totals(self):
        client = FakeGraphClient(CAMPAIGNS, ROWS)
        filters = DashboardFilters.build(objectives=["outcome_leads"], statuses=["ACTIVE"])
        result = await service(client).fetch_dashboard_metrics(ACCOUNTS, WINDOW, filters)

        alpha = next(a for a in result.accounts if a.value == "act_1")
        beta = next(a for a in result.accounts if a.value == "act_2")
        assert [c.id for c in alpha.campaigns] == ["c1"]
        assert beta.campaigns == []
        assert beta.metrics.spend == 0
        assert result.totals.spend == 20
        assert result.previous_totals.spend == 10

    @pytest.mark.asyncio
    async def test_optimization_goal_filter_uses_dominant_goal(self):
        client = FakeGraphClient(CAMPAIGNS, ROWS)
        filters = DashboardFilters.build(optimization_goals=["LINK_CLICKS"])
        result = await service(client).fetch_dashboard_metrics(ACCOUNTS, WINDOW, filters)

        kept = [c.id for a in result.accounts for c in a.campaigns]
        assert kept == ["c3"]
        assert result.totals.spend == 30

    @pytest.mark.asyncio
    async def test_campaign_id_filter(self):
        client = FakeGraphClient(CAMPAIGNS, ROWS)
        filters = DashboardFilters.build(campaign_ids=["c4"])
        result = await service(client).fetch_dashboard_metrics(ACCOUNTS, WINDOW, filters)
        assert result.totals.spend == 500


# ---------------------------------------------------------------------------
# Failures and concurrency
# ---------------------------------------------------------------------------

class TestFailures:

    @pytest.mark.asyncio
    async def test_fail_fast_raises(self):
        client = FakeGraphClient(CAMPAIGNS, ROWS, failures={
            ("act_2", "2024-03-08"): MetaApiError("Rate limited", status=429),
        })
        with pytest.raises(MetaApiError) as exc_info:
            await service(client).fetch_dashboard_metrics(ACCOUNTS, WINDOW)
        assert exc_info.value.status == 429

    @pytest.mark.asyncio
    async def test_partial_mode_reports_warning(self):
        client = FakeGraphClient(CAMPAIGNS, ROWS, failures={
            ("act_2", "2024-03-08"): MetaApiError("Rate limited", status=429),
        })
        result = await service(client, fail_fast=False).fetch_dashboard_metrics(ACCOUNTS, WINDOW)

        assert [a.value for a in result.accounts] == ["act_1"]
        assert result.totals.spend == 130
        assert len(result.warnings) == 1
        warning = result.warnings[0]
        assert warning.account_id == 2
        assert warning.period == PERIOD_CURRENT
        assert warning.status == 429
        assert warning.model_dump(by_alias=True)["accountName"] == "Beta"

    @pytest.mark.asyncio
    async def test_partial_mode_previous_period_failure(self):
        client = FakeGraphClient(CAMPAIGNS, ROWS, failures={
            ("act_1", "2024-03-01"): MetaApiError("Server error", status=500),
        })
        result = await service(client, fail_fast=False).fetch_dashboard_metrics(ACCOUNTS, WINDOW)

        assert result.totals.spend == 630
        assert result.previous_totals.spend == 0
        assert [(w.account_id, w.period) for w in result.warnings] == [(1, PERIOD_PREVIOUS)]

    @pytest.mark.asyncio
    async def test_unexpected_errors_propagate(self):
        client = FakeGraphClient(CAMPAIGNS, ROWS, failures={
            ("act_1", "campaigns"): RuntimeError("bug"),
        })
        with pytest.raises(RuntimeError):
            await service(client, fail_fast=False, account_concurrency=2).fetch_dashboard_metrics(ACCOUNTS, WINDOW)


class TestConcurrency:

    @pytest.mark.asyncio
    async def test_concurrent_results_match_sequential(self):
        sequential = await service(FakeGraphClient(CAMPAIGNS, ROWS)).fetch_dashboard_metrics(ACCOUNTS, WINDOW)
        concurrent = await service(
            FakeGraphClient(CAMPAIGNS, ROWS), account_concurrency=4
        ).fetch_dashboard_metrics(ACCOUNTS, WINDOW)

        assert concurrent.model_dump(by_alias=True) == sequential.model_dump(by_alias=True)

    @pytest.mark.asyncio
    async def test_semaphore_limits_parallel_accounts(self):
        accounts = [AccountResource(id=i, name=f"A{i}", value=f"act_{i}") for i in range(1, 6)]
        client = FakeGraphClient({}, {}, delay=0.01)
        await service(client, account_concurrency=2).fetch_dashboard_metrics(accounts)

        assert client.max_active == 2

    @pytest.mark.asyncio
    async def test_concurrent_partial_mode(self):
        client = FakeGraphClient(CAMPAIGNS, ROWS, failures={
            ("act_1", "campaigns"): MetaApiError("Invalid token", status=400),
        })
        result = await service(
            client, fail_fast=False, account_concurrency=2
        ).fetch_dashboard_metrics(ACCOUNTS, WINDOW)

        assert [a.value for a in result.accounts] == ["act_2"]
        assert result.warnings[0].account_id == 1
        assert result.warnings[0].status == 400
