"""
DashboardService - account and campaign rollups for the metrics dashboard.

For every selected ad account: list campaigns, fetch ad-set insights for the
requested range, build campaign bundles, apply filters and accumulate totals.
When a comparison range is present the same filtered pipeline runs again to
produce ``previous_totals`` only.

By default the first failing account aborts the request. With
``fail_fast=False`` a failing account is skipped and reported in
``warnings`` while the other accounts still count.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Dict, FrozenSet, Iterable, List, Optional, Protocol, Sequence, TypeVar, Union

from ..core.config import Config
from ..core.errors import AdPulseError
from .aggregation import group_bundles_by_campaign
from .campaign_bundle import build_campaign_bundle
from .date_window import DateWindow
from .models import (
    AccountResource,
    AdsetBundle,
    CampaignMetricBundle,
    DashboardAccountMetrics,
    DashboardCampaignMetrics,
    DashboardResult,
    DashboardWarning,
    GraphCampaign,
    InsightRow,
    MetricTotals,
    TimeRange,
)
from .parsing import normalize_optimization_goal

logger = logging.getLogger(__name__)

T = TypeVar("T")

PERIOD_CURRENT = "current"
PERIOD_PREVIOUS = "previous"


class InsightsClient(Protocol):
    """The part of MetaGraphClient the dashboard needs."""

    async def fetch_campaigns(self, account_id: str) -> List[GraphCampaign]:
        ...

    async def fetch_adset_insights(self, account_id: str, time_range: Optional[TimeRange] = None) -> List[InsightRow]:
        ...


def _upper_set(values: Optional[Iterable[str]]) -> Optional[FrozenSet[str]]:
    if not values:
        return None
    result = frozenset(v.strip().upper() for v in values if v and v.strip())
    return result or None


@dataclass(frozen=True)
class DashboardFilters:
    """AND-combined allow-lists; None means the filter is off."""
    campaign_ids: Optional[FrozenSet[str]] = None
    objectives: Optional[FrozenSet[str]] = None
    statuses: Optional[FrozenSet[str]] = None
    optimization_goals: Optional[FrozenSet[str]] = None

    @classmethod
    def build(
        cls,
        campaign_ids: Optional[Iterable[str]] = None,
        objectives: Optional[Iterable[str]] = None,
        statuses: Optional[Iterable[str]] = None,
        optimization_goals: Optional[Iterable[str]] = None,
    ) -> "DashboardFilters":
        """Normalize raw filter values (case, goal aliases, empties)."""
        ids = frozenset(str(c) for c in campaign_ids if c) if campaign_ids else None
        goals = None
        if optimization_goals:
            goals = frozenset(filter(None, (normalize_optimization_goal(g) for g in optimization_goals))) or None
        return cls(
            campaign_ids=ids or None,
            objectives=_upper_set(objectives),
            statuses=_upper_set(statuses),
            optimization_goals=goals,
        )

    def matches_campaign(self, campaign: GraphCampaign) -> bool:
        if self.campaign_ids is not None and campaign.id not in self.campaign_ids:
            return False
        if self.objectives is not None:
            if not campaign.objective or campaign.objective.upper() not in self.objectives:
                return False
        if self.statuses is not None:
            if not campaign.status or campaign.status.upper() not in self.statuses:
                return False
        return True

    def matches_result(self, bundle: CampaignMetricBundle) -> bool:
        if self.optimization_goals is None:
            return True
        goal = bundle.result.optimization_goal if bundle.result else None
        normalized = normalize_optimization_goal(goal)
        return normalized is not None and normalized in self.optimization_goals


@dataclass(frozen=True)
class DashboardOptions:
    fail_fast: bool = True
    account_concurrency: int = 1

    @classmethod
    def from_config(cls) -> "DashboardOptions":
        return cls(
            fail_fast=Config.DASHBOARD_FAIL_FAST,
            account_concurrency=max(Config.DASHBOARD_ACCOUNT_CONCURRENCY, 1),
        )


@dataclass
class _AccountOutcome:
    metrics: DashboardAccountMetrics
    campaigns: List[GraphCampaign]


def _spend_order(spend: float, identifier) -> tuple:
    return (-spend, str(identifier))


class DashboardService:
    """
    Builds the dashboard payload from the Graph API.

    Args:
        client: Graph client (MetaGraphClient or anything with the same reads)
        options: Failure / concurrency behaviour (default from Config)
    """

    def __init__(self, client: InsightsClient, options: Optional[DashboardOptions] = None):
        self.client = client
        self.options = options or DashboardOptions.from_config()

    async def fetch_dashboard_metrics(
        self,
        accounts: Sequence[AccountResource],
        window: Optional[DateWindow] = None,
        filters: Optional[DashboardFilters] = None,
    ) -> DashboardResult:
        """
        Compute totals, per-account and per-campaign metrics.

        Args:
            accounts: Ad accounts to include
            window: Current and comparison ranges (None = all history, no comparison)
            filters: Campaign filters

        Returns:
            DashboardResult with accounts and campaigns sorted by spend

        Raises:
            MetaApiError: On the first account failure when fail_fast is set
        """
        window = window or DateWindow()
        filters = filters or DashboardFilters()
        result = DashboardResult(date_range=window.to_date_range())

        if not accounts:
            return result

        logger.info(
            f"Building dashboard for {len(accounts)} account(s), "
            f"range={window.current.since + '..' + window.current.until if window.current else 'maximum'}"
        )

        outcomes = await self._run_per_account(
            accounts,
            lambda account: self._compute_account(account, window.current, filters),
        )

        cached_campaigns: Dict[int, List[GraphCampaign]] = {}
        for account, outcome in zip(accounts, outcomes):
            if isinstance(outcome, AdPulseError):
                result.warnings.append(self._warning(account, PERIOD_CURRENT, outcome))
                continue
            cached_campaigns[account.id] = outcome.campaigns
            result.totals.add(outcome.metrics.metrics)
            result.accounts.append(outcome.metrics)

        result.accounts.sort(key=lambda a: _spend_order(a.metrics.spend, a.id))

        if window.previous is not None:
            previous_accounts = [a for a in accounts if a.id in cached_campaigns]
            previous = await self._run_per_account(
                previous_accounts,
                lambda account: self._compute_previous_totals(
                    account, cached_campaigns[account.id], window.previous, filters
                ),
            )
            for account, totals in zip(previous_accounts, previous):
                if isinstance(totals, AdPulseError):
                    result.warnings.append(self._warning(account, PERIOD_PREVIOUS, totals))
                    continue
                result.previous_totals.add(totals)

        logger.info(
            f"Dashboard ready: {len(result.accounts)} account(s), spend {result.totals.spend:.2f}, "
            f"{len(result.warnings)} warning(s)"
        )
        return result

    # ------------------------------------------------------------------
    # Per-account pipeline
    # ------------------------------------------------------------------

    async def _bundles_for(self, account: AccountResource, time_range: Optional[TimeRange]) -> Dict[str, List[AdsetBundle]]:
        rows = await self.client.fetch_adset_insights(account.value, time_range)
        return group_bundles_by_campaign(rows)

    async def _compute_account(
        self,
        account: AccountResource,
        time_range: Optional[TimeRange],
        filters: DashboardFilters,
    ) -> _AccountOutcome:
        campaigns = await self.client.fetch_campaigns(account.value)
        bundles_by_campaign = await self._bundles_for(account, time_range)

        account_totals = MetricTotals()
        entries: List[DashboardCampaignMetrics] = []

        for campaign in campaigns:
            if not filters.matches_campaign(campaign):
                continue
            bundle = build_campaign_bundle(campaign, bundles_by_campaign.get(campaign.id, []))
            if not filters.matches_result(bundle):
                continue

            account_totals.add(bundle.metrics)
            entries.append(DashboardCampaignMetrics(
                id=campaign.id,
                name=campaign.name,
                objective=campaign.objective,
                status=campaign.status,
                metrics=bundle.metrics,
                result=bundle.result,
            ))

        entries.sort(key=lambda c: _spend_order(c.metrics.spend, c.id))
        logger.info(f"Account {account.value}: {len(entries)}/{len(campaigns)} campaign(s) kept")

        return _AccountOutcome(
            metrics=DashboardAccountMetrics(
                id=account.id,
                name=account.name,
                value=account.value,
                metrics=account_totals,
                campaigns=entries,
            ),
            campaigns=campaigns,
        )

    async def _compute_previous_totals(
        self,
        account: AccountResource,
        campaigns: List[GraphCampaign],
        time_range: TimeRange,
        filters: DashboardFilters,
    ) -> MetricTotals:
        bundles_by_campaign = await self._bundles_for(account, time_range)
        totals = MetricTotals()
        for campaign in campaigns:
            if not filters.matches_campaign(campaign):
                continue
            bundle = build_campaign_bundle(campaign, bundles_by_campaign.get(campaign.id, []))
            if not filters.matches_result(bundle):
                continue
            totals.add(bundle.metrics)
        return totals

    # ------------------------------------------------------------------
    # Failure isolation
    # ------------------------------------------------------------------

    async def _run_per_account(
        self,
        accounts: Sequence[AccountResource],
        work: Callable[[AccountResource], Awaitable[T]],
    ) -> List[Union[T, AdPulseError]]:
        """
        Run ``work`` for every account, keeping results in account order.

        With fail_fast the first error (in account order) is raised;
        otherwise AdPulseError instances are returned in place of results.
        """
        if self.options.account_concurrency <= 1:
            results: List[Union[T, AdPulseError]] = []
            for account in accounts:
                try:
                    results.append(await work(account))
                except AdPulseError as e:
                    if self.options.fail_fast:
                        raise
                    logger.warning(f"Account {account.value} failed: {e.message}")
                    results.append(e)
            return results

        semaphore = asyncio.Semaphore(self.options.account_concurrency)

        async def guarded(account: AccountResource) -> T:
            async with semaphore:
                return await work(account)

        gathered = await asyncio.gather(*(guarded(a) for a in accounts), return_exceptions=True)

        results = []
        for account, outcome in zip(accounts, gathered):
            if isinstance(outcome, BaseException):
                if self.options.fail_fast or not isinstance(outcome, AdPulseError):
                    raise outcome
                logger.warning(f"Account {account.value} failed: {outcome.message}")
            results.append(outcome)
        return results

    @staticmethod
    def _warning(account: AccountResource, period: str, error: AdPulseError) -> DashboardWarning:
        return DashboardWarning(
            account_id=account.id,
            account_name=account.name,
            period=period,
            status=error.status_code,
            message=error.message,
        )
