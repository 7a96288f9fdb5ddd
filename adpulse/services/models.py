"""
Data models for the AdPulse services layer.

Pydantic models cover everything that crosses a boundary: rows parsed from
the Graph API and the metrics payload returned to the dashboard. Wire names
(camelCase and the dashboard's legacy keys such as ``resultado``) are kept as
aliases; Python attributes use snake_case English names.

Dataclasses hold the short-lived aggregation state used while a single
account is being processed.
"""

import json
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Set, Tuple

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    computed_field,
    field_validator,
    model_serializer,
)

from .parsing import extract_entry_total, parse_number, parse_percent_to_ratio


class WireModel(BaseModel):
    """Base for models serialized with their wire aliases."""
    model_config = ConfigDict(populate_by_name=True)


# ============================================================================
# Graph API Input Models
# ============================================================================

class ActionEntry(BaseModel):
    """One entry of an ``actions`` or ``cost_per_action_type`` list."""
    model_config = ConfigDict(frozen=True)

    action_type: Optional[str] = None
    value: float = 0.0

    @classmethod
    def from_graph(cls, raw: Dict[str, Any]) -> "ActionEntry":
        return cls(action_type=raw.get("action_type"), value=extract_entry_total(raw))


class InsightRow(BaseModel):
    """
    One insights record at campaign, ad set or ad level.

    Build with ``InsightRow.model_validate(raw_row)``; numeric strings from the
    wire are parsed on the way in.
    """
    model_config = ConfigDict(frozen=True)

    account_id: Optional[str] = None
    campaign_id: Optional[str] = None
    campaign_name: Optional[str] = None
    adset_id: Optional[str] = None
    adset_name: Optional[str] = None
    ad_id: Optional[str] = None
    ad_name: Optional[str] = None
    optimization_goal: Optional[str] = None
    spend: float = 0.0
    impressions: int = 0
    clicks: int = 0
    reach: int = 0
    ctr: Optional[float] = Field(None, description="Click-through rate as a ratio (wire value / 100)")
    actions: Tuple[ActionEntry, ...] = ()
    cost_per_action_type: Tuple[ActionEntry, ...] = ()

    @field_validator('spend', mode='before')
    @classmethod
    def parse_spend(cls, v):
        return parse_number(v)

    @field_validator('impressions', 'clicks', 'reach', mode='before')
    @classmethod
    def parse_volume(cls, v):
        return int(parse_number(v))

    @field_validator('ctr', mode='before')
    @classmethod
    def parse_ctr(cls, v):
        return parse_percent_to_ratio(v)

    @field_validator('actions', 'cost_per_action_type', mode='before')
    @classmethod
    def parse_action_entries(cls, v):
        if not isinstance(v, (list, tuple)):
            return ()
        entries = []
        for entry in v:
            if isinstance(entry, ActionEntry):
                entries.append(entry)
            elif isinstance(entry, dict):
                entries.append(ActionEntry.from_graph(entry))
        return tuple(entries)


class GraphCampaign(BaseModel):
    """Campaign as listed by ``/{account}/campaigns``."""
    model_config = ConfigDict(frozen=True)

    id: str
    name: Optional[str] = None
    status: Optional[str] = None
    objective: Optional[str] = None


class AccountResource(BaseModel):
    """An ad account registered for a tenant."""
    id: int = Field(..., description="Resource id in storage")
    name: str = Field("", description="Display name")
    value: str = Field(..., description="Graph ad account id, e.g. act_123")


class TimeRange(BaseModel):
    """Inclusive ISO date range sent as the Graph ``time_range`` parameter."""
    model_config = ConfigDict(frozen=True)

    since: str
    until: str

    def to_param(self) -> str:
        return json.dumps({"since": self.since, "until": self.until}, separators=(",", ":"))


# ============================================================================
# Metrics Output Models
# ============================================================================

class MetricTotals(WireModel):
    """
    Additive spend / volume / result totals.

    ``cost_per_result`` is derived from ``result_spend`` and ``results`` on
    every read, so it cannot drift from them after any number of merges.
    """
    spend: float = 0.0
    result_spend: float = Field(0.0, alias="resultSpend")
    impressions: int = 0
    clicks: int = 0
    leads: float = 0.0
    results: float = 0.0

    @computed_field(alias="costPerResult")
    @property
    def cost_per_result(self) -> Optional[float]:
        if self.results > 0:
            return self.result_spend / self.results
        return None

    def add(self, other: "MetricTotals") -> "MetricTotals":
        """Accumulate another totals object into this one (in place)."""
        self.spend += other.spend
        self.result_spend += other.result_spend
        self.impressions += other.impressions
        self.clicks += other.clicks
        self.leads += other.leads
        self.results += other.results
        return self


class ResultBreakdown(WireModel):
    """One action type that contributed to a campaign result."""
    action_type: str = Field(..., alias="tipo")
    label: str
    quantity: float = Field(..., alias="quantidade")
    cost_per_result: Optional[float] = Field(None, alias="custo_por_resultado")


class AdsetResultSummary(WireModel):
    """Per-ad-set row of a campaign result."""
    adset_id: str
    adset_name: Optional[str] = None
    optimization_goal: Optional[str] = None
    action_type: Optional[str] = None
    label: str
    quantity: float = Field(0.0, alias="quantidade")
    cost_per_result: Optional[float] = Field(None, alias="custo_por_resultado")
    spend: float = 0.0
    impressions: int = 0
    clicks: int = 0


class CampaignResultSummary(WireModel):
    """
    Headline result of a campaign.

    ``quantity`` is None when the campaign objective has no result rule; the
    per-ad-set rows then carry indicative numbers only.
    """
    label: str
    quantity: Optional[float] = Field(None, alias="quantidade")
    cost_per_result: Optional[float] = Field(None, alias="custo_por_resultado")
    optimization_goal: Optional[str] = None
    action_types: List[str] = Field(default_factory=list, alias="tipos")
    details: Optional[List[ResultBreakdown]] = Field(None, alias="detalhes")
    adsets: List[AdsetResultSummary] = Field(default_factory=list)

    @model_serializer(mode='wrap')
    def drop_empty_details(self, handler):
        data = handler(self)
        for key in ("detalhes", "details"):
            if key in data and data[key] is None:
                del data[key]
        return data


class DashboardCampaignMetrics(WireModel):
    id: str
    name: Optional[str] = None
    objective: Optional[str] = None
    status: Optional[str] = None
    metrics: MetricTotals = Field(default_factory=MetricTotals)
    result: Optional[CampaignResultSummary] = Field(None, alias="resultado")

    @model_serializer(mode='wrap')
    def drop_missing_result(self, handler):
        data = handler(self)
        for key in ("resultado", "result"):
            if key in data and data[key] is None:
                del data[key]
        return data


class DashboardAccountMetrics(WireModel):
    id: int
    name: str
    value: str
    metrics: MetricTotals = Field(default_factory=MetricTotals)
    campaigns: List[DashboardCampaignMetrics] = Field(default_factory=list)


class DashboardWarning(WireModel):
    """An account that could not be computed when running in partial mode."""
    account_id: int = Field(..., alias="accountId")
    account_name: Optional[str] = Field(None, alias="accountName")
    period: str = Field(..., description="'current' or 'previous'")
    status: int
    message: str


class DateRange(WireModel):
    start: Optional[str] = None
    end: Optional[str] = None
    previous_start: Optional[str] = Field(None, alias="previousStart")
    previous_end: Optional[str] = Field(None, alias="previousEnd")


class DashboardResult(WireModel):
    """Full dashboard payload."""
    date_range: DateRange = Field(default_factory=DateRange, alias="dateRange")
    totals: MetricTotals = Field(default_factory=MetricTotals)
    previous_totals: MetricTotals = Field(default_factory=MetricTotals, alias="previousTotals")
    accounts: List[DashboardAccountMetrics] = Field(default_factory=list)
    warnings: List[DashboardWarning] = Field(default_factory=list)


class AdReportMetrics(WireModel):
    impressions: int = 0
    clicks: int = 0
    spend: float = 0.0
    ctr: Optional[float] = None
    result_qty: float = Field(0.0, alias="resultQty")
    cost_per_result: Optional[float] = Field(None, alias="costPerResult")


class CampaignAdReport(WireModel):
    """Ad-level performance row with its creative thumbnail."""
    ad_id: str
    ad_name: Optional[str] = None
    creative_id: Optional[str] = None
    thumbnail_url: Optional[str] = Field(None, alias="thumbnailUrl")
    metrics: AdReportMetrics = Field(default_factory=AdReportMetrics)


# ============================================================================
# Aggregation State
# ============================================================================

@dataclass
class ActionRecord:
    quantity: float = 0.0
    cost: Optional[float] = None


@dataclass
class AggregatedAdsetMetrics:
    """Running totals for one ad set while rows are folded in."""
    adset_id: str
    campaign_id: str
    adset_name: Optional[str] = None
    campaign_name: Optional[str] = None
    optimization_goal: Optional[str] = None
    spend: float = 0.0
    impressions: int = 0
    clicks: int = 0
    reach: int = 0
    actions: Dict[str, ActionRecord] = field(default_factory=dict)


@dataclass(frozen=True)
class ResultDetail:
    action_type: str
    label: str
    quantity: float
    cost: Optional[float] = None


@dataclass(frozen=True)
class AdsetBundle:
    """Finalized ad set with its objective-independent official result."""
    adset_id: str
    campaign_id: str
    adset_name: Optional[str]
    campaign_name: Optional[str]
    optimization_goal: Optional[str]
    spend: float
    impressions: int
    clicks: int
    reach: int
    leads: float
    actions: Tuple[ResultDetail, ...]
    official_result: Optional[ResultDetail]
    result_quantity: float
    result_cost: Optional[float]


@dataclass
class ActionAggregate:
    quantity: float = 0.0
    weighted_spend: float = 0.0


@dataclass
class GoalGroup:
    """Ad sets of one campaign sharing a canonical optimization goal."""
    key: str
    canonical_goal: Optional[str]
    original_goals: Set[str] = field(default_factory=set)
    spend: float = 0.0
    adsets: List[AdsetBundle] = field(default_factory=list)

    @property
    def result_volume(self) -> float:
        return sum(adset.result_quantity for adset in self.adsets)


@dataclass
class CampaignMetricBundle:
    metrics: MetricTotals
    result: Optional[CampaignResultSummary] = None
