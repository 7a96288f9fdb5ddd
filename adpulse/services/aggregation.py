"""
Ad set aggregation and result resolution.

Folds ad-set-level insight rows into one bucket per ad set, picks each ad
set's official result, and resolves a campaign objective into the action
types that count as its result.
"""

import logging
from dataclasses import dataclass
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from .models import (
    ActionAggregate,
    ActionRecord,
    AdsetBundle,
    AggregatedAdsetMetrics,
    InsightRow,
    ResultDetail,
)
from .parsing import format_result_label, normalize_action_type, normalize_optimization_goal
from .result_rules import (
    CAMPAIGN_OBJECTIVE_ALIASES,
    FALLBACK_RESULT_ACTION_TYPES,
    LEAD_ACTION_TYPES,
    OBJECTIVE_RESULT_RULES,
    OPTIMIZATION_GOAL_TO_ACTION_TYPES,
    CampaignObjective,
    ObjectiveResultRule,
    OptimizationGoal,
    ResultMode,
)

logger = logging.getLogger(__name__)


# ============================================================================
# Ad set aggregation
# ============================================================================

def aggregate_insight_rows_by_adset(rows: Iterable[InsightRow]) -> Dict[str, AggregatedAdsetMetrics]:
    """
    Group ad-set-level rows by ad set id.

    Volumes and action quantities are summed. For costs the lowest positive
    value per action type is kept. The first non-empty goal and names seen
    for an ad set win. Rows without an ad set id or campaign id are skipped.

    Args:
        rows: Insight rows for one account and time range

    Returns:
        Aggregated metrics keyed by ad set id, in first-seen order
    """
    buckets: Dict[str, AggregatedAdsetMetrics] = {}
    skipped = 0

    for row in rows:
        if not row.adset_id or not row.campaign_id:
            skipped += 1
            continue

        bucket = buckets.get(row.adset_id)
        if bucket is None:
            bucket = AggregatedAdsetMetrics(
                adset_id=row.adset_id,
                campaign_id=row.campaign_id,
                adset_name=row.adset_name,
                campaign_name=row.campaign_name,
                optimization_goal=row.optimization_goal,
            )
            buckets[row.adset_id] = bucket

        bucket.spend += row.spend
        bucket.impressions += row.impressions
        bucket.clicks += row.clicks
        bucket.reach += row.reach

        if row.optimization_goal and not bucket.optimization_goal:
            bucket.optimization_goal = row.optimization_goal
        if row.adset_name and not bucket.adset_name:
            bucket.adset_name = row.adset_name
        if row.campaign_name and not bucket.campaign_name:
            bucket.campaign_name = row.campaign_name

        for action in row.actions:
            action_type = normalize_action_type(action.action_type)
            if not action_type or action.value <= 0:
                continue
            record = bucket.actions.setdefault(action_type, ActionRecord())
            record.quantity += action.value

        for entry in row.cost_per_action_type:
            action_type = normalize_action_type(entry.action_type)
            if not action_type or entry.value <= 0:
                continue
            record = bucket.actions.get(action_type)
            if record is None:
                bucket.actions[action_type] = ActionRecord(quantity=0.0, cost=entry.value)
            elif record.cost is None or record.cost > entry.value:
                record.cost = entry.value

    if skipped:
        logger.debug(f"Skipped {skipped} insight rows without adset_id/campaign_id")

    return buckets


# ============================================================================
# Official result per ad set
# ============================================================================

def goal_action_candidates(goal: Optional[str]) -> List[str]:
    """Goal-specific action types followed by the generic fallbacks, deduplicated."""
    canonical = OptimizationGoal.lookup(normalize_optimization_goal(goal))
    candidates: List[str] = []
    seen = set()
    for action_type in (*OPTIMIZATION_GOAL_TO_ACTION_TYPES.get(canonical, ()), *FALLBACK_RESULT_ACTION_TYPES):
        normalized = action_type.lower()
        if normalized and normalized not in seen:
            seen.add(normalized)
            candidates.append(normalized)
    return candidates


def _detail(action_type: str, record: Optional[ActionRecord]) -> ResultDetail:
    return ResultDetail(
        action_type=action_type,
        label=format_result_label(action_type),
        quantity=record.quantity if record else 0.0,
        cost=record.cost if record else None,
    )


def pick_official_result(goal: Optional[str], actions: Mapping[str, ActionRecord]) -> Optional[ResultDetail]:
    """
    Choose the result an ad set reports, independent of campaign objective.

    Order of preference:
        1. First candidate (goal-specific, then fallbacks) with a positive quantity
        2. The ad set's single largest action
        3. The first candidate with quantity 0, so there is always a record

    Args:
        goal: Raw optimization goal of the ad set
        actions: Aggregated actions keyed by normalized type

    Returns:
        The official result, or None only if no candidate exists at all
    """
    candidates = goal_action_candidates(goal)

    for candidate in candidates:
        record = actions.get(candidate)
        if record is not None and record.quantity > 0:
            return _detail(candidate, record)

    largest: Optional[Tuple[str, ActionRecord]] = None
    for action_type, record in actions.items():
        if record.quantity <= 0:
            continue
        if largest is None or record.quantity > largest[1].quantity:
            largest = (action_type, record)

    if largest is not None:
        return _detail(*largest)

    if not candidates:
        return None
    return _detail(candidates[0], actions.get(candidates[0]))


def build_adset_bundle(aggregated: AggregatedAdsetMetrics) -> AdsetBundle:
    """Finalize an aggregated ad set: sorted actions, leads and official result."""
    actions = tuple(sorted(
        (
            ResultDetail(
                action_type=action_type,
                label=format_result_label(action_type),
                quantity=record.quantity,
                cost=record.cost,
            )
            for action_type, record in aggregated.actions.items()
            if record.quantity > 0
        ),
        key=lambda detail: detail.quantity,
        reverse=True,
    ))

    leads = sum(
        record.quantity
        for action_type, record in aggregated.actions.items()
        if action_type in LEAD_ACTION_TYPES
    )

    official = pick_official_result(aggregated.optimization_goal, aggregated.actions)
    official_quantity = official.quantity if official else 0.0

    official_cost: Optional[float] = None
    if official is not None and official_quantity > 0:
        if official.cost is not None:
            official_cost = official.cost
        elif aggregated.spend > 0:
            official_cost = aggregated.spend / official_quantity

    if official is not None and official.cost != official_cost:
        official = ResultDetail(
            action_type=official.action_type,
            label=official.label,
            quantity=official.quantity,
            cost=official_cost,
        )

    return AdsetBundle(
        adset_id=aggregated.adset_id,
        campaign_id=aggregated.campaign_id,
        adset_name=aggregated.adset_name,
        campaign_name=aggregated.campaign_name,
        optimization_goal=aggregated.optimization_goal,
        spend=aggregated.spend,
        impressions=aggregated.impressions,
        clicks=aggregated.clicks,
        reach=aggregated.reach,
        leads=leads,
        actions=actions,
        official_result=official,
        result_quantity=official_quantity,
        result_cost=official_cost,
    )


def group_bundles_by_campaign(rows: Iterable[InsightRow]) -> Dict[str, List[AdsetBundle]]:
    """Aggregate rows and return finished ad set bundles per campaign id."""
    by_campaign: Dict[str, List[AdsetBundle]] = {}
    for aggregated in aggregate_insight_rows_by_adset(rows).values():
        bundle = build_adset_bundle(aggregated)
        by_campaign.setdefault(bundle.campaign_id, []).append(bundle)
    return by_campaign


# ============================================================================
# Objective rules
# ============================================================================

def get_objective_result_rule(
    objective: object,
    rules: Mapping[CampaignObjective, ObjectiveResultRule] = OBJECTIVE_RESULT_RULES,
) -> Optional[ObjectiveResultRule]:
    """
    Result rule for a raw campaign objective, or None.

    The objective is upper-cased and passed through the objective alias
    table before the rule lookup.
    """
    if not isinstance(objective, str) or not objective.strip():
        return None

    upper = objective.upper()
    canonical = CAMPAIGN_OBJECTIVE_ALIASES.get(upper) or CampaignObjective.lookup(upper)
    if canonical is CampaignObjective.UNKNOWN:
        return None
    return rules.get(canonical)


def aggregate_actions_for_adsets(adsets: Iterable[AdsetBundle]) -> Dict[str, ActionAggregate]:
    """Sum each action type over ad sets, with spend weighted by observed cost."""
    aggregate: Dict[str, ActionAggregate] = {}
    for adset in adsets:
        for action in adset.actions:
            entry = aggregate.setdefault(action.action_type.lower(), ActionAggregate())
            entry.quantity += action.quantity
            if action.cost is not None and action.quantity > 0:
                entry.weighted_spend += action.cost * action.quantity
    return aggregate


@dataclass(frozen=True)
class RuleResolution:
    """Outcome of applying a result rule to aggregated actions."""
    entries: Tuple[ResultDetail, ...]
    selected_types: Tuple[str, ...]

    @property
    def quantity(self) -> float:
        return sum(entry.quantity for entry in self.entries)


def resolve_rule_result(
    rule: ObjectiveResultRule,
    actions: Mapping[str, ActionAggregate],
    result_spend: float,
) -> RuleResolution:
    """
    Apply a result rule's mode to aggregated actions.

    FIRST takes the first declared type with a positive quantity as the
    whole result; when none fired, the first declared type is still selected
    so per-ad-set rows have a type to report. SUM takes every positive type.
    An entry's cost is its spend-weighted cost. Without one it falls back to
    ``result_spend / quantity`` in FIRST mode, and in SUM mode to
    ``result_spend`` spread over the total selected quantity, so a breakdown
    without observed costs adds back up to ``result_spend``.

    Args:
        rule: Objective result rule
        actions: Aggregated actions keyed by normalized type
        result_spend: Spend of the ad sets the actions came from

    Returns:
        Breakdown entries (positive quantities only) and the selected types
    """
    declared = [action_type.lower() for action_type in rule.action_types]
    entries: List[ResultDetail] = []

    def entry_for(action_type: str, aggregate: ActionAggregate, label: str, spread_over: float) -> ResultDetail:
        cost = None
        if aggregate.weighted_spend > 0:
            cost = aggregate.weighted_spend / aggregate.quantity
        elif result_spend > 0:
            cost = result_spend / spread_over
        return ResultDetail(action_type=action_type, label=label, quantity=aggregate.quantity, cost=cost)

    if rule.mode is ResultMode.FIRST:
        for action_type in declared:
            aggregate = actions.get(action_type)
            if aggregate is None or aggregate.quantity <= 0:
                continue
            entries.append(entry_for(action_type, aggregate, rule.label, aggregate.quantity))
            break
        if entries:
            selected = (entries[0].action_type,)
        else:
            selected = tuple(declared[:1])
    elif rule.mode is ResultMode.SUM:
        fired = [
            (action_type, actions[action_type])
            for action_type in declared
            if action_type in actions and actions[action_type].quantity > 0
        ]
        total = sum(aggregate.quantity for _, aggregate in fired)
        for action_type, aggregate in fired:
            entries.append(entry_for(action_type, aggregate, format_result_label(action_type), total))
        selected = tuple(entry.action_type for entry in entries)
    else:
        raise ValueError(f"Unsupported result mode: {rule.mode}")

    return RuleResolution(entries=tuple(entries), selected_types=selected)


def sum_selected_actions(adset: AdsetBundle, selected_types: Sequence[str]) -> Tuple[float, Optional[float]]:
    """
    Quantity and cost of the selected action types within one ad set.

    Cost is spend-weighted over observed costs, else ``adset.spend / quantity``,
    and None when the quantity is 0.
    """
    by_type = {action.action_type: action for action in adset.actions}
    quantity = 0.0
    weighted = 0.0
    for action_type in selected_types:
        action = by_type.get(action_type)
        if action is None:
            continue
        quantity += action.quantity
        if action.cost is not None and action.quantity > 0:
            weighted += action.cost * action.quantity

    if quantity <= 0:
        return quantity, None
    if weighted > 0:
        return quantity, weighted / quantity
    return quantity, adset.spend / quantity
