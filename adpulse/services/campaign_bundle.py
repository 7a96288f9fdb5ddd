"""
Campaign bundles - one headline result per campaign.

A campaign may mix ad sets optimized for different goals. The goal group
with the most spend represents the campaign (result volume breaks spend
ties), and the campaign objective's result rule is applied to that group.
"""

import logging
from typing import Dict, Iterable, List, Mapping, Optional, Sequence

from .aggregation import (
    aggregate_actions_for_adsets,
    get_objective_result_rule,
    resolve_rule_result,
    sum_selected_actions,
)
from .models import (
    AdsetBundle,
    AdsetResultSummary,
    CampaignMetricBundle,
    CampaignResultSummary,
    GoalGroup,
    GraphCampaign,
    MetricTotals,
    ResultBreakdown,
)
from .parsing import format_result_label, normalize_optimization_goal
from .result_rules import OBJECTIVE_RESULT_RULES, CampaignObjective, ObjectiveResultRule

logger = logging.getLogger(__name__)

UNKNOWN_GOAL_KEY = "__UNKNOWN__"
SPEND_EPSILON = 1e-6
NO_RULE_LABEL = "Result"


def group_by_goal(adsets: Iterable[AdsetBundle]) -> List[GoalGroup]:
    """
    Group ad sets by canonical optimization goal.

    Ad sets without a goal share the unknown bucket and are never merged
    into a named goal. Groups come back sorted by key (unknown last) and ad
    sets inside a group by spend descending then id, so the result does not
    depend on input order.
    """
    groups: Dict[str, GoalGroup] = {}
    for adset in adsets:
        canonical = normalize_optimization_goal(adset.optimization_goal)
        key = canonical or UNKNOWN_GOAL_KEY
        group = groups.get(key)
        if group is None:
            group = GoalGroup(key=key, canonical_goal=canonical)
            groups[key] = group
        if adset.optimization_goal:
            group.original_goals.add(adset.optimization_goal)
        group.spend += adset.spend
        group.adsets.append(adset)

    ordered = sorted(groups.values(), key=lambda g: (g.key == UNKNOWN_GOAL_KEY, g.key))
    for group in ordered:
        group.adsets.sort(key=lambda a: (-a.spend, a.adset_id))
    return ordered


def select_dominant_group(groups: Sequence[GoalGroup]) -> Optional[GoalGroup]:
    """Highest-spend group; on a spend tie the one with more official results."""
    dominant: Optional[GoalGroup] = None
    for group in groups:
        if dominant is None:
            dominant = group
            continue
        if group.spend > dominant.spend + SPEND_EPSILON:
            dominant = group
            continue
        if abs(group.spend - dominant.spend) <= SPEND_EPSILON and group.result_volume > dominant.result_volume:
            dominant = group
    return dominant


def _summarize_with_rule(
    rule: ObjectiveResultRule,
    group: GoalGroup,
    metrics: MetricTotals,
) -> CampaignResultSummary:
    result_spend = sum(adset.spend for adset in group.adsets)
    resolution = resolve_rule_result(rule, aggregate_actions_for_adsets(group.adsets), result_spend)

    quantity = resolution.quantity
    cost_per_result = result_spend / quantity if quantity > 0 else None

    adset_rows = []
    for adset in group.adsets:
        adset_quantity, adset_cost = sum_selected_actions(adset, resolution.selected_types)
        adset_rows.append(AdsetResultSummary(
            adset_id=adset.adset_id,
            adset_name=adset.adset_name,
            optimization_goal=adset.optimization_goal or group.canonical_goal,
            action_type=resolution.selected_types[0] if len(resolution.selected_types) == 1 else None,
            label=rule.label,
            quantity=adset_quantity,
            cost_per_result=adset_cost,
            spend=adset.spend,
            impressions=adset.impressions,
            clicks=adset.clicks,
        ))

    metrics.results = quantity
    metrics.result_spend = result_spend

    details = None
    if resolution.entries:
        details = [
            ResultBreakdown(
                action_type=entry.action_type,
                label=entry.label,
                quantity=entry.quantity,
                cost_per_result=entry.cost,
            )
            for entry in resolution.entries
        ]

    return CampaignResultSummary(
        label=rule.label,
        quantity=quantity,
        cost_per_result=cost_per_result,
        optimization_goal=group.canonical_goal,
        action_types=[entry.action_type for entry in resolution.entries],
        details=details,
        adsets=adset_rows,
    )


def _summarize_without_rule(group: GoalGroup) -> CampaignResultSummary:
    adset_rows = []
    for adset in group.adsets:
        official = adset.official_result
        cost = official.cost if official is not None else None
        if cost is None and adset.result_quantity > 0:
            cost = adset.spend / adset.result_quantity

        adset_rows.append(AdsetResultSummary(
            adset_id=adset.adset_id,
            adset_name=adset.adset_name,
            optimization_goal=adset.optimization_goal or group.canonical_goal,
            action_type=official.action_type if official is not None else None,
            label=official.label if official is not None else format_result_label(None),
            quantity=adset.result_quantity,
            cost_per_result=cost,
            spend=adset.spend,
            impressions=adset.impressions,
            clicks=adset.clicks,
        ))

    return CampaignResultSummary(
        label=NO_RULE_LABEL,
        quantity=None,
        cost_per_result=None,
        optimization_goal=group.canonical_goal,
        action_types=[],
        details=None,
        adsets=adset_rows,
    )


def build_campaign_bundle(
    campaign: GraphCampaign,
    adsets: Sequence[AdsetBundle],
    rules: Mapping[CampaignObjective, ObjectiveResultRule] = OBJECTIVE_RESULT_RULES,
) -> CampaignMetricBundle:
    """
    Build the metrics and headline result for one campaign.

    Spend, impressions, clicks and leads cover every ad set of the campaign.
    ``results`` / ``result_spend`` are only filled when the objective has a
    result rule; otherwise the per-ad-set rows carry indicative official
    results and the campaign quantity is None.

    Args:
        campaign: Campaign as listed by the Graph API
        adsets: The campaign's ad set bundles
        rules: Objective result rules (override for custom tables)

    Returns:
        CampaignMetricBundle; ``result`` is None when there are no ad sets
    """
    metrics = MetricTotals()
    if not adsets:
        return CampaignMetricBundle(metrics=metrics, result=None)

    for adset in adsets:
        metrics.spend += adset.spend
        metrics.impressions += adset.impressions
        metrics.clicks += adset.clicks
        metrics.leads += adset.leads

    dominant = select_dominant_group(group_by_goal(adsets))
    if dominant is None:
        return CampaignMetricBundle(metrics=metrics, result=None)

    rule = get_objective_result_rule(campaign.objective, rules)
    if rule is not None:
        summary = _summarize_with_rule(rule, dominant, metrics)
    else:
        summary = _summarize_without_rule(dominant)

    logger.debug(
        f"Campaign {campaign.id}: dominant goal {dominant.key} "
        f"({len(dominant.adsets)} adsets, spend {dominant.spend:.2f}), "
        f"rule={'yes' if rule else 'no'}"
    )
    return CampaignMetricBundle(metrics=metrics, result=summary)
