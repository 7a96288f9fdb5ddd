"""
CreativeReportService - ad-level performance for one campaign.

Joins ad-level insights with each ad's creative so the dashboard can show a
thumbnail next to the numbers.
"""

import logging
from typing import Any, Dict, List, Optional

from .aggregation import get_objective_result_rule
from .meta_graph_client import MetaGraphClient
from .models import AdReportMetrics, CampaignAdReport, InsightRow, TimeRange
from .parsing import normalize_action_type
from .result_rules import ObjectiveResultRule, ResultMode

logger = logging.getLogger(__name__)


def pick_creative_thumbnail(creative: Optional[Dict[str, Any]]) -> Optional[str]:
    """
    Best preview image for a creative.

    Order: thumbnail_url, link picture, video still, first asset-feed image,
    first asset-feed video thumbnail.
    """
    if not creative:
        return None
    if creative.get("thumbnail_url"):
        return creative["thumbnail_url"]

    story = creative.get("object_story_spec") or {}
    link_data = story.get("link_data") or {}
    if link_data.get("picture"):
        return link_data["picture"]
    video_data = story.get("video_data") or {}
    if video_data.get("image_url"):
        return video_data["image_url"]

    feed = creative.get("asset_feed_spec") or {}
    images = feed.get("images") or []
    if images and images[0].get("url"):
        return images[0]["url"]
    videos = feed.get("videos") or []
    if videos and videos[0].get("thumbnail_url"):
        return videos[0]["thumbnail_url"]

    return None


def ad_result_quantity(row: InsightRow, rule: Optional[ObjectiveResultRule]) -> float:
    """
    Result count for one ad.

    Uses the objective rule when there is one (first or sum mode); if that
    yields nothing, the ad's largest action.
    """
    totals: Dict[str, float] = {}
    for action in row.actions:
        action_type = normalize_action_type(action.action_type)
        if not action_type or action.value <= 0:
            continue
        totals[action_type] = totals.get(action_type, 0.0) + action.value

    quantity = 0.0
    if rule is not None:
        declared = [t.lower() for t in rule.action_types]
        if rule.mode is ResultMode.FIRST:
            quantity = next((totals[t] for t in declared if totals.get(t, 0) > 0), 0.0)
        else:
            quantity = sum(totals.get(t, 0.0) for t in declared)

    if quantity == 0:
        quantity = max(totals.values(), default=0.0)
    return quantity


class CreativeReportService:
    """Ad-level report for a single campaign."""

    def __init__(self, client: MetaGraphClient):
        self.client = client

    async def fetch_campaign_ad_reports(
        self,
        account_id: str,
        campaign_id: str,
        time_range: Optional[TimeRange] = None,
        objective: Optional[str] = None,
    ) -> List[CampaignAdReport]:
        """
        Build per-ad rows with thumbnails for a campaign.

        Args:
            account_id: Ad account the campaign belongs to (act_...)
            campaign_id: Campaign id
            time_range: Inclusive range; None means all history
            objective: Campaign objective; looked up from the account's
                campaigns when not given

        Returns:
            One CampaignAdReport per ad with insights in the range
        """
        rows = await self.client.fetch_ad_insights(campaign_id, time_range)
        if not rows:
            logger.info(f"No ad insights for campaign {campaign_id}")
            return []

        if objective is None:
            campaigns = await self.client.fetch_campaigns(account_id)
            match = next((c for c in campaigns if c.id == campaign_id), None)
            objective = match.objective if match else None

        creative_map = await self.client.fetch_ad_creative_map(campaign_id)
        creative_ids = list(dict.fromkeys(
            creative_map[row.ad_id] for row in rows if row.ad_id in creative_map
        ))
        creatives = await self.client.fetch_creatives_metadata(creative_ids)

        rule = get_objective_result_rule(objective)
        reports: List[CampaignAdReport] = []

        for row in rows:
            if not row.ad_id:
                continue

            quantity = ad_result_quantity(row, rule)
            creative_id = creative_map.get(row.ad_id)

            reports.append(CampaignAdReport(
                ad_id=row.ad_id,
                ad_name=row.ad_name,
                creative_id=creative_id,
                thumbnail_url=pick_creative_thumbnail(creatives.get(creative_id) if creative_id else None),
                metrics=AdReportMetrics(
                    impressions=row.impressions,
                    clicks=row.clicks,
                    spend=row.spend,
                    ctr=row.ctr,
                    result_qty=quantity,
                    cost_per_result=row.spend / quantity if quantity > 0 else None,
                ),
            ))

        logger.info(f"Campaign {campaign_id}: {len(reports)} ad report(s), {len(creatives)} creative(s)")
        return reports
