"""
Services layer for AdPulse.

Graph API access (MetaGraphClient), insight aggregation and campaign result
resolution, and the dashboard / creative report services built on them.
"""

from .models import (
    ActionEntry,
    InsightRow,
    GraphCampaign,
    AccountResource,
    TimeRange,
    MetricTotals,
    CampaignResultSummary,
    DashboardResult,
    CampaignAdReport,
)
from .meta_graph_client import MetaGraphClient, RetryPolicy
from .dashboard_service import DashboardService, DashboardFilters, DashboardOptions
from .creative_report_service import CreativeReportService
from .access_service import MetaAccessService, SupabaseIntegrationStore
from .date_window import DateWindow, resolve_date_window

__all__ = [
    'ActionEntry',
    'InsightRow',
    'GraphCampaign',
    'AccountResource',
    'TimeRange',
    'MetricTotals',
    'CampaignResultSummary',
    'DashboardResult',
    'CampaignAdReport',
    'MetaGraphClient',
    'RetryPolicy',
    'DashboardService',
    'DashboardFilters',
    'DashboardOptions',
    'CreativeReportService',
    'MetaAccessService',
    'SupabaseIntegrationStore',
    'DateWindow',
    'resolve_date_window',
]
