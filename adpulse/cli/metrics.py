"""
Metrics CLI Commands

Commands for computing dashboard metrics and campaign creative reports from
the terminal, using the same services as the API.
"""

import asyncio
import json
import logging
from typing import Optional, Tuple

import click

from ..core.token_cipher import TokenCipher
from ..services.access_service import MetaAccessService, SupabaseIntegrationStore
from ..services.creative_report_service import CreativeReportService
from ..services.dashboard_service import DashboardFilters, DashboardOptions, DashboardService
from ..services.date_window import resolve_date_window, split_list_param
from ..services.meta_graph_client import RetryPolicy


logger = logging.getLogger(__name__)


def _access_service() -> MetaAccessService:
    return MetaAccessService(SupabaseIntegrationStore(), TokenCipher.from_config())


def _echo_json(payload) -> None:
    click.echo(json.dumps(payload, indent=2, ensure_ascii=False))


async def _dashboard(tenant_id, window, account_ids, filters, options, retry_policy):
    access_service = _access_service()
    accounts = access_service.list_accounts(tenant_id, account_ids)
    if not accounts:
        return None

    async with access_service.build_client(tenant_id, retry_policy=retry_policy) as client:
        return await DashboardService(client, options).fetch_dashboard_metrics(accounts, window, filters)


@click.command('dashboard')
@click.option('--tenant-id', '-t', type=int, required=True, help='Tenant id')
@click.option('--start', 'start_date', help='Start date (YYYY-MM-DD)')
@click.option('--end', 'end_date', help='End date (YYYY-MM-DD)')
@click.option('--account', '-a', 'accounts', type=int, multiple=True, help='Account resource id (repeatable)')
@click.option('--campaign', '-c', 'campaigns', multiple=True, help='Campaign id (repeatable or comma-separated)')
@click.option('--objective', 'objectives', multiple=True, help='Campaign objective filter')
@click.option('--status', 'statuses', multiple=True, help='Campaign status filter')
@click.option('--goal', 'goals', multiple=True, help='Dominant optimization goal filter')
@click.option('--partial', is_flag=True, help='Skip failing accounts and report them as warnings')
@click.option('--concurrency', type=int, default=1, show_default=True, help='Accounts fetched in parallel')
@click.option('--retries', type=int, default=0, show_default=True, help='Retries for transient Graph API failures')
def dashboard_command(
    tenant_id: int,
    start_date: Optional[str],
    end_date: Optional[str],
    accounts: Tuple[int, ...],
    campaigns: Tuple[str, ...],
    objectives: Tuple[str, ...],
    statuses: Tuple[str, ...],
    goals: Tuple[str, ...],
    partial: bool,
    concurrency: int,
    retries: int,
):
    """Print dashboard metrics for a tenant as JSON"""
    try:
        window = resolve_date_window(start_date, end_date)
        filters = DashboardFilters.build(
            campaign_ids=split_list_param(campaigns),
            objectives=split_list_param(objectives),
            statuses=split_list_param(statuses),
            optimization_goals=split_list_param(goals),
        )
        options = DashboardOptions(fail_fast=not partial, account_concurrency=max(concurrency, 1))

        result = asyncio.run(_dashboard(
            tenant_id, window, list(accounts) or None, filters, options, RetryPolicy(max_retries=max(retries, 0))
        ))

        if result is None:
            click.echo("No ad accounts found for this tenant", err=True)
            return

        _echo_json(result.model_dump(by_alias=True, mode="json"))

        for warning in result.warnings:
            click.echo(f"⚠️  {warning.account_name or warning.account_id} ({warning.period}): {warning.message}", err=True)

    except Exception as e:
        click.echo(f"❌ Error: {e}", err=True)
        raise


async def _creatives(tenant_id, account_id, campaign_id, window):
    access_service = _access_service()
    access_service.find_account(tenant_id, account_id)
    async with access_service.build_client(tenant_id) as client:
        return await CreativeReportService(client).fetch_campaign_ad_reports(
            account_id, campaign_id, window.current
        )


@click.command('creatives')
@click.argument('campaign_id')
@click.option('--tenant-id', '-t', type=int, required=True, help='Tenant id')
@click.option('--account', '-a', 'account_id', required=True, help='Graph ad account id (act_...)')
@click.option('--start', 'start_date', help='Start date (YYYY-MM-DD)')
@click.option('--end', 'end_date', help='End date (YYYY-MM-DD)')
def creatives_command(campaign_id: str, tenant_id: int, account_id: str, start_date: Optional[str], end_date: Optional[str]):
    """Print the ad-level creative report of a campaign as JSON"""
    try:
        window = resolve_date_window(start_date, end_date)
        reports = asyncio.run(_creatives(tenant_id, account_id, campaign_id, window))
        _echo_json({"creatives": [r.model_dump(by_alias=True, mode="json") for r in reports]})

    except Exception as e:
        click.echo(f"❌ Error: {e}", err=True)
        raise
