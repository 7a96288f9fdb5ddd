"""
AdPulse FastAPI Application.

REST API behind the Meta Ads management dashboard.

Features:
- Dashboard metrics (account and campaign rollups with official results)
- Campaign creative report (ad-level metrics with thumbnails)
- API key authentication
- Rate limiting
- Health check endpoint
- Automatic OpenAPI documentation
"""

# Load environment variables FIRST before any other imports
from dotenv import load_dotenv
load_dotenv()

import logging
import asyncio
from typing import Callable, List, Optional
from datetime import datetime

from fastapi import FastAPI, HTTPException, Depends, Header, Query, Request, status
from fastapi.security import APIKeyHeader
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded

from .models import CreativesResponse, HealthResponse, ErrorResponse
from ..core.config import Config
from ..core.database import is_supabase_configured
from ..core.errors import AdPulseError, ValidationError
from ..core.token_cipher import TokenCipher
from ..services.access_service import MetaAccess, MetaAccessService, SupabaseIntegrationStore
from ..services.creative_report_service import CreativeReportService
from ..services.dashboard_service import DashboardFilters, DashboardService
from ..services.date_window import parse_int_list_param, resolve_date_window, split_list_param
from ..services.meta_graph_client import MetaGraphClient
from ..services.models import DashboardResult

API_VERSION = "1.0.0"

# ============================================================================
# Logging Configuration
# ============================================================================

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

# ============================================================================
# FastAPI Application Setup
# ============================================================================

app = FastAPI(
    title="AdPulse API",
    description="Meta Ads dashboard metrics with one official result per campaign",
    version=API_VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json"
)

# ============================================================================
# CORS Configuration
# ============================================================================

app.add_middleware(
    CORSMiddleware,
    allow_origins=Config.CORS_ORIGINS.split(","),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ============================================================================
# Rate Limiting
# ============================================================================

limiter = Limiter(key_func=get_remote_address)
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# ============================================================================
# API Key Authentication
# ============================================================================

API_KEY_HEADER = APIKeyHeader(name="X-API-Key", auto_error=False)

async def verify_api_key(api_key: Optional[str] = Depends(API_KEY_HEADER)):
    """
    Verify API key from request header.

    Checks against Config.ADPULSE_API_KEY (read from the environment).
    If not set, allows all requests (development mode).

    Args:
        api_key: API key from X-API-Key header

    Raises:
        HTTPException: If API key is invalid or missing
    """
    expected_key = Config.ADPULSE_API_KEY

    # Development mode - no API key required
    if not expected_key:
        logger.warning("ADPULSE_API_KEY not set - running in development mode (no auth)")
        return True

    if not api_key:
        logger.warning("API key missing from request")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="API key required. Provide via X-API-Key header."
        )

    if api_key != expected_key:
        logger.warning(f"Invalid API key attempt: {api_key[:4]}...")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Invalid API key"
        )

    return True


# ============================================================================
# Request Dependencies
# ============================================================================

async def get_tenant_id(x_tenant_id: int = Header(..., alias="X-Tenant-Id")) -> int:
    """Tenant the request acts for (set by the authenticating gateway)."""
    return x_tenant_id


def get_token_cipher(request: Request) -> TokenCipher:
    cipher = getattr(request.app.state, "token_cipher", None)
    if cipher is None:
        cipher = TokenCipher.from_config()
        request.app.state.token_cipher = cipher
    return cipher


def get_access_service(cipher: TokenCipher = Depends(get_token_cipher)) -> MetaAccessService:
    return MetaAccessService(SupabaseIntegrationStore(), cipher)


def get_graph_client_factory() -> Callable[[MetaAccess], MetaGraphClient]:
    """Factory turning resolved credentials into a Graph client."""
    def factory(access: MetaAccess) -> MetaGraphClient:
        return MetaGraphClient(access.access_token, access.app_secret)
    return factory


# ============================================================================
# Health Check Endpoint
# ============================================================================

@app.get(
    "/health",
    response_model=HealthResponse,
    tags=["System"],
    summary="Health check endpoint"
)
async def health_check(request: Request):
    """
    Check API health and configuration of dependent services.
    """
    services = {
        "supabase": "configured" if is_supabase_configured() else "missing",
        "token_cipher": "configured" if get_token_cipher(request).has_key else "no key",
    }

    overall_status = "healthy" if services["supabase"] == "configured" else "degraded"

    return HealthResponse(
        status=overall_status,
        version=API_VERSION,
        timestamp=datetime.now(),
        services=services
    )


# ============================================================================
# Dashboard Endpoint
# ============================================================================

@app.get(
    "/api/dashboard/metrics",
    response_model=DashboardResult,
    tags=["Dashboard"],
    summary="Account and campaign metrics for the dashboard"
)
@limiter.limit("60/minute")
async def dashboard_metrics(
    request: Request,
    start_date: Optional[str] = Query(None, alias="startDate", description="YYYY-MM-DD, inclusive"),
    end_date: Optional[str] = Query(None, alias="endDate", description="YYYY-MM-DD, inclusive"),
    account_id: Optional[List[str]] = Query(None, alias="accountId", description="Account resource ids"),
    campaign_id: Optional[List[str]] = Query(None, alias="campaignId"),
    objective: Optional[List[str]] = Query(None),
    campaign_status: Optional[List[str]] = Query(None, alias="status"),
    optimization_goal: Optional[List[str]] = Query(None, alias="optimizationGoal"),
    tenant_id: int = Depends(get_tenant_id),
    access_service: MetaAccessService = Depends(get_access_service),
    client_factory: Callable[[MetaAccess], MetaGraphClient] = Depends(get_graph_client_factory),
    authenticated: bool = Depends(verify_api_key)
):
    """
    Compute dashboard metrics for the tenant's ad accounts.

    List parameters accept repeated keys and comma-separated values. When a
    date range is given, ``previousTotals`` covers the equally long period
    right before it.
    """
    window = resolve_date_window(start_date, end_date)
    accounts = await asyncio.to_thread(access_service.list_accounts, tenant_id, parse_int_list_param(account_id))

    if not accounts:
        logger.info(f"Tenant {tenant_id}: no ad accounts selected")
        return DashboardResult(date_range=window.to_date_range())

    filters = DashboardFilters.build(
        campaign_ids=split_list_param(campaign_id),
        objectives=split_list_param(objective),
        statuses=split_list_param(campaign_status),
        optimization_goals=split_list_param(optimization_goal),
    )

    access = await asyncio.to_thread(access_service.resolve, tenant_id)
    async with client_factory(access) as client:
        return await DashboardService(client).fetch_dashboard_metrics(accounts, window, filters)


# ============================================================================
# Creative Report Endpoint
# ============================================================================

@app.get(
    "/api/meta/campaigns/{campaign_id}/creatives",
    response_model=CreativesResponse,
    tags=["Dashboard"],
    summary="Ad-level report with creative thumbnails for one campaign"
)
@limiter.limit("30/minute")
async def campaign_creatives(
    request: Request,
    campaign_id: str,
    account_id: Optional[str] = Query(None, alias="accountId", description="Graph ad account id (act_...)"),
    start_date: Optional[str] = Query(None, alias="startDate"),
    end_date: Optional[str] = Query(None, alias="endDate"),
    tenant_id: int = Depends(get_tenant_id),
    access_service: MetaAccessService = Depends(get_access_service),
    client_factory: Callable[[MetaAccess], MetaGraphClient] = Depends(get_graph_client_factory),
    authenticated: bool = Depends(verify_api_key)
):
    """
    Ad-level impressions, clicks, spend, CTR and results for a campaign.
    """
    if not account_id:
        raise ValidationError("accountId query parameter is required")

    window = resolve_date_window(start_date, end_date)
    await asyncio.to_thread(access_service.find_account, tenant_id, account_id)
    access = await asyncio.to_thread(access_service.resolve, tenant_id)

    async with client_factory(access) as client:
        reports = await CreativeReportService(client).fetch_campaign_ad_reports(
            account_id, campaign_id, window.current
        )

    return CreativesResponse(creatives=reports)


# ============================================================================
# Error Handlers
# ============================================================================

@app.exception_handler(AdPulseError)
async def adpulse_exception_handler(request: Request, exc: AdPulseError):
    """Map domain errors onto their carried HTTP status."""
    if exc.status_code >= 500:
        logger.error(f"{type(exc).__name__} on {request.url.path}: {exc.message}")
    else:
        logger.warning(f"{type(exc).__name__} on {request.url.path}: {exc.message}")
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(
            error=exc.message,
            detail=type(exc).__name__,
        ).model_dump(mode="json")
    )


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    """Handle HTTP exceptions with consistent error format."""
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(
            error=str(exc.detail),
            detail=str(exc),
        ).model_dump(mode="json")
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """Handle unexpected exceptions."""
    logger.error(f"Unhandled exception: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content=ErrorResponse(
            error="Internal server error",
            detail=str(exc),
        ).model_dump(mode="json")
    )


# ============================================================================
# Startup/Shutdown Events
# ============================================================================

@app.on_event("startup")
async def startup_event():
    """Create process-wide state and log startup information."""
    app.state.token_cipher = TokenCipher.from_config()

    logger.info("="*60)
    logger.info("AdPulse API Starting...")
    logger.info(f"API Version: {API_VERSION}")
    logger.info(f"Docs available at: /docs")
    logger.info(f"Graph API: {Config.META_GRAPH_BASE_URL}")
    logger.info(f"Token encryption: {'enabled' if app.state.token_cipher.has_key else 'disabled (no key)'}")
    logger.info(f"Auth mode: {'Production (API key required)' if Config.ADPULSE_API_KEY else 'Development (no auth)'}")
    logger.info("="*60)


@app.on_event("shutdown")
async def shutdown_event():
    """Log shutdown information."""
    logger.info("AdPulse API Shutting down...")


# ============================================================================
# Root Endpoint
# ============================================================================

@app.get("/", tags=["System"])
async def root():
    """API root with links to documentation."""
    return {
        "name": "AdPulse API",
        "version": API_VERSION,
        "docs": "/docs",
        "health": "/health",
        "endpoints": {
            "dashboard_metrics": "/api/dashboard/metrics",
            "campaign_creatives": "/api/meta/campaigns/{campaign_id}/creatives"
        }
    }
