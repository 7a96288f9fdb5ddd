"""
MetaGraphClient - signed, paginated reads against the Meta Graph API.

Every request carries ``access_token`` and ``appsecret_proof``. List edges
are followed through ``paging.next`` until exhausted; Graph sometimes drops
the auth parameters from the cursor URL, so they are stamped back on.

By default a request is attempted once. A RetryPolicy with max_retries > 0
retries transport failures, HTTP 429 / 5xx answers and Graph throttling
codes with exponential backoff. Whether to retry is decided on what Graph
actually answered, not on the normalized status.
"""

import hashlib
import hmac
import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional

import httpx
from tenacity import (
    AsyncRetrying,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from ..core.config import Config
from ..core.errors import MetaApiError, MissingConfigurationError, MissingIntegrationError
from .models import GraphCampaign, InsightRow, TimeRange
from .result_rules import DEFAULT_ATTRIBUTION_WINDOWS

logger = logging.getLogger(__name__)


def generate_appsecret_proof(access_token: str, app_secret: str) -> str:
    """HMAC-SHA256 of the access token keyed by the app secret, hex encoded."""
    return hmac.new(
        app_secret.encode("utf-8"),
        access_token.encode("utf-8"),
        hashlib.sha256,
    ).hexdigest()


def normalize_error_status(error_code: Any, http_status: Optional[int]) -> int:
    """
    Pick the HTTP status to report for a failed Graph call.

    The embedded Graph error code wins over the HTTP status. A 200 that
    carries an error becomes 403; anything outside 400-599 becomes 500.
    """
    if isinstance(error_code, int) and not isinstance(error_code, bool):
        status = error_code
    else:
        status = http_status or 500

    if status == 200:
        status = 403
    if status < 400 or status >= 600:
        status = 500
    return status


def _is_transient(exc: BaseException) -> bool:
    return isinstance(exc, MetaApiError) and exc.is_transient


@dataclass(frozen=True)
class RetryPolicy:
    """How many times to retry a transient Graph failure (0 = never)."""
    max_retries: int = 0
    base_delay: float = 1.0

    @classmethod
    def from_config(cls) -> "RetryPolicy":
        return cls(
            max_retries=max(Config.META_MAX_RETRIES, 0),
            base_delay=Config.META_RETRY_BASE_DELAY,
        )

    def retrying(self) -> AsyncRetrying:
        return AsyncRetrying(
            stop=stop_after_attempt(self.max_retries + 1),
            wait=wait_exponential(multiplier=self.base_delay, min=self.base_delay, max=self.base_delay * 16),
            retry=retry_if_exception(_is_transient),
            reraise=True,
        )


class MetaGraphClient:
    """
    Async Graph API client bound to one access token.

    Use as an async context manager, or call ``aclose()`` when done.
    """

    CAMPAIGN_FIELDS = "id,name,status,objective"

    CAMPAIGN_INSIGHT_FIELDS = [
        "campaign_id",
        "campaign_name",
        "spend",
        "impressions",
        "clicks",
        "actions",
        "cost_per_action_type",
    ]

    ADSET_INSIGHT_FIELDS = [
        "campaign_id",
        "campaign_name",
        "adset_id",
        "adset_name",
        "optimization_goal",
        "spend",
        "impressions",
        "reach",
        "clicks",
        "actions",
        "cost_per_action_type",
    ]

    AD_INSIGHT_FIELDS = [
        "ad_id",
        "ad_name",
        "impressions",
        "clicks",
        "spend",
        "actions",
        "cost_per_action_type",
        "ctr",
    ]

    CREATIVE_FIELDS = (
        "id,name,thumbnail_url,"
        "object_story_spec{link_data{picture,image_hash,link},video_data{image_url,video_id}},"
        "asset_feed_spec{images{hash,url},videos{video_id,thumbnail_url}}"
    )

    CREATIVE_BATCH_SIZE = 50

    def __init__(
        self,
        access_token: str,
        app_secret: str,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        page_limit: Optional[int] = None,
        retry_policy: Optional[RetryPolicy] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        """
        Initialize the client.

        Args:
            access_token: Decrypted Meta user/system access token
            app_secret: Meta app secret used for appsecret_proof
            base_url: Graph base URL including version (default from Config)
            timeout: Per-request timeout in seconds (default from Config)
            page_limit: ``limit`` sent on list edges (default from Config)
            retry_policy: Retry behaviour (default from Config, no retries)
            http_client: Pre-built httpx client, mainly for tests

        Raises:
            MissingIntegrationError: If no access token is given
            MissingConfigurationError: If no app secret is given
        """
        if not access_token:
            raise MissingIntegrationError("Meta access token is not available")
        if not app_secret:
            raise MissingConfigurationError("Meta app secret is not configured")

        self._access_token = access_token
        self.appsecret_proof = generate_appsecret_proof(access_token, app_secret)
        self.base_url = (base_url or Config.META_GRAPH_BASE_URL).rstrip("/")
        self.page_limit = page_limit or Config.META_PAGE_LIMIT
        self.retry_policy = retry_policy or RetryPolicy.from_config()

        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(
            timeout=timeout if timeout is not None else Config.META_REQUEST_TIMEOUT
        )

    async def __aenter__(self) -> "MetaGraphClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    # ------------------------------------------------------------------
    # URL handling
    # ------------------------------------------------------------------

    def build_url(self, path: str, params: Optional[Dict[str, str]] = None) -> httpx.URL:
        """Absolute, signed URL for a Graph path."""
        clean_path = path if path.startswith("/") else f"/{path}"
        query = {
            "access_token": self._access_token,
            "appsecret_proof": self.appsecret_proof,
        }
        if params:
            query.update({k: v for k, v in params.items() if v is not None})
        return httpx.URL(f"{self.base_url}{clean_path}", params=query)

    def ensure_next_url(self, next_url: Optional[str]) -> Optional[httpx.URL]:
        """Cursor URL with access_token / appsecret_proof restored if missing."""
        if not next_url:
            return None
        url = httpx.URL(next_url)

        missing = {}
        if "appsecret_proof" not in url.params:
            missing["appsecret_proof"] = self.appsecret_proof
        if "access_token" not in url.params:
            missing["access_token"] = self._access_token
        if missing:
            url = url.copy_merge_params(missing)
        return url

    # ------------------------------------------------------------------
    # Requests
    # ------------------------------------------------------------------

    async def request(self, url: httpx.URL) -> Dict[str, Any]:
        """GET a signed URL, applying the retry policy."""
        async for attempt in self.retry_policy.retrying():
            with attempt:
                if attempt.retry_state.attempt_number > 1:
                    logger.warning(
                        f"Retrying Meta API request to {url.path} "
                        f"(attempt {attempt.retry_state.attempt_number})"
                    )
                return await self._send(url)
        raise MetaApiError("Meta API request was not attempted", status=500)

    async def _send(self, url: httpx.URL) -> Dict[str, Any]:
        try:
            response = await self._client.get(url)
        except httpx.TimeoutException as e:
            logger.error(f"Meta API request to {url.path} timed out")
            raise MetaApiError(f"Meta API request timed out: {url.path}", status=504) from e
        except httpx.HTTPError as e:
            logger.error(f"Meta API transport error for {url.path}: {e}")
            raise MetaApiError(f"Meta API request failed: {e}", status=502) from e

        try:
            payload = response.json()
        except ValueError:
            payload = {}

        error = payload.get("error") if isinstance(payload, dict) else None
        if response.is_success and not error:
            return payload if isinstance(payload, dict) else {}

        error = error if isinstance(error, dict) else {}
        message = error.get("message") or f"Meta API request failed with status {response.status_code}"
        code = error.get("code")
        if not isinstance(code, int) or isinstance(code, bool):
            code = None
        status = normalize_error_status(code, response.status_code)

        logger.error(f"Meta API error on {url.path}: {message} (status {status}, code {code})")
        raise MetaApiError(message, status=status, http_status=response.status_code, error_code=code)

    async def fetch_edge(self, path: str, params: Optional[Dict[str, str]] = None) -> List[Dict[str, Any]]:
        """
        Read every page of a list edge.

        Args:
            path: Graph path, e.g. "/act_123/campaigns"
            params: Query parameters for the first page

        Returns:
            All ``data`` items across pages, in page order

        Raises:
            MetaApiError: On the first failing page
        """
        next_url: Optional[httpx.URL] = self.build_url(path, params)
        items: List[Dict[str, Any]] = []
        pages = 0

        while next_url is not None:
            result = await self.request(next_url)
            pages += 1

            data = result.get("data")
            if isinstance(data, list):
                items.extend(data)

            paging = result.get("paging") or {}
            next_url = self.ensure_next_url(paging.get("next"))
            logger.debug(f"{path}: page {pages} ({len(items)} items so far)")

        logger.info(f"Fetched {len(items)} items from {path} in {pages} page(s)")
        return items

    # ------------------------------------------------------------------
    # Campaigns and insights
    # ------------------------------------------------------------------

    async def fetch_campaigns(self, account_id: str) -> List[GraphCampaign]:
        items = await self.fetch_edge(f"/{account_id}/campaigns", {
            "fields": self.CAMPAIGN_FIELDS,
            "limit": str(self.page_limit),
        })
        return [GraphCampaign.model_validate(item) for item in items if item.get("id")]

    def _insight_params(self, level: str, fields: Iterable[str], time_range: Optional[TimeRange]) -> Dict[str, str]:
        params = {
            "level": level,
            "fields": ",".join(fields),
            "limit": str(self.page_limit),
            "action_attribution_windows": json.dumps(list(DEFAULT_ATTRIBUTION_WINDOWS)),
        }
        if time_range is not None and time_range.since and time_range.until:
            params["time_range"] = time_range.to_param()
        else:
            params["date_preset"] = "maximum"
        return params

    async def fetch_insights(
        self,
        object_id: str,
        level: str,
        fields: Iterable[str],
        time_range: Optional[TimeRange] = None,
    ) -> List[InsightRow]:
        """
        Fetch insight rows for an account or campaign at one level.

        Args:
            object_id: Ad account id (act_...) or campaign id
            level: "campaign", "adset" or "ad"
            fields: Insight fields to request
            time_range: Inclusive range; None means all available history

        Returns:
            Parsed insight rows
        """
        items = await self.fetch_edge(
            f"/{object_id}/insights",
            self._insight_params(level, fields, time_range),
        )
        return [InsightRow.model_validate(item) for item in items]

    async def fetch_campaign_insights(self, account_id: str, time_range: Optional[TimeRange] = None) -> List[InsightRow]:
        return await self.fetch_insights(account_id, "campaign", self.CAMPAIGN_INSIGHT_FIELDS, time_range)

    async def fetch_adset_insights(self, account_id: str, time_range: Optional[TimeRange] = None) -> List[InsightRow]:
        return await self.fetch_insights(account_id, "adset", self.ADSET_INSIGHT_FIELDS, time_range)

    async def fetch_ad_insights(self, campaign_id: str, time_range: Optional[TimeRange] = None) -> List[InsightRow]:
        return await self.fetch_insights(campaign_id, "ad", self.AD_INSIGHT_FIELDS, time_range)

    # ------------------------------------------------------------------
    # Ads and creatives
    # ------------------------------------------------------------------

    async def fetch_ad_creative_map(self, campaign_id: str) -> Dict[str, str]:
        """Map ad id -> creative id for a campaign's ads."""
        ads = await self.fetch_edge(f"/{campaign_id}/ads", {
            "fields": "id,creative{id}",
            "limit": str(self.page_limit),
        })

        mapping: Dict[str, str] = {}
        for ad in ads:
            creative = ad.get("creative") or {}
            if ad.get("id") and creative.get("id"):
                mapping[ad["id"]] = creative["id"]
        return mapping

    async def fetch_creatives_metadata(self, creative_ids: List[str]) -> Dict[str, Dict[str, Any]]:
        """Creative metadata keyed by id, looked up in batches of 50."""
        metadata: Dict[str, Dict[str, Any]] = {}

        for start in range(0, len(creative_ids), self.CREATIVE_BATCH_SIZE):
            chunk = creative_ids[start:start + self.CREATIVE_BATCH_SIZE]
            result = await self.request(self.build_url("/", {
                "ids": ",".join(chunk),
                "fields": self.CREATIVE_FIELDS,
            }))
            for creative_id, creative in result.items():
                if isinstance(creative, dict):
                    metadata[creative_id] = creative

        return metadata
