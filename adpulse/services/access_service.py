"""
MetaAccessService - resolves a tenant's Meta credentials and ad accounts.

Credentials live in Supabase: the tenant's Meta integration row holds the
(usually encrypted) access token, ``app_settings`` holds the app secret, and
ad accounts are ``resources`` rows of type "account".
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Protocol, Sequence

from ..core.config import Config
from ..core.errors import AccountNotFoundError, MissingConfigurationError, MissingIntegrationError
from ..core.token_cipher import TokenCipher
from .meta_graph_client import MetaGraphClient, generate_appsecret_proof
from .models import AccountResource

logger = logging.getLogger(__name__)

META_PROVIDER = "Meta"
ACCOUNT_RESOURCE_TYPE = "account"


class IntegrationStore(Protocol):
    """Storage reads needed to talk to Meta on behalf of a tenant."""

    def get_meta_access_token(self, tenant_id: int) -> Optional[str]:
        ...

    def get_meta_app_secret(self) -> Optional[str]:
        ...

    def list_account_resources(self, tenant_id: int) -> List[AccountResource]:
        ...


class SupabaseIntegrationStore:
    """IntegrationStore backed by the Supabase tables."""

    def __init__(self, supabase_client=None):
        if supabase_client is None:
            from ..core.database import get_supabase_client
            supabase_client = get_supabase_client()
        self.supabase = supabase_client

    def get_meta_access_token(self, tenant_id: int) -> Optional[str]:
        result = self.supabase.table("integrations").select(
            "config"
        ).eq(
            "tenant_id", tenant_id
        ).eq(
            "provider", META_PROVIDER
        ).limit(1).execute()

        if not result.data:
            return None

        config: Dict[str, Any] = result.data[0].get("config") or {}
        token = config.get("accessToken")
        return token if isinstance(token, str) and token else None

    def get_meta_app_secret(self) -> Optional[str]:
        result = self.supabase.table("app_settings").select(
            "meta_app_secret"
        ).limit(1).execute()

        if not result.data:
            return None
        return result.data[0].get("meta_app_secret") or None

    def list_account_resources(self, tenant_id: int) -> List[AccountResource]:
        result = self.supabase.table("resources").select(
            "id, name, value"
        ).eq(
            "tenant_id", tenant_id
        ).eq(
            "type", ACCOUNT_RESOURCE_TYPE
        ).order("id").execute()

        return [
            AccountResource(id=row["id"], name=row.get("name") or "", value=row["value"])
            for row in (result.data or [])
            if row.get("value")
        ]


@dataclass(frozen=True)
class MetaAccess:
    access_token: str
    app_secret: str

    @property
    def appsecret_proof(self) -> str:
        return generate_appsecret_proof(self.access_token, self.app_secret)


class MetaAccessService:
    """
    Looks up what a tenant needs to query the Graph API.

    Args:
        store: Integration storage
        cipher: Token cipher created at startup
    """

    def __init__(self, store: IntegrationStore, cipher: TokenCipher):
        self.store = store
        self.cipher = cipher

    def resolve(self, tenant_id: int) -> MetaAccess:
        """
        Decrypted access token and app secret for a tenant.

        The app secret from storage wins; META_APP_SECRET is the fallback.

        Raises:
            MissingIntegrationError: No Meta integration or token cannot be decrypted
            MissingConfigurationError: No app secret anywhere
        """
        stored = self.store.get_meta_access_token(tenant_id)
        access_token = self.cipher.decrypt(stored)
        if not access_token:
            logger.warning(f"Tenant {tenant_id} has no usable Meta access token")
            raise MissingIntegrationError(
                "Meta integration is not connected or the token is unavailable for this tenant"
            )

        app_secret = self.store.get_meta_app_secret() or Config.META_APP_SECRET
        if not app_secret:
            raise MissingConfigurationError("Meta app secret is not configured")

        return MetaAccess(access_token=access_token, app_secret=app_secret)

    def build_client(self, tenant_id: int, **client_kwargs) -> MetaGraphClient:
        access = self.resolve(tenant_id)
        return MetaGraphClient(access.access_token, access.app_secret, **client_kwargs)

    def list_accounts(self, tenant_id: int, account_ids: Optional[Sequence[int]] = None) -> List[AccountResource]:
        """Tenant's ad accounts, optionally limited to the given resource ids."""
        accounts = self.store.list_account_resources(tenant_id)
        if account_ids:
            wanted = set(account_ids)
            accounts = [a for a in accounts if a.id in wanted]
        return accounts

    def find_account(self, tenant_id: int, account_value: str) -> AccountResource:
        """
        Tenant's account by Graph id (act_...).

        Raises:
            AccountNotFoundError: If the tenant has no such account
        """
        for account in self.store.list_account_resources(tenant_id):
            if account.value == account_value:
                return account
        raise AccountNotFoundError("Account not found or does not belong to the current tenant")
