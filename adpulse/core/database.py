"""
Supabase connection shared by the tenant integration store.
"""

import logging
from typing import Optional
from urllib.parse import urlparse

from supabase import create_client, Client
from .config import Config

logger = logging.getLogger(__name__)

_supabase_client: Optional[Client] = None


def is_supabase_configured() -> bool:
    return bool(Config.SUPABASE_URL and Config.SUPABASE_SERVICE_KEY)


def get_supabase_client() -> Client:
    """
    Return the process-wide client for the integrations/resources tables,
    connecting on first use.

    Raises:
        ValueError: If SUPABASE_URL / SUPABASE_SERVICE_KEY are not configured
    """
    global _supabase_client

    if _supabase_client is None:
        Config.validate()
        logger.info(f"Connecting to Supabase at {urlparse(Config.SUPABASE_URL).netloc}")
        _supabase_client = create_client(
            Config.SUPABASE_URL,
            Config.SUPABASE_SERVICE_KEY
        )

    return _supabase_client


def reset_supabase_client():
    """Drop the cached client so the next call reconnects with current Config."""
    global _supabase_client
    _supabase_client = None
