"""
Configuration management for AdPulse
"""

import os
from typing import Optional
from dotenv import load_dotenv

# Load environment variables
load_dotenv()


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ('1', 'true', 'yes', 'on')


class Config:
    """Application configuration"""

    # Supabase (integration + resource storage)
    SUPABASE_URL: str = os.getenv('SUPABASE_URL', '')
    SUPABASE_SERVICE_KEY: str = os.getenv('SUPABASE_SERVICE_KEY', '')

    # Meta Graph API
    META_GRAPH_BASE_URL: str = os.getenv('META_GRAPH_BASE_URL', 'https://graph.facebook.com/v24.0')
    META_APP_SECRET: str = os.getenv('META_APP_SECRET', '')
    META_TOKEN_ENC_KEY: str = os.getenv('META_TOKEN_ENC_KEY', '')
    META_REQUEST_TIMEOUT: float = float(os.getenv('META_REQUEST_TIMEOUT', '30'))
    META_PAGE_LIMIT: int = int(os.getenv('META_PAGE_LIMIT', '200'))

    # Retries are off unless explicitly enabled
    META_MAX_RETRIES: int = int(os.getenv('META_MAX_RETRIES', '0'))
    META_RETRY_BASE_DELAY: float = float(os.getenv('META_RETRY_BASE_DELAY', '1.0'))

    # Dashboard
    DASHBOARD_FAIL_FAST: bool = _env_bool('DASHBOARD_FAIL_FAST', 'true')
    DASHBOARD_ACCOUNT_CONCURRENCY: int = int(os.getenv('DASHBOARD_ACCOUNT_CONCURRENCY', '1'))

    # API
    ADPULSE_API_KEY: str = os.getenv('ADPULSE_API_KEY', '')
    CORS_ORIGINS: str = os.getenv('CORS_ORIGINS', '*')

    @classmethod
    def validate(cls) -> bool:
        """Validate required configuration"""
        required = {
            'SUPABASE_URL': cls.SUPABASE_URL,
            'SUPABASE_SERVICE_KEY': cls.SUPABASE_SERVICE_KEY,
        }

        missing = [k for k, v in required.items() if not v]

        if missing:
            raise ValueError(f"Missing required configuration: {', '.join(missing)}")

        return True

    @classmethod
    def get(cls, key: str, default: Optional[str] = None) -> Optional[str]:
        """Get configuration value"""
        return getattr(cls, key, default)
