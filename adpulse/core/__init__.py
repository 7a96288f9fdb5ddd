"""
Core module - Configuration, database access, errors and token encryption
"""

from .database import get_supabase_client
from .config import Config
from .errors import (
    AdPulseError,
    MetaApiError,
    MissingIntegrationError,
    MissingConfigurationError,
    ValidationError,
    AccountNotFoundError,
)
from .token_cipher import TokenCipher

__all__ = [
    'get_supabase_client',
    'Config',
    'AdPulseError',
    'MetaApiError',
    'MissingIntegrationError',
    'MissingConfigurationError',
    'ValidationError',
    'AccountNotFoundError',
    'TokenCipher',
]
