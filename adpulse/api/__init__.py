"""
AdPulse API - FastAPI application for the metrics dashboard.

Serves account/campaign rollups and campaign creative reports computed from
the Meta Graph API.
"""

__version__ = "1.0.0"
