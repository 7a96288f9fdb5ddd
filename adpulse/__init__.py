"""
AdPulse - Meta Ads performance rollups for management dashboards.

Fetches insight data from the Meta Graph API and turns it into per-account,
per-campaign metrics with a single official "result" per campaign.
"""

__version__ = "0.1.0"
__author__ = "AdPulse Team"
