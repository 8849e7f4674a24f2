"""Creatorgate: subscription entitlements and monthly usage quotas for generator features."""

from creatorgate.catalog.tiers import FeatureKey, Tier, is_entitled, limit_for
from creatorgate.client import EntitlementClient

__all__ = [
    "EntitlementClient",
    "FeatureKey",
    "Tier",
    "is_entitled",
    "limit_for",
]
__version__ = "0.1.0"
