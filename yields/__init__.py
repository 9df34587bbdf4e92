"""Yield discovery: normalized opportunities, caching and filtering."""

from .aggregator import YieldAggregator, allowed_risk_levels, filter_opportunities
from .cache import TTLCache
from .models import YieldOpportunity, YieldQuery, YieldSourceConfig

__all__ = [
    "TTLCache",
    "YieldAggregator",
    "YieldOpportunity",
    "YieldQuery",
    "YieldSourceConfig",
    "allowed_risk_levels",
    "filter_opportunities",
]
