"""
Derived campaign costs and metric-completeness checks.

Every derived cost returns None when it cannot be computed (zero or missing
denominator), so "not computable" stays distinct from a computed zero.
"""
from __future__ import annotations

from typing import Any, Optional

from .models import Campaign


def _safe_float(x: Any, default: Optional[float] = None) -> Optional[float]:
    if x is None:
        return default
    try:
        return float(x)
    except (TypeError, ValueError):
        return default


def _ratio(numerator: Optional[float], denominator: Optional[float]) -> Optional[float]:
    num = _safe_float(numerator)
    den = _safe_float(denominator)
    if num is None or den is None or den <= 0:
        return None
    return num / den


def cost_per_lead(
    weekly_cost: Optional[float],
    leads: Optional[int],
    override: Optional[float] = None,
) -> Optional[float]:
    """
    Cost per lead for one week.

    An explicit override (the trafficker typed the platform's own CPL) is used
    verbatim; otherwise weekly_cost / leads, None when leads is 0.
    """
    if override is not None:
        return float(override)
    return _ratio(weekly_cost, leads)


def cost_per_driver(weekly_cost: Optional[float], drivers: Optional[int]) -> Optional[float]:
    """
    Cost per registered / first-trip driver; None when drivers is 0.

    The earlier product showed 0 here (e.g. 500 USD over 0 first-trip
    drivers); None is deliberate so every derived cost uses the same
    "not computable" value as cost_per_lead.
    """
    return _ratio(weekly_cost, drivers)


def has_trafficker_metrics(campaign: Campaign) -> bool:
    """Reach, clicks, leads and weekly cost have all been submitted."""
    return all(
        v is not None
        for v in (campaign.reach, campaign.clicks, campaign.leads, campaign.weekly_cost)
    )


def has_owner_metrics(campaign: Campaign) -> bool:
    return campaign.drivers_registered is not None and campaign.drivers_first_trip is not None


def metrics_complete(campaign: Campaign) -> bool:
    return has_trafficker_metrics(campaign) and has_owner_metrics(campaign)


def trafficker_cost_available(campaign: Campaign) -> bool:
    """Owner metrics need a positive trafficker weekly cost to divide."""
    cost = _safe_float(campaign.weekly_cost)
    return cost is not None and cost > 0
