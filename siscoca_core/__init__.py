"""
SISCOCA core: campaign entities, naming rule, lifecycle state machine and
derived metrics.
"""

from .catalog import CampaignState, Country, LandingType, Platform, Segment, Vertical
from .lifecycle import (
    activate,
    archive,
    attach_creative,
    change_state,
    reactivate,
    submit_owner_metrics,
    submit_trafficker_metrics,
)
from .metrics import cost_per_driver, cost_per_lead
from .models import (
    ArchiveRecord,
    Campaign,
    Creative,
    OperationResult,
    TransitionEvent,
    WeeklyLedgerEntry,
)
from .naming import NameEditSession, build_campaign_name

__all__ = [
    "CampaignState",
    "Country",
    "LandingType",
    "Platform",
    "Segment",
    "Vertical",
    "activate",
    "archive",
    "attach_creative",
    "change_state",
    "reactivate",
    "submit_owner_metrics",
    "submit_trafficker_metrics",
    "cost_per_driver",
    "cost_per_lead",
    "ArchiveRecord",
    "Campaign",
    "Creative",
    "OperationResult",
    "TransitionEvent",
    "WeeklyLedgerEntry",
    "NameEditSession",
    "build_campaign_name",
]
