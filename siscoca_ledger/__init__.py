"""
SISCOCA ledger: campaign service, history, weekly ledger, evolution series
and the persistence cache.
"""

from .change_log import ChangeLog
from .evolution import (
    WeekBucket,
    available_weeks,
    dashboard_evolution,
    summarize_weeks,
    week_trend,
    weekly_evolution,
)
from .persistence import DuckDBPersistence, InMemoryPersistence, PersistencePort
from .service import CampaignService

__all__ = [
    "ChangeLog",
    "WeekBucket",
    "available_weeks",
    "dashboard_evolution",
    "summarize_weeks",
    "week_trend",
    "weekly_evolution",
    "DuckDBPersistence",
    "InMemoryPersistence",
    "PersistencePort",
    "CampaignService",
]
