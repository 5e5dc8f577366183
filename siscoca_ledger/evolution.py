"""
Weekly evolution and week-selection summaries.

Campaign evolution (detail view, 5 weeks by default): for each of the last N
ISO weeks relative to ``now``, oldest first, sum

  (a) generic history records of the campaign archived inside the week,
  (b) weekly ledger rows of the campaign for the week's ISO number,
  (c) the campaign's live counters, last bucket only, when (a) and (b)
      found nothing for it.

Modes:
- additive         : (a) + (b) summed together (observed behaviour)
- ledger_priority  : (b) when present, else (a); never both

Dashboard evolution (4 weeks by default) sums the generic history across all
campaigns.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Dict, Iterable, List, Optional, Sequence

from siscoca_core.iso_week import iso_week_number, week_bounds
from siscoca_core.logging_config import setup_logging
from siscoca_core.metrics import _ratio
from siscoca_core.models import ArchiveRecord, Campaign, WeeklyLedgerEntry

logger = setup_logging(__name__)

MODE_ADDITIVE = "additive"
MODE_LEDGER_PRIORITY = "ledger_priority"
MODES = (MODE_ADDITIVE, MODE_LEDGER_PRIORITY)

SOURCE_HISTORY = "historico"
SOURCE_LEDGER = "ledger"
SOURCE_LIVE = "actual"

_COUNTERS = ("reach", "clicks", "leads", "weekly_cost", "drivers_registered", "drivers_first_trip")


@dataclass
class WeekBucket:
    """Aggregated metrics for one ISO week."""
    iso_week: int
    start: datetime
    end: datetime
    reach: int = 0
    clicks: int = 0
    leads: int = 0
    weekly_cost: float = 0.0
    drivers_registered: int = 0
    drivers_first_trip: int = 0
    sources: List[str] = field(default_factory=list)

    @property
    def label(self) -> str:
        return self.start.strftime("%d/%m")

    @property
    def cost_per_lead(self) -> Optional[float]:
        return _ratio(self.weekly_cost, self.leads)

    @property
    def cost_per_driver_registered(self) -> Optional[float]:
        return _ratio(self.weekly_cost, self.drivers_registered)

    @property
    def cost_per_driver_first_trip(self) -> Optional[float]:
        return _ratio(self.weekly_cost, self.drivers_first_trip)

    def add(self, row: Any, source: str) -> None:
        for name in _COUNTERS:
            value = getattr(row, name, None)
            if value:
                setattr(self, name, getattr(self, name) + value)
        self.sources.append(source)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "iso_week": self.iso_week,
            "label": self.label,
            "start": self.start.isoformat(),
            "end": self.end.isoformat(),
            "reach": self.reach,
            "clicks": self.clicks,
            "leads": self.leads,
            "weekly_cost": self.weekly_cost,
            "cost_per_lead": self.cost_per_lead,
            "drivers_registered": self.drivers_registered,
            "drivers_first_trip": self.drivers_first_trip,
            "cost_per_driver_registered": self.cost_per_driver_registered,
            "cost_per_driver_first_trip": self.cost_per_driver_first_trip,
            "sources": list(self.sources),
        }


def week_window(weeks: int, now: Optional[datetime] = None) -> List[WeekBucket]:
    """Empty buckets for the last ``weeks`` ISO weeks, oldest first."""
    if weeks < 1:
        raise ValueError("weeks must be >= 1")
    now = now or datetime.now()
    buckets = []
    for i in range(weeks):
        start, end = week_bounds(now - timedelta(weeks=weeks - 1 - i))
        buckets.append(WeekBucket(iso_week=iso_week_number(start), start=start, end=end))
    return buckets


def weekly_evolution(
    campaign: Campaign,
    records: Iterable[ArchiveRecord],
    entries: Iterable[WeeklyLedgerEntry],
    weeks: int = 5,
    now: Optional[datetime] = None,
    mode: str = MODE_ADDITIVE,
) -> List[WeekBucket]:
    """
    Per-week metrics for one campaign over the last ``weeks`` ISO weeks.

    Args:
        campaign: Campaign whose live counters fill the current week
        records: Generic history (any campaign; filtered here)
        entries: Weekly ledger rows (any campaign; filtered here)
        weeks: Window size
        now: Reference time (defaults to now)
        mode: additive | ledger_priority

    Returns:
        Buckets ordered oldest first
    """
    if mode not in MODES:
        raise ValueError(f"mode must be one of {MODES}, got '{mode}'")

    own_records = [r for r in records if r.campaign_id == campaign.id]
    own_entries = [e for e in entries if e.campaign_id == campaign.id]

    buckets = week_window(weeks, now)
    for i, bucket in enumerate(buckets):
        history_rows = [r for r in own_records if bucket.start <= r.archived_at <= bucket.end]
        ledger_rows = [e for e in own_entries if e.iso_week == bucket.iso_week]

        if mode == MODE_LEDGER_PRIORITY and ledger_rows:
            history_rows = []

        for r in history_rows:
            bucket.add(r, SOURCE_HISTORY)
        for e in ledger_rows:
            bucket.add(e, SOURCE_LEDGER)

        if i == len(buckets) - 1 and not bucket.sources:
            bucket.add(campaign, SOURCE_LIVE)

        logger.debug(
            f"[{campaign.id}] week {bucket.iso_week}: history={len(history_rows)} "
            f"ledger={len(ledger_rows)} leads={bucket.leads}"
        )

    return buckets


@dataclass
class DashboardWeek:
    iso_week: int
    start: datetime
    end: datetime
    leads: int = 0
    weekly_cost: float = 0.0
    drivers: int = 0
    campaigns: int = 0

    @property
    def label(self) -> str:
        return self.start.strftime("%d/%m")


def dashboard_evolution(
    records: Iterable[ArchiveRecord],
    weeks: int = 4,
    now: Optional[datetime] = None,
) -> List[DashboardWeek]:
    """Cross-campaign leads, cost, registered drivers and archive count per week, oldest first."""
    records = list(records)
    out = []
    for bucket in week_window(weeks, now):
        week = DashboardWeek(iso_week=bucket.iso_week, start=bucket.start, end=bucket.end)
        for r in records:
            if bucket.start <= r.archived_at <= bucket.end:
                week.leads += r.leads or 0
                week.weekly_cost += r.weekly_cost or 0.0
                week.drivers += r.drivers_registered or 0
                week.campaigns += 1
        out.append(week)
    return out


@dataclass(frozen=True)
class Trend:
    percentage: float  # absolute change, percent
    direction: str  # up | down | neutral


def week_trend(current: float, previous: float) -> Trend:
    """Change vs the previous week; neutral 0 when there is nothing to compare against."""
    if not previous:
        return Trend(0.0, "neutral")
    change = (current - previous) / previous * 100
    if change > 0:
        direction = "up"
    elif change < 0:
        direction = "down"
    else:
        direction = "neutral"
    return Trend(abs(change), direction)


# ─────────────────────────────────────────────────────────────
# Week selection (detail view)
# ─────────────────────────────────────────────────────────────

def available_weeks(entries: Iterable[WeeklyLedgerEntry], today: Optional[datetime] = None) -> List[int]:
    """Distinct ledger weeks plus the current week, newest first."""
    current = iso_week_number(today or datetime.now())
    weeks = {e.iso_week for e in entries}
    weeks.add(current)
    return sorted(weeks, reverse=True)


def live_entry(campaign: Campaign, today: datetime) -> WeeklyLedgerEntry:
    """The campaign's live counters dressed as a ledger row for the current week."""
    week = iso_week_number(today)
    return WeeklyLedgerEntry(
        id=f"{campaign.id}-{week}-actual",
        campaign_id=campaign.id,
        iso_week=week,
        week_date=today,
        registered_at=today,
        registered_by="Actual",
        reach=campaign.reach,
        clicks=campaign.clicks,
        leads=campaign.leads,
        weekly_cost=campaign.weekly_cost,
        cost_per_lead=campaign.cost_per_lead,
        drivers_registered=campaign.drivers_registered,
        drivers_first_trip=campaign.drivers_first_trip,
        cost_per_driver_registered=campaign.cost_per_driver_registered,
        cost_per_driver_first_trip=campaign.cost_per_driver_first_trip,
    )


@dataclass
class WeekSummary:
    rows: List[WeeklyLedgerEntry]
    reach: int
    clicks: int
    leads: int
    weekly_cost: float
    cost_per_lead: Optional[float]
    drivers_registered: int
    drivers_first_trip: int
    cost_per_driver_registered: Optional[float]
    cost_per_driver_first_trip: Optional[float]


def summarize_weeks(
    campaign: Campaign,
    entries: Iterable[WeeklyLedgerEntry],
    weeks: Sequence[int],
    today: Optional[datetime] = None,
) -> Optional[WeekSummary]:
    """
    Totals over the selected ISO weeks of one campaign.

    When the current week is selected but has no ledger row, the live
    counters stand in for it. Returns None when no week is selected.
    """
    if not weeks:
        return None

    today = today or datetime.now()
    selected = set(weeks)
    rows = [e for e in entries if e.campaign_id == campaign.id and e.iso_week in selected]

    current = iso_week_number(today)
    if current in selected and not any(e.iso_week == current for e in rows):
        rows.append(live_entry(campaign, today))
    rows.sort(key=lambda e: e.iso_week, reverse=True)

    cost = sum(e.weekly_cost or 0.0 for e in rows)
    leads = sum(e.leads or 0 for e in rows)
    registered = sum(e.drivers_registered or 0 for e in rows)
    first_trip = sum(e.drivers_first_trip or 0 for e in rows)

    return WeekSummary(
        rows=rows,
        reach=sum(e.reach or 0 for e in rows),
        clicks=sum(e.clicks or 0 for e in rows),
        leads=leads,
        weekly_cost=cost,
        cost_per_lead=_ratio(cost, leads),
        drivers_registered=registered,
        drivers_first_trip=first_trip,
        cost_per_driver_registered=_ratio(cost, registered),
        cost_per_driver_first_trip=_ratio(cost, first_trip),
    )
