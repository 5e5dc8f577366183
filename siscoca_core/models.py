"""
Campaign data models: Campaign, ArchiveRecord, WeeklyLedgerEntry, Creative,
TransitionEvent, OperationResult.

Entities are frozen: lifecycle operations build a new instance with
`dataclasses.replace` and hand it back inside an OperationResult, so a failed
operation never leaves a half-updated campaign behind.
"""
from __future__ import annotations

from dataclasses import asdict, dataclass, field, fields
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from .catalog import (
    CampaignState,
    Country,
    LandingType,
    Platform,
    Segment,
    Vertical,
)

METRICS_COMPLETE = "COMPLETA"
METRICS_INCOMPLETE = "INCOMPLETA"
ACTIVITY_ACTIVE = "ACTIVA"
TRIGGER_DELETE = "delete"


@dataclass(frozen=True)
class Campaign:
    """A campaign as seen by the lifecycle and the rollup engine."""
    id: str
    name: str
    country: Country
    vertical: Vertical
    platform: Platform
    segment: Segment
    owner_name: str
    owner_initials: str
    short_description: str
    objective: str
    benefit: str
    long_description: str
    created_at: datetime
    updated_at: datetime
    iso_week: int
    state: CampaignState = CampaignState.PENDING
    landing_type: LandingType = LandingType.FORMS
    landing_url: Optional[str] = None
    landing_detail: Optional[str] = None     # form fields when landing_type is FORMS
    platform_name: Optional[str] = None
    external_platform_id: Optional[str] = None

    # Trafficker metrics (None until submitted)
    report_url: Optional[str] = None
    reach: Optional[int] = None
    clicks: Optional[int] = None
    leads: Optional[int] = None
    weekly_cost: Optional[float] = None      # USD
    cost_per_lead: Optional[float] = None    # USD, derived

    # Owner metrics (None until submitted)
    drivers_registered: Optional[int] = None
    drivers_first_trip: Optional[int] = None
    cost_per_driver_registered: Optional[float] = None   # USD, derived
    cost_per_driver_first_trip: Optional[float] = None   # USD, derived

    def to_dict(self) -> Dict[str, Any]:
        return _to_jsonable(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Campaign":
        return _from_jsonable(cls, data)


@dataclass(frozen=True)
class ArchiveRecord:
    """Immutable snapshot of a campaign at archive time (HistoricoSemanal)."""
    id: str                               # "{campaign_id}-{iso_week}"
    campaign_id: str
    name: str
    iso_week: int
    archived_at: datetime
    country: Country
    vertical: Vertical
    platform: Platform
    segment: Segment
    objective: str
    benefit: str
    description: str
    owner_name: str
    report_url: Optional[str] = None
    reach: Optional[int] = None
    clicks: Optional[int] = None
    leads: Optional[int] = None
    weekly_cost: Optional[float] = None
    cost_per_lead: Optional[float] = None
    drivers_registered: Optional[int] = None
    drivers_first_trip: Optional[int] = None
    cost_per_driver_registered: Optional[float] = None
    cost_per_driver_first_trip: Optional[float] = None
    activity_status: str = ACTIVITY_ACTIVE   # ACTIVA | FINALIZADA | CANCELADA
    metrics_status: str = METRICS_COMPLETE   # COMPLETA | INCOMPLETA | NO_ACTUALIZADA | ERROR
    message: str = ""

    @property
    def key(self) -> tuple:
        return (self.campaign_id, self.iso_week)

    def to_dict(self) -> Dict[str, Any]:
        return _to_jsonable(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ArchiveRecord":
        return _from_jsonable(cls, data)


@dataclass(frozen=True)
class WeeklyLedgerEntry:
    """Per-campaign weekly metrics row (HistoricoSemanalCampana); upserted by key."""
    id: str
    campaign_id: str
    iso_week: int
    week_date: datetime
    registered_at: datetime
    registered_by: str
    reach: Optional[int] = None
    clicks: Optional[int] = None
    leads: Optional[int] = None
    weekly_cost: Optional[float] = None
    cost_per_lead: Optional[float] = None
    drivers_registered: Optional[int] = None
    drivers_first_trip: Optional[int] = None
    cost_per_driver_registered: Optional[float] = None
    cost_per_driver_first_trip: Optional[float] = None

    @property
    def key(self) -> tuple:
        return (self.campaign_id, self.iso_week)

    def to_dict(self) -> Dict[str, Any]:
        return _to_jsonable(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "WeeklyLedgerEntry":
        return _from_jsonable(cls, data)


@dataclass(frozen=True)
class Creative:
    """Creative asset owned by exactly one campaign."""
    id: str
    campaign_id: str
    order: int
    created_at: datetime
    active: bool = True                   # False = discarded
    file_name: Optional[str] = None
    external_url: Optional[str] = None
    updated_at: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        return _to_jsonable(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Creative":
        return _from_jsonable(cls, data)


@dataclass(frozen=True)
class TransitionEvent:
    """State change published to task routing."""
    campaign_id: str
    from_state: CampaignState
    to_state: CampaignState
    occurred_at: datetime
    trigger: str                          # attach_creative | activate | archive | reactivate | sync | delete


@dataclass
class OperationResult:
    """Outcome of a lifecycle or service operation. Guard violations land here, never raise."""
    success: bool
    message: str
    campaign: Optional[Campaign] = None
    event: Optional[TransitionEvent] = None
    record: Optional[Any] = None          # ArchiveRecord / WeeklyLedgerEntry / Creative
    errors: Dict[str, str] = field(default_factory=dict)   # field-level validation messages

    @classmethod
    def ok(cls, message: str, **kwargs: Any) -> "OperationResult":
        return cls(success=True, message=message, **kwargs)

    @classmethod
    def fail(cls, message: str, **kwargs: Any) -> "OperationResult":
        return cls(success=False, message=message, **kwargs)


# ─────────────────────────────────────────────────────────────
# JSON helpers (persistence port stores plain dicts)
# ─────────────────────────────────────────────────────────────

_ENUM_FIELDS = {
    "country": Country,
    "vertical": Vertical,
    "platform": Platform,
    "segment": Segment,
    "state": CampaignState,
    "landing_type": LandingType,
}

_DATETIME_FIELDS = {
    "created_at", "updated_at", "archived_at", "week_date", "registered_at",
}


def _to_jsonable(obj: Any) -> Dict[str, Any]:
    out: Dict[str, Any] = {}
    for k, v in asdict(obj).items():
        if isinstance(v, Enum):
            out[k] = v.value
        elif isinstance(v, datetime):
            out[k] = v.isoformat()
        else:
            out[k] = v
    return out


def _from_jsonable(cls, data: Dict[str, Any]):
    known = {f.name for f in fields(cls)}
    kwargs: Dict[str, Any] = {}
    for k, v in data.items():
        if k not in known:
            continue
        if v is not None and k in _ENUM_FIELDS:
            v = _ENUM_FIELDS[k](v)
        elif isinstance(v, str) and k in _DATETIME_FIELDS:
            v = datetime.fromisoformat(v)
        kwargs[k] = v
    return cls(**kwargs)
