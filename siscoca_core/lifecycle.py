"""
Campaign lifecycle state machine.

    Pendiente -> Creativo Enviado -> Activa -> Archivada
                                       ^          |
                                       +----------+  (reactivate)

Every operation takes a frozen Campaign and returns an OperationResult.
On success the result carries the new Campaign (and a TransitionEvent when the
state changed); on a guard violation it carries only the message, and the
input campaign is untouched. Nothing here raises for a domain rule.

Guard violations are logged at WARNING level.
"""
from __future__ import annotations

from dataclasses import replace
from datetime import datetime
from typing import Dict, FrozenSet, Optional, Tuple

from .catalog import CampaignState
from .iso_week import iso_week_number
from .logging_config import setup_logging
from .metrics import (
    cost_per_driver,
    cost_per_lead,
    metrics_complete,
    trafficker_cost_available,
)
from .models import (
    ACTIVITY_ACTIVE,
    METRICS_COMPLETE,
    ArchiveRecord,
    Campaign,
    OperationResult,
    TransitionEvent,
)

logger = setup_logging(__name__)

MSG_NOT_ACTIVE = 'La campaña debe estar en estado "Activa" para subir métricas'
MSG_TRAFFICKER_FIRST = "Debe subir primero las métricas del trafficker"
MSG_ARCHIVE_INCOMPLETE = "No se puede archivar: Faltan métricas del trafficker o dueño de campaña"
MSG_ARCHIVE_SNAPSHOT = "Campaña archivada exitosamente - métricas completas"

# Edges the state machine accepts, with the operations that may take them.
ALLOWED_TRANSITIONS: Dict[Tuple[CampaignState, CampaignState], FrozenSet[str]] = {
    (CampaignState.PENDING, CampaignState.CREATIVE_SUBMITTED): frozenset({"attach_creative", "sync"}),
    (CampaignState.CREATIVE_SUBMITTED, CampaignState.ACTIVE): frozenset({"activate"}),
    (CampaignState.ACTIVE, CampaignState.ARCHIVED): frozenset({"archive"}),
    (CampaignState.ARCHIVED, CampaignState.ACTIVE): frozenset({"reactivate"}),
    (CampaignState.ACTIVE, CampaignState.PENDING): frozenset({"sync"}),
    (CampaignState.CREATIVE_SUBMITTED, CampaignState.PENDING): frozenset({"sync"}),
}


def _now(now: Optional[datetime]) -> datetime:
    return now or datetime.now()


def _state_label(state: CampaignState) -> str:
    return state.value if isinstance(state, CampaignState) else str(state)


def transition_message(from_state: CampaignState, to_state: CampaignState) -> str:
    return f"Transición no permitida: {_state_label(from_state)} → {_state_label(to_state)}"


def is_allowed(from_state: CampaignState, to_state: CampaignState, trigger: Optional[str] = None) -> bool:
    triggers = ALLOWED_TRANSITIONS.get((from_state, to_state))
    if triggers is None:
        return False
    return trigger is None or trigger in triggers


def _reject(campaign: Campaign, message: str) -> OperationResult:
    logger.warning(f"[{campaign.id}] {message}")
    return OperationResult.fail(message)


def change_state(
    campaign: Campaign,
    to_state: CampaignState,
    trigger: str,
    now: Optional[datetime] = None,
    message: Optional[str] = None,
) -> OperationResult:
    """
    Move a campaign along one allowed edge.

    Returns:
        OperationResult with the updated campaign and its TransitionEvent,
        or a failure naming the refused edge
    """
    from_state = campaign.state
    if not is_allowed(from_state, to_state, trigger):
        return _reject(campaign, transition_message(from_state, to_state))

    ts = _now(now)
    updated = replace(campaign, state=to_state, updated_at=ts)
    event = TransitionEvent(
        campaign_id=campaign.id,
        from_state=from_state,
        to_state=to_state,
        occurred_at=ts,
        trigger=trigger,
    )
    logger.info(f"[{campaign.id}] {_state_label(from_state)} -> {_state_label(to_state)} ({trigger})")
    return OperationResult.ok(
        message or f"Estado de {campaign.id} cambiado a {_state_label(to_state)}",
        campaign=updated,
        event=event,
    )


def attach_creative(campaign: Campaign, now: Optional[datetime] = None) -> OperationResult:
    """
    A creative was uploaded for the campaign.

    Pending campaigns move to Creativo Enviado; in any other live state the
    creative is accepted without a state change. Archived campaigns refuse it.
    """
    msg = f"Creativo subido exitosamente para {campaign.name}"
    if campaign.state == CampaignState.PENDING:
        return change_state(campaign, CampaignState.CREATIVE_SUBMITTED, "attach_creative", now, msg)
    if campaign.state == CampaignState.ARCHIVED:
        return _reject(campaign, transition_message(campaign.state, CampaignState.CREATIVE_SUBMITTED))
    return OperationResult.ok(msg, campaign=replace(campaign, updated_at=_now(now)))


def activate(campaign: Campaign, now: Optional[datetime] = None) -> OperationResult:
    return change_state(
        campaign, CampaignState.ACTIVE, "activate", now,
        f"Campaña {campaign.name} activada",
    )


def reactivate(campaign: Campaign, now: Optional[datetime] = None) -> OperationResult:
    return change_state(
        campaign, CampaignState.ACTIVE, "reactivate", now,
        f"Campaña {campaign.name} reactivada",
    )


def submit_trafficker_metrics(
    campaign: Campaign,
    reach: int,
    clicks: int,
    leads: int,
    weekly_cost: float,
    cost_per_lead_override: Optional[float] = None,
    report_url: Optional[str] = None,
    now: Optional[datetime] = None,
) -> OperationResult:
    """
    Store the trafficker's weekly numbers. Only Active campaigns accept them.

    Driver costs already on the campaign are recomputed against the new cost.
    """
    if campaign.state != CampaignState.ACTIVE:
        return _reject(campaign, MSG_NOT_ACTIVE)

    updated = replace(
        campaign,
        report_url=report_url if report_url is not None else campaign.report_url,
        reach=reach,
        clicks=clicks,
        leads=leads,
        weekly_cost=weekly_cost,
        cost_per_lead=cost_per_lead(weekly_cost, leads, cost_per_lead_override),
        cost_per_driver_registered=cost_per_driver(weekly_cost, campaign.drivers_registered),
        cost_per_driver_first_trip=cost_per_driver(weekly_cost, campaign.drivers_first_trip),
        updated_at=_now(now),
    )
    logger.info(f"[{campaign.id}] Trafficker metrics: leads={leads} cost={weekly_cost}")
    return OperationResult.ok(f"Métricas del trafficker actualizadas para {campaign.id}", campaign=updated)


def submit_owner_metrics(
    campaign: Campaign,
    drivers_registered: int,
    drivers_first_trip: int,
    now: Optional[datetime] = None,
) -> OperationResult:
    """Store driver counts. Needs a positive trafficker weekly cost first."""
    if not trafficker_cost_available(campaign):
        return _reject(campaign, MSG_TRAFFICKER_FIRST)

    updated = replace(
        campaign,
        drivers_registered=drivers_registered,
        drivers_first_trip=drivers_first_trip,
        cost_per_driver_registered=cost_per_driver(campaign.weekly_cost, drivers_registered),
        cost_per_driver_first_trip=cost_per_driver(campaign.weekly_cost, drivers_first_trip),
        updated_at=_now(now),
    )
    logger.info(
        f"[{campaign.id}] Owner metrics: registered={drivers_registered} first_trip={drivers_first_trip}"
    )
    return OperationResult.ok(f"Métricas del dueño actualizadas para {campaign.id}", campaign=updated)


def build_archive_record(campaign: Campaign, archived_at: datetime) -> ArchiveRecord:
    """Snapshot of the campaign for the ISO week holding ``archived_at``."""
    week = iso_week_number(archived_at)
    return ArchiveRecord(
        id=f"{campaign.id}-{week}",
        campaign_id=campaign.id,
        name=campaign.name,
        iso_week=week,
        archived_at=archived_at,
        country=campaign.country,
        vertical=campaign.vertical,
        platform=campaign.platform,
        segment=campaign.segment,
        objective=campaign.objective,
        benefit=campaign.benefit,
        description=campaign.long_description,
        owner_name=campaign.owner_name,
        report_url=campaign.report_url,
        reach=campaign.reach,
        clicks=campaign.clicks,
        leads=campaign.leads,
        weekly_cost=campaign.weekly_cost,
        cost_per_lead=campaign.cost_per_lead,
        drivers_registered=campaign.drivers_registered,
        drivers_first_trip=campaign.drivers_first_trip,
        cost_per_driver_registered=campaign.cost_per_driver_registered,
        cost_per_driver_first_trip=campaign.cost_per_driver_first_trip,
        activity_status=ACTIVITY_ACTIVE,
        metrics_status=METRICS_COMPLETE,
        message=MSG_ARCHIVE_SNAPSHOT,
    )


def archive(campaign: Campaign, now: Optional[datetime] = None) -> OperationResult:
    """
    Archive an Active campaign with complete metrics.

    Returns:
        OperationResult whose ``record`` is the new ArchiveRecord
    """
    if not metrics_complete(campaign):
        return _reject(campaign, MSG_ARCHIVE_INCOMPLETE)

    ts = _now(now)
    week = iso_week_number(ts)
    result = change_state(
        campaign, CampaignState.ARCHIVED, "archive", ts,
        f"Campaña {campaign.name} archivada exitosamente en la semana {week}",
    )
    if not result.success:
        return result

    result.record = build_archive_record(campaign, ts)
    logger.info(f"[{campaign.id}] Archived snapshot {result.record.id}")
    return result
