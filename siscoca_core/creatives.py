"""
Creative assets and their effect on campaign state.

A campaign holds at most MAX_ACTIVE_CREATIVES active creatives. Discarded
creatives stay on record but no longer count toward the cap.
"""
from __future__ import annotations

from dataclasses import replace
from datetime import datetime
from typing import List, Optional, Sequence

from .catalog import CampaignState
from .lifecycle import change_state
from .logging_config import setup_logging
from .models import Campaign, Creative, OperationResult

logger = setup_logging(__name__)

MAX_ACTIVE_CREATIVES = 5


def cap_message(limit: int = MAX_ACTIVE_CREATIVES) -> str:
    return f"No se pueden tener más de {limit} creativos activos por campaña"


def active_creatives(creatives: Sequence[Creative], campaign_id: str) -> List[Creative]:
    return [c for c in creatives if c.campaign_id == campaign_id and c.active]


def add_creative(
    campaign: Campaign,
    creatives: Sequence[Creative],
    creative_id: str,
    file_name: Optional[str] = None,
    external_url: Optional[str] = None,
    now: Optional[datetime] = None,
    limit: int = MAX_ACTIVE_CREATIVES,
) -> OperationResult:
    """
    Build a new active creative for the campaign.

    Refused when the campaign already has ``limit`` active creatives.
    ``order`` continues after the highest order the campaign has used.
    """
    own = [c for c in creatives if c.campaign_id == campaign.id]
    if len([c for c in own if c.active]) >= limit:
        logger.warning(f"[{campaign.id}] Creative cap reached ({limit})")
        return OperationResult.fail(cap_message(limit))

    ts = now or datetime.now()
    creative = Creative(
        id=creative_id,
        campaign_id=campaign.id,
        order=max((c.order for c in own), default=0) + 1,
        created_at=ts,
        active=True,
        file_name=file_name,
        external_url=external_url,
        updated_at=ts,
    )
    return OperationResult.ok("Creativo agregado", campaign=campaign, record=creative)


def discard_creative(creative: Creative, now: Optional[datetime] = None) -> OperationResult:
    if not creative.active:
        return OperationResult.fail("El creativo ya está descartado")
    discarded = replace(creative, active=False, updated_at=now or datetime.now())
    return OperationResult.ok("Creativo descartado", record=discarded)


def sync_state_with_creatives(
    campaign: Campaign,
    active_count: int,
    now: Optional[datetime] = None,
) -> OperationResult:
    """
    Align campaign state with its active creative count.

    Pending with at least one active creative moves to Creativo Enviado.
    Creativo Enviado or Activa with none moves back to Pendiente.
    Otherwise nothing changes and the result carries no event.
    """
    if active_count > 0 and campaign.state == CampaignState.PENDING:
        return change_state(campaign, CampaignState.CREATIVE_SUBMITTED, "sync", now)
    if active_count == 0 and campaign.state in (CampaignState.ACTIVE, CampaignState.CREATIVE_SUBMITTED):
        return change_state(campaign, CampaignState.PENDING, "sync", now)
    return OperationResult.ok("Sin cambios de estado", campaign=campaign)
