"""
Test campaign lifecycle transitions and their guards.

Tests:
1. Happy path: Pendiente -> Creativo Enviado -> Activa -> Archivada
2. Trafficker metrics refused outside Activa (campaign untouched)
3. Owner metrics need trafficker cost first; driver costs
4. Archive needs both metric sets
5. Refused edges name both states
6. Reactivate and archive again in a later week

Run: python tools/testing/test_lifecycle.py
"""

import sys
from dataclasses import replace
from datetime import datetime
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from siscoca_core import lifecycle
from siscoca_core.catalog import CampaignState, Country, Platform, Segment, Vertical
from siscoca_core.models import METRICS_COMPLETE, Campaign

MONDAY = datetime(2026, 10, 19, 9, 0)     # ISO week 43
NEXT_WEEK = datetime(2026, 10, 27, 9, 0)  # ISO week 44


def _campaign(state=CampaignState.PENDING, **overrides):
    campaign = Campaign(
        id="007",
        name="PE-MOTOPER-FB-ADQ-007-AC-BonoBienvenida",
        country=Country.PE,
        vertical=Vertical.MOTOPER,
        platform=Platform.FB,
        segment=Segment.ACQUISITION,
        owner_name="Ariana de la Cruz",
        owner_initials="AC",
        short_description="BonoBienvenida",
        objective="Captar nuevos conductores",
        benefit="Bono S/100",
        long_description="Campaña de bienvenida para motociclistas",
        created_at=MONDAY,
        updated_at=MONDAY,
        iso_week=43,
        state=state,
    )
    return replace(campaign, **overrides) if overrides else campaign


def _active_with_metrics():
    return _campaign(
        CampaignState.ACTIVE,
        reach=1000, clicks=80, leads=4, weekly_cost=100.0, cost_per_lead=25.0,
        drivers_registered=2, drivers_first_trip=1,
        cost_per_driver_registered=50.0, cost_per_driver_first_trip=100.0,
    )


def test_happy_path():
    """Each step emits one event with the right edge and trigger."""
    print("\n=== TEST 1: Happy path ===")

    result = lifecycle.attach_creative(_campaign(), now=MONDAY)
    assert result.success, result.message
    assert result.campaign.state == CampaignState.CREATIVE_SUBMITTED
    assert result.event.trigger == "attach_creative"
    assert result.message == "Creativo subido exitosamente para PE-MOTOPER-FB-ADQ-007-AC-BonoBienvenida"

    result = lifecycle.activate(result.campaign, now=MONDAY)
    assert result.success and result.campaign.state == CampaignState.ACTIVE
    assert result.event.from_state == CampaignState.CREATIVE_SUBMITTED

    result = lifecycle.submit_trafficker_metrics(result.campaign, 1000, 80, 4, 100.0, now=MONDAY)
    assert result.success and result.event is None, "Metrics do not change state"
    assert result.campaign.cost_per_lead == 25.0

    result = lifecycle.submit_owner_metrics(result.campaign, 2, 1, now=MONDAY)
    assert result.success
    assert result.campaign.cost_per_driver_registered == 50.0

    result = lifecycle.archive(result.campaign, now=MONDAY)
    assert result.success, result.message
    assert result.campaign.state == CampaignState.ARCHIVED
    assert result.event.to_state == CampaignState.ARCHIVED
    assert result.record.id == "007-43"
    assert result.record.metrics_status == METRICS_COMPLETE
    assert result.record.description == "Campaña de bienvenida para motociclistas"
    assert result.message.endswith("en la semana 43")
    print("✅ PASS: Full lifecycle")


def test_trafficker_metrics_need_active():
    """Pending campaign refuses trafficker metrics and stays as it was."""
    print("\n=== TEST 2: Trafficker metrics on Pendiente ===")

    pending = _campaign()
    result = lifecycle.submit_trafficker_metrics(pending, 1000, 80, 4, 100.0, now=MONDAY)

    assert not result.success
    assert result.message == 'La campaña debe estar en estado "Activa" para subir métricas'
    assert result.campaign is None and result.event is None
    assert pending.leads is None and pending.state == CampaignState.PENDING
    print("✅ PASS: Refused, campaign untouched")


def test_owner_metrics_and_driver_costs():
    """Driver costs divide the trafficker cost; zero drivers gives None."""
    print("\n=== TEST 3: Owner metrics ===")

    active = _campaign(CampaignState.ACTIVE)
    refused = lifecycle.submit_owner_metrics(active, 10, 0, now=MONDAY)
    assert not refused.success
    assert refused.message == "Debe subir primero las métricas del trafficker"

    with_cost = lifecycle.submit_trafficker_metrics(active, 3000, 200, 0, 500.0, now=MONDAY).campaign
    assert with_cost.cost_per_lead is None, "Zero leads: cost per lead not computable"

    result = lifecycle.submit_owner_metrics(with_cost, 10, 0, now=MONDAY)
    assert result.success
    assert result.campaign.cost_per_driver_registered == 50.0
    assert result.campaign.cost_per_driver_first_trip is None

    # A later trafficker resubmission recomputes driver costs against the new cost
    again = lifecycle.submit_trafficker_metrics(result.campaign, 3000, 200, 5, 1000.0, now=MONDAY)
    assert again.campaign.cost_per_driver_registered == 100.0
    assert again.campaign.cost_per_lead == 200.0
    print("✅ PASS: Owner metrics and driver costs")


def test_archive_requires_both_metric_sets():
    print("\n=== TEST 4: Archive completeness guard ===")

    trafficker_only = _campaign(
        CampaignState.ACTIVE, reach=1000, clicks=80, leads=4, weekly_cost=100.0,
    )
    result = lifecycle.archive(trafficker_only, now=MONDAY)
    assert not result.success
    assert result.message == lifecycle.MSG_ARCHIVE_INCOMPLETE
    assert result.record is None

    # Complete metrics but not Active: the edge itself is refused
    pending_complete = replace(_active_with_metrics(), state=CampaignState.PENDING)
    result = lifecycle.archive(pending_complete, now=MONDAY)
    assert not result.success
    assert result.message == "Transición no permitida: Pendiente → Archivada"

    assert lifecycle.archive(_active_with_metrics(), now=MONDAY).success
    print("✅ PASS: Archive guard")


def test_refused_edges():
    """Skipping a step or going backwards by hand is refused."""
    print("\n=== TEST 5: Refused edges ===")

    result = lifecycle.activate(_campaign(), now=MONDAY)
    assert not result.success
    assert result.message == "Transición no permitida: Pendiente → Activa"

    result = lifecycle.reactivate(_campaign(CampaignState.ACTIVE), now=MONDAY)
    assert not result.success

    # sync may step back, a user operation may not
    assert not lifecycle.is_allowed(CampaignState.ACTIVE, CampaignState.PENDING, "activate")
    assert lifecycle.is_allowed(CampaignState.ACTIVE, CampaignState.PENDING, "sync")

    archived = _campaign(CampaignState.ARCHIVED)
    result = lifecycle.attach_creative(archived, now=MONDAY)
    assert not result.success, "Archived campaigns take no creatives"

    active = _campaign(CampaignState.ACTIVE)
    result = lifecycle.attach_creative(active, now=MONDAY)
    assert result.success and result.event is None
    assert result.campaign.state == CampaignState.ACTIVE
    print("✅ PASS: Refused edges")


def test_reactivate_then_archive_next_week():
    """A second archive in a later week gets its own record key."""
    print("\n=== TEST 6: Reactivate and re-archive ===")

    first = lifecycle.archive(_active_with_metrics(), now=MONDAY)
    back = lifecycle.reactivate(first.campaign, now=NEXT_WEEK)
    assert back.success and back.campaign.state == CampaignState.ACTIVE
    assert back.event.trigger == "reactivate"

    second = lifecycle.archive(back.campaign, now=NEXT_WEEK)
    assert second.success
    assert first.record.key == ("007", 43)
    assert second.record.key == ("007", 44)
    print("✅ PASS: Two weekly snapshots")


def main():
    tests = [
        test_happy_path,
        test_trafficker_metrics_need_active,
        test_owner_metrics_and_driver_costs,
        test_archive_requires_both_metric_sets,
        test_refused_edges,
        test_reactivate_then_archive_next_week,
    ]

    all_passed = True
    for test in tests:
        try:
            test()
        except AssertionError as e:
            print(f"❌ FAIL: {test.__name__}: {e}")
            all_passed = False

    print("\n" + "=" * 60)
    print("✅ ALL TESTS PASSED" if all_passed else "❌ SOME TESTS FAILED")
    print("=" * 60)
    return 0 if all_passed else 1


if __name__ == "__main__":
    sys.exit(main())
