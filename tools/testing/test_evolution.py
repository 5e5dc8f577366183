"""
Test weekly evolution rollups and week-selection summaries.

Reference time: Wednesday 2026-10-21 (ISO week 43). A five-week window
covers weeks 39..43.

Tests:
1. Window shape and labels
2. Additive mode sums history and ledger for the same week
3. Ledger-priority mode uses the ledger row alone
4. Live counters fill the current week only when it is otherwise empty
5. Dashboard evolution across campaigns
6. Week-over-week trend
7. Available weeks and summaries

Run: python tools/testing/test_evolution.py
"""

import sys
from datetime import datetime
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from siscoca_core.catalog import CampaignState, Country, Platform, Segment, Vertical
from siscoca_core.models import ArchiveRecord, Campaign, WeeklyLedgerEntry
from siscoca_ledger.evolution import (
    MODE_LEDGER_PRIORITY,
    available_weeks,
    dashboard_evolution,
    summarize_weeks,
    week_trend,
    weekly_evolution,
)

NOW = datetime(2026, 10, 21, 12, 0)


def _campaign(**metrics):
    return Campaign(
        id="001",
        name="PE-MOTOPER-FB-ADQ-001-AC-BonoBienvenida",
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
        created_at=datetime(2026, 9, 1),
        updated_at=NOW,
        iso_week=36,
        state=CampaignState.ACTIVE,
        **metrics,
    )


def _record(campaign_id, archived_at, leads, cost, drivers=0):
    return ArchiveRecord(
        id=f"{campaign_id}-{archived_at.isocalendar()[1]}",
        campaign_id=campaign_id,
        name=f"Campaña {campaign_id}",
        iso_week=archived_at.isocalendar()[1],
        archived_at=archived_at,
        country=Country.PE,
        vertical=Vertical.MOTOPER,
        platform=Platform.FB,
        segment=Segment.ACQUISITION,
        objective="Captar nuevos conductores",
        benefit="Bono S/100",
        description="Registro histórico",
        owner_name="Ariana de la Cruz",
        leads=leads,
        weekly_cost=cost,
        drivers_registered=drivers,
    )


def _entry(campaign_id, week, leads=None, cost=None, registered=None):
    return WeeklyLedgerEntry(
        id=f"{campaign_id}-{week}-1",
        campaign_id=campaign_id,
        iso_week=week,
        week_date=NOW,
        registered_at=NOW,
        registered_by="Usuario",
        leads=leads,
        weekly_cost=cost,
        drivers_registered=registered,
    )


def test_window_shape():
    print("\n=== TEST 1: Window ===")

    buckets = weekly_evolution(_campaign(), [], [], weeks=5, now=NOW)

    assert [b.iso_week for b in buckets] == [39, 40, 41, 42, 43]
    assert buckets[-1].label == "19/10"
    assert buckets[0].start == datetime(2026, 9, 21)
    print("✅ PASS: Weeks 39..43, oldest first")


def test_additive_mode():
    print("\n=== TEST 2: Additive mode ===")

    records = [_record("001", datetime(2026, 10, 7, 10), leads=10, cost=100.0)]
    entries = [_entry("001", 41, leads=5, cost=50.0)]

    week41 = weekly_evolution(_campaign(), records, entries, weeks=5, now=NOW)[2]

    assert week41.iso_week == 41
    assert week41.leads == 15 and week41.weekly_cost == 150.0
    assert week41.cost_per_lead == 10.0
    assert week41.sources == ["historico", "ledger"]
    print("✅ PASS: History and ledger summed")


def test_ledger_priority_mode():
    print("\n=== TEST 3: Ledger-priority mode ===")

    records = [
        _record("001", datetime(2026, 10, 7, 10), leads=10, cost=100.0),
        _record("001", datetime(2026, 10, 14, 10), leads=3, cost=30.0),
    ]
    entries = [_entry("001", 41, leads=5, cost=50.0)]

    buckets = weekly_evolution(_campaign(), records, entries, weeks=5, now=NOW, mode=MODE_LEDGER_PRIORITY)

    assert buckets[2].leads == 5 and buckets[2].weekly_cost == 50.0
    assert buckets[2].sources == ["ledger"]
    assert buckets[3].leads == 3, "History still used where the ledger has nothing"

    try:
        weekly_evolution(_campaign(), records, entries, now=NOW, mode="sumar")
        raise AssertionError("Unknown mode should raise ValueError")
    except ValueError:
        pass
    print("✅ PASS: Ledger row wins")


def test_live_counters_in_current_week():
    print("\n=== TEST 4: Live counters ===")

    campaign = _campaign(leads=7, weekly_cost=70.0, drivers_registered=2)

    buckets = weekly_evolution(campaign, [], [], weeks=5, now=NOW)
    assert buckets[-1].leads == 7 and buckets[-1].sources == ["actual"]
    assert buckets[-1].cost_per_driver_registered == 35.0
    assert all(b.leads == 0 for b in buckets[:-1])

    buckets = weekly_evolution(campaign, [], [_entry("001", 43, leads=2, cost=20.0)], weeks=5, now=NOW)
    assert buckets[-1].leads == 2, "Ledger row replaces live counters"

    other = [_record("999", datetime(2026, 10, 20), leads=50, cost=500.0)]
    buckets = weekly_evolution(campaign, other, [], weeks=5, now=NOW)
    assert buckets[-1].leads == 7, "Other campaigns' history is ignored"
    print("✅ PASS: Live counters only fill an empty current week")


def test_dashboard_evolution():
    print("\n=== TEST 5: Dashboard evolution ===")

    records = [
        _record("001", datetime(2026, 10, 14, 9), leads=10, cost=100.0, drivers=2),
        _record("002", datetime(2026, 10, 16, 18), leads=4, cost=60.0, drivers=1),
        _record("003", datetime(2026, 9, 1), leads=99, cost=999.0),
    ]

    weeks = dashboard_evolution(records, weeks=4, now=NOW)

    assert [w.iso_week for w in weeks] == [40, 41, 42, 43]
    assert weeks[2].campaigns == 2
    assert weeks[2].leads == 14 and weeks[2].weekly_cost == 160.0 and weeks[2].drivers == 3
    assert sum(w.campaigns for w in weeks) == 2, "Records outside the window are ignored"
    print("✅ PASS: Dashboard sums across campaigns")


def test_week_trend():
    print("\n=== TEST 6: Trend ===")

    up = week_trend(120, 100)
    assert up.direction == "up" and abs(up.percentage - 20.0) < 1e-9
    down = week_trend(80, 100)
    assert down.direction == "down" and abs(down.percentage - 20.0) < 1e-9
    flat = week_trend(5, 0)
    assert flat.direction == "neutral" and flat.percentage == 0.0
    print("✅ PASS: Trend")


def test_available_weeks_and_summary():
    print("\n=== TEST 7: Week selection ===")

    entries = [
        _entry("001", 41, leads=5, cost=50.0),
        _entry("001", 40, leads=1, cost=10.0),
        _entry("001", 42, leads=0, cost=30.0),
        _entry("002", 41, leads=100, cost=1000.0),
    ]
    assert available_weeks([e for e in entries if e.campaign_id == "001"], today=NOW) == [43, 42, 41, 40]

    campaign = _campaign(leads=7, weekly_cost=70.0)
    summary = summarize_weeks(campaign, entries, [41, 42, 43], today=NOW)

    assert [r.iso_week for r in summary.rows] == [43, 42, 41], "Newest first"
    assert summary.rows[0].registered_by == "Actual"
    assert summary.leads == 12 and summary.weekly_cost == 150.0
    assert summary.cost_per_lead == 12.5
    assert summary.cost_per_driver_registered is None

    only_42 = summarize_weeks(campaign, entries, [42], today=NOW)
    assert only_42.cost_per_lead is None, "Zero leads: not computable"

    assert summarize_weeks(campaign, entries, [], today=NOW) is None
    print("✅ PASS: Available weeks and summaries")


def main():
    tests = [
        test_window_shape,
        test_additive_mode,
        test_ledger_priority_mode,
        test_live_counters_in_current_week,
        test_dashboard_evolution,
        test_week_trend,
        test_available_weeks_and_summary,
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
