"""
Test fixed-interval chat/inbox polling.

Uses a fake clock so nothing actually sleeps.

Run: python tools/testing/test_polling.py
"""

import os
import sys
from datetime import datetime
from pathlib import Path
from unittest.mock import Mock, patch

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from siscoca_core.settings import Settings
from siscoca_tasks.polling import (
    ChatMessage,
    Poller,
    PollScheduler,
    build_scheduler,
    chat_poller,
    inbox_poller,
    unread_by_campaign,
    unread_count,
)


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now

    def sleep(self, seconds):
        self.now += seconds


def test_failed_fetch_is_swallowed():
    print("\n=== TEST 1: Failing fetch ===")

    fetch = Mock(side_effect=[["m1"], RuntimeError("timeout"), ["m2"]])
    received = []
    poller = Poller("chat", fetch, 5.0, on_result=received.append)

    assert poller.tick(0.0) is True
    assert poller.tick(5.0) is False, "Failure reported, not raised"
    assert poller.last_result == ["m1"], "Last good result kept"
    assert poller.next_due == 10.0, "Schedule unchanged by the failure"
    assert poller.tick(10.0) is True
    assert received == [["m1"], ["m2"]]
    assert poller.ticks == 3 and poller.failures == 1

    try:
        Poller("bad", fetch, 0)
        raise AssertionError("Zero interval should raise ValueError")
    except ValueError:
        pass
    print("✅ PASS: Failures swallowed and counted")


def test_run_pending_intervals():
    print("\n=== TEST 2: Independent intervals ===")

    chat = chat_poller(Mock(return_value=[]))
    inbox = inbox_poller(Mock(return_value=[]))
    scheduler = PollScheduler([chat, inbox], clock=FakeClock())

    assert scheduler.run_pending(0.0) == ["chat", "inbox"]
    assert scheduler.run_pending(4.9) == []
    assert scheduler.run_pending(5.0) == ["chat"]
    assert scheduler.run_pending(30.0) == ["chat", "inbox"]
    print("✅ PASS: Chat every 5 s, inbox every 30 s")


def test_run_with_fake_clock():
    print("\n=== TEST 3: Scheduler loop ===")

    clock = FakeClock()
    chat_fetch = Mock(return_value=[])
    inbox_fetch = Mock(return_value=[])
    scheduler = PollScheduler(
        [chat_poller(chat_fetch), inbox_poller(inbox_fetch)],
        clock=clock,
        sleep=clock.sleep,
    )

    scheduler.run(max_cycles=3)

    assert chat_fetch.call_count == 3
    assert inbox_fetch.call_count == 1
    assert clock.now == 15.0
    print("✅ PASS: Loop sleeps until the next due poller")


def test_unread_counts():
    print("\n=== TEST 4: Unread counts ===")

    at = datetime(2026, 10, 19, 9, 0)
    messages = [
        ChatMessage("1", "001", "ariana", "Creativo listo", at),
        ChatMessage("2", "001", "rayedel", "Métricas subidas", at),
        ChatMessage("3", "002", "rayedel", "Revisar costo", at, urgent=True),
        ChatMessage("4", "002", "diego", "Ok", at, read=True),
    ]

    assert unread_count(messages) == 3
    assert unread_count(messages, username="rayedel") == 1, "Own messages do not count"
    assert unread_by_campaign(messages, username="ariana") == {"001": 1, "002": 1}
    print("✅ PASS: Unread counts")


def test_intervals_from_settings():
    print("\n=== TEST 5: Intervals from settings ===")

    clock = FakeClock()
    chat_fetch = Mock(return_value=[])
    inbox_fetch = Mock(return_value=[])
    settings = Settings(
        db_path=":memory:",
        config_path="",
        evolution_mode="additive",
        chat_poll_seconds=2.0,
        inbox_poll_seconds=6.0,
    )
    scheduler = build_scheduler(chat_fetch, inbox_fetch, settings, clock=clock, sleep=clock.sleep)

    scheduler.run(max_cycles=4)

    assert chat_fetch.call_count == 4
    assert inbox_fetch.call_count == 2
    assert clock.now == 8.0

    with patch.dict(os.environ, {"SISCOCA_CHAT_POLL_SECONDS": "1", "SISCOCA_INBOX_POLL_SECONDS": "12"}):
        from_env = build_scheduler(chat_fetch, inbox_fetch)
    assert [(p.name, p.interval) for p in from_env.pollers] == [("chat", 1.0), ("inbox", 12.0)]
    print("✅ PASS: Poll intervals come from settings")


def main():
    tests = [
        test_failed_fetch_is_swallowed,
        test_run_pending_intervals,
        test_run_with_fake_clock,
        test_unread_counts,
        test_intervals_from_settings,
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
