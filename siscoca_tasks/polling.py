"""
Fixed-interval polling for chat (~5 s) and inbox (~30 s).

Each Poller is independent: no backoff, no coordination with the others.
A failing fetch is logged and swallowed; the poller keeps its schedule and
keeps the last good result.
"""
from __future__ import annotations

import time
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Iterable, List, Optional

from siscoca_core.logging_config import setup_logging
from siscoca_core.settings import Settings, get_settings

logger = setup_logging(__name__)

CHAT_INTERVAL_SECONDS = 5.0
INBOX_INTERVAL_SECONDS = 30.0


@dataclass(frozen=True)
class ChatMessage:
    id: str
    campaign_id: str
    sender: str
    text: str
    created_at: datetime
    sender_role: Optional[str] = None
    read: bool = False
    urgent: bool = False


def unread_count(messages: Iterable[ChatMessage], username: Optional[str] = None) -> int:
    """Unread messages, not counting the user's own."""
    return sum(1 for m in messages if not m.read and m.sender != username)


def unread_by_campaign(messages: Iterable[ChatMessage], username: Optional[str] = None) -> dict:
    counts: dict = {}
    for m in messages:
        if not m.read and m.sender != username:
            counts[m.campaign_id] = counts.get(m.campaign_id, 0) + 1
    return counts


class Poller:
    """
    Calls ``fetch`` every ``interval`` seconds and hands the result to ``on_result``.

    Args:
        name: Label for logs (chat, inbox)
        fetch: Zero-argument callable hitting the backend
        interval: Seconds between ticks
        on_result: Optional callback for each successful fetch
    """

    def __init__(
        self,
        name: str,
        fetch: Callable[[], Any],
        interval: float,
        on_result: Optional[Callable[[Any], None]] = None,
    ):
        if interval <= 0:
            raise ValueError("interval must be > 0")
        self.name = name
        self.fetch = fetch
        self.interval = interval
        self.on_result = on_result
        self.next_due = 0.0
        self.last_result: Any = None
        self.ticks = 0
        self.failures = 0

    def due(self, now: float) -> bool:
        return now >= self.next_due

    def tick(self, now: float) -> bool:
        """Run one fetch; returns False when it failed."""
        self.ticks += 1
        self.next_due = now + self.interval
        try:
            result = self.fetch()
            if self.on_result is not None:
                self.on_result(result)
        except Exception as e:
            self.failures += 1
            logger.warning(f"[{self.name}] poll failed: {e}")
            return False
        self.last_result = result
        return True


class PollScheduler:
    """Runs several pollers on one clock, each on its own interval."""

    def __init__(
        self,
        pollers: List[Poller],
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.pollers = pollers
        self.clock = clock
        self.sleep = sleep
        self._stopped = False

    def stop(self) -> None:
        self._stopped = True

    def run_pending(self, now: Optional[float] = None) -> List[str]:
        """Tick every due poller; returns the names that ticked."""
        now = self.clock() if now is None else now
        ticked = []
        for p in self.pollers:
            if p.due(now):
                p.tick(now)
                ticked.append(p.name)
        return ticked

    def run(self, max_cycles: Optional[int] = None) -> None:
        cycles = 0
        self._stopped = False
        while not self._stopped and (max_cycles is None or cycles < max_cycles):
            self.run_pending()
            cycles += 1
            wait = min(p.next_due for p in self.pollers) - self.clock()
            if wait > 0:
                self.sleep(wait)


def chat_poller(fetch: Callable[[], Any], on_result=None, interval: float = CHAT_INTERVAL_SECONDS) -> Poller:
    return Poller("chat", fetch, interval, on_result)


def inbox_poller(fetch: Callable[[], Any], on_result=None, interval: float = INBOX_INTERVAL_SECONDS) -> Poller:
    return Poller("inbox", fetch, interval, on_result)


def build_scheduler(
    chat_fetch: Callable[[], Any],
    inbox_fetch: Callable[[], Any],
    settings: Optional[Settings] = None,
    on_chat: Optional[Callable[[Any], None]] = None,
    on_inbox: Optional[Callable[[Any], None]] = None,
    clock: Callable[[], float] = time.monotonic,
    sleep: Callable[[float], None] = time.sleep,
) -> PollScheduler:
    """Chat and inbox pollers on the intervals from SISCOCA_*_POLL_SECONDS."""
    settings = settings or get_settings()
    return PollScheduler(
        [
            chat_poller(chat_fetch, on_chat, settings.chat_poll_seconds),
            inbox_poller(inbox_fetch, on_inbox, settings.inbox_poll_seconds),
        ],
        clock=clock,
        sleep=sleep,
    )
