"""
Polling window decisions for the result poller.

Before calling the schedule API at all, the poller checks whether the next
known game has plausibly finished. Nothing here touches the network.
"""

from datetime import datetime, timedelta
from enum import Enum
from typing import Optional
import logging

import pytz

from ..config import settings
from ..domain import PollState

logger = logging.getLogger(__name__)


class WindowDecision(str, Enum):
    WAITING_FOR_START = "waiting_for_start"
    RECENT_START = "recent_start"
    POLL = "poll"


class PollingWindow:
    """Decides whether a poll cycle should reach out to the schedule API."""

    def __init__(self, recent_start_window_minutes: Optional[int] = None):
        if recent_start_window_minutes is None:
            recent_start_window_minutes = settings.recent_start_window_minutes
        self.recent_start_window = timedelta(minutes=recent_start_window_minutes)

    def decide(self, state: PollState, now: Optional[datetime] = None) -> WindowDecision:
        """
        Decide what to do this cycle.

        Args:
            state: Persisted poll state
            now: Current instant (defaults to UTC now)

        Returns:
            WAITING_FOR_START if the next game hasn't started, RECENT_START if
            it started less than the window ago, POLL otherwise
        """
        start = state.next_game_start_utc
        if start is None:
            return WindowDecision.POLL

        now = _as_utc(now or datetime.now(pytz.UTC))
        start = _as_utc(start)

        if now < start:
            logger.debug(f"Next game starts at {start.isoformat()}, waiting")
            return WindowDecision.WAITING_FOR_START
        if now < start + self.recent_start_window:
            logger.debug(f"Game started at {start.isoformat()}, presumed still in progress")
            return WindowDecision.RECENT_START
        return WindowDecision.POLL

    def earliest_poll_time(self, state: PollState) -> Optional[datetime]:
        """First instant at which decide() will return POLL, or None if it already would."""
        if state.next_game_start_utc is None:
            return None
        return _as_utc(state.next_game_start_utc) + self.recent_start_window


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return pytz.UTC.localize(value)
    return value.astimezone(pytz.UTC)
