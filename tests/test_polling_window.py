from datetime import datetime, timedelta

import pytest
import pytz

from leafs_tracker.domain import PollState
from leafs_tracker.utils import PollingWindow, WindowDecision

NOW = datetime(2024, 1, 16, 12, 0, tzinfo=pytz.UTC)


@pytest.mark.parametrize("offset, expected", [
    (timedelta(hours=2), WindowDecision.WAITING_FOR_START),
    (timedelta(seconds=1), WindowDecision.WAITING_FOR_START),
    (timedelta(0), WindowDecision.RECENT_START),
    (timedelta(minutes=-89), WindowDecision.RECENT_START),
    (timedelta(minutes=-90), WindowDecision.POLL),
    (timedelta(days=-1), WindowDecision.POLL),
])
def test_decision_relative_to_next_start(offset, expected):
    window = PollingWindow(recent_start_window_minutes=90)
    state = PollState(next_game_start_utc=NOW + offset)

    assert window.decide(state, NOW) == expected


def test_no_known_start_always_polls():
    assert PollingWindow(90).decide(PollState(), NOW) == WindowDecision.POLL


def test_naive_timestamps_are_treated_as_utc():
    window = PollingWindow(90)
    state = PollState(next_game_start_utc=datetime(2024, 1, 16, 14, 0))

    assert window.decide(state, NOW) == WindowDecision.WAITING_FOR_START


def test_earliest_poll_time():
    window = PollingWindow(90)
    start = NOW + timedelta(hours=1)

    assert window.earliest_poll_time(PollState()) is None
    assert window.earliest_poll_time(PollState(next_game_start_utc=start)) == start + timedelta(minutes=90)
