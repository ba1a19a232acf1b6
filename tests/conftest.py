"""
Shared fixtures: in-memory database, fake NHL API, fake Gemini client.
"""

from datetime import datetime
from types import SimpleNamespace

import pytest
import pytz
import requests
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from leafs_tracker.collectors import GameDetailCollector, ScheduleCollector
from leafs_tracker.config import Settings
from leafs_tracker.database import create_tables
from leafs_tracker.recap import RecapGenerator
from leafs_tracker.services import RebuildNotifier, ResultPoller
from leafs_tracker.storage import PollStateStore, ResultStore
from leafs_tracker.utils import APITracker

NOW = datetime(2024, 1, 16, 12, 0, tzinfo=pytz.UTC)


class FakeResponse:
    def __init__(self, status_code=200, payload=None, text=None):
        self.status_code = status_code
        self._payload = payload
        self.text = text

    @property
    def ok(self):
        return 200 <= self.status_code < 400

    def json(self):
        if self._payload is None:
            raise ValueError("No JSON object could be decoded")
        return self._payload


class FakeNHLApi:
    """Routes requests.get calls by URL suffix and records every call."""

    def __init__(self):
        self.routes = {}
        self.calls = []

    def add(self, path, payload=None, status=200, exc=None):
        self.routes[path] = (payload, status, exc)

    def get(self, url, timeout=None, headers=None):
        self.calls.append(url)
        for path, (payload, status, exc) in self.routes.items():
            if url.endswith(path):
                if exc is not None:
                    raise exc
                return FakeResponse(status, payload)
        return FakeResponse(404, {"error": "not found"})

    def count(self, fragment):
        return sum(1 for url in self.calls if fragment in url)


class FakeGeminiModels:
    def __init__(self, text="The Leafs did a thing.", exc=None):
        self.text = text
        self.exc = exc
        self.prompts = []

    def generate_content(self, model, contents):
        self.prompts.append(contents)
        if self.exc is not None:
            raise self.exc
        return SimpleNamespace(text=self.text)


class FakeGeminiClient:
    def __init__(self, text="The Leafs did a thing.", exc=None):
        self.models = FakeGeminiModels(text=text, exc=exc)

    @property
    def call_count(self):
        return len(self.models.prompts)


# NHL payload builders

def team(abbrev, score=None, place=None):
    data = {"abbrev": abbrev, "placeName": {"default": place or abbrev}}
    if score is not None:
        data["score"] = score
    return data


def schedule_game(game_id, game_date, state, home, away, home_score=None, away_score=None,
                  start="2024-01-15T00:00:00Z", home_place=None, away_place=None):
    return {
        "id": game_id,
        "gameDate": game_date,
        "gameType": 2,
        "gameState": state,
        "startTimeUTC": start,
        "homeTeam": team(home, home_score, home_place),
        "awayTeam": team(away, away_score, away_place),
    }


def schedule_payload(*games):
    return {"games": list(games)}


def goal(first, last, team_abbrev, time, assists=(), strength="ev", modifier="none", home=0, away=0):
    return {
        "firstName": {"default": first},
        "lastName": {"default": last},
        "teamAbbrev": {"default": team_abbrev},
        "timeInPeriod": time,
        "shotType": "wrist",
        "strength": strength,
        "goalModifier": modifier,
        "assists": [
            {"firstName": {"default": f}, "lastName": {"default": l}, "sweaterNumber": 0}
            for f, l in assists
        ],
        "homeScore": home,
        "awayScore": away,
    }


def scoring_period(number, goals, period_type="REG"):
    return {"periodDescriptor": {"number": number, "periodType": period_type}, "goals": list(goals)}


def landing_payload(*periods):
    return {"summary": {"scoring": list(periods)}}


def boxscore_payload(home="TOR", away="BOS", penalties=None, stars=None, players=None):
    return {
        "homeTeam": {"abbrev": home, "score": 4, "sog": 33, "pim": 6, "powerPlay": "1/3"},
        "awayTeam": {"abbrev": away, "score": 2, "sog": 27, "pim": 8, "powerPlay": "0/2"},
        "summary": {
            "threeStars": stars or [],
            "penalties": penalties or [],
        },
        "playerByGameStats": players or {},
    }


TWO_GOAL_LANDING = landing_payload(
    scoring_period(1, [
        goal("Auston", "Matthews", "TOR", "05:12", assists=[("Mitch", "Marner"), ("William", "Nylander")],
             strength="pp", home=1, away=0),
    ]),
    scoring_period(2, [
        goal("David", "Pastrnak", "BOS", "11:40", home=1, away=1),
    ]),
)


@pytest.fixture
def settings():
    return Settings(
        _env_file=None,
        database_url="sqlite://",
        team_code="TOR",
        team_name="Leafs",
        gemini_api_key="",
        rebuild_hook_url="",
        recent_start_window_minutes=90,
    )


@pytest.fixture
def session_factory():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    create_tables(bind=engine)
    yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    engine.dispose()


@pytest.fixture
def result_store(session_factory):
    return ResultStore(session_factory)


@pytest.fixture
def poll_state_store(session_factory):
    return PollStateStore(session_factory)


@pytest.fixture
def tracker():
    # No rate limits in tests
    return APITracker(limits={})


@pytest.fixture
def nhl_api(monkeypatch):
    api = FakeNHLApi()
    monkeypatch.setattr(requests, "get", api.get)
    return api


@pytest.fixture
def gemini():
    return FakeGeminiClient(text="Classic Leafs. They won, don't get excited.")


@pytest.fixture
def schedule_collector(settings, tracker):
    return ScheduleCollector(team_code=settings.team_code, base_url="https://nhl.test/v1", tracker=tracker)


@pytest.fixture
def detail_collector(tracker):
    return GameDetailCollector(base_url="https://nhl.test/v1", tracker=tracker)


@pytest.fixture
def recap_generator(settings, gemini, tracker):
    return RecapGenerator(settings, client=gemini, tracker=tracker)


@pytest.fixture
def make_poller(settings, schedule_collector, detail_collector, recap_generator, result_store,
                poll_state_store, tracker):
    def _make(**overrides):
        kwargs = dict(
            schedule_collector=schedule_collector,
            detail_collector=detail_collector,
            recap_generator=recap_generator,
            result_store=result_store,
            poll_state_store=poll_state_store,
            notifier=RebuildNotifier(settings, tracker=tracker),
            config=settings,
        )
        kwargs.update(overrides)
        return ResultPoller(**kwargs)
    return _make
