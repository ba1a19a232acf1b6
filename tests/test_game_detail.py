import pytest

from conftest import (
    TWO_GOAL_LANDING,
    boxscore_payload,
    goal,
    landing_payload,
    scoring_period,
)

GAME_ID = 2024020500
LANDING = f"/gamecenter/{GAME_ID}/landing"
BOXSCORE = f"/gamecenter/{GAME_ID}/boxscore"

PENALTIES = [{
    "periodDescriptor": {"number": 1, "periodType": "REG"},
    "penalties": [{
        "timeInPeriod": "08:01",
        "type": "MIN",
        "duration": 2,
        "committedByPlayer": "B. Marchand",
        "teamAbbrev": {"default": "BOS"},
        "descKey": "tripping",
    }],
}]

STARS = [
    {"star": 2, "firstName": {"default": "Joseph"}, "lastName": {"default": "Woll"},
     "teamAbbrev": "TOR", "position": "G", "savePctg": 0.926},
    {"star": 1, "firstName": {"default": "Auston"}, "lastName": {"default": "Matthews"},
     "teamAbbrev": "TOR", "position": "C", "goals": 2, "assists": 0},
]

PLAYERS = {
    "homeTeam": {
        "forwards": [{"name": {"default": "A. Matthews"}, "position": "C", "goals": 2, "assists": 0,
                      "points": 2, "plusMinus": 1, "hits": 3, "sog": 6, "toi": "20:15"}],
        "defense": [],
        "goalies": [{"name": {"default": "J. Woll"}, "position": "G", "savePctg": 0.926, "toi": "60:00"}],
    },
    "awayTeam": {"forwards": [], "defense": [], "goalies": []},
}


def test_fetch_game_detail_combines_both_endpoints(nhl_api, detail_collector):
    nhl_api.add(LANDING, TWO_GOAL_LANDING)
    nhl_api.add(BOXSCORE, boxscore_payload(penalties=PENALTIES, stars=STARS, players=PLAYERS))

    detail = detail_collector.fetch_game_detail(GAME_ID)

    assert detail.scoring_available and detail.boxscore_available
    assert not detail.degraded
    assert [p.label for p in detail.scoring] == ["P1", "P2"]
    period, first_goal = detail.goals[0]
    assert first_goal.scorer == "Auston Matthews"
    assert first_goal.assists == ("Mitch Marner", "William Nylander")
    assert first_goal.modifiers == ["power play"]
    assert detail.home_stats.shots_on_goal == 33
    assert detail.away_stats.power_play == "0/2"
    assert [s.star for s in detail.top_performers] == [1, 2]
    assert detail.penalties[0].penalties[0].committed_by == "B. Marchand"
    assert detail.players_for("TOR")[0].name == "A. Matthews"
    assert detail.players_for("TOR")[1].is_goalie
    assert nhl_api.count("/landing") == 1 and nhl_api.count("/boxscore") == 1


def test_boxscore_failure_degrades_to_empty(nhl_api, detail_collector):
    nhl_api.add(LANDING, TWO_GOAL_LANDING)
    nhl_api.add(BOXSCORE, {"error": "boom"}, status=500)

    detail = detail_collector.fetch_game_detail(GAME_ID)

    assert detail.scoring_available
    assert not detail.boxscore_available
    assert detail.degraded
    assert len(detail.goals) == 2
    assert detail.penalties == ()
    assert detail.top_performers == ()
    assert detail.home_stats is None and detail.away_stats is None


def test_landing_failure_degrades_to_empty_scoring(nhl_api, detail_collector):
    nhl_api.add(LANDING, None)  # invalid JSON
    nhl_api.add(BOXSCORE, boxscore_payload())

    detail = detail_collector.fetch_game_detail(GAME_ID)

    assert not detail.scoring_available
    assert detail.scoring == ()
    assert detail.home_stats is not None


def test_zero_shots_is_not_unavailable(nhl_api, detail_collector):
    box = boxscore_payload()
    box["homeTeam"]["sog"] = 0
    nhl_api.add(LANDING, landing_payload())
    nhl_api.add(BOXSCORE, box)

    detail = detail_collector.fetch_game_detail(GAME_ID)

    assert detail.boxscore_available
    assert detail.home_stats.shots_on_goal == 0


def test_overtime_and_shootout_periods(nhl_api, detail_collector):
    nhl_api.add(LANDING, landing_payload(
        scoring_period(1, []),
        scoring_period(4, [goal("Mitch", "Marner", "TOR", "02:00", modifier="empty-net")], period_type="OT"),
        scoring_period(5, [], period_type="SO"),
    ))
    nhl_api.add(BOXSCORE, boxscore_payload())

    detail = detail_collector.fetch_game_detail(GAME_ID)

    assert [p.label for p in detail.scoring] == ["P1", "OT", "SO"]
    assert detail.goals[0][1].modifiers == ["empty net"]


@pytest.mark.parametrize("landing", [
    {"summary": {"scoring": [{"periodDescriptor": {}, "goals": ["bad"]}]}},
    {"summary": ["not", "an", "object"]},
    {"summary": {"scoring": {"periodDescriptor": {}}}},
])
def test_malformed_landing_degrades_to_empty_scoring(nhl_api, detail_collector, landing):
    nhl_api.add(LANDING, landing)
    nhl_api.add(BOXSCORE, boxscore_payload(stars=STARS))

    detail = detail_collector.fetch_game_detail(GAME_ID)

    assert not detail.scoring_available
    assert detail.scoring == ()
    assert detail.boxscore_available
    assert [s.star for s in detail.top_performers] == [1, 2]


def test_malformed_boxscore_degrades_to_empty_stats(nhl_api, detail_collector):
    stars = [dict(STARS[0], savePctg="n/a")]
    nhl_api.add(LANDING, TWO_GOAL_LANDING)
    nhl_api.add(BOXSCORE, boxscore_payload(stars=stars))

    detail = detail_collector.fetch_game_detail(GAME_ID)

    assert detail.scoring_available
    assert len(detail.goals) == 2
    assert not detail.boxscore_available
    assert detail.top_performers == ()
    assert detail.home_stats is None
