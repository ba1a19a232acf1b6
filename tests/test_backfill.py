import pytest

from leafs_tracker.domain import StoredResult
from leafs_tracker.recap import RecapGenerator
from leafs_tracker.services import BackfillService

from conftest import TWO_GOAL_LANDING, boxscore_payload, schedule_game, schedule_payload

SCHEDULE_PATH = "/club-schedule-season/TOR/now"

GAMES = [
    schedule_game(2024020400, "2024-01-02", "OFF", "TOR", "MTL", 1, 3),
    schedule_game(2024020450, "2024-01-09", "FINAL", "OTT", "TOR", 2, 5),
    schedule_game(2024020500, "2024-01-15", "OFF", "TOR", "BOS", 4, 2),
    schedule_game(2024020510, "2024-01-17", "FUT", "MTL", "TOR", start="2024-01-18T00:00:00Z"),
]


@pytest.fixture
def season_api(nhl_api):
    nhl_api.add(SCHEDULE_PATH, schedule_payload(*GAMES))
    for game in GAMES[:3]:
        nhl_api.add(f"/gamecenter/{game['id']}/landing", TWO_GOAL_LANDING)
        nhl_api.add(f"/gamecenter/{game['id']}/boxscore", boxscore_payload())
    return nhl_api


@pytest.fixture
def service(settings, schedule_collector, detail_collector, recap_generator, result_store):
    return BackfillService(
        schedule_collector=schedule_collector,
        detail_collector=detail_collector,
        recap_generator=recap_generator,
        result_store=result_store,
        config=settings,
    )


def test_backfills_every_completed_game_newest_first(season_api, service, result_store, gemini):
    report = service.run()

    assert report.ok
    assert report.stored == ["2024020500", "2024020450", "2024020400"]
    assert gemini.call_count == 3
    assert [r.game_id for r in result_store.list_all()] == ["2024020500", "2024020450", "2024020400"]
    assert result_store.get("2024020400").lost
    assert not result_store.get("2024020450").is_home_game


def test_existing_results_are_skipped(season_api, service, result_store, gemini):
    result_store.put("2024020500", StoredResult(
        "2024020500", "2024-01-15", "BOS", True, False, 4, 2, False, False, "kept"))

    report = service.run()

    assert report.skipped_existing == ["2024020500"]
    assert report.stored == ["2024020450", "2024020400"]
    assert gemini.call_count == 2
    assert result_store.get("2024020500").recap_text == "kept"


def test_limit_leaves_the_rest_pending(season_api, service):
    report = service.run(limit=1)

    assert report.stored == ["2024020500"]
    assert report.pending == ["2024020450", "2024020400"]


def test_dry_run_generates_nothing(season_api, service, result_store, gemini):
    report = service.run(dry_run=True)

    assert report.pending == ["2024020500", "2024020450", "2024020400"]
    assert gemini.call_count == 0
    assert season_api.count("/gamecenter/") == 0
    assert result_store.list_ids() == []


def test_disabled_recap_aborts(season_api, settings, tracker, schedule_collector, detail_collector, result_store):
    service = BackfillService(
        schedule_collector=schedule_collector,
        detail_collector=detail_collector,
        recap_generator=RecapGenerator(settings, tracker=tracker),
        result_store=result_store,
        config=settings,
    )

    report = service.run()

    assert not report.ok
    assert "disabled" in report.error
    assert season_api.calls == []


def test_schedule_failure_is_reported(nhl_api, service):
    nhl_api.add(SCHEDULE_PATH, None, status=503)

    report = service.run()

    assert not report.ok
    assert report.error.startswith("schedule unavailable")
    assert report.stored == []
