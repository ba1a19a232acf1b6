from datetime import datetime

import pytest
import pytz
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from leafs_tracker.domain import PollState, StoredResult
from leafs_tracker.exceptions import StoreUnavailable
from leafs_tracker.storage import KeyValueStore, PollStateStore, ResultStore


def make_result(game_id="2024020500", game_date="2024-01-15", lost=False, recap="Recap"):
    return StoredResult(
        game_id=game_id,
        game_date=game_date,
        opponent="BOS",
        is_home_game=True,
        lost=lost,
        tracked_score=4,
        opponent_score=2,
        went_to_overtime=False,
        went_to_shootout=False,
        recap_text=recap,
    )


def test_put_then_get_is_visible_immediately(result_store):
    assert result_store.get("2024020500") is None
    assert not result_store.exists(2024020500)

    assert result_store.put("2024020500", make_result()) is True

    stored = result_store.get(2024020500)
    assert stored == make_result()
    assert result_store.exists("2024020500")


def test_put_never_overwrites(result_store):
    result_store.put("2024020500", make_result(recap="first"))

    assert result_store.put("2024020500", make_result(recap="second")) is False
    assert result_store.get("2024020500").recap_text == "first"


def test_record_uses_camel_case_keys():
    record = make_result().to_record()
    assert set(record) == {
        "gameId", "gameDate", "opponent", "isHomeGame", "lost", "trackedScore",
        "opponentScore", "wentToOvertime", "wentToShootout", "recapText",
    }


def test_list_ids_and_list_all_sorted_by_date_desc(result_store):
    result_store.put("2024020400", make_result("2024020400", "2024-01-02"))
    result_store.put("2024020500", make_result("2024020500", "2024-01-15"))
    result_store.put("2024020450", make_result("2024020450", "2024-01-09", lost=True))

    assert sorted(result_store.list_ids()) == ["2024020400", "2024020450", "2024020500"]
    assert [r.game_id for r in result_store.list_all()] == ["2024020500", "2024020450", "2024020400"]


def test_list_all_empty(result_store):
    assert result_store.list_all() == []
    assert result_store.list_ids() == []


def test_namespaces_are_isolated(session_factory, result_store):
    other = KeyValueStore("poll-state", session_factory)
    other.put("2024020500", "not a result")

    assert result_store.get("2024020500") is None
    assert result_store.list_ids() == []


def test_kv_overwrite_flag(session_factory):
    store = KeyValueStore("scratch", session_factory)

    assert store.put("k", "v1") is True
    assert store.put("k", "v2") is True
    assert store.put("k", "v3", overwrite=False) is False
    assert store.get("k") == "v2"


def test_poll_state_defaults_when_empty(poll_state_store):
    state = poll_state_store.load()
    assert state.last_processed_game_key is None
    assert state.next_game_start_utc is None


def test_poll_state_save_and_load(poll_state_store):
    start = datetime(2024, 1, 18, 0, 0, tzinfo=pytz.UTC)
    poll_state_store.save(PollState("2024020500-2024-01-15", start))

    state = poll_state_store.load()

    assert state.last_processed_game_key == "2024020500-2024-01-15"
    assert state.next_game_start_utc == start


def test_poll_state_clearing_next_start(poll_state_store):
    poll_state_store.save(PollState("k", datetime(2024, 1, 18, tzinfo=pytz.UTC)))
    poll_state_store.save(PollState("k", None))

    assert poll_state_store.load().next_game_start_utc is None


def test_missing_tables_raise_store_unavailable():
    engine = create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)
    factory = sessionmaker(bind=engine)

    with pytest.raises(StoreUnavailable):
        ResultStore(factory).get("1")
    with pytest.raises(StoreUnavailable):
        ResultStore(factory).put("1", make_result("1"))
    with pytest.raises(StoreUnavailable):
        PollStateStore(factory).load()


@pytest.mark.parametrize("raw", ["{not json", "[1, 2]", '{"gameId": "2024020500"}'])
def test_unreadable_record_reads_as_absent(session_factory, result_store, raw):
    KeyValueStore("game-results", session_factory).put("2024020500", raw)

    assert result_store.get("2024020500") is None
    assert result_store.list_all() == []


def test_last_outcome_round_trip(poll_state_store):
    assert poll_state_store.load_outcome() is None

    poll_state_store.save_outcome({"state": "DONE", "reason": "processed", "game_id": 2024020500})

    assert poll_state_store.load_outcome()["reason"] == "processed"
    # Saving an outcome leaves the scalar poll state alone
    assert poll_state_store.load().last_processed_game_key is None
