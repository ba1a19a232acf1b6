"""
FastAPI application exposing stored game results.

Provides JSON endpoints for the latest verdict and the results archive, plus
a cURL-friendly plain-text answer.
"""

from typing import Any, Dict, Optional

from fastapi import Depends, FastAPI, HTTPException, Path
from fastapi.responses import PlainTextResponse

from .collectors import ScheduleCollector
from .config import settings
from .domain import Game, StoredResult, Verdict
from .exceptions import StoreUnavailable, UpstreamUnavailable
from .services import ResultPoller
from .storage import ResultStore
from .verdict import derive_verdict

app = FastAPI(
    title="Leafs Result Tracker API",
    description="Did the Leafs lose their last game? Verdicts and recaps for completed games.",
    version="1.0.0"
)


def get_result_store() -> ResultStore:
    return ResultStore()


def get_schedule_collector() -> ScheduleCollector:
    return ScheduleCollector(team_code=settings.team_code)


def get_poller() -> ResultPoller:
    return ResultPoller()


def _game_json(game: Game) -> Dict[str, Any]:
    return {
        "game_id": str(game.game_id),
        "game_date": game.game_date.isoformat(),
        "game_state": game.raw_state,
        "start_time_utc": game.start_time_utc.isoformat() if game.start_time_utc else None,
        "home_team": game.home_abbrev,
        "home_score": game.home_score,
        "away_team": game.away_abbrev,
        "away_score": game.away_score,
    }


def _verdict_json(verdict: Verdict) -> Dict[str, Any]:
    return {
        "lost": verdict.lost,
        "is_home_game": verdict.tracked_team_is_home,
        "tracked_score": verdict.tracked_team_score,
        "opponent_score": verdict.opponent_score,
        "opponent": verdict.opponent,
        "opponent_name": verdict.opponent_name,
        "went_to_overtime": verdict.went_to_overtime,
        "went_to_shootout": verdict.went_to_shootout,
    }


def _latest(collector: ScheduleCollector, store: ResultStore):
    """Latest completed game, its verdict, and the stored result if one exists."""
    try:
        snapshot = collector.fetch_snapshot()
    except UpstreamUnavailable as e:
        raise HTTPException(status_code=503, detail=f"Schedule unavailable: {e}")

    game = snapshot.latest_completed
    if game is None:
        raise HTTPException(status_code=404, detail="No completed games found")

    try:
        stored: Optional[StoredResult] = store.get(game.game_id)
    except StoreUnavailable:
        # The verdict doesn't depend on the store; just omit the recap
        stored = None

    verdict = derive_verdict(game, settings.team_code)
    return game, verdict, stored, snapshot.next_upcoming


@app.get("/health")
def health() -> Dict[str, str]:
    return {"status": "ok"}


@app.get("/api/v1/latest")
def latest_result(collector: ScheduleCollector = Depends(get_schedule_collector),
                  store: ResultStore = Depends(get_result_store)) -> Dict[str, Any]:
    """Answer the question for the most recent completed game."""
    game, verdict, stored, next_game = _latest(collector, store)

    body: Dict[str, Any] = {
        "team": settings.team_code,
        "answer": verdict.answer,
        "game": _game_json(game),
        "verdict": _verdict_json(verdict),
        "next_game": _game_json(next_game) if next_game else None,
    }
    if stored is not None:
        # Stored OT/SO flags come from the scoring detail, which the schedule lacks
        body["verdict"]["went_to_overtime"] = stored.went_to_overtime
        body["verdict"]["went_to_shootout"] = stored.went_to_shootout
        body["recap"] = stored.recap_text
    return body


@app.get("/curl/v1/latest", response_class=PlainTextResponse)
def latest_result_text(collector: ScheduleCollector = Depends(get_schedule_collector),
                       store: ResultStore = Depends(get_result_store)) -> str:
    game, verdict, stored, _ = _latest(collector, store)
    outcome = "lost" if verdict.lost else "won"
    line = (f"{verdict.answer} - {settings.team_name} {outcome} "
            f"{verdict.tracked_team_score}-{verdict.opponent_score} vs {verdict.opponent_name} "
            f"({game.game_date.isoformat()})")
    if stored is not None and stored.recap_text:
        line += "\n\n" + stored.recap_text
    return line + "\n"


@app.get("/api/v1/results")
def list_results(store: ResultStore = Depends(get_result_store)) -> Dict[str, Any]:
    """All stored results, most recent first."""
    try:
        results = store.list_all()
    except StoreUnavailable as e:
        raise HTTPException(status_code=503, detail=str(e))
    return {"count": len(results), "results": [r.to_record() for r in results]}


@app.get("/api/v1/results/ids")
def list_result_ids(store: ResultStore = Depends(get_result_store)) -> Dict[str, Any]:
    try:
        ids = store.list_ids()
    except StoreUnavailable as e:
        raise HTTPException(status_code=503, detail=str(e))
    return {"game_ids": ids}


@app.get("/api/v1/results/{game_id}")
def get_result(game_id: str = Path(..., pattern=r"^\d+$"),
               store: ResultStore = Depends(get_result_store)) -> Dict[str, Any]:
    try:
        result = store.get(game_id)
    except StoreUnavailable as e:
        raise HTTPException(status_code=503, detail=str(e))
    if result is None:
        raise HTTPException(status_code=404, detail=f"No result stored for game {game_id}")
    return result.to_record()


@app.get("/api/v1/status")
def poller_status(poller: ResultPoller = Depends(get_poller)) -> Dict[str, Any]:
    return poller.get_polling_status(include_process_stats=False)


def main():
    import uvicorn
    uvicorn.run(app, host=settings.api_host, port=settings.api_port)


if __name__ == "__main__":
    main()
