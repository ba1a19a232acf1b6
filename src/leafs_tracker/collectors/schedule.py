"""
Season schedule collector for the tracked team.
"""

from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, List, Optional
import logging

from .base import BaseCollector
from ..config import settings
from ..domain import Game, GameState, classify_game_state, parse_utc
from ..exceptions import UpstreamUnavailable

logger = logging.getLogger(__name__)


@dataclass
class ScheduleSnapshot:
    """A season schedule partitioned by lifecycle state, each list in schedule order."""

    completed: List[Game] = field(default_factory=list)
    upcoming: List[Game] = field(default_factory=list)
    in_progress: List[Game] = field(default_factory=list)

    @property
    def latest_completed(self) -> Optional[Game]:
        # Schedule order is chronological, so the last completed game is the most recent
        return self.completed[-1] if self.completed else None

    @property
    def next_upcoming(self) -> Optional[Game]:
        return self.upcoming[0] if self.upcoming else None

    @property
    def has_live_game(self) -> bool:
        return bool(self.in_progress)


def classify_schedule(games: List[Game]) -> ScheduleSnapshot:
    """Partition games into completed, upcoming and in-progress."""
    snapshot = ScheduleSnapshot()
    for game in games:
        if game.state == GameState.COMPLETED:
            snapshot.completed.append(game)
        elif game.state == GameState.SCHEDULED:
            snapshot.upcoming.append(game)
        else:
            snapshot.in_progress.append(game)
    return snapshot


class ScheduleCollector(BaseCollector):
    """Fetches the tracked team's season schedule from the NHL web API."""

    def __init__(self, team_code: Optional[str] = None, **kwargs):
        super().__init__(**kwargs)
        self.team_code = (team_code or settings.team_code).upper()

    def fetch_season_schedule(self, team_code: Optional[str] = None) -> List[Game]:
        """
        Fetch the current season schedule for a team.

        Args:
            team_code: Team abbreviation (defaults to the tracked team)

        Returns:
            Games in schedule (chronological) order

        Raises:
            UpstreamUnavailable: if the endpoint fails or the payload has no games list
        """
        team = (team_code or self.team_code).upper()
        data = self._get_json(f"/club-schedule-season/{team}/now", 'schedule')

        raw_games = data.get('games')
        if not isinstance(raw_games, list):
            raise UpstreamUnavailable('schedule', "payload has no 'games' list")

        games = []
        seen_keys = set()
        for raw_game in raw_games:
            game = self.parse_game(raw_game)
            # A rescheduled game keeps its id but gets a new date, hence a new key
            if game is None or game.game_key in seen_keys:
                continue
            seen_keys.add(game.game_key)
            games.append(game)

        logger.debug(f"Fetched {len(games)} games for {team}")
        return games

    def fetch_snapshot(self, team_code: Optional[str] = None) -> ScheduleSnapshot:
        return classify_schedule(self.fetch_season_schedule(team_code))

    def parse_game(self, raw_game: Dict[str, Any]) -> Optional[Game]:
        """
        Parse one schedule entry.

        Args:
            raw_game: Raw game object from the schedule payload

        Returns:
            Game, or None if the entry is unusable
        """
        if not isinstance(raw_game, dict):
            logger.warning(f"Skipping non-object schedule entry: {raw_game!r}")
            return None

        home_team = raw_game.get('homeTeam')
        away_team = raw_game.get('awayTeam')
        game_id = self.as_int(raw_game.get('id'), default=None)

        if game_id is None or not _is_team(home_team) or not _is_team(away_team):
            logger.warning(f"Skipping schedule entry without id or teams: {raw_game.get('id', 'unknown')}")
            return None

        try:
            start_time = parse_utc(raw_game.get('startTimeUTC'))
        except (TypeError, ValueError, OverflowError):
            logger.warning(f"Invalid startTimeUTC for game {game_id}: {raw_game.get('startTimeUTC')}")
            start_time = None

        game_date_str = raw_game.get('gameDate', '')
        try:
            game_date = date.fromisoformat(game_date_str)
        except (TypeError, ValueError):
            if start_time is None:
                logger.warning(f"Skipping game {game_id} with no usable date")
                return None
            game_date = start_time.date()

        raw_state = str(raw_game.get('gameState', '') or '')
        home_abbrev = self.localized(home_team.get('abbrev')).upper()
        away_abbrev = self.localized(away_team.get('abbrev')).upper()

        return Game(
            game_id=game_id,
            game_date=game_date,
            state=classify_game_state(raw_state),
            raw_state=raw_state,
            home_abbrev=home_abbrev,
            home_name=self.localized(home_team.get('placeName')) or home_abbrev,
            home_score=self.as_int(home_team.get('score'), default=None),
            away_abbrev=away_abbrev,
            away_name=self.localized(away_team.get('placeName')) or away_abbrev,
            away_score=self.as_int(away_team.get('score'), default=None),
            start_time_utc=start_time,
            game_type=self.as_int(raw_game.get('gameType'), default=2),
        )


def _is_team(raw: Any) -> bool:
    return isinstance(raw, dict) and bool(raw)
