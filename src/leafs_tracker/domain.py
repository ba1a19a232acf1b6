"""
Domain models for the Leafs result tracker.

Games and game details are parsed from the NHL web API into these immutable
records; the verdict and stored result are derived from them.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from dateutil import parser as date_parser
import pytz


class GameState(str, Enum):
    """Lifecycle state of a scheduled game."""

    SCHEDULED = "scheduled"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"


# NHL gameState values
COMPLETED_STATES = ('OFF', 'FINAL')
FUTURE_STATES = ('FUT',)


def classify_game_state(raw_state: str) -> GameState:
    """
    Map an NHL ``gameState`` string onto a lifecycle state.

    Anything that is neither terminal nor future (PRE, LIVE, CRIT, unknown
    values) counts as in progress.
    """
    state = (raw_state or '').strip().upper()
    if state in COMPLETED_STATES:
        return GameState.COMPLETED
    if state in FUTURE_STATES:
        return GameState.SCHEDULED
    return GameState.IN_PROGRESS


@dataclass(frozen=True)
class Game:
    """A single game from the tracked team's season schedule."""

    game_id: int
    game_date: date
    state: GameState
    raw_state: str
    home_abbrev: str
    home_name: str
    home_score: Optional[int]
    away_abbrev: str
    away_name: str
    away_score: Optional[int]
    start_time_utc: Optional[datetime] = None
    game_type: int = 2

    @property
    def game_key(self) -> str:
        """Identifier plus date, so a rescheduled game reusing an id is a new key."""
        return f"{self.game_id}-{self.game_date.isoformat()}"

    @property
    def is_completed(self) -> bool:
        return self.state == GameState.COMPLETED


@dataclass(frozen=True)
class Goal:
    scorer: str
    team: str
    time_in_period: str
    assists: Tuple[str, ...] = ()
    home_score: Optional[int] = None
    away_score: Optional[int] = None
    strength: str = "ev"
    shot_type: str = ""
    goal_modifier: str = ""

    @property
    def modifiers(self) -> List[str]:
        """Human readable qualifiers for the goal (power play, empty net, ...)."""
        mods = []
        strength = (self.strength or '').lower()
        if strength == 'pp':
            mods.append('power play')
        elif strength == 'sh':
            mods.append('shorthanded')
        modifier = (self.goal_modifier or '').lower()
        if modifier == 'empty-net':
            mods.append('empty net')
        elif modifier == 'penalty-shot':
            mods.append('penalty shot')
        return mods


def period_label(number: int, period_type: str) -> str:
    """P1/P2/P3 for regulation, OT or SO otherwise."""
    period_type = (period_type or '').upper()
    if period_type == 'OT':
        return 'OT'
    if period_type == 'SO':
        return 'SO'
    return f"P{number}"


@dataclass(frozen=True)
class ScoringPeriod:
    number: int
    period_type: str
    goals: Tuple[Goal, ...] = ()

    @property
    def label(self) -> str:
        return period_label(self.number, self.period_type)


@dataclass(frozen=True)
class Penalty:
    time_in_period: str
    penalty_type: str
    duration: int
    committed_by: str
    team: str
    desc_key: str = ""


@dataclass(frozen=True)
class PenaltyPeriod:
    number: int
    period_type: str
    penalties: Tuple[Penalty, ...] = ()

    @property
    def label(self) -> str:
        return period_label(self.number, self.period_type)


@dataclass(frozen=True)
class TopPerformer:
    """One of the game's three stars."""

    star: int
    name: str
    team: str
    position: str
    goals: Optional[int] = None
    assists: Optional[int] = None
    save_pctg: Optional[float] = None

    @property
    def is_goalie(self) -> bool:
        return self.position == 'G'


@dataclass(frozen=True)
class TeamStats:
    abbrev: str
    shots_on_goal: int
    power_play: str
    pim: int


@dataclass(frozen=True)
class PlayerStats:
    name: str
    team: str
    position: str
    goals: int = 0
    assists: int = 0
    points: int = 0
    plus_minus: int = 0
    hits: int = 0
    shots: int = 0
    toi: str = ""
    save_pctg: Optional[float] = None

    @property
    def is_goalie(self) -> bool:
        return self.position == 'G'


@dataclass(frozen=True)
class GameDetail:
    """
    Scoring summary and boxscore data for one game.

    The two availability flags record whether each sub-fetch succeeded, so
    an empty scoring list or missing stats can be told apart from a game
    where the data simply could not be loaded.
    """

    game_id: int
    scoring: Tuple[ScoringPeriod, ...] = ()
    penalties: Tuple[PenaltyPeriod, ...] = ()
    top_performers: Tuple[TopPerformer, ...] = ()
    home_stats: Optional[TeamStats] = None
    away_stats: Optional[TeamStats] = None
    player_stats: Tuple[PlayerStats, ...] = ()
    scoring_available: bool = True
    boxscore_available: bool = True

    @property
    def degraded(self) -> bool:
        return not (self.scoring_available and self.boxscore_available)

    @property
    def goals(self) -> List[Tuple[ScoringPeriod, Goal]]:
        """All goals in chronological order, paired with their period."""
        return [(period, goal) for period in self.scoring for goal in period.goals]

    def team_stats_for(self, abbrev: str) -> Optional[TeamStats]:
        for stats in (self.home_stats, self.away_stats):
            if stats is not None and stats.abbrev == abbrev:
                return stats
        return None

    def players_for(self, abbrev: str) -> List[PlayerStats]:
        return [p for p in self.player_stats if p.team == abbrev]


@dataclass(frozen=True)
class Verdict:
    """Win/loss summary of a completed game from the tracked team's side."""

    tracked_team_is_home: bool
    tracked_team_score: int
    opponent_score: int
    opponent: str
    opponent_name: str
    lost: bool
    went_to_overtime: bool
    went_to_shootout: bool
    game_date: date
    scores_complete: bool = True

    @property
    def answer(self) -> str:
        """The headline answer to "did they lose?"."""
        return "YES" if self.lost else "NO"


@dataclass
class StoredResult:
    """Persisted verdict + recap for a completed game."""

    game_id: str
    game_date: str
    opponent: str
    is_home_game: bool
    lost: bool
    tracked_score: int
    opponent_score: int
    went_to_overtime: bool
    went_to_shootout: bool
    recap_text: str

    @classmethod
    def from_verdict(cls, game: Game, verdict: Verdict, recap_text: str) -> "StoredResult":
        return cls(
            game_id=str(game.game_id),
            game_date=game.game_date.isoformat(),
            opponent=verdict.opponent,
            is_home_game=verdict.tracked_team_is_home,
            lost=verdict.lost,
            tracked_score=verdict.tracked_team_score,
            opponent_score=verdict.opponent_score,
            went_to_overtime=verdict.went_to_overtime,
            went_to_shootout=verdict.went_to_shootout,
            recap_text=recap_text,
        )

    def to_record(self) -> Dict[str, Any]:
        """JSON-ready dict with the camelCase keys used by the rendering layer."""
        return {
            'gameId': self.game_id,
            'gameDate': self.game_date,
            'opponent': self.opponent,
            'isHomeGame': self.is_home_game,
            'lost': self.lost,
            'trackedScore': self.tracked_score,
            'opponentScore': self.opponent_score,
            'wentToOvertime': self.went_to_overtime,
            'wentToShootout': self.went_to_shootout,
            'recapText': self.recap_text,
        }

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "StoredResult":
        return cls(
            game_id=str(record['gameId']),
            game_date=record['gameDate'],
            opponent=record['opponent'],
            is_home_game=bool(record['isHomeGame']),
            lost=bool(record['lost']),
            tracked_score=int(record['trackedScore']),
            opponent_score=int(record['opponentScore']),
            went_to_overtime=bool(record.get('wentToOvertime', False)),
            went_to_shootout=bool(record.get('wentToShootout', False)),
            recap_text=record.get('recapText', ''),
        )


@dataclass
class PollState:
    """Cross-invocation state of the result poller."""

    last_processed_game_key: Optional[str] = None
    next_game_start_utc: Optional[datetime] = field(default=None)


def parse_utc(value: Optional[str]) -> Optional[datetime]:
    """Parse an ISO-8601 timestamp into an aware UTC datetime."""
    if not value:
        return None
    parsed = date_parser.isoparse(value)
    if parsed.tzinfo is None:
        return pytz.UTC.localize(parsed)
    return parsed.astimezone(pytz.UTC)
