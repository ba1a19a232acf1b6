"""
Game detail collector: scoring summary and boxscore for a single game.
"""

from concurrent.futures import ThreadPoolExecutor
from typing import Any, Dict, List, Optional, Tuple
import logging

from .base import BaseCollector
from ..config import settings
from ..domain import (
    GameDetail,
    Goal,
    Penalty,
    PenaltyPeriod,
    PlayerStats,
    ScoringPeriod,
    TeamStats,
    TopPerformer,
)
from ..exceptions import UpstreamUnavailable

logger = logging.getLogger(__name__)

PLAYER_GROUPS = ('forwards', 'defense', 'goalies')

# Raised by the parsers when a payload has the wrong shape
PARSE_ERRORS = (AttributeError, KeyError, TypeError, ValueError)


def _section(payload: Dict[str, Any], key: str) -> Dict[str, Any]:
    value = payload.get(key) or {}
    if not isinstance(value, dict):
        raise TypeError(f"'{key}' is a {type(value).__name__}, expected an object")
    return value


class GameDetailCollector(BaseCollector):
    """Fetches per-game scoring, penalties, three stars and player stats."""

    def __init__(self, max_workers: Optional[int] = None, **kwargs):
        super().__init__(**kwargs)
        self.max_workers = max_workers or settings.detail_fetch_workers

    def fetch_game_detail(self, game_id: int) -> GameDetail:
        """
        Fetch detail for a completed game.

        The landing (scoring) and boxscore requests are independent and run
        concurrently. A failed request or a payload of the wrong shape degrades
        to empty data with the matching availability flag cleared; this method
        does not raise for upstream errors.

        Args:
            game_id: NHL game identifier

        Returns:
            GameDetail, possibly partial
        """
        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            landing_future = executor.submit(self._fetch_optional, f"/gamecenter/{game_id}/landing", 'landing')
            boxscore_future = executor.submit(self._fetch_optional, f"/gamecenter/{game_id}/boxscore", 'boxscore')
            landing = landing_future.result()
            boxscore = boxscore_future.result()

        scoring: Tuple[ScoringPeriod, ...] = ()
        if landing is not None:
            try:
                scoring = self.parse_scoring(_section(landing, 'summary').get('scoring') or [])
            except PARSE_ERRORS as e:
                logger.warning(f"Malformed landing payload for game {game_id}: {e!r}")
                landing = None

        home_stats = away_stats = None
        top_performers: Tuple[TopPerformer, ...] = ()
        penalties: Tuple[PenaltyPeriod, ...] = ()
        player_stats: Tuple[PlayerStats, ...] = ()
        if boxscore is not None:
            try:
                home_stats, away_stats, top_performers, penalties, player_stats = \
                    self._parse_boxscore(boxscore, landing)
            except PARSE_ERRORS as e:
                logger.warning(f"Malformed boxscore payload for game {game_id}: {e!r}")
                boxscore = None

        detail = GameDetail(
            game_id=game_id,
            scoring=scoring,
            penalties=penalties,
            top_performers=top_performers,
            home_stats=home_stats,
            away_stats=away_stats,
            player_stats=player_stats,
            scoring_available=landing is not None,
            boxscore_available=boxscore is not None,
        )
        if detail.degraded:
            logger.warning(
                f"Partial detail for game {game_id}: scoring={detail.scoring_available}, "
                f"boxscore={detail.boxscore_available}"
            )
        return detail

    def _fetch_optional(self, path: str, endpoint: str) -> Optional[Dict[str, Any]]:
        try:
            return self._get_json(path, endpoint)
        except UpstreamUnavailable as e:
            logger.warning(f"Could not fetch {endpoint}: {e}")
            return None

    def _parse_boxscore(self, boxscore: Dict[str, Any], landing: Optional[Dict[str, Any]]):
        box_summary = _section(boxscore, 'summary')
        landing_summary = _section(landing or {}, 'summary')
        # Newer payloads carry three stars and penalties on the landing summary
        top_performers = self.parse_top_performers(
            box_summary.get('threeStars') or landing_summary.get('threeStars') or []
        )
        penalties = self.parse_penalties(
            box_summary.get('penalties') or landing_summary.get('penalties') or []
        )
        return (
            self.parse_team_stats(boxscore.get('homeTeam')),
            self.parse_team_stats(boxscore.get('awayTeam')),
            top_performers,
            penalties,
            self.parse_player_stats(boxscore),
        )

    def parse_scoring(self, periods: List[Dict[str, Any]]) -> Tuple[ScoringPeriod, ...]:
        parsed = []
        for period in periods:
            descriptor = period.get('periodDescriptor') or {}
            goals = tuple(self._parse_goal(g) for g in period.get('goals') or [])
            parsed.append(ScoringPeriod(
                number=self.as_int(descriptor.get('number'), default=len(parsed) + 1),
                period_type=str(descriptor.get('periodType', 'REG') or 'REG'),
                goals=goals,
            ))
        return tuple(parsed)

    def _parse_goal(self, raw: Dict[str, Any]) -> Goal:
        return Goal(
            scorer=self.full_name(raw),
            team=self.localized(raw.get('teamAbbrev')),
            time_in_period=str(raw.get('timeInPeriod', '') or ''),
            assists=tuple(self.full_name(a) for a in raw.get('assists') or []),
            home_score=self.as_int(raw.get('homeScore'), default=None),
            away_score=self.as_int(raw.get('awayScore'), default=None),
            strength=str(raw.get('strength', 'ev') or 'ev'),
            shot_type=str(raw.get('shotType', '') or ''),
            goal_modifier=str(raw.get('goalModifier', '') or ''),
        )

    def parse_penalties(self, periods: List[Dict[str, Any]]) -> Tuple[PenaltyPeriod, ...]:
        parsed = []
        for period in periods:
            descriptor = period.get('periodDescriptor') or {}
            penalties = tuple(
                Penalty(
                    time_in_period=str(p.get('timeInPeriod', '') or ''),
                    penalty_type=str(p.get('type', '') or ''),
                    duration=self.as_int(p.get('duration'), default=0),
                    committed_by=self.localized(p.get('committedByPlayer')),
                    team=self.localized(p.get('teamAbbrev')),
                    desc_key=str(p.get('descKey', '') or ''),
                )
                for p in period.get('penalties') or []
            )
            parsed.append(PenaltyPeriod(
                number=self.as_int(descriptor.get('number'), default=len(parsed) + 1),
                period_type=str(descriptor.get('periodType', 'REG') or 'REG'),
                penalties=penalties,
            ))
        return tuple(parsed)

    def parse_top_performers(self, stars: List[Dict[str, Any]]) -> Tuple[TopPerformer, ...]:
        performers = []
        for raw in stars:
            star = self.as_int(raw.get('star'), default=None)
            if star is None or not 1 <= star <= 3:
                continue
            save_pctg = raw.get('savePctg')
            performers.append(TopPerformer(
                star=star,
                name=self.full_name(raw),
                team=self.localized(raw.get('teamAbbrev')),
                position=str(raw.get('position', '') or ''),
                goals=self.as_int(raw.get('goals'), default=None),
                assists=self.as_int(raw.get('assists'), default=None),
                save_pctg=float(save_pctg) if save_pctg is not None else None,
            ))
        performers.sort(key=lambda p: p.star)
        return tuple(performers)

    def parse_team_stats(self, raw: Optional[Dict[str, Any]]) -> Optional[TeamStats]:
        if not raw:
            return None
        return TeamStats(
            abbrev=self.localized(raw.get('abbrev')).upper(),
            shots_on_goal=self.as_int(raw.get('sog'), default=0),
            power_play=str(raw.get('powerPlay', '') or ''),
            pim=self.as_int(raw.get('pim'), default=0),
        )

    def parse_player_stats(self, boxscore: Dict[str, Any]) -> Tuple[PlayerStats, ...]:
        by_game = boxscore.get('playerByGameStats') or {}
        players = []
        for side in ('awayTeam', 'homeTeam'):
            team = self.localized((boxscore.get(side) or {}).get('abbrev')).upper()
            groups = by_game.get(side) or {}
            for group in PLAYER_GROUPS:
                for raw in groups.get(group) or []:
                    save_pctg = raw.get('savePctg')
                    players.append(PlayerStats(
                        name=self.full_name(raw),
                        team=team,
                        position=str(raw.get('position', 'G' if group == 'goalies' else '') or ''),
                        goals=self.as_int(raw.get('goals')),
                        assists=self.as_int(raw.get('assists')),
                        points=self.as_int(raw.get('points')),
                        plus_minus=self.as_int(raw.get('plusMinus')),
                        hits=self.as_int(raw.get('hits')),
                        shots=self.as_int(raw.get('sog')),
                        toi=str(raw.get('toi', '') or ''),
                        save_pctg=float(save_pctg) if save_pctg is not None else None,
                    ))
        return tuple(players)
