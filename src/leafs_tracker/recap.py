"""
Game recap generation using Gemini.

The prompt is built deterministically from the verdict and game detail; the
generated prose is not, so only the prompt is worth asserting on.
"""

import logging
import time
from typing import Any, List, Optional

from google import genai

from .config import Settings, settings as default_settings
from .domain import GameDetail, PlayerStats, TeamStats, Verdict
from .exceptions import ConfigurationMissing, GenerationFailed
from .utils.api_tracker import APITracker, api_tracker

logger = logging.getLogger(__name__)

SOURCE = 'gemini'

SYSTEM_PROMPT = """You are a snarky, self-deprecating Toronto Maple Leafs fan writing a brief game recap. You've seen it all - decades of playoff disappointments, blown leads, and yet you keep coming back.

STRICT RULE: Never mention days of the week, "tonight", "this evening", or any time references. Just talk about the game itself."""

INSTRUCTIONS = """Write a 2-3 paragraph game recap. Be snarky and self-deprecating if they lost (classic Leafs fashion). If they won, be cautiously optimistic but remind everyone not to get too excited (it's the Leafs after all). Reference specific players and moments from the data. Keep it punchy and entertaining, avoid complete despair and keep it playful and light hearted. No headers or titles, just the recap text."""


def format_assists(assists) -> str:
    if not assists:
        return "unassisted"
    return ", ".join(assists)


def format_goals(detail: GameDetail) -> List[str]:
    lines = []
    for period, goal in detail.goals:
        line = f"{period.label} {goal.time_in_period}: {goal.scorer} ({goal.team})"
        if goal.modifiers:
            line += ", " + ", ".join(goal.modifiers)
        line += f" — assists: {format_assists(goal.assists)}"
        lines.append(line)
    return lines


def format_top_performers(detail: GameDetail) -> List[str]:
    lines = []
    for star in detail.top_performers[:3]:
        if star.is_goalie:
            stats = f"{(star.save_pctg or 0) * 100:.1f}% save pct"
        else:
            stats = f"{star.goals or 0}G, {star.assists or 0}A"
        lines.append(f"{star.star}. {star.name} ({star.team}) - {stats}")
    return lines


def format_penalties(detail: GameDetail) -> List[str]:
    lines = []
    for period in detail.penalties:
        for penalty in period.penalties:
            who = penalty.committed_by or "bench"
            what = penalty.desc_key.replace('-', ' ') or penalty.penalty_type.lower()
            lines.append(f"{period.label} {penalty.time_in_period}: {who} ({penalty.team}) - {what}, {penalty.duration} min")
    return lines


def format_team_stats(label: str, stats: TeamStats) -> str:
    return f"{label} STATS: {stats.shots_on_goal} shots, {stats.power_play or 'n/a'} power play, {stats.pim} PIM"


def format_player(player: PlayerStats) -> str:
    if player.is_goalie:
        save_pct = f"{player.save_pctg:.3f}" if player.save_pctg is not None else "n/a"
        return f"{player.name} (G): {save_pct} SV%, {player.toi} TOI"
    return (
        f"{player.name} ({player.position}): {player.goals}G {player.assists}A {player.points}P, "
        f"{player.plus_minus:+d}, {player.hits} hits, {player.shots} SOG, {player.toi} TOI"
    )


def notable_players(players: List[PlayerStats]) -> List[PlayerStats]:
    """Goalies who played plus skaters who got on the scoresheet, best first."""
    goalies = [p for p in players if p.is_goalie and p.toi and p.toi != "00:00"]
    skaters = [p for p in players if not p.is_goalie and p.points > 0]
    skaters.sort(key=lambda p: (-p.points, -p.goals, p.name))
    return skaters + goalies


def build_prompt(verdict: Verdict, detail: GameDetail, team_name: str = "Leafs",
                 team_code: str = "TOR") -> str:
    """
    Build the recap prompt.

    Args:
        verdict: Verdict for the game
        detail: Game detail (may be partial)
        team_name: Display name of the tracked team
        team_code: Abbreviation of the tracked team

    Returns:
        Prompt text
    """
    venue = "at home vs" if verdict.tracked_team_is_home else "on the road against"
    outcome = "LOST" if verdict.lost else "WON"

    game_data = [
        f"- Date: {verdict.game_date.isoformat()}",
        f"- Result: {team_name} {outcome} {verdict.tracked_team_score}-{verdict.opponent_score} {venue} {verdict.opponent_name}",
    ]
    if verdict.went_to_overtime:
        game_data.append("- Game went to overtime")
    if verdict.went_to_shootout:
        game_data.append("- Decided in a shootout")

    goals = format_goals(detail)
    stars = format_top_performers(detail)

    sections = [
        SYSTEM_PROMPT,
        "GAME DATA:\n" + "\n".join(game_data),
        "GOALS:\n" + ("\n".join(goals) if goals else "No goals (0-0 game?)"),
        "THREE STARS:\n" + ("\n".join(stars) if stars else "Not available"),
    ]

    penalties = format_penalties(detail)
    if penalties:
        sections.append("PENALTIES:\n" + "\n".join(penalties))

    stat_lines = []
    tracked_stats = detail.team_stats_for(team_code)
    opponent_stats = detail.team_stats_for(verdict.opponent)
    if tracked_stats is not None:
        stat_lines.append(format_team_stats(team_name.upper(), tracked_stats))
    if opponent_stats is not None:
        stat_lines.append(format_team_stats(verdict.opponent_name.upper(), opponent_stats))
    if stat_lines:
        sections.append("\n".join(stat_lines))

    players = notable_players(detail.players_for(team_code))
    if players:
        sections.append(
            f"{team_name.upper()} PLAYER STATS:\n" + "\n".join(format_player(p) for p in players)
        )

    sections.append(INSTRUCTIONS)
    return "\n\n".join(sections)


class RecapGenerator:
    """Generates recaps through the Gemini API; disabled without an API key."""

    def __init__(self, config: Optional[Settings] = None, client: Optional[Any] = None,
                 tracker: Optional[APITracker] = None):
        """
        Args:
            config: Settings (defaults to the global settings)
            client: Pre-built genai client, mainly for tests
            tracker: Request tracker for accounting
        """
        self.config = config or default_settings
        self._client = client
        self.tracker = tracker or api_tracker
        self._disabled_logged = False

    @property
    def enabled(self) -> bool:
        return self._client is not None or self.config.recap_enabled

    def _get_client(self):
        if self._client is None:
            if not self.config.recap_enabled:
                raise ConfigurationMissing("GEMINI_API_KEY is not set")
            self._client = genai.Client(api_key=self.config.gemini_api_key)
        return self._client

    def generate(self, verdict: Verdict, detail: GameDetail) -> Optional[str]:
        """
        Generate a recap.

        Returns:
            Recap text, or None if generation is disabled or failed
        """
        prompt = build_prompt(verdict, detail, self.config.team_name, self.config.team_code)
        try:
            return self._invoke(prompt)
        except ConfigurationMissing as e:
            if not self._disabled_logged:
                logger.info(f"Recap generation disabled: {e}")
                self._disabled_logged = True
            return None
        except GenerationFailed as e:
            logger.error(f"Recap generation failed: {e}")
            return None

    def _invoke(self, prompt: str) -> str:
        client = self._get_client()
        start_time = time.time()
        try:
            response = client.models.generate_content(model=self.config.gemini_model, contents=prompt)
            text = (response.text or '').strip()
        except Exception as e:
            self.tracker.record_request(SOURCE, self.config.gemini_model, success=False, error_message=str(e))
            raise GenerationFailed(f"Gemini API error: {e}") from e
        response_time = int((time.time() - start_time) * 1000)

        if not text:
            self.tracker.record_request(SOURCE, self.config.gemini_model, success=False,
                                        response_time_ms=response_time, error_message="empty response")
            raise GenerationFailed("Gemini returned an empty response")

        self.tracker.record_request(SOURCE, self.config.gemini_model, success=True, response_time_ms=response_time)
        return text
