"""
Win/loss verdict for a completed game.
"""

import logging
from typing import Optional

from .domain import Game, GameDetail, Verdict

logger = logging.getLogger(__name__)


def derive_verdict(game: Game, team_code: str, detail: Optional[GameDetail] = None) -> Verdict:
    """
    Derive the tracked team's verdict for a game.

    Missing scores are treated as 0 so the function stays total; such a
    verdict is flagged with ``scores_complete=False``. Overtime and shootout
    flags come from the detail's scoring periods and are False without detail.

    Args:
        game: A completed game from the schedule
        team_code: Tracked team abbreviation
        detail: Scoring detail for the game, if fetched

    Returns:
        Verdict from the tracked team's point of view
    """
    team_code = team_code.upper()
    is_home = game.home_abbrev.upper() == team_code

    if is_home:
        score_for, score_against = game.home_score, game.away_score
        opponent, opponent_name = game.away_abbrev, game.away_name
    else:
        score_for, score_against = game.away_score, game.home_score
        opponent, opponent_name = game.home_abbrev, game.home_name

    scores_complete = score_for is not None and score_against is not None
    if not scores_complete:
        logger.warning(f"Game {game.game_id} is missing a score (state {game.raw_state}); treating it as 0")
    score_for = score_for or 0
    score_against = score_against or 0

    labels = {period.label for period in detail.scoring} if detail is not None else set()

    return Verdict(
        tracked_team_is_home=is_home,
        tracked_team_score=score_for,
        opponent_score=score_against,
        opponent=opponent,
        opponent_name=opponent_name or opponent,
        lost=score_for < score_against,
        went_to_overtime='OT' in labels,
        went_to_shootout='SO' in labels,
        game_date=game.game_date,
        scores_complete=scores_complete,
    )
