"""
Backfill stored results for completed games that have none yet.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional

from ..collectors import GameDetailCollector, ScheduleCollector
from ..config import Settings, settings as default_settings
from ..domain import StoredResult
from ..exceptions import StoreUnavailable, UpstreamUnavailable
from ..recap import RecapGenerator
from ..storage import ResultStore
from ..verdict import derive_verdict

logger = logging.getLogger(__name__)


@dataclass
class BackfillReport:
    stored: List[str] = field(default_factory=list)
    skipped_existing: List[str] = field(default_factory=list)
    failed: List[str] = field(default_factory=list)
    pending: List[str] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None and not self.failed


class BackfillService:
    """Generates recaps for every completed game of the season missing from the result store."""

    def __init__(self, schedule_collector: Optional[ScheduleCollector] = None,
                 detail_collector: Optional[GameDetailCollector] = None,
                 recap_generator: Optional[RecapGenerator] = None,
                 result_store: Optional[ResultStore] = None,
                 config: Optional[Settings] = None):
        self.config = config or default_settings
        self.schedule_collector = schedule_collector or ScheduleCollector(team_code=self.config.team_code)
        self.detail_collector = detail_collector or GameDetailCollector()
        self.recap_generator = recap_generator or RecapGenerator(self.config)
        self.result_store = result_store or ResultStore()

    def run(self, limit: Optional[int] = None, dry_run: bool = False) -> BackfillReport:
        """
        Backfill missing results, most recent games first.

        Args:
            limit: Maximum number of games to generate recaps for
            dry_run: Only report which games are missing

        Returns:
            BackfillReport
        """
        report = BackfillReport()

        if not dry_run and not self.recap_generator.enabled:
            report.error = "recap generation is disabled (no Gemini API key)"
            logger.warning(f"Backfill aborted: {report.error}")
            return report

        try:
            snapshot = self.schedule_collector.fetch_snapshot()
        except UpstreamUnavailable as e:
            report.error = f"schedule unavailable: {e}"
            logger.error(f"Backfill aborted: {report.error}")
            return report

        try:
            existing = set(self.result_store.list_ids())
        except StoreUnavailable as e:
            report.error = f"result store unavailable: {e}"
            logger.error(f"Backfill aborted: {report.error}")
            return report

        for game in reversed(snapshot.completed):
            game_id = str(game.game_id)
            if game_id in existing:
                report.skipped_existing.append(game_id)
                continue
            if dry_run or (limit is not None and len(report.stored) >= limit):
                report.pending.append(game_id)
                continue

            logger.info(f"Backfilling game {game_id} ({game.game_date.isoformat()})")
            detail = self.detail_collector.fetch_game_detail(game.game_id)
            verdict = derive_verdict(game, self.config.team_code, detail)
            recap = self.recap_generator.generate(verdict, detail)
            if recap is None:
                report.failed.append(game_id)
                continue

            try:
                if self.result_store.put(game.game_id, StoredResult.from_verdict(game, verdict, recap)):
                    report.stored.append(game_id)
                else:
                    report.skipped_existing.append(game_id)
            except StoreUnavailable as e:
                logger.error(f"Could not store backfilled game {game_id}: {e}")
                report.failed.append(game_id)

        logger.info(
            f"Backfill finished: {len(report.stored)} stored, {len(report.skipped_existing)} existing, "
            f"{len(report.failed)} failed, {len(report.pending)} pending"
        )
        return report
