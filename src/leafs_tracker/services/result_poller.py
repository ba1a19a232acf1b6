"""
Result poller: detects newly completed games and stores a verdict + recap for each.

One call to ``run_once`` is one poll cycle. All state that must survive
between cycles lives in the PollStateStore and ResultStore; the insert-only
result store is what keeps overlapping cycles from generating a game twice.
"""

import time
import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

import pytz

from ..collectors import GameDetailCollector, ScheduleCollector, ScheduleSnapshot
from ..config import Settings, settings as default_settings
from ..domain import Game, PollState, StoredResult
from ..exceptions import StoreUnavailable, UpstreamUnavailable
from ..recap import RecapGenerator
from ..storage import PollStateStore, ResultStore
from ..utils import PollingWindow, WindowDecision
from ..verdict import derive_verdict
from .rebuild_hook import RebuildNotifier

logger = logging.getLogger(__name__)


class PollerState(str, Enum):
    IDLE_WAITING = "IDLE_WAITING"
    IDLE_RECENT_START = "IDLE_RECENT_START"
    POLLING = "POLLING"
    PROCESSING = "PROCESSING"
    DONE = "DONE"


@dataclass
class PollOutcome:
    """Where a poll cycle stopped and why."""

    state: PollerState
    reason: str
    game_id: Optional[int] = None
    recap_generated: bool = False
    rebuild_triggered: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            'state': self.state.value,
            'reason': self.reason,
            'game_id': self.game_id,
            'recap_generated': self.recap_generated,
            'rebuild_triggered': self.rebuild_triggered,
        }


class ResultPoller:
    """Polls the schedule and drives detail -> verdict -> recap -> store for new results."""

    def __init__(self, schedule_collector: Optional[ScheduleCollector] = None,
                 detail_collector: Optional[GameDetailCollector] = None,
                 recap_generator: Optional[RecapGenerator] = None,
                 result_store: Optional[ResultStore] = None,
                 poll_state_store: Optional[PollStateStore] = None,
                 notifier: Optional[RebuildNotifier] = None,
                 polling_window: Optional[PollingWindow] = None,
                 config: Optional[Settings] = None):
        self.config = config or default_settings
        self.schedule_collector = schedule_collector or ScheduleCollector(team_code=self.config.team_code)
        self.detail_collector = detail_collector or GameDetailCollector()
        self.recap_generator = recap_generator or RecapGenerator(self.config)
        self.result_store = result_store or ResultStore()
        self.poll_state_store = poll_state_store or PollStateStore()
        self.notifier = notifier or RebuildNotifier(self.config)
        self.polling_window = polling_window or PollingWindow(self.config.recent_start_window_minutes)
        self.is_running = False
        self.last_outcome: Optional[PollOutcome] = None

    def run_once(self, now: Optional[datetime] = None) -> PollOutcome:
        """
        Run a single poll cycle. Never raises.

        Args:
            now: Current instant (defaults to UTC now)

        Returns:
            PollOutcome describing where the cycle stopped
        """
        now = now or datetime.now(pytz.UTC)
        try:
            outcome = self._run_cycle(now)
        except Exception as e:
            logger.exception(f"Unexpected error during poll cycle: {e}")
            outcome = PollOutcome(PollerState.POLLING, 'unexpected_error')

        self.last_outcome = outcome
        logger.info(f"Poll cycle finished in {outcome.state.value}: {outcome.reason}")
        self._record_outcome(outcome, now)
        return outcome

    def _record_outcome(self, outcome: PollOutcome, finished_at: datetime):
        record = outcome.to_dict()
        record['finished_at'] = finished_at.isoformat()
        try:
            self.poll_state_store.save_outcome(record)
        except StoreUnavailable as e:
            logger.warning(f"Could not record poll outcome: {e}")

    def _run_cycle(self, now: datetime) -> PollOutcome:
        try:
            state = self.poll_state_store.load()
        except StoreUnavailable as e:
            logger.error(f"Could not load poll state: {e}")
            return PollOutcome(PollerState.POLLING, 'store_unavailable')

        decision = self.polling_window.decide(state, now)
        if decision == WindowDecision.WAITING_FOR_START:
            return PollOutcome(PollerState.IDLE_WAITING, 'next_game_not_started')
        if decision == WindowDecision.RECENT_START:
            return PollOutcome(PollerState.IDLE_RECENT_START, 'game_recently_started')

        try:
            snapshot = self.schedule_collector.fetch_snapshot()
        except UpstreamUnavailable as e:
            logger.warning(f"Schedule unavailable, skipping this cycle: {e}")
            return PollOutcome(PollerState.POLLING, 'upstream_unavailable')

        if snapshot.has_live_game:
            live = snapshot.in_progress[0]
            logger.info(f"Game {live.game_id} is in progress ({live.raw_state}), waiting for it to end")
            return PollOutcome(PollerState.POLLING, 'game_in_progress', game_id=live.game_id)

        latest = snapshot.latest_completed
        if latest is None:
            logger.info("No completed games in the schedule yet")
            return PollOutcome(PollerState.POLLING, 'no_completed_game')

        game_key = latest.game_key
        if game_key == state.last_processed_game_key:
            self._refresh_next_game(state, snapshot)
            try:
                self.poll_state_store.save(state)
            except StoreUnavailable as e:
                logger.error(f"Could not save poll state: {e}")
                return PollOutcome(PollerState.DONE, 'store_unavailable', game_id=latest.game_id)
            return PollOutcome(PollerState.DONE, 'already_processed', game_id=latest.game_id)

        return self._process_game(latest, state, snapshot)

    def _process_game(self, game: Game, state: PollState, snapshot: ScheduleSnapshot) -> PollOutcome:
        logger.info(f"Processing completed game {game.game_id} ({game.game_key})")

        try:
            already_stored = self.result_store.exists(game.game_id)
        except StoreUnavailable as e:
            logger.error(f"Could not check for an existing result: {e}")
            return PollOutcome(PollerState.PROCESSING, 'store_unavailable', game_id=game.game_id)

        recap_generated = False
        if already_stored:
            logger.info(f"Result for game {game.game_id} already stored, skipping generation")
        else:
            detail = self.detail_collector.fetch_game_detail(game.game_id)
            verdict = derive_verdict(game, self.config.team_code, detail)
            recap = self.recap_generator.generate(verdict, detail)
            if recap is None:
                # Leave the game unprocessed so the next cycle retries it
                logger.info(f"No recap for game {game.game_id}, will retry next cycle")
                return PollOutcome(PollerState.PROCESSING, 'recap_unavailable', game_id=game.game_id)

            result = StoredResult.from_verdict(game, verdict, recap)
            try:
                recap_generated = self.result_store.put(game.game_id, result)
            except StoreUnavailable as e:
                logger.error(f"Could not store result for game {game.game_id}: {e}")
                return PollOutcome(PollerState.PROCESSING, 'store_unavailable', game_id=game.game_id)

        state.last_processed_game_key = game.game_key
        self._refresh_next_game(state, snapshot)
        reason = 'processed'
        try:
            self.poll_state_store.save(state)
        except StoreUnavailable as e:
            logger.error(f"Could not save poll state: {e}")
            reason = 'store_unavailable'

        rebuild_triggered = self.notifier.notify(f"game {game.game_id} final")
        return PollOutcome(PollerState.DONE, reason, game_id=game.game_id,
                           recap_generated=recap_generated, rebuild_triggered=rebuild_triggered)

    def _refresh_next_game(self, state: PollState, snapshot: ScheduleSnapshot):
        next_game = snapshot.next_upcoming
        if next_game is not None and next_game.start_time_utc is not None:
            state.next_game_start_utc = next_game.start_time_utc
            logger.debug(f"Next game {next_game.game_id} starts at {next_game.start_time_utc.isoformat()}")

    def start_polling(self, interval: Optional[int] = None):
        """
        Run poll cycles until stopped.

        Args:
            interval: Seconds between cycles (defaults to settings.poll_interval_seconds)
        """
        interval = interval or self.config.poll_interval_seconds
        self.is_running = True
        logger.info(f"Starting result polling every {interval} seconds")

        try:
            while self.is_running:
                self.run_once()
                # Sleep in short steps so stop_polling takes effect promptly
                slept = 0
                while self.is_running and slept < interval:
                    time.sleep(1)
                    slept += 1
        except KeyboardInterrupt:
            logger.info("Polling interrupted by user")
        finally:
            self.is_running = False
            logger.info("Result polling stopped")

    def stop_polling(self):
        """Stop the polling loop."""
        self.is_running = False
        logger.info("Stopping result polling...")

    def get_polling_status(self, now: Optional[datetime] = None,
                           include_process_stats: bool = True) -> Dict[str, Any]:
        """
        Get current polling status.

        Args:
            now: Current instant (defaults to UTC now)
            include_process_stats: Include is_running and request counters, which
                only describe this process (leave out when reporting from another process)

        Returns:
            Dictionary with poll state, the last recorded cycle outcome and the window decision
        """
        now = now or datetime.now(pytz.UTC)
        status: Dict[str, Any] = {
            'team_code': self.config.team_code,
            'recap_enabled': self.recap_generator.enabled,
            'rebuild_hook_enabled': self.notifier.enabled,
            'last_outcome': self.last_outcome.to_dict() if self.last_outcome else None,
        }
        if include_process_stats:
            status['is_running'] = self.is_running
            status['api_usage'] = self.schedule_collector.tracker.get_usage_stats()

        try:
            state = self.poll_state_store.load()
            recorded_outcome = self.poll_state_store.load_outcome()
        except StoreUnavailable as e:
            status['poll_state_error'] = str(e)
            return status

        if recorded_outcome is not None:
            status['last_outcome'] = recorded_outcome
        earliest = self.polling_window.earliest_poll_time(state)
        status.update({
            'last_processed_game_key': state.last_processed_game_key,
            'next_game_start_utc': state.next_game_start_utc.isoformat() if state.next_game_start_utc else None,
            'window_decision': self.polling_window.decide(state, now).value,
            'earliest_poll_utc': earliest.isoformat() if earliest else None,
        })
        return status
