"""
Key-value persistence for game results and poller state.

Both namespaces live in the ``kv_entries`` table. Each operation runs in its
own committed session, so a read issued after a write from the same process
observes that write.
"""

import json
import logging
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from .database import SessionFactory, get_db_session
from .domain import PollState, StoredResult, parse_utc
from .exceptions import StoreUnavailable
from .models import KeyValueEntry

logger = logging.getLogger(__name__)

RESULTS_NAMESPACE = "game-results"
POLL_STATE_NAMESPACE = "poll-state"

LAST_PROCESSED_KEY = "lastProcessedGameKey"
NEXT_GAME_START_KEY = "nextGameStartUtc"
LAST_OUTCOME_KEY = "lastOutcome"


class KeyValueStore:
    """String values keyed by string within a single namespace."""

    def __init__(self, namespace: str, session_factory: Optional[SessionFactory] = None):
        self.namespace = namespace
        self._session_factory = session_factory

    def get(self, key: str) -> Optional[str]:
        try:
            with get_db_session(self._session_factory) as db:
                entry = db.get(KeyValueEntry, (self.namespace, key))
                return entry.value if entry is not None else None
        except SQLAlchemyError as e:
            raise StoreUnavailable(f"get {self.namespace}/{key} failed: {e}") from e

    def put(self, key: str, value: str, overwrite: bool = True) -> bool:
        """
        Store a value.

        Args:
            key: Entry key
            value: String value
            overwrite: Replace an existing value; when False an existing key is left alone

        Returns:
            True if the value was written, False if the key already existed and
            overwrite was not allowed
        """
        try:
            with get_db_session(self._session_factory) as db:
                entry = db.get(KeyValueEntry, (self.namespace, key))
                if entry is not None:
                    if not overwrite:
                        return False
                    entry.value = value
                else:
                    db.add(KeyValueEntry(namespace=self.namespace, key=key, value=value))
            return True
        except IntegrityError as e:
            # Another writer inserted the same key between our read and commit
            if not overwrite:
                logger.info(f"Concurrent insert detected for {self.namespace}/{key}")
                return False
            raise StoreUnavailable(f"put {self.namespace}/{key} failed: {e}") from e
        except SQLAlchemyError as e:
            raise StoreUnavailable(f"put {self.namespace}/{key} failed: {e}") from e

    def list_keys(self) -> List[str]:
        try:
            with get_db_session(self._session_factory) as db:
                rows = db.query(KeyValueEntry.key).filter(
                    KeyValueEntry.namespace == self.namespace
                ).order_by(KeyValueEntry.key).all()
                return [row[0] for row in rows]
        except SQLAlchemyError as e:
            raise StoreUnavailable(f"list {self.namespace} failed: {e}") from e

    def items(self) -> List[Tuple[str, str]]:
        try:
            with get_db_session(self._session_factory) as db:
                rows = db.query(KeyValueEntry.key, KeyValueEntry.value).filter(
                    KeyValueEntry.namespace == self.namespace
                ).all()
                return [(row[0], row[1]) for row in rows]
        except SQLAlchemyError as e:
            raise StoreUnavailable(f"list {self.namespace} failed: {e}") from e


class ResultStore:
    """Append-only store of StoredResult records keyed by game id."""

    def __init__(self, session_factory: Optional[SessionFactory] = None):
        self._kv = KeyValueStore(RESULTS_NAMESPACE, session_factory)

    def get(self, game_id) -> Optional[StoredResult]:
        raw = self._kv.get(str(game_id))
        if raw is None:
            return None
        try:
            return StoredResult.from_record(json.loads(raw))
        except (ValueError, KeyError, TypeError) as e:
            logger.warning(f"Unreadable result record {game_id}: {e}")
            return None

    def exists(self, game_id) -> bool:
        return self._kv.get(str(game_id)) is not None

    def put(self, game_id, result: StoredResult) -> bool:
        """
        Insert a record. Never overwrites.

        Returns:
            True if the record was created, False if one already existed
        """
        payload = json.dumps(result.to_record())
        created = self._kv.put(str(game_id), payload, overwrite=False)
        if created:
            logger.info(f"Stored result for game {game_id}")
        else:
            logger.info(f"Result for game {game_id} already stored, leaving it untouched")
        return created

    def list_ids(self) -> List[str]:
        return self._kv.list_keys()

    def list_all(self) -> List[StoredResult]:
        """All stored results, most recent game first."""
        results = []
        for key, raw in self._kv.items():
            try:
                results.append(StoredResult.from_record(json.loads(raw)))
            except (ValueError, KeyError, TypeError) as e:
                logger.warning(f"Skipping unreadable result record {key}: {e}")
        results.sort(key=lambda r: r.game_date, reverse=True)
        return results


class PollStateStore:
    """Persists the poller's PollState as two scalar strings."""

    def __init__(self, session_factory: Optional[SessionFactory] = None):
        self._kv = KeyValueStore(POLL_STATE_NAMESPACE, session_factory)

    def load(self) -> PollState:
        last_key = self._kv.get(LAST_PROCESSED_KEY) or None
        next_start_raw = self._kv.get(NEXT_GAME_START_KEY)
        next_start = None
        if next_start_raw:
            try:
                next_start = parse_utc(next_start_raw)
            except ValueError:
                logger.warning(f"Ignoring unparseable next game start: {next_start_raw}")
        return PollState(last_processed_game_key=last_key, next_game_start_utc=next_start)

    def save(self, state: PollState):
        self._kv.put(LAST_PROCESSED_KEY, state.last_processed_game_key or "")
        next_start = state.next_game_start_utc.isoformat() if state.next_game_start_utc else ""
        self._kv.put(NEXT_GAME_START_KEY, next_start)

    def save_outcome(self, outcome: Dict[str, Any]):
        """Record how the most recent poll cycle ended, for status readers in other processes."""
        self._kv.put(LAST_OUTCOME_KEY, json.dumps(outcome))

    def load_outcome(self) -> Optional[Dict[str, Any]]:
        raw = self._kv.get(LAST_OUTCOME_KEY)
        if not raw:
            return None
        try:
            outcome = json.loads(raw)
        except ValueError:
            logger.warning(f"Ignoring unreadable last poll outcome: {raw}")
            return None
        return outcome if isinstance(outcome, dict) else None
