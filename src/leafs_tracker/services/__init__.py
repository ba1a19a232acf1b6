"""
Services package for the Leafs result tracker.
"""

from .rebuild_hook import RebuildNotifier
from .result_poller import PollerState, PollOutcome, ResultPoller
from .backfill import BackfillReport, BackfillService

__all__ = [
    'RebuildNotifier',
    'PollerState',
    'PollOutcome',
    'ResultPoller',
    'BackfillReport',
    'BackfillService',
]
