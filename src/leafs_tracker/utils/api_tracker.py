"""
API usage tracking utilities.
"""

import time
import threading
from datetime import datetime
from typing import Dict, Optional
import logging
from collections import defaultdict, deque

from ..config import settings

logger = logging.getLogger(__name__)


class APITracker:
    """Tracks outbound requests per upstream source and enforces rate limits."""

    def __init__(self, limits: Optional[Dict[str, int]] = None):
        """
        Args:
            limits: Max requests per minute by source; sources without an
                entry are not rate limited
        """
        if limits is None:
            limits = {'nhl': settings.nhl_max_requests_per_minute}
        self.limits = dict(limits)
        self.request_history: Dict[str, deque] = defaultdict(deque)
        self.daily_usage: Dict[str, int] = defaultdict(int)
        self.daily_failures: Dict[str, int] = defaultdict(int)
        self.last_errors: Dict[str, str] = {}
        self.last_reset = datetime.now().date()
        self._lock = threading.Lock()

    def can_make_request(self, source: str) -> bool:
        """
        Check if we can make a request without exceeding rate limits.

        Args:
            source: Upstream source identifier ('nhl', 'gemini', ...)

        Returns:
            True if request is allowed
        """
        return self.get_wait_time(source) == 0

    def record_request(self, source: str, endpoint: str, success: bool = True,
                       response_time_ms: Optional[int] = None, error_message: Optional[str] = None):
        """
        Record an API request.

        Args:
            source: Upstream source identifier
            endpoint: Endpoint called
            success: Whether the request was successful
            response_time_ms: Response time in milliseconds
            error_message: Error message if request failed
        """
        with self._lock:
            self._reset_daily_usage_if_needed()
            self.request_history[source].append(time.time())
            self.daily_usage[source] += 1
            if not success:
                self.daily_failures[source] += 1
                if error_message:
                    self.last_errors[source] = error_message

        logger.debug(f"Recorded {source} request to {endpoint}: success={success}, time={response_time_ms}ms")

    def get_wait_time(self, source: str) -> float:
        """
        Get the time to wait before next request.

        Args:
            source: Upstream source identifier

        Returns:
            Seconds to wait, or 0 if no wait needed
        """
        max_requests = self.limits.get(source)
        if not max_requests:
            return 0

        with self._lock:
            self._cleanup_old_requests()
            history = self.request_history[source]
            if len(history) < max_requests:
                return 0
            # Calculate wait time until oldest request expires
            wait_time = 60 - (time.time() - history[0])

        return max(0, wait_time)

    def get_usage_stats(self) -> Dict[str, Dict[str, int]]:
        """
        Get usage statistics for every source seen so far.

        Returns:
            Dictionary with usage stats per source
        """
        with self._lock:
            self._cleanup_old_requests()
            self._reset_daily_usage_if_needed()

            stats = {}
            for source in sorted(set(self.daily_usage) | set(self.limits)):
                stats[source] = {
                    'requests_last_minute': len(self.request_history[source]),
                    'requests_today': self.daily_usage[source],
                    'failures_today': self.daily_failures[source],
                    'max_per_minute': self.limits.get(source),
                }
                if source in self.last_errors:
                    stats[source]['last_error'] = self.last_errors[source]

        return stats

    def _cleanup_old_requests(self):
        """Remove requests older than 1 minute."""
        cutoff = time.time() - 60

        for source in self.request_history:
            while self.request_history[source] and self.request_history[source][0] < cutoff:
                self.request_history[source].popleft()

    def _reset_daily_usage_if_needed(self):
        """Reset daily usage if it's a new day."""
        today = datetime.now().date()
        if today > self.last_reset:
            self.daily_usage.clear()
            self.daily_failures.clear()
            self.last_reset = today
            logger.info("Reset daily API usage counters")


# Global instance
api_tracker = APITracker()
