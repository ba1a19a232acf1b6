"""
Base class for NHL web API collectors.
"""

from typing import Any, Dict, Optional
import logging
import time

import requests

from ..config import settings
from ..exceptions import UpstreamUnavailable
from ..utils.api_tracker import APITracker, api_tracker

logger = logging.getLogger(__name__)

SOURCE = 'nhl'


class BaseCollector:
    """Shared HTTP, rate limiting and payload helpers for NHL collectors."""

    def __init__(self, base_url: Optional[str] = None, timeout: Optional[int] = None,
                 tracker: Optional[APITracker] = None):
        """
        Initialize the collector.

        Args:
            base_url: NHL API base URL (defaults to settings.nhl_api_base)
            timeout: Per-request timeout in seconds
            tracker: Request tracker used for rate limiting and accounting
        """
        self.base_url = (base_url or settings.nhl_api_base).rstrip('/')
        self.api_timeout = timeout if timeout is not None else settings.nhl_api_timeout
        self.tracker = tracker or api_tracker
        self._headers = {"User-Agent": "leafs-tracker/1.0"}

    def _check_rate_limit(self):
        """Check and enforce rate limiting."""
        wait_time = self.tracker.get_wait_time(SOURCE)
        if wait_time > 0:
            logger.info(f"Rate limit reached for NHL API, sleeping for {wait_time:.1f}s")
            time.sleep(wait_time)

    def _get_json(self, path: str, endpoint: str) -> Dict[str, Any]:
        """
        GET base_url + path and return the decoded JSON object.

        Args:
            path: URL path starting with '/'
            endpoint: Short endpoint name for logging and accounting

        Raises:
            UpstreamUnavailable: on network errors, non-200 responses or a
                body that is not a JSON object
        """
        self._check_rate_limit()
        url = f"{self.base_url}{path}"

        start_time = time.time()
        try:
            response = requests.get(url, timeout=self.api_timeout, headers=self._headers)
        except requests.RequestException as e:
            self.tracker.record_request(SOURCE, endpoint, success=False, error_message=str(e))
            raise UpstreamUnavailable(endpoint, f"request failed: {e}") from e
        response_time = int((time.time() - start_time) * 1000)

        if response.status_code != 200:
            message = f"HTTP {response.status_code}"
            self.tracker.record_request(SOURCE, endpoint, success=False,
                                        response_time_ms=response_time, error_message=message)
            raise UpstreamUnavailable(endpoint, message)

        try:
            data = response.json()
        except ValueError as e:
            self.tracker.record_request(SOURCE, endpoint, success=False,
                                        response_time_ms=response_time, error_message="invalid JSON")
            raise UpstreamUnavailable(endpoint, "invalid JSON body") from e

        if not isinstance(data, dict):
            self.tracker.record_request(SOURCE, endpoint, success=False,
                                        response_time_ms=response_time, error_message="unexpected payload")
            raise UpstreamUnavailable(endpoint, f"expected a JSON object, got {type(data).__name__}")

        self.tracker.record_request(SOURCE, endpoint, success=True, response_time_ms=response_time)
        return data

    @staticmethod
    def localized(value: Any) -> str:
        """
        Extract a display string from NHL localized fields.

        The API returns names either as plain strings or as
        ``{"default": "...", "fr": "..."}``.
        """
        if isinstance(value, dict):
            return str(value.get('default', '') or '')
        return str(value) if value else ''

    @classmethod
    def full_name(cls, raw: Dict[str, Any]) -> str:
        """'First Last' from firstName/lastName, falling back to a single 'name' field."""
        first = cls.localized(raw.get('firstName'))
        last = cls.localized(raw.get('lastName'))
        name = f"{first} {last}".strip()
        if not name:
            name = cls.localized(raw.get('name'))
        return name

    @staticmethod
    def as_int(value: Any, default: Optional[int] = 0) -> Optional[int]:
        try:
            return int(value)
        except (TypeError, ValueError):
            return default
