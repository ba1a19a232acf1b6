"""
Static-site rebuild trigger.
"""

import logging
import time
from typing import Optional

import requests

from ..config import Settings, settings as default_settings
from ..utils.api_tracker import APITracker, api_tracker

logger = logging.getLogger(__name__)

SOURCE = 'rebuild_hook'


class RebuildNotifier:
    """POSTs to the configured build hook. Fire-and-forget: failures are logged, never raised."""

    def __init__(self, config: Optional[Settings] = None, tracker: Optional[APITracker] = None):
        self.config = config or default_settings
        self.tracker = tracker or api_tracker

    @property
    def enabled(self) -> bool:
        return self.config.rebuild_hook is not None

    def notify(self, reason: str = "") -> bool:
        """
        Trigger a rebuild.

        Args:
            reason: Short description included in the request body

        Returns:
            True if the hook accepted the request
        """
        url = self.config.rebuild_hook
        if url is None:
            logger.debug("No rebuild hook configured, skipping rebuild")
            return False

        start_time = time.time()
        try:
            response = requests.post(
                url,
                json={"trigger": "leafs-tracker", "reason": reason},
                timeout=self.config.rebuild_hook_timeout,
            )
        except requests.RequestException as e:
            logger.error(f"Rebuild hook request failed: {e}")
            self.tracker.record_request(SOURCE, 'build_hook', success=False, error_message=str(e))
            return False
        response_time = int((time.time() - start_time) * 1000)

        if not response.ok:
            logger.error(f"Rebuild hook returned {response.status_code}")
            self.tracker.record_request(SOURCE, 'build_hook', success=False, response_time_ms=response_time,
                                        error_message=f"HTTP {response.status_code}")
            return False

        logger.info(f"Triggered site rebuild ({reason or 'no reason given'})")
        self.tracker.record_request(SOURCE, 'build_hook', success=True, response_time_ms=response_time)
        return True
