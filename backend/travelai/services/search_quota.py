"""Process-wide budget of outbound web searches."""

import logging
import threading

from travelai.config import settings

logger = logging.getLogger(__name__)


class SearchQuota:
    """Atomic counter of web searches left for this process.

    A caller reserves a unit before going to the network and releases it
    again if the call fails, so only successful calls consume the budget.
    """

    def __init__(self, limit: int = settings.search_quota):
        self._limit = limit
        self._remaining = limit
        self._lock = threading.Lock()

    @property
    def limit(self) -> int:
        return self._limit

    def remaining(self) -> int:
        with self._lock:
            return self._remaining

    def decrement_if_available(self) -> bool:
        """Take one unit if any is left. Returns False when exhausted."""
        with self._lock:
            if self._remaining <= 0:
                return False
            self._remaining -= 1
            remaining = self._remaining
        if remaining == 0:
            logger.warning("Web search quota exhausted")
        return True

    def release(self) -> None:
        """Give back a unit taken for a call that did not succeed."""
        with self._lock:
            self._remaining = min(self._limit, self._remaining + 1)


search_quota = SearchQuota()
