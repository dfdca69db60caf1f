'''
retry_state.py
- In-memory retry tracking for failed node reconciles.
- Centralized logic for retry cooldowns, backoff by failure count, and reset on success.
'''

import threading
import time

from loguru import logger

from nodelabel_orch.core.constants import DEFAULT_RETRY_INTERVALS


class RetryState:
    """Tracks {node_name: {failures: int, last_attempt: float_timestamp}}."""

    def __init__(self, retry_intervals=None, clock=time.time):
        self.retry_intervals = retry_intervals or DEFAULT_RETRY_INTERVALS
        self._clock = clock
        self._lock = threading.Lock()
        self._state = {}

    def should_retry(self, node_name):
        """
        Determine whether enough time has passed to retry a failed node.

        Args:
            node_name (str): The name of the node.

        Returns:
            bool: True if a retry is permitted (or the node never failed), False otherwise.
        """
        with self._lock:
            state = self._state.get(node_name)
            if state is None:
                return True
            delay = self.retry_intervals[min(state["failures"] - 1, len(self.retry_intervals) - 1)]
            return self._clock() - state["last_attempt"] >= delay

    def record_retry(self, node_name):
        """Increment the failure count and record the attempt timestamp for a node."""
        with self._lock:
            state = self._state.setdefault(node_name, {"failures": 0, "last_attempt": 0})
            state["failures"] += 1
            state["last_attempt"] = self._clock()
            snapshot = dict(state)
        logger.warning(f"[retries] Retry recorded for {node_name}: {snapshot}")

    def clear_retry(self, node_name):
        """Reset the retry state for a node after a successful pass."""
        with self._lock:
            removed = self._state.pop(node_name, None)
        if removed is not None:
            logger.info(f"[retries] Cleared retry state for {node_name}")

    def pending(self):
        """Names of nodes with a recorded failure."""
        with self._lock:
            return sorted(self._state)

    def failures(self, node_name):
        with self._lock:
            return self._state.get(node_name, {}).get("failures", 0)
