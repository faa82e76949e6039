"""
Fire-and-forget usage telemetry.

Reports are handed to a small thread pool and never block, fail or order the
request that produced them. When the pool is saturated the report is dropped.
"""

import threading
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, Callable, Optional

from ..constants import UsageFeature
from ..schemas.config_schemas import AdminConfiguration
from .logger import get_logger

# Queued reports allowed per worker before new ones are dropped
_PENDING_PER_WORKER = 8


class UsageReporter:
    """Dispatches ``send_usage`` calls to a bounded executor."""

    def __init__(
        self,
        client_factory: Callable[[], Any],
        enabled: bool = True,
        max_workers: int = 2,
    ):
        """
        Args:
            client_factory: Returns a client, usable as a context manager, with ``send_usage(config, feature)``
            enabled: Global switch; per-record opt-out is honoured separately
            max_workers: Worker threads in the pool
        """
        self.client_factory = client_factory
        self.enabled = enabled
        self.logger = get_logger()
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="usage-reporter"
        )
        self._slots = threading.BoundedSemaphore(max_workers * _PENDING_PER_WORKER)
        self._closed = False

    def report(self, config: AdminConfiguration, feature: UsageFeature) -> Optional[Future]:
        """Queue a usage report; returns the future or None when skipped."""
        if not self.enabled or self._closed or config.disable_usage_telemetry:
            return None

        if not self._slots.acquire(blocking=False):
            self.logger.debug(
                "Usage report dropped, reporter saturated", extra={"feature": feature.value}
            )
            return None

        try:
            future = self._executor.submit(self._send, config, feature)
        except RuntimeError:
            # Executor shut down between the check and the submit
            self._slots.release()
            return None

        future.add_done_callback(lambda _: self._slots.release())
        return future

    def _send(self, config: AdminConfiguration, feature: UsageFeature) -> None:
        try:
            with self.client_factory() as client:
                client.send_usage(config, feature.value)
        except Exception as e:
            self.logger.warning(
                f"Usage report failed: {str(e)}",
                extra={"feature": feature.value, "error_type": type(e).__name__},
            )

    def shutdown(self, wait: bool = True) -> None:
        """Stop accepting reports and optionally wait for queued ones."""
        self._closed = True
        self._executor.shutdown(wait=wait)
