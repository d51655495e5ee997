"""Background worker that keeps retrying pending courier dispatches.

Runs RetryDueDispatches every ``poll_seconds`` on a daemon thread inside the
domain's context, so callers that moved an order to ready_for_pickup never
wait for retries.
"""

import threading

import structlog
from protean.exceptions import InvalidOperationError, ValidationError

from ordering.dispatch.policy import RetryPolicy
from ordering.dispatch.retry import RetryDueDispatches
from ordering.exceptions import IntegrationError

logger = structlog.get_logger(__name__)


class DispatchRetryWorker:
    def __init__(self, domain, policy: RetryPolicy | None = None):
        self.domain = domain
        self.policy = policy or RetryPolicy.from_env()
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.running:
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name="dispatch-retry-worker", daemon=True)
        self._thread.start()
        logger.info("Dispatch retry worker started", poll_seconds=self.policy.poll_seconds)

    def stop(self, timeout: float | None = 5.0) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
        self._thread = None
        logger.info("Dispatch retry worker stopped")

    def run_once(self) -> int:
        return self.domain.process(RetryDueDispatches(), asynchronous=False) or 0

    def _run(self) -> None:
        with self.domain.domain_context():
            while not self._stop.is_set():
                try:
                    self.run_once()
                except (ValidationError, InvalidOperationError, IntegrationError) as exc:
                    logger.error("Dispatch retry pass failed", error=str(exc))
                self._stop.wait(self.policy.poll_seconds)
