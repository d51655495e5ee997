"""Alert adapter that writes alerts to the structured log and keeps the most recent ones in memory.

Log shippers pick the ``alert`` events up and route them to paging; tests
read ``raised``, which holds at most ``ALERTS_KEEP_LAST`` records (default
500).
"""

import os
from collections import deque
from datetime import UTC, datetime

import structlog

from ordering.alerts.port import AlertPort

logger = structlog.get_logger("ordering.alerts")

DEFAULT_KEEP_LAST = 500


class LoggingAlerts(AlertPort):
    def __init__(self, keep_last: int | None = None):
        if keep_last is None:
            keep_last = int(os.environ.get("ALERTS_KEEP_LAST", DEFAULT_KEEP_LAST))
        self.raised: deque[dict] = deque(maxlen=keep_last)

    def raise_alert(self, code: str, message: str, **context) -> None:
        record = {"code": code, "message": message, "raised_at": datetime.now(UTC), **context}
        self.raised.append(record)
        logger.error("alert", alert_code=code, alert_message=message, **context)

    def codes(self) -> list[str]:
        return [alert["code"] for alert in self.raised]

    def reset(self):
        self.raised.clear()
