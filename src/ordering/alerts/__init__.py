"""Operational alert adapter factory.

Alerts go to the structured log by default; ALERTS_ADAPTER selects another
sink.
"""

import os

from ordering.alerts.port import AlertPort

DISPATCH_FAILED = "dispatch_failed"
INVOICE_EMAIL_FAILED = "invoice_email_failed"
LIFECYCLE_HOOK_FAILED = "lifecycle_hook_failed"

_current_alerts: AlertPort | None = None


def get_alerts() -> AlertPort:
    """Return the configured alert adapter (singleton)."""
    global _current_alerts
    if _current_alerts is None:
        adapter = os.environ.get("ALERTS_ADAPTER", "log")
        if adapter == "log":
            from ordering.alerts.log_adapter import LoggingAlerts

            _current_alerts = LoggingAlerts()
        else:
            raise ValueError(f"Unknown alerts adapter: {adapter}")
    return _current_alerts


def reset_alerts() -> None:
    """Reset the alert singleton (useful for testing)."""
    global _current_alerts
    _current_alerts = None
