from ordering.alerts import get_alerts, reset_alerts
from ordering.alerts.log_adapter import DEFAULT_KEEP_LAST, LoggingAlerts


class TestLoggingAlerts:
    def test_records_alert(self):
        alerts = LoggingAlerts()
        alerts.raise_alert("dispatch_failed", "No courier for ord-001", order_id="ord-001")

        assert alerts.codes() == ["dispatch_failed"]
        assert alerts.raised[0]["order_id"] == "ord-001"

    def test_keeps_only_most_recent(self):
        alerts = LoggingAlerts(keep_last=3)
        for number in range(10):
            alerts.raise_alert("invoice_email_failed", f"Attempt {number}", attempt=number)

        assert len(alerts.raised) == 3
        assert [alert["attempt"] for alert in alerts.raised] == [7, 8, 9]

    def test_bound_read_from_environment(self, monkeypatch):
        monkeypatch.setenv("ALERTS_KEEP_LAST", "2")
        reset_alerts()

        alerts = get_alerts()
        for _ in range(5):
            alerts.raise_alert("lifecycle_hook_failed", "Hook failed")
        assert len(alerts.raised) == 2

        reset_alerts()

    def test_default_bound(self, monkeypatch):
        monkeypatch.delenv("ALERTS_KEEP_LAST", raising=False)
        assert LoggingAlerts().raised.maxlen == DEFAULT_KEEP_LAST
