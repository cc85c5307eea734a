"""Alert sinks for emergency overrides."""

from __future__ import annotations

import threading

from three_tier_consent.collaborators.interfaces import OperationalAlert
from three_tier_consent.utilities.logger_manager import LoggerManager


class LoggingAlertSink:
    """Writes alerts to the dedicated ``<logger>.alerts`` channel at CRITICAL."""

    def __init__(self, logger_manager: LoggerManager) -> None:
        self._logger = logger_manager.child("alerts")

    def notify(self, alert: OperationalAlert) -> None:
        self._logger.critical(
            f"{alert.title}: {alert.message}",
            extra={
                "context": {
                    "severity": alert.severity.value,
                    "result_id": alert.result_id,
                    "action_id": alert.action_id,
                    **alert.details,
                }
            },
        )


class InMemoryAlertSink:
    def __init__(self) -> None:
        self.alerts: list[OperationalAlert] = []
        self._lock = threading.Lock()

    def notify(self, alert: OperationalAlert) -> None:
        with self._lock:
            self.alerts.append(alert)
