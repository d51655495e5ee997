"""Operational alert port — raise something a human on call has to look at."""

from abc import ABC, abstractmethod


class AlertPort(ABC):
    @abstractmethod
    def raise_alert(self, code: str, message: str, **context) -> None:
        ...
