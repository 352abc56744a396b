from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Protocol

from compliance_watch.alerts.models import ChangeNotification


@dataclass(frozen=True)
class DispatchResult:
    success: bool
    error: Optional[str] = None


class NotificationDispatchError(RuntimeError):
    pass


class NotificationChannelAdapter(Protocol):
    def send(self, notification: ChangeNotification) -> DispatchResult:
        ...


class DisabledChannelAdapter:
    def __init__(self, *, reason: str) -> None:
        self._reason = reason

    def send(self, notification: ChangeNotification) -> DispatchResult:
        return DispatchResult(success=False, error=self._reason)
