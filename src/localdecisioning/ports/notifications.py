"""Port: upstream delivery of display notifications."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from ..models.delivery import Notification


@runtime_checkable
class NotificationSink(Protocol):
    """Hand a batch of notifications to the external transport."""

    def send(self, notifications: list[Notification]) -> None: ...
