"""Port: ID generation strategies."""

from __future__ import annotations

import uuid
from typing import Protocol, runtime_checkable


@runtime_checkable
class NotificationIdProvider(Protocol):
    """Generate notification and impression IDs."""

    def new_notification_id(self) -> str: ...

    def new_impression_id(self) -> str: ...


@runtime_checkable
class VisitorIdProvider(Protocol):
    """Generate a visitor ID when the request carries none."""

    def new_visitor_id(self) -> str: ...


# ---------------------------------------------------------------------------
# Default implementations (pure stdlib, no infra deps)
# ---------------------------------------------------------------------------


class UuidNotificationIdProvider:
    """Uses uuid4 for notification and impression IDs."""

    def new_notification_id(self) -> str:
        return str(uuid.uuid4())

    def new_impression_id(self) -> str:
        return str(uuid.uuid4())


class UuidVisitorIdProvider:
    """Uses uuid4 hex for visitor IDs."""

    def new_visitor_id(self) -> str:
        return uuid.uuid4().hex
