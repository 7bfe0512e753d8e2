"""Feature-flag style accessor over a delivery response."""

from __future__ import annotations

import threading
from typing import Any

from .delivery import MboxResponse, TargetDeliveryResponse


class Attributes:
    """Read JSON option content of a response by mbox name and key.

    All JSON options returned for an mbox (prefetch and execute) are merged into
    one mapping; later entries overwrite earlier keys.
    """

    def __init__(self, response: TargetDeliveryResponse | None) -> None:
        self._response = response
        self._content: dict[str, dict[str, Any]] = {}
        self._lock = threading.Lock()

    @property
    def response(self) -> TargetDeliveryResponse | None:
        return self._response

    def feature_boolean(self, mbox: str, key: str) -> bool:
        value = self._value(mbox, key)
        return value if isinstance(value, bool) else False

    def feature_string(self, mbox: str, key: str) -> str | None:
        value = self._value(mbox, key)
        return None if value is None else str(value)

    def feature_integer(self, mbox: str, key: str) -> int:
        value = self._value(mbox, key)
        if isinstance(value, bool):
            return 0
        if isinstance(value, (int, float)):
            return int(value)
        if isinstance(value, str):
            try:
                return int(float(value))
            except ValueError:
                return 0
        return 0

    def feature_float(self, mbox: str, key: str) -> float:
        value = self._value(mbox, key)
        if isinstance(value, bool):
            return 0.0
        if isinstance(value, (int, float)):
            return float(value)
        if isinstance(value, str):
            try:
                return float(value)
            except ValueError:
                return 0.0
        return 0.0

    def to_map(self, mbox: str) -> dict[str, Any] | None:
        """Return the merged JSON content for ``mbox`` (cached after first call)."""
        cached = self._content.get(mbox)
        if cached is not None:
            return cached
        if self._response is None or mbox is None:
            return None
        with self._lock:
            content: dict[str, Any] = {}
            for entry in self._all_mboxes():
                if entry.name != mbox:
                    continue
                for option in entry.options:
                    if option.type == "json" and isinstance(option.content, dict):
                        content.update(option.content)
            self._content[mbox] = content
        return content

    def _value(self, mbox: str, key: str) -> Any:
        content = self.to_map(mbox)
        if content is None:
            return None
        return content.get(key)

    def _all_mboxes(self) -> list[MboxResponse]:
        delivery = self._response.response
        entries: list[MboxResponse] = []
        if delivery.prefetch is not None:
            entries.extend(delivery.prefetch.mboxes)
        if delivery.execute is not None:
            entries.extend(delivery.execute.mboxes)
        return entries
