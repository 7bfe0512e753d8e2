"""RequestDetails: one request item (mbox, view or page-load) as a tagged variant."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

from ..models.delivery import Address, MboxRequest, PageLoadRequest, ViewRequest


class DetailsKind(str, Enum):
    mbox = "mbox"
    view = "view"
    page_load = "pageLoad"


@dataclass(frozen=True)
class RequestDetails:
    """A single item to decide on, tagged with its kind."""

    kind: DetailsKind
    item: MboxRequest | ViewRequest | PageLoadRequest

    @classmethod
    def for_mbox(cls, item: MboxRequest) -> "RequestDetails":
        return cls(DetailsKind.mbox, item)

    @classmethod
    def for_view(cls, item: ViewRequest) -> "RequestDetails":
        return cls(DetailsKind.view, item)

    @classmethod
    def for_page_load(cls, item: PageLoadRequest) -> "RequestDetails":
        return cls(DetailsKind.page_load, item)

    @property
    def name(self) -> str | None:
        """Mbox or view name; None for page-loads and unnamed views."""
        if self.kind == DetailsKind.page_load:
            return None
        return self.item.name

    @property
    def index(self) -> int | None:
        if self.kind == DetailsKind.mbox:
            return self.item.index
        return None

    @property
    def key(self) -> str | None:
        if self.kind == DetailsKind.view:
            return self.item.key
        return None

    @property
    def address(self) -> Address | None:
        return self.item.address

    @property
    def parameters(self) -> dict[str, Any]:
        return dict(self.item.parameters or {})

    def to_wire(self) -> dict[str, Any]:
        return self.item.to_wire()
