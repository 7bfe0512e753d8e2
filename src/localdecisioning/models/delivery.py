"""Wire-format delivery request/response records.

Field names are snake_case in Python and camelCase on the wire; dump with
``model_dump(by_alias=True, exclude_none=True)`` to produce the JSON shape.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class WireModel(BaseModel):
    """Base for all delivery records: camelCase aliases, snake_case attributes."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")


class ChannelType(str, Enum):
    web = "web"
    mobile = "mobile"


class MetricType(str, Enum):
    display = "display"
    click = "click"


# ---------------------------------------------------------------------------
# Request context
# ---------------------------------------------------------------------------


class Address(WireModel):
    url: str | None = Field(default=None, description="Current page URL")
    referring_url: str | None = Field(default=None, description="Referring page URL")


class Geo(WireModel):
    ip_address: str | None = None
    latitude: float | None = None
    longitude: float | None = None
    country_code: str | None = None
    state_code: str | None = None
    city: str | None = None
    zip: str | None = None

    @property
    def is_unresolved(self) -> bool:
        """True when only an IP address is known."""
        return (
            bool(self.ip_address)
            and not self.city
            and not self.state_code
            and not self.country_code
            and self.latitude is None
            and self.longitude is None
        )


class Browser(WireModel):
    host: str | None = None
    language: str | None = None


class Application(WireModel):
    id: str | None = None
    name: str | None = None
    version: str | None = None


class Context(WireModel):
    channel: ChannelType = ChannelType.web
    user_agent: str | None = None
    address: Address | None = None
    geo: Geo | None = None
    browser: Browser | None = None
    application: Application | None = None
    time_offset_in_minutes: float | None = None


class Property(WireModel):
    token: str | None = None


class VisitorId(WireModel):
    tnt_id: str | None = None
    third_party_id: str | None = None
    marketing_cloud_visitor_id: str | None = None


class TraceRequest(WireModel):
    authorization_token: str | None = None
    usage: dict[str, str] | None = None


# ---------------------------------------------------------------------------
# Request items
# ---------------------------------------------------------------------------


class MboxRequest(WireModel):
    name: str | None = None
    index: int | None = None
    address: Address | None = None
    parameters: dict[str, Any] | None = None
    profile_parameters: dict[str, Any] | None = None


class ViewRequest(WireModel):
    name: str | None = None
    key: str | None = None
    address: Address | None = None
    parameters: dict[str, Any] | None = None
    profile_parameters: dict[str, Any] | None = None


class PageLoadRequest(WireModel):
    address: Address | None = None
    parameters: dict[str, Any] | None = None
    profile_parameters: dict[str, Any] | None = None


class PrefetchRequest(WireModel):
    mboxes: list[MboxRequest] = Field(default_factory=list)
    views: list[ViewRequest] = Field(default_factory=list)
    page_load: PageLoadRequest | None = None


class ExecuteRequest(WireModel):
    mboxes: list[MboxRequest] = Field(default_factory=list)
    page_load: PageLoadRequest | None = None


class DeliveryRequest(WireModel):
    request_id: str | None = None
    id: VisitorId | None = None
    context: Context = Field(default_factory=Context)
    property: Property | None = None
    trace: TraceRequest | None = None
    prefetch: PrefetchRequest | None = None
    execute: ExecuteRequest | None = None


# ---------------------------------------------------------------------------
# Response items
# ---------------------------------------------------------------------------


class Option(WireModel):
    type: str | None = None
    content: Any = None
    event_token: str | None = None
    response_tokens: dict[str, Any] | None = None


class Metric(WireModel):
    type: MetricType | None = None
    selector: str | None = None
    event_token: str | None = None


class MboxResponse(WireModel):
    index: int | None = None
    name: str | None = None
    options: list[Option] = Field(default_factory=list)
    metrics: list[Metric] = Field(default_factory=list)
    trace: dict[str, Any] | None = None


class PrefetchMboxResponse(MboxResponse):
    state: str | None = None


class View(WireModel):
    name: str | None = None
    key: str | None = None
    state: str | None = None
    options: list[Option] = Field(default_factory=list)
    metrics: list[Metric] = Field(default_factory=list)
    trace: dict[str, Any] | None = None


class PageLoadResponse(WireModel):
    state: str | None = None
    options: list[Option] = Field(default_factory=list)
    metrics: list[Metric] = Field(default_factory=list)
    trace: dict[str, Any] | None = None


class PrefetchResponse(WireModel):
    mboxes: list[PrefetchMboxResponse] = Field(default_factory=list)
    views: list[View] = Field(default_factory=list)
    page_load: PageLoadResponse | None = None


class ExecuteResponse(WireModel):
    mboxes: list[MboxResponse] = Field(default_factory=list)
    page_load: PageLoadResponse | None = None


class DeliveryResponse(WireModel):
    status: int = 200
    request_id: str | None = None
    client: str | None = None
    id: VisitorId | None = None
    prefetch: PrefetchResponse | None = None
    execute: ExecuteResponse | None = None


# ---------------------------------------------------------------------------
# Notifications
# ---------------------------------------------------------------------------


class NotificationMbox(WireModel):
    name: str | None = None
    state: str | None = None


class NotificationView(WireModel):
    name: str | None = None
    key: str | None = None
    state: str | None = None


class Notification(WireModel):
    id: str
    impression_id: str | None = None
    type: MetricType = MetricType.display
    timestamp: int
    tokens: list[str] = Field(default_factory=list)
    mbox: NotificationMbox | None = None
    view: NotificationView | None = None


# ---------------------------------------------------------------------------
# Host SDK envelopes
# ---------------------------------------------------------------------------


class TargetDeliveryRequest(BaseModel):
    """A delivery request plus the host-side session it belongs to."""

    request: DeliveryRequest = Field(default_factory=DeliveryRequest)
    session_id: str | None = Field(default=None, description="Host session identifier")


class TargetDeliveryResponse(BaseModel):
    """Locally assembled response plus the notifications it produced."""

    request: TargetDeliveryRequest
    response: DeliveryResponse
    status: int = Field(..., description="HTTP-like status of the local decision")
    message: str = Field(default="", description="Human-readable status message")
    notifications: list[Notification] = Field(default_factory=list)
