"""Delivery request/response models."""

from .attributes import Attributes
from .delivery import (
    Address,
    Application,
    Browser,
    ChannelType,
    Context,
    DeliveryRequest,
    DeliveryResponse,
    ExecuteRequest,
    ExecuteResponse,
    Geo,
    MboxRequest,
    MboxResponse,
    Metric,
    MetricType,
    Notification,
    NotificationMbox,
    NotificationView,
    Option,
    PageLoadRequest,
    PageLoadResponse,
    PrefetchMboxResponse,
    PrefetchRequest,
    PrefetchResponse,
    Property,
    TargetDeliveryRequest,
    TargetDeliveryResponse,
    TraceRequest,
    View,
    ViewRequest,
    VisitorId,
)

__all__ = [
    "Address",
    "Application",
    "Attributes",
    "Browser",
    "ChannelType",
    "Context",
    "DeliveryRequest",
    "DeliveryResponse",
    "ExecuteRequest",
    "ExecuteResponse",
    "Geo",
    "MboxRequest",
    "MboxResponse",
    "Metric",
    "MetricType",
    "Notification",
    "NotificationMbox",
    "NotificationView",
    "Option",
    "PageLoadRequest",
    "PageLoadResponse",
    "PrefetchMboxResponse",
    "PrefetchRequest",
    "PrefetchResponse",
    "Property",
    "TargetDeliveryRequest",
    "TargetDeliveryResponse",
    "TraceRequest",
    "View",
    "ViewRequest",
    "VisitorId",
]
