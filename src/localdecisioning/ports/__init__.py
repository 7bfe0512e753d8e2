"""Port interfaces (Protocols).

Services depend only on these, never on concrete adapters.
No httpx or other infrastructure imports allowed here.
"""

from .artifact_transport import ArtifactResponse, ArtifactTransport
from .geo import GeoProvider
from .id_gen import NotificationIdProvider, UuidNotificationIdProvider, UuidVisitorIdProvider, VisitorIdProvider
from .notifications import NotificationSink
from .rule_source import RuleSource

__all__ = [
    "ArtifactResponse",
    "ArtifactTransport",
    "GeoProvider",
    "NotificationIdProvider",
    "NotificationSink",
    "RuleSource",
    "UuidNotificationIdProvider",
    "UuidVisitorIdProvider",
    "VisitorIdProvider",
]
