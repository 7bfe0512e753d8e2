"""Composition root: the single place where all wiring happens.

Call ``build_rule_loader()`` or ``build_decisioning_service()`` to get a
fully-constructed object with real adapters. No ad-hoc construction
elsewhere.
"""

from __future__ import annotations

from .adapters.httpx_geo import HttpxGeoProvider
from .adapters.httpx_transport import HttpxArtifactTransport
from .config.runtime import DecisioningSettings, get_settings
from .domain.decision_handler import DecisionHandler
from .errors import ExceptionHandler
from .ports.notifications import NotificationSink
from .services.decisioning_service import LocalDecisioningService
from .services.rule_loader import RuleLoader


def build_rule_loader(
    settings: DecisioningSettings | None = None,
    exception_handler: ExceptionHandler | None = None,
) -> RuleLoader:
    """Construct a RuleLoader fetching over httpx. The loader is not started."""
    settings = settings or get_settings()
    return RuleLoader(
        settings,
        HttpxArtifactTransport(settings),
        exception_handler=exception_handler,
    )


def build_decisioning_service(
    settings: DecisioningSettings | None = None,
    exception_handler: ExceptionHandler | None = None,
    notification_sink: NotificationSink | None = None,
) -> LocalDecisioningService:
    """Construct a LocalDecisioningService with real adapters."""
    settings = settings or get_settings()
    return LocalDecisioningService(
        settings,
        build_rule_loader(settings, exception_handler),
        decision_handler=DecisionHandler(
            settings.client,
            geo_provider=HttpxGeoProvider(settings),
            exception_handler=exception_handler,
        ),
        notification_sink=notification_sink,
        exception_handler=exception_handler,
    )
