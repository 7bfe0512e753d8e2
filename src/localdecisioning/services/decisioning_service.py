"""LocalDecisioningService: request orchestration for on-device decisions.

Public methods:
- ``execute_request(request) -> TargetDeliveryResponse``
- ``evaluate_local_execution(request) -> LocalExecutionEvaluation``

All evaluation runs synchronously on the caller's thread against the rule set
the loader has most recently published. MCP tools and the CLI are thin
wrappers around this class.
"""

from __future__ import annotations

import logging
import uuid

from ..config.runtime import DecisioningSettings
from ..domain.decision_handler import DecisionHandler
from ..domain.details import RequestDetails
from ..domain.execution_evaluator import LocalExecutionEvaluation, LocalExecutionEvaluator
from ..domain.trace_handler import TraceHandler
from ..errors import ExceptionHandler
from ..models.delivery import (
    DeliveryRequest,
    DeliveryResponse,
    ExecuteResponse,
    Notification,
    PrefetchResponse,
    TargetDeliveryRequest,
    TargetDeliveryResponse,
    VisitorId,
)
from ..ports.id_gen import UuidVisitorIdProvider, VisitorIdProvider
from ..ports.notifications import NotificationSink
from .rule_loader import RuleLoader

_LOGGER = logging.getLogger(__name__)

MESSAGE_OK = "Local-decisioning response"
MESSAGE_RULES_UNAVAILABLE = "Local-decisioning rules not available"


def prefetch_details(request: DeliveryRequest) -> list[RequestDetails]:
    """Prefetch items in evaluation order: mboxes, views, then the page-load."""
    if request.prefetch is None:
        return []
    details = [RequestDetails.for_mbox(m) for m in request.prefetch.mboxes]
    details.extend(RequestDetails.for_view(v) for v in request.prefetch.views)
    if request.prefetch.page_load is not None:
        details.append(RequestDetails.for_page_load(request.prefetch.page_load))
    return details


def execute_details(request: DeliveryRequest) -> list[RequestDetails]:
    """Execute items in evaluation order: mboxes, then the page-load."""
    if request.execute is None:
        return []
    details = [RequestDetails.for_mbox(m) for m in request.execute.mboxes]
    if request.execute.page_load is not None:
        details.append(RequestDetails.for_page_load(request.execute.page_load))
    return details


class LocalDecisioningService:
    """Assemble a delivery response from locally evaluated rules."""

    def __init__(
        self,
        settings: DecisioningSettings,
        rule_loader: RuleLoader,
        decision_handler: DecisionHandler | None = None,
        evaluator: LocalExecutionEvaluator | None = None,
        notification_sink: NotificationSink | None = None,
        visitor_id_provider: VisitorIdProvider | None = None,
        exception_handler: ExceptionHandler | None = None,
    ) -> None:
        self._settings = settings
        self._loader = rule_loader
        self._handler = decision_handler or DecisionHandler(
            settings.client, exception_handler=exception_handler
        )
        self._evaluator = evaluator or LocalExecutionEvaluator(rule_loader)
        self._sink = notification_sink
        self._visitor_ids = visitor_id_provider or UuidVisitorIdProvider()

    @property
    def rule_loader(self) -> RuleLoader:
        return self._loader

    def close(self) -> None:
        """Stop the loader and release its transport and the geo client."""
        self._loader.close()
        self._handler.close()

    def evaluate_local_execution(
        self, request: TargetDeliveryRequest | None
    ) -> LocalExecutionEvaluation:
        return self._evaluator.evaluate(request)

    def execute_request(self, request: TargetDeliveryRequest) -> TargetDeliveryResponse:
        delivery = request.request
        request_id = delivery.request_id or str(uuid.uuid4())
        rule_set = self._loader.get_latest_rules()
        if rule_set is None:
            _LOGGER.warning("rules_unavailable", extra={"request_id": request_id})
            return TargetDeliveryResponse(
                request=request,
                response=DeliveryResponse(
                    status=500,
                    request_id=request_id,
                    client=self._settings.client,
                    id=delivery.id,
                ),
                status=500,
                message=MESSAGE_RULES_UNAVAILABLE,
            )

        visitor_id, response_id = self._resolve_visitor_id(delivery)
        trace_handler = None
        if delivery.trace is not None:
            trace_handler = TraceHandler(
                self._settings.client,
                rule_set,
                self._loader.status(),
                request,
                visitor_id=response_id,
            )

        notifications: list[Notification] = []
        prefetch_response = None
        execute_response = None
        if delivery.prefetch is not None:
            prefetch_response = PrefetchResponse()
            for details in prefetch_details(delivery):
                self._handler.handle_details(
                    request,
                    rule_set,
                    visitor_id,
                    details,
                    prefetch_response,
                    None,
                    notifications,
                    trace_handler,
                )
        if delivery.execute is not None:
            execute_response = ExecuteResponse()
            for details in execute_details(delivery):
                self._handler.handle_details(
                    request,
                    rule_set,
                    visitor_id,
                    details,
                    None,
                    execute_response,
                    notifications,
                    trace_handler,
                )

        if notifications and self._sink is not None:
            self._sink.send(notifications)

        _LOGGER.info(
            "local_decision_complete",
            extra={
                "request_id": request_id,
                "rules_version": rule_set.version,
                "notifications": len(notifications),
            },
        )
        return TargetDeliveryResponse(
            request=request,
            response=DeliveryResponse(
                status=200,
                request_id=request_id,
                client=self._settings.client,
                id=response_id,
                prefetch=prefetch_response,
                execute=execute_response,
            ),
            status=200,
            message=MESSAGE_OK,
            notifications=notifications,
        )

    def _resolve_visitor_id(self, delivery: DeliveryRequest) -> tuple[str, VisitorId]:
        """Pick the id used for allocation, minting a tntId when the request has none."""
        ids = delivery.id
        if ids is not None:
            for candidate in (ids.tnt_id, ids.marketing_cloud_visitor_id, ids.third_party_id):
                if candidate:
                    return candidate, ids
        tnt_id = self._visitor_ids.new_visitor_id()
        if ids is None:
            return tnt_id, VisitorId(tnt_id=tnt_id)
        return tnt_id, ids.model_copy(update={"tnt_id": tnt_id})
