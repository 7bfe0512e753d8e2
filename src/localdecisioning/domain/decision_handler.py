"""DecisionHandler: evaluate the rules of one request item and assemble its response slot."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Callable

from pydantic import ValidationError

from ..errors import ExceptionHandler, RuleEvaluationError, report
from ..models.delivery import (
    ExecuteResponse,
    MboxResponse,
    Metric,
    MetricType,
    Notification,
    NotificationMbox,
    NotificationView,
    Option,
    PageLoadResponse,
    PrefetchMboxResponse,
    PrefetchResponse,
    TargetDeliveryRequest,
    View,
)
from ..ports.geo import GeoProvider
from ..ports.id_gen import NotificationIdProvider, UuidNotificationIdProvider
from . import json_logic
from .allocation import compute_allocation
from .collators import collate_custom, collate_geo, collate_page, collate_time, collate_user
from .details import DetailsKind, RequestDetails
from .rule_set import Rule, RuleSet
from .trace_handler import TraceHandler

_LOGGER = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def property_token_mismatch(rule_tokens: frozenset[str], request_token: str | None) -> bool:
    """True only when both sides carry tokens and the request's is not among the rule's."""
    if not request_token or not rule_tokens:
        return False
    return request_token not in rule_tokens


class DecisionHandler:
    """Run the rule loop for one request item.

    Rules are tried in list order. For mboxes the first applied rule wins; for
    views and page-loads every matching rule contributes, except that a rule
    whose ``rule_key`` was already applied for this item is skipped.
    """

    def __init__(
        self,
        client: str,
        geo_provider: GeoProvider | None = None,
        id_provider: NotificationIdProvider | None = None,
        exception_handler: ExceptionHandler | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._client = client
        self._geo = geo_provider
        self._ids = id_provider or UuidNotificationIdProvider()
        self._on_error = exception_handler
        self._clock = clock or _utcnow

    def close(self) -> None:
        if self._geo is not None:
            self._geo.close()

    def handle_details(
        self,
        request: TargetDeliveryRequest,
        rule_set: RuleSet,
        visitor_id: str,
        details: RequestDetails,
        prefetch_response: PrefetchResponse | None,
        execute_response: ExecuteResponse | None,
        notifications: list[Notification],
        trace_handler: TraceHandler | None = None,
    ) -> bool:
        """Fill the item's response slot; returns True if any rule was applied."""
        if trace_handler is not None:
            trace_handler.update_request(request, details, execute_response is not None)
        property_token = request.request.property.token if request.request.property else None
        geo_params = self._geo_params(request, rule_set)
        handled = False
        applied_keys: set[str] = set()

        for rule in self._details_rules(details, rule_set):
            if property_token_mismatch(rule.property_tokens, property_token):
                continue
            if rule.rule_key is not None and rule.rule_key in applied_keys:
                continue
            consequence = self._execute_rule(request, details, visitor_id, rule, geo_params, trace_handler)
            applied = self._apply_consequence(
                consequence,
                rule,
                details,
                rule_set,
                prefetch_response,
                execute_response,
                notifications,
                trace_handler,
            )
            if not applied:
                continue
            handled = True
            if details.kind == DetailsKind.mbox:
                break
            if rule.rule_key is not None:
                applied_keys.add(rule.rule_key)

        if not handled:
            self._unhandled_response(details, prefetch_response, execute_response, trace_handler)
        return handled

    # ------------------------------------------------------------------
    # Rule selection and evaluation
    # ------------------------------------------------------------------

    @staticmethod
    def _details_rules(details: RequestDetails, rule_set: RuleSet) -> tuple[Rule, ...]:
        if details.kind == DetailsKind.view:
            return rule_set.view_rules(details.name)
        if details.kind == DetailsKind.mbox:
            return rule_set.mbox_rules(details.name)
        return rule_set.mbox_rules(rule_set.global_mbox)

    def build_context(
        self,
        request: TargetDeliveryRequest,
        details: RequestDetails,
        visitor_id: str,
        rule: Rule,
        geo_params: dict[str, Any],
    ) -> dict[str, Any]:
        """Fresh evaluation context for one (item, rule) pair."""
        delivery = request.request
        context: dict[str, Any] = {
            "allocation": compute_allocation(self._client, rule.activity_id, visitor_id),
        }
        context.update(collate_time(self._clock()))
        context["user"] = collate_user(delivery, details)
        context["page"] = collate_page(delivery, details)
        context["referring"] = collate_page(delivery, details, referring=True)
        context["mbox"] = collate_custom(delivery, details)
        context["geo"] = dict(geo_params)
        return context

    def _execute_rule(
        self,
        request: TargetDeliveryRequest,
        details: RequestDetails,
        visitor_id: str,
        rule: Rule,
        geo_params: dict[str, Any],
        trace_handler: TraceHandler | None,
    ) -> dict[str, Any] | None:
        context = self.build_context(request, details, visitor_id, rule, geo_params)
        _LOGGER.debug("rule_context", extra={"activity_id": rule.activity_id, "context": context})
        try:
            result = json_logic.apply(rule.condition, context)
        except RuleEvaluationError as e:
            _LOGGER.warning(
                "rule_evaluation_failed",
                extra={"activity_id": rule.activity_id, "error": e.message},
            )
            report(
                self._on_error,
                RuleEvaluationError(
                    "Hit exception while evaluating local-decisioning rule",
                    details={"activityId": rule.activity_id, "error": e.message},
                ),
            )
            return None
        matched = isinstance(result, bool) and result
        if trace_handler is not None:
            trace_handler.add_campaign(rule, context, matched)
        return rule.consequence if matched else None

    def _geo_params(self, request: TargetDeliveryRequest, rule_set: RuleSet) -> dict[str, Any]:
        if not rule_set.geo_targeting_enabled:
            return {}
        geo = request.request.context.geo
        if geo is None:
            return {}
        if not geo.is_unresolved:
            return collate_geo(geo)
        if self._geo is None:
            return {}
        return collate_geo(self._geo.lookup(geo.ip_address))

    # ------------------------------------------------------------------
    # Consequence application
    # ------------------------------------------------------------------

    def _apply_consequence(
        self,
        consequence: dict[str, Any] | None,
        rule: Rule,
        details: RequestDetails,
        rule_set: RuleSet,
        prefetch_response: PrefetchResponse | None,
        execute_response: ExecuteResponse | None,
        notifications: list[Notification],
        trace_handler: TraceHandler | None,
    ) -> bool:
        if not consequence:
            return False
        try:
            if details.kind == DetailsKind.view:
                view = View.model_validate(consequence)
                options, metrics = [], []
            else:
                view = None
                options = [Option.model_validate(o) for o in consequence.get("options") or []]
                metrics = [Metric.model_validate(m) for m in consequence.get("metrics") or []]
        except ValidationError as e:
            _LOGGER.warning("consequence_invalid", extra={"activity_id": rule.activity_id})
            report(
                self._on_error,
                RuleEvaluationError(
                    "Invalid local-decisioning rule consequence",
                    details={"activityId": rule.activity_id, "errors": e.errors(include_url=False)},
                ),
            )
            return False

        if view is not None:
            # views are prefetch-only
            if prefetch_response is None:
                return False
            view.trace = self._current_trace(trace_handler)
            prefetch_response.views.append(view)
            return True

        if prefetch_response is None and execute_response is None:
            return False
        is_execute = execute_response is not None
        if is_execute:
            notification = self._create_notification(details, options, rule_set)
            if trace_handler is not None:
                trace_handler.add_notification(rule, notification)
            notifications.append(notification)
            for option in options:
                option.event_token = None

        if details.kind == DetailsKind.mbox:
            mbox_cls = PrefetchMboxResponse if prefetch_response is not None else MboxResponse
            mbox_response = mbox_cls(
                name=details.name,
                index=details.index,
                options=options,
                metrics=metrics,
                trace=self._current_trace(trace_handler),
            )
            if prefetch_response is not None:
                prefetch_response.mboxes.append(mbox_response)
            else:
                execute_response.mboxes.append(mbox_response)
            return True

        section = prefetch_response if prefetch_response is not None else execute_response
        if section.page_load is None:
            section.page_load = PageLoadResponse()
        page_load = section.page_load
        page_load.trace = self._current_trace(trace_handler)
        page_load.options.extend(options)
        for metric in metrics:
            if metric not in page_load.metrics:
                page_load.metrics.append(metric)
        return True

    def _create_notification(
        self,
        details: RequestDetails,
        options: list[Option],
        rule_set: RuleSet,
    ) -> Notification:
        notification = Notification(
            id=self._ids.new_notification_id(),
            impression_id=self._ids.new_impression_id(),
            type=MetricType.display,
            timestamp=int(self._clock().timestamp() * 1000),
            tokens=[o.event_token for o in options if o.event_token],
        )
        if details.kind == DetailsKind.view:
            notification.view = NotificationView(name=details.name, key=details.key)
        elif details.kind == DetailsKind.mbox:
            notification.mbox = NotificationMbox(name=details.name)
        else:
            notification.mbox = NotificationMbox(name=rule_set.global_mbox)
        return notification

    def _unhandled_response(
        self,
        details: RequestDetails,
        prefetch_response: PrefetchResponse | None,
        execute_response: ExecuteResponse | None,
        trace_handler: TraceHandler | None,
    ) -> None:
        trace = self._current_trace(trace_handler)
        if details.kind == DetailsKind.view:
            if prefetch_response is not None:
                prefetch_response.views.append(View(name=details.name, key=details.key, trace=trace))
        elif details.kind == DetailsKind.mbox:
            if prefetch_response is not None:
                prefetch_response.mboxes.append(
                    PrefetchMboxResponse(name=details.name, index=details.index, trace=trace)
                )
            elif execute_response is not None:
                execute_response.mboxes.append(
                    MboxResponse(name=details.name, index=details.index, trace=trace)
                )
        else:
            section = prefetch_response if prefetch_response is not None else execute_response
            if section is not None and section.page_load is None:
                section.page_load = PageLoadResponse(trace=trace)

    @staticmethod
    def _current_trace(trace_handler: TraceHandler | None) -> dict[str, Any] | None:
        if trace_handler is None:
            return None
        return trace_handler.get_current_trace()
