"""RuleLoader: background polling of the rule-set artifact.

A single daemon timer drives the fetch loop. The loader moves through
``idle -> bootstrapping -> steady`` on the first published rule set, or to
``disabled`` once bootstrap retries are exhausted. ``stop()`` moves it to
``stopped``; ``start()`` restarts from ``stopped`` or ``disabled`` with a fresh
retry budget. Readers call
``get_latest_rules()``, which only returns the currently published reference
and never touches the network.
"""

from __future__ import annotations

import functools
import logging
import threading
from datetime import datetime, timezone
from enum import Enum
from typing import Callable

from ..config.runtime import DecisioningSettings
from ..domain.rule_set import RuleSet, parse_rule_set
from ..domain.trace_handler import ArtifactStatus
from ..errors import ArtifactError, ExceptionHandler, report
from ..ports.artifact_transport import ArtifactTransport

_LOGGER = logging.getLogger(__name__)

MIN_POLLING_INTERVAL_SECONDS = 300
MAX_RETRIES = 10
RETRY_DELAY_SECONDS = 10

TimerFactory = Callable[[float, Callable[[], None]], threading.Timer]


class LoaderState(str, Enum):
    idle = "idle"
    bootstrapping = "bootstrapping"
    steady = "steady"
    disabled = "disabled"
    stopped = "stopped"


def next_fetch_delay(has_rules: bool, retries: int, polling_interval: float) -> float | None:
    """Seconds until the next fetch, or None when the loader should give up.

    Once a rule set has been published the loader only ever polls at the normal
    interval. Before that, attempt ``n`` is retried after ``n * 10`` seconds
    until ``MAX_RETRIES`` is exceeded.
    """
    if has_rules:
        return polling_interval
    if retries > MAX_RETRIES:
        return None
    return retries * RETRY_DELAY_SECONDS


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class RuleLoader:
    """Fetches, validates and publishes the rule-set artifact."""

    def __init__(
        self,
        settings: DecisioningSettings,
        transport: ArtifactTransport,
        exception_handler: ExceptionHandler | None = None,
        timer_factory: TimerFactory | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._settings = settings
        self._transport = transport
        self._on_error = exception_handler
        self._timer_factory = timer_factory or threading.Timer
        self._clock = clock or _utcnow
        self._lock = threading.Lock()
        self._timer: threading.Timer | None = None
        self._state = LoaderState.idle
        self._rules: RuleSet | None = None
        self._etag: str | None = None
        self._retries = 0
        # bumped by start/stop so a callback from a cancelled timer is ignored
        self._generation = 0
        self._num_fetches = 0
        self._last_fetch: datetime | None = None

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    @property
    def state(self) -> LoaderState:
        return self._state

    @property
    def location(self) -> str:
        return self._settings.artifact_url

    @property
    def polling_interval(self) -> int:
        """Effective refresh interval in seconds."""
        return max(MIN_POLLING_INTERVAL_SECONDS, self._settings.polling_interval_seconds)

    @property
    def num_fetches(self) -> int:
        return self._num_fetches

    @property
    def last_fetch(self) -> datetime | None:
        return self._last_fetch

    @property
    def etag(self) -> str | None:
        return self._etag

    def status(self) -> ArtifactStatus:
        return ArtifactStatus(
            location=self.location,
            polling_interval_ms=self.polling_interval * 1000,
            fetch_count=self._num_fetches,
            last_fetch=self._last_fetch,
        )

    def get_latest_rules(self) -> RuleSet | None:
        return self._rules

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self) -> None:
        """Schedule an immediate fetch. Safe to call more than once.

        A running loader (bootstrapping or steady) ignores the call. A stopped
        or disabled loader starts over with its retry count reset.
        """
        with self._lock:
            if self._state in (LoaderState.bootstrapping, LoaderState.steady):
                return
            if not self._settings.local_decisioning_enabled:
                _LOGGER.info(
                    "local_decisioning_disabled",
                    extra={
                        "decisioning_method": self._settings.decisioning_method.value,
                        "environment": self._settings.local_environment,
                    },
                )
                return
            self._state = LoaderState.bootstrapping
            self._retries = 0
            self._generation += 1
            self._schedule(0)

    def stop(self) -> None:
        with self._lock:
            self._state = LoaderState.stopped
            self._generation += 1
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None

    def close(self) -> None:
        """Stop polling and release the transport."""
        self.stop()
        self._transport.close()

    def refresh(self) -> bool:
        """Fetch once on the caller's thread; returns True on 200 or 304."""
        return self.load_rules()

    def _schedule(self, delay: float) -> None:
        timer = self._timer_factory(delay, functools.partial(self._run, self._generation))
        timer.daemon = True
        self._timer = timer
        timer.start()

    def _run(self, generation: int) -> None:
        if generation != self._generation:
            return
        try:
            self.load_rules()
        except Exception:
            # a raising exception handler must not end the polling loop
            _LOGGER.exception("rule_loader_iteration_failed", extra={"location": self.location})
        with self._lock:
            if generation != self._generation or self._state == LoaderState.stopped:
                return
            has_rules = self._rules is not None
            if has_rules:
                self._state = LoaderState.steady
                self._retries = 0
            else:
                self._retries += 1
            delay = next_fetch_delay(has_rules, self._retries, self.polling_interval)
            if delay is None:
                self._state = LoaderState.disabled
                self._timer = None
                _LOGGER.error(
                    "rule_loader_disabled",
                    extra={"retries": self._retries, "location": self.location},
                )
                report(
                    self._on_error,
                    ArtifactError(
                        "Local-decisioning rule set could not be loaded; giving up",
                        details={"retries": self._retries, "location": self.location},
                    ),
                )
                return
            self._schedule(delay)

    # ------------------------------------------------------------------
    # Fetch protocol
    # ------------------------------------------------------------------

    def load_rules(self) -> bool:
        """GET the artifact and publish it if it is a valid rule set.

        Returns True when a new rule set was published or the server reported
        it unchanged (304). Any failure is logged, reported and leaves the
        currently published rule set in place.
        """
        headers = {"Accept": "application/json"}
        if self._etag:
            headers["If-None-Match"] = self._etag
        try:
            response = self._transport.get(self.location, headers)
        except ArtifactError as e:
            return self._fail(e)
        except Exception as e:
            return self._fail(
                ArtifactError(
                    "Failed to fetch local-decisioning rule set",
                    details={"error": repr(e), "location": self.location},
                )
            )

        if response.status == 304:
            _LOGGER.debug("rules_not_modified", extra={"etag": self._etag})
            self._record_fetch()
            return True
        if response.status != 200:
            return self._fail(
                ArtifactError(
                    f"Received invalid HTTP response while getting local-decisioning rule set: "
                    f"{response.status} {response.reason}".rstrip(),
                    details={"status": response.status, "location": self.location},
                )
            )

        try:
            rule_set = parse_rule_set(
                response.json(), supported_major_version=self._settings.supported_major_version
            )
        except ArtifactError as e:
            return self._fail(e)
        except Exception as e:
            # malformed JSON, or a body nested deeper than the decoder can follow
            return self._fail(
                ArtifactError(
                    "Unable to parse local-decisioning rule set",
                    details={"error": repr(e), "location": self.location},
                )
            )

        with self._lock:
            self._rules = rule_set
            self._etag = response.etag
        self._record_fetch()
        _LOGGER.info(
            "rules_loaded",
            extra={"version": rule_set.version, "etag": response.etag, "location": self.location},
        )
        return True

    def _record_fetch(self) -> None:
        with self._lock:
            self._num_fetches += 1
            self._last_fetch = self._clock()

    def _fail(self, error: ArtifactError) -> bool:
        _LOGGER.warning(
            "rules_load_failed",
            extra={"error": error.message, "details": error.details, "location": self.location},
        )
        report(self._on_error, error)
        return False
