"""Exception taxonomy for local decisioning.

None of these are raised out of the request-evaluation path. Components log
them and forward them to the caller-supplied ``ExceptionHandler``.
"""

from __future__ import annotations

from typing import Any, Callable


class DecisioningError(Exception):
    """Base exception for all local-decisioning errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


class ArtifactError(DecisioningError):
    """
    Raised when the rule-set artifact cannot be used.

    Examples:
    - Non-200/304 HTTP status
    - Body that is not a valid rule set
    - Unsupported major version
    - Transport failure (timeout, connection refused)
    """


class RuleEvaluationError(DecisioningError):
    """
    Raised when a rule condition cannot be compiled or evaluated.

    Examples:
    - Unknown JSON-logic operator
    - Arithmetic on non-numeric context values
    """


ExceptionHandler = Callable[[DecisioningError], None]


def report(handler: ExceptionHandler | None, error: DecisioningError) -> None:
    """Forward ``error`` to ``handler`` if one was configured."""
    if handler is not None:
        handler(error)
