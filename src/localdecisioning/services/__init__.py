"""Services: rule loading and request orchestration."""

from .decisioning_service import LocalDecisioningService
from .rule_loader import LoaderState, RuleLoader

__all__ = [
    "LoaderState",
    "LocalDecisioningService",
    "RuleLoader",
]
