"""Domain types and pure evaluation helpers."""

from .allocation import compute_allocation
from .details import DetailsKind, RequestDetails
from .rule_set import Rule, RuleIndex, RuleSet, parse_rule_set

__all__ = [
    "DetailsKind",
    "RequestDetails",
    "Rule",
    "RuleIndex",
    "RuleSet",
    "compute_allocation",
    "parse_rule_set",
]
