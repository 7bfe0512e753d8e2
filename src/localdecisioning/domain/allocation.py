"""Deterministic traffic allocation (bucketing).

The hash is MurmurHash3 x86 32-bit with a fixed seed over the UTF-8 bytes of
``"<client>.<activityId>.<visitorId>"``. Changing it reshuffles every visitor,
so it is tied to the rule-set major version.
"""

from __future__ import annotations

from typing import Any

import mmh3

HASH_SEED = 0
TOTAL_BUCKETS = 10_000


def truncate_visitor_id(visitor_id: str) -> str:
    """Drop everything after the first '.' (location hint suffix of tnt ids)."""
    index = visitor_id.find(".")
    if index > 0:
        return visitor_id[:index]
    return visitor_id


def compute_allocation(client: str, activity_seed: Any, visitor_id: str) -> float:
    """Return a stable percentage in [0, 100) for (client, activity, visitor)."""
    key = f"{client}.{activity_seed}.{truncate_visitor_id(visitor_id)}"
    output = mmh3.hash(key, HASH_SEED, signed=True)
    return (abs(output) % TOTAL_BUCKETS) / TOTAL_BUCKETS * 100.0
