"""
Exit Status Classifier — Fold job statuses into one code and severity band.

## Combination

    or   overall = bitwise OR of all statuses (default; keeps every flag)
    max  overall = largest status (ordinal severity)

Both are order-independent.

## Bands

Configured as ascending {max_code, band} rules; the first rule whose
max_code >= overall wins, anything above the last rule is Error.
Regardless of configuration, 0 is always Success and any code with the
fatal or failure bit (>= 8) is always Error.

Default rules:

    0-1  Success   nothing to do / files copied
    2-7  Warning   extra or mismatched items at the destination
    8+   Error     copy failures or fatal error
"""

from __future__ import annotations

from functools import reduce
from operator import or_
from typing import Iterable, Sequence, Tuple

from ..config.settings import DEFAULT_SEVERITY_RULES, SeverityRule
from ..models.outcome import SeverityBand

# Lowest status with the copy-failure bit set.
ERROR_FLOOR = 8

COMBINE_POLICIES = ("or", "max")


def combine(statuses: Iterable[int], policy: str = "or") -> int:
    """Combine job statuses into one overall status."""
    if policy not in COMBINE_POLICIES:
        raise ValueError(f"Unknown combine policy: {policy!r}")
    values = list(statuses)
    if not values:
        return 0
    if policy == "or":
        return reduce(or_, values, 0)
    return max(values)


def band_for(code: int, rules: Sequence[SeverityRule] = DEFAULT_SEVERITY_RULES) -> SeverityBand:
    """Map an overall status to its severity band."""
    if code == 0:
        return SeverityBand.SUCCESS
    if code >= ERROR_FLOOR:
        return SeverityBand.ERROR
    for rule in rules:
        if code <= rule.max_code:
            return rule.band
    return SeverityBand.ERROR


def classify(
    statuses: Iterable[int],
    policy: str = "or",
    rules: Sequence[SeverityRule] = DEFAULT_SEVERITY_RULES,
) -> Tuple[int, SeverityBand]:
    """
    Classify a set of raw job statuses.

    Returns (overall_code, band).
    """
    code = combine(statuses, policy)
    return code, band_for(code, rules)
