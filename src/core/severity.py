"""
Severity Lattice
================

Total orderings shared by health statuses and escalation tiers.

    ok < degraded < down
    none < warning < alert

``worst`` is idempotent, commutative and associative, so folding it over
any collection gives the same answer regardless of order.
"""

from functools import reduce
from typing import Iterable, TypeVar, Union

from src.config import ComponentStatus, EscalationTier

Severity = TypeVar("Severity", ComponentStatus, EscalationTier)

_STATUS_RANK = {
    ComponentStatus.OK: 0,
    ComponentStatus.DEGRADED: 1,
    ComponentStatus.DOWN: 2,
}

_TIER_RANK = {
    EscalationTier.NONE: 0,
    EscalationTier.WARNING: 1,
    EscalationTier.ALERT: 2,
}


def rank(value: Union[ComponentStatus, EscalationTier]) -> int:
    """Return the position of a status or tier in its ordering."""
    if isinstance(value, ComponentStatus):
        return _STATUS_RANK[value]
    if isinstance(value, EscalationTier):
        return _TIER_RANK[value]
    raise TypeError(f"Not a severity value: {value!r}")


def worst(a: Severity, b: Severity) -> Severity:
    """Return whichever argument ranks higher."""
    return b if rank(b) > rank(a) else a


def worst_of(values: Iterable[ComponentStatus]) -> ComponentStatus:
    """
    Fold ``worst`` over component statuses.

    An empty collection means nothing reported, which is treated as down.
    """
    values = list(values)
    if not values:
        return ComponentStatus.DOWN
    return reduce(worst, values)
