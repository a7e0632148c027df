"""Invariant checking shared by the combat and economy engines."""

from __future__ import annotations

import logging

logger = logging.getLogger(__name__)


class InvariantViolation(RuntimeError):
    """A core invariant (health or gold bounds) was broken. Always a bug."""


def enforce_bounds(
    value: float, low: float, high: float | None, what: str, strict: bool,
) -> float:
    """
    Return ``value`` clamped to ``[low, high]``.

    With ``strict`` an out-of-range value raises instead of being clamped.
    """
    if value >= low and (high is None or value <= high):
        return value
    message = f"{what} out of bounds: {value} not in [{low}, {high}]"
    if strict:
        raise InvariantViolation(message)
    logger.warning("Clamping %s", message)
    if value < low:
        return low
    return high
