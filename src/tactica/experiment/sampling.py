"""
Parameter-space samplers for balance exploration.

A parameter space maps a parameter name to an inclusive ``(low, high)`` range.
Every sampler returns ``n`` dicts keyed by parameter name, in the space's
insertion order.
"""

from __future__ import annotations

import numpy as np

ParameterSpace = dict[str, tuple[float, float]]

DEFAULT_SPACE: ParameterSpace = {
    "physical_defense": (0.01, 0.05),
    "magic_resistance": (0.01, 0.04),
    "critical_rate": (0.1, 0.2),
    "healing_efficiency": (0.8, 1.2),
    "gold_scaling": (0.9, 1.5),
    "interest_rate": (0.05, 0.15),
}

_BITS = 30


def validate_space(space: ParameterSpace, n: int = 0) -> None:
    if n < 0:
        raise ValueError(f"Sample count must be non-negative, got {n}")
    for name, (low, high) in space.items():
        if low > high:
            raise ValueError(f"Parameter '{name}' has low {low} > high {high}")


def _radical_inverse(i: int) -> float:
    """Reverse the low 30 bits of ``i`` and scale into [0, 1)."""
    out = 0
    for _ in range(_BITS):
        out = (out << 1) | (i & 1)
        i >>= 1
    return out / (1 << _BITS)


def low_discrepancy_samples(space: ParameterSpace, n: int) -> list[dict[str, float]]:
    """
    Deterministic low-discrepancy points.

    Sample ``i`` takes the Gray code of ``i``, reverses its bits, and shifts
    dimension ``j`` by ``j * 0.1`` (mod 1) so dimensions are not identical.
    """
    validate_space(space, n)
    samples = []
    for i in range(n):
        base = _radical_inverse(i ^ (i >> 1))
        point = {}
        for j, (name, (low, high)) in enumerate(space.items()):
            pos = (base + j * 0.1) % 1.0
            point[name] = low + pos * (high - low)
        samples.append(point)
    return samples


def stratified_samples(
    space: ParameterSpace, n: int, rng: np.random.Generator,
) -> list[dict[str, float]]:
    """
    Latin hypercube samples.

    Each dimension is cut into ``n`` equal strata; every stratum receives
    exactly one point, and strata are paired across dimensions by an
    independent random permutation per dimension.
    """
    validate_space(space, n)
    if n == 0:
        return []
    columns = {}
    for name, (low, high) in space.items():
        strata = rng.permutation(n)
        pos = (strata + rng.random(n)) / n
        columns[name] = low + pos * (high - low)
    return [{name: float(col[i]) for name, col in columns.items()} for i in range(n)]


def random_samples(
    space: ParameterSpace, n: int, rng: np.random.Generator,
) -> list[dict[str, float]]:
    """Independent uniform samples."""
    validate_space(space, n)
    return [
        {name: float(rng.uniform(low, high)) for name, (low, high) in space.items()}
        for _ in range(n)
    ]


SAMPLERS = ("low_discrepancy", "stratified", "random")


def sample(
    space: ParameterSpace, n: int, method: str = "low_discrepancy",
    rng: np.random.Generator | None = None,
) -> list[dict[str, float]]:
    """Dispatch to a sampler by name."""
    if method == "low_discrepancy":
        return low_discrepancy_samples(space, n)
    rng = rng if rng is not None else np.random.default_rng()
    if method == "stratified":
        return stratified_samples(space, n, rng)
    if method == "random":
        return random_samples(space, n, rng)
    raise ValueError(f"Unknown sampling method '{method}'. Available: {list(SAMPLERS)}")
