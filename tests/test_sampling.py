"""Tests for parameter-space samplers."""

import numpy as np
import pytest

from tactica.experiment.sampling import (
    DEFAULT_SPACE,
    low_discrepancy_samples,
    random_samples,
    sample,
    stratified_samples,
)

SPACE = {"a": (0.0, 1.0), "b": (0.0, 10.0)}


class TestLowDiscrepancy:
    def test_first_points(self):
        points = low_discrepancy_samples(SPACE, 4)
        assert [p["a"] for p in points] == pytest.approx([0.0, 0.5, 0.75, 0.25])
        assert points[0]["b"] == pytest.approx(1.0)
        assert points[2]["b"] == pytest.approx(8.5)

    def test_deterministic(self):
        assert low_discrepancy_samples(DEFAULT_SPACE, 16) == low_discrepancy_samples(DEFAULT_SPACE, 16)

    def test_within_bounds(self):
        for point in low_discrepancy_samples(DEFAULT_SPACE, 64):
            assert list(point) == list(DEFAULT_SPACE)
            for name, (low, high) in DEFAULT_SPACE.items():
                assert low <= point[name] <= high

    def test_well_spread(self):
        values = sorted(p["a"] for p in low_discrepancy_samples(SPACE, 16))
        assert values == pytest.approx([i / 16 for i in range(16)])


class TestStratified:
    def test_one_point_per_stratum(self):
        n = 10
        points = stratified_samples(SPACE, n, np.random.default_rng(0))
        for name, (low, high) in SPACE.items():
            strata = sorted(int((p[name] - low) / (high - low) * n) for p in points)
            assert strata == list(range(n))

    def test_seeded(self):
        a = stratified_samples(SPACE, 5, np.random.default_rng(3))
        b = stratified_samples(SPACE, 5, np.random.default_rng(3))
        assert a == b

    def test_zero(self):
        assert stratified_samples(SPACE, 0, np.random.default_rng(0)) == []


class TestRandom:
    def test_within_bounds(self):
        for point in random_samples(SPACE, 50, np.random.default_rng(1)):
            assert 0.0 <= point["a"] <= 1.0
            assert 0.0 <= point["b"] <= 10.0


class TestDispatch:
    @pytest.mark.parametrize("method", ["low_discrepancy", "stratified", "random"])
    def test_methods(self, method):
        assert len(sample(SPACE, 7, method, np.random.default_rng(0))) == 7

    def test_unknown_method(self):
        with pytest.raises(ValueError, match="Unknown sampling method"):
            sample(SPACE, 3, "sobol")

    def test_negative_count(self):
        with pytest.raises(ValueError):
            sample(SPACE, -1)

    def test_inverted_range(self):
        with pytest.raises(ValueError):
            sample({"x": (1.0, 0.0)}, 3)

    def test_degenerate_range(self):
        points = sample({"x": (2.0, 2.0)}, 3)
        assert all(p["x"] == 2.0 for p in points)
