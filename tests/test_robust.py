"""Unit tests for linear_region.robust."""

import numpy as np
import pytest

from linear_region.errors import InputValidationError, NumericalFitError
from linear_region.robust import (
    WEIGHT_FLOOR,
    bisquare_weights,
    huber_weights,
    robust_line,
    robust_scale,
)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def exact_line():
    """Noise-free line y = 1.5 - 0.7 x."""
    x = np.linspace(-3.0, 5.0, 25)
    y = 1.5 - 0.7 * x
    return x, y


@pytest.fixture
def noisy_with_outlier():
    """Line with small noise and one large high-leverage outlier."""
    rng = np.random.default_rng(0)
    x = np.linspace(0.0, 10.0, 50)
    y = 2.0 + 0.5 * x + rng.normal(0, 0.05, len(x))
    y[45] += 20.0
    return x, y


# ---------------------------------------------------------------------------
# Weighting functions
# ---------------------------------------------------------------------------

class TestWeights:
    def test_huber(self):
        w = huber_weights(np.array([0.0, 0.5, 1.0, 2.0, -4.0]))
        np.testing.assert_allclose(w, [1.0, 1.0, 1.0, 0.5, 0.25])

    def test_bisquare(self):
        w = bisquare_weights(np.array([0.0, 0.5, -0.5, 1.0, -2.0]))
        np.testing.assert_allclose(w, [1.0, 0.5625, 0.5625, 0.0, 0.0])

    def test_weights_bounded(self):
        z = np.linspace(-10, 10, 101)
        for fn in (huber_weights, bisquare_weights):
            w = fn(z)
            assert np.all(w >= 0.0) and np.all(w <= 1.0)


# ---------------------------------------------------------------------------
# robust_scale
# ---------------------------------------------------------------------------

class TestRobustScale:
    def test_gaussian_residuals_approximate_sigma(self):
        rng = np.random.default_rng(3)
        r = rng.normal(0.0, 2.0, 20_000)
        assert robust_scale(r) == pytest.approx(2.0, rel=0.05)

    def test_zero_mad_falls_back_to_std(self):
        r = np.array([0.0, 0.0, 0.0, 0.0, 5.0])
        assert robust_scale(r) == pytest.approx(np.sqrt(5.0))

    def test_constant_residuals_fall_back_to_one(self):
        assert robust_scale(np.zeros(10)) == 1.0

    def test_ignores_single_outlier(self):
        r = np.array([-1.0, 1.0, -1.0, 1.0, -1.0, 1.0, 100.0])
        assert robust_scale(r) < 3.0


# ---------------------------------------------------------------------------
# robust_line
# ---------------------------------------------------------------------------

class TestRobustLine:
    @pytest.mark.parametrize("method", ["huber", "bisquare"])
    def test_exact_line_recovered(self, exact_line, method):
        x, y = exact_line
        fit = robust_line(x, y, method=method)
        assert fit.intercept == pytest.approx(1.5, abs=1e-9)
        assert fit.slope == pytest.approx(-0.7, abs=1e-9)
        np.testing.assert_allclose(fit.residuals, 0.0, atol=1e-9)
        np.testing.assert_allclose(fit.weights, 1.0, atol=1e-9)
        assert fit.converged

    def test_huber_resists_outlier(self, noisy_with_outlier):
        x, y = noisy_with_outlier
        ols_slope = np.polyfit(x, y, 1)[0]
        fit = robust_line(x, y, method="huber")
        assert abs(ols_slope - 0.5) > 0.1
        assert fit.slope == pytest.approx(0.5, abs=0.02)
        assert fit.weights[45] < 0.1

    def test_bisquare_rejects_outlier(self):
        x = np.linspace(0.0, 10.0, 20)
        y = 2.0 + 0.5 * x
        y[7] += 10.0
        fit = robust_line(x, y, method="bisquare", tuning_constant=4.685)
        assert fit.slope == pytest.approx(0.5, abs=1e-4)
        assert fit.intercept == pytest.approx(2.0, abs=1e-3)
        assert fit.weights[7] == pytest.approx(WEIGHT_FLOOR)

    def test_weights_floored(self, noisy_with_outlier):
        x, y = noisy_with_outlier
        fit = robust_line(x, y, method="bisquare")
        assert fit.weights.min() >= WEIGHT_FLOOR
        assert fit.weights.max() <= 1.0

    def test_residuals_match_final_params(self, noisy_with_outlier):
        x, y = noisy_with_outlier
        fit = robust_line(x, y, max_iter=1)
        assert fit.n_iter == 1
        np.testing.assert_allclose(fit.residuals, y - (fit.intercept + fit.slope * x))

    @pytest.mark.parametrize(
        "offset, slope, noise",
        [(1000.0, 1.0, 1e-6), (1e6, 3.2, 1e-3), (0.0, 1e-6, 1e-9)],
    )
    def test_scale_tracks_mad_regardless_of_magnitude(self, offset, slope, noise):
        rng = np.random.default_rng(11)
        x = np.linspace(0.0, 1.0, 40)
        y = offset + slope * x + rng.normal(0.0, noise, x.size)
        a, b = np.polyfit(x, y, 1)[::-1]
        r = y - (a + b * x)
        mad_scale = 1.4826 * np.median(np.abs(r - np.median(r)))
        fit = robust_line(x, y)
        assert fit.scale == pytest.approx(mad_scale, rel=0.25)
        assert fit.scale < 10 * noise

    def test_scale_positive(self, exact_line):
        x, y = exact_line
        assert robust_line(x, y).scale > 0

    def test_deterministic(self, noisy_with_outlier):
        x, y = noisy_with_outlier
        a = robust_line(x, y)
        b = robust_line(x, y)
        assert a.slope == b.slope and a.intercept == b.intercept
        assert np.array_equal(a.residuals, b.residuals)

    def test_two_points(self):
        fit = robust_line([0.0, 1.0], [1.0, 3.0])
        assert fit.slope == pytest.approx(2.0)

    def test_accepts_list_input(self):
        fit = robust_line(list(range(10)), [2.0 * i for i in range(10)])
        assert fit.slope == pytest.approx(2.0)

    def test_equal_x_raises_numerical_error(self):
        x = np.full(12, 0.3)
        y = np.arange(12, dtype=float)
        with pytest.raises(NumericalFitError):
            robust_line(x, y)


class TestRobustLineValidation:
    def test_length_mismatch(self):
        with pytest.raises(InputValidationError):
            robust_line([1.0, 2.0, 3.0], [1.0, 2.0])

    def test_single_point(self):
        with pytest.raises(InputValidationError):
            robust_line([1.0], [1.0])

    def test_non_finite(self):
        with pytest.raises(InputValidationError):
            robust_line([0.0, 1.0, np.nan], [0.0, 1.0, 2.0])

    def test_unknown_method(self):
        with pytest.raises(InputValidationError):
            robust_line([0.0, 1.0, 2.0], [0.0, 1.0, 2.0], method="cauchy")

    @pytest.mark.parametrize(
        "kwargs",
        [{"tuning_constant": 0.0}, {"max_iter": 0}, {"max_iter": 1.5}, {"tol": -1e-3}],
    )
    def test_bad_options(self, kwargs):
        with pytest.raises(InputValidationError):
            robust_line([0.0, 1.0, 2.0], [0.0, 1.0, 2.0], **kwargs)
