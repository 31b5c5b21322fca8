"""Unit tests for linear_region.narrative."""

import numpy as np
import pytest

from linear_region import UndersteerEstimator
from linear_region.narrative import (
    describe_fit,
    fit_quality,
    get_gradient_narrative,
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _summary(ku=3.2, r2=0.99, cutoff_idx=68, n_points=120, ay_cutoff_g=0.9):
    return {
        "ku_deg_per_g": float(ku),
        "intercept_deg": 0.5,
        "slope_ref": float(ku),
        "r2": float(r2),
        "cutoff_idx": int(cutoff_idx),
        "n_points": int(n_points),
        "ay_cutoff_g": float(ay_cutoff_g),
        "linear_to_end": cutoff_idx == n_points,
    }


def _linear_data(n=40, ku=3.2):
    ay = np.linspace(0.0, 1.0, n)
    return ay, 0.5 + ku * ay


# ---------------------------------------------------------------------------
# fit_quality
# ---------------------------------------------------------------------------

class TestFitQuality:
    def test_strong(self):
        assert fit_quality(0.995) == "strong"

    def test_acceptable(self):
        assert fit_quality(0.95) == "acceptable"

    def test_weak(self):
        assert fit_quality(0.5) == "weak"

    def test_boundaries_inclusive(self):
        assert fit_quality(0.98) == "strong"
        assert fit_quality(0.90) == "acceptable"


# ---------------------------------------------------------------------------
# describe_fit
# ---------------------------------------------------------------------------

class TestDescribeFit:
    def test_reports_gradient(self):
        text = describe_fit(_summary(ku=3.2147))
        assert "Ku = 3.215 deg/g" in text

    def test_reports_cutoff(self):
        text = describe_fit(_summary(cutoff_idx=68, n_points=120, ay_cutoff_g=0.894))
        assert "point 68 of 120" in text
        assert "0.89 g" in text

    def test_whole_series_linear(self):
        text = describe_fit(_summary(cutoff_idx=40, n_points=40))
        assert "All 40 points" in text
        assert "ends" not in text

    def test_quality_in_text(self):
        assert "weak" in describe_fit(_summary(r2=0.4))

    def test_custom_labels(self):
        text = describe_fit(_summary(), slope_name="K", slope_unit="rad/(m/s^2)", x_unit="m/s^2")
        assert "K = 3.200 rad/(m/s^2)" in text
        assert "m/s^2)." in text

    def test_missing_keys_raise(self):
        with pytest.raises(KeyError):
            describe_fit({"ku_deg_per_g": 3.2})


# ---------------------------------------------------------------------------
# get_gradient_narrative
# ---------------------------------------------------------------------------

class TestGetGradientNarrative:
    def test_precomputed_path(self):
        text = get_gradient_narrative(summary=_summary())
        assert isinstance(text, str) and "Ku" in text

    def test_raw_path(self):
        ay, steer = _linear_data()
        text = get_gradient_narrative(ay=ay, steer=steer)
        assert "Ku = 3.200 deg/g" in text
        assert "All 40 points" in text

    def test_raw_path_matches_precomputed(self):
        ay, steer = _linear_data()
        summary = UndersteerEstimator(ay, steer).summary()
        assert get_gradient_narrative(ay=ay, steer=steer) == get_gradient_narrative(summary=summary)

    def test_raw_data_wins_over_summary(self):
        ay, steer = _linear_data(ku=2.0)
        text = get_gradient_narrative(summary=_summary(ku=9.9), ay=ay, steer=steer)
        assert "9.900" not in text
        assert "2.000" in text

    def test_detector_kwargs_forwarded(self):
        ay, steer = _linear_data()
        text = get_gradient_narrative(ay=ay, steer=steer, detector_kwargs={"robust_method": "bisquare"})
        assert "Ku = 3.200" in text

    def test_missing_inputs_raise(self):
        with pytest.raises(ValueError):
            get_gradient_narrative()

    def test_only_ay_raises(self):
        with pytest.raises(ValueError):
            get_gradient_narrative(ay=[0.0, 0.1, 0.2])
