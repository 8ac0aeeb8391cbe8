"""
Tests for SABR volatility model.
"""

import pytest
import numpy as np
from volcube.vol.sabr import (
    PARAMETER_NAMES,
    SabrParams,
    hagan_black_vol,
    sabr_vol,
    sabr_smile,
    _hagan_atm_vol,
)


class TestSabrParams:
    """Tests for SabrParams dataclass."""

    def test_full_params(self):
        """Test parameter initialization."""
        params = SabrParams(alpha=0.03, beta=0.5, nu=0.4, rho=-0.2, forward=0.04)
        assert params.alpha == 0.03
        assert params.beta == 0.5
        assert params.nu == 0.4
        assert params.rho == -0.2
        assert params.forward == 0.04

    @pytest.mark.parametrize("field, value", [
        ("alpha", 0.0),
        ("beta", 1.5),
        ("nu", -0.1),
        ("rho", 1.0),
        ("forward", -0.01),
    ])
    def test_invalid_params(self, field, value):
        """Test out-of-range parameters are rejected."""
        kwargs = dict(alpha=0.03, beta=0.5, nu=0.4, rho=-0.2, forward=0.04)
        kwargs[field] = value
        with pytest.raises(ValueError):
            SabrParams(**kwargs)

    def test_layer_order(self):
        """Test array form follows the parameter layer order."""
        params = SabrParams(alpha=0.03, beta=0.5, nu=0.4, rho=-0.2, forward=0.04)
        np.testing.assert_array_equal(params.to_array(), [0.03, 0.5, 0.4, -0.2, 0.04])
        assert list(params.to_dict()) == list(PARAMETER_NAMES)

    def test_dict_round_trip(self):
        """Test dictionary conversion."""
        params = SabrParams(alpha=0.03, beta=0.5, nu=0.4, rho=-0.2, forward=0.04)
        assert SabrParams.from_dict(params.to_dict()) == params

    def test_from_layers_clip(self):
        """Test clipping pulls extrapolated values into the admissible region."""
        params = SabrParams.from_layers([-0.01, 1.2, -0.3, 1.5, 0.04], clip=True)
        assert params.alpha > 0
        assert params.beta == 1.0
        assert params.nu == 0.0
        assert -1 < params.rho < 1

    def test_from_layers_without_clip(self):
        """Test unclipped values are validated."""
        with pytest.raises(ValueError):
            SabrParams.from_layers([0.03, 0.5, 0.4, 1.5, 0.04])


class TestHaganFormulas:
    """Tests for Hagan SABR approximation."""

    def test_atm_vol(self):
        """Test ATM vol approximation."""
        F = 0.04
        T = 1.0
        alpha = 0.03
        beta = 0.5
        rho = -0.2
        nu = 0.4

        vol = _hagan_atm_vol(F, T, alpha, beta, rho, nu)
        assert vol > 0
        # ATM vol should be roughly proportional to alpha / F^(1-beta)
        expected_order = alpha / (F ** (1 - beta))
        assert 0.5 * expected_order < vol < 2.0 * expected_order

    def test_atm_branch_is_continuous(self):
        """Test the ATM branch joins the general formula."""
        F, T = 0.04, 2.0
        atm = hagan_black_vol(F, F, T, 0.03, 0.5, -0.2, 0.4)
        near = hagan_black_vol(F, F * (1 + 1e-6), T, 0.03, 0.5, -0.2, 0.4)
        assert abs(atm - near) < 1e-6

    def test_lognormal_no_volvol(self):
        """Test beta=1, nu=0 gives a flat smile at alpha."""
        for K in (0.02, 0.04, 0.06):
            vol = hagan_black_vol(0.04, K, 5.0, 0.2, 1.0, 0.0, 0.0)
            assert vol == pytest.approx(0.2, abs=1e-14)

    def test_hagan_black_vol_away_from_atm(self):
        """Test Black vol away from ATM."""
        F = 0.04
        T = 1.0
        alpha = 0.03
        beta = 0.5
        rho = -0.2
        nu = 0.4

        vol_low = hagan_black_vol(F, F - 0.01, T, alpha, beta, rho, nu)
        vol_atm = hagan_black_vol(F, F, T, alpha, beta, rho, nu)
        vol_high = hagan_black_vol(F, F + 0.01, T, alpha, beta, rho, nu)

        assert vol_low > 0
        assert vol_high > 0
        # Negative rho and beta < 1 skew vol towards low strikes
        assert vol_low > vol_atm

    def test_negative_strike_rejected(self):
        """Test lognormal formula needs positive rates."""
        with pytest.raises(ValueError):
            hagan_black_vol(0.04, -0.01, 1.0, 0.03, 0.5, -0.2, 0.4)


class TestSmileHelpers:
    """Tests for parameter-set evaluation helpers."""

    @pytest.fixture
    def params(self):
        return SabrParams(alpha=0.03, beta=0.5, nu=0.4, rho=-0.2, forward=0.04)

    def test_sabr_vol_uses_forward(self, params):
        """Test sabr_vol evaluates at the stored forward."""
        expected = hagan_black_vol(0.04, 0.05, 1.0, 0.03, 0.5, -0.2, 0.4)
        assert sabr_vol(0.05, 1.0, params) == expected

    def test_sabr_smile(self, params):
        """Test smile across strikes."""
        strikes = np.array([0.03, 0.035, 0.04, 0.045, 0.05])
        vols = sabr_smile(strikes, 1.0, params)

        assert vols.shape == strikes.shape
        assert np.all(vols > 0)
        assert vols[2] == sabr_vol(0.04, 1.0, params)
