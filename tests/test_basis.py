"""Tests for B-spline basis function evaluation."""

from __future__ import annotations

import numpy as np
import numpy.testing as nptest
import numpy.typing as npt
import pytest

from nuder.basis import (
    eval_basis,
    eval_basis_derivatives,
    tabulate_basis,
    tabulate_basis_derivatives,
)
from nuder.errors import DomainError
from nuder.knots import create_uniform_open_knot_vector

KNOTS = [0.0, 0.0, 0.0, 0.5, 1.0, 1.0, 1.0]

# Quadratic basis on KNOTS at linspace(0, 1, 10), 5 decimals.
REFERENCE_BASIS = np.array(
    [
        [1.00000, 0.00000, 0.00000],
        [0.60494, 0.37037, 0.02469],
        [0.30864, 0.59259, 0.09877],
        [0.11111, 0.66667, 0.22222],
        [0.01235, 0.59259, 0.39506],
        [0.39506, 0.59259, 0.01235],
        [0.22222, 0.66667, 0.11111],
        [0.09877, 0.59259, 0.30864],
        [0.02469, 0.37037, 0.60494],
        [0.00000, 0.00000, 1.00000],
    ]
)


class TestEvalBasis:
    """Tests for `eval_basis`."""

    def test_hand_computed_value(self) -> None:
        """N = [(1-2u)^2, 4u-6u^2, 2u^2] on the first span at u = 0.25."""
        nptest.assert_allclose(eval_basis(2, 0.25, 2, KNOTS), [0.25, 0.625, 0.125], atol=1e-5)

    def test_reference_fixture(self) -> None:
        pts = np.linspace(0.0, 1.0, 10)
        basis, spans = tabulate_basis(KNOTS, 2, pts)
        nptest.assert_array_equal(spans, [2] * 5 + [3] * 5)
        nptest.assert_allclose(basis, REFERENCE_BASIS, atol=1e-5)

    def test_single_point_matches_tabulation(self) -> None:
        basis, spans = tabulate_basis(KNOTS, 2, [0.7])
        nptest.assert_allclose(eval_basis(int(spans[0]), 0.7, 2, KNOTS), basis[0])

    def test_degree_zero(self) -> None:
        nptest.assert_allclose(eval_basis(1, 0.75, 0, [0.0, 0.5, 1.0]), [1.0])

    def test_invalid_span_raises(self) -> None:
        with pytest.raises(ValueError, match="span must be between"):
            eval_basis(1, 0.25, 2, KNOTS)
        with pytest.raises(ValueError, match="span must be between"):
            eval_basis(4, 0.25, 2, KNOTS)

    def test_zero_length_span_raises(self) -> None:
        knots = [0.0, 0.0, 0.0, 0.5, 0.5, 1.0, 1.0, 1.0]
        with pytest.raises(ValueError, match="zero-length"):
            eval_basis(3, 0.5, 2, knots)

    def test_out_of_domain_raises(self) -> None:
        with pytest.raises(DomainError):
            eval_basis(3, 1.1, 2, KNOTS)

    def test_point_outside_span_raises(self) -> None:
        """Span 2 is [0, 0.5): evaluating it at 0.75 would extrapolate."""
        with pytest.raises(ValueError, match="not in span 2"):
            eval_basis(2, 0.75, 2, KNOTS)
        with pytest.raises(ValueError, match="not in span 3"):
            eval_basis(3, 0.25, 2, KNOTS)
        with pytest.raises(ValueError, match="not in span 2"):
            eval_basis_derivatives(2, 0.5, 2, KNOTS, 1)

    def test_upper_end_belongs_to_last_span(self) -> None:
        nptest.assert_allclose(eval_basis(3, 1.0, 2, KNOTS), [0.0, 0.0, 1.0], atol=1e-15)
        with pytest.raises(ValueError, match="not in span 2"):
            eval_basis(2, 1.0, 2, KNOTS)


class TestPartitionOfUnity:
    """Basis values are non-negative and add up to one."""

    @pytest.mark.parametrize("degree", [0, 1, 2, 3, 5])
    @pytest.mark.parametrize("continuity", [None, 0])
    def test_partition_of_unity(self, degree: int, continuity: int | None) -> None:
        if continuity is not None and continuity > degree - 1:
            pytest.skip("continuity not available for this degree")
        knots = create_uniform_open_knot_vector(4, degree, continuity=continuity)
        pts = np.concatenate([np.random.default_rng(1).uniform(0.0, 1.0, 40), [0.0, 0.5, 1.0]])
        basis, _ = tabulate_basis(knots, degree, pts)
        nptest.assert_allclose(basis.sum(axis=-1), 1.0, rtol=0.0, atol=1e-13)
        assert np.all(basis >= -1e-15)

    @pytest.mark.parametrize("dtype", [np.float32, np.float64])
    def test_dtype_is_preserved(self, dtype: npt.DTypeLike) -> None:
        knots = np.array(KNOTS, dtype=dtype)
        basis, _ = tabulate_basis(knots, 2, np.array([0.3, 0.8], dtype=dtype))
        assert basis.dtype == np.dtype(dtype)
        nptest.assert_allclose(basis.sum(axis=-1), 1.0, rtol=1e-6)

    def test_output_shape_follows_points(self) -> None:
        pts = np.linspace(0.0, 1.0, 6).reshape(2, 3)
        basis, spans = tabulate_basis(KNOTS, 2, pts)
        assert basis.shape == (2, 3, 3)
        assert spans.shape == (2, 3)

    def test_scalar_point(self) -> None:
        basis, spans = tabulate_basis(KNOTS, 2, 0.25)
        assert basis.shape == (3,)
        assert spans.shape == ()
        nptest.assert_allclose(basis, [0.25, 0.625, 0.125])


class TestBasisDerivatives:
    """Tests for `eval_basis_derivatives` and `tabulate_basis_derivatives`."""

    def test_hand_computed_derivatives(self) -> None:
        ders = eval_basis_derivatives(2, 0.25, 2, KNOTS, 2)
        expected = [[0.25, 0.625, 0.125], [-2.0, 1.0, 1.0], [8.0, -12.0, 4.0]]
        nptest.assert_allclose(ders, expected, atol=1e-12)

    def test_orders_above_degree_are_zero(self) -> None:
        ders = eval_basis_derivatives(2, 0.25, 2, KNOTS, 4)
        assert ders.shape == (5, 3)
        nptest.assert_array_equal(ders[3:], 0.0)

    @pytest.mark.parametrize("degree", [1, 2, 3, 4])
    def test_derivatives_add_up_to_zero(self, degree: int) -> None:
        knots = create_uniform_open_knot_vector(3, degree)
        pts = np.linspace(0.0, 1.0, 13)
        ders, _ = tabulate_basis_derivatives(knots, degree, pts, degree)
        nptest.assert_allclose(ders[:, 0].sum(axis=-1), 1.0, atol=1e-13)
        nptest.assert_allclose(ders[:, 1:].sum(axis=-1), 0.0, atol=1e-9)

    def test_first_row_matches_values(self) -> None:
        pts = np.linspace(0.0, 1.0, 7)
        values, spans = tabulate_basis(KNOTS, 2, pts)
        ders, spans_d = tabulate_basis_derivatives(KNOTS, 2, pts, 2)
        nptest.assert_array_equal(spans, spans_d)
        nptest.assert_allclose(ders[:, 0], values, atol=1e-15)

    def test_first_derivative_by_finite_differences(self) -> None:
        knots = create_uniform_open_knot_vector(3, 3)
        pts = np.array([0.1, 0.2, 0.45, 0.6, 0.9])
        step = 1e-6
        ders, spans = tabulate_basis_derivatives(knots, 3, pts, 1)
        plus, spans_p = tabulate_basis(knots, 3, pts + step)
        minus, spans_m = tabulate_basis(knots, 3, pts - step)
        nptest.assert_array_equal(spans_p, spans)
        nptest.assert_array_equal(spans_m, spans)
        nptest.assert_allclose(ders[:, 1], (plus - minus) / (2 * step), atol=1e-6)

    def test_negative_order_raises(self) -> None:
        with pytest.raises(ValueError, match="max_order must be non-negative"):
            eval_basis_derivatives(2, 0.25, 2, KNOTS, -1)
        with pytest.raises(ValueError, match="max_order must be non-negative"):
            tabulate_basis_derivatives(KNOTS, 2, [0.25], -1)
