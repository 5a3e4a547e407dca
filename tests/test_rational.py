"""Tests for rational (NURBS) derivatives."""

from __future__ import annotations

from collections.abc import Callable

import numpy as np
import numpy.testing as nptest
import pytest

from nuder.binomial import BinomialCache
from nuder.derivative_net import build_first_derivative_nets, build_second_derivative_nets
from nuder.errors import DegenerateWeightError, UnsupportedDerivativeError
from nuder.evaluate import eval_bspline, eval_bspline_curve
from nuder.knots import create_uniform_open_knot_vector
from nuder.lattice import PointsLattice
from nuder.rational import (
    eval_rational_derivatives,
    rational_curve_derivatives,
    rational_derivatives_from_nets,
    rational_surface_derivatives,
)

NetFactory = Callable[[tuple[int, ...], int], np.ndarray]

SQRT_HALF = np.sqrt(0.5)
QUARTER_CIRCLE = np.array(
    [[1.0, 0.0, 0.0, 1.0], [SQRT_HALF, SQRT_HALF, 0.0, SQRT_HALF], [0.0, 1.0, 0.0, 1.0]]
)
QUADRATIC_BEZIER_KNOTS = [0.0, 0.0, 0.0, 1.0, 1.0, 1.0]
LINEAR_KNOTS = [0.0, 0.0, 1.0, 1.0]


class TestRationalCurveDerivatives:
    """Tests for the one-index Leibniz recursion."""

    def test_constant_weight(self) -> None:
        ders = rational_curve_derivatives([[2.0, 2.0], [0.0, 0.0]])
        nptest.assert_allclose(ders, [[1.0], [0.0]])

    def test_hand_computed_quotient(self) -> None:
        """A = u(1+u), W = 1+u at u = 1: S = u, so S' = 1 and S'' = 0."""
        ders = rational_curve_derivatives([[2.0, 2.0], [3.0, 1.0], [2.0, 0.0]])
        nptest.assert_allclose(ders, [[1.0], [1.0], [0.0]], atol=1e-15)

    def test_max_order_leaves_zeros(self) -> None:
        ders = rational_curve_derivatives([[2.0, 2.0], [3.0, 1.0], [2.0, 0.0]], max_order=1)
        nptest.assert_allclose(ders, [[1.0], [1.0], [0.0]])
        with pytest.raises(ValueError, match="max_order must be non-negative"):
            rational_curve_derivatives([[2.0, 2.0]], max_order=-1)

    def test_zero_weight_raises(self) -> None:
        with pytest.raises(DegenerateWeightError, match="weight"):
            rational_curve_derivatives([[1.0, 0.0], [1.0, 1.0]])

    def test_needs_a_weight_component(self) -> None:
        with pytest.raises(ValueError, match="at least one coordinate"):
            rational_curve_derivatives([[1.0], [0.0]])

    def test_injected_cache_is_used(self) -> None:
        cache = BinomialCache()
        rational_curve_derivatives(np.ones((4, 4)), cache=cache)
        assert len(cache) >= 4  # noqa: PLR2004

    def test_quarter_circle(self) -> None:
        """Points stay on the unit circle, so P.P' = 0 and |P'|^2 + P.P'' = 0."""
        pts = np.linspace(0.0, 1.0, 9)
        ders = eval_rational_derivatives(
            [2], QUARTER_CIRCLE, [QUADRATIC_BEZIER_KNOTS], pts, [2]
        )
        point, first, second = ders[:, 0], ders[:, 1], ders[:, 2]
        nptest.assert_allclose(np.linalg.norm(point, axis=-1), 1.0, atol=1e-14)
        nptest.assert_allclose(np.sum(point * first, axis=-1), 0.0, atol=1e-13)
        nptest.assert_allclose(
            np.sum(first * first, axis=-1) + np.sum(point * second, axis=-1), 0.0, atol=1e-12
        )

    def test_order_zero_round_trip(self, homogeneous_net: NetFactory) -> None:
        knots = create_uniform_open_knot_vector(3, 2)
        coefs = homogeneous_net((5,), seed=41)
        pts = np.random.default_rng(42).uniform(size=12)
        values = eval_bspline_curve(2, coefs, knots, pts)
        ders = eval_rational_derivatives([2], coefs, [knots], pts, [0])
        assert ders.shape == (12, 1, 3)
        nptest.assert_allclose(ders[:, 0], values[:, :3] / values[:, 3:], rtol=1e-14)

    def test_max_order_is_applied_to_curves(self) -> None:
        ders = eval_rational_derivatives(
            [2], QUARTER_CIRCLE, [QUADRATIC_BEZIER_KNOTS], [0.3], [2], max_order=1
        )
        full = eval_rational_derivatives([2], QUARTER_CIRCLE, [QUADRATIC_BEZIER_KNOTS], [0.3], [2])
        nptest.assert_allclose(ders[:, :2], full[:, :2])
        nptest.assert_array_equal(ders[:, 2], 0.0)
        with pytest.raises(ValueError, match="max_order must be non-negative"):
            eval_rational_derivatives(
                [2], QUARTER_CIRCLE, [QUADRATIC_BEZIER_KNOTS], [0.3], [2], max_order=-1
            )

    @pytest.mark.parametrize("order", [1, 2])
    def test_finite_differences(self, homogeneous_net: NetFactory, order: int) -> None:
        degree = 3
        knots = create_uniform_open_knot_vector(3, degree)
        coefs = homogeneous_net((knots.size - degree - 1,), seed=21)
        pts = np.array([0.1, 0.3, 0.55, 0.7, 0.9])
        step = 1e-4

        ders = eval_rational_derivatives([degree], coefs, [knots], pts, [order])
        lower = eval_rational_derivatives([degree], coefs, [knots], pts - step, [order - 1])
        upper = eval_rational_derivatives([degree], coefs, [knots], pts + step, [order - 1])
        estimate = (upper[:, order - 1] - lower[:, order - 1]) / (2 * step)
        nptest.assert_allclose(ders[:, order], estimate, rtol=1e-5, atol=1e-5)


class TestRationalSurfaceDerivatives:
    """Tests for the two-index Leibniz recursion."""

    @staticmethod
    def _parallelogram(weight: float) -> np.ndarray:
        """Bilinear patch S(u, v) = (2u, v, v) with constant weight."""
        corners = np.array([[[0.0, 0.0, 0.0], [0.0, 1.0, 1.0]], [[2.0, 0.0, 0.0], [2.0, 1.0, 1.0]]])
        weights = np.full((2, 2, 1), weight)
        return np.concatenate([corners * weights, weights], axis=-1)

    @pytest.mark.parametrize("weight", [1.0, 3.0])
    def test_bilinear_edge_vectors(self, weight: float) -> None:
        pts = np.random.default_rng(22).uniform(size=(7, 2))
        ders = eval_rational_derivatives(
            [1, 1], self._parallelogram(weight), [LINEAR_KNOTS, LINEAR_KNOTS], pts, [1, 1]
        )
        nptest.assert_allclose(ders[:, 1, 0], np.broadcast_to([2.0, 0.0, 0.0], (7, 3)), atol=1e-14)
        nptest.assert_allclose(ders[:, 0, 1], np.broadcast_to([0.0, 1.0, 1.0], (7, 3)), atol=1e-14)
        nptest.assert_allclose(ders[:, 1, 1], 0.0, atol=1e-14)

    def test_order_zero_round_trip(self, homogeneous_net: NetFactory) -> None:
        knots = [create_uniform_open_knot_vector(2, 2), create_uniform_open_knot_vector(3, 1)]
        coefs = homogeneous_net((4, 4), seed=23)
        pts = np.random.default_rng(24).uniform(size=(10, 2))
        values = eval_bspline([2, 1], coefs, knots, pts)
        ders = eval_rational_derivatives([2, 1], coefs, knots, pts, [0, 0])
        nptest.assert_allclose(ders[:, 0, 0], values[:, :3] / values[:, 3:], rtol=1e-14)

    def test_mixed_partial_by_finite_differences(self, homogeneous_net: NetFactory) -> None:
        knots = [create_uniform_open_knot_vector(2, 2), create_uniform_open_knot_vector(2, 3)]
        coefs = homogeneous_net((4, 5), seed=25)
        pts = np.array([[0.2, 0.3], [0.6, 0.7], [0.45, 0.15], [0.8, 0.9], [0.35, 0.55]])
        step = 1e-4

        ders = eval_rational_derivatives([2, 3], coefs, knots, pts, [1, 1])
        shifts = {(su, sv): np.array([su * step, sv * step]) for su in (-1, 1) for sv in (-1, 1)}
        values = {
            key: eval_rational_derivatives([2, 3], coefs, knots, pts + shift, [0, 0])[:, 0, 0]
            for key, shift in shifts.items()
        }
        estimate = (values[1, 1] - values[1, -1] - values[-1, 1] + values[-1, -1]) / (4 * step**2)
        nptest.assert_allclose(ders[:, 1, 1], estimate, rtol=1e-4, atol=1e-4)

    def test_max_order_truncates_table(self, homogeneous_net: NetFactory) -> None:
        knots = [QUADRATIC_BEZIER_KNOTS, QUADRATIC_BEZIER_KNOTS]
        coefs = homogeneous_net((3, 3), seed=26)
        full = eval_rational_derivatives([2, 2], coefs, knots, [[0.3, 0.4]], [2, 2])
        truncated = eval_rational_derivatives(
            [2, 2], coefs, knots, [[0.3, 0.4]], [2, 2], max_order=2
        )
        for k in range(3):
            for l in range(3):  # noqa: E741
                if k + l <= 2:  # noqa: PLR2004
                    nptest.assert_allclose(truncated[:, k, l], full[:, k, l])
                else:
                    nptest.assert_array_equal(truncated[:, k, l], 0.0)

    def test_lattice_shape(self) -> None:
        lattice = PointsLattice([[0.1, 0.5, 0.9], [0.2, 0.8]])
        ders = eval_rational_derivatives(
            [1, 1], self._parallelogram(2.0), [LINEAR_KNOTS, LINEAR_KNOTS], lattice, [1, 1]
        )
        assert ders.shape == (3, 2, 2, 2, 3)

    def test_zero_weight_raises(self) -> None:
        coefs = self._parallelogram(1.0)
        coefs[..., -1] = 0.0
        with pytest.raises(DegenerateWeightError):
            eval_rational_derivatives(
                [1, 1], coefs, [LINEAR_KNOTS, LINEAR_KNOTS], [[0.5, 0.5]], [1, 0]
            )

    def test_negative_max_order_raises(self) -> None:
        with pytest.raises(ValueError, match="max_order must be non-negative"):
            rational_surface_derivatives(np.ones((1, 1, 4)), max_order=-1)


class TestRationalVolumeDerivatives:
    """Volumes support pure partial derivatives only."""

    def test_mixed_partial_is_unsupported(self, homogeneous_net: NetFactory) -> None:
        coefs = homogeneous_net((2, 2, 2), seed=27)
        knots = [LINEAR_KNOTS] * 3
        with pytest.raises(UnsupportedDerivativeError, match="Mixed partial derivatives"):
            eval_rational_derivatives([1, 1, 1], coefs, knots, [[0.5, 0.5, 0.5]], [1, 1, 0])

    @pytest.mark.parametrize("axis", [0, 1, 2])
    def test_pure_partial_by_finite_differences(
        self, homogeneous_net: NetFactory, axis: int
    ) -> None:
        knots = [QUADRATIC_BEZIER_KNOTS, LINEAR_KNOTS, QUADRATIC_BEZIER_KNOTS]
        coefs = homogeneous_net((3, 2, 3), seed=28)
        pts = np.array([[0.2, 0.4, 0.6], [0.7, 0.1, 0.3]])
        orders = [0, 0, 0]
        orders[axis] = 1
        step = 1e-5
        shift = np.zeros(3)
        shift[axis] = step

        ders = eval_rational_derivatives([2, 1, 2], coefs, knots, pts, orders)
        index = tuple(orders)
        upper = eval_rational_derivatives([2, 1, 2], coefs, knots, pts + shift, [0, 0, 0])
        lower = eval_rational_derivatives([2, 1, 2], coefs, knots, pts - shift, [0, 0, 0])
        estimate = (upper[:, 0, 0, 0] - lower[:, 0, 0, 0]) / (2 * step)
        assert ders.shape[1:4] == tuple(o + 1 for o in orders)
        nptest.assert_allclose(ders[(slice(None), *index)], estimate, rtol=1e-6, atol=1e-6)

    def test_max_order_is_applied_to_volumes(self, homogeneous_net: NetFactory) -> None:
        knots = [QUADRATIC_BEZIER_KNOTS, LINEAR_KNOTS, QUADRATIC_BEZIER_KNOTS]
        coefs = homogeneous_net((3, 2, 3), seed=31)
        pts = [[0.2, 0.4, 0.6]]
        full = eval_rational_derivatives([2, 1, 2], coefs, knots, pts, [0, 0, 2])
        ders = eval_rational_derivatives([2, 1, 2], coefs, knots, pts, [0, 0, 2], max_order=1)
        nptest.assert_allclose(ders[:, 0, 0, :2], full[:, 0, 0, :2])
        nptest.assert_array_equal(ders[:, 0, 0, 2], 0.0)


class TestDerivativesFromNets:
    """Tests for `rational_derivatives_from_nets`."""

    def test_surface_matches_direct_evaluation(self, homogeneous_net: NetFactory) -> None:
        knots = [create_uniform_open_knot_vector(2, 2), create_uniform_open_knot_vector(2, 2)]
        coefs = homogeneous_net((4, 4), seed=29)
        pts = np.random.default_rng(30).uniform(size=(6, 2))

        first_nets = build_first_derivative_nets([2, 2], coefs, knots)
        second_nets = build_second_derivative_nets([2, 2], coefs, knots)
        values = eval_bspline([2, 2], coefs, knots, pts)
        first = [eval_bspline(*net, pts) for net in first_nets]
        second = [[eval_bspline(*net, pts) for net in row] for row in second_nets]
        point, d1, d2 = rational_derivatives_from_nets(values, first, second)

        direct = eval_rational_derivatives([2, 2], coefs, knots, pts, [2, 2], max_order=2)
        nptest.assert_allclose(point, direct[:, 0, 0], atol=1e-12)
        nptest.assert_allclose(d1[0], direct[:, 1, 0], atol=1e-10)
        nptest.assert_allclose(d1[1], direct[:, 0, 1], atol=1e-10)
        assert d2 is not None
        nptest.assert_allclose(d2[0][0], direct[:, 2, 0], atol=1e-9)
        nptest.assert_allclose(d2[0][1], direct[:, 1, 1], atol=1e-9)
        nptest.assert_allclose(d2[1][1], direct[:, 0, 2], atol=1e-9)

    def test_curve_first_only(self) -> None:
        pts = np.array([0.0, 0.4, 1.0])
        nets = build_first_derivative_nets([2], QUARTER_CIRCLE, [QUADRATIC_BEZIER_KNOTS])
        values = eval_bspline([2], QUARTER_CIRCLE, [QUADRATIC_BEZIER_KNOTS], pts)
        first = [eval_bspline(*nets[0], pts)]
        point, d1, d2 = rational_derivatives_from_nets(values, first)
        direct = eval_rational_derivatives([2], QUARTER_CIRCLE, [QUADRATIC_BEZIER_KNOTS], pts, [1])
        assert d2 is None
        nptest.assert_allclose(point, direct[:, 0], atol=1e-14)
        nptest.assert_allclose(d1[0], direct[:, 1], atol=1e-13)

    def test_volume_first_derivatives(self, homogeneous_net: NetFactory) -> None:
        knots = [QUADRATIC_BEZIER_KNOTS, LINEAR_KNOTS, QUADRATIC_BEZIER_KNOTS]
        coefs = homogeneous_net((3, 2, 3), seed=32)
        pts = np.array([[0.2, 0.4, 0.6], [0.7, 0.1, 0.3]])
        nets = build_first_derivative_nets([2, 1, 2], coefs, knots)
        values = eval_bspline([2, 1, 2], coefs, knots, pts)
        point, d1, d2 = rational_derivatives_from_nets(
            values, [eval_bspline(*net, pts) for net in nets]
        )
        assert d2 is None
        nptest.assert_allclose(point, values[:, :3] / values[:, 3:], rtol=1e-14)
        for axis in range(3):
            orders = [0, 0, 0]
            orders[axis] = 1
            direct = eval_rational_derivatives([2, 1, 2], coefs, knots, pts, orders)
            nptest.assert_allclose(d1[axis], direct[(slice(None), *orders)], atol=1e-12)

    def test_volume_second_derivatives_unsupported(self) -> None:
        values = np.ones((1, 4))
        with pytest.raises(UnsupportedDerivativeError):
            rational_derivatives_from_nets(values, [values] * 3, [[values] * 3] * 3)

    def test_invalid_number_of_directions(self) -> None:
        with pytest.raises(ValueError, match="1, 2 or 3 directions"):
            rational_derivatives_from_nets(np.ones((1, 4)), [])
