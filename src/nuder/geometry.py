"""NURBS curve, surface and volume records."""

from __future__ import annotations

from collections.abc import Sequence
from typing import ClassVar

import numpy as np
from numpy import typing as npt

from .derivative_net import (
    SplineNet,
    build_first_derivative_nets,
    build_second_derivative_nets,
    derive_net_along,
)
from .editing import move_points, set_weights
from .errors import DimensionMismatchError
from .evaluate import _normalize_net, eval_bspline
from .lattice import PointsLattice
from .rational import eval_rational_derivatives, rational_derivatives_from_nets
from .refine import elevate_degree, insert_knots

_FloatArray = npt.NDArray[np.float32 | np.float64]

_HOMOGENEOUS_COMPONENTS = 4


def _read_only(arr: _FloatArray) -> _FloatArray:
    arr = np.array(arr, copy=True)
    arr.setflags(write=False)
    return arr


class _Nurbs:
    """Common implementation of the tensor-product NURBS records.

    Records are immutable: the control net and knot vectors are read-only
    copies, and every modifying operation returns a new record.
    """

    _dim: ClassVar[int]

    def __init__(
        self,
        coefs: npt.ArrayLike,
        knots: Sequence[npt.ArrayLike],
        degrees: Sequence[int],
    ) -> None:
        """Initialize the record.

        Args:
            coefs (npt.ArrayLike): Homogeneous control net of shape
                `(n_0, ..., n_{d-1}, 4)` holding `(x*w, y*w, z*w, w)`.
            knots (Sequence[npt.ArrayLike]): Knot vector along each direction.
            degrees (Sequence[int]): Degree along each direction.

        Raises:
            DimensionMismatchError: If the number of directions is wrong, the
                control points are not 4-component, or the number of control
                points does not match the knots and degree along a direction.
            ValueError: If a knot vector or degree is invalid.
        """
        if len(knots) != self._dim:
            raise DimensionMismatchError(
                f"{type(self).__name__} requires {self._dim} knot vector(s), got {len(knots)}"
            )
        degrees_t, coefs_arr, knots_t = _normalize_net(degrees, coefs, knots)
        if coefs_arr.shape[-1] != _HOMOGENEOUS_COMPONENTS:
            raise DimensionMismatchError(
                f"Control points must have 4 homogeneous components, got {coefs_arr.shape[-1]}"
            )
        self._degrees = degrees_t
        self._coefs = _read_only(coefs_arr)
        self._knots = tuple(_read_only(k) for k in knots_t)

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(degrees={self._degrees}, num_ctrlpts={self.num_ctrlpts}, "
            f"dtype={self.dtype})"
        )

    def _new(self, coefs: _FloatArray, knots: Sequence[_FloatArray], degrees: Sequence[int]):
        return type(self)(coefs, knots, degrees)

    def _from_net(self, net: SplineNet):
        return self._new(net.coefs, net.knots, net.degrees)

    @property
    def dim(self) -> int:
        """Number of parametric directions."""
        return self._dim

    @property
    def degrees(self) -> tuple[int, ...]:
        """Degree along each direction."""
        return self._degrees

    @property
    def knots(self) -> tuple[_FloatArray, ...]:
        """Knot vector along each direction."""
        return self._knots

    @property
    def coefs(self) -> _FloatArray:
        """Homogeneous control net `(n_0, ..., n_{d-1}, 4)`."""
        return self._coefs

    @property
    def dtype(self) -> np.dtype:
        """Floating point type of the control net and knots."""
        return self._coefs.dtype

    @property
    def weights(self) -> _FloatArray:
        """Weights of the control points, shape `(n_0, ..., n_{d-1})`."""
        return self._coefs[..., -1]

    @property
    def control_points(self) -> _FloatArray:
        """Cartesian control points, shape `(n_0, ..., n_{d-1}, 3)`.

        Points with zero weight (possible in derivative nets) give non-finite
        values.
        """
        with np.errstate(divide="ignore", invalid="ignore"):
            return self._coefs[..., :-1] / self._coefs[..., -1:]

    @property
    def num_ctrlpts(self) -> tuple[int, ...]:
        """Number of control points along each direction."""
        return self._coefs.shape[:-1]

    @property
    def domain(self) -> tuple[tuple[float, float], ...]:
        """Parametric domain `(start, end)` along each direction."""
        return tuple(
            (float(k[p]), float(k[k.size - p - 1]))
            for k, p in zip(self._knots, self._degrees, strict=True)
        )

    def evaluate(self, pts: npt.ArrayLike | PointsLattice) -> _FloatArray:
        """Evaluate the homogeneous map `(x*w, y*w, z*w, w)`.

        Args:
            pts (npt.ArrayLike | PointsLattice): Scattered points `(n_pts, dim)`
                (a 1D array for curves) or a lattice.

        Returns:
            _FloatArray: Shape `(n_pts, 4)` or `(m_0, ..., m_{dim-1}, 4)`.
        """
        return eval_bspline(self._degrees, self._coefs, self._knots, pts)

    def eval_points(self, pts: npt.ArrayLike | PointsLattice) -> _FloatArray:
        """Evaluate the Cartesian points of the map.

        Returns:
            _FloatArray: Shape `(n_pts, 3)` or `(m_0, ..., m_{dim-1}, 3)`.

        Raises:
            DegenerateWeightError: If the weight vanishes at some point.
        """
        values = eval_rational_derivatives(
            self._degrees, self._coefs, self._knots, pts, (0,) * self._dim
        )
        return values.reshape(*values.shape[: values.ndim - self._dim - 1], values.shape[-1])

    def derivatives(
        self, pts: npt.ArrayLike | PointsLattice, order: int | Sequence[int]
    ) -> _FloatArray:
        """Evaluate the rational derivatives of the map.

        Args:
            pts (npt.ArrayLike | PointsLattice): Evaluation points.
            order (int | Sequence[int]): Either a total order, in which case
                all derivatives with `k_0 + ... + k_{dim-1} <= order` are
                computed (higher entries are zero), or the highest order along
                each direction.

        Returns:
            _FloatArray: Shape `(n_pts, o_0+1, ..., o_{dim-1}+1, 3)`; entry
                `[..., k_0, ..., k_{dim-1}, :]` is the partial derivative of
                that order and `[..., 0, ..., 0, :]` is the point.

        Raises:
            UnsupportedDerivativeError: For mixed derivatives of volumes.
            DegenerateWeightError: If the weight vanishes at some point.
        """
        if isinstance(order, (int, np.integer)):
            orders = (int(order),) * self._dim
            max_order = int(order)
        else:
            orders = tuple(int(o) for o in order)
            max_order = None
        return eval_rational_derivatives(
            self._degrees, self._coefs, self._knots, pts, orders, max_order=max_order
        )

    def partial_derivative(
        self, pts: npt.ArrayLike | PointsLattice, orders: Sequence[int]
    ) -> _FloatArray:
        """Evaluate a single rational partial derivative.

        Args:
            pts (npt.ArrayLike | PointsLattice): Evaluation points.
            orders (Sequence[int]): Derivative order along each direction.

        Returns:
            _FloatArray: Shape `(n_pts, 3)` or `(m_0, ..., m_{dim-1}, 3)`.
        """
        orders_t = tuple(int(o) for o in orders)
        ders = self.derivatives(pts, orders_t)
        return ders[(Ellipsis, *orders_t, slice(None))]

    def derivative(self, direction: int = 0):
        """Get the derivative net of the homogeneous map along a direction.

        The result is a record of the same type whose degree along
        `direction` is lowered by one. Its weights are derivatives of the
        weight function and may be zero or negative.
        """
        return self._from_net(derive_net_along(self._degrees, self._coefs, self._knots, direction))

    def derivative_nets(self, second: bool = False) -> tuple[list, list[list] | None]:
        """Build the first (and optionally second) derivative nets.

        Directions of degree 0 get a zero first derivative net.

        Args:
            second (bool): Also build the second derivative nets. Directions of
                degree lower than 2 are elevated first.

        Returns:
            tuple: The list of first derivative records per direction and, if
                requested, the nested list of second derivative records
                (`[i][j]` is the derivative along `i` then `j`).

        Raises:
            UnsupportedDerivativeError: If `second` is requested for a volume.
        """
        first = [
            self._from_net(net)
            for net in build_first_derivative_nets(self._degrees, self._coefs, self._knots)
        ]
        if not second:
            return first, None
        nets = build_second_derivative_nets(self._degrees, self._coefs, self._knots)
        return first, [[self._from_net(net) for net in row] for row in nets]

    def eval_with_derivative_nets(
        self,
        pts: npt.ArrayLike | PointsLattice,
        nets: tuple[list, list[list] | None] | None = None,
    ) -> tuple[_FloatArray, list[_FloatArray], list[list[_FloatArray]] | None]:
        """Evaluate points and derivatives from precomputed derivative nets.

        Args:
            pts (npt.ArrayLike | PointsLattice): Evaluation points.
            nets (tuple | None): Output of :meth:`derivative_nets`. Built with
                first derivatives only if not given.

        Returns:
            tuple: Cartesian points, the first derivatives per direction and
                the second derivatives (or None), each of shape `(n_pts, 3)`.
        """
        first_nets, second_nets = self.derivative_nets() if nets is None else nets
        values = self.evaluate(pts)
        first = [net.evaluate(pts) for net in first_nets]
        second = None
        if second_nets is not None:
            second = [[net.evaluate(pts) for net in row] for row in second_nets]
        return rational_derivatives_from_nets(values, first, second)

    def move_points(self, displacement: npt.ArrayLike, indices: npt.ArrayLike):
        """Translate control points given by flat (C order) indices."""
        coefs = move_points(self._coefs, displacement, indices)
        return self._new(coefs, self._knots, self._degrees)

    def set_weights(self, weights: npt.ArrayLike, indices: npt.ArrayLike):
        """Change weights of control points given by flat indices, keeping their positions."""
        return self._new(set_weights(self._coefs, weights, indices), self._knots, self._degrees)

    def insert_knots(self, new_knots: npt.ArrayLike, direction: int = 0):
        """Insert knots along a direction without changing the map."""
        coefs, knots = insert_knots(self._degrees, self._coefs, self._knots, new_knots, direction)
        return self._new(coefs, knots, self._degrees)

    def elevate_degree(self, increment: int = 1, direction: int = 0):
        """Elevate the degree along a direction without changing the map."""
        degrees, coefs, knots = elevate_degree(
            self._degrees, self._coefs, self._knots, increment, direction
        )
        return self._new(coefs, knots, degrees)


class NurbsCurve(_Nurbs):
    """A NURBS curve.

    Example:
        >>> line = make_nurbs([[0.0, 0.0], [2.0, 0.0]], [[0, 0, 1, 1]])
        >>> line.eval_points([0.5])
        array([[1., 0., 0.]])
    """

    _dim = 1

    @property
    def degree(self) -> int:
        """Degree of the curve."""
        return self._degrees[0]


class NurbsSurface(_Nurbs):
    """A tensor-product NURBS surface."""

    _dim = 2


class NurbsVolume(_Nurbs):
    """A trivariate NURBS volume.

    Mixed partial derivatives and second derivative nets are not supported
    and raise :class:`~nuder.errors.UnsupportedDerivativeError`.
    """

    _dim = 3


_RECORD_TYPES: dict[int, type[_Nurbs]] = {1: NurbsCurve, 2: NurbsSurface, 3: NurbsVolume}


def _pad_homogeneous(coefs: _FloatArray) -> _FloatArray:
    """Pad 2D or 3D control points to homogeneous `(x, y, z, 1)`."""
    ncomp = coefs.shape[-1]
    if ncomp == _HOMOGENEOUS_COMPONENTS:
        return coefs
    if ncomp not in (2, 3):
        raise DimensionMismatchError(f"Control points must have 2, 3 or 4 components, got {ncomp}")
    padded = np.zeros((*coefs.shape[:-1], _HOMOGENEOUS_COMPONENTS), dtype=coefs.dtype)
    padded[..., :ncomp] = coefs
    padded[..., -1] = 1.0
    return padded


def make_nurbs(
    coefs: npt.ArrayLike,
    knots: Sequence[npt.ArrayLike],
    degrees: Sequence[int] | None = None,
) -> NurbsCurve | NurbsSurface | NurbsVolume:
    """Build a NURBS record from a control net and knot vectors.

    The record type follows the number of knot vectors. Control points with 2
    or 3 components are taken as Cartesian with unit weight; 4 components are
    homogeneous `(x*w, y*w, z*w, w)`.

    Args:
        coefs (npt.ArrayLike): Control net `(n_0, ..., n_{d-1}, ncomp)`.
        knots (Sequence[npt.ArrayLike]): One knot vector per direction.
        degrees (Sequence[int] | None): Degrees per direction. If None, they
            are deduced as `len(knots[i]) - n_i - 1`.

    Returns:
        NurbsCurve | NurbsSurface | NurbsVolume: The record.

    Raises:
        DimensionMismatchError: If the number of knot vectors is not 1, 2 or 3
            or does not match the control net.
        ValueError: If a knot vector or degree is invalid.
    """
    knots_list = list(knots)
    record_type = _RECORD_TYPES.get(len(knots_list))
    if record_type is None:
        raise DimensionMismatchError(f"Expected 1, 2 or 3 knot vectors, got {len(knots_list)}")

    coefs_arr = np.asarray(coefs)
    if coefs_arr.dtype not in (np.float32, np.float64):
        coefs_arr = coefs_arr.astype(np.float64)
    if coefs_arr.ndim != len(knots_list) + 1:
        raise DimensionMismatchError(
            f"Control net must have {len(knots_list) + 1} axes, got shape {coefs_arr.shape}"
        )
    if degrees is None:
        num_ctrlpts = coefs_arr.shape[:-1]
        degrees = [np.size(k) - n - 1 for k, n in zip(knots_list, num_ctrlpts, strict=True)]
    return record_type(_pad_homogeneous(coefs_arr), knots_list, degrees)


def from_weighted_points(
    points: npt.ArrayLike,
    weights: npt.ArrayLike,
    knots: Sequence[npt.ArrayLike],
    degrees: Sequence[int] | None = None,
) -> NurbsCurve | NurbsSurface | NurbsVolume:
    """Build a NURBS record from Cartesian control points and weights.

    Args:
        points (npt.ArrayLike): Cartesian control points `(n_0, ..., 2 or 3)`.
        weights (npt.ArrayLike): Weights `(n_0, ..., n_{d-1})`.
        knots (Sequence[npt.ArrayLike]): One knot vector per direction.
        degrees (Sequence[int] | None): Degrees; deduced if None.

    Returns:
        NurbsCurve | NurbsSurface | NurbsVolume: The record.

    Raises:
        DimensionMismatchError: If weights and points have different grids.

    Example:
        >>> arc = from_weighted_points(
        ...     [[1, 0], [1, 1], [0, 1]], [1, np.sqrt(0.5), 1], [[0, 0, 0, 1, 1, 1]]
        ... )
        >>> round(float(np.linalg.norm(arc.eval_points([0.3])[0])), 12)
        1.0
    """
    points_arr = np.asarray(points)
    if points_arr.dtype not in (np.float32, np.float64):
        points_arr = points_arr.astype(np.float64)
    weights_arr = np.asarray(weights, dtype=points_arr.dtype)
    if weights_arr.shape != points_arr.shape[:-1]:
        raise DimensionMismatchError(
            f"Weights of shape {weights_arr.shape} do not match control points {points_arr.shape}"
        )
    if points_arr.shape[-1] not in (2, 3):
        raise DimensionMismatchError(
            f"Control points must have 2 or 3 components, got {points_arr.shape[-1]}"
        )
    coefs = _pad_homogeneous(points_arr)
    coefs[..., :-1] *= weights_arr[..., np.newaxis]
    coefs[..., -1] = weights_arr
    return make_nurbs(coefs, knots, degrees)


__all__ = [
    "NurbsCurve",
    "NurbsSurface",
    "NurbsVolume",
    "from_weighted_points",
    "make_nurbs",
]
