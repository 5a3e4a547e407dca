"""Point evaluation of (homogeneous) B-spline curves, surfaces and volumes.

The control net of a spline of parametric dimension `d` is an array of shape
`(n_0, ..., n_{d-1}, ncomp)`: one axis per parametric direction followed by
the components of each control point. For NURBS the components are the
homogeneous coordinates `(x*w, y*w, z*w, w)`, and every function in this
module returns homogeneous values; the division by the weight is done by
:mod:`nuder.rational`.

Tensor-product evaluation contracts the control net one direction at a time,
first along u, then v, then w.
"""

from __future__ import annotations

from collections.abc import Sequence

import numpy as np
import numpy.typing as npt

from ._basis_impl import _tabulate_basis_derivatives_impl, _tabulate_basis_impl
from ._basis_utils import (
    _normalize_knots,
    _normalize_points_1D,
    _snap_points_to_domain,
    _validate_spline_info,
)
from ._knots_impl import _find_spans_impl
from .errors import DimensionMismatchError
from .lattice import PointsLattice

_FloatArray = npt.NDArray[np.float32 | np.float64]


def _normalize_net(
    degrees: Sequence[int],
    coefs: npt.ArrayLike,
    knots: Sequence[npt.ArrayLike],
) -> tuple[tuple[int, ...], _FloatArray, tuple[_FloatArray, ...]]:
    """Validate a tensor-product control net against its knots and degrees.

    Args:
        degrees (Sequence[int]): Degree along each parametric direction.
        coefs (npt.ArrayLike): Control net of shape `(n_0, ..., n_{d-1}, ncomp)`.
        knots (Sequence[npt.ArrayLike]): Knot vector along each direction.

    Returns:
        tuple: Degrees as a tuple of ints, the control net and the knot
            vectors, all sharing a common floating dtype.

    Raises:
        ValueError: If a knot vector or degree is invalid.
        DimensionMismatchError: If the number of directions or the number of
            control points along a direction is inconsistent.
    """
    degrees_t = tuple(int(p) for p in degrees)
    knots_t = tuple(_normalize_knots(k) for k in knots)
    if len(degrees_t) != len(knots_t):
        raise DimensionMismatchError(
            f"Got {len(knots_t)} knot vectors but {len(degrees_t)} degrees"
        )
    for knots_i, degree_i in zip(knots_t, degrees_t, strict=True):
        _validate_spline_info(knots_i, degree_i)

    coefs_arr = np.asarray(coefs)
    dim = len(knots_t)
    if coefs_arr.ndim != dim + 1:
        raise DimensionMismatchError(
            f"Control net must have {dim + 1} axes (one per direction plus components), "
            f"got shape {coefs_arr.shape}"
        )
    for axis, (knots_i, degree_i) in enumerate(zip(knots_t, degrees_t, strict=True)):
        expected = knots_i.size - degree_i - 1
        if coefs_arr.shape[axis] != expected:
            raise DimensionMismatchError(
                f"Direction {axis}: {knots_i.size} knots and degree {degree_i} require "
                f"{expected} control points, got {coefs_arr.shape[axis]}"
            )

    dtype = np.result_type(*(k.dtype for k in knots_t), coefs_arr.dtype, np.float32)
    if dtype not in (np.float32, np.float64):
        dtype = np.dtype(np.float64)
    knots_t = tuple(np.ascontiguousarray(k, dtype=dtype) for k in knots_t)
    return degrees_t, np.ascontiguousarray(coefs_arr, dtype=dtype), knots_t


def _tabulate_direction(
    knots: npt.NDArray[np.float32 | np.float64],
    degree: int,
    pts: npt.NDArray[np.float32 | np.float64],
    order: int,
) -> tuple[npt.NDArray[np.float32 | np.float64], npt.NDArray[np.intp]]:
    """Basis values (or derivatives up to `order`) and first indices along one direction.

    Returns:
        tuple: Array of shape `(n_pts, order+1, degree+1)` and the index of the
            first nonzero basis function of every point.
    """
    pts = _snap_points_to_domain(knots, degree, _normalize_points_1D(pts, knots.dtype))
    n = knots.size - degree - 2
    spans = _find_spans_impl(n, degree, pts, knots)
    if order == 0:
        basis = _tabulate_basis_impl(spans, pts, degree, knots)[:, np.newaxis, :]
    else:
        basis = _tabulate_basis_derivatives_impl(spans, pts, degree, knots, order)
    return basis, spans - degree


def _contract_scattered(
    coefs: npt.NDArray[np.float32 | np.float64],
    bases: Sequence[npt.NDArray[np.float32 | np.float64]],
    first_ids: Sequence[npt.NDArray[np.intp]],
) -> npt.NDArray[np.float32 | np.float64]:
    """Contract the active window of the control net at every point.

    Args:
        coefs (npt.NDArray[np.float32 | np.float64]): Control net `(n_0, ..., ncomp)`.
        bases (Sequence[npt.NDArray]): Per direction, `(n_pts, o_i+1, p_i+1)`.
        first_ids (Sequence[npt.NDArray[np.intp]]): Per direction, first active
            control point index of every point.

    Returns:
        npt.NDArray[np.float32 | np.float64]: Array of shape
            `(n_pts, o_0+1, ..., o_{d-1}+1, ncomp)`.
    """
    dim = len(bases)
    n_pts = bases[0].shape[0]

    index = []
    for axis, (basis, first) in enumerate(zip(bases, first_ids, strict=True)):
        window = first[:, np.newaxis] + np.arange(basis.shape[-1])
        shape = [n_pts] + [1] * dim
        shape[axis + 1] = basis.shape[-1]
        index.append(window.reshape(shape))

    # (n_pts, ncomp, p_0+1, ..., p_{d-1}+1)
    result = np.moveaxis(coefs[tuple(index)], -1, 1)
    for basis in bases:
        result = np.einsum("ncp...,nkp->nc...k", result, basis)
    return np.moveaxis(result, 1, -1)


def _contract_lattice(
    coefs: npt.NDArray[np.float32 | np.float64],
    bases: Sequence[npt.NDArray[np.float32 | np.float64]],
    first_ids: Sequence[npt.NDArray[np.intp]],
) -> npt.NDArray[np.float32 | np.float64]:
    """Contract the control net over a tensor-product lattice of points.

    Returns:
        npt.NDArray[np.float32 | np.float64]: Array of shape
            `(m_0, ..., m_{d-1}, o_0+1, ..., o_{d-1}+1, ncomp)`, where `m_i`
            is the number of lattice points along direction `i`.
    """
    dim = len(bases)
    result = coefs
    for axis, (basis, first) in enumerate(zip(bases, first_ids, strict=True)):
        n_pts, n_ders, order = basis.shape
        # Dense (n_pts, o+1, n_basis) matrix with the local values scattered in place.
        dense = np.zeros((n_pts, n_ders, coefs.shape[axis]), dtype=coefs.dtype)
        cols = first[:, np.newaxis] + np.arange(order)
        rows = np.arange(n_pts)[:, np.newaxis]
        for k in range(n_ders):
            dense[rows, k, cols] = basis[:, k, :]
        result = np.tensordot(result, dense, axes=([0], [2]))

    # result: (ncomp, m_0, o_0+1, m_1, o_1+1, ...)
    pts_axes = [1 + 2 * i for i in range(dim)]
    ders_axes = [2 + 2 * i for i in range(dim)]
    return np.transpose(result, [*pts_axes, *ders_axes, 0])


def _normalize_scattered_points(
    pts: npt.ArrayLike, dim: int
) -> npt.NDArray[np.float32 | np.float64]:
    """Normalize scattered points to shape `(n_pts, dim)`.

    For `dim == 1` any array of values is accepted and flattened. An empty
    array is an empty batch for any `dim`.

    Raises:
        ValueError: If the points do not have `dim` coordinates.
    """
    arr = np.asarray(pts)
    if dim == 1:
        return arr.reshape(-1, 1)
    if arr.size == 0:
        return arr.reshape(0, dim)
    if arr.ndim == 1 and arr.size == dim:
        arr = arr.reshape(1, dim)
    if arr.ndim != 2 or arr.shape[1] != dim:  # noqa: PLR2004
        raise ValueError(f"Points must have shape (n_pts, {dim}), got {arr.shape}")
    return arr


def _eval_tensor(
    degrees: tuple[int, ...],
    coefs: npt.NDArray[np.float32 | np.float64],
    knots: tuple[npt.NDArray[np.float32 | np.float64], ...],
    pts: npt.ArrayLike | PointsLattice,
    orders: tuple[int, ...],
) -> npt.NDArray[np.float32 | np.float64]:
    """Evaluate a validated net and all its derivatives up to `orders`."""
    dim = len(knots)
    if isinstance(pts, PointsLattice):
        if pts.dim != dim:
            raise ValueError(f"Lattice dimension {pts.dim} does not match spline dimension {dim}")
        pts_per_dir = pts.pts_per_dir
    else:
        pts_arr = _normalize_scattered_points(pts, dim)
        pts_per_dir = tuple(pts_arr[:, i] for i in range(dim))

    bases, first_ids = [], []
    for knots_i, degree_i, pts_i, order_i in zip(knots, degrees, pts_per_dir, orders, strict=True):
        basis, first = _tabulate_direction(knots_i, degree_i, pts_i, order_i)
        bases.append(basis)
        first_ids.append(first)

    if isinstance(pts, PointsLattice):
        return _contract_lattice(coefs, bases, first_ids)
    return _contract_scattered(coefs, bases, first_ids)


def eval_bspline_curve(
    degree: int,
    coefs: npt.ArrayLike,
    knots: npt.ArrayLike,
    pts: npt.ArrayLike,
) -> npt.NDArray[np.float32 | np.float64]:
    """Evaluate a B-spline curve at parametric values.

    Computes `sum_i N[i](u) * coefs[span-degree+i]` over the `degree+1`
    active control points of every value.

    Args:
        degree (int): Curve degree.
        coefs (npt.ArrayLike): Control points, shape `(n_ctrlpts, ncomp)`.
        knots (npt.ArrayLike): Knot vector with `n_ctrlpts + degree + 1` entries.
        pts (npt.ArrayLike): Parametric values (scalar or array of any shape).

    Returns:
        npt.NDArray[np.float32 | np.float64]: Points of shape
            `(*pts.shape, ncomp)`, in the order of the input values.

    Raises:
        ValueError: If knots or degree are invalid.
        DimensionMismatchError: If the number of control points is inconsistent.
        DomainError: If any value is outside the domain.

    Example:
        >>> eval_bspline_curve(1, [[0.0], [2.0]], [0, 0, 1, 1], [0.25, 0.5])
        array([[0.5],
               [1. ]])
    """
    input_shape = np.shape(pts)
    degrees, coefs_arr, knots_t = _normalize_net((degree,), coefs, (knots,))
    values = _eval_tensor(degrees, coefs_arr, knots_t, np.ravel(pts), (0,))
    return values[:, 0, :].reshape(*input_shape, coefs_arr.shape[-1])


def eval_bspline(
    degrees: Sequence[int],
    coefs: npt.ArrayLike,
    knots: Sequence[npt.ArrayLike],
    pts: npt.ArrayLike | PointsLattice,
) -> npt.NDArray[np.float32 | np.float64]:
    """Evaluate a tensor-product B-spline (curve, surface or volume).

    Args:
        degrees (Sequence[int]): Degree along each direction.
        coefs (npt.ArrayLike): Control net, shape `(n_0, ..., n_{d-1}, ncomp)`.
        knots (Sequence[npt.ArrayLike]): Knot vector along each direction.
        pts (npt.ArrayLike | PointsLattice): Either scattered points with shape
            `(n_pts, d)` (a 1D array for curves) or a lattice.

    Returns:
        npt.NDArray[np.float32 | np.float64]: Shape `(n_pts, ncomp)` for
            scattered points, in input order, or `(m_0, ..., m_{d-1}, ncomp)`
            for a lattice.

    Raises:
        ValueError: If knots, degrees or points are invalid.
        DimensionMismatchError: If the control net is inconsistent.
        DomainError: If any point is outside the domain.
    """
    degrees_t, coefs_arr, knots_t = _normalize_net(degrees, coefs, knots)
    zeros = (0,) * len(knots_t)
    values = _eval_tensor(degrees_t, coefs_arr, knots_t, pts, zeros)
    return values.reshape(*values.shape[: values.ndim - len(knots_t) - 1], coefs_arr.shape[-1])


def eval_bspline_derivatives(
    degrees: Sequence[int],
    coefs: npt.ArrayLike,
    knots: Sequence[npt.ArrayLike],
    pts: npt.ArrayLike | PointsLattice,
    orders: Sequence[int],
) -> npt.NDArray[np.float32 | np.float64]:
    """Evaluate a tensor-product B-spline and its partial derivatives.

    All partial derivatives of order `(k_0, ..., k_{d-1})` with
    `k_i <= orders[i]` are computed. Derivatives of order higher than the
    degree in a direction are exact zeros.

    Args:
        degrees (Sequence[int]): Degree along each direction.
        coefs (npt.ArrayLike): Control net, shape `(n_0, ..., n_{d-1}, ncomp)`.
        knots (Sequence[npt.ArrayLike]): Knot vector along each direction.
        pts (npt.ArrayLike | PointsLattice): Scattered points `(n_pts, d)` or a lattice.
        orders (Sequence[int]): Highest derivative order along each direction.

    Returns:
        npt.NDArray[np.float32 | np.float64]: Shape
            `(n_pts, orders[0]+1, ..., orders[d-1]+1, ncomp)` for scattered
            points or `(m_0, ..., m_{d-1}, orders[0]+1, ..., ncomp)` for a
            lattice. Entry `[..., k_0, ..., k_{d-1}, :]` is the partial
            derivative of that order.

    Raises:
        ValueError: If an order is negative or the input is invalid.
        DimensionMismatchError: If the control net is inconsistent.
        DomainError: If any point is outside the domain.
    """
    degrees_t, coefs_arr, knots_t = _normalize_net(degrees, coefs, knots)
    orders_t = tuple(int(o) for o in orders)
    if len(orders_t) != len(knots_t):
        raise ValueError(f"Expected {len(knots_t)} derivative orders, got {len(orders_t)}")
    if any(o < 0 for o in orders_t):
        raise ValueError("Derivative orders must be non-negative")
    return _eval_tensor(degrees_t, coefs_arr, knots_t, pts, orders_t)


__all__ = [
    "eval_bspline",
    "eval_bspline_curve",
    "eval_bspline_derivatives",
]
