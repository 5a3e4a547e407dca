"""B-spline basis function evaluation.

Public front ends for the numba kernels in :mod:`nuder._basis_impl`. The
single-point functions take an explicit knot span (as obtained from
:func:`nuder.knots.find_span`); the ``tabulate_*`` functions locate the spans
themselves and work on arrays of points.
"""

from __future__ import annotations

import numpy as np
import numpy.typing as npt

from ._basis_impl import (
    _eval_basis_derivatives_impl,
    _eval_basis_impl,
    _tabulate_basis_derivatives_impl,
    _tabulate_basis_impl,
)
from ._basis_utils import _normalize_points_1D, _snap_points_to_domain
from ._knots_impl import _find_spans_impl
from .knots import validate_knot_vector


def _validate_span(span: int, degree: int, knots: npt.NDArray[np.float32 | np.float64]) -> None:
    """Check that `span` is a valid span index for the knot vector.

    Raises:
        ValueError: If `span` is outside `[degree, num_basis-1]` or the
            interval `[knots[span], knots[span+1]]` has zero length.
    """
    last = knots.size - degree - 2
    if not degree <= span <= last:
        raise ValueError(f"span must be between {degree} and {last}, got {span}")
    if knots[span + 1] <= knots[span]:
        raise ValueError(f"span {span} is a zero-length knot interval")


def _validate_point_in_span(
    span: int, u: float, degree: int, knots: npt.NDArray[np.float32 | np.float64]
) -> None:
    """Check that `u` lies in `[knots[span], knots[span+1])`.

    The last span also contains the upper end of the domain.

    Raises:
        ValueError: If `u` is not in the span.
    """
    last = knots.size - degree - 2
    lower, upper = knots[span], knots[span + 1]
    if lower <= u < upper or (span == last and u == upper):
        return
    raise ValueError(f"u = {u} is not in span {span}, [{lower}, {upper})")


def _validate_max_order(max_order: int) -> None:
    if max_order < 0:
        raise ValueError("max_order must be non-negative")


def eval_basis(
    span: int, u: float, degree: int, knots: npt.ArrayLike
) -> npt.NDArray[np.float32 | np.float64]:
    """Evaluate the `degree+1` nonzero basis functions at a parametric value.

    Uses the stable triangular recurrence (Algorithm A2.2 of "The NURBS
    Book"); the values are those of basis functions `span-degree, ..., span`
    and add up to one.

    Args:
        span (int): Knot span containing `u` (see :func:`nuder.knots.find_span`).
        u (float): Parametric value.
        degree (int): Spline degree.
        knots (npt.ArrayLike): Knot vector.

    Returns:
        npt.NDArray[np.float32 | np.float64]: Array of shape `(degree+1,)`.

    Raises:
        ValueError: If the knot vector, degree or span is invalid, or if
            `u` is not in the span.
        DomainError: If `u` is outside the knot vector domain.

    Example:
        >>> eval_basis(2, 0.25, 2, [0, 0, 0, 0.5, 1, 1, 1])
        array([0.25 , 0.625, 0.125])
    """
    knots_arr = validate_knot_vector(knots, degree)
    _validate_span(span, degree, knots_arr)
    pt = _snap_points_to_domain(knots_arr, degree, _normalize_points_1D(u, knots_arr.dtype))
    _validate_point_in_span(span, pt[0], degree, knots_arr)

    out = np.empty(degree + 1, dtype=knots_arr.dtype)
    _eval_basis_impl(span, pt[0], degree, knots_arr, out)
    return out


def eval_basis_derivatives(
    span: int, u: float, degree: int, knots: npt.ArrayLike, max_order: int
) -> npt.NDArray[np.float32 | np.float64]:
    """Evaluate the nonzero basis functions and their derivatives.

    Uses Algorithm A2.3 of "The NURBS Book". Derivatives of order higher than
    `degree` are identically zero and returned as exact zeros.

    Args:
        span (int): Knot span containing `u`.
        u (float): Parametric value.
        degree (int): Spline degree.
        knots (npt.ArrayLike): Knot vector.
        max_order (int): Highest derivative order. Must be non-negative.

    Returns:
        npt.NDArray[np.float32 | np.float64]: Array of shape
            `(max_order+1, degree+1)`. Row `k` holds the `k`-th derivatives
            of basis functions `span-degree, ..., span`.

    Raises:
        ValueError: If the knot vector, degree, span or order is invalid, or
            if `u` is not in the span.
        DomainError: If `u` is outside the knot vector domain.
    """
    _validate_max_order(max_order)
    knots_arr = validate_knot_vector(knots, degree)
    _validate_span(span, degree, knots_arr)
    pt = _snap_points_to_domain(knots_arr, degree, _normalize_points_1D(u, knots_arr.dtype))
    _validate_point_in_span(span, pt[0], degree, knots_arr)

    out = np.empty((max_order + 1, degree + 1), dtype=knots_arr.dtype)
    _eval_basis_derivatives_impl(span, pt[0], degree, knots_arr, max_order, out)
    return out


def _locate_points(
    knots: npt.NDArray[np.float32 | np.float64], degree: int, pts: npt.ArrayLike
) -> tuple[npt.NDArray[np.float32 | np.float64], npt.NDArray[np.intp]]:
    """Normalize, domain-check and locate a set of points (no shape kept)."""
    pts_arr = _normalize_points_1D(pts, knots.dtype)
    pts_arr = _snap_points_to_domain(knots, degree, pts_arr)
    n = knots.size - degree - 2
    return pts_arr, _find_spans_impl(n, degree, pts_arr, knots)


def tabulate_basis(
    knots: npt.ArrayLike, degree: int, pts: npt.ArrayLike
) -> tuple[npt.NDArray[np.float32 | np.float64], npt.NDArray[np.intp]]:
    """Evaluate the nonzero basis functions at an array of points.

    Args:
        knots (npt.ArrayLike): Knot vector.
        degree (int): Spline degree.
        pts (npt.ArrayLike): Parametric values (scalar or array of any shape).

    Returns:
        tuple[npt.NDArray[np.float32 | np.float64], npt.NDArray[np.intp]]:
            Basis values with shape `(*pts.shape, degree+1)` and the knot
            span of every point with shape `pts.shape`. The nonzero functions
            at a point with span `s` are `s-degree, ..., s`.

    Raises:
        ValueError: If the knot vector or degree is invalid.
        DomainError: If any point is outside the knot vector domain.

    Example:
        >>> basis, spans = tabulate_basis([0, 0, 0, 0.5, 1, 1, 1], 2, [0.0, 1.0])
        >>> spans
        array([2, 3])
    """
    knots_arr = validate_knot_vector(knots, degree)
    input_shape = np.shape(pts)
    pts_arr, spans = _locate_points(knots_arr, degree, pts)
    basis = _tabulate_basis_impl(spans, pts_arr, degree, knots_arr)
    return basis.reshape(*input_shape, degree + 1), spans.reshape(input_shape)


def tabulate_basis_derivatives(
    knots: npt.ArrayLike, degree: int, pts: npt.ArrayLike, max_order: int
) -> tuple[npt.NDArray[np.float32 | np.float64], npt.NDArray[np.intp]]:
    """Evaluate basis functions and derivatives up to `max_order` at many points.

    Returns:
        tuple[npt.NDArray[np.float32 | np.float64], npt.NDArray[np.intp]]:
            Values with shape `(*pts.shape, max_order+1, degree+1)` and knot
            spans with shape `pts.shape`.

    Raises:
        ValueError: If the knot vector, degree or order is invalid.
        DomainError: If any point is outside the knot vector domain.
    """
    _validate_max_order(max_order)
    knots_arr = validate_knot_vector(knots, degree)
    input_shape = np.shape(pts)
    pts_arr, spans = _locate_points(knots_arr, degree, pts)
    ders = _tabulate_basis_derivatives_impl(spans, pts_arr, degree, knots_arr, max_order)
    return ders.reshape(*input_shape, max_order + 1, degree + 1), spans.reshape(input_shape)


__all__ = [
    "eval_basis",
    "eval_basis_derivatives",
    "tabulate_basis",
    "tabulate_basis_derivatives",
]
