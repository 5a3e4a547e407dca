"""Knot vector utilities: validation, span location and knot vector generation.

This module provides the span locator used by every evaluation routine, plus
helpers to create open knot vectors and to compute Greville abscissae.
"""

from __future__ import annotations

import numpy as np
import numpy.typing as npt

from ._basis_utils import (
    _normalize_knots,
    _normalize_points_1D,
    _snap_points_to_domain,
    _validate_spline_info,
)
from ._knots_impl import _find_spans_impl
from .tolerance import get_strict_tolerance


def validate_knot_vector(
    knots: npt.ArrayLike, degree: int
) -> npt.NDArray[np.float32 | np.float64]:
    """Validate a knot vector for a given degree and return it as an array.

    Args:
        knots (npt.ArrayLike): Knot vector. Must be non-decreasing and have at
            least `2*degree+2` elements.
        degree (int): Polynomial degree. Must be non-negative.

    Returns:
        npt.NDArray[np.float32 | np.float64]: The knot vector as a contiguous
            1D float array (integer knots are converted to float64).

    Raises:
        TypeError: If `knots` is not 1-dimensional.
        ValueError: If the degree is negative, if there are not enough knots,
            or if the knots are not non-decreasing.
    """
    arr = _normalize_knots(knots)
    _validate_spline_info(arr, degree)
    return arr


def find_span(n: int, degree: int, u: float, knots: npt.ArrayLike) -> int:
    """Find the knot span index of a parametric value.

    Returns the index `s` such that `knots[s] <= u < knots[s+1]`. When `u`
    equals the upper end of the domain, `knots[n+1]`, the last span `s = n` is
    returned so that the domain is closed on both sides.

    Args:
        n (int): Index of the last control point (number of control points - 1).
        degree (int): Spline degree.
        u (float): Parametric value.
        knots (npt.ArrayLike): Knot vector with `n + degree + 2` entries.

    Returns:
        int: Knot span index, in `[degree, n]`.

    Raises:
        ValueError: If `n` is inconsistent with the knot vector length and degree.
        DomainError: If `u` is outside the domain `[knots[degree], knots[n+1]]`.

    Example:
        >>> find_span(3, 2, 0.25, [0, 0, 0, 0.5, 1, 1, 1])
        2
        >>> find_span(3, 2, 1.0, [0, 0, 0, 0.5, 1, 1, 1])
        3
    """
    return int(find_spans(n, degree, np.asarray([u]), knots)[0])


def find_spans(
    n: int, degree: int, pts: npt.ArrayLike, knots: npt.ArrayLike
) -> npt.NDArray[np.intp]:
    """Find the knot span index of every parametric value in `pts`.

    Each value is located independently (see :func:`find_span`), and the
    result has the same shape as `pts`.

    Raises:
        ValueError: If `n` is inconsistent with the knot vector length and degree.
        DomainError: If any value is outside the domain.
    """
    knots_arr = validate_knot_vector(knots, degree)
    if n != knots_arr.size - degree - 2:
        raise ValueError(
            f"n must be the index of the last control point: expected "
            f"{knots_arr.size - degree - 2} for {knots_arr.size} knots and degree {degree}, got {n}"
        )

    input_shape = np.shape(pts)
    pts_arr = _normalize_points_1D(pts, knots_arr.dtype)
    pts_arr = _snap_points_to_domain(knots_arr, degree, pts_arr)
    return _find_spans_impl(n, degree, pts_arr, knots_arr).reshape(input_shape)


def create_uniform_open_knot_vector(
    num_intervals: int,
    degree: int,
    continuity: int | None = None,
    domain: tuple[float, float] = (0.0, 1.0),
    dtype: npt.DTypeLike = np.float64,
) -> npt.NDArray[np.float32 | np.float64]:
    """Create a uniform open (clamped) knot vector.

    The first and last knots are repeated `degree+1` times, so the spline
    interpolates its first and last control points.

    Args:
        num_intervals (int): Number of intervals in the domain. Must be positive.
        degree (int): Spline degree. Must be non-negative.
        continuity (int | None): Continuity at interior knots, between -1 and
            `degree-1`. Defaults to `degree-1` (maximum continuity).
        domain (tuple[float, float]): Domain boundaries. Defaults to (0, 1).
        dtype (npt.DTypeLike): float32 or float64. Defaults to float64.

    Returns:
        npt.NDArray[np.float32 | np.float64]: Open knot vector.

    Raises:
        ValueError: If any parameter is invalid.

    Example:
        >>> create_uniform_open_knot_vector(2, 2)
        array([0. , 0. , 0. , 0.5, 1. , 1. , 1. ])
    """
    continuity = degree - 1 if continuity is None else continuity

    if domain[0] >= domain[1]:
        raise ValueError("domain[0] must be less than domain[1]")
    if num_intervals < 1:
        raise ValueError("num_intervals must be positive")
    if degree < 0:
        raise ValueError("degree must be non-negative")
    if not -1 <= continuity <= degree - 1:
        raise ValueError(f"Continuity must be between -1 and {degree - 1} for degree {degree}.")
    if np.dtype(dtype) not in (np.dtype(np.float32), np.dtype(np.float64)):
        raise ValueError("dtype must be float64 or float32")

    start, end = domain
    unique_knots = np.linspace(start, end, num_intervals + 1, dtype=dtype)
    interior_multiplicity = degree - continuity

    knots = [np.full(degree + 1, start, dtype=dtype)]
    knots.extend(np.full(interior_multiplicity, knot, dtype=dtype) for knot in unique_knots[1:-1])
    knots.append(np.full(degree + 1, end, dtype=dtype))
    return np.concatenate(knots)


def get_unique_knots_and_multiplicity(
    knots: npt.ArrayLike, tol: float | None = None
) -> tuple[npt.NDArray[np.float32 | np.float64], npt.NDArray[np.intp]]:
    """Get the distinct knot values and their multiplicities.

    Args:
        knots (npt.ArrayLike): Non-decreasing knot vector.
        tol (float | None): Knots closer than `tol` are considered equal.
            Defaults to the strict tolerance of the knots dtype.

    Returns:
        tuple[npt.NDArray[np.float32 | np.float64], npt.NDArray[np.intp]]:
            Distinct knots and their multiplicities.
    """
    knots_arr = _normalize_knots(knots)
    if tol is None:
        tol = get_strict_tolerance(knots_arr.dtype)

    new_group = np.empty(knots_arr.size, dtype=bool)
    new_group[0] = True
    new_group[1:] = np.diff(knots_arr) > tol
    starts = np.flatnonzero(new_group)
    mults = np.diff(np.append(starts, knots_arr.size))
    return knots_arr[starts], mults.astype(np.intp)


def get_greville_abscissae(
    knots: npt.ArrayLike, degree: int
) -> npt.NDArray[np.float32 | np.float64]:
    """Compute the Greville abscissae (knot averages) of a spline space.

    The `i`-th abscissa is the mean of `knots[i+1], ..., knots[i+degree]`. For
    degree 0 the midpoints of the knot intervals are returned instead.

    Args:
        knots (npt.ArrayLike): Knot vector.
        degree (int): Spline degree.

    Returns:
        npt.NDArray[np.float32 | np.float64]: One abscissa per basis function.

    Example:
        >>> get_greville_abscissae([0, 0, 0, 0.5, 1, 1, 1], 2)
        array([0.  , 0.25, 0.75, 1.  ])
    """
    knots_arr = validate_knot_vector(knots, degree)
    num_basis = knots_arr.size - degree - 1
    if degree == 0:
        return 0.5 * (knots_arr[:-1] + knots_arr[1:])

    windows = np.lib.stride_tricks.sliding_window_view(knots_arr[1:-1], degree)
    return windows[:num_basis].mean(axis=1)


__all__ = [
    "create_uniform_open_knot_vector",
    "find_span",
    "find_spans",
    "get_greville_abscissae",
    "get_unique_knots_and_multiplicity",
    "validate_knot_vector",
]
