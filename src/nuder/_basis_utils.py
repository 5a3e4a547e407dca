"""Utility functions shared by the basis and evaluation front ends."""

import logging

import numpy as np
from numpy import typing as npt

from ._knots_impl import _check_spline_info, _is_in_domain_impl
from .errors import DomainError
from .tolerance import get_strict_tolerance

logger = logging.getLogger(__name__)


def _normalize_knots(knots: npt.ArrayLike) -> npt.NDArray[np.float32 | np.float64]:
    """Convert a knot vector to a contiguous 1D float array.

    Integer knots are converted to float64; float32 and float64 are kept.

    Raises:
        TypeError: If `knots` is not 1-dimensional.
        ValueError: If `knots` cannot be converted to a float array.
    """
    arr = np.asarray(knots)
    if arr.dtype not in (np.float32, np.float64):
        try:
            arr = arr.astype(np.float64)
        except ValueError as err:
            raise ValueError("knots must be convertible to a float array") from err
    if arr.ndim != 1:
        raise TypeError("knots must be a 1D array")
    return np.ascontiguousarray(arr)


def _normalize_points_1D(
    pts: npt.ArrayLike, dtype: npt.DTypeLike | None = None
) -> npt.NDArray[np.float32 | np.float64]:
    """Normalize points to a contiguous 1D float array.

    Converts input points (scalar, list, or numpy array) to a 1D numpy array.
    Zero-dimensional arrays (scalars) become arrays with a single element and
    multi-dimensional arrays are flattened (C order, so the input order of
    the points is preserved).

    Args:
        pts (npt.ArrayLike): Parametric values.
        dtype (npt.DTypeLike | None): Target dtype. If None, float32 and
            float64 inputs keep their dtype and anything else becomes float64.

    Returns:
        npt.NDArray[np.float32 | np.float64]: 1D contiguous array.
    """
    arr = np.asarray(pts)
    if dtype is not None:
        arr = arr.astype(dtype, copy=False)
    elif arr.dtype not in (np.float32, np.float64):
        arr = arr.astype(np.float64)
    return np.ascontiguousarray(arr.ravel())


def _validate_spline_info(knots: npt.NDArray[np.float32 | np.float64], degree: int) -> None:
    """Validate a knot vector and a degree, forwarding kernel errors."""
    _check_spline_info(knots, int(degree))


def _snap_points_to_domain(
    knots: npt.NDArray[np.float32 | np.float64],
    degree: int,
    pts: npt.NDArray[np.float32 | np.float64],
) -> npt.NDArray[np.float32 | np.float64]:
    """Reject points outside the spline domain and snap near-boundary ones.

    Points farther than the strict tolerance from the domain
    `[knots[degree], knots[-degree-1]]` raise a :class:`DomainError`. Points
    within tolerance but outside the domain are moved onto the closest end, so
    that the span search always terminates and the upper end is recognized.

    Args:
        knots (npt.NDArray[np.float32 | np.float64]): Knot vector.
        degree (int): Spline degree.
        pts (npt.NDArray[np.float32 | np.float64]): 1D array of points.

    Returns:
        npt.NDArray[np.float32 | np.float64]: The points, snapped if needed.
            The input array is never modified.

    Raises:
        DomainError: If one or more points lie outside the domain.
    """
    if pts.size == 0:
        return pts

    tol = get_strict_tolerance(knots.dtype)
    inside = _is_in_domain_impl(knots, degree, pts.astype(knots.dtype, copy=False), tol)
    if not np.all(inside):
        bad = pts[~inside]
        raise DomainError(
            f"{bad.size} parametric value(s) outside the knot vector domain "
            f"[{knots[degree]}, {knots[-degree - 1]}], e.g. {bad[0]}"
        )

    lower, upper = knots[degree], knots[-degree - 1]
    if np.any(pts < lower) or np.any(pts > upper):
        logger.debug("Snapping parametric values within %g of the domain ends", tol)
        pts = np.clip(pts, lower, upper)
    return pts


__all__ = [
    "_normalize_knots",
    "_normalize_points_1D",
    "_snap_points_to_domain",
    "_validate_spline_info",
]
