"""Numba kernels for knot vector checks and knot span location.

The functions in this module assume pre-validated input. Public wrappers with
validation live in :mod:`nuder.knots`.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING, Any, TypeVar

import numba as nb
import numpy as np
import numpy.typing as npt

F = TypeVar("F", bound=Callable[..., Any])

if TYPE_CHECKING:
    # During type-checking, make the decorator a no-op that preserves types.
    def nb_jit(*args: object, **kwargs: object) -> Callable[[F], F]:
        def decorator(func: F) -> F:
            return func

        return decorator
else:
    # At runtime, use the real Numba decorator.
    nb_jit = nb.jit  # type: ignore[attr-defined]


@nb_jit(
    nopython=True,
    cache=True,
    parallel=False,
)
def _check_spline_info(knots: npt.NDArray[np.float32 | np.float64], degree: int) -> None:
    """Validate basic constraints on a knot vector and degree.

    Args:
        knots (npt.NDArray[np.float32 | np.float64]): 1D knot vector.
        degree (int): Polynomial degree.

    Raises:
        TypeError: If `knots` is not 1-dimensional.
        ValueError: If `degree` is negative, if there are fewer than
            `2*degree+2` knots, or if the knot vector is not non-decreasing.
    """
    if knots.ndim != 1:
        raise TypeError("knots must be a 1D array")
    if degree < 0:
        raise ValueError("degree must be non-negative")
    if knots.size < (2 * degree + 2):
        raise ValueError("knots must have at least 2*degree+2 elements")
    if not np.all(np.diff(knots) >= knots.dtype.type(0.0)):
        raise ValueError("knots must be non-decreasing")


@nb_jit(
    nopython=True,
    cache=True,
    parallel=False,
)
def _find_span_impl(
    n: int,
    degree: int,
    pt: float,
    knots: npt.NDArray[np.float32 | np.float64],
) -> int:
    """Find the knot span containing a parametric value by binary search.

    Algorithm A2.1 from "The NURBS Book". The returned span `s` satisfies
    `knots[s] <= pt < knots[s+1]`, except for `pt == knots[n+1]` (the upper end
    of the domain), for which `s = n`.

    Args:
        n (int): Index of the last control point (number of control points - 1).
        degree (int): Spline degree.
        pt (float): Parametric value, inside `[knots[degree], knots[n+1]]`.
        knots (npt.NDArray[np.float32 | np.float64]): Knot vector.

    Returns:
        int: Knot span index.

    Note:
        Inputs are assumed to be correct (no validation performed). A value
        outside the domain never terminates the search.
    """
    if pt == knots[n + 1]:
        return n

    low = degree
    high = n + 1
    mid = (low + high) // 2
    while pt < knots[mid] or pt >= knots[mid + 1]:
        if pt < knots[mid]:
            high = mid
        else:
            low = mid
        mid = (low + high) // 2

    return mid


@nb_jit(
    nopython=True,
    cache=True,
    parallel=False,
)
def _find_spans_impl(
    n: int,
    degree: int,
    pts: npt.NDArray[np.float32 | np.float64],
    knots: npt.NDArray[np.float32 | np.float64],
) -> npt.NDArray[np.intp]:
    """Find the knot span of every value in a 1D array of parametric values.

    Note:
        Inputs are assumed to be correct (no validation performed).
    """
    spans = np.empty(pts.size, dtype=np.intp)
    for pt_id in range(pts.size):
        spans[pt_id] = _find_span_impl(n, degree, pts[pt_id], knots)
    return spans


@nb_jit(
    nopython=True,
    cache=True,
    parallel=False,
)
def _is_in_domain_impl(
    knots: npt.NDArray[np.float32 | np.float64],
    degree: int,
    pts: npt.NDArray[np.float32 | np.float64],
    tol: float,
) -> npt.NDArray[np.bool_]:
    """Check if points are within the spline domain (up to tolerance).

    The domain is `[knots[degree], knots[-degree-1]]`, which coincides with
    `[knots[0], knots[-1]]` for open knot vectors.

    Returns:
        npt.NDArray[np.bool_]: One flag per point, True if inside the domain.

    Note:
        Inputs are assumed to be correct (no validation performed).
    """
    knot_begin, knot_end = knots[degree], knots[-degree - 1]
    out = np.empty(pts.size, dtype=np.bool_)
    for pt_id in range(pts.size):
        pt = pts[pt_id]
        out[pt_id] = (knot_begin - tol) <= pt <= (knot_end + tol)
    return out


def _warmup_numba_functions() -> None:
    """Precompile the kernels with float64 signatures for a faster first call."""
    knots_dummy = np.array([0.0, 0.0, 0.0, 0.5, 1.0, 1.0, 1.0], dtype=np.float64)
    pts_dummy = np.array([0.25, 1.0], dtype=np.float64)
    _check_spline_info(knots_dummy, 2)
    _find_spans_impl(3, 2, pts_dummy, knots_dummy)
    _is_in_domain_impl(knots_dummy, 2, pts_dummy, 1e-15)


# Precompile numba functions on module import (skip during type checking)
if not TYPE_CHECKING:
    _warmup_numba_functions()


__all__ = [
    "_check_spline_info",
    "_find_span_impl",
    "_find_spans_impl",
    "_is_in_domain_impl",
]
