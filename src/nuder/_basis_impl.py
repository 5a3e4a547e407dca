"""Numba kernels for B-spline basis functions and their derivatives.

Both kernels evaluate the `degree+1` basis functions that are nonzero in a
given knot span with the triangular recurrences of "The NURBS Book"
(Algorithms A2.2 and A2.3). The recurrences never divide by the length of a
zero-length knot interval: every denominator spans the (nonempty) knot span
that contains the evaluation point.
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
def _eval_basis_impl(
    span: int,
    pt: float,
    degree: int,
    knots: npt.NDArray[np.float32 | np.float64],
    out: npt.NDArray[np.float32 | np.float64],
) -> None:
    """Evaluate the nonzero basis functions at a single point.

    Algorithm A2.2 from "The NURBS Book". Results are written to `out`
    (C-style), which must have length `degree+1`.

    Args:
        span (int): Knot span containing `pt`.
        pt (float): Parametric value.
        degree (int): Spline degree.
        knots (npt.NDArray[np.float32 | np.float64]): Knot vector.
        out (npt.NDArray[np.float32 | np.float64]): Output array for the
            values of basis functions `span-degree, ..., span`.

    Note:
        Inputs are assumed to be correct (no validation performed).
    """
    dtype = knots.dtype
    zero = dtype.type(0.0)

    left = np.zeros(degree + 1, dtype=dtype)
    right = np.zeros(degree + 1, dtype=dtype)

    out[0] = dtype.type(1.0)
    for j in range(1, degree + 1):
        left[j] = pt - knots[span + 1 - j]
        right[j] = knots[span + j] - pt
        saved = zero
        for r in range(j):
            temp = out[r] / (right[r + 1] + left[j - r])
            out[r] = saved + right[r + 1] * temp
            saved = left[j - r] * temp
        out[j] = saved


@nb_jit(
    nopython=True,
    cache=True,
    parallel=False,
)
def _tabulate_basis_impl(
    spans: npt.NDArray[np.intp],
    pts: npt.NDArray[np.float32 | np.float64],
    degree: int,
    knots: npt.NDArray[np.float32 | np.float64],
) -> npt.NDArray[np.float32 | np.float64]:
    """Evaluate the nonzero basis functions at every point of a 1D array.

    Returns:
        npt.NDArray[np.float32 | np.float64]: Array of shape `(n_pts, degree+1)`.

    Note:
        Inputs are assumed to be correct (no validation performed).
    """
    out = np.empty((pts.size, degree + 1), dtype=knots.dtype)
    for pt_id in range(pts.size):
        _eval_basis_impl(spans[pt_id], pts[pt_id], degree, knots, out[pt_id])
    return out


@nb_jit(
    nopython=True,
    cache=True,
    parallel=False,
)
def _eval_basis_derivatives_impl(  # noqa: PLR0912
    span: int,
    pt: float,
    degree: int,
    knots: npt.NDArray[np.float32 | np.float64],
    n_ders: int,
    out: npt.NDArray[np.float32 | np.float64],
) -> None:
    """Evaluate the nonzero basis functions and their derivatives at a point.

    Algorithm A2.3 from "The NURBS Book". The full triangular table of
    lower-degree basis functions (`ndu`, upper triangle) and knot differences
    (`ndu`, lower triangle) is built first, then the derivatives are assembled
    from it. Rows of `out` above `degree` are set to zero.

    Args:
        span (int): Knot span containing `pt`.
        pt (float): Parametric value.
        degree (int): Spline degree.
        knots (npt.NDArray[np.float32 | np.float64]): Knot vector.
        n_ders (int): Highest derivative order requested.
        out (npt.NDArray[np.float32 | np.float64]): Output array of shape
            `(n_ders+1, degree+1)`; `out[k, j]` is the `k`-th derivative of
            basis function `span-degree+j`.

    Note:
        Inputs are assumed to be correct (no validation performed).
    """
    dtype = knots.dtype
    zero = dtype.type(0.0)
    one = dtype.type(1.0)
    order = degree + 1

    ndu = np.zeros((order, order), dtype=dtype)
    left = np.zeros(order, dtype=dtype)
    right = np.zeros(order, dtype=dtype)

    ndu[0, 0] = one
    for j in range(1, order):
        left[j] = pt - knots[span + 1 - j]
        right[j] = knots[span + j] - pt
        saved = zero
        for r in range(j):
            ndu[j, r] = right[r + 1] + left[j - r]
            temp = ndu[r, j - 1] / ndu[j, r]
            ndu[r, j] = saved + right[r + 1] * temp
            saved = left[j - r] * temp
        ndu[j, j] = saved

    out.fill(zero)
    for j in range(order):
        out[0, j] = ndu[j, degree]

    n_ders_eff = min(n_ders, degree)
    a = np.zeros((2, order), dtype=dtype)

    for r in range(order):
        s1 = 0
        s2 = 1
        a.fill(zero)
        a[0, 0] = one
        for k in range(1, n_ders_eff + 1):
            d = zero
            rk = r - k
            pk = degree - k
            if r >= k:
                a[s2, 0] = a[s1, 0] / ndu[pk + 1, rk]
                d = a[s2, 0] * ndu[rk, pk]
            j1 = 1 if rk >= -1 else -rk
            j2 = k - 1 if r - 1 <= pk else degree - r
            for j in range(j1, j2 + 1):
                a[s2, j] = (a[s1, j] - a[s1, j - 1]) / ndu[pk + 1, rk + j]
                d += a[s2, j] * ndu[rk + j, pk]
            if r <= pk:
                a[s2, k] = -a[s1, k - 1] / ndu[pk + 1, r]
                d += a[s2, k] * ndu[r, pk]
            out[k, r] = d
            s1, s2 = s2, s1

    factor = dtype.type(degree)
    for k in range(1, n_ders_eff + 1):
        for j in range(order):
            out[k, j] *= factor
        factor *= dtype.type(degree - k)


@nb_jit(
    nopython=True,
    cache=True,
    parallel=False,
)
def _tabulate_basis_derivatives_impl(
    spans: npt.NDArray[np.intp],
    pts: npt.NDArray[np.float32 | np.float64],
    degree: int,
    knots: npt.NDArray[np.float32 | np.float64],
    n_ders: int,
) -> npt.NDArray[np.float32 | np.float64]:
    """Evaluate basis functions and derivatives at every point of a 1D array.

    Returns:
        npt.NDArray[np.float32 | np.float64]: Array of shape
            `(n_pts, n_ders+1, degree+1)`.

    Note:
        Inputs are assumed to be correct (no validation performed).
    """
    out = np.empty((pts.size, n_ders + 1, degree + 1), dtype=knots.dtype)
    for pt_id in range(pts.size):
        _eval_basis_derivatives_impl(
            spans[pt_id], pts[pt_id], degree, knots, n_ders, out[pt_id]
        )
    return out


def _warmup_numba_functions() -> None:
    """Precompile the kernels with float64 signatures for a faster first call."""
    knots_dummy = np.array([0.0, 0.0, 0.0, 0.5, 1.0, 1.0, 1.0], dtype=np.float64)
    pts_dummy = np.array([0.25], dtype=np.float64)
    spans_dummy = np.array([2], dtype=np.intp)
    _tabulate_basis_impl(spans_dummy, pts_dummy, 2, knots_dummy)
    _tabulate_basis_derivatives_impl(spans_dummy, pts_dummy, 2, knots_dummy, 2)


# Precompile numba functions on module import (skip during type checking)
if not TYPE_CHECKING:
    _warmup_numba_functions()


__all__ = [
    "_eval_basis_derivatives_impl",
    "_eval_basis_impl",
    "_tabulate_basis_derivatives_impl",
    "_tabulate_basis_impl",
]
