"""Knot insertion and degree elevation of tensor-product control nets.

Both operations act on the homogeneous control net along one parametric
direction and leave the represented map unchanged. They return new arrays;
the input net and knot vectors are never modified.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

import numpy as np
import numpy.typing as npt
import scipy.linalg

from ._basis_impl import _tabulate_basis_impl
from ._knots_impl import _find_span_impl, _find_spans_impl
from .evaluate import _normalize_net
from .knots import get_greville_abscissae, get_unique_knots_and_multiplicity

logger = logging.getLogger(__name__)

_FloatArray = npt.NDArray[np.float32 | np.float64]


def _check_axis(axis: int, dim: int) -> None:
    if not 0 <= axis < dim:
        raise ValueError(f"axis must be between 0 and {dim - 1}, got {axis}")


def _insert_knot(
    coefs: _FloatArray, knots: _FloatArray, degree: int, u: float
) -> tuple[_FloatArray, _FloatArray]:
    """Insert `u` once along the first axis of `coefs` (Boehm's algorithm).

    The new control points are
    `Q[i] = a[i] * P[i] + (1 - a[i]) * P[i-1]` for `span-degree+1 <= i <= span`,
    with `a[i] = (u - knots[i]) / (knots[i+degree] - knots[i])`, while the
    remaining points are copied unchanged.
    """
    n = knots.size - degree - 2
    span = _find_span_impl(n, degree, knots.dtype.type(u), knots)

    new_coefs = np.empty((coefs.shape[0] + 1, *coefs.shape[1:]), dtype=coefs.dtype)
    new_coefs[: span - degree + 1] = coefs[: span - degree + 1]
    new_coefs[span + 1 :] = coefs[span:]

    ids = np.arange(span - degree + 1, span + 1)
    if ids.size > 0:
        alpha = (u - knots[ids]) / (knots[ids + degree] - knots[ids])
        alpha = alpha.reshape(-1, *([1] * (coefs.ndim - 1)))
        new_coefs[ids] = alpha * coefs[ids] + (1.0 - alpha) * coefs[ids - 1]

    new_knots = np.insert(knots, span + 1, u)
    return new_coefs, new_knots


def insert_knots(
    degrees: Sequence[int],
    coefs: npt.ArrayLike,
    knots: Sequence[npt.ArrayLike],
    new_knots: npt.ArrayLike,
    axis: int = 0,
) -> tuple[_FloatArray, tuple[_FloatArray, ...]]:
    """Insert knots along one parametric direction of a control net.

    Args:
        degrees (Sequence[int]): Degree along each direction.
        coefs (npt.ArrayLike): Control net `(n_0, ..., n_{d-1}, ncomp)`.
        knots (Sequence[npt.ArrayLike]): Knot vector along each direction.
        new_knots (npt.ArrayLike): Knot values to insert (repetitions allowed).
            They must lie strictly inside the domain.
        axis (int): Direction along which to insert. Defaults to 0.

    Returns:
        tuple[_FloatArray, tuple[_FloatArray, ...]]: The refined control net
            and the knot vectors (only the one along `axis` changes).

    Raises:
        ValueError: If `axis` is invalid, a knot is not strictly inside the
            domain, or a knot would exceed multiplicity `degree+1`.
        DimensionMismatchError: If the control net is inconsistent.

    Example:
        >>> new_coefs, (new_knots,) = insert_knots([1], [[0.0], [2.0]], [[0, 0, 1, 1]], [0.5])
        >>> new_coefs.ravel()
        array([0., 1., 2.])
    """
    degrees_t, coefs_arr, knots_t = _normalize_net(degrees, coefs, knots)
    _check_axis(axis, len(knots_t))
    degree = degrees_t[axis]
    knots_i = knots_t[axis]
    inserted = np.sort(np.ravel(np.asarray(new_knots, dtype=knots_i.dtype)))

    lower, upper = knots_i[degree], knots_i[-degree - 1]
    if np.any(inserted <= lower) or np.any(inserted >= upper):
        raise ValueError(f"Inserted knots must lie strictly inside the domain ({lower}, {upper})")

    net = np.moveaxis(coefs_arr, axis, 0)
    for u in inserted:
        if np.count_nonzero(knots_i == u) >= degree + 1:
            raise ValueError(f"Knot {u} would exceed the maximum multiplicity {degree + 1}")
        net, knots_i = _insert_knot(net, knots_i, degree, float(u))

    knots_out = list(knots_t)
    knots_out[axis] = knots_i
    return np.ascontiguousarray(np.moveaxis(net, 0, axis)), tuple(knots_out)


def _basis_matrix(knots: _FloatArray, degree: int, pts: _FloatArray) -> _FloatArray:
    """Dense matrix `(n_pts, n_basis)` of all basis functions at `pts`."""
    n = knots.size - degree - 2
    spans = _find_spans_impl(n, degree, pts, knots)
    local = _tabulate_basis_impl(spans, pts, degree, knots)
    matrix = np.zeros((pts.size, n + 1), dtype=knots.dtype)
    cols = (spans - degree)[:, np.newaxis] + np.arange(degree + 1)
    matrix[np.arange(pts.size)[:, np.newaxis], cols] = local
    return matrix


def _elevated_knots(knots: _FloatArray, increment: int) -> _FloatArray:
    """Raise the multiplicity of every distinct knot by `increment`."""
    unique, mults = get_unique_knots_and_multiplicity(knots)
    return np.repeat(unique, mults + increment).astype(knots.dtype)


def elevate_degree(
    degrees: Sequence[int],
    coefs: npt.ArrayLike,
    knots: Sequence[npt.ArrayLike],
    increment: int = 1,
    axis: int = 0,
) -> tuple[tuple[int, ...], _FloatArray, tuple[_FloatArray, ...]]:
    """Elevate the degree along one parametric direction of a control net.

    The elevated space raises the multiplicity of every distinct knot by
    `increment`, so it contains the original one with the same continuity.
    The new control net is obtained by interpolating the original map at the
    Greville abscissae of the elevated space, which reproduces it exactly up
    to rounding.

    Args:
        degrees (Sequence[int]): Degree along each direction.
        coefs (npt.ArrayLike): Control net `(n_0, ..., n_{d-1}, ncomp)`.
        knots (Sequence[npt.ArrayLike]): Knot vector along each direction.
        increment (int): Degree increment, non-negative. Defaults to 1.
        axis (int): Direction to elevate. Defaults to 0.

    Returns:
        tuple: The new degrees, control net and knot vectors.

    Raises:
        ValueError: If `increment` is negative, `axis` is invalid or the
            spline is discontinuous at an interior knot along `axis`.
        DimensionMismatchError: If the control net is inconsistent.
    """
    if increment < 0:
        raise ValueError("increment must be non-negative")
    degrees_t, coefs_arr, knots_t = _normalize_net(degrees, coefs, knots)
    _check_axis(axis, len(knots_t))
    if increment == 0:
        return degrees_t, coefs_arr.copy(), knots_t

    degree = degrees_t[axis]
    knots_i = knots_t[axis]
    _, mults = get_unique_knots_and_multiplicity(knots_i[degree : knots_i.size - degree])
    if mults.size > 2 and np.any(mults[1:-1] > degree):  # noqa: PLR2004
        raise ValueError(
            "Degree elevation of splines discontinuous at interior knots is not supported"
        )

    new_degree = degree + increment
    new_knots = _elevated_knots(knots_i, increment)
    logger.debug(
        "Elevating degree along axis %d from %d to %d (%d -> %d control points)",
        axis,
        degree,
        new_degree,
        coefs_arr.shape[axis],
        new_knots.size - new_degree - 1,
    )

    greville = get_greville_abscissae(new_knots, new_degree)
    greville = np.clip(greville, knots_i[degree], knots_i[-degree - 1])
    old_matrix = _basis_matrix(knots_i, degree, greville)
    new_matrix = _basis_matrix(new_knots, new_degree, greville)

    net = np.moveaxis(coefs_arr, axis, 0)
    rhs = old_matrix @ net.reshape(net.shape[0], -1)
    solution = scipy.linalg.solve(new_matrix, rhs).astype(coefs_arr.dtype, copy=False)
    net = solution.reshape(new_matrix.shape[1], *net.shape[1:])

    degrees_out = list(degrees_t)
    degrees_out[axis] = new_degree
    knots_out = list(knots_t)
    knots_out[axis] = new_knots
    return tuple(degrees_out), np.ascontiguousarray(np.moveaxis(net, 0, axis)), tuple(knots_out)


__all__ = ["elevate_degree", "insert_knots"]
