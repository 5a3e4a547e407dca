"""Control nets of the derivatives of B-splines.

The derivative of a degree `p` B-spline with control points `P[i]` and knots
`U` is a degree `p-1` B-spline with knots `U[1:-1]` and control points

    Q[i] = p / (U[i+p+1] - U[i+1]) * (P[i+1] - P[i]).

For tensor-product nets the transform acts along one axis at a time; mixed
partial derivatives are obtained by deriving the result along the other axis.
Applied to a homogeneous net, the result is the derivative net of the
homogeneous map, from which the rational derivatives are recovered with
:mod:`nuder.rational`.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import NamedTuple

import numpy as np
import numpy.typing as npt

from .errors import UnsupportedDerivativeError
from .evaluate import _normalize_net
from .refine import elevate_degree

logger = logging.getLogger(__name__)

_FloatArray = npt.NDArray[np.float32 | np.float64]


class SplineNet(NamedTuple):
    """Degrees, control net and knot vectors of a tensor-product spline."""

    degrees: tuple[int, ...]
    coefs: _FloatArray
    knots: tuple[_FloatArray, ...]


def derive_net(
    degree: int, coefs: npt.ArrayLike, knots: npt.ArrayLike
) -> tuple[_FloatArray, _FloatArray]:
    """Compute the control points and knots of the derivative along the first axis.

    Args:
        degree (int): Degree along the first axis. Must be at least 1.
        coefs (npt.ArrayLike): Control points, shape `(n, ...)`. Trailing axes
            (other directions, components) are carried along.
        knots (npt.ArrayLike): Knot vector with `n + degree + 1` entries.

    Returns:
        tuple[_FloatArray, _FloatArray]: Control points of shape `(n-1, ...)`
            and the knot vector without its first and last knots.

    Raises:
        ValueError: If `degree` is lower than 1 or the sizes are inconsistent.

    Example:
        >>> dcoefs, dknots = derive_net(1, [[0.0], [2.0]], [0, 0, 1, 1])
        >>> dcoefs
        array([[2.]])
        >>> dknots
        array([0., 1.])
    """
    if degree < 1:
        raise ValueError("degree must be at least 1 to build a derivative net")
    coefs_arr = np.asarray(coefs)
    knots_arr = np.asarray(knots)
    if knots_arr.dtype not in (np.float32, np.float64):
        knots_arr = knots_arr.astype(np.float64)
    if coefs_arr.dtype not in (np.float32, np.float64):
        coefs_arr = coefs_arr.astype(knots_arr.dtype)
    n = coefs_arr.shape[0]
    if knots_arr.ndim != 1 or knots_arr.size != n + degree + 1:
        raise ValueError(
            f"{n} control points of degree {degree} require {n + degree + 1} knots, "
            f"got {knots_arr.size}"
        )

    diffs = knots_arr[degree + 1 : n + degree] - knots_arr[1:n]
    # Zero-length intervals carry no basis function; their coefficients are zero.
    factors = np.zeros_like(diffs)
    np.divide(degree, diffs, out=factors, where=diffs > 0)
    factors = factors.reshape(-1, *([1] * (coefs_arr.ndim - 1)))

    dcoefs = factors * (coefs_arr[1:] - coefs_arr[:-1])
    return dcoefs.astype(coefs_arr.dtype, copy=False), knots_arr[1:-1].copy()


def derive_net_along(
    degrees: Sequence[int],
    coefs: npt.ArrayLike,
    knots: Sequence[npt.ArrayLike],
    axis: int,
) -> SplineNet:
    """Compute the derivative net of a tensor-product spline along one direction.

    Args:
        degrees (Sequence[int]): Degree along each direction.
        coefs (npt.ArrayLike): Control net `(n_0, ..., n_{d-1}, ncomp)`.
        knots (Sequence[npt.ArrayLike]): Knot vector along each direction.
        axis (int): Direction of differentiation.

    Returns:
        SplineNet: The derivative, of degree `degrees[axis] - 1` along `axis`.

    Raises:
        ValueError: If `axis` is invalid or the degree along it is 0.
        DimensionMismatchError: If the control net is inconsistent.
    """
    degrees_t, coefs_arr, knots_t = _normalize_net(degrees, coefs, knots)
    if not 0 <= axis < len(knots_t):
        raise ValueError(f"axis must be between 0 and {len(knots_t) - 1}, got {axis}")

    dcoefs, dknots = derive_net(degrees_t[axis], np.moveaxis(coefs_arr, axis, 0), knots_t[axis])

    new_degrees = list(degrees_t)
    new_degrees[axis] -= 1
    new_knots = list(knots_t)
    new_knots[axis] = dknots
    return SplineNet(
        tuple(new_degrees), np.ascontiguousarray(np.moveaxis(dcoefs, 0, axis)), tuple(new_knots)
    )


def build_first_derivative_nets(
    degrees: Sequence[int], coefs: npt.ArrayLike, knots: Sequence[npt.ArrayLike]
) -> list[SplineNet]:
    """Build the first derivative net along every direction.

    A direction of degree 0 is piecewise constant along it, so its
    derivative is returned as a zero net with the original degrees, knots
    and control net shape.
    """
    degrees_t, coefs_arr, knots_t = _normalize_net(degrees, coefs, knots)
    nets = []
    for axis, degree in enumerate(degrees_t):
        if degree == 0:
            nets.append(SplineNet(degrees_t, np.zeros_like(coefs_arr), knots_t))
        else:
            nets.append(derive_net_along(degrees_t, coefs_arr, knots_t, axis))
    return nets


def build_second_derivative_nets(
    degrees: Sequence[int], coefs: npt.ArrayLike, knots: Sequence[npt.ArrayLike]
) -> list[list[SplineNet]]:
    """Build the second derivative nets of a curve or surface.

    Directions of degree lower than 2 are first elevated to degree 2, so that
    the second derivative net has a non-negative degree. The mixed net of a
    surface is computed once and shared by `[0][1]` and `[1][0]`.

    Args:
        degrees (Sequence[int]): Degree along each direction.
        coefs (npt.ArrayLike): Control net `(n_0, ..., n_{d-1}, ncomp)`.
        knots (Sequence[npt.ArrayLike]): Knot vector along each direction.

    Returns:
        list[list[SplineNet]]: `nets[i][j]` is the derivative along `i` then `j`.

    Raises:
        UnsupportedDerivativeError: For volumes.
    """
    degrees_t, net, knots_t = _normalize_net(degrees, coefs, knots)
    dim = len(knots_t)
    if dim == 3:  # noqa: PLR2004
        raise UnsupportedDerivativeError("Second derivative nets of volumes are not supported")

    for axis, degree in enumerate(degrees_t):
        if degree < 2:  # noqa: PLR2004
            logger.debug(
                "Elevating degree %d along axis %d before second derivatives", degree, axis
            )
            degrees_t, net, knots_t = elevate_degree(degrees_t, net, knots_t, 2 - degree, axis)

    first = [derive_net_along(degrees_t, net, knots_t, axis) for axis in range(dim)]
    if dim == 1:
        return [[derive_net_along(*first[0], axis=0)]]

    mixed = derive_net_along(*first[0], axis=1)
    return [
        [derive_net_along(*first[0], axis=0), mixed],
        [mixed, derive_net_along(*first[1], axis=1)],
    ]


__all__ = [
    "SplineNet",
    "build_first_derivative_nets",
    "build_second_derivative_nets",
    "derive_net",
    "derive_net_along",
]
