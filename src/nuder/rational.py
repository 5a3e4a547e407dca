"""Rational (NURBS) derivatives from derivatives of the homogeneous net.

A NURBS map is the ratio `S = A / W` of the first components `A` of a
homogeneous B-spline and its last (weight) component `W`. Differentiating
`A = W * S` with the generalized Leibniz rule and solving for the highest
order term gives, for a surface,

    S[k][l] = ( A[k][l]
                - sum_{j=1..l} C(l,j) W[0][j] S[k][l-j]
                - sum_{i=1..k} C(k,i) ( W[i][0] S[k-i][l]
                                        + sum_{j=1..l} C(l,j) W[i][j] S[k-i][l-j] ) )
              / W[0][0],

which is evaluated in increasing total order `k + l` so that every term on
the right-hand side is already known (Algorithms A4.2 and A4.4 of "The NURBS
Book"). Curves use the one-index specialization.

Volumes are supported for pure partial derivatives only (any order along a
single direction). Mixed volume derivatives would require a three-index
generalization and raise :class:`~nuder.errors.UnsupportedDerivativeError`.
"""

from __future__ import annotations

from collections.abc import Sequence

import numpy as np
import numpy.typing as npt

from .binomial import BinomialCache, get_default_binomial_cache
from .errors import DegenerateWeightError, UnsupportedDerivativeError
from .evaluate import _eval_tensor, _normalize_net
from .lattice import PointsLattice

_FloatArray = npt.NDArray[np.float32 | np.float64]


def _check_weights(weights: _FloatArray) -> None:
    """Reject zero (or non-finite) weights at the evaluation points.

    Raises:
        DegenerateWeightError: If any weight is zero or not finite.
    """
    bad = (weights == 0) | ~np.isfinite(weights)
    if np.any(bad):
        raise DegenerateWeightError(
            f"Zero or non-finite weight at {int(np.count_nonzero(bad))} evaluation point(s): "
            "the point lies at infinity"
        )


def _split_homogeneous(hom_ders: npt.ArrayLike) -> tuple[_FloatArray, _FloatArray]:
    """Split homogeneous values into weighted coordinates and weights.

    Raises:
        ValueError: If there are fewer than two components.
    """
    arr = np.asarray(hom_ders)
    if arr.dtype not in (np.float32, np.float64):
        arr = arr.astype(np.float64)
    if arr.shape[-1] < 2:  # noqa: PLR2004
        raise ValueError("Homogeneous values need at least one coordinate and a weight")
    return arr[..., :-1], arr[..., -1]


def rational_curve_derivatives(
    hom_ders: npt.ArrayLike,
    max_order: int | None = None,
    cache: BinomialCache | None = None,
) -> _FloatArray:
    """Recover the derivatives of a rational curve from homogeneous derivatives.

    Args:
        hom_ders (npt.ArrayLike): Derivatives of the homogeneous curve with
            shape `(..., d+1, ncomp)`: entry `[..., k, :]` is the `k`-th
            derivative of `(x*w, y*w, z*w, w)`. Leading axes (e.g. points)
            are processed independently.
        max_order (int | None): Highest order to compute; higher entries are
            left as zeros. Defaults to `d` (all).
        cache (BinomialCache | None): Binomial coefficient cache. Defaults to
            the process-wide cache.

    Returns:
        _FloatArray: Array of shape `(..., d+1, ncomp-1)` with the Cartesian
            derivatives; entry `[..., 0, :]` is the point itself.

    Raises:
        ValueError: If `max_order` is negative.
        DegenerateWeightError: If the weight is zero at some point.

    Example:
        >>> rational_curve_derivatives([[2.0, 2.0], [0.0, 0.0]])
        array([[1.],
               [0.]])
    """
    cache = get_default_binomial_cache() if cache is None else cache
    aders, wders = _split_homogeneous(hom_ders)
    _check_weights(wders[..., 0])

    n_ders = aders.shape[-2]
    if max_order is None:
        max_order = n_ders - 1
    elif max_order < 0:
        raise ValueError("max_order must be non-negative")
    cache.reserve(n_ders)
    inv_w0 = 1.0 / wders[..., 0, np.newaxis]

    out = np.zeros_like(aders)
    for k in range(min(max_order + 1, n_ders)):
        v = aders[..., k, :].copy()
        for i in range(1, k + 1):
            v -= cache.binomial(k, i) * wders[..., i, np.newaxis] * out[..., k - i, :]
        out[..., k, :] = v * inv_w0
    return out


def rational_surface_derivatives(
    hom_ders: npt.ArrayLike,
    max_order: int | None = None,
    cache: BinomialCache | None = None,
) -> _FloatArray:
    """Recover the partial derivatives of a rational surface.

    Args:
        hom_ders (npt.ArrayLike): Partial derivatives of the homogeneous
            surface with shape `(..., K+1, L+1, ncomp)`: entry `[..., k, l, :]`
            is the derivative of order `k` in u and `l` in v.
        max_order (int | None): Highest total order `k + l` to compute.
            Entries above it are left as zeros. Defaults to `K + L` (all).
        cache (BinomialCache | None): Binomial coefficient cache. Defaults to
            the process-wide cache.

    Returns:
        _FloatArray: Array of shape `(..., K+1, L+1, ncomp-1)`; entry
            `[..., 0, 0, :]` is the point itself.

    Raises:
        ValueError: If `max_order` is negative.
        DegenerateWeightError: If the weight is zero at some point.
    """
    cache = get_default_binomial_cache() if cache is None else cache
    aders, wders = _split_homogeneous(hom_ders)
    _check_weights(wders[..., 0, 0])

    n_k, n_l = aders.shape[-3], aders.shape[-2]
    if max_order is None:
        max_order = n_k + n_l - 2
    elif max_order < 0:
        raise ValueError("max_order must be non-negative")
    cache.reserve(max(n_k, n_l))
    inv_w0 = 1.0 / wders[..., 0, 0, np.newaxis]

    out = np.zeros_like(aders)
    for total in range(max_order + 1):
        for k in range(max(0, total - n_l + 1), min(total, n_k - 1) + 1):
            l = total - k  # noqa: E741
            v = aders[..., k, l, :].copy()
            for j in range(1, l + 1):
                v -= cache.binomial(l, j) * wders[..., 0, j, np.newaxis] * out[..., k, l - j, :]
            for i in range(1, k + 1):
                v2 = wders[..., i, 0, np.newaxis] * out[..., k - i, l, :]
                for j in range(1, l + 1):
                    w_ij = wders[..., i, j, np.newaxis]
                    v2 = v2 + cache.binomial(l, j) * w_ij * out[..., k - i, l - j, :]
                v -= cache.binomial(k, i) * v2
            out[..., k, l, :] = v * inv_w0
    return out


def _check_pure_partial(orders: Sequence[int]) -> None:
    """Check that at most one direction has a positive derivative order.

    Raises:
        UnsupportedDerivativeError: If more than one order is positive.
    """
    if sum(1 for order in orders if order > 0) > 1:
        raise UnsupportedDerivativeError(
            f"Mixed partial derivatives of volumes are not supported (orders {tuple(orders)})"
        )


def eval_rational_derivatives(
    degrees: Sequence[int],
    coefs: npt.ArrayLike,
    knots: Sequence[npt.ArrayLike],
    pts: npt.ArrayLike | PointsLattice,
    orders: Sequence[int],
    max_order: int | None = None,
    cache: BinomialCache | None = None,
) -> _FloatArray:
    """Evaluate a NURBS map and its rational partial derivatives.

    The homogeneous derivatives are computed from basis function derivatives
    and corrected with the Leibniz recursion. If all orders are zero the
    recursion reduces to the division of the point by its weight.

    Args:
        degrees (Sequence[int]): Degree along each direction.
        coefs (npt.ArrayLike): Homogeneous control net `(n_0, ..., n_{d-1}, ncomp)`,
            weights in the last component.
        knots (Sequence[npt.ArrayLike]): Knot vector along each direction.
        pts (npt.ArrayLike | PointsLattice): Scattered points or a lattice.
        orders (Sequence[int]): Highest derivative order along each direction.
        max_order (int | None): Highest total order to compute; higher
            entries are zero. Defaults to all orders.
        cache (BinomialCache | None): Binomial coefficient cache.

    Returns:
        _FloatArray: Shape `(n_pts, orders[0]+1, ..., orders[d-1]+1, ncomp-1)`
            for scattered points; lattices get the lattice shape in front.

    Raises:
        UnsupportedDerivativeError: For mixed partial derivatives of volumes.
        DegenerateWeightError: If the weight is zero at some point.
        DomainError: If any point is outside the domain.
    """
    degrees_t, coefs_arr, knots_t = _normalize_net(degrees, coefs, knots)
    orders_t = tuple(int(o) for o in orders)
    dim = len(knots_t)
    if len(orders_t) != dim:
        raise ValueError(f"Expected {dim} derivative orders, got {len(orders_t)}")
    if any(o < 0 for o in orders_t):
        raise ValueError("Derivative orders must be non-negative")
    if max_order is not None and max_order < 0:
        raise ValueError("max_order must be non-negative")
    if dim == 3:  # noqa: PLR2004
        _check_pure_partial(orders_t)

    hom = _eval_tensor(degrees_t, coefs_arr, knots_t, pts, orders_t)
    lead = hom.shape[: hom.ndim - dim - 1]

    if not any(orders_t):
        weights = hom[..., -1:]
        _check_weights(weights)
        return hom[..., :-1] / weights

    if dim == 2:  # noqa: PLR2004
        return rational_surface_derivatives(hom, max_order=max_order, cache=cache)

    # Curves, and volumes with a single nonzero order, use the one-index
    # recursion along the differentiated direction.
    table_shape = hom.shape[len(lead) : -1]
    flat = hom.reshape(*lead, -1, hom.shape[-1])
    ders = rational_curve_derivatives(flat, max_order=max_order, cache=cache)
    return ders.reshape(*lead, *table_shape, ders.shape[-1])


def rational_derivatives_from_nets(
    values: npt.ArrayLike,
    first: Sequence[npt.ArrayLike],
    second: Sequence[Sequence[npt.ArrayLike]] | None = None,
    cache: BinomialCache | None = None,
) -> tuple[_FloatArray, list[_FloatArray], list[list[_FloatArray]] | None]:
    """Rational point and derivatives from evaluations of derivative nets.

    Args:
        values (npt.ArrayLike): Homogeneous points `(n_pts, ncomp)`.
        first (Sequence[npt.ArrayLike]): Per direction, the evaluation of the
            first derivative net, `(n_pts, ncomp)` each.
        second (Sequence[Sequence[npt.ArrayLike]] | None): Evaluations of the
            second derivative nets, `second[i][j]` for directions `i, j`.
            Supported for curves and surfaces only.
        cache (BinomialCache | None): Binomial coefficient cache.

    Returns:
        tuple: Cartesian points `(n_pts, ncomp-1)`, the list of first
            derivatives per direction and, if `second` was given, the nested
            list of second derivatives.

    Raises:
        ValueError: If the number of directions is not 1, 2 or 3.
        UnsupportedDerivativeError: If second derivatives are given for a volume.
        DegenerateWeightError: If the weight is zero at some point.
    """
    values_arr = np.asarray(values)
    first_arr = [np.asarray(f) for f in first]
    dim = len(first_arr)
    if dim not in (1, 2, 3):
        raise ValueError(f"Expected 1, 2 or 3 directions, got {dim}")
    if second is not None and dim == 3:  # noqa: PLR2004
        raise UnsupportedDerivativeError("Second derivatives of volumes are not supported")

    if dim == 2:  # noqa: PLR2004
        n_ord = 3 if second is not None else 2
        table = np.zeros((*values_arr.shape[:-1], n_ord, n_ord, values_arr.shape[-1]))
        table[..., 0, 0, :] = values_arr
        table[..., 1, 0, :] = first_arr[0]
        table[..., 0, 1, :] = first_arr[1]
        if second is not None:
            table[..., 2, 0, :] = second[0][0]
            table[..., 1, 1, :] = second[0][1]
            table[..., 0, 2, :] = second[1][1]
        ders = rational_surface_derivatives(table, max_order=n_ord - 1, cache=cache)
        point = ders[..., 0, 0, :]
        first_out = [ders[..., 1, 0, :], ders[..., 0, 1, :]]
        if second is None:
            return point, first_out, None
        mixed = ders[..., 1, 1, :]
        return point, first_out, [[ders[..., 2, 0, :], mixed], [mixed, ders[..., 0, 2, :]]]

    point = rational_curve_derivatives(values_arr[..., np.newaxis, :], cache=cache)[..., 0, :]
    first_out = []
    second_out = None
    for axis in range(dim):
        rows = [values_arr, first_arr[axis]]
        if second is not None:
            rows.append(np.asarray(second[axis][axis]))
        ders = rational_curve_derivatives(np.stack(rows, axis=-2), cache=cache)
        first_out.append(ders[..., 1, :])
        if second is not None:
            second_out = [[ders[..., 2, :]]]
    return point, first_out, second_out


__all__ = [
    "eval_rational_derivatives",
    "rational_curve_derivatives",
    "rational_derivatives_from_nets",
    "rational_surface_derivatives",
]
