"""Index-addressed editing of homogeneous control nets.

Control points are addressed by flat indices over the control-net grid in C
(row-major) order: the last parametric direction varies fastest. For a
surface net of shape `(n_u, n_v, 4)` the flat index `i` refers to the point
`(i // n_v, i % n_v)`.

Both primitives return a modified copy by default; pass `in_place=True` to
modify the given array instead.
"""

from __future__ import annotations

import numpy as np
import numpy.typing as npt

from .errors import DegenerateWeightError

_FloatArray = npt.NDArray[np.float32 | np.float64]


def flat_to_grid_index(
    indices: npt.ArrayLike, grid_shape: tuple[int, ...]
) -> tuple[npt.NDArray[np.intp], ...]:
    """Convert flat control point indices to grid indices (C order).

    Args:
        indices (npt.ArrayLike): Flat indices.
        grid_shape (tuple[int, ...]): Number of control points per direction.

    Returns:
        tuple[npt.NDArray[np.intp], ...]: One index array per direction.

    Raises:
        IndexError: If an index is out of range.

    Example:
        >>> flat_to_grid_index([0, 4], (2, 3))
        (array([0, 1]), array([0, 1]))
    """
    flat = np.atleast_1d(np.asarray(indices, dtype=np.intp))
    size = int(np.prod(grid_shape))
    if np.any(flat < 0) or np.any(flat >= size):
        raise IndexError(f"Control point indices must be in [0, {size}), got {flat}")
    return np.unravel_index(flat, grid_shape, order="C")


def _prepare(coefs: npt.ArrayLike, in_place: bool) -> _FloatArray:
    if in_place:
        if not isinstance(coefs, np.ndarray):
            raise TypeError("in_place editing requires a numpy array")
        net = coefs
    else:
        net = np.array(coefs, dtype=np.result_type(np.asarray(coefs).dtype, np.float32))
    if net.ndim < 2 or net.shape[-1] < 2:  # noqa: PLR2004
        raise ValueError("Control net must have shape (n_0, ..., ncomp) with a weight component")
    return net


def move_points(
    coefs: npt.ArrayLike,
    displacement: npt.ArrayLike,
    indices: npt.ArrayLike,
    in_place: bool = False,
) -> _FloatArray:
    """Translate selected control points by a constant vector.

    Coordinates are stored multiplied by the weight, so the update is
    `xyz += displacement * w`; the weights are unchanged.

    Args:
        coefs (npt.ArrayLike): Homogeneous control net `(n_0, ..., ncomp)`.
        displacement (npt.ArrayLike): Translation with `ncomp - 1` components.
        indices (npt.ArrayLike): Flat (C order) indices of the points to move.
        in_place (bool): Modify `coefs` directly. Defaults to False.

    Returns:
        _FloatArray: The edited net.

    Raises:
        ValueError: If the displacement has the wrong size.
        IndexError: If an index is out of range.
    """
    net = _prepare(coefs, in_place)
    move = np.asarray(displacement, dtype=net.dtype).ravel()
    if move.size != net.shape[-1] - 1:
        raise ValueError(f"Displacement must have {net.shape[-1] - 1} components, got {move.size}")

    grid = flat_to_grid_index(indices, net.shape[:-1])
    weights = net[(*grid, -1)]
    net[(*grid, slice(0, -1))] += weights[:, np.newaxis] * move
    return net


def set_weights(
    coefs: npt.ArrayLike,
    weights: npt.ArrayLike,
    indices: npt.ArrayLike,
    in_place: bool = False,
) -> _FloatArray:
    """Replace the weights of selected control points, keeping their positions.

    The stored coordinates are rescaled as `xyz = xyz / w * new_w` before the
    weight is replaced, so the Cartesian control points do not move.

    Args:
        coefs (npt.ArrayLike): Homogeneous control net `(n_0, ..., ncomp)`.
        weights (npt.ArrayLike): New weights, one per index (or a scalar).
        indices (npt.ArrayLike): Flat (C order) indices of the points.
        in_place (bool): Modify `coefs` directly. Defaults to False.

    Returns:
        _FloatArray: The edited net.

    Raises:
        ValueError: If the number of weights does not match the indices.
        IndexError: If an index is out of range.
        DegenerateWeightError: If a current weight of an edited point is zero.
    """
    net = _prepare(coefs, in_place)
    grid = flat_to_grid_index(indices, net.shape[:-1])
    new_w = np.asarray(weights, dtype=net.dtype).ravel()
    if new_w.size not in (1, grid[0].size):
        raise ValueError(f"Expected {grid[0].size} weights, got {new_w.size}")
    new_w = np.broadcast_to(new_w, grid[0].shape)

    old_w = net[(*grid, -1)]
    if np.any(old_w == 0):
        raise DegenerateWeightError("Cannot rescale control points with zero weight")
    net[(*grid, slice(0, -1))] *= (new_w / old_w)[:, np.newaxis]
    net[(*grid, -1)] = new_w
    return net


__all__ = ["flat_to_grid_index", "move_points", "set_weights"]
