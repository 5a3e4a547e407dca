"""Tensor-product lattices of parametric points."""

from __future__ import annotations

from collections.abc import Iterable
from typing import Literal

import numpy as np
import numpy.typing as npt


def _as_float_1D(pts: npt.ArrayLike) -> npt.NDArray[np.float32 | np.float64]:
    arr = np.asarray(pts)
    if arr.dtype not in (np.float32, np.float64):
        arr = arr.astype(np.float64)
    if arr.ndim != 1:
        raise ValueError(f"All points must be 1D, got an array of shape {arr.shape}")
    if arr.size == 0:
        raise ValueError("All points must have at least 1 point")
    return np.ascontiguousarray(arr)


class PointsLattice:
    """Tensor-product grid of parametric points, given per direction.

    Evaluating a surface or volume on a lattice exploits the tensor-product
    structure: basis functions are computed once per direction instead of
    once per grid point, and results keep the grid shape
    `(m_0, ..., m_{dim-1}, ...)`.
    """

    def __init__(self, pts_per_dir: Iterable[npt.ArrayLike]) -> None:
        """Initialize the points lattice.

        Args:
            pts_per_dir (Iterable[npt.ArrayLike]): The parametric values along
                each direction. Non-float inputs are converted to float64.

        Raises:
            ValueError: If there is no direction, if some direction is not a
                non-empty 1D array, or if the directions have different dtypes.
        """
        self._pts_per_dir = tuple(_as_float_1D(pts) for pts in pts_per_dir)
        if not self._pts_per_dir:
            raise ValueError("Points lattice must have at least 1 dimension")
        if len({pts.dtype for pts in self._pts_per_dir}) > 1:
            raise ValueError("All points must have the same dtype")

    def __repr__(self) -> str:
        return f"PointsLattice(shape={self.shape}, dtype={self.dtype})"

    @property
    def dim(self) -> int:
        """Number of parametric directions."""
        return len(self._pts_per_dir)

    @property
    def dtype(self) -> np.dtype:
        """Floating point type shared by all directions."""
        return self._pts_per_dir[0].dtype

    @property
    def pts_per_dir(self) -> tuple[npt.NDArray[np.float32 | np.float64], ...]:
        """Parametric values along each direction."""
        return self._pts_per_dir

    @property
    def shape(self) -> tuple[int, ...]:
        """Number of points along each direction."""
        return tuple(pts.size for pts in self._pts_per_dir)

    def get_all_points(
        self, order: Literal["C", "F"] = "C"
    ) -> npt.NDArray[np.float32 | np.float64]:
        """Flatten the lattice into scattered points.

        Args:
            order (Literal["C", "F"]): Enumeration order. "C" (default) makes
                the last direction vary fastest, "F" the first one.

        Returns:
            npt.NDArray[np.float32 | np.float64]: Array of shape `(n_pts, dim)`.
        """
        grids = np.meshgrid(*self._pts_per_dir, indexing="ij")
        return np.stack([grid.ravel(order=order) for grid in grids], axis=-1)


__all__ = ["PointsLattice"]
