"""Tolerance utilities for floating-point comparisons on knots and parametric values."""

from functools import cache
from typing import Any, NamedTuple, cast

import numpy as np
from numpy import typing as npt


@cache
def _ensure_float_dtype_by_name(name: str) -> np.dtype[np.floating[Any]]:
    """Cached validator returning a floating dtype from its canonical name.

    Args:
        name (str): Canonical NumPy dtype name (e.g., "float64").

    Returns:
        np.dtype[np.floating[Any]]: Validated floating-point dtype.

    Raises:
        ValueError: If dtype is not a supported floating-point type.
    """
    dtype_obj = np.dtype(name)
    if dtype_obj.type not in (np.float32, np.float64):
        raise ValueError(f"Unsupported dtype: {name}")
    return cast(np.dtype[np.floating[Any]], dtype_obj)


def _ensure_float_dtype(dtype: npt.DTypeLike) -> np.dtype[np.floating[Any]]:
    """Normalize and validate a dtype-like into a floating dtype."""
    return _ensure_float_dtype_by_name(np.dtype(dtype).name)


class _TolerancePreset(NamedTuple):
    """Tolerance values for the supported floating-point types."""

    float32: float
    float64: float


_TOLERANCE_PRESETS = {
    "default": _TolerancePreset(1e-6, 1e-12),
    "strict": _TolerancePreset(1e-7, 1e-15),
    "conservative": _TolerancePreset(1e-5, 1e-10),
}


def _get_tolerance(dtype: npt.DTypeLike, preset: _TolerancePreset) -> float:
    """Pick the value of ``preset`` matching ``dtype``.

    Raises:
        ValueError: If dtype is not float32 or float64.
    """
    dtype_obj = _ensure_float_dtype(dtype)
    if dtype_obj.type == np.float32:
        return preset.float32
    return preset.float64


def get_default_tolerance(dtype: npt.DTypeLike) -> float:
    """Get a reasonable default tolerance for floating-point comparisons.

    Args:
        dtype (npt.DTypeLike): NumPy floating-point data type (float32 or float64).

    Returns:
        float: Recommended tolerance value for the given dtype.

    Raises:
        ValueError: If dtype is not a supported floating-point type.

    Example:
        >>> get_default_tolerance(np.float32)
        1e-06
        >>> get_default_tolerance("float64")
        1e-12
    """
    return _get_tolerance(dtype, _TOLERANCE_PRESETS["default"])


def get_strict_tolerance(dtype: npt.DTypeLike) -> float:
    """Get a strict tolerance for parametric coordinates.

    This is the tolerance used to decide whether a parametric value that lies
    slightly outside a knot vector domain is snapped onto its end or rejected.

    Args:
        dtype (npt.DTypeLike): NumPy floating-point data type.

    Returns:
        float: Strict tolerance value for the given dtype.

    Raises:
        ValueError: If dtype is not a supported floating-point type.
    """
    return _get_tolerance(dtype, _TOLERANCE_PRESETS["strict"])


def get_conservative_tolerance(dtype: npt.DTypeLike) -> float:
    """Get a conservative tolerance for robust comparisons.

    Suited to comparisons of computed geometry (points, derivatives) where
    errors accumulate over several operations.

    Args:
        dtype (npt.DTypeLike): NumPy floating-point data type.

    Returns:
        float: Conservative tolerance value for the given dtype.

    Raises:
        ValueError: If dtype is not a supported floating-point type.
    """
    return _get_tolerance(dtype, _TOLERANCE_PRESETS["conservative"])


def get_machine_epsilon(dtype: npt.DTypeLike) -> float:
    """Get machine epsilon for a given floating-point dtype.

    Args:
        dtype (npt.DTypeLike): NumPy floating-point data type.

    Returns:
        float: Machine epsilon for the given dtype.

    Raises:
        ValueError: If dtype is not a supported floating-point type.
    """
    return float(np.finfo(_ensure_float_dtype(dtype)).eps)
