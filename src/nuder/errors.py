"""Exception types raised by the NURBS evaluation engine.

All of them derive from :class:`NurbsError`. The concrete types also derive
from the built-in exception a caller would naturally catch (``ValueError`` or
``NotImplementedError``), so generic handlers keep working.
"""


class NurbsError(Exception):
    """Base class for all errors raised by nuder."""


class DomainError(NurbsError, ValueError):
    """A parametric value lies outside the domain of a knot vector."""


class DimensionMismatchError(NurbsError, ValueError):
    """Control net dimensions are inconsistent with knot vectors and degrees."""


class DegenerateWeightError(NurbsError, ValueError):
    """The weight at an evaluation point is zero (point at infinity)."""


class UnsupportedDerivativeError(NurbsError, NotImplementedError):
    """The requested derivative is not supported for this kind of geometry."""


__all__ = [
    "DegenerateWeightError",
    "DimensionMismatchError",
    "DomainError",
    "NurbsError",
    "UnsupportedDerivativeError",
]
