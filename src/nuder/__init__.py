"""Public API surface for nuder.

Evaluation and differentiation of B-spline and NURBS curves, surfaces and
volumes. Defines package metadata and exported interfaces.
"""

import logging
from typing import Final

# Private API imports (accessible but not in __all__)
# Users can access private functions via: nuder._basis_impl._function_name, etc.
from . import (
    _basis_impl,  # noqa: F401
    _basis_utils,  # noqa: F401
    _knots_impl,  # noqa: F401
)

# Public API imports
from .basis import (
    eval_basis,
    eval_basis_derivatives,
    tabulate_basis,
    tabulate_basis_derivatives,
)
from .binomial import BinomialCache, binomial, get_default_binomial_cache
from .derivative_net import (
    SplineNet,
    build_first_derivative_nets,
    build_second_derivative_nets,
    derive_net,
    derive_net_along,
)
from .editing import flat_to_grid_index, move_points, set_weights
from .errors import (
    DegenerateWeightError,
    DimensionMismatchError,
    DomainError,
    NurbsError,
    UnsupportedDerivativeError,
)
from .evaluate import eval_bspline, eval_bspline_curve, eval_bspline_derivatives
from .geometry import (
    NurbsCurve,
    NurbsSurface,
    NurbsVolume,
    from_weighted_points,
    make_nurbs,
)
from .knots import (
    create_uniform_open_knot_vector,
    find_span,
    find_spans,
    get_greville_abscissae,
    get_unique_knots_and_multiplicity,
    validate_knot_vector,
)
from .lattice import PointsLattice
from .rational import (
    eval_rational_derivatives,
    rational_curve_derivatives,
    rational_derivatives_from_nets,
    rational_surface_derivatives,
)
from .refine import elevate_degree, insert_knots
from .tolerance import (
    get_conservative_tolerance,
    get_default_tolerance,
    get_machine_epsilon,
    get_strict_tolerance,
)

logging.getLogger(__name__).addHandler(logging.NullHandler())

# Package metadata
__version__: Final[str] = "0.1.0"
__license__: Final[str] = "MIT"
__author__: Final[str] = "Pablo Antolin <pablo.antolin@epfl.ch>"

# Public interface: only functions/classes that don't start with _
__all__ = [
    "BinomialCache",
    "DegenerateWeightError",
    "DimensionMismatchError",
    "DomainError",
    "NurbsCurve",
    "NurbsError",
    "NurbsSurface",
    "NurbsVolume",
    "PointsLattice",
    "SplineNet",
    "UnsupportedDerivativeError",
    "__author__",
    "__license__",
    "__version__",
    "binomial",
    "build_first_derivative_nets",
    "build_second_derivative_nets",
    "create_uniform_open_knot_vector",
    "derive_net",
    "derive_net_along",
    "elevate_degree",
    "eval_basis",
    "eval_basis_derivatives",
    "eval_bspline",
    "eval_bspline_curve",
    "eval_bspline_derivatives",
    "eval_rational_derivatives",
    "find_span",
    "find_spans",
    "flat_to_grid_index",
    "from_weighted_points",
    "get_conservative_tolerance",
    "get_default_binomial_cache",
    "get_default_tolerance",
    "get_greville_abscissae",
    "get_machine_epsilon",
    "get_strict_tolerance",
    "get_unique_knots_and_multiplicity",
    "insert_knots",
    "make_nurbs",
    "move_points",
    "rational_curve_derivatives",
    "rational_derivatives_from_nets",
    "rational_surface_derivatives",
    "set_weights",
    "tabulate_basis",
    "tabulate_basis_derivatives",
    "validate_knot_vector",
]
