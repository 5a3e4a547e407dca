"""Binomial coefficients from a cached table of log-factorials.

The rational (NURBS) derivative recursion needs many binomial coefficients of
small arguments. They are computed as

    C(n, k) = round(exp(ln n! - ln k! - ln (n-k)!)),

with `ln m! = gammaln(m + 1)` stored in a table that grows on demand.

Precision ceiling: the log-factorials carry a relative error of a few machine
epsilons, which turns into an absolute error of roughly
`C(n, k) * n * log(n) * eps` in the coefficient. Rounding to the nearest
integer removes it while that error stays below 1/2, which holds in double
precision up to `n = 40` (:attr:`BinomialCache.EXACT_LIMIT`). Above it the
returned values are close approximations, no longer exact integers. Derivative
orders used in practice stay far below this limit.

Lifecycle: a :class:`BinomialCache` only ever grows. Growth builds a new, longer
table and publishes it with a single reference assignment while holding a
lock, so readers never observe a partially filled table and need no locking.
Call :meth:`BinomialCache.reserve` before a parallel dispatch to avoid any
growth during it.
"""

from __future__ import annotations

import logging
import math
import threading
from typing import Final

import numpy as np
import numpy.typing as npt
from scipy.special import gammaln

logger = logging.getLogger(__name__)


class BinomialCache:
    """Thread-safe, append-only table of log-factorials for binomial coefficients.

    Attributes:
        EXACT_LIMIT (int): Largest `n` for which coefficients are exact
            integers in double precision.
    """

    EXACT_LIMIT: Final[int] = 40

    _log_factorials: npt.NDArray[np.float64]
    _lock: threading.Lock

    def __init__(self, size: int = 0) -> None:
        """Initialize the cache.

        Args:
            size (int): Populate the table up to `size!` right away.
                Defaults to 0 (lazy growth only).

        Raises:
            ValueError: If `size` is negative.
        """
        self._lock = threading.Lock()
        self._log_factorials = np.zeros(1, dtype=np.float64)
        self.reserve(size)

    def __len__(self) -> int:
        """Number of log-factorials currently stored (`0!` included)."""
        return int(self._log_factorials.size)

    def reserve(self, n: int) -> None:
        """Make sure `ln m!` is tabulated for every `m <= n`.

        Args:
            n (int): Largest factorial argument needed.

        Raises:
            ValueError: If `n` is negative.
        """
        if n < 0:
            raise ValueError("n must be non-negative")
        if n < self._log_factorials.size:
            return

        with self._lock:
            current = self._log_factorials
            if n < current.size:
                return
            # Grow geometrically to keep the number of reallocations small.
            new_size = max(n + 1, 2 * current.size)
            extension = gammaln(np.arange(current.size, new_size, dtype=np.float64) + 1.0)
            self._log_factorials = np.concatenate((current, extension))
            logger.debug("Binomial table grown from %d to %d entries", current.size, new_size)

    def log_factorial(self, n: int) -> float:
        """Get `ln n!`.

        Raises:
            ValueError: If `n` is negative.
        """
        if n < 0:
            raise ValueError("n must be non-negative")
        table = self._log_factorials
        if n >= table.size:
            self.reserve(n)
            table = self._log_factorials
        return float(table[n])

    def binomial(self, n: int, k: int) -> float:
        """Get the binomial coefficient `C(n, k)`.

        Args:
            n (int): Non-negative upper argument.
            k (int): Lower argument. Values outside `[0, n]` give 0.

        Returns:
            float: The coefficient, an exact integer value for
                `n <= EXACT_LIMIT`.

        Raises:
            ValueError: If `n` is negative.

        Example:
            >>> BinomialCache().binomial(5, 2)
            10.0
        """
        if n < 0:
            raise ValueError("n must be non-negative")
        if k < 0 or k > n:
            return 0.0
        if n > self.EXACT_LIMIT:
            logger.debug("C(%d, %d) is above the exact range of the log-gamma table", n, k)
        log_value = self.log_factorial(n) - self.log_factorial(k) - self.log_factorial(n - k)
        return float(math.floor(0.5 + math.exp(log_value)))


_default_cache = BinomialCache()


def get_default_binomial_cache() -> BinomialCache:
    """Get the process-wide cache used when no cache is passed explicitly."""
    return _default_cache


def binomial(n: int, k: int) -> float:
    """Get `C(n, k)` from the process-wide cache.

    See :meth:`BinomialCache.binomial`.
    """
    return _default_cache.binomial(n, k)


__all__ = [
    "BinomialCache",
    "binomial",
    "get_default_binomial_cache",
]
