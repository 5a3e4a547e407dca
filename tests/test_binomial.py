"""Tests for the binomial coefficient cache."""

from __future__ import annotations

import math
import threading

import pytest

from nuder.binomial import BinomialCache, binomial, get_default_binomial_cache


class TestBinomialCache:
    """Tests for `BinomialCache`."""

    @pytest.mark.parametrize("n", [0, 1, 5, 12, 25, BinomialCache.EXACT_LIMIT])
    def test_exact_up_to_limit(self, n: int) -> None:
        cache = BinomialCache()
        for k in range(n + 1):
            assert cache.binomial(n, k) == math.comb(n, k)

    def test_out_of_range_k_is_zero(self) -> None:
        cache = BinomialCache()
        assert cache.binomial(4, -1) == 0.0
        assert cache.binomial(4, 5) == 0.0

    def test_negative_n_raises(self) -> None:
        with pytest.raises(ValueError, match="n must be non-negative"):
            BinomialCache().binomial(-1, 0)
        with pytest.raises(ValueError, match="n must be non-negative"):
            BinomialCache().reserve(-3)

    def test_lazy_growth_only(self) -> None:
        cache = BinomialCache()
        assert len(cache) == 1
        cache.binomial(10, 3)
        grown = len(cache)
        assert grown >= 11  # noqa: PLR2004
        cache.binomial(4, 2)
        assert len(cache) == grown

    def test_reserve_populates_table(self) -> None:
        cache = BinomialCache(size=30)
        assert len(cache) >= 31  # noqa: PLR2004
        assert cache.log_factorial(30) == pytest.approx(math.lgamma(31.0))

    def test_above_limit_is_close(self) -> None:
        cache = BinomialCache()
        n = BinomialCache.EXACT_LIMIT + 20
        assert cache.binomial(n, n // 2) == pytest.approx(math.comb(n, n // 2), rel=1e-10)

    def test_concurrent_readers(self) -> None:
        cache = BinomialCache()
        errors: list[int] = []

        def work(n: int) -> None:
            for k in range(n + 1):
                if cache.binomial(n, k) != math.comb(n, k):
                    errors.append(n)

        threads = [threading.Thread(target=work, args=(n,)) for n in range(5, 35, 3)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()
        assert errors == []


def test_module_level_binomial_uses_default_cache() -> None:
    assert binomial(6, 3) == 20.0  # noqa: PLR2004
    assert len(get_default_binomial_cache()) >= 7  # noqa: PLR2004
    assert get_default_binomial_cache() is get_default_binomial_cache()
