"""
Тесты для CLMSR Math — factors, chunk sizing, стоимость из изменения Z

Проверяемые инварианты:
1. Alpha == 0 отвергается до kernel
2. Factor chunk размера max_safe_chunk_quantity лежит в [MIN_FACTOR, MAX_FACTOR]
3. Debit вверх, credit вниз; неизменная сумма — бесплатно
4. Разбиение на chunks сохраняет сумму
5. Статистика seed prior и граница потерь
"""

import pytest

from src.core.errors import (
    InvalidFactor,
    InvalidLiquidityParameter,
    InvalidQuantity,
    TreeSizeZero,
)
from src.core.math.clmsr_math import (
    SeedStats,
    buy_factor,
    chunk_count,
    compute_buy_cost_from_sum_change,
    compute_seed_stats,
    compute_sell_proceeds_from_sum_change,
    max_maker_loss,
    max_safe_chunk_quantity,
    post_trade_total,
    safe_exp,
    sell_factor,
    split_quantity,
)
from src.core.math.fixed_point import LN_MAX_FACTOR_WAD, WAD
from src.tree.lazy_mul_segment_tree import MAX_FACTOR, MIN_FACTOR


# =============================================================================
# ТЕСТЫ: Chunk sizing
# =============================================================================


class TestMaxSafeChunk:
    """Тесты max_safe_chunk_quantity и chunk_count."""

    def test_unit_alpha(self):
        """Для alpha = 1 ограничение дерева — ln(100)."""
        assert max_safe_chunk_quantity(WAD) == LN_MAX_FACTOR_WAD

    def test_scales_with_alpha(self):
        assert max_safe_chunk_quantity(100 * WAD) == 100 * LN_MAX_FACTOR_WAD

    def test_zero_alpha(self):
        """alpha == 0 → 0, без ошибки."""
        assert max_safe_chunk_quantity(0) == 0

    def test_negative_alpha_rejected(self):
        with pytest.raises(InvalidLiquidityParameter):
            max_safe_chunk_quantity(-WAD)

    def test_chunk_count(self):
        """Число chunks — ceil(q / max_chunk)."""
        max_chunk = max_safe_chunk_quantity(WAD)
        assert chunk_count(0, WAD) == 0
        assert chunk_count(1, WAD) == 1
        assert chunk_count(max_chunk, WAD) == 1
        assert chunk_count(max_chunk + 1, WAD) == 2
        assert chunk_count(10 * WAD, WAD) == 3

    def test_chunk_count_zero_alpha(self):
        with pytest.raises(InvalidLiquidityParameter, match="must be positive"):
            chunk_count(WAD, 0)

    def test_chunk_count_negative_quantity(self):
        with pytest.raises(InvalidQuantity):
            chunk_count(-1, WAD)

    def test_split_quantity(self):
        """Остаток распределяется по первым chunks."""
        assert split_quantity(10, 3) == [4, 3, 3]
        assert split_quantity(9, 3) == [3, 3, 3]
        assert split_quantity(0, 0) == []

    def test_split_preserves_total(self):
        quantity = 10 * WAD + 7
        parts = split_quantity(quantity, chunk_count(quantity, WAD))
        assert sum(parts) == quantity
        assert max(parts) <= max_safe_chunk_quantity(WAD)


# =============================================================================
# ТЕСТЫ: Factors
# =============================================================================


class TestFactors:
    """Тесты buy/sell factor."""

    def test_zero_quantity_is_identity(self):
        assert buy_factor(0, WAD) == WAD
        assert sell_factor(0, WAD) == WAD

    def test_max_chunk_factor_within_bounds(self):
        """Factor максимального chunk не выходит за [MIN_FACTOR, MAX_FACTOR]."""
        for alpha in (WAD, 7 * WAD, 1000 * WAD + 1):
            q = max_safe_chunk_quantity(alpha)
            assert buy_factor(q, alpha) <= MAX_FACTOR
            assert sell_factor(q, alpha) >= MIN_FACTOR

    def test_sell_factor_is_reciprocal(self):
        """buy * sell ≈ 1 (sell округлён вверх)."""
        f_buy = buy_factor(WAD, WAD)
        f_sell = sell_factor(WAD, WAD)
        assert f_buy * f_sell >= WAD * WAD
        assert f_buy * f_sell - WAD * WAD <= f_buy

    def test_zero_alpha_rejected_before_kernel(self):
        with pytest.raises(InvalidLiquidityParameter):
            safe_exp(WAD, 0)
        with pytest.raises(InvalidLiquidityParameter):
            sell_factor(WAD, 0)


# =============================================================================
# ТЕСТЫ: Стоимость из изменения Z
# =============================================================================


class TestCostFromSumChange:
    """Тесты debit/credit формул."""

    def test_buy_cost_doubling(self):
        assert compute_buy_cost_from_sum_change(WAD, WAD, 2 * WAD) == 693147180559945309

    def test_sell_proceeds_halving(self):
        assert compute_sell_proceeds_from_sum_change(WAD, 2 * WAD, WAD) == 693147180559945309

    def test_no_change_is_free(self):
        assert compute_buy_cost_from_sum_change(WAD, 10 * WAD, 10 * WAD) == 0
        assert compute_sell_proceeds_from_sum_change(WAD, 10 * WAD, 10 * WAD) == 0

    def test_one_wei_increase_is_free(self):
        """Рост Z на 1 wei ниже разрешения ln."""
        assert compute_buy_cost_from_sum_change(WAD, 10 * WAD, 10 * WAD + 1) == 0

    def test_wrong_direction_is_free(self):
        assert compute_buy_cost_from_sum_change(WAD, 2 * WAD, WAD) == 0
        assert compute_sell_proceeds_from_sum_change(WAD, WAD, 2 * WAD) == 0

    def test_debit_not_below_credit(self):
        """Debit вверх, credit вниз: одна и та же пара Z."""
        before, after = 10 * WAD, 13 * WAD + 12345
        cost = compute_buy_cost_from_sum_change(3 * WAD, before, after)
        proceeds = compute_sell_proceeds_from_sum_change(3 * WAD, after, before)
        assert cost >= proceeds
        assert cost - proceeds <= 10

    def test_zero_alpha_rejected(self):
        with pytest.raises(InvalidLiquidityParameter):
            compute_buy_cost_from_sum_change(0, WAD, 2 * WAD)

    def test_post_trade_total(self):
        assert post_trade_total(10 * WAD, 4 * WAD, 8 * WAD) == 14 * WAD

    def test_post_trade_total_non_positive(self):
        with pytest.raises(InvalidFactor, match="non-positive"):
            post_trade_total(WAD, 2 * WAD, 0)


# =============================================================================
# ТЕСТЫ: Seed prior
# =============================================================================


class TestSeedStats:
    """Тесты статистики prior и границы потерь."""

    def test_uniform_prior(self):
        stats = compute_seed_stats([WAD] * 4, WAD)
        assert stats == SeedStats(root_sum=4 * WAD, min_factor=WAD, delta_et=0)

    def test_skewed_prior(self):
        """ΔEₜ = alpha * ln(10 / 4)."""
        stats = compute_seed_stats([WAD, 2 * WAD, 3 * WAD, 4 * WAD], WAD)
        assert stats.root_sum == 10 * WAD
        assert stats.min_factor == WAD
        assert stats.delta_et == pytest.approx(0.916290731874155 * WAD, rel=1e-12)

    def test_scaled_uniform_prior(self):
        """Равномерный prior с весом != WAD тоже даёт ΔEₜ = 0."""
        assert compute_seed_stats([5 * WAD] * 3, WAD).delta_et == 0

    def test_empty_weights(self):
        with pytest.raises(TreeSizeZero):
            compute_seed_stats([], WAD)

    def test_non_positive_weight(self):
        with pytest.raises(InvalidFactor, match="bin 1"):
            compute_seed_stats([WAD, 0], WAD)

    def test_max_maker_loss(self):
        """alpha * ln(n) + ΔEₜ, округление вверх."""
        assert max_maker_loss(WAD, 1) == 0
        assert max_maker_loss(WAD, 2) == 693147180559945310
        assert max_maker_loss(WAD, 2, delta_et=5) == 693147180559945315

    def test_max_maker_loss_zero_bins(self):
        with pytest.raises(TreeSizeZero):
            max_maker_loss(WAD, 0)
