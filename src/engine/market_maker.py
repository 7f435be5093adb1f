"""
RangeMarketMaker — фасад CLMSR рынка для ledger

Связывает MarketConfig (параметры от ledger) с деревом весов рынка и
cost engine. Все tick-based точки входа сначала конвертируют
[lower_tick, upper_tick) в бины.

Lifecycle:
1. RangeMarketMaker(market): init дерева размером market.num_bins
2. seed(weights): опциональный неравномерный prior
3. cost_of_* / proceeds_of_* / quantity_from_*: котировки
4. apply_trade(request): мутация, возвращает TradeResult
"""

import logging
from typing import Optional, Sequence

from src.core.domain.market import MarketConfig
from src.core.domain.trade import TradeRequest, TradeResult, TradeSide
from src.core.errors import ConfigurationError
from src.core.math.clmsr_math import SeedStats, compute_seed_stats, max_maker_loss
from src.core.math.fixed_point import WAD
from src.engine.cost_engine import (
    CostEngineConfig,
    apply_buy,
    apply_sell,
    quantity_from_cost,
    quantity_from_proceeds,
    quote_buy,
    quote_sell,
)
from src.tree.lazy_mul_segment_tree import LazyMulSegmentTree

logger = logging.getLogger(__name__)


class RangeMarketMaker:
    """
    Маркет-мейкер одного рынка.

    Владеет деревом весов; если дерево передано извне, оно должно быть
    неинициализированным или иметь size == market.num_bins.
    """

    def __init__(
        self,
        market: MarketConfig,
        tree: Optional[LazyMulSegmentTree] = None,
        config: Optional[CostEngineConfig] = None,
    ):
        self.market = market
        self.config = config or CostEngineConfig()
        self.tree = tree if tree is not None else LazyMulSegmentTree()

        if not self.tree.is_initialized:
            self.tree.init(market.num_bins)
        elif self.tree.size != market.num_bins:
            raise ConfigurationError(
                f"Tree size {self.tree.size} does not match num_bins {market.num_bins}"
            )

        self._seed_stats: Optional[SeedStats] = None

    @property
    def alpha(self) -> int:
        return self.market.liquidity_parameter

    # -------------------------------------------------------------------------
    # Prior
    # -------------------------------------------------------------------------

    def seed(self, weights: Sequence[int]) -> SeedStats:
        """Неравномерный prior: материализация дерева из весов бинов."""
        stats = compute_seed_stats(weights, self.alpha)
        self.tree.seed_with_factors(weights)
        self._seed_stats = stats
        return stats

    def seed_stats(self) -> SeedStats:
        """Статистика prior; для несеянного рынка — uniform (ΔEₜ = 0)."""
        if self._seed_stats is not None:
            return self._seed_stats
        return SeedStats(root_sum=self.market.num_bins * WAD, min_factor=WAD, delta_et=0)

    def max_maker_loss(self) -> int:
        """Граница потерь маркет-мейкера с учётом prior."""
        return max_maker_loss(self.alpha, self.market.num_bins, self.seed_stats().delta_et)

    # -------------------------------------------------------------------------
    # Котировки
    # -------------------------------------------------------------------------

    def cost_of_open(self, lower_tick: int, upper_tick: int, quantity: int) -> int:
        """Стоимость открытия позиции (debit)."""
        lo, hi = self.market.ticks_to_bins(lower_tick, upper_tick)
        return quote_buy(self.tree, lo, hi, quantity, self.alpha, self.config)

    def cost_of_increase(self, lower_tick: int, upper_tick: int, quantity: int) -> int:
        """Стоимость увеличения позиции: та же формула, что и открытие."""
        return self.cost_of_open(lower_tick, upper_tick, quantity)

    def proceeds_of_decrease(self, lower_tick: int, upper_tick: int, quantity: int) -> int:
        """Выручка уменьшения позиции (credit)."""
        lo, hi = self.market.ticks_to_bins(lower_tick, upper_tick)
        return quote_sell(self.tree, lo, hi, quantity, self.alpha, self.config)

    def proceeds_of_close(self, lower_tick: int, upper_tick: int, quantity: int) -> int:
        """Выручка закрытия: продажа всего количества позиции."""
        return self.proceeds_of_decrease(lower_tick, upper_tick, quantity)

    def quantity_from_cost(self, lower_tick: int, upper_tick: int, cost: int) -> int:
        lo, hi = self.market.ticks_to_bins(lower_tick, upper_tick)
        return quantity_from_cost(self.tree, lo, hi, cost, self.alpha)

    def quantity_from_proceeds(self, lower_tick: int, upper_tick: int, proceeds: int) -> int:
        lo, hi = self.market.ticks_to_bins(lower_tick, upper_tick)
        return quantity_from_proceeds(self.tree, lo, hi, proceeds, self.alpha)

    # -------------------------------------------------------------------------
    # Мутация
    # -------------------------------------------------------------------------

    def apply_trade(self, trade: TradeRequest) -> TradeResult:
        """
        Применение сделки к дереву.

        Returns:
            TradeResult с реализованной стоимостью (BUY) или выручкой (SELL)
        """
        lo, hi = self.market.ticks_to_bins(trade.lower_tick, trade.upper_tick)
        apply = apply_buy if trade.side == TradeSide.BUY else apply_sell
        outcome = apply(self.tree, lo, hi, trade.quantity, self.alpha, self.config)

        result = TradeResult(
            side=trade.side,
            lo=lo,
            hi=hi,
            quantity=trade.quantity,
            amount=outcome.amount,
            chunks=outcome.chunks,
            total_before=outcome.total_before,
            total_after=outcome.total_after,
        )
        logger.info(
            "Trade applied: market=%s side=%s bins=[%d, %d] quantity=%d amount=%d chunks=%d",
            self.market.market_id, trade.side.value, lo, hi,
            trade.quantity, result.amount, result.chunks,
        )
        return result

    # -------------------------------------------------------------------------
    # Чтение
    # -------------------------------------------------------------------------

    def range_sum(self, lower_tick: int, upper_tick: int) -> int:
        lo, hi = self.market.ticks_to_bins(lower_tick, upper_tick)
        return self.tree.get_range_sum(lo, hi)

    def total_sum(self) -> int:
        return self.tree.total_sum()

    def bin_weight(self, bin_index: int) -> int:
        return self.tree.bin_weight(bin_index)
