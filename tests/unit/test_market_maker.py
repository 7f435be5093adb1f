"""
Тесты для RangeMarketMaker — tick-based фасад рынка

Проверяемые инварианты:
1. Tick-диапазоны конвертируются в бины до обращения к дереву
2. Котировки совпадают с cost engine на тех же бинах
3. apply_trade возвращает реализованную стоимость и мутирует дерево
4. Seed prior и граница потерь маркет-мейкера
"""

import logging

import pytest

from src.core.domain import MarketConfig, TradeRequest, TradeSide
from src.core.errors import (
    InvalidTickSpacing,
    ProceedsUnattainable,
    RangeBinsOutOfBounds,
    SeedLengthMismatch,
)
from src.core.math.fixed_point import WAD
from src.engine import CostEngineConfig, RangeMarketMaker, quote_buy
from src.tree import LazyMulSegmentTree


# =============================================================================
# FIXTURES
# =============================================================================


@pytest.fixture
def market() -> MarketConfig:
    """10 бинов по 10 tick, начиная со 100; alpha = 100."""
    return MarketConfig(
        market_id="btc-close",
        liquidity_parameter=100 * WAD,
        num_bins=10,
        min_tick=100,
        tick_spacing=10,
    )


@pytest.fixture
def maker(market) -> RangeMarketMaker:
    return RangeMarketMaker(market)


# =============================================================================
# ТЕСТЫ: Construction
# =============================================================================


class TestConstruction:
    """Тесты привязки дерева к рынку."""

    def test_owns_initialized_tree(self, maker):
        assert maker.tree.size == 10
        assert maker.total_sum() == 10 * WAD
        assert maker.alpha == 100 * WAD
        assert maker.config == CostEngineConfig()

    def test_accepts_existing_tree(self, market):
        tree = LazyMulSegmentTree()
        tree.init(10)
        tree.apply_range_factor(0, 4, 2 * WAD)
        maker = RangeMarketMaker(market, tree=tree)
        assert maker.total_sum() == 15 * WAD

    def test_rejects_mismatched_tree(self, market):
        tree = LazyMulSegmentTree()
        tree.init(5)
        with pytest.raises(ValueError, match="does not match num_bins"):
            RangeMarketMaker(market, tree=tree)


# =============================================================================
# ТЕСТЫ: Котировки
# =============================================================================


class TestQuotes:
    """Тесты tick-based котировок."""

    def test_cost_of_open_matches_engine(self, maker):
        cost = maker.cost_of_open(120, 160, 10 * WAD)
        assert cost == quote_buy(maker.tree, 2, 5, 10 * WAD, maker.alpha)

    def test_increase_equals_open(self, maker):
        assert maker.cost_of_increase(120, 160, 3 * WAD) == maker.cost_of_open(120, 160, 3 * WAD)

    def test_close_equals_decrease(self, maker):
        assert maker.proceeds_of_close(100, 150, 3 * WAD) == maker.proceeds_of_decrease(
            100, 150, 3 * WAD
        )

    def test_full_market_cost_is_quantity(self, maker):
        assert abs(maker.cost_of_open(100, 200, 5 * WAD) - 5 * WAD) <= 1000

    def test_quantity_from_cost_round_trip(self, maker):
        cost = maker.cost_of_open(130, 170, 25 * WAD)
        assert maker.quantity_from_cost(130, 170, cost) == pytest.approx(25 * WAD, rel=1e-9)

    def test_quantity_from_proceeds(self, maker):
        maker.apply_trade(
            TradeRequest(side=TradeSide.BUY, lower_tick=130, upper_tick=170, quantity=40 * WAD)
        )
        proceeds = maker.proceeds_of_decrease(130, 170, 10 * WAD)
        assert maker.quantity_from_proceeds(130, 170, proceeds) == pytest.approx(
            10 * WAD, rel=1e-9
        )

    def test_proceeds_unattainable(self, maker):
        with pytest.raises(ProceedsUnattainable):
            maker.quantity_from_proceeds(100, 110, 100 * WAD)

    def test_tick_validation(self, maker):
        with pytest.raises(InvalidTickSpacing):
            maker.cost_of_open(105, 160, WAD)
        with pytest.raises(RangeBinsOutOfBounds):
            maker.range_sum(100, 210)


# =============================================================================
# ТЕСТЫ: apply_trade
# =============================================================================


class TestApplyTrade:
    """Тесты мутации через фасад."""

    def test_buy_result(self, maker):
        quoted = maker.cost_of_open(120, 160, 10 * WAD)
        result = maker.apply_trade(
            TradeRequest(side=TradeSide.BUY, lower_tick=120, upper_tick=160, quantity=10 * WAD)
        )
        assert result.side == TradeSide.BUY
        assert result.is_debit
        assert (result.lo, result.hi) == (2, 5)
        assert result.chunks == 1
        assert abs(result.amount - quoted) <= 1000
        assert result.total_before == 10 * WAD
        assert result.total_after == maker.total_sum()
        assert maker.range_sum(120, 160) > 4 * WAD
        assert maker.range_sum(100, 120) == 2 * WAD

    def test_open_then_close(self, maker):
        opened = maker.apply_trade(
            TradeRequest(side=TradeSide.BUY, lower_tick=150, upper_tick=200, quantity=50 * WAD)
        )
        closed = maker.apply_trade(
            TradeRequest(side=TradeSide.SELL, lower_tick=150, upper_tick=200, quantity=50 * WAD)
        )
        assert not closed.is_debit
        assert closed.amount <= opened.amount
        assert abs(maker.total_sum() - 10 * WAD) <= 1000

    def test_apply_trade_logs(self, maker, caplog):
        caplog.set_level(logging.INFO, logger="src.engine.market_maker")
        maker.apply_trade(
            TradeRequest(side=TradeSide.BUY, lower_tick=100, upper_tick=110, quantity=WAD)
        )
        assert "Trade applied: market=btc-close side=buy" in caplog.text


# =============================================================================
# ТЕСТЫ: Seed prior
# =============================================================================


class TestSeed:
    """Тесты неравномерного prior."""

    def test_unseeded_stats_are_uniform(self, maker):
        stats = maker.seed_stats()
        assert stats.root_sum == 10 * WAD
        assert stats.delta_et == 0

    def test_seed_changes_prices(self, maker):
        weights = [WAD] * 5 + [3 * WAD] * 5
        stats = maker.seed(weights)

        assert stats.root_sum == 20 * WAD
        assert stats.delta_et > 0
        assert maker.seed_stats() == stats
        assert maker.bin_weight(7) == 3 * WAD
        assert maker.cost_of_open(150, 200, WAD) > maker.cost_of_open(100, 150, WAD)

    def test_max_maker_loss_includes_prior(self, maker):
        uniform_loss = maker.max_maker_loss()
        maker.seed([WAD] * 9 + [10 * WAD])
        assert maker.max_maker_loss() == uniform_loss + maker.seed_stats().delta_et

    def test_seed_length_mismatch(self, maker):
        with pytest.raises(SeedLengthMismatch):
            maker.seed([WAD] * 3)
        assert maker.seed_stats().delta_et == 0
