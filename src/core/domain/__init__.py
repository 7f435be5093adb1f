"""
Domain models and value objects.

Contains ledger-facing entities: MarketConfig, TradeRequest, TradeResult,
tick-to-bin conversion and seed prior statistics.
"""

from src.core.domain.market import MarketConfig
from src.core.domain.ticks import bin_to_tick_range, tick_to_bin, ticks_to_bins
from src.core.domain.trade import TradeRequest, TradeResult, TradeSide
from src.core.math.clmsr_math import SeedStats, compute_seed_stats, max_maker_loss

__all__ = [
    # Market model
    "MarketConfig",
    # Ticks module
    "bin_to_tick_range",
    "tick_to_bin",
    "ticks_to_bins",
    # Trade models
    "TradeRequest",
    "TradeResult",
    "TradeSide",
    # Seed prior
    "SeedStats",
    "compute_seed_stats",
    "max_maker_loss",
]
