"""
Core math modules для CLMSR engine

Fixed-point kernel и функция стоимости с явным направлением округления.
"""

# Fixed-point kernel
from src.core.math.fixed_point import (
    # Constants
    HALF_WAD,
    LN_MAX_FACTOR_WAD,
    MAX_EXP_INPUT_WAD,
    MAX_UINT256,
    PAYMENT_DECIMALS,
    PAYMENT_TO_WAD_SCALE,
    WAD,
    # Multiplication / division
    div_wad,
    div_wad_nearest,
    div_wad_up,
    mul_wad,
    mul_wad_nearest,
    mul_wad_up,
    # exp / ln
    exp_wad,
    ln_wad,
    ln_wad_up,
    # Payment units
    from_wad,
    from_wad_nearest,
    from_wad_nearest_min1,
    from_wad_round_up,
    to_wad,
)

# CLMSR cost function
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
    validate_alpha,
    validate_quantity,
)

__all__ = [
    # Fixed-point: Constants
    "HALF_WAD",
    "LN_MAX_FACTOR_WAD",
    "MAX_EXP_INPUT_WAD",
    "MAX_UINT256",
    "PAYMENT_DECIMALS",
    "PAYMENT_TO_WAD_SCALE",
    "WAD",
    # Fixed-point: Multiplication / division
    "div_wad",
    "div_wad_nearest",
    "div_wad_up",
    "mul_wad",
    "mul_wad_nearest",
    "mul_wad_up",
    # Fixed-point: exp / ln
    "exp_wad",
    "ln_wad",
    "ln_wad_up",
    # Fixed-point: Payment units
    "from_wad",
    "from_wad_nearest",
    "from_wad_nearest_min1",
    "from_wad_round_up",
    "to_wad",
    # CLMSR: Types
    "SeedStats",
    # CLMSR: Functions
    "buy_factor",
    "chunk_count",
    "compute_buy_cost_from_sum_change",
    "compute_seed_stats",
    "compute_sell_proceeds_from_sum_change",
    "max_maker_loss",
    "max_safe_chunk_quantity",
    "post_trade_total",
    "safe_exp",
    "sell_factor",
    "split_quantity",
    "validate_alpha",
    "validate_quantity",
]
