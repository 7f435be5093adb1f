"""Engine — стоимость сделок CLMSR и фасад рынка.

- Chunked cost/proceeds поверх дерева весов
- Обращение бюджета в количество
- RangeMarketMaker: tick-based точки входа для ledger
"""

from .cost_engine import (
    MAX_CHUNKS_DEFAULT,
    ChunkOutcome,
    CostEngineConfig,
    apply_buy,
    apply_sell,
    buy_factor,
    chunk_quantities,
    compute_buy_cost_from_sum_change,
    compute_sell_proceeds_from_sum_change,
    max_safe_chunk_quantity,
    quantity_from_cost,
    quantity_from_proceeds,
    quote_buy,
    quote_sell,
    sell_factor,
)
from .market_maker import RangeMarketMaker

__all__ = [
    "MAX_CHUNKS_DEFAULT",
    "ChunkOutcome",
    "CostEngineConfig",
    "apply_buy",
    "apply_sell",
    "buy_factor",
    "chunk_quantities",
    "compute_buy_cost_from_sum_change",
    "compute_sell_proceeds_from_sum_change",
    "max_safe_chunk_quantity",
    "quantity_from_cost",
    "quantity_from_proceeds",
    "quote_buy",
    "quote_sell",
    "sell_factor",
    "RangeMarketMaker",
]
