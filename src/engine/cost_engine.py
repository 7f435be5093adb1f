"""
Cost Engine — стоимость сделок CLMSR поверх дерева весов

Связывает функцию стоимости (src.core.math.clmsr_math) с деревом
(src.tree.LazyMulSegmentTree):
- quote_buy / quote_sell: стоимость без мутации (симуляция chunks)
- apply_buy / apply_sell: мутация дерева chunk за chunk, атомарно
- quantity_from_cost / quantity_from_proceeds: обращение в closed form

CHUNKING:
Factor сделки exp(q / alpha) обязан лежать в [MIN_FACTOR, MAX_FACTOR].
Количество больше max_safe_chunk_quantity(alpha) разбивается на
последовательные chunks; стоимость каждого считается от эволюционирующих
range_sum и total. Число chunks — функция только quantity и alpha,
поэтому известно до начала мутаций.

КРИТИЧЕСКИЕ ИНВАРИАНТЫ:
1. Alpha валидируется до любого обращения к kernel
2. Ошибка в любом chunk откатывает все предыдущие chunks
3. Debit округляется вверх, credit вниз
"""

import logging
from dataclasses import dataclass
from typing import Final

from src.core.errors import ChunkLimitExceeded, ProceedsUnattainable
from src.core.math.clmsr_math import (
    buy_factor,
    chunk_count,
    compute_buy_cost_from_sum_change,
    compute_sell_proceeds_from_sum_change,
    max_safe_chunk_quantity,
    post_trade_total,
    safe_exp,
    sell_factor,
    split_quantity,
    validate_alpha,
    validate_quantity,
)
from src.core.math.fixed_point import (
    WAD,
    div_wad,
    div_wad_up,
    ln_wad,
    ln_wad_up,
    mul_wad,
    mul_wad_nearest,
)
from src.tree.lazy_mul_segment_tree import LazyMulSegmentTree

logger = logging.getLogger(__name__)

# =============================================================================
# КОНСТАНТЫ
# =============================================================================

MAX_CHUNKS_DEFAULT: Final[int] = 1000


# =============================================================================
# КОНФИГУРАЦИЯ
# =============================================================================


@dataclass(frozen=True)
class CostEngineConfig:
    """
    Конфигурация cost engine.

    Attributes:
        max_chunks: Максимальное число chunks одной сделки
    """

    max_chunks: int = MAX_CHUNKS_DEFAULT

    def __post_init__(self):
        if self.max_chunks < 1:
            raise ValueError(f"max_chunks must be >= 1, got {self.max_chunks}")


@dataclass(frozen=True)
class ChunkOutcome:
    """Результат прохода по chunks: сумма и эволюция total."""

    amount: int
    chunks: int
    total_before: int
    total_after: int


_DEFAULT_CONFIG: Final[CostEngineConfig] = CostEngineConfig()


# =============================================================================
# CHUNKING
# =============================================================================


def chunk_quantities(
    quantity: int, alpha: int, config: CostEngineConfig = _DEFAULT_CONFIG
) -> list[int]:
    """
    Разбиение количества на безопасные chunks.

    Returns:
        Список количеств, сумма которых в точности равна quantity;
        пустой список для quantity == 0

    Raises:
        InvalidLiquidityParameter: alpha <= 0
        ChunkLimitExceeded: требуется больше config.max_chunks
    """
    count = chunk_count(quantity, alpha)
    if count > config.max_chunks:
        raise ChunkLimitExceeded(count, config.max_chunks)
    return split_quantity(quantity, count)


# =============================================================================
# QUOTE (без мутации)
# =============================================================================


def _simulate(
    tree: LazyMulSegmentTree,
    lo: int,
    hi: int,
    quantities: list[int],
    alpha: int,
    buy: bool,
) -> ChunkOutcome:
    range_sum = tree.get_range_sum(lo, hi)
    total = tree.total_sum()
    total_before = total
    amount = 0

    for chunk in quantities:
        factor = buy_factor(chunk, alpha) if buy else sell_factor(chunk, alpha)
        new_range_sum = mul_wad_nearest(range_sum, factor)
        new_total = post_trade_total(total, range_sum, new_range_sum)
        if buy:
            amount += compute_buy_cost_from_sum_change(alpha, total, new_total)
        else:
            amount += compute_sell_proceeds_from_sum_change(alpha, total, new_total)
        range_sum, total = new_range_sum, new_total

    return ChunkOutcome(
        amount=amount,
        chunks=len(quantities),
        total_before=total_before,
        total_after=total,
    )


def quote_buy(
    tree: LazyMulSegmentTree,
    lo: int,
    hi: int,
    quantity: int,
    alpha: int,
    config: CostEngineConfig = _DEFAULT_CONFIG,
) -> int:
    """
    Стоимость покупки quantity на [lo, hi] без мутации дерева (debit, вверх).

    Returns:
        Cost в WAD; 0 для quantity == 0
    """
    validate_alpha(alpha)
    validate_quantity(quantity)
    quantities = chunk_quantities(quantity, alpha, config)
    return _simulate(tree, lo, hi, quantities, alpha, buy=True).amount


def quote_sell(
    tree: LazyMulSegmentTree,
    lo: int,
    hi: int,
    quantity: int,
    alpha: int,
    config: CostEngineConfig = _DEFAULT_CONFIG,
) -> int:
    """Выручка продажи quantity на [lo, hi] без мутации дерева (credit, вниз)."""
    validate_alpha(alpha)
    validate_quantity(quantity)
    quantities = chunk_quantities(quantity, alpha, config)
    return _simulate(tree, lo, hi, quantities, alpha, buy=False).amount


# =============================================================================
# APPLY (мутация)
# =============================================================================


def _apply_chunks(
    tree: LazyMulSegmentTree,
    lo: int,
    hi: int,
    quantity: int,
    alpha: int,
    config: CostEngineConfig,
    buy: bool,
) -> ChunkOutcome:
    validate_alpha(alpha)
    validate_quantity(quantity)
    quantities = chunk_quantities(quantity, alpha, config)
    range_before = tree.get_range_sum(lo, hi)
    logger.debug(
        "Chunk plan: side=%s range=[%d, %d] range_sum=%d quantity=%d max_chunk=%d chunks=%d",
        "buy" if buy else "sell", lo, hi, range_before, quantity,
        max_safe_chunk_quantity(alpha), len(quantities),
    )

    total_before = tree.total_sum()
    amount = 0
    with tree.atomic():
        for chunk in quantities:
            factor = buy_factor(chunk, alpha) if buy else sell_factor(chunk, alpha)
            sum_before = tree.total_sum()
            range_sum = tree.get_range_sum(lo, hi)
            post_trade_total(sum_before, range_sum, mul_wad_nearest(range_sum, factor))
            tree.apply_range_factor(lo, hi, factor)
            sum_after = tree.total_sum()
            if buy:
                amount += compute_buy_cost_from_sum_change(alpha, sum_before, sum_after)
            else:
                amount += compute_sell_proceeds_from_sum_change(alpha, sum_before, sum_after)

    return ChunkOutcome(
        amount=amount,
        chunks=len(quantities),
        total_before=total_before,
        total_after=tree.total_sum(),
    )


def apply_buy(
    tree: LazyMulSegmentTree,
    lo: int,
    hi: int,
    quantity: int,
    alpha: int,
    config: CostEngineConfig = _DEFAULT_CONFIG,
) -> ChunkOutcome:
    """
    Применение покупки к дереву: каждый chunk умножает [lo, hi] на exp(q/alpha).

    Ошибка в любом chunk откатывает всю сделку.
    """
    return _apply_chunks(tree, lo, hi, quantity, alpha, config, buy=True)


def apply_sell(
    tree: LazyMulSegmentTree,
    lo: int,
    hi: int,
    quantity: int,
    alpha: int,
    config: CostEngineConfig = _DEFAULT_CONFIG,
) -> ChunkOutcome:
    """Применение продажи к дереву: каждый chunk умножает [lo, hi] на 1/exp(q/alpha)."""
    return _apply_chunks(tree, lo, hi, quantity, alpha, config, buy=False)


# =============================================================================
# ОБРАЩЕНИЕ (quantity из суммы)
# =============================================================================


def quantity_from_cost(tree: LazyMulSegmentTree, lo: int, hi: int, cost: int, alpha: int) -> int:
    """
    Количество, которое можно купить на [lo, hi] за cost.

    Z_after = Z * exp(cost / alpha)
    f = (Z_after - (Z - range_sum)) / range_sum
    q = alpha * ln(f)

    Returns:
        Количество в WAD (вниз); 0 для cost == 0
    """
    validate_alpha(alpha)
    validate_quantity(cost, "cost")
    range_sum = tree.get_range_sum(lo, hi)
    total = tree.total_sum()
    if cost == 0:
        return 0

    post_total = mul_wad(total, safe_exp(cost, alpha))
    # Независимое округление range_sum может дать outside на несколько wei < 0
    outside = total - range_sum

    factor = div_wad(post_total - outside, range_sum)
    if factor <= WAD:
        return 0
    return mul_wad(alpha, ln_wad(factor))


def quantity_from_proceeds(
    tree: LazyMulSegmentTree, lo: int, hi: int, proceeds: int, alpha: int
) -> int:
    """
    Количество, которое нужно продать на [lo, hi] для получения proceeds.

    Z_after = Z / exp(proceeds / alpha)
    f = (Z_after - (Z - range_sum)) / range_sum
    q = -alpha * ln(f)

    Raises:
        ProceedsUnattainable: диапазон не может высвободить столько
    """
    validate_alpha(alpha)
    validate_quantity(proceeds, "proceeds")
    range_sum = tree.get_range_sum(lo, hi)
    total = tree.total_sum()
    if proceeds == 0:
        return 0

    post_total = div_wad_up(total, safe_exp(proceeds, alpha))
    outside = total - range_sum

    remaining = post_total - outside
    if remaining <= 0:
        raise ProceedsUnattainable(
            f"Proceeds {proceeds} exceed what range [{lo}, {hi}] can release"
        )

    factor = div_wad_up(remaining, range_sum)
    if factor >= WAD:
        return 0
    return mul_wad(alpha, -ln_wad_up(factor))
