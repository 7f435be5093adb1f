"""
CLMSR Math — функция стоимости, факторы сделок и размер chunk

Модуль переводит количество сделки в мультипликативный factor дерева и
изменение partition function Z в стоимость:
- Buy:  f = exp(q / alpha),      cost     = alpha * ln(Z_after / Z_before)
- Sell: f = 1 / exp(q / alpha),  proceeds = alpha * ln(Z_before / Z_after)
- Максимальный безопасный chunk: min(alpha * ln(MAX_FACTOR), alpha * MAX_EXP_INPUT)
- Статистика seed-prior и граница потерь маркет-мейкера

НАПРАВЛЕНИЕ ОКРУГЛЕНИЯ:
1. Debit (cost) округляется вверх — пользователь платит не меньше точного
2. Credit (proceeds) округляется вниз — протокол не переплачивает
3. Factor продажи округляется вверх — Z_after не занижается

ФОРМУЛЫ:
    Z = Σ exp(q_i / alpha)
    post_total = total - range_sum + range_sum * f
    ΔEₜ = alpha * ln(root_sum / (n * min_factor))     (0 для uniform prior)
    max_maker_loss = alpha * ln(n) + ΔEₜ
"""

from dataclasses import dataclass
from typing import Sequence

from src.core.errors import (
    InvalidFactor,
    InvalidLiquidityParameter,
    InvalidQuantity,
    TreeSizeZero,
)
from src.core.math.fixed_point import (
    LN_MAX_FACTOR_WAD,
    MAX_EXP_INPUT_WAD,
    WAD,
    div_wad,
    div_wad_up,
    exp_wad,
    ln_wad,
    ln_wad_up,
    mul_wad,
    mul_wad_up,
)


# =============================================================================
# ВАЛИДАЦИЯ
# =============================================================================


def validate_alpha(alpha: int) -> None:
    """
    Валидация liquidity parameter до любого обращения к kernel.

    Raises:
        InvalidLiquidityParameter: если alpha <= 0
    """
    if alpha <= 0:
        raise InvalidLiquidityParameter(
            f"Liquidity parameter must be positive, got {alpha}"
        )


def validate_quantity(quantity: int, name: str = "quantity") -> None:
    """
    Raises:
        InvalidQuantity: если значение отрицательное
    """
    if quantity < 0:
        raise InvalidQuantity(f"{name} must be non-negative, got {quantity}")


# =============================================================================
# FACTORS
# =============================================================================


def safe_exp(quantity: int, alpha: int) -> int:
    """
    exp(quantity / alpha) в WAD.

    Ноль alpha отвергается до деления; вход выше потолка kernel
    отвергается самим exp_wad (FixedPointOverflow).
    """
    validate_alpha(alpha)
    return exp_wad(div_wad(quantity, alpha))


def buy_factor(quantity: int, alpha: int) -> int:
    """Factor покупки: exp(q / alpha)."""
    validate_quantity(quantity)
    return safe_exp(quantity, alpha)


def sell_factor(quantity: int, alpha: int) -> int:
    """Factor продажи: 1 / exp(q / alpha), округление вверх."""
    validate_quantity(quantity)
    return div_wad_up(WAD, safe_exp(quantity, alpha))


def max_safe_chunk_quantity(alpha: int) -> int:
    """
    Максимальное количество одного chunk для данного alpha.

    Ограничения:
    - factor дерева: exp(q / alpha) <= MAX_FACTOR  → q <= alpha * ln(100)
    - домен exp kernel: q / alpha <= MAX_EXP_INPUT_WAD

    При текущих константах ограничение дерева всегда связывающее.
    Обе границы округлены вниз, поэтому factor chunk размера ровно
    max_safe_chunk_quantity лежит внутри [MIN_FACTOR, MAX_FACTOR].

    Returns:
        0 для alpha == 0, иначе безопасное количество в WAD

    Examples:
        >>> max_safe_chunk_quantity(WAD)
        4605170185988091368
        >>> max_safe_chunk_quantity(0)
        0
    """
    if alpha == 0:
        return 0
    validate_alpha(alpha)
    tree_limit = mul_wad(alpha, LN_MAX_FACTOR_WAD)
    exp_limit = mul_wad(alpha, MAX_EXP_INPUT_WAD)
    return min(tree_limit, exp_limit)


def chunk_count(quantity: int, alpha: int) -> int:
    """Число chunks для сделки — функция только quantity и alpha."""
    validate_quantity(quantity)
    validate_alpha(alpha)
    if quantity == 0:
        return 0
    max_chunk = max_safe_chunk_quantity(alpha)
    if max_chunk == 0:
        raise InvalidLiquidityParameter(
            f"Liquidity parameter {alpha} too small: no safe chunk quantity"
        )
    return -(-quantity // max_chunk)


def split_quantity(quantity: int, count: int) -> list[int]:
    """
    Равномерное разбиение quantity на count частей.

    Первые (quantity % count) частей больше на 1 wei; сумма частей
    всегда в точности равна quantity.

    Examples:
        >>> split_quantity(10, 3)
        [4, 3, 3]
    """
    if count <= 0:
        return []
    base, remainder = divmod(quantity, count)
    return [base + 1 if i < remainder else base for i in range(count)]


# =============================================================================
# СТОИМОСТЬ ИЗ ИЗМЕНЕНИЯ Z
# =============================================================================


def compute_buy_cost_from_sum_change(alpha: int, sum_before: int, sum_after: int) -> int:
    """
    Стоимость покупки (debit): alpha * ln(sum_after / sum_before), вверх.

    Returns:
        0 если sum_after <= sum_before
    """
    validate_alpha(alpha)
    if sum_after <= sum_before:
        return 0
    ratio = div_wad_up(sum_after, sum_before)
    return mul_wad_up(alpha, ln_wad(ratio))


def compute_sell_proceeds_from_sum_change(
    alpha: int, sum_before: int, sum_after: int
) -> int:
    """
    Выручка продажи (credit): alpha * ln(sum_before / sum_after), вниз.

    Returns:
        0 если sum_after >= sum_before
    """
    validate_alpha(alpha)
    if sum_after >= sum_before:
        return 0
    ratio = div_wad(sum_before, sum_after)
    return mul_wad(alpha, ln_wad(ratio))


def post_trade_total(total_sum: int, range_sum: int, new_range_sum: int) -> int:
    """
    Z после умножения диапазона: total - range_sum + range_sum * f.

    new_range_sum уже умножен вызывающим с нужным округлением.
    """
    post_total = total_sum - range_sum + new_range_sum
    if post_total <= 0:
        raise InvalidFactor(f"Partition function would become non-positive: {post_total}")
    return post_total


# =============================================================================
# SEED PRIOR И ГРАНИЦА ПОТЕРЬ
# =============================================================================


@dataclass(frozen=True)
class SeedStats:
    """Статистика начального распределения весов."""

    root_sum: int  # Σ weights (Z_0)
    min_factor: int  # min weight
    delta_et: int  # дополнительный капитал для неравномерного prior


def compute_seed_stats(weights: Sequence[int], alpha: int) -> SeedStats:
    """
    Статистика prior для расчёта капитала маркет-мейкера.

    Для uniform prior ΔEₜ = 0; любой перекос увеличивает худший случай
    потерь на alpha * ln(root_sum / (n * min_factor)).

    Raises:
        TreeSizeZero: если weights пустой
        InvalidFactor: если есть неположительный вес
    """
    validate_alpha(alpha)
    if not weights:
        raise TreeSizeZero("Seed weights must be non-empty")
    for index, weight in enumerate(weights):
        if weight <= 0:
            raise InvalidFactor(f"Seed weight at bin {index} must be positive, got {weight}")

    root_sum = sum(weights)
    min_factor = min(weights)
    uniform_sum = len(weights) * min_factor

    if root_sum == uniform_sum:
        return SeedStats(root_sum=root_sum, min_factor=min_factor, delta_et=0)

    concentration = div_wad_up(root_sum, uniform_sum)
    delta_et = mul_wad_up(alpha, ln_wad_up(concentration))
    return SeedStats(root_sum=root_sum, min_factor=min_factor, delta_et=delta_et)


def max_maker_loss(alpha: int, num_bins: int, delta_et: int = 0) -> int:
    """
    Верхняя граница потерь маркет-мейкера: alpha * ln(n) + ΔEₜ.

    Examples:
        >>> max_maker_loss(WAD, 1)
        0
    """
    validate_alpha(alpha)
    if num_bins <= 0:
        raise TreeSizeZero(f"num_bins must be positive, got {num_bins}")
    return mul_wad_up(alpha, ln_wad_up(num_bins * WAD)) + delta_et
