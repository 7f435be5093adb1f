"""
Ticks — конверсия ценовых tick ledger в индексы бинов дерева

Единственный допустимый способ преобразований между:
- tick (ценовая координата ledger, кратная tick_spacing)
- bin (индекс листа дерева, 0..num_bins-1)

Отображение линейное: bin = (tick - min_tick) / tick_spacing.
Диапазон [lower_tick, upper_tick) — нижняя граница включительно,
верхняя исключительно, поэтому hi = (upper_tick - min_tick) / tick_spacing - 1.

ЗАПРЕЩЕНО округлять невыровненные tick: вход отвергается.
"""

from src.core.errors import (
    InvalidTick,
    InvalidTickRange,
    InvalidTickSpacing,
    RangeBinsOutOfBounds,
)


# =============================================================================
# КОНВЕРТЕРЫ
# =============================================================================


def tick_to_bin(tick: int, min_tick: int, tick_spacing: int, num_bins: int) -> int:
    """
    Конверсия одиночного tick → bin.

    Args:
        tick: Ценовая координата
        min_tick: Нижняя граница рынка
        tick_spacing: Шаг сетки tick (> 0)
        num_bins: Число бинов рынка

    Returns:
        Индекс бина

    Raises:
        InvalidTickSpacing: tick ниже min_tick или не выровнен по сетке
        RangeBinsOutOfBounds: бин за пределами num_bins

    Examples:
        >>> tick_to_bin(120, 100, 10, 5)
        2
    """
    offset = tick - min_tick
    if offset < 0 or offset % tick_spacing != 0:
        raise InvalidTickSpacing(
            f"Tick {tick} not aligned to grid min_tick={min_tick} spacing={tick_spacing}"
        )

    bin_index = offset // tick_spacing
    if bin_index >= num_bins:
        raise RangeBinsOutOfBounds(f"Tick {tick} maps to bin {bin_index} >= num_bins {num_bins}")
    return bin_index


def ticks_to_bins(
    lower_tick: int,
    upper_tick: int,
    min_tick: int,
    tick_spacing: int,
    num_bins: int,
) -> tuple[int, int]:
    """
    Конверсия диапазона [lower_tick, upper_tick) → включительный [lo, hi] бинов.

    Raises:
        InvalidTickRange: lower_tick >= upper_tick
        InvalidTick: lower_tick ниже min_tick
        InvalidTickSpacing: любая граница не выровнена по сетке
        RangeBinsOutOfBounds: upper_tick за пределами max_tick

    Examples:
        >>> ticks_to_bins(100, 130, 100, 10, 5)
        (0, 2)
    """
    if lower_tick >= upper_tick:
        raise InvalidTickRange(
            f"lower_tick {lower_tick} must be below upper_tick {upper_tick}"
        )
    if lower_tick < min_tick:
        raise InvalidTick(f"lower_tick {lower_tick} below min_tick {min_tick}")
    if (lower_tick - min_tick) % tick_spacing != 0 or (upper_tick - min_tick) % tick_spacing != 0:
        raise InvalidTickSpacing(
            f"Ticks [{lower_tick}, {upper_tick}) not aligned to spacing {tick_spacing}"
        )

    lo = (lower_tick - min_tick) // tick_spacing
    hi = (upper_tick - min_tick) // tick_spacing - 1
    if hi >= num_bins:
        raise RangeBinsOutOfBounds(
            f"upper_tick {upper_tick} maps to bin {hi} >= num_bins {num_bins}"
        )
    return lo, hi


def bin_to_tick_range(bin_index: int, min_tick: int, tick_spacing: int) -> tuple[int, int]:
    """Обратная конверсия: bin → [lower_tick, upper_tick)."""
    lower_tick = min_tick + bin_index * tick_spacing
    return lower_tick, lower_tick + tick_spacing
