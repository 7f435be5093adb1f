"""
Market — параметры рынка, поставляемые ledger

Immutable Pydantic модель: liquidity parameter, число бинов и сетка tick.
MarketConfig создаётся один раз при создании рынка и не меняется до
settlement; tick-based операции движка конвертируются в бины через неё.
"""

from pydantic import BaseModel, Field

from src.core.domain.ticks import bin_to_tick_range, tick_to_bin, ticks_to_bins
from src.core.errors import IndexOutOfBounds
from src.tree.lazy_mul_segment_tree import MAX_TREE_SIZE


# =============================================================================
# MARKET MODEL
# =============================================================================


class MarketConfig(BaseModel):
    """
    Параметры рынка CLMSR.

    Все денежные величины в WAD (10**18). Диапазон рынка по tick:
    [min_tick, max_tick), где max_tick = min_tick + num_bins * tick_spacing.

    Immutable модель (frozen=True).
    """

    market_id: str = Field("default", min_length=1, description="Идентификатор рынка")
    liquidity_parameter: int = Field(..., gt=0, description="Alpha (WAD): глубина рынка")
    num_bins: int = Field(..., ge=1, le=MAX_TREE_SIZE, description="Число бинов (листьев дерева)")
    min_tick: int = Field(0, description="Нижняя граница рынка (включительно)")
    tick_spacing: int = Field(1, gt=0, description="Шаг сетки tick")

    model_config = {"frozen": True}  # Immutable

    @property
    def max_tick(self) -> int:
        """Верхняя граница рынка (исключительно)."""
        return self.min_tick + self.num_bins * self.tick_spacing

    def tick_to_bin(self, tick: int) -> int:
        return tick_to_bin(tick, self.min_tick, self.tick_spacing, self.num_bins)

    def ticks_to_bins(self, lower_tick: int, upper_tick: int) -> tuple[int, int]:
        """[lower_tick, upper_tick) → включительный [lo, hi] бинов."""
        return ticks_to_bins(
            lower_tick, upper_tick, self.min_tick, self.tick_spacing, self.num_bins
        )

    def bin_ticks(self, bin_index: int) -> tuple[int, int]:
        """bin → [lower_tick, upper_tick)."""
        if bin_index < 0 or bin_index >= self.num_bins:
            raise IndexOutOfBounds(f"bin {bin_index} out of range for num_bins {self.num_bins}")
        return bin_to_tick_range(bin_index, self.min_tick, self.tick_spacing)
