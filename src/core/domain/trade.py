"""
Trade — запрос и результат сделки по диапазону бинов

TradeRequest — immutable Pydantic модель входа от ledger (tick-диапазон и
количество). TradeResult — immutable результат применения к дереву:
реализованная стоимость или выручка и состояние partition function до/после.
"""

from dataclasses import dataclass
from enum import Enum

from pydantic import BaseModel, Field, model_validator


# =============================================================================
# ENUMS
# =============================================================================


class TradeSide(str, Enum):
    """Сторона сделки"""

    BUY = "buy"  # open / increase: debit
    SELL = "sell"  # decrease / close: credit


# =============================================================================
# REQUEST
# =============================================================================


class TradeRequest(BaseModel):
    """
    Запрос сделки на диапазоне [lower_tick, upper_tick).

    Количество в WAD, строго положительное. Выравнивание tick по сетке
    рынка проверяется при конверсии в бины, не здесь.

    Immutable модель (frozen=True).
    """

    side: TradeSide = Field(..., description="Сторона сделки (buy/sell)")
    lower_tick: int = Field(..., description="Нижняя граница диапазона (включительно)")
    upper_tick: int = Field(..., description="Верхняя граница диапазона (исключительно)")
    quantity: int = Field(..., gt=0, description="Количество (WAD)")

    model_config = {"frozen": True}  # Immutable

    @model_validator(mode="after")
    def validate_tick_order(self) -> "TradeRequest":
        """Проверка, что диапазон непустой"""
        if self.lower_tick >= self.upper_tick:
            raise ValueError(
                f"lower_tick {self.lower_tick} must be below upper_tick {self.upper_tick}"
            )
        return self


# =============================================================================
# RESULT
# =============================================================================


@dataclass(frozen=True)
class TradeResult:
    """
    Результат применения сделки к дереву.

    Attributes:
        side: Сторона сделки
        lo: Первый бин диапазона
        hi: Последний бин диапазона (включительно)
        quantity: Количество (WAD)
        amount: Cost (BUY, округлён вверх) или proceeds (SELL, округлены вниз), WAD
        chunks: Число применённых chunks
        total_before: Partition function до сделки
        total_after: Partition function после сделки
    """

    side: TradeSide
    lo: int
    hi: int
    quantity: int
    amount: int
    chunks: int
    total_before: int
    total_after: int

    @property
    def is_debit(self) -> bool:
        return self.side == TradeSide.BUY
