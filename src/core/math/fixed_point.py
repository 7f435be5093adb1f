"""
Fixed-Point Math — WAD-арифметика (18 знаков после запятой)

Все величины engine — целые числа, масштабированные на WAD = 10**18.
Модуль обеспечивает детерминированную арифметику с явным направлением
округления:
- Умножение/деление: truncate (down), round-up, round-nearest (half-up)
- Безопасная экспонента с жёстким потолком входа (ошибка, не насыщение)
- Натуральный логарифм только для положительных входов
- Конверсия 6-decimal платёжных единиц <-> WAD

КРИТИЧЕСКИЕ ИНВАРИАНТЫ:
1. Результат > MAX_UINT256 → FixedPointOverflow (эмуляция 256-битной ширины)
2. Отрицательные операнды беззнаковых операций → FixedPointInvalidInput
3. Деление на ноль → FixedPointDivisionByZero, никогда не fallback
4. exp/ln вычисляются через decimal с точностью 100 значащих цифр и явным
   округлением — результат побитово воспроизводим на любой платформе

ПОТОЛОК EXP:
    MAX_EXP_INPUT_WAD ≈ 133.084 — exp(x) < 2**192 в реальных единицах,
    поэтому WAD-образ результата (< 2**192 * 10**18 < 2**256) представим.
"""

from decimal import ROUND_CEILING, ROUND_FLOOR, Context, Decimal
from typing import Final

from src.core.errors import (
    FixedPointDivisionByZero,
    FixedPointInvalidInput,
    FixedPointOverflow,
)

# =============================================================================
# КОНСТАНТЫ
# =============================================================================

WAD: Final[int] = 10**18
HALF_WAD: Final[int] = WAD // 2

# Верхняя граница представимых значений (uint256)
MAX_UINT256: Final[int] = 2**256 - 1

# Потолок входа exp_wad: exp(133.084258667509499440) ≈ 2**192
MAX_EXP_INPUT_WAD: Final[int] = 133_084258667509499440

# floor(ln(100) * WAD), ln(MAX_FACTOR) для chunk sizing
LN_MAX_FACTOR_WAD: Final[int] = 4_605170185988091368

# Платёжные единицы ledger (6 decimals) → WAD
PAYMENT_DECIMALS: Final[int] = 6
PAYMENT_TO_WAD_SCALE: Final[int] = 10 ** (18 - PAYMENT_DECIMALS)

# 100 значащих цифр: WAD-образ exp(MAX_EXP_INPUT) занимает ~76 цифр
_DECIMAL_CONTEXT: Final[Context] = Context(prec=100)
_WAD_DECIMAL: Final[Decimal] = Decimal(WAD)


# =============================================================================
# ВАЛИДАЦИЯ ОПЕРАНДОВ
# =============================================================================


def _require_unsigned(value: int, name: str) -> None:
    if value < 0:
        raise FixedPointInvalidInput(f"{name} must be non-negative, got {value}")


def _checked(result: int) -> int:
    if result > MAX_UINT256:
        raise FixedPointOverflow(f"Fixed-point result exceeds uint256: {result}")
    return result


# =============================================================================
# УМНОЖЕНИЕ
# =============================================================================


def mul_wad(a: int, b: int) -> int:
    """
    WAD-умножение с округлением вниз (truncate).

    Examples:
        >>> mul_wad(2 * WAD, 3 * WAD) == 6 * WAD
        True
        >>> mul_wad(WAD // 2, WAD // 2) == WAD // 4
        True
    """
    _require_unsigned(a, "a")
    _require_unsigned(b, "b")
    return _checked(a * b // WAD)


def mul_wad_up(a: int, b: int) -> int:
    """WAD-умножение с округлением вверх."""
    _require_unsigned(a, "a")
    _require_unsigned(b, "b")
    return _checked((a * b + WAD - 1) // WAD)


def mul_wad_nearest(a: int, b: int) -> int:
    """
    WAD-умножение с округлением к ближайшему (половина — вверх).

    Используется деревом для sum *= factor и для комбинирования
    pending factors.
    """
    _require_unsigned(a, "a")
    _require_unsigned(b, "b")
    return _checked((a * b + HALF_WAD) // WAD)


# =============================================================================
# ДЕЛЕНИЕ
# =============================================================================


def _require_divisor(b: int) -> None:
    if b == 0:
        raise FixedPointDivisionByZero("Fixed-point division by zero")


def div_wad(a: int, b: int) -> int:
    """
    WAD-деление с округлением вниз.

    Raises:
        FixedPointDivisionByZero: если b == 0
    """
    _require_unsigned(a, "a")
    _require_unsigned(b, "b")
    _require_divisor(b)
    return _checked(a * WAD // b)


def div_wad_up(a: int, b: int) -> int:
    """WAD-деление с округлением вверх."""
    _require_unsigned(a, "a")
    _require_unsigned(b, "b")
    _require_divisor(b)
    return _checked((a * WAD + b - 1) // b)


def div_wad_nearest(a: int, b: int) -> int:
    """WAD-деление с округлением к ближайшему (половина — вверх)."""
    _require_unsigned(a, "a")
    _require_unsigned(b, "b")
    _require_divisor(b)
    return _checked((a * WAD + b // 2) // b)


# =============================================================================
# EXP / LN
# =============================================================================


def _to_decimal(x: int) -> Decimal:
    return _DECIMAL_CONTEXT.divide(Decimal(x), _WAD_DECIMAL)


def _from_decimal(value: Decimal, rounding: str) -> int:
    scaled = _DECIMAL_CONTEXT.multiply(value, _WAD_DECIMAL)
    return int(scaled.to_integral_value(rounding=rounding))


def exp_wad(x: int) -> int:
    """
    Безопасная экспонента exp(x) в WAD, округление вниз.

    Домен: 0 <= x <= MAX_EXP_INPUT_WAD. Выше потолка — ошибка, не насыщение:
    насыщение исказило бы цену сделки.

    Args:
        x: Показатель в WAD

    Returns:
        floor(exp(x / WAD) * WAD)

    Raises:
        FixedPointInvalidInput: если x < 0
        FixedPointOverflow: если x > MAX_EXP_INPUT_WAD

    Examples:
        >>> exp_wad(0) == WAD
        True
        >>> exp_wad(WAD)
        2718281828459045235
    """
    _require_unsigned(x, "x")
    if x > MAX_EXP_INPUT_WAD:
        raise FixedPointOverflow(
            f"exp input {x} exceeds MAX_EXP_INPUT_WAD={MAX_EXP_INPUT_WAD}"
        )
    if x == 0:
        return WAD
    return _from_decimal(_DECIMAL_CONTEXT.exp(_to_decimal(x)), ROUND_FLOOR)


def ln_wad(x: int) -> int:
    """
    Натуральный логарифм ln(x) в WAD, округление вниз (к -inf).

    Результат знаковый: для x < WAD логарифм отрицательный.

    Raises:
        FixedPointInvalidInput: если x <= 0

    Examples:
        >>> ln_wad(WAD)
        0
        >>> ln_wad(2 * WAD)
        693147180559945309
    """
    if x <= 0:
        raise FixedPointInvalidInput(f"ln input must be positive, got {x}")
    if x == WAD:
        return 0
    return _from_decimal(_DECIMAL_CONTEXT.ln(_to_decimal(x)), ROUND_FLOOR)


def ln_wad_up(x: int) -> int:
    """Натуральный логарифм ln(x) в WAD, округление вверх (к +inf)."""
    if x <= 0:
        raise FixedPointInvalidInput(f"ln input must be positive, got {x}")
    if x == WAD:
        return 0
    return _from_decimal(_DECIMAL_CONTEXT.ln(_to_decimal(x)), ROUND_CEILING)


# =============================================================================
# КОНВЕРСИЯ ПЛАТЁЖНЫХ ЕДИНИЦ (6 decimals <-> WAD)
# =============================================================================


def to_wad(amount: int) -> int:
    """
    Конверсия 6-decimal суммы ledger в WAD.

    Examples:
        >>> to_wad(1_000_000) == WAD
        True
    """
    _require_unsigned(amount, "amount")
    return _checked(amount * PAYMENT_TO_WAD_SCALE)


def from_wad(value: int) -> int:
    """Конверсия WAD → 6 decimals, truncate."""
    _require_unsigned(value, "value")
    return value // PAYMENT_TO_WAD_SCALE


def from_wad_round_up(value: int) -> int:
    """Конверсия WAD → 6 decimals с округлением вверх (для debit)."""
    _require_unsigned(value, "value")
    return (value + PAYMENT_TO_WAD_SCALE - 1) // PAYMENT_TO_WAD_SCALE


def from_wad_nearest(value: int) -> int:
    """Конверсия WAD → 6 decimals с округлением к ближайшему."""
    _require_unsigned(value, "value")
    return (value + PAYMENT_TO_WAD_SCALE // 2) // PAYMENT_TO_WAD_SCALE


def from_wad_nearest_min1(value: int) -> int:
    """
    Как from_wad_nearest, но ненулевой вход никогда не округляется в ноль.

    Examples:
        >>> from_wad_nearest_min1(1)
        1
        >>> from_wad_nearest_min1(0)
        0
    """
    if value == 0:
        return 0
    return max(1, from_wad_nearest(value))
