"""
Errors — иерархия исключений CLMSR engine

Три класса ошибок, все неустранимые в момент обнаружения:
- ConfigurationError: невалидный liquidity parameter, повторный init,
  использование до init, несоответствие size/weights
- DomainError: диапазон вне границ или перевёрнутый, factor или вход exp
  вне безопасного домена
- ArithmeticLimitError: результат умножения или pending factor вне
  представимого диапазона

КРИТИЧЕСКИЕ ИНВАРИАНТЫ:
1. Операция прерывается немедленно, частичные мутации не сохраняются
2. Никаких повторов внутри engine (re-chunking — забота вызывающего)
3. Никакого clamping и подстановки default значений
"""


class ClmsrError(Exception):
    """Базовый класс всех ошибок engine."""

    pass


# =============================================================================
# CONFIGURATION
# =============================================================================


class ConfigurationError(ClmsrError, ValueError):
    """Ошибка конфигурации рынка или дерева."""

    pass


class TreeNotInitialized(ConfigurationError):
    """Операция над деревом до init()."""

    pass


class TreeAlreadyInitialized(ConfigurationError):
    """Повторный init() уже инициализированного дерева."""

    pass


class TreeSizeZero(ConfigurationError):
    """init(0): дерево без бинов."""

    pass


class TreeSizeTooLarge(ConfigurationError):
    """size больше половины диапазона индексов (запас для index arithmetic)."""

    pass


class SeedLengthMismatch(ConfigurationError):
    """Длина массива весов не совпадает с size дерева."""

    def __init__(self, expected: int, actual: int):
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Seed length mismatch: expected {expected} weights, got {actual}"
        )


class InvalidLiquidityParameter(ConfigurationError):
    """Liquidity parameter (alpha) равен нулю или отрицательный."""

    pass


# =============================================================================
# DOMAIN
# =============================================================================


class DomainError(ClmsrError, ValueError):
    """Вход вне допустимого домена операции."""

    pass


class InvalidRange(DomainError):
    """lo > hi."""

    pass


class IndexOutOfBounds(DomainError):
    """Индекс бина вне [0, size)."""

    pass


class InvalidFactor(DomainError):
    """Factor вне [MIN_FACTOR, MAX_FACTOR] или неположительный вес при seed."""

    pass


class InvalidTick(DomainError):
    """Tick ниже min_tick."""

    pass


class InvalidTickSpacing(DomainError):
    """Tick не выровнен по tick_spacing."""

    pass


class InvalidTickRange(DomainError):
    """lower_tick >= upper_tick."""

    pass


class RangeBinsOutOfBounds(DomainError):
    """Tick отображается в бин за пределами num_bins."""

    pass


class InvalidQuantity(DomainError):
    """Отрицательное количество или бюджет."""

    pass


class ChunkLimitExceeded(DomainError):
    """Сделка требует больше chunks, чем разрешено конфигурацией."""

    def __init__(self, required: int, limit: int):
        self.required = required
        self.limit = limit
        super().__init__(
            f"Trade requires {required} chunks, limit is {limit}"
        )


class ProceedsUnattainable(DomainError):
    """Запрошенные proceeds больше, чем диапазон способен высвободить."""

    pass


class FixedPointInvalidInput(DomainError):
    """Вход fixed-point kernel вне домена (ln(0), отрицательный операнд)."""

    pass


# =============================================================================
# ARITHMETIC LIMIT
# =============================================================================


class ArithmeticLimitError(ClmsrError, ArithmeticError):
    """Результат вне представимого диапазона."""

    pass


class FixedPointOverflow(ArithmeticLimitError):
    """Результат больше MAX_UINT256 или вход exp выше MAX_EXP_INPUT_WAD."""

    pass


class FixedPointDivisionByZero(ArithmeticLimitError):
    """Деление на ноль в fixed-point kernel."""

    pass
