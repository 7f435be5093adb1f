"""LazyMulSegmentTree — дерево отрезков с ленивым мультипликативным обновлением.

Хранит веса бинов (exp(q_i / alpha)) и поддерживает за O(log size):
- умножение всех весов диапазона [lo, hi] на factor
- сумму весов диапазона (partition function для total)

Узлы материализуются лениво: handle 0 означает отсутствующее поддерево,
которое неявно хранит uniform вес DEFAULT_LEAF_WEIGHT на каждый лист.
Диапазон узла [l, r] не хранится — выводится арифметикой спуска.

ИНВАРИАНТЫ:
- sum материализованного узла — истинная текущая сумма по [l, r]
  (включая собственный pending factor, ещё не переданный детям)
- сразу после push-down сумма детей в точности равна sum узла
  (детерминированный rebalance, правый ребёнок первым)
- каждый применяемый factor лежит в [MIN_FACTOR, MAX_FACTOR]

Все публичные мутации атомарны: при исключении дерево возвращается
в точности в состояние до операции.
"""

import logging
from contextlib import contextmanager
from dataclasses import dataclass, field, replace
from typing import Dict, Final, Iterator, Optional, Sequence

from src.core.errors import (
    FixedPointOverflow,
    IndexOutOfBounds,
    InvalidFactor,
    InvalidRange,
    SeedLengthMismatch,
    TreeAlreadyInitialized,
    TreeNotInitialized,
    TreeSizeTooLarge,
    TreeSizeZero,
)
from src.core.math.fixed_point import MAX_UINT256, WAD, mul_wad_nearest

logger = logging.getLogger(__name__)

# =============================================================================
# КОНСТАНТЫ
# =============================================================================

# Границы одного factor
MIN_FACTOR: Final[int] = WAD // 100  # 0.01
MAX_FACTOR: Final[int] = 100 * WAD  # 100

# Safety band для накопленного pending factor: вне полосы eager push-down
PENDING_FACTOR_FLUSH_LOW: Final[int] = WAD // 10**6  # 1e-6
PENDING_FACTOR_FLUSH_HIGH: Final[int] = WAD * 10**6  # 1e6

# Половина 32-битного диапазона индексов
MAX_TREE_SIZE: Final[int] = 2**31

# Неявный вес листа в нематериализованном поддереве
DEFAULT_LEAF_WEIGHT: Final[int] = WAD

NULL_HANDLE: Final[int] = 0


# =============================================================================
# УЗЛЫ
# =============================================================================


@dataclass
class TreeNode:
    """Узел дерева. Диапазон [l, r] выводится при спуске."""

    sum: int
    pending_factor: int = WAD
    left: int = NULL_HANDLE
    right: int = NULL_HANDLE


@dataclass(frozen=True)
class NodeView:
    """Снимок материализованного узла с выведенным диапазоном."""

    handle: int
    lo: int
    hi: int
    sum: int
    pending_factor: int
    left: int
    right: int

    @property
    def is_leaf(self) -> bool:
        return self.lo == self.hi


@dataclass
class _Journal:
    size: int
    root: int
    next_handle: int
    # handle → копия узла до первой мутации; None для узла, созданного в транзакции
    nodes: Dict[int, Optional[TreeNode]] = field(default_factory=dict)


# =============================================================================
# REBALANCE
# =============================================================================


def rebalance_child_sums(parent_sum: int, left_sum: int, right_sum: int) -> tuple[int, int]:
    """Детерминированная коррекция сумм детей под авторитетную сумму родителя.

    Независимое округление двух детей может сместить их сумму на несколько
    wei относительно parent_sum. Правило:
    - недостача целиком добавляется правому ребёнку
    - избыток снимается с правого ребёнка; остаток, который правый не может
      поглотить, снимается с левого

    Returns:
        (left_sum, right_sum) с left_sum + right_sum == parent_sum

    Examples:
        >>> rebalance_child_sums(10, 4, 5)
        (4, 6)
        >>> rebalance_child_sums(10, 6, 5)
        (6, 4)
        >>> rebalance_child_sums(10, 12, 1)
        (10, 0)
    """
    children_total = left_sum + right_sum
    if children_total == parent_sum:
        return left_sum, right_sum

    if children_total < parent_sum:
        return left_sum, right_sum + (parent_sum - children_total)

    surplus = children_total - parent_sum
    from_right = min(surplus, right_sum)
    return left_sum - (surplus - from_right), right_sum - from_right


def _within_flush_band(factor: int) -> bool:
    return PENDING_FACTOR_FLUSH_LOW <= factor <= PENDING_FACTOR_FLUSH_HIGH


def _checked_sum(value: int) -> int:
    if value > MAX_UINT256:
        raise FixedPointOverflow(f"Node sum exceeds uint256: {value}")
    return value


# =============================================================================
# ДЕРЕВО
# =============================================================================


class LazyMulSegmentTree:
    """Разреженное дерево отрезков с ленивым умножением на диапазоне.

    Один экземпляр на рынок. Размер задаётся один раз в init() и больше
    не меняется. Узлы хранятся в arena-таблице по целочисленному handle;
    счётчик аллокаций монотонно растёт и принадлежит экземпляру.

    Lifecycle:
    - init(size): только корень, поддеревья неявно uniform
    - seed_with_factors(weights): опционально, полная материализация prior
    - apply_range_factor(...): мутации от сделок
    - get_range_sum(...): чтение, в том числе после settlement
    """

    def __init__(self) -> None:
        self._size = 0
        self._root = NULL_HANDLE
        self._next_handle = 1
        self._nodes: Dict[int, TreeNode] = {}
        self._journal: Optional[_Journal] = None

    # -------------------------------------------------------------------------
    # Свойства
    # -------------------------------------------------------------------------

    @property
    def size(self) -> int:
        return self._size

    @property
    def is_initialized(self) -> bool:
        return self._size > 0

    @property
    def node_count(self) -> int:
        """Число материализованных узлов."""
        return len(self._nodes)

    @property
    def next_handle(self) -> int:
        return self._next_handle

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def init(self, size: int) -> None:
        """Инициализация дерева размера size: аллоцируется только корень.

        Raises:
            TreeAlreadyInitialized: повторный init
            TreeSizeZero: size <= 0
            TreeSizeTooLarge: size > MAX_TREE_SIZE
        """
        if self.is_initialized:
            raise TreeAlreadyInitialized(f"Tree already initialized with size {self._size}")
        if size <= 0:
            raise TreeSizeZero(f"Tree size must be positive, got {size}")
        if size > MAX_TREE_SIZE:
            raise TreeSizeTooLarge(f"Tree size {size} exceeds MAX_TREE_SIZE={MAX_TREE_SIZE}")

        with self.atomic():
            self._size = size
            self._root = self._alloc(size * DEFAULT_LEAF_WEIGHT)

        logger.info("Tree initialized: size=%d", size)

    def seed_with_factors(self, weights: Sequence[int]) -> None:
        """Полная материализация дерева из весов бинов (bottom-up, один проход).

        Единственный путь к неравномерному prior. Заменяет все существующие
        узлы; handles продолжают монотонную нумерацию.

        Raises:
            TreeNotInitialized: дерево не инициализировано
            SeedLengthMismatch: len(weights) != size
            InvalidFactor: неположительный вес
        """
        self._require_initialized()
        if len(weights) != self._size:
            raise SeedLengthMismatch(self._size, len(weights))
        for index, weight in enumerate(weights):
            if weight <= 0:
                raise InvalidFactor(f"Seed weight at bin {index} must be positive, got {weight}")

        with self.atomic():
            for handle in list(self._nodes):
                self._touch(handle)
            self._nodes.clear()
            self._root = self._build(weights, 0, self._size - 1)

        logger.info(
            "Tree seeded: size=%d total_sum=%d nodes=%d",
            self._size,
            self._nodes[self._root].sum,
            len(self._nodes),
        )

    # -------------------------------------------------------------------------
    # Мутации
    # -------------------------------------------------------------------------

    def apply_range_factor(self, lo: int, hi: int, factor: int) -> None:
        """Умножение каждого листа в [lo, hi] на factor.

        Полностью покрытый узел получает sum *= factor и комбинирует factor
        в pending без рекурсии. Частично покрытый узел сначала передаёт
        pending детям, спускается в пересекающихся детей и пересчитывает sum.

        Raises:
            TreeNotInitialized, InvalidRange, IndexOutOfBounds
            InvalidFactor: factor вне [MIN_FACTOR, MAX_FACTOR]
        """
        self._require_initialized()
        self._require_range(lo, hi)
        if factor < MIN_FACTOR or factor > MAX_FACTOR:
            raise InvalidFactor(
                f"Factor {factor} outside [{MIN_FACTOR}, {MAX_FACTOR}]"
            )

        with self.atomic():
            self._apply(self._root, 0, self._size - 1, lo, hi, factor)

    def propagate_lazy(self, lo: int, hi: int) -> int:
        """Мутирующий аналог get_range_sum: передаёт pending factors вниз.

        Всё поддерево, пересекающее [lo, hi], материализуется до листьев и
        остаётся без pending factors; стоимость O(hi - lo + log size).

        Returns:
            Сумма весов [lo, hi] по материализованным листьям
        """
        self._require_initialized()
        self._require_range(lo, hi)
        with self.atomic():
            return self._propagate(self._root, 0, self._size - 1, lo, hi)

    # -------------------------------------------------------------------------
    # Чтение
    # -------------------------------------------------------------------------

    def get_range_sum(self, lo: int, hi: int) -> int:
        """Сумма весов [lo, hi] без мутации состояния.

        Спуск несёт накопленный factor предков, ещё не переданный вниз.
        """
        self._require_initialized()
        self._require_range(lo, hi)
        return self._query(self._root, 0, self._size - 1, lo, hi, WAD)

    def total_sum(self) -> int:
        """Partition function Z — сумма всех весов."""
        self._require_initialized()
        return self._nodes[self._root].sum

    def bin_weight(self, index: int) -> int:
        """Текущий вес одного бина."""
        return self.get_range_sum(index, index)

    def iter_nodes(self) -> Iterator[NodeView]:
        """Обход материализованных узлов в pre-order с выведенными диапазонами."""
        self._require_initialized()
        stack = [(self._root, 0, self._size - 1)]
        while stack:
            handle, l, r = stack.pop()
            node = self._nodes[handle]
            yield NodeView(
                handle=handle,
                lo=l,
                hi=r,
                sum=node.sum,
                pending_factor=node.pending_factor,
                left=node.left,
                right=node.right,
            )
            mid = (l + r) // 2
            if node.right != NULL_HANDLE:
                stack.append((node.right, mid + 1, r))
            if node.left != NULL_HANDLE:
                stack.append((node.left, l, mid))

    # -------------------------------------------------------------------------
    # Атомарность
    # -------------------------------------------------------------------------

    @contextmanager
    def atomic(self) -> Iterator["LazyMulSegmentTree"]:
        """Транзакция над деревом: при исключении все мутации откатываются.

        Журналирует исходное состояние каждого узла при первой мутации.
        Вложенные блоки участвуют во внешней транзакции.
        """
        if self._journal is not None:
            yield self
            return

        self._journal = _Journal(
            size=self._size, root=self._root, next_handle=self._next_handle
        )
        try:
            yield self
        except BaseException:
            self._rollback()
            raise
        finally:
            self._journal = None

    def _rollback(self) -> None:
        journal = self._journal
        for handle, original in journal.nodes.items():
            if original is None:
                self._nodes.pop(handle, None)
            else:
                self._nodes[handle] = original
        self._size = journal.size
        self._root = journal.root
        self._next_handle = journal.next_handle
        logger.debug("Tree rollback: restored %d journaled nodes", len(journal.nodes))

    def _touch(self, handle: int) -> TreeNode:
        node = self._nodes[handle]
        if self._journal is not None and handle not in self._journal.nodes:
            self._journal.nodes[handle] = replace(node)
        return node

    # -------------------------------------------------------------------------
    # Внутренние операции
    # -------------------------------------------------------------------------

    def _require_initialized(self) -> None:
        if not self.is_initialized:
            raise TreeNotInitialized("Tree is not initialized")

    def _require_range(self, lo: int, hi: int) -> None:
        if lo > hi:
            raise InvalidRange(f"Invalid range: lo={lo} > hi={hi}")
        if lo < 0 or hi >= self._size:
            raise IndexOutOfBounds(
                f"Range [{lo}, {hi}] out of bounds for size {self._size}"
            )

    def _alloc(self, node_sum: int) -> int:
        handle = self._next_handle
        self._next_handle += 1
        self._nodes[handle] = TreeNode(sum=_checked_sum(node_sum))
        if self._journal is not None:
            self._journal.nodes.setdefault(handle, None)
        return handle

    def _build(self, weights: Sequence[int], l: int, r: int) -> int:
        if l == r:
            return self._alloc(weights[l])
        mid = (l + r) // 2
        left = self._build(weights, l, mid)
        right = self._build(weights, mid + 1, r)
        handle = self._alloc(self._nodes[left].sum + self._nodes[right].sum)
        node = self._nodes[handle]
        node.left = left
        node.right = right
        return handle

    def _apply(self, handle: int, l: int, r: int, lo: int, hi: int, factor: int) -> None:
        if lo <= l and r <= hi:
            self._apply_covered(handle, l, r, factor)
            return

        node = self._push_down(handle, l, r)
        mid = (l + r) // 2
        if lo <= mid:
            self._apply(node.left, l, mid, lo, hi, factor)
        if hi > mid:
            self._apply(node.right, mid + 1, r, lo, hi, factor)
        node.sum = _checked_sum(self._nodes[node.left].sum + self._nodes[node.right].sum)

    def _apply_covered(self, handle: int, l: int, r: int, factor: int) -> None:
        node = self._touch(handle)
        if l == r:
            node.sum = mul_wad_nearest(node.sum, factor)
            return

        # Накопленный factor выйдет из safety band: сначала сбросить старый
        if node.pending_factor != WAD and not _within_flush_band(
            mul_wad_nearest(node.pending_factor, factor)
        ):
            logger.debug(
                "Eager flush before combine: range=[%d, %d] pending=%d factor=%d",
                l, r, node.pending_factor, factor,
            )
            self._push_down(handle, l, r)

        node.sum = mul_wad_nearest(node.sum, factor)
        node.pending_factor = mul_wad_nearest(node.pending_factor, factor)

        if not _within_flush_band(node.pending_factor):
            logger.debug(
                "Eager flush after combine: range=[%d, %d] pending=%d",
                l, r, node.pending_factor,
            )
            self._push_down(handle, l, r)

    def _push_down(self, handle: int, l: int, r: int) -> TreeNode:
        """Передача pending factor детям с материализацией и rebalance."""
        node = self._touch(handle)
        mid = (l + r) // 2

        # Отсутствующий ребёнок создаётся с uniform весом до применения pending
        if node.left == NULL_HANDLE:
            node.left = self._alloc((mid - l + 1) * DEFAULT_LEAF_WEIGHT)
        if node.right == NULL_HANDLE:
            node.right = self._alloc((r - mid) * DEFAULT_LEAF_WEIGHT)

        factor = node.pending_factor
        if factor != WAD:
            self._scale_child(node.left, l == mid, factor)
            self._scale_child(node.right, mid + 1 == r, factor)
            node.pending_factor = WAD

        self._rebalance_children(node)
        return node

    def _scale_child(self, handle: int, is_leaf: bool, factor: int) -> None:
        child = self._touch(handle)
        child.sum = mul_wad_nearest(child.sum, factor)
        if not is_leaf:
            child.pending_factor = mul_wad_nearest(child.pending_factor, factor)

    def _rebalance_children(self, node: TreeNode) -> None:
        left = self._nodes[node.left]
        right = self._nodes[node.right]
        left_sum, right_sum = rebalance_child_sums(node.sum, left.sum, right.sum)
        if left_sum != left.sum:
            self._touch(node.left).sum = left_sum
        if right_sum != right.sum:
            self._touch(node.right).sum = right_sum

    def _query(self, handle: int, l: int, r: int, lo: int, hi: int, inherited: int) -> int:
        if handle == NULL_HANDLE:
            overlap = min(r, hi) - max(l, lo) + 1
            return mul_wad_nearest(overlap * DEFAULT_LEAF_WEIGHT, inherited)

        node = self._nodes[handle]
        if lo <= l and r <= hi:
            return mul_wad_nearest(node.sum, inherited)

        child_factor = mul_wad_nearest(inherited, node.pending_factor)
        mid = (l + r) // 2
        total = 0
        if lo <= mid:
            total += self._query(node.left, l, mid, lo, hi, child_factor)
        if hi > mid:
            total += self._query(node.right, mid + 1, r, lo, hi, child_factor)
        return total

    def _propagate(self, handle: int, l: int, r: int, lo: int, hi: int) -> int:
        if l == r:
            return self._nodes[handle].sum

        node = self._push_down(handle, l, r)
        mid = (l + r) // 2
        total = 0
        if lo <= mid:
            total += self._propagate(node.left, l, mid, lo, hi)
        if hi > mid:
            total += self._propagate(node.right, mid + 1, r, lo, hi)
        return total
