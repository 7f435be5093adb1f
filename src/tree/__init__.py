"""Range-aggregation tree — хранилище весов бинов рынка.

- Ленивое мультипликативное обновление диапазона
- Sum-запрос диапазона без мутации
- Атомарные мутации с откатом
"""

from .lazy_mul_segment_tree import (
    DEFAULT_LEAF_WEIGHT,
    MAX_FACTOR,
    MAX_TREE_SIZE,
    MIN_FACTOR,
    NULL_HANDLE,
    PENDING_FACTOR_FLUSH_HIGH,
    PENDING_FACTOR_FLUSH_LOW,
    LazyMulSegmentTree,
    NodeView,
    TreeNode,
    rebalance_child_sums,
)

__all__ = [
    "DEFAULT_LEAF_WEIGHT",
    "MAX_FACTOR",
    "MAX_TREE_SIZE",
    "MIN_FACTOR",
    "NULL_HANDLE",
    "PENDING_FACTOR_FLUSH_HIGH",
    "PENDING_FACTOR_FLUSH_LOW",
    "LazyMulSegmentTree",
    "NodeView",
    "TreeNode",
    "rebalance_child_sums",
]
