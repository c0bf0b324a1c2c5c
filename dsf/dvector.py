"""
Partitioned vector of float64 values (DVector)

A DVector is an ordered sequence of 1-D partitions. Each partition is described by
its size, which is known up front, and by a function that computes its elements on
demand. Operations build new DVectors lazily from the partitions of their inputs, so
nothing is computed until a reduction asks for it. cache() pins the partitions in
memory so that later operations reuse them instead of recomputing the lineage.
"""

import logging
import math
import threading
from functools import reduce
from typing import Any, Callable, Sequence, TypeVar

import numpy as np
import numpy.typing as npt

from .types import ElementFn, PairElementFn, PartitionFn, Vector

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ShapeMismatchError(ValueError):
    """Raised when vectors with different partition layouts are combined"""


def _check_same_shape(a: "DVector", b: "DVector", op: str) -> None:
    if a.sizes != b.sizes:
        raise ShapeMismatchError(
            f"Cannot {op} DVectors with different shapes: {a.sizes} vs {b.sizes}"
        )


def _read_only(values: npt.ArrayLike) -> Vector:
    arr = np.array(values, dtype=np.float64)
    arr.setflags(write=False)
    return arr


def tree_reduce(values: list[T], comb_op: Callable[[T, T], T], depth: int = 2) -> T:
    """
    Combines partial results level by level.

    Each level merges groups of `scale` neighbouring results with comb_op, where
    scale = max(ceil(n^(1/depth)), 2) for n initial results, until at most `scale`
    remain; those are then merged into the final result.

    Parameters:
        values: non-empty list of partial results, one per partition
        comb_op: associative and commutative combine function
        depth: suggested depth of the reduction tree, must be at least 1
    """
    if depth < 1:
        raise ValueError(f"Tree depth must be at least 1, got {depth}")
    if not values:
        raise ValueError("Cannot reduce an empty list of partial results")

    scale = max(math.ceil(len(values) ** (1.0 / depth)), 2)
    level = 0
    while len(values) > scale:
        values = [
            reduce(comb_op, values[start : start + scale])
            for start in range(0, len(values), scale)
        ]
        level += 1
        logger.debug(f"Tree reduction level {level}: {len(values)} partial results")
    return reduce(comb_op, values)


def _tree_aggregate(
    num_partitions: int,
    partition: Callable[[int], Any],
    zero: T,
    seq_op: Callable[[T, Any], T],
    comb_op: Callable[[T, T], T],
    depth: int,
) -> T:
    if depth < 1:
        raise ValueError(f"Tree depth must be at least 1, got {depth}")
    partials = [seq_op(zero, partition(i)) for i in range(num_partitions)]
    if not partials:
        return zero
    return tree_reduce(partials, comb_op, depth)


class DVector:
    def __init__(self, sizes: Sequence[int], compute: PartitionFn):
        """
        Partitioned vector

        Parameters:
            sizes: number of elements in each partition
            compute: function mapping a partition index to that partition's elements,
                a 1-D float64 array of length sizes[i]
        """
        if any(size < 0 for size in sizes):
            raise ValueError(f"Partition sizes must be non-negative, got {sizes}")
        self._sizes = tuple(int(size) for size in sizes)
        self._compute = compute
        self._cached: list[Vector] | None = None
        self._lock = threading.Lock()

    @classmethod
    def from_array(cls, values: npt.ArrayLike, num_partitions: int = 1) -> "DVector":
        """Splits a 1-D array into num_partitions nearly equal partitions"""
        arr = np.asarray(values, dtype=np.float64)
        if arr.ndim != 1:
            raise ValueError(f"DVector values must be 1-D, got shape {arr.shape}")
        if num_partitions < 1:
            raise ValueError(
                f"Number of partitions must be positive, got {num_partitions}"
            )
        return cls.from_partitions(np.array_split(arr, num_partitions))

    @classmethod
    def from_partitions(cls, partitions: Sequence[npt.ArrayLike]) -> "DVector":
        parts = [_read_only(part) for part in partitions]
        for i, part in enumerate(parts):
            if part.ndim != 1:
                raise ValueError(f"Partition {i} must be 1-D, got shape {part.shape}")
        return cls([part.size for part in parts], parts.__getitem__)

    @property
    def sizes(self) -> tuple[int, ...]:
        return self._sizes

    @property
    def num_partitions(self) -> int:
        return len(self._sizes)

    @property
    def size(self) -> int:
        return sum(self._sizes)

    @property
    def is_cached(self) -> bool:
        return self._cached is not None

    def __len__(self) -> int:
        return self.size

    def __repr__(self) -> str:
        return (
            f"DVector(size={self.size}, num_partitions={self.num_partitions}, "
            f"cached={self.is_cached})"
        )

    ############################################################################
    # Materialization
    ############################################################################

    def _materialize(self, i: int) -> Vector:
        part = np.asarray(self._compute(i), dtype=np.float64)
        if part.shape != (self._sizes[i],):
            raise ShapeMismatchError(
                f"Partition {i} has shape {part.shape}, expected ({self._sizes[i]},)"
            )
        return part

    def partition(self, i: int) -> Vector:
        """Returns the elements of partition i, computing them if not cached"""
        cached = self._cached
        if cached is not None:
            return cached[i]
        return self._materialize(i)

    def partitions(self) -> list[Vector]:
        return [self.partition(i) for i in range(self.num_partitions)]

    def to_array(self) -> Vector:
        """Collects all partitions into a single dense array"""
        if self.num_partitions == 0:
            return np.empty(0, dtype=np.float64)
        return np.concatenate(self.partitions())

    def cache(self) -> "DVector":
        """
        Pins the partitions in memory. Calling this on an already cached vector is a
        no-op, and concurrent calls compute the partitions only once.
        """
        with self._lock:
            if self._cached is None:
                logger.debug(f"Caching {self!r}")
                self._cached = [
                    _read_only(self._materialize(i))
                    for i in range(self.num_partitions)
                ]
        return self

    def unpersist(self) -> "DVector":
        """Drops pinned partitions, later operations recompute them"""
        with self._lock:
            self._cached = None
        return self

    ############################################################################
    # Element-wise operations
    ############################################################################

    def diff(self, other: "DVector") -> "DVector":
        """Element-wise difference self - other"""
        _check_same_shape(self, other, "diff")
        return DVector(self._sizes, lambda i: self.partition(i) - other.partition(i))

    def map_elements(self, fn: ElementFn) -> "DVector":
        """
        Applies an element-wise function to every element.

        fn is called with a whole partition and must act on each element
        independently, e.g. a numpy ufunc expression.
        """
        return DVector(self._sizes, lambda i: fn(self.partition(i)))

    def zip_elements(self, other: "DVector", fn: PairElementFn) -> "DVector":
        """Combines paired elements of self and other with an element-wise function"""
        _check_same_shape(self, other, "zip")
        return DVector(
            self._sizes, lambda i: fn(self.partition(i), other.partition(i))
        )

    def zip(self, other: "DVector") -> "DVectorPair":
        return DVectorPair(self, other)

    ############################################################################
    # Reductions
    ############################################################################

    def aggregate_elements(
        self,
        zero: T,
        seq_op: Callable[[T, Vector], T],
        comb_op: Callable[[T, T], T],
    ) -> T:
        """
        Aggregates all elements into a single result.

        Parameters:
            zero: initial accumulator for every partition, and for the final combine
            seq_op: folds the elements of one partition into an accumulator
            comb_op: merges two accumulators
        """
        partials = [seq_op(zero, self.partition(i)) for i in range(self.num_partitions)]
        return reduce(comb_op, partials, zero)

    def tree_aggregate(
        self,
        zero: T,
        seq_op: Callable[[T, Vector], T],
        comb_op: Callable[[T, T], T],
        depth: int = 2,
    ) -> T:
        """
        Aggregates partitions into a single result using a multi-level tree of
        comb_op calls. See tree_reduce() for the tree layout.
        """
        return _tree_aggregate(
            self.num_partitions, self.partition, zero, seq_op, comb_op, depth
        )


class DVectorPair:
    """Partition-wise pairing of two same-shaped DVectors"""

    def __init__(self, first: DVector, second: DVector):
        _check_same_shape(first, second, "zip")
        self.first = first
        self.second = second

    @property
    def num_partitions(self) -> int:
        return self.first.num_partitions

    def partition(self, i: int) -> tuple[Vector, Vector]:
        a, b = self.first.partition(i), self.second.partition(i)
        if a.size != b.size:
            raise ShapeMismatchError(
                "Can only zip partitions with the same number of elements, "
                f"got {a.size} and {b.size} in partition {i}"
            )
        return a, b

    def tree_aggregate(
        self,
        zero: T,
        seq_op: Callable[[T, tuple[Vector, Vector]], T],
        comb_op: Callable[[T, T], T],
        depth: int = 2,
    ) -> T:
        return _tree_aggregate(
            self.num_partitions, self.partition, zero, seq_op, comb_op, depth
        )
