"""
Membership Index for the Fixpoint engine

This module implements the hash-backed fact index:
- Fixed bucket table with separate chaining (no resizing)
- Polynomial string hash compiled with Numba
- Rebuild from a Fact Sequence snapshot

Capacity assumption: the bucket count is fixed at construction. The
expected chain length is ``len(index) / buckets``; lookups stay close to
O(1) while the fact base holds no more than a few times ``buckets``
facts. ``load_factor`` exposes the current ratio.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, Iterator, List, Optional

import numpy as np
from numba import jit


DEFAULT_BUCKETS = 1000


@dataclass
class IndexConfig:
    """Configuration for the membership index."""
    buckets: int = DEFAULT_BUCKETS

    def __post_init__(self):
        if self.buckets < 1:
            raise ValueError(f"Index needs at least one bucket, got {self.buckets}")


@jit(nopython=True)
def _polynomial_hash(data: np.ndarray, buckets: np.uint64) -> np.uint64:
    """
    Multiplicative string hash using Numba.

    Args:
        data: UTF-8 bytes of the fact as a uint8 array
        buckets: Number of buckets in the table

    Returns:
        Bucket number in [0, buckets)
    """
    h = np.uint64(0)
    for i in range(data.shape[0]):
        h = h * np.uint64(31) + np.uint64(data[i])
    return h % buckets


def bucket_for(fact: str, buckets: int = DEFAULT_BUCKETS) -> int:
    """Bucket number of a fact in a table of ``buckets`` slots."""
    data = np.frombuffer(fact.encode("utf-8"), dtype=np.uint8)
    return int(_polynomial_hash(data, np.uint64(buckets)))


class MembershipIndex:
    """
    Hash set over fact strings.

    Answers "is this exact fact already known?" without scanning the fact
    sequence. It is a derived structure: ``rebuild`` makes it mirror a fact
    sequence exactly; between rebuilds only ``insert`` keeps it in step.
    There is no single-entry removal.
    """

    def __init__(self, config: Optional[IndexConfig] = None):
        self.config = config or IndexConfig()
        self.logger = logging.getLogger(__name__)

        self._buckets: List[Optional[List[str]]] = [None] * self.config.buckets
        self._size = 0

    @property
    def buckets(self) -> int:
        return self.config.buckets

    def insert(self, fact: str) -> None:
        """
        Add a fact; inserting a known fact is a no-op.

        A ``MemoryError`` raised while growing a chain propagates to the
        caller untouched.
        """
        slot = bucket_for(fact, self.config.buckets)
        chain = self._buckets[slot]
        if chain is None:
            self._buckets[slot] = [fact]
            self._size += 1
            return
        for entry in chain:
            if entry == fact:
                return
        chain.append(fact)
        self._size += 1

    def contains(self, fact: str) -> bool:
        """Exact membership test."""
        chain = self._buckets[bucket_for(fact, self.config.buckets)]
        if chain is None:
            return False
        for entry in chain:
            if entry == fact:
                return True
        return False

    def clear(self) -> None:
        """Drop every entry and every chain."""
        self._buckets = [None] * self.config.buckets
        self._size = 0

    def rebuild(self, facts: Optional[Iterable[str]]) -> 'MembershipIndex':
        """
        Clear, then insert every fact in sequence order.

        Args:
            facts: Fact sequence snapshot; None is treated as empty

        Returns:
            This index, for chaining
        """
        self.clear()
        if facts is not None:
            for fact in facts:
                self.insert(fact)
        self.logger.debug(f"Membership index rebuilt with {self._size} facts")
        return self

    @property
    def load_factor(self) -> float:
        return self._size / self.config.buckets

    def get_stats(self) -> Dict[str, Any]:
        """Bucket occupancy statistics."""
        lengths = np.array([len(chain) if chain else 0 for chain in self._buckets],
                           dtype=np.int64)
        used = int(np.count_nonzero(lengths))
        return {
            'size': self._size,
            'buckets': self.config.buckets,
            'used_buckets': used,
            'load_factor': self.load_factor,
            'max_chain': int(lengths.max()) if lengths.size else 0,
            'mean_chain': float(lengths[lengths > 0].mean()) if used else 0.0,
        }

    def __contains__(self, fact: object) -> bool:
        return isinstance(fact, str) and self.contains(fact)

    def __len__(self) -> int:
        return self._size

    def __iter__(self) -> Iterator[str]:
        for chain in self._buckets:
            if chain:
                yield from chain


def rebuild_index(facts: Optional[Iterable[str]],
                  config: Optional[IndexConfig] = None) -> MembershipIndex:
    """Build a fresh index mirroring ``facts``."""
    return MembershipIndex(config).rebuild(facts)
