"""
Fact Sequence for the Fixpoint engine

This module implements the ordered fact base:
- Insert at end (amortised O(1))
- Linear containment check on exact text
- Remove first occurrence, clear
"""

from typing import Iterable, Iterator, List, Optional


class FactSequence:
    """
    Ordered collection of fact strings.

    Facts are compared by exact content, no normalisation is applied.
    ``append`` does not deduplicate; callers that need uniqueness use
    ``add``. Containment is a linear scan on purpose: premise checks
    consult this ground truth rather than the membership index.
    """

    def __init__(self, facts: Optional[Iterable[str]] = None):
        self._items: List[str] = []
        if facts is not None:
            for fact in facts:
                self.append(fact)

    def append(self, fact: str) -> None:
        """Insert a fact at the end of the sequence."""
        if not isinstance(fact, str):
            raise TypeError(f"Facts must be strings, got {type(fact).__name__}")
        self._items.append(fact)

    def add(self, fact: str) -> bool:
        """
        Insert a fact only when it is not already present.

        Args:
            fact: Fact text

        Returns:
            True if the fact was inserted, False if it was already known
        """
        if self.contains(fact):
            return False
        self.append(fact)
        return True

    def contains(self, fact: str) -> bool:
        """Linear exact-match search."""
        for item in self._items:
            if item == fact:
                return True
        return False

    def remove(self, fact: str) -> bool:
        """
        Remove the first occurrence of a fact.

        Returns:
            True if a fact was removed, False if it was not found
        """
        for position, item in enumerate(self._items):
            if item == fact:
                del self._items[position]
                return True
        return False

    def clear(self) -> None:
        self._items.clear()

    def is_empty(self) -> bool:
        return not self._items

    def head(self) -> Optional[str]:
        """First fact, or None for an empty sequence."""
        return self._items[0] if self._items else None

    def to_list(self) -> List[str]:
        return list(self._items)

    def describe(self, prefix: str = "- ") -> List[str]:
        """Listing lines, one per fact."""
        return [f"{prefix}{fact}" for fact in self._items]

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[str]:
        return iter(self._items)

    def __contains__(self, fact: object) -> bool:
        return isinstance(fact, str) and self.contains(fact)

    def __repr__(self) -> str:
        return f"FactSequence({self._items!r})"
