"""
Rules and Rule Base for the Fixpoint engine

This module implements:
- Rule: ordered premises with an optional conclusion
- Rule text parsing ("A, B => C")
- Rule Base: ordered, deep-copying rule container
"""

import copy
import re
from dataclasses import dataclass, field
from typing import Iterator, List, Optional, Set


class RuleSyntaxError(Exception):
    """Raised when rule text cannot be parsed."""
    pass


# Keywords are matched in upper case only so fact text may contain "and"
_ARROW_PATTERN = re.compile(r"=>|->|\bTHEN\b")
_PREMISE_SPLIT = re.compile(r",|&|\bAND\b")


@dataclass
class Rule:
    """Represents an IF-premises/THEN-conclusion rule."""
    premises: List[str] = field(default_factory=list)
    conclusion: Optional[str] = None

    def __post_init__(self):
        # Copy so the rule never aliases caller-owned containers
        self.premises = list(self.premises)

    def __str__(self) -> str:
        premise_str = " AND ".join(self.premises)
        conclusion_str = self.conclusion if self.conclusion is not None else "(none)"
        return f"IF {premise_str} THEN {conclusion_str}"

    def add_premise(self, premise: str) -> None:
        """Append a premise to the rule."""
        self.premises.append(premise)

    def remove_premise(self, premise: str) -> bool:
        """Remove the first occurrence of a premise."""
        try:
            self.premises.remove(premise)
        except ValueError:
            return False
        return True

    def has_premises(self) -> bool:
        return len(self.premises) > 0

    def set_conclusion(self, conclusion: str) -> None:
        """Define or replace the conclusion."""
        self.conclusion = conclusion

    def can_fire(self) -> bool:
        """A rule without a (non-empty) conclusion never fires."""
        return bool(self.conclusion)

    def copy(self) -> 'Rule':
        return copy.deepcopy(self)

    @classmethod
    def parse(cls, text: str) -> 'Rule':
        """
        Parse a rule written as ``A, B => C``.

        ``->`` and ``THEN`` are accepted as arrows; premises may be
        separated by commas, ``&`` or ``AND``. A leading ``IF`` is
        ignored. An empty left side gives a rule with no premises.

        Args:
            text: Rule text

        Returns:
            Parsed rule

        Raises:
            RuleSyntaxError: If the arrow or the conclusion is missing
        """
        parts = _ARROW_PATTERN.split(text)
        if len(parts) != 2:
            raise RuleSyntaxError(f"Expected exactly one implication arrow in rule: {text!r}")

        left, right = parts
        left = re.sub(r"^\s*IF\b", "", left)
        conclusion = right.strip()
        if not conclusion:
            raise RuleSyntaxError(f"Rule has an empty conclusion: {text!r}")

        premises = [p.strip() for p in _PREMISE_SPLIT.split(left)]
        premises = [p for p in premises if p]
        return cls(premises=premises, conclusion=conclusion)


class RuleBase:
    """
    Ordered collection of rules.

    Rules are deep-copied on append so the base never shares data with
    the caller. Order only decides the iteration order within a pass.
    """

    def __init__(self):
        self._rules: List[Rule] = []

    def append(self, rule: Rule) -> None:
        """Append a deep copy of a rule."""
        self._rules.append(rule.copy())

    def get(self, index: int) -> Optional[Rule]:
        if 0 <= index < len(self._rules):
            return self._rules[index]
        return None

    def head(self) -> Optional[Rule]:
        return self._rules[0] if self._rules else None

    def remove_at(self, index: int) -> bool:
        """
        Remove the rule at a position.

        Returns:
            True if removed, False if the index is out of range
        """
        if index < 0 or index >= len(self._rules):
            return False
        del self._rules[index]
        return True

    def remove_premise(self, index: int, premise: str) -> bool:
        """Remove a premise from the stored rule at ``index``."""
        rule = self.get(index)
        if rule is None:
            return False
        return rule.remove_premise(premise)

    def clear(self) -> None:
        self._rules.clear()

    def is_empty(self) -> bool:
        return not self._rules

    def conclusions(self) -> Set[str]:
        """Distinct conclusions across all rules that can fire."""
        return {rule.conclusion for rule in self._rules if rule.can_fire()}

    def describe(self) -> List[str]:
        return [f"[{i}] {rule}" for i, rule in enumerate(self._rules)]

    def __len__(self) -> int:
        return len(self._rules)

    def __iter__(self) -> Iterator[Rule]:
        return iter(self._rules)
