"""
Fixpoint Knowledge Module
Fact and rule containers for the forward-chaining engine

This module contains the knowledge components:
- Fact Sequence: ordered collection of known facts
- Rule / Rule Base: IF-premises/THEN-conclusion rules in insertion order
"""

__version__ = "1.0.0"
__author__ = "Fixpoint Development Team"

from .facts import FactSequence
from .rules import Rule, RuleBase, RuleSyntaxError

__all__ = [
    "FactSequence",
    "Rule",
    "RuleBase",
    "RuleSyntaxError",
]
