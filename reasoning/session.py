"""
Knowledge Session
Owns the rule base, the fact sequence and the membership index

The session is the only writer of its facts and index, so the index
mirrors the facts whenever an inference run starts. Two index policies:
- EAGER_REBUILD: rebuild the whole index before every run
- INCREMENTAL: insert on add, rebuild on removal
"""

import logging
import threading
from enum import Enum
from typing import List, Optional, Tuple

from knowledge.facts import FactSequence
from knowledge.rules import Rule, RuleBase
from utils.metrics import InferenceMetrics, MetricsCollector
from .engine import (
    DeductionCallback, EngineConfig, EngineState, InferenceEngine, InferenceResult
)
from .index import MembershipIndex


class IndexPolicy(Enum):
    """How the session keeps the membership index in step with the facts."""
    EAGER_REBUILD = "eager"
    INCREMENTAL = "incremental"


class KnowledgeSession:
    """
    Rules, facts and membership index behind one set of mutations.

    Facts enter through ``add_fact`` (deduplicated) and leave through
    ``remove_fact`` or ``clear_facts``; each keeps the index consistent
    under the configured policy before the next ``infer``.
    """

    def __init__(self, config: Optional[EngineConfig] = None):
        self.config = config or EngineConfig()
        self.logger = logging.getLogger(__name__)
        self.policy = IndexPolicy(self.config.index_policy)

        self._rules = RuleBase()
        self._facts = FactSequence()
        self._index = MembershipIndex(self.config.index_config())
        self.engine = InferenceEngine(self.config)
        self.metrics = MetricsCollector()

        self.lock = threading.RLock()

    @property
    def rules(self) -> RuleBase:
        return self._rules

    @property
    def facts(self) -> Tuple[str, ...]:
        """Snapshot of the facts in insertion order."""
        return tuple(self._facts)

    @property
    def index(self) -> MembershipIndex:
        return self._index

    # Rules

    def add_rule(self, rule: Rule) -> None:
        with self.lock:
            self._rules.append(rule)

    def remove_rule(self, index: int) -> bool:
        with self.lock:
            return self._rules.remove_at(index)

    def remove_premise(self, index: int, premise: str) -> bool:
        with self.lock:
            return self._rules.remove_premise(index, premise)

    def clear_rules(self) -> None:
        with self.lock:
            self._rules.clear()

    # Facts

    def add_fact(self, fact: str) -> bool:
        """
        Add a fact unless it is already known.

        Returns:
            True if the fact was added
        """
        with self.lock:
            if not self._facts.add(fact):
                return False
            self._index.insert(fact)
            return True

    def remove_fact(self, fact: str) -> bool:
        """
        Remove a fact.

        Under INCREMENTAL the index is rebuilt at once, since it has no
        single-entry removal. Under EAGER_REBUILD the next ``infer``
        rebuilds it.
        """
        with self.lock:
            if not self._facts.remove(fact):
                return False
            if self.policy is IndexPolicy.INCREMENTAL:
                self._index.rebuild(self._facts)
            return True

    def clear_facts(self) -> None:
        with self.lock:
            self._facts.clear()
            self._index.clear()

    def has_fact(self, fact: str) -> bool:
        return self._facts.contains(fact)

    def is_consistent(self) -> bool:
        """True when the index holds exactly the distinct facts."""
        with self.lock:
            return set(self._index) == set(self._facts)

    # Inference

    def infer(self,
              on_deduction: Optional[DeductionCallback] = None,
              cancel_event: Optional[threading.Event] = None) -> InferenceResult:
        """
        Run forward chaining over the session's rules and facts.

        An empty rule base is reported and yields an empty result.
        """
        with self.lock:
            if self._rules.is_empty():
                self.logger.warning("Rule base is empty, nothing to infer")
                return InferenceResult(state=EngineState.CONVERGED)

            if self.policy is IndexPolicy.EAGER_REBUILD:
                self._index.rebuild(self._facts)

            result = self.engine.run(self._rules, self._facts, self._index,
                                     on_deduction=on_deduction,
                                     cancel_event=cancel_event)
            self.metrics.record(InferenceMetrics.from_result(result, len(self._facts)))
            return result

    def describe_rules(self) -> List[str]:
        return self._rules.describe()

    def describe_facts(self, prefix: str = "- ") -> List[str]:
        return self._facts.describe(prefix)
