"""
Fixpoint Inference Engine
Forward chaining over string facts

This module implements:
- Premise satisfaction test against the live fact sequence
- Fixpoint driver (repeat full passes until one adds nothing)
- Engine configuration with YAML loading
- Pass guard and cooperative cancellation between passes

Termination: the engine never retracts facts and every fact it adds is
the conclusion of some rule, so the facts it can add are bounded by the
distinct conclusions of the rule base. Each non-final pass adds at least
one of them, hence at most ``len(rules.conclusions()) + 1`` passes.
"""

import logging
import threading
import time
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Union

import yaml

from knowledge.facts import FactSequence
from knowledge.rules import Rule, RuleBase
from .index import DEFAULT_BUCKETS, IndexConfig, MembershipIndex


logger = logging.getLogger(__name__)

DeductionCallback = Callable[[str], None]


class InferenceError(Exception):
    """Raised when an inference run cannot complete."""
    pass


class ResourceExhaustedError(InferenceError):
    """Raised when memory runs out while recording a deduction."""
    pass


class ConvergenceError(InferenceError):
    """Raised when a run exceeds its pass limit without converging."""
    pass


class InferenceCancelled(InferenceError):
    """Raised when a run is cancelled between passes."""
    pass


class EngineState(Enum):
    """Implicit states of the fixpoint driver."""
    SCANNING = "scanning"
    CONVERGED = "converged"


@dataclass
class EngineConfig:
    """Configuration for the inference engine."""
    # None derives the bound from the rule base
    max_passes: Optional[int] = None
    index_buckets: int = DEFAULT_BUCKETS
    log_deductions: bool = True
    # "eager" or "incremental", see knowledge.session.IndexPolicy
    index_policy: str = "eager"

    def __post_init__(self):
        if self.max_passes is not None and self.max_passes < 1:
            raise ValueError(f"max_passes must be positive, got {self.max_passes}")
        if self.index_policy not in ("eager", "incremental"):
            raise ValueError(f"Unknown index policy: {self.index_policy}")

    def index_config(self) -> IndexConfig:
        return IndexConfig(buckets=self.index_buckets)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'EngineConfig':
        """Build a config from a mapping, rejecting unknown keys."""
        known = set(cls.__dataclass_fields__)
        unknown = set(data) - known
        if unknown:
            raise ValueError(f"Unknown engine config keys: {', '.join(sorted(unknown))}")
        return cls(**data)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'max_passes': self.max_passes,
            'index_buckets': self.index_buckets,
            'log_deductions': self.log_deductions,
            'index_policy': self.index_policy,
        }


def load_engine_config(path: Union[str, Path]) -> EngineConfig:
    """
    Load engine configuration from a YAML file.

    The file holds either the settings at top level or under an
    ``engine`` key. An empty file gives the defaults.
    """
    with open(path, "r", encoding="utf-8") as fh:
        data = yaml.safe_load(fh) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Engine config must be a mapping: {path}")
    if 'engine' in data:
        data = data['engine'] or {}
    return EngineConfig.from_dict(data)


@dataclass
class InferenceResult:
    """Outcome of one inference run."""
    derived: List[str] = field(default_factory=list)
    passes: int = 0
    rules_evaluated: int = 0
    elapsed: float = 0.0
    state: EngineState = EngineState.SCANNING

    @property
    def converged(self) -> bool:
        return self.state is EngineState.CONVERGED


def all_premises_true(rule: Rule, facts: FactSequence) -> bool:
    """
    Check every premise of ``rule`` against the fact sequence.

    Uses the sequence's own linear containment, not the membership
    index. No premises means the rule is satisfied.
    """
    for premise in rule.premises:
        if not facts.contains(premise):
            return False
    return True


class InferenceEngine:
    """
    Forward-chaining fixpoint driver.

    Each pass walks the rule base in order. A rule fires when it has a
    conclusion, all its premises are in the current fact sequence and the
    conclusion is not in the membership index. Facts added earlier in a
    pass are visible to later rules of the same pass. The run ends after
    the first pass that adds nothing.

    The caller must hand in an index that mirrors ``facts``; the engine
    does not detect a stale index.
    """

    def __init__(self, config: Optional[EngineConfig] = None):
        self.config = config or EngineConfig()
        self.logger = logging.getLogger(__name__)

        self.state = EngineState.CONVERGED

        # Performance tracking
        self.stats = {
            'runs': 0,
            'passes': 0,
            'deductions': 0,
            'rules_evaluated': 0,
        }

        self.lock = threading.RLock()

    def run(self,
            rules: RuleBase,
            facts: FactSequence,
            index: MembershipIndex,
            on_deduction: Optional[DeductionCallback] = None,
            cancel_event: Optional[threading.Event] = None) -> InferenceResult:
        """
        Run forward chaining to the fixpoint.

        Args:
            rules: Rule base, read only during the run
            facts: Fact sequence, extended in place
            index: Membership index mirroring ``facts``, extended in place
            on_deduction: Called with each newly derived fact
            cancel_event: Checked between passes

        Returns:
            Result with the derived facts in derivation order

        Raises:
            ResourceExhaustedError: If memory runs out mid-run
            ConvergenceError: If the pass limit is exceeded
            InferenceCancelled: If ``cancel_event`` is set
        """
        with self.lock:
            start_time = time.perf_counter()
            result = InferenceResult()
            max_passes = self._pass_limit(rules)

            self.state = EngineState.SCANNING
            progress = True
            while progress:
                if cancel_event is not None and cancel_event.is_set():
                    self.logger.warning(f"Inference cancelled after {result.passes} passes")
                    raise InferenceCancelled(f"Inference cancelled after {result.passes} passes")
                if result.passes >= max_passes:
                    self.logger.error(f"Inference did not converge within {max_passes} passes")
                    raise ConvergenceError(f"Inference did not converge within {max_passes} passes")

                result.passes += 1
                progress = self._run_pass(rules, facts, index, result, on_deduction)

            self.state = EngineState.CONVERGED
            result.state = EngineState.CONVERGED
            result.elapsed = time.perf_counter() - start_time

            self.stats['runs'] += 1
            self.stats['passes'] += result.passes
            self.stats['deductions'] += len(result.derived)
            self.stats['rules_evaluated'] += result.rules_evaluated

            self.logger.info(f"Inference finished: {len(result.derived)} new facts "
                             f"in {result.passes} passes")
            return result

    def _pass_limit(self, rules: RuleBase) -> int:
        if self.config.max_passes is not None:
            return self.config.max_passes
        return len(rules.conclusions()) + 1

    def _run_pass(self,
                  rules: RuleBase,
                  facts: FactSequence,
                  index: MembershipIndex,
                  result: InferenceResult,
                  on_deduction: Optional[DeductionCallback]) -> bool:
        """One ordered walk over the rule base; True if anything was added."""
        progress = False
        for rule in rules:
            if not rule.can_fire():
                continue
            result.rules_evaluated += 1

            conclusion = rule.conclusion
            if all_premises_true(rule, facts) and not index.contains(conclusion):
                try:
                    facts.append(conclusion)
                    index.insert(conclusion)
                except MemoryError as e:
                    self.logger.error(f"Out of memory while recording {conclusion!r}")
                    raise ResourceExhaustedError(
                        f"Out of memory while recording {conclusion!r}") from e

                result.derived.append(conclusion)
                progress = True

                if self.config.log_deductions:
                    self.logger.info(f">> New deduction: {conclusion}")
                if on_deduction is not None:
                    on_deduction(conclusion)
        return progress

    def get_performance_stats(self) -> Dict[str, Any]:
        with self.lock:
            return self.stats.copy()

    def reset_stats(self) -> None:
        with self.lock:
            self.stats = {
                'runs': 0,
                'passes': 0,
                'deductions': 0,
                'rules_evaluated': 0,
            }


def run_inference(rules: RuleBase,
                  facts: FactSequence,
                  index: MembershipIndex,
                  on_deduction: Optional[DeductionCallback] = None,
                  config: Optional[EngineConfig] = None) -> InferenceResult:
    """Run a one-off engine over ``rules``, ``facts`` and ``index``."""
    return InferenceEngine(config).run(rules, facts, index, on_deduction=on_deduction)
