"""
Unit tests for the Fixpoint Inference Engine

Tests:
- Premise satisfaction
- Fixpoint driver behaviour (chaining, convergence, deduplication)
- Pass guard, cancellation and resource exhaustion
- Stale membership index
- Engine configuration
"""

import itertools
import threading

import pytest

from knowledge.facts import FactSequence
from knowledge.rules import Rule, RuleBase
from reasoning.engine import (
    InferenceEngine, EngineConfig, EngineState, InferenceResult,
    InferenceError, ResourceExhaustedError, ConvergenceError, InferenceCancelled,
    all_premises_true, run_inference, load_engine_config
)
from reasoning.index import MembershipIndex, rebuild_index


def make_rules(*rules):
    base = RuleBase()
    for premises, conclusion in rules:
        base.append(Rule(list(premises), conclusion))
    return base


def quiet_engine(**kwargs):
    return InferenceEngine(EngineConfig(log_deductions=False, **kwargs))


class TestPremiseSatisfaction:
    """Test the premise satisfaction predicate."""

    def test_all_premises_present(self):
        """Test a rule whose premises are all known."""
        facts = FactSequence(["A", "B", "C"])
        assert all_premises_true(Rule(["A", "B"], "D"), facts)

    def test_missing_premise(self):
        """Test a rule with one unknown premise."""
        facts = FactSequence(["A"])
        assert not all_premises_true(Rule(["A", "B"], "D"), facts)

    def test_no_premises_is_vacuously_true(self):
        """Test that an empty premise list is satisfied."""
        assert all_premises_true(Rule([], "X"), FactSequence())

    def test_exact_match_only(self):
        """Test that no case folding or trimming is applied."""
        facts = FactSequence(["rain"])
        assert not all_premises_true(Rule(["Rain"], "wet"), facts)
        assert not all_premises_true(Rule(["rain "], "wet"), facts)

    def test_premise_order_independence(self):
        """Test that permuting premises does not change the verdict."""
        facts = FactSequence(["A", "C"])
        for premises in itertools.permutations(["A", "B", "C"]):
            assert not all_premises_true(Rule(list(premises), "D"), facts)
        facts.append("B")
        for premises in itertools.permutations(["A", "B", "C"]):
            assert all_premises_true(Rule(list(premises), "D"), facts)

    def test_checks_facts_not_index(self):
        """Test that premises are checked against the fact sequence."""
        facts = FactSequence()
        index = MembershipIndex()
        index.insert("A")
        assert not all_premises_true(Rule(["A"], "B"), facts)


class TestInferenceEngine:
    """Test the fixpoint driver."""

    def setup_method(self):
        """Set up test fixtures."""
        self.engine = quiet_engine()

    def run(self, rules, facts):
        index = rebuild_index(facts)
        return self.engine.run(rules, facts, index), index

    def test_single_rule(self):
        """Test IF A THEN B with A known."""
        facts = FactSequence(["A"])
        result, index = self.run(make_rules((["A"], "B")), facts)

        assert facts.to_list() == ["A", "B"]
        assert result.derived == ["B"]
        assert index.contains("B")
        assert result.converged

    def test_vacuous_rule_fires(self):
        """Test that a premise-free rule fires on an empty fact base."""
        facts = FactSequence()
        result, _ = self.run(make_rules(([], "X")), facts)

        assert facts.contains("X")
        assert result.derived == ["X"]

    def test_within_pass_chaining(self):
        """Test that a fact derived earlier in a pass feeds later rules."""
        facts = FactSequence(["A"])
        result, _ = self.run(make_rules((["A"], "B"), (["B"], "C")), facts)

        assert facts.to_list() == ["A", "B", "C"]
        # Both derived in the first pass, second pass finds nothing
        assert result.passes == 2

    def test_reverse_order_needs_more_passes(self):
        """Test that rule order changes pass count but not the fixpoint."""
        facts = FactSequence(["A"])
        result, _ = self.run(make_rules((["B"], "C"), (["A"], "B")), facts)

        assert set(facts) == {"A", "B", "C"}
        assert result.derived == ["B", "C"]
        assert result.passes == 3

    def test_no_duplicate_insertion(self):
        """Test that a known conclusion is neither appended nor signalled."""
        facts = FactSequence(["A", "B"])
        index = rebuild_index(facts)
        seen = []

        result = self.engine.run(make_rules((["A"], "B")), facts, index,
                                 on_deduction=seen.append)

        assert facts.to_list() == ["A", "B"]
        assert seen == []
        assert result.derived == []
        assert result.passes == 1

    def test_rule_without_conclusion_is_skipped(self):
        """Test that rules lacking a conclusion never fire."""
        rules = make_rules(([], None), (["A"], ""))
        facts = FactSequence(["A"])
        result, _ = self.run(rules, facts)

        assert facts.to_list() == ["A"]
        assert result.rules_evaluated == 0

    def test_unsatisfied_rule(self):
        """Test that a rule with a missing premise does not fire."""
        facts = FactSequence(["A"])
        result, _ = self.run(make_rules((["A", "Z"], "B")), facts)
        assert facts.to_list() == ["A"]
        assert result.derived == []

    def test_idempotent_convergence(self):
        """Test that a second run on a converged state adds nothing."""
        rules = make_rules((["A"], "B"), (["B"], "C"), (["C", "A"], "D"))
        facts = FactSequence(["A"])
        index = rebuild_index(facts)

        self.engine.run(rules, facts, index)
        snapshot = facts.to_list()
        second = self.engine.run(rules, facts, index)

        assert second.derived == []
        assert second.passes == 1
        assert facts.to_list() == snapshot

    def test_monotonicity(self):
        """Test that the fact base never shrinks during a run."""
        rules = make_rules((["A"], "B"), (["B"], "C"), ([], "A"))
        facts = FactSequence(["A", "Q"])
        sizes = [len(set(facts))]
        index = rebuild_index(facts)

        self.engine.run(rules, facts, index,
                        on_deduction=lambda fact: sizes.append(len(set(facts))))

        assert sizes == sorted(sizes)
        assert {"A", "Q"} <= set(facts)

    def test_termination_bound(self):
        """Test at most N+1 passes for N rules in the worst order."""
        n = 12
        # X0 => X1, X1 => X2, ... listed backwards so each pass adds one fact
        rules = make_rules(*[([f"X{i}"], f"X{i + 1}") for i in reversed(range(n))])
        facts = FactSequence(["X0"])
        result, _ = self.run(rules, facts)

        assert len(result.derived) == n
        assert result.passes == n + 1
        assert result.passes <= len(rules) + 1

    def test_deduction_callback_order(self):
        """Test that deductions are reported in derivation order."""
        seen = []
        facts = FactSequence(["A"])
        index = rebuild_index(facts)
        self.engine.run(make_rules((["A"], "B"), (["A"], "C")), facts, index,
                        on_deduction=seen.append)
        assert seen == ["B", "C"]

    def test_stats_accumulate(self):
        """Test engine statistics."""
        facts = FactSequence(["A"])
        self.run(make_rules((["A"], "B")), facts)

        stats = self.engine.get_performance_stats()
        assert stats['runs'] == 1
        assert stats['deductions'] == 1
        assert stats['passes'] == 2

        self.engine.reset_stats()
        assert self.engine.get_performance_stats()['runs'] == 0

    def test_state_after_run(self):
        """Test that the engine ends converged."""
        facts = FactSequence(["A"])
        self.run(make_rules((["A"], "B")), facts)
        assert self.engine.state is EngineState.CONVERGED

    def test_deduction_logged(self, caplog):
        """Test that deductions are logged when enabled."""
        engine = InferenceEngine(EngineConfig(log_deductions=True))
        facts = FactSequence(["A"])
        with caplog.at_level("INFO", logger="reasoning.engine"):
            engine.run(make_rules((["A"], "B")), facts, rebuild_index(facts))
        assert ">> New deduction: B" in caplog.text

    def test_run_inference_function(self):
        """Test the module-level entry point."""
        facts = FactSequence(["A"])
        index = rebuild_index(facts)
        result = run_inference(make_rules((["A"], "B")), facts, index,
                               config=EngineConfig(log_deductions=False))
        assert isinstance(result, InferenceResult)
        assert facts.to_list() == ["A", "B"]


class TestGuards:
    """Test pass guard, cancellation and fatal errors."""

    def test_pass_limit_exceeded(self):
        """Test that an explicit pass limit raises when reached."""
        engine = quiet_engine(max_passes=1)
        facts = FactSequence(["A"])
        with pytest.raises(ConvergenceError):
            engine.run(make_rules((["A"], "B")), facts, rebuild_index(facts))

    def test_pass_limit_sufficient(self):
        """Test that a sufficient pass limit does not interfere."""
        engine = quiet_engine(max_passes=2)
        facts = FactSequence(["A"])
        result = engine.run(make_rules((["A"], "B")), facts, rebuild_index(facts))
        assert result.converged

    def test_empty_rule_base(self):
        """Test that an empty rule base converges in one pass."""
        facts = FactSequence(["A"])
        result = quiet_engine().run(RuleBase(), facts, rebuild_index(facts))
        assert result.passes == 1
        assert result.derived == []

    def test_cancelled_before_start(self):
        """Test that a set cancel event stops the run."""
        event = threading.Event()
        event.set()
        facts = FactSequence(["A"])
        with pytest.raises(InferenceCancelled):
            quiet_engine().run(make_rules((["A"], "B")), facts, rebuild_index(facts),
                               cancel_event=event)
        assert facts.to_list() == ["A"]

    def test_cancelled_between_passes(self):
        """Test that cancellation is honoured at the next pass boundary."""
        event = threading.Event()
        rules = make_rules((["B"], "C"), (["A"], "B"))
        facts = FactSequence(["A"])

        with pytest.raises(InferenceCancelled):
            quiet_engine().run(rules, facts, rebuild_index(facts),
                               on_deduction=lambda fact: event.set(),
                               cancel_event=event)
        # The first pass completed, the second never started
        assert facts.to_list() == ["A", "B"]

    def test_memory_error_is_fatal(self, monkeypatch):
        """Test that running out of memory aborts with a domain error."""
        facts = FactSequence(["A"])
        index = rebuild_index(facts)

        def exhausted(fact):
            raise MemoryError()

        monkeypatch.setattr(index, "insert", exhausted)
        with pytest.raises(ResourceExhaustedError) as excinfo:
            quiet_engine().run(make_rules((["A"], "B")), facts, index)

        assert isinstance(excinfo.value, InferenceError)
        assert isinstance(excinfo.value.__cause__, MemoryError)
        # No rollback: the fact made it in, the index did not
        assert facts.contains("B")
        assert not index.contains("B")


class TestStaleIndex:
    """Document behaviour when the index no longer mirrors the facts."""

    def setup_method(self):
        """Set up test fixtures."""
        self.engine = quiet_engine()
        self.rules = make_rules((["A"], "B"))

    def test_removed_fact_not_rederived_without_rebuild(self):
        """Test that a fact removed behind the index's back is suppressed."""
        facts = FactSequence(["A"])
        index = rebuild_index(facts)
        self.engine.run(self.rules, facts, index)

        facts.remove("B")
        result = self.engine.run(self.rules, facts, index)

        assert result.derived == []
        assert not facts.contains("B")

    def test_removed_fact_rederived_after_rebuild(self):
        """Test that rebuilding restores correct behaviour."""
        facts = FactSequence(["A"])
        index = rebuild_index(facts)
        self.engine.run(self.rules, facts, index)

        facts.remove("B")
        index.rebuild(facts)
        result = self.engine.run(self.rules, facts, index)

        assert result.derived == ["B"]
        assert facts.to_list() == ["A", "B"]

    def test_unindexed_fact_is_duplicated(self):
        """Test that a fact missing from the index gets appended again."""
        facts = FactSequence(["A", "B"])
        index = MembershipIndex()

        result = self.engine.run(self.rules, facts, index)

        assert result.converged
        assert facts.to_list() == ["A", "B", "B"]
        assert result.passes == 2


class TestEngineConfig:
    """Test engine configuration."""

    def test_default_config(self):
        """Test default configuration values."""
        config = EngineConfig()
        assert config.max_passes is None
        assert config.index_buckets == 1000
        assert config.log_deductions is True
        assert config.index_policy == "eager"
        assert config.index_config().buckets == 1000

    def test_invalid_values(self):
        """Test configuration validation."""
        with pytest.raises(ValueError):
            EngineConfig(max_passes=0)
        with pytest.raises(ValueError):
            EngineConfig(index_policy="lazy")

    def test_from_dict_rejects_unknown_keys(self):
        """Test that typos in config keys are reported."""
        with pytest.raises(ValueError, match="max_pass"):
            EngineConfig.from_dict({'max_pass': 3})

    def test_round_trip_dict(self):
        """Test dictionary conversion."""
        config = EngineConfig(max_passes=7, index_buckets=64, index_policy="incremental")
        assert EngineConfig.from_dict(config.to_dict()) == config

    def test_load_yaml(self, tmp_path):
        """Test loading settings nested under an engine key."""
        path = tmp_path / "engine.yaml"
        path.write_text("engine:\n  max_passes: 5\n  index_buckets: 31\n", encoding="utf-8")

        config = load_engine_config(path)
        assert config.max_passes == 5
        assert config.index_buckets == 31

    def test_load_flat_and_empty_yaml(self, tmp_path):
        """Test top-level settings and empty files."""
        flat = tmp_path / "flat.yaml"
        flat.write_text("index_policy: incremental\n", encoding="utf-8")
        assert load_engine_config(flat).index_policy == "incremental"

        empty = tmp_path / "empty.yaml"
        empty.write_text("", encoding="utf-8")
        assert load_engine_config(empty) == EngineConfig()

    def test_load_non_mapping(self, tmp_path):
        """Test that a YAML list is rejected."""
        path = tmp_path / "bad.yaml"
        path.write_text("- 1\n- 2\n", encoding="utf-8")
        with pytest.raises(ValueError):
            load_engine_config(path)
