"""
Self-check harness for the Fixpoint engine

Runs smoke checks over the fact sequence, rules, membership index and
inference engine, printing one ``[TEST] name OK|FAIL`` line per check.
"""

from dataclasses import dataclass, field
from typing import Callable, List, Optional, TextIO
import sys

from knowledge.facts import FactSequence
from knowledge.rules import Rule, RuleBase
from .engine import EngineConfig, InferenceEngine
from .index import MembershipIndex


@dataclass
class SelfCheckReport:
    """Outcome of a self-check run."""
    passed: int = 0
    failures: List[str] = field(default_factory=list)

    @property
    def failed(self) -> int:
        return len(self.failures)

    @property
    def ok(self) -> bool:
        return not self.failures


class SelfCheck:
    """Prints and counts named boolean checks."""

    def __init__(self, out: Optional[TextIO] = None):
        self.out = out or sys.stdout
        self.report = SelfCheckReport()

    def check(self, name: str, ok: bool) -> None:
        status = "OK" if ok else "FAIL"
        print(f"[TEST] {name:<40} {status}", file=self.out)
        if ok:
            self.report.passed += 1
        else:
            self.report.failures.append(name)

    def section(self, title: str) -> None:
        print(f"\n--- {title} ---", file=self.out)

    def check_facts(self) -> None:
        self.section("Fact sequence")
        facts = FactSequence()
        self.check("new sequence is empty", facts.is_empty())
        self.check("new sequence has size 0", len(facts) == 0)

        facts.append("A")
        facts.append("B")
        self.check("append -> not empty", not facts.is_empty())
        self.check("append -> size 2", len(facts) == 2)
        self.check("append -> head is A", facts.head() == "A")
        self.check("contains A", facts.contains("A"))
        self.check("does not contain Z", not facts.contains("Z"))
        self.check("remove A", facts.remove("A"))
        self.check("remove -> size 1", len(facts) == 1)

        facts.clear()
        self.check("clear -> empty", facts.is_empty())

    def check_rule(self) -> None:
        self.section("Rule")
        rule = Rule()
        self.check("new rule has no premises", not rule.has_premises())
        self.check("new rule has no conclusion", rule.conclusion is None)

        rule.add_premise("A")
        rule.add_premise("B")
        self.check("add premises", rule.has_premises())

        rule.set_conclusion("C")
        self.check("set conclusion", rule.conclusion == "C")
        self.check("remove premise B", rule.remove_premise("B"))
        self.check("remove missing premise Z", not rule.remove_premise("Z"))

    def check_index(self) -> None:
        self.section("Membership index")
        index = MembershipIndex()
        self.check("empty index -> A absent", not index.contains("A"))

        index.insert("A")
        index.insert("B")
        self.check("contains A", index.contains("A"))
        self.check("contains B", index.contains("B"))
        self.check("C absent", not index.contains("C"))

        index.clear()
        self.check("clear -> A absent", not index.contains("A"))

    def check_inference(self) -> None:
        self.section("Inference")
        rules = RuleBase()
        rules.append(Rule(["A"], "B"))
        facts = FactSequence(["A"])
        index = MembershipIndex().rebuild(facts)

        InferenceEngine(EngineConfig(log_deductions=False)).run(rules, facts, index)
        self.check("inference -> B derived", facts.contains("B"))

    def run(self) -> SelfCheckReport:
        print("\n=== SELF CHECK ===", file=self.out)
        steps: List[Callable[[], None]] = [
            self.check_facts,
            self.check_rule,
            self.check_index,
            self.check_inference,
        ]
        for step in steps:
            step()
        print("\n=== END OF SELF CHECK ===", file=self.out)
        print(f"Failed checks: {self.report.failed}", file=self.out)
        return self.report


def run_selfcheck(out: Optional[TextIO] = None) -> SelfCheckReport:
    """Run every self check and return the report."""
    return SelfCheck(out).run()
