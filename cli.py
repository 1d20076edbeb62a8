"""
Fixpoint CLI Interface
Command-line interface for the forward-chaining rule engine

Usage:
    python cli.py interactive
    python cli.py run --rule "A => B" --rule "B => C" --fact A
    python cli.py selfcheck
    python cli.py test --verbose
"""

import argparse
import sys
import os
import logging
from typing import Callable, List, Optional, TextIO

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


def setup_environment():
    """Setup the environment for the rule engine."""
    # Add current directory to Python path
    current_dir = os.path.dirname(os.path.abspath(__file__))
    if current_dir not in sys.path:
        sys.path.insert(0, current_dir)


def load_config(path: Optional[str]):
    """Engine config from ``path``, or the defaults."""
    from reasoning.engine import EngineConfig, load_engine_config

    if path:
        logger.info(f"Loading engine config from {path}")
        return load_engine_config(path)
    return EngineConfig()


MENU = """
=== Inference engine ===
1) Add a rule
2) Add a fact
3) Run inference
4) List rules
5) List facts
6) Remove a rule (index)
7) Remove a fact (name)
8) Remove all rules
9) Remove all facts
10) Remove a premise from a rule
11) Self check
0) Quit"""


class InteractiveShell:
    """
    Menu-driven session over a ``KnowledgeSession``.

    Input and output are injectable so the loop can be driven by tests.
    """

    def __init__(self,
                 session=None,
                 input_fn: Callable[[str], str] = input,
                 out: Optional[TextIO] = None):
        from reasoning.session import KnowledgeSession

        self.session = session or KnowledgeSession()
        self.input_fn = input_fn
        self.out = out or sys.stdout

    def say(self, text: str = "") -> None:
        print(text, file=self.out)

    def read_line(self, prompt: str) -> Optional[str]:
        """Read and trim a line; None at end of input."""
        try:
            return self.input_fn(prompt).strip()
        except EOFError:
            return None

    def read_int(self, prompt: str) -> Optional[int]:
        line = self.read_line(prompt)
        if not line:
            return None
        try:
            return int(line)
        except ValueError:
            return None

    def pause(self) -> None:
        self.read_line("\n(Press Enter to continue)")

    def add_rule(self) -> None:
        from knowledge.rules import Rule

        rule = Rule()
        while True:
            line = self.read_line("Premise (empty to finish): ")
            if line is None:
                return
            if not line:
                break
            rule.add_premise(line)

        while True:
            line = self.read_line("Conclusion (required): ")
            if line is None:
                return
            if line:
                break
            self.say("Empty conclusion.")
        rule.set_conclusion(line)

        self.session.add_rule(rule)
        self.say("Rule added.")

    def add_fact(self) -> None:
        line = self.read_line("Fact: ")
        if not line:
            return
        if self.session.add_fact(line):
            self.say("Fact added.")
        else:
            self.say("Already present.")

    def infer(self) -> None:
        if self.session.rules.is_empty():
            self.say("Rule base is empty.")
            self.pause()
            return
        self.session.infer(on_deduction=lambda fact: self.say(f">> New deduction: {fact}"))
        self.say("Inference finished.")
        self.pause()

    def list_rules(self) -> None:
        self.say("=== Rules ===")
        lines = self.session.describe_rules()
        self.say("\n".join(lines) if lines else "(no rules)")
        self.pause()

    def list_facts(self) -> None:
        self.say("=== Facts ===")
        lines = self.session.describe_facts()
        self.say("\n".join(lines) if lines else "(no facts)")
        self.pause()

    def remove_rule(self) -> None:
        index = self.read_int("Index: ")
        if index is None or index < 0:
            self.say("Invalid index.")
            return
        if self.session.remove_rule(index):
            self.say("Rule removed.")
        else:
            self.say("Index out of range.")

    def remove_fact(self) -> None:
        line = self.read_line("Fact to remove: ")
        if not line:
            return
        if self.session.remove_fact(line):
            self.say("Fact removed.")
        else:
            self.say("Not found.")

    def remove_premise(self) -> None:
        index = self.read_int("Rule index: ")
        if index is None or index < 0:
            self.say("Invalid index.")
            return
        if index >= len(self.session.rules):
            self.say("Index out of range.")
            return
        line = self.read_line("Premise to remove (exact text): ")
        if not line:
            return
        if self.session.remove_premise(index, line):
            self.say("Premise removed.")
        else:
            self.say("Premise not found.")

    def selfcheck(self) -> None:
        from reasoning.selfcheck import run_selfcheck

        run_selfcheck(self.out)
        self.pause()

    def run(self) -> int:
        """Menu loop; returns the exit code."""
        actions = {
            1: self.add_rule,
            2: self.add_fact,
            3: self.infer,
            4: self.list_rules,
            5: self.list_facts,
            6: self.remove_rule,
            7: self.remove_fact,
            8: self._clear_rules,
            9: self._clear_facts,
            10: self.remove_premise,
            11: self.selfcheck,
        }
        while True:
            self.say(MENU)
            line = self.read_line("> ")
            if line is None:
                self.say("Bye.")
                return 0
            try:
                choice = int(line)
            except ValueError:
                self.say("Invalid input.")
                continue

            if choice == 0:
                self.session.clear_rules()
                self.session.clear_facts()
                self.say("Bye.")
                return 0
            action = actions.get(choice)
            if action is None:
                self.say("Invalid choice.")
                continue
            action()

    def _clear_rules(self) -> None:
        self.session.clear_rules()
        self.say("All rules removed.")

    def _clear_facts(self) -> None:
        self.session.clear_facts()
        self.say("All facts removed.")


def interactive_command(args):
    """Start interactive rule engine session."""
    from reasoning.session import KnowledgeSession

    logger.info("Starting interactive session...")
    session = KnowledgeSession(load_config(args.config))
    InteractiveShell(session).run()


def run_command(args):
    """Run inference once over rules and facts given on the command line."""
    from knowledge.rules import Rule
    from reasoning.session import KnowledgeSession

    session = KnowledgeSession(load_config(args.config))
    for text in args.rule or []:
        session.add_rule(Rule.parse(text))
    for fact in args.fact or []:
        session.add_fact(fact)

    result = session.infer()

    print("Derived facts:")
    for fact in result.derived:
        print(f"- {fact}")
    print("All facts:")
    for line in session.describe_facts():
        print(line)
    logger.info(f"Converged after {result.passes} passes in {result.elapsed:.4f}s")


def selfcheck_command(args):
    """Run the built-in self check."""
    from reasoning.selfcheck import run_selfcheck

    report = run_selfcheck()
    if not report.ok:
        sys.exit(1)


def test_command(args):
    """Run tests on the rule engine."""
    import pytest

    logger.info("Running tests...")

    test_args = [
        "tests/",
        "-v",
        "--tb=short"
    ]

    if args.verbose:
        test_args.append("-s")

    if args.coverage:
        test_args.extend(["--cov=.", "--cov-report=html"])

    exit_code = pytest.main(test_args)

    if exit_code == 0:
        logger.info("All tests passed!")
    else:
        logger.error(f"Tests failed with exit code: {exit_code}")
        sys.exit(exit_code)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Fixpoint forward-chaining rule engine CLI",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python cli.py interactive
  python cli.py run --rule "A => B" --rule "B => C" --fact A
  python cli.py selfcheck
  python cli.py test --verbose
        """
    )

    subparsers = parser.add_subparsers(dest='command', help='Available commands')

    # Interactive command
    interactive_parser = subparsers.add_parser('interactive', help='Start interactive session')
    interactive_parser.add_argument('--config', help='Engine config YAML file')
    interactive_parser.set_defaults(func=interactive_command)

    # Run command
    run_parser = subparsers.add_parser('run', help='Run inference once')
    run_parser.add_argument('--rule', action='append', help='Rule such as "A, B => C"')
    run_parser.add_argument('--fact', action='append', help='Initial fact')
    run_parser.add_argument('--config', help='Engine config YAML file')
    run_parser.set_defaults(func=run_command)

    # Self check command
    selfcheck_parser = subparsers.add_parser('selfcheck', help='Run the built-in self check')
    selfcheck_parser.set_defaults(func=selfcheck_command)

    # Test command
    test_parser = subparsers.add_parser('test', help='Run tests')
    test_parser.add_argument('--verbose', '-v', action='store_true', help='Verbose output')
    test_parser.add_argument('--coverage', action='store_true', help='Generate coverage report')
    test_parser.set_defaults(func=test_command)

    return parser


def main(argv: Optional[List[str]] = None):
    """Main CLI entry point."""
    setup_environment()

    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        sys.exit(1)

    try:
        args.func(args)
    except KeyboardInterrupt:
        logger.info("Operation cancelled by user")
        sys.exit(0)
    except Exception as e:
        logger.error(f"Error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
