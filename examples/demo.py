#!/usr/bin/env python3
"""
TRANSMUTE Feature Demonstration

This script walks through the main features of the TRANSMUTE library
using the alchemy tables next to it.
"""

from pathlib import Path
from transmute import (
    VocabularyTable, RuleSet, RewriteEngine, SubstitutionEngine,
    StreamSink, CollectingSink,
)

HERE = Path(__file__).parent


def section(title: str):
    """Print a section header."""
    print(f"\n{'='*60}")
    print(f" {title}")
    print('='*60)


def demo_basic_usage():
    """Rewrite a few multisets with a single rule."""
    section("Basic Usage")

    vocab = VocabularyTable(["water", "fire", "steam"])
    rules = RuleSet.from_text("water, fire -> steam", vocab)
    engine = RewriteEngine(vocab, rules)

    examples = [
        ["water", "fire"],
        ["water", "water", "fire"],
        ["fire"],
    ]

    for tokens in examples:
        result = engine(tokens)
        print(f"  {', '.join(tokens)} => {', '.join(result)}")


def demo_rule_order():
    """Show that rule order decides which rule wins."""
    section("Rule Order")

    vocab = VocabularyTable(["metal", "fire", "water", "sword", "rust"])
    forge_first = RuleSet.from_text("metal, fire -> sword\nmetal, water -> rust", vocab)
    rust_first = RuleSet.from_text("metal, water -> rust\nmetal, fire -> sword", vocab)

    tokens = ["metal", "fire", "water"]
    for label, rules in [("forge first", forge_first), ("rust first", rust_first)]:
        result = RewriteEngine(vocab, rules)(tokens)
        print(f"  {label}: {', '.join(result)}")


def demo_files_and_trace():
    """Load the alchemy tables and trace a run."""
    section("Files and Tracing")

    engine = SubstitutionEngine.from_files(HERE / "alchemy.attributes",
                                           HERE / "alchemy.rules",
                                           sink=StreamSink())
    result = engine.execute("water, water, fire, air, earth, earth", trace=True)
    print(f"  result: {', '.join(result)}")
    print(f"  passes: {result.passes}, applications: {result.applications}")
    print(result.trace.format("verbose"))


def demo_failure():
    """Rules that never settle produce a Failure, not a partial result."""
    section("Iteration Limit")

    sink = CollectingSink()
    engine = SubstitutionEngine.from_files(HERE / "alchemy.attributes",
                                           HERE / "cycle.rules",
                                           sink=sink, max_iterations=100)
    result = engine("water")
    print(f"  ok: {result.ok}")
    print(f"  reason: {result.reason}")


def demo_diagnostics():
    """Collect warnings instead of printing them."""
    section("Diagnostics")

    sink = CollectingSink()
    vocab = VocabularyTable.from_text("water\nfire\nwater\nhot water\n", sink=sink)
    rules = RuleSet.from_text("water -> water\n -> fire\nwater, lava -> fire", vocab, sink=sink)
    RewriteEngine(vocab, rules, sink=sink)(["water", "mercury"])

    for warning in sink.warnings:
        print(f"  {warning}")


if __name__ == "__main__":
    demo_basic_usage()
    demo_rule_order()
    demo_files_and_trace()
    demo_failure()
    demo_diagnostics()
