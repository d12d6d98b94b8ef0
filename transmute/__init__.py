"""
TRANSMUTE - deterministic multiset rewriting

Production rules consume a multiset of named attributes and produce
another. The engine applies them to an input multiset until nothing
changes, then reports what is left.

Quick Start:
    from transmute import VocabularyTable, RuleSet, RewriteEngine

    vocab = VocabularyTable.from_text('''
        water
        fire
        steam
    ''')
    rules = RuleSet.from_text("water, fire -> steam", vocab)
    engine = RewriteEngine(vocab, rules)

    engine(["water", "water", "fire"])  # => Substituted(['water:1', 'steam:1'])

Rule Syntax:
    # Comments start with #
    water, fire -> steam          consume one water and one fire, produce steam
    water, water -> pond          repeat a name for multiplicity
    ash ->                        consume without producing

Results:
    Substituted  - truthy, iterates "name:count" strings in vocabulary order
    Failure      - falsy, returned when the rules never settle
"""

__version__ = "0.1.0"

from .diagnostics import (
    DiagnosticSink,
    NullSink,
    StreamSink,
    CollectingSink,
)

from .errors import (
    TransmuteError,
    InvalidRuleError,
    IterationLimitExceeded,
)

from .formatting import (
    freq_to_list,
    freq_to_string,
    freq_equal,
    is_zero,
    dominates,
)

from .vocabulary import VocabularyTable

from .rules import (
    Rule,
    RuleSet,
    parse_rule_line,
    translate,
)

from .engine import (
    MAX_ITERATIONS,
    RewriteEngine,
    SubstitutionEngine,
    Substituted,
    Failure,
    RewriteStep,
    RewriteTrace,
)

# Public API
__all__ = [
    # Version
    "__version__",
    # Diagnostics
    "DiagnosticSink",
    "NullSink",
    "StreamSink",
    "CollectingSink",
    # Errors
    "TransmuteError",
    "InvalidRuleError",
    "IterationLimitExceeded",
    # Frequency vectors
    "freq_to_list",
    "freq_to_string",
    "freq_equal",
    "is_zero",
    "dominates",
    # Tables
    "VocabularyTable",
    "Rule",
    "RuleSet",
    "parse_rule_line",
    "translate",
    # Engine
    "MAX_ITERATIONS",
    "RewriteEngine",
    "SubstitutionEngine",
    "Substituted",
    "Failure",
    "RewriteStep",
    "RewriteTrace",
]
