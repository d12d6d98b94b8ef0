"""
Rewrite Engine for TRANSMUTE

Runs a RuleSet over a multiset of attributes until nothing changes.

Semantics:
    - The input tokens are counted into a fresh frequency vector.
      Unrecognized tokens are dropped with a warning.
    - One pass tries every rule once, in rule order. A rule applies when the
      current vector holds at least its inputs; applying it subtracts the
      inputs and adds the outputs right away, so later rules in the same
      pass see the change.
    - Passes repeat while the previous pass applied anything. More than
      max_iterations productive passes is a failure (a cycle such as
      a -> b, b -> a never settles).
    - The result lists non-zero attributes as "name:count" in vocabulary
      order.

Example:
    from transmute import VocabularyTable, RuleSet, RewriteEngine

    vocab = VocabularyTable(["water", "fire", "steam"])
    rules = RuleSet.from_text("water, fire -> steam", vocab)
    engine = RewriteEngine(vocab, rules)

    engine(["water", "water", "fire"])  # => Substituted(['water:1', 'steam:1'])

Tracing:
    Use engine.execute(tokens, trace=True); the result's trace records every
    rule application.
"""

from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence, Tuple, Union

from .diagnostics import DiagnosticSink, resolve_sink
from .errors import IterationLimitExceeded
from .formatting import dominates, freq_to_list, freq_to_string
from .rules import Rule, RuleSet
from .vocabulary import VocabularyTable

MAX_ITERATIONS = 10_000

TokensType = Union[str, Iterable[str]]


def split_tokens(tokens: TokensType) -> List[str]:
    """Accept either a comma-separated string or an iterable of tokens."""
    if isinstance(tokens, str):
        return tokens.split(',')
    return list(tokens)


# ============================================================
# Tracing
# ============================================================

class RewriteStep:
    """A single rule application."""

    def __init__(self, pass_number: int, rule_index: int, rule: Rule,
                 before: Tuple[int, ...], after: Tuple[int, ...]):
        self.pass_number = pass_number
        self.rule_index = rule_index
        self.rule = rule
        self.before = before
        self.after = after

    def format(self, vocabulary: VocabularyTable) -> str:
        return (f"rule[{self.rule_index}] {self.rule.describe(vocabulary)}: "
                f"{{{freq_to_string(self.before, vocabulary)}}} -> "
                f"{{{freq_to_string(self.after, vocabulary)}}}")

    def __repr__(self) -> str:
        return f"RewriteStep(pass={self.pass_number}, rule={self.rule_index})"

    def to_dict(self) -> Dict:
        """Convert step to dictionary for serialization."""
        return {
            "pass": self.pass_number,
            "rule_index": self.rule_index,
            "line": self.rule.line_number,
            "before": list(self.before),
            "after": list(self.after),
        }


class RewriteTrace:
    """
    A trace of all rule applications in one execute() call.

    Provides multiple formatting options:
        - format("verbose"): one line per application with before/after
        - format("compact"): single line showing the rule chain
        - format("rules"): just the rule indices applied
        - to_dict(): JSON-serializable dictionary
    """

    def __init__(self, vocabulary: VocabularyTable):
        self.vocabulary = vocabulary
        self.steps: List[RewriteStep] = []
        self.initial: Tuple[int, ...] = ()
        self.final: Tuple[int, ...] = ()

    def add_step(self, step: RewriteStep):
        self.steps.append(step)

    def _label(self, step: RewriteStep) -> str:
        return f"rule[{step.rule_index}]"

    def format(self, style: str = "verbose") -> str:
        """
        Format the trace.

        Args:
            style: One of "verbose", "compact", "rules"

        Returns:
            Formatted string representation of the trace.
        """
        if style == "compact":
            labels = [self._label(s) for s in self.steps]
            return (f"{{{freq_to_string(self.initial, self.vocabulary)}}} "
                    f"--[{', '.join(labels)}]--> "
                    f"{{{freq_to_string(self.final, self.vocabulary)}}}")

        elif style == "rules":
            labels = [self._label(s) for s in self.steps]
            return " -> ".join(labels) if labels else "(no rules applied)"

        elif style == "verbose":
            lines = [f"Initial: {freq_to_string(self.initial, self.vocabulary)}"]
            for i, step in enumerate(self.steps, 1):
                lines.append(f"  {i}. {step.format(self.vocabulary)}")
            lines.append(f"Final: {freq_to_string(self.final, self.vocabulary)}")
            return "\n".join(lines)

        raise ValueError(f"Unknown trace style: {style}. "
                         f"Valid options: verbose, compact, rules")

    def __repr__(self) -> str:
        return self.format("verbose")

    def __len__(self) -> int:
        return len(self.steps)

    def __iter__(self):
        return iter(self.steps)

    def __bool__(self) -> bool:
        """True if any rewriting was done."""
        return len(self.steps) > 0

    def rule_counts(self) -> Dict[int, int]:
        """Count how many times each rule index was applied."""
        counts: Dict[int, int] = {}
        for step in self.steps:
            counts[step.rule_index] = counts.get(step.rule_index, 0) + 1
        return counts

    def to_dict(self) -> Dict:
        """Convert trace to dictionary for JSON serialization."""
        return {
            "initial": freq_to_list(self.initial, self.vocabulary),
            "final": freq_to_list(self.final, self.vocabulary),
            "steps": [step.to_dict() for step in self.steps],
            "step_count": len(self.steps),
        }


# ============================================================
# Results
# ============================================================

class Substituted:
    """
    Successful result of execute().

    Behaves like a read-only sequence of "name:count" strings and is always
    truthy, even when the listing is empty.

        result = engine(["water", "fire"])
        if result:
            print("\\n".join(result))
    """

    ok = True

    def __init__(self, listing: Sequence[str], counts: Dict[str, int],
                 passes: int = 0, applications: int = 0,
                 trace: Optional[RewriteTrace] = None):
        self.listing: Tuple[str, ...] = tuple(listing)
        self.counts = counts
        self.passes = passes
        self.applications = applications
        self.trace = trace

    def raise_for_status(self) -> 'Substituted':
        return self

    def tokens(self) -> List[str]:
        """The multiset as a flat token list, suitable as new input."""
        result = []
        for name, count in self.counts.items():
            result.extend([name] * count)
        return result

    def __bool__(self) -> bool:
        return True

    def __len__(self) -> int:
        return len(self.listing)

    def __iter__(self):
        return iter(self.listing)

    def __getitem__(self, index):
        return self.listing[index]

    def __eq__(self, other):
        if isinstance(other, Substituted):
            return self.listing == other.listing
        if isinstance(other, (list, tuple)):
            return list(self.listing) == list(other)
        return False

    def __hash__(self):
        return hash(self.listing)

    def __repr__(self) -> str:
        return f"Substituted({list(self.listing)})"


class Failure:
    """
    Failed result of execute(): the iteration cap was exceeded.

    Failure is falsy, so it cannot be mistaken for an empty success:

        result = engine(tokens)
        if not result:
            print(result.reason)
    """

    ok = False

    def __init__(self, reason: str, inputs: Sequence[str], max_iterations: int,
                 trace: Optional[RewriteTrace] = None):
        self.reason = reason
        self.inputs: Tuple[str, ...] = tuple(inputs)
        self.max_iterations = max_iterations
        self.trace = trace

    def raise_for_status(self):
        raise IterationLimitExceeded(self.reason, self.inputs, self.max_iterations)

    def __bool__(self) -> bool:
        return False

    def __len__(self) -> int:
        return 0

    def __iter__(self):
        return iter(())

    def __eq__(self, other):
        if isinstance(other, Failure):
            return self.reason == other.reason and self.inputs == other.inputs
        return False

    def __hash__(self):
        return hash((self.reason, self.inputs))

    def __repr__(self) -> str:
        return f"Failure({self.reason!r})"


ResultType = Union[Substituted, Failure]


# ============================================================
# Engine
# ============================================================

class RewriteEngine:
    """
    Applies a RuleSet to multisets of attributes.

    The engine holds only read-only references to its vocabulary and rule
    set; every execute() call works on its own frequency vector, so one
    engine can serve any number of calls.

    Example:
        engine = RewriteEngine(vocab, rules, sink=StreamSink(), verbose=True)
        result = engine.execute(["water", "fire"])
        result.listing  # => ("steam:1",)
    """

    def __init__(self, vocabulary: VocabularyTable, rules: RuleSet,
                 sink: Optional[DiagnosticSink] = None,
                 verbose: bool = False,
                 max_iterations: int = MAX_ITERATIONS):
        """
        Initialize a RewriteEngine.

        Args:
            vocabulary: The attribute vocabulary.
            rules: Rules built against ``vocabulary``.
            sink: Where warnings and verbose output go. Default: discard.
            verbose: Log every rule application with before/after state.
                Has no effect on results.
            max_iterations: Productive passes allowed before failing.
        """
        if rules.vocabulary is not vocabulary and rules.vocabulary != vocabulary:
            raise ValueError("Rule set was built against a different vocabulary")
        if max_iterations < 1:
            raise ValueError(f"max_iterations must be positive, got {max_iterations}")
        self._vocabulary = vocabulary
        self._rules = rules
        self._sink = resolve_sink(sink)
        self.verbose = verbose
        self.max_iterations = max_iterations

    @property
    def vocabulary(self) -> VocabularyTable:
        return self._vocabulary

    @property
    def rules(self) -> RuleSet:
        return self._rules

    @property
    def sink(self) -> DiagnosticSink:
        return self._sink

    def _fmt(self, freq: Sequence[int]) -> str:
        return freq_to_string(freq, self._vocabulary)

    def to_frequency(self, tokens: TokensType) -> List[int]:
        """
        Count tokens into a fresh frequency vector.

        Tokens are trimmed; unrecognized ones are dropped with a warning.
        """
        freq = self._vocabulary.zeros()
        for token in split_tokens(tokens):
            name = token.strip()
            attr_id = self._vocabulary.name_to_id(name)
            if attr_id is None:
                self._sink.warn(f"Omitting unrecognized attribute `{name}`.")
                continue
            freq[attr_id] += 1
        return freq

    def rules_matching(self, tokens: TokensType) -> List[int]:
        """
        Indices of rules whose inputs are present in ``tokens``.

        Nothing is rewritten. Useful for understanding why a multiset does
        or does not change.
        """
        freq = self.to_frequency(tokens)
        return [i for i, rule in enumerate(self._rules) if dominates(freq, rule.inputs)]

    def execute(self, tokens: TokensType, trace: bool = False) -> ResultType:
        """
        Rewrite ``tokens`` to a fixpoint.

        Args:
            tokens: Attribute names, repeated for multiplicity, or a single
                comma-separated string.
            trace: If True, attach a RewriteTrace to the result.

        Returns:
            Substituted with the final listing, or Failure if more than
            max_iterations productive passes ran.
        """
        inputs = split_tokens(tokens)
        if self.verbose:
            self._sink.log(f"IN: {';'.join(inputs)}")

        freq = self.to_frequency(inputs)
        trace_obj = RewriteTrace(self._vocabulary) if trace else None
        if trace_obj is not None:
            trace_obj.initial = tuple(freq)

        if self.verbose:
            self._sink.log(f"FREQ: {self._fmt(freq)}")
            self._sink.log("")

        passes = 0
        applications = 0
        while True:
            matched = False

            for rule_idx, rule in enumerate(self._rules):
                if not dominates(freq, rule.inputs):
                    continue

                if self.verbose:
                    self._sink.log(f"RULE  : {rule.describe(self._vocabulary)}")
                    self._sink.log(f"BEFORE: {self._fmt(freq)}")
                before = tuple(freq) if trace_obj is not None else ()

                matched = True
                applications += 1
                for i, (consumed, produced) in enumerate(zip(rule.inputs, rule.outputs)):
                    freq[i] += produced - consumed

                if trace_obj is not None:
                    trace_obj.add_step(RewriteStep(passes + 1, rule_idx, rule,
                                                   before, tuple(freq)))
                if self.verbose:
                    self._sink.log(f"AFTER : {self._fmt(freq)}")
                    self._sink.log("")

            if not matched:
                break

            passes += 1
            if passes > self.max_iterations:
                reason = (f"(FATAL) Recipe exceeded maximum iteration count "
                          f"({self.max_iterations}). Inputs [ {', '.join(inputs)} ].")
                self._sink.warn(reason)
                if trace_obj is not None:
                    trace_obj.final = tuple(freq)
                return Failure(reason, inputs, self.max_iterations, trace=trace_obj)

        if self.verbose:
            self._sink.log(f"OUT: {self._fmt(freq)}")

        if trace_obj is not None:
            trace_obj.final = tuple(freq)

        names = self._vocabulary.names
        counts = {names[i]: c for i, c in enumerate(freq) if c > 0}
        return Substituted(freq_to_list(freq, self._vocabulary), counts,
                           passes=passes, applications=applications, trace=trace_obj)

    def execute_or_raise(self, tokens: TokensType) -> Substituted:
        """Like execute() but raises IterationLimitExceeded on failure."""
        return self.execute(tokens).raise_for_status()

    def __call__(self, tokens: TokensType, **kwargs) -> ResultType:
        """Make engine callable: engine(tokens) is shorthand for engine.execute(tokens)."""
        return self.execute(tokens, **kwargs)

    def __repr__(self) -> str:
        return (f"RewriteEngine({self._vocabulary.attr_count} attributes, "
                f"{len(self._rules)} rules)")


class SubstitutionEngine(RewriteEngine):
    """
    Engine built straight from a vocabulary file and a rule file.

    Example:
        engine = SubstitutionEngine.from_files("alchemy.attributes", "alchemy.rules",
                                               sink=StreamSink())
        engine("water, fire")
    """

    @classmethod
    def from_files(cls, attributes_path: Union[str, Path], rules_path: Union[str, Path],
                   debug: bool = False, sink: Optional[DiagnosticSink] = None,
                   **kwargs) -> 'SubstitutionEngine':
        """
        Load both tables and build an engine.

        With debug=True the loaded tables are dumped through the sink.
        Extra keyword arguments (verbose, max_iterations) go to the engine.
        """
        sink = resolve_sink(sink)
        vocabulary = VocabularyTable.from_file(attributes_path, sink=sink)
        rules = RuleSet.from_file(rules_path, vocabulary, sink=sink)
        engine = cls(vocabulary, rules, sink=sink, **kwargs)
        if debug:
            engine.dump_tables()
        return engine

    def dump_tables(self) -> None:
        """Log the attribute and rule tables."""
        vocab = self._vocabulary
        log = self._sink.log
        log(f"TOTAL_ATTR: {vocab.attr_count}")
        log("STR_TO_ID: " + " | ".join(f"{name}:{i}" for i, name in enumerate(vocab)))
        log("ID_TO_STR: " + " | ".join(vocab))
        log(f"RULE_COUNT: {len(self._rules)}")
        log("RULE_PRINTOUT_FULL")
        for description in self._rules.list_rules():
            log(f"  {description}")
