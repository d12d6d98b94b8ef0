"""
Production rules and the rule file loader for TRANSMUTE.

A rule consumes a multiset of attributes and produces another. Both sides
are stored as frequency vectors over a VocabularyTable.

Rule format (.rules files):
    # Comment
    water, fire -> steam
    steam -> water, water
    salt, salt, water -> brine

    - the separator is the literal "->" and must appear exactly once
    - tokens are comma-separated vocabulary names, trimmed of whitespace
    - repeating a token raises its multiplicity
    - the right-hand side may be empty (the rule only consumes)

Rejected lines are reported to the diagnostic sink and skipped:
    - wrong number of "->" separators
    - a token that is not in the vocabulary (rejects the whole rule)
    - an empty left-hand side (it would match unconditionally)
    - identical sides (the rule would change nothing)

Rule order is application priority and is exactly source order.
"""

import json
from pathlib import Path
from typing import Dict, Iterable, Iterator, List, Optional, Sequence, Tuple, Union

from .diagnostics import DiagnosticSink, resolve_sink
from .errors import InvalidRuleError
from .formatting import freq_equal, freq_to_string, is_zero
from .vocabulary import VocabularyTable, should_ignore

SEPARATOR = "->"


class Rule:
    """
    A validated (inputs, outputs) pair of frequency vectors.

    Raises InvalidRuleError when the vectors differ in length, hold a
    negative count, have an all-zero input side, or are equal.

    Examples:
        Rule([1, 1, 0], [0, 0, 1])     # water + fire -> steam
        Rule([0, 0, 0], [1, 0, 0])     # InvalidRuleError: no input
    """

    __slots__ = ('inputs', 'outputs', 'line_number')

    def __init__(self, inputs: Sequence[int], outputs: Sequence[int],
                 line_number: Optional[int] = None):
        inputs = tuple(inputs)
        outputs = tuple(outputs)
        if len(inputs) != len(outputs):
            raise InvalidRuleError(
                f"Input and output vectors differ in length ({len(inputs)} != {len(outputs)})")
        if any(c < 0 for c in inputs) or any(c < 0 for c in outputs):
            raise InvalidRuleError("Frequency vectors cannot hold negative counts")
        if is_zero(inputs):
            raise InvalidRuleError("Rule consumes nothing")
        if freq_equal(inputs, outputs):
            raise InvalidRuleError("Rule maps a multiset onto itself")
        self.inputs: Tuple[int, ...] = inputs
        self.outputs: Tuple[int, ...] = outputs
        self.line_number = line_number

    @property
    def dimension(self) -> int:
        return len(self.inputs)

    def describe(self, vocabulary: VocabularyTable) -> str:
        """Human-readable form, e.g. "water:1, fire:1 -> steam:1"."""
        return (f"{freq_to_string(self.inputs, vocabulary)} -> "
                f"{freq_to_string(self.outputs, vocabulary)}")

    def to_source(self, vocabulary: VocabularyTable) -> str:
        """Rule file form, repeating tokens for multiplicity."""
        lhs = ", ".join(_expand(self.inputs, vocabulary))
        rhs = ", ".join(_expand(self.outputs, vocabulary))
        return f"{lhs} {SEPARATOR} {rhs}".rstrip()

    def __eq__(self, other):
        if isinstance(other, Rule):
            return self.inputs == other.inputs and self.outputs == other.outputs
        return False

    def __hash__(self):
        return hash((self.inputs, self.outputs))

    def __repr__(self) -> str:
        return f"Rule({list(self.inputs)} -> {list(self.outputs)})"


def _expand(freq: Sequence[int], vocabulary: VocabularyTable) -> List[str]:
    tokens = []
    for attr_id, count in enumerate(freq):
        tokens.extend([vocabulary.id_to_name(attr_id)] * count)
    return tokens


def _where(line_number: Optional[int]) -> str:
    return f" on line {line_number}" if line_number is not None else ""


def translate(text: str, vocabulary: VocabularyTable,
              line_number: Optional[int] = None,
              sink: Optional[DiagnosticSink] = None) -> Optional[List[int]]:
    """
    Translate one side of a rule into a frequency vector.

    Returns None (after warning) if any token is not in the vocabulary.

    Examples:
        translate("water, water, fire", vocab)  # => [2, 1, 0]
        translate(" , ", vocab)                 # => [0, 0, 0]
    """
    sink = resolve_sink(sink)
    freq = vocabulary.zeros()
    for item in text.split(','):
        token = item.strip()
        if not token:
            continue
        attr_id = vocabulary.name_to_id(token)
        if attr_id is None:
            sink.warn(f"Unrecognized attribute `{token}`{_where(line_number)}.")
            return None
        freq[attr_id] += 1
    return freq


def parse_rule_line(line: str, vocabulary: VocabularyTable,
                    line_number: Optional[int] = None,
                    sink: Optional[DiagnosticSink] = None) -> Optional[Rule]:
    """
    Parse and validate a single rule line.

    Returns the Rule, or None if the line is ignorable or was rejected.
    Rejections are reported to the sink; nothing is raised.
    """
    if should_ignore(line):
        return None
    sink = resolve_sink(sink)

    parts = line.split(SEPARATOR)
    if len(parts) != 2:
        sink.warn(f"Failed to split input from output{_where(line_number)}.")
        return None

    inputs = translate(parts[0], vocabulary, line_number, sink)
    if inputs is None:
        return None
    if is_zero(inputs):
        sink.warn(f"Rejected no-input recipe{_where(line_number)}.")
        return None

    outputs = translate(parts[1], vocabulary, line_number, sink)
    if outputs is None:
        return None
    if freq_equal(inputs, outputs):
        sink.warn(f"Rejected self->self rule{_where(line_number)}.")
        return None

    return Rule(inputs, outputs, line_number=line_number)


class RuleSet:
    """
    An ordered, immutable collection of rules over one vocabulary.

    Order is significant: within a rewriting pass rules are tried first to
    last.

    Example:
        vocab = VocabularyTable(["water", "fire", "steam"])
        rules = RuleSet.from_text("water, fire -> steam", vocab)
        len(rules)          # => 1
        rules.list_rules()  # => ["water:1, fire:1 -> steam:1"]
    """

    __slots__ = ('_rules', '_vocabulary')

    def __init__(self, rules: Iterable[Rule], vocabulary: VocabularyTable):
        """
        Build from already-validated rules.

        Raises:
            InvalidRuleError: if a rule's dimension does not match the vocabulary.
        """
        rules = tuple(rules)
        for rule in rules:
            if rule.dimension != vocabulary.attr_count:
                raise InvalidRuleError(
                    f"Rule dimension {rule.dimension} does not match "
                    f"vocabulary size {vocabulary.attr_count}")
        self._rules: Tuple[Rule, ...] = rules
        self._vocabulary = vocabulary

    # ============================================================
    # Loading
    # ============================================================

    @classmethod
    def from_lines(cls, lines: Iterable[str], vocabulary: VocabularyTable,
                   sink: Optional[DiagnosticSink] = None) -> 'RuleSet':
        """Load rules from source lines, skipping and reporting bad ones."""
        sink = resolve_sink(sink)
        rules = []
        for line_number, line in enumerate(lines, 1):
            rule = parse_rule_line(line, vocabulary, line_number, sink)
            if rule is not None:
                rules.append(rule)
        return cls(rules, vocabulary)

    @classmethod
    def from_text(cls, text: str, vocabulary: VocabularyTable,
                  sink: Optional[DiagnosticSink] = None) -> 'RuleSet':
        """Load rules from newline-delimited text."""
        return cls.from_lines(text.splitlines(), vocabulary, sink=sink)

    @classmethod
    def from_file(cls, path: Union[str, Path], vocabulary: VocabularyTable,
                  sink: Optional[DiagnosticSink] = None) -> 'RuleSet':
        """Load rules from a rule file."""
        text = Path(path).read_text(encoding="utf-8")
        return cls.from_text(text, vocabulary, sink=sink)

    # ============================================================
    # Access
    # ============================================================

    @property
    def vocabulary(self) -> VocabularyTable:
        return self._vocabulary

    @property
    def rules(self) -> Tuple[Rule, ...]:
        return self._rules

    def describe(self, index: int) -> str:
        return self._rules[index].describe(self._vocabulary)

    def list_rules(self) -> List[str]:
        """All rules in human-readable form, in priority order."""
        return [rule.describe(self._vocabulary) for rule in self._rules]

    def to_text(self, name: Optional[str] = None) -> str:
        """
        Export to rule file format.

        Loading the result with from_text() against the same vocabulary
        yields an equal rule set.
        """
        lines = []
        if name:
            lines.append(f"# {name}")
            lines.append("")
        lines.extend(rule.to_source(self._vocabulary) for rule in self._rules)
        return "\n".join(lines)

    def to_dict(self) -> Dict:
        """
        Export to a JSON-serializable dictionary.

        Each side is a name -> count mapping of its non-zero attributes.
        """
        names = self._vocabulary.names
        rules_list = []
        for rule in self._rules:
            rule_dict = {
                "inputs": {names[i]: c for i, c in enumerate(rule.inputs) if c},
                "outputs": {names[i]: c for i, c in enumerate(rule.outputs) if c},
            }
            if rule.line_number is not None:
                rule_dict["line"] = rule.line_number
            rules_list.append(rule_dict)
        return {"attributes": list(names), "rules": rules_list}

    def to_json(self, indent: Optional[int] = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent)

    def __len__(self) -> int:
        return len(self._rules)

    def __iter__(self) -> Iterator[Rule]:
        return iter(self._rules)

    def __getitem__(self, index: int) -> Rule:
        return self._rules[index]

    def __repr__(self) -> str:
        return f"RuleSet({len(self._rules)} rules)"

