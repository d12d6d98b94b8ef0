"""Tests for the rewrite engine."""

import pytest
from transmute import (
    VocabularyTable, RuleSet, RewriteEngine, Substituted, Failure,
    CollectingSink, IterationLimitExceeded, MAX_ITERATIONS,
)


def make_engine(names, rules_text, **kwargs):
    vocab = VocabularyTable(names)
    rules = RuleSet.from_text(rules_text, vocab)
    return RewriteEngine(vocab, rules, **kwargs)


class TestAlchemyScenarios:
    """The water/fire/steam examples."""

    def setup_method(self):
        self.sink = CollectingSink()
        self.engine = make_engine(["water", "fire", "steam"],
                                  "water, fire -> steam", sink=self.sink)

    def test_water_and_fire(self):
        assert self.engine.execute(["water", "fire"]) == ["steam:1"]

    def test_leftover_water(self):
        """One application consumes one water, the other stays."""
        result = self.engine.execute(["water", "water", "fire"])
        assert list(result) == ["water:1", "steam:1"]
        assert result.counts == {"water": 1, "steam": 1}

    def test_unknown_token_dropped(self):
        """Unrecognized tokens are dropped with a warning."""
        result = self.engine.execute(["water", "lava"])
        assert result == ["water:1"]
        assert self.sink.warnings == ["Omitting unrecognized attribute `lava`."]

    def test_tokens_are_trimmed(self):
        assert self.engine.execute([" water ", "fire\t"]) == ["steam:1"]

    def test_comma_separated_string(self):
        """A single string is split on commas."""
        assert self.engine.execute("water, fire, fire") == ["fire:1", "steam:1"]

    def test_callable(self):
        """engine(tokens) is shorthand for execute()."""
        assert self.engine(["water", "fire"]) == self.engine.execute(["water", "fire"])

    def test_no_rule_applies(self):
        result = self.engine.execute(["fire"])
        assert result == ["fire:1"]
        assert result.passes == 0
        assert result.applications == 0

    def test_empty_input(self):
        """No tokens is an empty but successful result."""
        result = self.engine.execute([])
        assert result
        assert result.ok
        assert len(result) == 0


class TestPassSemantics:
    """Tests for ordering and mutation within a pass."""

    def test_order_sensitivity(self):
        """The earlier of two competing rules wins."""
        first = make_engine(["a", "b", "c"], "a -> b\na -> c")
        second = make_engine(["a", "b", "c"], "a -> c\na -> b")
        assert first.execute(["a"]) == ["b:1"]
        assert second.execute(["a"]) == ["c:1"]

    def test_later_rule_sees_earlier_effect(self):
        """A rule enabled earlier in the pass fires in the same pass."""
        engine = make_engine(["a", "b", "c"], "a -> b\nb -> c")
        result = engine.execute(["a"])
        assert result == ["c:1"]
        assert result.passes == 1
        assert result.applications == 2

    def test_earlier_rule_waits_for_next_pass(self):
        """A rule enabled by a later rule waits until the next pass."""
        engine = make_engine(["a", "b", "c"], "b -> c\na -> b")
        result = engine.execute(["a"])
        assert result == ["c:1"]
        assert result.passes == 2

    def test_rule_fires_once_per_pass(self):
        """Each rule applies at most once per pass."""
        engine = make_engine(["a", "b"], "a -> b")
        result = engine.execute(["a", "a", "a"])
        assert result == ["b:3"]
        assert result.passes == 3
        assert result.applications == 3

    def test_earlier_rule_can_disable_later(self):
        """Consumption by an earlier rule hides input from a later one."""
        engine = make_engine(["a", "b", "c", "d"], "a, b -> c\na -> d")
        assert engine.execute(["a", "b"]) == ["c:1"]
        assert engine.execute(["a", "a", "b"]) == ["c:1", "d:1"]

    def test_multiplicity_required(self):
        """A rule needing two of an attribute waits for two."""
        engine = make_engine(["salt", "brine"], "salt, salt -> brine")
        assert engine.execute(["salt"]) == ["salt:1"]
        assert engine.execute(["salt", "salt", "salt"]) == ["salt:1", "brine:1"]

    def test_consume_only_rule(self):
        engine = make_engine(["ash", "wind"], "ash, wind ->")
        result = engine.execute(["ash", "wind"])
        assert result
        assert list(result) == []


class TestFixpoint:
    """Tests for determinism and fixpoint properties."""

    RULES = "\n".join([
        "water, fire -> steam",
        "steam, steam -> cloud",
        "cloud -> water, water, water",
        "earth, water -> mud",
    ])
    NAMES = ["water", "fire", "steam", "cloud", "earth", "mud"]

    def test_deterministic(self):
        engine = make_engine(self.NAMES, self.RULES)
        tokens = ["water", "fire", "water", "fire", "earth", "fire"]
        first = engine.execute(tokens)
        for _ in range(5):
            assert engine.execute(tokens) == first

    def test_idempotent(self):
        """Feeding a result back in changes nothing."""
        engine = make_engine(self.NAMES, self.RULES)
        result = engine.execute(["water", "fire", "water", "fire", "earth"])
        again = engine.execute(result.tokens())
        assert again == result
        assert again.applications == 0

    def test_tokens_preserve_counts(self):
        engine = make_engine(["a", "b"], "a, a -> b")
        result = engine.execute(["a", "a", "a", "a", "a"])
        assert result == ["a:1", "b:2"]
        assert sorted(result.tokens()) == ["a", "b", "b"]

    def test_calls_do_not_share_state(self):
        engine = make_engine(["a", "b"], "a -> b")
        engine.execute(["a", "a"])
        assert engine.execute(["b"]) == ["b:1"]


class TestIterationLimit:
    """Tests for cycle detection via the iteration cap."""

    def test_cycle_fails(self):
        """a -> b with b -> a never settles."""
        sink = CollectingSink()
        engine = make_engine(["a", "b"], "a -> b\nb -> a", sink=sink)
        result = engine.execute(["a"])
        assert isinstance(result, Failure)
        assert not result
        assert not result.ok
        assert result.inputs == ("a",)
        assert result.max_iterations == MAX_ITERATIONS
        assert "maximum iteration count (10000)" in result.reason
        assert sink.warnings == [
            "(FATAL) Recipe exceeded maximum iteration count (10000). Inputs [ a ]."
        ]

    def test_failure_is_not_empty_success(self):
        engine = make_engine(["a", "b"], "a -> b\nb -> a", max_iterations=3)
        result = engine.execute(["a"])
        assert list(result) == []
        assert result != Substituted([], {})

    def test_limit_is_inclusive(self):
        """Exactly max_iterations productive passes still succeeds."""
        engine = make_engine(["a", "b"], "a -> b", max_iterations=3)
        assert engine.execute(["a", "a", "a"]) == ["b:3"]

        engine = make_engine(["a", "b"], "a -> b", max_iterations=2)
        assert not engine.execute(["a", "a", "a"])

    def test_growth_without_cycle_fails(self):
        """An ever-growing multiset also hits the cap."""
        engine = make_engine(["seed"], "seed -> seed, seed", max_iterations=50)
        assert not engine.execute(["seed"])

    def test_failure_keeps_original_inputs(self):
        engine = make_engine(["a", "b"], "a -> b\nb -> a", max_iterations=2)
        result = engine.execute(["a", "lava"])
        assert result.inputs == ("a", "lava")

    def test_raise_for_status(self):
        engine = make_engine(["a", "b"], "a -> b\nb -> a", max_iterations=2)
        with pytest.raises(IterationLimitExceeded) as exc_info:
            engine.execute(["a"]).raise_for_status()
        assert exc_info.value.inputs == ("a",)
        assert exc_info.value.max_iterations == 2

    def test_execute_or_raise(self):
        engine = make_engine(["a", "b"], "a -> b\nb -> a", max_iterations=2)
        with pytest.raises(RuntimeError):
            engine.execute_or_raise(["a"])

    def test_execute_or_raise_success(self):
        engine = make_engine(["a", "b"], "a -> b")
        assert engine.execute_or_raise(["a"]) == ["b:1"]

    def test_failure_does_not_affect_later_calls(self):
        engine = make_engine(["a", "b", "c"], "a -> b\nb -> a", max_iterations=2)
        assert not engine.execute(["a"])
        assert engine.execute(["c"]) == ["c:1"]

    def test_invalid_max_iterations(self):
        with pytest.raises(ValueError):
            make_engine(["a"], "", max_iterations=0)


class TestConstruction:
    """Tests for engine construction."""

    def test_empty_vocabulary(self):
        """An empty vocabulary drops every token."""
        sink = CollectingSink()
        engine = make_engine([], "", sink=sink)
        result = engine.execute(["water"])
        assert result
        assert list(result) == []
        assert sink.warnings == ["Omitting unrecognized attribute `water`."]

    def test_vocabulary_mismatch(self):
        vocab = VocabularyTable(["a", "b"])
        rules = RuleSet.from_text("a -> b", VocabularyTable(["b", "a"]))
        with pytest.raises(ValueError):
            RewriteEngine(vocab, rules)

    def test_equal_vocabulary_accepted(self):
        rules = RuleSet.from_text("a -> b", VocabularyTable(["a", "b"]))
        engine = RewriteEngine(VocabularyTable(["a", "b"]), rules)
        assert engine.execute(["a"]) == ["b:1"]

    def test_rules_matching(self):
        engine = make_engine(["a", "b", "c"], "a -> b\nb -> c\na, b -> c")
        assert engine.rules_matching(["a"]) == [0]
        assert engine.rules_matching(["a", "b"]) == [0, 1, 2]
        assert engine.rules_matching([]) == []

    def test_repr(self):
        engine = make_engine(["a", "b"], "a -> b")
        assert repr(engine) == "RewriteEngine(2 attributes, 1 rules)"


class TestVerbose:
    """Tests for verbose diagnostics."""

    def test_verbose_does_not_change_result(self):
        quiet = make_engine(["water", "fire", "steam"], "water, fire -> steam")
        sink = CollectingSink()
        loud = make_engine(["water", "fire", "steam"], "water, fire -> steam",
                           sink=sink, verbose=True)
        tokens = ["water", "water", "fire"]
        assert loud.execute(tokens) == quiet.execute(tokens)
        assert len(sink.messages) > 0

    def test_verbose_messages(self):
        sink = CollectingSink()
        engine = make_engine(["water", "fire", "steam"], "water, fire -> steam",
                             sink=sink, verbose=True)
        engine.execute(["water", "fire"])
        assert sink.messages == [
            "IN: water;fire",
            "FREQ: water:1, fire:1",
            "",
            "RULE  : water:1, fire:1 -> steam:1",
            "BEFORE: water:1, fire:1",
            "AFTER : steam:1",
            "",
            "OUT: steam:1",
        ]

    def test_quiet_engine_logs_nothing(self):
        sink = CollectingSink()
        engine = make_engine(["water", "fire", "steam"], "water, fire -> steam", sink=sink)
        engine.execute(["water", "fire"])
        assert len(sink) == 0
