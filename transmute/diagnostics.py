"""
Diagnostic sinks for TRANSMUTE.

Loaders and the rewrite engine never print on their own. They report
through a sink object handed to them by the caller:

    from transmute import RewriteEngine, StreamSink, CollectingSink

    engine = RewriteEngine(vocab, rules, sink=StreamSink(), verbose=True)

    sink = CollectingSink()
    engine = RewriteEngine(vocab, rules, sink=sink)
    engine(["water", "lava"])
    sink.warnings  # => ["Omitting unrecognized attribute `lava`."]

A sink is anything with ``log(message)`` and ``warn(message)`` methods.
"""

import sys
from typing import List, Optional, TextIO, Tuple


class DiagnosticSink:
    """Base sink. Subclasses override log() and warn()."""

    def log(self, message: str) -> None:
        raise NotImplementedError

    def warn(self, message: str) -> None:
        raise NotImplementedError


class NullSink(DiagnosticSink):
    """Discards every message."""

    def log(self, message: str) -> None:
        pass

    def warn(self, message: str) -> None:
        pass

    def __repr__(self) -> str:
        return "NullSink()"


class StreamSink(DiagnosticSink):
    """
    Console sink.

    Informational messages go to ``out``, warnings to ``err`` with a
    ``Warning:`` marker. Streams are resolved at call time when not given,
    so redirecting sys.stdout/sys.stderr after construction still works.
    """

    def __init__(self, out: Optional[TextIO] = None, err: Optional[TextIO] = None,
                 prefix: str = "[transmute] "):
        self._out = out
        self._err = err
        self.prefix = prefix

    def log(self, message: str) -> None:
        print(self.prefix + message, file=self._out or sys.stdout)

    def warn(self, message: str) -> None:
        print(self.prefix + "Warning: " + message, file=self._err or sys.stderr)

    def __repr__(self) -> str:
        return f"StreamSink(prefix={self.prefix!r})"


class CollectingSink(DiagnosticSink):
    """Records messages in memory as (level, message) pairs."""

    def __init__(self):
        self.records: List[Tuple[str, str]] = []

    def log(self, message: str) -> None:
        self.records.append(("log", message))

    def warn(self, message: str) -> None:
        self.records.append(("warn", message))

    @property
    def messages(self) -> List[str]:
        """Informational messages in emission order."""
        return [m for level, m in self.records if level == "log"]

    @property
    def warnings(self) -> List[str]:
        """Warnings in emission order."""
        return [m for level, m in self.records if level == "warn"]

    def clear(self) -> None:
        self.records = []

    def __len__(self) -> int:
        return len(self.records)

    def __repr__(self) -> str:
        return f"CollectingSink({len(self.records)} records)"


def resolve_sink(sink: Optional[DiagnosticSink]) -> DiagnosticSink:
    """Return ``sink`` or a NullSink when none was given."""
    return sink if sink is not None else NullSink()
