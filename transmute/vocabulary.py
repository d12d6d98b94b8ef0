"""
Attribute vocabulary for TRANSMUTE.

The vocabulary maps attribute names to dense integer ids, 0-based and
assigned in the order names are first accepted. Its size fixes the length
of every frequency vector built against it.

Vocabulary format (.attributes files):
    # Comment
    water
    fire
    steam

One name per line, case-sensitive, no internal whitespace. Blank lines and
lines starting with # are ignored. Invalid or duplicate names are skipped
with a warning.
"""

from pathlib import Path
from typing import Dict, Iterable, Iterator, List, Optional, Tuple, Union

from .diagnostics import DiagnosticSink, resolve_sink


def should_ignore(line: str) -> bool:
    """True for blank lines and # comments."""
    stripped = line.strip()
    return not stripped or stripped.startswith('#')


def has_whitespace(name: str) -> bool:
    return any(c.isspace() for c in name)


class VocabularyTable:
    """
    Bidirectional mapping between attribute names and ids.

    Built once and never mutated afterwards, so a single table can be
    shared by any number of rule sets and engines.

    Examples:
        vocab = VocabularyTable(["water", "fire", "steam"])
        vocab.name_to_id("fire")   # => 1
        vocab.id_to_name(2)        # => "steam"
        vocab.name_to_id("lava")   # => None
    """

    __slots__ = ('_names', '_ids')

    def __init__(self, names: Iterable[str] = ()):
        """
        Build a table from names, strictly.

        Raises:
            ValueError: if a name is empty, contains whitespace, or repeats.
                Use from_lines() for the lenient skip-and-warn behaviour.
        """
        ordered: List[str] = []
        ids: Dict[str, int] = {}
        for name in names:
            if not name or has_whitespace(name):
                raise ValueError(f"Invalid attribute name: {name!r}")
            if name in ids:
                raise ValueError(f"Duplicate attribute name: {name!r}")
            ids[name] = len(ordered)
            ordered.append(name)
        self._names: Tuple[str, ...] = tuple(ordered)
        self._ids: Dict[str, int] = ids

    # ============================================================
    # Loading
    # ============================================================

    @classmethod
    def from_lines(cls, lines: Iterable[str],
                   sink: Optional[DiagnosticSink] = None) -> 'VocabularyTable':
        """
        Build a table from raw source lines.

        Blank and comment lines are skipped, the rest are trimmed. A name
        with internal whitespace or one already registered is reported to
        the sink and skipped. Never fails: no accepted names gives an empty
        vocabulary.
        """
        sink = resolve_sink(sink)
        accepted: List[str] = []
        seen = set()
        for line in lines:
            if should_ignore(line):
                continue
            name = line.strip()
            if has_whitespace(name):
                sink.warn(f"Invalid whitespace `{name}`.")
                continue
            if name in seen:
                sink.warn(f"Duplicate entry `{name}`.")
                continue
            seen.add(name)
            accepted.append(name)
        return cls(accepted)

    @classmethod
    def from_text(cls, text: str,
                  sink: Optional[DiagnosticSink] = None) -> 'VocabularyTable':
        """Build a table from newline-delimited text."""
        return cls.from_lines(text.splitlines(), sink=sink)

    @classmethod
    def from_file(cls, path: Union[str, Path],
                  sink: Optional[DiagnosticSink] = None) -> 'VocabularyTable':
        """Build a table from a vocabulary file."""
        return cls.from_text(Path(path).read_text(encoding="utf-8"), sink=sink)

    # ============================================================
    # Lookups
    # ============================================================

    def name_to_id(self, name: str) -> Optional[int]:
        """Id of ``name``, or None if it is not in the vocabulary."""
        return self._ids.get(name)

    def id_to_name(self, attr_id: int) -> str:
        """
        Name registered under ``attr_id``.

        Raises:
            IndexError: if attr_id is outside [0, attr_count).
        """
        if attr_id < 0 or attr_id >= len(self._names):
            raise IndexError(f"Attribute id out of range: {attr_id}")
        return self._names[attr_id]

    @property
    def attr_count(self) -> int:
        """Number of attributes, the length of every frequency vector."""
        return len(self._names)

    @property
    def names(self) -> Tuple[str, ...]:
        """Names in id order."""
        return self._names

    def zeros(self) -> List[int]:
        """A fresh all-zero frequency vector."""
        return [0] * len(self._names)

    def to_dict(self) -> Dict[str, int]:
        """Copy of the name -> id mapping."""
        return dict(self._ids)

    def __len__(self) -> int:
        return len(self._names)

    def __contains__(self, name: str) -> bool:
        return name in self._ids

    def __iter__(self) -> Iterator[str]:
        return iter(self._names)

    def __eq__(self, other):
        if isinstance(other, VocabularyTable):
            return self._names == other._names
        return False

    def __hash__(self):
        return hash(self._names)

    def __repr__(self) -> str:
        return f"VocabularyTable({len(self._names)} attributes)"
