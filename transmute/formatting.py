"""
Frequency vector helpers.

A frequency vector holds one non-negative count per vocabulary attribute,
indexed by attribute id. These helpers are pure and used both for
diagnostics and for rule validation.
"""

from typing import List, Sequence, TYPE_CHECKING

if TYPE_CHECKING:
    from .vocabulary import VocabularyTable

FreqType = Sequence[int]


def freq_to_list(freq: FreqType, vocabulary: "VocabularyTable") -> List[str]:
    """
    List the non-zero slots of a vector as "name:count" strings.

    Slots are visited in ascending id order, so the listing follows the
    vocabulary's registration order regardless of how the counts arose.

    Examples:
        freq_to_list([1, 0, 2], vocab)  # => ["water:1", "steam:2"]
    """
    return [f"{vocabulary.id_to_name(i)}:{count}"
            for i, count in enumerate(freq) if count > 0]


def freq_to_string(freq: FreqType, vocabulary: "VocabularyTable") -> str:
    """Comma-joined form of freq_to_list()."""
    return ", ".join(freq_to_list(freq, vocabulary))


def freq_equal(x: FreqType, y: FreqType) -> bool:
    """Component-wise equality. Vectors of different length are unequal."""
    if len(x) != len(y):
        return False
    return all(a == b for a, b in zip(x, y))


def is_zero(freq: FreqType) -> bool:
    """True if every slot is zero (an empty vector counts as zero)."""
    return all(count == 0 for count in freq)


def dominates(state: FreqType, required: FreqType) -> bool:
    """True if ``state`` holds at least ``required`` of every attribute."""
    for have, need in zip(state, required):
        if have < need:
            return False
    return True
