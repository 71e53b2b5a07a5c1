"""
Repair of mis-encoded and decomposed Greek characters.

Anki fields pasted from different sources mix polytonic code points,
combining accents and look-alike symbols. Everything downstream (speech
input, transliteration table) expects the monotonic precomposed forms.
"""

import re
import unicodedata
from types import MappingProxyType
from typing import Dict, FrozenSet, Mapping


# Escaped markup entities such as &nbsp; or &#769; are never remapped
ENTITY_PATTERN = re.compile(r"&[#A-Za-z0-9]+;")

_COMBINING_ACUTE = ("\u0301", "\u0341")
_COMBINING_DIAERESIS = "\u0308"
_COMBINING_DIALYTIKA_TONOS = "\u0344"

_GREEK_VOWELS = "αεηιουωΑΕΗΙΟΥΩ"

# Symbols that are not Greek letters but are routinely typed in their place
_LOOKALIKES = {
    "\u00b5": "\u03bc",  # micro sign
    "\u037e": ";",  # greek question mark
    "\u0387": "\u00b7",  # ano teleia
}


def _compose(sequence: str) -> str:
    return unicodedata.normalize("NFC", sequence)


def _build_remap_table() -> Dict[str, str]:
    table: Dict[str, str] = {}

    def add(source: str, target: str) -> None:
        if len(target) == 1 and source != target:
            table.setdefault(source, target)

    for vowel in _GREEK_VOWELS:
        for acute in _COMBINING_ACUTE:
            add(vowel + acute, _compose(vowel + "\u0301"))
        with_diaeresis = _compose(vowel + _COMBINING_DIAERESIS)
        add(vowel + _COMBINING_DIAERESIS, with_diaeresis)
        for acute in _COMBINING_ACUTE:
            add(vowel + _COMBINING_DIAERESIS + acute,
                _compose(vowel + _COMBINING_DIAERESIS + "\u0301"))
            add(with_diaeresis + acute, _compose(with_diaeresis + "\u0301"))
        add(vowel + _COMBINING_DIALYTIKA_TONOS,
            _compose(vowel + _COMBINING_DIAERESIS + "\u0301"))

    # Polytonic oxia letters have monotonic tonos equivalents
    for code_point in range(0x1F00, 0x2000):
        char = chr(code_point)
        composed = _compose(char)
        if composed != char and unicodedata.category(composed) in ("Ll", "Lu"):
            add(char, composed)

    for source, target in _LOOKALIKES.items():
        add(source, target)

    return table


REMAP_TABLE: Mapping[str, str] = MappingProxyType(_build_remap_table())
_MAX_SOURCE_LENGTH = max(len(source) for source in REMAP_TABLE)


def entity_positions(text: str) -> FrozenSet[int]:
    """Return every character position covered by an escaped markup entity."""
    positions = set()
    for match in ENTITY_PATTERN.finditer(text):
        positions.update(range(match.start(), match.end()))
    return frozenset(positions)


def normalize(text: str) -> str:
    """
    Replace garbled or decomposed Greek sequences by their canonical form.

    Args:
        text: Raw field content, possibly containing markup entities

    Returns:
        Text with remapped characters; entity spans and unknown
        characters are passed through verbatim
    """
    protected = entity_positions(text)
    result = []
    i = 0

    while i < len(text):
        if i in protected:
            result.append(text[i])
            i += 1
            continue

        longest = min(_MAX_SOURCE_LENGTH, len(text) - i)
        for length in range(longest, 0, -1):
            if any(pos in protected for pos in range(i + 1, i + length)):
                continue
            replacement = REMAP_TABLE.get(text[i:i + length])
            if replacement is not None:
                result.append(replacement)
                i += length
                break
        else:
            result.append(text[i])
            i += 1

    return "".join(result)
