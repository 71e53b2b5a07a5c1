"""
Greek to Latin transliteration for media filename stems.

The table is purpose-built for deck audio filenames: it is letter-based
rather than phonetic (η and ω keep their vowel shape as e and o) and only
a handful of digraphs are distinguished from the letter-by-letter reading.
"""

import logging
from types import MappingProxyType
from typing import Iterable, List, Mapping, Optional, Sequence, Tuple

from ..errors import TransliterationError


logger = logging.getLogger(__name__)

JOIN_MARKER = "_"

# Whitespace is detected with str.isspace(); these characters end a phrase
PHRASE_PUNCTUATION = frozenset(".,;:!?\u037e\u0387\u00b7\u2026")

# Declared in priority order; digraphs must be tried before their letters
DIGRAPHS: Tuple[Tuple[str, str], ...] = (
    ("ου", "ou"), ("ού", "ou"),
    ("αυ", "av"), ("αύ", "av"),
    ("ευ", "ev"), ("εύ", "ev"),
    ("ηυ", "ev"), ("ηύ", "ev"),
    ("γγ", "ng"), ("γχ", "nch"), ("γξ", "nx"),
)

LETTERS: Tuple[Tuple[str, str], ...] = (
    ("α", "a"), ("ά", "a"),
    ("β", "v"),
    ("γ", "g"),
    ("δ", "d"),
    ("ε", "e"), ("έ", "e"),
    ("ζ", "z"),
    ("η", "e"), ("ή", "e"),
    ("θ", "th"),
    ("ι", "i"), ("ί", "i"), ("ϊ", "i"), ("ΐ", "i"),
    ("κ", "k"),
    ("λ", "l"),
    ("μ", "m"),
    ("ν", "n"),
    ("ξ", "x"),
    ("ο", "o"), ("ό", "o"),
    ("π", "p"),
    ("ρ", "r"),
    ("σ", "s"), ("ς", "s"),
    ("τ", "t"),
    ("υ", "y"), ("ύ", "y"), ("ϋ", "y"), ("ΰ", "y"),
    ("φ", "f"),
    ("χ", "ch"),
    ("ψ", "ps"),
    ("ω", "o"), ("ώ", "o"),
)

# Characters that commonly appear in Greek deck fields and map to themselves
PASSTHROUGH: Tuple[Tuple[str, str], ...] = tuple(
    (char, char) for char in "abcdefghijklmnopqrstuvwxyz0123456789-"
) + (("'", ""), ("\u2019", ""))

BASE_TABLE: Tuple[Tuple[str, str], ...] = DIGRAPHS + LETTERS + PASSTHROUGH


def build_table(base_entries: Iterable[Tuple[str, str]]) -> Tuple[Tuple[str, str], ...]:
    """
    Expand base entries with their case variants.

    Every entry gets an uppercase counterpart of the same length: letters
    map to a capitalized target ("Θ" -> "Th"), digraphs to an uppercased one
    ("ΟΥ" -> "OU") plus a capitalized one ("Ου" -> "Ou"). The first
    declaration of a source wins, and the result is ordered longest source first with
    declaration order preserved among equal lengths.
    """
    expanded: List[Tuple[str, str]] = []
    seen = set()

    def add(source: str, target: str) -> None:
        if source not in seen:
            seen.add(source)
            expanded.append((source, target))

    for source, target in base_entries:
        add(source, target)
        # Accented capitals without a precomposed form decompose; skip those
        if len(source.upper()) == len(source):
            upper_target = target.upper() if len(source) > 1 else target[:1].upper() + target[1:]
            add(source.upper(), upper_target)
        if len(source) == 2:
            add(source[0].upper() + source[1:], target[:1].upper() + target[1:])

    return tuple(sorted(expanded, key=lambda entry: -len(entry[0])))


class Transliterator:
    """
    Converts normalized Greek text into a Latin filename stem.

    Whitespace and phrase punctuation become a single join marker; any
    other character must have a table entry or the whole run is aborted.
    """

    def __init__(self, entries: Optional[Sequence[Tuple[str, str]]] = None,
                 join_marker: str = JOIN_MARKER):
        self.entries = tuple(entries) if entries is not None else build_table(BASE_TABLE)
        self.join_marker = join_marker
        self._lookup: Mapping[str, str] = MappingProxyType(dict(self.entries))
        self._max_length = max((len(source) for source, _ in self.entries), default=1)

    def transliterate(self, text: str) -> str:
        """
        Transliterate text, failing fast on unmapped characters.

        Args:
            text: Normalized Greek text

        Returns:
            Latin representation with collapsed join markers and no
            leading or trailing marker

        Raises:
            TransliterationError: If a character has no table entry
        """
        parts: List[str] = []
        i = 0

        while i < len(text):
            char = text[i]
            if char.isspace() or char in PHRASE_PUNCTUATION:
                if parts and parts[-1] != self.join_marker:
                    parts.append(self.join_marker)
                i += 1
                continue

            for length in range(min(self._max_length, len(text) - i), 0, -1):
                target = self._lookup.get(text[i:i + length])
                if target is not None:
                    if target:
                        parts.append(target)
                    i += length
                    break
            else:
                logger.error(f"Untransliterable character {char!r} in {text!r}")
                raise TransliterationError(char, text, i)

        if parts and parts[-1] == self.join_marker:
            parts.pop()

        return "".join(parts)


_DEFAULT_TRANSLITERATOR = Transliterator()


def transliterate(text: str) -> str:
    """Transliterate with the default Greek table."""
    return _DEFAULT_TRANSLITERATOR.transliterate(text)
