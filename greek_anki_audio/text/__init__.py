"""
Text preparation for speech input and media filenames.

This package normalizes garbled Greek text, transliterates it to Latin
script and sanitizes the result for use as an Anki media filename.
"""

from .normalizer import normalize, entity_positions
from .transliterator import Transliterator, transliterate, build_table, JOIN_MARKER
from .sanitizer import sanitize, audio_filename
from .markup import has_audio, sound_reference, strip_html, strip_html_media

__all__ = [
    'normalize',
    'entity_positions',
    'Transliterator',
    'transliterate',
    'build_table',
    'JOIN_MARKER',
    'sanitize',
    'audio_filename',
    'has_audio',
    'sound_reference',
    'strip_html',
    'strip_html_media',
]
