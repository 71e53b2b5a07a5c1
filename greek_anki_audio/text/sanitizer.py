"""
Filename sanitizing for Anki media files.
"""

from ..config import Config
from .transliterator import transliterate


# Characters AnkiDroid and the desktop client mishandle in media names
UNSAFE_FILENAME_CHARS = frozenset(" .?!\\/\u00a0")

_STRIP_TABLE = str.maketrans("", "", "".join(UNSAFE_FILENAME_CHARS))


def sanitize(text: str) -> str:
    """Strip characters that are unsafe in portable media filenames."""
    return text.translate(_STRIP_TABLE)


def audio_filename(decoded_text: str, extension: str = Config.AUDIO_EXTENSION) -> str:
    """
    Build the media filename for a piece of Greek text.

    Args:
        decoded_text: Normalized text with markup entities decoded

    Returns:
        Sanitized transliteration with the audio extension appended
    """
    return sanitize(transliterate(decoded_text)) + extension
