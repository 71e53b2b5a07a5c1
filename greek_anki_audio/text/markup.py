"""
Helpers for Anki field markup: sound references and HTML.
"""

import html
import re


# A pronunciation field that already references an mp3 has been processed
SOUND_REF_PATTERN = re.compile(r"\[sound:[^\]\[]+?\.mp3\]", re.IGNORECASE)

_COMMENT_PATTERN = re.compile(r"<!--.*?-->", re.DOTALL)
_STYLE_SCRIPT_PATTERN = re.compile(r"<(style|script)\b.*?</\1>", re.DOTALL | re.IGNORECASE)
_BREAK_TAG_PATTERN = re.compile(
    r"</?(?:br|div|p|li|ul|ol|table|tr|td|th|h[1-6]|hr|blockquote)\b[^>]*>", re.IGNORECASE)
_TAG_PATTERN = re.compile(r"<[^>]+>")
_WHITESPACE_PATTERN = re.compile(r"\s+")
_IMG_PATTERN = re.compile(r"<img[^>]+src=[\"']?([^\"'>]+)[\"']?[^>]*>", re.IGNORECASE)
_SOUND_PATTERN = re.compile(r"\[sound:[^\]]+\]")


def has_audio(field_value: str) -> bool:
    return SOUND_REF_PATTERN.search(field_value) is not None


def sound_reference(filename: str) -> str:
    return f"[sound:{filename}]"


def _remove_hidden(text: str) -> str:
    text = _COMMENT_PATTERN.sub("", text)
    return _STYLE_SCRIPT_PATTERN.sub("", text)


def strip_html(text: str) -> str:
    """
    Remove tags and decode entities, leaving the text a reader would see.

    Line breaks and block elements separate words, so they become a space.
    Inline tags such as <b> can sit inside a word and are dropped outright.
    Whitespace runs collapse to one space and the ends are trimmed.
    """
    text = _remove_hidden(text)
    text = _BREAK_TAG_PATTERN.sub(" ", text)
    text = _TAG_PATTERN.sub("", text)
    return _WHITESPACE_PATTERN.sub(" ", html.unescape(text)).strip()


def strip_html_media(text: str) -> str:
    """
    Strip markup the way Anki does for the sort field and checksum.

    Image filenames are kept, sound references dropped, and every tag is
    removed without a separator.
    """
    text = _IMG_PATTERN.sub(r" \1 ", text)
    text = _SOUND_PATTERN.sub("", text)
    text = _TAG_PATTERN.sub("", _remove_hidden(text))
    return html.unescape(text)
