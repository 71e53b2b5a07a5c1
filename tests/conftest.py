"""
Pytest configuration and fixtures for Greek Anki Audio tests.

Test decks are built with genanki and handled with zipfile, so no test
depends on the system zip tools or on Google credentials.
"""

import json
import sqlite3
import zipfile
from pathlib import Path
from typing import Dict, List, Optional

import genanki
import pytest
from hypothesis import settings, Verbosity

from greek_anki_audio.errors import ArchiveToolError
from greek_anki_audio.models import SynthesisResult
from greek_anki_audio.speech.services import SpeechSynthesisService


# Configure Hypothesis for property-based testing
settings.register_profile("greek_anki_audio",
    max_examples=100,
    verbosity=Verbosity.normal,
    deadline=None
)
settings.load_profile("greek_anki_audio")


def pytest_configure(config):
    config.addinivalue_line("markers", "property: Hypothesis property-based test")


VOCAB_MODEL_ID = 1607392319
PLAIN_MODEL_ID = 1091735104

VOCAB_MODEL = genanki.Model(
    VOCAB_MODEL_ID,
    'Greek Vocabulary',
    fields=[
        {'name': 'Greek'},
        {'name': 'Greek Audio'},
        {'name': 'English'},
    ],
    templates=[
        {
            'name': 'Recognition',
            'qfmt': '{{Greek}}<br>{{Greek Audio}}',
            'afmt': '{{FrontSide}}<hr id="answer">{{English}}',
        },
    ],
)

PLAIN_MODEL = genanki.Model(
    PLAIN_MODEL_ID,
    'Plain Basic',
    fields=[
        {'name': 'Front'},
        {'name': 'Back'},
    ],
    templates=[
        {
            'name': 'Card 1',
            'qfmt': '{{Front}}',
            'afmt': '{{FrontSide}}<hr id="answer">{{Back}}',
        },
    ],
)


class FakeSpeechService(SpeechSynthesisService):
    """Synthesis service returning deterministic bytes and counting calls."""

    def __init__(self, fail_texts: List[str] = None, empty_texts: List[str] = None):
        self.fail_texts = fail_texts or []
        self.empty_texts = empty_texts or []
        self.calls: List[str] = []

    def synthesize(self, text: str) -> SynthesisResult:
        self.calls.append(text)
        if text in self.fail_texts:
            return SynthesisResult(text=text, success=False, error="Quota exceeded")
        if text in self.empty_texts:
            return SynthesisResult(text=text, audio=b"", success=True)
        return SynthesisResult(text=text, audio=f"ID3 {text}".encode("utf-8"), success=True)


class ZipArchiveTool:
    """Archive tool with the ShellArchiveTool interface, built on zipfile."""

    def __init__(self):
        self.extracted: List[Path] = []
        self.packed: List[Path] = []

    def extract(self, archive_path: Path, dest_dir: Path) -> None:
        if not Path(archive_path).is_file():
            raise ArchiveToolError([str(archive_path)], None, "Archive file does not exist")
        with zipfile.ZipFile(archive_path) as zf:
            zf.extractall(dest_dir)
        self.extracted.append(Path(archive_path))

    def pack(self, src_dir: Path, output_path: Path) -> None:
        src_dir = Path(src_dir)
        Path(output_path).parent.mkdir(parents=True, exist_ok=True)
        with zipfile.ZipFile(output_path, "w") as zf:
            for path in sorted(src_dir.rglob("*")):
                if path.is_file():
                    zf.write(path, path.relative_to(src_dir).as_posix())
        self.packed.append(Path(output_path))


def write_deck(path: Path, notes: List[List[str]], model: genanki.Model = VOCAB_MODEL,
               extra_notes: Optional[List[genanki.Note]] = None) -> Path:
    """Write an .apkg with one note per field list."""
    deck = genanki.Deck(2059400110, 'Greek')
    for fields in notes:
        deck.add_note(genanki.Note(model=model, fields=fields))
    for note in extra_notes or []:
        deck.add_note(note)
    genanki.Package(deck).write_to_file(str(path))
    return Path(path)


def extract_deck(archive: Path, dest: Path) -> Path:
    dest.mkdir(parents=True, exist_ok=True)
    with zipfile.ZipFile(archive) as zf:
        zf.extractall(dest)
    return dest


def repack_deck(src_dir: Path, archive: Path) -> Path:
    ZipArchiveTool().pack(src_dir, archive)
    return archive


def collection_path(directory: Path) -> Path:
    for name in ("collection.anki21", "collection.anki2"):
        if (directory / name).exists():
            return directory / name
    raise FileNotFoundError(f"No collection in {directory}")


def read_notes(directory: Path) -> Dict[int, List[str]]:
    conn = sqlite3.connect(str(collection_path(directory)))
    try:
        rows = conn.execute("SELECT id, flds FROM notes ORDER BY id").fetchall()
    finally:
        conn.close()
    return {note_id: flds.split("\x1f") for note_id, flds in rows}


def read_manifest(directory: Path) -> Dict[str, str]:
    with open(directory / "media", encoding="utf-8") as f:
        return json.load(f)


def execute_sql(directory: Path, sql: str, params=()) -> None:
    conn = sqlite3.connect(str(collection_path(directory)))
    try:
        conn.execute(sql, params)
        conn.commit()
    finally:
        conn.close()


@pytest.fixture
def speech_service():
    """Provide a fresh fake synthesis service."""
    return FakeSpeechService()


@pytest.fixture
def archive_tool():
    return ZipArchiveTool()


@pytest.fixture
def deck_dir(tmp_path):
    """An extracted three-note deck: σήμερα, καλημέρα and one with audio."""
    archive = write_deck(tmp_path / "source.apkg", [
        ["σήμερα", "", "today"],
        ["καλημέρα", "", "good morning"],
        ["ευχαριστώ", "[sound:foo.mp3]", "thank you"],
    ])
    return extract_deck(archive, tmp_path / "extracted")
