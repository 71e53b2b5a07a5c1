"""
Access to the SQLite note store inside an extracted Anki archive.

The schema blob in the ``col`` table is decoded once into NoteModel
records; notes are read in bulk and updated inside a single transaction.
"""

import hashlib
import json
import logging
import sqlite3
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Dict, List, Optional

from ..errors import SchemaMismatchError
from ..models import Note, NoteModel, SUSPENDED_QUEUE
from ..text.markup import strip_html, strip_html_media


logger = logging.getLogger(__name__)

# Newer exports keep the real collection in .anki21 next to a legacy stub
COLLECTION_FILENAMES = ("collection.anki21", "collection.anki2")


def find_collection(directory: Path) -> Path:
    """Locate the note database in an extracted archive directory."""
    for name in COLLECTION_FILENAMES:
        candidate = Path(directory) / name
        if candidate.exists():
            return candidate
    raise SchemaMismatchError(
        "No note database found in archive",
        details=f"Expected one of {', '.join(COLLECTION_FILENAMES)} in {directory}",
    )


def decode_models(models_json: str) -> Dict[int, NoteModel]:
    """
    Decode the note type schema blob into typed models.

    Raises:
        SchemaMismatchError: If the blob is not the expected JSON structure
    """
    try:
        data = json.loads(models_json)
        models = {}
        for key, raw in data.items():
            fields = sorted(raw["flds"], key=lambda f: f.get("ord", 0))
            model = NoteModel(
                model_id=int(raw.get("id", key)),
                name=str(raw.get("name", "")),
                field_names=tuple(str(f["name"]) for f in fields),
                sort_field_index=int(raw.get("sortf", 0)),
            )
            models[model.model_id] = model
    except (ValueError, TypeError, KeyError, AttributeError) as e:
        raise SchemaMismatchError("Note type schema could not be decoded", details=str(e))

    logger.debug(f"Decoded {len(models)} note types")
    return models


def field_checksum(text: str) -> int:
    """Checksum Anki keeps of a note's first field for duplicate detection."""
    digest = hashlib.sha1(strip_html_media(text).encode("utf-8")).hexdigest()
    return int(digest[:8], 16)


class NoteStore:
    """
    Note database of one extracted archive.

    Use as a context manager so the connection is closed before the
    directory is packed or deleted.
    """

    def __init__(self, path: Path):
        self.path = Path(path)
        self._conn = sqlite3.connect(str(self.path))
        logger.debug(f"Opened note store {self.path}")

    @classmethod
    def open_in(cls, directory: Path) -> "NoteStore":
        return cls(find_collection(directory))

    def __enter__(self) -> "NoteStore":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def close(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    def load_models(self) -> Dict[int, NoteModel]:
        """Read and decode the single collection metadata row."""
        rows = self._conn.execute("SELECT models FROM col").fetchall()
        if len(rows) != 1:
            raise SchemaMismatchError(
                "Collection metadata is inconsistent",
                details=f"Expected exactly one row in col table, found {len(rows)}",
                context={'row_count': len(rows)},
            )
        return decode_models(rows[0][0])

    def load_notes(self) -> List[Note]:
        rows = self._conn.execute("SELECT id, mid, flds FROM notes ORDER BY id").fetchall()
        return [Note.from_row(note_id, model_id, flds) for note_id, model_id, flds in rows]

    def note_count(self) -> int:
        return self._conn.execute("SELECT count(*) FROM notes").fetchone()[0]

    def card_queues(self, note_id: int) -> List[int]:
        rows = self._conn.execute("SELECT queue FROM cards WHERE nid = ?", (note_id,)).fetchall()
        return [queue for (queue,) in rows]

    def is_suspended(self, note_id: int) -> bool:
        """True when the note has cards and every one of them is suspended."""
        queues = self.card_queues(note_id)
        return bool(queues) and all(queue == SUSPENDED_QUEUE for queue in queues)

    def update_note(self, note: Note, model: NoteModel) -> None:
        """Persist a note's fields; values are bound, never interpolated."""
        sort_index = model.sort_field_index if model.sort_field_index < len(note.fields) else 0
        self._conn.execute(
            "UPDATE notes SET flds = ?, sfld = ?, csum = ?, mod = ?, usn = -1 WHERE id = ?",
            (
                note.joined_fields(),
                strip_html_media(note.fields[sort_index]),
                field_checksum(note.fields[0]),
                int(time.time()),
                note.note_id,
            ),
        )

    def note_labels(self, models: Dict[int, NoteModel],
                    label_field: Optional[str] = None) -> Dict[int, str]:
        """
        Map every note id to short human-readable content.

        Uses ``label_field`` when the note's model has it, otherwise the
        model's sort field.
        """
        labels = {}
        for note in self.load_notes():
            model = models.get(note.model_id)
            index = None
            if model is not None:
                index = model.index_of(label_field) if label_field else None
                if index is None:
                    index = model.sort_field_index
            if index is None or index >= len(note.fields):
                index = 0
            labels[note.note_id] = strip_html(note.fields[index])
        return labels

    @contextmanager
    def transaction(self):
        """Commit everything done inside the block, or nothing at all."""
        try:
            yield self
        except BaseException:
            self._conn.rollback()
            logger.warning("Note store transaction rolled back")
            raise
        else:
            self._conn.commit()
            logger.debug("Note store transaction committed")
