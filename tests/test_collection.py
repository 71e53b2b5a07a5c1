"""
Tests for note store access and the media manifest.
"""

import json

import pytest

from greek_anki_audio.anki.collection import NoteStore, decode_models, field_checksum, find_collection
from greek_anki_audio.anki.media import MediaManifest
from greek_anki_audio.errors import ErrorCategory, SchemaMismatchError
from greek_anki_audio.models import FIELD_SEPARATOR, Note, NoteModel

from conftest import VOCAB_MODEL_ID, execute_sql, read_notes


class TestDecodeModels:
    """Test decoding of the note type schema blob."""

    def test_fields_ordered_by_ord(self):
        blob = json.dumps({
            "42": {
                "id": 42,
                "name": "Vocab",
                "sortf": 1,
                "flds": [{"name": "Back", "ord": 1}, {"name": "Front", "ord": 0}],
            }
        })

        models = decode_models(blob)

        assert models[42] == NoteModel(42, "Vocab", ("Front", "Back"), 1)
        assert models[42].index_of("Back") == 1
        assert models[42].index_of("Missing") is None

    def test_string_ids_are_accepted(self):
        blob = json.dumps({"7": {"id": "7", "name": "X", "flds": [{"name": "A", "ord": 0}]}})
        assert list(decode_models(blob)) == [7]

    @pytest.mark.parametrize("blob", ["not json", "[]", '{"1": {"name": "no fields"}}'])
    def test_malformed_blob_raises(self, blob):
        with pytest.raises(SchemaMismatchError) as exc_info:
            decode_models(blob)
        assert exc_info.value.processing_error.category == ErrorCategory.SCHEMA


class TestNoteStore:
    """Test reading and updating an extracted collection."""

    def test_find_collection_missing(self, tmp_path):
        with pytest.raises(SchemaMismatchError):
            find_collection(tmp_path)

    def test_load_models_and_notes(self, deck_dir):
        with NoteStore.open_in(deck_dir) as store:
            models = store.load_models()
            notes = store.load_notes()

            assert models[VOCAB_MODEL_ID].field_names == ("Greek", "Greek Audio", "English")
            assert [note.fields[0] for note in notes] == ["σήμερα", "καλημέρα", "ευχαριστώ"]
            assert store.note_count() == 3

    def test_inconsistent_metadata_raises(self, deck_dir):
        execute_sql(deck_dir, "DELETE FROM col")

        with NoteStore.open_in(deck_dir) as store:
            with pytest.raises(SchemaMismatchError) as exc_info:
                store.load_models()

        assert exc_info.value.processing_error.context['row_count'] == 0

    def test_suspension_requires_every_card_suspended(self, deck_dir):
        with NoteStore.open_in(deck_dir) as store:
            note_id = store.load_notes()[0].note_id
            assert not store.is_suspended(note_id)

        execute_sql(deck_dir, "UPDATE cards SET queue = -1 WHERE nid = ?", (note_id,))

        with NoteStore.open_in(deck_dir) as store:
            assert store.is_suspended(note_id)
            assert not store.is_suspended(-12345)

    def test_update_binds_values_with_quotes(self, deck_dir):
        with NoteStore.open_in(deck_dir) as store:
            models = store.load_models()
            note = store.load_notes()[0]
            note.fields[2] = "it's \"today\""
            with store.transaction():
                store.update_note(note, models[note.model_id])

        fields = read_notes(deck_dir)[note.note_id]
        assert fields[2] == "it's \"today\""

    def test_update_refreshes_sort_field_and_checksum(self, deck_dir):
        with NoteStore.open_in(deck_dir) as store:
            models = store.load_models()
            note = store.load_notes()[0]
            note.fields[0] = "<b>αύριο</b>"
            with store.transaction():
                store.update_note(note, models[note.model_id])

            row = store._conn.execute(
                "SELECT sfld, csum, usn FROM notes WHERE id = ?", (note.note_id,)).fetchone()

        assert row[0] == "αύριο"
        assert row[1] == field_checksum("<b>αύριο</b>")
        assert row[2] == -1

    def test_transaction_rolls_back_on_error(self, deck_dir):
        with NoteStore.open_in(deck_dir) as store:
            models = store.load_models()
            note = store.load_notes()[0]
            note.fields[0] = "changed"
            with pytest.raises(RuntimeError):
                with store.transaction():
                    store.update_note(note, models[note.model_id])
                    raise RuntimeError("boom")

        assert read_notes(deck_dir)[note.note_id][0] == "σήμερα"

    def test_note_labels_prefer_label_field(self, deck_dir):
        with NoteStore.open_in(deck_dir) as store:
            models = store.load_models()
            labels = store.note_labels(models, "English")
            fallback = store.note_labels(models, "Nonexistent")

        assert sorted(labels.values()) == ["good morning", "thank you", "today"]
        assert sorted(fallback.values()) == ["ευχαριστώ", "καλημέρα", "σήμερα"]


class TestNote:
    """Test note row decoding."""

    def test_fields_round_trip_through_separator(self):
        note = Note.from_row(1, 2, FIELD_SEPARATOR.join(["a", "", "c"]))
        assert note.fields == ["a", "", "c"]
        assert note.joined_fields() == "a\x1f\x1fc"


class TestMediaManifest:
    """Test media manifest loading and key allocation."""

    def test_missing_manifest_is_empty(self, tmp_path):
        manifest = MediaManifest.load(tmp_path)
        assert manifest.entries == {}
        assert manifest.allocate_key() == "0"

    def test_keys_continue_after_largest(self, tmp_path):
        (tmp_path / "media").write_text(json.dumps({"0": "a.mp3", "7": "b.mp3"}), encoding="utf-8")
        manifest = MediaManifest.load(tmp_path)

        key = manifest.add(b"audio", "semera.mp3")

        assert key == "8"
        assert (tmp_path / "8").read_bytes() == b"audio"
        assert manifest.added == {"8": "semera.mp3"}
        assert manifest.allocate_key() == "9"

    def test_save_writes_all_entries(self, tmp_path):
        (tmp_path / "media").write_text(json.dumps({"0": "a.mp3"}), encoding="utf-8")
        manifest = MediaManifest.load(tmp_path)
        manifest.add(b"x", "kalimera.mp3")
        manifest.save()

        with open(tmp_path / "media", encoding="utf-8") as f:
            assert json.load(f) == {"0": "a.mp3", "1": "kalimera.mp3"}

    @pytest.mark.parametrize("content", ["{broken", "[1, 2]", '{"0": 5}'])
    def test_malformed_manifest_raises(self, tmp_path, content):
        (tmp_path / "media").write_text(content, encoding="utf-8")
        with pytest.raises(SchemaMismatchError):
            MediaManifest.load(tmp_path)
