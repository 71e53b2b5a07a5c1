"""
Note mutation: adds synthesized pronunciation audio to note fields.

All notes are processed inside one note-store transaction. Conditions that
only affect one note (no matching fields, suspended cards) are returned in
the note's outcome; anything else raises and rolls the transaction back.
"""

import logging
from typing import Dict, Optional

from ..config import Config, FieldPairConfig
from ..errors import SchemaMismatchError, field_resolution_warning
from ..models import (
    Note, NoteModel, NoteOutcome, NoteStatus, MutationReport,
    ResolvedFields, ResolvedPair,
)
from ..progress import ProcessingStage, ProgressTracker
from ..speech.cache import SpeechCache
from ..text.markup import has_audio, sound_reference, strip_html
from ..text.normalizer import normalize
from ..text.sanitizer import sanitize
from ..text.transliterator import Transliterator
from .backup import BackupIntegrityGuard
from .collection import NoteStore
from .media import MediaManifest


logger = logging.getLogger(__name__)


def resolve_fields(model: NoteModel, config: FieldPairConfig) -> ResolvedFields:
    """Resolve configured field names to indices in a note type."""
    pairs = []
    for source_name, pronunciation_name in config.pairs:
        source_index = model.index_of(source_name)
        pronunciation_index = model.index_of(pronunciation_name)
        if source_index is None or pronunciation_index is None:
            continue
        pairs.append(ResolvedPair(source_name, pronunciation_name,
                                  source_index, pronunciation_index))
    return ResolvedFields(
        translation_index=model.index_of(config.translation_field),
        pairs=tuple(pairs),
    )


class NoteMutationEngine:
    """
    Applies audio augmentation to every note of a note store.
    """

    def __init__(self, store: NoteStore, manifest: MediaManifest,
                 speech_cache: SpeechCache,
                 fields: Optional[FieldPairConfig] = None,
                 transliterator: Optional[Transliterator] = None,
                 guard: Optional[BackupIntegrityGuard] = None,
                 progress: Optional[ProgressTracker] = None,
                 extension: str = Config.AUDIO_EXTENSION):
        self.store = store
        self.manifest = manifest
        self.speech_cache = speech_cache
        self.fields = fields or FieldPairConfig()
        self.transliterator = transliterator or Transliterator()
        self.guard = guard
        self.progress = progress
        self.extension = extension
        self._resolved: Dict[int, ResolvedFields] = {}

    def run(self) -> MutationReport:
        """
        Process every note in one transaction.

        Returns:
            MutationReport with one outcome per visited note

        Raises:
            GreekAnkiAudioError: Any fatal condition; nothing is committed
        """
        models = self.store.load_models()
        notes = self.store.load_notes()
        report = MutationReport()
        logger.info(f"Processing {len(notes)} notes across {len(models)} note types")

        with self.store.transaction():
            for i, note in enumerate(notes, 1):
                outcome = self.process_note(note, models)
                report.outcomes.append(outcome)
                if self.progress:
                    self.progress.advance(
                        ProcessingStage.NOTE_MUTATION, i,
                        current_item=f"Note {note.note_id}: {outcome.status.value}")

        report.media_added = dict(self.manifest.added)
        logger.info(f"Mutation finished: {report.summary()}")
        return report

    def process_note(self, note: Note, models: Dict[int, NoteModel]) -> NoteOutcome:
        if self.guard is not None:
            self.guard.mark_visited(note.note_id)

        model = models.get(note.model_id)
        if model is None:
            raise SchemaMismatchError(
                f"Note {note.note_id} references unknown note type {note.model_id}",
                context={'note_id': note.note_id, 'model_id': note.model_id},
            )

        resolved = self._resolve(model)
        if not resolved.pairs:
            warning = field_resolution_warning(note.note_id, model.name, model.field_names)
            logger.warning(f"[{warning.error_code}] {warning.message}")
            return NoteOutcome(note.note_id, NoteStatus.SKIPPED_NO_FIELDS, warnings=[warning])

        if self.store.is_suspended(note.note_id):
            logger.info(f"Skipping note {note.note_id}: all cards suspended")
            return NoteOutcome(note.note_id, NoteStatus.SKIPPED_SUSPENDED)

        if len(note.fields) != len(model.field_names):
            raise SchemaMismatchError(
                f"Note {note.note_id} has {len(note.fields)} fields, "
                f"note type '{model.name}' defines {len(model.field_names)}",
                context={'note_id': note.note_id, 'model_id': model.model_id},
            )

        original = list(note.fields)
        outcome = NoteOutcome(note.note_id, NoteStatus.UNCHANGED)
        for pair in resolved.pairs:
            filename = self._process_pair(note, pair)
            if filename:
                outcome.audio_files.append(filename)

        if note.fields != original:
            self.store.update_note(note, model)
            outcome.status = NoteStatus.UPDATED
            label = note.fields[resolved.translation_index] if resolved.translation_index is not None else ""
            logger.info(f"Updated note {note.note_id} {label!r}: {', '.join(outcome.audio_files) or 'normalized'}")

        return outcome

    def _resolve(self, model: NoteModel) -> ResolvedFields:
        if model.model_id not in self._resolved:
            self._resolved[model.model_id] = resolve_fields(model, self.fields)
        return self._resolved[model.model_id]

    def _process_pair(self, note: Note, pair: ResolvedPair) -> Optional[str]:
        """Normalize one source field and fill its pronunciation field; return the new filename."""
        source = normalize(note.fields[pair.source_index])
        note.fields[pair.source_index] = source

        if has_audio(note.fields[pair.pronunciation_index]):
            logger.debug(f"Note {note.note_id}: {pair.pronunciation_name} already has audio")
            return None

        text = strip_html(source)
        if not text:
            logger.debug(f"Note {note.note_id}: {pair.source_name} is empty")
            return None

        # Transliterate before synthesizing so a bad character costs no API call
        stem = sanitize(self.transliterator.transliterate(text))
        if not stem:
            logger.warning(f"Note {note.note_id}: {text!r} yields an empty filename; skipping")
            return None
        filename = stem + self.extension

        audio = self.speech_cache.fetch(text)
        self.manifest.add(audio, filename)
        note.fields[pair.pronunciation_index] = sound_reference(filename)
        return filename
