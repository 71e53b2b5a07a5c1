"""
Core data models for the Greek Anki Audio augmenter.
"""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import List, Optional, Tuple, Dict, Any

from .errors import ProcessingError


# Anki joins note fields with the unit separator character
FIELD_SEPARATOR = "\x1f"

# Card queue value Anki uses for suspended cards
SUSPENDED_QUEUE = -1


@dataclass(frozen=True)
class NoteModel:
    """Field schema of one Anki note type."""
    model_id: int
    name: str
    field_names: Tuple[str, ...]
    sort_field_index: int = 0

    def index_of(self, field_name: str) -> Optional[int]:
        """Return the position of a field, or None if the model lacks it."""
        try:
            return self.field_names.index(field_name)
        except ValueError:
            return None


@dataclass
class Note:
    """A note row: identifier, note type and decoded field values."""
    note_id: int
    model_id: int
    fields: List[str]

    @classmethod
    def from_row(cls, note_id: int, model_id: int, joined_fields: str) -> "Note":
        return cls(note_id=note_id, model_id=model_id,
                   fields=joined_fields.split(FIELD_SEPARATOR))

    def joined_fields(self) -> str:
        return FIELD_SEPARATOR.join(self.fields)


@dataclass(frozen=True)
class ResolvedPair:
    """A (source, pronunciation) pair resolved to field indices for one note type."""
    source_name: str
    pronunciation_name: str
    source_index: int
    pronunciation_index: int


@dataclass(frozen=True)
class ResolvedFields:
    """Field indices relevant to audio augmentation for one note type."""
    translation_index: Optional[int]
    pairs: Tuple[ResolvedPair, ...]


@dataclass
class SynthesisResult:
    """Result of one speech synthesis request."""
    text: str
    audio: bytes = b""
    success: bool = False
    error: Optional[str] = None


class NoteStatus(Enum):
    """What the mutation engine did with a note."""
    UPDATED = "updated"
    UNCHANGED = "unchanged"
    SKIPPED_NO_FIELDS = "skipped_no_fields"
    SKIPPED_SUSPENDED = "skipped_suspended"


@dataclass
class NoteOutcome:
    """Per-note result; recoverable problems travel in ``warnings``."""
    note_id: int
    status: NoteStatus
    audio_files: List[str] = field(default_factory=list)
    warnings: List[ProcessingError] = field(default_factory=list)


@dataclass
class MutationReport:
    """Aggregate result of one mutation pass."""
    outcomes: List[NoteOutcome] = field(default_factory=list)
    media_added: Dict[str, str] = field(default_factory=dict)

    def count(self, status: NoteStatus) -> int:
        return sum(1 for outcome in self.outcomes if outcome.status == status)

    @property
    def warnings(self) -> List[ProcessingError]:
        return [w for outcome in self.outcomes for w in outcome.warnings]

    def summary(self) -> Dict[str, Any]:
        return {
            'notes_visited': len(self.outcomes),
            'notes_updated': self.count(NoteStatus.UPDATED),
            'notes_unchanged': self.count(NoteStatus.UNCHANGED),
            'notes_skipped_no_fields': self.count(NoteStatus.SKIPPED_NO_FIELDS),
            'notes_skipped_suspended': self.count(NoteStatus.SKIPPED_SUSPENDED),
            'audio_files_added': len(self.media_added),
        }


@dataclass
class PipelineResult:
    """Outcome of a complete pipeline run."""
    success: bool
    output_path: Optional[Path] = None
    backup_path: Optional[Path] = None
    report: Optional[MutationReport] = None
    error: Optional[ProcessingError] = None
