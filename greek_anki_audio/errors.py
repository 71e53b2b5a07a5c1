"""
Error handling system for the Greek Anki Audio augmenter.

This module provides centralized error definitions and actionable error
messages for all pipeline stages. Fatal conditions are raised as exceptions
carrying a ProcessingError record; recoverable per-note conditions are
returned as ProcessingError values with WARNING severity.
"""

import logging
from enum import Enum
from typing import List, Optional, Dict, Any, Iterable, Tuple
from dataclasses import dataclass, field


class ErrorSeverity(Enum):
    """Error severity levels."""
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class ErrorCategory(Enum):
    """Categories of errors that can occur during a pipeline run."""
    ARCHIVE = "archive"
    SCHEMA = "schema"
    FIELD_RESOLUTION = "field_resolution"
    TRANSLITERATION = "transliteration"
    SYNTHESIS = "synthesis"
    BACKUP_INTEGRITY = "backup_integrity"
    FILE_SYSTEM = "file_system"


@dataclass
class ProcessingError:
    """Represents a processing error with context and guidance."""
    category: ErrorCategory
    severity: ErrorSeverity
    message: str
    details: str
    suggested_actions: List[str]
    error_code: str
    context: Dict[str, Any] = field(default_factory=dict)

    @property
    def is_fatal(self) -> bool:
        """Whether this error must unwind the whole run."""
        return self.severity in (ErrorSeverity.ERROR, ErrorSeverity.CRITICAL)


class GreekAnkiAudioError(Exception):
    """Base exception for fatal pipeline errors."""

    def __init__(self, processing_error: ProcessingError):
        self.processing_error = processing_error
        super().__init__(processing_error.message)


class ArchiveToolError(GreekAnkiAudioError):
    """Raised when the archive extraction or pack command fails."""

    def __init__(self, command: List[str], returncode: Optional[int], stderr: str = ""):
        self.command = command
        self.returncode = returncode
        super().__init__(ProcessingError(
            category=ErrorCategory.ARCHIVE,
            severity=ErrorSeverity.ERROR,
            message=f"Archive command failed: {command[0] if command else '?'}",
            details=f"Command {' '.join(command)} exited with {returncode}: {stderr.strip()}",
            suggested_actions=[
                "Check that 'zip' and 'unzip' are installed and on PATH",
                "Verify the archive is a valid .apkg file",
                "Ensure the output directory is writable",
            ],
            error_code="ARCHIVE_001",
            context={'command': command, 'returncode': returncode},
        ))


class SchemaMismatchError(GreekAnkiAudioError):
    """Raised when the note store's schema cannot be trusted."""

    def __init__(self, message: str, details: str = "", context: Dict[str, Any] = None):
        super().__init__(ProcessingError(
            category=ErrorCategory.SCHEMA,
            severity=ErrorSeverity.CRITICAL,
            message=message,
            details=details,
            suggested_actions=[
                "Open the deck in Anki and run Tools > Check Database",
                "Re-export the deck and try again",
            ],
            error_code="SCHEMA_001",
            context=context or {},
        ))


class TransliterationError(GreekAnkiAudioError):
    """Raised when a character has no transliteration entry."""

    def __init__(self, character: str, context: str, position: int = -1):
        self.character = character
        self.context = context
        self.position = position
        super().__init__(ProcessingError(
            category=ErrorCategory.TRANSLITERATION,
            severity=ErrorSeverity.ERROR,
            message=f"No transliteration for character {character!r} (U+{ord(character):04X})",
            details=f"Found at position {position} in {context!r}",
            suggested_actions=[
                "Fix the field content in Anki",
                "Add the character to the transliteration table if it is legitimate",
            ],
            error_code="TRANSLIT_001",
            context={'character': character, 'text': context, 'position': position},
        ))


class SynthesisError(GreekAnkiAudioError):
    """Raised when the speech service returns no audio."""

    def __init__(self, text: str, details: str = ""):
        self.text = text
        super().__init__(ProcessingError(
            category=ErrorCategory.SYNTHESIS,
            severity=ErrorSeverity.ERROR,
            message=f"Speech synthesis returned no audio for {text!r}",
            details=details,
            suggested_actions=[
                "Check GOOGLE_APPLICATION_CREDENTIALS and API quota",
                "Verify the Text-to-Speech API is enabled for the project",
            ],
            error_code="SYNTH_001",
            context={'text': text},
        ))


class BackupAbortedError(GreekAnkiAudioError):
    """Raised when missing backed-up notes were not confirmed."""

    def __init__(self, warning: ProcessingError):
        self.warning = warning
        super().__init__(ProcessingError(
            category=ErrorCategory.BACKUP_INTEGRITY,
            severity=ErrorSeverity.ERROR,
            message="Run aborted: notes missing since the last backup were not confirmed",
            details=warning.details,
            suggested_actions=warning.suggested_actions,
            error_code="BACKUP_002",
            context=dict(warning.context),
        ))


def field_resolution_warning(note_id: int, model_name: str,
                             field_names: Iterable[str]) -> ProcessingError:
    """Build the recoverable warning for a note without any audio field pair."""
    names = list(field_names)
    return ProcessingError(
        category=ErrorCategory.FIELD_RESOLUTION,
        severity=ErrorSeverity.WARNING,
        message=f"Note {note_id} ({model_name}) has no configured field pair",
        details=f"Model fields: {', '.join(names)}",
        suggested_actions=["Add a --field-pair matching this note type if it needs audio"],
        error_code="FIELD_001",
        context={'note_id': note_id, 'model': model_name, 'fields': names},
    )


def backup_completeness_warning(missing: List[Tuple[int, str]]) -> ProcessingError:
    """Build the warning naming every note missing since the last backup."""
    lines = [f"{note_id}: {label}" for note_id, label in missing]
    return ProcessingError(
        category=ErrorCategory.BACKUP_INTEGRITY,
        severity=ErrorSeverity.WARNING,
        message=f"{len(missing)} note(s) present in the last backup are missing",
        details="\n".join(lines),
        suggested_actions=[
            "Compare the source deck with the latest backup before continuing",
            "Restore the missing notes from the backup if their removal was unintended",
        ],
        error_code="BACKUP_001",
        context={'missing_ids': [note_id for note_id, _ in missing]},
    )


class ErrorHandler:
    """
    Collects errors and warnings for one pipeline run.

    Logs each record at the level matching its severity and produces the
    summary shown by the CLI.
    """

    def __init__(self):
        self.logger = logging.getLogger(__name__)
        self.errors: List[ProcessingError] = []
        self.warnings: List[ProcessingError] = []

    def add_error(self, error: ProcessingError) -> None:
        """Add an error to the collection."""
        if error.severity in [ErrorSeverity.ERROR, ErrorSeverity.CRITICAL]:
            self.errors.append(error)
        elif error.severity == ErrorSeverity.WARNING:
            self.warnings.append(error)

        log_level = {
            ErrorSeverity.INFO: logging.INFO,
            ErrorSeverity.WARNING: logging.WARNING,
            ErrorSeverity.ERROR: logging.ERROR,
            ErrorSeverity.CRITICAL: logging.CRITICAL
        }[error.severity]

        self.logger.log(log_level, f"[{error.error_code}] {error.message}")
        if error.details:
            self.logger.log(log_level, f"Details: {error.details}")

    def has_errors(self) -> bool:
        """Check if any errors have been recorded."""
        return len(self.errors) > 0

    def has_warnings(self) -> bool:
        """Check if any warnings have been recorded."""
        return len(self.warnings) > 0

    def get_error_summary(self) -> Dict[str, Any]:
        """Get a summary of all errors and warnings."""
        return {
            'error_count': len(self.errors),
            'warning_count': len(self.warnings),
            'errors': [self._format_error_for_summary(e) for e in self.errors],
            'warnings': [self._format_error_for_summary(e) for e in self.warnings]
        }

    def _format_error_for_summary(self, error: ProcessingError) -> Dict[str, Any]:
        return {
            'code': error.error_code,
            'category': error.category.value,
            'severity': error.severity.value,
            'message': error.message,
            'suggested_actions': error.suggested_actions
        }

    def clear_errors(self) -> None:
        """Clear all recorded errors and warnings."""
        self.errors.clear()
        self.warnings.clear()
