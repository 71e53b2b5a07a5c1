"""
Pipeline orchestration: archive in, augmented archive out.

The scratch directory of a run is always removed, and the output path is
only written once the mutated collection has been committed, checked
against the last backup and packed successfully.
"""

import logging
import os
import shutil
import sqlite3
import tempfile
from pathlib import Path
from typing import Optional

from .anki import (
    BackupIntegrityGuard,
    MediaManifest,
    NoteMutationEngine,
    NoteStore,
    ShellArchiveTool,
    always_deny,
    load_backup_snapshot,
    rotate_backups,
)
from .anki.backup import ConfirmCallback
from .config import AugmentationSettings, Config
from .errors import (
    ErrorCategory, ErrorHandler, ErrorSeverity, GreekAnkiAudioError, ProcessingError,
)
from .models import PipelineResult
from .progress import ProcessingStage, ProgressTracker
from .speech.cache import SpeechCache
from .speech.services import SpeechSynthesisService
from .text.transliterator import Transliterator


logger = logging.getLogger(__name__)


def default_output_path(source: Path) -> Path:
    source = Path(source)
    return source.with_name(f"{source.stem}{Config.OUTPUT_SUFFIX}{source.suffix or '.apkg'}")


class AugmentationPipeline:
    """
    Drives one augmentation run over an .apkg archive.

    Collaborators are injected so tests and scheduled jobs can supply their
    own synthesis service, archive tool and confirmation policy.
    """

    def __init__(self, settings: AugmentationSettings,
                 speech_service: Optional[SpeechSynthesisService] = None,
                 archive_tool=None,
                 confirm: ConfirmCallback = always_deny,
                 progress: Optional[ProgressTracker] = None,
                 error_handler: Optional[ErrorHandler] = None):
        self.settings = settings
        if speech_service is None:
            from .speech.google_tts import GoogleSpeechSynthesisService
            speech_service = GoogleSpeechSynthesisService(
                language_code=settings.language_code,
                voice_name=settings.voice_name,
                audio_encoding=settings.audio_encoding,
            )
        self.speech_cache = SpeechCache(settings.cache_dir, speech_service)
        self.archive_tool = archive_tool or ShellArchiveTool(
            settings.extract_command, settings.pack_command)
        self.confirm = confirm
        self.progress = progress or ProgressTracker(enable_console_output=False)
        self.error_handler = error_handler or ErrorHandler()
        self.transliterator = Transliterator()

    def run(self, source: Path, output: Optional[Path] = None) -> PipelineResult:
        """
        Execute the complete pipeline.

        Args:
            source: Archive to augment; never modified
            output: Path for the augmented archive

        Returns:
            PipelineResult; on failure ``error`` holds the fatal error
        """
        source = Path(source)
        output = Path(output) if output else default_output_path(source)
        partial = output.with_name(output.name + ".partial")
        scratch = Path(tempfile.mkdtemp(prefix="greek_anki_audio_"))

        self.error_handler.clear_errors()
        self.progress.start_pipeline()
        logger.info(f"Augmenting {source} -> {output} (scratch {scratch})")

        try:
            result = self._run(source, output, partial, scratch)
        except GreekAnkiAudioError as e:
            return self._fail(e.processing_error)
        except (OSError, sqlite3.Error) as e:
            return self._fail(ProcessingError(
                category=ErrorCategory.FILE_SYSTEM,
                severity=ErrorSeverity.CRITICAL,
                message="Unexpected storage error",
                details=f"{type(e).__name__}: {e}",
                suggested_actions=[
                    "Check disk space and permissions for the scratch, cache and output directories",
                    "Verify the archive is not corrupted",
                ],
                error_code="PIPELINE_001",
            ))
        finally:
            shutil.rmtree(scratch, ignore_errors=True)
            if partial.exists():
                partial.unlink()
            logger.debug(f"Removed scratch directory {scratch}")

        self.progress.complete_pipeline(success=True)
        return result

    def _fail(self, error: ProcessingError) -> PipelineResult:
        self.error_handler.add_error(error)
        self.progress.fail_current_stage()
        self.progress.complete_pipeline(success=False)
        return PipelineResult(success=False, error=error)

    def _run(self, source: Path, output: Path, partial: Path, scratch: Path) -> PipelineResult:
        settings = self.settings

        # Stage 1: Extraction
        self.progress.start_stage(ProcessingStage.EXTRACTION)
        self.archive_tool.extract(source, scratch)
        self.progress.complete_stage(ProcessingStage.EXTRACTION)

        # Stage 2: Backup snapshot
        self.progress.start_stage(ProcessingStage.BACKUP_SNAPSHOT)
        guard = BackupIntegrityGuard()
        snapshot = load_backup_snapshot(settings.backup_dir, source.stem, self.archive_tool,
                                        settings.fields.translation_field)
        guard.capture(snapshot)
        self.progress.complete_stage(ProcessingStage.BACKUP_SNAPSHOT, details={
            'backup': str(snapshot.source) if snapshot.source else None,
            'notes': len(snapshot.labels),
        })

        # Stage 3: Note mutation
        manifest = MediaManifest.load(scratch)
        with NoteStore.open_in(scratch) as store:
            self.progress.start_stage(ProcessingStage.NOTE_MUTATION,
                                      total_items=store.note_count())
            engine = NoteMutationEngine(
                store, manifest, self.speech_cache,
                fields=settings.fields,
                transliterator=self.transliterator,
                guard=guard,
                progress=self.progress,
            )
            report = engine.run()
        manifest.save()
        # Already logged by the engine
        self.error_handler.warnings.extend(report.warnings)
        self.progress.record_counts(
            cache_hits=self.speech_cache.hits,
            synthesis_calls=self.speech_cache.synthesis_calls,
            **report.summary(),
        )
        self.progress.complete_stage(ProcessingStage.NOTE_MUTATION, details=report.summary())

        # Stage 4: Integrity check against the last backup
        self.progress.start_stage(ProcessingStage.INTEGRITY_CHECK)
        confirmed = guard.enforce(self.confirm)
        if confirmed is not None:
            self.error_handler.warnings.append(confirmed)
        self.progress.complete_stage(ProcessingStage.INTEGRITY_CHECK)

        # Stage 5: Packaging
        self.progress.start_stage(ProcessingStage.PACKAGING)
        if partial.exists():
            partial.unlink()
        self.archive_tool.pack(scratch, partial)
        os.replace(partial, output)
        self.progress.complete_stage(ProcessingStage.PACKAGING, details={'output': str(output)})

        # Stage 6: Backup rotation
        self.progress.start_stage(ProcessingStage.BACKUP_ROTATION)
        backup_path = rotate_backups(output, settings.backup_dir, source.stem,
                                     keep=settings.backup_keep)
        self.progress.complete_stage(ProcessingStage.BACKUP_ROTATION,
                                     details={'backup': str(backup_path)})

        return PipelineResult(success=True, output_path=output,
                              backup_path=backup_path, report=report)
