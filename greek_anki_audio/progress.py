"""
Stage timing and console feedback for one augmentation run.

Each run walks the same six stages in order. The tracker records when each
stage started and finished, how far the note loop has got, and the run
counters printed once the deck is packaged or the run aborts.
"""

import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional


class ProcessingStage(Enum):
    """Stages of an augmentation run, in execution order."""
    EXTRACTION = "extraction"
    BACKUP_SNAPSHOT = "backup_snapshot"
    NOTE_MUTATION = "note_mutation"
    INTEGRITY_CHECK = "integrity_check"
    PACKAGING = "packaging"
    BACKUP_ROTATION = "backup_rotation"

    @property
    def label(self) -> str:
        return self.value.replace('_', ' ').capitalize()


@dataclass
class StageRecord:
    stage: ProcessingStage
    status: str = "pending"  # pending, in_progress, completed, failed
    started: Optional[float] = None
    finished: Optional[float] = None
    total: int = 0
    done: int = 0
    current_item: str = ""
    details: Dict[str, Any] = field(default_factory=dict)

    @property
    def percent(self) -> float:
        if self.status == "completed":
            return 100.0
        return self.done * 100 / self.total if self.total else 0.0

    @property
    def elapsed(self) -> Optional[float]:
        """Seconds spent in the stage so far, None if it never started."""
        if self.started is None:
            return None
        end = self.finished if self.finished is not None else time.monotonic()
        return end - self.started


class ProgressTracker:
    """Follows a run through its stages and prints what happened."""

    def __init__(self, enable_console_output: bool = True):
        self.logger = logging.getLogger(__name__)
        self.enable_console_output = enable_console_output
        self.stages: Dict[ProcessingStage, StageRecord] = {
            stage: StageRecord(stage) for stage in ProcessingStage
        }
        self.current_stage: Optional[ProcessingStage] = None
        self.started: Optional[float] = None
        self.finished: Optional[float] = None
        self.counters: Dict[str, int] = {}

    def _echo(self, line: str) -> None:
        if self.enable_console_output:
            print(line)

    def start_pipeline(self) -> None:
        self.started = time.monotonic()
        self.logger.info("🚀 Starting Greek audio augmentation")
        self._echo("🚀 Starting Greek audio augmentation\n" + "=" * 50)

    def start_stage(self, stage: ProcessingStage, total_items: int = 0) -> None:
        record = self.stages[stage]
        record.status = "in_progress"
        record.started = time.monotonic()
        record.total = total_items
        record.done = 0
        self.current_stage = stage

        self.logger.info(f"Stage started: {stage.label}")
        self._echo(f"\n📋 {stage.label}")
        if total_items:
            self._echo(f"   {total_items} notes to check")

    def advance(self, stage: ProcessingStage, done: int, current_item: str = "") -> None:
        """Record that ``done`` of the stage's items are finished."""
        record = self.stages[stage]
        record.done = done
        record.current_item = current_item or record.current_item
        if not record.total:
            return

        self.logger.debug(f"{stage.value}: {done}/{record.total} {record.current_item}")
        # Roughly every tenth of the notes
        if done % max(1, record.total // 10) == 0:
            self._echo(f"   {done}/{record.total} notes ({record.percent:.0f}%)")

    def complete_stage(self, stage: ProcessingStage, success: bool = True,
                       details: Optional[Dict[str, Any]] = None) -> None:
        record = self.stages[stage]
        record.status = "completed" if success else "failed"
        record.finished = time.monotonic()
        record.details.update(details or {})
        took = f" ({record.elapsed:.1f}s)" if record.started is not None else ""

        if success:
            self.logger.info(f"✅ Stage done: {stage.label}{took}")
            self._echo(f"   ✅ Done{took}")
        else:
            self.logger.error(f"❌ Stage failed: {stage.label}{took}")
            self._echo(f"   ❌ Failed{took}")

        if self.current_stage == stage:
            self.current_stage = None

    def fail_current_stage(self) -> None:
        if self.current_stage is not None:
            self.complete_stage(self.current_stage, success=False)

    def record_counts(self, **counts: int) -> None:
        self.counters.update(counts)

    def summary(self) -> Dict[str, Any]:
        """Stage outcomes and run counters as a flat dictionary."""
        statuses = [record.status for record in self.stages.values()]
        duration = None
        if self.started is not None and self.finished is not None:
            duration = self.finished - self.started
        return dict(
            self.counters,
            duration=duration,
            stages_completed=statuses.count("completed"),
            stages_failed=statuses.count("failed"),
        )

    def complete_pipeline(self, success: bool = True) -> None:
        self.finished = time.monotonic()
        if success:
            self.logger.info("🎉 Deck augmented")
            self._echo("\n🎉 Deck augmented!")
        else:
            self.logger.error("❌ Augmentation aborted")
            self._echo("\n❌ Augmentation aborted")
        if self.enable_console_output:
            self._print_summary(self.summary())

    def _print_summary(self, summary: Dict[str, Any]) -> None:
        skipped = summary.get('notes_skipped_no_fields', 0) + summary.get('notes_skipped_suspended', 0)
        print("\n" + "=" * 50)
        print("📊 RUN SUMMARY")
        print("=" * 50)
        if summary['duration'] is not None:
            print(f"⏱️  Took {summary['duration']:.1f} seconds")
        print(f"✅ Stages done: {summary['stages_completed']}/{len(ProcessingStage)}")
        if summary['stages_failed']:
            print(f"❌ Stages failed: {summary['stages_failed']}")
        print(f"   📝 Notes visited: {summary.get('notes_visited', 0)}")
        print(f"   ✏️  Notes updated: {summary.get('notes_updated', 0)}")
        print(f"   ⏭️  Notes skipped: {skipped}")
        print(f"   🔊 Audio files added: {summary.get('audio_files_added', 0)}")
        print(f"   💾 Speech cache hits: {summary.get('cache_hits', 0)}")
        print(f"   🌐 Synthesis calls: {summary.get('synthesis_calls', 0)}")
        print("=" * 50)
