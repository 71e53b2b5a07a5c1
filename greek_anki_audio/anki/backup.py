"""
Backup snapshot loading, completeness checking and backup rotation.

Every successful run stores its output in the backup directory as
``<stem>-<unix timestamp>.apkg``. The next run compares the notes of the
most recent backup with the notes it visits, so notes deleted from the
working deck are never silently packaged into a new archive.
"""

import logging
import shutil
import tempfile
import time
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Callable, List, Mapping, Optional, Set, Tuple

from ..errors import BackupAbortedError, ProcessingError, backup_completeness_warning
from .collection import NoteStore


logger = logging.getLogger(__name__)

BACKUP_SUFFIX = ".apkg"

# Receives the completeness warning and answers whether to proceed
ConfirmCallback = Callable[[ProcessingError], bool]


def always_allow(warning: ProcessingError) -> bool:
    logger.warning("Proceeding despite missing notes (automatic approval)")
    return True


def always_deny(warning: ProcessingError) -> bool:
    return False


@dataclass(frozen=True)
class BackupSnapshot:
    """Note ids and labels of one backup archive."""
    source: Optional[Path]
    labels: Mapping[int, str] = field(default_factory=dict)

    @classmethod
    def empty(cls) -> "BackupSnapshot":
        return cls(source=None, labels=MappingProxyType({}))

    @property
    def note_ids(self) -> Set[int]:
        return set(self.labels)


def deck_backups(backup_dir: Path, stem: str) -> List[Path]:
    """Return this deck's ``<stem>-<timestamp>.apkg`` backups, oldest first."""
    backup_dir = Path(backup_dir)
    if not backup_dir.is_dir():
        return []

    prefix = f"{stem}-"
    backups = []
    for path in backup_dir.iterdir():
        name = path.name
        if not (path.is_file() and name.startswith(prefix) and name.endswith(BACKUP_SUFFIX)):
            continue
        timestamp = name[len(prefix):-len(BACKUP_SUFFIX)]
        if timestamp.isdigit():
            backups.append((int(timestamp), path))
    return [path for _, path in sorted(backups)]


def latest_backup(backup_dir: Path, stem: str) -> Optional[Path]:
    """Return the most recent backup of one deck, if any."""
    backups = deck_backups(backup_dir, stem)
    return backups[-1] if backups else None


def load_backup_snapshot(backup_dir: Path, stem: str, archive_tool,
                         label_field: Optional[str] = None) -> BackupSnapshot:
    """
    Read the note set of the most recent backup.

    The backup is extracted into its own temporary directory, which is
    removed before returning.
    """
    backup_path = latest_backup(backup_dir, stem)
    if backup_path is None:
        logger.info(f"No backup of '{stem}' in {backup_dir}; completeness check has no baseline")
        return BackupSnapshot.empty()

    temp_dir = Path(tempfile.mkdtemp(prefix="backup_snapshot_"))
    try:
        archive_tool.extract(backup_path, temp_dir)
        with NoteStore.open_in(temp_dir) as store:
            labels = store.note_labels(store.load_models(), label_field)
    finally:
        shutil.rmtree(temp_dir, ignore_errors=True)

    logger.info(f"Backup {backup_path.name} holds {len(labels)} notes")
    return BackupSnapshot(source=backup_path, labels=MappingProxyType(labels))


class BackupIntegrityGuard:
    """
    Tracks which backed-up notes were seen during mutation.
    """

    def __init__(self):
        self.snapshot = BackupSnapshot.empty()
        self._unseen: Set[int] = set()

    def capture(self, snapshot: BackupSnapshot) -> None:
        self.snapshot = snapshot
        self._unseen = snapshot.note_ids

    def mark_visited(self, note_id: int) -> None:
        self._unseen.discard(note_id)

    def missing(self) -> List[Tuple[int, str]]:
        return [(note_id, self.snapshot.labels[note_id]) for note_id in sorted(self._unseen)]

    def check(self) -> Optional[ProcessingError]:
        """Return one warning naming every missing note, or None."""
        missing = self.missing()
        if not missing:
            return None
        return backup_completeness_warning(missing)

    def enforce(self, confirm: ConfirmCallback) -> Optional[ProcessingError]:
        """
        Ask for confirmation when notes are missing.

        Returns:
            The warning that was confirmed, or None if nothing was missing

        Raises:
            BackupAbortedError: If the confirmation is not affirmative
        """
        warning = self.check()
        if warning is None:
            return None

        logger.warning(f"[{warning.error_code}] {warning.message}")
        for line in warning.details.splitlines():
            logger.warning(f"   missing {line}")

        if not confirm(warning):
            raise BackupAbortedError(warning)
        return warning


def backup_filename(stem: str, timestamp: Optional[int] = None) -> str:
    if timestamp is None:
        timestamp = int(time.time())
    return f"{stem}-{timestamp}{BACKUP_SUFFIX}"


def rotate_backups(archive_path: Path, backup_dir: Path, stem: str,
                   keep: Optional[int] = None, timestamp: Optional[int] = None) -> Path:
    """
    Copy a finished archive into the backup directory.

    Args:
        archive_path: Archive produced by this run
        backup_dir: Directory holding timestamped backups
        stem: Name prefix for this deck's backups
        keep: Keep only this many of the deck's most recent backups

    Returns:
        Path of the new backup
    """
    backup_dir = Path(backup_dir)
    backup_dir.mkdir(parents=True, exist_ok=True)
    target = backup_dir / backup_filename(stem, timestamp)
    shutil.copy2(archive_path, target)
    logger.info(f"Backup written: {target}")

    if keep is not None:
        for old in deck_backups(backup_dir, stem)[:-keep]:
            old.unlink()
            logger.info(f"Pruned old backup {old.name}")

    return target
