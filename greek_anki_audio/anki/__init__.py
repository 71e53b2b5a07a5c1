"""
Anki archive handling for audio augmentation.

This module provides access to an extracted .apkg archive: its note store,
its media manifest, the note mutation engine and the backup guard.
"""

from .archive import ShellArchiveTool
from .collection import NoteStore, decode_models, find_collection
from .media import MediaManifest
from .backup import (
    BackupIntegrityGuard,
    BackupSnapshot,
    deck_backups,
    load_backup_snapshot,
    latest_backup,
    rotate_backups,
    always_allow,
    always_deny,
)
from .mutation import NoteMutationEngine, resolve_fields

__all__ = [
    'ShellArchiveTool',
    'NoteStore',
    'decode_models',
    'find_collection',
    'MediaManifest',
    'BackupIntegrityGuard',
    'BackupSnapshot',
    'deck_backups',
    'load_backup_snapshot',
    'latest_backup',
    'rotate_backups',
    'always_allow',
    'always_deny',
    'NoteMutationEngine',
    'resolve_fields',
]
