"""
The media manifest of an extracted Anki archive.

Media files are stored in the archive under numeric names; the ``media``
JSON file maps each of those names to the filename Anki should import it as.
"""

import json
import logging
from pathlib import Path
from typing import Dict

from ..errors import SchemaMismatchError


logger = logging.getLogger(__name__)

MANIFEST_FILENAME = "media"


class MediaManifest:
    """
    Media manifest with key allocation for newly written files.

    Keys are allocated as the successor of the largest numeric key seen so
    far, so a key is never reused within a run.
    """

    def __init__(self, directory: Path, entries: Dict[str, str] = None):
        self.directory = Path(directory)
        self.entries: Dict[str, str] = dict(entries or {})
        self.added: Dict[str, str] = {}
        numeric_keys = [int(key) for key in self.entries if key.isdigit()]
        self._next_key = max(numeric_keys) + 1 if numeric_keys else 0

    @property
    def path(self) -> Path:
        return self.directory / MANIFEST_FILENAME

    @classmethod
    def load(cls, directory: Path) -> "MediaManifest":
        """Read the manifest; an archive without one has no media yet."""
        path = Path(directory) / MANIFEST_FILENAME
        if not path.exists():
            logger.info("Archive has no media manifest; starting an empty one")
            return cls(directory)

        try:
            with open(path, encoding="utf-8") as f:
                data = json.load(f)
        except ValueError as e:
            raise SchemaMismatchError("Media manifest is not valid JSON", details=str(e))

        if not isinstance(data, dict) or not all(
                isinstance(k, str) and isinstance(v, str) for k, v in data.items()):
            raise SchemaMismatchError(
                "Media manifest has an unexpected structure",
                details="Expected a JSON object mapping string keys to filenames",
            )

        logger.debug(f"Loaded media manifest with {len(data)} entries")
        return cls(directory, data)

    def allocate_key(self) -> str:
        while str(self._next_key) in self.entries:
            self._next_key += 1
        key = str(self._next_key)
        self._next_key += 1
        return key

    def add(self, audio: bytes, filename: str) -> str:
        """
        Write a media file under a fresh key and register it.

        Args:
            audio: File content
            filename: Name the file is imported under

        Returns:
            The allocated manifest key
        """
        key = self.allocate_key()
        (self.directory / key).write_bytes(audio)
        self.entries[key] = filename
        self.added[key] = filename
        logger.debug(f"Media {key} -> {filename} ({len(audio)} bytes)")
        return key

    def save(self) -> None:
        with open(self.path, "w", encoding="utf-8") as f:
            json.dump(self.entries, f, ensure_ascii=False)
        logger.info(f"Media manifest saved with {len(self.added)} new entries")
