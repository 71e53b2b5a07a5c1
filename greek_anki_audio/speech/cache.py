"""
Persistent on-disk cache of synthesized speech.

Entries are keyed by the exact decoded text and are never evicted, so
re-running the pipeline over unchanged deck content costs no synthesis
calls.
"""

import hashlib
import logging
import os
import tempfile
from pathlib import Path

from ..config import Config
from ..errors import SynthesisError
from .services import SpeechSynthesisService


logger = logging.getLogger(__name__)

# Stand-in for path separators inside cache keys
SEPARATOR_SUBSTITUTE = "\u2215"

# Leave room for the extension and a digest on filesystems with 255 byte names
MAX_KEY_BYTES = 200


def cache_key(text: str) -> str:
    """Map decoded text to a filesystem-safe cache file stem."""
    key = text.replace("/", SEPARATOR_SUBSTITUTE).replace("\\", SEPARATOR_SUBSTITUTE)

    encoded = key.encode("utf-8")
    if len(encoded) > MAX_KEY_BYTES:
        digest = hashlib.sha1(text.encode("utf-8")).hexdigest()
        prefix = encoded[:MAX_KEY_BYTES - len(digest) - 1].decode("utf-8", errors="ignore")
        key = f"{prefix}-{digest}"
    return key


class SpeechCache:
    """
    Returns audio for text, synthesizing only on a cache miss.
    """

    def __init__(self, cache_dir: Path, service: SpeechSynthesisService,
                 extension: str = Config.AUDIO_EXTENSION):
        self.cache_dir = Path(cache_dir)
        self.service = service
        self.extension = extension
        self.hits = 0
        self.synthesis_calls = 0

    def path_for(self, text: str) -> Path:
        return self.cache_dir / f"{cache_key(text)}{self.extension}"

    def fetch(self, decoded_text: str) -> bytes:
        """
        Get audio for text from the cache or the synthesis service.

        Args:
            decoded_text: Exact text to speak

        Returns:
            Audio bytes

        Raises:
            SynthesisError: If the service returns no audio payload
        """
        path = self.path_for(decoded_text)
        if path.exists():
            self.hits += 1
            logger.debug(f"Speech cache hit: {decoded_text!r}")
            return path.read_bytes()

        self.synthesis_calls += 1
        logger.info(f"Synthesizing speech for {decoded_text!r}")
        result = self.service.synthesize(decoded_text)
        if not result.success or not result.audio:
            raise SynthesisError(decoded_text, result.error or "No audio payload returned")

        self._store(path, result.audio)
        return result.audio

    def _store(self, path: Path, audio: bytes) -> None:
        # Write then rename so an interrupted run never leaves a truncated entry
        self.cache_dir.mkdir(parents=True, exist_ok=True)
        fd, temp_path = tempfile.mkstemp(dir=self.cache_dir, suffix=".partial")
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(audio)
            os.replace(temp_path, path)
        except OSError:
            if os.path.exists(temp_path):
                os.unlink(temp_path)
            raise
        logger.debug(f"Cached {len(audio)} bytes at {path.name}")
