"""
Base service interface for speech synthesis.
"""

from abc import ABC, abstractmethod

from greek_anki_audio.models import SynthesisResult


class SpeechSynthesisService(ABC):
    """Base interface for speech synthesis services."""

    @abstractmethod
    def synthesize(self, text: str) -> SynthesisResult:
        """
        Synthesize speech for a piece of text.

        Args:
            text: Decoded Greek text

        Returns:
            SynthesisResult with audio bytes or error
        """
        pass
