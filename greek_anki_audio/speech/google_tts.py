"""
Speech synthesis using Google Cloud Text-to-Speech.

Requires the google-cloud-texttospeech library and valid credentials.
Set GOOGLE_APPLICATION_CREDENTIALS to your service account key file.
"""

import logging

from google.api_core.exceptions import GoogleAPICallError
from google.cloud import texttospeech

from greek_anki_audio.config import Config
from greek_anki_audio.models import SynthesisResult
from greek_anki_audio.speech.services import SpeechSynthesisService


class GoogleSpeechSynthesisService(SpeechSynthesisService):
    """
    Speech synthesis service backed by Google Cloud Text-to-Speech.

    The client is created on the first request, so runs whose texts are all
    cached never need credentials.
    """

    def __init__(self, language_code: str = Config.LANGUAGE_CODE,
                 voice_name: str = Config.VOICE_NAME,
                 audio_encoding: str = Config.AUDIO_ENCODING,
                 client=None):
        self.logger = logging.getLogger(__name__)
        self.language_code = language_code
        self.voice_name = voice_name
        self.audio_encoding = texttospeech.AudioEncoding[audio_encoding]
        self._client = client

    @property
    def client(self):
        if self._client is None:
            self._client = texttospeech.TextToSpeechClient()
            self.logger.info(
                f"Google Text-to-Speech client initialized for {self.language_code} ({self.voice_name})"
            )
        return self._client

    def synthesize(self, text: str) -> SynthesisResult:
        if not text or not text.strip():
            return SynthesisResult(text=text, success=False, error="Empty or whitespace-only input")

        try:
            response = self.client.synthesize_speech(
                input=texttospeech.SynthesisInput(text=text),
                voice=texttospeech.VoiceSelectionParams(
                    language_code=self.language_code,
                    name=self.voice_name,
                ),
                audio_config=texttospeech.AudioConfig(audio_encoding=self.audio_encoding),
            )
        except GoogleAPICallError as e:
            self.logger.error(f"Speech synthesis failed for '{text}': {e}")
            return SynthesisResult(text=text, success=False, error=f"Text-to-Speech API error: {e}")

        if not response.audio_content:
            return SynthesisResult(text=text, success=False, error="Response contained no audio content")

        return SynthesisResult(text=text, audio=response.audio_content, success=True)
