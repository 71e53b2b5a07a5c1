"""
Tests for the Google Cloud Text-to-Speech service.
"""

from unittest.mock import Mock, patch

from google.api_core.exceptions import ResourceExhausted
from google.cloud import texttospeech

from greek_anki_audio.speech.google_tts import GoogleSpeechSynthesisService


class TestGoogleSpeechSynthesisService:
    """Test request construction and error mapping with a mocked client."""

    def test_successful_synthesis(self):
        client = Mock()
        client.synthesize_speech.return_value = Mock(audio_content=b"mp3-bytes")
        service = GoogleSpeechSynthesisService(client=client)

        result = service.synthesize("σήμερα")

        assert result.success
        assert result.audio == b"mp3-bytes"
        kwargs = client.synthesize_speech.call_args.kwargs
        assert kwargs["input"].text == "σήμερα"
        assert kwargs["voice"].language_code == "el-GR"
        assert kwargs["voice"].name == "el-GR-Wavenet-A"
        assert kwargs["audio_config"].audio_encoding == texttospeech.AudioEncoding.MP3

    def test_api_error_becomes_failed_result(self):
        client = Mock()
        client.synthesize_speech.side_effect = ResourceExhausted("quota")
        service = GoogleSpeechSynthesisService(client=client)

        result = service.synthesize("σήμερα")

        assert not result.success
        assert "quota" in result.error

    def test_empty_audio_content_is_a_failure(self):
        client = Mock()
        client.synthesize_speech.return_value = Mock(audio_content=b"")
        service = GoogleSpeechSynthesisService(client=client)

        result = service.synthesize("σήμερα")

        assert not result.success
        assert result.audio == b""

    def test_blank_text_makes_no_request(self):
        client = Mock()
        service = GoogleSpeechSynthesisService(client=client)

        result = service.synthesize("   ")

        assert not result.success
        client.synthesize_speech.assert_not_called()

    @patch("greek_anki_audio.speech.google_tts.texttospeech.TextToSpeechClient")
    def test_client_is_created_lazily(self, mock_client_class):
        service = GoogleSpeechSynthesisService(language_code="el-GR", voice_name="el-GR-Standard-B")
        mock_client_class.assert_not_called()

        mock_client_class.return_value.synthesize_speech.return_value = Mock(audio_content=b"x")
        service.synthesize("ναι")
        service.synthesize("όχι")

        mock_client_class.assert_called_once_with()
