"""
Tests for the command line interface.
"""

import json
import logging
from pathlib import Path
from unittest.mock import patch

import pytest

from greek_anki_audio.anki.backup import always_allow, always_deny
from greek_anki_audio.errors import SchemaMismatchError, backup_completeness_warning
from greek_anki_audio.main import build_parser, interactive_confirm, load_settings, main, setup_logging
from greek_anki_audio.models import PipelineResult


class TestInteractiveConfirm:
    """Test the missing-note confirmation prompt."""

    @pytest.mark.parametrize("answer, expected", [("", True), ("y", True), ("YES", True),
                                                  ("n", False), ("no", False)])
    def test_answers(self, answer, expected):
        warning = backup_completeness_warning([(3, "yesterday")])
        assert interactive_confirm(warning, input_func=lambda prompt: answer) is expected

    def test_reprompts_until_valid(self, capsys):
        answers = iter(["maybe", "n"])
        warning = backup_completeness_warning([(3, "yesterday")])

        assert interactive_confirm(warning, input_func=lambda prompt: next(answers)) is False

        output = capsys.readouterr().out
        assert "3: yesterday" in output
        assert "Please enter 'y' for yes or 'n' for no." in output

    def test_closed_input_declines(self, capsys):
        def closed_stdin(prompt):
            raise EOFError

        warning = backup_completeness_warning([(3, "yesterday")])

        assert interactive_confirm(warning, input_func=closed_stdin) is False
        assert "not packaging the deck" in capsys.readouterr().out


class TestLoadSettings:
    """Test settings assembled from arguments and files."""

    def test_arguments_override_defaults(self, tmp_path):
        args = build_parser().parse_args([
            "deck.apkg",
            "--cache-dir", str(tmp_path / "c"),
            "--field-pair", "Greek", "Greek Audio",
            "--field-pair", "Example", "Example Audio",
            "--translation-field", "Meaning",
            "--backup-keep", "3",
        ])

        settings = load_settings(args)

        assert settings.cache_dir == tmp_path / "c"
        assert settings.fields.pairs == (("Greek", "Greek Audio"), ("Example", "Example Audio"))
        assert settings.fields.translation_field == "Meaning"
        assert settings.backup_keep == 3

    def test_environment_overrides(self, tmp_path, monkeypatch):
        monkeypatch.setenv("GREEK_ANKI_AUDIO_BACKUP_DIR", str(tmp_path / "b"))
        settings = load_settings(build_parser().parse_args(["deck.apkg"]))

        assert settings.backup_dir == tmp_path / "b"

    def test_config_file_is_layered(self, tmp_path):
        config_file = tmp_path / "settings.json"
        config_file.write_text(json.dumps({
            "voice_name": "el-GR-Standard-A",
            "backup_dir": str(tmp_path / "from-file"),
            "field_pairs": [["Word", "Word Audio"]],
        }), encoding="utf-8")
        args = build_parser().parse_args(["deck.apkg", "--config", str(config_file),
                                          "--backup-dir", str(tmp_path / "from-cli")])

        settings = load_settings(args)

        assert settings.voice_name == "el-GR-Standard-A"
        assert settings.backup_dir == tmp_path / "from-cli"
        assert settings.fields.pairs == (("Word", "Word Audio"),)

    def test_yes_and_non_interactive_are_exclusive(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args(["deck.apkg", "--yes", "--non-interactive"])


class TestMain:
    """Test the entry point with a mocked pipeline."""

    @patch("greek_anki_audio.main.AugmentationPipeline")
    def test_success_returns_zero(self, mock_pipeline_class, tmp_path):
        mock_pipeline_class.return_value.run.return_value = PipelineResult(
            success=True, output_path=tmp_path / "out.apkg", backup_path=tmp_path / "b.apkg")

        code = main([str(tmp_path / "deck.apkg"), "--yes",
                     "--cache-dir", str(tmp_path / "c"), "--backup-dir", str(tmp_path / "b")])

        assert code == 0
        assert mock_pipeline_class.call_args.kwargs["confirm"] is always_allow
        mock_pipeline_class.return_value.run.assert_called_once_with(
            tmp_path / "deck.apkg", tmp_path / "deck-audio.apkg")
        assert (tmp_path / "c").is_dir()

    @patch("greek_anki_audio.main.AugmentationPipeline")
    def test_failure_returns_one(self, mock_pipeline_class, tmp_path, capsys):
        error = SchemaMismatchError("Note type schema could not be decoded").processing_error
        mock_pipeline_class.return_value.run.return_value = PipelineResult(success=False, error=error)

        code = main([str(tmp_path / "deck.apkg"), "--non-interactive", "-o", str(tmp_path / "o.apkg"),
                     "--cache-dir", str(tmp_path / "c"), "--backup-dir", str(tmp_path / "b")])

        assert code == 1
        assert mock_pipeline_class.call_args.kwargs["confirm"] is always_deny
        assert "Note type schema could not be decoded" in capsys.readouterr().out

    def test_invalid_config_file(self, tmp_path):
        config_file = tmp_path / "settings.json"
        config_file.write_text("[]", encoding="utf-8")

        assert main([str(tmp_path / "deck.apkg"), "--config", str(config_file)]) == 1

    @patch("greek_anki_audio.main.AugmentationPipeline")
    def test_log_file_handler_is_closed(self, mock_pipeline_class, tmp_path):
        mock_pipeline_class.return_value.run.return_value = PipelineResult(success=False)
        log_file = tmp_path / "logs" / "run.log"

        main([str(tmp_path / "deck.apkg"), "--yes", "--log-file", str(log_file),
              "--cache-dir", str(tmp_path / "c"), "--backup-dir", str(tmp_path / "b")])

        assert log_file.exists()
        assert not any(isinstance(h, logging.FileHandler) and Path(h.baseFilename) == log_file
                       for h in logging.getLogger().handlers)


class TestSetupLogging:
    """Test logging configuration."""

    def test_without_log_file(self):
        assert setup_logging(verbose=False) is None

    def test_with_log_file(self, tmp_path):
        handler = setup_logging(verbose=True, log_file=tmp_path / "run.log")
        try:
            assert handler.level == logging.DEBUG
            assert handler in logging.getLogger().handlers
        finally:
            logging.getLogger().removeHandler(handler)
            handler.close()
