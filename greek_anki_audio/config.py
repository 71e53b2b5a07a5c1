"""
Configuration settings for the Greek Anki Audio augmenter.
"""

import json
import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Optional, Tuple, Dict, Any


class Config:
    """Default application settings."""

    # Project paths
    PROJECT_ROOT = Path(__file__).parent.parent
    DATA_DIR = PROJECT_ROOT / "data"
    CACHE_DIR = DATA_DIR / "speech_cache"
    BACKUP_DIR = DATA_DIR / "backups"
    OUTPUT_SUFFIX = "-audio"

    # Environment overrides
    CACHE_DIR_ENV = "GREEK_ANKI_AUDIO_CACHE_DIR"
    BACKUP_DIR_ENV = "GREEK_ANKI_AUDIO_BACKUP_DIR"

    # Google Cloud Text-to-Speech settings
    LANGUAGE_CODE = "el-GR"
    VOICE_NAME = "el-GR-Wavenet-A"
    AUDIO_ENCODING = "MP3"
    AUDIO_EXTENSION = ".mp3"

    # Anki note fields
    FIELD_PAIRS = (("Greek", "Greek Audio"),)
    TRANSLATION_FIELD = "English"

    # Archive tool commands
    EXTRACT_COMMAND = ("unzip", "-o", "-q", "{archive}", "-d", "{dest}")
    PACK_COMMAND = ("zip", "-q", "-r", "-D", "{archive}", ".")

    @classmethod
    def ensure_directories(cls, *directories: Path):
        """Create necessary directories if they don't exist."""
        for directory in directories or (cls.CACHE_DIR, cls.BACKUP_DIR):
            Path(directory).mkdir(parents=True, exist_ok=True)


@dataclass(frozen=True)
class FieldPairConfig:
    """Declarative (source, pronunciation) field pairs plus the translation field."""

    pairs: Tuple[Tuple[str, str], ...] = Config.FIELD_PAIRS
    translation_field: str = Config.TRANSLATION_FIELD

    def __post_init__(self):
        if not self.pairs:
            raise ValueError("At least one (source, pronunciation) field pair is required")
        for pair in self.pairs:
            if len(pair) != 2 or not all(isinstance(name, str) and name for name in pair):
                raise ValueError(f"Invalid field pair: {pair!r}")


@dataclass(frozen=True)
class AugmentationSettings:
    """
    Immutable settings for one pipeline run.

    Built once at startup and passed explicitly to each component.
    """

    cache_dir: Path
    backup_dir: Path
    fields: FieldPairConfig = field(default_factory=FieldPairConfig)
    language_code: str = Config.LANGUAGE_CODE
    voice_name: str = Config.VOICE_NAME
    audio_encoding: str = Config.AUDIO_ENCODING
    extract_command: Tuple[str, ...] = Config.EXTRACT_COMMAND
    pack_command: Tuple[str, ...] = Config.PACK_COMMAND
    backup_keep: Optional[int] = None

    def __post_init__(self):
        if self.backup_keep is not None and self.backup_keep < 1:
            raise ValueError(f"backup_keep must be at least 1, got {self.backup_keep}")

    @classmethod
    def from_defaults(cls, **overrides) -> "AugmentationSettings":
        """Build settings from Config defaults and environment overrides."""
        cache_dir = Path(os.environ.get(Config.CACHE_DIR_ENV, Config.CACHE_DIR))
        backup_dir = Path(os.environ.get(Config.BACKUP_DIR_ENV, Config.BACKUP_DIR))
        settings = cls(cache_dir=cache_dir, backup_dir=backup_dir)
        return settings.with_overrides(**overrides)

    @classmethod
    def from_json_file(cls, path: Path, **overrides) -> "AugmentationSettings":
        """
        Build settings from a JSON file layered over the defaults.

        Recognized keys: cache_dir, backup_dir, field_pairs, translation_field,
        language_code, voice_name, audio_encoding, backup_keep.
        """
        with open(path, encoding="utf-8") as f:
            data = json.load(f)

        if not isinstance(data, dict):
            raise ValueError(f"Settings file {path} must contain a JSON object")

        values: Dict[str, Any] = {}
        for key in ("language_code", "voice_name", "audio_encoding", "backup_keep"):
            if key in data:
                values[key] = data[key]
        for key in ("cache_dir", "backup_dir"):
            if key in data:
                values[key] = Path(data[key])
        if "field_pairs" in data or "translation_field" in data:
            values["field_pairs"] = data.get("field_pairs")
            values["translation_field"] = data.get("translation_field")

        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls.from_defaults(**values)

    def with_overrides(self, field_pairs=None, translation_field=None, **overrides) -> "AugmentationSettings":
        """Return a copy with the given non-None values replaced."""
        changes = {k: v for k, v in overrides.items() if v is not None}
        for key in ("cache_dir", "backup_dir"):
            if key in changes:
                changes[key] = Path(changes[key])

        if field_pairs or translation_field:
            changes["fields"] = FieldPairConfig(
                pairs=tuple(tuple(pair) for pair in field_pairs) if field_pairs else self.fields.pairs,
                translation_field=translation_field or self.fields.translation_field,
            )

        return replace(self, **changes) if changes else self
