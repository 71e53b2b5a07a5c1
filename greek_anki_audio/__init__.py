"""
Greek Anki Audio.

Adds synthesized Greek pronunciation audio to exported Anki decks.
"""

from .config import AugmentationSettings, Config, FieldPairConfig
from .pipeline import AugmentationPipeline, default_output_path

__version__ = "0.1.0"

__all__ = [
    'AugmentationSettings',
    'Config',
    'FieldPairConfig',
    'AugmentationPipeline',
    'default_output_path',
]
