"""
Speech acquisition: synthesis service interface and persistent cache.
"""

from .services import SpeechSynthesisService
from .cache import SpeechCache, cache_key

__all__ = [
    'SpeechSynthesisService',
    'SpeechCache',
    'cache_key',
]
