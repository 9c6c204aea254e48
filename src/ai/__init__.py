"""
AI Module

This module provides the model table, the backend providers and the
translation service façade.
"""

from src.ai.exceptions import TranslationError
from src.ai.models import AVAILABLE_MODELS, AIModel, MultiLanguageTranslations, get_model
from src.ai.providers import (
    TranslationProvider,
    OpenAIProvider,
    GoogleAIProvider,
    create_translation_provider,
)
from src.ai.service import (
    extract_translations,
    extract_multi_language_translations,
    generate_translation_object,
)

__all__ = [
    'TranslationError',
    'AVAILABLE_MODELS',
    'AIModel',
    'MultiLanguageTranslations',
    'get_model',
    'TranslationProvider',
    'OpenAIProvider',
    'GoogleAIProvider',
    'create_translation_provider',
    'extract_translations',
    'extract_multi_language_translations',
    'generate_translation_object',
]
