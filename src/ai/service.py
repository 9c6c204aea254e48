"""
AI Translation Service Module

This module is the entry point used by the web layer:
- Resolves a model id to its backend
- Validates the API key and model before any network call
- Instantiates the matching provider and forwards the call

For provider-specific API implementations, see ai/providers.py
"""

from typing import List, Dict, Any, Optional

from src.logger import get_logger
from src.ai import exceptions as errors
from src.ai.exceptions import TranslationError
from src.ai.models import AIModel, SUPPORTED_LANGUAGES, MultiLanguageTranslations, get_model
from src.ai.providers import TranslationProvider, create_translation_provider

logger = get_logger(__name__)


def resolve_model(model_id: Optional[str]) -> AIModel:
    """
    Look up a model in the static table.

    Raises:
        TranslationError: If the model id is unknown
    """
    model = get_model(model_id)
    if model is None:
        raise TranslationError(
            "Invalid model selected",
            code=errors.MISSING_MODEL,
            details={"model": model_id},
        )
    return model


def get_provider_for_model(api_key: str, model_id: Optional[str], **provider_options) -> TranslationProvider:
    """
    Validate inputs and build the provider serving model_id.

    Args:
        api_key: Caller-supplied key for the model's backend
        model_id: Id from AVAILABLE_MODELS
        **provider_options: Forwarded to the provider (timeout, api_url, transport)

    Raises:
        TranslationError: If the key is empty or the model is unknown
    """
    if not api_key:
        raise TranslationError(
            "API key is required for translations",
            code=errors.MISSING_API_KEY,
            details={"model": model_id},
        )

    model = resolve_model(model_id)
    provider = create_translation_provider(model.provider, api_key, **provider_options)
    logger.info(f"Using provider {provider} for model {model.id}")
    return provider


def extract_translations(
    html: str,
    prefix: str = '',
    api_key: str = '',
    model_id: str = 'gpt-3.5-turbo',
    **provider_options
) -> Dict[str, str]:
    """
    Extract the text of an HTML fragment as English translations.

    Returns:
        Flat mapping of "{prefix}.KEY_NAME" to English text
    """
    provider = get_provider_for_model(api_key, model_id, **provider_options)
    return provider.translate_text(html, prefix, model_id)


def extract_multi_language_translations(
    html: str,
    prefix: str = '',
    api_key: str = '',
    model_id: str = 'gpt-3.5-turbo',
    **provider_options
) -> MultiLanguageTranslations:
    """
    Extract the text of an HTML fragment translated to Spanish, English, French and Portuguese.

    Returns:
        MultiLanguageTranslations bundle; each language may be empty
    """
    provider = get_provider_for_model(api_key, model_id, **provider_options)
    return provider.translate_text_multi_language(html, prefix, list(SUPPORTED_LANGUAGES), model_id)


def generate_translation_object(translations: List[Dict[str, Any]]) -> Dict[str, str]:
    """Turn [{"key": ..., "english": ...}, ...] into {key: english}."""
    result = {}
    for pair in translations:
        result[pair['key']] = pair['english']
    return result
