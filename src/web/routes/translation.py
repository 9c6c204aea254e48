"""Translation API routes."""

from __future__ import annotations

from typing import Any, Dict, Optional, Tuple

from flask import Blueprint, jsonify, request, g

from src import config
from src import i18n
from src.ai import exceptions as errors
from src.ai.exceptions import TranslationError
from src.ai.models import AVAILABLE_MODELS, DEFAULT_MODEL_ID, get_model
from src.ai.service import extract_translations, extract_multi_language_translations
from src.logger import get_logger
from src.translation.utils import nest_translations
from src.translation.validator import validate_bundle, validate_translation_result

translation_bp = Blueprint("translation", __name__)
logger = get_logger(__name__)

# HTTP status returned for each TranslationError code
ERROR_STATUS = {
    errors.MISSING_API_KEY: 400,
    errors.MISSING_MODEL: 400,
    errors.UNKNOWN_PROVIDER: 400,
    errors.RATE_LIMITED: 429,
    errors.QUOTA_EXCEEDED: 429,
    errors.INVALID_CREDENTIALS: 401,
    errors.BACKEND_UNAVAILABLE: 503,
    errors.MALFORMED_RESPONSE: 502,
    errors.UNKNOWN_HTTP_ERROR: 502,
}


def _error(key: str, lang: str, status: int, **kwargs):
    return jsonify({"error": i18n.get_translation(f"errors.{key}", lang=lang, **kwargs), "code": key}), status


def translation_error_response(e: TranslationError, lang: str, backend: Optional[str] = None):
    """Render a TranslationError as localized JSON with the matching status code."""
    provider = e.details.get("provider") or backend
    display_name = config.BUILTIN_PROVIDER_DISPLAY_NAMES.get(provider, provider or "AI")

    payload = e.to_dict()
    key = f"errors.{e.code}"
    if e.code and i18n.has_translation(key, lang):
        payload["error"] = i18n.get_translation(key, lang=lang, provider=display_name)
        payload["message"] = str(e)
    if provider and "provider" not in payload.get("details", {}):
        payload.setdefault("details", {})["provider"] = provider

    return jsonify(payload), ERROR_STATUS.get(e.code, 502)


def _parse_request(lang: str) -> Tuple[Optional[Dict[str, Any]], Any]:
    """
    Validate the request body shared by both translation endpoints.

    Returns:
        (params, None) on success or (None, error_response) on failure
    """
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return None, _error("invalid_request", lang, 400)

    html = data.get("html") or ""
    prefix = data.get("prefix") or ""
    if not isinstance(html, str) or not html.strip():
        return None, _error("html_required", lang, 400)
    if not isinstance(prefix, str) or not prefix.strip():
        return None, _error("prefix_required", lang, 400)
    prefix = prefix.strip()

    api_key = data.get("api_key") or ""
    if not isinstance(api_key, str):
        return None, _error("invalid_api_key", lang, 400)

    current_config = config.load_config()
    model_id = data.get("model") or current_config.get("default_model") or DEFAULT_MODEL_ID
    model = get_model(model_id)
    backend = model.provider if model else None

    # Request key wins; otherwise the key configured for the model's backend
    provider_options: Dict[str, Any] = {}
    if backend:
        provider_config = config.get_provider_config(backend, current_config)
        if not api_key:
            api_key = config.get_api_key(backend, current_config)
        provider_options = {
            "timeout": provider_config.get("timeout"),
            "api_url": provider_config.get("api_url"),
        }

    return {
        "html": html,
        "prefix": prefix,
        "model_id": model_id,
        "backend": backend,
        "api_key": api_key,
        "provider_options": provider_options,
        "format": data.get("format", "flat"),
    }, None


@translation_bp.get("/models")
def list_models():
    """Return the model table and which backends have a key configured."""
    current_config = config.load_config()
    return jsonify({
        "models": [model.to_dict() for model in AVAILABLE_MODELS],
        "default_model": current_config.get("default_model") or DEFAULT_MODEL_ID,
        "providers": [
            {
                "id": provider,
                "name": config.BUILTIN_PROVIDER_DISPLAY_NAMES[provider],
                "configured": bool(config.get_api_key(provider, current_config)),
                "billing_url": config.BILLING_URLS[provider],
            }
            for provider in config.BUILTIN_PROVIDERS
        ],
    })


@translation_bp.post("/translations")
def translate_single():
    """Extract keys from HTML and translate them to English."""
    lang = getattr(g, 'lang', i18n.DEFAULT_LANGUAGE)
    params, error_response = _parse_request(lang)
    if error_response is not None:
        return error_response

    logger.info("Single-language extraction requested (model=%s, prefix=%s)",
                params["model_id"], params["prefix"])
    try:
        translations = extract_translations(
            params["html"],
            params["prefix"],
            params["api_key"],
            params["model_id"],
            **params["provider_options"],
        )
    except TranslationError as e:
        logger.warning("Extraction failed: %s (%s)", e, e.code)
        return translation_error_response(e, lang, params["backend"])

    body = {
        "model": params["model_id"],
        "translations": translations,
        "warnings": validate_translation_result(translations, params["prefix"]),
    }
    if params["format"] == "nested":
        body["nested"] = nest_translations(translations)
    return jsonify(body)


@translation_bp.post("/translations/multi")
def translate_multi():
    """Extract keys from HTML and translate them to the four bundle languages."""
    lang = getattr(g, 'lang', i18n.DEFAULT_LANGUAGE)
    params, error_response = _parse_request(lang)
    if error_response is not None:
        return error_response

    logger.info("Multi-language extraction requested (model=%s, prefix=%s)",
                params["model_id"], params["prefix"])
    try:
        bundle = extract_multi_language_translations(
            params["html"],
            params["prefix"],
            params["api_key"],
            params["model_id"],
            **params["provider_options"],
        )
    except TranslationError as e:
        logger.warning("Extraction failed: %s (%s)", e, e.code)
        return translation_error_response(e, lang, params["backend"])

    if not bundle.spanish:
        logger.warning("Model returned no Spanish translations")
        return _error("no_translations", lang, 422)

    translations = bundle.to_dict()
    body = {
        "model": params["model_id"],
        "translations": translations,
        "warnings": validate_bundle(translations, params["prefix"]),
    }
    if params["format"] == "nested":
        body["nested"] = {language: nest_translations(mapping) for language, mapping in translations.items()}
    return jsonify(body)
