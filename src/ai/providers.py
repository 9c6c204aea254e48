"""
AI Provider API Implementations

This module contains the backend implementations behind one interface:
- OpenAI (chat completions, JSON mode)
- Google AI (Gemini generateContent, plain text output)

Both providers clean the HTML, build the extraction prompt, make a single
HTTP round trip and map backend failures onto TranslationError codes.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, Iterable, List, Optional

import httpx

from src.logger import get_logger
from src.config import BILLING_URLS, API_KEY_URLS, get_prompt
from src.ai import exceptions as errors
from src.ai.exceptions import TranslationError
from src.ai.models import (
    AIModel,
    GOOGLE_BACKEND,
    OPENAI_BACKEND,
    SUPPORTED_LANGUAGES,
    MultiLanguageTranslations,
    get_model,
    get_models_for_backend,
)
from src.translation.utils import clean_html, ensure_key_prefix, safe_parse_json_object, strip_code_fence

logger = get_logger(__name__)

OPENAI_API_URL = "https://api.openai.com/v1/chat/completions"
GOOGLE_API_URL = "https://generativelanguage.googleapis.com/v1beta"
GOOGLE_DEFAULT_MODEL = "gemini-2.0-flash"

SINGLE_LANGUAGE_MAX_TOKENS = 4000
MULTI_LANGUAGE_MAX_TOKENS = 8000
GOOGLE_MAX_OUTPUT_TOKENS = 8192


def get_httpx_timeout(timeout_config: Any) -> httpx.Timeout:
    """
    Convert timeout configuration to httpx.Timeout object.

    Args:
        timeout_config: Either a number (total timeout) or a dict with
            connect, write, read, pool keys

    Returns:
        httpx.Timeout object
    """
    if isinstance(timeout_config, dict):
        return httpx.Timeout(
            connect=timeout_config.get('connect', 10.0),
            write=timeout_config.get('write', 60.0),
            read=timeout_config.get('read', 120.0),
            pool=timeout_config.get('pool', 10.0),
        )
    else:
        timeout_value = float(timeout_config) if timeout_config else 120.0
        return httpx.Timeout(
            connect=10.0,
            write=60.0,
            read=timeout_value,
            pool=10.0,
        )


def extract_error_message(response: httpx.Response) -> str:
    """Pull the human readable message out of a backend error body."""
    try:
        error_json = response.json()
    except ValueError:
        return response.text[:500] if response.text else ""

    if isinstance(error_json, dict) and "error" in error_json:
        error_detail = error_json["error"]
        if isinstance(error_detail, dict):
            return str(error_detail.get("message", error_detail))
        return str(error_detail)
    return str(error_json)[:500]


def _as_dict(value: Any) -> Dict[str, Any]:
    """Return value when it is a JSON object, else an empty dict."""
    return value if isinstance(value, dict) else {}


def format_languages(languages: Iterable[str]) -> str:
    """Render ["spanish", "english"] as "Spanish and English"."""
    names = [language.capitalize() for language in languages]
    if len(names) <= 1:
        return "".join(names)
    if len(names) == 2:
        return " and ".join(names)
    return f"{', '.join(names[:-1])}, and {names[-1]}"


class TranslationProvider(ABC):
    """
    Interface shared by the backends.

    Each instance is bound to one API key. HTTP settings (timeout, endpoint and
    an optional httpx transport) are fixed at construction.
    """

    name = ""
    description = ""
    backend = ""
    default_api_url = ""

    def __init__(
        self,
        api_key: str,
        timeout: Any = 120,
        api_url: Optional[str] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.api_key = api_key
        self.timeout = timeout
        self.api_url = api_url or self.default_api_url
        self.transport = transport
        self._last_token_usage = {'prompt_tokens': 0, 'completion_tokens': 0}

    @abstractmethod
    def translate_text(self, html: str, prefix: str, model_id: Optional[str] = None) -> Dict[str, str]:
        """Extract text from html and return English translations keyed under prefix."""

    @abstractmethod
    def translate_text_multi_language(
        self,
        html: str,
        prefix: str,
        languages: Optional[List[str]] = None,
        model_id: Optional[str] = None,
    ) -> MultiLanguageTranslations:
        """Extract text from html and return a four-language bundle."""

    def get_last_token_usage(self) -> Dict[str, int]:
        """Get token usage from the last API call."""
        return self._last_token_usage.copy()

    def _resolve_languages(self, languages: Optional[List[str]]) -> List[str]:
        if not languages:
            return list(SUPPORTED_LANGUAGES)
        requested = [language for language in SUPPORTED_LANGUAGES if language in languages]
        return requested or list(SUPPORTED_LANGUAGES)

    def _post(self, url: str, body: Dict[str, Any], headers: Dict[str, str] = None,
              params: Dict[str, str] = None) -> Dict[str, Any]:
        """Send one request and return the decoded JSON body."""
        try:
            with httpx.Client(timeout=get_httpx_timeout(self.timeout), transport=self.transport) as client:
                response = client.post(url, json=body, headers=headers, params=params)
                response.raise_for_status()
                result = response.json()
        except httpx.HTTPStatusError as e:
            logger.error(f"{self.name} API HTTP error: {e.response.status_code} - {e.response.text[:500]}")
            raise self.map_http_error(e.response) from e
        except httpx.TimeoutException as e:
            raise TranslationError(
                f"{self.name} API request timeout",
                code=errors.BACKEND_UNAVAILABLE,
                details={"provider": self.backend},
            ) from e
        except httpx.HTTPError as e:
            logger.error(f"{self.name} API call failed: {e}")
            raise TranslationError(
                f"{self.name} API call failed: {e}",
                code=errors.UNKNOWN_HTTP_ERROR,
                details={"provider": self.backend},
            ) from e
        except ValueError as e:
            raise self._malformed(f"{self.name} returned a body that is not JSON") from e

        if not isinstance(result, dict):
            raise self._malformed(f"{self.name} returned a JSON body that is not an object")
        return result

    def map_http_error(self, response: httpx.Response) -> TranslationError:
        """Translate a non-2xx backend response into a TranslationError."""
        status_code = response.status_code
        message = extract_error_message(response)
        details = {"provider": self.backend, "status_code": status_code}

        if status_code == 429:
            if 'rate limit' in message.lower():
                return TranslationError(self.rate_limit_message(), code=errors.RATE_LIMITED, details=details)
            details["billing_url"] = BILLING_URLS[self.backend]
            return TranslationError(self.quota_message(), code=errors.QUOTA_EXCEEDED, details=details)
        if status_code in (401, 403):
            details["api_key_url"] = API_KEY_URLS[self.backend]
            return TranslationError(self.invalid_key_message(), code=errors.INVALID_CREDENTIALS, details=details)
        if status_code == 503:
            return TranslationError(
                f"{self.name} API is temporarily unavailable. Please try again later.",
                code=errors.BACKEND_UNAVAILABLE,
                details=details,
            )

        details["message"] = message
        return TranslationError(
            f"{self.name} API call failed: {status_code} {response.reason_phrase}",
            code=errors.UNKNOWN_HTTP_ERROR,
            details=details,
        )

    def rate_limit_message(self) -> str:
        return f"{self.name} rate limit exceeded. Please wait a moment and try again."

    def quota_message(self) -> str:
        return f"{self.name} API quota exceeded. Please check your billing status at {BILLING_URLS[self.backend]}"

    def invalid_key_message(self) -> str:
        return f"Invalid {self.name} API key. Please check your API key."

    def _malformed(self, message: str, raw: str = None) -> TranslationError:
        details = {"provider": self.backend}
        if raw is not None:
            details["raw_response"] = raw[:500]
        return TranslationError(message, code=errors.MALFORMED_RESPONSE, details=details)

    def __str__(self) -> str:
        return f"{self.name} ({self.backend})"


class OpenAIProvider(TranslationProvider):
    """OpenAI chat completions with response_format json_object."""

    name = "OpenAI"
    description = "Uses OpenAI's GPT models for translation"
    backend = OPENAI_BACKEND
    default_api_url = OPENAI_API_URL

    def _select_model(self, model_id: Optional[str]) -> AIModel:
        model = get_model(model_id)
        if model is None or model.provider != OPENAI_BACKEND:
            fallback = get_models_for_backend(OPENAI_BACKEND)[0]
            if model_id:
                logger.warning(f"Model '{model_id}' is not an OpenAI model, using {fallback.id}")
            return fallback
        return model

    def _complete(self, system_message: str, user_message: str, model: AIModel, max_tokens: int) -> str:
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json"
        }
        body = {
            "model": model.id,
            "messages": [
                {"role": "system", "content": system_message},
                {"role": "user", "content": user_message},
            ],
            "temperature": 0.1,
            "max_tokens": min(model.max_tokens, max_tokens),
            "response_format": {"type": "json_object"},
        }

        logger.debug(f"  Calling OpenAI API (model: {model.id})...")
        result = self._post(self.api_url, body, headers=headers)

        usage = _as_dict(result.get('usage'))
        self._last_token_usage = {
            'prompt_tokens': usage.get('prompt_tokens', 0),
            'completion_tokens': usage.get('completion_tokens', 0),
        }

        choices = result.get('choices')
        if not isinstance(choices, list) or not choices or not isinstance(choices[0], dict):
            raise self._malformed("No content in OpenAI response")
        content = _as_dict(choices[0].get('message')).get('content') or '{}'
        if not isinstance(content, str):
            raise self._malformed("No content in OpenAI response")
        logger.debug(f"  Received {len(content)} chars from OpenAI (tokens: {self._last_token_usage})")
        return content.strip()

    def translate_text(self, html: str, prefix: str, model_id: Optional[str] = None) -> Dict[str, str]:
        model = self._select_model(model_id)
        cleaned = clean_html(html)

        system_message = get_prompt('single_language_system')['prompt'].format(prefix=prefix)
        user_message = get_prompt('single_language_user')['prompt'].format(html=cleaned)

        content = self._complete(system_message, user_message, model, SINGLE_LANGUAGE_MAX_TOKENS)

        parsed = safe_parse_json_object(content)
        if parsed is None:
            logger.error(f"Error parsing OpenAI response: {content[:500]}")
            raise self._malformed("Failed to parse translation response", raw=content)
        if not parsed:
            logger.error("OpenAI returned an empty translation object")
            raise self._malformed("No translations generated", raw=content)

        translations = ensure_key_prefix(parsed, prefix)
        logger.info(f"OpenAI extracted {len(translations)} keys with prefix '{prefix}'")
        return translations

    def translate_text_multi_language(
        self,
        html: str,
        prefix: str,
        languages: Optional[List[str]] = None,
        model_id: Optional[str] = None,
    ) -> MultiLanguageTranslations:
        model = self._select_model(model_id)
        cleaned = clean_html(html)
        language_names = format_languages(self._resolve_languages(languages))

        system_message = get_prompt('multi_language_system')['prompt'].format(
            prefix=prefix, languages=language_names)
        user_message = get_prompt('multi_language_user')['prompt'].format(
            html=cleaned, languages=language_names)

        content = self._complete(system_message, user_message, model, MULTI_LANGUAGE_MAX_TOKENS)

        parsed = safe_parse_json_object(content)
        if parsed is None:
            logger.error(f"Error parsing OpenAI response: {content[:500]}")
            raise self._malformed("Failed to parse translation response", raw=content)

        bundle = MultiLanguageTranslations.from_response(parsed)
        logger.info(f"OpenAI extracted {len(bundle.english)} keys per language with prefix '{prefix}'")
        return bundle

    def rate_limit_message(self) -> str:
        return ("Rate limit exceeded. For new accounts, you can only make 3 requests per minute. "
                "Please wait a moment and try again.")

    def quota_message(self) -> str:
        return ("OpenAI API quota exceeded. Please check:\n"
                "1. Your API key billing status\n"
                "2. Payment method\n"
                "3. Usage limits\n"
                f"at {BILLING_URLS[OPENAI_BACKEND]}")


class GoogleAIProvider(TranslationProvider):
    """Gemini generateContent; the answer arrives as free text and may be fenced."""

    name = "Google AI"
    description = "Uses Gemini 2.0 Flash for fast translations"
    backend = GOOGLE_BACKEND
    default_api_url = GOOGLE_API_URL

    def _select_model(self, model_id: Optional[str]) -> str:
        model = get_model(model_id)
        if model is None or model.provider != GOOGLE_BACKEND:
            return GOOGLE_DEFAULT_MODEL
        return model.id

    def _generate(self, prompt: str, model_id: Optional[str]) -> str:
        model = self._select_model(model_id)
        url = f"{self.api_url.rstrip('/')}/models/{model}:generateContent"

        body = {
            "contents": [{
                "parts": [{
                    "text": prompt
                }]
            }],
            "generationConfig": {
                "maxOutputTokens": GOOGLE_MAX_OUTPUT_TOKENS,
            }
        }

        logger.debug(f"Calling Gemini API: {model}")
        result = self._post(url, body, headers={"Content-Type": "application/json"},
                            params={"key": self.api_key})

        usage_metadata = _as_dict(result.get('usageMetadata'))
        prompt_tokens = usage_metadata.get('promptTokenCount', 0)
        completion_tokens = usage_metadata.get('candidatesTokenCount', 0)

        # Fallback: calculate from total if candidatesTokenCount is missing
        if completion_tokens == 0 and prompt_tokens > 0:
            total_tokens = usage_metadata.get('totalTokenCount', 0)
            if total_tokens > prompt_tokens:
                completion_tokens = total_tokens - prompt_tokens

        self._last_token_usage = {
            'prompt_tokens': prompt_tokens,
            'completion_tokens': completion_tokens,
        }

        candidates = result.get('candidates')
        if isinstance(candidates, list) and candidates and isinstance(candidates[0], dict):
            parts = _as_dict(candidates[0].get('content')).get('parts')
            if isinstance(parts, list) and parts and isinstance(parts[0], dict):
                text = parts[0].get('text')
                if isinstance(text, str):
                    return text

        raise self._malformed("Unexpected Gemini API response format")

    def _parse(self, text: str) -> Dict[str, Any]:
        cleaned_json = strip_code_fence(text)
        logger.debug(f"Cleaned JSON response: {cleaned_json[:500]}")
        parsed = safe_parse_json_object(cleaned_json)
        if parsed is None:
            logger.error(f"Error parsing Google AI response: {text[:500]}")
            raise self._malformed("Invalid response format from Google AI - not valid JSON", raw=text)
        return parsed

    def translate_text(self, html: str, prefix: str, model_id: Optional[str] = None) -> Dict[str, str]:
        cleaned = clean_html(html)
        prompt = (
            get_prompt('single_language_system')['prompt'].format(prefix=prefix)
            + get_prompt('inline_suffix')['prompt'].format(html=cleaned)
        )

        translations = self._parse(self._generate(prompt, model_id))
        logger.info(f"Google AI extracted {len(translations)} keys with prefix '{prefix}'")
        return translations

    def translate_text_multi_language(
        self,
        html: str,
        prefix: str,
        languages: Optional[List[str]] = None,
        model_id: Optional[str] = None,
    ) -> MultiLanguageTranslations:
        cleaned = clean_html(html)
        language_names = format_languages(self._resolve_languages(languages))
        prompt = (
            get_prompt('multi_language_system')['prompt'].format(prefix=prefix, languages=language_names)
            + get_prompt('inline_suffix')['prompt'].format(html=cleaned)
        )

        bundle = MultiLanguageTranslations.from_response(self._parse(self._generate(prompt, model_id)))
        logger.info(f"Google AI extracted {len(bundle.english)} keys per language with prefix '{prefix}'")
        return bundle

    def invalid_key_message(self) -> str:
        return ("Invalid API key or insufficient permissions. "
                f"Please check your API key at {API_KEY_URLS[GOOGLE_BACKEND]}")

    def quota_message(self) -> str:
        return "Google AI API quota exceeded. Please check your quota in Google Cloud Console"


PROVIDERS = {
    OPENAI_BACKEND: OpenAIProvider,
    GOOGLE_BACKEND: GoogleAIProvider,
}


def create_translation_provider(provider: str, api_key: str, **options) -> TranslationProvider:
    """
    Instantiate the provider for a backend tag.

    Args:
        provider: Backend identifier ("openai" or "google")
        api_key: Key passed to the backend
        **options: timeout, api_url, transport

    Raises:
        TranslationError: If the backend is unknown
    """
    provider_class = PROVIDERS.get(provider)
    if provider_class is None:
        raise TranslationError(
            f"Unknown provider: {provider}",
            code=errors.UNKNOWN_PROVIDER,
            details={"provider": provider},
        )
    return provider_class(api_key, **options)
