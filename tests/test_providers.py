"""Tests for the OpenAI and Google AI providers against a mocked transport."""

import json

import httpx
import pytest

from conftest import error_response, gemini_response, openai_response
from src.ai import exceptions as errors
from src.ai.exceptions import TranslationError
from src.ai.models import MultiLanguageTranslations
from src.ai.providers import (
    GoogleAIProvider,
    OpenAIProvider,
    create_translation_provider,
    format_languages,
    get_httpx_timeout,
)

HTML = """
<div class="survey">
  <h2>¿Cómo fue tu experiencia, {{ user.name }}?</h2>
  <input placeholder="Escribe aquí">
</div>
"""


class TestOpenAIProvider:

    def test_translate_text_returns_parsed_mapping(self, make_transport):
        content = json.dumps({
            "SURVEY.EXPERIENCE_QUESTION": "How was your experience?",
            "SURVEY.PLACEHOLDER": "Write here",
        })
        transport = make_transport(lambda request: openai_response(content))
        provider = OpenAIProvider("sk-test", transport=transport)

        result = provider.translate_text(HTML, "SURVEY", "gpt-4")

        assert result == {
            "SURVEY.EXPERIENCE_QUESTION": "How was your experience?",
            "SURVEY.PLACEHOLDER": "Write here",
        }
        assert provider.get_last_token_usage() == {"prompt_tokens": 120, "completion_tokens": 40}

    def test_translate_text_prefixes_bare_keys(self, make_transport):
        content = json.dumps({"THANKS": "Thank you", "SURVEY.TITLE": "Survey"})
        transport = make_transport(lambda request: openai_response(content))
        provider = OpenAIProvider("sk-test", transport=transport)

        result = provider.translate_text("<p>Gracias</p>", "SURVEY", "gpt-4")

        assert result == {"SURVEY.THANKS": "Thank you", "SURVEY.TITLE": "Survey"}

    def test_request_shape(self, make_transport):
        transport = make_transport(lambda request: openai_response('{"P.A": "a"}'))
        provider = OpenAIProvider("sk-test", transport=transport)

        provider.translate_text(HTML, "SURVEY", "gpt-3.5-turbo")

        request = transport.requests[0]
        body = transport.last_json
        assert str(request.url) == "https://api.openai.com/v1/chat/completions"
        assert request.headers["Authorization"] == "Bearer sk-test"
        assert body["model"] == "gpt-3.5-turbo"
        assert body["temperature"] == 0.1
        assert body["max_tokens"] == 4000
        assert body["response_format"] == {"type": "json_object"}
        assert [m["role"] for m in body["messages"]] == ["system", "user"]
        assert '"SURVEY.KEY_NAME"' in body["messages"][0]["content"]
        assert "SCREAMING_SNAKE_CASE" in body["messages"][0]["content"]

    def test_template_markers_and_whitespace_are_removed(self, make_transport):
        transport = make_transport(lambda request: openai_response('{"P.A": "a"}'))
        provider = OpenAIProvider("sk-test", transport=transport)

        provider.translate_text(HTML, "SURVEY", "gpt-4")

        raw = transport.requests[0].content.decode("utf-8")
        user_message = transport.last_json["messages"][1]["content"]
        assert "{{" not in raw
        assert "user.name" not in raw
        assert "\n" not in user_message
        assert "  " not in user_message
        assert user_message.endswith(
            '<div class="survey"> <h2>¿Cómo fue tu experiencia, ?</h2> '
            '<input placeholder="Escribe aquí"> </div>'
        )

    def test_max_tokens_capped_by_model(self, make_transport):
        transport = make_transport(lambda request: openai_response('{"P.A": "a"}'))
        provider = OpenAIProvider("sk-test", transport=transport)

        provider.translate_text_multi_language("<p>x</p>", "P", None, "gpt-4-turbo-preview")
        assert transport.last_json["max_tokens"] == 8000

        provider.translate_text_multi_language("<p>x</p>", "P", None, "gpt-3.5-turbo")
        assert transport.last_json["max_tokens"] == 4000

    def test_unknown_model_falls_back_to_first_openai_model(self, make_transport):
        transport = make_transport(lambda request: openai_response('{"P.A": "a"}'))
        provider = OpenAIProvider("sk-test", transport=transport)

        provider.translate_text("<p>x</p>", "P", "gemini-2.0-flash")

        assert transport.last_json["model"] == "gpt-3.5-turbo"

    def test_multi_language_bundle(self, make_transport):
        content = json.dumps({
            "spanish": {"P.TITLE": "Título"},
            "english": {"P.TITLE": "Title"},
            "french": {"P.TITLE": "Titre"},
        })
        transport = make_transport(lambda request: openai_response(content))
        provider = OpenAIProvider("sk-test", transport=transport)

        bundle = provider.translate_text_multi_language("<h1>Título</h1>", "P", model_id="gpt-4")

        assert isinstance(bundle, MultiLanguageTranslations)
        assert bundle.spanish == {"P.TITLE": "Título"}
        assert bundle.english == {"P.TITLE": "Title"}
        assert bundle.french == {"P.TITLE": "Titre"}
        assert bundle.portuguese == {}
        assert "Spanish, English, French, and Portuguese" in transport.last_json["messages"][1]["content"]

    def test_invalid_json_is_malformed_response(self, make_transport):
        transport = make_transport(lambda request: openai_response("not json at all"))
        provider = OpenAIProvider("sk-test", transport=transport)

        with pytest.raises(TranslationError) as exc_info:
            provider.translate_text("<p>x</p>", "P", "gpt-4")

        assert exc_info.value.code == errors.MALFORMED_RESPONSE
        assert exc_info.value.details["raw_response"] == "not json at all"

    def test_empty_object_is_malformed_response(self, make_transport):
        transport = make_transport(lambda request: openai_response("{}"))
        provider = OpenAIProvider("sk-test", transport=transport)

        with pytest.raises(TranslationError) as exc_info:
            provider.translate_text("<p>x</p>", "P", "gpt-4")

        assert exc_info.value.code == errors.MALFORMED_RESPONSE
        assert "No translations generated" in str(exc_info.value)

    def test_missing_choices_is_malformed_response(self, make_transport):
        transport = make_transport(lambda request: httpx.Response(200, json={"choices": []}))
        provider = OpenAIProvider("sk-test", transport=transport)

        with pytest.raises(TranslationError) as exc_info:
            provider.translate_text("<p>x</p>", "P", "gpt-4")

        assert exc_info.value.code == errors.MALFORMED_RESPONSE

    @pytest.mark.parametrize("body", [
        [],
        {"choices": ["x"]},
        {"choices": [{"message": "x"}]},
        {"choices": [{"message": {"content": 42}}]},
        {"choices": "x", "usage": "none"},
    ])
    def test_unexpected_body_shape_is_malformed_response(self, make_transport, body):
        transport = make_transport(lambda request: httpx.Response(200, json=body))
        provider = OpenAIProvider("sk-test", transport=transport)

        with pytest.raises(TranslationError) as exc_info:
            provider.translate_text("<p>x</p>", "P", "gpt-4")

        assert exc_info.value.code == errors.MALFORMED_RESPONSE
        assert exc_info.value.details["provider"] == "openai"

    @pytest.mark.parametrize("status_code, message, expected_code", [
        (429, "Rate limit reached for gpt-4 in organization org-x", errors.RATE_LIMITED),
        (429, "You exceeded your current quota, please check your plan", errors.QUOTA_EXCEEDED),
        (401, "Incorrect API key provided", errors.INVALID_CREDENTIALS),
        (403, "Forbidden", errors.INVALID_CREDENTIALS),
        (503, "The engine is currently overloaded", errors.BACKEND_UNAVAILABLE),
        (500, "Internal error", errors.UNKNOWN_HTTP_ERROR),
    ])
    def test_http_errors_are_classified(self, make_transport, status_code, message, expected_code):
        transport = make_transport(lambda request: error_response(status_code, message))
        provider = OpenAIProvider("sk-test", transport=transport)

        with pytest.raises(TranslationError) as exc_info:
            provider.translate_text("<p>x</p>", "P", "gpt-4")

        assert exc_info.value.code == expected_code
        assert exc_info.value.details["status_code"] == status_code
        assert exc_info.value.details["provider"] == "openai"
        assert len(transport.requests) == 1

    def test_quota_error_carries_billing_url(self, make_transport):
        transport = make_transport(lambda request: error_response(429, "insufficient_quota"))
        provider = OpenAIProvider("sk-test", transport=transport)

        with pytest.raises(TranslationError) as exc_info:
            provider.translate_text("<p>x</p>", "P", "gpt-4")

        assert exc_info.value.details["billing_url"] == "https://platform.openai.com/account/billing"
        assert "https://platform.openai.com/account/billing" in str(exc_info.value)

    def test_timeout_is_backend_unavailable(self, make_transport):
        def handler(request):
            raise httpx.ReadTimeout("timed out", request=request)

        provider = OpenAIProvider("sk-test", transport=make_transport(handler))

        with pytest.raises(TranslationError) as exc_info:
            provider.translate_text("<p>x</p>", "P", "gpt-4")

        assert exc_info.value.code == errors.BACKEND_UNAVAILABLE

    def test_connection_error_is_unknown_http_error(self, make_transport):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        provider = OpenAIProvider("sk-test", transport=make_transport(handler))

        with pytest.raises(TranslationError) as exc_info:
            provider.translate_text("<p>x</p>", "P", "gpt-4")

        assert exc_info.value.code == errors.UNKNOWN_HTTP_ERROR

    def test_custom_api_url(self, make_transport):
        transport = make_transport(lambda request: openai_response('{"P.A": "a"}'))
        provider = OpenAIProvider("sk-test", api_url="https://proxy.example.com/v1/chat/completions",
                                  transport=transport)

        provider.translate_text("<p>x</p>", "P", "gpt-4")

        assert transport.requests[0].url.host == "proxy.example.com"


class TestGoogleAIProvider:

    def test_translate_text_returns_parsed_mapping(self, make_transport):
        text = json.dumps({"SURVEY.TITLE": "Survey", "SURVEY.THANKS": "Thanks"})
        transport = make_transport(lambda request: gemini_response(text))
        provider = GoogleAIProvider("g-key", transport=transport)

        result = provider.translate_text("<h1>Encuesta</h1>", "SURVEY", "gemini-2.0-flash")

        assert result == {"SURVEY.TITLE": "Survey", "SURVEY.THANKS": "Thanks"}
        assert provider.get_last_token_usage() == {"prompt_tokens": 90, "completion_tokens": 30}

    def test_keys_are_not_prefix_normalized(self, make_transport):
        transport = make_transport(lambda request: gemini_response('{"TITLE": "Survey"}'))
        provider = GoogleAIProvider("g-key", transport=transport)

        assert provider.translate_text("<h1>Encuesta</h1>", "SURVEY") == {"TITLE": "Survey"}

    def test_request_shape(self, make_transport):
        transport = make_transport(lambda request: gemini_response('{"P.A": "a"}'))
        provider = GoogleAIProvider("g-key", transport=transport)

        provider.translate_text(HTML, "SURVEY", "gemini-2.0-flash")

        request = transport.requests[0]
        assert request.url.path == "/v1beta/models/gemini-2.0-flash:generateContent"
        assert request.url.params["key"] == "g-key"
        assert "Authorization" not in request.headers
        prompt = transport.last_json["contents"][0]["parts"][0]["text"]
        assert '"SURVEY.KEY_NAME"' in prompt
        assert "no markdown formatting or backticks" in prompt
        assert "{{" not in prompt
        assert "Input HTML: <div class=\"survey\"> <h2>¿Cómo fue tu experiencia, ?</h2>" in prompt

    def test_non_google_model_uses_default_gemini(self, make_transport):
        transport = make_transport(lambda request: gemini_response('{"P.A": "a"}'))
        provider = GoogleAIProvider("g-key", transport=transport)

        provider.translate_text("<p>x</p>", "P", "gpt-4")

        assert transport.requests[0].url.path.endswith("/models/gemini-2.0-flash:generateContent")

    @pytest.mark.parametrize("text", [
        '```json\n{"P.TITLE": "Title"}\n```',
        '```\n{"P.TITLE": "Title"}\n```',
        'Here you go:\n```json\n{"P.TITLE": "Title"}\n```\n',
    ])
    def test_markdown_fence_is_stripped(self, make_transport, text):
        transport = make_transport(lambda request: gemini_response(text))
        provider = GoogleAIProvider("g-key", transport=transport)

        assert provider.translate_text("<h1>Título</h1>", "P") == {"P.TITLE": "Title"}

    def test_multi_language_bundle_from_fenced_response(self, make_transport):
        text = "```json\n" + json.dumps({
            "spanish": {"P.TITLE": "Título"},
            "english": {"P.TITLE": "Title"},
            "french": {"P.TITLE": "Titre"},
            "portuguese": {"P.TITLE": "Título"},
        }) + "\n```"
        transport = make_transport(lambda request: gemini_response(text))
        provider = GoogleAIProvider("g-key", transport=transport)

        bundle = provider.translate_text_multi_language("<h1>Título</h1>", "P")

        assert bundle.to_dict() == {
            "spanish": {"P.TITLE": "Título"},
            "english": {"P.TITLE": "Title"},
            "french": {"P.TITLE": "Titre"},
            "portuguese": {"P.TITLE": "Título"},
        }

    def test_invalid_json_is_malformed_response(self, make_transport):
        transport = make_transport(lambda request: gemini_response("Sorry, I cannot help with that."))
        provider = GoogleAIProvider("g-key", transport=transport)

        with pytest.raises(TranslationError) as exc_info:
            provider.translate_text("<p>x</p>", "P")

        assert exc_info.value.code == errors.MALFORMED_RESPONSE
        assert exc_info.value.details["provider"] == "google"

    def test_missing_candidates_is_malformed_response(self, make_transport):
        transport = make_transport(lambda request: httpx.Response(200, json={"promptFeedback": {}}))
        provider = GoogleAIProvider("g-key", transport=transport)

        with pytest.raises(TranslationError) as exc_info:
            provider.translate_text("<p>x</p>", "P")

        assert exc_info.value.code == errors.MALFORMED_RESPONSE

    @pytest.mark.parametrize("body", [
        [],
        {"candidates": ["x"]},
        {"candidates": [{"content": {"parts": ["text"]}}]},
        {"candidates": [{"content": "text"}]},
        {"candidates": [{"content": {"parts": [{"text": None}]}}], "usageMetadata": []},
    ])
    def test_unexpected_body_shape_is_malformed_response(self, make_transport, body):
        transport = make_transport(lambda request: httpx.Response(200, json=body))
        provider = GoogleAIProvider("g-key", transport=transport)

        with pytest.raises(TranslationError) as exc_info:
            provider.translate_text("<p>x</p>", "P")

        assert exc_info.value.code == errors.MALFORMED_RESPONSE
        assert exc_info.value.details["provider"] == "google"

    @pytest.mark.parametrize("status_code, message, expected_code", [
        (403, "API key not valid. Please pass a valid API key.", errors.INVALID_CREDENTIALS),
        (429, "Resource has been exhausted (e.g. check quota).", errors.QUOTA_EXCEEDED),
        (429, "Rate limit exceeded for requests per minute", errors.RATE_LIMITED),
        (503, "The model is overloaded", errors.BACKEND_UNAVAILABLE),
        (400, "Invalid JSON payload", errors.UNKNOWN_HTTP_ERROR),
    ])
    def test_http_errors_are_classified(self, make_transport, status_code, message, expected_code):
        transport = make_transport(lambda request: error_response(status_code, message))
        provider = GoogleAIProvider("g-key", transport=transport)

        with pytest.raises(TranslationError) as exc_info:
            provider.translate_text_multi_language("<p>x</p>", "P")

        assert exc_info.value.code == expected_code
        assert exc_info.value.details["provider"] == "google"

    def test_invalid_key_message_points_to_key_console(self, make_transport):
        transport = make_transport(lambda request: error_response(403, "API key not valid"))
        provider = GoogleAIProvider("g-key", transport=transport)

        with pytest.raises(TranslationError) as exc_info:
            provider.translate_text("<p>x</p>", "P")

        assert "https://makersuite.google.com/app/apikey" in str(exc_info.value)

    def test_plain_text_error_body(self, make_transport):
        transport = make_transport(lambda request: httpx.Response(502, text="Bad Gateway"))
        provider = GoogleAIProvider("g-key", transport=transport)

        with pytest.raises(TranslationError) as exc_info:
            provider.translate_text("<p>x</p>", "P")

        assert exc_info.value.code == errors.UNKNOWN_HTTP_ERROR
        assert exc_info.value.details["message"] == "Bad Gateway"


def test_create_translation_provider_by_backend():
    assert isinstance(create_translation_provider("openai", "k"), OpenAIProvider)
    assert isinstance(create_translation_provider("google", "k"), GoogleAIProvider)


def test_create_translation_provider_passes_options():
    provider = create_translation_provider("google", "k", timeout=5, api_url="https://example.com/v1")
    assert provider.timeout == 5
    assert provider.api_url == "https://example.com/v1"


def test_create_translation_provider_unknown_backend():
    with pytest.raises(TranslationError) as exc_info:
        create_translation_provider("anthropic", "k")
    assert exc_info.value.code == errors.UNKNOWN_PROVIDER


def test_get_httpx_timeout_from_number_and_dict():
    assert get_httpx_timeout(30).read == 30.0
    assert get_httpx_timeout(None).read == 120.0
    timeout = get_httpx_timeout({"connect": 1, "read": 2})
    assert timeout.connect == 1
    assert timeout.read == 2
    assert timeout.write == 60.0


def test_format_languages():
    assert format_languages(["english"]) == "English"
    assert format_languages(["spanish", "english"]) == "Spanish and English"
    assert format_languages(["spanish", "english", "french"]) == "Spanish, English, and French"
