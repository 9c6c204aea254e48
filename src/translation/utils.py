"""
Translation utility functions for HTML cleanup, JSON extraction and key handling.
Provides the text shaping applied before a prompt is sent and after a response arrives.
"""

import json
import re
from typing import List, Dict, Any, Tuple, Optional

# Mustache/AngularJS interpolation such as {{ user.name }}
TEMPLATE_EXPRESSION_PATTERN = re.compile(r'\{\{[^}]*\}\}')

CODE_FENCE_PATTERN = re.compile(r'```(?:json)?\s*([\s\S]*?)\s*```')

WHITESPACE_PATTERN = re.compile(r'\s+')


def clean_template_expressions(html: str) -> str:
    """
    Remove template interpolation markers so they are not mistaken for text.

    Example:
        >>> clean_template_expressions("<b>Hi {{user.name}}</b>")
        "<b>Hi </b>"
    """
    return TEMPLATE_EXPRESSION_PATTERN.sub('', html)


def collapse_whitespace(text: str) -> str:
    """Collapse newlines and runs of whitespace into single spaces."""
    return WHITESPACE_PATTERN.sub(' ', text.replace('\n', ' ')).strip()


def clean_html(html: str) -> str:
    """Prepare an HTML fragment for a prompt: drop template markers, then collapse whitespace."""
    return collapse_whitespace(clean_template_expressions(html or ''))


def strip_code_fence(text: str) -> str:
    """
    Remove a markdown code block wrapper if present.

    Args:
        text: Model output, possibly wrapped in ```json ... ```

    Returns:
        The inner text, trimmed
    """
    if not text:
        return ''
    match = CODE_FENCE_PATTERN.search(text)
    if match:
        return match.group(1).strip()
    return text.strip()


def safe_parse_json_object(text: str) -> Optional[Dict]:
    """
    Safely parse a JSON object from text.

    Args:
        text: Text to parse

    Returns:
        Parsed dict or None on failure
    """
    if not text:
        return None

    try:
        result = json.loads(text.strip())
    except json.JSONDecodeError:
        return None

    if isinstance(result, dict):
        return result
    return None


def ensure_key_prefix(translations: Dict[str, Any], prefix: str) -> Dict[str, Any]:
    """
    Make every key start with the prefix, prepending "{prefix}." where it is missing.

    Example:
        >>> ensure_key_prefix({"TITLE": "Hi", "APP.OK": "OK"}, "APP")
        {"APP.TITLE": "Hi", "APP.OK": "OK"}
    """
    if not prefix:
        return dict(translations)

    result = {}
    for key, value in translations.items():
        final_key = key if key.startswith(prefix) else f"{prefix}.{key}"
        result[final_key] = value
    return result


def build_json_from_pairs(pairs: List[Tuple[str, Any]]) -> Dict[str, Any]:
    """
    Rebuild nested JSON from key-value pairs.

    Args:
        pairs: List of (key_path, value) tuples

    Returns:
        Nested dictionary

    Example:
        >>> build_json_from_pairs([("home.title", "Hello")])
        {"home": {"title": "Hello"}}
    """
    result = {}

    for path, value in pairs:
        keys = path.split('.')
        node = result

        for key in keys[:-1]:
            if key not in node:
                node[key] = {}
            elif not isinstance(node[key], dict):
                # Handle conflict: if existing value is not dict, wrap it
                node[key] = {}
            node = node[key]

        if keys:
            node[keys[-1]] = value

    return result


def nest_translations(translations: Dict[str, Any]) -> Dict[str, Any]:
    """Turn a flat dot-keyed mapping into the nested layout used by locale files."""
    return build_json_from_pairs(list(translations.items()))
