"""
Interface strings for the extractor page and API error messages.

Language packs are JSON files under web/locales, one per interface language,
with dot-addressable sections (app, form, results, errors). English is the
reference pack; any key missing from another pack is served in English.

Log messages stay in English.
"""

import json
from pathlib import Path
from typing import Any, Dict, List, Optional

from src.logger import get_logger

logger = get_logger(__name__)

LOCALES_DIR = Path(__file__).parent / "web" / "locales"

DEFAULT_LANGUAGE = "en"

# Interface languages offered in the page header
SUPPORTED_LANGUAGES = {
    "en": {"name": "English", "native_name": "English"},
    "es": {"name": "Spanish", "native_name": "Español"},
}

_language_cache: Dict[str, Dict[str, Any]] = {}


def _pack_path(lang_code: str) -> Path:
    return LOCALES_DIR / f"{lang_code}.json"


def load_language(lang_code: str) -> Dict[str, Any]:
    """
    Return the language pack for lang_code, reading it once per process.

    An unreadable or missing non-English pack is replaced by the English one;
    a broken English pack yields {} so lookups fall through to the raw key.
    """
    lang_code = normalize_language_code(lang_code)
    if lang_code in _language_cache:
        return _language_cache[lang_code]

    pack_file = _pack_path(lang_code)
    try:
        with open(pack_file, 'r', encoding='utf-8') as f:
            pack = json.load(f)
    except FileNotFoundError:
        logger.debug(f"No language pack at {pack_file}")
        pack = None
    except (OSError, json.JSONDecodeError) as e:
        logger.error(f"Failed to load language pack {pack_file}: {e}")
        pack = None

    if pack is None:
        return load_language(DEFAULT_LANGUAGE) if lang_code != DEFAULT_LANGUAGE else {}

    _language_cache[lang_code] = pack
    return pack


def normalize_language_code(lang_code: str) -> str:
    """
    Map a browser or query-string language tag onto an interface language.

    'es', 'ES', 'es-AR' and 'es_ar' all become 'es'; anything unsupported
    becomes DEFAULT_LANGUAGE.
    """
    if not lang_code:
        return DEFAULT_LANGUAGE

    primary = lang_code.lower().replace('_', '-').split('-')[0]
    return primary if primary in SUPPORTED_LANGUAGES else DEFAULT_LANGUAGE


def _lookup(pack: Dict[str, Any], key: str) -> Optional[str]:
    node: Any = pack
    for part in key.split('.'):
        if not isinstance(node, dict) or part not in node:
            return None
        node = node[part]
    return node if isinstance(node, str) else None


def get_translation(key: str, lang: str = DEFAULT_LANGUAGE, **kwargs) -> str:
    """
    Resolve an interface string such as 'errors.rate_limited'.

    kwargs fill {placeholders} like {provider}. Unknown keys come back
    unchanged so a missing string is visible on the page instead of blank.
    """
    lang = normalize_language_code(lang)
    value = _lookup(load_language(lang), key)
    if value is None and lang != DEFAULT_LANGUAGE:
        value = _lookup(load_language(DEFAULT_LANGUAGE), key)

    if value is None:
        logger.debug(f"Missing interface string {key} ({lang})")
        return key

    if kwargs:
        try:
            value = value.format(**kwargs)
        except KeyError as e:
            logger.warning(f"Missing placeholder {e} for interface string {key}")
    return value


def has_translation(key: str, lang: str = DEFAULT_LANGUAGE) -> bool:
    return get_translation(key, lang) != key


def get_interface_languages() -> List[Dict[str, str]]:
    """Languages with a pack on disk, for the language switcher."""
    return [
        {"code": code, "name": info["name"], "native_name": info["native_name"]}
        for code, info in SUPPORTED_LANGUAGES.items()
        if _pack_path(code).exists()
    ]


def get_all_translations(lang: str = DEFAULT_LANGUAGE) -> Dict[str, Any]:
    """Whole pack for lang; embedded in the page for the client-side script."""
    return load_language(lang)


def clear_cache() -> None:
    _language_cache.clear()
