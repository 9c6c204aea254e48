"""
Translation Validation Module

Contains checks on generated translations:
- Key prefix conformance
- Key set consistency across the languages of a bundle

Nothing here rejects a result. The findings are logged and reported back to
the caller as warnings.
"""

from typing import Dict, List, Set

from src.logger import get_logger

logger = get_logger(__name__)


def keys_without_prefix(translations: Dict[str, str], prefix: str) -> List[str]:
    """
    Return the keys that do not start with "{prefix}.".

    Args:
        translations: Flat key/value mapping
        prefix: Expected key namespace

    Returns:
        Sorted list of offending keys (empty when prefix is empty)
    """
    if not prefix:
        return []
    expected = f"{prefix}."
    return sorted(key for key in translations if not key.startswith(expected))


def find_missing_keys(bundle: Dict[str, Dict[str, str]]) -> Dict[str, List[str]]:
    """
    Compare the key sets of every language against their union.

    Args:
        bundle: Mapping of language name to flat translations

    Returns:
        Mapping of language name to the keys it lacks; languages with the full
        key set are omitted.
    """
    all_keys: Set[str] = set()
    for translations in bundle.values():
        all_keys.update(translations.keys())

    missing = {}
    for language, translations in bundle.items():
        lacking = sorted(all_keys - set(translations.keys()))
        if lacking:
            missing[language] = lacking
    return missing


def validate_translation_result(translations: Dict[str, str], prefix: str) -> List[str]:
    """Validate a single-language mapping and return human readable warnings."""
    warnings = []
    unprefixed = keys_without_prefix(translations, prefix)
    if unprefixed:
        warnings.append(
            f"{len(unprefixed)} key(s) do not start with '{prefix}.': {', '.join(unprefixed)}"
        )
    non_strings = sorted(key for key, value in translations.items() if not isinstance(value, str))
    if non_strings:
        warnings.append(f"Non-string values for key(s): {', '.join(non_strings)}")

    for warning in warnings:
        logger.warning(warning)
    return warnings


def validate_bundle(bundle: Dict[str, Dict[str, str]], prefix: str) -> List[str]:
    """Validate a multi-language bundle and return human readable warnings."""
    warnings = []
    for language, lacking in find_missing_keys(bundle).items():
        warnings.append(f"{language} is missing {len(lacking)} key(s): {', '.join(lacking)}")

    for language, translations in bundle.items():
        unprefixed = keys_without_prefix(translations, prefix)
        if unprefixed:
            warnings.append(
                f"{language}: {len(unprefixed)} key(s) do not start with '{prefix}.'"
            )

    for warning in warnings:
        logger.warning(warning)
    return warnings
