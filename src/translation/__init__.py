"""
Translation module - Text shaping around the AI calls

This module provides:
- Utilities for cleaning HTML and parsing model output
- Validation of generated keys
"""

from src.translation.utils import (
    clean_html,
    clean_template_expressions,
    strip_code_fence,
    safe_parse_json_object,
    ensure_key_prefix,
    nest_translations,
)
from src.translation.validator import (
    keys_without_prefix,
    find_missing_keys,
    validate_translation_result,
    validate_bundle,
)
