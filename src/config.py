import copy
import json
import os
from pathlib import Path
from typing import Dict, Any, Optional

# Provider configuration constants
BUILTIN_PROVIDERS = ["openai", "google"]

BUILTIN_PROVIDER_DISPLAY_NAMES = {
    "openai": "OpenAI",
    "google": "Google AI"
}

BILLING_URLS = {
    "openai": "https://platform.openai.com/account/billing",
    "google": "https://console.cloud.google.com/billing"
}

API_KEY_URLS = {
    "openai": "https://platform.openai.com/api-keys",
    "google": "https://makersuite.google.com/app/apikey"
}

PROVIDER_DEFAULTS = {
    "timeout": 120
}

PLACEHOLDER_API_KEY = "YOUR_API_KEY_HERE"

LOG_MODES = ("off", "info", "debug")

# Environment variables read on top of the config file
ENV_API_KEYS = {
    "openai": "OPENAI_API_KEY",
    "google": "GEMINI_API_KEY",
}
ENV_LOG_MODE = "I18N_EXTRACTOR_LOG_MODE"

# Get base directory (project root)
BASE_DIR = Path(__file__).parent.parent
CONFIG_DIR = BASE_DIR / "config"
CONFIG_FILE = CONFIG_DIR / "config.json"

# Shared rules appended to every extraction prompt
KEY_RULES = """Rules for key generation:
- Use semantic names that represent the content's meaning
- Use common patterns like STEP1_TITLE, STEP2_TITLE for sequential items
- Use NOT_SATISFIED, VERY_SATISFIED for ratings
- Use PLACEHOLDER for input placeholders
- Use THANKS for thank you messages
- Keep keys concise but meaningful"""

MULTI_LANGUAGE_SHAPE = """{{
  "spanish": {{ "KEY_NAME": "Spanish translation" }},
  "english": {{ "KEY_NAME": "English translation" }},
  "french": {{ "KEY_NAME": "French translation" }},
  "portuguese": {{ "KEY_NAME": "Portuguese translation" }}
}}"""

# Default prompts
DEFAULT_PROMPTS = {
    "single_language_system": {
        "version": "1.0",
        "description": "System message for single-language (English) extraction",
        "prompt": """You are an HTML text extractor and translator. Your task is to:
1. Extract all human-readable text from the HTML, including relevant attributes like placeholder
2. Generate an appropriate translation key in SCREAMING_SNAKE_CASE
3. Translate the text to English
4. Return a JSON object where each key follows the pattern: "{prefix}.KEY_NAME" and the value is the English translation

""" + KEY_RULES + """

Example output format:
{{
  "{prefix}.STEP1_TITLE": "1/2 How was your experience using our service?",
  "{prefix}.NOT_SATISFIED": "Not satisfied at all",
  "{prefix}.VERY_SATISFIED": "Very satisfied"
}}

IMPORTANT:
- Only return the translated text as values, do not include the original text or create duplicate keys with "_TRANSLATION" suffix
- Ignore any numbers-only content
- Return ONLY a valid JSON object with the translations
- Make sure all keys start with "{prefix}." """
    },
    "single_language_user": {
        "version": "1.0",
        "description": "User message for single-language (English) extraction",
        "prompt": "Extract text, generate keys and translate this HTML to English: {html}"
    },
    "multi_language_system": {
        "version": "1.0",
        "description": "System message for four-language extraction",
        "prompt": """You are an HTML text extractor and translator. Your task is to:
1. Extract all human-readable text from the HTML
2. Generate an appropriate translation key in SCREAMING_SNAKE_CASE
3. Translate the text to {languages}
4. Return a JSON object with the following structure:
""" + MULTI_LANGUAGE_SHAPE + """

""" + KEY_RULES + """

IMPORTANT:
- Only return the translated text as values, do not include the original text
- Use the same keys across all languages
- Each key should follow the pattern: "{prefix}.KEY_NAME" """
    },
    "multi_language_user": {
        "version": "1.0",
        "description": "User message for four-language extraction",
        "prompt": "Extract text, generate keys and translate this HTML to {languages}: {html}"
    },
    "inline_suffix": {
        "version": "1.0",
        "description": "Appended when the backend takes a single text prompt without JSON mode",
        "prompt": """

Input HTML: {html}

IMPORTANT: Return a valid JSON object only, with no markdown formatting or backticks."""
    },
}

# Default configuration templates
DEFAULT_CONFIG = {
    "openai": {
        "api_key": PLACEHOLDER_API_KEY,
        "timeout": 120,
        "api_url": "https://api.openai.com/v1/chat/completions"
    },
    "google": {
        "api_key": PLACEHOLDER_API_KEY,
        "timeout": 120,
        "api_url": "https://generativelanguage.googleapis.com/v1beta"
    },
    "default_model": "gemini-2.0-flash",
    "log_mode": "off"
}


def _read_config_file() -> Dict[str, Any]:
    """Read config.json if present. Returns an empty dict when missing."""
    if not CONFIG_FILE.exists():
        return {}
    with open(CONFIG_FILE, 'r', encoding='utf-8') as f:
        data = json.load(f)
    if not isinstance(data, dict):
        raise ValueError(f"{CONFIG_FILE} must contain a JSON object")
    return data


def get_log_mode() -> str:
    """Resolve log mode from the environment, then config.json, then the default."""
    log_mode = os.environ.get(ENV_LOG_MODE)
    if not log_mode:
        try:
            log_mode = _read_config_file().get('log_mode')
        except (OSError, ValueError):
            log_mode = None
    if log_mode not in LOG_MODES:
        return DEFAULT_CONFIG['log_mode']
    return log_mode


# Logger is created after get_log_mode exists so src.logger can import it
from src.logger import get_logger  # noqa: E402

logger = get_logger(__name__)


def ensure_config_directory():
    """Ensure the config directory exists."""
    CONFIG_DIR.mkdir(exist_ok=True)
    logger.debug(f"Config directory ensured: {CONFIG_DIR}")


def create_default_config():
    """Create the default config.json file."""
    ensure_config_directory()
    with open(CONFIG_FILE, 'w', encoding='utf-8') as f:
        json.dump(DEFAULT_CONFIG, f, indent=4, ensure_ascii=False)
    logger.info(f"Created default config file: {CONFIG_FILE}")


def initialize_app():
    """
    Initialize the application.
    Writes a default config.json on first run so operators have a template to edit.
    """
    logger.info("Initializing application...")
    if not CONFIG_FILE.exists():
        try:
            create_default_config()
        except OSError as e:
            logger.warning(f"Could not write default config file: {e}")
            logger.warning("Application will use in-memory default configuration")
    logger.info("Application initialization complete")


def _merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(base.get(key), dict):
            _merge(base[key], value)
        else:
            base[key] = value
    return base


def load_config() -> Dict[str, Any]:
    """
    Load the configuration.

    Priority: environment variables > config/config.json > DEFAULT_CONFIG
    """
    config = copy.deepcopy(DEFAULT_CONFIG)

    try:
        file_config = _read_config_file()
        if file_config:
            _merge(config, file_config)
            logger.debug("Configuration loaded from %s", CONFIG_FILE)
    except json.JSONDecodeError as e:
        logger.error(f"Failed to parse config file {CONFIG_FILE}: {e}")
        logger.warning("Using default configuration")
    except (OSError, ValueError) as e:
        logger.error(f"Failed to load config file {CONFIG_FILE}: {e}")
        logger.warning("Using default configuration")

    for provider, env_name in ENV_API_KEYS.items():
        env_value = os.environ.get(env_name)
        if env_value:
            config.setdefault(provider, {})['api_key'] = env_value

    env_log_mode = os.environ.get(ENV_LOG_MODE)
    if env_log_mode in LOG_MODES:
        config['log_mode'] = env_log_mode
    return config


def save_config(config: Dict[str, Any]):
    """Save the configuration to config.json."""
    try:
        ensure_config_directory()
        with open(CONFIG_FILE, 'w', encoding='utf-8') as f:
            json.dump(config, f, indent=4, ensure_ascii=False)
        logger.info("Configuration saved to %s", CONFIG_FILE)
    except OSError as e:
        logger.error(f"Failed to save config to {CONFIG_FILE}: {e}")
        raise


def get_provider_config(provider: str, config: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """Return the settings block for a backend, with defaults filled in."""
    config = config if config is not None else load_config()
    provider_config = dict(DEFAULT_CONFIG.get(provider, {}))
    provider_config.update(config.get(provider, {}) or {})
    for key, value in PROVIDER_DEFAULTS.items():
        provider_config.setdefault(key, value)
    return provider_config


def get_api_key(provider: str, config: Optional[Dict[str, Any]] = None) -> str:
    """Return the configured API key for a backend, or '' when none is set."""
    api_key = get_provider_config(provider, config).get('api_key', '')
    if not api_key or api_key == PLACEHOLDER_API_KEY:
        return ''
    return api_key


def load_prompts() -> Dict[str, Any]:
    """Load the prompts from default configuration.

    Note: Prompts are hardcoded in the codebase and are not read from config.json.
    """
    return copy.deepcopy(DEFAULT_PROMPTS)


def get_prompt(prompt_name: str) -> Dict[str, Any]:
    """Get a specific prompt by name."""
    prompts = load_prompts()
    if prompt_name not in prompts:
        raise KeyError(f"Unknown prompt: {prompt_name}")
    return prompts[prompt_name]
