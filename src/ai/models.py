"""
AI model catalogue.

Static table of the models offered in the model selector, each tagged with
the backend that serves it.
"""

from dataclasses import dataclass, asdict, field
from typing import Dict, List, Optional, Any

OPENAI_BACKEND = "openai"
GOOGLE_BACKEND = "google"


@dataclass(frozen=True)
class AIModel:
    """Descriptor of a selectable model."""
    id: str
    name: str
    max_tokens: int
    description: str
    provider: str

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


AVAILABLE_MODELS: List[AIModel] = [
    AIModel(
        id="gpt-3.5-turbo",
        name="GPT-3.5 Turbo",
        max_tokens=4000,
        description="Good balance between performance and cost",
        provider=OPENAI_BACKEND,
    ),
    AIModel(
        id="gpt-3.5-turbo-16k",
        name="GPT-3.5 Turbo 16K",
        max_tokens=16000,
        description="Handles longer texts, more expensive",
        provider=OPENAI_BACKEND,
    ),
    AIModel(
        id="gpt-4",
        name="GPT-4",
        max_tokens=8000,
        description="Most capable model, highest quality, most expensive",
        provider=OPENAI_BACKEND,
    ),
    AIModel(
        id="gpt-4-turbo-preview",
        name="GPT-4 Turbo",
        max_tokens=128000,
        description="Latest GPT-4 version, handles very long texts",
        provider=OPENAI_BACKEND,
    ),
    AIModel(
        id="gemini-2.0-flash",
        name="Gemini 2.0 Flash",
        max_tokens=30720,
        description="Google's fastest model, optimized for quick responses",
        provider=GOOGLE_BACKEND,
    ),
]

DEFAULT_MODEL_ID = "gemini-2.0-flash"


def get_model(model_id: Optional[str]) -> Optional[AIModel]:
    """Look up a model descriptor by id, or None if it is not in the table."""
    for model in AVAILABLE_MODELS:
        if model.id == model_id:
            return model
    return None


def get_models_for_backend(backend: str) -> List[AIModel]:
    return [m for m in AVAILABLE_MODELS if m.provider == backend]


# Languages of a translation bundle, in display order
SUPPORTED_LANGUAGES = ("spanish", "english", "french", "portuguese")

LANGUAGE_LABELS = {
    "spanish": "Español",
    "english": "English",
    "french": "Français",
    "portuguese": "Português",
}


@dataclass
class MultiLanguageTranslations:
    """Four-language result of a multi-language extraction."""
    spanish: Dict[str, str] = field(default_factory=dict)
    english: Dict[str, str] = field(default_factory=dict)
    french: Dict[str, str] = field(default_factory=dict)
    portuguese: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_response(cls, data: Dict[str, Any]) -> "MultiLanguageTranslations":
        """Build a bundle from parsed model output; absent or non-object languages become {}."""
        values = {}
        for language in SUPPORTED_LANGUAGES:
            mapping = data.get(language)
            values[language] = mapping if isinstance(mapping, dict) else {}
        return cls(**values)

    def to_dict(self) -> Dict[str, Dict[str, str]]:
        return {language: getattr(self, language) for language in SUPPORTED_LANGUAGES}

    def is_empty(self) -> bool:
        return not any(getattr(self, language) for language in SUPPORTED_LANGUAGES)
