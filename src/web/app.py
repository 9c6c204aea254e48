"""Flask application configuration and blueprint registration."""

from __future__ import annotations

from datetime import datetime

from flask import Flask, jsonify, render_template, request, g

from src import config
from src import i18n
from src.ai.models import AVAILABLE_MODELS, DEFAULT_MODEL_ID, LANGUAGE_LABELS, SUPPORTED_LANGUAGES
from src.logger import get_logger

from .routes.translation import translation_bp

logger = get_logger(__name__)


def get_current_language() -> str:
    """
    Determine the current language from various sources.
    Priority: query param > cookie > Accept-Language header > default (en)
    """
    lang = request.args.get('lang')
    if lang and lang in i18n.SUPPORTED_LANGUAGES:
        return lang

    lang = request.cookies.get('lang')
    if lang and lang in i18n.SUPPORTED_LANGUAGES:
        return lang

    accept_lang = request.accept_languages.best_match(
        list(i18n.SUPPORTED_LANGUAGES.keys()),
        default=i18n.DEFAULT_LANGUAGE
    )
    if accept_lang:
        return i18n.normalize_language_code(accept_lang)

    return i18n.DEFAULT_LANGUAGE


def build_app() -> Flask:
    """Create and configure the Flask application."""
    app = Flask(__name__, template_folder="templates", static_folder="static")

    # Ensure JSON responses keep Unicode data.
    app.config["JSON_AS_ASCII"] = False
    app.json.ensure_ascii = False

    @app.before_request
    def before_request():
        """Set current language in g before each request."""
        g.lang = get_current_language()

    @app.context_processor
    def inject_i18n():
        """Inject i18n functions and data into Jinja2 templates."""
        lang = getattr(g, 'lang', i18n.DEFAULT_LANGUAGE)

        def t(key, **kwargs):
            """Translation function for templates."""
            return i18n.get_translation(key, lang, **kwargs)

        return {
            't': t,
            'current_lang': lang,
            'available_languages': i18n.get_interface_languages(),
        }

    register_blueprints(app)
    register_default_routes(app)

    return app


def register_blueprints(app: Flask) -> None:
    """Register Flask blueprints."""
    app.register_blueprint(translation_bp, url_prefix="/api")


def register_default_routes(app: Flask) -> None:
    """Register default health and index routes."""

    @app.get("/health")
    def health_check():
        logger.debug("Health check requested")
        return jsonify({"status": "ok"})

    @app.get("/")
    def home():
        lang = getattr(g, 'lang', i18n.DEFAULT_LANGUAGE)
        current_config = config.load_config()
        configured = {
            provider: bool(config.get_api_key(provider, current_config))
            for provider in config.BUILTIN_PROVIDERS
        }
        return render_template(
            "index.html",
            title=i18n.get_translation("app.title", lang=lang),
            current_year=datetime.now().year,
            models=AVAILABLE_MODELS,
            default_model=current_config.get("default_model") or DEFAULT_MODEL_ID,
            provider_names=config.BUILTIN_PROVIDER_DISPLAY_NAMES,
            configured_providers=configured,
            billing_urls=config.BILLING_URLS,
            languages=[(code, LANGUAGE_LABELS[code]) for code in SUPPORTED_LANGUAGES],
            messages=i18n.get_all_translations(lang),
        )

    @app.errorhandler(404)
    def page_not_found(e):
        """Handle 404 errors with a friendly page."""
        lang = get_current_language()
        error_title = i18n.get_translation("errors.page_not_found_title", lang=lang)
        if request.path.startswith("/api/"):
            return jsonify({"error": error_title}), 404
        return render_template(
            "error.html",
            title=error_title,
            current_year=datetime.now().year,
            error_title=error_title,
            error_message=i18n.get_translation("errors.page_not_found_message", lang=lang),
            error_code=404,
        ), 404

    @app.errorhandler(500)
    def internal_error(e):
        """Handle 500 errors with a friendly page."""
        logger.exception("Internal server error: %s", e)
        lang = get_current_language()
        error_title = i18n.get_translation("errors.server_error_title", lang=lang)
        if request.path.startswith("/api/"):
            return jsonify({"error": i18n.get_translation("errors.unexpected_error_occurred", lang=lang)}), 500
        return render_template(
            "error.html",
            title=error_title,
            current_year=datetime.now().year,
            error_title=error_title,
            error_message=i18n.get_translation("errors.unexpected_error_occurred", lang=lang),
            error_code=500,
        ), 500
