"""
Internationalization (i18n) Module

Every notification the buy screen shows is looked up here, so the same
state machine speaks Vietnamese or English depending on the session.

Supported languages:
- Vietnamese (vi) - default
- English (en)

Catalogues live in translations/<code>.json as nested objects; keys are
addressed with dots ('booking.success').

Usage in Python:
    from modules.i18n import translate
    message = translate('selection.sold_out', lang='vi')
"""

import json
import logging
from pathlib import Path
from typing import Dict, Any, Optional

logger = logging.getLogger(__name__)

# Supported languages
SUPPORTED_LANGUAGES = {
    'vi': {'name': 'Tiếng Việt'},
    'en': {'name': 'English'},
}

DEFAULT_LANGUAGE = 'vi'

TRANSLATIONS_DIR = Path(__file__).parent.parent / 'translations'


class I18nManager:
    """
    Holds one catalogue per supported language.

    A missing or unreadable catalogue leaves that language empty; lookups
    then fall back to returning the key, never raising.
    """

    def __init__(self, translations_dir: Optional[Path] = None):
        self.translations_dir = Path(translations_dir or TRANSLATIONS_DIR)
        self._catalogues: Dict[str, Dict[str, Any]] = {
            code: self._read_catalogue(code) for code in SUPPORTED_LANGUAGES
        }

    def _read_catalogue(self, lang_code: str) -> Dict[str, Any]:
        path = self.translations_dir / f'{lang_code}.json'
        if not path.exists():
            logger.warning(f"Translation file not found: {path}")
            return {}

        try:
            with open(path, 'r', encoding='utf-8') as f:
                catalogue = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.error(f"Failed to load translation file {path}: {e}")
            return {}

        logger.debug(f"Loaded translations for language: {lang_code}")
        return catalogue

    def lookup(self, key: str, lang: str) -> Optional[str]:
        """Raw catalogue entry for a dotted key, or None."""
        node: Any = self._catalogues.get(lang, {})
        for part in key.split('.'):
            if not isinstance(node, dict):
                return None
            node = node.get(part)
        return node if isinstance(node, str) else None

    def get_translation(self, key: str, lang: str = DEFAULT_LANGUAGE, **kwargs) -> str:
        """
        Translate a key, substituting {placeholders} from kwargs.

        Unsupported languages use the default language. Unknown keys come
        back unchanged.
        """
        lang = resolve_language(lang)
        text = self.lookup(key, lang)
        if text is None:
            logger.debug(f"Translation key not found: {key} (lang: {lang})")
            return key

        if not kwargs:
            return text
        try:
            return text.format(**kwargs)
        except KeyError as e:
            logger.warning(f"Missing variable in translation: {e} (key: {key}, lang: {lang})")
            return text

    def is_language_supported(self, lang_code: str) -> bool:
        return lang_code in SUPPORTED_LANGUAGES


def resolve_language(lang: Optional[str]) -> str:
    """Return lang if supported, otherwise the default language."""
    if lang and lang in SUPPORTED_LANGUAGES:
        return lang
    return DEFAULT_LANGUAGE


# Global i18n manager instance
i18n_manager = I18nManager()


def translate(key: str, lang: str = DEFAULT_LANGUAGE, **kwargs) -> str:
    """
    Translate a key to the specified language.

    Example:
        >>> translate('booking.success', lang='en')
        'Booking successful!'
    """
    return i18n_manager.get_translation(key, lang, **kwargs)


def get_supported_languages() -> Dict[str, Dict[str, str]]:
    """Map of language code -> language metadata."""
    return SUPPORTED_LANGUAGES
