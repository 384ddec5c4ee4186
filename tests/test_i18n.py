"""
Tests for notification translations.
"""

import json
from pathlib import Path

import pytest

from modules.i18n import (
    DEFAULT_LANGUAGE,
    I18nManager,
    get_supported_languages,
    resolve_language,
    translate,
)


TRANSLATIONS_DIR = Path(__file__).parent.parent / "translations"


def _flatten(tree, prefix=""):
    keys = set()
    for key, value in tree.items():
        full_key = f"{prefix}{key}"
        if isinstance(value, dict):
            keys |= _flatten(value, f"{full_key}.")
        else:
            keys.add(full_key)
    return keys


class TestCatalogues:
    """Both languages carry the same keys."""

    def test_same_keys_in_all_languages(self):
        catalogues = {
            lang: json.loads((TRANSLATIONS_DIR / f"{lang}.json").read_text(encoding="utf-8"))
            for lang in get_supported_languages()
        }
        key_sets = {lang: _flatten(tree) for lang, tree in catalogues.items()}
        assert key_sets["vi"] == key_sets["en"]

    @pytest.mark.parametrize("key,expected", [
        ("selection.sold_out", "This ticket type is sold out!"),
        ("booking.success", "Booking successful!"),
        ("booking.session_expired", "Your session has expired, please log in again"),
        ("booking.failed", "Could not book tickets, please try again"),
        ("load.failed", "Failed to load event data"),
        ("confirmation.no_ticket", "No ticket information found"),
    ])
    def test_english_messages(self, key, expected):
        assert translate(key, lang="en") == expected


class TestTranslate:
    def test_default_language_is_vietnamese(self):
        assert DEFAULT_LANGUAGE == "vi"
        assert translate("booking.success") == translate("booking.success", lang="vi")
        assert translate("booking.success") != translate("booking.success", lang="en")

    def test_missing_key_returns_key(self):
        assert translate("no.such.key", lang="en") == "no.such.key"

    def test_unknown_language_falls_back_to_default(self):
        assert translate("booking.success", lang="fr") == translate("booking.success", lang="vi")

    def test_variable_substitution(self):
        assert translate("screen.unsupported_language", lang="en", code="xx") == (
            "Unsupported language: xx"
        )

    def test_resolve_language(self):
        assert resolve_language("en") == "en"
        assert resolve_language("xx") == DEFAULT_LANGUAGE
        assert resolve_language(None) == DEFAULT_LANGUAGE

    def test_missing_directory_returns_keys(self, tmp_path):
        manager = I18nManager(tmp_path / "nowhere")
        assert manager.get_translation("booking.success", lang="en") == "booking.success"

    def test_custom_directory(self, tmp_path):
        (tmp_path / "en.json").write_text(
            json.dumps({"booking": {"success": "Done"}}), encoding="utf-8"
        )
        (tmp_path / "vi.json").write_text("{not json", encoding="utf-8")

        manager = I18nManager(tmp_path)

        assert manager.get_translation("booking.success", lang="en") == "Done"
        assert manager.get_translation("booking.success", lang="vi") == "booking.success"
        assert manager.lookup("booking", "en") is None
