import unittest

from backend.localization import (
    localized_variants,
    normalize_language,
    resolve_localized_text,
)


class ResolveLocalizedTextTests(unittest.TestCase):
    def test_exact_language(self):
        value = {"en": "Hello", "ru": "Привет"}
        self.assertEqual(resolve_localized_text(value, "ru"), "Привет")

    def test_region_falls_back_to_base_language(self):
        value = {"en": "Hello", "ru": "Привет"}
        self.assertEqual(resolve_localized_text(value, "ru-RU"), "Привет")
        self.assertEqual(resolve_localized_text(value, "ru_RU"), "Привет")

    def test_unknown_language_uses_default(self):
        self.assertEqual(resolve_localized_text({"en": "Hello"}, "fr"), "Hello")

    def test_plain_string_is_returned_unchanged(self):
        self.assertEqual(resolve_localized_text("Plain", "ru"), "Plain")

    def test_first_available_when_nothing_matches(self):
        self.assertEqual(resolve_localized_text({"fr": "Bonjour"}, "ru"), "Bonjour")

    def test_first_available_skips_blank_values(self):
        value = {"fr": "  ", "de": "Hallo"}
        self.assertEqual(resolve_localized_text(value, "ru"), "Hallo")

    def test_configured_default_language(self):
        value = {"uk": "Привіт", "de": "Hallo", "en": "Hello"}
        self.assertEqual(
            resolve_localized_text(value, "fr", default_language="de"), "Hallo"
        )
        self.assertEqual(
            resolve_localized_text(value, "fr", default_language="uk-UA"), "Привіт"
        )

    def test_exact_regional_key(self):
        value = {"pt-br": "Olá", "pt": "Olá (PT)"}
        self.assertEqual(resolve_localized_text(value, " PT_BR "), "Olá")

    def test_missing_value(self):
        self.assertEqual(resolve_localized_text(None, "en"), "")
        self.assertEqual(resolve_localized_text(42, "en"), "")
        self.assertEqual(resolve_localized_text({}, "en"), "")

    def test_no_requested_language(self):
        self.assertEqual(resolve_localized_text({"ru": "Да", "en": "Yes"}, None), "Yes")

    def test_non_string_values_are_ignored(self):
        value = {"ru": 5, "fr": "Oui"}
        self.assertEqual(resolve_localized_text(value, "ru"), "Oui")


class LanguageHelpersTests(unittest.TestCase):
    def test_normalize_language(self):
        self.assertEqual(normalize_language("en_US"), "en-us")
        self.assertEqual(normalize_language(None), "")

    def test_localized_variants(self):
        self.assertEqual(localized_variants("a"), ["a"])
        self.assertEqual(localized_variants({"en": "a", "ru": "б"}), ["a", "б"])
        self.assertEqual(localized_variants(None), [])


if __name__ == "__main__":
    unittest.main()
