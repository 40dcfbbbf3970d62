import pytest

from supportbot.services.text_service import (
    classify_yes_no,
    contains_any,
    extract_query_tokens,
    normalize_text,
)


class TestNormalizeText:
    def test_lowercases_and_folds_yo(self):
        assert normalize_text("ЁЛКА Ёж") == "елка еж"

    def test_strips_punctuation_and_collapses_spaces(self):
        assert normalize_text("  Привет,   оператор!!!  ") == "привет оператор"

    def test_handles_none_and_empty(self):
        assert normalize_text(None) == ""
        assert normalize_text("   ") == ""

    def test_drops_emoji_and_dashes(self):
        assert normalize_text("🚗 ДТП — срочно?") == "дтп срочно"

    @pytest.mark.parametrize(
        "text",
        [
            "Привет, МИР!",
            "ёЁё ЕеЕ",
            "  many   spaces\tand\nlines ",
            "Ünïcödé ñ ß İstanbul",
            "123-456 #tag @user",
            "",
            "Да/нет?!",
        ],
    )
    def test_is_idempotent(self, text):
        once = normalize_text(text)
        assert normalize_text(once) == once


class TestContainsAny:
    def test_substring_match_on_normalized_text(self):
        assert contains_any("Соедините с ОПЕРАТОРОМ!", ("оператор",)) is True

    def test_no_match(self):
        assert contains_any("Сколько стоит подписка?", ("оператор", "менеджер")) is False

    def test_empty_text_never_matches(self):
        assert contains_any("", ("",)) is False


class TestClassifyYesNo:
    @pytest.mark.parametrize("text", ["да", "Да!", "да, есть", "ДА конечно"])
    def test_yes(self, text):
        assert classify_yes_no(text) == "yes"

    @pytest.mark.parametrize("text", ["нет", "Нет.", "нет, не могу"])
    def test_no(self, text):
        assert classify_yes_no(text) == "no"

    @pytest.mark.parametrize("text", ["может быть", "не знаю", "когда", "монета", ""])
    def test_ambiguous(self, text):
        assert classify_yes_no(text) is None


class TestExtractQueryTokens:
    def test_drops_short_tokens_and_stop_words(self):
        assert extract_query_tokens("когда работает поддержка") == ["работает", "поддержка"]

    def test_keeps_distinct_tokens_in_order(self):
        assert extract_query_tokens("оплата, оплата картой в СБП") == ["оплата", "картой", "сбп"]

    def test_empty_query(self):
        assert extract_query_tokens("в и на") == []
