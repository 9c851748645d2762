"""Tests for the symbol-to-speech tokenizer."""

from __future__ import annotations

import pytest

from clack.tokenizer import SPEAKABLE_RULES, speakable, spell


class TestRuleTable:
    def test_longer_literals_come_first(self):
        """No literal contains a literal that appears earlier in the table."""
        for i, (literal, _) in enumerate(SPEAKABLE_RULES):
            for earlier, _ in SPEAKABLE_RULES[:i]:
                assert earlier not in literal or earlier == literal, (
                    f"{earlier!r} runs before {literal!r} and would eat part of it"
                )

    def test_phrases_survive_later_rules(self):
        """No phrase contains a literal that a later rule would rewrite."""
        for i, (_, phrase) in enumerate(SPEAKABLE_RULES):
            for later, _ in SPEAKABLE_RULES[i + 1:]:
                assert later not in phrase, f"{later!r} would rewrite {phrase!r}"

    def test_literals_are_nonempty(self):
        assert all(literal for literal, _ in SPEAKABLE_RULES)


class TestSpeakable:
    @pytest.mark.parametrize("text", ["", "hello world", "abc 123", "CamelCase"])
    def test_text_without_symbols_is_unchanged(self, text):
        assert speakable(text) == text

    def test_single_symbol(self):
        assert speakable("a+b") == "a plus b"

    def test_multi_character_symbol_wins(self):
        assert speakable("a<=b") == "a less than or equal to b"
        assert "less than" not in speakable("a<<b")

    def test_triple_equals(self):
        assert speakable("===") == " triple equals "

    def test_dunder(self):
        assert speakable("__init__") == " dunder init dunder "

    def test_brackets(self):
        assert speakable("f(x)") == "f open paren x close paren "

    def test_not_idempotent(self):
        once = speakable("it's")
        assert "single-quote" in once
        assert speakable(once) != once
        assert "minus" in speakable(once)

    def test_custom_rules(self):
        assert speakable("a@b", rules=(("@", "at"),)) == "a at b"


class TestSpell:
    def test_letters_separated_by_commas(self):
        assert spell("ab") == "a, b, "

    def test_grapheme_clusters_kept_whole(self):
        assert spell("ét") == "é, t, "

    def test_empty(self):
        assert spell("") == ""
