"""Tests for topic and query text helpers."""

import pytest

from datagen_agent.utils.text import normalize_topic, sanitize_query, significant_words


class TestSanitizeQuery:
    """Tests for sanitize_query."""

    def test_strips_shell_metacharacters(self):
        assert sanitize_query("sales; rm -rf / && echo $HOME") == "sales rm -rf   echo HOME"

    def test_keeps_allowed_characters(self):
        assert sanitize_query("retail_sales, 2024-q1") == "retail_sales, 2024-q1"

    def test_caps_length(self):
        assert sanitize_query("a" * 500) == "a" * 200
        assert sanitize_query("abcdef", max_length=3) == "abc"

    def test_non_string_and_empty(self):
        assert sanitize_query(None) == ""
        assert sanitize_query("") == ""
        assert sanitize_query(42) == ""  # type: ignore[arg-type]

    def test_only_unsafe_characters(self):
        assert sanitize_query("$(`|`)") == ""

    def test_result_trimmed(self):
        assert sanitize_query("  !!sales!!  ") == "sales"

    @pytest.mark.parametrize(
        "raw",
        ["sales; rm -rf / && echo $HOME", "  !!sales!!  ", "retail_sales, 2024-q1", "x " * 150, "$(`|`)", ""],
    )
    def test_idempotent(self, raw):
        once = sanitize_query(raw)
        assert sanitize_query(once) == once


class TestNormalizeTopic:
    """Tests for the cache-key form of a topic."""

    def test_case_and_whitespace(self):
        assert normalize_topic("  E-Commerce Sales ") == "e-commerce sales"

    def test_none(self):
        assert normalize_topic(None) == ""


class TestSignificantWords:
    """Tests for significant_words."""

    def test_drops_short_words(self):
        assert significant_words("an ecommerce of sales") == ["ecommerce", "sales"]

    def test_lowercases(self):
        assert significant_words("Customer  Churn") == ["customer", "churn"]
