"""ABOUTME: Tests for shared parsing and validation helpers."""

import pytest

from searxng_mcp.common.validation import (
    MAX_URL_LENGTH,
    coerce_str_list,
    split_csv,
    validate_non_empty_string,
    validate_url,
)


class TestParsing:
    """Tests for comma-separated list parsing."""

    def test_split_csv(self):
        """Test items are trimmed and empties dropped."""
        assert split_csv(" Google, ,Bing ") == ["Google", "Bing"]
        assert split_csv(" Google, Bing", lowercase=True) == ["google", "bing"]
        assert split_csv("") == []

    def test_coerce_str_list(self):
        """Test sequences and comma strings both become lists."""
        assert coerce_str_list(["a", "b, c"]) == ["a", "b", "c"]
        assert coerce_str_list("a,b") == ["a", "b"]
        with pytest.raises(ValueError):
            coerce_str_list(["a", 3])


class TestValidators:
    """Tests for the standalone validators."""

    def test_valid_url(self):
        """Test a normal URL passes."""
        assert validate_url("https://example.com/a?b=c") == (True, None)

    @pytest.mark.parametrize("url", ["", "   ", "https://exa mple.com", "https://x/" + "a" * MAX_URL_LENGTH])
    def test_invalid_url(self, url):
        """Test empty, whitespace-containing and oversized URLs fail."""
        is_valid, error = validate_url(url)
        assert not is_valid
        assert error

    def test_non_empty_string(self):
        """Test blank and non-string values are rejected."""
        assert validate_non_empty_string("q") == (True, None)
        assert validate_non_empty_string("  ", "query")[1] == "query cannot be empty or whitespace-only"
        assert validate_non_empty_string(5, "query")[0] is False
