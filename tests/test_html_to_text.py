"""ABOUTME: Tests for HTML to text conversion."""

from searxng_mcp.browse.html_to_text import html_to_text, normalize_whitespace


class TestHtmlToText:
    """Tests for html_to_text."""

    def test_structure_markers(self):
        """Test headings, list items and links keep plain markers."""
        html = """
        <html><body>
          <h2>Section</h2>
          <ol><li>One</li></ol>
          <ul><li>Apple</li><li>Pear</li></ul>
          <p>See <a href="https://example.com/docs">the docs</a>.</p>
        </body></html>
        """
        text, _ = html_to_text(html)
        assert "## Section" in text
        assert "- Apple" in text
        assert "- Pear" in text
        assert "[the docs](https://example.com/docs)" in text

    def test_strips_non_content(self):
        """Test scripts, styles, noscript, templates, iframes, svg and comments are removed."""
        html = """
        <html><body>
          <script>var token = "abc";</script>
          <style>.x { display: none }</style>
          <noscript>Enable JavaScript</noscript>
          <template><p>Hidden template</p></template>
          <iframe src="https://ads.example.com"></iframe>
          <svg><text>Logo text</text></svg>
          <!-- internal comment -->
          <p>Visible</p>
        </body></html>
        """
        text, _ = html_to_text(html)
        assert text == "Visible"

    def test_title_from_title_tag(self):
        """Test the <title> element is used as the title."""
        text, title = html_to_text("<html><head><title> My Page </title></head><body><p>x</p></body></html>")
        assert title == "My Page"
        assert "My Page" not in text

    def test_title_falls_back_to_h1(self):
        """Test the first <h1> is used when there is no <title>."""
        _, title = html_to_text("<html><body><h1>Heading Title</h1><p>x</p></body></html>")
        assert title == "Heading Title"

    def test_no_title(self):
        """Test pages without a title report None."""
        _, title = html_to_text("<p>just text</p>")
        assert title is None

    def test_collapses_blank_lines(self):
        """Test runs of blank lines collapse to one blank line."""
        text, _ = html_to_text("<p>First</p><br><br><br><br><p>Second</p>")
        assert "\n\n\n" not in text
        assert text.startswith("First")
        assert text.endswith("Second")


class TestNormalizeWhitespace:
    """Tests for whitespace normalization."""

    def test_collapses_spaces_and_tabs(self):
        """Test runs of spaces and tabs collapse to one space."""
        assert normalize_whitespace("a  \t b") == "a b"

    def test_removes_trailing_spaces(self):
        """Test trailing whitespace on each line is dropped."""
        assert normalize_whitespace("line one   \nline two\t") == "line one\nline two"

    def test_squeezes_newlines(self):
        """Test three or more newlines become two."""
        assert normalize_whitespace("a\n\n\n\n\nb") == "a\n\nb"

    def test_normalizes_crlf(self):
        """Test CRLF line endings become LF."""
        assert normalize_whitespace("a\r\nb") == "a\nb"

    def test_keeps_leading_indentation(self):
        """Test indentation at the start of a line survives."""
        assert normalize_whitespace("- outer\n    - inner  item") == "- outer\n    - inner item"

    def test_fenced_block_untouched(self):
        """Test runs of spaces inside a ``` fence are kept."""
        text = "```\nx  =  1\n    return x\n```\nafter   fence"
        assert normalize_whitespace(text) == "```\nx  =  1\n    return x\n```\nafter fence"


class TestLayoutPreserved:
    """Tests for nested structure surviving conversion."""

    def test_nested_list_and_pre(self):
        """Test nested list items stay indented and <pre> keeps its indentation."""
        text, _ = html_to_text(
            "<ul><li>outer<ul><li>inner</li></ul></li></ul>"
            "<pre>def f():\n    return 1</pre>"
        )
        lines = text.split("\n")
        inner = next(line for line in lines if line.lstrip().startswith("- inner"))
        assert len(inner) - len(inner.lstrip()) >= 2
        assert "    return 1" in lines
