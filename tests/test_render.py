"""Unit tests for message rendering."""
from chorus.render import normalize_latex, render


class TestNormalizeLatex:
    """Tests for LaTeX delimiter rewriting."""

    def test_inline_and_display(self):
        """Test both delimiter styles."""
        text = r"Euler: \( e^{i\pi} + 1 = 0 \) and \[ \int_0^1 x\,dx \]"

        assert normalize_latex(text) == r"Euler: $e^{i\pi} + 1 = 0$ and $$\int_0^1 x\,dx$$"

    def test_code_fences_untouched(self):
        """Test that fenced code keeps its backslashes."""
        text = "Math \\(a\\)\n```\nprint('\\(a\\)')\n```\nAfter \\(b\\)"

        assert normalize_latex(text) == "Math $a$\n```\nprint('\\(a\\)')\n```\nAfter $b$"

    def test_plain_text_unchanged(self):
        """Test text without math."""
        assert normalize_latex("just $5 and (parens)") == "just $5 and (parens)"


class TestRender:
    """Tests for Markdown to HTML rendering."""

    def test_raw_html_is_escaped(self):
        """Test that model output cannot inject markup."""
        html = render("<script>alert(1)</script>")

        assert "<script>" not in html
        assert "&lt;script&gt;" in html

    def test_tables_and_strikethrough(self):
        """Test the enabled extensions."""
        html = render("| a | b |\n|---|---|\n| 1 | 2 |\n\n~~gone~~")

        assert "<table>" in html
        assert "<td>1</td>" in html
        assert "<s>gone</s>" in html

    def test_links_open_in_new_tab(self):
        """Test link attributes."""
        html = render("[docs](https://example.com)")

        assert 'href="https://example.com"' in html
        assert 'target="_blank"' in html
        assert 'rel="noopener noreferrer"' in html

    def test_math_reaches_output(self):
        """Test that normalized math survives rendering."""
        assert "$x^2$" in render(r"Square: \(x^2\)")

    def test_empty(self):
        """Test that empty text renders to nothing."""
        assert render("") == ""
