"""Tests for keyboard, skip link, title and language rules."""

from conftest import html_page, make_doc

from includo.rules import (
    KeyboardAccessRule,
    PageLanguageRule,
    PageTitleRule,
    Severity,
    SkipLinkRule,
)


class TestKeyboardAccessRule:
    """Tests for KeyboardAccessRule."""

    def test_click_only_div(self):
        """Test a div with only a click handler is flagged."""
        findings = KeyboardAccessRule().check(
            make_doc('<div class="card" onclick="go()">Open</div>')
        )
        assert [f.issue_type for f in findings] == ["keyboard_accessibility"]
        assert findings[0].criterion == "2.1.1"
        assert findings[0].selector == "div.card"

    def test_key_handler_or_native_control(self):
        """Test keyboard handlers and native controls are accepted."""
        body = (
            '<div onclick="go()" onkeydown="go()">Open</div>'
            '<button onclick="go()">Open</button>'
            '<a href="#" onclick="go()">Open</a>'
        )
        assert KeyboardAccessRule().check(make_doc(body)) == []

    def test_tabindex_values(self):
        """Test only integers below -1 are invalid."""
        body = (
            '<div tabindex="-2">a</div>'
            '<div tabindex="-1">b</div>'
            '<div tabindex="0">c</div>'
            '<div tabindex="abc">d</div>'
        )
        findings = KeyboardAccessRule().check(make_doc(body))
        assert [f.issue_type for f in findings] == ["invalid_tabindex"]
        assert findings[0].description == "Invalid tabindex value: -2"


class TestSkipLinkRule:
    """Tests for SkipLinkRule."""

    def test_missing(self):
        """Test pages without a skip link get one document-level finding."""
        findings = SkipLinkRule().check(make_doc('<a href="/about">About</a>'))
        assert [f.issue_type for f in findings] == ["skip_links"]
        assert findings[0].selector == "document"

    def test_present(self):
        """Test an in-page link with skip wording satisfies the rule."""
        body = '<a href="#main">Skip to main content</a><main id="main"></main>'
        assert SkipLinkRule().check(make_doc(body)) == []

    def test_skip_text_needs_fragment(self):
        """Test skip wording pointing to another page does not count."""
        body = '<a href="/main">Skip to main content</a>'
        assert len(SkipLinkRule().check(make_doc(body))) == 1


class TestPageTitleRule:
    """Tests for PageTitleRule."""

    def test_missing_title(self):
        """Test a missing title is a high severity failure."""
        findings = PageTitleRule().check(make_doc(html_page(title=None)))
        assert [f.issue_type for f in findings] == ["page_title"]
        assert findings[0].severity == Severity.HIGH

    def test_blank_title(self):
        """Test a whitespace-only title counts as missing."""
        findings = PageTitleRule().check(make_doc(html_page(title="   ")))
        assert [f.issue_type for f in findings] == ["page_title"]

    def test_short_title(self):
        """Test titles shorter than ten characters are a quality issue."""
        findings = PageTitleRule().check(make_doc(html_page(title="Home")))
        assert [f.issue_type for f in findings] == ["page_title_quality"]
        assert findings[0].severity == Severity.MEDIUM
        assert findings[0].description == "Page title is 4 characters long"

    def test_long_title(self):
        """Test titles over sixty characters are a quality issue."""
        findings = PageTitleRule().check(make_doc(html_page(title="x" * 61)))
        assert [f.issue_type for f in findings] == ["page_title_quality"]

    def test_good_title(self):
        """Test a descriptive title passes."""
        title = "Contact the city library"
        assert len(title) == 24
        assert PageTitleRule().check(make_doc(html_page(title=title))) == []


class TestPageLanguageRule:
    """Tests for PageLanguageRule."""

    def test_lang_present(self):
        """Test <html lang> satisfies the rule."""
        assert PageLanguageRule().check(make_doc(html_page())) == []

    def test_lang_missing_or_blank(self):
        """Test a missing or blank lang attribute is flagged."""
        markups = ("<html><body></body></html>", '<html lang=" "></html>', "<p>x</p>")
        for markup in markups:
            findings = PageLanguageRule().check(make_doc(markup))
            assert [f.issue_type for f in findings] == ["page_language"]
            assert findings[0].criterion == "3.1.1"
