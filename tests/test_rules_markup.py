"""Tests for markup validity and ARIA rules."""

from conftest import make_doc

from includo.rules import AriaRule, MarkupValidityRule


class TestMarkupValidityRule:
    """Tests for MarkupValidityRule."""

    def test_duplicate_ids(self):
        """Test each repeated id yields one finding with its count."""
        body = '<div id="a"></div><p id="a"></p><span id="a"></span><i id="b"></i>'
        findings = MarkupValidityRule().check(make_doc(body))
        assert [f.issue_type for f in findings] == ["duplicate_ids"]
        assert findings[0].description == "Duplicate id: a (found 3 times)"
        assert findings[0].selector == "#a"

    def test_ids_in_comments_are_ignored(self):
        """Test ids are counted from the parsed tree, not the raw text."""
        body = '<!-- <div id="a"></div> --><div id="a"></div>'
        assert MarkupValidityRule().check(make_doc(body)) == []

    def test_multiple_html_elements(self):
        """Test a second <html> tag in the source is reported."""
        markup = "<html><body>one</body></html><HTML><body>two</body></HTML>"
        findings = MarkupValidityRule().check(make_doc(markup))
        assert [f.issue_type for f in findings] == ["html_validity"]

    def test_clean_markup(self):
        """Test valid markup yields nothing."""
        markup = '<html lang="en"><body><div id="x"></div></body></html>'
        assert MarkupValidityRule().check(make_doc(markup)) == []


class TestAriaRule:
    """Tests for AriaRule."""

    def test_invalid_aria_attribute(self):
        """Test attributes outside WAI-ARIA are flagged by name."""
        body = '<div aria-labeledby="x" aria-hidden="true">text</div>'
        findings = AriaRule().check(make_doc(body))
        assert [f.issue_type for f in findings] == ["invalid_aria_attribute"]
        assert findings[0].description == "Non-standard ARIA attribute: aria-labeledby"

    def test_aria_12_attributes_accepted(self):
        """Test newer ARIA 1.2 attributes are not flagged."""
        body = (
            '<div role="grid" aria-colcount="4" aria-description="Prices">'
            '<span aria-colindextext="B">x</span></div>'
        )
        assert AriaRule().check(make_doc(body)) == []

    def test_missing_accessible_name(self):
        """Test empty buttons, links and role=button are flagged."""
        body = (
            "<button></button>"
            '<a href="/x"><img src="x.png"></a>'
            '<div role="button"></div>'
            '<input type="submit">'
        )
        findings = AriaRule().check(make_doc(body))
        assert [f.issue_type for f in findings] == ["missing_accessible_name"] * 4

    def test_named_controls(self):
        """Test text, aria-label, value and image alt all provide a name."""
        body = (
            "<button>Save</button>"
            '<button aria-label="Close"></button>'
            '<a href="/x"><img src="x.png" alt="Home"></a>'
            '<input type="submit" value="Send">'
            '<input type="image" src="go.png" alt="Go">'
            '<a name="anchor"></a>'
        )
        assert AriaRule().check(make_doc(body)) == []
