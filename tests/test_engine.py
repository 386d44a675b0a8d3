"""Tests for the rule engine."""

import logging
from dataclasses import replace

from conftest import html_page, make_doc

from includo.config import AuditConfig
from includo.rules import (
    HeadingStructureRule,
    ImageAltRule,
    Level,
    PageTitleRule,
    Rule,
    RuleEngine,
    Severity,
    default_rules,
)

BROKEN_PAGE = html_page(
    title=None,
    body='<p>Welcome</p><img src="team.jpg">',
)


class ExplodingRule(Rule):
    name = "exploding"

    def check(self, doc):
        raise RuntimeError("boom")


class TestRuleEngine:
    """Tests for RuleEngine."""

    def test_catalogue_order(self):
        """Test the default catalogue runs every rule in a fixed order."""
        engine = RuleEngine()
        assert engine.rule_names == [
            "images",
            "headings",
            "lists",
            "tables",
            "keyboard",
            "skip_links",
            "page_title",
            "page_language",
            "form_labels",
            "markup_validity",
            "aria",
            "color_contrast",
            "focus_visible",
            "target_size",
            "dragging_movements",
            "focus_not_obscured",
            "focus_appearance",
            "eaa",
        ]
        assert len(default_rules()) == 18

    def test_profile_filters_rules(self):
        """Test a site profile keeps only its rules, in catalogue order."""
        engine = RuleEngine(config=AuditConfig(site_type="educational"))
        assert engine.rule_names == [
            "images",
            "headings",
            "skip_links",
            "page_title",
            "page_language",
        ]

    def test_unknown_site_type_runs_everything(self):
        """Test an unknown site type falls back to the full catalogue."""
        engine = RuleEngine(config=AuditConfig(site_type="museum"))
        assert len(engine.rule_names) == 18

    def test_failing_rule_is_isolated(self, caplog):
        """Test a raising rule is logged and the others still run."""
        engine = RuleEngine([ExplodingRule(), PageTitleRule()])
        doc = make_doc(html_page(title=None), url="https://x.org/")
        with caplog.at_level(logging.ERROR, logger="includo.rules.engine"):
            findings = engine.evaluate(doc)
        assert [f.issue_type for f in findings] == ["page_title"]
        assert "Rule exploding failed on https://x.org/" in caplog.text

    def test_severity_overrides(self):
        """Test configured overrides replace the reported severity."""
        config = AuditConfig(severity_overrides={"page_title": "critical"})
        engine = RuleEngine([PageTitleRule(config)], config=config)
        findings = engine.evaluate_markup(html_page(title=None))
        assert findings[0].severity == Severity.CRITICAL

    def test_exactly_three_findings_for_known_defects(self):
        """Test a page with three defects yields exactly those three."""
        engine = RuleEngine([ImageAltRule(), HeadingStructureRule(), PageTitleRule()])
        findings = engine.evaluate_markup(BROKEN_PAGE)
        assert sorted(f.criterion for f in findings) == ["1.1.1", "1.3.1", "2.4.2"]
        assert all(f.severity == Severity.HIGH for f in findings)
        assert all(f.level == Level.A for f in findings)
        assert [f.issue_type for f in findings] == [
            "missing_alt_text",
            "missing_h1",
            "page_title",
        ]

    def test_full_catalogue_high_level_a_findings(self):
        """Test the full catalogue reports the same three level A defects."""
        findings = RuleEngine().evaluate_markup(BROKEN_PAGE)
        serious = {
            f.criterion
            for f in findings
            if f.level == Level.A and f.severity == Severity.HIGH
        }
        assert serious == {"1.1.1", "1.3.1", "2.4.2"}

    def test_levels_come_from_catalogue(self):
        """Test a rule reports the level configured for its criterion."""
        criteria = dict(AuditConfig().criteria)
        criteria["2.4.2"] = replace(criteria["2.4.2"], level="AA")
        config = AuditConfig(criteria=criteria)
        [finding] = PageTitleRule(config).check(make_doc(html_page(title=None)))
        assert finding.level == Level.AA

    def test_uncatalogued_criterion_fails_the_rule(self, caplog):
        """Test a rule whose criterion is not catalogued is isolated."""
        config = AuditConfig(criteria={})
        engine = RuleEngine([PageTitleRule(config)], config=config)
        with caplog.at_level(logging.ERROR, logger="includo.rules.engine"):
            assert engine.evaluate_markup(html_page(title=None)) == []
        assert "Rule page_title failed" in caplog.text
