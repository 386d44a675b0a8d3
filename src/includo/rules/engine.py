from __future__ import annotations

import logging
from dataclasses import replace
from typing import Iterable

from ..config import AuditConfig
from ..document import Document, parse_document
from .base import Finding, Rule, Severity
from .compliance import EAAComplianceRule
from .forms import FormLabelRule
from .images import ImageAltRule
from .markup import AriaRule, MarkupValidityRule
from .navigation import (
    KeyboardAccessRule,
    PageLanguageRule,
    PageTitleRule,
    SkipLinkRule,
)
from .structure import HeadingStructureRule, ListStructureRule, TableStructureRule
from .visual import (
    ColorContrastRule,
    DraggingMovementsRule,
    FocusAppearanceRule,
    FocusNotObscuredRule,
    FocusVisibleRule,
    TargetSizeRule,
)

logger = logging.getLogger(__name__)

RULE_CLASSES: tuple[type[Rule], ...] = (
    ImageAltRule,
    HeadingStructureRule,
    ListStructureRule,
    TableStructureRule,
    KeyboardAccessRule,
    SkipLinkRule,
    PageTitleRule,
    PageLanguageRule,
    FormLabelRule,
    MarkupValidityRule,
    AriaRule,
    ColorContrastRule,
    FocusVisibleRule,
    TargetSizeRule,
    DraggingMovementsRule,
    FocusNotObscuredRule,
    FocusAppearanceRule,
    EAAComplianceRule,
)


def default_rules(config: AuditConfig | None = None) -> list[Rule]:
    """The full detector catalogue, in evaluation order."""

    return [cls(config) for cls in RULE_CLASSES]


class RuleEngine:
    """Runs an ordered list of rules against one document.

    Rules the active site profile does not enable are dropped at
    construction. A rule that raises contributes nothing for that page; the
    failure is logged and the remaining rules still run.
    """

    def __init__(
        self,
        rules: Iterable[Rule] | None = None,
        *,
        config: AuditConfig | None = None,
    ) -> None:
        self.config = config or AuditConfig()
        candidates = list(rules) if rules is not None else default_rules(self.config)
        profile = self.config.profile
        self.rules: list[Rule] = [r for r in candidates if profile.enables(r.name)]

    @property
    def rule_names(self) -> list[str]:
        return [r.name for r in self.rules]

    def evaluate(self, doc: Document) -> list[Finding]:
        findings: list[Finding] = []
        for rule in self.rules:
            try:
                found = rule.check(doc)
            except Exception:
                logger.exception(
                    "Rule %s failed on %s", rule.name, doc.url or "<document>"
                )
                continue
            findings.extend(self._apply_overrides(f) for f in found)
        return findings

    def evaluate_markup(self, markup: str, *, url: str = "") -> list[Finding]:
        return self.evaluate(parse_document(markup, url=url))

    def _apply_overrides(self, finding: Finding) -> Finding:
        override = self.config.severity_overrides.get(finding.issue_type)
        if not override:
            return finding
        return replace(finding, severity=Severity(override))
