"""Checks required by the European Accessibility Act (Directive 2019/882).

They are not WCAG success criteria, so findings use the ``EAA``
pseudo-criterion.
"""

from __future__ import annotations

import re

from bs4 import Tag

from ..document import Document, attr_text, text_of
from .base import Finding, Rule, Severity

_STATEMENT_RE = re.compile(r"accessibilit", re.IGNORECASE)
_CONTACT_RE = re.compile(r"contact|contatt", re.IGNORECASE)


class EAAComplianceRule(Rule):
    name = "eaa"

    def check(self, doc: Document) -> list[Finding]:
        findings: list[Finding] = []
        links = doc.select("a[href]")

        if not any(
            _STATEMENT_RE.search(text_of(a) + " " + attr_text(a, "href"))
            for a in links
        ):
            findings.append(
                self.finding(
                    "missing_accessibility_statement",
                    "EAA",
                    Severity.HIGH,
                    "No link to an accessibility statement was found",
                    "Publish an accessibility statement and link it from every "
                    "page, usually in the footer",
                    selector="document",
                )
            )

        if not self._has_feedback_channel(doc, links):
            findings.append(
                self.finding(
                    "missing_feedback_mechanism",
                    "EAA",
                    Severity.MEDIUM,
                    "No feedback mechanism for accessibility problems was found",
                    "Provide a contact form or an e-mail address where users can "
                    "report accessibility barriers",
                    selector="document",
                )
            )
        return findings

    @staticmethod
    def _has_feedback_channel(doc: Document, links: list[Tag]) -> bool:
        for a in links:
            href = attr_text(a, "href")
            if href.strip().lower().startswith("mailto:"):
                return True
            if _CONTACT_RE.search(href) or _CONTACT_RE.search(text_of(a)):
                return True
        return any(form.find("textarea") is not None for form in doc.find_all("form"))
