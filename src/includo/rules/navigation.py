from __future__ import annotations

import re

from ..document import Document, attr_text, text_of
from .base import Finding, Rule, Severity

_NATIVELY_INTERACTIVE = {
    "a",
    "button",
    "input",
    "select",
    "textarea",
    "summary",
    "option",
}
_KEY_HANDLERS = ("onkeydown", "onkeyup", "onkeypress")
_SKIP_TEXT_RE = re.compile(r"\b(skip|salta|jump to|vai al)\b", re.IGNORECASE)


class KeyboardAccessRule(Rule):
    name = "keyboard"

    def check(self, doc: Document) -> list[Finding]:
        findings: list[Finding] = []

        for el in doc.find_all(attrs={"onclick": True}):
            if el.name in _NATIVELY_INTERACTIVE:
                continue
            if any(el.has_attr(h) for h in _KEY_HANDLERS):
                continue
            findings.append(
                self.finding(
                    "keyboard_accessibility",
                    "2.1.1",
                    Severity.HIGH,
                    f"<{el.name}> has a click handler but cannot be operated "
                    "from the keyboard",
                    "Add keyboard event handlers and a tabindex, or use a "
                    "native button or link",
                    element=el,
                )
            )

        for el in doc.find_all(attrs={"tabindex": True}):
            raw = attr_text(el, "tabindex").strip()
            try:
                value = int(raw)
            except ValueError:
                continue
            if value < -1:
                findings.append(
                    self.finding(
                        "invalid_tabindex",
                        "2.1.1",
                        Severity.MEDIUM,
                        f"Invalid tabindex value: {raw}",
                        'Use tabindex="0" to add an element to the tab order '
                        'or "-1" to make it focusable by script only',
                        element=el,
                    )
                )
        return findings


class SkipLinkRule(Rule):
    name = "skip_links"

    def check(self, doc: Document) -> list[Finding]:
        for a in doc.select("a[href]"):
            if "#" in attr_text(a, "href") and _SKIP_TEXT_RE.search(text_of(a)):
                return []
        return [
            self.finding(
                "skip_links",
                "2.4.1",
                Severity.MEDIUM,
                "No link to skip to the main content",
                'Add a "Skip to main content" link at the start of the page',
                selector="document",
            )
        ]


class PageTitleRule(Rule):
    name = "page_title"

    min_length = 10
    max_length = 60

    def check(self, doc: Document) -> list[Finding]:
        title_tag = doc.soup.find("title")
        title = title_tag.get_text(strip=True) if title_tag is not None else ""
        if not title:
            return [
                self.finding(
                    "page_title",
                    "2.4.2",
                    Severity.HIGH,
                    "Page title is missing or empty",
                    "Add a descriptive <title> in the <head> section",
                    selector="title",
                )
            ]
        if not self.min_length <= len(title) <= self.max_length:
            return [
                self.finding(
                    "page_title_quality",
                    "2.4.2",
                    Severity.MEDIUM,
                    f"Page title is {len(title)} characters long",
                    f"Keep the title between {self.min_length} and "
                    f"{self.max_length} characters and describe the page clearly",
                    selector="title",
                )
            ]
        return []


class PageLanguageRule(Rule):
    name = "page_language"

    def check(self, doc: Document) -> list[Finding]:
        root = doc.root
        if root is not None and attr_text(root, "lang").strip():
            return []
        return [
            self.finding(
                "page_language",
                "3.1.1",
                Severity.MEDIUM,
                "Page language is not specified",
                'Add a lang attribute to the <html> element, e.g. <html lang="en">',
                selector="html",
            )
        ]
