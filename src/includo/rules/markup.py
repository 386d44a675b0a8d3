from __future__ import annotations

import re
from collections import Counter

from bs4 import Tag

from ..document import Document, attr_text, text_of
from .base import Finding, Rule, Severity

_HTML_OPEN_RE = re.compile(r"<html\b", re.IGNORECASE)

# WAI-ARIA 1.2 states and properties.
VALID_ARIA_ATTRIBUTES = frozenset(
    {
        "aria-activedescendant",
        "aria-atomic",
        "aria-autocomplete",
        "aria-braillelabel",
        "aria-brailleroledescription",
        "aria-busy",
        "aria-checked",
        "aria-colcount",
        "aria-colindex",
        "aria-colindextext",
        "aria-colspan",
        "aria-controls",
        "aria-current",
        "aria-describedby",
        "aria-description",
        "aria-details",
        "aria-disabled",
        "aria-dropeffect",
        "aria-errormessage",
        "aria-expanded",
        "aria-flowto",
        "aria-grabbed",
        "aria-haspopup",
        "aria-hidden",
        "aria-invalid",
        "aria-keyshortcuts",
        "aria-label",
        "aria-labelledby",
        "aria-level",
        "aria-live",
        "aria-modal",
        "aria-multiline",
        "aria-multiselectable",
        "aria-orientation",
        "aria-owns",
        "aria-placeholder",
        "aria-posinset",
        "aria-pressed",
        "aria-readonly",
        "aria-relevant",
        "aria-required",
        "aria-roledescription",
        "aria-rowcount",
        "aria-rowindex",
        "aria-rowindextext",
        "aria-rowspan",
        "aria-selected",
        "aria-setsize",
        "aria-sort",
        "aria-valuemax",
        "aria-valuemin",
        "aria-valuenow",
        "aria-valuetext",
    }
)

_NAMED_INPUT_TYPES = {"submit", "button", "reset", "image"}


class MarkupValidityRule(Rule):
    name = "markup_validity"

    def check(self, doc: Document) -> list[Finding]:
        findings: list[Finding] = []

        if len(_HTML_OPEN_RE.findall(doc.markup)) > 1:
            findings.append(
                self.finding(
                    "html_validity",
                    "4.1.1",
                    Severity.HIGH,
                    "The page contains more than one <html> element",
                    "Make sure each page has a single <html> element",
                    selector="document",
                )
            )

        ids = Counter(
            attr_text(el, "id")
            for el in doc.find_all(attrs={"id": True})
            if attr_text(el, "id")
        )
        for element_id, count in ids.items():
            if count > 1:
                findings.append(
                    self.finding(
                        "duplicate_ids",
                        "4.1.1",
                        Severity.HIGH,
                        f"Duplicate id: {element_id} (found {count} times)",
                        "Make sure every id is unique within the page",
                        selector=f"#{element_id}",
                    )
                )
        return findings


def has_accessible_name(el: Tag) -> bool:
    if text_of(el):
        return True
    if attr_text(el, "aria-label").strip():
        return True
    if el.has_attr("aria-labelledby"):
        return True
    if el.name == "input":
        kind = attr_text(el, "type").strip().lower()
        if kind == "image" and attr_text(el, "alt").strip():
            return True
        if kind in ("submit", "button", "reset") and attr_text(el, "value").strip():
            return True
    # Linked or button images are named by their alt text.
    return any(attr_text(img, "alt").strip() for img in el.find_all("img"))


class AriaRule(Rule):
    name = "aria"

    def check(self, doc: Document) -> list[Finding]:
        findings: list[Finding] = []

        for el in doc.find_all(True):
            for attr in el.attrs:
                attr = attr.lower()
                if attr.startswith("aria-") and attr not in VALID_ARIA_ATTRIBUTES:
                    findings.append(
                        self.finding(
                            "invalid_aria_attribute",
                            "4.1.2",
                            Severity.MEDIUM,
                            f"Non-standard ARIA attribute: {attr}",
                            "Use only attributes defined by WAI-ARIA",
                            element=el,
                        )
                    )

        for el in self._needs_name(doc):
            if not has_accessible_name(el):
                findings.append(
                    self.finding(
                        "missing_accessible_name",
                        "4.1.2",
                        Severity.HIGH,
                        f"Interactive <{el.name}> has no accessible name",
                        "Add text content, aria-label or aria-labelledby",
                        element=el,
                    )
                )
        return findings

    @staticmethod
    def _needs_name(doc: Document) -> list[Tag]:
        out: list[Tag] = []
        for el in doc.find_all(True):
            if el.name == "button":
                out.append(el)
            elif el.name == "a" and el.has_attr("href"):
                out.append(el)
            elif (
                el.name == "input"
                and attr_text(el, "type").strip().lower() in _NAMED_INPUT_TYPES
            ):
                out.append(el)
            elif attr_text(el, "role").strip().lower() == "button":
                out.append(el)
        return out
