from __future__ import annotations

import re

from bs4 import Tag

from ..document import Document, attr_text, text_of
from .base import Finding, Rule, Severity

_BUTTON_TYPES = {"submit", "button", "reset"}
_REQUIRED_MARKER_RE = re.compile(
    r"\*|\brequired\b|\brichiesto\b|\bobbligatori[oa]\b", re.IGNORECASE
)


def _input_type(el: Tag) -> str:
    if el.name != "input":
        return el.name
    return attr_text(el, "type").strip().lower() or "text"


def _is_required(el: Tag) -> bool:
    if el.has_attr("required"):
        return True
    if el.has_attr("aria-required"):
        return attr_text(el, "aria-required").strip().lower() != "false"
    return False


class FormLabelRule(Rule):
    name = "form_labels"

    def check(self, doc: Document) -> list[Finding]:
        findings: list[Finding] = []

        labels_by_for: dict[str, list[Tag]] = {}
        for label in doc.find_all("label"):
            target = attr_text(label, "for").strip()
            if target:
                labels_by_for.setdefault(target, []).append(label)

        fields = [
            el
            for el in doc.find_all(["input", "select", "textarea"])
            if _input_type(el) != "hidden"
        ]
        for el in fields:
            labels = list(labels_by_for.get(attr_text(el, "id").strip(), []))
            ancestor = el.find_parent("label")
            if ancestor is not None:
                labels.append(ancestor)

            has_label = bool(labels) or el.has_attr("aria-label") or el.has_attr(
                "aria-labelledby"
            )
            if not has_label:
                kind = _input_type(el)
                findings.append(
                    self.finding(
                        "form_labels",
                        "3.3.2",
                        Severity.MEDIUM if kind in _BUTTON_TYPES else Severity.HIGH,
                        f"Form field ({kind}) has no associated label",
                        "Associate a <label> with the field or use "
                        "aria-label/aria-labelledby",
                        element=el,
                    )
                )

            if _is_required(el) and not any(
                _REQUIRED_MARKER_RE.search(text_of(label)) for label in labels
            ):
                findings.append(
                    self.finding(
                        "missing_required_indicator",
                        "3.3.2",
                        Severity.MEDIUM,
                        "Required field has no visible required indicator",
                        'Add an asterisk (*) or the word "required" to the label',
                        element=el,
                    )
                )
        return findings
