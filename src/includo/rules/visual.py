"""Heuristics for criteria that need a CSS renderer to verify.

Without layout information these rules cannot compute contrast ratios or
target boxes, so most of what they report is a request for manual
verification rather than a verdict.
"""

from __future__ import annotations

import re

from bs4 import Tag

from ..document import Document, attr_text
from .base import (
    Confidence,
    Finding,
    Rule,
    Severity,
    css_pixels,
    parse_inline_style,
)

_OUTLINE_NONE_RE = re.compile(r"outline\s*:\s*none", re.IGNORECASE)

MIN_TARGET_SIZE_PX = 24


class ColorContrastRule(Rule):
    name = "color_contrast"

    def check(self, doc: Document) -> list[Finding]:
        findings: list[Finding] = []
        for el in doc.find_all(attrs={"style": True}):
            props = parse_inline_style(attr_text(el, "style"))
            sets_color = "color" in props
            sets_background = any(p.startswith("background") for p in props)
            if sets_color and sets_background:
                findings.append(
                    self.finding(
                        "color_contrast",
                        "1.4.3",
                        Severity.MEDIUM,
                        "Inline foreground and background colours: contrast "
                        "needs manual verification",
                        "Make sure the contrast ratio is at least 4.5:1 for "
                        "normal text and 3:1 for large text",
                        element=el,
                        confidence=Confidence.LOW,
                    )
                )
        return findings


class FocusVisibleRule(Rule):
    name = "focus_visible"

    def check(self, doc: Document) -> list[Finding]:
        if not _OUTLINE_NONE_RE.search(doc.markup):
            return []
        return [
            self.finding(
                "focus_visible",
                "2.4.7",
                Severity.MEDIUM,
                "Elements styled with outline: none may have no visible focus",
                "Provide an alternative focus indicator wherever the outline "
                "is removed",
                selector="various elements",
            )
        ]


def _target_dimensions(el: Tag) -> tuple[float | None, float | None]:
    width = css_pixels(attr_text(el, "width") or None)
    height = css_pixels(attr_text(el, "height") or None)

    props = parse_inline_style(attr_text(el, "style"))
    for key, fallback in (("width", "min-width"), ("height", "min-height")):
        value = css_pixels(props.get(key))
        if value is None and (width if key == "width" else height) is None:
            value = css_pixels(props.get(fallback))
        if value is None:
            continue
        if key == "width":
            width = value
        else:
            height = value
    return width, height


def _is_target(el: Tag) -> bool:
    if el.name == "a":
        return el.has_attr("href")
    if el.name == "button":
        return True
    if el.name == "input":
        return attr_text(el, "type").strip().lower() in ("button", "submit", "reset")
    return False


class TargetSizeRule(Rule):
    name = "target_size"

    def check(self, doc: Document) -> list[Finding]:
        findings: list[Finding] = []
        unknown = 0
        for el in doc.find_all(_is_target):
            width, height = _target_dimensions(el)
            if width is None or height is None:
                unknown += 1
                continue
            if width < MIN_TARGET_SIZE_PX or height < MIN_TARGET_SIZE_PX:
                findings.append(
                    self.finding(
                        "target_size_too_small",
                        "2.5.8",
                        Severity.MEDIUM,
                        f"Target is {width:g}x{height:g} CSS px, below the "
                        f"{MIN_TARGET_SIZE_PX}x{MIN_TARGET_SIZE_PX} minimum "
                        "(based on inline dimensions)",
                        "Enlarge the clickable area with padding or "
                        "min-width/min-height to at least 24x24 CSS px",
                        element=el,
                    )
                )

        if unknown:
            findings.append(
                self.manual_check(
                    "target_size",
                    "2.5.8",
                    f"Target size of {unknown} interactive element(s) depends on "
                    "CSS and cannot be evaluated automatically",
                    "Verify that interactive controls are at least 24x24 CSS px "
                    "or meet one of the exceptions of SC 2.5.8",
                )
            )
        return findings


class DraggingMovementsRule(Rule):
    name = "dragging_movements"

    def check(self, doc: Document) -> list[Finding]:
        return [
            self.manual_check(
                "dragging_movements",
                "2.5.7",
                "Dragging movements cannot be evaluated automatically",
                "Make sure every dragging interaction has a single-pointer "
                "alternative such as buttons or keyboard controls",
            )
        ]


class FocusNotObscuredRule(Rule):
    name = "focus_not_obscured"

    def check(self, doc: Document) -> list[Finding]:
        return [
            self.manual_check(
                "focus_not_obscured",
                "2.4.11",
                "Whether focus is hidden by sticky or overlay content cannot be "
                "evaluated automatically",
                "Tab through the page and check that focus is never hidden by "
                "sticky headers, cookie banners, chat widgets or overlays",
            )
        ]


class FocusAppearanceRule(Rule):
    name = "focus_appearance"

    def check(self, doc: Document) -> list[Finding]:
        return [
            self.manual_check(
                "focus_appearance",
                "2.4.13",
                "Focus indicator appearance depends on CSS and cannot be "
                "evaluated automatically",
                "Verify the focus indicator is large enough and has enough "
                "contrast; do not remove outlines without a strong replacement",
            )
        ]
