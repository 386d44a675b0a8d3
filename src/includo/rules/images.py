from __future__ import annotations

import posixpath
import re
from dataclasses import dataclass
from urllib.parse import urlparse

from bs4 import Tag

from ..document import Document, attr_text
from .base import Finding, Rule, Severity

_DECORATIVE_CLASS_RE = re.compile(
    r"(icon|decoration|ornament|spacer|bullet|bg-|background)", re.IGNORECASE
)
_DECORATIVE_FILE_RE = re.compile(
    r"(icon|decoration|ornament|spacer|bullet|bg[-_])", re.IGNORECASE
)
_FILLER_WORDS = ("image", "picture", "photo", "graphic", "immagine", "foto")

ALT_MIN_LENGTH = 3
ALT_MAX_LENGTH = 125
ALT_QUALITY_THRESHOLD = 0.6


@dataclass(frozen=True)
class AltQuality:
    score: float
    problems: tuple[str, ...]


def _src_filename(src: str) -> str:
    path = urlparse(src).path or src
    return posixpath.basename(path)


def is_probably_decorative(img: Tag) -> bool:
    if img.has_attr("alt") and attr_text(img, "alt") == "":
        return True
    # An image inside a link is the link's content, never decoration.
    if img.find_parent("a") is not None:
        return False
    if _DECORATIVE_CLASS_RE.search(attr_text(img, "class")):
        return True
    filename = _src_filename(attr_text(img, "src"))
    return bool(filename) and bool(_DECORATIVE_FILE_RE.search(filename))


def assess_alt_quality(alt: str, src: str) -> AltQuality:
    # Scored in tenths so the thresholds compare exactly.
    score = 10
    problems: list[str] = []
    alt = alt.strip()
    lowered = alt.lower()

    if len(alt) < ALT_MIN_LENGTH:
        problems.append("too short")
        score -= 4
    if len(alt) > ALT_MAX_LENGTH:
        problems.append("too long")
        score -= 2

    stem = posixpath.splitext(_src_filename(src))[0]
    if stem and stem.lower() in lowered:
        problems.append("contains the file name")
        score -= 3

    if any(word in lowered for word in _FILLER_WORDS):
        problems.append("contains redundant words")
        score -= 2

    return AltQuality(score=max(0, score) / 10, problems=tuple(problems))


class ImageAltRule(Rule):
    name = "images"

    def check(self, doc: Document) -> list[Finding]:
        findings: list[Finding] = []
        for img in doc.find_all("img"):
            alt = attr_text(img, "alt")
            if not alt.strip():
                if is_probably_decorative(img):
                    continue
                findings.append(
                    self.finding(
                        "missing_alt_text",
                        "1.1.1",
                        Severity.HIGH,
                        "Image has no appropriate text alternative",
                        "Add an alt attribute describing the image content; "
                        'use alt="" for purely decorative images',
                        element=img,
                    )
                )
                continue

            quality = assess_alt_quality(alt, attr_text(img, "src"))
            if quality.score <= ALT_QUALITY_THRESHOLD:
                findings.append(
                    self.finding(
                        "poor_alt_text_quality",
                        "1.1.1",
                        Severity.MEDIUM,
                        "Alternative text could be improved: "
                        + ", ".join(quality.problems),
                        "Make the alternative text descriptive and specific to "
                        "the image purpose",
                        element=img,
                    )
                )
        return findings
