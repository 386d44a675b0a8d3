from __future__ import annotations

import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import ClassVar

from bs4 import Tag

from ..config import AuditConfig
from ..document import Document, element_selector, source_line


class Level(str, Enum):
    A = "A"
    AA = "AA"
    AAA = "AAA"


class Severity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class Confidence(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


MANUAL_CHECK_PREFIX = "manual_check_"


@dataclass(frozen=True)
class Finding:
    issue_type: str
    criterion: str
    level: Level
    severity: Severity
    description: str
    remediation: str
    selector: str | None = None
    confidence: Confidence = Confidence.MEDIUM
    help_url: str | None = None
    line: int | None = None


class Rule(ABC):
    """One detector category.

    Subclasses set ``name`` (used by site profiles to enable or disable the
    rule) and implement ``check``. Rules must not mutate the document.
    """

    name: ClassVar[str]

    def __init__(self, config: AuditConfig | None = None) -> None:
        self.config = config or AuditConfig()

    @abstractmethod
    def check(self, doc: Document) -> list[Finding]: ...

    def level_for(self, criterion: str) -> Level:
        """Conformance level of ``criterion`` from the configured catalogue."""

        try:
            return Level(self.config.criteria[criterion].level)
        except KeyError:
            raise KeyError(f"Criterion {criterion} is not in the catalogue") from None

    def finding(
        self,
        issue_type: str,
        criterion: str,
        severity: Severity,
        description: str,
        remediation: str,
        *,
        element: Tag | None = None,
        selector: str | None = None,
        confidence: Confidence = Confidence.MEDIUM,
    ) -> Finding:
        if element is not None and selector is None:
            selector = element_selector(element)
        return Finding(
            issue_type=issue_type,
            criterion=criterion,
            level=self.level_for(criterion),
            severity=severity,
            description=description,
            remediation=remediation,
            selector=selector,
            confidence=confidence,
            line=source_line(element) if element is not None else None,
        )

    def manual_check(
        self,
        issue_type: str,
        criterion: str,
        description: str,
        remediation: str,
    ) -> Finding:
        return self.finding(
            MANUAL_CHECK_PREFIX + issue_type,
            criterion,
            Severity.LOW,
            description,
            remediation,
            selector="GLOBAL",
            confidence=Confidence.LOW,
        )


_DECLARATION_RE = re.compile(r"\s*([-\w]+)\s*:\s*([^;]*)")


def parse_inline_style(style: str) -> dict[str, str]:
    """Parse ``style="a: b; c: d"`` into a lowercase property map."""

    props: dict[str, str] = {}
    for chunk in style.split(";"):
        m = _DECLARATION_RE.match(chunk)
        if m:
            props[m.group(1).lower()] = m.group(2).strip()
    return props


_PX_RE = re.compile(r"^(\d+(?:\.\d+)?)\s*(px)?$", re.IGNORECASE)


def css_pixels(value: str | None) -> float | None:
    """``"24px"`` / ``"24"`` -> 24.0; other units -> None."""

    if value is None:
        return None
    m = _PX_RE.match(value.strip().replace("!important", "").strip())
    if not m:
        return None
    return float(m.group(1))
