from __future__ import annotations

import os
from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import Any, Final, Mapping

DEFAULT_USER_AGENT: Final[str] = "Includo WCAG 2.2 Auditor (EU 2019/882 EAA)"
DEFAULT_DATABASE_URL: Final[str] = "sqlite:///includo.db"
WCAG_UNDERSTANDING_URL: Final[str] = "https://www.w3.org/WAI/WCAG22/Understanding/"
LEVELS: Final[tuple[str, ...]] = ("A", "AA", "AAA")


@dataclass(frozen=True)
class CriterionInfo:
    id: str
    name: str
    level: str
    description: str
    techniques: tuple[str, ...] = ()


@dataclass(frozen=True)
class SiteProfile:
    """Which rules run for a kind of site, and which criteria matter most.

    ``rules`` is ``None`` to run the whole catalogue.
    """

    name: str
    compliance_level: str = "AA"
    rules: tuple[str, ...] | None = None
    priority_criteria: tuple[str, ...] = ()

    def enables(self, rule_name: str) -> bool:
        return self.rules is None or rule_name in self.rules

    @property
    def target_levels(self) -> tuple[str, ...]:
        """Levels that count toward ``compliance_level``: A and AA for AA."""
        return LEVELS[: LEVELS.index(self.compliance_level) + 1]


def _criteria(*items: CriterionInfo) -> dict[str, CriterionInfo]:
    return {c.id: c for c in items}


DEFAULT_CRITERIA: Final[dict[str, CriterionInfo]] = _criteria(
    CriterionInfo(
        "1.1.1",
        "Non-text Content",
        "A",
        "All non-text content has a text alternative",
        ("H37", "H36", "H24", "H2"),
    ),
    CriterionInfo(
        "1.3.1",
        "Info and Relationships",
        "A",
        "Structure and relationships conveyed through presentation are "
        "programmatically determinable",
        ("H42", "H43", "H44", "H65", "H71", "H85"),
    ),
    CriterionInfo(
        "2.1.1",
        "Keyboard",
        "A",
        "All functionality is operable through a keyboard interface",
        ("G202", "H91", "SCR20", "SCR35"),
    ),
    CriterionInfo(
        "2.4.1",
        "Bypass Blocks",
        "A",
        "A mechanism is available to bypass blocks of repeated content",
        ("G1", "G123", "G124", "H69", "SCR28"),
    ),
    CriterionInfo(
        "2.4.2",
        "Page Titled",
        "A",
        "Web pages have titles that describe topic or purpose",
        ("H25", "G88"),
    ),
    CriterionInfo(
        "3.1.1",
        "Language of Page",
        "A",
        "The default human language of each page is programmatically determinable",
        ("H57", "H58"),
    ),
    CriterionInfo(
        "3.3.2",
        "Labels or Instructions",
        "A",
        "Labels or instructions are provided when content requires user input",
        ("G131", "G89", "G184", "H44", "H65", "H71"),
    ),
    CriterionInfo(
        "4.1.1",
        "Parsing",
        "A",
        "Markup is well formed and ids are unique",
        ("G134", "G192", "H74", "H93", "H94"),
    ),
    CriterionInfo(
        "4.1.2",
        "Name, Role, Value",
        "A",
        "Name and role can be programmatically determined for all UI components",
        ("G108", "H91", "SCR21"),
    ),
    CriterionInfo(
        "1.4.3",
        "Contrast (Minimum)",
        "AA",
        "Text has a contrast ratio of at least 4.5:1",
        ("G17", "G18", "G145", "G148", "G174"),
    ),
    CriterionInfo(
        "2.4.7",
        "Focus Visible",
        "AA",
        "Keyboard focus indicator is visible",
        ("G149", "C15", "G165", "G195", "SCR31"),
    ),
    CriterionInfo(
        "2.4.11",
        "Focus Not Obscured (Minimum)",
        "AA",
        "A focused component is not entirely hidden by author-created content",
    ),
    CriterionInfo(
        "2.4.13",
        "Focus Appearance",
        "AAA",
        "The focus indicator is sufficiently large and has enough contrast",
    ),
    CriterionInfo(
        "2.5.7",
        "Dragging Movements",
        "AA",
        "Functionality that uses dragging can be achieved with a single pointer",
    ),
    CriterionInfo(
        "2.5.8",
        "Target Size (Minimum)",
        "AA",
        "Pointer targets are at least 24 by 24 CSS pixels",
    ),
    CriterionInfo(
        "EAA",
        "European Accessibility Act",
        "AA",
        "Accessibility statement and feedback mechanism required by "
        "Directive (EU) 2019/882",
    ),
)

DEFAULT_HELP_URLS: Final[dict[str, str]] = {
    "missing_alt_text": WCAG_UNDERSTANDING_URL + "non-text-content.html",
    "poor_alt_text_quality": WCAG_UNDERSTANDING_URL + "non-text-content.html",
    "missing_h1": WCAG_UNDERSTANDING_URL + "info-and-relationships.html",
    "heading_sequence": WCAG_UNDERSTANDING_URL + "info-and-relationships.html",
    "page_title": WCAG_UNDERSTANDING_URL + "page-titled.html",
    "page_language": WCAG_UNDERSTANDING_URL + "language-of-page.html",
    "keyboard_accessibility": WCAG_UNDERSTANDING_URL + "keyboard.html",
    "skip_links": WCAG_UNDERSTANDING_URL + "bypass-blocks.html",
    "form_labels": WCAG_UNDERSTANDING_URL + "labels-or-instructions.html",
    "duplicate_ids": WCAG_UNDERSTANDING_URL + "parsing.html",
    "color_contrast": WCAG_UNDERSTANDING_URL + "contrast-minimum.html",
    "focus_visible": WCAG_UNDERSTANDING_URL + "focus-visible.html",
    "target_size_too_small": WCAG_UNDERSTANDING_URL + "target-size-minimum.html",
}

DEFAULT_PROFILES: Final[dict[str, SiteProfile]] = {
    "government": SiteProfile(
        name="government",
        compliance_level="AA",
        rules=None,
        priority_criteria=("1.1.1", "1.4.3", "2.1.1", "2.4.1", "2.4.2", "3.1.1"),
    ),
    "ecommerce": SiteProfile(
        name="ecommerce",
        compliance_level="AA",
        rules=("form_labels", "keyboard", "color_contrast", "images", "eaa"),
        priority_criteria=("1.1.1", "1.4.3", "2.1.1", "3.3.2"),
    ),
    "educational": SiteProfile(
        name="educational",
        compliance_level="AA",
        rules=("images", "headings", "page_language", "skip_links", "page_title"),
        priority_criteria=("2.4.2", "3.1.1"),
    ),
    "news": SiteProfile(
        name="news",
        compliance_level="AA",
        rules=("headings", "lists", "tables", "images", "skip_links", "page_title"),
        priority_criteria=("1.1.1", "1.3.1", "2.4.2"),
    ),
}


@dataclass(frozen=True)
class AuditConfig:
    user_agent: str = DEFAULT_USER_AGENT
    timeout_s: float = 30.0
    max_redirects: int = 5
    # Certificates are not validated by default so that sites with broken
    # chains can still be audited.
    verify_tls: bool = False
    max_retries: int = 0
    default_max_pages: int = 50
    max_pages_limit: int = 500
    database_url: str = DEFAULT_DATABASE_URL
    site_type: str = "government"
    lease_ttl_s: float = 3600.0
    criteria: Mapping[str, CriterionInfo] = field(
        default_factory=lambda: dict(DEFAULT_CRITERIA)
    )
    # issue type -> severity, applied on top of what each rule reports
    severity_overrides: Mapping[str, str] = field(default_factory=dict)
    help_urls: Mapping[str, str] = field(
        default_factory=lambda: dict(DEFAULT_HELP_URLS)
    )
    profiles: Mapping[str, SiteProfile] = field(
        default_factory=lambda: dict(DEFAULT_PROFILES)
    )

    def __post_init__(self) -> None:
        for name in ("criteria", "severity_overrides", "help_urls", "profiles"):
            value = getattr(self, name)
            if not isinstance(value, MappingProxyType):
                object.__setattr__(self, name, MappingProxyType(dict(value)))

    @property
    def profile(self) -> SiteProfile:
        return self.profiles.get(self.site_type) or DEFAULT_PROFILES["government"]

    def clamp_budget(self, max_pages: int | None) -> int:
        if max_pages is None:
            max_pages = self.default_max_pages
        return max(1, min(int(max_pages), self.max_pages_limit))

    def help_url_for(self, issue_type: str, criterion: str | None) -> str | None:
        url = self.help_urls.get(issue_type)
        if url:
            return url
        return WCAG_UNDERSTANDING_URL if criterion else None


def _env_bool(value: str) -> bool:
    return value.strip().lower() in {"1", "true", "yes", "on"}


def load_config(**overrides: Any) -> AuditConfig:
    """Build an ``AuditConfig`` from ``INCLUDO_*`` env vars plus overrides.

    Overrides whose value is ``None`` are ignored so CLI flags that were not
    given fall through to the environment and then to the defaults.
    """

    values: dict[str, Any] = {}

    env_map = {
        "INCLUDO_DATABASE_URL": ("database_url", str),
        "INCLUDO_USER_AGENT": ("user_agent", str),
        "INCLUDO_TIMEOUT": ("timeout_s", float),
        "INCLUDO_MAX_REDIRECTS": ("max_redirects", int),
        "INCLUDO_VERIFY_TLS": ("verify_tls", _env_bool),
        "INCLUDO_SITE_TYPE": ("site_type", str),
    }
    for env_name, (key, convert) in env_map.items():
        raw = os.getenv(env_name)
        if raw is None or not raw.strip():
            continue
        try:
            values[key] = convert(raw.strip())
        except ValueError as e:
            raise ValueError(f"Invalid value for {env_name}: {raw!r}") from e

    values.update({k: v for k, v in overrides.items() if v is not None})
    return replace(AuditConfig(), **values)
