from __future__ import annotations

from .base import (
    MANUAL_CHECK_PREFIX,
    Confidence,
    Finding,
    Level,
    Rule,
    Severity,
)
from .compliance import EAAComplianceRule
from .engine import RULE_CLASSES, RuleEngine, default_rules
from .forms import FormLabelRule
from .images import ImageAltRule, assess_alt_quality, is_probably_decorative
from .markup import AriaRule, MarkupValidityRule, has_accessible_name
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

__all__ = [
    "MANUAL_CHECK_PREFIX",
    "RULE_CLASSES",
    "AriaRule",
    "ColorContrastRule",
    "Confidence",
    "DraggingMovementsRule",
    "EAAComplianceRule",
    "Finding",
    "FocusAppearanceRule",
    "FocusNotObscuredRule",
    "FocusVisibleRule",
    "FormLabelRule",
    "HeadingStructureRule",
    "ImageAltRule",
    "KeyboardAccessRule",
    "Level",
    "ListStructureRule",
    "MarkupValidityRule",
    "PageLanguageRule",
    "PageTitleRule",
    "Rule",
    "RuleEngine",
    "Severity",
    "SkipLinkRule",
    "TableStructureRule",
    "TargetSizeRule",
    "assess_alt_quality",
    "default_rules",
    "has_accessible_name",
    "is_probably_decorative",
]
