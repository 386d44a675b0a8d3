from __future__ import annotations

from ..document import Document, text_of
from .base import Finding, Rule, Severity

_HEADING_TAGS = ["h1", "h2", "h3", "h4", "h5", "h6"]


class HeadingStructureRule(Rule):
    name = "headings"

    def check(self, doc: Document) -> list[Finding]:
        findings: list[Finding] = []
        # find_all with a list keeps document order across tag names.
        headings = doc.find_all(_HEADING_TAGS)
        levels = [int(h.name[1]) for h in headings]

        h1_count = levels.count(1)
        if h1_count == 0:
            findings.append(
                self.finding(
                    "missing_h1",
                    "1.3.1",
                    Severity.HIGH,
                    "The page has no main heading (h1)",
                    "Add an h1 element describing the main content of the page",
                    selector="document",
                )
            )
        elif h1_count > 1:
            findings.append(
                self.finding(
                    "multiple_h1",
                    "1.3.1",
                    Severity.MEDIUM,
                    f"The page has {h1_count} h1 elements",
                    "Use a single h1 per page",
                    selector="h1",
                )
            )

        for i in range(1, len(headings)):
            prev, level, heading = levels[i - 1], levels[i], headings[i]
            if level > prev + 1:
                findings.append(
                    self.finding(
                        "heading_sequence",
                        "1.3.1",
                        Severity.MEDIUM,
                        f"Heading levels skip from h{prev} to h{level}",
                        "Nest headings in order without skipping levels",
                        element=heading,
                    )
                )

        for heading in headings:
            if not text_of(heading):
                findings.append(
                    self.finding(
                        "empty_heading",
                        "1.3.1",
                        Severity.HIGH,
                        "Heading has no text content",
                        "Give every heading descriptive text",
                        element=heading,
                    )
                )
        return findings


class ListStructureRule(Rule):
    name = "lists"

    def check(self, doc: Document) -> list[Finding]:
        findings: list[Finding] = []
        for lst in doc.find_all(["ul", "ol", "dl"]):
            if lst.name in ("ul", "ol"):
                if not lst.find_all("li", recursive=False):
                    findings.append(
                        self.finding(
                            "empty_list",
                            "1.3.1",
                            Severity.MEDIUM,
                            f"<{lst.name}> list has no li items",
                            "Remove empty lists or add the appropriate li items",
                            element=lst,
                        )
                    )
            elif not lst.find_all("dt", recursive=False) or not lst.find_all(
                "dd", recursive=False
            ):
                findings.append(
                    self.finding(
                        "invalid_definition_list",
                        "1.3.1",
                        Severity.MEDIUM,
                        "Definition list is missing dt or dd elements",
                        "Make sure dl lists contain dt/dd pairs",
                        element=lst,
                    )
                )
        return findings


class TableStructureRule(Rule):
    name = "tables"

    def check(self, doc: Document) -> list[Finding]:
        findings: list[Finding] = []
        for table in doc.find_all("table"):
            labelled = (
                table.find("caption", recursive=False) is not None
                or table.has_attr("aria-label")
                or table.has_attr("aria-labelledby")
            )
            if not labelled:
                findings.append(
                    self.finding(
                        "table_missing_caption",
                        "1.3.1",
                        Severity.MEDIUM,
                        "Table has no caption or accessible label",
                        "Add a caption, aria-label or aria-labelledby",
                        element=table,
                    )
                )

            if len(table.find_all("tr")) > 1 and table.find("th") is None:
                findings.append(
                    self.finding(
                        "table_missing_headers",
                        "1.3.1",
                        Severity.HIGH,
                        "Data table has no header cells (th)",
                        "Mark header cells up with th elements",
                        element=table,
                    )
                )
        return findings
