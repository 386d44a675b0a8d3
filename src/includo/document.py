from __future__ import annotations

import logging
from dataclasses import dataclass, field

from bs4 import BeautifulSoup, Tag
from bs4.builder import ParserRejectedMarkup

logger = logging.getLogger(__name__)


@dataclass
class Document:
    """A parsed page plus the raw markup it came from.

    Parsing is tolerant: ``html.parser`` recovers from unbalanced tags, and a
    body the parser rejects outright leaves an empty tree with the reason in
    ``errors`` instead of failing the page.
    """

    url: str
    markup: str
    soup: BeautifulSoup
    errors: list[str] = field(default_factory=list)

    def find_all(self, *args, **kwargs) -> list[Tag]:
        return list(self.soup.find_all(*args, **kwargs))

    def select(self, selector: str) -> list[Tag]:
        return list(self.soup.select(selector))

    @property
    def root(self) -> Tag | None:
        return self.soup.find("html")


@dataclass(frozen=True)
class PageMetadata:
    title: str
    meta_description: str
    h1_count: int
    img_count: int
    link_count: int
    form_count: int


def parse_document(markup: str, *, url: str = "") -> Document:
    errors: list[str] = []
    try:
        soup = BeautifulSoup(markup, "html.parser")
    except (ParserRejectedMarkup, AssertionError) as e:
        logger.warning("Unparseable markup for %s: %s", url or "<document>", e)
        errors.append(str(e))
        soup = BeautifulSoup("", "html.parser")
    return Document(url=url, markup=markup, soup=soup, errors=errors)


def attr_text(tag: Tag, name: str) -> str:
    """Attribute value as a string; multi-valued attributes are space-joined."""

    value = tag.get(name)
    if value is None:
        return ""
    if isinstance(value, list):
        return " ".join(str(v) for v in value)
    return str(value)


def class_names(tag: Tag) -> list[str]:
    return [c for c in attr_text(tag, "class").split() if c.strip()]


def text_of(tag: Tag) -> str:
    return tag.get_text(" ", strip=True)


def element_selector(tag: Tag) -> str:
    selector = tag.name.lower()
    element_id = attr_text(tag, "id").strip()
    if element_id:
        return f"{selector}#{element_id}"
    classes = class_names(tag)
    if classes:
        return selector + "." + ".".join(classes[:2])
    return selector


def source_line(tag: Tag) -> int | None:
    return getattr(tag, "sourceline", None)


def page_metadata(doc: Document) -> PageMetadata:
    title_tag = doc.soup.find("title")
    title = title_tag.get_text(strip=True) if title_tag is not None else ""

    meta = doc.soup.find(
        "meta", attrs={"name": lambda v: bool(v) and v.lower() == "description"}
    )
    meta_description = attr_text(meta, "content") if meta is not None else ""

    return PageMetadata(
        title=title,
        meta_description=meta_description,
        h1_count=len(doc.find_all("h1")),
        img_count=len(doc.find_all("img")),
        link_count=len(doc.select("a[href]")),
        form_count=len(doc.find_all("form")),
    )
