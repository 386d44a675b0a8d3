"""Shared fixtures: in-memory session store and a fake fetcher."""

from __future__ import annotations

import pytest

from includo.config import AuditConfig
from includo.document import Document, parse_document
from includo.http_client import FetchResult
from includo.store import SessionStore

ROOT_URL = "https://example.com/"


def html_page(title: str | None = "Example site home page", body: str = "") -> str:
    """Build a small HTML document; ``title=None`` omits the <title> element."""
    head = f"<title>{title}</title>" if title is not None else ""
    return (
        f"<!doctype html><html lang=\"en\"><head>{head}</head>"
        f"<body>{body}</body></html>"
    )


def make_doc(markup: str, url: str = ROOT_URL) -> Document:
    return parse_document(markup, url=url)


class FakeHttp:
    """Serves a dict of URL -> HTML (or a prepared FetchResult).

    Unknown URLs answer 404 the way ``HttpClient`` reports HTTP errors.
    """

    def __init__(self, pages: dict[str, str | FetchResult]):
        self.pages = dict(pages)
        self.requested: list[str] = []
        self.closed = False

    def get(self, url: str) -> FetchResult:
        self.requested.append(url)
        page = self.pages.get(url)
        if isinstance(page, FetchResult):
            return page
        if page is None:
            return FetchResult(
                url=url,
                final_url=url,
                status_code=404,
                body=b"not found",
                elapsed_s=0.01,
                error="HTTP 404",
            )
        return FetchResult(
            url=url,
            final_url=url,
            status_code=200,
            body=page.encode("utf-8"),
            elapsed_s=0.05,
            headers={"Content-Type": "text/html; charset=utf-8"},
        )

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def config() -> AuditConfig:
    return AuditConfig(database_url="sqlite://")


@pytest.fixture
def store(config: AuditConfig):
    s = SessionStore("sqlite://", config=config)
    yield s
    s.close()


@pytest.fixture
def five_link_site() -> dict[str, str]:
    """Home page linking to itself and four internal pages, plus rejects."""
    links = "".join(
        f'<a href="{href}">{text}</a>'
        for href, text in [
            ("/", "Home"),
            ("/a", "Page A"),
            ("/b", "Page B"),
            ("/c", "Page C"),
            ("/d", "Page D"),
            ("https://other.com/x", "Elsewhere"),
            ("mailto:info@example.com", "Mail"),
            ("report.pdf", "Report"),
            ("#top", "Top"),
        ]
    )
    site = {ROOT_URL: html_page(body=f"<h1>Home</h1>{links}")}
    for name in "abcd":
        site[f"https://example.com/{name}"] = html_page(
            title=f"Example page {name.upper()} title",
            body=f'<h1>Page {name}</h1><a href="/">Back home</a><a href="/b">B</a>',
        )
    return site
