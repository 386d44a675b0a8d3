from __future__ import annotations

import posixpath
import re
from typing import Iterable
from urllib.parse import urlparse, urlunparse

from bs4 import BeautifulSoup

ALLOWED_SCHEMES = {"http", "https"}

_REJECTED_PREFIXES = ("mailto:", "tel:", "javascript:", "vbscript:", "data:")

_BINARY_DOCUMENT_EXTS = {
    "pdf",
    "doc",
    "docx",
    "xls",
    "xlsx",
    "ppt",
    "pptx",
    "zip",
    "rar",
    "7z",
}

_SCHEME_RE = re.compile(r"^[a-z][a-z0-9+.-]*://", re.IGNORECASE)
_INVALID_CHARS_RE = re.compile(r"[\s<>\"{}|\\^`\x00-\x1f\x7f]")


def is_valid_url(url: str) -> bool:
    """Syntax check for an absolute http(s) URL."""

    if not url or _INVALID_CHARS_RE.search(url):
        return False
    try:
        parsed = urlparse(url)
        _ = parsed.port  # ValueError on a malformed port
    except ValueError:
        return False
    if parsed.scheme.lower() not in ALLOWED_SCHEMES:
        return False
    host = parsed.hostname or ""
    return bool(host) and not host.startswith(".") and ".." not in host


def is_binary_document_url(url: str) -> bool:
    path = urlparse(url).path
    if not path:
        return False
    ext = posixpath.splitext(path)[1].lstrip(".").lower()
    return ext in _BINARY_DOCUMENT_EXTS


def same_host(url: str, root_url: str) -> bool:
    host = (urlparse(url).hostname or "").lower()
    root_host = (urlparse(root_url).hostname or "").lower()
    return bool(host) and host == root_host


def canonical_root(url: str) -> str:
    """Give a bare ``scheme://host`` URL an explicit ``/`` path."""

    url = url.strip()
    parsed = urlparse(url)
    if parsed.path:
        return url
    return urlunparse(parsed._replace(path="/"))


def site_root(url: str) -> str:
    return url.strip().rstrip("/")


def _absolutize(href: str, root_url: str) -> str | None:
    lowered = href.lower()
    if lowered.startswith(_REJECTED_PREFIXES):
        return None
    if href.startswith("#"):
        return None
    if _SCHEME_RE.match(href):
        return href

    root = urlparse(root_url)
    if not root.scheme or not root.netloc:
        return None

    if href.startswith("//"):
        return f"{root.scheme}:{href}"
    if href.startswith("/"):
        return f"{root.scheme}://{root.netloc}{href}"

    # Relative hrefs resolve against the site root, not the current page.
    return site_root(root_url) + "/" + href.lstrip("/")


def normalize_link(href: str | None, root_url: str) -> str | None:
    """Turn an ``href`` found on a page into a crawlable URL.

    Returns ``None`` when the link must not be followed: empty hrefs,
    fragments, mail/phone/script pseudo-links, other hosts, binary documents,
    and anything that is not a syntactically valid http(s) URL.
    """

    href = (href or "").strip()
    if not href:
        return None

    url = _absolutize(href, root_url)
    if url is None:
        return None
    if not same_host(url, root_url):
        return None
    if is_binary_document_url(url):
        return None
    if not is_valid_url(url):
        return None
    return url


def normalize_links(hrefs: Iterable[str | None], root_url: str) -> list[str]:
    """Normalize many hrefs, dropping rejects and duplicates (order kept)."""

    out: list[str] = []
    seen: set[str] = set()
    for href in hrefs:
        url = normalize_link(href, root_url)
        if url is None or url in seen:
            continue
        seen.add(url)
        out.append(url)
    return out


def _attr_text(val: object) -> str:
    if isinstance(val, list):
        if not val:
            return ""
        return str(val[0])
    return str(val or "")


def extract_links_from_html(html: str | BeautifulSoup, *, root_url: str) -> list[str]:
    soup = (
        html if isinstance(html, BeautifulSoup) else BeautifulSoup(html, "html.parser")
    )
    hrefs = (_attr_text(a.get("href")) for a in soup.select("a[href]"))
    return normalize_links(hrefs, root_url)
