from __future__ import annotations

from typing import Final

_HTML_CONTENT_TYPES: Final[frozenset[str]] = frozenset(
    {"text/html", "application/xhtml+xml"}
)

# Content types that are never HTML, even when the body starts with "<".
_NON_HTML_PREFIXES: Final[tuple[str, ...]] = (
    "image/",
    "audio/",
    "video/",
    "font/",
    "application/pdf",
    "application/zip",
    "application/json",
    "application/javascript",
    "text/css",
    "text/javascript",
)


def looks_like_html(data: bytes) -> bool:
    head = data[:2048].lstrip().lower()
    return head.startswith(b"<") and (
        b"<html" in head or b"<!doctype" in head or b"<head" in head or b"<body" in head
    )


def is_html_response(content_type: str | None, body: bytes) -> bool:
    """Decide whether a fetched body is an HTML page worth auditing.

    A declared HTML content type wins. A missing or generic one
    (``text/plain``, ``application/octet-stream``) falls back to sniffing.
    """

    if content_type:
        ct = content_type.split(";", 1)[0].strip().lower()
        if ct in _HTML_CONTENT_TYPES:
            return True
        if ct.startswith(_NON_HTML_PREFIXES):
            return False
    return looks_like_html(body)


def decode_body(body: bytes, *, encoding: str | None = None) -> str:
    if encoding:
        try:
            return body.decode(encoding, errors="replace")
        except LookupError:
            pass
    return body.decode("utf-8", errors="replace")
