from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field

import requests
import urllib3
from requests import exceptions as req_exc

from .config import AuditConfig
from .content import decode_body

logger = logging.getLogger(__name__)

TRANSIENT_HTTP_STATUSES = {429, 500, 502, 503, 504}


def _retry_after_seconds(headers: dict[str, str]) -> float | None:
    retry_after = headers.get("Retry-After")
    if not retry_after:
        return None
    try:
        return float(retry_after)
    except ValueError:
        return None


def _charset(content_type: str | None) -> str | None:
    if not content_type:
        return None
    for part in content_type.split(";")[1:]:
        key, _, value = part.partition("=")
        if key.strip().lower() == "charset" and value.strip():
            return value.strip().strip("\"'")
    return None


@dataclass(frozen=True)
class FetchResult:
    url: str
    final_url: str
    status_code: int
    body: bytes
    elapsed_s: float
    redirect_count: int = 0
    headers: dict[str, str] = field(default_factory=dict)
    fetched_at: float = 0.0
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None and bool(self.body) and 0 < self.status_code < 400

    @property
    def content_type(self) -> str | None:
        for key, value in self.headers.items():
            if key.lower() == "content-type":
                return value
        return None

    @property
    def text(self) -> str:
        return decode_body(self.body, encoding=_charset(self.content_type))


class HttpClient:
    """Blocking page fetcher.

    ``get`` never raises for network problems; failures come back as a
    ``FetchResult`` with ``error`` set so the crawler can skip the page.
    """

    def __init__(
        self,
        session: requests.Session,
        *,
        timeout_s: float = 30,
        max_redirects: int = 5,
        user_agent: str | None = None,
        verify_tls: bool = False,
        max_retries: int = 0,
        backoff_base_s: float = 1.0,
    ) -> None:
        self._session = session
        self._session.max_redirects = max_redirects
        if user_agent:
            self._session.headers["User-Agent"] = user_agent
        self._timeout_s = timeout_s
        self._verify_tls = verify_tls
        self._max_retries = max_retries
        self._backoff_base_s = backoff_base_s

        if not verify_tls:
            urllib3.disable_warnings(urllib3.exceptions.InsecureRequestWarning)

    @classmethod
    def from_config(
        cls, config: AuditConfig, session: requests.Session | None = None
    ) -> HttpClient:
        return cls(
            session or requests.Session(),
            timeout_s=config.timeout_s,
            max_redirects=config.max_redirects,
            user_agent=config.user_agent,
            verify_tls=config.verify_tls,
            max_retries=config.max_retries,
        )

    def close(self) -> None:
        self._session.close()

    def get(self, url: str) -> FetchResult:
        started = time.monotonic()
        last_error: Exception | None = None

        for attempt in range(self._max_retries + 1):
            try:
                resp = self._session.get(
                    url,
                    timeout=self._timeout_s,
                    verify=self._verify_tls,
                    allow_redirects=True,
                )
            except req_exc.RequestException as e:
                last_error = e
                if attempt >= self._max_retries:
                    break
                time.sleep(self._backoff_base_s * (2**attempt))
                continue

            if (
                resp.status_code in TRANSIENT_HTTP_STATUSES
                and attempt < self._max_retries
            ):
                retry_after = _retry_after_seconds(dict(resp.headers))
                wait_s = (
                    retry_after
                    if retry_after is not None
                    else self._backoff_base_s * (2**attempt)
                )
                time.sleep(wait_s)
                continue

            status = int(resp.status_code)
            return FetchResult(
                url=url,
                final_url=str(resp.url),
                status_code=status,
                body=resp.content,
                elapsed_s=time.monotonic() - started,
                redirect_count=len(resp.history),
                headers={k: str(v) for k, v in resp.headers.items()},
                fetched_at=time.time(),
                error=f"HTTP {status}" if status >= 400 else None,
            )

        logger.debug("Transport failure for %s: %s", url, last_error)
        return FetchResult(
            url=url,
            final_url=url,
            status_code=0,
            body=b"",
            elapsed_s=time.monotonic() - started,
            fetched_at=time.time(),
            error=str(last_error) if last_error else "request failed",
        )
