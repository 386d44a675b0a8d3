from __future__ import annotations

import logging
import secrets
from contextlib import contextmanager
from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Callable, Iterable, Iterator, Protocol

from .config import AuditConfig
from .content import is_html_response
from .document import PageMetadata, page_metadata, parse_document
from .errors import (
    IncludoError,
    PersistenceError,
    QueueFormatError,
    SessionBusyError,
)
from .http_client import FetchResult
from .models import SessionStatus
from .rules import Finding, RuleEngine
from .state import Frontier
from .store import SessionStore
from .urls import canonical_root, extract_links_from_html, is_valid_url

logger = logging.getLogger(__name__)


class Fetcher(Protocol):
    def get(self, url: str) -> FetchResult: ...


class CrawlEventKind(str, Enum):
    STARTED = "started"
    RESUMED = "resumed"
    PAGE_STARTED = "page_started"
    PAGE_AUDITED = "page_audited"
    PAGE_SKIPPED = "page_skipped"
    FINISHED = "finished"
    FAILED = "failed"


@dataclass(frozen=True)
class CrawlEvent:
    kind: CrawlEventKind
    session_id: int
    url: str | None = None
    # cumulative for the session
    pages: int = 0
    findings: int = 0
    # pages audited by the current run, bounded by budget
    run_pages: int = 0
    budget: int = 0
    queued: int = 0
    status: str | None = None
    detail: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["kind"] = self.kind.value
        return data


CrawlListener = Callable[[CrawlEvent], None]


@dataclass(frozen=True)
class CrawlResult:
    session_id: int
    status: SessionStatus
    pages: int
    findings: int
    pending: tuple[str, ...] = ()
    run_pages: int = 0
    skipped: tuple[str, ...] = ()


@dataclass
class _Run:
    session_id: int
    root_url: str
    budget: int
    frontier: Frontier
    pages: int = 0
    findings: int = 0
    run_pages: int = 0
    skipped: list[str] = field(default_factory=list)
    lease_owner: str = ""


class Crawler:
    """Breadth-first crawl-and-audit over one site.

    Each run audits at most ``budget`` pages. A run that stops with URLs
    still queued leaves the session ``paused`` with its queue persisted, and
    ``resume`` picks it up from there. Progress is published as
    ``CrawlEvent`` values to subscribed listeners.
    """

    checkpoint_every = 25

    def __init__(
        self,
        store: SessionStore,
        http: Fetcher,
        engine: RuleEngine | None = None,
        config: AuditConfig | None = None,
        listeners: Iterable[CrawlListener] = (),
    ) -> None:
        self.store = store
        self.http = http
        self.config = config or store.config
        self.engine = engine or RuleEngine(config=self.config)
        self._listeners: list[CrawlListener] = list(listeners)

    def subscribe(self, listener: CrawlListener) -> None:
        self._listeners.append(listener)

    def _emit(self, kind: CrawlEventKind, run: _Run, **kwargs: Any) -> None:
        event = CrawlEvent(
            kind=kind,
            session_id=run.session_id,
            pages=run.pages,
            findings=run.findings,
            run_pages=run.run_pages,
            budget=run.budget,
            queued=len(run.frontier),
            **kwargs,
        )
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception:
                logger.exception(
                    "Crawl listener %r failed on %s", listener, kind.value
                )

    @contextmanager
    def _lease(self, session_id: int) -> Iterator[str]:
        owner = secrets.token_hex(16)
        if not self.store.acquire_lease(session_id, owner, self.config.lease_ttl_s):
            raise SessionBusyError(session_id)
        try:
            yield owner
        finally:
            try:
                self.store.release_lease(session_id, owner)
            except IncludoError as e:
                logger.warning(
                    "Could not release lease on session %s: %s", session_id, e
                )

    def start(self, root_url: str, max_pages: int | None = None) -> CrawlResult:
        root_url = canonical_root(root_url or "")
        if not is_valid_url(root_url):
            raise ValueError(f"Invalid root URL: {root_url!r}")

        budget = self.config.clamp_budget(max_pages)
        session = self.store.create_session(
            root_url, budget, user_agent=self.config.user_agent
        )
        logger.info("Starting audit of %s as session %s", root_url, session.id)

        with self._lease(session.id) as owner:
            run = _Run(
                session_id=session.id,
                root_url=root_url,
                budget=budget,
                frontier=Frontier([root_url]),
                lease_owner=owner,
            )
            self._emit(CrawlEventKind.STARTED, run, url=root_url)
            return self._run(run)

    def resume(self, session_id: int, max_pages: int | None = None) -> CrawlResult:
        """Continue a session from its persisted queue.

        The budget counts pages per run, not per session, so a session's
        ``total_pages`` can grow past its ``max_pages_limit`` over several
        resumes. ``max_pages`` replaces the stored budget when given. A session
        with nothing queued is returned unchanged.
        """

        session = self.store.get_session(session_id)
        with self._lease(session.id) as owner:
            try:
                pending = self.store.load_pending_queue(session_id)
            except QueueFormatError as e:
                logger.error("Session %s has an unreadable queue: %s", session_id, e)
                self.store.mark_error(session_id, str(e))
                raise

            if not pending:
                logger.info(
                    "Session %s has no pending URLs, nothing to resume", session_id
                )
                return CrawlResult(
                    session_id=session_id,
                    status=SessionStatus(session.status),
                    pages=session.total_pages,
                    findings=session.total_issues,
                )

            budget = (
                self.config.clamp_budget(max_pages)
                if max_pages is not None
                else max(1, session.max_pages_limit)
            )
            run = _Run(
                session_id=session_id,
                root_url=session.site_url,
                budget=budget,
                frontier=Frontier(
                    pending, visited=self.store.visited_urls(session_id)
                ),
                pages=self.store.page_count(session_id),
                findings=self.store.finding_count(session_id),
                lease_owner=owner,
            )
            self.store.mark_running(session_id, max_pages=budget)
            logger.info(
                "Resuming session %s: %s pages done, %s queued",
                session_id,
                run.pages,
                len(run.frontier),
            )
            self._emit(CrawlEventKind.RESUMED, run, url=session.site_url)
            return self._run(run)

    def _keep_lease(self, run: _Run) -> None:
        if not self.store.renew_lease(
            run.session_id, run.lease_owner, self.config.lease_ttl_s
        ):
            raise SessionBusyError(run.session_id)

    def _run(self, run: _Run) -> CrawlResult:
        try:
            while run.frontier and run.run_pages < run.budget:
                self._keep_lease(run)
                url = run.frontier.pop()
                if url is None:
                    break
                self._emit(CrawlEventKind.PAGE_STARTED, run, url=url)
                if self._audit_page(run, url) and (
                    run.run_pages % self.checkpoint_every == 0
                ):
                    self.store.save_pending_queue(
                        run.session_id, run.frontier.pending()
                    )

            self._keep_lease(run)
            status = SessionStatus.PAUSED if run.frontier else SessionStatus.COMPLETED
            pending = run.frontier.pending()
            self.store.finalize(
                run.session_id,
                status,
                pages=run.pages,
                findings=run.findings,
                pending=pending,
            )
        except SessionBusyError as e:
            # The new lease holder owns the session row from here on.
            logger.error(
                "Session %s was taken over by another runner, stopping",
                run.session_id,
            )
            self._emit(CrawlEventKind.FAILED, run, detail=str(e))
            raise
        except Exception as e:
            logger.exception("Session %s failed", run.session_id)
            try:
                self.store.mark_error(
                    run.session_id, str(e), pages=run.pages, findings=run.findings
                )
            except IncludoError as mark_err:
                logger.error(
                    "Could not mark session %s as errored: %s", run.session_id, mark_err
                )
            self._emit(
                CrawlEventKind.FAILED,
                run,
                status=SessionStatus.ERROR.value,
                detail=str(e),
            )
            raise

        self._emit(CrawlEventKind.FINISHED, run, status=status.value)
        return CrawlResult(
            session_id=run.session_id,
            status=status,
            pages=run.pages,
            findings=run.findings,
            pending=tuple(pending),
            run_pages=run.run_pages,
            skipped=tuple(run.skipped),
        )

    def _skip(self, run: _Run, url: str, reason: str) -> bool:
        logger.warning("Skipping %s (session %s): %s", url, run.session_id, reason)
        run.skipped.append(url)
        self._emit(CrawlEventKind.PAGE_SKIPPED, run, url=url, detail=reason)
        return False

    def _audit_page(self, run: _Run, url: str) -> bool:
        """Fetch, evaluate and record one page. True if a page row was saved."""

        res = self.http.get(url)
        if not res.ok:
            return self._skip(run, url, res.error or f"HTTP {res.status_code}")
        if not is_html_response(res.content_type, res.body):
            return self._skip(run, url, f"not HTML ({res.content_type or 'unknown'})")

        doc = parse_document(res.text, url=url)
        findings = self.engine.evaluate(doc)
        links = extract_links_from_html(doc.soup, root_url=run.root_url)

        saved = self._persist(
            run, url, res, metadata=page_metadata(doc), findings=findings
        )

        # Links are followed even when the page row could not be written.
        run.frontier.extend(links)

        if saved is None:
            return False
        run.pages += 1
        run.run_pages += 1
        run.findings += saved
        self._emit(
            CrawlEventKind.PAGE_AUDITED, run, url=url, detail=f"{saved} findings"
        )
        return True

    def _persist(
        self,
        run: _Run,
        url: str,
        res: FetchResult,
        *,
        metadata: PageMetadata,
        findings: list[Finding],
    ) -> int | None:
        try:
            page_id = self.store.add_page(
                run.session_id,
                url,
                metadata=metadata,
                final_url=res.final_url,
                status_code=res.status_code,
                response_time=res.elapsed_s,
                content_length=len(res.body),
                redirects=res.redirect_count,
            )
        except PersistenceError as e:
            logger.warning("Could not save page %s: %s", url, e)
            return None

        saved: list[Finding] = []
        for finding in findings:
            try:
                self.store.add_finding(page_id, finding)
            except PersistenceError as e:
                logger.warning(
                    "Could not save %s finding on %s: %s", finding.issue_type, url, e
                )
                continue
            saved.append(finding)

        try:
            self.store.update_page_counts(page_id, saved)
        except PersistenceError as e:
            logger.warning("Could not update finding counts for %s: %s", url, e)
        return len(saved)
