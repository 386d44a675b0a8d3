from __future__ import annotations

import logging
import time
from collections import Counter
from contextlib import contextmanager
from typing import Any, Iterable, Iterator

from sqlalchemy import case, create_engine, distinct, func, select, update
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, contains_eager, sessionmaker
from sqlalchemy.pool import StaticPool

from .config import AuditConfig
from .document import PageMetadata
from .errors import (
    CrawlFatalError,
    IncludoError,
    PersistenceError,
    SessionNotFoundError,
)
from .models import (
    AuditSession,
    Base,
    FindingRecord,
    PageRecord,
    SessionStatus,
    utc_now,
)
from .rules.base import Finding, Level
from .state import decode_queue, encode_queue

logger = logging.getLogger(__name__)

_SEVERITY_RANK = {"critical": 0, "high": 1, "medium": 2, "low": 3}


def _is_memory_sqlite(url: str) -> bool:
    if not url.startswith("sqlite"):
        return False
    _, _, rest = url.partition("://")
    return rest in ("", "/", "/:memory:") or "mode=memory" in rest


def make_engine(url: str, *, echo: bool = False) -> Engine:
    if _is_memory_sqlite(url):
        # One shared connection, otherwise every checkout sees an empty database.
        return create_engine(
            url,
            echo=echo,
            poolclass=StaticPool,
            connect_args={"check_same_thread": False},
        )
    return create_engine(url, echo=echo)


class SessionStore:
    """Persistence for audit sessions, page records and findings.

    Failures writing one page or finding raise ``PersistenceError`` and leave
    the session usable. Failures touching the session row itself raise
    ``CrawlFatalError``.
    """

    def __init__(
        self,
        engine: Engine | str,
        *,
        config: AuditConfig | None = None,
        create_tables: bool = True,
    ) -> None:
        self.config = config or AuditConfig()
        try:
            self.engine = make_engine(engine) if isinstance(engine, str) else engine
            if create_tables:
                Base.metadata.create_all(self.engine)
        except SQLAlchemyError as e:
            raise CrawlFatalError(f"Cannot initialise database: {e}") from e
        self._sessions = sessionmaker(self.engine, expire_on_commit=False)

    @classmethod
    def from_config(cls, config: AuditConfig) -> SessionStore:
        return cls(config.database_url, config=config)

    def close(self) -> None:
        self.engine.dispose()

    @contextmanager
    def _tx(self, what: str, *, fatal: bool = True) -> Iterator[Session]:
        try:
            with self._sessions.begin() as db:
                yield db
        except IncludoError:
            raise
        except SQLAlchemyError as e:
            if fatal:
                raise CrawlFatalError(f"{what}: {e}") from e
            raise PersistenceError(f"{what}: {e}") from e

    @staticmethod
    def _require(db: Session, session_id: int) -> AuditSession:
        row = db.get(AuditSession, session_id)
        if row is None:
            raise SessionNotFoundError(session_id)
        return row

    # Sessions

    def create_session(
        self, root_url: str, max_pages: int, *, user_agent: str | None = None
    ) -> AuditSession:
        with self._tx("create session") as db:
            row = AuditSession(
                site_url=root_url,
                status=SessionStatus.RUNNING.value,
                start_time=utc_now(),
                max_pages_limit=max_pages,
                user_agent=user_agent or self.config.user_agent,
                remaining_queue=encode_queue([root_url]),
            )
            db.add(row)
            db.flush()
        logger.info(
            "Created session %s for %s (max %s pages)", row.id, root_url, max_pages
        )
        return row

    def get_session(self, session_id: int) -> AuditSession:
        with self._tx("load session") as db:
            return self._require(db, session_id)

    def list_sessions(self, status: str | None = None) -> list[AuditSession]:
        stmt = select(AuditSession).order_by(
            AuditSession.start_time.desc(), AuditSession.id.desc()
        )
        if status:
            stmt = stmt.where(AuditSession.status == status)
        with self._tx("list sessions") as db:
            return list(db.scalars(stmt))

    def resumable_sessions(self) -> list[AuditSession]:
        """Paused or interrupted sessions that still have queued URLs.

        A session whose stored queue cannot be decoded is included so the
        caller gets to report the failure.
        """

        stmt = (
            select(AuditSession)
            .where(
                AuditSession.status.in_(
                    [SessionStatus.PAUSED.value, SessionStatus.RUNNING.value]
                ),
                AuditSession.remaining_queue.is_not(None),
            )
            .order_by(AuditSession.id)
        )
        with self._tx("list resumable sessions") as db:
            rows = list(db.scalars(stmt))

        out: list[AuditSession] = []
        for row in rows:
            try:
                if decode_queue(row.remaining_queue):
                    out.append(row)
            except IncludoError:
                out.append(row)
        return out

    def mark_running(self, session_id: int, *, max_pages: int | None = None) -> None:
        with self._tx("mark session running") as db:
            row = self._require(db, session_id)
            if max_pages is not None:
                row.max_pages_limit = max_pages
            row.status = SessionStatus.RUNNING.value
            row.end_time = None
            row.error_message = None

    def save_pending_queue(self, session_id: int, pending: Iterable[str]) -> None:
        urls = list(pending)
        with self._tx("save pending queue") as db:
            row = self._require(db, session_id)
            row.remaining_queue = encode_queue(urls) if urls else None

    def finalize(
        self,
        session_id: int,
        status: SessionStatus,
        *,
        pages: int,
        findings: int,
        pending: Iterable[str] = (),
    ) -> None:
        urls = list(pending)
        with self._tx("finalize session") as db:
            row = self._require(db, session_id)
            row.status = SessionStatus(status).value
            row.end_time = utc_now()
            row.total_pages = pages
            row.total_issues = findings
            row.remaining_queue = encode_queue(urls) if urls else None
        logger.info(
            "Session %s finished: %s, %s pages, %s findings, %s queued",
            session_id,
            SessionStatus(status).value,
            pages,
            findings,
            len(urls),
        )

    def mark_error(
        self,
        session_id: int,
        message: str,
        *,
        pages: int | None = None,
        findings: int | None = None,
    ) -> None:
        with self._tx("mark session errored") as db:
            row = self._require(db, session_id)
            row.status = SessionStatus.ERROR.value
            row.end_time = utc_now()
            row.error_message = message
            if pages is not None:
                row.total_pages = pages
            if findings is not None:
                row.total_issues = findings

    def load_pending_queue(self, session_id: int) -> list[str]:
        return decode_queue(self.get_session(session_id).remaining_queue)

    def visited_urls(self, session_id: int) -> set[str]:
        stmt = select(PageRecord.url).where(PageRecord.session_id == session_id)
        with self._tx("load visited urls") as db:
            return set(db.scalars(stmt))

    def page_count(self, session_id: int) -> int:
        stmt = select(func.count(PageRecord.id)).where(
            PageRecord.session_id == session_id
        )
        with self._tx("count pages") as db:
            return int(db.scalar(stmt) or 0)

    def finding_count(self, session_id: int) -> int:
        stmt = (
            select(func.count(FindingRecord.id))
            .join(PageRecord, FindingRecord.page_audit_id == PageRecord.id)
            .where(PageRecord.session_id == session_id)
        )
        with self._tx("count findings") as db:
            return int(db.scalar(stmt) or 0)

    # Leases

    def acquire_lease(self, session_id: int, owner: str, ttl_s: float) -> bool:
        """Claim the session for one runner; False if another live lease exists."""

        now = time.time()
        stmt = (
            update(AuditSession)
            .where(AuditSession.id == session_id)
            .where(
                (AuditSession.lease_owner.is_(None))
                | (AuditSession.lease_owner == owner)
                | (AuditSession.lease_expires_at.is_(None))
                | (AuditSession.lease_expires_at < now)
            )
            .values(lease_owner=owner, lease_expires_at=now + ttl_s)
            .execution_options(synchronize_session=False)
        )
        with self._tx("acquire lease") as db:
            self._require(db, session_id)
            return db.execute(stmt).rowcount == 1

    def renew_lease(self, session_id: int, owner: str, ttl_s: float) -> bool:
        """Extend a held lease; False once another runner has taken it over."""

        stmt = (
            update(AuditSession)
            .where(AuditSession.id == session_id, AuditSession.lease_owner == owner)
            .values(lease_expires_at=time.time() + ttl_s)
            .execution_options(synchronize_session=False)
        )
        with self._tx("renew lease") as db:
            self._require(db, session_id)
            return db.execute(stmt).rowcount == 1

    def release_lease(self, session_id: int, owner: str) -> None:
        stmt = (
            update(AuditSession)
            .where(AuditSession.id == session_id, AuditSession.lease_owner == owner)
            .values(lease_owner=None, lease_expires_at=None)
            .execution_options(synchronize_session=False)
        )
        with self._tx("release lease") as db:
            db.execute(stmt)

    # Pages and findings

    def add_page(
        self,
        session_id: int,
        url: str,
        *,
        metadata: PageMetadata,
        final_url: str | None = None,
        status_code: int | None = None,
        response_time: float | None = None,
        content_length: int | None = None,
        redirects: int = 0,
    ) -> int:
        with self._tx(f"save page {url}", fatal=False) as db:
            row = PageRecord(
                session_id=session_id,
                url=url,
                final_url=final_url,
                title=metadata.title[:500] or None,
                audit_time=utc_now(),
                status_code=status_code,
                response_time=response_time,
                content_length=content_length,
                redirects_count=redirects,
                meta_description=metadata.meta_description or None,
                h1_count=metadata.h1_count,
                img_count=metadata.img_count,
                link_count=metadata.link_count,
                form_count=metadata.form_count,
            )
            db.add(row)
            db.flush()
            return row.id

    def add_finding(self, page_id: int, finding: Finding) -> int:
        help_url = finding.help_url or self.config.help_url_for(
            finding.issue_type, finding.criterion
        )
        with self._tx(f"save finding {finding.issue_type}", fatal=False) as db:
            row = FindingRecord(
                page_audit_id=page_id,
                issue_type=finding.issue_type,
                wcag_criterion=finding.criterion,
                wcag_level=finding.level.value,
                severity=finding.severity.value,
                confidence=finding.confidence.value,
                element_selector=(finding.selector or None),
                description=finding.description,
                recommendation=finding.remediation,
                help_url=help_url,
                line_number=finding.line,
                created_at=utc_now(),
            )
            db.add(row)
            db.flush()
            return row.id

    def update_page_counts(self, page_id: int, findings: Iterable[Finding]) -> None:
        levels = Counter(f.level for f in findings)
        with self._tx(f"update counts for page {page_id}", fatal=False) as db:
            row = db.get(PageRecord, page_id)
            if row is None:
                raise PersistenceError(f"Page record not found: {page_id}")
            row.level_a_issues = levels[Level.A]
            row.level_aa_issues = levels[Level.AA]
            row.level_aaa_issues = levels[Level.AAA]
            row.total_issues = sum(levels.values())

    # Read side for reports

    def pages_for_session(self, session_id: int) -> list[PageRecord]:
        stmt = (
            select(PageRecord)
            .where(PageRecord.session_id == session_id)
            .order_by(PageRecord.id)
        )
        with self._tx("load pages") as db:
            return list(db.scalars(stmt))

    def findings_for_session(self, session_id: int) -> list[FindingRecord]:
        """All findings of a session, most severe first.

        Ties are broken by level, then criterion, then page URL.
        """

        severity_rank = case(_SEVERITY_RANK, value=FindingRecord.severity, else_=99)
        stmt = (
            select(FindingRecord)
            .join(FindingRecord.page)
            .options(contains_eager(FindingRecord.page))
            .where(PageRecord.session_id == session_id)
            .order_by(
                severity_rank,
                FindingRecord.wcag_level,
                FindingRecord.wcag_criterion,
                PageRecord.url,
                FindingRecord.id,
            )
        )
        with self._tx("load findings") as db:
            return list(db.scalars(stmt))

    def audit_statistics(self, session_id: int) -> dict[str, Any]:
        """Aggregates for one session, measured against the configured profile.

        ``conformance_issues`` counts findings at the levels the profile's
        ``compliance_level`` requires. ``priority_violations`` lists the
        profile's priority criteria that have findings, in priority order.
        """

        profile = self.config.profile

        def _severity(name: str):
            return func.count(case((FindingRecord.severity == name, 1)))

        page_stmt = select(
            func.avg(PageRecord.response_time),
            func.count(case((PageRecord.status_code >= 400, 1))),
        ).where(PageRecord.session_id == session_id)

        finding_stmt = (
            select(
                func.count(distinct(FindingRecord.wcag_criterion)),
                _severity("critical"),
                _severity("high"),
                _severity("medium"),
                _severity("low"),
                func.count(
                    case((FindingRecord.wcag_level.in_(profile.target_levels), 1))
                ),
            )
            .join(PageRecord, FindingRecord.page_audit_id == PageRecord.id)
            .where(PageRecord.session_id == session_id)
        )
        violated_stmt = (
            select(distinct(FindingRecord.wcag_criterion))
            .join(PageRecord, FindingRecord.page_audit_id == PageRecord.id)
            .where(PageRecord.session_id == session_id)
        )

        with self._tx("load statistics") as db:
            row = self._require(db, session_id)
            avg_response, error_pages = db.execute(page_stmt).one()
            counts = db.execute(finding_stmt).one()
            unique, critical, high, medium, low, conformance = counts
            violated = set(db.scalars(violated_stmt))

        return {
            "id": row.id,
            "site_url": row.site_url,
            "status": row.status,
            "start_time": row.start_time.isoformat() if row.start_time else None,
            "end_time": row.end_time.isoformat() if row.end_time else None,
            "total_pages": row.total_pages,
            "total_issues": row.total_issues,
            "unique_violations": int(unique or 0),
            "avg_response_time": (
                float(avg_response) if avg_response is not None else None
            ),
            "error_pages": int(error_pages or 0),
            "critical_issues": int(critical or 0),
            "high_issues": int(high or 0),
            "medium_issues": int(medium or 0),
            "low_issues": int(low or 0),
            "compliance_level": profile.compliance_level,
            "conformance_issues": int(conformance or 0),
            "priority_violations": [
                c for c in profile.priority_criteria if c in violated
            ],
        }
