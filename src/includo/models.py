"""SQLAlchemy ORM rows for audit sessions, audited pages and findings."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from sqlalchemy import DateTime, Float, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    pass


class SessionStatus(str, Enum):
    RUNNING = "running"
    PAUSED = "paused"
    COMPLETED = "completed"
    ERROR = "error"


class AuditSession(Base):
    __tablename__ = "audit_sessions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    site_url: Mapped[str] = mapped_column(String(500), nullable=False, index=True)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=SessionStatus.RUNNING.value, index=True
    )
    start_time: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utc_now
    )
    end_time: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    total_pages: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_issues: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    user_agent: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    max_pages_limit: Mapped[int] = mapped_column(Integer, nullable=False, default=50)
    # JSON, see includo.state.encode_queue
    remaining_queue: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    error_message: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    lease_owner: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    # epoch seconds
    lease_expires_at: Mapped[Optional[float]] = mapped_column(Float, nullable=True)

    pages: Mapped[list["PageRecord"]] = relationship(
        back_populates="session", cascade="all, delete-orphan"
    )

    __table_args__ = (Index("ix_audit_sessions_status_start", "status", "start_time"),)

    @property
    def is_finished(self) -> bool:
        return self.status in (SessionStatus.COMPLETED.value, SessionStatus.ERROR.value)


class PageRecord(Base):
    __tablename__ = "page_audits"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    session_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("audit_sessions.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    url: Mapped[str] = mapped_column(String(2048), nullable=False)
    final_url: Mapped[Optional[str]] = mapped_column(String(2048), nullable=True)
    title: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    audit_time: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utc_now
    )
    status_code: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    response_time: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    content_length: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    redirects_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    meta_description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    total_issues: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    level_a_issues: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    level_aa_issues: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    level_aaa_issues: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    h1_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    img_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    link_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    form_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    session: Mapped[AuditSession] = relationship(back_populates="pages")
    findings: Mapped[list["FindingRecord"]] = relationship(
        back_populates="page", cascade="all, delete-orphan"
    )

    __table_args__ = (Index("ix_page_audits_session_url", "session_id", "url"),)


class FindingRecord(Base):
    __tablename__ = "accessibility_issues"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    page_audit_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("page_audits.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    issue_type: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    wcag_criterion: Mapped[str] = mapped_column(String(20), nullable=False, index=True)
    wcag_level: Mapped[str] = mapped_column(String(3), nullable=False, index=True)
    wcag_version: Mapped[str] = mapped_column(String(5), nullable=False, default="2.2")
    severity: Mapped[str] = mapped_column(String(10), nullable=False, index=True)
    confidence: Mapped[str] = mapped_column(
        String(10), nullable=False, default="medium"
    )
    element_selector: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    recommendation: Mapped[str] = mapped_column(Text, nullable=False)
    help_url: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    line_number: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utc_now
    )

    page: Mapped[PageRecord] = relationship(back_populates="findings")
