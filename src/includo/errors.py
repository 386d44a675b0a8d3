from __future__ import annotations


class IncludoError(Exception):
    """Base class for every error raised by the audit engine."""


class PersistenceError(IncludoError):
    """A page or finding row could not be written. The run continues."""


class CrawlFatalError(IncludoError):
    """The run cannot continue; the session is marked as errored."""


class SessionNotFoundError(CrawlFatalError):
    def __init__(self, session_id: int) -> None:
        super().__init__(f"Session not found: {session_id}")
        self.session_id = session_id


class SessionBusyError(IncludoError):
    def __init__(self, session_id: int) -> None:
        super().__init__(f"Session {session_id} is being processed by another runner")
        self.session_id = session_id


class QueueFormatError(CrawlFatalError):
    """The persisted pending queue cannot be decoded."""
