from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

from tqdm import tqdm

from .config import DEFAULT_PROFILES, load_config
from .crawl import Crawler, CrawlEvent, CrawlEventKind, CrawlResult
from .errors import IncludoError, SessionBusyError, SessionNotFoundError
from .http_client import HttpClient
from .manifest import ManifestWriter
from .models import SessionStatus
from .store import SessionStore


EXIT_OK = 0
EXIT_CRAWL_FAILED = 1
EXIT_USAGE = 2
EXIT_BUSY = 3


class ProgressBar:
    """tqdm bar driven by crawl events, one bar per run."""

    def __init__(self, *, disable: bool = False) -> None:
        self.disable = disable
        self._bar: tqdm | None = None

    def __call__(self, event: CrawlEvent) -> None:
        if event.kind in (CrawlEventKind.STARTED, CrawlEventKind.RESUMED):
            self._close()
            self._bar = tqdm(
                total=event.budget,
                desc=f"session {event.session_id}",
                unit="page",
                disable=self.disable,
            )
        elif self._bar is None:
            return
        elif event.kind == CrawlEventKind.PAGE_AUDITED:
            self._bar.update(1)
            self._bar.set_postfix(findings=event.findings, queued=event.queued)
        elif event.kind in (CrawlEventKind.FINISHED, CrawlEventKind.FAILED):
            self._close()

    def _close(self) -> None:
        if self._bar is not None:
            self._bar.close()
            self._bar = None


def _configure_logging(level: str, log_file: Path | None) -> None:
    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file, encoding="utf-8"))
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.WARNING),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        handlers=handlers,
        force=True,
    )


def _print_result(result: CrawlResult) -> None:
    print(
        f"session {result.session_id}: {result.status.value} "
        f"pages={result.pages} findings={result.findings} "
        f"queued={len(result.pending)}"
    )


def _resume_one(
    crawler: Crawler, session_id: int, max_pages: int | None
) -> tuple[int, CrawlResult | None]:
    try:
        result = crawler.resume(session_id, max_pages=max_pages)
    except SessionBusyError as e:
        print(str(e), file=sys.stderr)
        return EXIT_BUSY, None
    except SessionNotFoundError as e:
        print(str(e), file=sys.stderr)
        return EXIT_USAGE, None
    except IncludoError as e:
        print(f"session {session_id} failed: {e}", file=sys.stderr)
        return EXIT_CRAWL_FAILED, None
    _print_result(result)
    return EXIT_OK, result


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="includo",
        description="Crawl a website and audit its pages against WCAG 2.2",
    )
    parser.add_argument(
        "--db",
        dest="database_url",
        default=None,
        help="SQLAlchemy database URL (default: $INCLUDO_DATABASE_URL or "
        "sqlite:///includo.db)",
    )
    parser.add_argument("--timeout", type=float, default=None)
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
    )
    parser.add_argument("--log-file", type=Path, default=None)
    parser.add_argument("--no-progress", action="store_true")
    sub = parser.add_subparsers(dest="cmd", required=True)

    audit_p = sub.add_parser("audit", help="Start a new audit session")
    audit_p.add_argument("url")
    audit_p.add_argument("--max-pages", type=int, default=None)
    audit_p.add_argument(
        "--site-type", choices=sorted(DEFAULT_PROFILES), default=None
    )
    audit_p.add_argument(
        "--events",
        type=Path,
        default=None,
        help="Append crawl events to this JSONL file",
    )

    resume_p = sub.add_parser("resume", help="Resume a paused session")
    resume_p.add_argument("session_id", type=int)
    resume_p.add_argument(
        "--max-pages",
        type=int,
        default=None,
        help="Page budget for this run (default: the session's budget)",
    )
    resume_p.add_argument("--events", type=Path, default=None)

    worker_p = sub.add_parser(
        "resume-worker",
        help="Resume every paused or interrupted session in turn",
    )
    worker_p.add_argument("--max-pages", type=int, default=None)

    sessions_p = sub.add_parser("sessions", help="List audit sessions")
    sessions_p.add_argument(
        "--status", choices=[s.value for s in SessionStatus], default=None
    )

    stats_p = sub.add_parser("stats", help="Print session statistics as JSON")
    stats_p.add_argument("session_id", type=int)

    args = parser.parse_args(argv)
    _configure_logging(args.log_level, args.log_file)

    try:
        config = load_config(
            database_url=args.database_url,
            timeout_s=args.timeout,
            site_type=getattr(args, "site_type", None),
        )
        store = SessionStore.from_config(config)
    except (ValueError, IncludoError) as e:
        print(str(e), file=sys.stderr)
        return EXIT_USAGE

    try:
        if args.cmd == "sessions":
            try:
                rows = store.list_sessions(status=args.status)
            except IncludoError as e:
                print(str(e), file=sys.stderr)
                return EXIT_USAGE
            for row in rows:
                print(
                    f"{row.id}\t{row.status}\t{row.site_url}\t"
                    f"pages={row.total_pages}\tfindings={row.total_issues}\t"
                    f"started={row.start_time:%Y-%m-%d %H:%M}"
                )
            return EXIT_OK

        if args.cmd == "stats":
            try:
                stats = store.audit_statistics(args.session_id)
            except IncludoError as e:
                print(str(e), file=sys.stderr)
                return EXIT_USAGE
            print(json.dumps(stats, indent=2))
            return EXIT_OK

        http = HttpClient.from_config(config)
        crawler = Crawler(store, http, config=config)
        crawler.subscribe(ProgressBar(disable=bool(args.no_progress)))

        manifest = None
        if getattr(args, "events", None) is not None:
            manifest = ManifestWriter(args.events)
            crawler.subscribe(manifest)

        try:
            if args.cmd == "audit":
                try:
                    result = crawler.start(args.url, max_pages=args.max_pages)
                except ValueError as e:
                    print(str(e), file=sys.stderr)
                    return EXIT_USAGE
                except SessionBusyError as e:
                    print(str(e), file=sys.stderr)
                    return EXIT_BUSY
                except IncludoError as e:
                    print(f"audit failed: {e}", file=sys.stderr)
                    return EXIT_CRAWL_FAILED
                if manifest is not None:
                    manifest.write_summary(result)
                _print_result(result)
                return EXIT_OK

            if args.cmd == "resume":
                code, result = _resume_one(crawler, args.session_id, args.max_pages)
                if manifest is not None and result is not None:
                    manifest.write_summary(result)
                return code

            if args.cmd == "resume-worker":
                try:
                    sessions = store.resumable_sessions()
                except IncludoError as e:
                    print(str(e), file=sys.stderr)
                    return EXIT_USAGE
                if not sessions:
                    print("No sessions to resume")
                    return EXIT_OK

                failed = 0
                for row in sessions:
                    code, _ = _resume_one(crawler, row.id, args.max_pages)
                    if code == EXIT_CRAWL_FAILED:
                        failed += 1
                return EXIT_CRAWL_FAILED if failed else EXIT_OK
        finally:
            http.close()
    finally:
        store.close()

    parser.error(f"unknown command: {args.cmd}")
    return EXIT_USAGE


if __name__ == "__main__":
    raise SystemExit(main())
