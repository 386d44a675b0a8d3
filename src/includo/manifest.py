from __future__ import annotations

import json
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from .crawl import CrawlEvent, CrawlResult


def utc_iso() -> str:
    return time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime())


@dataclass
class ManifestWriter:
    """Crawl listener that appends every event to a JSONL file.

    ``write_summary`` drops the final result next to it, ``events.jsonl``
    becoming ``events.json``.
    """

    jsonl_path: Path

    def __post_init__(self) -> None:
        self.jsonl_path = Path(self.jsonl_path)
        self.json_path = self.jsonl_path.with_suffix(".json")

    def __call__(self, event: CrawlEvent) -> None:
        self.append(event.to_dict())

    def append(self, event: dict[str, Any]) -> None:
        event = dict(event)
        event.setdefault("at", utc_iso())
        self.jsonl_path.parent.mkdir(parents=True, exist_ok=True)
        with self.jsonl_path.open("a", encoding="utf-8", newline="\n") as f:
            f.write(json.dumps(event, ensure_ascii=False) + "\n")

    def write_summary(self, result: CrawlResult) -> None:
        summary = {
            "session_id": result.session_id,
            "status": result.status.value,
            "pages": result.pages,
            "findings": result.findings,
            "run_pages": result.run_pages,
            "remaining_queue": list(result.pending),
            "skipped": list(result.skipped),
            "finished_at": utc_iso(),
        }
        self.json_path.parent.mkdir(parents=True, exist_ok=True)
        self.json_path.write_text(
            json.dumps(summary, indent=2, ensure_ascii=False), encoding="utf-8"
        )
