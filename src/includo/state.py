from __future__ import annotations

import json
from collections import deque
from typing import Iterable

from .errors import QueueFormatError

QUEUE_SCHEMA = "includo.queue/1"


class Frontier:
    """Visited set plus pending queue for one session.

    The two are kept disjoint: a URL leaves the queue when it is handed out
    by ``pop`` and is marked visited at that moment, before anything is
    fetched. Stale queue entries that are already visited are dropped.
    """

    def __init__(
        self, queue: Iterable[str] = (), *, visited: Iterable[str] = ()
    ) -> None:
        self.visited: set[str] = set(visited)
        self._queue: deque[str] = deque()
        self._queued: set[str] = set()
        for url in queue:
            self.push(url)

    def __len__(self) -> int:
        return len(self._queue)

    def __bool__(self) -> bool:
        return bool(self._queue)

    def __contains__(self, url: object) -> bool:
        return url in self._queued or url in self.visited

    def push(self, url: str) -> bool:
        if url in self:
            return False
        self._queue.append(url)
        self._queued.add(url)
        return True

    def extend(self, urls: Iterable[str]) -> int:
        return sum(1 for url in urls if self.push(url))

    def pop(self) -> str | None:
        """Next unvisited URL, already marked visited; None when drained."""

        while self._queue:
            url = self._queue.popleft()
            self._queued.discard(url)
            if url in self.visited:
                continue
            self.visited.add(url)
            return url
        return None

    def pending(self) -> list[str]:
        return list(self._queue)


def encode_queue(urls: Iterable[str]) -> str:
    return json.dumps({"schema": QUEUE_SCHEMA, "urls": list(urls)}, ensure_ascii=False)


def decode_queue(raw: str | None) -> list[str]:
    """Decode a persisted pending queue.

    Accepts the versioned object form and the legacy bare JSON list. Empty or
    missing input is an empty queue; anything else is a ``QueueFormatError``.
    """

    if raw is None or not raw.strip():
        return []
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise QueueFormatError(f"Pending queue is not valid JSON: {e}") from e

    if isinstance(data, dict):
        schema = data.get("schema")
        if schema != QUEUE_SCHEMA:
            raise QueueFormatError(f"Unsupported pending queue schema: {schema!r}")
        urls = data.get("urls")
    else:
        urls = data

    if not isinstance(urls, list) or not all(isinstance(u, str) for u in urls):
        raise QueueFormatError("Pending queue must be a list of URL strings")
    return urls
