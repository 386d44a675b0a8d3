"""Tests for the crawl frontier and queue serialization."""

import json

import pytest

from includo.errors import QueueFormatError
from includo.state import QUEUE_SCHEMA, Frontier, decode_queue, encode_queue


class TestFrontier:
    """Tests for Frontier."""

    def test_fifo_order_and_dedup(self):
        """Test URLs come out breadth-first and are queued once."""
        frontier = Frontier(["u1"])
        assert frontier.extend(["u2", "u3", "u2"]) == 2
        assert frontier.pending() == ["u1", "u2", "u3"]
        assert [frontier.pop(), frontier.pop(), frontier.pop()] == ["u1", "u2", "u3"]
        assert frontier.pop() is None
        assert not frontier

    def test_popped_urls_are_visited(self):
        """Test a popped URL can never be queued again."""
        frontier = Frontier(["u1"])
        assert frontier.pop() == "u1"
        assert "u1" in frontier.visited
        assert frontier.push("u1") is False
        assert len(frontier) == 0

    def test_visited_entries_dropped_at_construction(self):
        """Test a restored queue skips URLs already audited."""
        frontier = Frontier(["a", "b", "a", "c"], visited={"b"})
        assert frontier.pending() == ["a", "c"]
        assert len(frontier) == 2
        assert "b" in frontier
        assert "z" not in frontier

    def test_queue_and_visited_stay_disjoint(self):
        """Test the queue never holds a visited URL."""
        frontier = Frontier(["a", "b"])
        frontier.pop()
        frontier.extend(["a", "b", "c"])
        assert frontier.pending() == ["b", "c"]
        assert not set(frontier.pending()) & frontier.visited


class TestQueueCodec:
    """Tests for the persisted pending queue format."""

    def test_encoded_form(self):
        """Test the queue is stored as a versioned JSON object."""
        data = json.loads(encode_queue(["https://example.com/a"]))
        assert data == {"schema": QUEUE_SCHEMA, "urls": ["https://example.com/a"]}

    @pytest.mark.parametrize("raw", [None, "", "   "])
    def test_empty_input(self, raw):
        """Test missing or blank input is an empty queue."""
        assert decode_queue(raw) == []

    def test_legacy_bare_list(self):
        """Test the unversioned list form is still accepted."""
        assert decode_queue('["https://example.com/x"]') == ["https://example.com/x"]

    @pytest.mark.parametrize(
        "raw",
        [
            "{not json",
            '{"schema": "includo.queue/99", "urls": []}',
            '{"urls": ["a"]}',
            '{"schema": "includo.queue/1", "urls": "a"}',
            '["a", 2]',
            '"a"',
        ],
    )
    def test_malformed_input(self, raw):
        """Test anything else raises QueueFormatError."""
        with pytest.raises(QueueFormatError):
            decode_queue(raw)
