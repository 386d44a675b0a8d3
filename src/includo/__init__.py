"""includo core library.

This package provides the resumable crawl-and-audit engine: a breadth-first
crawler that fetches each page of a site, evaluates it against a catalogue of
WCAG 2.2 / European Accessibility Act heuristics, and records findings in a
session store that report tooling can read.

Repo rules:
- The crawler fetches one page at a time; long crawls are split into bounded
  runs with pause/resume, never parallelised.
- Detectors are heuristics. Where a verdict needs a renderer they emit a
  manual-check finding instead.
"""

from __future__ import annotations

__all__ = ["__version__"]

__version__ = "2.2.0"
