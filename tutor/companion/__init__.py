"""
Companion core: payload acquisition and time-based rule resolution

This package provides the data side of the Tutor kiosk companion:

- Payload acquisition: remote → last-known-good cache → bundled copy → embedded
  document, with validation at every live tier
- Validation: structural checks for content payloads, shape checks for events
- Event rules: "active now" and "active today" resolution with priority ties
  resolved first-seen
- Schedules: conditional line rules and today's-event injection into day-part
  sections, idempotent across render passes

Key modules:
- config: Source configuration from environment variables or a JSON document
- sources: Tiered content/events repositories
- event_engine: Rule matching and consumer-facing queries
- schedule: Schedule document model and annotation
- runtime: Load/refresh orchestration used by the kiosk shell
"""

from __future__ import annotations

__all__ = [
    "cache",
    "config",
    "errors",
    "event_engine",
    "models",
    "runtime",
    "schedule",
    "sources",
    "validator",
]
