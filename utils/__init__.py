"""Shared utilities."""

from __future__ import annotations

from .formatting import describe_snapshot, format_estimated_time

__all__ = [
    "describe_snapshot",
    "format_estimated_time",
]
