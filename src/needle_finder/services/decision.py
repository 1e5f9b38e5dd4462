"""Presence decision from the accepted match count."""

from __future__ import annotations


def decide(accepted_count: int, point_threshold: float) -> bool:
    """Return True when accepted_count reaches point_threshold (inclusive)."""
    return accepted_count >= point_threshold
