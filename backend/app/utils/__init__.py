"""Utility modules for Farewatch."""

from app.utils.clock import utcnow, to_utc_naive, parse_timestamp

__all__ = ["utcnow", "to_utc_naive", "parse_timestamp"]
