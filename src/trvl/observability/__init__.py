"""TRVL observability: analytics event log."""

from .event_log import EventLog

__all__ = ["EventLog"]
