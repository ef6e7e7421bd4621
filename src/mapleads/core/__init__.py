"""Core client logic - transport, stores, poller and session facade."""

from .client import ApiCall, ScraperApiClient
from .poller import Poller
from .session import ScrapeSession, SessionState

__all__ = [
    "ApiCall",
    "Poller",
    "ScrapeSession",
    "ScraperApiClient",
    "SessionState",
]
