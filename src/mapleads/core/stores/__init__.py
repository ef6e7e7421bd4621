"""Client-side state stores."""

from .exports import ExportCoordinator
from .jobs import JobStore
from .results import DisplayView, ResultSet, ResultSetKind, ResultStore, scoped_is_active

__all__ = [
    "DisplayView",
    "ExportCoordinator",
    "JobStore",
    "ResultSet",
    "ResultSetKind",
    "ResultStore",
    "scoped_is_active",
]
