"""
Domain models for the scraper API.

Wire payloads (businesses, job snapshots, exports) are pydantic models
that tolerate absent optional fields. Client-side state (the tracked job,
result sets) uses plain dataclasses.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, NamedTuple
from urllib.parse import urlparse

from pydantic import BaseModel, ConfigDict, Field, model_validator


# =============================================================================
# Enums
# =============================================================================


class JobStatus(str, Enum):
    """Client-side lifecycle of the tracked scrape job."""

    IDLE = "idle"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class ExportType(str, Enum):
    """Which businesses an export covers."""

    SEARCH = "search"
    ALL = "all"


class WebsiteFilter(str, Enum):
    """Restrict an export by whether businesses have a website."""

    WITH = "with"
    WITHOUT = "without"


# Explicit status strings the API may report on a snapshot
_COMPLETED_STATUSES = {"completed", "complete", "done", "finished"}
_FAILED_STATUSES = {"failed", "error"}


# =============================================================================
# Job Identity
# =============================================================================


class JobKey(NamedTuple):
    """A scrape job is addressed by its keyword and location."""

    keyword: str
    location: str

    @classmethod
    def of(cls, keyword: str, location: str) -> "JobKey":
        return cls(keyword.strip(), location.strip())

    def matches(self, other: "JobKey | None") -> bool:
        """Compare ignoring surrounding whitespace only."""
        if other is None:
            return False
        return (
            self.keyword.strip() == other.keyword.strip()
            and self.location.strip() == other.location.strip()
        )

    def __str__(self) -> str:
        return f"{self.keyword} @ {self.location}"


# =============================================================================
# Wire Models
# =============================================================================


class _ApiModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")


class JobProgress(_ApiModel):
    """Processed/total counters reported while a job runs."""

    processed: int | None = None
    total: int | None = None

    @model_validator(mode="after")
    def clamp_processed(self) -> "JobProgress":
        if self.processed is not None and self.total is not None and self.processed > self.total:
            self.processed = self.total
        return self

    @property
    def percent(self) -> int:
        if not self.total or self.processed is None:
            return 0
        return round(self.processed / self.total * 100)

    @property
    def is_complete(self) -> bool:
        return bool(self.total) and self.processed is not None and self.processed >= self.total


class JobSnapshot(_ApiModel):
    """Status payload returned by the start and status endpoints."""

    keyword: str | None = None
    location: str | None = None
    total_found: int = Field(default=0, alias="totalFound")
    progress: JobProgress | None = None
    last_scraped: datetime | None = Field(default=None, alias="lastScraped")
    status: str | None = None

    @property
    def key(self) -> JobKey | None:
        if self.keyword is None or self.location is None:
            return None
        return JobKey(self.keyword, self.location)

    def job_status(self) -> JobStatus:
        """Derive the client lifecycle status from this snapshot."""
        if self.status:
            reported = self.status.strip().lower()
            if reported in _COMPLETED_STATUSES:
                return JobStatus.COMPLETED
            if reported in _FAILED_STATUSES:
                return JobStatus.FAILED
            return JobStatus.RUNNING
        if self.progress is not None and self.progress.is_complete:
            return JobStatus.COMPLETED
        return JobStatus.RUNNING


class Business(_ApiModel):
    """A single scraped business record."""

    id: str
    name: str = ""
    address: str = ""
    phone: str | None = None
    website: str | None = None
    rating: float | None = None
    total_reviews: int | None = Field(default=None, alias="totalReviews")
    category: str | None = None

    @model_validator(mode="before")
    @classmethod
    def accept_mongo_id(cls, data: Any) -> Any:
        # The API sends identities as "_id"
        if isinstance(data, dict):
            raw_id = data.get("id", data.get("_id"))
            data = {k: v for k, v in data.items() if k != "_id"}
            if raw_id is not None:
                data["id"] = str(raw_id)
            # Listings without a name or address come back as null
            for field in ("name", "address"):
                if data.get(field) is None:
                    data.pop(field, None)
        return data

    @property
    def has_website(self) -> bool:
        """True only for an absolute http(s) URL with a host."""
        if not self.website:
            return False
        parsed = urlparse(self.website.strip())
        return parsed.scheme.lower() in ("http", "https") and bool(parsed.netloc)


class Pagination(_ApiModel):
    """Server pagination metadata for the business listing."""

    page: int = 1
    limit: int = 50
    total: int = 0
    pages: int = 0

    @property
    def has_next(self) -> bool:
        return self.page < self.pages

    @property
    def has_previous(self) -> bool:
        return self.page > 1


class BusinessPage(_ApiModel):
    """Response of GET /businesses."""

    data: list[Business] = Field(default_factory=list)
    pagination: Pagination | None = None


class BusinessList(_ApiModel):
    """Response of GET /businesses/search."""

    data: list[Business] = Field(default_factory=list)


class ExportResult(_ApiModel):
    """Outcome of a successful export."""

    file_name: str = Field(alias="fileName")
    file_path: str = Field(alias="filePath")
    total_records: int = Field(default=0, alias="totalRecords")

    @model_validator(mode="before")
    @classmethod
    def unwrap_data(cls, data: Any) -> Any:
        if isinstance(data, dict) and "fileName" not in data and isinstance(data.get("data"), dict):
            return data["data"]
        return data


# =============================================================================
# Requests
# =============================================================================


@dataclass
class ExportRequest:
    """Parameters of an export call."""

    export_type: ExportType = ExportType.SEARCH
    keyword: str | None = None
    location: str | None = None
    has_website: WebsiteFilter | None = None

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"exportType": self.export_type.value}
        if self.keyword:
            payload["keyword"] = self.keyword
        if self.location:
            payload["location"] = self.location
        if self.has_website is not None:
            payload["hasWebsite"] = self.has_website.value
        return payload


# =============================================================================
# Client State
# =============================================================================


@dataclass
class Job:
    """The scrape job currently tracked by the client."""

    keyword: str = ""
    location: str = ""
    status: JobStatus = JobStatus.IDLE
    progress: JobProgress | None = None
    total_found: int = 0
    last_scraped_at: datetime | None = None
    error: str | None = None
    updated_at: datetime | None = None

    @property
    def key(self) -> JobKey | None:
        if not self.keyword and not self.location:
            return None
        return JobKey(self.keyword, self.location)

    @property
    def percent(self) -> int:
        return self.progress.percent if self.progress else 0

    @property
    def is_terminal(self) -> bool:
        return self.status in (JobStatus.COMPLETED, JobStatus.FAILED)


@dataclass
class SearchHistory:
    """Previously scraped searches as reported by the API."""

    entries: list[dict[str, Any]] = field(default_factory=list)
    error: str | None = None
