from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field

from webparity.errors import UnknownMethodError

OPAQUE_SENTINEL = "<!-- webparity:opaque-content -->"


class RequestMethod(str, Enum):
    GET = "GET"
    HEAD = "HEAD"

    @classmethod
    def coerce(cls, value: RequestMethod | str) -> RequestMethod:
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).upper())
        except ValueError as exc:
            raise UnknownMethodError(f"unsupported request method: {value!r}") from exc

    @property
    def extension(self) -> str:
        return "html" if self is RequestMethod.GET else "json"


class Classification(str, Enum):
    HTML = "html"
    OPAQUE = "opaque"

    @classmethod
    def from_content_type(cls, content_type: str | None) -> Classification:
        if not content_type:
            return cls.OPAQUE
        media_type = content_type.split(";", 1)[0].strip().lower()
        return cls.HTML if media_type == "text/html" else cls.OPAQUE


def is_opaque(content: str | None) -> bool:
    return content == OPAQUE_SENTINEL


class FetchResult(BaseModel):
    """Outcome of a single successful (status 200) network request."""

    url: str
    method: RequestMethod
    status_code: int
    headers: dict[str, str] = Field(default_factory=dict)
    body: str | None = None
    classification: Classification = Classification.OPAQUE
    attempts: int = 1

    @property
    def payload(self) -> str | None:
        """Body as it should be cached and returned; opaque content collapses to the sentinel."""
        if self.method is RequestMethod.HEAD:
            return None
        if self.classification is Classification.OPAQUE:
            return OPAQUE_SENTINEL
        return self.body


class ResourceType(str, Enum):
    WEBPAGE = "WEBPAGE"
    FILE = "FILE"


class ErrorStep(str, Enum):
    FETCH_HEADERS = "FETCH_HEADERS"
    FETCH_CONTENT = "FETCH_CONTENT"


class PageFetch(BaseModel):
    """Everything fetched for one path from the source and destination hosts."""

    path: str
    resource_type: ResourceType | None = None
    error_step: ErrorStep | None = None
    fetch_errors: list[str] = Field(default_factory=list)
    source_headers: dict[str, str] | None = None
    destination_headers: dict[str, str] | None = None
    source_content: str | None = None
    destination_content: str | None = None

    @property
    def failed(self) -> bool:
        return self.error_step is not None


class RunReport(BaseModel):
    """Machine-readable report for a batch of fetched path pairs."""

    run_id: str
    timestamp: datetime
    source_host: str
    destination_host: str
    items: list[PageFetch]
    webpage_count: int = 0
    file_count: int = 0
    failure_count: int = 0
    metrics: dict[str, int] = Field(default_factory=dict)
