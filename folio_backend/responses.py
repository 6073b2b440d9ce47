"""HTTP response bodies and their JSON encoding."""

from __future__ import annotations

import dataclasses
import json
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

ZERO_TIME = datetime(1, 1, 1, tzinfo=timezone.utc)

_OMIT_NIL = "nil"
_OMIT_EMPTY = "empty"


def _field(*, key: str | None = None, omit: str | None = None, default: Any = dataclasses.MISSING,
           default_factory: Any = dataclasses.MISSING) -> Any:
    metadata: dict[str, str] = {}
    if key:
        metadata["json"] = key
    if omit:
        metadata["omit"] = omit
    return field(default=default, default_factory=default_factory, metadata=metadata)


@dataclass(kw_only=True)
class ErrorResponse:
    error: str


@dataclass(kw_only=True)
class SuccessResponse:
    message: str
    data: Any = _field(omit=_OMIT_NIL, default=None)


@dataclass(kw_only=True)
class PaginationResponse:
    total: int = 0
    page: int = 0
    limit: int = 0


@dataclass(kw_only=True)
class DataResponse:
    data: Any = None
    message: str = ""


@dataclass(kw_only=True)
class PaginatedDataResponse:
    data: Any = None
    page: int = 0
    limit: int = 0
    total: int = 0
    message: str = ""


@dataclass(kw_only=True)
class HealthResponse:
    status: str
    database: str
    timestamp: datetime = ZERO_TIME


@dataclass(kw_only=True)
class DatabaseStatus:
    connected: bool = False
    max_open_connections: int = 0
    open_connections: int = 0
    in_use: int = 0
    idle: int = 0
    wait_count: int = 0
    wait_duration: str = ""
    max_idle_closed: int = 0
    max_lifetime_closed: int = 0


@dataclass(kw_only=True)
class DatabaseHealthResponse:
    status: str
    database: DatabaseStatus = field(default_factory=DatabaseStatus)
    timestamp: datetime = ZERO_TIME


@dataclass(kw_only=True)
class CategoryResponse:
    id: int
    title: str
    description: str | None = _field(omit=_OMIT_NIL, default=None)
    position: int = 0
    owner_id: str = _field(omit=_OMIT_EMPTY, default="")
    portfolio_id: int = 0
    created_at: datetime = ZERO_TIME
    updated_at: datetime = ZERO_TIME


@dataclass(kw_only=True)
class ListCategoriesResponse:
    categories: list[CategoryResponse] = field(default_factory=list)
    pagination: PaginationResponse = field(default_factory=PaginationResponse)


@dataclass(kw_only=True)
class PortfolioResponse:
    id: int
    title: str
    description: str = ""
    owner_id: str = _field(omit=_OMIT_EMPTY, default="")
    created_at: datetime = ZERO_TIME
    updated_at: datetime = ZERO_TIME


@dataclass(kw_only=True)
class ListPortfoliosResponse:
    portfolios: list[PortfolioResponse] = field(default_factory=list)
    pagination: PaginationResponse = field(default_factory=PaginationResponse)


@dataclass(kw_only=True)
class ProjectResponse:
    id: int
    title: str
    description: str = ""
    main_image: str | None = _field(omit=_OMIT_NIL, default=None)
    images: list[str] | None = _field(omit=_OMIT_EMPTY, default=None)
    skills: list[str] | None = _field(omit=_OMIT_EMPTY, default=None)
    client: str | None = _field(omit=_OMIT_NIL, default=None)
    link: str | None = _field(omit=_OMIT_NIL, default=None)
    category_id: int = 0
    owner_id: str = _field(omit=_OMIT_EMPTY, default="")
    created_at: datetime = ZERO_TIME
    updated_at: datetime = ZERO_TIME


@dataclass(kw_only=True)
class ListProjectsResponse:
    projects: list[ProjectResponse] = field(default_factory=list)
    pagination: PaginationResponse = field(default_factory=PaginationResponse)


@dataclass(kw_only=True)
class SectionContentResponse:
    id: int
    section_id: int = 0
    type: str = ""
    content: str | None = _field(omit=_OMIT_NIL, default=None)
    order: int = 0
    image_id: int | None = _field(omit=_OMIT_NIL, default=None)
    owner_id: str = _field(omit=_OMIT_EMPTY, default="")
    created_at: datetime = ZERO_TIME
    updated_at: datetime = ZERO_TIME


@dataclass(kw_only=True)
class ListSectionContentsResponse:
    contents: list[SectionContentResponse] = field(default_factory=list)


@dataclass(kw_only=True)
class SectionResponse:
    id: int
    title: str
    description: str | None = _field(omit=_OMIT_NIL, default=None)
    position: int = 0
    type: str = ""
    owner_id: str = _field(omit=_OMIT_EMPTY, default="")
    portfolio_id: int = 0
    created_at: datetime = ZERO_TIME
    updated_at: datetime = ZERO_TIME


@dataclass(kw_only=True)
class ListSectionsResponse:
    sections: list[SectionResponse] = field(default_factory=list)
    pagination: PaginationResponse = field(default_factory=PaginationResponse)


@dataclass(kw_only=True)
class UserResponse:
    id: str
    email: str
    name: str
    created_at: datetime = ZERO_TIME
    updated_at: datetime = ZERO_TIME


def _format_time(moment: datetime) -> str:
    """Format a timestamp as RFC 3339 with trimmed fractional seconds."""
    if moment.tzinfo is None or moment.utcoffset() is None:
        moment = moment.replace(tzinfo=timezone.utc)
    text = (
        f"{moment.year:04d}-{moment.month:02d}-{moment.day:02d}"
        f"T{moment.hour:02d}:{moment.minute:02d}:{moment.second:02d}"
    )
    if moment.microsecond:
        text += "." + f"{moment.microsecond:06d}".rstrip("0")
    offset = moment.utcoffset()
    seconds = int(offset.total_seconds()) if offset else 0
    if seconds == 0:
        return text + "Z"
    sign = "+" if seconds > 0 else "-"
    hours, rest = divmod(abs(seconds), 3600)
    return f"{text}{sign}{hours:02d}:{rest // 60:02d}"


def _is_empty(value: Any) -> bool:
    if value is None or value is False:
        return True
    if isinstance(value, (str, list, tuple, dict)):
        return len(value) == 0
    if isinstance(value, (int, float)):
        return value == 0
    return False


def _encode(value: Any) -> Any:
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        encoded: dict[str, Any] = {}
        for item in dataclasses.fields(value):
            current = getattr(value, item.name)
            omit = item.metadata.get("omit")
            if omit == _OMIT_NIL and current is None:
                continue
            if omit == _OMIT_EMPTY and _is_empty(current):
                continue
            encoded[item.metadata.get("json", item.name)] = _encode(current)
        return encoded
    if isinstance(value, datetime):
        return _format_time(value)
    if isinstance(value, Mapping):
        return {str(key): _encode(item) for key, item in sorted(value.items(), key=lambda kv: str(kv[0]))}
    if isinstance(value, (list, tuple)):
        return [_encode(item) for item in value]
    return value


_HTML_ESCAPES = {
    "<": "\\u003c",
    ">": "\\u003e",
    "&": "\\u0026",
    "\u2028": "\\u2028",
    "\u2029": "\\u2029",
}


def to_json(value: Any) -> str:
    """Encode a response (or any nesting of them) as compact, HTML-safe JSON."""
    text = json.dumps(_encode(value), ensure_ascii=False, separators=(",", ":"))
    for char, escaped in _HTML_ESCAPES.items():
        text = text.replace(char, escaped)
    return text