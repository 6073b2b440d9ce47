"""Validated HTTP request bodies and query parameters."""

from __future__ import annotations

import json
from collections.abc import Iterable, Mapping
from typing import Annotated, Any, TypeVar, Union, get_origin
from urllib.parse import urlsplit

from pydantic import (
    AfterValidator,
    BaseModel,
    ConfigDict,
    Field,
    StrictInt,
    StrictStr,
    ValidationError,
)

_UINT_MAX = 2**64 - 1

Uint = Annotated[StrictInt, Field(ge=0, le=_UINT_MAX)]
PositiveUint = Annotated[StrictInt, Field(ge=1, le=_UINT_MAX)]


def _check_url(value: str) -> str:
    parts = urlsplit(value)
    if not parts.scheme or not (parts.netloc or parts.path):
        raise ValueError("must be a valid URL")
    return value


Url = Annotated[StrictStr, AfterValidator(_check_url)]

Model = TypeVar("Model", bound=BaseModel)


class RequestError(ValueError):
    """Raised when a request body or query cannot be bound to its model."""

    def __init__(self, message: str, errors: Iterable[Any] = ()) -> None:
        super().__init__(message)
        self.errors = list(errors)


class _Request(BaseModel):
    model_config = ConfigDict(extra="ignore")


# Categories


class CreateCategoryRequest(_Request):
    title: Annotated[StrictStr, Field(min_length=1, max_length=255)]
    description: Annotated[StrictStr, Field(max_length=1000)] | None = None
    position: Uint = 0
    portfolio_id: PositiveUint


class UpdateCategoryRequest(_Request):
    title: Annotated[StrictStr, Field(max_length=255)] = ""
    description: Annotated[StrictStr, Field(max_length=1000)] | None = None
    position: Uint = 0


class UpdateCategoryPositionRequest(_Request):
    position: PositiveUint


class BulkUpdatePositionItemRequest(_Request):
    id: PositiveUint
    position: PositiveUint


class BulkReorderCategoriesRequest(_Request):
    items: Annotated[list[BulkUpdatePositionItemRequest], Field(min_length=1)]


class ListCategoriesRequest(_Request):
    page: Annotated[int, Field(ge=0)] = 0
    limit: Annotated[int, Field(ge=0, le=100)] = 0


# Portfolios


class CreatePortfolioRequest(_Request):
    title: Annotated[StrictStr, Field(min_length=1, max_length=255)]
    description: Annotated[StrictStr, Field(max_length=1000)] = ""


class UpdatePortfolioRequest(_Request):
    title: Annotated[StrictStr, Field(max_length=255)] = ""
    description: Annotated[StrictStr, Field(max_length=1000)] = ""


class ListPortfoliosRequest(_Request):
    page: Annotated[int, Field(ge=0)] = 0
    limit: Annotated[int, Field(ge=0, le=100)] = 0


# Projects


class CreateProjectRequest(_Request):
    title: Annotated[StrictStr, Field(min_length=1, max_length=255)]
    description: Annotated[StrictStr, Field(min_length=1)]
    main_image: Url | None = None
    images: list[Url] | None = None
    skills: list[StrictStr] | None = None
    client: Annotated[StrictStr, Field(max_length=255)] | None = None
    link: Url | None = None
    category_id: PositiveUint


class UpdateProjectRequest(_Request):
    title: Annotated[StrictStr, Field(max_length=255)] = ""
    description: StrictStr = ""
    main_image: Url | None = None
    images: list[Url] | None = None
    skills: list[StrictStr] | None = None
    client: Annotated[StrictStr, Field(max_length=255)] | None = None
    link: Url | None = None


class ListProjectsRequest(_Request):
    page: Annotated[int, Field(ge=0)] = 0
    limit: Annotated[int, Field(ge=0, le=100)] = 0


class SearchProjectsBySkillsRequest(_Request):
    skills: Annotated[list[str], Field(min_length=1)]


class SearchProjectsByClientRequest(_Request):
    client: Annotated[str, Field(min_length=1)]


# Section contents


class CreateSectionContentRequest(_Request):
    section_id: PositiveUint
    type: Annotated[StrictStr, Field(min_length=1, max_length=50)]
    content: StrictStr | None = None
    order: Uint = 0
    image_id: PositiveUint | None = None


class UpdateSectionContentRequest(_Request):
    type: Annotated[StrictStr, Field(max_length=50)] = ""
    content: StrictStr | None = None
    order: Uint = 0
    image_id: PositiveUint | None = None


class UpdateSectionContentOrderRequest(_Request):
    order: PositiveUint


# Sections


class CreateSectionRequest(_Request):
    title: Annotated[StrictStr, Field(min_length=1, max_length=255)]
    description: Annotated[StrictStr, Field(max_length=1000)] | None = None
    position: Uint = 0
    type: Annotated[StrictStr, Field(min_length=1, max_length=50)]
    portfolio_id: PositiveUint


class UpdateSectionRequest(_Request):
    title: Annotated[StrictStr, Field(max_length=255)] = ""
    description: Annotated[StrictStr, Field(max_length=1000)] | None = None
    position: Uint = 0
    type: Annotated[StrictStr, Field(max_length=50)] = ""


class UpdateSectionPositionRequest(_Request):
    position: PositiveUint


class BulkReorderSectionsRequest(_Request):
    items: Annotated[list[BulkUpdatePositionItemRequest], Field(min_length=1)]


class ListSectionsRequest(_Request):
    page: Annotated[int, Field(ge=0)] = 0
    limit: Annotated[int, Field(ge=0, le=100)] = 0


# Users


class UpdateUserRequest(_Request):
    name: Annotated[StrictStr, Field(min_length=1, max_length=255)]


def _validate(model: type[Model], data: Mapping[str, Any]) -> Model:
    try:
        return model.model_validate(dict(data))
    except ValidationError as exc:
        details = exc.errors()
        message = "; ".join(
            f"{'.'.join(str(part) for part in error['loc']) or 'body'}: {error['msg']}"
            for error in details
        )
        raise RequestError(message, details) from exc


def _drop_nulls(model: type[BaseModel], data: Mapping[str, Any]) -> dict[str, Any]:
    """Treat JSON null as absent for fields that cannot hold None."""
    fields = model.model_fields
    return {
        key: value
        for key, value in data.items()
        if value is not None or (key in fields and fields[key].default is None)
    }


def bind_json(model: type[Model], payload: Union[str, bytes, bytearray, Mapping[str, Any], None]) -> Model:
    """Decode a JSON body (text or already parsed) and validate it against ``model``."""
    if isinstance(payload, (str, bytes, bytearray)):
        if not payload.strip():
            raise RequestError("EOF")
        try:
            data = json.loads(payload)
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            raise RequestError(f"invalid JSON: {exc}") from exc
    else:
        data = payload
    if data is None:
        data = {}
    if not isinstance(data, Mapping):
        raise RequestError("request body must be a JSON object")
    return _validate(model, _drop_nulls(model, data))


def bind_query(
    model: type[Model],
    params: Union[Mapping[str, Union[str, Iterable[str]]], Iterable[tuple[str, str]]],
) -> Model:
    """Validate query parameters (a mapping or key/value pairs) against ``model``."""
    grouped: dict[str, list[str]] = {}
    items = params.items() if isinstance(params, Mapping) else params
    for key, value in items:
        values = [value] if isinstance(value, str) else list(value)
        grouped.setdefault(key, []).extend(values)

    data: dict[str, Any] = {}
    for name, field in model.model_fields.items():
        values = grouped.get(name)
        if not values:
            continue
        if get_origin(field.annotation) is list:
            data[name] = values
        elif values[0] != "":
            data[name] = values[0]
    return _validate(model, data)