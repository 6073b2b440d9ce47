# folio-backend

Backend building blocks for a portfolio manager that holds portfolios,
categories, sections, section contents, projects and users.

## What it provides

- `folio_backend.requests`: pydantic request models such as
  `CreatePortfolioRequest`, `CreateCategoryRequest`, `CreateProjectRequest`
  and `ListPortfoliosRequest`. `bind_json(model, payload)` takes JSON text or
  an already parsed mapping; `bind_query(model, params)` takes a mapping or
  key/value pairs. Invalid input raises `RequestError`, whose `errors`
  attribute holds the individual validation problems.
- `folio_backend.responses`: dataclass response models such as
  `DataResponse`, `PaginatedDataResponse`, `ErrorResponse`,
  `PortfolioResponse` and `HealthResponse`. `to_json(value)` encodes them as
  compact JSON with RFC 3339 timestamps, leaving out empty optional fields
  (such as `owner_id` on public responses) and escaping `<`, `>` and `&`.
- `folio_backend.models`: SQLAlchemy records (`PortfolioRecord`,
  `CategoryRecord`, `SectionRecord`, `SectionContentRecord`,
  `ProjectRecord`, `UserRecord`) and `create_schema(engine)`. Project images
  and skills are stored as text arrays on PostgreSQL and as JSON elsewhere.
- Repositories, each built from a session factory:
  `portfolio_repository.PortfolioRepository`,
  `category_repository.CategoryRepository`,
  `section_repository.SectionRepository`,
  `section_content_repository.SectionContentRepository`,
  `project_repository.ProjectRepository` and
  `user_repository.UserRepository`. Deletes are soft: rows get a
  `deleted_at` time and are hidden from every query afterwards. Looking up,
  updating or deleting a missing portfolio, category, section or user raises
  `models.RecordNotFoundError`; project and section-content updates and
  deletes on an unknown ID change nothing. Database failures are raised as
  `RuntimeError`.
- `folio_backend.authentik.AuthentikClient`: `login`, `logout` and
  `validate_token` against an Authentik server's OAuth endpoints. Failures
  raise `AuthentikError`.
- `folio_backend.audit.AuditLogger`: JSON audit lines for create, update,
  delete and access events, each kind in its own file (`create.log`,
  `update.log`, `delete.log`, `access.log`) and also on a stream (standard
  output by default). Denied access is logged at warning level. It is a
  context manager; `close()` closes the files.
- `folio_backend.metrics.MetricsCollector`: in-process counters for entity
  changes, authentication attempts, issued tokens and HTTP requests, plus an
  HTTP duration histogram; `render()` returns them in the Prometheus text
  format.
- `folio_backend.middleware`: WSGI `AuthMiddleware` and `MetricsMiddleware`.

## Installation

```
pip install folio-backend
```

## Examples

Store and page through portfolios:

```python
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from folio_backend.models import create_schema
from folio_backend.portfolio_repository import PortfolioRepository

engine = create_engine("sqlite://")
create_schema(engine)
repo = PortfolioRepository(sessionmaker(engine))

portfolio = repo.create("My work", "Selected projects", "user-1")
items, total = repo.get_by_owner_id("user-1", 1, 10)
```

Validate a request body and build a response:

```python
from folio_backend.requests import CreatePortfolioRequest, RequestError, bind_json
from folio_backend.responses import ErrorResponse, PortfolioResponse, to_json

try:
    request = bind_json(CreatePortfolioRequest, '{"title": "My work"}')
    body = to_json(PortfolioResponse(id=1, title=request.title))
except RequestError as exc:
    body = to_json(ErrorResponse(error=str(exc)))
```

Protect a WSGI application with token validation and collect metrics:

```python
from folio_backend.authentik import AuthentikClient
from folio_backend.metrics import MetricsCollector
from folio_backend.middleware import USER_ID_KEY, AuthMiddleware, MetricsMiddleware


def my_wsgi_app(environ, start_response):
    start_response("200 OK", [("Content-Type", "text/plain")])
    return [environ[USER_ID_KEY].encode()]


client = AuthentikClient("https://auth.example.com", api_key="placeholder")
metrics = MetricsCollector()
app = MetricsMiddleware(AuthMiddleware(my_wsgi_app, client), metrics)
```

`AuthMiddleware` expects an `Authorization: Bearer <token>` header, answers
401 with a JSON `error` otherwise, and stores the authenticated user ID in the
environ under `middleware.USER_ID_KEY`. `MetricsMiddleware` labels requests
with the route template found under `middleware.ROUTE_KEY`, or with the raw
path when the application sets none, and records them when the response is
closed.

## What it does not do

This package has no HTTP server, routing or request handlers, and no
business rules such as ownership checks: it supplies the pieces an
application wires together. Metrics are kept in process and are not exposed
on an endpoint by themselves; serve `MetricsCollector.render()` yourself.
Schema creation uses `create_schema`; there are no migrations.

## Tests

```
pip install -e ".[test]"
pytest
```