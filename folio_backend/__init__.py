"""Portfolio manager backend: request/response models, SQLAlchemy repositories, Authentik client, audit log, metrics and WSGI middleware."""

__version__ = "0.1.0"