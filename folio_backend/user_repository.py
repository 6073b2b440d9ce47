"""Persistence of users."""

from __future__ import annotations

from collections.abc import Callable, Iterator
from contextlib import contextmanager
from datetime import datetime, timezone

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .models import RecordNotFoundError, UserRecord

_ALIVE = UserRecord.deleted_at.is_(None)


@contextmanager
def _failure(action: str) -> Iterator[None]:
    try:
        yield
    except SQLAlchemyError as exc:
        raise RuntimeError(f"failed to {action}: {exc}") from exc


class UserRepository:
    """Stores users linked to their identity-provider account."""

    def __init__(self, session_factory: Callable[[], Session]) -> None:
        self._session_factory = session_factory

    def create(self, email: str, name: str, external_id: str) -> UserRecord:
        with _failure("create user"), self._session_factory() as session, session.begin():
            record = UserRecord(email=email, name=name, external_id=external_id)
            session.add(record)
            session.flush()
            session.refresh(record)
            session.expunge(record)
        return record

    def get_by_id(self, user_id: str) -> UserRecord:
        with _failure("get user"), self._session_factory() as session:
            record = session.scalars(
                select(UserRecord).where(UserRecord.id == user_id, _ALIVE).order_by(UserRecord.id)
            ).first()
            if record is None:
                raise RecordNotFoundError(f"user with ID {user_id} not found")
            session.expunge(record)
        return record

    def get_by_external_id(self, external_id: str) -> UserRecord:
        with _failure("get user by external ID"), self._session_factory() as session:
            record = session.scalars(
                select(UserRecord)
                .where(UserRecord.external_id == external_id, _ALIVE)
                .order_by(UserRecord.id)
            ).first()
            if record is None:
                raise RecordNotFoundError(f"user with external ID {external_id} not found")
            session.expunge(record)
        return record

    def update(self, user_id: str, email: str = "", name: str = "") -> None:
        """Change the non-empty fields; does nothing when both are empty."""
        updates: dict[str, str] = {}
        if email:
            updates["email"] = email
        if name:
            updates["name"] = name
        if not updates:
            return

        with _failure("update user"), self._session_factory() as session, session.begin():
            result = session.execute(
                update(UserRecord)
                .where(UserRecord.id == user_id, _ALIVE)
                .values(**updates)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                raise RecordNotFoundError(f"user with ID {user_id} not found")

    def delete(self, user_id: str) -> None:
        """Soft-delete a user."""
        with _failure("delete user"), self._session_factory() as session, session.begin():
            result = session.execute(
                update(UserRecord)
                .where(UserRecord.id == user_id, _ALIVE)
                .values(deleted_at=datetime.now(timezone.utc), updated_at=UserRecord.updated_at)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                raise RecordNotFoundError(f"user with ID {user_id} not found")