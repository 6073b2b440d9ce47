"""Persistence of portfolios."""

from __future__ import annotations

from collections.abc import Callable, Iterator
from contextlib import contextmanager
from datetime import datetime, timezone

from sqlalchemy import func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .models import PortfolioRecord, RecordNotFoundError

_ALIVE = PortfolioRecord.deleted_at.is_(None)


@contextmanager
def _failure(action: str) -> Iterator[None]:
    try:
        yield
    except SQLAlchemyError as exc:
        raise RuntimeError(f"failed to {action}: {exc}") from exc


class PortfolioRepository:
    """Stores portfolios; deleted rows are kept but hidden."""

    def __init__(self, session_factory: Callable[[], Session]) -> None:
        self._session_factory = session_factory

    def create(self, title: str, description: str, owner_id: str) -> PortfolioRecord:
        with _failure("create portfolio"), self._session_factory() as session, session.begin():
            record = PortfolioRecord(title=title, description=description, owner_id=owner_id)
            session.add(record)
            session.flush()
            session.refresh(record)
            session.expunge(record)
        return record

    def get_by_id(self, portfolio_id: int) -> PortfolioRecord:
        with _failure("get portfolio"), self._session_factory() as session:
            record = session.scalars(
                select(PortfolioRecord)
                .where(PortfolioRecord.id == portfolio_id, _ALIVE)
                .order_by(PortfolioRecord.id)
            ).first()
            if record is None:
                raise RecordNotFoundError(f"portfolio with ID {portfolio_id} not found")
            session.expunge(record)
        return record

    def get_by_owner_id(self, owner_id: str, page: int, limit: int) -> tuple[list[PortfolioRecord], int]:
        """One page of the owner's portfolios, newest first, and the owner's total count."""
        with _failure("count portfolios"), self._session_factory() as session:
            total = session.scalar(
                select(func.count()).select_from(PortfolioRecord)
                .where(PortfolioRecord.owner_id == owner_id, _ALIVE)
            ) or 0

        offset = (page - 1) * limit
        query = (
            select(PortfolioRecord)
            .where(PortfolioRecord.owner_id == owner_id, _ALIVE)
            .order_by(PortfolioRecord.created_at.desc(), PortfolioRecord.id.desc())
        )
        if limit >= 0:
            query = query.limit(limit)
        if offset > 0:
            query = query.offset(offset)

        with _failure("list portfolios"), self._session_factory() as session:
            records = list(session.scalars(query).all())
            session.expunge_all()
        return records, total

    def update(self, portfolio_id: int, title: str = "", description: str = "") -> None:
        """Change the non-empty fields; does nothing when both are empty."""
        updates: dict[str, str] = {}
        if title:
            updates["title"] = title
        if description:
            updates["description"] = description
        if not updates:
            return

        with _failure("update portfolio"), self._session_factory() as session, session.begin():
            result = session.execute(
                update(PortfolioRecord)
                .where(PortfolioRecord.id == portfolio_id, _ALIVE)
                .values(**updates)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                raise RecordNotFoundError(f"portfolio with ID {portfolio_id} not found")

    def delete(self, portfolio_id: int) -> None:
        """Soft-delete a portfolio."""
        with _failure("delete portfolio"), self._session_factory() as session, session.begin():
            result = session.execute(
                update(PortfolioRecord)
                .where(PortfolioRecord.id == portfolio_id, _ALIVE)
                .values(deleted_at=datetime.now(timezone.utc), updated_at=PortfolioRecord.updated_at)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                raise RecordNotFoundError(f"portfolio with ID {portfolio_id} not found")

    def check_title_duplicate(self, title: str, owner_id: str, exclude_id: int = 0) -> bool:
        """Whether the owner already has another portfolio with this title."""
        query = (
            select(func.count()).select_from(PortfolioRecord)
            .where(PortfolioRecord.title == title, PortfolioRecord.owner_id == owner_id, _ALIVE)
        )
        if exclude_id > 0:
            query = query.where(PortfolioRecord.id != exclude_id)
        with _failure("check duplicate title"), self._session_factory() as session:
            count = session.scalar(query) or 0
        return count > 0