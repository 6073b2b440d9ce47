"""Persistence of categories."""

from __future__ import annotations

from collections.abc import Callable, Iterable, Iterator, Mapping, Sequence
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .models import CategoryRecord, RecordNotFoundError

_ALIVE = CategoryRecord.deleted_at.is_(None)


@contextmanager
def _failure(action: str) -> Iterator[None]:
    try:
        yield
    except SQLAlchemyError as exc:
        raise RuntimeError(f"failed to {action}: {exc}") from exc


def _position_pairs(items: Iterable[Any]) -> list[tuple[int, int]]:
    """Normalise bulk items given as mappings, (id, position) pairs or objects."""
    pairs: list[tuple[int, int]] = []
    for item in items:
        if isinstance(item, Mapping):
            pairs.append((int(item["id"]), int(item["position"])))
        elif isinstance(item, tuple):
            item_id, position = item
            pairs.append((int(item_id), int(position)))
        else:
            pairs.append((int(item.id), int(item.position)))
    return pairs


class CategoryRepository:
    """Stores the categories of portfolios; deleted rows are kept but hidden."""

    def __init__(self, session_factory: Callable[[], Session]) -> None:
        self._session_factory = session_factory

    def create(self, title: str, description: str | None, position: int,
               owner_id: str, portfolio_id: int) -> CategoryRecord:
        with _failure("create category"), self._session_factory() as session, session.begin():
            record = CategoryRecord(
                title=title,
                description=description,
                position=position,
                owner_id=owner_id,
                portfolio_id=portfolio_id,
            )
            session.add(record)
            session.flush()
            session.refresh(record)
            session.expunge(record)
        return record

    def get_by_id(self, category_id: int) -> CategoryRecord:
        with _failure("get category"), self._session_factory() as session:
            record = session.scalars(
                select(CategoryRecord)
                .where(CategoryRecord.id == category_id, _ALIVE)
                .order_by(CategoryRecord.id)
            ).first()
            if record is None:
                raise RecordNotFoundError(f"category with ID {category_id} not found")
            session.expunge(record)
        return record

    def get_by_ids(self, ids: Sequence[int]) -> list[CategoryRecord]:
        with _failure("get categories by IDs"), self._session_factory() as session:
            records = list(session.scalars(
                select(CategoryRecord)
                .where(CategoryRecord.id.in_(list(ids)), _ALIVE)
                .order_by(CategoryRecord.id)
            ).all())
            session.expunge_all()
        return records

    def get_by_portfolio_id(self, portfolio_id: int) -> list[CategoryRecord]:
        """All categories of a portfolio, by position and then by creation time."""
        with _failure("get categories by portfolio ID"), self._session_factory() as session:
            records = list(session.scalars(
                select(CategoryRecord)
                .where(CategoryRecord.portfolio_id == portfolio_id, _ALIVE)
                .order_by(CategoryRecord.position.asc(), CategoryRecord.created_at.asc(),
                          CategoryRecord.id.asc())
            ).all())
            session.expunge_all()
        return records

    def get_by_owner_id(self, owner_id: str, page: int, limit: int) -> tuple[list[CategoryRecord], int]:
        """One page of the owner's categories, newest first, and the owner's total count."""
        with _failure("count categories"), self._session_factory() as session:
            total = session.scalar(
                select(func.count()).select_from(CategoryRecord)
                .where(CategoryRecord.owner_id == owner_id, _ALIVE)
            ) or 0

        offset = (page - 1) * limit
        query = (
            select(CategoryRecord)
            .where(CategoryRecord.owner_id == owner_id, _ALIVE)
            .order_by(CategoryRecord.created_at.desc(), CategoryRecord.id.desc())
        )
        if limit >= 0:
            query = query.limit(limit)
        if offset > 0:
            query = query.offset(offset)

        with _failure("list categories"), self._session_factory() as session:
            records = list(session.scalars(query).all())
            session.expunge_all()
        return records, total

    def update(self, category_id: int, title: str = "", description: str | None = None,
               position: int = 0) -> None:
        """Change the title if non-empty, the description if given, and always the position."""
        updates: dict[str, Any] = {}
        if title:
            updates["title"] = title
        if description is not None:
            updates["description"] = description
        updates["position"] = position

        with _failure("update category"), self._session_factory() as session, session.begin():
            result = session.execute(
                update(CategoryRecord)
                .where(CategoryRecord.id == category_id, _ALIVE)
                .values(**updates)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                raise RecordNotFoundError(f"category with ID {category_id} not found")

    def update_position(self, category_id: int, position: int) -> None:
        with _failure("update category position"), self._session_factory() as session, session.begin():
            result = session.execute(
                update(CategoryRecord)
                .where(CategoryRecord.id == category_id, _ALIVE)
                .values(position=position)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                raise RecordNotFoundError(f"category with ID {category_id} not found")

    def bulk_update_positions(self, items: Iterable[Any]) -> None:
        """Set many positions in one transaction; unknown IDs are skipped silently."""
        pairs = _position_pairs(items)
        with self._session_factory() as session, session.begin():
            for item_id, position in pairs:
                try:
                    session.execute(
                        update(CategoryRecord)
                        .where(CategoryRecord.id == item_id, _ALIVE)
                        .values(position=position)
                        .execution_options(synchronize_session=False)
                    )
                except SQLAlchemyError as exc:
                    raise RuntimeError(
                        f"failed to update position for category {item_id}: {exc}"
                    ) from exc

    def delete(self, category_id: int) -> None:
        """Soft-delete a category."""
        with _failure("delete category"), self._session_factory() as session, session.begin():
            result = session.execute(
                update(CategoryRecord)
                .where(CategoryRecord.id == category_id, _ALIVE)
                .values(deleted_at=datetime.now(timezone.utc), updated_at=CategoryRecord.updated_at)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                raise RecordNotFoundError(f"category with ID {category_id} not found")