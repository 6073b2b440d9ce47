"""Persistence of sections."""

from __future__ import annotations

from collections.abc import Callable, Iterable, Iterator, Mapping, Sequence
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .models import RecordNotFoundError, SectionRecord

_ALIVE = SectionRecord.deleted_at.is_(None)
_BY_POSITION = (SectionRecord.position.asc(), SectionRecord.created_at.asc(), SectionRecord.id.asc())


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


class SectionRepository:
    """Stores the sections of portfolios; deleted rows are kept but hidden."""

    def __init__(self, session_factory: Callable[[], Session]) -> None:
        self._session_factory = session_factory

    def create(self, title: str, description: str | None, section_type: str, position: int,
               owner_id: str, portfolio_id: int) -> SectionRecord:
        with _failure("create section"), self._session_factory() as session, session.begin():
            record = SectionRecord(
                title=title,
                description=description,
                type=section_type,
                position=position,
                owner_id=owner_id,
                portfolio_id=portfolio_id,
            )
            session.add(record)
            session.flush()
            session.refresh(record)
            session.expunge(record)
        return record

    def get_by_id(self, section_id: int) -> SectionRecord:
        with _failure("get section"), self._session_factory() as session:
            record = session.scalars(
                select(SectionRecord)
                .where(SectionRecord.id == section_id, _ALIVE)
                .order_by(SectionRecord.id)
            ).first()
            if record is None:
                raise RecordNotFoundError(f"section with ID {section_id} not found")
            session.expunge(record)
        return record

    def get_by_ids(self, ids: Sequence[int]) -> list[SectionRecord]:
        with _failure("get sections by IDs"), self._session_factory() as session:
            records = list(session.scalars(
                select(SectionRecord)
                .where(SectionRecord.id.in_(list(ids)), _ALIVE)
                .order_by(SectionRecord.id)
            ).all())
            session.expunge_all()
        return records

    def get_by_portfolio_id(self, portfolio_id: int) -> list[SectionRecord]:
        """All sections of a portfolio, by position and then by creation time."""
        with _failure("get sections by portfolio ID"), self._session_factory() as session:
            records = list(session.scalars(
                select(SectionRecord)
                .where(SectionRecord.portfolio_id == portfolio_id, _ALIVE)
                .order_by(*_BY_POSITION)
            ).all())
            session.expunge_all()
        return records

    def get_by_owner_id(self, owner_id: str, page: int, limit: int) -> tuple[list[SectionRecord], int]:
        """One page of the owner's sections, newest first, and the owner's total count."""
        with _failure("count sections"), self._session_factory() as session:
            total = session.scalar(
                select(func.count()).select_from(SectionRecord)
                .where(SectionRecord.owner_id == owner_id, _ALIVE)
            ) or 0

        offset = (page - 1) * limit
        query = (
            select(SectionRecord)
            .where(SectionRecord.owner_id == owner_id, _ALIVE)
            .order_by(SectionRecord.created_at.desc(), SectionRecord.id.desc())
        )
        if limit >= 0:
            query = query.limit(limit)
        if offset > 0:
            query = query.offset(offset)

        with _failure("list sections"), self._session_factory() as session:
            records = list(session.scalars(query).all())
            session.expunge_all()
        return records, total

    def get_by_type(self, section_type: str) -> list[SectionRecord]:
        """All sections of a type, by position and then by creation time."""
        with _failure("get sections by type"), self._session_factory() as session:
            records = list(session.scalars(
                select(SectionRecord)
                .where(SectionRecord.type == section_type, _ALIVE)
                .order_by(*_BY_POSITION)
            ).all())
            session.expunge_all()
        return records

    def update(self, section_id: int, title: str = "", description: str | None = None,
               section_type: str = "", position: int = 0) -> None:
        """Change non-empty title and type, a given description, and always the position."""
        updates: dict[str, Any] = {}
        if title:
            updates["title"] = title
        if description is not None:
            updates["description"] = description
        if section_type:
            updates["type"] = section_type
        updates["position"] = position

        with _failure("update section"), self._session_factory() as session, session.begin():
            result = session.execute(
                update(SectionRecord)
                .where(SectionRecord.id == section_id, _ALIVE)
                .values(**updates)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                raise RecordNotFoundError(f"section with ID {section_id} not found")

    def update_position(self, section_id: int, position: int) -> None:
        with _failure("update section position"), self._session_factory() as session, session.begin():
            result = session.execute(
                update(SectionRecord)
                .where(SectionRecord.id == section_id, _ALIVE)
                .values(position=position)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                raise RecordNotFoundError(f"section with ID {section_id} not found")

    def bulk_update_positions(self, items: Iterable[Any]) -> None:
        """Set many positions in one transaction; unknown IDs are skipped silently."""
        pairs = _position_pairs(items)
        with self._session_factory() as session, session.begin():
            for item_id, position in pairs:
                try:
                    session.execute(
                        update(SectionRecord)
                        .where(SectionRecord.id == item_id, _ALIVE)
                        .values(position=position)
                        .execution_options(synchronize_session=False)
                    )
                except SQLAlchemyError as exc:
                    raise RuntimeError(
                        f"failed to update position for section {item_id}: {exc}"
                    ) from exc

    def delete(self, section_id: int) -> None:
        """Soft-delete a section."""
        with _failure("delete section"), self._session_factory() as session, session.begin():
            result = session.execute(
                update(SectionRecord)
                .where(SectionRecord.id == section_id, _ALIVE)
                .values(deleted_at=datetime.now(timezone.utc), updated_at=SectionRecord.updated_at)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                raise RecordNotFoundError(f"section with ID {section_id} not found")

    def check_title_duplicate(self, title: str, portfolio_id: int, exclude_id: int = 0) -> bool:
        """Whether the portfolio already has another section with this title."""
        query = (
            select(func.count()).select_from(SectionRecord)
            .where(SectionRecord.title == title, SectionRecord.portfolio_id == portfolio_id, _ALIVE)
        )
        if exclude_id > 0:
            query = query.where(SectionRecord.id != exclude_id)
        with _failure("check duplicate title"), self._session_factory() as session:
            count = session.scalar(query) or 0
        return count > 0