"""Persistence of the content blocks inside sections."""

from __future__ import annotations

from collections.abc import Callable, Iterator
from contextlib import contextmanager
from datetime import datetime, timezone

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .models import RecordNotFoundError, SectionContentRecord

_ALIVE = SectionContentRecord.deleted_at.is_(None)


@contextmanager
def _failure(action: str) -> Iterator[None]:
    try:
        yield
    except SQLAlchemyError as exc:
        raise RuntimeError(f"failed to {action}: {exc}") from exc


class SectionContentRepository:
    """Stores section contents; deleted rows are kept but hidden."""

    def __init__(self, session_factory: Callable[[], Session]) -> None:
        self._session_factory = session_factory

    def create(self, section_id: int, content_type: str, content: str | None, order: int,
               image_id: int | None, owner_id: str) -> SectionContentRecord:
        with _failure("create section content"), self._session_factory() as session, session.begin():
            record = SectionContentRecord(
                section_id=section_id,
                type=content_type,
                content=content,
                order=order,
                image_id=image_id,
                owner_id=owner_id,
            )
            session.add(record)
            session.flush()
            session.refresh(record)
            session.expunge(record)
        return record

    def get_by_id(self, content_id: int) -> SectionContentRecord:
        with _failure("get section content"), self._session_factory() as session:
            record = session.scalars(
                select(SectionContentRecord)
                .where(SectionContentRecord.id == content_id, _ALIVE)
                .order_by(SectionContentRecord.id)
            ).first()
            if record is None:
                raise RecordNotFoundError("section content not found")
            session.expunge(record)
        return record

    def get_by_section_id(self, section_id: int) -> list[SectionContentRecord]:
        """All contents of a section, by order and then by ID."""
        with _failure("get section contents"), self._session_factory() as session:
            records = list(session.scalars(
                select(SectionContentRecord)
                .where(SectionContentRecord.section_id == section_id, _ALIVE)
                .order_by(SectionContentRecord.order.asc(), SectionContentRecord.id.asc())
            ).all())
            session.expunge_all()
        return records

    def update(self, content_id: int, content_type: str, content: str | None,
               order: int, image_id: int | None) -> None:
        """Replace every editable field; an unknown ID changes nothing."""
        with _failure("update section content"), self._session_factory() as session, session.begin():
            session.execute(
                update(SectionContentRecord)
                .where(SectionContentRecord.id == content_id, _ALIVE)
                .values(type=content_type, content=content, order=order, image_id=image_id)
                .execution_options(synchronize_session=False)
            )

    def update_order(self, content_id: int, order: int) -> None:
        with _failure("update section content order"), self._session_factory() as session, session.begin():
            session.execute(
                update(SectionContentRecord)
                .where(SectionContentRecord.id == content_id, _ALIVE)
                .values(order=order)
                .execution_options(synchronize_session=False)
            )

    def delete(self, content_id: int) -> None:
        """Soft-delete a content block; an unknown ID changes nothing."""
        with _failure("delete section content"), self._session_factory() as session, session.begin():
            session.execute(
                update(SectionContentRecord)
                .where(SectionContentRecord.id == content_id, _ALIVE)
                .values(deleted_at=datetime.now(timezone.utc),
                        updated_at=SectionContentRecord.updated_at)
                .execution_options(synchronize_session=False)
            )