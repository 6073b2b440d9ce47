"""Persistence of projects."""

from __future__ import annotations

from collections.abc import Callable, Iterable, Iterator, Sequence
from contextlib import contextmanager
from datetime import datetime, timezone

from sqlalchemy import func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .models import ProjectRecord, RecordNotFoundError

_ALIVE = ProjectRecord.deleted_at.is_(None)


@contextmanager
def _failure(action: str) -> Iterator[None]:
    try:
        yield
    except SQLAlchemyError as exc:
        raise RuntimeError(f"failed to {action}: {exc}") from exc


def _optional_list(values: Iterable[str] | None) -> list[str] | None:
    return None if values is None else list(values)


class ProjectRepository:
    """Stores the projects shown under categories; deleted rows are kept but hidden."""

    def __init__(self, session_factory: Callable[[], Session]) -> None:
        self._session_factory = session_factory

    def create(self, title: str, description: str, category_id: int, owner_id: str,
               main_image: str | None = None, images: Iterable[str] | None = None,
               skills: Iterable[str] | None = None, client: str | None = None,
               link: str | None = None) -> ProjectRecord:
        with _failure("create project"), self._session_factory() as session, session.begin():
            record = ProjectRecord(
                title=title,
                description=description,
                main_image=main_image,
                images=_optional_list(images),
                skills=_optional_list(skills),
                client=client,
                link=link,
                category_id=category_id,
                owner_id=owner_id,
            )
            session.add(record)
            session.flush()
            session.refresh(record)
            session.expunge(record)
        return record

    def get_by_id(self, project_id: int) -> ProjectRecord:
        with _failure("get project"), self._session_factory() as session:
            record = session.scalars(
                select(ProjectRecord)
                .where(ProjectRecord.id == project_id, _ALIVE)
                .order_by(ProjectRecord.id)
            ).first()
            if record is None:
                raise RecordNotFoundError("project not found")
            session.expunge(record)
        return record

    def get_by_ids(self, ids: Sequence[int]) -> list[ProjectRecord]:
        with _failure("get projects"), self._session_factory() as session:
            records = list(session.scalars(
                select(ProjectRecord)
                .where(ProjectRecord.id.in_(list(ids)), _ALIVE)
                .order_by(ProjectRecord.id)
            ).all())
            session.expunge_all()
        return records

    def get_by_category_id(self, category_id: int) -> list[ProjectRecord]:
        """All projects of a category, oldest first."""
        with _failure("get projects by category"), self._session_factory() as session:
            records = list(session.scalars(
                select(ProjectRecord)
                .where(ProjectRecord.category_id == category_id, _ALIVE)
                .order_by(ProjectRecord.id.asc())
            ).all())
            session.expunge_all()
        return records

    def get_by_owner_id(self, owner_id: str, page: int, limit: int) -> tuple[list[ProjectRecord], int]:
        """One page of the owner's projects, newest first, and the owner's total count."""
        with _failure("count projects"), self._session_factory() as session:
            total = session.scalar(
                select(func.count()).select_from(ProjectRecord)
                .where(ProjectRecord.owner_id == owner_id, _ALIVE)
            ) or 0

        offset = (page - 1) * limit
        query = (
            select(ProjectRecord)
            .where(ProjectRecord.owner_id == owner_id, _ALIVE)
            .order_by(ProjectRecord.id.desc())
        )
        if limit >= 0:
            query = query.limit(limit)
        if offset > 0:
            query = query.offset(offset)

        with _failure("get projects"), self._session_factory() as session:
            records = list(session.scalars(query).all())
            session.expunge_all()
        return records, total

    def search_by_skills(self, skills: Iterable[str]) -> list[ProjectRecord]:
        """Projects having any of the given skills, newest first."""
        wanted = set(skills)
        with _failure("search projects by skills"), self._session_factory() as session:
            records = session.scalars(
                select(ProjectRecord).where(_ALIVE).order_by(ProjectRecord.id.desc())
            ).all()
            matches = [record for record in records
                       if record.skills and wanted.intersection(record.skills)]
            session.expunge_all()
        return matches

    def search_by_client(self, client: str) -> list[ProjectRecord]:
        """Projects whose client name contains ``client``, ignoring case, newest first."""
        with _failure("search projects by client"), self._session_factory() as session:
            records = list(session.scalars(
                select(ProjectRecord)
                .where(ProjectRecord.client.ilike(f"%{client}%"), _ALIVE)
                .order_by(ProjectRecord.id.desc())
            ).all())
            session.expunge_all()
        return records

    def update(self, project_id: int, title: str, description: str,
               main_image: str | None = None, images: Iterable[str] | None = None,
               skills: Iterable[str] | None = None, client: str | None = None,
               link: str | None = None) -> None:
        """Replace every editable field; an unknown ID changes nothing."""
        with _failure("update project"), self._session_factory() as session, session.begin():
            session.execute(
                update(ProjectRecord)
                .where(ProjectRecord.id == project_id, _ALIVE)
                .values(
                    title=title,
                    description=description,
                    main_image=main_image,
                    images=_optional_list(images),
                    skills=_optional_list(skills),
                    client=client,
                    link=link,
                )
                .execution_options(synchronize_session=False)
            )

    def delete(self, project_id: int) -> None:
        """Soft-delete a project; an unknown ID changes nothing."""
        with _failure("delete project"), self._session_factory() as session, session.begin():
            session.execute(
                update(ProjectRecord)
                .where(ProjectRecord.id == project_id, _ALIVE)
                .values(deleted_at=datetime.now(timezone.utc), updated_at=ProjectRecord.updated_at)
                .execution_options(synchronize_session=False)
            )