import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from folio_backend.models import RecordNotFoundError, create_schema
from folio_backend.section_content_repository import SectionContentRepository


@pytest.fixture
def repo(tmp_path):
    engine = create_engine(f"sqlite:///{tmp_path / 'contents.db'}")
    create_schema(engine)
    yield SectionContentRepository(sessionmaker(engine, expire_on_commit=False))
    engine.dispose()


def test_create_and_get_round_trip(repo):
    created = repo.create(4, "text", "Hello", 2, None, "owner-1")
    loaded = repo.get_by_id(created.id)
    assert loaded.section_id == 4
    assert loaded.type == "text"
    assert loaded.content == "Hello"
    assert loaded.order == 2
    assert loaded.image_id is None
    assert loaded.owner_id == "owner-1"


def test_get_missing_raises(repo):
    with pytest.raises(RecordNotFoundError, match="section content not found"):
        repo.get_by_id(999)


def test_get_by_section_id_orders_by_order_then_id(repo):
    late = repo.create(1, "text", "late", 5, None, "o")
    first = repo.create(1, "text", "first", 0, None, "o")
    second = repo.create(1, "image", None, 0, 8, "o")
    repo.create(2, "text", "elsewhere", 0, None, "o")
    assert [c.id for c in repo.get_by_section_id(1)] == [first.id, second.id, late.id]


def test_update_replaces_fields(repo):
    created = repo.create(1, "text", "Hello", 0, None, "o")
    repo.update(created.id, "image", None, 3, 12)
    loaded = repo.get_by_id(created.id)
    assert (loaded.type, loaded.content, loaded.order, loaded.image_id) == ("image", None, 3, 12)
    assert loaded.section_id == 1


def test_update_order_changes_only_order(repo):
    created = repo.create(1, "text", "Hello", 0, None, "o")
    repo.update_order(created.id, 7)
    loaded = repo.get_by_id(created.id)
    assert loaded.order == 7
    assert loaded.content == "Hello"


def test_update_unknown_id_is_silent(repo):
    kept = repo.create(1, "text", "Hello", 0, None, "o")
    repo.update(999, "image", None, 1, None)
    repo.update_order(999, 4)
    assert repo.get_by_id(kept.id).type == "text"


def test_delete_hides_content(repo):
    gone = repo.create(1, "text", "bye", 0, None, "o")
    kept = repo.create(1, "text", "stay", 1, None, "o")
    repo.delete(gone.id)
    with pytest.raises(RecordNotFoundError):
        repo.get_by_id(gone.id)
    assert [c.id for c in repo.get_by_section_id(1)] == [kept.id]
    repo.delete(999)
    assert repo.get_by_id(kept.id).content == "stay"