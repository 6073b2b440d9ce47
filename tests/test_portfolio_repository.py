import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from folio_backend.models import RecordNotFoundError, create_schema
from folio_backend.portfolio_repository import PortfolioRepository


@pytest.fixture
def repo(tmp_path):
    engine = create_engine(f"sqlite:///{tmp_path / 'portfolios.db'}")
    create_schema(engine)
    yield PortfolioRepository(sessionmaker(engine))
    engine.dispose()


def test_create_and_get_round_trip(repo):
    created = repo.create("My Work", "Things I built", "owner-1")
    loaded = repo.get_by_id(created.id)
    assert (loaded.id, loaded.title, loaded.description, loaded.owner_id) == (
        created.id, "My Work", "Things I built", "owner-1"
    )
    assert loaded.created_at is not None


def test_get_missing_raises(repo):
    with pytest.raises(RecordNotFoundError, match="portfolio with ID 999 not found"):
        repo.get_by_id(999)


def test_update_changes_only_non_empty_fields(repo):
    created = repo.create("Old", "Keep me", "owner-1")
    repo.update(created.id, title="New")
    loaded = repo.get_by_id(created.id)
    assert loaded.title == "New"
    assert loaded.description == "Keep me"


def test_update_with_nothing_is_noop_even_for_missing(repo):
    assert repo.update(12345) is None


def test_update_missing_raises(repo):
    with pytest.raises(RecordNotFoundError, match="portfolio with ID 42 not found"):
        repo.update(42, title="X")


def test_delete_hides_record(repo):
    created = repo.create("Gone", "", "owner-1")
    repo.delete(created.id)
    with pytest.raises(RecordNotFoundError):
        repo.get_by_id(created.id)
    with pytest.raises(RecordNotFoundError):
        repo.delete(created.id)
    with pytest.raises(RecordNotFoundError):
        repo.update(created.id, title="Back")


def test_get_by_owner_id_paginates_newest_first(repo):
    titles = ["first", "second", "third"]
    for title in titles:
        repo.create(title, "", "owner-1")
    repo.create("other", "", "owner-2")

    page_one, total = repo.get_by_owner_id("owner-1", 1, 2)
    page_two, total_again = repo.get_by_owner_id("owner-1", 2, 2)

    assert total == len(titles) == total_again
    assert [p.title for p in page_one] == ["third", "second"]
    assert [p.title for p in page_two] == ["first"]


def test_get_by_owner_id_excludes_deleted(repo):
    kept = repo.create("kept", "", "owner-1")
    dropped = repo.create("dropped", "", "owner-1")
    repo.delete(dropped.id)
    records, total = repo.get_by_owner_id("owner-1", 1, 10)
    assert total == 1
    assert [r.id for r in records] == [kept.id]


def test_check_title_duplicate(repo):
    created = repo.create("Same", "", "owner-1")
    assert repo.check_title_duplicate("Same", "owner-1") is True
    assert repo.check_title_duplicate("Same", "owner-2") is False
    assert repo.check_title_duplicate("Same", "owner-1", created.id) is False
    assert repo.check_title_duplicate("Different", "owner-1") is False


def test_check_title_duplicate_ignores_deleted(repo):
    created = repo.create("Same", "", "owner-1")
    repo.delete(created.id)
    assert repo.check_title_duplicate("Same", "owner-1") is False