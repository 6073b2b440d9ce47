import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from folio_backend.category_repository import CategoryRepository
from folio_backend.models import RecordNotFoundError, create_schema
from folio_backend.portfolio_repository import PortfolioRepository
from folio_backend.requests import BulkUpdatePositionItemRequest


@pytest.fixture
def factory():
    engine = create_engine(
        "sqlite://", poolclass=StaticPool, connect_args={"check_same_thread": False}
    )
    create_schema(engine)
    yield sessionmaker(engine)
    engine.dispose()


@pytest.fixture
def portfolio_id(factory):
    return PortfolioRepository(factory).create("Main", "desc", "owner-1").id


@pytest.fixture
def repo(factory):
    return CategoryRepository(factory)


def test_create_and_get_round_trip(repo, portfolio_id):
    created = repo.create("Web", "Web work", 3, "owner-1", portfolio_id)
    fetched = repo.get_by_id(created.id)
    assert fetched.id == created.id
    assert fetched.title == "Web"
    assert fetched.description == "Web work"
    assert fetched.position == 3
    assert fetched.owner_id == "owner-1"
    assert fetched.portfolio_id == portfolio_id


def test_create_without_description(repo, portfolio_id):
    created = repo.create("Plain", None, 0, "owner-1", portfolio_id)
    assert repo.get_by_id(created.id).description is None


def test_get_missing_raises(repo):
    with pytest.raises(RecordNotFoundError, match="category with ID 999 not found"):
        repo.get_by_id(999)


def test_get_by_ids_skips_unknown_and_deleted(repo, portfolio_id):
    a = repo.create("A", None, 0, "owner-1", portfolio_id)
    b = repo.create("B", None, 0, "owner-1", portfolio_id)
    c = repo.create("C", None, 0, "owner-1", portfolio_id)
    repo.delete(b.id)
    found = repo.get_by_ids([a.id, b.id, c.id, 12345])
    assert sorted(r.id for r in found) == sorted([a.id, c.id])
    assert repo.get_by_ids([]) == []


def test_get_by_portfolio_id_orders_by_position(repo, factory, portfolio_id):
    other = PortfolioRepository(factory).create("Other", "", "owner-1").id
    repo.create("Third", None, 5, "owner-1", portfolio_id)
    repo.create("First", None, 1, "owner-1", portfolio_id)
    repo.create("Second", None, 2, "owner-1", portfolio_id)
    repo.create("Elsewhere", None, 0, "owner-1", other)
    titles = [r.title for r in repo.get_by_portfolio_id(portfolio_id)]
    assert titles == ["First", "Second", "Third"]


def test_get_by_owner_id_paginates(repo, portfolio_id):
    ids = [repo.create(f"C{n}", None, 0, "owner-1", portfolio_id).id for n in range(5)]
    repo.create("Foreign", None, 0, "owner-2", portfolio_id)

    first, total = repo.get_by_owner_id("owner-1", 1, 2)
    second, _ = repo.get_by_owner_id("owner-1", 2, 2)
    third, _ = repo.get_by_owner_id("owner-1", 3, 2)

    assert total == len(ids)
    assert [r.id for r in first + second + third] == sorted(ids, reverse=True)
    assert len(third) == 1


def test_update_keeps_empty_fields_and_always_sets_position(repo, portfolio_id):
    created = repo.create("Keep", "Old text", 7, "owner-1", portfolio_id)
    repo.update(created.id)
    after = repo.get_by_id(created.id)
    assert after.title == "Keep"
    assert after.description == "Old text"
    assert after.position == 0

    repo.update(created.id, title="New", description="New text", position=4)
    after = repo.get_by_id(created.id)
    assert (after.title, after.description, after.position) == ("New", "New text", 4)


def test_update_missing_raises(repo):
    with pytest.raises(RecordNotFoundError):
        repo.update(404, title="x")


def test_update_position(repo, portfolio_id):
    created = repo.create("Move", None, 1, "owner-1", portfolio_id)
    repo.update_position(created.id, 9)
    assert repo.get_by_id(created.id).position == 9
    with pytest.raises(RecordNotFoundError):
        repo.update_position(created.id + 100, 1)


def test_bulk_update_positions_accepts_several_item_shapes(repo, portfolio_id):
    a = repo.create("A", None, 0, "owner-1", portfolio_id)
    b = repo.create("B", None, 0, "owner-1", portfolio_id)
    c = repo.create("C", None, 0, "owner-1", portfolio_id)
    repo.bulk_update_positions([
        {"id": a.id, "position": 3},
        (b.id, 1),
        BulkUpdatePositionItemRequest(id=c.id, position=2),
        {"id": 9999, "position": 1},
    ])
    assert [r.title for r in repo.get_by_portfolio_id(portfolio_id)] == ["B", "C", "A"]


def test_delete_hides_record(repo, portfolio_id):
    created = repo.create("Gone", None, 0, "owner-1", portfolio_id)
    repo.delete(created.id)
    with pytest.raises(RecordNotFoundError):
        repo.get_by_id(created.id)
    with pytest.raises(RecordNotFoundError):
        repo.delete(created.id)
    assert repo.get_by_owner_id("owner-1", 1, 10) == ([], 0)