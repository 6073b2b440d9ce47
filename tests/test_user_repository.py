import uuid

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from folio_backend.models import RecordNotFoundError, create_schema
from folio_backend.user_repository import UserRepository


@pytest.fixture
def repo(tmp_path):
    engine = create_engine(f"sqlite:///{tmp_path / 'users.db'}")
    create_schema(engine)
    yield UserRepository(sessionmaker(engine))
    engine.dispose()


def test_create_assigns_uuid_and_round_trips(repo):
    created = repo.create("alice@example.com", "Alice", "ext-1")
    assert str(uuid.UUID(created.id)) == created.id
    loaded = repo.get_by_id(created.id)
    assert (loaded.email, loaded.name, loaded.external_id) == ("alice@example.com", "Alice", "ext-1")


def test_get_by_external_id(repo):
    created = repo.create("bob@example.com", "Bob", "ext-2")
    assert repo.get_by_external_id("ext-2").id == created.id


def test_get_missing_raises(repo):
    with pytest.raises(RecordNotFoundError, match="user with ID nobody not found"):
        repo.get_by_id("nobody")
    with pytest.raises(RecordNotFoundError, match="user with external ID ext-x not found"):
        repo.get_by_external_id("ext-x")


def test_duplicate_email_fails(repo):
    repo.create("same@example.com", "One", "ext-1")
    with pytest.raises(RuntimeError, match="^failed to create user: "):
        repo.create("same@example.com", "Two", "ext-2")


def test_update_changes_only_non_empty_fields(repo):
    created = repo.create("carol@example.com", "Carol", "ext-3")
    repo.update(created.id, name="Caroline")
    loaded = repo.get_by_id(created.id)
    assert loaded.name == "Caroline"
    assert loaded.email == "carol@example.com"


def test_update_with_nothing_is_noop(repo):
    assert repo.update("missing") is None


def test_update_missing_raises(repo):
    with pytest.raises(RecordNotFoundError, match="user with ID missing not found"):
        repo.update("missing", name="X")


def test_delete_hides_user(repo):
    created = repo.create("dave@example.com", "Dave", "ext-4")
    repo.delete(created.id)
    with pytest.raises(RecordNotFoundError):
        repo.get_by_id(created.id)
    with pytest.raises(RecordNotFoundError):
        repo.get_by_external_id("ext-4")
    with pytest.raises(RecordNotFoundError):
        repo.delete(created.id)