from __future__ import annotations

from datetime import UTC, datetime

import pytest
from sqlalchemy import text

from gatehouse.infra.sql.user_store import SQLAlchemyUserStore
from gatehouse.models.user import User
from gatehouse.repositories import UserRepository
from gatehouse.security.passwords import verify_password
from gatehouse.services._shared.errors import ConflictError, NotFoundError
from gatehouse.services._shared.ports import UserRecord
from gatehouse.uow import SQLAlchemyReadOnlyUnitOfWork
from tests.factories.user import UserFactory


@pytest.fixture()
def store(app, session) -> SQLAlchemyUserStore:
    with app.app_context():
        yield SQLAlchemyUserStore()


def test_create_then_get_round_trips_profile(store):
    joined = datetime(2009, 7, 1, 8, 30, tzinfo=UTC)
    store.create_user(
        UserRecord(
            name="carol",
            password_hash="hash",
            email="carol@example.com",
            user_class="mod",
            admin=True,
            joined_at=joined,
        )
    )

    user = store.get_user("carol")

    assert isinstance(user.id, int)
    assert user.email == "carol@example.com"
    assert user.user_class == "mod"
    assert user.admin is True
    assert user.joined_at == joined
    assert user.created_at is not None
    assert user.created_at.tzinfo is not None


def test_joined_at_defaults_to_creation_time(store):
    store.create_user(UserRecord(name="dave", password_hash="hash"))

    user = store.get_user("dave")

    assert user.joined_at == user.created_at
    assert user.user_class == "user"
    assert user.admin is False
    assert user.email == ""


def test_duplicate_name_is_conflict(store):
    store.create_user(UserRecord(name="erin", password_hash="a"))

    with pytest.raises(ConflictError):
        store.create_user(UserRecord(name="erin", password_hash="b"))

    assert store.get_user("erin").password_hash == "a"


def test_missing_user_is_not_found(store):
    with pytest.raises(NotFoundError):
        store.get_user("ghost")


def test_names_are_case_sensitive(store):
    store.create_user(UserRecord(name="Frank", password_hash="hash"))

    with pytest.raises(NotFoundError):
        store.get_user("frank")


def test_reads_rows_created_by_factory(store):
    row = UserFactory(name="grace", password="s3cret!")

    user = store.get_user("grace")

    assert user.id == row.id
    assert verify_password("s3cret!", user.password_hash)


def test_factory_rows_are_clean_after_creation(session):
    row = UserFactory(name="judy", password="pw")

    assert row not in session.dirty
    assert verify_password("pw", row.password_hash)


def test_user_class_lives_in_class_column(store, session):
    UserFactory(name="heidi", user_class="vip")

    value = session.execute(text('SELECT "class" FROM users WHERE name = :n'), {"n": "heidi"})

    assert value.scalar_one() == "vip"


def test_repository_exists_by_name(session):
    UserFactory(name="ivan")
    repo = UserRepository(session=session)

    assert repo.exists_by_name("ivan") is True
    assert repo.exists_by_name("judy") is False
    assert repo.count() == 1


def test_read_only_unit_of_work_blocks_writes(app, session):
    with app.app_context():
        with pytest.raises(RuntimeError, match="flush blocked"):
            with SQLAlchemyReadOnlyUnitOfWork() as uow:
                uow.session.add(User(name="mallory", password_hash="x"))
                uow.session.flush()

        with pytest.raises(RuntimeError):
            SQLAlchemyReadOnlyUnitOfWork().commit()
