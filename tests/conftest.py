"""Shared fixtures: an in-memory database and the repositories on top of it."""

from collections.abc import AsyncIterator

import pytest

from multitune.config import AuthSettings, DatabaseSettings, Settings
from multitune.domain.entities import User
from multitune.infrastructure.persistence import (
    CredentialRepository,
    Database,
    PlaylistMirrorRepository,
    UserRepository,
)


@pytest.fixture
def settings() -> Settings:
    """Settings pointing at a private in-memory SQLite database."""
    return Settings(
        database=DatabaseSettings(url="sqlite+aiosqlite:///:memory:"),
        auth=AuthSettings(jwt_secret="test-secret"),
        frontend_url="http://frontend.test",
    )


# Hey future me - every test gets its OWN :memory: database (StaticPool keeps the single
# connection alive for the whole test), so there's no cleanup between tests.
@pytest.fixture
async def db(settings: Settings) -> AsyncIterator[Database]:
    database = Database(settings)
    await database.create_tables()
    yield database
    await database.close()


@pytest.fixture
def user_repository(db: Database) -> UserRepository:
    return UserRepository(db.session_scope)


@pytest.fixture
def credential_repository(db: Database) -> CredentialRepository:
    return CredentialRepository(db.session_scope)


@pytest.fixture
def mirror(db: Database) -> PlaylistMirrorRepository:
    return PlaylistMirrorRepository(db.session_scope)


@pytest.fixture
async def user(user_repository: UserRepository) -> User:
    return await user_repository.create("alice", "alice@example.com")


@pytest.fixture
async def other_user(user_repository: UserRepository) -> User:
    return await user_repository.create("bob", "bob@example.com")
