import os

# Settings are read at import time, so the environment goes first
os.environ["ENVIRONMENT"] = "development"
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SECRET_KEY"] = "test-secret-key-that-is-long-enough-1234567890"
os.environ["FRONTEND_DIR"] = "tests/__no_frontend__"
os.environ["LOG_LEVEL"] = "WARNING"

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel

from songrank.core.context import RequestContext
from songrank.core.security import hash_password, jwt_handler
from songrank.db.session import create_db_and_tables, get_db
from songrank.main import app
from songrank.models import Song, User, UserRole
from songrank.services.youtube_service import get_video_resolver

from fakes import FakeResolver

PASSWORD = "Secret#123"


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    create_db_and_tables(engine)
    yield engine
    SQLModel.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def session(engine):
    with Session(engine) as session:
        yield session


@pytest.fixture
def resolver():
    return FakeResolver()


@pytest.fixture
def client(engine, resolver):
    def override_get_db():
        db = Session(engine)
        try:
            yield db
            db.commit()
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_video_resolver] = lambda: resolver
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def make_user(engine):
    def _make_user(role: str = UserRole.USER.value, email: str = None, name: str = "Test User") -> User:
        with Session(engine) as session:
            user = User(
                name=name,
                email=email or f"{role}-{os.urandom(4).hex()}@songrank.io",
                password_hash=hash_password(PASSWORD),
                role=role,
            )
            session.add(user)
            session.commit()
            session.refresh(user)
            session.expunge(user)
            return user
    return _make_user


@pytest.fixture
def admin(make_user):
    return make_user(UserRole.ADMIN.value, name="Admin")


@pytest.fixture
def regular_user(make_user):
    return make_user(UserRole.USER.value, name="Listener")


def _headers(user: User) -> dict:
    token = jwt_handler.create_access_token(user.id, user.email, [user.role])
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def admin_headers(admin):
    return _headers(admin)


@pytest.fixture
def user_headers(regular_user):
    return _headers(regular_user)


@pytest.fixture
def admin_ctx(admin):
    return RequestContext.for_user(admin)


@pytest.fixture
def user_ctx(regular_user):
    return RequestContext.for_user(regular_user)


@pytest.fixture
def seed_song(engine):
    """Inserts a song straight into the database and returns a detached copy."""
    def _seed(song: Song) -> Song:
        with Session(engine) as session:
            session.add(song)
            session.commit()
            session.refresh(song)
            session.expunge(song)
            return song
    return _seed
