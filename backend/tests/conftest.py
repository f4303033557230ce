"""
Pytest configuration and fixtures for backend tests.
"""

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from admin_shared.config.constants import Roles
from admin_shared.infrastructure.db import get_db
from resource_admin.dependencies import get_admin_user
from resource_admin.main import create_app
from resource_admin.models.base import Base
from tests.sandbox import Article, ArticleService, Author, build_registry


# SQLite in-memory database for testing
SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(scope="function")
def db_session():
    """
    Create a fresh database session for each test.
    Uses SQLite in-memory for isolation.
    """
    Base.metadata.create_all(bind=engine)

    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def registry():
    return build_registry()


@pytest.fixture
def admin_user():
    """The authenticated admin user returned by the auth dependency."""
    return {"sub": 1, "roles": [Roles.ADMIN]}


@pytest.fixture
def app(registry, admin_user):
    application = create_app(registry)
    application.dependency_overrides[get_admin_user] = lambda: admin_user
    return application


@pytest.fixture(scope="function")
def client(app, db_session):
    """
    Create a test client with database session override.
    """
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


@pytest.fixture
def enable_authorization(monkeypatch):
    """Turn on authorization checks at the HTTP boundary."""
    from admin_shared.config.settings import settings

    monkeypatch.setattr(settings, "authorization_enabled", True)


@pytest.fixture
def article_service(db_session):
    return ArticleService(db_session)


@pytest.fixture
def seed_articles(db_session):
    """
    The three-article fixture: foo, bar and a published baz.
    Ids are 1, 2 and 3 in that order.
    """
    articles = [
        Article(id=1, title="foo", slug="foo-post", views=10),
        Article(id=2, title="bar", views=30),
        Article(id=3, title="baz", published=True, views=20),
    ]
    db_session.add_all(articles)
    db_session.commit()
    return articles


@pytest.fixture
def seed_author(db_session):
    author = Author(id=1, name="Ada")
    db_session.add(author)
    db_session.commit()
    db_session.refresh(author)
    return author


def titles(result) -> list[str]:
    """Titles of a Result Set, in order."""
    return [record.title for record in result]
