"""Shared test fixtures."""

import json
from pathlib import Path

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from src.core.content.hooks import HookRegistry
from src.core.content.loader import CategoryLoader, CategoryRegistry
from src.core.content.store import CategoryDataStore
from src.db.database import get_db
from src.db.models import Base
from src.main import app

TEST_ENGINE = create_engine(
    "sqlite:///:memory:",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestSession = sessionmaker(bind=TEST_ENGINE, autocommit=False, autoflush=False)


def _override_get_db():
    db = TestSession()
    try:
        yield db
    finally:
        db.close()


app.dependency_overrides[get_db] = _override_get_db


def write_form(forms_dir: Path, file_name: str, definition: dict) -> Path:
    """forms_dir 아래에 정의 파일 작성 (하위 디렉터리 허용)."""
    path = forms_dir / file_name
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(definition), encoding="utf-8")
    return path


def make_form(category_id: str, **extra) -> dict:
    definition = {
        "id": category_id,
        "title": category_id.title(),
        "jsonSchema": {"type": "object", "properties": {"text": {"type": "string"}}},
    }
    definition.update(extra)
    return definition


@pytest.fixture()
def client() -> TestClient:
    """FastAPI TestClient wired to an in-memory SQLite database."""
    return TestClient(app)


@pytest.fixture()
def session_factory() -> sessionmaker:
    """Fresh in-memory database with content tables created."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield sessionmaker(bind=engine, autocommit=False, autoflush=False)
    engine.dispose()


@pytest.fixture()
def db_session(session_factory) -> Session:
    """Raw database session for direct DB assertions."""
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def content_dirs(tmp_path: Path) -> tuple[Path, Path]:
    """(forms_dir, data_dir) under tmp_path. forms_dir is created, data_dir is not."""
    forms_dir = tmp_path / "forms"
    forms_dir.mkdir()
    return forms_dir, tmp_path / "forms_data"


@pytest.fixture()
def hooks() -> HookRegistry:
    return HookRegistry()


@pytest.fixture()
def loader_setup(content_dirs, hooks):
    """CategoryRegistry + CategoryDataStore + CategoryLoader on tmp dirs."""
    forms_dir, data_dir = content_dirs
    registry = CategoryRegistry()
    store = CategoryDataStore(data_dir)
    loader = CategoryLoader(registry, hooks, store, forms_dir)
    return loader, registry, store
