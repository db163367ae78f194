from __future__ import annotations

import pytest

import models  # noqa: F401
from cache_layer import cache_clear
from db import Base, SessionLocal, init_engine

DEVICE = "device-test-0001"


@pytest.fixture()
def app_client(tmp_path, monkeypatch):
    monkeypatch.setenv("ENV", "test")
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path / 'orientation.db'}")
    monkeypatch.setenv("SECRET_KEY", "test-secret")
    monkeypatch.setenv("SUBMISSION_URL", "")
    monkeypatch.setenv("SUBMISSION_SYNC_INLINE", "1")
    monkeypatch.setenv("ADMIN_TOKEN", "")
    monkeypatch.setenv("RATE_LIMIT_GLOBAL", "10000/min")
    monkeypatch.setenv("REDIS_URL", "")
    monkeypatch.setenv("CORS_ORIGINS", "http://localhost:3000")
    cache_clear()

    from app import create_app

    app = create_app()
    app.config["TESTING"] = True
    with app.test_client() as client:
        yield app, client
    cache_clear()


@pytest.fixture()
def db_session(tmp_path):
    engine = init_engine(f"sqlite:///{tmp_path / 'unit.db'}")
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
