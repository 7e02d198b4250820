"""Shared pytest fixtures."""

from collections import defaultdict
from datetime import datetime
from unittest.mock import MagicMock

import pytest
import yaml
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from sunset.config import DatabaseConfig, ExpirationConfig, Settings
from sunset.db import models  # noqa: F401
from sunset.db.base import Base
from sunset.lib.hooks import hooks


@pytest.fixture
def temp_app_yaml(tmp_path, monkeypatch):
    """Write an app.yaml into a temporary working directory."""
    monkeypatch.chdir(tmp_path)

    def _create_config(config: dict):
        config_path = tmp_path / "app.yaml"
        with open(config_path, "w") as f:
            yaml.safe_dump(config, f)
        return config_path

    return _create_config


@pytest.fixture(autouse=True)
def clean_hooks():
    """Save and restore hooks state around every test."""
    original_filters = {name: list(handlers) for name, handlers in hooks._filters.items()}
    original_actions = {name: list(handlers) for name, handlers in hooks._actions.items()}
    yield
    hooks._filters = defaultdict(list, original_filters)
    hooks._actions = defaultdict(list, original_actions)


@pytest.fixture
def db_url(tmp_path) -> str:
    return f"sqlite+aiosqlite:///{tmp_path / 'test.db'}"


@pytest.fixture
async def db_engine(db_url):
    """Engine on a fresh SQLite file with every table created."""
    engine = create_async_engine(db_url)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return async_sessionmaker(db_engine, expire_on_commit=False)


@pytest.fixture
async def db_session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def expiration_config() -> ExpirationConfig:
    return ExpirationConfig(utc_offset=-3, content_type="post", sweep_on_request=False, scheduler_enabled=False)


@pytest.fixture
def settings(db_url, expiration_config) -> Settings:
    return Settings(
        secret_key="test-secret-key",
        db=DatabaseConfig(url=db_url),
        expiration=expiration_config,
    )


@pytest.fixture
def fixed_now() -> datetime:
    return datetime(2024, 1, 1, 10, 0, 0)


@pytest.fixture
def mock_request_factory():
    """Factory fixture that returns mock requests with a session dict."""
    def _make(session=None, form_data=None):
        request = MagicMock()
        request.session = session if session is not None else {}
        if form_data is not None:
            async def _form():
                return form_data
            request.form = _form
        return request
    return _make
