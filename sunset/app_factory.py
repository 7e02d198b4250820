"""Litestar application factory.

Builds the app from :class:`~sunset.config.Settings`: database plugin,
cookie sessions, Jinja templates, exception handlers, the expiration
hooks and the background scheduler that runs the recurring sweep.
"""

from __future__ import annotations

import hashlib
import logging
from pathlib import Path

from advanced_alchemy.extensions.litestar import (
    AsyncSessionConfig,
    EngineConfig,
    SQLAlchemyAsyncConfig,
    SQLAlchemyPlugin,
)
from litestar import Litestar
from litestar.contrib.jinja import JinjaTemplateEngine
from litestar.middleware.session.client_side import CookieBackendConfig
from litestar.template import TemplateConfig

from sunset import expiry
from sunset.admin.pages import PageAdminController
from sunset.config import SessionConfig, Settings, get_settings
from sunset.controllers.web import WebController
from sunset.db.base import Base
from sunset.db.services.setting_service import SettingEventStore
from sunset.forms import csrf_field
from sunset.lib import observability
from sunset.lib.exceptions import EXCEPTION_HANDLERS
from sunset.lib.hooks import hooks
from sunset.lib.scheduler import Scheduler

logger = logging.getLogger(__name__)

TEMPLATE_DIR = Path(__file__).parent / "templates"


def create_session_config(secret_key: str, session: SessionConfig) -> CookieBackendConfig:
    """Create a cookie-backed session config keyed off the app secret."""
    return CookieBackendConfig(
        secret=hashlib.sha256(secret_key.encode()).digest(),
        key=session.cookie_name,
        max_age=session.max_age,
        httponly=True,
        secure=session.secure,
        samesite="lax",
    )


def create_db_config(settings: Settings) -> SQLAlchemyAsyncConfig:
    return SQLAlchemyAsyncConfig(
        connection_string=settings.db.url,
        metadata=Base.metadata,
        create_all=settings.db.create_all,
        session_config=AsyncSessionConfig(expire_on_commit=False),
        engine_config=EngineConfig(echo=settings.db.echo),
    )


def configure_template_engine(engine: JinjaTemplateEngine) -> None:
    engine.engine.globals["csrf_field"] = csrf_field


def create_app(settings: Settings | None = None) -> Litestar:
    """Create the Litestar application, using :func:`get_settings` unless given settings."""
    settings = settings or get_settings()
    observability.configure(settings)

    db_config = create_db_config(settings)
    scheduler = Scheduler(
        SettingEventStore(db_config.get_session),
        tick_seconds=settings.expiration.tick_seconds,
    )
    registration = expiry.register(hooks, settings.expiration)

    async def start_scheduler() -> None:
        if not settings.expiration.scheduler_enabled:
            return
        next_run = await expiry.activate(scheduler, db_config.get_session, settings.expiration)
        await scheduler.start()
        logger.info("Expiration check scheduled, next run at %s", next_run.isoformat())

    async def stop_scheduler() -> None:
        await scheduler.stop()

    app = Litestar(
        route_handlers=[WebController, PageAdminController],
        plugins=[SQLAlchemyPlugin(config=db_config)],
        middleware=[create_session_config(settings.secret_key, settings.session).middleware],
        template_config=TemplateConfig(
            directory=TEMPLATE_DIR,
            engine=JinjaTemplateEngine,
            engine_callback=configure_template_engine,
        ),
        exception_handlers=EXCEPTION_HANDLERS,
        on_startup=[start_scheduler],
        on_shutdown=[stop_scheduler],
        debug=settings.debug,
    )
    app.state.settings = settings
    app.state.scheduler = scheduler
    app.state.expiry_registration = registration
    return app
