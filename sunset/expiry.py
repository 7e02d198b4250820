"""Wires expiration evaluation into the host's hooks and scheduler.

Handlers are plain functions taking the expiration config as a keyword
argument. :func:`register` binds them to a config and adds them to a hook
registry; :func:`activate` schedules the recurring sweep. Both return
what :func:`deactivate` needs to undo them.

Usage:
    registration = register(hooks, settings.expiration)
    await activate(scheduler, session_factory, settings.expiration)
    ...
    await deactivate(registration, scheduler)
"""

import logging
from contextlib import AbstractAsyncContextManager
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from functools import partial
from typing import Any, Callable
from uuid import UUID

from litestar.exceptions import NotFoundException
from litestar.response import Redirect
from sqlalchemy.ext.asyncio import AsyncSession

from sunset.config import ExpirationConfig
from sunset.db.services import expiration_service
from sunset.lib import expiration
from sunset.lib.expiration import ContentItem
from sunset.lib.hooks import (
    HookRegistry,
    NAV_MENU_ITEMS,
    PAGE_ACCESS,
    PAGE_QUERY_EXCLUDE,
    PUBLIC_REQUEST,
)
from sunset.lib.scheduler import Scheduler

logger = logging.getLogger(__name__)

EXPIRATION_CHECK_EVENT = "post_expiration_check"


@dataclass
class Registration:
    """Callbacks added to a registry by :func:`register`."""

    registry: HookRegistry
    actions: list[tuple[str, Callable]] = field(default_factory=list)
    filters: list[tuple[str, Callable]] = field(default_factory=list)


def _now(config: ExpirationConfig) -> datetime:
    return expiration.civil_now(config.utc_offset)


async def run_sweep(
    db_session: AsyncSession,
    *,
    config: ExpirationConfig,
    now: datetime | None = None,
) -> list[UUID]:
    """Unpublish every expired item of the managed type."""
    return await expiration_service.expire_pages(db_session, now or _now(config), config.content_type)


async def exclude_expired(
    excluded: set[UUID],
    db_session: AsyncSession,
    *,
    page_type: str | None = None,
    config: ExpirationConfig,
) -> set[UUID]:
    """``page_query_exclude`` filter: keep expired items out of public listings."""
    if page_type is not None and page_type != config.content_type:
        return excluded
    expired = await expiration_service.expired_page_ids(db_session, _now(config), config.content_type)
    return excluded | expired


async def hide_expired_from_menus(
    items: list,
    db_session: AsyncSession,
    *,
    menu: str | None = None,
    config: ExpirationConfig,
) -> list:
    """``nav_menu_items`` filter: drop entries pointing at expired items.

    Only the expiration is consulted, not the publication status, so an
    entry disappears the moment its target expires even before the sweep.
    """
    targets = [
        item.object_id
        for item in items
        if item.object_type == config.content_type and item.object_id is not None
    ]
    if not targets:
        return items

    now = _now(config)
    expirations = await expiration_service.get_expirations(db_session, targets)
    expired = {
        page_id
        for page_id, expires_at in expirations.items()
        if expiration.is_expired(ContentItem(id=page_id, status="", expires_at=expires_at), now)
    }
    return [
        item
        for item in items
        if not (item.object_type == config.content_type and item.object_id in expired)
    ]


async def guard_direct_access(
    response: Any,
    page,
    db_session: AsyncSession,
    *,
    config: ExpirationConfig,
) -> Any:
    """``page_access`` filter: keep an expired item from being rendered.

    Depending on ``on_direct_access`` the visitor is redirected to the
    fallback URL or gets a 404.
    """
    if response is not None or page.type != config.content_type:
        return response

    expires_at = await expiration_service.get_expiration(db_session, page.id)
    item = ContentItem(id=page.id, status=page.status, type=page.type, expires_at=expires_at)
    if not expiration.is_expired(item, _now(config)):
        return response

    if config.on_direct_access == "not_found":
        raise NotFoundException(f"'{page.slug}' not found")
    return Redirect(path=config.fallback_url)


async def sweep_on_request(db_session: AsyncSession, *, config: ExpirationConfig) -> None:
    """``public_request`` action: catch expirations between scheduled sweeps."""
    await run_sweep(db_session, config=config)


def register(registry: HookRegistry, config: ExpirationConfig) -> Registration:
    """Add the expiration handlers, bound to ``config``, to ``registry``."""
    registration = Registration(registry=registry)

    filters = [
        (PAGE_QUERY_EXCLUDE, partial(exclude_expired, config=config)),
        (NAV_MENU_ITEMS, partial(hide_expired_from_menus, config=config)),
        (PAGE_ACCESS, partial(guard_direct_access, config=config)),
    ]
    for hook_name, callback in filters:
        registry.add_filter(hook_name, callback)
        registration.filters.append((hook_name, callback))

    if config.sweep_on_request:
        callback = partial(sweep_on_request, config=config)
        registry.add_action(PUBLIC_REQUEST, callback)
        registration.actions.append((PUBLIC_REQUEST, callback))

    return registration


def make_sweep_task(
    session_factory: Callable[[], AbstractAsyncContextManager[AsyncSession]],
    config: ExpirationConfig,
) -> Callable:
    """Build the scheduler callback: one sweep in a fresh session."""

    async def expire_posts() -> list[UUID]:
        async with session_factory() as db_session:
            expired = await run_sweep(db_session, config=config)
        logger.info("Expiration check finished, %d item(s) unpublished", len(expired))
        return expired

    return expire_posts


async def activate(
    scheduler: Scheduler,
    session_factory: Callable[[], AbstractAsyncContextManager[AsyncSession]],
    config: ExpirationConfig,
) -> datetime:
    """Register the recurring sweep and schedule it unless already scheduled.

    Returns:
        The next time the sweep will run
    """
    scheduler.register(
        EXPIRATION_CHECK_EVENT,
        make_sweep_task(session_factory, config),
        timedelta(seconds=config.check_interval),
    )
    return await scheduler.schedule_event(EXPIRATION_CHECK_EVENT)


async def deactivate(registration: Registration | None, scheduler: Scheduler) -> None:
    """Remove the handlers added by :func:`register` and cancel the recurring sweep."""
    if registration is not None:
        for hook_name, callback in registration.actions:
            registration.registry.remove_action(hook_name, callback)
        for hook_name, callback in registration.filters:
            registration.registry.remove_filter(hook_name, callback)
        registration.actions.clear()
        registration.filters.clear()

    await scheduler.clear_scheduled_hook(EXPIRATION_CHECK_EVENT)
