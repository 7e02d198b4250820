"""Tests for the expiration hooks, visibility rules and recurring sweep."""

from datetime import datetime, timedelta
from unittest.mock import patch

import pytest
from litestar.exceptions import NotFoundException
from litestar.response import Redirect

from sunset import expiry
from sunset.config import ExpirationConfig
from sunset.db.models import MenuItem, PageStatus
from sunset.db.services import expiration_service, menu_service, page_service
from sunset.db.services.setting_service import SettingEventStore, get_setting
from sunset.lib.hooks import (
    HookRegistry,
    NAV_MENU_ITEMS,
    PAGE_ACCESS,
    PAGE_QUERY_EXCLUDE,
    PUBLIC_REQUEST,
    hooks,
)
from sunset.lib.scheduler import Scheduler

NOW = datetime(2024, 1, 1, 10, 0, 0)


@pytest.fixture
def frozen_now():
    """Pin the civil clock the hook handlers read."""
    with patch("sunset.expiry.expiration.civil_now", return_value=NOW):
        yield NOW


async def _page(db_session, slug, page_type="post", status=PageStatus.PUBLISHED, expires_at=None):
    page = await page_service.create_page(db_session, slug=slug, title=slug, page_type=page_type, status=status)
    if expires_at is not None:
        await expiration_service.set_expiration(db_session, page.id, expires_at)
    return page


async def _menu_item(db_session, label, page=None, order=0):
    item = MenuItem(
        menu="primary",
        label=label,
        url=f"/post/{page.slug}" if page else "https://example.com",
        object_type=page.type if page else None,
        object_id=page.id if page else None,
        order=order,
    )
    db_session.add(item)
    await db_session.commit()
    return item


class TestRunSweep:
    async def test_uses_given_now(self, db_session, expiration_config):
        page = await _page(db_session, "a", expires_at=NOW)

        assert await expiry.run_sweep(db_session, config=expiration_config, now=NOW - timedelta(seconds=1)) == []
        assert await expiry.run_sweep(db_session, config=expiration_config, now=NOW) == [page.id]

    async def test_defaults_to_civil_now(self, db_session, expiration_config, frozen_now):
        page = await _page(db_session, "a", expires_at=NOW)

        assert await expiry.run_sweep(db_session, config=expiration_config) == [page.id]

    async def test_only_managed_type(self, db_session, frozen_now):
        await _page(db_session, "post", expires_at=NOW)
        event = await _page(db_session, "event", page_type="event", expires_at=NOW)

        moved = await expiry.run_sweep(db_session, config=ExpirationConfig(content_type="event"))

        assert moved == [event.id]


class TestExcludeExpired:
    async def test_adds_expired_ids(self, db_session, expiration_config, frozen_now):
        expired = await _page(db_session, "expired", expires_at=NOW)
        await _page(db_session, "active", expires_at=NOW + timedelta(hours=1))
        other = object()

        result = await expiry.exclude_expired({other}, db_session, page_type="post", config=expiration_config)

        assert result == {other, expired.id}

    async def test_other_types_untouched(self, db_session, expiration_config, frozen_now):
        await _page(db_session, "expired", expires_at=NOW)

        assert await expiry.exclude_expired(set(), db_session, page_type="page", config=expiration_config) == set()

    async def test_untyped_query_is_filtered(self, db_session, expiration_config, frozen_now):
        expired = await _page(db_session, "expired", expires_at=NOW)

        assert await expiry.exclude_expired(set(), db_session, config=expiration_config) == {expired.id}


class TestHideExpiredFromMenus:
    async def test_drops_entries_for_expired_items(self, db_session, expiration_config, frozen_now):
        expired = await _page(db_session, "expired", expires_at=NOW)
        active = await _page(db_session, "active", expires_at=NOW + timedelta(days=1))
        undated = await _page(db_session, "undated")
        items = [
            await _menu_item(db_session, "Expired", expired, 0),
            await _menu_item(db_session, "Active", active, 1),
            await _menu_item(db_session, "Undated", undated, 2),
            await _menu_item(db_session, "External", None, 3),
        ]

        result = await expiry.hide_expired_from_menus(items, db_session, menu="primary", config=expiration_config)

        assert [item.label for item in result] == ["Active", "Undated", "External"]

    async def test_checks_expiration_not_status(self, db_session, expiration_config, frozen_now):
        """An entry disappears once its target expires, even before the sweep moves it."""
        page = await _page(db_session, "draft", status=PageStatus.DRAFT, expires_at=NOW)
        items = [await _menu_item(db_session, "Draft", page)]

        assert await expiry.hide_expired_from_menus(items, db_session, config=expiration_config) == []

    async def test_other_types_kept(self, db_session, expiration_config, frozen_now):
        page = await _page(db_session, "about", page_type="page", expires_at=NOW)
        items = [await _menu_item(db_session, "About", page)]

        assert await expiry.hide_expired_from_menus(items, db_session, config=expiration_config) == items

    async def test_through_menu_service(self, db_session, expiration_config, frozen_now):
        expired = await _page(db_session, "expired", expires_at=NOW)
        await _menu_item(db_session, "Expired", expired, 0)
        await _menu_item(db_session, "Home", None, 1)
        expiry.register(hooks, expiration_config)

        items = await menu_service.get_menu_items(db_session, "primary")

        assert [item.label for item in items] == ["Home"]


class TestGuardDirectAccess:
    async def test_redirects_expired_item(self, db_session, frozen_now):
        page = await _page(db_session, "a", expires_at=NOW)
        config = ExpirationConfig(fallback_url="/archive")

        response = await expiry.guard_direct_access(None, page, db_session, config=config)

        assert isinstance(response, Redirect)
        assert response.url == "/archive"

    async def test_redirects_after_sweep(self, db_session, expiration_config, frozen_now):
        page = await _page(db_session, "a", expires_at=NOW)
        await expiry.run_sweep(db_session, config=expiration_config)
        assert page.status == "draft"

        response = await expiry.guard_direct_access(None, page, db_session, config=expiration_config)

        assert isinstance(response, Redirect)

    async def test_not_found_policy(self, db_session, frozen_now):
        page = await _page(db_session, "a", expires_at=NOW)
        config = ExpirationConfig(on_direct_access="not_found")

        with pytest.raises(NotFoundException):
            await expiry.guard_direct_access(None, page, db_session, config=config)

    async def test_active_item_passes(self, db_session, expiration_config, frozen_now):
        page = await _page(db_session, "a", expires_at=NOW + timedelta(minutes=1))

        assert await expiry.guard_direct_access(None, page, db_session, config=expiration_config) is None

    async def test_undated_item_passes(self, db_session, expiration_config, frozen_now):
        page = await _page(db_session, "a")

        assert await expiry.guard_direct_access(None, page, db_session, config=expiration_config) is None

    async def test_other_types_pass(self, db_session, expiration_config, frozen_now):
        page = await _page(db_session, "about", page_type="page", expires_at=NOW)

        assert await expiry.guard_direct_access(None, page, db_session, config=expiration_config) is None

    async def test_existing_override_kept(self, db_session, expiration_config, frozen_now):
        page = await _page(db_session, "a", expires_at=NOW)
        override = object()

        assert await expiry.guard_direct_access(override, page, db_session, config=expiration_config) is override


class TestRegister:
    def test_adds_filters(self, expiration_config):
        registry = HookRegistry()

        registration = expiry.register(registry, expiration_config)

        assert registry.has_filter(PAGE_QUERY_EXCLUDE)
        assert registry.has_filter(NAV_MENU_ITEMS)
        assert registry.has_filter(PAGE_ACCESS)
        assert not registry.has_action(PUBLIC_REQUEST)
        assert len(registration.filters) == 3

    def test_request_sweep_when_enabled(self):
        registry = HookRegistry()

        registration = expiry.register(registry, ExpirationConfig(sweep_on_request=True))

        assert registry.has_action(PUBLIC_REQUEST)
        assert [name for name, _ in registration.actions] == [PUBLIC_REQUEST]

    async def test_deactivate_removes_everything(self, session_factory):
        registry = HookRegistry()
        registration = expiry.register(registry, ExpirationConfig(sweep_on_request=True))
        scheduler = Scheduler(SettingEventStore(session_factory))

        await expiry.deactivate(registration, scheduler)

        for hook_name in (PAGE_QUERY_EXCLUDE, NAV_MENU_ITEMS, PAGE_ACCESS):
            assert not registry.has_filter(hook_name)
        assert not registry.has_action(PUBLIC_REQUEST)


class TestActivation:
    async def test_activate_schedules_hourly_check(self, session_factory, expiration_config):
        scheduler = Scheduler(SettingEventStore(session_factory))

        next_run = await expiry.activate(scheduler, session_factory, expiration_config)

        assert expiry.EXPIRATION_CHECK_EVENT in scheduler.events
        assert scheduler.events[expiry.EXPIRATION_CHECK_EVENT].interval == timedelta(hours=1)
        async with session_factory() as db_session:
            stored = await get_setting(db_session, "cron:post_expiration_check")
        assert stored == next_run.isoformat()

    async def test_activate_twice_keeps_schedule(self, session_factory, expiration_config):
        scheduler = Scheduler(SettingEventStore(session_factory))

        first = await expiry.activate(scheduler, session_factory, expiration_config)
        second = await expiry.activate(scheduler, session_factory, expiration_config)

        assert first == second

    async def test_deactivate_clears_schedule(self, session_factory, expiration_config):
        scheduler = Scheduler(SettingEventStore(session_factory))
        await expiry.activate(scheduler, session_factory, expiration_config)

        await expiry.deactivate(None, scheduler)

        assert await scheduler.next_scheduled(expiry.EXPIRATION_CHECK_EVENT) is None
        assert expiry.EXPIRATION_CHECK_EVENT not in scheduler.events

    async def test_scheduled_run_sweeps(self, session_factory, expiration_config, frozen_now):
        async with session_factory() as db_session:
            page = await _page(db_session, "a", expires_at=NOW)
        scheduler = Scheduler(SettingEventStore(session_factory))
        await expiry.activate(scheduler, session_factory, expiration_config)

        assert await scheduler.run_due() == [expiry.EXPIRATION_CHECK_EVENT]

        async with session_factory() as db_session:
            assert (await page_service.get_page_by_id(db_session, page.id)).status == "draft"

    async def test_sweep_task_returns_moved_ids(self, session_factory, expiration_config, frozen_now):
        async with session_factory() as db_session:
            page = await _page(db_session, "a", expires_at=NOW)

        task = expiry.make_sweep_task(session_factory, expiration_config)

        assert await task() == [page.id]
        assert await task() == []
