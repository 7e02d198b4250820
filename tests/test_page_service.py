"""Tests for the page service module."""

from datetime import datetime, UTC
from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

import pytest

from sunset.db.models import PageStatus
from sunset.db.services.page_service import (
    check_page_ownership,
    create_page,
    get_page_by_id,
    get_page_by_slug,
    list_pages,
    published_filter,
    transition_status,
)
from sunset.lib.hooks import hooks, AFTER_PAGE_SAVE, PAGE_QUERY_EXCLUDE


@pytest.fixture
def mock_db_session():
    """Create a mock async database session."""
    session = AsyncMock()

    mock_scalars = MagicMock()
    mock_scalars.all.return_value = []

    mock_result = MagicMock()
    mock_result.scalar_one_or_none.return_value = None
    mock_result.scalars.return_value = mock_scalars

    session.execute = AsyncMock(return_value=mock_result)
    session.add = MagicMock()
    return session


class TestPublishedFilter:
    def test_returns_single_status_clause(self):
        filters = published_filter()
        assert len(filters) == 1
        assert "status" in str(filters[0])


class TestCreatePage:
    async def test_adds_commits_and_fires_hook(self, mock_db_session):
        handler = AsyncMock()
        hooks.add_action(AFTER_PAGE_SAVE, handler)

        page = await create_page(mock_db_session, slug="hello", title="Hello", status=PageStatus.PUBLISHED)

        mock_db_session.add.assert_called_once_with(page)
        mock_db_session.commit.assert_awaited_once()
        assert page.status == "published"
        assert page.type == "post"
        handler.assert_awaited_once_with(page, is_new=True)


class TestCheckPageOwnership:
    async def test_missing_page(self, mock_db_session):
        assert await check_page_ownership(mock_db_session, uuid4(), uuid4()) is False

    async def test_owner_matches(self, mock_db_session):
        owner = uuid4()
        page = MagicMock(user_id=owner)
        mock_db_session.execute.return_value.scalar_one_or_none.return_value = page

        assert await check_page_ownership(mock_db_session, uuid4(), owner) is True
        assert await check_page_ownership(mock_db_session, uuid4(), uuid4()) is False


class TestListPages:
    async def test_filters_by_type_and_status(self, db_session):
        await create_page(db_session, "post-a", "Post A", status=PageStatus.PUBLISHED)
        await create_page(db_session, "post-b", "Post B", status=PageStatus.DRAFT)
        await create_page(db_session, "about", "About", page_type="page", status=PageStatus.PUBLISHED)

        posts = await list_pages(db_session, page_type="post", published_only=True)

        assert [p.slug for p in posts] == ["post-a"]

    async def test_public_listing_drops_excluded_ids(self, db_session):
        keep = await create_page(db_session, "keep", "Keep", status=PageStatus.PUBLISHED)
        hide = await create_page(db_session, "hide", "Hide", status=PageStatus.PUBLISHED)
        seen = []

        def exclude(excluded, db, *, page_type=None):
            seen.append(page_type)
            return excluded | {hide.id}

        hooks.add_filter(PAGE_QUERY_EXCLUDE, exclude)

        public = await list_pages(db_session, page_type="post", public=True)
        admin = await list_pages(db_session, page_type="post")

        assert [p.id for p in public] == [keep.id]
        assert {p.id for p in admin} == {keep.id, hide.id}
        assert seen == ["post"]

    async def test_public_listing_is_published_only(self, db_session):
        await create_page(db_session, "draft", "Draft")
        assert await list_pages(db_session, public=True) == []

    async def test_order_by_published(self, db_session):
        await create_page(db_session, "old", "Old", status=PageStatus.PUBLISHED, published_at=datetime(2023, 1, 1, tzinfo=UTC))
        await create_page(db_session, "new", "New", status=PageStatus.PUBLISHED, published_at=datetime(2024, 1, 1, tzinfo=UTC))
        await create_page(db_session, "undated", "Undated", status=PageStatus.PUBLISHED)

        pages = await list_pages(db_session, order_by="published")

        assert [p.slug for p in pages] == ["new", "old", "undated"]

    async def test_limit_and_offset(self, db_session):
        for i in range(3):
            await create_page(db_session, f"p{i}", f"P{i}", order=i)

        pages = await list_pages(db_session, limit=1, offset=1)

        assert [p.slug for p in pages] == ["p1"]


class TestLookup:
    async def test_get_page_by_slug_published_only(self, db_session):
        await create_page(db_session, "draft", "Draft")

        assert await get_page_by_slug(db_session, "draft") is not None
        assert await get_page_by_slug(db_session, "draft", published_only=True) is None

    async def test_get_page_by_id(self, db_session):
        page = await create_page(db_session, "a", "A")

        assert (await get_page_by_id(db_session, page.id)).slug == "a"
        assert await get_page_by_id(db_session, uuid4()) is None


class TestTransitionStatus:
    async def test_moves_page_in_from_status(self, db_session):
        page = await create_page(db_session, "a", "A", status=PageStatus.PUBLISHED)

        moved = await transition_status(db_session, page.id, PageStatus.PUBLISHED, PageStatus.DRAFT)

        assert moved is not None
        assert moved.status == "draft"

    async def test_repeated_transition_is_noop(self, db_session):
        page = await create_page(db_session, "a", "A", status=PageStatus.PUBLISHED)
        await transition_status(db_session, page.id, PageStatus.PUBLISHED, PageStatus.DRAFT)
        handler = AsyncMock()
        hooks.add_action(AFTER_PAGE_SAVE, handler)

        again = await transition_status(db_session, page.id, PageStatus.PUBLISHED, PageStatus.DRAFT)

        assert again is None
        handler.assert_not_awaited()

    async def test_private_page_is_untouched(self, db_session):
        page = await create_page(db_session, "a", "A", status=PageStatus.PRIVATE)

        assert await transition_status(db_session, page.id, PageStatus.PUBLISHED, PageStatus.DRAFT) is None
        assert (await get_page_by_id(db_session, page.id)).status == "private"
