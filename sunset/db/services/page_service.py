"""Page service for CRUD operations on pages."""

from datetime import datetime
from typing import Literal
from uuid import UUID

from sqlalchemy import and_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from sunset.db.models import Page, PageStatus
from sunset.lib.hooks import hooks, AFTER_PAGE_SAVE, PAGE_QUERY_EXCLUDE


OrderBy = Literal["order", "created", "published", "title"]


def published_filter() -> list:
    """Filter clauses matching pages visible to the public."""
    return [Page.status == PageStatus.PUBLISHED.value]


async def excluded_page_ids(db_session: AsyncSession, page_type: str | None = None) -> set[UUID]:
    """Ids that registered filters want kept out of public listings."""
    return await hooks.apply_filters(PAGE_QUERY_EXCLUDE, set(), db_session, page_type=page_type)


async def list_pages(
    db_session: AsyncSession,
    page_type: str | None = None,
    published_only: bool = False,
    public: bool = False,
    user_id: UUID | None = None,
    limit: int | None = None,
    offset: int = 0,
    order_by: OrderBy = "order",
) -> list[Page]:
    """List pages with optional filtering.

    Args:
        db_session: Database session
        page_type: Only return pages of this type
        published_only: Only return published pages
        public: Listing shown to visitors; implies published_only and drops
            every id returned by the ``page_query_exclude`` filter
        user_id: Filter by user ID (author)
        limit: Maximum number of results
        offset: Number of results to skip
        order_by: Sort order - "order" (default), "created", "published", "title"

    Returns:
        List of Page objects
    """
    query = select(Page)

    filters = []
    if published_only or public:
        filters.extend(published_filter())
    if public:
        excluded = await excluded_page_ids(db_session, page_type)
        if excluded:
            filters.append(Page.id.not_in(list(excluded)))
    if page_type:
        filters.append(Page.type == page_type)
    if user_id:
        filters.append(Page.user_id == user_id)

    if filters:
        query = query.where(and_(*filters))

    if order_by == "order":
        query = query.order_by(Page.order.asc(), Page.created_at.desc())
    elif order_by == "created":
        query = query.order_by(Page.created_at.desc())
    elif order_by == "published":
        query = query.order_by(Page.published_at.desc().nullslast(), Page.created_at.desc())
    elif order_by == "title":
        query = query.order_by(Page.title.asc())

    if offset:
        query = query.offset(offset)
    if limit:
        query = query.limit(limit)

    result = await db_session.execute(query)
    return list(result.scalars().all())


async def get_page_by_slug(
    db_session: AsyncSession,
    slug: str,
    published_only: bool = False,
) -> Page | None:
    """Get a single page by slug, or None if not found."""
    query = select(Page).where(Page.slug == slug)
    if published_only:
        query = query.where(*published_filter())

    result = await db_session.execute(query)
    return result.scalar_one_or_none()


async def get_page_by_id(
    db_session: AsyncSession,
    page_id: UUID,
) -> Page | None:
    result = await db_session.execute(select(Page).where(Page.id == page_id))
    return result.scalar_one_or_none()


async def create_page(
    db_session: AsyncSession,
    slug: str,
    title: str,
    content: str = "",
    page_type: str = "post",
    status: PageStatus = PageStatus.DRAFT,
    published_at: datetime | None = None,
    user_id: UUID | None = None,
    order: int = 0,
) -> Page:
    """Create a new page.

    Args:
        db_session: Database session
        slug: Unique page slug
        title: Page title
        content: Page content
        page_type: Content type, e.g. "post" or "page"
        status: Publication status
        published_at: Publication timestamp
        user_id: Author user ID (optional)
        order: Display order (lower numbers first)

    Returns:
        Created Page object
    """
    page = Page(
        slug=slug,
        title=title,
        content=content,
        type=page_type,
        status=PageStatus(status).value,
        published_at=published_at,
        user_id=user_id,
        order=order,
    )

    db_session.add(page)
    await db_session.commit()
    await db_session.refresh(page)

    await hooks.do_action(AFTER_PAGE_SAVE, page, is_new=True)

    return page


async def transition_status(
    db_session: AsyncSession,
    page_id: UUID,
    from_status: PageStatus,
    to_status: PageStatus,
) -> Page | None:
    """Move a page between statuses only if it is still in ``from_status``.

    The check and the write happen in one UPDATE, so repeating a transition
    that already happened changes nothing.

    Returns:
        The updated page, or None if the page was not in ``from_status``
    """
    result = await db_session.execute(
        update(Page)
        .where(Page.id == page_id, Page.status == PageStatus(from_status).value)
        .values(status=PageStatus(to_status).value)
        .execution_options(synchronize_session=False)
    )
    await db_session.commit()
    if not result.rowcount:
        return None

    page = await get_page_by_id(db_session, page_id)
    if page is not None:
        await db_session.refresh(page)
        await hooks.do_action(AFTER_PAGE_SAVE, page, is_new=False)
    return page


async def check_page_ownership(
    db_session: AsyncSession,
    page_id: UUID,
    user_id: UUID,
) -> bool:
    """Check if a user owns a page."""
    page = await get_page_by_id(db_session, page_id)
    if not page:
        return False
    return page.user_id == user_id
