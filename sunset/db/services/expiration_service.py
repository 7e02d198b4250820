"""Expiration metadata persistence and the expiration sweep.

An expiration is stored as two page metadata values, ``expiration_date``
(``YYYY-MM-DD``) and ``expiration_time`` (``HH:MM:SS``), in civil time.
They are always written and deleted together; a page with only one of
them has no expiration.
"""

import logging
from collections.abc import Iterable
from datetime import datetime
from uuid import UUID

from sqlalchemy import and_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased

from sunset.db.models import Page, PageMeta, PageStatus
from sunset.db.services import meta_service, page_service
from sunset.lib import expiration, observability
from sunset.lib.expiration import ContentItem
from sunset.lib.hooks import hooks, EXPIRATION_SAVED, PAGE_EXPIRED

logger = logging.getLogger(__name__)

DATE_KEY = "expiration_date"
TIME_KEY = "expiration_time"


async def get_expiration(db_session: AsyncSession, page_id: UUID) -> datetime | None:
    """Read a page's expiration, or None when it has none (or only half of one)."""
    date_value = await meta_service.get_meta(db_session, page_id, DATE_KEY)
    time_value = await meta_service.get_meta(db_session, page_id, TIME_KEY)
    return expiration.combine(date_value, time_value)


async def get_expirations(db_session: AsyncSession, page_ids: Iterable[UUID]) -> dict[UUID, datetime]:
    """Expirations of several pages; pages without a complete one are left out."""
    meta = await meta_service.get_meta_map(db_session, page_ids, (DATE_KEY, TIME_KEY))
    expirations = {}
    for page_id, values in meta.items():
        expires_at = expiration.combine(values.get(DATE_KEY), values.get(TIME_KEY))
        if expires_at is not None:
            expirations[page_id] = expires_at
    return expirations


async def set_expiration(
    db_session: AsyncSession,
    page_id: UUID,
    expires_at: datetime | None,
) -> None:
    """Write both halves of an expiration, or delete both when ``expires_at`` is None."""
    if expires_at is None:
        await meta_service.delete_meta(db_session, page_id, DATE_KEY, commit=False)
        await meta_service.delete_meta(db_session, page_id, TIME_KEY, commit=False)
    else:
        date_value, time_value = expiration.split(expires_at)
        await meta_service.set_meta(db_session, page_id, DATE_KEY, date_value, commit=False)
        await meta_service.set_meta(db_session, page_id, TIME_KEY, time_value, commit=False)
    await db_session.commit()


async def save_submitted_expiration(
    db_session: AsyncSession,
    page_id: UUID,
    submitted: str | None,
) -> datetime | None:
    """Store the value of the editor's ``datetime-local`` field.

    Blank and malformed values clear the expiration instead of failing.

    Returns:
        The stored expiration, or None if it was cleared
    """
    expires_at = expiration.parse_submitted(submitted)
    if submitted and submitted.strip() and expires_at is None:
        logger.info("Clearing expiration of page %s: unparseable value %r", page_id, submitted)

    await set_expiration(db_session, page_id, expires_at)
    await hooks.do_action(EXPIRATION_SAVED, page_id, expires_at)
    return expires_at


async def load_items(db_session: AsyncSession, pages: Iterable[Page]) -> list[ContentItem]:
    """Wrap pages as evaluator items carrying their expirations."""
    pages = list(pages)
    expirations = await get_expirations(db_session, [page.id for page in pages])
    return [
        ContentItem(id=page.id, status=page.status, type=page.type, expires_at=expirations.get(page.id))
        for page in pages
    ]


async def sweep_candidates(db_session: AsyncSession, content_type: str) -> list[ContentItem]:
    """Published pages of ``content_type`` that carry both expiration values."""
    date_meta = aliased(PageMeta)
    time_meta = aliased(PageMeta)
    result = await db_session.execute(
        select(Page.id, Page.status, Page.type, date_meta.value, time_meta.value)
        .join(date_meta, and_(date_meta.page_id == Page.id, date_meta.key == DATE_KEY))
        .join(time_meta, and_(time_meta.page_id == Page.id, time_meta.key == TIME_KEY))
        .where(Page.status == PageStatus.PUBLISHED.value, Page.type == content_type)
    )
    return [
        ContentItem(
            id=page_id,
            status=status,
            type=page_type,
            expires_at=expiration.combine(date_value, time_value),
        )
        for page_id, status, page_type, date_value, time_value in result.all()
    ]


async def expired_page_ids(db_session: AsyncSession, now: datetime, content_type: str) -> set[UUID]:
    """Ids of published pages of ``content_type`` whose expiration has passed."""
    candidates = await sweep_candidates(db_session, content_type)
    return expiration.sweep(candidates, now, content_type)


async def expire_pages(db_session: AsyncSession, now: datetime, content_type: str) -> list[UUID]:
    """Move every expired published page of ``content_type`` to draft.

    Pages that another run already moved are skipped silently, so running
    the sweep twice in a row transitions nothing the second time.

    Returns:
        Ids of the pages this call moved to draft
    """
    with observability.span("expiration.sweep", content_type=content_type, now=now.isoformat()):
        due = await expired_page_ids(db_session, now, content_type)
        transitioned = []
        for page_id in due:
            page = await page_service.transition_status(
                db_session, page_id, PageStatus.PUBLISHED, PageStatus.DRAFT
            )
            if page is None:
                continue
            transitioned.append(page_id)
            logger.info("Unpublished expired %s %s (%s)", page.type, page.slug, page_id)
            await hooks.do_action(PAGE_EXPIRED, page)

        if transitioned:
            observability.info("Expired {count} pages", count=len(transitioned))
        return transitioned
