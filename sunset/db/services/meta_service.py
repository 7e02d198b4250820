"""Per-page metadata store."""

from collections.abc import Iterable
from uuid import UUID

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from sunset.db.models import PageMeta


async def get_meta(
    db_session: AsyncSession,
    page_id: UUID,
    key: str,
) -> str | None:
    """Get a metadata value, or None when the page has no such key."""
    result = await db_session.execute(
        select(PageMeta.value).where(PageMeta.page_id == page_id, PageMeta.key == key)
    )
    return result.scalar_one_or_none()


async def get_meta_map(
    db_session: AsyncSession,
    page_ids: Iterable[UUID],
    keys: Iterable[str],
) -> dict[UUID, dict[str, str]]:
    """Fetch several keys for several pages in one query.

    Returns:
        Mapping of page id to its present keys; pages with none of the keys are absent
    """
    page_ids = list(page_ids)
    if not page_ids:
        return {}

    result = await db_session.execute(
        select(PageMeta.page_id, PageMeta.key, PageMeta.value).where(
            PageMeta.page_id.in_(page_ids),
            PageMeta.key.in_(list(keys)),
        )
    )
    meta: dict[UUID, dict[str, str]] = {}
    for page_id, key, value in result.all():
        meta.setdefault(page_id, {})[key] = value
    return meta


async def set_meta(
    db_session: AsyncSession,
    page_id: UUID,
    key: str,
    value: str,
    commit: bool = True,
) -> PageMeta:
    """Set a metadata value, creating or updating as needed."""
    result = await db_session.execute(
        select(PageMeta).where(PageMeta.page_id == page_id, PageMeta.key == key)
    )
    meta = result.scalar_one_or_none()

    if meta:
        meta.value = value
    else:
        meta = PageMeta(page_id=page_id, key=key, value=value)
        db_session.add(meta)

    if commit:
        await db_session.commit()
    return meta


async def delete_meta(
    db_session: AsyncSession,
    page_id: UUID,
    key: str,
    commit: bool = True,
) -> bool:
    """Delete a metadata value.

    Returns:
        True if a value was deleted, False if the key was not set
    """
    result = await db_session.execute(
        delete(PageMeta).where(PageMeta.page_id == page_id, PageMeta.key == key)
    )
    if commit:
        await db_session.commit()
    return bool(result.rowcount)
