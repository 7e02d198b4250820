"""Setting service for site-wide key/value settings."""

from contextlib import AbstractAsyncContextManager
from typing import Callable

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from sunset.db.models import Setting


async def get_setting(
    db_session: AsyncSession,
    key: str,
) -> str | None:
    """Get a setting value by key, or None if not found."""
    result = await db_session.execute(select(Setting).where(Setting.key == key))
    setting = result.scalar_one_or_none()
    return setting.value if setting else None


async def set_setting(
    db_session: AsyncSession,
    key: str,
    value: str | None,
) -> Setting:
    """Set a setting value, creating or updating as needed."""
    result = await db_session.execute(select(Setting).where(Setting.key == key))
    setting = result.scalar_one_or_none()

    if setting:
        setting.value = value
    else:
        setting = Setting(key=key, value=value)
        db_session.add(setting)

    await db_session.commit()
    return setting


async def delete_setting(
    db_session: AsyncSession,
    key: str,
) -> bool:
    """Delete a setting by key.

    Returns:
        True if deleted, False if not found
    """
    result = await db_session.execute(select(Setting).where(Setting.key == key))
    setting = result.scalar_one_or_none()

    if not setting:
        return False

    await db_session.delete(setting)
    await db_session.commit()
    return True


class SettingEventStore:
    """Scheduler event store backed by the settings table.

    Each call opens its own session, so the store can be used from the
    background scheduler task outside of any request.
    """

    def __init__(self, session_factory: Callable[[], AbstractAsyncContextManager[AsyncSession]]) -> None:
        self._session_factory = session_factory

    async def get(self, key: str) -> str | None:
        async with self._session_factory() as db_session:
            return await get_setting(db_session, key)

    async def set(self, key: str, value: str) -> None:
        async with self._session_factory() as db_session:
            await set_setting(db_session, key, value)

    async def delete(self, key: str) -> bool:
        async with self._session_factory() as db_session:
            return await delete_setting(db_session, key)
