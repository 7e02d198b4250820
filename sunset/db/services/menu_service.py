"""Navigation menu service."""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from sunset.db.models import MenuItem
from sunset.lib.hooks import hooks, NAV_MENU_ITEMS


async def get_menu_items(
    db_session: AsyncSession,
    menu: str = "primary",
) -> list[MenuItem]:
    """Build a menu: load its entries in order, then run the ``nav_menu_items`` filter.

    Filters receive the item list, the session and the menu name, and
    return the list to render.
    """
    result = await db_session.execute(
        select(MenuItem)
        .where(MenuItem.menu == menu)
        .order_by(MenuItem.order.asc(), MenuItem.label.asc())
    )
    items = list(result.scalars().all())
    return await hooks.apply_filters(NAV_MENU_ITEMS, items, db_session, menu=menu)
