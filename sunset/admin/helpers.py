"""Shared helpers for admin controllers."""

from __future__ import annotations

from uuid import UUID

from litestar import Request
from litestar.connection import ASGIConnection
from litestar.exceptions import NotAuthorizedException
from litestar.handlers.base import BaseRouteHandler
from sqlalchemy.ext.asyncio import AsyncSession

from sunset.db.services import page_service

ADMINISTRATOR = "administrator"
MANAGE_PAGES = "manage-pages"
EDIT_OWN_PAGES = "edit-own-pages"


def auth_guard(connection: ASGIConnection, _: BaseRouteHandler) -> None:
    """Require a logged-in user. The auth provider stores ``user_id`` in the session."""
    if not connection.session.get("user_id"):
        raise NotAuthorizedException("Authentication required")


def get_permissions(request: Request) -> set[str]:
    """Permissions granted by the auth provider for this session."""
    return set(request.session.get("permissions") or [])


async def can_edit_page(db_session: AsyncSession, request: Request, page) -> bool:
    """Whether the current user may edit ``page``.

    Administrators and ``manage-pages`` holders may edit any page; holders
    of ``edit-own-pages`` only the pages they authored.
    """
    user_id = request.session.get("user_id")
    if not user_id:
        return False

    permissions = get_permissions(request)
    if ADMINISTRATOR in permissions or MANAGE_PAGES in permissions:
        return True

    if EDIT_OWN_PAGES in permissions:
        try:
            owner = UUID(str(user_id))
        except ValueError:
            return False
        return await page_service.check_page_ownership(db_session, page.id, owner)

    return False
