"""Page admin: listing with the expiration column and the expiration panel."""

from __future__ import annotations

import logging
from dataclasses import replace
from uuid import UUID

from litestar import Controller, Request, get, post
from litestar.exceptions import NotAuthorizedException, NotFoundException
from litestar.response import Redirect, Template as TemplateResponse
from sqlalchemy.ext.asyncio import AsyncSession

from sunset.admin.helpers import auth_guard, can_edit_page
from sunset.config import Settings
from sunset.db.models import Page
from sunset.db.services import expiration_service, page_service
from sunset.forms import verify_csrf
from sunset.lib import expiration

logger = logging.getLogger(__name__)

EXPIRATION_FIELD = "expiration_datetime"


async def _get_managed_page(request: Request, db_session: AsyncSession, page_id: UUID) -> Page:
    """Load a page that can carry an expiration, or raise a 404."""
    settings: Settings = request.app.state.settings
    page = await page_service.get_page_by_id(db_session, page_id)
    if not page or page.type != settings.expiration.content_type:
        raise NotFoundException("Page not found")
    return page


class PageAdminController(Controller):
    """Admin screens for pages."""

    path = "/admin"
    guards = [auth_guard]

    @get("/pages")
    async def list_pages(
        self,
        request: Request,
        db_session: AsyncSession,
        orderby: str | None = None,
        order: str = "asc",
    ) -> TemplateResponse:
        """List pages with their expiration status.

        Only the managed content type gets an expiration column; other
        types show none. ``?orderby=expiration`` sorts by expiration date,
        listing pages without one last whichever the direction.
        """
        settings: Settings = request.app.state.settings
        content_type = settings.expiration.content_type
        now = expiration.civil_now(settings.expiration.utc_offset)

        pages = await page_service.list_pages(db_session)
        items = [
            item if item.type == content_type else replace(item, expires_at=None)
            for item in await expiration_service.load_items(db_session, pages)
        ]
        if orderby == "expiration":
            items = expiration.sort_by_expiration(items, descending=order == "desc")

        by_id = {page.id: page for page in pages}
        rows = [
            (by_id[item.id], expiration.describe(item, now) if item.type == content_type else None)
            for item in items
        ]

        return TemplateResponse(
            "admin/pages/list.html",
            context={
                "rows": rows,
                "orderby": orderby,
                "order": order,
                "offset_label": expiration.offset_label(settings.expiration.utc_offset),
            },
        )

    @get("/pages/{page_id:uuid}/expiration")
    async def edit_expiration(
        self, request: Request, db_session: AsyncSession, page_id: UUID
    ) -> TemplateResponse:
        """Show the expiration panel of a page."""
        page = await _get_managed_page(request, db_session, page_id)
        if not await can_edit_page(db_session, request, page):
            raise NotAuthorizedException("You don't have permission to edit this page")

        settings: Settings = request.app.state.settings
        now = expiration.civil_now(settings.expiration.utc_offset)
        expires_at = await expiration_service.get_expiration(db_session, page.id)
        item = expiration.ContentItem(id=page.id, status=page.status, type=page.type, expires_at=expires_at)

        return TemplateResponse(
            "admin/pages/edit.html",
            context={
                "page": page,
                "field_name": EXPIRATION_FIELD,
                "input_value": expiration.to_input_value(expires_at),
                "column": expiration.describe(item, now),
                "offset_label": expiration.offset_label(settings.expiration.utc_offset),
            },
        )

    @post("/pages/{page_id:uuid}/expiration")
    async def save_expiration(
        self, request: Request, db_session: AsyncSession, page_id: UUID
    ) -> Redirect:
        """Save the expiration panel.

        A missing or stale CSRF token or a user without edit rights gets
        sent back to the panel with nothing saved.
        """
        page = await _get_managed_page(request, db_session, page_id)
        redirect = Redirect(path=f"/admin/pages/{page_id}/expiration")

        if not await verify_csrf(request):
            logger.info("Skipped expiration save for page %s: invalid CSRF token", page_id)
            return redirect
        if not await can_edit_page(db_session, request, page):
            logger.info("Skipped expiration save for page %s: not permitted", page_id)
            return redirect

        form_data = await request.form()
        submitted = form_data.get(EXPIRATION_FIELD)
        await expiration_service.save_submitted_expiration(
            db_session, page.id, submitted if isinstance(submitted, str) else None
        )
        return redirect
