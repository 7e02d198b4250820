from litestar import Controller, Request, Response, get
from litestar.exceptions import NotFoundException
from litestar.response import Template as TemplateResponse
from sqlalchemy.ext.asyncio import AsyncSession

from sunset.db.services import menu_service, page_service
from sunset.lib.hooks import hooks, PAGE_ACCESS, PUBLIC_REQUEST


class WebController(Controller):
    path = "/"

    async def _public_context(self, db_session: AsyncSession) -> dict:
        """Run per-request public hooks and build the shared template context."""
        await hooks.do_action(PUBLIC_REQUEST, db_session)
        nav_items = await menu_service.get_menu_items(db_session, "primary")
        return {"nav_items": nav_items}

    async def _render_single(
        self,
        request: Request,
        db_session: AsyncSession,
        slug: str,
        page_type: str,
        template_name: str,
    ) -> Response:
        # Resolved whatever its status, so an unpublished page still reaches
        # the access filter before visitors get a 404
        page = await page_service.get_page_by_slug(db_session, slug)
        if not page or page.type != page_type:
            raise NotFoundException(f"'{slug}' not found")

        ctx = await self._public_context(db_session)

        override = await hooks.apply_filters(PAGE_ACCESS, None, page, db_session)
        if override is not None:
            return override

        # Logged-in editors may preview unpublished content
        if not page.is_published and not request.session.get("user_id"):
            raise NotFoundException(f"'{slug}' not found")

        return TemplateResponse(template_name, context={"page": page, **ctx})

    @get("/")
    async def index(self, request: Request, db_session: AsyncSession) -> TemplateResponse:
        """Home page with the latest public posts."""
        ctx = await self._public_context(db_session)
        posts = await page_service.list_pages(
            db_session,
            page_type="post",
            public=True,
            order_by="published",
            limit=10,
        )
        return TemplateResponse("index.html", context={"posts": posts, **ctx})

    @get("/post/{slug:str}")
    async def view_post(
        self, request: Request, db_session: AsyncSession, slug: str
    ) -> Response:
        """View a single post by slug."""
        return await self._render_single(request, db_session, slug, "post", "post.html")

    @get("/page/{path:path}")
    async def view_page(
        self, request: Request, db_session: AsyncSession, path: str
    ) -> Response:
        """View a page by its (possibly nested) slug."""
        slug = "/".join(s for s in path.split("/") if s)
        return await self._render_single(request, db_session, slug, "page", "page.html")
