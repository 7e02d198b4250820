import logging

from litestar import Request, Response
from litestar.exceptions import HTTPException
from litestar.status_codes import HTTP_500_INTERNAL_SERVER_ERROR

from sunset.lib import observability

logger = logging.getLogger(__name__)


def _accepts_html(request: Request) -> bool:
    """Check if the request accepts HTML responses (browser request)."""
    return "text/html" in request.headers.get("accept", "")


def _render_error(request: Request, status_code: int, message: str) -> Response:
    if _accepts_html(request):
        template = request.app.template_engine.get_template("error.html")
        content = template.render(
            status_code=status_code,
            message=message,
            site_name=request.app.state.settings.site_name,
        )
        return Response(content=content, status_code=status_code, media_type="text/html")

    return Response(
        content={"status_code": status_code, "detail": message},
        status_code=status_code,
        media_type="application/json",
    )


def http_exception_handler(request: Request, exc: HTTPException) -> Response:
    """Handle HTTP exceptions with HTML for browsers, JSON for APIs."""
    detail = exc.detail if isinstance(exc.detail, str) else str(exc.detail)
    return _render_error(request, exc.status_code, detail)


def internal_server_error_handler(request: Request, exc: Exception) -> Response:
    """Log an unexpected exception and answer with a generic 500."""
    method, path = request.method, request.url.path
    if not observability.exception("Unhandled exception on {method} {path}", method=method, path=path):
        logger.exception("Unhandled exception on %s %s", method, path, exc_info=exc)

    if _accepts_html(request):
        return _render_error(request, HTTP_500_INTERNAL_SERVER_ERROR, "An unexpected error occurred.")
    return _render_error(request, HTTP_500_INTERNAL_SERVER_ERROR, "Internal Server Error")


EXCEPTION_HANDLERS = {
    HTTPException: http_exception_handler,
    Exception: internal_server_error_handler,
}
