"""CSRF protection for admin forms.

A token is kept in the session and rendered as a hidden input. A submission
is accepted only if it carries the current token, which is then rotated so
each token works once.
"""

import hmac
import secrets

from litestar import Request
from markupsafe import Markup

CSRF_SESSION_KEY = "_csrf_token"
CSRF_FIELD_NAME = "_csrf"


def get_csrf_token(request: Request) -> str:
    """Return the session's CSRF token, creating one if needed."""
    if CSRF_SESSION_KEY not in request.session:
        request.session[CSRF_SESSION_KEY] = secrets.token_urlsafe(32)
    return request.session[CSRF_SESSION_KEY]


def csrf_field(request: Request) -> Markup:
    """Hidden input carrying the session's CSRF token."""
    token = get_csrf_token(request)
    return Markup(f'<input type="hidden" name="{CSRF_FIELD_NAME}" value="{token}">')


async def verify_csrf(request: Request) -> bool:
    """Check the submitted token against the session token.

    Returns True if the token is valid. Rotates the token on success.
    """
    form_data = await request.form()
    submitted_token = form_data.get(CSRF_FIELD_NAME, "")
    stored_token = request.session.get(CSRF_SESSION_KEY, "")

    if not stored_token or not hmac.compare_digest(str(submitted_token), str(stored_token)):
        return False

    request.session[CSRF_SESSION_KEY] = secrets.token_urlsafe(32)
    return True
