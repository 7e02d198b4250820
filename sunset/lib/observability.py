"""Observability facade wrapping Pydantic Logfire.

Spans and log calls become no-ops until :func:`configure` runs with
Logfire enabled in the settings.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import TYPE_CHECKING, Any

import logfire

if TYPE_CHECKING:
    from sunset.config import Settings

_configured = False


def is_available() -> bool:
    return _configured


def configure(settings: Settings) -> None:
    """Initialize logfire from the ``logfire`` settings section."""
    global _configured

    if not settings.logfire.enabled:
        return

    kwargs: dict[str, Any] = {
        "service_name": settings.logfire.service_name,
        "send_to_logfire": "if-token-present",
    }
    if settings.logfire.environment:
        kwargs["environment"] = settings.logfire.environment
    if settings.logfire.sample_rate != 1.0:
        kwargs["sampling"] = logfire.SamplingOptions(head=settings.logfire.sample_rate)
    if settings.logfire.console:
        kwargs["console"] = logfire.ConsoleOptions()

    logfire.configure(**kwargs)
    _configured = True


def instrument_app(app):
    """Wrap an ASGI app with logfire instrumentation when enabled."""
    if not is_available():
        return app
    return logfire.instrument_asgi(app)


@contextmanager
def span(name: str, **attrs: Any):
    """Context manager that yields a logfire span, or None when disabled."""
    if is_available():
        with logfire.span(name, **attrs) as s:
            yield s
    else:
        yield None


def info(msg: str, **kwargs: Any) -> None:
    if is_available():
        logfire.info(msg, **kwargs)


def exception(msg: str, **kwargs: Any) -> bool:
    """Log an exception with traceback. Returns True if it was sent."""
    if is_available():
        logfire.exception(msg, **kwargs)
        return True
    return False
