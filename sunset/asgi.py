"""ASGI entry point: ``hypercorn sunset.asgi:app``."""

from sunset.app_factory import create_app
from sunset.lib import observability

app = observability.instrument_app(create_app())
