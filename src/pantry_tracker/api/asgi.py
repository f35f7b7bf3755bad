"""ASGI entrypoint: ``uvicorn pantry_tracker.api.asgi:app``."""

from pantry_tracker.api.app import create_app
from pantry_tracker.app_logging import configure_logging
from pantry_tracker.config import Settings
from pantry_tracker.containers import build_container

settings = Settings()
configure_logging(settings.log_level)

app = create_app(build_container(settings))
