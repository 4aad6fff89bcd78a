"""ASGI entrypoint for the water tracker API."""

from water_tracker.api.app import create_app
from water_tracker.containers import build_container

app = create_app(build_container())
