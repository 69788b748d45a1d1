"""ASGI entrypoint for the recipe photos API."""

from recipe_photos.api.app import create_app
from recipe_photos.containers import build_container

app = create_app(build_container())
