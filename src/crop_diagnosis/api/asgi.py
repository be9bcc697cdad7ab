"""ASGI entrypoint for the crop diagnosis API."""

from crop_diagnosis.api.app import create_app
from crop_diagnosis.containers import build_container

app = create_app(build_container())
