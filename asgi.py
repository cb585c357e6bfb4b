"""Module-level app for ASGI servers: ``uvicorn asgi:app``. Settings come from the environment."""

from app import create_app

app = create_app()
