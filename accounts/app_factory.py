"""Entry point for ASGI servers: ``uvicorn accounts.app_factory:app``."""
from accounts.app import create_app

app = create_app()

__all__ = ["app", "create_app"]
