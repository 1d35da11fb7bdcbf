"""
Utility helpers shared across routers/services.
"""

from typing import Optional

from .config import get_settings


def absolute_url(path: str, base: Optional[str] = None) -> str:
    """
    Turn a relative path into an absolute URL on the frontend origin.
    """
    base_url = (base or get_settings().frontend_url).rstrip("/")
    if not path:
        return base_url + "/"
    if path.startswith("http://") or path.startswith("https://"):
        return path
    if not path.startswith("/"):
        path = "/" + path
    return base_url + path


def client_ip(forwarded_for: str | None, host: str | None) -> str:
    if forwarded_for:
        return forwarded_for.split(",")[0].strip()
    return host or "unknown"
