from __future__ import annotations
import hmac
from fastapi import Request
from .exceptions import Unauthorized
from ..config import get_admin_token


def require_admin(authorization: str | None = None) -> None:
    """Validate the administrator token from the ``Authorization`` header."""

    if not authorization or not authorization.startswith("Bearer "):
        raise Unauthorized("Invalid token")

    expected = get_admin_token()
    if not expected or not hmac.compare_digest(authorization[7:], expected):
        raise Unauthorized("Administrator permission required")


def client_ip(request: Request) -> str | None:
    """Return the address the request came from."""
    return request.client.host if request.client else None
