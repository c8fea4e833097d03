"""FastAPI dependencies for API key authentication.

Every Admin API route requires the shared secret, given either as the
``api_key`` query parameter or the ``X-API-Key`` header.

Usage:
    app = FastAPI(dependencies=[Depends(require_api_key)])
"""

import secrets
from typing import Optional

from fastapi import Header, Query, Request


class AccessDeniedError(Exception):
    """Raised when a request carries no valid API key."""
    pass


def require_api_key(
    request: Request,
    api_key: Optional[str] = Query(None, include_in_schema=False),
    x_api_key: Optional[str] = Header(None, include_in_schema=False),
) -> None:
    """Reject requests whose API key does not match the configured one.

    Raises:
        AccessDeniedError: If the key is missing or wrong
    """
    expected = request.app.state.settings.API_KEY
    submitted = api_key or x_api_key

    if not expected or not submitted:
        raise AccessDeniedError()
    if not secrets.compare_digest(submitted.strip().encode(), expected.encode()):
        raise AccessDeniedError()
