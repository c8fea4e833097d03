"""Observability API endpoints.

Provides Prometheus metrics and a health check.
"""

from fastapi import APIRouter, Request, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

router = APIRouter(tags=["Observability"])


@router.get("/metrics", include_in_schema=False)
def metrics():
    """Expose Prometheus metrics in text exposition format."""
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST
    )


@router.get("/health")
def health_check(request: Request):
    """Report liveness and whether the mail root exists yet."""
    mail_root = request.app.state.mail_reader.store.mail_root
    return {"status": "ok", "mail_root": mail_root.is_dir()}
