"""Request-scoped dependencies shared by the route modules.

Functions:
    get_pipeline(request): Return the matching pipeline built during application start-up.
    raise_http_error(exc): Translate service-layer exceptions into HTTP errors.
"""

from __future__ import annotations

from typing import NoReturn

from fastapi import HTTPException, Request, status

from app.core.errors import DimensionMismatch, UpstreamUnavailable
from app.services.processing import MatchingPipeline


def get_pipeline(request: Request) -> MatchingPipeline:
    pipeline = getattr(request.app.state, "pipeline", None)
    if pipeline is None:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Matching pipeline not initialised")
    return pipeline


def raise_http_error(exc: Exception) -> NoReturn:
    if isinstance(exc, PermissionError):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(exc)) from exc
    if isinstance(exc, UpstreamUnavailable):
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail={"stage": exc.stage, "service": exc.service, "message": exc.message},
        ) from exc
    if isinstance(exc, DimensionMismatch):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    message = str(exc)
    if "not found" in message.lower():
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=message) from exc
    raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=message) from exc
