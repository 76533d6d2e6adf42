"""
FastAPI dependency providers.

All injectable dependencies are defined here as plain functions used with
FastAPI's Depends() system. Services are built once in the app lifespan
and read from ``app.state``.
"""

from __future__ import annotations

from datetime import tzinfo
from typing import Optional

import jwt
from fastapi import Request

from config import AppSettings
from errors import AuthenticationError
from services.ad_service import AdService
from services.stats_service import StatsService
from services.tracking_service import TrackingService
from shared.jwt_utils import owner_id_from_claims, verify_access_jwt
from shared.logging import get_logger

log = get_logger(__name__)


def get_ad_service(request: Request) -> AdService:
    return request.app.state.services.ads


def get_stats_service(request: Request) -> StatsService:
    return request.app.state.services.stats


def get_tracking_service(request: Request) -> TrackingService:
    return request.app.state.services.tracking


def get_reference_tz(request: Request) -> tzinfo:
    return request.app.state.settings.tracking.tz


def _bearer_token(request: Request) -> Optional[str]:
    header = request.headers.get("Authorization", "")
    if header.lower().startswith("bearer "):
        token = header[7:].strip()
        if token:
            return token
    return request.cookies.get("access_token") or None


def get_current_owner(request: Request) -> int:
    """Resolve the authenticated owner number from the access token."""
    token = _bearer_token(request)
    if not token:
        raise AuthenticationError("Unauthorized")

    settings: AppSettings = request.app.state.settings
    try:
        claims = verify_access_jwt(token, settings.jwt)
        return owner_id_from_claims(claims)
    except (jwt.PyJWTError, ValueError) as e:
        log.info("auth_token_rejected", error_type=type(e).__name__)
        raise AuthenticationError("Unauthorized") from e
