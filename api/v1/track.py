"""
GET /api/track — tracking pixel endpoint.

The response is always 204 once a code is supplied: a pixel must never
break the page that embeds it, so lookup misses and store failures are
logged here and not reported to the visitor.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query, Request, Response

from dependencies import get_tracking_service
from errors import AppError, NotFoundError, ValidationError
from services.tracking_service import TrackingService
from shared.ip_utils import get_client_ip
from shared.logging import get_logger, hash_ip

log = get_logger(__name__)

router = APIRouter(tags=["tracking"])


@router.get("/track", status_code=204, response_class=Response)
async def track_visit(
    request: Request,
    ad_code: str = Query(default="", alias="adCode"),
    service: TrackingService = Depends(get_tracking_service),
) -> Response:
    code = ad_code.strip()
    if not code:
        raise ValidationError("adCode required", field="adCode")

    client_ip = get_client_ip(request)
    try:
        await service.ingest_visit(code, client_ip)
    except NotFoundError:
        log.info("track_unknown_code", ad_code=code, ip_hash=hash_ip(client_ip))
    except AppError as e:
        log.error(
            "track_ingest_failed",
            ad_code=code,
            error=e.message,
            error_code=e.error_code,
            cause=type(e.__cause__).__name__ if e.__cause__ else None,
        )
    return Response(status_code=204)
