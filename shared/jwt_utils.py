"""
Access-token verification.

Tokens are issued elsewhere; this service checks the signature, plus the
issuer and audience when they are configured, then reads the owner number
from the ``sub`` claim (``userNo`` / ``user_no`` for tokens that carry the
number under its own name).
"""

from __future__ import annotations

from typing import Any

import jwt

from config import JWTSettings

OWNER_CLAIMS = ("sub", "userNo", "user_no")


def _verification_key(settings: JWTSettings) -> tuple[Any, str]:
    if settings.use_rs256:
        # Support keys provided via env with literal \n sequences
        return settings.jwt_public_key.replace("\\n", "\n").encode("utf-8"), "RS256"
    if not settings.jwt_secret:
        raise RuntimeError("JWT_SECRET must be set when no RS256 public key is provided")
    return settings.jwt_secret, "HS256"


def verify_access_jwt(token: str, settings: JWTSettings) -> dict:
    """Decode and validate an access token. Raises ``jwt.PyJWTError`` on failure."""
    key, algorithm = _verification_key(settings)
    return jwt.decode(
        token,
        key,
        algorithms=[algorithm],
        audience=settings.jwt_audience or None,
        issuer=settings.jwt_issuer or None,
        options={
            "verify_aud": bool(settings.jwt_audience),
            # integer subjects are accepted; owner_id_from_claims validates them
            "verify_sub": False,
        },
    )


def owner_id_from_claims(claims: dict) -> int:
    """Extract the integer owner id from the first owner claim present."""
    raw = next((claims[name] for name in OWNER_CLAIMS if claims.get(name) is not None), None)
    if raw is None:
        raise ValueError("token has no subject")
    if isinstance(raw, bool):
        raise ValueError("invalid subject")
    try:
        owner_id = int(raw)
    except (TypeError, ValueError):
        raise ValueError("invalid subject") from None
    if owner_id <= 0:
        raise ValueError("invalid subject")
    return owner_id
