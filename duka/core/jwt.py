# duka/core/jwt.py
#
# Operators sign in with the shop's identity provider, which issues
# HS256/HS512 access tokens carrying the operator id in `sub`. The API
# only verifies them; issuing is kept for local tooling and tests.

import logging
from datetime import datetime, timedelta, timezone

from jose import ExpiredSignatureError, JWTError, jwt

from duka.core.config import settings

logger = logging.getLogger("duka")
TOKEN_TYPE = "access"


def create_access_token(claims: dict, expires_delta: timedelta | None = None) -> str:
    lifetime = expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)

    payload = {
        **claims,
        "exp": datetime.now(timezone.utc) + lifetime,
        "type": TOKEN_TYPE,
    }

    return jwt.encode(payload, settings.AUTH_SECRET_KEY, algorithm=settings.AUTH_ALGORITHM)


def decode_access_token(token: str) -> dict | None:
    """Verified claims of an operator token, or None when it must be refused."""
    try:
        claims = jwt.decode(
            token,
            settings.AUTH_SECRET_KEY,
            algorithms=[settings.AUTH_ALGORITHM],
            options={"require_exp": True},
        )
    except ExpiredSignatureError:
        logger.info("Rejected expired access token")
        return None
    except JWTError as exc:
        logger.warning(f"Rejected access token: {exc}")
        return None

    if claims.get("type") != TOKEN_TYPE:
        return None

    return claims
