# duka/core/auth.py

from dataclasses import dataclass

from fastapi import Depends, HTTPException, status

from duka.core.jwt import decode_access_token
from duka.core.oauth2 import oauth2_scheme


@dataclass(frozen=True)
class CurrentUser:
    uid: str
    email: str | None = None


def get_current_user(
    token: str = Depends(oauth2_scheme),
) -> CurrentUser:
    payload = decode_access_token(token)

    if payload is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
        )

    user_id = payload.get("sub")

    if not user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token payload",
        )

    return CurrentUser(uid=str(user_id), email=payload.get("email"))
