from fastapi import Depends, Header, HTTPException, Request, status

from shortener.services.realtime import ConnectionManager
from shortener.services.tokens import AccessTokenData, TokenError, decode_access_token


def _parse_bearer(authorization: str | None) -> str:
    if not authorization:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing token",
        )
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid Authorization header",
        )
    return token


def get_current_user(
    authorization: str | None = Header(default=None),
) -> AccessTokenData:
    token = _parse_bearer(authorization)
    try:
        return decode_access_token(token)
    except TokenError as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(exc),
        ) from exc


def get_optional_user(
    authorization: str | None = Header(default=None),
) -> AccessTokenData | None:
    if not authorization:
        return None
    return get_current_user(authorization)


def require_admin(user: AccessTokenData = Depends(get_current_user)) -> AccessTokenData:
    if user.role != "admin":
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required",
        )
    return user


def get_connection_manager(request: Request) -> ConnectionManager:
    return request.app.state.connections
