from typing import Any, Dict, Optional, TypedDict

from fastapi import Depends, HTTPException, Request, status
from jose import JWTError

from app.core.config import get_settings
from .jwks_cache import JWKSCache

ACCESS_COOKIE_NAME = "access_token"


class Claims(TypedDict, total=False):
    sub: str
    email: str
    role: str
    user_metadata: Dict[str, Any]


def build_jwks_cache() -> JWKSCache:
    settings = get_settings()
    return JWKSCache(
        settings.jwks_url,
        ttl_seconds=3600,
        api_key=settings.supabase_anon_key,
        hs_secret=settings.supabase_jwt_secret,
    )


def get_jwks(request: Request) -> JWKSCache:
    jwks = getattr(request.app.state, "jwks", None)
    if jwks is None:
        jwks = build_jwks_cache()
        request.app.state.jwks = jwks
    return jwks


def _extract_bearer_or_cookie(request: Request) -> Optional[str]:
    auth = request.headers.get("Authorization", "")
    if auth.startswith("Bearer "):
        return auth.removeprefix("Bearer ").strip()
    return request.cookies.get(ACCESS_COOKIE_NAME)


async def get_current_claims(request: Request, jwks: JWKSCache = Depends(get_jwks)) -> Claims:
    token = _extract_bearer_or_cookie(request)
    if not token:
        raise HTTPException(status.HTTP_401_UNAUTHORIZED, "Missing token")
    try:
        claims = await jwks.verify(token, audience=get_settings().jwt_audience)
    except JWTError:
        raise HTTPException(status.HTTP_401_UNAUTHORIZED, "Invalid token")
    except Exception as exc:  # noqa: BLE001 - key fetch / config problems
        raise HTTPException(status.HTTP_401_UNAUTHORIZED, f"Token verification failed: {exc}")
    if not claims.get("sub"):
        raise HTTPException(status.HTTP_401_UNAUTHORIZED, "Token missing sub")
    return claims
