# app/core/auth.py
from dataclasses import dataclass
from typing import Any

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import jwt, JWTError

from app.core.config import get_settings
from app.core.errors import Unauthenticated, Unauthorized

settings = get_settings()

# Parsed once at import; every AuthorizationContext shares it
ADMIN_USER_IDS: frozenset[str] = settings.admin_user_ids

# HTTP Bearer scheme:
# - auto_error=False => missing Authorization header will NOT raise immediately
#   so we can support "guest" mode (unauthenticated).
bearer_scheme = HTTPBearer(auto_error=False)


def decode_access_token(token: str) -> dict[str, Any]:
    """
    Decode and verify an identity-provider access token (JWT).

    Verification:
      - signature (HS256 using SUPABASE_JWT_SECRET)
      - expiration time (exp)
      - audience is NOT verified ('aud' varies between providers)

    Args:
        token: raw JWT from the Authorization header.

    Returns:
        Decoded JWT claims.

    Raises:
        HTTPException(401): if token is invalid/expired.
    """
    try:
        return jwt.decode(
            token,
            settings.SUPABASE_JWT_SECRET,
            algorithms=[settings.SUPABASE_JWT_ALG],
            options={"verify_aud": False},
        )
    except JWTError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
        )


def get_current_user_id(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> str | None:
    """
    Resolve the caller's identity id from the bearer JWT.

    Flow:
      1. If no Authorization header => guest => return None.
      2. Decode JWT => return the 'sub' claim.

    The id is used as-is as the owner key of carts and orders.

    Raises:
        HTTPException(401): if token is malformed or has no subject.
    """
    if credentials is None:
        return None  # guest mode

    payload = decode_access_token(credentials.credentials)
    sub = payload.get("sub")

    if not sub:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token missing sub",
        )
    return str(sub)


def require_auth(user_id: str | None = Depends(get_current_user_id)) -> str:
    """
    Enforce authentication.

    If attached to a route, guests (missing JWT) will be rejected with 401.
    """
    if user_id is None:
        raise Unauthenticated()
    return user_id


@dataclass(frozen=True)
class AuthorizationContext:
    """
    Who is calling, and which identities may administer the catalog.

    Built per request from the allow-list parsed once at startup, then
    handed explicitly to every admin operation.
    """

    user_id: str | None
    admin_ids: frozenset[str]

    @property
    def is_admin(self) -> bool:
        return self.user_id is not None and self.user_id in self.admin_ids

    def require_admin(self) -> str:
        """Return the caller id, or raise Unauthorized."""
        if not self.is_admin:
            raise Unauthorized()
        return self.user_id  # type: ignore[return-value]


def get_authorization_context(
    user_id: str | None = Depends(get_current_user_id),
) -> AuthorizationContext:
    return AuthorizationContext(user_id=user_id, admin_ids=ADMIN_USER_IDS)


def require_admin(
    ctx: AuthorizationContext = Depends(get_authorization_context),
) -> AuthorizationContext:
    """
    Route-level admin gate.

    Services re-check through the same context before touching data.
    """
    ctx.require_admin()
    return ctx
