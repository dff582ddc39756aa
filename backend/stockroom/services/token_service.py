# Overview: Service-layer operations for access/refresh tokens; encapsulates signing and verification.

"""
Access and Refresh Token Service

Tokens are signed JWTs carrying {id, email, shopId, type}. The shopId claim
is the caller's default shop. It is one input to tenant resolution and never
proof of membership: every shop-scoped request re-checks the membership row
(see tenant_service).

SECURITY NOTES:
- Signing secret, algorithm and expiry windows come from app config, which
  create_app validates once at startup
- Refresh tokens are rejected where an access token is required and vice versa
- Expired and malformed tokens are distinguished only in the error message
"""

from __future__ import annotations

from dataclasses import dataclass

import jwt
from flask import current_app

from ..config import parse_duration
from ..errors import AuthenticationError
from stockroom.time_utils import utcnow


ACCESS_TOKEN_TYPE = "access"
REFRESH_TOKEN_TYPE = "refresh"


@dataclass(frozen=True)
class TokenClaims:
    """Verified token payload."""
    id: int
    email: str
    shop_id: int | None
    type: str


def _sign(user_id: int, email: str, shop_id: int | None, token_type: str, expires_key: str) -> str:
    now = utcnow()
    payload = {
        "id": user_id,
        "email": email,
        "shopId": shop_id or None,
        "type": token_type,
        "iat": now,
        "exp": now + parse_duration(current_app.config[expires_key]),
    }
    return jwt.encode(
        payload,
        current_app.config["JWT_SECRET_KEY"],
        algorithm=current_app.config["JWT_ALGORITHM"],
    )


def issue_access_token(user_id: int, email: str, shop_id: int | None = None) -> str:
    return _sign(user_id, email, shop_id, ACCESS_TOKEN_TYPE, "JWT_ACCESS_EXPIRES_IN")


def issue_refresh_token(user_id: int, email: str, shop_id: int | None = None) -> str:
    return _sign(user_id, email, shop_id, REFRESH_TOKEN_TYPE, "JWT_REFRESH_EXPIRES_IN")


def issue_token_pair(user_id: int, email: str, shop_id: int | None = None) -> dict:
    return {
        "accessToken": issue_access_token(user_id, email, shop_id),
        "refreshToken": issue_refresh_token(user_id, email, shop_id),
    }


def verify_token(token: str, expected_type: str | None = None) -> TokenClaims:
    """
    Verify signature and expiry and return the claims.

    Raises AuthenticationError("Token has expired") or
    AuthenticationError("Invalid token").
    """
    if not token:
        raise AuthenticationError("No token provided")

    try:
        decoded = jwt.decode(
            token,
            current_app.config["JWT_SECRET_KEY"],
            algorithms=[current_app.config["JWT_ALGORITHM"]],
            options={"require": ["exp", "id"]},
        )
    except jwt.ExpiredSignatureError:
        raise AuthenticationError("Token has expired") from None
    except jwt.InvalidTokenError:
        raise AuthenticationError("Invalid token") from None

    token_type = decoded.get("type") or ACCESS_TOKEN_TYPE
    if expected_type is not None and token_type != expected_type:
        raise AuthenticationError("Invalid token type")

    user_id = decoded.get("id")
    if not isinstance(user_id, int) or isinstance(user_id, bool):
        raise AuthenticationError("Invalid token")

    return TokenClaims(
        id=user_id,
        email=decoded.get("email") or "",
        shop_id=decoded.get("shopId"),
        type=token_type,
    )
