# Overview: Service-layer operations for auth; encapsulates business logic and database work.

"""
Authentication Service

WHY: Every action must be attributable. Uses bcrypt for password hashing and
issues signed access/refresh tokens on register, login and refresh.

SECURITY NOTES:
- Passwords hashed with bcrypt (cost factor from BCRYPT_ROUNDS, default 12)
- Minimum 8 characters required
- Emails are globally unique; login is by email
- The token's shopId is the caller's first membership (by join order), a
  default only. Authorization happens per request in tenant_service.
"""

from __future__ import annotations

import re

import bcrypt
from flask import current_app, has_app_context

from ..extensions import db
from ..errors import AuthenticationError, ConflictError, NotFoundError, ValidationError
from ..models import User, UserShop
from . import token_service
from .security_service import record_denial


MIN_PASSWORD_LENGTH = 8
DEFAULT_BCRYPT_ROUNDS = 12

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def validate_password_strength(password: str) -> None:
    if not isinstance(password, str) or len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters long")


def validate_email(email: str) -> str:
    email = (email or "").strip().lower()
    if not _EMAIL_RE.match(email):
        raise ValidationError("A valid email is required")
    return email


def hash_password(password: str, rounds: int | None = None) -> str:
    """
    Hash password using bcrypt.

    Cost factor comes from BCRYPT_ROUNDS when running inside an app.
    """
    if rounds is None:
        rounds = current_app.config.get("BCRYPT_ROUNDS", DEFAULT_BCRYPT_ROUNDS) if has_app_context() else DEFAULT_BCRYPT_ROUNDS
    salt = bcrypt.gensalt(rounds=rounds)
    hashed = bcrypt.hashpw(password.encode('utf-8'), salt)
    return hashed.decode('utf-8')  # Store as string in database


def verify_password(password: str, password_hash: str | None) -> bool:
    """
    Verify password against bcrypt hash.

    Returns True if password matches hash, False otherwise (including
    malformed hashes and accounts without a password).
    """
    if not password or not password_hash:
        return False
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        return False


def first_shop_id(user_id: int) -> int | None:
    """Shop of the user's earliest membership, the default tenant for new tokens."""
    row = (
        db.session.query(UserShop.shop_id)
        .filter(UserShop.user_id == user_id)
        .order_by(UserShop.created_at.asc(), UserShop.id.asc())
        .first()
    )
    return row[0] if row else None


def _auth_response(user: User) -> dict:
    shop_id = first_shop_id(user.id)
    tokens = token_service.issue_token_pair(user.id, user.email, shop_id)
    return {
        **tokens,
        "user": user.to_dict(),
    }


def register(username: str, email: str, password: str, phone_number: str | None = None) -> dict:
    """
    Create a new user account and sign them in.

    Raises:
        ValidationError: missing username, bad email, weak password
        ConflictError: email already registered
    """
    username = (username or "").strip()
    if not username:
        raise ValidationError("username is required")
    email = validate_email(email)
    validate_password_strength(password)

    existing = db.session.query(User).filter(User.email == email).first()
    if existing:
        raise ConflictError("User with this email already exists")

    user = User(
        username=username,
        email=email,
        password_hash=hash_password(password),
        phone_number=(phone_number or None),
    )
    db.session.add(user)
    db.session.commit()

    return _auth_response(user)


def authenticate(email: str, password: str) -> User | None:
    """Return the user when credentials are valid, None otherwise."""
    email = (email or "").strip().lower()
    user = db.session.query(User).filter(User.email == email).first()
    if not user:
        return None
    if verify_password(password, user.password_hash):
        return user
    return None


def login(email: str, password: str) -> dict:
    user = authenticate(email, password)
    if not user:
        record_denial(None, "LOGIN_FAILED", "Invalid email or password")
        raise AuthenticationError("Invalid email or password")
    return _auth_response(user)


def refresh(refresh_token: str) -> dict:
    """
    Exchange a refresh token for a new access token.

    The shop claim is carried over from the refresh token; when the token has
    none, the user's first membership is used.
    """
    if not refresh_token:
        raise ValidationError("Refresh token is required")

    claims = token_service.verify_token(refresh_token, expected_type=token_service.REFRESH_TOKEN_TYPE)

    user = db.session.get(User, claims.id)
    if not user:
        raise AuthenticationError("User not found")

    shop_id = claims.shop_id or first_shop_id(user.id)
    return {
        "accessToken": token_service.issue_access_token(user.id, user.email, shop_id),
    }


def get_current_user(user_id: int) -> User:
    user = db.session.get(User, user_id)
    if not user:
        raise NotFoundError("User not found")
    return user


def change_password(user_id: int, current_password: str, new_password: str) -> None:
    user = get_current_user(user_id)

    if not user.password_hash:
        raise ValidationError("No password set for this account")

    if not verify_password(current_password, user.password_hash):
        raise AuthenticationError("Current password is incorrect")

    validate_password_strength(new_password)

    user.password_hash = hash_password(new_password)
    db.session.commit()
