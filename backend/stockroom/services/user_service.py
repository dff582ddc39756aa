from __future__ import annotations

from ..extensions import db
from ..errors import ConflictError, NotFoundError, ValidationError
from ..models import InventoryRecord, User
from ..validation import ModelValidationPolicy, validate_payload
from .auth_service import hash_password, validate_email, validate_password_strength


USER_POLICY = ModelValidationPolicy(
    writable_fields={"username", "email", "phone_number", "uid", "permission"},
    required_on_create={"username", "email"},
    aliases={"phoneNumber": "phone_number"},
)


def list_users() -> list[User]:
    return db.session.query(User).order_by(User.id.asc()).all()


def get_user(user_id: int) -> User:
    user = db.session.get(User, user_id)
    if not user:
        raise NotFoundError("User not found")
    return user


def get_user_by_uid(uid: str) -> User:
    user = db.session.query(User).filter(User.uid == uid).first()
    if not user:
        raise NotFoundError("User not found")
    return user


def _check_unique(patch: dict, user_id: int | None = None) -> None:
    if "email" in patch:
        query = db.session.query(User).filter(User.email == patch["email"])
        if user_id is not None:
            query = query.filter(User.id != user_id)
        if query.first():
            raise ConflictError("User with this email already exists")

    if patch.get("uid"):
        query = db.session.query(User).filter(User.uid == patch["uid"])
        if user_id is not None:
            query = query.filter(User.id != user_id)
        if query.first():
            raise ConflictError("User with this uid already exists")


def _split_password(payload: dict | None) -> tuple[dict, str | None]:
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")
    payload = dict(payload)
    return payload, payload.pop("password", None)


def create_user(payload: dict) -> User:
    payload, password = _split_password(payload)
    patch = validate_payload(model=User, payload=payload, policy=USER_POLICY, partial=False)
    patch["email"] = validate_email(patch["email"])
    _check_unique(patch)

    user = User(**patch)
    if password is not None:
        validate_password_strength(password)
        user.password_hash = hash_password(password)

    db.session.add(user)
    db.session.commit()
    return user


def update_user(user_id: int, payload: dict) -> User:
    user = get_user(user_id)
    payload, password = _split_password(payload)
    patch = validate_payload(model=User, payload=payload, policy=USER_POLICY, partial=True)
    if "email" in patch:
        patch["email"] = validate_email(patch["email"])
    _check_unique(patch, user_id=user.id)

    for key, value in patch.items():
        setattr(user, key, value)
    if password is not None:
        validate_password_strength(password)
        user.password_hash = hash_password(password)

    db.session.commit()
    return user


def delete_user(user_id: int) -> None:
    user = get_user(user_id)

    # Keep inventory history; drop the attribution only
    db.session.query(InventoryRecord).filter(InventoryRecord.user_id == user.id).update(
        {InventoryRecord.user_id: None}, synchronize_session=False
    )
    db.session.delete(user)
    db.session.commit()
