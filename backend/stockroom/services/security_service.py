# Overview: Service-layer operations for security auditing; encapsulates business logic and database work.

"""
Security Event Logging with Tenant Context

WHY: Every denied tenant decision leaves an audit trail. Events carry the
shop the caller tried to reach so cross-shop probing can be spotted.

DESIGN PRINCIPLES:
- Denials never touch the caller's session: record_denial() logs a warning
  and queues the event on g; flush_pending_events() writes the queue once
  the failed unit of work has been rolled back
- Append-only: events are never updated
- Request context is optional: services may log outside a request (CLI)
"""

from __future__ import annotations

from datetime import timedelta

from flask import current_app, g, has_request_context, request

from ..extensions import db
from ..models import SecurityEvent
from stockroom.time_utils import utcnow


def _request_fields() -> dict:
    if not has_request_context():
        return {}
    return {
        "resource": request.path,
        "action": request.method,
        "ip_address": request.remote_addr,
        "user_agent": request.headers.get("User-Agent"),
    }


def log_security_event(
    user_id: int | None,
    event_type: str,
    success: bool,
    resource: str | None = None,
    action: str | None = None,
    reason: str | None = None,
    ip_address: str | None = None,
    user_agent: str | None = None,
    shop_id: int | None = None,
) -> SecurityEvent:
    """
    Log security event to audit trail with tenant context.

    Commits immediately, so only call it after the caller's own work is
    committed (e.g. MEMBERSHIP_ACCEPTED). Denials go through record_denial().
    """
    event = SecurityEvent(
        user_id=user_id,
        shop_id=shop_id,
        event_type=event_type,
        resource=resource,
        action=action,
        success=success,
        reason=reason,
        ip_address=ip_address,
        user_agent=user_agent,
        occurred_at=utcnow()
    )

    db.session.add(event)
    db.session.commit()

    return event


def log_request_event(
    user_id: int | None,
    event_type: str,
    success: bool,
    reason: str | None = None,
    shop_id: int | None = None,
) -> SecurityEvent:
    """log_security_event with resource/action/client filled from the current request."""
    return log_security_event(
        user_id=user_id,
        event_type=event_type,
        success=success,
        reason=reason,
        shop_id=shop_id,
        **_request_fields(),
    )


def record_denial(
    user_id: int | None,
    event_type: str,
    reason: str,
    shop_id: int | None = None,
) -> None:
    """
    Note a denied decision without touching the database session.

    event_type examples:
    - TENANT_MISSING
    - TENANT_ACCESS_DENIED
    - RESOURCE_MISMATCH
    - LOGIN_FAILED
    """
    current_app.logger.warning(
        "%s user=%s shop=%s: %s", event_type, user_id, shop_id, reason
    )
    pending = g.setdefault("pending_security_events", [])
    pending.append(dict(
        user_id=user_id,
        shop_id=shop_id,
        event_type=event_type,
        success=False,
        reason=reason,
        occurred_at=utcnow(),
        **_request_fields(),
    ))


def pending_events() -> list[dict]:
    return list(g.get("pending_security_events", []))


def flush_pending_events() -> int:
    """
    Persist queued denials.

    Rolls back whatever the failed operation left in the session first, so
    only the audit rows are committed. Returns the number written.
    """
    pending = g.pop("pending_security_events", [])
    if not pending:
        return 0

    db.session.rollback()
    for fields in pending:
        db.session.add(SecurityEvent(**fields))
    db.session.commit()
    return len(pending)


def list_security_events(*, shop_id: int | None = None, event_type: str | None = None, limit: int = 50) -> list[SecurityEvent]:
    """Newest events first, optionally narrowed to one shop or event type."""
    query = db.session.query(SecurityEvent)
    if shop_id is not None:
        query = query.filter(SecurityEvent.shop_id == shop_id)
    if event_type:
        query = query.filter(SecurityEvent.event_type == event_type)
    return query.order_by(SecurityEvent.occurred_at.desc(), SecurityEvent.id.desc()).limit(limit).all()


def cleanup_security_events(*, retention_days: int = 90) -> int:
    """Delete security events older than retention_days."""
    cutoff = utcnow() - timedelta(days=retention_days)
    deleted = db.session.query(SecurityEvent).filter(
        SecurityEvent.occurred_at < cutoff
    ).delete()
    db.session.commit()
    return deleted
