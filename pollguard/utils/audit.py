import uuid
from typing import Optional, Dict, Any

from flask import current_app, g, has_request_context, request

from ..extensions import db
from ..models.audit_log import AuditLog


def _as_uuid(value) -> Optional[uuid.UUID]:
    if value is None or isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except ValueError:
        return None


def audit_log(
    action: str,
    entity_type: Optional[str] = None,
    entity_id=None,
    details: Optional[Dict[str, Any]] = None,
    actor_id=None,
) -> None:
    """
    Stage an audit row in the current session.

    The caller commits it together with the change it describes. The actor
    defaults to the identity resolved for this request, if any.
    """
    ip = ua = request_id = None
    if has_request_context():
        if actor_id is None:
            identity = g.get("identity")
            actor_id = identity.id if identity is not None else None
        ip = request.headers.get("X-Forwarded-For", request.remote_addr)
        ua = request.headers.get("User-Agent")
        request_id = g.get("request_id")

    log = AuditLog(
        actor_user_id=_as_uuid(actor_id),
        action=action,
        entity_type=entity_type,
        entity_id=_as_uuid(entity_id),
        ip_address=ip[:64] if ip else None,
        user_agent=ua[:255] if ua else None,
        request_id=request_id,
        details=details or None,
    )
    db.session.add(log)


def safe_audit(action: str, entity_type: str, entity_id=None, details: dict | None = None, actor_id=None):
    """
    Best-effort audit for paths that make no other change (denied or failed
    attempts). A failing audit write never fails the request.
    """
    try:
        audit_log(
            action=action,
            entity_type=entity_type,
            entity_id=entity_id,
            details=details or {},
            actor_id=actor_id,
        )
        db.session.commit()
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Audit logging failed: %s", action)
