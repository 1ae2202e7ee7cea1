import uuid
from datetime import datetime
from ..extensions import db


class AuditLog(db.Model):
    __tablename__ = "audit_logs"

    id = db.Column(db.Uuid, primary_key=True, default=uuid.uuid4)

    # Who performed the action (nullable for anonymous voters and failed logins)
    actor_user_id = db.Column(db.Uuid, nullable=True, index=True)

    action = db.Column(db.String(80), nullable=False, index=True)  # e.g. POLL_CREATED
    entity_type = db.Column(db.String(50), nullable=True, index=True)  # POLL, VOTE, AUTH
    entity_id = db.Column(db.Uuid, nullable=True, index=True)

    ip_address = db.Column(db.String(64), nullable=True)
    user_agent = db.Column(db.String(255), nullable=True)
    request_id = db.Column(db.String(64), nullable=True)

    details = db.Column(db.JSON, nullable=True)

    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow, index=True)
