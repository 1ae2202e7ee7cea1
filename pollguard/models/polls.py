import uuid
from datetime import datetime
from ..extensions import db


class Poll(db.Model):
    __tablename__ = "polls"

    id = db.Column(db.Uuid, primary_key=True, default=uuid.uuid4)

    # Owner is fixed at creation; updates never touch this column
    user_id = db.Column(db.Uuid, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    question = db.Column(db.String(500), nullable=False)
    # Ordered option labels; a vote refers to one by its index
    options = db.Column(db.JSON, nullable=False, default=list)

    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow, index=True)
    updated_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    votes = db.relationship(
        "Vote",
        backref="poll",
        lazy=True,
        cascade="all, delete-orphan",
    )

    def has_option(self, index: int) -> bool:
        return 0 <= index < len(self.options or [])
