import uuid
from datetime import datetime
from ..extensions import db


class Vote(db.Model):
    __tablename__ = "votes"

    id = db.Column(db.Uuid, primary_key=True, default=uuid.uuid4)

    poll_id = db.Column(db.Uuid, db.ForeignKey("polls.id", ondelete="CASCADE"), nullable=False)
    option_index = db.Column(db.Integer, nullable=False)

    # Authenticated voter (optional); anonymous votes leave this NULL
    user_id = db.Column(db.Uuid, nullable=True, index=True)

    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    __table_args__ = (
        # One vote per user per poll (NULL user ids are not compared)
        db.UniqueConstraint("poll_id", "user_id", name="uq_votes_poll_user"),
        db.CheckConstraint("option_index >= 0", name="ck_votes_option_index"),
        db.Index("ix_votes_poll_id", "poll_id"),
    )
