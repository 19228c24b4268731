"""
Volunteer model: one row per (event, user) membership.

Key design decisions:
- Unique constraint on (event_pk, user_id) means a uid can appear on an
  event's roster at most once, even under concurrent joins
- `points_awarded` records what the join credited so leave debits the same
  amount even if the event's points were edited in between
"""

from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship

from volunteer_api.db.base import Base, utcnow


class Volunteer(Base):
    __tablename__ = "event_volunteers"

    id = Column(Integer, primary_key=True, index=True)
    event_pk = Column(Integer, ForeignKey("events.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(String(128), nullable=False, index=True)  # the user's uid
    user_email = Column(String(255), nullable=False, default="")
    user_name = Column(String(255), nullable=False, default="")
    points_awarded = Column(Integer, nullable=False, default=0)
    joined_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    event = relationship("Event", back_populates="volunteer_list")

    __table_args__ = (
        UniqueConstraint("event_pk", "user_id", name="uq_event_volunteer"),
    )

    def __repr__(self) -> str:
        return f"<Volunteer(event={self.event_pk}, user={self.user_id})>"
