"""
User model: a profile keyed by the identity provider's uid.

Key design decisions:
- `uid` is unique so concurrent first logins cannot create two profiles
- `my_events`/`joined_events` hold event codes (EVT001...) as JSON arrays,
  each paired with a counter that moves in the same transaction
- `version` column enables optimistic locking for the paired updates
"""

from sqlalchemy import Column, Integer, String, DateTime, CheckConstraint
from sqlalchemy.ext.mutable import MutableList
from sqlalchemy.types import JSON

from volunteer_api.db.base import Base, TimestampMixin, utcnow


class User(Base, TimestampMixin):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String(32), unique=True, index=True, nullable=False)
    uid = Column(String(128), unique=True, index=True, nullable=False)
    email = Column(String(255), nullable=False)
    display_name = Column(String(255), nullable=False, default="")
    photo_url = Column(String(1024), nullable=False, default="")
    auth_provider = Column(String(50), nullable=False, default="email")
    phone = Column(String(50), nullable=False, default="")
    location = Column(String(255), nullable=False, default="")

    my_events = Column(MutableList.as_mutable(JSON), nullable=False, default=list)
    joined_events = Column(MutableList.as_mutable(JSON), nullable=False, default=list)
    total_events_created = Column(Integer, nullable=False, default=0)
    total_events_joined = Column(Integer, nullable=False, default=0)
    total_points = Column(Integer, nullable=False, default=0)

    joined_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    last_login = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    # Optimistic locking version counter
    version = Column(Integer, nullable=False, default=1)

    __table_args__ = (
        CheckConstraint("total_events_created >= 0", name="check_events_created_non_negative"),
        CheckConstraint("total_events_joined >= 0", name="check_events_joined_non_negative"),
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, user_id={self.user_id}, uid={self.uid})>"
