"""
Named monotonic sequences backing the USR###/EVT### business ids.
"""

from sqlalchemy import Column, Integer, String

from volunteer_api.db.base import Base


class Counter(Base):
    __tablename__ = "counters"

    name = Column(String(50), primary_key=True)
    value = Column(Integer, nullable=False, default=0)

    def __repr__(self) -> str:
        return f"<Counter(name={self.name}, value={self.value})>"
