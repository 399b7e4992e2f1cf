"""Queue state model (pause flag per queue)."""

from sqlalchemy import Column, String, Boolean, DateTime

from hiring_api.config.database import Base
from .base import utcnow


class QueueState(Base):
    """Runtime state shared by every worker consuming a queue."""

    __tablename__ = "queue_states"

    name = Column(String(100), primary_key=True)
    is_paused = Column(Boolean, nullable=False, default=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    def __repr__(self) -> str:
        return f"<QueueState(name={self.name}, paused={self.is_paused})>"
