from sqlalchemy import Column, DateTime, String

from omnichat.core.database import Base
from omnichat.models._time import utcnow


class ProcessedMessage(Base):
    __tablename__ = "processed_messages"

    message_id = Column(String, primary_key=True)
    channel = Column(String(20), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
