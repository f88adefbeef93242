from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Index, Integer, String
from sqlalchemy.orm import relationship

from omnichat.core.database import Base
from omnichat.models._time import utcnow

CONVERSATION_ACTIVE = "active"
CONVERSATION_PAUSED = "paused"
CONVERSATION_ARCHIVED = "archived"


class Conversation(Base):
    __tablename__ = "conversations"
    __table_args__ = (Index("ix_conversations_tenant_customer", "tenant_id", "customer_id"),)

    id = Column(Integer, primary_key=True)
    tenant_id = Column(Integer, ForeignKey("tenants.id"), nullable=False, index=True)

    # opaque id from the channel (phone number, PSID, IGSID)
    customer_id = Column(String, nullable=False)
    customer_name = Column(String, nullable=True)
    channel = Column(String(20), nullable=False)  # whatsapp | instagram | messenger | chat

    status = Column(String(20), nullable=False, default=CONVERSATION_ACTIVE)
    paused_for_human = Column(Boolean, nullable=False, default=False)

    last_message_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    messages = relationship(
        "Message",
        back_populates="conversation",
        cascade="all, delete-orphan",
        order_by="Message.id",
    )

    @property
    def is_paused(self) -> bool:
        return bool(self.paused_for_human) or self.status == CONVERSATION_PAUSED
