from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String

from omnichat.core.database import Base
from omnichat.models._time import utcnow


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(Integer, ForeignKey("tenants.id"), nullable=False, index=True)

    name = Column(String, nullable=False)
    email = Column(String, unique=True, index=True, nullable=False)

    role = Column(String, nullable=False, default="owner")  # owner | order_manager | accountant
    active = Column(Boolean, nullable=False, default=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
