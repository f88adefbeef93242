from sqlalchemy import Column, DateTime, Integer, String

from omnichat.core.database import Base
from omnichat.models._time import utcnow


class Tenant(Base):
    __tablename__ = "tenants"

    id = Column(Integer, primary_key=True)
    name = Column(String, nullable=False)
    owner_email = Column(String, nullable=False, default="")

    business_type = Column(String(20), nullable=False, default="product")  # product | service
    plan = Column(String(20), nullable=False, default="starter")  # starter | pro | business
    status = Column(String(20), nullable=False, default="active")  # active | inactive | suspended

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
