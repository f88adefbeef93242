from sqlalchemy import Column, DateTime, ForeignKey, Integer, Numeric, String

from omnichat.core.database import Base
from omnichat.models._time import utcnow

APPOINTMENT_STATUSES = ("pending", "confirmed", "completed", "cancelled")


class Appointment(Base):
    __tablename__ = "appointments"

    id = Column(Integer, primary_key=True)
    tenant_id = Column(Integer, ForeignKey("tenants.id"), nullable=False, index=True)

    service_id = Column(Integer, ForeignKey("services.id", ondelete="SET NULL"), nullable=True)
    service_name = Column(String, nullable=False)

    customer_name = Column(String, nullable=False)
    customer_phone = Column(String, nullable=False)
    date = Column(DateTime(timezone=True), nullable=False)
    duration = Column(Integer, nullable=False)
    price = Column(Numeric(10, 2), nullable=False)
    channel = Column(String(20), nullable=False)
    status = Column(String(20), nullable=False, default="pending")

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
