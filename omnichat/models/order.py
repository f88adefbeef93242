from sqlalchemy import Column, DateTime, ForeignKey, Integer, Numeric, String

from omnichat.core.database import Base
from omnichat.models._time import utcnow

ORDER_STATUSES = ("pending", "confirmed", "completed", "cancelled")


class Order(Base):
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True)
    tenant_id = Column(Integer, ForeignKey("tenants.id"), nullable=False, index=True)

    # product may be deleted later; the name snapshot keeps the history readable
    product_id = Column(Integer, ForeignKey("products.id", ondelete="SET NULL"), nullable=True)
    product_name = Column(String, nullable=False)

    quantity = Column(Integer, nullable=False)
    price = Column(Numeric(10, 2), nullable=False)
    cost = Column(Numeric(10, 2), nullable=False, default=0)
    revenue = Column(Numeric(10, 2), nullable=False)
    profit = Column(Numeric(10, 2), nullable=False)

    customer_name = Column(String, nullable=False)
    customer_phone = Column(String, nullable=False)
    channel = Column(String(20), nullable=False)
    status = Column(String(20), nullable=False, default="pending")

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
