from sqlalchemy import Column, DateTime, ForeignKey, JSON, Numeric, String, func
from .base import Base


ORDER_STATUSES = ("pending", "processing", "shipped", "delivered", "cancelled")


class Order(Base):
    __tablename__ = "orders"

    id = Column(String(36), primary_key=True)
    user_id = Column(String(36), ForeignKey("users.id"), nullable=False)
    items = Column(JSON, nullable=False)
    total_amount = Column(Numeric(12, 2), nullable=False)
    currency = Column(String(3), nullable=False)
    shipping_address = Column(JSON, nullable=False)
    billing_address = Column(JSON, nullable=False)
    status = Column(String(32), nullable=False)
    payment_status = Column(String(32), nullable=False)
    created_at = Column(DateTime, nullable=False, server_default=func.now())
    paid_at = Column(DateTime, nullable=True)
    external_payment_id = Column(String(255), nullable=True)
