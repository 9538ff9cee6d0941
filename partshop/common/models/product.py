from sqlalchemy import Column, DateTime, ForeignKey, Integer, JSON, Numeric, String, Text, func
from .base import Base


class Product(Base):
    __tablename__ = "products"

    id = Column(String(36), primary_key=True)
    name = Column(String(255), nullable=False)
    slug = Column(String(255), nullable=False, unique=True)
    description = Column(Text, nullable=True)
    price = Column(Numeric(12, 2), nullable=False)
    category_id = Column(String(36), ForeignKey("categories.id"), nullable=True)
    # vehicle fitment
    make = Column(String(128), nullable=True)
    model = Column(String(128), nullable=True)
    year = Column(Integer, nullable=True)
    condition = Column(String(32), nullable=True)
    stock = Column(Integer, nullable=False, default=0)
    images = Column(JSON, nullable=True)
    created_at = Column(DateTime, nullable=False, server_default=func.now())
    updated_at = Column(DateTime, nullable=False, server_default=func.now())
