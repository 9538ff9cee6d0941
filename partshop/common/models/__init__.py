from .base import Base
from .category import Category
from .lead import Lead, LeadAssignment
from .order import Order
from .product import Product
from .user import Profile

__all__ = ["Base", "Category", "Lead", "LeadAssignment", "Order", "Product", "Profile"]
