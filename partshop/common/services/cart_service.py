"""Session cart operations on top of the ``Cart`` engine."""

from decimal import Decimal
from typing import Dict, MutableMapping

from ..errors import ValidationError
from .cart import Cart
from .catalog_service import CatalogService, quantity_cap


CART_KEY = "cart"


class CartService:
    """Cart operations for one session store.

    The store is any mutable mapping that lives as long as the shopper's
    session (the Flask session in production). The cart is restored from it
    at the start of each call and written back after every mutation.
    """

    def __init__(self, catalog: CatalogService, max_quantity: int = 10):
        self._catalog = catalog
        self._max_quantity = max_quantity

    @staticmethod
    def load(store: MutableMapping) -> Cart:
        return Cart.from_dict(store.get(CART_KEY))

    @staticmethod
    def save(store: MutableMapping, cart: Cart) -> None:
        store[CART_KEY] = cart.to_dict()

    @staticmethod
    def describe(cart: Cart) -> Dict:
        return {
            "items": [
                {
                    "product_id": line.product_id,
                    "name": line.name,
                    "unit_price": float(line.unit_price),
                    "quantity": line.quantity,
                    "line_total": float(line.line_total),
                }
                for line in cart.lines
            ],
            "total": float(cart.total),
            "line_count": cart.line_count,
            "state": cart.state.value,
        }

    def get_cart(self, store: MutableMapping) -> Dict:
        return self.describe(self.load(store))

    def add_item(self, store: MutableMapping, *, product_id: str, quantity=None) -> Dict:
        try:
            qnty = 1 if quantity is None else int(quantity)
        except (TypeError, ValueError):
            raise ValidationError({"quantity": "Quantity must be a whole number"})
        if qnty <= 0:
            raise ValidationError({"quantity": "Quantity must be at least 1"})
        product = self._catalog.get_product(product_id)
        cart = self.load(store)
        cap = quantity_cap(product["stock"], self._max_quantity)
        if cap == 0:
            raise ValidationError({"quantity": "This product is out of stock"})
        if cart.quantity_of(product["id"]) + qnty > cap:
            raise ValidationError({"quantity": f"You can add at most {cap} of this product"})
        cart.add_item(product["id"], product["name"], Decimal(str(product["price"])), qnty)
        self.save(store, cart)
        return self.describe(cart)

    def update_item(self, store: MutableMapping, *, product_id: str, quantity) -> Dict:
        try:
            qnty = int(quantity)
        except (TypeError, ValueError):
            raise ValidationError({"quantity": "Quantity must be a whole number"})
        cart = self.load(store)
        if qnty > 0 and cart.quantity_of(product_id):
            cap = quantity_cap(self._catalog.get_product(product_id)["stock"], self._max_quantity)
            if qnty > cap:
                raise ValidationError({"quantity": f"You can order at most {cap} of this product"})
        cart.update_quantity(product_id, qnty)
        self.save(store, cart)
        return self.describe(cart)

    def remove_item(self, store: MutableMapping, *, product_id: str) -> Dict:
        cart = self.load(store)
        cart.remove_item(product_id)
        self.save(store, cart)
        return self.describe(cart)

    def clear(self, store: MutableMapping) -> Dict:
        cart = self.load(store)
        cart.clear()
        self.save(store, cart)
        return self.describe(cart)
