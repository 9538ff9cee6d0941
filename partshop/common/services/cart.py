"""In-memory shopping cart for one storefront session.

The cart holds at most one line per product. Adding a product that is already
present merges into the existing line. ``total`` is recomputed on every read.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple


class CartState(str, Enum):
    EMPTY = "empty"
    POPULATED = "populated"


@dataclass
class CartLine:
    product_id: str
    name: str
    unit_price: Decimal
    quantity: int

    @property
    def line_total(self) -> Decimal:
        return self.unit_price * self.quantity

    def to_dict(self) -> Dict[str, Any]:
        return {
            "product_id": self.product_id,
            "name": self.name,
            "unit_price": str(self.unit_price),
            "quantity": self.quantity,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CartLine":
        return cls(
            product_id=str(data["product_id"]),
            name=str(data.get("name") or ""),
            unit_price=Decimal(str(data.get("unit_price", "0"))),
            quantity=int(data.get("quantity", 1)),
        )


class Cart:
    def __init__(self, lines: Optional[List[CartLine]] = None) -> None:
        self._lines: List[CartLine] = []
        for line in lines or []:
            self.add_item(line.product_id, line.name, line.unit_price, line.quantity)

    def _find(self, product_id: str) -> Optional[CartLine]:
        for line in self._lines:
            if line.product_id == product_id:
                return line
        return None

    def add_item(self, product_id: str, name: str, unit_price: Decimal, quantity: int = 1) -> CartLine:
        """Append a line, or grow the existing line for ``product_id``.

        Price and name are snapshotted on first add; later adds of the same
        product keep the original snapshot.
        """
        existing = self._find(product_id)
        if existing is not None:
            existing.quantity += quantity
            return existing
        line = CartLine(product_id=product_id, name=name, unit_price=Decimal(str(unit_price)), quantity=quantity)
        self._lines.append(line)
        return line

    def update_quantity(self, product_id: str, new_quantity: int) -> None:
        """Set a line's quantity. Non-positive quantities remove the line;
        unknown products are ignored."""
        line = self._find(product_id)
        if line is None:
            return
        if new_quantity <= 0:
            self.remove_item(product_id)
            return
        line.quantity = new_quantity

    def remove_item(self, product_id: str) -> None:
        self._lines = [line for line in self._lines if line.product_id != product_id]

    def clear(self) -> None:
        self._lines = []

    def quantity_of(self, product_id: str) -> int:
        line = self._find(product_id)
        return line.quantity if line else 0

    @property
    def lines(self) -> Tuple[CartLine, ...]:
        return tuple(self._lines)

    @property
    def line_count(self) -> int:
        return len(self._lines)

    @property
    def total(self) -> Decimal:
        return sum((line.line_total for line in self._lines), Decimal("0"))

    @property
    def state(self) -> CartState:
        return CartState.POPULATED if self._lines else CartState.EMPTY

    @property
    def is_empty(self) -> bool:
        return not self._lines

    def snapshot(self) -> List[Dict[str, Any]]:
        """Line items handed to checkout (id, name, quantity, price)."""
        return [
            {
                "product_id": line.product_id,
                "name": line.name,
                "quantity": line.quantity,
                "unit_price": float(line.unit_price),
            }
            for line in self._lines
        ]

    def to_dict(self) -> Dict[str, Any]:
        return {"lines": [line.to_dict() for line in self._lines]}

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "Cart":
        raw = (data or {}).get("lines") or []
        return cls([CartLine.from_dict(item) for item in raw])
