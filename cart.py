"""
Client-side cart.

The cart is an ordered list of *units*: adding the same menu item twice stores
two lines with the same id, and the quantity of an item is the number of lines
carrying its id. Totals are module-level functions so the cart page and the
checkout page compute them the same way.
"""
from typing import Dict, List, NamedTuple, Optional

from pydantic import BaseModel

from api_client import PreconditionError
from models import MenuItem, Order

TAX_RATE = 0.08

COUPONS: Dict[str, int] = {
    "COFFEE10": 10,
    "WELCOME20": 20,
    "SAVE15": 15,
}

SESSION_CART = "cart"
SESSION_COUPON = "coupon"


class CartLine(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    price: float
    image: Optional[str] = None

    @classmethod
    def from_menu_item(cls, item: MenuItem) -> "CartLine":
        return cls(
            id=item.id,
            name=item.name,
            description=item.description,
            price=float(item.price),
            image=item.image_url,
        )


class GroupedLine(NamedTuple):
    item: CartLine
    quantity: int

    @property
    def line_total(self) -> float:
        return self.item.price * self.quantity


# -----------------------
# Pure totals
# -----------------------
def subtotal_of(lines: List[CartLine]) -> float:
    return sum(line.price for line in lines)


def tax_of(subtotal: float) -> float:
    return subtotal * TAX_RATE


def discount_of(subtotal: float, percent: int) -> float:
    return subtotal * (percent / 100)


def total_of(subtotal: float, percent: int = 0) -> float:
    return subtotal + tax_of(subtotal) - discount_of(subtotal, percent)


def group_lines(lines: List[CartLine]) -> List[GroupedLine]:
    """Collapse repeated ids into (item, quantity), first-seen order."""
    counts: Dict[int, int] = {}
    first: Dict[int, CartLine] = {}
    for line in lines:
        if line.id not in counts:
            first[line.id] = line
            counts[line.id] = 0
        counts[line.id] += 1
    return [GroupedLine(first[i], n) for i, n in counts.items()]


def lookup_coupon(code: str) -> Optional[str]:
    canonical = (code or "").strip().upper()
    return canonical if canonical in COUPONS else None


# -----------------------
# Cart
# -----------------------
class Cart:
    def __init__(self, lines: Optional[List[CartLine]] = None, coupon_code: Optional[str] = None):
        self.lines: List[CartLine] = list(lines or [])
        self.coupon_code = lookup_coupon(coupon_code) if coupon_code else None

    @classmethod
    def from_session(cls, session) -> "Cart":
        lines = [CartLine.model_validate(d) for d in session.get(SESSION_CART, [])]
        return cls(lines, session.get(SESSION_COUPON))

    def save(self, session):
        session[SESSION_CART] = [line.model_dump() for line in self.lines]
        if self.coupon_code:
            session[SESSION_COUPON] = self.coupon_code
        else:
            session.pop(SESSION_COUPON, None)

    # mutations
    def add(self, item):
        if isinstance(item, MenuItem):
            item = CartLine.from_menu_item(item)
        elif isinstance(item, dict):
            item = CartLine.model_validate(item)
        self.lines.append(item)

    def remove(self, item_id: int):
        self.lines = [line for line in self.lines if line.id != item_id]

    def change_quantity(self, item_id: int, delta: int):
        existing = [line for line in self.lines if line.id == item_id]
        if not existing or delta == 0:
            return
        if len(existing) + delta <= 0:
            self.remove(item_id)
        elif delta > 0:
            self.lines.append(existing[0].model_copy())
        else:
            self.lines.remove(existing[0])

    def clear(self):
        self.lines = []
        self.coupon_code = None

    def extend_from_order(self, order: Order):
        """Reorder: one unit per quantity, at the price the order was placed at."""
        for item in order.items:
            if item.menu_item is None:
                continue
            line = CartLine(
                id=item.menu_item.id,
                name=item.menu_item.name,
                description=item.menu_item.description,
                price=float(item.price_at_order or item.menu_item.price),
                image=item.menu_item.image_url,
            )
            self.lines.extend(line.model_copy() for _ in range(item.quantity))

    # coupons
    def apply_coupon(self, code: str) -> int:
        canonical = lookup_coupon(code)
        if canonical is None:
            self.coupon_code = None
            raise PreconditionError("Invalid coupon code")
        self.coupon_code = canonical
        return COUPONS[canonical]

    def remove_coupon(self):
        self.coupon_code = None

    @property
    def discount_percent(self) -> int:
        return COUPONS.get(self.coupon_code, 0) if self.coupon_code else 0

    # views
    def __len__(self) -> int:
        return len(self.lines)

    def is_empty(self) -> bool:
        return not self.lines

    def grouped(self) -> List[GroupedLine]:
        return group_lines(self.lines)

    def quantity_of(self, item_id: int) -> int:
        return sum(1 for line in self.lines if line.id == item_id)

    def subtotal(self) -> float:
        return subtotal_of(self.lines)

    def tax(self) -> float:
        return tax_of(self.subtotal())

    def discount_amount(self) -> float:
        return discount_of(self.subtotal(), self.discount_percent)

    def total(self) -> float:
        return total_of(self.subtotal(), self.discount_percent)

    def summary(self) -> dict:
        return {
            "count": len(self),
            "items": [
                {"id": g.item.id, "name": g.item.name, "price": g.item.price, "quantity": g.quantity}
                for g in self.grouped()
            ],
            "subtotal": round(self.subtotal(), 2),
            "tax": round(self.tax(), 2),
            "coupon": self.coupon_code,
            "discountPercent": self.discount_percent,
            "discount": round(self.discount_amount(), 2),
            "total": round(self.total(), 2),
        }
