"""Data models for the pre-order storefront."""
import json
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from pathlib import Path
from typing import Optional, Tuple, Dict, Any

WHOLE_UNIT = Decimal("1")


def to_decimal(value) -> Decimal:
    """Coerce a price-like value to Decimal without float artifacts."""
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def clamp_percent(value: int) -> int:
    """Clamp a discount percentage into 0..100."""
    return max(0, min(100, int(value or 0)))


def effective_unit_price(book: "Book") -> Decimal:
    """
    Price of one copy after the book's discount.

    Discounted prices are rounded to a whole currency unit, halves up,
    capped at the base price. Undiscounted prices are returned unchanged.
    """
    price = to_decimal(book.price)
    pct = clamp_percent(book.discount_percent)
    if pct == 0:
        return price
    discounted = price * (100 - pct) / 100
    # Rounding up must never lift a fractional price above its base
    return min(discounted.quantize(WHOLE_UNIT, rounding=ROUND_HALF_UP), price)


@dataclass(frozen=True)
class Book:
    """Normalized catalog entry."""
    id: str
    title: str
    author: str
    summary: str = ""
    genre: str = ""
    location: str = ""
    price: Decimal = Decimal("0")
    discount_percent: int = 0
    image_ref: str = ""

    @property
    def unit_price(self) -> Decimal:
        return effective_unit_price(self)


@dataclass
class CartItem:
    """A book in the cart with its quantity."""
    book: Book
    quantity: int = 1

    @property
    def unit_price(self) -> Decimal:
        return effective_unit_price(self.book)

    @property
    def subtotal(self) -> Decimal:
        return self.unit_price * self.quantity

    def to_line(self) -> "OrderLine":
        return OrderLine(
            book_id=self.book.id,
            title=self.book.title,
            author=self.book.author,
            quantity=self.quantity,
            unit_price=self.unit_price,
        )


@dataclass(frozen=True)
class OrderLine:
    """One row of an order snapshot."""
    book_id: str
    title: str
    author: str
    quantity: int
    unit_price: Decimal

    @property
    def subtotal(self) -> Decimal:
        return self.unit_price * self.quantity

    def to_dict(self) -> Dict[str, Any]:
        """Wire format used by the reservation endpoint."""
        return {
            "id": self.book_id,
            "title": self.title,
            "author": self.author,
            "qty": self.quantity,
            "price": _json_number(self.unit_price),
        }


@dataclass(frozen=True)
class ContactInfo:
    """Customer contact fields."""
    full_name: str = ""
    email: str = ""
    phone: str = ""
    social_handle: Optional[str] = None

    def missing_required(self) -> Tuple[str, ...]:
        """Names of required fields left blank."""
        required = {
            "full name": self.full_name,
            "email": self.email,
            "contact number": self.phone,
        }
        return tuple(name for name, value in required.items() if not value.strip())


@dataclass(frozen=True)
class OrderPayload:
    """Everything sent to the reservation endpoint for one submit attempt."""
    source_id: str
    contact: ContactInfo
    pickup: str
    notes: str
    lines: Tuple[OrderLine, ...]
    total: Decimal
    payment_file: Optional[Path] = None

    def to_form_fields(self) -> Dict[str, str]:
        """Multipart form fields, excluding the payment file part."""
        return {
            "sheetId": self.source_id,
            "fullName": self.contact.full_name,
            "email": self.contact.email,
            "phone": self.contact.phone,
            "fbName": self.contact.social_handle or "",
            "pickup": self.pickup,
            "notes": self.notes,
            "cart": json.dumps([line.to_dict() for line in self.lines]),
            "total": str(_json_number(self.total)),
        }


@dataclass(frozen=True)
class OrderResult:
    """Acknowledgement returned by the reservation endpoint."""
    order_id: Optional[str]
    message: str


def _json_number(value: Decimal):
    # Whole amounts go over the wire as ints, everything else as floats
    if value == value.to_integral_value():
        return int(value)
    return float(value)
