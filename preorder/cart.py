"""Cart state for one shopping session."""
import logging
from decimal import Decimal
from typing import Dict, List, Tuple

from preorder.models import Book, CartItem, OrderLine

logger = logging.getLogger(__name__)


class CartLedger:
    """
    Selected books and their quantities.

    Items are keyed by Book.id, so a re-fetched copy of a book merges with
    the one already in the cart. Totals are derived on every read.
    """

    def __init__(self):
        self._items: Dict[str, CartItem] = {}

    def add(self, book: Book) -> CartItem:
        """Add one copy, merging with an existing line for the same id."""
        item = self._items.get(book.id)
        if item is None:
            item = CartItem(book=book, quantity=1)
            self._items[book.id] = item
        else:
            item.quantity += 1
        logger.debug(f"Cart: {book.id} x{item.quantity}")
        return item

    def set_quantity(self, book_id: str, quantity: int):
        """Set a line's quantity, never below 1. Unknown ids are ignored."""
        item = self._items.get(book_id)
        if item is None:
            return
        item.quantity = max(1, int(quantity))

    def remove(self, book_id: str):
        self._items.pop(book_id, None)

    def clear(self):
        self._items.clear()

    def is_empty(self) -> bool:
        return not self._items

    def __len__(self) -> int:
        return len(self._items)

    def __contains__(self, book_id: str) -> bool:
        return book_id in self._items

    def items(self) -> List[CartItem]:
        return list(self._items.values())

    def quantity_of(self, book_id: str) -> int:
        item = self._items.get(book_id)
        return item.quantity if item else 0

    def item_count(self) -> int:
        """Total copies across all lines."""
        return sum(item.quantity for item in self._items.values())

    def compute_total(self) -> Decimal:
        """Sum of the per-line subtotals shown to the user."""
        return sum((item.subtotal for item in self._items.values()), Decimal("0"))

    def to_order_snapshot(self) -> Tuple[OrderLine, ...]:
        """Immutable copy of the current lines."""
        return tuple(item.to_line() for item in self._items.values())
