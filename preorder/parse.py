"""Parse and normalize reservation API responses."""
import logging
import uuid
from decimal import Decimal, InvalidOperation
from typing import Dict, Any, List, Optional

from preorder.errors import CatalogLoadFailure
from preorder.models import Book, OrderResult, clamp_percent

logger = logging.getLogger(__name__)

DISCOUNT_KEYS = ("discountPercent", "discountPct", "discount")
FALLBACK_ORDER_MESSAGE = "Order submitted. Thank you!"


def new_book_id() -> str:
    """Synthesize an id for a record that arrived without one."""
    return uuid.uuid4().hex


def _text(record: Dict[str, Any], key: str) -> str:
    value = record.get(key)
    if value is None:
        return ""
    return str(value).strip()


def _price(value) -> Decimal:
    if value is None or value == "":
        return Decimal("0")
    try:
        price = Decimal(str(value).replace(",", "").strip())
    except InvalidOperation:
        logger.warning(f"Unparseable price {value!r}, defaulting to 0")
        return Decimal("0")
    if not price.is_finite() or price < 0:
        logger.warning(f"Invalid price {value!r}, defaulting to 0")
        return Decimal("0")
    return price


def _discount(record: Dict[str, Any]) -> int:
    for key in DISCOUNT_KEYS:
        raw = record.get(key)
        if raw in (None, ""):
            continue
        try:
            pct = Decimal(str(raw).rstrip("%").strip())
        except InvalidOperation:
            logger.warning(f"Unparseable discount {raw!r}, ignoring")
            return 0
        if not pct.is_finite():
            logger.warning(f"Invalid discount {raw!r}, ignoring")
            return 0
        return clamp_percent(int(pct))
    if record.get("discounted") not in (None, ""):
        # Pre-discounted prices are not reconciled with the base price
        logger.warning(
            f"Ignoring pre-discounted price on {record.get('title')!r}; "
            "discounts must be given as a percentage"
        )
    return 0


def parse_book(record: Dict[str, Any]) -> Optional[Book]:
    """
    Parse a single book record from the Book Inventory sheet.

    Args:
        record: One row of the catalog response

    Returns:
        Book object, or None if the record is not a mapping
    """
    if not isinstance(record, dict):
        logger.warning(f"Skipping non-object catalog record: {record!r}")
        return None

    book_id = _text(record, "id") or new_book_id()

    return Book(
        id=book_id,
        title=_text(record, "title"),
        author=_text(record, "author"),
        summary=_text(record, "summary"),
        genre=_text(record, "genre"),
        location=_text(record, "location"),
        price=_price(record.get("price")),
        discount_percent=_discount(record),
        image_ref=_text(record, "image"),
    )


def parse_catalog_response(response_json: Any) -> List[Book]:
    """
    Parse a full catalog response.

    Args:
        response_json: Decoded JSON body, a list of records or {"books": [...]}

    Returns:
        List of Book objects (empty if the sheet has no rows)

    Raises:
        CatalogLoadFailure: if the body has neither shape
    """
    records = response_json
    if isinstance(response_json, dict):
        records = response_json.get("books")
    if not isinstance(records, list):
        raise CatalogLoadFailure("Catalog response was not a list of books.")

    books = []
    for record in records:
        book = parse_book(record)
        if book:
            books.append(book)

    return deduplicate_books(books)


def deduplicate_books(books: List[Book]) -> List[Book]:
    """
    Remove duplicate books by ID, keeping the first occurrence.

    Args:
        books: List of Book objects

    Returns:
        Deduplicated list of books
    """
    seen_ids = set()
    unique_books = []

    for book in books:
        if book.id not in seen_ids:
            seen_ids.add(book.id)
            unique_books.append(book)
        else:
            logger.warning(f"Dropping duplicate book id {book.id!r}")

    return unique_books


def parse_order_response(response_json: Any) -> OrderResult:
    """
    Parse the reservation endpoint's acknowledgement.

    Missing identifier or message fields fall back to a generic notice.
    """
    if not isinstance(response_json, dict):
        return OrderResult(order_id=None, message=FALLBACK_ORDER_MESSAGE)

    order_id = response_json.get("orderId") or response_json.get("id")
    message = response_json.get("message") or FALLBACK_ORDER_MESSAGE
    if order_id is not None:
        order_id = str(order_id)
        if not response_json.get("message"):
            message = f"Order confirmed! Your Order ID: {order_id}"

    return OrderResult(order_id=order_id, message=str(message))


def is_rejection(response_json: Any) -> bool:
    """True if an otherwise successful response reports an error."""
    if not isinstance(response_json, dict):
        return False
    return response_json.get("status") == "error" or response_json.get("ok") is False
