"""In-memory catalog with filtering and search."""
import logging
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional

from preorder.errors import CatalogLoadFailure, UnknownFilterKey
from preorder.models import Book, to_decimal, clamp_percent
from preorder.parse import parse_catalog_response, new_book_id

logger = logging.getLogger(__name__)


class BookField(Enum):
    """Book attributes that can drive a selection widget."""
    TITLE = "title"
    AUTHOR = "author"
    GENRE = "genre"
    LOCATION = "location"


@dataclass(frozen=True)
class FilterSpec:
    """
    Active catalog filter.

    Unset fields impose no constraint. Price bounds are inclusive and apply
    to the base price.
    """
    text_query: str = ""
    genre_equals: Optional[str] = None
    location_equals: Optional[str] = None
    price_min: Optional[Decimal] = None
    price_max: Optional[Decimal] = None

    KEYS = {
        "textQuery": "text_query",
        "genreEquals": "genre_equals",
        "locationEquals": "location_equals",
        "priceMin": "price_min",
        "priceMax": "price_max",
    }

    @classmethod
    def from_mapping(cls, options: Mapping[str, Any]) -> "FilterSpec":
        """
        Build a spec from form-style options.

        Accepts camelCase or snake_case keys. Blank values are treated as
        absent.

        Raises:
            UnknownFilterKey: for any unrecognized key
        """
        kwargs = {}
        for key, value in options.items():
            field_name = cls.KEYS.get(key, key)
            if field_name not in cls.KEYS.values():
                raise UnknownFilterKey(key)
            if value is None or (isinstance(value, str) and not value.strip()):
                continue
            if field_name in ("price_min", "price_max"):
                try:
                    value = to_decimal(value)
                except InvalidOperation:
                    raise ValueError(f"{key} must be a number, got {value!r}")
            else:
                value = str(value)
            kwargs[field_name] = value
        return cls(**kwargs)

    def matches(self, book: Book) -> bool:
        query = self.text_query.strip().lower()
        if query:
            haystack = f"{book.title} {book.author} {book.genre}".lower()
            if query not in haystack:
                return False
        if self.genre_equals is not None and book.genre != self.genre_equals:
            return False
        if self.location_equals is not None and book.location != self.location_equals:
            return False
        price = to_decimal(book.price)
        if self.price_min is not None and price < self.price_min:
            return False
        if self.price_max is not None and price > self.price_max:
            return False
        return True


def apply_filter(books: List[Book], spec: FilterSpec) -> List[Book]:
    """Books matching spec, in their original order."""
    return [book for book in books if spec.matches(book)]


def unique_values_of(books: List[Book], field) -> List[str]:
    """
    Distinct values of an attribute, in order of first occurrence.

    Args:
        books: Catalog to scan
        field: BookField member or its string value

    Raises:
        ValueError: if field is not a BookField
    """
    field = BookField(field)
    return list(dict.fromkeys(getattr(book, field.value) for book in books))


def books_as_dicts(books: List[Book]) -> List[Dict[str, Any]]:
    """Plain dicts for JSON output."""
    return [
        {
            "id": book.id,
            "title": book.title,
            "author": book.author,
            "summary": book.summary,
            "genre": book.genre,
            "location": book.location,
            "price": str(book.price),
            "discountPercent": book.discount_percent,
            "unitPrice": str(book.unit_price),
            "image": book.image_ref,
        }
        for book in books
    ]


class CatalogView:
    """Loaded catalog plus the active filter for one session."""

    def __init__(self, client=None):
        self.client = client
        self.books: List[Book] = []
        self.filter = FilterSpec()

    def load(self, source_id: str) -> List[Book]:
        """
        Fetch and install the catalog for a sheet.

        Raises:
            CatalogLoadFailure: on transport or parse failure; the previously
                loaded list is kept
        """
        if self.client is None:
            raise CatalogLoadFailure("No catalog source is configured.")
        response = self.client.fetch_catalog(source_id)
        return self.install(response, getattr(self.client, "last_error", None))

    def install(self, response_json: Any, reason: Optional[str] = None) -> List[Book]:
        """Replace the loaded list with a parsed response, all or nothing."""
        if response_json is None:
            message = "Failed to load books."
            if reason:
                message = f"{message} {reason}"
            logger.error(message)
            raise CatalogLoadFailure(message)

        books = parse_catalog_response(response_json)
        self.books = books
        logger.info(f"Loaded {len(books)} books")
        return list(books)

    def set_filter(self, spec) -> FilterSpec:
        """Replace the active filter with a FilterSpec or a mapping of options."""
        if not isinstance(spec, FilterSpec):
            spec = FilterSpec.from_mapping(spec)
        self.filter = spec
        return spec

    def visible(self) -> List[Book]:
        return apply_filter(self.books, self.filter)

    def values_of(self, field) -> List[str]:
        return unique_values_of(self.books, field)

    def find(self, book_id: str) -> Optional[Book]:
        for book in self.books:
            if book.id == book_id:
                return book
        return None

    def add_local_book(
        self,
        title: str,
        author: str,
        price,
        image_ref: str,
        genre: str = "",
        summary: str = "",
        location: str = "",
        discount_percent: int = 0,
    ) -> Book:
        """
        Add a book that exists only on this device.

        Title, author, price and image are required. The book is placed at
        the top of the catalog.
        """
        if not (title and author and price and image_ref):
            raise ValueError("title, author, price and image are required")
        price = to_decimal(price)
        if price < 0:
            raise ValueError("price must be non-negative")

        book = Book(
            id=new_book_id(),
            title=title,
            author=author,
            summary=summary,
            genre=genre,
            location=location,
            price=price,
            discount_percent=clamp_percent(discount_percent),
            image_ref=image_ref,
        )
        self.books = [book] + self.books
        return book
