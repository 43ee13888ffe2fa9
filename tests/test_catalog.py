"""Tests for catalog loading, filtering and search."""
from decimal import Decimal
from unittest.mock import Mock

import pytest

from preorder.catalog import (
    BookField,
    CatalogView,
    FilterSpec,
    apply_filter,
    unique_values_of,
)
from preorder.errors import CatalogLoadFailure, UnknownFilterKey
from preorder.models import Book

CATALOG = [
    Book("1", "How Good People Like You Can Become Rich", "Bo Sanchez",
         genre="Finance", location="Ayala", price=Decimal("385"), discount_percent=20),
    Book("2", "God, Why Does It Hurt?", "Bo Sanchez",
         genre="Faith", location="IT Park", price=Decimal("375"), discount_percent=10),
    Book("3", "Inside Matters", "Rissa Singson Kawpeng",
         genre="Self-Discovery", location="Ayala", price=Decimal("450")),
    Book("4", "Trailblazing Success", "Rex Mendoza",
         genre="Finance", location="Sacred Heart", price=Decimal("385")),
]


def ids(books):
    return [book.id for book in books]


def test_empty_spec_matches_everything():
    """Test that a blank filter returns the whole catalog in order."""
    assert ids(apply_filter(CATALOG, FilterSpec())) == ["1", "2", "3", "4"]
    assert ids(apply_filter(CATALOG, FilterSpec(text_query="   "))) == ["1", "2", "3", "4"]


def test_text_query_is_case_insensitive():
    """Test substring search over title, author and genre."""
    assert ids(apply_filter(CATALOG, FilterSpec(text_query="BO SANCHEZ"))) == ["1", "2"]
    assert ids(apply_filter(CATALOG, FilterSpec(text_query="finance"))) == ["1", "4"]
    assert ids(apply_filter(CATALOG, FilterSpec(text_query="inside"))) == ["3"]


def test_exact_matches_and_price_bounds():
    """Test genre/location equality and inclusive price bounds."""
    assert ids(apply_filter(CATALOG, FilterSpec(genre_equals="Finance"))) == ["1", "4"]
    assert ids(apply_filter(CATALOG, FilterSpec(genre_equals="finance"))) == []
    assert ids(apply_filter(CATALOG, FilterSpec(location_equals="Ayala"))) == ["1", "3"]
    assert ids(apply_filter(CATALOG, FilterSpec(price_min=Decimal("385"), price_max=Decimal("385")))) == ["1", "4"]
    assert ids(apply_filter(CATALOG, FilterSpec(price_max=Decimal("380")))) == ["2"]
    assert ids(apply_filter(CATALOG, FilterSpec(price_min=Decimal("0")))) == ["1", "2", "3", "4"]


def test_filter_is_stable_subset_and_idempotent():
    """Test that filtering preserves order, is a subset and can be reapplied."""
    spec = FilterSpec(text_query="s", location_equals="Ayala", price_max=Decimal("500"))
    once = apply_filter(CATALOG, spec)
    twice = apply_filter(once, spec)

    assert all(book in CATALOG for book in once)
    assert ids(once) == [b.id for b in CATALOG if b in once]
    assert once == twice


def test_filter_does_not_mutate_source():
    """Test that the source list is left intact."""
    source = list(CATALOG)
    apply_filter(source, FilterSpec(genre_equals="Faith"))
    assert source == CATALOG


def test_empty_catalog_filters_to_empty():
    """Test that an empty catalog is not an error."""
    assert apply_filter([], FilterSpec(text_query="x")) == []
    assert unique_values_of([], BookField.GENRE) == []


def test_from_mapping_accepts_known_keys():
    """Test camelCase and snake_case keys and blank values."""
    spec = FilterSpec.from_mapping({
        "textQuery": "bo",
        "genre_equals": "Faith",
        "locationEquals": "",
        "priceMin": "100",
        "priceMax": None,
    })

    assert spec == FilterSpec(text_query="bo", genre_equals="Faith", price_min=Decimal("100"))


def test_from_mapping_rejects_unknown_keys():
    """Test that unrecognized keys fail at construction."""
    with pytest.raises(UnknownFilterKey) as excinfo:
        FilterSpec.from_mapping({"publisher": "Shepherd's Voice"})
    assert excinfo.value.key == "publisher"
    assert isinstance(excinfo.value, ValueError)


def test_from_mapping_rejects_non_numeric_price():
    """Test that a non-numeric price bound is rejected."""
    with pytest.raises(ValueError):
        FilterSpec.from_mapping({"priceMin": "cheap"})


def test_unique_values_of_keeps_first_occurrence_order():
    """Test distinct values for selection widgets."""
    assert unique_values_of(CATALOG, BookField.AUTHOR) == ["Bo Sanchez", "Rissa Singson Kawpeng", "Rex Mendoza"]
    assert unique_values_of(CATALOG, "location") == ["Ayala", "IT Park", "Sacred Heart"]
    with pytest.raises(ValueError):
        unique_values_of(CATALOG, "price")


def test_load_installs_books():
    """Test loading a catalog through the client."""
    client = Mock()
    client.fetch_catalog.return_value = [{"id": "1", "title": "A", "price": 100}]
    view = CatalogView(client)

    books = view.load("sheet-1")

    client.fetch_catalog.assert_called_once_with("sheet-1")
    assert ids(books) == ["1"]
    assert ids(view.books) == ["1"]


def test_load_failure_keeps_previous_catalog():
    """Test that a failed reload raises and leaves the old list untouched."""
    client = Mock()
    client.fetch_catalog.return_value = [{"id": "1", "title": "A"}]
    view = CatalogView(client)
    view.load("sheet-1")

    client.fetch_catalog.return_value = None
    client.last_error = "The request timed out."
    with pytest.raises(CatalogLoadFailure) as excinfo:
        view.load("sheet-1")
    assert "timed out" in excinfo.value.message
    assert ids(view.books) == ["1"]

    client.fetch_catalog.return_value = {"unexpected": True}
    with pytest.raises(CatalogLoadFailure):
        view.load("sheet-1")
    assert ids(view.books) == ["1"]


def test_visible_applies_active_filter():
    """Test the view's active filter."""
    view = CatalogView()
    view.books = list(CATALOG)

    view.set_filter({"textQuery": "bo"})
    assert ids(view.visible()) == ["1", "2"]

    view.set_filter(FilterSpec())
    assert ids(view.visible()) == ["1", "2", "3", "4"]
    assert view.values_of(BookField.GENRE) == ["Finance", "Faith", "Self-Discovery"]
    assert view.find("3").title == "Inside Matters"
    assert view.find("nope") is None


def test_add_local_book():
    """Test that an on-device book is prepended with a fresh id."""
    view = CatalogView()
    view.books = list(CATALOG)

    book = view.add_local_book("New Title", "New Author", "250", "http://img", discount_percent=120)

    assert view.books[0] is book
    assert book.id not in ids(CATALOG)
    assert book.price == Decimal("250")
    assert book.discount_percent == 100
    with pytest.raises(ValueError):
        view.add_local_book("Title", "", 100, "http://img")


def test_load_with_infinite_discount_does_not_crash():
    """Test that an out-of-range discount parses to no discount."""
    client = Mock()
    client.fetch_catalog.return_value = [{"id": "1", "title": "A", "price": 100, "discountPercent": float("inf")}]
    view = CatalogView(client)

    books = view.load("sheet-1")

    assert books[0].discount_percent == 0
    assert books[0].unit_price == 100


def test_from_mapping_coerces_text_values():
    """Test that non-string text filters are coerced to strings."""
    spec = FilterSpec.from_mapping({"textQuery": 5, "genreEquals": 7})

    assert spec.text_query == "5"
    assert spec.genre_equals == "7"
    assert apply_filter(CATALOG, spec) == []
    assert ids(apply_filter(CATALOG, FilterSpec.from_mapping({"textQuery": "Rex"}))) == ["4"]
