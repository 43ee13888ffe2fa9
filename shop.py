#!/usr/bin/env python3
"""Feast Books CLI - browse the catalog, print a slip, or reserve books."""
import argparse
import json
import logging
import sys
from decimal import Decimal, InvalidOperation
from pathlib import Path

from tabulate import tabulate

from preorder.catalog import BookField, books_as_dicts
from preorder.client import SheetsClient
from preorder.config import Config
from preorder.errors import StorefrontError
from preorder.session import Storefront
from preorder.slip import format_money

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


def parse_item(value: str):
    """Parse an ID[:QTY] cart argument."""
    book_id, _, qty = value.partition(":")
    if not book_id:
        raise argparse.ArgumentTypeError(f"invalid item {value!r}")
    try:
        quantity = int(qty) if qty else 1
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid quantity in {value!r}")
    return book_id, quantity


def parse_price(value: str) -> Decimal:
    try:
        return Decimal(value)
    except InvalidOperation:
        raise argparse.ArgumentTypeError(f"invalid price {value!r}")


def open_storefront(args, config: Config, client: SheetsClient) -> Storefront:
    """Create a session and load its catalog."""
    sheet_id = args.sheet_id or config.SHEET_ID
    if not sheet_id:
        raise StorefrontError("No sheet id given. Use --sheet-id or set SHEET_ID.")

    shop = Storefront(
        client,
        source_id=sheet_id,
        pickup_options=config.PICKUP_OPTIONS,
        currency=config.CURRENCY_SYMBOL,
    )
    shop.load_catalog()
    return shop


def fill_cart(shop: Storefront, items):
    """Add ID[:QTY] items; repeating an id adds to its quantity."""
    for book_id, quantity in items:
        already = shop.cart.quantity_of(book_id)
        try:
            shop.add_to_cart(book_id)
        except KeyError as e:
            raise StorefrontError(str(e.args[0]))
        shop.cart.set_quantity(book_id, already + quantity)


def fill_form(shop: Storefront, args):
    shop.form.full_name = args.name or ""
    shop.form.email = args.email or ""
    shop.form.phone = args.phone or ""
    shop.form.social_handle = getattr(args, "fb", None) or ""
    shop.form.notes = args.notes or ""
    if args.pickup:
        shop.form.pickup = args.pickup


def display_books(books, format_type: str, currency: str):
    """Display books in specified format."""
    if format_type == "table":
        headers = ["ID", "Title", "Author", "Genre", "Location", "Price", "Disc."]
        rows = [
            [
                book.id[:12],
                book.title[:40] + "..." if len(book.title) > 40 else book.title,
                book.author[:25] + "..." if len(book.author) > 25 else book.author,
                book.genre or "-",
                book.location or "-",
                format_money(book.unit_price, currency),
                f"{book.discount_percent}%" if book.discount_percent else "",
            ]
            for book in books
        ]
        print("\n" + tabulate(rows, headers=headers, tablefmt="grid"))

    elif format_type == "json":
        print(json.dumps(books_as_dicts(books), indent=2))

    elif format_type == "compact":
        for i, book in enumerate(books, 1):
            print(f"{i}. {book.title} - {book.author} ({format_money(book.unit_price, currency)})")


def show_catalog(args, config: Config):
    """List the catalog, optionally filtered."""
    with SheetsClient(
        config.API_BASE,
        timeout=config.DEFAULT_TIMEOUT,
        max_retries=config.DEFAULT_MAX_RETRIES
    ) as client:
        shop = open_storefront(args, config, client)

        if args.list_values:
            for value in shop.catalog.values_of(args.list_values):
                print(value)
            return

        shop.catalog.set_filter({
            "textQuery": args.query,
            "genreEquals": args.genre,
            "locationEquals": args.location,
            "priceMin": args.min_price,
            "priceMax": args.max_price,
        })
        books = shop.catalog.visible()
        logger.info(f"Showing {len(books)} of {len(shop.catalog.books)} books")
        display_books(books, args.format, config.CURRENCY_SYMBOL)


def print_slip(args, config: Config):
    """Build a cart and print a pre-order slip without submitting anything."""
    with SheetsClient(
        config.API_BASE,
        timeout=config.DEFAULT_TIMEOUT,
        max_retries=config.DEFAULT_MAX_RETRIES
    ) as client:
        shop = open_storefront(args, config, client)
        fill_cart(shop, args.item)
        fill_form(shop, args)
        shop.form.show_contact = bool(args.name or args.email or args.phone)

        if args.output:
            output = Path(args.output)
            shop.print_slip(lambda text: output.write_text(text + "\n", encoding="utf-8"))
            logger.info(f"✅ Slip written to {output}")
        else:
            shop.print_slip()


def place_order(args, config: Config):
    """Submit a reservation."""
    with SheetsClient(
        config.API_BASE,
        timeout=config.DEFAULT_TIMEOUT,
        max_retries=config.DEFAULT_MAX_RETRIES
    ) as client:
        shop = open_storefront(args, config, client)
        fill_cart(shop, args.item)
        fill_form(shop, args)
        if args.payment_file:
            shop.form.payment_file = Path(args.payment_file)

        total = shop.cart.compute_total()
        result = shop.submit()
        print(f"✅ {result.message}")
        print(f"Total: {format_money(total, config.CURRENCY_SYMBOL)}")


def main():
    """Main CLI entry point."""
    config = Config()

    parser = argparse.ArgumentParser(
        description="Feast Books - pre-order storefront CLI",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Browse the catalog
  %(prog)s catalog --query "bo sanchez" --max-price 400

  # List genres for a dropdown
  %(prog)s catalog --list-values genre

  # Print a slip locally (nothing is uploaded)
  %(prog)s slip --item 1:2 --item 3 --output slip.txt

  # Reserve books
  %(prog)s order --item 1 --name "Juan" --email j@example.com --phone 0917 --pickup "Feast ayala - Sunday"
        """
    )
    parser.add_argument("--sheet-id", help="Google Sheet id (default: SHEET_ID)")

    subparsers = parser.add_subparsers(dest="command", help="Command to execute")

    # Catalog command
    catalog_parser = subparsers.add_parser("catalog", help="List books")
    catalog_parser.add_argument("--query", help="Search title, author, genre")
    catalog_parser.add_argument("--genre", help="Exact genre")
    catalog_parser.add_argument("--location", help="Exact location")
    catalog_parser.add_argument("--min-price", type=parse_price, help="Minimum price (inclusive)")
    catalog_parser.add_argument("--max-price", type=parse_price, help="Maximum price (inclusive)")
    catalog_parser.add_argument("--format", choices=["table", "json", "compact"], default="table", help="Output format")
    catalog_parser.add_argument("--list-values", choices=[f.value for f in BookField], help="List distinct values of a field")

    def add_order_arguments(sub):
        sub.add_argument("--item", type=parse_item, action="append", required=True, help="Book ID[:QTY], repeatable")
        sub.add_argument("--name", help="Full name")
        sub.add_argument("--email", help="Email address")
        sub.add_argument("--phone", help="Contact number")
        sub.add_argument("--pickup", choices=config.PICKUP_OPTIONS, help=f"Pickup (default: {config.DEFAULT_PICKUP})")
        sub.add_argument("--notes", help="Order notes")

    # Slip command
    slip_parser = subparsers.add_parser("slip", help="Print a pre-order slip")
    add_order_arguments(slip_parser)
    slip_parser.add_argument("--output", help="Write the slip to a file instead of stdout")

    # Order command
    order_parser = subparsers.add_parser("order", help="Submit a reservation")
    add_order_arguments(order_parser)
    order_parser.add_argument("--fb", help="FB name (optional)")
    order_parser.add_argument("--payment-file", help="Proof of payment to attach")

    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        sys.exit(1)

    try:
        if args.command == "catalog":
            show_catalog(args, config)

        elif args.command == "slip":
            print_slip(args, config)

        elif args.command == "order":
            place_order(args, config)

    except KeyboardInterrupt:
        logger.info("\n⚠️  Interrupted by user")
        sys.exit(0)
    except StorefrontError as e:
        logger.error(f"❌ {e.message}")
        sys.exit(1)


if __name__ == "__main__":
    main()
