"""Printable pre-order slip."""
from decimal import Decimal
from typing import Optional, Sequence

from tabulate import tabulate

from preorder.models import ContactInfo, OrderLine

SLIP_TITLE = "Feast Books - Pre-Order Slip"
PRIVACY_NOTICE = (
    "This slip was generated on your device. No personal information was "
    "recorded or uploaded."
)


def format_money(amount, symbol: str = "₱") -> str:
    """Format an amount like 1,234.00 with a currency symbol."""
    return f"{symbol}{Decimal(amount):,.2f}"


def render_slip(
    lines: Sequence[OrderLine],
    total: Decimal,
    pickup: str = "",
    notes: str = "",
    contact: Optional[ContactInfo] = None,
    currency: str = "₱",
) -> str:
    """
    Render an order snapshot as plain text ready for printing.

    Contact details are included only when contact is given.
    """
    rows = [
        [
            i,
            line.title,
            line.author,
            line.quantity,
            format_money(line.unit_price, currency),
            format_money(line.subtotal, currency),
        ]
        for i, line in enumerate(lines, 1)
    ]
    table = tabulate(
        rows,
        headers=["#", "Title", "Author", "Qty", "Unit", "Subtotal"],
        tablefmt="grid",
    )

    parts = [
        "=" * len(SLIP_TITLE),
        SLIP_TITLE,
        "=" * len(SLIP_TITLE),
        table,
        f"Total: {format_money(total, currency)}",
    ]
    if pickup:
        parts.append(f"Pickup: {pickup}")
    if notes.strip():
        parts.append(f"Notes: {notes.strip()}")
    if contact is not None:
        parts.append(f"Name: {contact.full_name or '-'}")
        parts.append(f"Email: {contact.email or '-'}")
        parts.append(f"Phone: {contact.phone or '-'}")
        if contact.social_handle:
            parts.append(f"FB: {contact.social_handle}")
    parts.append("")
    parts.append(PRIVACY_NOTICE)

    return "\n".join(parts)
