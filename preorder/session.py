"""Storefront session: owns the catalog, the cart and the order form."""
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional, Sequence

from preorder.cart import CartLedger
from preorder.catalog import CatalogView
from preorder.config import DEFAULT_PICKUP_OPTIONS
from preorder.errors import (
    EmptyCartSubmission,
    OrderSubmissionFailure,
    OrderValidationError,
)
from preorder.models import Book, ContactInfo, OrderPayload, OrderResult
from preorder.parse import parse_order_response, is_rejection
from preorder.slip import render_slip

logger = logging.getLogger(__name__)


@dataclass
class OrderForm:
    """Fields the customer fills in before submitting or printing."""
    full_name: str = ""
    email: str = ""
    phone: str = ""
    social_handle: str = ""
    pickup: str = ""
    notes: str = ""
    payment_file: Optional[Path] = None
    show_contact: bool = False

    @property
    def contact(self) -> ContactInfo:
        return ContactInfo(
            full_name=self.full_name.strip(),
            email=self.email.strip(),
            phone=self.phone.strip(),
            social_handle=self.social_handle.strip() or None,
        )

    def reset(self, pickup: str):
        self.full_name = ""
        self.email = ""
        self.phone = ""
        self.social_handle = ""
        self.pickup = pickup
        self.notes = ""
        self.payment_file = None


class _BaseStorefront:
    def __init__(
        self,
        client,
        source_id: str = "",
        pickup_options: Sequence[str] = DEFAULT_PICKUP_OPTIONS,
        currency: str = "₱",
    ):
        if not pickup_options:
            raise ValueError("at least one pickup option is required")
        self.client = client
        self.source_id = source_id
        self.pickup_options = tuple(pickup_options)
        self.currency = currency
        self.catalog = CatalogView(client)
        self.cart = CartLedger()
        self.form = OrderForm(pickup=self.default_pickup)
        self.submitting = False

    @property
    def default_pickup(self) -> str:
        return self.pickup_options[-1]

    @property
    def checkout_visible(self) -> bool:
        return not self.cart.is_empty()

    def add_to_cart(self, book_or_id):
        """Add a Book, or the catalog book with the given id."""
        book = book_or_id
        if not isinstance(book_or_id, Book):
            book = self.catalog.find(book_or_id)
            if book is None:
                raise KeyError(f"No book with id {book_or_id!r} in the catalog")
        return self.cart.add(book)

    def build_payload(self) -> OrderPayload:
        """
        Validate the cart and form and snapshot them for submission.

        Raises:
            EmptyCartSubmission: if the cart is empty
            OrderValidationError: if required fields are missing or invalid
        """
        if self.cart.is_empty():
            raise EmptyCartSubmission()

        contact = self.form.contact
        missing = contact.missing_required()
        if missing:
            raise OrderValidationError(f"Please fill in: {', '.join(missing)}.")
        if self.form.pickup not in self.pickup_options:
            raise OrderValidationError(f"Unknown pickup option: {self.form.pickup!r}.")

        payment_file = self.form.payment_file
        if payment_file is not None:
            payment_file = Path(payment_file)
            if not payment_file.is_file():
                raise OrderValidationError(f"Payment file not found: {payment_file}")

        return OrderPayload(
            source_id=self.source_id,
            contact=contact,
            pickup=self.form.pickup,
            notes=self.form.notes,
            lines=self.cart.to_order_snapshot(),
            total=self.cart.compute_total(),
            payment_file=payment_file,
        )

    def render_slip(self) -> str:
        if self.cart.is_empty():
            raise EmptyCartSubmission("Add books to generate a slip.")
        contact = self.form.contact if self.form.show_contact else None
        return render_slip(
            self.cart.to_order_snapshot(),
            self.cart.compute_total(),
            pickup=self.form.pickup,
            notes=self.form.notes,
            contact=contact,
            currency=self.currency,
        )

    def print_slip(self, printer: Callable[[str], None] = print) -> str:
        """
        Hand the current slip to the host's print facility.

        Nothing is sent over the network and the cart is left as is.
        """
        text = self.render_slip()
        printer(text)
        return text

    def _begin_submission(self) -> Optional[OrderPayload]:
        if self.submitting:
            logger.warning("Order submission already in progress, ignoring")
            return None
        payload = self.build_payload()
        self.submitting = True
        return payload

    def _finish_submission(self, response) -> OrderResult:
        if response is None:
            reason = getattr(self.client, "last_error", None)
            message = OrderSubmissionFailure.default_message
            if reason:
                message = f"{message} {reason}"
            logger.error(f"Order submission failed: {message}")
            raise OrderSubmissionFailure(message)

        if is_rejection(response):
            message = response.get("message") or OrderSubmissionFailure.default_message
            logger.error(f"Order rejected: {message}")
            raise OrderSubmissionFailure(str(message))

        result = parse_order_response(response)
        logger.info(f"Order submitted: {result.order_id or 'no id returned'}")
        self.cart.clear()
        self.form.reset(self.default_pickup)
        return result


class Storefront(_BaseStorefront):
    """One browsing session backed by a SheetsClient."""

    def load_catalog(self, source_id: Optional[str] = None):
        if source_id is not None:
            self.source_id = source_id
        return self.catalog.load(self.source_id)

    def submit(self) -> Optional[OrderResult]:
        """
        Submit the cart and form.

        Returns:
            OrderResult on success, None if a submission is already running

        Raises:
            OrderValidationError: the order was blocked locally
            OrderSubmissionFailure: the remote call failed; cart and form kept
        """
        payload = self._begin_submission()
        if payload is None:
            return None
        try:
            response = self.client.submit_order(payload)
            return self._finish_submission(response)
        finally:
            self.submitting = False


class AsyncStorefront(_BaseStorefront):
    """One browsing session backed by an AsyncSheetsClient."""

    async def load_catalog(self, source_id: Optional[str] = None):
        if source_id is not None:
            self.source_id = source_id
        response = await self.client.fetch_catalog(self.source_id)
        return self.catalog.install(response, getattr(self.client, "last_error", None))

    async def submit(self) -> Optional[OrderResult]:
        """Same contract as Storefront.submit; concurrent calls are ignored."""
        payload = self._begin_submission()
        if payload is None:
            return None
        try:
            response = await self.client.submit_order(payload)
            return self._finish_submission(response)
        finally:
            self.submitting = False
