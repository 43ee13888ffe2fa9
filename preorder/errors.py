"""Errors surfaced to the storefront user."""


class StorefrontError(Exception):
    """Base class for recoverable storefront failures."""

    default_message = "Something went wrong. Please try again."

    def __init__(self, message: str = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class CatalogLoadFailure(StorefrontError):
    """The catalog could not be fetched or parsed."""

    default_message = "Failed to load books. Please try again."


class OrderValidationError(StorefrontError):
    """The order was rejected locally before any remote call."""

    default_message = "Please complete the order form."


class EmptyCartSubmission(OrderValidationError):
    default_message = "Please select at least one book before confirming your order."


class OrderSubmissionFailure(StorefrontError):
    """The reservation endpoint rejected the order or could not be reached."""

    default_message = "Failed to submit order. Please try again."


class UnknownFilterKey(StorefrontError, ValueError):
    """A filter was configured with a key the catalog does not recognize."""

    def __init__(self, key: str):
        self.key = key
        super().__init__(f"Unknown filter key: {key!r}")
