"""Configuration management."""
import os
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

DEFAULT_PICKUP_OPTIONS = (
    "Feast sacred heart - Monday",
    "Feast it park - Saturday",
    "Feast golden prince - Saturday",
    "Feast ayala - Sunday",
)


def _split_options(raw):
    """Parse a ';'-separated list of pickup options."""
    if not raw:
        return DEFAULT_PICKUP_OPTIONS
    options = tuple(part.strip() for part in raw.split(";") if part.strip())
    return options or DEFAULT_PICKUP_OPTIONS


class Config:
    """Application configuration."""

    # Reservation API (Apps Script web app)
    API_BASE = os.getenv("API_BASE", "https://YOUR_APPS_SCRIPT_WEB_APP_URL").rstrip("/")
    SHEET_ID = os.getenv("SHEET_ID", "")

    # Fulfillment
    PICKUP_OPTIONS = _split_options(os.getenv("PICKUP_OPTIONS"))

    # Display
    CURRENCY_SYMBOL = os.getenv("CURRENCY_SYMBOL", "₱")

    # Defaults
    DEFAULT_TIMEOUT = int(os.getenv("DEFAULT_TIMEOUT", "10"))
    DEFAULT_MAX_RETRIES = int(os.getenv("DEFAULT_MAX_RETRIES", "3"))

    @property
    def DEFAULT_PICKUP(self):
        """Pickup preselected on a fresh order form."""
        return self.PICKUP_OPTIONS[-1]
