"""Async HTTP client for the reservation web app."""
import httpx
from typing import Optional, Dict, Any
import logging

from preorder.models import OrderPayload

logger = logging.getLogger(__name__)


class AsyncSheetsClient:
    """Async client for catalog fetches and order submission."""

    def __init__(self, base_url: str, timeout: int = 10):
        """
        Initialize async client.

        Args:
            base_url: Web app URL
            timeout: Request timeout
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.last_error: Optional[str] = None

        # Create async HTTP client
        self.client = httpx.AsyncClient(timeout=timeout)

    async def fetch_catalog(self, sheet_id: str) -> Optional[Any]:
        """
        Fetch the Book Inventory rows of a sheet.

        Args:
            sheet_id: Google Sheet identifier

        Returns:
            Decoded JSON body or None
        """
        self.last_error = None
        try:
            logger.info(f"Async catalog request: {sheet_id}")
            response = await self.client.get(
                f"{self.base_url}/books", params={"sheetId": sheet_id}
            )

            if response.status_code == 200:
                return response.json()
            else:
                logger.warning(f"Status {response.status_code} for sheet: {sheet_id}")
                self.last_error = f"Server returned {response.status_code}."
                return None

        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"Async catalog request failed: {e}")
            self.last_error = "Could not load the catalog."
            return None

    async def submit_order(self, payload: OrderPayload) -> Optional[Dict[str, Any]]:
        """
        Post an order as multipart form data, exactly once.

        Args:
            payload: Order to submit

        Returns:
            Decoded JSON body ({} if the body was not JSON) or None on failure
        """
        self.last_error = None
        files = None
        if payload.payment_file is not None:
            try:
                content = payload.payment_file.read_bytes()
            except OSError as e:
                logger.error(f"Could not read payment file {payload.payment_file}: {e}")
                self.last_error = "The payment file could not be read."
                return None
            files = {"paymentFile": (payload.payment_file.name, content)}

        try:
            logger.info(f"Async order submission for {payload.contact.email}")
            response = await self.client.post(
                f"{self.base_url}/reserve", data=payload.to_form_fields(), files=files
            )
        except httpx.HTTPError as e:
            logger.error(f"Async order submission failed: {e}")
            self.last_error = "Could not reach the server."
            return None

        if response.status_code >= 400:
            logger.warning(f"Status {response.status_code} submitting order")
            self.last_error = f"Request rejected ({response.status_code})."
            return None

        try:
            return response.json()
        except ValueError:
            logger.warning("Response body was not JSON, using generic acknowledgement")
            return {}

    async def close(self):
        """Close the HTTP client."""
        await self.client.aclose()

    async def __aenter__(self):
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.close()
