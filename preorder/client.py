"""HTTP client for the reservation web app with resilience patterns."""
import time
import random
import requests
from typing import Optional, Dict, Any
import logging

from preorder.models import OrderPayload

logger = logging.getLogger(__name__)


class SheetsClient:
    """Client for the spreadsheet-backed catalog/reservation API with timeouts, retries, and backoff."""

    def __init__(
        self,
        base_url: str,
        timeout: int = 10,
        max_retries: int = 3,
        base_backoff: float = 1.0
    ):
        """
        Initialize the reservation API client.

        Args:
            base_url: Web app URL (without the /books or /reserve suffix)
            timeout: Request timeout in seconds
            max_retries: Maximum number of attempts for catalog fetches
            base_backoff: Base delay for exponential backoff
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.max_retries = max_retries
        self.base_backoff = base_backoff
        self.last_error: Optional[str] = None

        # Create session for connection pooling
        self.session = requests.Session()

    def fetch_catalog(self, sheet_id: str) -> Optional[Any]:
        """
        Fetch the Book Inventory rows of a sheet.

        Args:
            sheet_id: Google Sheet identifier

        Returns:
            Decoded JSON body or None if all retries failed
        """
        url = f"{self.base_url}/books"
        return self._make_request_with_retry(
            "GET", url, params={"sheetId": sheet_id}, attempts=self.max_retries
        )

    def submit_order(self, payload: OrderPayload) -> Optional[Dict[str, Any]]:
        """
        Post an order as multipart form data.

        Orders are sent exactly once; a failed POST is never retried here
        since the endpoint has no idempotency key.

        Args:
            payload: Order to submit

        Returns:
            Decoded JSON body ({} if the body was not JSON) or None on failure
        """
        url = f"{self.base_url}/reserve"
        data = payload.to_form_fields()

        if payload.payment_file is None:
            return self._make_request_with_retry(
                "POST", url, data=data, attempts=1, require_json=False
            )

        try:
            with open(payload.payment_file, "rb") as fh:
                content = fh.read()
        except OSError as e:
            logger.error(f"Could not read payment file {payload.payment_file}: {e}")
            self.last_error = "The payment file could not be read."
            return None

        files = {"paymentFile": (payload.payment_file.name, content)}
        return self._make_request_with_retry(
            "POST", url, data=data, files=files, attempts=1, require_json=False
        )

    def _make_request_with_retry(
        self,
        method: str,
        url: str,
        params: Optional[Dict[str, Any]] = None,
        data: Optional[Dict[str, Any]] = None,
        files: Optional[Dict[str, Any]] = None,
        attempts: int = 1,
        require_json: bool = True
    ) -> Optional[Any]:
        """
        Make HTTP request with retry logic.

        Args:
            method: HTTP method
            url: Request URL
            params: Query parameters
            data: Form fields
            files: Multipart file parts
            attempts: Maximum number of attempts
            require_json: Treat a non-JSON body as a failure

        Returns:
            Response JSON or None if all attempts were exhausted
        """
        self.last_error = None

        for attempt in range(attempts):
            try:
                logger.info(f"{method} attempt {attempt + 1}/{attempts}: {url}")

                response = self.session.request(
                    method,
                    url,
                    params=params,
                    data=data,
                    files=files,
                    timeout=self.timeout
                )

                # Handle different status codes
                if response.status_code < 400:
                    logger.info(f"Success: {response.status_code}")
                    return self._decode(response, require_json)

                elif response.status_code == 429:
                    # Rate limited - retry with backoff
                    logger.warning(f"Rate limited (429) on attempt {attempt + 1}")
                    self.last_error = "The server is busy. Please try again shortly."
                    if attempt < attempts - 1:
                        self._backoff(attempt)
                        continue

                elif response.status_code >= 500:
                    # Server error - retryable
                    logger.warning(f"Server error ({response.status_code}) on attempt {attempt + 1}")
                    self.last_error = f"Server error ({response.status_code})."
                    if attempt < attempts - 1:
                        self._backoff(attempt)
                        continue

                else:
                    # Client error - don't retry
                    logger.error(f"Client error ({response.status_code}): {response.text}")
                    self.last_error = f"Request rejected ({response.status_code})."
                    return None

            except requests.exceptions.Timeout:
                logger.warning(f"Timeout on attempt {attempt + 1}")
                self.last_error = "The request timed out."
                if attempt < attempts - 1:
                    self._backoff(attempt)
                    continue

            except requests.exceptions.ConnectionError as e:
                logger.warning(f"Connection error on attempt {attempt + 1}: {e}")
                self.last_error = "Could not reach the server."
                if attempt < attempts - 1:
                    self._backoff(attempt)
                    continue

            except requests.exceptions.RequestException as e:
                logger.error(f"Unexpected request error: {e}")
                self.last_error = "The request failed."
                return None

        logger.error(f"All {attempts} attempts failed")
        return None

    def _decode(self, response, require_json: bool) -> Optional[Any]:
        try:
            return response.json()
        except ValueError:
            if require_json:
                logger.error(f"Response from {response.url} was not JSON")
                self.last_error = "The server returned an unreadable response."
                return None
            logger.warning("Response body was not JSON, using generic acknowledgement")
            return {}

    def _backoff(self, attempt: int):
        """
        Sleep with exponential backoff and jitter.

        Args:
            attempt: Current attempt number (0-indexed)
        """
        # Exponential backoff: base * 2^attempt
        delay = self.base_backoff * (2 ** attempt)

        # Add jitter: random value between 0 and delay
        jitter = random.uniform(0, delay)
        total_delay = delay + jitter

        logger.info(f"Backing off for {total_delay:.2f} seconds")
        time.sleep(total_delay)

    def close(self):
        """Close the session."""
        self.session.close()

    def __enter__(self):
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit."""
        self.close()
