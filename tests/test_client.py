"""Tests for the HTTP clients."""
import asyncio
from decimal import Decimal
from unittest.mock import Mock, patch

import httpx
import requests

from preorder.async_client import AsyncSheetsClient
from preorder.client import SheetsClient
from preorder.models import ContactInfo, OrderLine, OrderPayload


def make_response(status_code=200, body=None, text=""):
    response = Mock()
    response.status_code = status_code
    response.text = text
    response.url = "https://example.test"
    if isinstance(body, Exception):
        response.json.side_effect = body
    else:
        response.json.return_value = body
    return response


def make_payload(payment_file=None):
    return OrderPayload(
        source_id="sheet-1",
        contact=ContactInfo("Juan", "juan@example.com", "0917"),
        pickup="Feast ayala - Sunday",
        notes="",
        lines=(OrderLine("1", "A", "Bo Sanchez", 2, Decimal("80")),),
        total=Decimal("160"),
        payment_file=payment_file,
    )


def make_client(max_retries=3):
    client = SheetsClient("https://example.test/exec/", timeout=5, max_retries=max_retries, base_backoff=0)
    client.session = Mock()
    return client


def test_fetch_catalog_success():
    """Test a successful catalog GET."""
    client = make_client()
    client.session.request.return_value = make_response(body=[{"id": "1"}])

    assert client.fetch_catalog("sheet-1") == [{"id": "1"}]

    args, kwargs = client.session.request.call_args
    assert args == ("GET", "https://example.test/exec/books")
    assert kwargs["params"] == {"sheetId": "sheet-1"}
    assert kwargs["timeout"] == 5


@patch("preorder.client.time.sleep")
def test_fetch_catalog_retries_server_errors(sleep):
    """Test that 5xx and timeouts are retried with backoff."""
    client = make_client()
    client.session.request.side_effect = [
        make_response(503),
        requests.exceptions.Timeout(),
        make_response(body=[]),
    ]

    assert client.fetch_catalog("sheet-1") == []
    assert client.session.request.call_count == 3
    assert sleep.call_count == 2


@patch("preorder.client.time.sleep")
def test_fetch_catalog_gives_up(sleep):
    """Test that exhausted retries return None with a reason."""
    client = make_client(max_retries=2)
    client.session.request.side_effect = requests.exceptions.ConnectionError("down")

    assert client.fetch_catalog("sheet-1") is None
    assert client.session.request.call_count == 2
    assert client.last_error == "Could not reach the server."


def test_fetch_catalog_client_error_not_retried():
    """Test that a 4xx is terminal."""
    client = make_client()
    client.session.request.return_value = make_response(404, text="Not found")

    assert client.fetch_catalog("sheet-1") is None
    assert client.session.request.call_count == 1


def test_fetch_catalog_non_json_is_failure():
    """Test that an unreadable catalog body is a failure."""
    client = make_client()
    client.session.request.return_value = make_response(body=ValueError("no json"))

    assert client.fetch_catalog("sheet-1") is None
    assert client.last_error


def test_submit_order_is_sent_once():
    """Test that a failed order POST is never retried."""
    client = make_client()
    client.session.request.return_value = make_response(500)

    assert client.submit_order(make_payload()) is None
    assert client.session.request.call_count == 1


def test_submit_order_form_fields_and_file(tmp_path):
    """Test the multipart request for an order with a payment file."""
    proof = tmp_path / "proof.png"
    proof.write_bytes(b"png")
    client = make_client()
    client.session.request.return_value = make_response(body={"orderId": "R-1"})

    assert client.submit_order(make_payload(proof)) == {"orderId": "R-1"}

    args, kwargs = client.session.request.call_args
    assert args == ("POST", "https://example.test/exec/reserve")
    assert kwargs["data"]["fullName"] == "Juan"
    assert kwargs["data"]["total"] == "160"
    assert kwargs["files"]["paymentFile"][0] == "proof.png"


def test_submit_order_non_json_is_tolerated():
    """Test that a non-JSON acknowledgement becomes an empty body."""
    client = make_client()
    client.session.request.return_value = make_response(body=ValueError("html"))

    assert client.submit_order(make_payload()) == {}


def test_async_client_fetch_and_submit():
    """Test the async client against a mock transport."""
    def handler(request):
        if request.url.path.endswith("/books"):
            assert request.url.params["sheetId"] == "sheet-1"
            return httpx.Response(200, json=[{"id": "1"}])
        return httpx.Response(200, json={"orderId": "A-1"})

    async def scenario():
        client = AsyncSheetsClient("https://example.test/exec")
        client.client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        async with client:
            books = await client.fetch_catalog("sheet-1")
            ack = await client.submit_order(make_payload())
        return books, ack

    books, ack = asyncio.run(scenario())

    assert books == [{"id": "1"}]
    assert ack == {"orderId": "A-1"}


def test_async_client_failure_returns_none():
    """Test that transport errors and error statuses become None."""
    def handler(request):
        if request.url.path.endswith("/books"):
            raise httpx.ConnectError("down", request=request)
        return httpx.Response(502)

    async def scenario():
        client = AsyncSheetsClient("https://example.test/exec")
        client.client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        async with client:
            return await client.fetch_catalog("sheet-1"), await client.submit_order(make_payload()), client.last_error

    books, ack, last_error = asyncio.run(scenario())

    assert books is None
    assert ack is None
    assert "502" in last_error


def test_submit_order_unreadable_payment_file(tmp_path):
    """Test that a payment file that vanished before the POST is a failed submission."""
    client = make_client()

    assert client.submit_order(make_payload(tmp_path / "gone.png")) is None
    assert client.last_error == "The payment file could not be read."
    client.session.request.assert_not_called()


def test_async_submit_order_unreadable_payment_file(tmp_path):
    """Test the same failure on the async client."""
    handler = Mock(return_value=httpx.Response(200, json={}))

    async def scenario():
        client = AsyncSheetsClient("https://example.test/exec")
        client.client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        async with client:
            return await client.submit_order(make_payload(tmp_path / "gone.png")), client.last_error

    ack, last_error = asyncio.run(scenario())

    assert ack is None
    assert last_error == "The payment file could not be read."
    handler.assert_not_called()
