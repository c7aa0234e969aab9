"""Unit tests for HTTP response serialization."""

from email.utils import parsedate_to_datetime
from pathlib import Path

import pytest

from response import HTTPResponse, as_head_response, error_response


def _headers(raw: bytes) -> dict[str, str]:
    head = raw.split(b"\r\n\r\n", 1)[0].decode("iso-8859-1")
    return dict(line.split(": ", 1) for line in head.split("\r\n")[1:])


def test_response_serialization_sets_length_and_default_content_type() -> None:
    response = HTTPResponse(status_code=200, body="hello")

    raw = response.to_bytes()

    assert raw.startswith(b"HTTP/1.1 200 OK\r\n")
    assert b"Content-Type: text/plain; charset=utf-8\r\n" in raw
    assert b"Content-Length: 5\r\n" in raw
    assert raw.endswith(b"\r\n\r\nhello")


def test_response_serialization_preserves_custom_content_type() -> None:
    response = HTTPResponse(
        status_code=200,
        headers={"Content-Type": "text/html; charset=utf-8"},
        body=b"<h1>Listing</h1>",
    )

    raw = response.to_bytes()

    assert b"Content-Type: text/html; charset=utf-8\r\n" in raw
    assert b"Content-Length: 16\r\n" in raw


def test_every_response_carries_date_and_closes_connection() -> None:
    headers = _headers(HTTPResponse(status_code=404).to_bytes())

    assert parsedate_to_datetime(headers["Date"]).tzinfo is not None
    assert headers["Date"].endswith(" GMT")
    assert headers["Connection"] == "close"


def test_head_variant_keeps_length_and_drops_body() -> None:
    raw = as_head_response(HTTPResponse(status_code=200, body="hello")).to_bytes()

    assert b"Content-Length: 5\r\n" in raw
    assert raw.endswith(b"\r\n\r\n")


def test_error_response_uses_reason_phrase_body() -> None:
    response = error_response(405, Allow="GET, HEAD")

    raw = response.to_bytes()

    assert raw.startswith(b"HTTP/1.1 405 Method Not Allowed\r\n")
    assert b"Allow: GET, HEAD\r\n" in raw
    assert raw.endswith(b"Method Not Allowed")


def test_file_response_cannot_carry_inline_body(tmp_path: Path) -> None:
    with pytest.raises(ValueError):
        HTTPResponse(status_code=200, body="x", file_path=tmp_path / "f")
