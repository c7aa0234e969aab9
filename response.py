"""HTTP response model and serializer."""

from dataclasses import dataclass, field
from pathlib import Path

from config import SERVER_NAME
from utils import format_http_date

REASON_PHRASES: dict[int, str] = {
    200: "OK",
    400: "Bad Request",
    403: "Forbidden",
    404: "Not Found",
    405: "Method Not Allowed",
    408: "Request Timeout",
    414: "URI Too Long",
    431: "Request Header Fields Too Large",
    500: "Internal Server Error",
    501: "Not Implemented",
    503: "Service Unavailable",
    505: "HTTP Version Not Supported",
}


@dataclass(slots=True)
class HTTPResponse:
    status_code: int
    reason_phrase: str | None = None
    headers: dict[str, str] = field(default_factory=dict)
    body: bytes | str = b""
    file_path: Path | None = None
    omit_body: bool = False

    def __post_init__(self) -> None:
        if isinstance(self.body, str):
            self.body = self.body.encode("utf-8")
        if self.file_path is not None and self.body:
            raise ValueError("Response cannot set both body and file_path")

    @property
    def reason(self) -> str:
        return self.reason_phrase or REASON_PHRASES.get(self.status_code, "Unknown")

    def to_bytes(self) -> bytes:
        """Serialize an in-memory response into HTTP/1.1 wire format bytes."""
        if self.file_path is not None:
            raise ValueError("File responses are streamed, not serialized in memory")
        head = prepare_head(self, content_length=len(self.body))
        if self.omit_body:
            return head
        return head + self.body


def prepare_head(response: HTTPResponse, *, content_length: int) -> bytes:
    """Build the status line and header block, ending with the blank line."""
    normalized_headers = dict(response.headers)
    normalized_headers.setdefault("Date", format_http_date())
    normalized_headers.setdefault("Server", SERVER_NAME)
    normalized_headers.setdefault("Content-Type", "text/plain; charset=utf-8")
    normalized_headers["Content-Length"] = str(content_length)
    normalized_headers.setdefault("Connection", "close")

    header_lines = [f"HTTP/1.1 {response.status_code} {response.reason}"]
    header_lines.extend(f"{key}: {value}" for key, value in normalized_headers.items())
    return "\r\n".join(header_lines).encode("iso-8859-1") + b"\r\n\r\n"


def as_head_response(get_response: HTTPResponse) -> HTTPResponse:
    """Turn a GET response into its HEAD counterpart: same head, no body."""
    return HTTPResponse(
        status_code=get_response.status_code,
        reason_phrase=get_response.reason_phrase,
        headers=dict(get_response.headers),
        body=get_response.body,
        file_path=get_response.file_path,
        omit_body=True,
    )


def error_response(status_code: int, **headers: str) -> HTTPResponse:
    return HTTPResponse(
        status_code=status_code,
        headers=dict(headers),
        body=REASON_PHRASES.get(status_code, "Error"),
    )
