"""Request dispatch for files and directories under the served root."""

from pathlib import Path

from config import ServerConfig
from handlers.listing import render_directory_listing
from path_guard import PathRejectedError, resolve_request_path
from request import HTTPRequest
from response import HTTPResponse
from utils import format_http_date, get_content_encoding, get_content_type


def serve_path(request: HTTPRequest, config: ServerConfig) -> HTTPResponse:
    try:
        target = resolve_request_path(request.path, config)
    except PathRejectedError:
        return HTTPResponse(status_code=403)

    if target.is_file():
        return _file_response(target)
    if target.is_dir():
        return HTTPResponse(
            status_code=200,
            headers={"Content-Type": "text/html; charset=utf-8"},
            body=render_directory_listing(target, config, request.path),
        )
    return HTTPResponse(status_code=404)


def _file_response(target: Path) -> HTTPResponse:
    # Content-Length is filled in from the open file when the body is streamed.
    file_stat = target.stat()
    headers = {
        "Content-Type": get_content_type(target),
        "Last-Modified": format_http_date(file_stat.st_mtime),
    }
    content_encoding = get_content_encoding(target)
    if content_encoding is not None:
        headers["Content-Encoding"] = content_encoding
    return HTTPResponse(status_code=200, headers=headers, file_path=target)
