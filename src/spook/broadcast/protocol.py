"""Minimal HTTP framing for the event stream endpoint."""

from typing import NamedTuple

import httptools

MAX_HEAD_BYTES = 8192

METHOD_NOT_ALLOWED = b"HTTP/1.1 405 Method Not Allowed\r\n\r\n"
NOT_FOUND = b"HTTP/1.1 404 Not Found\r\n\r\n"
STREAM_PREAMBLE = (
    b"HTTP/1.1 200 OK\r\n"
    b"Access-Control-Allow-Origin: *\r\n"
    b"Cache-Control: no-cache\r\n"
    b"Connection: keep-alive\r\n"
    b"Content-Type: text/event-stream\r\n"
    b"\r\n"
)


class MalformedRequest(ValueError):
    """Raised when the request line cannot be parsed."""


class RequestHead(NamedTuple):
    """Routing part of an HTTP request line."""

    method: str
    path: str


class _TargetCollector:
    """Parser callbacks keeping only the request target."""

    def __init__(self) -> None:
        self.url = b""

    def on_url(self, url: bytes) -> None:
        # Called once per fragment when the target is split.
        self.url += url


def parse_request_head(buffer: bytes) -> RequestHead | None:
    """Extract method and path from a possibly incomplete request.

    Parsing succeeds as soon as the method and the path are both
    terminated, without waiting for the rest of the request line or the
    headers. Leading empty lines are skipped.

    Args:
        buffer: All bytes received on the connection so far.

    Returns:
        The request head, or None if more bytes are needed.

    Raises:
        MalformedRequest: If the bytes cannot start a valid request.
    """
    if len(buffer) > MAX_HEAD_BYTES:
        raise MalformedRequest("request head too large")

    target = _TargetCollector()
    parser = httptools.HttpRequestParser(target)
    try:
        parser.feed_data(buffer)
    except httptools.HttpParserUpgrade:
        # Raised after the headers; the target is already known.
        pass
    except httptools.HttpParserError as e:
        raise MalformedRequest(str(e)) from e

    if not target.url:
        return None

    # The parser also reports a target cut off by the end of the buffer.
    data = buffer.lstrip(b"\r\n")
    method = parser.get_method()
    end = data.find(target.url, len(method)) + len(target.url)
    if end >= len(data):
        return None

    return RequestHead(method=method.decode("ascii"), path=target.url.decode("latin-1"))


def route_response(head: RequestHead, event_path: str) -> bytes:
    """Pick the response written for a request.

    Args:
        head: Parsed request head.
        event_path: The only path serving events.

    Returns:
        The streaming preamble for ``GET <event_path>``, otherwise the
        complete error response.
    """
    if head.method != "GET":
        return METHOD_NOT_ALLOWED
    if head.path != event_path:
        return NOT_FOUND
    return STREAM_PREAMBLE


def event_frame(event_name: str) -> bytes:
    """Encode one payload-free server-sent event.

    Args:
        event_name: Value of the ``event:`` field.

    Returns:
        Frame bytes terminated by a blank line.
    """
    return f"event: {event_name}\r\ndata\r\n\r\n".encode()
