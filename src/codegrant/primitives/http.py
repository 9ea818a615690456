"""Minimal HTTP/1.1 request reading for the local redirect listener.

Only the request line and the header block are read; the body is ignored.
Responses are fixed byte strings.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field

from codegrant.models.errors import (
    MalformedRequestError,
    RequestReadError,
    TransportError,
)

MAX_HEADER_LINES = 100

OK_200 = (
    b"HTTP/1.1 200 OK\r\n"
    b"Content-Type: text/html\r\n"
    b"\r\n"
    b'<h3 font="monospace">You may now close this tab.</h3>'
)

TEAPOT_418 = (
    b"HTTP/1.1 418 I'm a teapot\r\n"
    b"Content-Type: text/html\r\n"
    b"\r\n"
    b'<h3 font="monospace">I\'m a teapot</h3>'
)


@dataclass(frozen=True)
class RequestLine:
    """``METHOD target VERSION`` as sent by the browser."""

    method: str
    target: str
    version: str

    @property
    def path(self) -> str:
        return self.target.partition("?")[0]

    def query(self) -> str:
        """Return everything after the first ``?`` of the target.

        Raises:
            MalformedRequestError: If the target has no query component
        """
        _path, separator, query = self.target.partition("?")
        if not separator:
            raise MalformedRequestError(
                "Redirect request did not carry query parameters"
            )
        return query


@dataclass(frozen=True)
class RequestHead:
    request_line: RequestLine
    headers: list[tuple[str, str]] = field(default_factory=list)


def parse_request_line(line: str) -> RequestLine:
    """Split a request line into method, target and protocol version.

    Raises:
        MalformedRequestError: Unless there are exactly three
            whitespace-separated tokens and the last names an HTTP version
    """
    parts = line.split()
    if len(parts) != 3:
        raise MalformedRequestError(
            f"Invalid request line: expected 3 tokens, got {len(parts)}"
        )
    method, target, version = parts
    if not version.startswith("HTTP/"):
        raise MalformedRequestError(f"Invalid protocol version: {version!r}")
    return RequestLine(method=method, target=target, version=version)


def parse_header_line(line: str) -> tuple[str, str] | None:
    """Split ``Name: value``; lines without a colon are tolerated and dropped."""
    name, separator, value = line.partition(":")
    if not separator:
        return None
    return name.strip(), value.strip()


async def _read_line(reader: asyncio.StreamReader) -> str:
    try:
        raw = await reader.readline()
    except ValueError as e:
        # StreamReader reports lines over its buffer limit as ValueError
        raise MalformedRequestError(f"Request line too long: {e}") from e
    except OSError as e:
        raise RequestReadError(f"Failed to read request: {e}") from e
    return raw.decode("iso-8859-1").strip()


async def read_request_head(reader: asyncio.StreamReader) -> RequestHead:
    """Read the request line and headers up to the blank line.

    End of stream also terminates the header block, so an empty probe
    connection yields an empty request line and is reported as malformed.

    Raises:
        MalformedRequestError: If the request line or header block is invalid
        RequestReadError: If the connection fails while reading
    """
    request_line = parse_request_line(await _read_line(reader))

    headers: list[tuple[str, str]] = []
    line_count = 0
    while True:
        line = await _read_line(reader)
        if not line:
            break
        line_count += 1
        if line_count > MAX_HEADER_LINES:
            raise MalformedRequestError(
                f"Too many header lines (more than {MAX_HEADER_LINES})"
            )
        header = parse_header_line(line)
        if header is not None:
            headers.append(header)

    return RequestHead(request_line=request_line, headers=headers)


async def write_response(writer: asyncio.StreamWriter, response: bytes) -> None:
    """Write a fixed response and flush it.

    Raises:
        TransportError: If the peer is gone or the write fails
    """
    try:
        writer.write(response)
        await writer.drain()
    except OSError as e:
        raise TransportError(f"Failed to write callback response: {e}") from e
