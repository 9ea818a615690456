import asyncio
import socket

import pytest


class RedirectSender:
    """Sends raw HTTP requests to a local listener the way a browser would."""

    def __init__(self, host: str = "127.0.0.1"):
        self.host = host

    async def send(self, port: int, raw_request: bytes) -> bytes:
        """Send a request and return everything the listener answered."""
        reader, writer = await asyncio.open_connection(self.host, port)
        try:
            writer.write(raw_request)
            await writer.drain()
            return await asyncio.wait_for(reader.read(), timeout=5)
        finally:
            writer.close()
            try:
                await writer.wait_closed()
            except OSError:
                pass

    async def get(self, port: int, target: str) -> bytes:
        return await self.send(
            port, f"GET {target} HTTP/1.1\r\nHost: localhost\r\n\r\n".encode()
        )


@pytest.fixture
def redirect_sender() -> RedirectSender:
    return RedirectSender()


@pytest.fixture
def free_port() -> int:
    """A TCP port on localhost that was free a moment ago."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("127.0.0.1", 0))
        return s.getsockname()[1]
