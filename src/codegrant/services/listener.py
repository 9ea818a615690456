"""Local listener for the provider's authorization redirect.

Binds the redirect URI's addresses, answers each inbound request with a
fixed page and classifies its query string until a granted response arrives
or the retry budget runs out.

Retry policy:
- malformed requests, unreadable requests and explicit denials are
  recoverable; each one consumes an attempt while ``attempt < max_tries``
- once the budget is spent the same condition is raised to the caller
- a peer that hangs up before its 418 page is written only costs the
  attempt its request already consumed
- CSRF state mismatches, failures writing the 200 page, an exhausted
  connection source and the accept timeout are always terminal
"""

from __future__ import annotations

import asyncio
import ipaddress
import logging
from collections.abc import AsyncIterator, Sequence
from contextlib import aclosing
from types import TracebackType

from codegrant.models.errors import (
    AuthDeniedError,
    CallbackError,
    CallbackTimeoutError,
    MalformedRequestError,
    RequestReadError,
    TransportError,
    UnexpectedEndError,
)
from codegrant.models.flow import AuthCodeAllowed, AuthCodeDenied, parse_callback_query
from codegrant.models.secrets import CsrfState
from codegrant.primitives.http import (
    OK_200,
    TEAPOT_418,
    read_request_head,
    write_response,
)
from codegrant.services.security import reconcile_state

logger = logging.getLogger(__name__)

Address = tuple[str, int]
Connection = tuple[asyncio.StreamReader, asyncio.StreamWriter]

DEFAULT_READ_TIMEOUT = 30.0


def make_socket_addrs(ips: Sequence[str], port: int) -> list[Address]:
    """Pair every IP address with the port for the listener to bind.

    Raises:
        ValueError: If any entry is not a valid IP address
    """
    return [(str(ipaddress.ip_address(ip)), port) for ip in ips]


async def _close_connection(writer: asyncio.StreamWriter) -> None:
    writer.close()
    try:
        await writer.wait_closed()
    except OSError as e:
        logger.debug(f"Callback connection closed uncleanly: {e}")


async def _answer_rejected(writer: asyncio.StreamWriter) -> None:
    try:
        await write_response(writer, TEAPOT_418)
    except TransportError as e:
        # The peer is usually already gone; the read failure is what matters
        logger.debug(f"Could not answer rejected callback request: {e}")


async def _answer_connection(
    reader: asyncio.StreamReader,
    writer: asyncio.StreamWriter,
    read_timeout: float | None,
) -> AuthCodeAllowed | AuthCodeDenied:
    """Read one redirect request, answer it and classify its query.

    A 200 page is written for structurally valid requests. Malformed and
    unreadable requests get a 418 page on a best-effort basis before the
    read failure is raised.

    Raises:
        MalformedRequestError: If the request or its query is unusable
        RequestReadError: If the request could not be read in time
        TransportError: If the 200 response could not be written
    """
    try:
        try:
            head = await asyncio.wait_for(read_request_head(reader), read_timeout)
        except asyncio.TimeoutError as e:
            raise RequestReadError(
                f"No complete request received within {read_timeout} seconds"
            ) from e
        request_line = head.request_line
        logger.debug(
            f"Received {request_line.method} {request_line.path} "
            f"{request_line.version} with {len(head.headers)} headers"
        )
        query = request_line.query()
    except (MalformedRequestError, RequestReadError):
        await _answer_rejected(writer)
        raise

    await write_response(writer, OK_200)
    return parse_callback_query(query)


async def receive_auth_code(
    connections: AsyncIterator[Connection],
    expected_state: CsrfState | None = None,
    max_tries: int = 0,
    *,
    read_timeout: float | None = DEFAULT_READ_TIMEOUT,
) -> AuthCodeAllowed:
    """Run the redirect handshake over a stream of accepted connections.

    Connections are handled one at a time. Each is answered and closed
    before the next one is taken.

    Args:
        connections: Accepted ``(reader, writer)`` pairs
        expected_state: State sent in the authorization request, if any
        max_tries: Number of recoverable failures tolerated before giving up
        read_timeout: Seconds allowed for reading one request head

    Returns:
        The granted redirect parameters, with the state reconciled

    Raises:
        ValueError: If ``max_tries`` is negative
        AuthDeniedError: If the provider's denial exhausted the budget
        MalformedRequestError: If a malformed request exhausted the budget
        RequestReadError: If an unreadable request exhausted the budget
        InvalidCsrfStateError: If the state does not reconcile
        TransportError: If the 200 page could not be written
        UnexpectedEndError: If the connections ran out first
    """
    if max_tries < 0:
        raise ValueError("max_tries must be non-negative")

    attempt = 0
    async for reader, writer in connections:
        try:
            response = await _answer_connection(reader, writer, read_timeout)
        except (MalformedRequestError, RequestReadError) as e:
            error: CallbackError = e
        else:
            if isinstance(response, AuthCodeAllowed):
                logger.info("Authorization granted by the provider")
                return reconcile_state(expected_state, response)
            error = AuthDeniedError(response)
        finally:
            await _close_connection(writer)

        if attempt >= max_tries:
            logger.debug(f"Retry budget of {max_tries} spent, giving up")
            raise error
        attempt += 1
        logger.warning(
            f"Authorization attempt {attempt}/{max_tries} failed, "
            f"waiting for another redirect: {error}"
        )

    raise UnexpectedEndError(
        "Connection source ended before the provider redirected back"
    )


class CallbackListener:
    """Listens on one or more local addresses for the provider's redirect.

    Use as an async context manager so the sockets are released on every
    exit path, including cancellation:

        async with CallbackListener([("127.0.0.1", 8833)]) as listener:
            allowed = await listener.await_auth_code(state, max_tries=5)
    """

    def __init__(
        self,
        addresses: Sequence[Address],
        *,
        read_timeout: float | None = DEFAULT_READ_TIMEOUT,
        accept_timeout: float | None = None,
    ):
        """Initialize the listener without binding anything yet.

        Args:
            addresses: Local ``(host, port)`` pairs to bind
            read_timeout: Seconds allowed for reading one request head
            accept_timeout: Seconds to wait for each connection, or None to
                wait indefinitely
        """
        if not addresses:
            raise ValueError("at least one address is required")
        self._addresses = list(addresses)
        self.read_timeout = read_timeout
        self.accept_timeout = accept_timeout

        self._servers: list[asyncio.Server] = []
        self._pending: asyncio.Queue[Connection | None] = asyncio.Queue()
        self._closed = False
        self._consumed = False

    @property
    def bound_addresses(self) -> list[Address]:
        """Addresses actually bound, with ephemeral ports resolved."""
        bound = []
        for server in self._servers:
            for sock in server.sockets:
                host, port = sock.getsockname()[:2]
                bound.append((host, port))
        return bound

    async def start(self) -> None:
        """Bind every address.

        Raises:
            TransportError: If any address fails to bind. Addresses bound
                before the failure are released again.
        """
        if self._closed:
            raise RuntimeError("callback listener is closed")
        if self._servers:
            return

        for host, port in self._addresses:
            try:
                server = await asyncio.start_server(self._on_connection, host, port)
            except OSError as e:
                await self.close()
                raise TransportError(
                    f"Failed to bind callback listener on {host}:{port}: {e}"
                ) from e
            self._servers.append(server)

        logger.info(
            "Callback listener bound on "
            + ", ".join(f"{host}:{port}" for host, port in self.bound_addresses)
        )

    def _on_connection(
        self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter
    ) -> None:
        if self._closed:
            writer.close()
            return
        self._pending.put_nowait((reader, writer))

    async def connections(self) -> AsyncIterator[Connection]:
        """Yield accepted connections in arrival order until closed.

        Raises:
            CallbackTimeoutError: If no connection arrives within the
                accept timeout
        """
        while True:
            try:
                connection = await asyncio.wait_for(
                    self._pending.get(), self.accept_timeout
                )
            except asyncio.TimeoutError as e:
                raise CallbackTimeoutError(
                    f"No redirect received within {self.accept_timeout} seconds"
                ) from e
            if connection is None:
                return
            yield connection

    async def await_auth_code(
        self,
        expected_state: CsrfState | None = None,
        max_tries: int = 0,
    ) -> AuthCodeAllowed:
        """Wait for the redirect and return the granted code.

        May be called once per listener. See :func:`receive_auth_code` for
        the retry and CSRF rules.
        """
        if self._consumed:
            raise RuntimeError("callback listener already produced an outcome")
        self._consumed = True
        await self.start()
        async with aclosing(self.connections()) as connections:
            return await receive_auth_code(
                connections,
                expected_state,
                max_tries,
                read_timeout=self.read_timeout,
            )

    async def close(self) -> None:
        """Release every bound socket and drop connections not yet handled."""
        if self._closed:
            return
        self._closed = True

        while not self._pending.empty():
            connection = self._pending.get_nowait()
            if connection is not None:
                await _close_connection(connection[1])
        # Wakes a handshake still waiting for a connection
        self._pending.put_nowait(None)

        for server in self._servers:
            server.close()
        for server in self._servers:
            await server.wait_closed()
        self._servers.clear()
        logger.debug("Callback listener closed")

    async def __aenter__(self) -> CallbackListener:
        await self.start()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.close()


async def await_auth_code(
    addresses: Sequence[Address],
    expected_state: CsrfState | None = None,
    max_tries: int = 0,
    *,
    read_timeout: float | None = DEFAULT_READ_TIMEOUT,
    accept_timeout: float | None = None,
) -> AuthCodeAllowed:
    """Bind the addresses, wait for the redirect and release the sockets.

    Args:
        addresses: Local ``(host, port)`` pairs to bind
        expected_state: State sent in the authorization request, if any
        max_tries: Number of recoverable failures tolerated before giving up
        read_timeout: Seconds allowed for reading one request head
        accept_timeout: Seconds to wait for each connection, or None

    Returns:
        The granted redirect parameters

    Raises:
        CallbackError: The terminal failure of the handshake
    """
    async with CallbackListener(
        addresses, read_timeout=read_timeout, accept_timeout=accept_timeout
    ) as listener:
        return await listener.await_auth_code(expected_state, max_tries)
