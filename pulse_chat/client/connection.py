"""Lifecycle of the session's single Socket.IO push channel."""
from __future__ import annotations

import asyncio
import contextlib
import inspect
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

import socketio
from socketio.exceptions import ConnectionError as SocketConnectionError

from .config import RECONNECT_ATTEMPTS, RECONNECT_DELAY, RECONNECT_DELAY_MAX, RECONNECT_RANDOMIZATION
from .errors import ChannelUnavailable, ConnectionStateError, Unauthorized
from .logging_config import configure_logging
from .models import Identity

logger = configure_logging()

Listener = Callable[..., Any]


class ConnectionState(str, Enum):
    ABSENT = "absent"
    CONNECTING = "connecting"
    OPEN = "open"
    RECONNECTING = "reconnecting"
    CLOSED = "closed"


@dataclass(frozen=True)
class ReconnectPolicy:
    """Bounded exponential backoff, executed by the transport.

    Attempt ``n`` waits ``min(delay * 2 ** (n - 1), delay_max)`` seconds,
    jittered by ``randomization_factor``. After ``attempts`` failures the
    transport stops trying.
    """

    attempts: int = RECONNECT_ATTEMPTS
    delay: float = RECONNECT_DELAY
    delay_max: float = RECONNECT_DELAY_MAX
    randomization_factor: float = RECONNECT_RANDOMIZATION

    def delay_for(self, attempt: int) -> float:
        if attempt < 1:
            raise ValueError("attempts are numbered from 1")
        return min(self.delay * 2 ** (attempt - 1), self.delay_max)

    def schedule(self) -> List[float]:
        return [self.delay_for(n) for n in range(1, self.attempts + 1)]

    def transport_options(self) -> Dict[str, Any]:
        return {
            "reconnection": True,
            "reconnection_attempts": self.attempts,
            "reconnection_delay": self.delay,
            "reconnection_delay_max": self.delay_max,
            "randomization_factor": self.randomization_factor,
        }


def default_transport(policy: ReconnectPolicy) -> socketio.AsyncClient:
    return socketio.AsyncClient(logger=False, engineio_logger=False, **policy.transport_options())


class Connection:
    """Handle on one push channel, bound to the token it was opened with.

    Socket.IO keeps a single handler per event; the handle fans each event
    out to any number of listeners so components can subscribe and
    unsubscribe independently.
    """

    def __init__(self, transport: Any, token: str):
        self.token = token
        self.state = ConnectionState.CONNECTING
        self.closing = False
        self._transport = transport
        self._listeners: Dict[str, List[Listener]] = {}

    @property
    def is_open(self) -> bool:
        return self.state == ConnectionState.OPEN

    def on(self, event: str, listener: Listener) -> None:
        if event not in self._listeners:
            self._listeners[event] = []
            self._transport.on(event, self._dispatcher(event))
        if listener not in self._listeners[event]:
            self._listeners[event].append(listener)

    def off(self, event: str, listener: Listener) -> None:
        listeners = self._listeners.get(event, [])
        if listener in listeners:
            listeners.remove(listener)

    def listener_count(self, event: str) -> int:
        return len(self._listeners.get(event, []))

    def _dispatcher(self, event: str) -> Callable[..., Any]:
        async def dispatch(*args: Any) -> None:
            for listener in list(self._listeners.get(event, [])):
                result = listener(*args)
                if inspect.isawaitable(result):
                    await result

        return dispatch

    async def emit(self, event: str, data: Dict[str, Any]) -> None:
        if not self.is_open:
            raise ChannelUnavailable(f"cannot emit {event!r} while {self.state.value}")
        await self._transport.emit(event, data)

    async def open(self, url: str) -> None:
        # The token is sent once, in the handshake
        await self._transport.connect(url, auth={"token": self.token}, retry=True)

    async def close(self) -> None:
        self.closing = True
        self._listeners.clear()
        await self._transport.shutdown()
        self.state = ConnectionState.CLOSED


class ConnectionManager:
    """Creates, observes and destroys the session's only Connection."""

    def __init__(
        self,
        url: str,
        policy: Optional[ReconnectPolicy] = None,
        transport_factory: Optional[Callable[[ReconnectPolicy], Any]] = None,
    ):
        self.url = url
        self.policy = policy or ReconnectPolicy()
        self.transport_factory = transport_factory or default_transport
        self._connection: Optional[Connection] = None
        self._connect_task: Optional[asyncio.Task] = None
        self._state = ConnectionState.ABSENT

    @property
    def connection(self) -> Optional[Connection]:
        return self._connection

    @property
    def state(self) -> ConnectionState:
        if self._connection is not None:
            return self._connection.state
        return self._state

    async def ensure_connection(self, identity: Identity) -> Connection:
        if not identity.is_valid():
            raise Unauthorized("cannot open the push channel without a token")
        if self._connection is not None:
            if self._connection.token != identity.token:
                raise ConnectionStateError("a push channel for another token is still open; tear it down first")
            if self._connection.state != ConnectionState.CLOSED:
                return self._connection
            # The transport gave up; replace the dead handle
            await self.teardown()
        connection = self._create(identity.token)
        self._connect_task = asyncio.create_task(self._connect(connection))
        return connection

    def _create(self, token: str) -> Connection:
        if self._connection is not None:
            raise ConnectionStateError("only one push channel may exist per session")
        connection = Connection(self.transport_factory(self.policy), token)
        connection.on("connect", lambda *args: self._on_connect(connection))
        connection.on("disconnect", lambda *args: self._on_disconnect(connection, *args))
        connection.on("connect_error", lambda *args: self._on_connect_error(*args))
        connection.on("__disconnect_final", lambda *args: self._on_disconnect_final(connection))
        self._connection = connection
        logger.info("SOCKET_CONNECTING url=%s", self.url)
        return connection

    async def _connect(self, connection: Connection) -> None:
        try:
            await connection.open(self.url)
        except (SocketConnectionError, ValueError) as exc:
            logger.warning("SOCKET_CONNECT_FAIL url=%s reason=%s", self.url, exc)
            if not connection.closing:
                connection.state = ConnectionState.CLOSED

    def _on_connect(self, connection: Connection) -> None:
        connection.state = ConnectionState.OPEN
        logger.info("SOCKET_CONNECTED url=%s", self.url)

    def _on_disconnect(self, connection: Connection, *args: Any) -> None:
        reason = args[0] if args else "unknown"
        if connection.closing:
            connection.state = ConnectionState.CLOSED
            logger.info("SOCKET_CLOSED url=%s", self.url)
            return
        connection.state = ConnectionState.RECONNECTING
        logger.warning("SOCKET_DISCONNECTED url=%s reason=%s", self.url, reason)

    def _on_disconnect_final(self, connection: Connection) -> None:
        # Fired by the transport once its reconnection attempts are used up
        if connection.closing:
            return
        connection.state = ConnectionState.CLOSED
        logger.warning("SOCKET_RECONNECT_EXHAUSTED url=%s", self.url)

    def _on_connect_error(self, *args: Any) -> None:
        logger.warning("SOCKET_CONNECT_ERROR url=%s detail=%s", self.url, args[0] if args else "")

    async def wait_settled(self) -> ConnectionState:
        """Wait for the pending connect attempt to finish; returns the state."""
        task = self._connect_task
        if task is not None and not task.done():
            await asyncio.shield(task)
        return self.state

    async def teardown(self) -> None:
        connection, task = self._connection, self._connect_task
        self._connection = None
        self._connect_task = None
        self._state = ConnectionState.CLOSED
        if connection is None:
            return
        connection.closing = True
        if task is not None and not task.done():
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task
        await connection.close()
        logger.info("SOCKET_TEARDOWN url=%s", self.url)
