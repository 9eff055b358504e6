import os
import tempfile
import threading
from pathlib import Path
from typing import Any, Dict, List, Optional

_TMP = Path(tempfile.mkdtemp(prefix="pulse_chat_tests_"))
os.environ.setdefault("PULSE_CHAT_LOG_FILE", str(_TMP / "client.log"))
os.environ.setdefault("PULSE_CHAT_STATE_FILE", str(_TMP / "state.json"))

import pytest
from socketio.exceptions import ConnectionError as SocketConnectionError

from pulse_chat.client import storage
from pulse_chat.client.connection import ConnectionManager
from pulse_chat.client.models import Identity
from pulse_chat.client.session import SessionContext
from pulse_chat.shared.schemas import MessageRecord, UserOut

SERVER = "http://chat.test"


class FakeSocket:
    """Stands in for socketio.AsyncClient; events are fired by the test."""

    def __init__(self, policy=None, fail: bool = False, auto_connect: bool = True, connect_exc=None):
        self.policy = policy
        self.connect_exc = connect_exc
        self.fail = fail
        self.auto_connect = auto_connect
        self.handlers: Dict[str, Any] = {}
        self.connect_calls: List[tuple] = []
        self.emitted: List[tuple] = []
        self.shutdown_calls = 0
        self.emit_error: Optional[Exception] = None

    def on(self, event, handler=None):
        self.handlers[event] = handler

    async def trigger(self, event, *args):
        handler = self.handlers.get(event)
        if handler is not None:
            await handler(*args)

    async def connect(self, url, auth=None, retry=False):
        self.connect_calls.append((url, auth, retry))
        if self.connect_exc is not None:
            raise self.connect_exc
        if self.fail:
            await self.trigger("connect_error", "refused")
            raise SocketConnectionError("Connection refused by the server")
        if self.auto_connect:
            await self.trigger("connect")

    async def emit(self, event, data):
        if self.emit_error is not None:
            raise self.emit_error
        self.emitted.append((event, data))

    async def shutdown(self):
        self.shutdown_calls += 1
        await self.trigger("disconnect", "client disconnect")


class SocketFactory:
    def __init__(self, **options):
        self.options = options
        self.sockets: List[FakeSocket] = []

    def __call__(self, policy):
        sock = FakeSocket(policy, **self.options)
        self.sockets.append(sock)
        return sock

    @property
    def last(self) -> FakeSocket:
        return self.sockets[-1]


class FakeAPI:
    """Blocking API double; history can be held back to simulate a slow fetch."""

    def __init__(self, users=None, history=None):
        self.users = users or []
        self.history: Dict[str, list] = history or {}
        self.errors: Dict[str, Exception] = {}
        self.calls: List[tuple] = []
        self.hold: Dict[str, threading.Event] = {}
        self.started: Dict[str, threading.Event] = {}

    def hold_history(self, contact) -> threading.Event:
        self.started[contact] = threading.Event()
        self.hold[contact] = threading.Event()
        return self.hold[contact]

    def list_users(self):
        self.calls.append(("list_users",))
        if "users" in self.errors:
            raise self.errors["users"]
        return [UserOut(username=u) for u in self.users]

    def get_messages(self, contact):
        self.calls.append(("get_messages", contact))
        started = self.started.get(contact)
        if started is not None:
            started.set()
        gate = self.hold.get(contact)
        if gate is not None:
            gate.wait(5)
        if contact in self.errors:
            raise self.errors[contact]
        return [MessageRecord.model_validate(r) for r in self.history.get(contact, [])]


def record(message_id, sender, receiver, body="hi", time="2024-05-01T14:32:00"):
    return {
        "_id": message_id,
        "sender": sender,
        "receiver": receiver,
        "senderUsername": sender,
        "receiverUsername": receiver,
        "message": body,
        "time": time,
    }


@pytest.fixture(autouse=True)
def state_file(tmp_path, monkeypatch):
    path = tmp_path / "state.json"
    monkeypatch.setattr(storage, "STORAGE_FILE", path)
    return path


@pytest.fixture
def sockets():
    return SocketFactory()


@pytest.fixture
def redirects():
    return []


@pytest.fixture
def session(sockets, redirects):
    return SessionContext(
        SERVER,
        on_redirect=lambda: redirects.append("login"),
        identity=Identity(username="alice", token="tok-alice"),
        connections=ConnectionManager(SERVER, transport_factory=sockets),
        persist=False,
    )


@pytest.fixture
def anonymous_session(sockets, redirects):
    return SessionContext(
        SERVER,
        on_redirect=lambda: redirects.append("login"),
        connections=ConnectionManager(SERVER, transport_factory=sockets),
        persist=False,
    )
