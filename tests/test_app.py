from unittest import mock

import pytest

from pulse_chat.client import storage
from pulse_chat.client.app import ChatController
from pulse_chat.client.connection import ConnectionState
from pulse_chat.client.errors import ValidationFailure
from pulse_chat.client.models import Contact, Identity
from pulse_chat.shared.schemas import LoginResponse

from conftest import SERVER, FakeAPI, SocketFactory, record


def make_controller(redirects, api=None):
    controller = ChatController(
        SERVER, on_redirect=lambda: redirects.append("login"), transport_factory=SocketFactory()
    )
    if api is not None:
        controller.api = api
        controller.directory.api = api
        controller.synchronizer.api = api
    return controller


def test_controller_remembers_server_url(redirects):
    controller = make_controller(redirects)
    assert storage.get_server_url() == SERVER
    assert controller.identity is None


def test_controller_restores_persisted_identity(redirects):
    storage.store_auth("tok-alice", "alice")
    assert make_controller(redirects).identity == Identity("alice", "tok-alice")


async def test_register_validates_before_calling_the_server(redirects):
    controller = make_controller(redirects)
    with mock.patch.object(controller.api, "register") as register:
        with pytest.raises(ValidationFailure):
            await controller.register("nope", "bob", "123")
    register.assert_not_called()


async def test_login_starts_a_persisted_session(redirects):
    controller = make_controller(redirects)
    with mock.patch.object(controller.api, "login", return_value=LoginResponse(token="tok", username="alice_w")):
        identity = await controller.login("a@example.com", "secret1")
    assert identity == Identity("alice_w", "tok")
    assert controller.identity == identity
    assert controller.api.token_getter() == "tok"
    assert storage.get_token() == "tok"


async def test_full_chat_round_trip_and_logout(redirects):
    storage.store_auth("tok-alice", "alice")
    controller = make_controller(redirects, FakeAPI(users=["alice", "bob_builder"]))
    sockets = controller.session.connections.transport_factory

    contacts = await controller.load_contacts()
    await controller.open_chat(contacts[0])
    await controller.session.connections.wait_settled()
    assert await controller.send("hey")
    await sockets.last.trigger("message-sent", record("m1", "alice", "bob_builder", body="hey"))
    assert [m.body for m in controller.synchronizer.visible_messages()] == ["hey"]

    await controller.logout()

    assert controller.identity is None
    assert storage.get_token() is None
    assert controller.session.connections.state == ConnectionState.CLOSED
    assert sockets.last.shutdown_calls == 1
    assert redirects == ["login"]


async def test_close_chat_tears_down_the_channel(redirects):
    controller = make_controller(redirects, FakeAPI())
    controller.session.start(Identity("alice", "tok-alice"))

    await controller.open_chat(Contact.from_username("bob"))
    await controller.close_chat()
    await controller.close_chat()

    assert controller.session.connections.connection is None
    assert controller.identity is not None
    assert redirects == []


async def test_send_uses_the_draft_and_clears_it_once_emitted(redirects):
    controller = make_controller(redirects, FakeAPI())
    controller.session.start(Identity("alice", "tok-alice"))
    sockets = controller.session.connections.transport_factory

    controller.outbound.draft = "hello"
    assert not await controller.send()
    assert controller.outbound.draft == "hello"

    await controller.open_chat(Contact.from_username("bob"))
    await controller.session.connections.wait_settled()
    assert await controller.send()

    assert controller.outbound.draft == ""
    assert sockets.last.emitted == [("private-message", {"receiverId": "bob", "content": "hello", "type": "text"})]
