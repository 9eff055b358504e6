"""Application controller wiring the chat components together."""
from __future__ import annotations

import asyncio
from typing import Any, Callable, Dict, List, Optional

from ..shared.utils import validate_registration
from .api import APIClient
from .config import SERVER_URL
from .connection import ConnectionManager, ReconnectPolicy
from .contacts import ContactDirectory
from .conversation import ConversationSynchronizer
from .errors import ValidationFailure
from .models import Contact, Identity
from .outbound import OutboundPipeline
from .session import SessionContext
from .storage import get_server_url, store_server_url


class ChatController:
    """Single entry point for a front-end: one instance per running client."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        on_redirect: Optional[Callable[[], None]] = None,
        policy: Optional[ReconnectPolicy] = None,
        transport_factory: Optional[Callable[[ReconnectPolicy], Any]] = None,
        persist: bool = True,
    ):
        self.base_url = (base_url or get_server_url() or SERVER_URL).rstrip("/")
        if persist and base_url:
            store_server_url(self.base_url)
        connections = ConnectionManager(self.base_url, policy=policy, transport_factory=transport_factory)
        if persist:
            self.session = SessionContext.restore(self.base_url, on_redirect=on_redirect, connections=connections)
        else:
            self.session = SessionContext(
                self.base_url, on_redirect=on_redirect, connections=connections, persist=False
            )
        self.api = APIClient(self.base_url, token_getter=self.session.token)
        self.directory = ContactDirectory(self.session, self.api)
        self.synchronizer = ConversationSynchronizer(self.session, self.api)
        self.outbound = OutboundPipeline(self.session)

    @property
    def identity(self) -> Optional[Identity]:
        return self.session.current_identity()

    async def register(self, email: str, username: str, password: str) -> Dict[str, Any]:
        errors = validate_registration(email, username, password)
        if errors:
            raise ValidationFailure("; ".join(errors.values()))
        return await asyncio.to_thread(self.api.register, email, username, password)

    async def login(self, email: str, password: str) -> Identity:
        response = await asyncio.to_thread(self.api.login, email, password)
        identity = Identity(username=response.username, token=response.token)
        self.session.start(identity)
        return identity

    async def load_contacts(self) -> List[Contact]:
        return await self.directory.load_contacts()

    async def open_chat(self, contact: Contact) -> None:
        await self.synchronizer.select_contact(contact)

    async def send(self, text: Optional[str] = None) -> bool:
        """Send ``text``, or the composed draft when it is omitted."""
        if text is not None:
            self.outbound.draft = text
        return await self.outbound.send(self.outbound.draft, self.synchronizer.contact)

    async def close_chat(self) -> None:
        """Leave the conversation view; the push channel goes with it."""
        await self.synchronizer.close()
        await self.session.connections.teardown()

    async def logout(self) -> None:
        await self.synchronizer.close()
        await self.session.end()
        self.session.on_redirect()


__all__ = ["ChatController"]
