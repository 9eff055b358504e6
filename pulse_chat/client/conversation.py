"""Per-contact conversation state: REST history merged with live push events."""
import asyncio
from enum import Enum
from typing import Callable, Iterable, Iterator, List, Optional, Set, Tuple

from pydantic import ValidationError

from ..shared.schemas import MessageRecord
from .api import APIClient
from .connection import Connection
from .errors import NetworkFailure, Unauthorized
from .logging_config import configure_logging
from .models import ChatMessage, Contact
from .session import SessionContext

logger = configure_logging()

INBOUND_EVENT = "new-message"
ECHO_EVENT = "message-sent"


class SyncState(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    MERGING = "merging"
    STREAMING = "streaming"
    CLOSED = "closed"


class Conversation:
    """Ordered messages exchanged with one peer; ids are unique."""

    def __init__(self, peer: str):
        self.peer = peer
        self._messages: List[ChatMessage] = []
        self._ids: Set[str] = set()

    @property
    def messages(self) -> Tuple[ChatMessage, ...]:
        return tuple(self._messages)

    def __len__(self) -> int:
        return len(self._messages)

    def __iter__(self) -> Iterator[ChatMessage]:
        return iter(self._messages)

    def __contains__(self, message_id: object) -> bool:
        return message_id in self._ids

    def insert(self, message: ChatMessage) -> bool:
        """Append unless a message with the same id is already stored."""
        if message.id in self._ids:
            return False
        self._ids.add(message.id)
        self._messages.append(message)
        return True

    def merge_history(self, history: Iterable[ChatMessage]) -> None:
        """Make the history snapshot the stored sequence.

        Messages that arrived live while the snapshot was in flight are kept
        after it unless the snapshot already contains them.
        """
        arrived = self._messages
        self._messages, self._ids = [], set()
        for message in history:
            self.insert(message)
        for message in arrived:
            self.insert(message)


class ConversationSynchronizer:
    def __init__(self, session: SessionContext, api: APIClient):
        self.session = session
        self.api = api
        self.state = SyncState.IDLE
        self.contact: Optional[Contact] = None
        self.conversation: Optional[Conversation] = None
        self._generation = 0
        self._subscription: Optional[Tuple[Connection, List[Tuple[str, Callable]]]] = None
        self._listeners: List[Callable[[Conversation], None]] = []

    @property
    def is_loading(self) -> bool:
        return self.state in (SyncState.LOADING, SyncState.MERGING)

    def visible_messages(self) -> List[ChatMessage]:
        if self.is_loading or self.conversation is None:
            return []
        return list(self.conversation)

    def add_listener(self, listener: Callable[[Conversation], None]) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: Callable[[Conversation], None]) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _notify(self) -> None:
        if self.conversation is None:
            return
        for listener in list(self._listeners):
            listener(self.conversation)

    async def select_contact(self, contact: Contact) -> None:
        identity = self.session.require_identity()
        self._unsubscribe()
        self._generation += 1
        generation = self._generation
        self.contact = contact
        self.conversation = Conversation(contact.name)
        self.state = SyncState.LOADING
        logger.info("CONVERSATION_SELECT contact=%s", contact.name)

        connection = await self.session.connections.ensure_connection(identity)
        self._subscribe(connection, identity.username, contact.name, generation)

        try:
            records = await asyncio.to_thread(self.api.get_messages, contact.name)
        except Unauthorized:
            if generation == self._generation:
                await self.close()
                await self.session.invalidate()
            return
        except NetworkFailure as exc:
            logger.error("HISTORY_FETCH_FAIL contact=%s reason=%s", contact.name, exc)
            records = None

        if generation != self._generation:
            logger.info("HISTORY_DISCARDED contact=%s reason=stale_selection", contact.name)
            return
        self.state = SyncState.MERGING
        if records is not None:
            self.conversation.merge_history(ChatMessage.from_record(r) for r in records)
            logger.info("HISTORY_LOADED contact=%s count=%s", contact.name, len(records))
        self.state = SyncState.STREAMING
        self._notify()

    def _subscribe(self, connection: Connection, me: str, peer: str, generation: int) -> None:
        def on_inbound(payload=None, *_):
            self._receive(generation, payload, sender=peer, receiver=me)

        def on_echo(payload=None, *_):
            self._receive(generation, payload, sender=me, receiver=peer)

        handlers = [(INBOUND_EVENT, on_inbound), (ECHO_EVENT, on_echo)]
        for event, handler in handlers:
            connection.on(event, handler)
        self._subscription = (connection, handlers)

    def _unsubscribe(self) -> None:
        if self._subscription is None:
            return
        connection, handlers = self._subscription
        for event, handler in handlers:
            connection.off(event, handler)
        self._subscription = None

    def _receive(self, generation: int, payload, sender: str, receiver: str) -> None:
        if generation != self._generation or self.conversation is None:
            return
        try:
            record = MessageRecord.model_validate(payload)
        except ValidationError as exc:
            logger.warning("MESSAGE_MALFORMED contact=%s errors=%s", self.conversation.peer, exc.error_count())
            return
        if record.sender_username != sender or record.receiver_username != receiver:
            return
        if self.conversation.insert(ChatMessage.from_record(record)):
            if not self.is_loading:
                self._notify()
        else:
            logger.debug("MESSAGE_DUPLICATE id=%s", record.id)

    async def close(self) -> None:
        """Stop following the current contact; late events and responses are ignored."""
        self._unsubscribe()
        self._generation += 1
        self.contact = None
        self.conversation = None
        self.state = SyncState.CLOSED
