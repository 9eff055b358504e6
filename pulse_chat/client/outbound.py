"""Outgoing messages: emitted over the push channel, shown only once echoed."""
from typing import Optional

from socketio.exceptions import SocketIOError

from ..shared.schemas import PrivateMessageOut
from .errors import ChannelUnavailable
from .logging_config import configure_logging
from .models import Contact
from .session import SessionContext

logger = configure_logging()

SEND_EVENT = "private-message"


class OutboundPipeline:
    def __init__(self, session: SessionContext):
        self.session = session
        self.draft = ""

    async def send(self, text: str, contact: Optional[Contact]) -> bool:
        """Emit ``text`` to ``contact``; returns whether an event went out.

        Nothing is added to the conversation here. The server's
        ``message-sent`` echo is what makes the message visible.
        """
        if not text or not text.strip() or contact is None:
            return False
        connection = self.session.connections.connection
        if connection is None or not connection.is_open:
            logger.debug("SEND_SKIPPED receiver=%s reason=channel_unavailable", contact.name)
            return False
        payload = PrivateMessageOut(receiver_id=contact.name, content=text)
        try:
            await connection.emit(SEND_EVENT, payload.model_dump(by_alias=True))
        except ChannelUnavailable:
            logger.debug("SEND_SKIPPED receiver=%s reason=channel_unavailable", contact.name)
            return False
        except SocketIOError as exc:
            logger.error("SEND_FAIL receiver=%s reason=%s", contact.name, exc)
            return False
        self.draft = ""
        logger.info("MESSAGE_EMITTED receiver=%s", contact.name)
        return True
