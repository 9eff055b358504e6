"""Contact directory built from the server's user roster."""
import asyncio
from typing import Iterable, List, Optional

from .api import APIClient
from .errors import NetworkFailure, Unauthorized
from .logging_config import configure_logging
from .models import Contact
from .session import SessionContext

logger = configure_logging()


def filter_contacts(contacts: Iterable[Contact], query: str) -> List[Contact]:
    """Case-insensitive substring match on the name, input order preserved."""
    needle = query.lower()
    return [c for c in contacts if needle in c.name.lower()]


class ContactDirectory:
    def __init__(self, session: SessionContext, api: APIClient):
        self.session = session
        self.api = api
        self.contacts: List[Contact] = []

    async def load_contacts(self) -> List[Contact]:
        identity = self.session.require_identity()
        try:
            users = await asyncio.to_thread(self.api.list_users)
        except Unauthorized:
            await self.session.invalidate()
            raise
        except NetworkFailure as exc:
            logger.error("CONTACTS_FETCH_FAIL reason=%s", exc)
            raise
        self.contacts = [Contact.from_username(u.username) for u in users if u.username != identity.username]
        logger.info("CONTACTS_LOADED count=%s", len(self.contacts))
        return self.contacts

    def filter(self, query: str) -> List[Contact]:
        return filter_contacts(self.contacts, query)

    def find(self, name: str) -> Optional[Contact]:
        return next((c for c in self.contacts if c.name == name), None)
