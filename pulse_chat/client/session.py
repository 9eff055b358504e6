"""Session context: the authenticated identity and the resources bound to it."""
from typing import Callable, Optional

from . import storage
from .connection import ConnectionManager
from .errors import Unauthorized
from .logging_config import configure_logging
from .models import Identity

logger = configure_logging()


class SessionContext:
    """Holds the current identity and owns the session's push channel.

    Every component asks the session for the identity before doing network
    I/O. When there is none, the session fires ``on_redirect`` (the login
    flow) and the caller abandons the operation.
    """

    def __init__(
        self,
        server_url: str,
        on_redirect: Optional[Callable[[], None]] = None,
        identity: Optional[Identity] = None,
        connections: Optional[ConnectionManager] = None,
        persist: bool = True,
    ):
        self.server_url = server_url.rstrip("/")
        self.on_redirect = on_redirect or (lambda: None)
        self.connections = connections or ConnectionManager(self.server_url)
        self.persist = persist
        self._identity = identity

    @classmethod
    def restore(cls, server_url: str, **kwargs) -> "SessionContext":
        token, username = storage.get_token(), storage.get_username()
        identity = Identity(username=username, token=token) if token and username else None
        return cls(server_url, identity=identity, **kwargs)

    def current_identity(self) -> Optional[Identity]:
        if self._identity is not None and self._identity.is_valid():
            return self._identity
        return None

    def token(self) -> Optional[str]:
        identity = self.current_identity()
        return identity.token if identity else None

    def require_identity(self) -> Identity:
        identity = self.current_identity()
        if identity is None:
            logger.info("SESSION_REQUIRED action=redirect_login")
            self.on_redirect()
            raise Unauthorized("no authenticated session")
        return identity

    def start(self, identity: Identity) -> None:
        if not identity.is_valid():
            raise ValueError("identity needs both a username and a token")
        self._identity = identity
        if self.persist:
            storage.store_auth(identity.token, identity.username)
        logger.info("SESSION_START username=%s", identity.username)

    async def end(self) -> None:
        """Drop the identity and close the push channel."""
        username = self._identity.username if self._identity else None
        self._identity = None
        if self.persist:
            storage.clear_auth()
        await self.connections.teardown()
        logger.info("SESSION_END username=%s", username)

    async def invalidate(self) -> None:
        """End the session after the server rejected the token."""
        logger.warning("UNAUTHORIZED_ACCESS reason=token_rejected")
        await self.end()
        self.on_redirect()
