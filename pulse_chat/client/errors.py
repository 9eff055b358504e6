"""Exceptions raised by the chat client core."""


class ChatError(Exception):
    """Base class for recoverable client errors."""


class Unauthorized(ChatError):
    """The token is missing or was rejected; the user has to log in again."""


class NetworkFailure(ChatError):
    """A REST call or the push channel failed."""


class ValidationFailure(ChatError):
    """Input or server data did not have the expected shape."""


class ChannelUnavailable(ChatError):
    """No open push channel to send over."""


class RegistrationFailed(ChatError):
    """The server refused to create the account."""


class ConnectionStateError(RuntimeError):
    """The push channel was used in a way the session does not allow."""
