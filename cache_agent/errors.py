"""
Neptune Cache Agent error taxonomy.

Operation errors (AccessDenied, NotFound, UnknownAction, InvalidParams) are
turned into failed response envelopes by the dispatcher. MalformedMessage is
dropped after logging. TransportError only ever triggers a reconnect.
"""


class CacheAgentError(Exception):
    """Base class for all agent errors."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class AccessDenied(CacheAgentError):
    """A request path resolved outside the cache root."""


class NotFound(CacheAgentError):
    """The requested file does not exist."""


class UnknownAction(CacheAgentError):
    """The request named an action the agent does not serve."""


class InvalidParams(CacheAgentError):
    """A required request parameter is missing or has the wrong shape."""


class MalformedMessage(CacheAgentError):
    """An inbound frame could not be decoded into a message object."""


class TransportError(CacheAgentError):
    """The connection to the hub failed or was lost."""
