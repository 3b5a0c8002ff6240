"""Exceptions raised by the orchestration layer.

ProviderError lives with the providers (void_radio.providers.base).
"""


class ContextError(Exception):
    """Previous round data is missing or malformed while building a prompt."""


class OperationError(Exception):
    """A whole collaboration cannot run, e.g. no provider can write the synthesis."""


class SessionNotFound(KeyError):
    """Progress lookup on an unknown or expired session id."""

    def __init__(self, session_id: str) -> None:
        self.session_id = session_id
        super().__init__(session_id)

    def __str__(self) -> str:
        return f"Session not found: {self.session_id}"
