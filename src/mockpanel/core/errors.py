"""Exception types for MockPanel.

Structural errors (bad session id, missing fields, unknown agent) are raised
to the caller and reported as rejected operations. Provider errors are
reported to the client as ``error`` events and never retried.
"""

from typing import Optional


class MockPanelError(Exception):
    """Base class for all MockPanel errors."""


class SessionNotFoundError(MockPanelError):
    """Raised when a session id does not refer to a live session."""

    def __init__(self, session_id: str):
        self.session_id = session_id
        super().__init__(f"Session {session_id} not found")


class SessionExistsError(MockPanelError):
    """Raised when creating a session whose id is already live."""

    def __init__(self, session_id: str):
        self.session_id = session_id
        super().__init__(f"Session {session_id} already exists")


class SessionValidationError(MockPanelError):
    """Raised for missing or malformed session input."""


class UnknownAgentError(MockPanelError):
    """Raised when a command references an agent outside the roster."""

    def __init__(self, agent_id: Optional[str]):
        self.agent_id = agent_id
        super().__init__(f"Unknown agent: {agent_id}")


class RosterGenerationError(MockPanelError):
    """Raised when no usable roster could be generated for a scenario."""


class ProviderError(MockPanelError):
    """Upstream text-completion or speech-synthesis failure."""

    def __init__(self, provider: str, message: str):
        self.provider = provider
        self.message = message
        super().__init__(f"{provider} error: {message}")
