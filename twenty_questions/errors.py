"""Domain exceptions.

Routes translate these into HTTP responses; nothing below the orchestrator
knows about HTTP.

    ConfigurationError - provider credentials missing or invalid
    UpstreamError      - LLM or search backend failed after retries
    GameRuleError      - the request breaks a game rule (inactive session,
                         hint budget spent, malformed input)
    ConflictError      - a concurrent turn already moved the session on
"""


class ConfigurationError(RuntimeError):
    """Raised when an LLM provider cannot be configured."""


class UpstreamError(RuntimeError):
    """Raised when an external backend cannot produce a usable response."""


class GameRuleError(ValueError):
    """Raised when a turn is rejected by the game rules."""


class SessionNotFound(GameRuleError):
    """Raised when the session id does not exist."""


class ConflictError(GameRuleError):
    """Raised when a turn commit races another turn on the same session."""
