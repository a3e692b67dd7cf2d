from .session_registry import (
    DEFAULT_TEMPLATE_ID,
    SessionNotFoundError,
    WizardSession,
    WizardSessionRegistry,
)

__all__ = [
    "DEFAULT_TEMPLATE_ID",
    "SessionNotFoundError",
    "WizardSession",
    "WizardSessionRegistry",
]
