"""FastAPI dependencies shared by the wizard routes."""

from __future__ import annotations

from typing import Optional

from .agents.agreement_agent import generate_employment_agreement
from .config import get_session_ttl_seconds
from .services.session_registry import WizardSessionRegistry

_registry: Optional[WizardSessionRegistry] = None


def get_session_registry() -> WizardSessionRegistry:
    """The process-wide session registry, created on first use."""
    global _registry
    if _registry is None:
        _registry = WizardSessionRegistry(
            generate_employment_agreement,
            ttl_seconds=get_session_ttl_seconds(),
        )
    return _registry


async def shutdown_session_registry() -> None:
    global _registry
    if _registry is not None:
        await _registry.aclose()
        _registry = None
