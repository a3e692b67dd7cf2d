"""Types shared by the background-generation controller.

Pydantic models are what leaves the controller (API responses, results);
dataclasses are internal bookkeeping that never leaves the Store.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Optional

from pydantic import BaseModel, Field

from .cancellation import CancellationToken


class GenerationStatus(str, Enum):
    IDLE = "idle"
    PENDING = "pending"
    READY = "ready"
    ERROR = "error"
    STALE = "stale"


class CancellationReason(str, Enum):
    FORM_UPDATED = "form-updated"
    NAVIGATION = "navigation"
    CONSUMED = "consumed"
    MANUAL = "manual"


# Reasons after which the caller needs no trace of the attempt.
FORGETTING_REASONS = frozenset({CancellationReason.CONSUMED, CancellationReason.MANUAL})


class EnrichmentBundle(BaseModel):
    """Side-channel data captured alongside the form when a draft starts."""

    jurisdiction: Optional[Dict[str, Any]] = None
    company: Optional[Dict[str, Any]] = None
    job_title: Optional[Dict[str, Any]] = None
    market_standards: Optional[Dict[str, Any]] = None


class GeneratedDocument(BaseModel):
    """What a document generator returns."""

    document: Dict[str, Any]
    metadata: Dict[str, Any] = Field(default_factory=dict)
    usage: Optional[Dict[str, Any]] = None


class GenerationResult(BaseModel):
    """A finished draft together with the inputs it was produced from."""

    document: Dict[str, Any]
    metadata: Dict[str, Any] = Field(default_factory=dict)
    usage: Optional[Dict[str, Any]] = None
    form_data_snapshot: Dict[str, Any] = Field(default_factory=dict)
    fingerprint: str


class BackgroundGenerationState(BaseModel):
    """Read-only view of the Store's single attempt slot."""

    status: GenerationStatus = GenerationStatus.IDLE
    attempt_id: Optional[int] = None
    fingerprint: Optional[str] = None
    is_current: bool = False
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    result: Optional[GenerationResult] = None
    error: Optional[str] = None
    stale_reason: Optional[CancellationReason] = None


DocumentGenerator = Callable[
    [Dict[str, Any], Optional[EnrichmentBundle]], Awaitable[GeneratedDocument]
]


class OutcomeKind(str, Enum):
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CANCELLED = "cancelled"


@dataclass
class GenerationOutcome:
    kind: OutcomeKind
    generated: Optional[GeneratedDocument] = None
    error: Optional[str] = None

    @classmethod
    def cancelled(cls) -> "GenerationOutcome":
        return cls(kind=OutcomeKind.CANCELLED)


@dataclass
class GenerationAttempt:
    """One unit of background work. Identity is `attempt_id`."""

    attempt_id: int
    fingerprint: str
    form_data_snapshot: Dict[str, Any]
    started_at: datetime
    token: CancellationToken = field(default_factory=CancellationToken)
    status: GenerationStatus = GenerationStatus.PENDING
    completed_at: Optional[datetime] = None
    result: Optional[GenerationResult] = None
    error: Optional[str] = None
    stale_reason: Optional[CancellationReason] = None
    task: Optional[asyncio.Task] = field(default=None, repr=False)
