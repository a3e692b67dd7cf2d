"""Consumer Interface: what the "generate now" action uses.

`await_background_generation` never forces a questionable draft on the caller:
anything other than a ready draft for exactly the requested fingerprint comes
back as `None`, and the caller generates directly instead.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Optional, Tuple

from .runner import run_generation
from .cancellation import CancellationToken
from .store import BackgroundGenerationStore
from .types import CancellationReason, GenerationResult, OutcomeKind

logger = logging.getLogger(__name__)

SOURCE_BACKGROUND = "background"
SOURCE_DIRECT = "direct"


class EmptySnapshotError(ValueError):
    """The wizard has no inputs yet."""


class StaleFingerprintError(ValueError):
    """The requested fingerprint does not match the current inputs."""

    def __init__(self, requested: str, current: str) -> None:
        super().__init__("Inputs changed since this fingerprint was computed.")
        self.requested = requested
        self.current = current


class DirectGenerationError(RuntimeError):
    """The synchronous fallback generation failed."""


async def await_background_generation(
    store: BackgroundGenerationStore,
    fingerprint: str,
    timeout_ms: Optional[int],
) -> Optional[GenerationResult]:
    """Return the background draft for `fingerprint`, waiting up to `timeout_ms`.

    A timeout leaves the draft running; it will still land in the Store for the
    next caller. `timeout_ms` of None or <= 0 waits without a deadline.
    """
    if not fingerprint:
        return None

    cached = store.ready_result(fingerprint)
    if cached is not None:
        return cached

    task = store.pending_task(fingerprint)
    if task is None:
        return None

    timeout = timeout_ms / 1000 if timeout_ms and timeout_ms > 0 else None
    try:
        # shield: giving up on the wait must not cancel the draft itself.
        await asyncio.wait_for(asyncio.shield(task), timeout)
    except asyncio.TimeoutError:
        logger.info(
            "[BACKGROUND] Draft for %s not ready within %sms", fingerprint[:12], timeout_ms
        )
        return None

    return store.ready_result(fingerprint)


async def generate_now(
    store: BackgroundGenerationStore,
    fingerprint: Optional[str] = None,
    timeout_ms: Optional[int] = None,
) -> Tuple[GenerationResult, str]:
    """Produce the final document, reusing the background draft when possible.

    Returns `(result, source)` where source is "background" or "direct". The
    background slot is marked consumed once a result is handed out.

    Raises
    ------
    EmptySnapshotError
        If there are no inputs to generate from.
    StaleFingerprintError
        If `fingerprint` was computed from inputs that have since changed.
    DirectGenerationError
        If the fallback generation fails.
    """
    current = store.fingerprint
    if not current:
        raise EmptySnapshotError("Nothing to generate: the wizard has no inputs yet.")
    if fingerprint and fingerprint != current:
        raise StaleFingerprintError(fingerprint, current)

    cached = await await_background_generation(store, current, timeout_ms)
    if cached is not None and store.fingerprint == current:
        store.cancel(CancellationReason.CONSUMED)
        logger.info("[BACKGROUND] Using background draft for %s", current[:12])
        return cached, SOURCE_BACKGROUND

    form_data = store.snapshot
    target = store.fingerprint
    if not target:
        raise EmptySnapshotError("Nothing to generate: the wizard has no inputs yet.")
    logger.info("[BACKGROUND] Falling back to direct generation for %s", target[:12])
    outcome = await run_generation(
        form_data, store.enrichment, CancellationToken(), store.generator
    )
    if outcome.kind is not OutcomeKind.SUCCEEDED or outcome.generated is None:
        raise DirectGenerationError(outcome.error or "Document generation failed.")

    # Inputs may have changed during the call; a draft for the newer inputs stays.
    slot = store.read()
    if not (slot.is_current and slot.fingerprint != target):
        store.cancel(CancellationReason.CONSUMED)
    generated = outcome.generated
    result = GenerationResult(
        document=generated.document,
        metadata=generated.metadata,
        usage=generated.usage,
        form_data_snapshot=form_data,
        fingerprint=target,
    )
    return result, SOURCE_DIRECT
