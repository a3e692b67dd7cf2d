"""Background State Store.

Holds the wizard's current input snapshot and at most one generation attempt.
All mutations run on the event loop thread; the generator call is the only
suspension point, so check-then-act sequences here cannot interleave, but a
completion can still arrive for an attempt that was superseded while it was
in flight. `_complete` guards against that by attempt identity.

State machine (single slot):

    idle --start--> pending --success--> ready --consume--> idle
    pending --failure--> error
    (pending|ready|error) --input-changed--> stale
    (pending|ready|error|stale) --explicit-cancel--> idle
    stale --start(new fingerprint)--> pending
"""

from __future__ import annotations

import asyncio
import copy
import itertools
import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Mapping, Optional, Set, Union

from .fingerprint import fingerprint as compute_fingerprint
from .runner import run_generation
from .types import (
    FORGETTING_REASONS,
    BackgroundGenerationState,
    CancellationReason,
    DocumentGenerator,
    EnrichmentBundle,
    GenerationAttempt,
    GenerationOutcome,
    GenerationResult,
    GenerationStatus,
    OutcomeKind,
)

logger = logging.getLogger(__name__)

_INVALIDATABLE = frozenset(
    {GenerationStatus.PENDING, GenerationStatus.READY, GenerationStatus.ERROR}
)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class BackgroundGenerationStore:
    """Speculative, fingerprint-keyed, cancellable draft cache for one wizard."""

    def __init__(
        self,
        generator: DocumentGenerator,
        *,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.generator = generator
        self._clock = clock
        self._snapshot: Dict[str, Any] = {}
        self._enrichment: Optional[EnrichmentBundle] = None
        self._attempt: Optional[GenerationAttempt] = None
        self._attempt_ids = itertools.count(1)
        # Superseded tasks stay referenced until done so the loop cannot drop them.
        self._background_tasks: Set[asyncio.Task] = set()

    # ── Inputs ───────────────────────────────────────────────────────

    @property
    def snapshot(self) -> Dict[str, Any]:
        return copy.deepcopy(self._snapshot)

    @property
    def enrichment(self) -> Optional[EnrichmentBundle]:
        if self._enrichment is None:
            return None
        return self._enrichment.model_copy(deep=True)

    @property
    def fingerprint(self) -> str:
        """Fingerprint of the current input snapshot."""
        return compute_fingerprint(self._snapshot)

    def update_inputs(self, snapshot: Optional[Mapping[str, Any]]) -> BackgroundGenerationState:
        """Replace the input snapshot, invalidating a draft made for other inputs."""
        self._snapshot = copy.deepcopy(dict(snapshot or {}))
        next_fingerprint = compute_fingerprint(self._snapshot)

        attempt = self._attempt
        if (
            attempt is not None
            and attempt.status in _INVALIDATABLE
            and attempt.fingerprint != next_fingerprint
        ):
            self.cancel(CancellationReason.FORM_UPDATED)

        return self.read()

    def merge_inputs(self, updates: Mapping[str, Any]) -> BackgroundGenerationState:
        merged = dict(self._snapshot)
        merged.update(copy.deepcopy(dict(updates)))
        return self.update_inputs(merged)

    def set_enrichment(self, enrichment: Optional[EnrichmentBundle]) -> None:
        # Enrichment is not part of the fingerprint; a draft in flight keeps
        # the bundle it was started with.
        self._enrichment = enrichment.model_copy(deep=True) if enrichment else None

    # ── Attempt lifecycle ────────────────────────────────────────────

    def start(self) -> BackgroundGenerationState:
        """Begin drafting the current snapshot in the background.

        Must be called with an event loop running. No-op for an empty snapshot
        or when a draft for the same fingerprint is already pending or ready.
        """
        target = self.fingerprint
        if not target:
            logger.debug("[BACKGROUND] Nothing to generate yet, start ignored")
            return self.read()

        current = self._attempt
        if (
            current is not None
            and current.fingerprint == target
            and current.status in (GenerationStatus.PENDING, GenerationStatus.READY)
        ):
            return self.read()

        if current is not None:
            current.token.cancel("superseded")

        attempt = GenerationAttempt(
            attempt_id=next(self._attempt_ids),
            fingerprint=target,
            form_data_snapshot=copy.deepcopy(self._snapshot),
            started_at=self._clock(),
        )
        self._attempt = attempt

        enrichment = self.enrichment
        task = asyncio.get_running_loop().create_task(
            self._drive(attempt, copy.deepcopy(self._snapshot), enrichment),
            name=f"background-draft-{attempt.attempt_id}",
        )
        attempt.task = task
        self._background_tasks.add(task)
        task.add_done_callback(self._background_tasks.discard)

        logger.info(
            "[BACKGROUND] Draft #%d started for %s", attempt.attempt_id, target[:12]
        )
        return self.read()

    def cancel(
        self, reason: Union[CancellationReason, str] = CancellationReason.MANUAL
    ) -> BackgroundGenerationState:
        """Cancel the current attempt.

        `manual` and `consumed` forget the attempt (idle); `form-updated` and
        `navigation` keep it around as stale so the UI can show an outdated draft.
        """
        reason = CancellationReason(reason)
        attempt = self._attempt
        if attempt is None:
            return self.read()

        attempt.token.cancel(reason.value)

        if reason in FORGETTING_REASONS:
            self._attempt = None
            logger.info(
                "[BACKGROUND] Draft #%d cleared (%s)", attempt.attempt_id, reason.value
            )
        else:
            attempt.status = GenerationStatus.STALE
            attempt.stale_reason = reason
            logger.info(
                "[BACKGROUND] Draft #%d marked stale (%s)", attempt.attempt_id, reason.value
            )
        return self.read()

    async def _drive(
        self,
        attempt: GenerationAttempt,
        form_data: Dict[str, Any],
        enrichment: Optional[EnrichmentBundle],
    ) -> None:
        outcome = await run_generation(form_data, enrichment, attempt.token, self.generator)
        self._complete(attempt, outcome)

    def _complete(self, attempt: GenerationAttempt, outcome: GenerationOutcome) -> None:
        current = self._attempt
        if (
            current is not attempt
            or current.fingerprint != attempt.fingerprint
            or current.status is not GenerationStatus.PENDING
            or attempt.token.cancelled
        ):
            logger.debug(
                "[BACKGROUND] Dropped %s outcome of superseded draft #%d",
                outcome.kind.value,
                attempt.attempt_id,
            )
            return

        attempt.completed_at = self._clock()
        if outcome.kind is OutcomeKind.CANCELLED:
            # The call itself was cancelled while the token was not. The slot
            # must leave pending so a later start() can retry.
            attempt.error = "cancelled"
            attempt.status = GenerationStatus.ERROR
            logger.warning(
                "[BACKGROUND] Draft #%d was cancelled by its generator", attempt.attempt_id
            )
        elif outcome.kind is OutcomeKind.SUCCEEDED and outcome.generated is not None:
            generated = outcome.generated
            attempt.result = GenerationResult(
                document=generated.document,
                metadata=generated.metadata,
                usage=generated.usage,
                form_data_snapshot=attempt.form_data_snapshot,
                fingerprint=attempt.fingerprint,
            )
            attempt.status = GenerationStatus.READY
        else:
            attempt.error = outcome.error or "Document generator returned no result."
            attempt.status = GenerationStatus.ERROR

    # ── Reads ────────────────────────────────────────────────────────

    def read(self) -> BackgroundGenerationState:
        """Copy of the attempt slot; safe to hand to the UI."""
        attempt = self._attempt
        if attempt is None:
            return BackgroundGenerationState()
        return BackgroundGenerationState(
            status=attempt.status,
            attempt_id=attempt.attempt_id,
            fingerprint=attempt.fingerprint,
            is_current=attempt.fingerprint == self.fingerprint,
            started_at=attempt.started_at,
            completed_at=attempt.completed_at,
            result=attempt.result.model_copy(deep=True) if attempt.result else None,
            error=attempt.error,
            stale_reason=attempt.stale_reason,
        )

    def pending_task(self, target: str) -> Optional[asyncio.Task]:
        attempt = self._attempt
        if (
            attempt is None
            or attempt.fingerprint != target
            or attempt.status is not GenerationStatus.PENDING
        ):
            return None
        return attempt.task

    def ready_result(self, target: str) -> Optional[GenerationResult]:
        attempt = self._attempt
        if (
            attempt is None
            or attempt.fingerprint != target
            or attempt.status is not GenerationStatus.READY
            or target != self.fingerprint
            or attempt.result is None
        ):
            return None
        return attempt.result.model_copy(deep=True)

    # ── Shutdown ─────────────────────────────────────────────────────

    async def aclose(self) -> None:
        """Cancel any draft and wait for outstanding tasks to wind down."""
        self.cancel(CancellationReason.MANUAL)
        tasks = list(self._background_tasks)
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
