"""Generation Task Runner.

Runs one call to a document generator under a cancellation token and reports
how it ended. The runner never touches the Store; the Store passes in values
captured when the attempt started and receives the outcome as a return value.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Dict, Optional

from .cancellation import CancellationToken
from .types import (
    DocumentGenerator,
    EnrichmentBundle,
    GenerationOutcome,
    OutcomeKind,
)

logger = logging.getLogger(__name__)


def _discard_late_outcome(task: asyncio.Future) -> None:
    """Retrieve the outcome of an abandoned call so it is never reported as unhandled."""
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.debug("[BACKGROUND] Discarded late failure of cancelled draft: %s", exc)


def _error_message(exc: BaseException) -> str:
    message = str(exc).strip()
    return message or exc.__class__.__name__


async def run_generation(
    form_data: Dict[str, Any],
    enrichment: Optional[EnrichmentBundle],
    token: CancellationToken,
    generator: DocumentGenerator,
) -> GenerationOutcome:
    """Run `generator(form_data, enrichment)` until it finishes or `token` is cancelled.

    Returns a SUCCEEDED outcome with the generated document, a FAILED outcome
    with the error message, or a CANCELLED outcome. Generator exceptions are
    never raised to the caller.
    """
    if token.cancelled:
        return GenerationOutcome.cancelled()

    t0 = time.perf_counter()
    try:
        call = asyncio.ensure_future(generator(form_data, enrichment))
    except Exception as exc:
        logger.warning("[BACKGROUND] Draft could not be started: %s", _error_message(exc))
        return GenerationOutcome(kind=OutcomeKind.FAILED, error=_error_message(exc))
    cancel_wait = asyncio.ensure_future(token.wait())

    try:
        await asyncio.wait({call, cancel_wait}, return_when=asyncio.FIRST_COMPLETED)
    except asyncio.CancelledError:
        call.cancel()
        call.add_done_callback(_discard_late_outcome)
        cancel_wait.cancel()
        raise

    if not call.done() or token.cancelled:
        # Cooperative: the request is asked to stop, whatever it yields is dropped.
        if not call.done():
            call.cancel()
        call.add_done_callback(_discard_late_outcome)
        cancel_wait.cancel()
        logger.info("[BACKGROUND] Draft cancelled (%s)", token.reason or "unspecified")
        return GenerationOutcome.cancelled()

    cancel_wait.cancel()
    duration_ms = (time.perf_counter() - t0) * 1000

    if call.cancelled():
        return GenerationOutcome.cancelled()

    exc = call.exception()
    if exc is not None:
        logger.warning(
            "[BACKGROUND] Draft failed after %.0fms: %s", duration_ms, _error_message(exc)
        )
        return GenerationOutcome(kind=OutcomeKind.FAILED, error=_error_message(exc))

    logger.info("[BACKGROUND] Draft generated in %.0fms", duration_ms)
    return GenerationOutcome(kind=OutcomeKind.SUCCEEDED, generated=call.result())
