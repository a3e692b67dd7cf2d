from .cancellation import CancellationToken
from .consumer import (
    DirectGenerationError,
    EmptySnapshotError,
    StaleFingerprintError,
    await_background_generation,
    generate_now,
)
from .fingerprint import canonical_json, fingerprint
from .runner import run_generation
from .store import BackgroundGenerationStore
from .types import (
    BackgroundGenerationState,
    CancellationReason,
    DocumentGenerator,
    EnrichmentBundle,
    GeneratedDocument,
    GenerationResult,
    GenerationStatus,
)

__all__ = [
    "BackgroundGenerationStore",
    "BackgroundGenerationState",
    "CancellationReason",
    "CancellationToken",
    "DirectGenerationError",
    "DocumentGenerator",
    "EmptySnapshotError",
    "EnrichmentBundle",
    "GeneratedDocument",
    "GenerationResult",
    "GenerationStatus",
    "StaleFingerprintError",
    "await_background_generation",
    "canonical_json",
    "fingerprint",
    "generate_now",
    "run_generation",
]
