"""Wizard session routes — inputs, background drafting and final generation.

Endpoints:
  POST   /wizard/sessions                              — Create a wizard session
  GET    /wizard/sessions/{session_id}                 — Inputs + background state
  DELETE /wizard/sessions/{session_id}                 — Cancel drafting, drop session
  PUT    /wizard/sessions/{session_id}/inputs          — Replace the input snapshot
  PATCH  /wizard/sessions/{session_id}/inputs          — Merge field updates
  PUT    /wizard/sessions/{session_id}/enrichment      — Set jurisdiction/market data
  POST   /wizard/sessions/{session_id}/background/start   — Start a background draft
  POST   /wizard/sessions/{session_id}/background/cancel  — Cancel it
  GET    /wizard/sessions/{session_id}/background         — Read its state
  POST   /wizard/sessions/{session_id}/generate        — Generate now (reuse or fall back)
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException, Response, status
from sqlalchemy.orm import Session

from ..background import (
    DirectGenerationError,
    EmptySnapshotError,
    EnrichmentBundle,
    GenerationResult,
    StaleFingerprintError,
    generate_now,
)
from ..config import get_background_await_timeout_ms
from ..database import get_db
from ..deps import get_session_registry
from ..models.agreement import GeneratedAgreement
from ..schemas.wizard_schema import (
    BackgroundStateResponse,
    CancelRequest,
    CreateSessionRequest,
    GenerateRequest,
    GenerateResponse,
    InputsUpdateRequest,
    SessionResponse,
)
from ..services.session_registry import (
    SessionNotFoundError,
    WizardSession,
    WizardSessionRegistry,
)

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/wizard",
    tags=["Wizard"],
)


# ── Helpers ──────────────────────────────────────────────────────────────

def _load_session(session_id: str, registry: WizardSessionRegistry) -> WizardSession:
    try:
        return registry.get(session_id)
    except SessionNotFoundError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Wizard session {session_id} not found",
        )


def _session_response(session: WizardSession) -> SessionResponse:
    store = session.store
    return SessionResponse(
        session_id=session.session_id,
        template_id=session.template_id,
        form_data=store.snapshot,
        current_fingerprint=store.fingerprint,
        background=store.read(),
    )


def _background_response(session: WizardSession) -> BackgroundStateResponse:
    return BackgroundStateResponse(
        session_id=session.session_id,
        current_fingerprint=session.store.fingerprint,
        background=session.store.read(),
    )


def _persist_agreement(
    db: Session,
    session: WizardSession,
    result: GenerationResult,
    source: str,
) -> GeneratedAgreement:
    record = GeneratedAgreement(
        session_id=session.session_id,
        template_id=session.template_id,
        fingerprint=result.fingerprint,
        source=source,
        jurisdiction=result.metadata.get("jurisdiction"),
        document_json=json.dumps(result.document, default=str),
        form_data_json=json.dumps(result.form_data_snapshot, default=str),
        usage_json=json.dumps(result.usage) if result.usage is not None else None,
        created_at=datetime.now(timezone.utc),
    )
    db.add(record)
    db.commit()
    db.refresh(record)
    return record


# ── Session lifecycle ────────────────────────────────────────────────────

@router.post(
    "/sessions",
    response_model=SessionResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create wizard session",
)
async def create_session(
    body: CreateSessionRequest,
    registry: WizardSessionRegistry = Depends(get_session_registry),
) -> SessionResponse:
    await registry.purge_expired()
    session = registry.create(template_id=body.template_id, form_data=body.form_data)
    return _session_response(session)


@router.get(
    "/sessions/{session_id}",
    response_model=SessionResponse,
    summary="Get wizard session",
)
async def get_session(
    session_id: str,
    registry: WizardSessionRegistry = Depends(get_session_registry),
) -> SessionResponse:
    return _session_response(_load_session(session_id, registry))


@router.delete(
    "/sessions/{session_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Close wizard session",
)
async def delete_session(
    session_id: str,
    registry: WizardSessionRegistry = Depends(get_session_registry),
) -> Response:
    try:
        await registry.close(session_id)
    except SessionNotFoundError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Wizard session {session_id} not found",
        )
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ── Inputs ───────────────────────────────────────────────────────────────

@router.put(
    "/sessions/{session_id}/inputs",
    response_model=BackgroundStateResponse,
    summary="Replace wizard inputs",
)
async def replace_inputs(
    session_id: str,
    body: InputsUpdateRequest,
    registry: WizardSessionRegistry = Depends(get_session_registry),
) -> BackgroundStateResponse:
    session = _load_session(session_id, registry)
    session.store.update_inputs(body.form_data)
    return _background_response(session)


@router.patch(
    "/sessions/{session_id}/inputs",
    response_model=BackgroundStateResponse,
    summary="Merge wizard field updates",
)
async def merge_inputs(
    session_id: str,
    body: InputsUpdateRequest,
    registry: WizardSessionRegistry = Depends(get_session_registry),
) -> BackgroundStateResponse:
    session = _load_session(session_id, registry)
    session.store.merge_inputs(body.form_data)
    return _background_response(session)


@router.put(
    "/sessions/{session_id}/enrichment",
    response_model=BackgroundStateResponse,
    summary="Set enrichment data",
)
async def set_enrichment(
    session_id: str,
    body: EnrichmentBundle,
    registry: WizardSessionRegistry = Depends(get_session_registry),
) -> BackgroundStateResponse:
    session = _load_session(session_id, registry)
    session.store.set_enrichment(body)
    return _background_response(session)


# ── Background drafting ──────────────────────────────────────────────────

@router.post(
    "/sessions/{session_id}/background/start",
    response_model=BackgroundStateResponse,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Start background drafting",
)
async def start_background(
    session_id: str,
    registry: WizardSessionRegistry = Depends(get_session_registry),
) -> BackgroundStateResponse:
    """Start drafting the current inputs. Idempotent for unchanged inputs."""
    session = _load_session(session_id, registry)
    session.store.start()
    return _background_response(session)


@router.post(
    "/sessions/{session_id}/background/cancel",
    response_model=BackgroundStateResponse,
    summary="Cancel background drafting",
)
async def cancel_background(
    session_id: str,
    body: CancelRequest,
    registry: WizardSessionRegistry = Depends(get_session_registry),
) -> BackgroundStateResponse:
    session = _load_session(session_id, registry)
    session.store.cancel(body.reason)
    return _background_response(session)


@router.get(
    "/sessions/{session_id}/background",
    response_model=BackgroundStateResponse,
    summary="Read background drafting state",
)
async def read_background(
    session_id: str,
    registry: WizardSessionRegistry = Depends(get_session_registry),
) -> BackgroundStateResponse:
    return _background_response(_load_session(session_id, registry))


# ── Generate now ─────────────────────────────────────────────────────────

@router.post(
    "/sessions/{session_id}/generate",
    response_model=GenerateResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Generate the agreement",
    response_description="The agreement and whether it came from the background draft",
)
async def generate_agreement(
    session_id: str,
    body: GenerateRequest,
    registry: WizardSessionRegistry = Depends(get_session_registry),
    db: Session = Depends(get_db),
) -> GenerateResponse:
    """Return the background draft when it matches the inputs, otherwise generate now.

    Rules:
    - A ready draft for the current inputs is returned without another AI call.
    - A pending draft is awaited up to `timeout_ms`.
    - Anything else falls back to a direct generation.
    """
    session = _load_session(session_id, registry)
    timeout_ms = body.timeout_ms
    if timeout_ms is None:
        timeout_ms = get_background_await_timeout_ms()

    try:
        result, source = await generate_now(
            session.store,
            fingerprint=body.fingerprint,
            timeout_ms=timeout_ms,
        )
    except EmptySnapshotError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
    except StaleFingerprintError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))
    except DirectGenerationError as exc:
        logger.warning("[WIZARD] Generation failed for session %s: %s", session_id, exc)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Employment agreement generation failed: {exc}",
        ) from exc

    record = _persist_agreement(db, session, result, source)
    logger.info(
        "[WIZARD] Agreement %s stored for session %s (source=%s)",
        record.id, session_id, source,
    )

    return GenerateResponse(
        session_id=session.session_id,
        agreement_id=str(record.id),
        source=source,
        result=result,
    )
