"""Employment Agreement Generator — OpenAI-powered, jurisdiction-aware.

Uses the centralized OpenAI client (`call_openai_chat_async`) for single-stage
generation. JSON response format is enforced at the client level. Validates the
response shape and returns a GeneratedDocument wrapping an
EmploymentAgreementDocument.

This is the document generator the background controller runs speculatively,
and the one the "generate now" action falls back to.
"""

from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional

from ...background.types import EnrichmentBundle, GeneratedDocument
from ...services.openai_client import call_openai_chat_async, validate_required_keys
from .prompts import SYSTEM_PROMPT, build_employment_agreement_prompt, default_effective_date
from .rules import resolve_jurisdiction
from .schema import (
    AgreementMetadata,
    EmploymentAgreementDocument,
    MANDATORY_DISCLAIMER,
    Signatory,
)

_REQUIRED_KEYS = ["title", "sections"]


def _string_list(value: Any) -> List[str]:
    if not isinstance(value, list):
        return []
    return [str(item) for item in value if str(item).strip()]


def build_signatories(form_data: Mapping[str, Any]) -> List[Signatory]:
    """Signatories come from the form, never from the model."""
    signatories: List[Signatory] = []
    company = str(form_data.get("companyName") or "").strip()
    if company:
        signatories.append(
            Signatory(
                party="employer",
                name=str(form_data.get("companyContactName") or company).strip(),
                title=form_data.get("companyContactTitle") or None,
                email=form_data.get("companyContactEmail") or None,
            )
        )
    employee = str(form_data.get("employeeName") or "").strip()
    if employee:
        signatories.append(
            Signatory(
                party="employee",
                name=employee,
                email=form_data.get("employeeEmail") or None,
            )
        )
    return signatories


async def generate_employment_agreement(
    form_data: Dict[str, Any],
    enrichment: Optional[EnrichmentBundle] = None,
) -> GeneratedDocument:
    """Generate an employment agreement from wizard form data.

    Parameters
    ----------
    form_data : dict
        The wizard's input snapshot (camelCase field names from the frontend).
    enrichment : EnrichmentBundle or None
        Jurisdiction / company / job-title / market-standards data captured
        when the generation started.

    Returns
    -------
    GeneratedDocument

    Raises
    ------
    ValueError
        If the form lacks both party names.
    RuntimeError
        If OpenAI fails after retries or returns a malformed agreement.
    """
    # ── Validate inputs ─────────────────────────────────────────
    if not form_data.get("companyName") and not form_data.get("employeeName"):
        raise ValueError("An employment agreement needs at least an employer or employee name.")

    print(
        f"⚖️ [AGREEMENT] Generating for company={form_data.get('companyName')} "
        f"employee={form_data.get('employeeName')}"
    )

    # ── Resolve jurisdiction ────────────────────────────────────
    jurisdiction = resolve_jurisdiction(
        form_data, enrichment.jurisdiction if enrichment else None
    )
    print(f"🌍 [AGREEMENT] Jurisdiction: {jurisdiction.country}")
    print(f"🌍 [AGREEMENT] Governing law: {jurisdiction.governing_law}")

    effective_date = default_effective_date(form_data)

    # ── Build prompt & call OpenAI ──────────────────────────────
    user_prompt = build_employment_agreement_prompt(
        form_data,
        jurisdiction,
        effective_date=effective_date,
        enrichment=enrichment,
    )
    messages = [
        {"role": "system", "content": SYSTEM_PROMPT},
        {"role": "user", "content": user_prompt},
    ]

    print(f"🧠 [AGREEMENT] Calling OpenAI (prompt={len(user_prompt)} chars)")
    completion = await call_openai_chat_async(messages=messages)

    if completion is None:
        raise RuntimeError(
            "OpenAI failed to generate the employment agreement after retries. "
            "Please try again."
        )

    result = completion.content

    # ── Validate response shape ─────────────────────────────────
    if not validate_required_keys(result, _REQUIRED_KEYS, context="AGREEMENT"):
        raise RuntimeError(
            "OpenAI returned an incomplete agreement (missing required fields). "
            "Please try again."
        )

    sections = result.get("sections", [])
    if not isinstance(sections, list) or len(sections) == 0:
        raise RuntimeError(
            "OpenAI returned empty or invalid sections array. Please try again."
        )

    for i, section in enumerate(sections):
        if not isinstance(section, dict) or "title" not in section or "content" not in section:
            raise RuntimeError(
                f"Section {i} is malformed (missing 'title' or 'content'). Please try again."
            )

    print(f"🧠 [AGREEMENT] OpenAI generation successful — {len(sections)} sections")

    # ── Assemble output ─────────────────────────────────────────
    customization_notes = _string_list(result.get("customization_notes"))
    customization_notes.extend(jurisdiction.legal_notes)

    document = EmploymentAgreementDocument(
        metadata=AgreementMetadata(
            title=str(result.get("title") or "Employment Agreement"),
            jurisdiction=jurisdiction.country,
            governing_law=jurisdiction.governing_law,
            effective_date=effective_date,
            disclaimer=MANDATORY_DISCLAIMER,
            model=completion.model,
        ),
        sections=[
            {"title": str(s["title"]), "content": str(s["content"])} for s in sections
        ],
        signatories=build_signatories(form_data),
        customization_notes=customization_notes,
        legal_risk_notes=_string_list(result.get("legal_risk_notes")),
    )

    print(f"✅ [AGREEMENT] Employment agreement generated for {jurisdiction.country}")
    return GeneratedDocument(
        document=document.model_dump(mode="json"),
        metadata=document.metadata.model_dump(mode="json"),
        usage=completion.usage,
    )
