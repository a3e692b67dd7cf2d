"""Jurisdiction-aware rules for the Employment Agreement Generator.

Maps countries to governing law clauses and employment-law notes, and turns
raw form option values into the labels used in prompts. All rules are
deterministic; AI-derived jurisdiction data from the enrichment bundle takes
precedence when present.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional


# ── Governing law mappings ───────────────────────────────────────────────

GOVERNING_LAW_MAP: Dict[str, str] = {
    "united states": "Laws of the State of Delaware, United States",
    "usa": "Laws of the State of Delaware, United States",
    "us": "Laws of the State of Delaware, United States",
    "united kingdom": "Laws of England and Wales, United Kingdom",
    "uk": "Laws of England and Wales, United Kingdom",
    "canada": "Laws of the Province of Ontario, Canada",
    "australia": "Laws of New South Wales, Australia",
    "germany": "Laws of the Federal Republic of Germany",
    "france": "Laws of the French Republic",
    "india": "Laws of the Republic of India",
    "pakistan": "Laws of the Islamic Republic of Pakistan",
    "uae": "Laws of the Emirate of Dubai, United Arab Emirates",
    "united arab emirates": "Laws of the Emirate of Dubai, United Arab Emirates",
    "singapore": "Laws of the Republic of Singapore",
    "ireland": "Laws of Ireland",
    "netherlands": "Laws of the Kingdom of the Netherlands",
}

# Jurisdictions where post-employment non-competes are void or heavily restricted
NON_COMPETE_RESTRICTED = {"california", "united states - california", "uae"}

# Jurisdictions where employee personal data falls under GDPR
GDPR_COUNTRIES = {
    "united kingdom", "uk", "germany", "france", "ireland",
    "netherlands", "italy", "spain", "portugal", "belgium",
    "austria", "sweden", "denmark", "finland", "norway",
    "poland", "czech republic", "romania", "hungary", "greece",
    "eu",
}

DEFAULT_COUNTRY = "United States"


@dataclass
class JurisdictionContext:
    """Deterministic context derived from the form and enrichment data."""

    country: str
    governing_law: str
    requires_gdpr: bool
    state: Optional[str] = None
    legal_notes: List[str] = field(default_factory=list)


def _clean(value: Any) -> str:
    return str(value).strip() if value is not None else ""


def resolve_jurisdiction(
    form_data: Mapping[str, Any],
    jurisdiction_data: Optional[Mapping[str, Any]] = None,
) -> JurisdictionContext:
    """Resolve the agreement's jurisdiction.

    Precedence: enrichment jurisdiction data, then the explicit `governingLaw`
    field, then the company's country through GOVERNING_LAW_MAP.
    """
    jurisdiction_data = jurisdiction_data or {}

    country = (
        _clean(jurisdiction_data.get("country"))
        or _clean(form_data.get("companyCountry"))
        or DEFAULT_COUNTRY
    )
    state = _clean(jurisdiction_data.get("state")) or _clean(form_data.get("companyState")) or None
    geo_lower = country.lower()

    governing_law = (
        _clean(jurisdiction_data.get("governingLaw"))
        or _clean(form_data.get("governingLaw"))
        or GOVERNING_LAW_MAP.get(geo_lower, f"Laws of {country.title()}")
    )

    requires_gdpr = geo_lower in GDPR_COUNTRIES

    notes: List[str] = []
    if requires_gdpr:
        notes.append(
            "This jurisdiction falls under GDPR. The agreement includes an employee "
            "data processing clause and a reference to the employee privacy notice."
        )
    region = f"{geo_lower} - {state.lower()}" if state else geo_lower
    if (state or "").lower() in NON_COMPETE_RESTRICTED or region in NON_COMPETE_RESTRICTED:
        notes.append(
            "Post-employment non-compete covenants are generally unenforceable here; "
            "rely on confidentiality and non-solicitation instead."
        )
    if geo_lower in ("united states", "usa", "us"):
        notes.append(
            "US jurisdiction: employment is presumed at-will unless the agreement states otherwise; "
            "check state wage-payment and final-pay timing rules."
        )
    for note in jurisdiction_data.get("notes") or []:
        if isinstance(note, str) and note.strip():
            notes.append(note.strip())

    return JurisdictionContext(
        country=country.title() if country.islower() else country,
        governing_law=governing_law,
        requires_gdpr=requires_gdpr,
        state=state,
        legal_notes=notes,
    )


# ── Option labels ────────────────────────────────────────────────────────

def format_label(value: Any) -> str:
    """'full_time' / 'full-time' -> 'Full Time'."""
    text = _clean(value)
    if not text:
        return ""
    return " ".join(part.capitalize() for part in text.replace("-", " ").replace("_", " ").split())


PAYMENT_FREQUENCY = {
    "hourly": "Bi-weekly, based on hours worked",
    "weekly": "Weekly",
    "monthly": "Monthly",
    "annual": "Bi-weekly or semi-monthly installments per company payroll",
    "yearly": "Bi-weekly or semi-monthly installments per company payroll",
}


def derive_payment_frequency(salary_period: Any) -> str:
    return PAYMENT_FREQUENCY.get(
        _clean(salary_period).lower(), "In accordance with the Company's standard payroll schedule"
    )


def format_address(*parts: Any) -> str:
    return ", ".join(_clean(p) for p in parts if _clean(p))
