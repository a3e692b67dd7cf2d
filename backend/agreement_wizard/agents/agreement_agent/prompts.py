"""Prompt templates for the Employment Agreement Generator.

System + User prompt separation. Output is always valid JSON.
JSON enforcement is handled by response_format in the centralized openai_client.
"""

from __future__ import annotations

import json
from datetime import date
from typing import Any, List, Mapping, Optional

from ...background.types import EnrichmentBundle
from .rules import (
    JurisdictionContext,
    derive_payment_frequency,
    format_address,
    format_label,
)

SYSTEM_PROMPT = """You are a senior employment lawyer drafting employment agreements.

ROLE:
- You draft complete, professional employment agreements from structured facts.
- You adapt clauses to the specified jurisdiction and governing law.
- You use the EXACT names, amounts and dates provided. Never invent placeholders.
- You NEVER give legal advice — every document carries a mandatory disclaimer.

OUTPUT FORMAT:
You MUST respond with a single JSON object. No markdown, no explanation, no prose.

The JSON object MUST have these exact keys:
{
  "title": "<agreement title>",
  "sections": [
    {"title": "<article title, e.g. 'Article 1 - Position and Duties'>", "content": "<full clause text>"}
  ],
  "customization_notes": ["<how the agreement was tailored>"],
  "legal_risk_notes": ["<risk the employer should review>"]
}

RULES:
1. Sections must follow the logical order of an employment agreement: parties and
   recitals, position and duties, term, compensation, benefits, working time,
   confidentiality and IP, restrictive covenants, termination, dispute resolution,
   general provisions.
2. Each section must have both "title" and "content" keys; content is final legal text.
3. Only include restrictive covenants that were requested.
4. Reflect mandatory employment-law protections of the jurisdiction.
5. Do NOT include a signature block; signatures are added separately.
6. Return ONLY the JSON object. No surrounding text."""


def _get(data: Mapping[str, Any], key: str, default: str = "") -> str:
    value = data.get(key)
    if value is None or value == "":
        return default
    return str(value).strip()


def _format_amount(value: Any) -> str:
    try:
        return f"{float(value):,.2f}".rstrip("0").rstrip(".")
    except (TypeError, ValueError):
        return str(value)


def _enrichment_lines(enrichment: Optional[EnrichmentBundle]) -> List[str]:
    if enrichment is None:
        return []

    lines: List[str] = []
    if enrichment.company:
        lines.append(f"- Company profile: {json.dumps(enrichment.company, sort_keys=True, default=str)}")
    if enrichment.job_title:
        lines.append(f"- Role analysis: {json.dumps(enrichment.job_title, sort_keys=True, default=str)}")
    if enrichment.market_standards:
        lines.append(
            "- Market standards for this role and location (use where the form is silent): "
            f"{json.dumps(enrichment.market_standards, sort_keys=True, default=str)}"
        )
    return lines


def build_employment_agreement_prompt(
    form_data: Mapping[str, Any],
    jurisdiction: JurisdictionContext,
    *,
    effective_date: str,
    enrichment: Optional[EnrichmentBundle] = None,
) -> str:
    """Build the user prompt for an employment agreement."""
    d = form_data

    employer_address = format_address(
        d.get("companyAddress"), d.get("companyCity"), d.get("companyState"),
        d.get("companyPostalCode"), d.get("companyCountry"),
    )
    employee_address = format_address(
        d.get("employeeAddress"), d.get("employeeCity"), d.get("employeeState"),
        d.get("employeePostalCode"), d.get("employeeCountry"),
    )
    salary = _format_amount(d["salaryAmount"]) if d.get("salaryAmount") else "[Amount]"
    work_arrangement = format_label(d.get("workArrangement")) or "On-site"
    dispute_resolution = format_label(d.get("disputeResolution")) or "Arbitration"

    lines: List[str] = [
        "Draft a complete employment agreement with the following specifications:",
        "",
        "# PARTIES",
        f"EMPLOYER: {_get(d, 'companyName', '[Company Name Required]')}",
        f"- Registered Address: {employer_address or '[Address]'}",
    ]
    if d.get("companyIndustry"):
        lines.append(f"- Industry: {_get(d, 'companyIndustry')}")
    contact = ", ".join(filter(None, [_get(d, "companyContactName"), _get(d, "companyContactTitle")]))
    if contact:
        lines.append(f"- Signing Representative: {contact}")

    lines += [
        f"EMPLOYEE: {_get(d, 'employeeName', '[Employee Name Required]')}",
        f"- Residential Address: {employee_address or '[Address]'}",
        f"- Email: {_get(d, 'employeeEmail', '[Email]')}",
        "",
        "# POSITION",
        f"- Job Title: {_get(d, 'jobTitle', '[Job Title Required]')}",
        f"- Employment Type: {format_label(d.get('employmentType')) or 'Full Time'}",
        f"- Start Date: {_get(d, 'startDate', effective_date)}",
    ]
    if d.get("department"):
        lines.append(f"- Department: {_get(d, 'department')}")
    if d.get("reportsTo"):
        lines.append(f"- Reports To: {_get(d, 'reportsTo')}")
    if d.get("probationPeriod"):
        lines.append(f"- Probationary Period: {_get(d, 'probationPeriod')}")
    if d.get("jobResponsibilities"):
        lines.append(f"- Key Responsibilities: {_get(d, 'jobResponsibilities')}")

    lines += [
        "",
        "# COMPENSATION",
        f"- Base Salary: {_get(d, 'salaryCurrency', 'USD')} {salary} ({format_label(d.get('salaryPeriod')) or 'Annual'})",
        f"- Payment Schedule: {derive_payment_frequency(d.get('salaryPeriod'))}",
    ]
    if d.get("signOnBonus"):
        lines.append(f"- Sign-On Bonus: {_get(d, 'signOnBonus')}")
    if d.get("bonusStructure"):
        lines.append(f"- Bonus Structure: {_get(d, 'bonusStructure')} (state eligibility, calculation and timing)")
    if d.get("equityOffered"):
        lines.append(f"- Equity: {_get(d, 'equityOffered')} (state vesting, cliff and governing plan)")

    benefits = [
        label for key, label in (
            ("healthInsurance", "Health Insurance"),
            ("dentalInsurance", "Dental Insurance"),
            ("visionInsurance", "Vision Insurance"),
            ("retirementPlan", "Retirement Plan"),
        ) if d.get(key)
    ]
    lines += ["", "# BENEFITS"]
    if benefits:
        lines.append(f"- Insurance and Retirement: {', '.join(benefits)}")
    if d.get("paidTimeOff"):
        lines.append(f"- Paid Time Off: {_get(d, 'paidTimeOff')}")
    if d.get("sickLeave"):
        lines.append(f"- Sick Leave: {_get(d, 'sickLeave')}")
    if d.get("otherBenefits"):
        lines.append(f"- Other: {_get(d, 'otherBenefits')}")

    lines += [
        "",
        "# WORKING ARRANGEMENTS",
        f"- Work Location: {_get(d, 'workLocation', '[Location]')}",
        f"- Arrangement: {work_arrangement}",
        f"- Hours: {_get(d, 'workHoursPerWeek', '40')} hours per week",
        f"- Overtime: {'Eligible (non-exempt)' if d.get('overtimeEligible') else 'Not eligible (exempt)'}",
    ]
    if work_arrangement.lower() in ("remote", "hybrid"):
        lines.append("- Include remote/hybrid terms: equipment, data security, travel expectations")

    covenants: List[str] = []
    if d.get("includeConfidentiality"):
        covenants.append("- Confidentiality: during and after employment, with return of materials")
    if d.get("includeIpAssignment"):
        covenants.append("- IP Assignment: all work product and inventions belong to the Employer")
    if d.get("includeNonCompete"):
        covenants.append(
            f"- Non-Compete: {_get(d, 'nonCompeteDuration', '12 months')}, "
            f"scope {_get(d, 'nonCompeteRadius', 'primary operating regions')}"
        )
    if d.get("includeNonSolicitation"):
        covenants.append(f"- Non-Solicitation: {_get(d, 'nonSolicitationDuration', '12 months')}")
    if covenants:
        lines += ["", "# RESTRICTIVE COVENANTS", *covenants]

    lines += ["", "# TERMINATION"]
    if d.get("noticePeriod"):
        lines.append(f"- Notice Period: {_get(d, 'noticePeriod')}")
    lines.append("- Cover resignation, termination with and without cause, final pay and return of property")

    lines += [
        "",
        "# DISPUTE RESOLUTION AND GOVERNING LAW",
        f"- Method: {dispute_resolution}",
        f"- Jurisdiction: {jurisdiction.country}" + (f" ({jurisdiction.state})" if jurisdiction.state else ""),
        f"- Governing Law: {jurisdiction.governing_law}",
    ]
    if jurisdiction.requires_gdpr:
        lines.append("- Include a GDPR-compliant employee data processing clause")

    if d.get("additionalClauses"):
        lines += ["", "# ADDITIONAL CLAUSES", _get(d, "additionalClauses")]
    if d.get("specialProvisions"):
        lines += ["", "# SPECIAL PROVISIONS", _get(d, "specialProvisions")]

    context = _enrichment_lines(enrichment)
    if context:
        lines += ["", "# RESEARCH CONTEXT", *context]

    lines += ["", f"Effective Date: {effective_date}"]
    return "\n".join(lines)


def default_effective_date(form_data: Mapping[str, Any]) -> str:
    return _get(form_data, "startDate") or date.today().isoformat()
