"""
Clinical Explanation Generator
Calls an OpenAI-compatible chat completions endpoint for a four-section
explanation, and falls back to the static explanation table when no key is
configured or the call fails.
"""
from __future__ import annotations

import logging
import re
from typing import Optional

import httpx

from pharmaguard.config import Settings
from pharmaguard.models import UNKNOWN, Explanation, VariantRecord
from pharmaguard.modules.knowledge_base import KnowledgeBase, normalize_drug

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are an expert clinical pharmacogenomics specialist providing evidence-based "
    "explanations for genetic drug metabolism profiles."
)

SECTIONS = {
    "SUMMARY": "summary",
    "MECHANISM": "mechanism",
    "RISK_RATIONALE": "risk_rationale",
    "PATIENT_FRIENDLY": "patient_friendly",
}
_SECTION_RE = re.compile(
    r"^[#*\s]*(?:\d+\.\s*)?(SUMMARY|MECHANISM|RISK_RATIONALE|PATIENT_FRIENDLY)\s*\**\s*:\s*\**\s*(.*)$"
)

GENERIC_EXPLANATION = Explanation(
    summary=(
        "Pharmacogenomic analysis complete. Consult with your healthcare provider "
        "for personalized recommendations."
    ),
    mechanism="Genetic variants affect drug-metabolizing enzyme activity, influencing drug response.",
    risk_rationale="Risk assessment based on CPIC guidelines and current clinical evidence.",
    patient_friendly=(
        "Your genetic test provides information to help your doctor choose the safest "
        "and most effective medication for you."
    ),
)


class ExplanationError(Exception):
    """The LLM response could not be turned into an explanation."""
    pass


def build_variant_context(records: list[VariantRecord], gene: str, limit: int = 3) -> str:
    gene_variants = [r for r in records if r.gene == gene]
    if gene == UNKNOWN or not gene_variants:
        return f"No known variants detected in {gene}"
    return "; ".join(
        f"{v.star_allele or '?'} ({v.rsid or '?'}): {v.effect or 'Unknown effect'}"
        for v in gene_variants[:limit]
    )


def build_prompt(
    drug: str,
    phenotype: str,
    risk_label: str,
    records: list[VariantRecord],
    gene: str,
) -> str:
    return f"""You are a clinical pharmacogenomics expert. Provide a comprehensive explanation for a patient's pharmacogenomic risk assessment.

PATIENT PROFILE:
- Drug: {drug}
- Metabolizer Phenotype: {phenotype}
- Risk Level: {risk_label}
- Primary Gene: {gene}
- Detected Variants: {build_variant_context(records, gene)}

Please provide exactly 4 sections:

1. SUMMARY: A concise 2-3 sentence clinical summary and significance.

2. MECHANISM: A 3-4 sentence explanation of the molecular/enzymatic mechanism.

3. RISK_RATIONALE: A 3-4 sentence explanation of why this phenotype creates the identified risk.

4. PATIENT_FRIENDLY: A 2-3 sentence explanation for non-scientific patients, avoiding jargon.

Format response as:
SUMMARY: [text]
MECHANISM: [text]
RISK_RATIONALE: [text]
PATIENT_FRIENDLY: [text]"""


def parse_llm_response(content: str) -> Explanation:
    """Split a `SECTION: text` formatted response into an Explanation."""
    collected: dict[str, list[str]] = {}
    current: Optional[str] = None

    for line in content.splitlines():
        stripped = line.strip()
        match = _SECTION_RE.match(stripped)
        if match:
            current = SECTIONS[match.group(1)]
            collected[current] = [match.group(2).strip()] if match.group(2).strip() else []
        elif current and stripped:
            collected[current].append(stripped)

    return Explanation(**{key: " ".join(parts).strip() for key, parts in collected.items()})


def fallback_explanation(kb: KnowledgeBase, drug: str, phenotype: str) -> Explanation:
    """Static explanation for drug + phenotype, else the drug's NM entry, else generic."""
    by_phenotype = kb.fallback_explanations.get(normalize_drug(drug))
    if by_phenotype is None:
        return GENERIC_EXPLANATION
    sections = by_phenotype.get(phenotype.strip().upper())
    if sections is None:
        sections = by_phenotype.get("NM")
    if sections is None:
        return GENERIC_EXPLANATION
    return Explanation(**dict(sections))


class ExplanationGenerator:
    """
    Produces {summary, mechanism, risk_rationale, patient_friendly} for one drug result.
    The pipeline works without it; callers may skip explanations entirely.
    """

    def __init__(
        self,
        settings: Settings,
        kb: KnowledgeBase,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.settings = settings
        self.kb = kb
        self._client = client

    async def generate(
        self,
        drug: str,
        phenotype: str,
        risk_label: str,
        records: list[VariantRecord],
        gene: str,
    ) -> Explanation:
        if self.settings.llm_enabled:
            try:
                return await self._generate_with_llm(drug, phenotype, risk_label, records, gene)
            except (httpx.HTTPError, ExplanationError, KeyError, IndexError, TypeError, ValueError) as exc:
                logger.warning("LLM explanation failed for %s (%s), using fallback.", drug, exc)
        return fallback_explanation(self.kb, drug, phenotype)

    async def _generate_with_llm(
        self,
        drug: str,
        phenotype: str,
        risk_label: str,
        records: list[VariantRecord],
        gene: str,
    ) -> Explanation:
        payload = {
            "model": self.settings.llm_model,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": build_prompt(drug, phenotype, risk_label, records, gene)},
            ],
            "temperature": 0.7,
            "max_tokens": 1000,
        }
        headers = {
            "Authorization": f"Bearer {self.settings.llm_api_key}",
            "Content-Type": "application/json",
        }
        url = f"{self.settings.llm_base_url.rstrip('/')}/chat/completions"

        if self._client is not None:
            response = await self._client.post(url, json=payload, headers=headers)
        else:
            async with httpx.AsyncClient(timeout=self.settings.llm_timeout_seconds) as client:
                response = await client.post(url, json=payload, headers=headers)
        response.raise_for_status()

        content = response.json()["choices"][0]["message"]["content"]
        if not isinstance(content, str):
            raise ExplanationError(f"expected text content, got {type(content).__name__}")
        explanation = parse_llm_response(content)
        if not any(explanation.model_dump().values()):
            raise ExplanationError("response contained none of the expected sections")
        logger.info("LLM explanation generated for %s (%d chars).", drug, len(content))
        return explanation
