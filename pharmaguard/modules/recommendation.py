"""
CPIC recommendation lookup with drug -> phenotype -> NM -> generic fallback.
"""
from __future__ import annotations

from typing import Mapping, Optional

from pharmaguard.models import Recommendation
from pharmaguard.modules.knowledge_base import normalize_drug

GENERIC_RECOMMENDATION = Recommendation(
    action="Standard dosing",
    dosing_guidance="No specific pharmacogenomic recommendation available.",
    alternative_drugs=(),
    monitoring_required=False,
    urgency="routine",
    cpic_guideline_reference="CPIC Guidelines",
)


def resolve_recommendation(
    cpic: Mapping[str, Mapping[str, Recommendation]],
    drug: str,
    phenotype: str,
) -> Recommendation:
    drug_recs = cpic.get(normalize_drug(drug))
    if drug_recs is None:
        return GENERIC_RECOMMENDATION

    rec: Optional[Recommendation] = drug_recs.get(phenotype.strip().upper())
    if rec is None:
        rec = drug_recs.get("NM")
    return rec if rec is not None else GENERIC_RECOMMENDATION
