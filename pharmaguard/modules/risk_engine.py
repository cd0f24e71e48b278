"""
Risk Engine
Maps a drug and a metabolizer phenotype to a risk label, severity and confidence.
"""
from __future__ import annotations

import logging
from typing import Mapping, Optional

from pharmaguard.models import (
    UNKNOWN,
    DrugRiskProfile,
    PhenotypeCall,
    RiskAssessment,
    RiskLevel,
)
from pharmaguard.modules.knowledge_base import normalize_drug
from pharmaguard.modules.phenotype_classifier import WILDTYPE_DIPLOTYPE

logger = logging.getLogger(__name__)

# Used only when the injected table has no "Unknown" row
_UNKNOWN_LEVEL = RiskLevel(severity="none", confidence=0.5)


def risk_label_for(profile: DrugRiskProfile, phenotype: str) -> str:
    """Look up `<phenotype>_risk` on the drug profile; absent phenotypes map to Unknown."""
    label: Optional[str] = getattr(profile, f"{phenotype.lower()}_risk", None)
    return label if label is not None else UNKNOWN


def risk_level_for(risk_levels: Mapping[str, RiskLevel], label: str) -> RiskLevel:
    """The only place severity and confidence are derived."""
    level = risk_levels.get(label)
    if level is None:
        level = risk_levels.get(UNKNOWN, _UNKNOWN_LEVEL)
    return level


def unsupported_drug_assessment(risk_levels: Mapping[str, RiskLevel]) -> RiskAssessment:
    level = risk_level_for(risk_levels, UNKNOWN)
    return RiskAssessment(
        risk_label=UNKNOWN,
        severity=level.severity,
        confidence=level.confidence,
        gene=UNKNOWN,
        diplotype=WILDTYPE_DIPLOTYPE,
        phenotype=UNKNOWN,
        variants=[],
    )


def compute_risk(
    drug_risks: Mapping[str, DrugRiskProfile],
    risk_levels: Mapping[str, RiskLevel],
    drug: str,
    phenotype_call: PhenotypeCall,
) -> RiskAssessment:
    """
    Resolve the risk assessment for `drug` given the phenotype of its gene.
    Unknown drugs yield an Unknown assessment instead of raising.
    """
    profile = drug_risks.get(normalize_drug(drug))
    if profile is None:
        logger.info("Drug %r not in risk table, returning Unknown.", drug)
        return unsupported_drug_assessment(risk_levels)

    label = risk_label_for(profile, phenotype_call.phenotype)
    level = risk_level_for(risk_levels, label)
    return RiskAssessment(
        risk_label=label,
        severity=level.severity,
        confidence=level.confidence,
        gene=profile.gene,
        diplotype=phenotype_call.diplotype,
        phenotype=phenotype_call.phenotype,
        variants=list(phenotype_call.gene_variants),
    )
