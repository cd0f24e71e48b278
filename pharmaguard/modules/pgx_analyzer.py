"""
Pharmacogenomic Analysis Module
Maps parsed variants → phenotype → drug risk assessment + CPIC recommendation.
"""
from __future__ import annotations

import logging
from typing import Optional

from pharmaguard.models import (
    UNKNOWN,
    DetectedVariant,
    DrugAnalysis,
    DrugResult,
    Explanation,
    OverallRisk,
    ParseResult,
    PharmacogenomicProfile,
    QualityMetrics,
    RiskSummary,
    VariantRecord,
)
from pharmaguard.modules.knowledge_base import KnowledgeBase, normalize_drug
from pharmaguard.modules.phenotype_classifier import classify_phenotype
from pharmaguard.modules.recommendation import resolve_recommendation
from pharmaguard.modules.risk_engine import compute_risk, unsupported_drug_assessment

logger = logging.getLogger(__name__)

_SEVERITY_ORDER = ["none", "moderate", "high", "critical"]


def parse_drug_list(drugs: str) -> list[str]:
    """Split a comma-separated drug string into normalized names, dropping blanks."""
    return [normalize_drug(d) for d in drugs.split(",") if d.strip()]


# ── Per-drug Analysis ────────────────────────────────────────────────────────

def analyze_drug(records: list[VariantRecord], drug: str, kb: KnowledgeBase) -> DrugAnalysis:
    """Classify the drug's gene, then resolve risk and recommendation independently."""
    drug = normalize_drug(drug)
    profile = kb.drug_profile(drug)

    if profile is None:
        risk = unsupported_drug_assessment(kb.risk_levels)
    else:
        phenotype_call = classify_phenotype(records, profile.gene)
        risk = compute_risk(kb.drug_risks, kb.risk_levels, drug, phenotype_call)

    recommendation = resolve_recommendation(kb.cpic, drug, risk.phenotype)
    logger.debug("Drug %s: gene=%s phenotype=%s risk=%s", drug, risk.gene, risk.phenotype, risk.risk_label)
    return DrugAnalysis(drug=drug, risk=risk, recommendation=recommendation)


def analyze_drugs(records: list[VariantRecord], drugs: list[str], kb: KnowledgeBase) -> list[DrugAnalysis]:
    return [analyze_drug(records, drug, kb) for drug in drugs]


# ── Response Assembly ────────────────────────────────────────────────────────

def genes_analyzed(records: list[VariantRecord]) -> list[str]:
    """Distinct genes seen in the file, in first-seen order."""
    return list(dict.fromkeys(r.gene for r in records if r.gene and r.gene != UNKNOWN))


def build_drug_result(
    analysis: DrugAnalysis,
    parse_result: ParseResult,
    explanation: Optional[Explanation] = None,
) -> DrugResult:
    risk = analysis.risk
    confidence_factors = (
        ["known_variant", "validated_rsid", "cpic_evidence"]
        if risk.variants
        else ["no_variants_detected", "standard_phenotype"]
    )
    return DrugResult(
        drug=analysis.drug,
        risk_assessment=RiskSummary(
            risk_label=risk.risk_label,
            confidence_score=risk.confidence,
            severity=risk.severity,
        ),
        pharmacogenomic_profile=PharmacogenomicProfile(
            primary_gene=risk.gene,
            diplotype=risk.diplotype,
            phenotype=risk.phenotype,
            detected_variants=[
                DetectedVariant(
                    rsid=v.rsid,
                    gene=v.gene,
                    star_allele=v.star_allele,
                    effect=v.effect,
                    zygosity=v.zygosity,
                    clinical_significance=v.clinical_significance,
                )
                for v in risk.variants
            ],
        ),
        clinical_recommendation=analysis.recommendation,
        llm_generated_explanation=explanation,
        quality_metrics=QualityMetrics(
            vcf_parsing_success=parse_result.success,
            variants_detected=len(parse_result.records),
            genes_analyzed=genes_analyzed(parse_result.records),
            confidence_factors=confidence_factors,
        ),
    )


# ── Overall Risk Aggregation ──────────────────────────────────────────────────

def compute_overall_risk(analyses: list[DrugAnalysis]) -> OverallRisk:
    """Aggregate all drug analyses into an overall patient risk level."""
    if not analyses:
        return OverallRisk(level="none", flags=[])

    max_severity = "none"
    flags: list[str] = []

    for a in analyses:
        sev = a.risk.severity
        if _SEVERITY_ORDER.index(sev) > _SEVERITY_ORDER.index(max_severity):
            max_severity = sev

        if sev in ("high", "critical"):
            flags.append(f"{a.risk.risk_label} risk for {a.drug} ({a.risk.gene} {a.risk.phenotype}: {sev})")
        elif a.risk.risk_label in ("Toxic", "Ineffective"):
            flags.append(f"{a.drug} may be {a.risk.risk_label.lower()} ({a.risk.gene} variant detected)")

    return OverallRisk(level=max_severity, flags=list(dict.fromkeys(flags)))  # deduplicate
