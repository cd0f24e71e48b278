"""
Phenotype Classifier
Aggregates per-gene variant activity into a metabolizer phenotype and diplotype.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable

from pharmaguard.models import UNKNOWN, PhenotypeCall, VariantRecord

logger = logging.getLogger(__name__)

# Mean activity used when no contributing variant carries a score
BASELINE_ACTIVITY = 1.0
WILDTYPE_DIPLOTYPE = "*1/*1"
WILDTYPE_ALLELE = "*1"

PHENOTYPE_NAMES = {
    "PM": "Poor Metabolizer",
    "IM": "Intermediate Metabolizer",
    "NM": "Normal Metabolizer",
    "RM": "Rapid Metabolizer",
    "URM": "Ultrarapid Metabolizer",
    UNKNOWN: "Unknown Metabolizer",
}


@dataclass(frozen=True)
class GeneActivityProfile:
    gene: str
    variants: list[VariantRecord] = field(default_factory=list)
    mean_activity: float = BASELINE_ACTIVITY
    scored: bool = False  # False when mean_activity is the baseline default
    star_alleles: list[str] = field(default_factory=list)


def build_activity_profile(records: Iterable[VariantRecord], gene: str) -> GeneActivityProfile:
    """Collect the classified variants of `gene` and average their activity scores."""
    gene_variants = [
        r for r in records
        if r.gene == gene and r.phenotype_class != UNKNOWN
    ]
    scores = [r.activity for r in gene_variants if r.activity is not None]
    stars = [
        r.star_allele for r in gene_variants
        if r.star_allele and r.star_allele != UNKNOWN
    ]

    if scores:
        return GeneActivityProfile(
            gene=gene,
            variants=gene_variants,
            mean_activity=sum(scores) / len(scores),
            scored=True,
            star_alleles=stars,
        )
    return GeneActivityProfile(gene=gene, variants=gene_variants, star_alleles=stars)


def activity_to_phenotype(mean_activity: float) -> str:
    """
    Ordered threshold table, first match wins.
    The exact comparisons against 0 and 1.0 are intentional and must not be
    replaced by tolerance checks.
    """
    if mean_activity == 0:
        return "PM"
    if mean_activity < 0.5:
        return "PM"
    if mean_activity < 1.0:
        return "IM"
    if mean_activity == 1.0:
        return "NM"
    if mean_activity < 2.0:
        return "RM"
    return "URM"


def build_diplotype(star_alleles: list[str]) -> str:
    """First two star alleles in order; one allele is paired with the *1 wildtype."""
    if len(star_alleles) >= 2:
        return f"{star_alleles[0]}/{star_alleles[1]}"
    if len(star_alleles) == 1:
        return f"{WILDTYPE_ALLELE}/{star_alleles[0]}"
    return WILDTYPE_DIPLOTYPE


def classify_phenotype(records: Iterable[VariantRecord], gene: str) -> PhenotypeCall:
    """
    Classify the metabolizer phenotype for one gene.
    No classified variants for the gene means assumed-normal metabolism (NM, *1/*1).
    """
    profile = build_activity_profile(records, gene)
    if not profile.variants:
        return PhenotypeCall(gene=gene, phenotype="NM", diplotype=WILDTYPE_DIPLOTYPE)

    phenotype = activity_to_phenotype(profile.mean_activity)
    diplotype = build_diplotype(profile.star_alleles)
    logger.debug(
        "Gene %s: %d variants, activity=%.2f (scored=%s), phenotype=%s, diplotype=%s",
        gene, len(profile.variants), profile.mean_activity, profile.scored, phenotype, diplotype,
    )
    return PhenotypeCall(
        gene=gene,
        phenotype=phenotype,
        diplotype=diplotype,
        activity_score=profile.mean_activity,
        gene_variants=profile.variants,
    )
