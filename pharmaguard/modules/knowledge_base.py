"""
Pharmacogenomic Knowledge Base
Loads the static variant, drug-risk, risk-level, CPIC and gene tables once and
exposes them as read-only mappings shared by every analysis.
"""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from types import MappingProxyType
from typing import Mapping, Optional

from pydantic import ValidationError

from pharmaguard.config import get_settings
from pharmaguard.models import (
    DrugRiskProfile,
    GeneInfo,
    Recommendation,
    RiskLevel,
    VariantAnnotation,
)

logger = logging.getLogger(__name__)

DATA_DIR = Path(__file__).parent.parent / "data"

VARIANT_DB_FILE = "variant_knowledge_base.json"
DRUG_RISK_FILE = "drug_gene_risk.json"
RISK_CONFIG_FILE = "risk_config.json"
CPIC_FILE = "cpic_recommendations.json"
GENE_INFO_FILE = "gene_info.json"
FALLBACK_EXPLANATIONS_FILE = "fallback_explanations.json"


class KnowledgeBaseError(Exception):
    """Raised when a knowledge-base table is missing or malformed."""
    pass


def normalize_rsid(rsid: str) -> str:
    return rsid.strip().lower()


def normalize_drug(drug: str) -> str:
    """Canonical drug key used for every table lookup."""
    return drug.strip().upper()


def _load_json(data_dir: Path, filename: str) -> dict:
    path = data_dir / filename
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except FileNotFoundError as exc:
        raise KnowledgeBaseError(f"Knowledge base file not found: {path}") from exc
    except json.JSONDecodeError as exc:
        raise KnowledgeBaseError(f"Invalid JSON in {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise KnowledgeBaseError(f"{path} must contain a JSON object.")
    # Drop _meta and other underscore-prefixed bookkeeping keys
    return {k: v for k, v in data.items() if not k.startswith("_")}


def _freeze(mapping: dict) -> Mapping:
    return MappingProxyType(mapping)


@dataclass(frozen=True)
class KnowledgeBase:
    """Immutable bundle of every static table the pipeline consults."""

    variants: Mapping[str, VariantAnnotation]
    drug_risks: Mapping[str, DrugRiskProfile]
    risk_levels: Mapping[str, RiskLevel]
    cpic: Mapping[str, Mapping[str, Recommendation]]
    genes: Mapping[str, GeneInfo]
    fallback_explanations: Mapping[str, Mapping[str, Mapping[str, str]]]

    def lookup_variant(self, rsid: str) -> Optional[VariantAnnotation]:
        return self.variants.get(normalize_rsid(rsid))

    def drug_profile(self, drug: str) -> Optional[DrugRiskProfile]:
        return self.drug_risks.get(normalize_drug(drug))

    @property
    def supported_drugs(self) -> list[str]:
        return sorted(self.drug_risks)

    @property
    def supported_genes(self) -> list[str]:
        return sorted(self.genes)

    @classmethod
    def from_tables(
        cls,
        variants: dict,
        drug_risks: dict,
        risk_levels: dict,
        cpic: dict,
        genes: Optional[dict] = None,
        fallback_explanations: Optional[dict] = None,
    ) -> "KnowledgeBase":
        """Validate raw (JSON-shaped) tables and build an immutable knowledge base."""
        try:
            return cls(
                variants=_freeze({
                    normalize_rsid(rsid): VariantAnnotation(**entry)
                    for rsid, entry in variants.items()
                }),
                drug_risks=_freeze({
                    normalize_drug(drug): DrugRiskProfile(**entry)
                    for drug, entry in drug_risks.items()
                }),
                risk_levels=_freeze({
                    label: RiskLevel(**entry) for label, entry in risk_levels.items()
                }),
                cpic=_freeze({
                    normalize_drug(drug): _freeze({
                        phenotype.upper(): Recommendation(**rec)
                        for phenotype, rec in by_phenotype.items()
                    })
                    for drug, by_phenotype in cpic.items()
                }),
                genes=_freeze({
                    symbol: GeneInfo(symbol=symbol, **entry)
                    for symbol, entry in (genes or {}).items()
                }),
                fallback_explanations=_freeze({
                    normalize_drug(drug): _freeze({
                        phenotype.upper(): _freeze(dict(sections))
                        for phenotype, sections in by_phenotype.items()
                    })
                    for drug, by_phenotype in (fallback_explanations or {}).items()
                }),
            )
        except (ValidationError, TypeError, AttributeError) as exc:
            raise KnowledgeBaseError(f"Malformed knowledge base table: {exc}") from exc


def load_knowledge_base(data_dir: Optional[Path] = None) -> KnowledgeBase:
    """Read every JSON table from `data_dir` (bundled data by default)."""
    data_dir = Path(data_dir) if data_dir else DATA_DIR
    kb = KnowledgeBase.from_tables(
        variants=_load_json(data_dir, VARIANT_DB_FILE),
        drug_risks=_load_json(data_dir, DRUG_RISK_FILE),
        risk_levels=_load_json(data_dir, RISK_CONFIG_FILE),
        cpic=_load_json(data_dir, CPIC_FILE),
        genes=_load_json(data_dir, GENE_INFO_FILE),
        fallback_explanations=_load_json(data_dir, FALLBACK_EXPLANATIONS_FILE),
    )
    logger.info(
        "Knowledge base loaded from %s: %d variants, %d drugs, %d genes.",
        data_dir, len(kb.variants), len(kb.drug_risks), len(kb.genes),
    )
    return kb


@lru_cache
def get_knowledge_base() -> KnowledgeBase:
    """Process-wide knowledge base, honouring the PHARMAGUARD_DATA_DIR setting."""
    return load_knowledge_base(get_settings().data_dir)
