"""
Pydantic models for the knowledge base, the analysis pipeline and the API schemas.
"""
from typing import Literal, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

PhenotypeClass = Literal["PM", "IM", "NM", "RM", "URM", "Unknown"]
RiskLabel = Literal["Safe", "Adjust Dosage", "Toxic", "Ineffective", "Unknown"]
Severity = Literal["none", "moderate", "high", "critical"]
Urgency = Literal["immediate", "high", "normal", "routine"]

UNKNOWN = "Unknown"


# ── Knowledge Base ───────────────────────────────────────────────────────────

class VariantAnnotation(BaseModel):
    """Static annotation for one known rsID."""
    model_config = ConfigDict(frozen=True)

    gene: str
    star: str
    effect: str
    zygosity: str
    significance: str
    phenotype_class: PhenotypeClass
    activity: Optional[float] = Field(default=None, ge=0)


class DrugRiskProfile(BaseModel):
    """Primary gene of a drug and the risk label for each metabolizer phenotype."""
    model_config = ConfigDict(frozen=True)

    gene: str
    pm_risk: Optional[RiskLabel] = None
    im_risk: Optional[RiskLabel] = None
    nm_risk: Optional[RiskLabel] = None
    rm_risk: Optional[RiskLabel] = None
    urm_risk: Optional[RiskLabel] = None


class RiskLevel(BaseModel):
    model_config = ConfigDict(frozen=True)

    severity: Severity
    confidence: float = Field(ge=0, le=1)


class Recommendation(BaseModel):
    """CPIC-style prescribing recommendation. Accepts the compact table keys on load."""
    model_config = ConfigDict(frozen=True)

    action: str
    dosing_guidance: str = Field(validation_alias=AliasChoices("dosing_guidance", "dosing"))
    alternative_drugs: tuple[str, ...] = Field(
        default=(), validation_alias=AliasChoices("alternative_drugs", "alternatives")
    )
    monitoring_required: bool = Field(
        default=False, validation_alias=AliasChoices("monitoring_required", "monitoring")
    )
    urgency: Urgency = "routine"
    cpic_guideline_reference: str = Field(
        validation_alias=AliasChoices("cpic_guideline_reference", "cpic")
    )


class GeneInfo(BaseModel):
    model_config = ConfigDict(frozen=True)

    symbol: str
    name: str
    drugs: tuple[str, ...] = ()
    description: str = ""


# ── VCF Parsing ──────────────────────────────────────────────────────────────

class VariantRecord(BaseModel):
    """One parsed observation. Every field is populated, never absent."""
    model_config = ConfigDict(frozen=True)

    rsid: str = "unknown"
    chromosome: str = ""
    position: int = 0
    ref_allele: str = ""
    alt_allele: str = ""
    gene: str = UNKNOWN
    star_allele: str = UNKNOWN
    effect: str = UNKNOWN
    zygosity: str = "unknown"
    clinical_significance: str = UNKNOWN
    phenotype_class: PhenotypeClass = UNKNOWN
    activity: Optional[float] = None


class ParseResult(BaseModel):
    records: list[VariantRecord] = Field(default_factory=list)
    success: bool
    errors: list[str] = Field(default_factory=list)
    vcf_version: str = "unknown"
    total_lines: int = 0


# ── PGx Analysis ─────────────────────────────────────────────────────────────

class PhenotypeCall(BaseModel):
    gene: str
    phenotype: PhenotypeClass
    diplotype: str
    activity_score: Optional[float] = None
    gene_variants: list[VariantRecord] = Field(default_factory=list)


class RiskAssessment(BaseModel):
    risk_label: RiskLabel
    severity: Severity
    confidence: float
    gene: str
    diplotype: str
    phenotype: PhenotypeClass
    variants: list[VariantRecord] = Field(default_factory=list)


class DrugAnalysis(BaseModel):
    drug: str
    risk: RiskAssessment
    recommendation: Recommendation


class OverallRisk(BaseModel):
    level: Severity
    flags: list[str]


# ── Explanations ─────────────────────────────────────────────────────────────

class Explanation(BaseModel):
    summary: str = ""
    mechanism: str = ""
    risk_rationale: str = ""
    patient_friendly: str = ""


# ── API Responses ────────────────────────────────────────────────────────────

class DetectedVariant(BaseModel):
    rsid: str
    gene: str
    star_allele: str
    effect: str
    zygosity: str
    clinical_significance: str


class RiskSummary(BaseModel):
    risk_label: RiskLabel
    confidence_score: float
    severity: Severity


class PharmacogenomicProfile(BaseModel):
    primary_gene: str
    diplotype: str
    phenotype: PhenotypeClass
    detected_variants: list[DetectedVariant]


class QualityMetrics(BaseModel):
    vcf_parsing_success: bool
    variants_detected: int
    genes_analyzed: list[str]
    confidence_factors: list[str]


class DrugResult(BaseModel):
    drug: str
    risk_assessment: RiskSummary
    pharmacogenomic_profile: PharmacogenomicProfile
    clinical_recommendation: Recommendation
    llm_generated_explanation: Optional[Explanation] = None
    quality_metrics: QualityMetrics


class VCFMetadata(BaseModel):
    file_name: str
    vcf_version: str
    total_lines: int
    variants_detected: int
    parsing_success: bool
    parse_errors: list[str] = Field(default_factory=list)


class AnalysisResponse(BaseModel):
    status: str
    patient_id: Optional[str] = None
    analysis_timestamp: str
    vcf_metadata: VCFMetadata
    results: list[DrugResult]
    overall_risk: OverallRisk
    processing_time_ms: int


class UploadTestResponse(BaseModel):
    filename: str
    file_size: int
    parsing_success: bool
    variants_detected: int
    errors: list[str]
    sample_variants: list[VariantRecord]


class HealthResponse(BaseModel):
    status: str
    version: str
    llm_provider: str
    llm_model: str
    genes_supported: list[str]
    drugs_supported: list[str]
