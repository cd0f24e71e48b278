"""
Analysis API Routes — POST /api/v1/analyze, /analyze/batch, /upload-test
"""
from __future__ import annotations

import asyncio
import time
import logging
from datetime import datetime, timezone

from fastapi import APIRouter, File, Form, UploadFile, HTTPException, Depends

from pharmaguard.config import Settings, get_settings
from pharmaguard.models import AnalysisResponse, UploadTestResponse, VCFMetadata
from pharmaguard.modules.knowledge_base import KnowledgeBase, get_knowledge_base
from pharmaguard.modules.llm_service import ExplanationGenerator
from pharmaguard.modules.pgx_analyzer import (
    analyze_drugs,
    build_drug_result,
    compute_overall_risk,
    parse_drug_list,
)
from pharmaguard.modules.vcf_parser import parse_vcf, ensure_usable, VCFParseError

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1", tags=["Analysis"])


def get_explanation_generator(
    settings: Settings = Depends(get_settings),
    kb: KnowledgeBase = Depends(get_knowledge_base),
) -> ExplanationGenerator:
    return ExplanationGenerator(settings, kb)


async def _read_upload(vcf_file: UploadFile, settings: Settings) -> bytes:
    content = await vcf_file.read()
    if len(content) > settings.max_vcf_size_bytes:
        raise HTTPException(
            status_code=413,
            detail=f"VCF file exceeds maximum size of {settings.max_vcf_size_mb} MB.",
        )
    return content


@router.post(
    "/analyze",
    response_model=AnalysisResponse,
    summary="Pharmacogenomic Risk Analysis",
    description=(
        "Upload a VCF file and a comma-separated list of drug names. "
        "Returns per-drug risk, CPIC recommendation and clinical explanation."
    ),
)
async def analyze(
    vcf_file: UploadFile = File(..., description="VCF file containing patient genomic variants"),
    drugs: str = Form(..., description="Comma-separated drug names, e.g. 'codeine,warfarin'"),
    patient_id: str | None = Form(None, description="Optional patient identifier (not stored)"),
    skip_llm: bool = Form(False, description="Set to true to skip explanation generation"),
    settings: Settings = Depends(get_settings),
    kb: KnowledgeBase = Depends(get_knowledge_base),
    explainer: ExplanationGenerator = Depends(get_explanation_generator),
):
    start_time = time.monotonic()

    # ── 1. Validate upload size ───────────────────────────────────────────
    content = await _read_upload(vcf_file, settings)

    # ── 2. Parse VCF ─────────────────────────────────────────────────────
    try:
        parse_result = ensure_usable(parse_vcf(content, kb))
    except VCFParseError as e:
        raise HTTPException(status_code=422, detail=f"VCF Parse Error: {str(e)}")
    except Exception as e:
        logger.exception("Unexpected VCF parse error.")
        raise HTTPException(status_code=500, detail=f"Internal error during VCF parsing: {str(e)}")

    # ── 3. Parse drug list ────────────────────────────────────────────────
    drug_list = parse_drug_list(drugs)
    if not drug_list:
        raise HTTPException(status_code=422, detail="At least one drug name must be provided.")

    # ── 4. PGx Analysis ───────────────────────────────────────────────────
    records = parse_result.records
    analyses = analyze_drugs(records, drug_list, kb)
    overall_risk = compute_overall_risk(analyses)

    # ── 5. Explanations (optional, one concurrent call per drug) ─────────
    if skip_llm:
        explanations = [None] * len(analyses)
    else:
        explanations = await asyncio.gather(*(
            explainer.generate(a.drug, a.risk.phenotype, a.risk.risk_label, records, a.risk.gene)
            for a in analyses
        ))

    # ── 6. Assemble Response ──────────────────────────────────────────────
    elapsed_ms = int((time.monotonic() - start_time) * 1000)

    response = AnalysisResponse(
        status="success",
        patient_id=patient_id,
        analysis_timestamp=datetime.now(timezone.utc).isoformat(),
        vcf_metadata=VCFMetadata(
            file_name=vcf_file.filename or "uploaded.vcf",
            vcf_version=parse_result.vcf_version,
            total_lines=parse_result.total_lines,
            variants_detected=len(records),
            parsing_success=parse_result.success,
            parse_errors=parse_result.errors,
        ),
        results=[
            build_drug_result(a, parse_result, explanation)
            for a, explanation in zip(analyses, explanations)
        ],
        overall_risk=overall_risk,
        processing_time_ms=elapsed_ms,
    )

    logger.info(
        "Analysis complete | patient=%s | variants=%d | drugs=%s | overall_risk=%s | time=%dms",
        patient_id or "anon",
        len(records),
        drug_list,
        overall_risk.level,
        elapsed_ms,
    )

    return response


@router.post(
    "/analyze/batch",
    response_model=AnalysisResponse,
    summary="Batch Pharmacogenomic Analysis (no LLM)",
    description="Faster endpoint: runs PGx analysis without explanation generation.",
)
async def analyze_batch(
    vcf_file: UploadFile = File(...),
    drugs: str = Form(...),
    patient_id: str | None = Form(None),
    settings: Settings = Depends(get_settings),
    kb: KnowledgeBase = Depends(get_knowledge_base),
):
    """Same as /analyze but always skips explanations."""
    return await analyze(
        vcf_file=vcf_file,
        drugs=drugs,
        patient_id=patient_id,
        skip_llm=True,
        settings=settings,
        kb=kb,
        explainer=ExplanationGenerator(settings, kb),
    )


@router.post(
    "/upload-test",
    response_model=UploadTestResponse,
    summary="Parse-only VCF check",
)
async def upload_test(
    vcf_file: UploadFile = File(...),
    settings: Settings = Depends(get_settings),
    kb: KnowledgeBase = Depends(get_knowledge_base),
):
    content = await _read_upload(vcf_file, settings)
    result = parse_vcf(content, kb)
    return UploadTestResponse(
        filename=vcf_file.filename or "uploaded.vcf",
        file_size=len(content),
        parsing_success=result.success,
        variants_detected=len(result.records),
        errors=result.errors,
        sample_variants=result.records[:3],
    )
