"""
Health & Info Routes
"""
from fastapi import APIRouter, Depends

from pharmaguard.config import Settings, get_settings
from pharmaguard.models import GeneInfo, HealthResponse
from pharmaguard.modules.knowledge_base import KnowledgeBase, get_knowledge_base

router = APIRouter(prefix="/api/v1", tags=["Health"])


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Health Check",
    description="Returns system health status and supported genes/drugs.",
)
async def health(
    settings: Settings = Depends(get_settings),
    kb: KnowledgeBase = Depends(get_knowledge_base),
):
    return HealthResponse(
        status="healthy",
        version=settings.app_version,
        llm_provider=settings.llm_provider,
        llm_model=settings.active_llm_model,
        genes_supported=kb.supported_genes,
        drugs_supported=kb.supported_drugs,
    )


@router.get("/genes", summary="Supported pharmacogenes")
async def genes(kb: KnowledgeBase = Depends(get_knowledge_base)) -> dict[str, list[GeneInfo]]:
    return {"genes": [kb.genes[symbol] for symbol in kb.supported_genes]}


@router.get("/drugs", summary="Supported drugs")
async def drugs(kb: KnowledgeBase = Depends(get_knowledge_base)) -> dict:
    return {
        "drugs": kb.supported_drugs,
        "description": "Supported drugs for pharmacogenomic analysis",
    }
