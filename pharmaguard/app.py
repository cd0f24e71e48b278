"""
FastAPI application factory.
"""
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from pharmaguard.config import get_settings
from pharmaguard.modules.knowledge_base import get_knowledge_base
from pharmaguard.routes import analysis, health

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(level=level, format=LOG_FORMAT)


def create_app() -> FastAPI:
    settings = get_settings()
    configure_logging(settings.log_level)

    # Fail fast on a broken knowledge base instead of on the first request
    kb = get_knowledge_base()
    logger.info(
        "%s %s starting: %d drugs, %d genes supported.",
        settings.app_name, settings.app_version, len(kb.drug_risks), len(kb.genes),
    )

    application = FastAPI(
        title=f"{settings.app_name} API",
        description="Pharmacogenomic risk prediction from VCF variant calls.",
        version=settings.app_version,
    )
    application.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    application.include_router(health.router)
    application.include_router(analysis.router)
    return application


app = create_app()
