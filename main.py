"""
Root entry point — run with: python main.py
"""
import uvicorn
from pharmaguard.config import get_settings

# Expose the FastAPI app instance for ASGI hosts that look for main:app
from pharmaguard.app import app

settings = get_settings()

if __name__ == "__main__":
    uvicorn.run(
        "pharmaguard.app:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level="debug" if settings.debug else settings.log_level.lower(),
    )
