import time
from typing import Optional

from fastapi import FastAPI, Request
from mangum import Mangum

from app.core.config import Settings, get_settings
from app.core.cors import install_cors
from app.core.exceptions import register_exception_handlers
from app.core.logging import logger, setup_logging
from app.core.security import IdentityProvider
from app.routers import planeaciones
from app.services.generation import GenerationPipeline
from app.services.llm_service import LLMService
from app.services.store import StoreFactory


def create_app(
    settings: Optional[Settings] = None,
    *,
    identity: Optional[IdentityProvider] = None,
    store_factory: Optional[StoreFactory] = None,
    llm: Optional[LLMService] = None,
) -> FastAPI:
    """Build the application; collaborators default to the real providers."""
    settings = settings or get_settings()
    setup_logging(settings)

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Creación, consulta y exportación de planeaciones didácticas generadas con IA",
        docs_url="/docs",
        redoc_url="/redoc"
    )

    app.state.settings = settings
    app.state.identity = identity or IdentityProvider(settings)
    app.state.store_factory = store_factory or StoreFactory(settings)
    app.state.pipeline = GenerationPipeline(llm or LLMService(settings), settings)

    # Request timing middleware
    @app.middleware("http")
    async def add_process_time_header(request: Request, call_next):
        start_time = time.time()
        response = await call_next(request)
        process_time = time.time() - start_time
        response.headers["X-Process-Time"] = str(process_time)
        logger.info(f"{request.method} {request.url.path} - {process_time:.2f}s")
        return response

    install_cors(app, settings)
    register_exception_handlers(app)

    @app.get("/")
    async def root():
        return {
            "message": f"Welcome to {settings.app_name}",
            "version": settings.app_version,
            "status": "running",
            "docs": "/docs"
        }

    @app.get("/health")
    async def health_check():
        return {"ok": True, "env": settings.environment}

    app.include_router(planeaciones.router)

    @app.on_event("startup")
    async def startup_event():
        logger.info("=" * 50)
        logger.info(f"🚀 Starting {settings.app_name} v{settings.app_version}")
        logger.info(f"Environment: {settings.environment}")
        logger.info("=" * 50)
        logger.info(f"🗄️ Supabase: {'✓' if settings.supabase_url and settings.supabase_key else '✗'}")
        logger.info(f"🤖 LLM: {settings.llm_provider}/{settings.llm_model}")
        logger.info(f"📝 Prompt version: {settings.prompt_version}")
        logger.info("=" * 50)

    @app.on_event("shutdown")
    async def shutdown_event():
        logger.info("👋 Shutting down application...")

    return app


app = create_app()

# ============================================
# ✅ MANGUM HANDLER FOR VERCEL - PUT AT THE END
# ============================================

handler = Mangum(app)

if __name__ == "__main__":
    import uvicorn
    settings = get_settings()
    uvicorn.run(app, host=settings.host, port=settings.port)
