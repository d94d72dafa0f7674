import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from backend.job_assist.api.routes.generation import router as generation_router
from backend.job_assist.api.routes.health import router as health_router
from backend.job_assist.config import get_settings
from backend.job_assist.services.llm_service import LLMService

logger = logging.getLogger(__name__)


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    # A missing API key stops startup here rather than failing every request.
    settings.require_llm_key()
    app.state.llm_service = LLMService(settings)
    logger.info("Job Assist API started")
    yield


def create_app() -> FastAPI:
    settings = get_settings()
    configure_logging(settings.log_level)

    app = FastAPI(title="Job Assist API", version="0.1.0", lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allow_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(health_router)
    app.include_router(generation_router)
    return app


app = create_app()
