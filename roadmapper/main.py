"""FastAPI main application."""

from fastapi import FastAPI
from fastapi.responses import PlainTextResponse
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager

from . import __version__
from .config import settings
from .services import ChatService, ModelGateway, create_session_store
from .utils.logger import init_app_logger, mask_secret
from .api.v1 import roadmaps, chat, conversations


# Initialize logger
logger = init_app_logger(settings)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for startup and shutdown events.

    Args:
        app: FastAPI application instance
    """
    # Startup
    logger.info("=" * 70)
    logger.info("Starting MVP Roadmap Generator...")
    logger.info("=" * 70)

    logger.info("")
    logger.info("📡 Server Configuration:")
    logger.info(f"  Host: {settings.host}")
    logger.info(f"  Port: {settings.port}")
    logger.info(f"  Debug: {settings.debug}")
    logger.info(f"  Log Level: {settings.log_level}")
    logger.info(f"  Log File: {settings.log_file}")
    logger.info(f"  CORS Origins: {', '.join(settings.get_cors_origins())}")

    logger.info("")
    logger.info("🤖 Model Configuration:")
    logger.info(f"  Model: {settings.llm_model}")
    logger.info(f"  Search Grounding: {settings.llm_enable_search}")
    logger.info(f"  Timeout: {settings.llm_timeout or 'none'}")
    logger.info(f"  Retries: {settings.llm_max_retries}")
    logger.info(f"  API Key: {mask_secret(settings.gemini_api_key)}")

    if not settings.gemini_api_key:
        logger.error("GEMINI_API_KEY environment variable is not set")
        raise RuntimeError("GEMINI_API_KEY environment variable is not set")

    logger.info("")
    logger.info("🗄️  Session Store:")
    logger.info(f"  Backend: {settings.session_store_backend}")
    store = create_session_store(settings)
    service = ChatService(ModelGateway.from_settings(settings), store)

    # Inject dependencies into routers
    roadmaps.chat_service = service
    chat.chat_service = service
    conversations.session_store = store

    logger.info("")
    logger.info("=" * 70)
    logger.info("✅ MVP Roadmap Generator started successfully!")
    logger.info(f"📍 Access at: http://{settings.host}:{settings.port}")
    logger.info("=" * 70)

    yield

    # Shutdown
    logger.info("Shutting down MVP Roadmap Generator...")
    store.close()
    roadmaps.chat_service = None
    chat.chat_service = None
    conversations.session_store = None
    logger.info("✅ MVP Roadmap Generator shut down successfully")


# Create FastAPI application
app = FastAPI(
    title="MVP Roadmap Generator",
    description="Multi-phase MVP roadmap generation and chat on top of Gemini",
    version=__version__,
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.get_cors_origins(),
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization", "Accept", "Origin", "X-Requested-With"],
    expose_headers=["Content-Range", "X-Content-Range"],
)

app.include_router(roadmaps.router)
app.include_router(chat.router)
app.include_router(conversations.router)


@app.get("/", response_class=PlainTextResponse)
async def read_root():
    """Banner for a quick liveness check from a browser."""
    return "MVP Roadmap Generator Backend is running. Send POST requests to /generate-roadmap."


@app.get("/health")
async def health():
    """
    Simple health check endpoint.

    Returns:
        Health status
    """
    return {
        "status": "healthy",
        "service": "MVP Roadmap Generator",
        "version": __version__
    }


def run():
    """Console entry point."""
    import uvicorn

    uvicorn.run(
        "roadmapper.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug
    )


if __name__ == "__main__":
    run()
