"""FastAPI server for the site RAG chatbot."""
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, File, HTTPException, UploadFile
from fastapi.middleware.cors import CORSMiddleware

from .config import RAGConfig, detect_base_url
from .errors import GenerationError, RemoteAPIError, RemoteConfigurationError, UnsupportedDocumentError
from .models import (
    ChatRequest,
    ChatResult,
    CrawlRequest,
    DocumentEntry,
    HealthResponse,
    ModelInitRequest,
    ModelInitResult,
    ModelStatus,
    RemoteTestRequest,
)
from .service import ALREADY_IN_PROGRESS, RAGService

logger = logging.getLogger(__name__)


def _generation_error_detail(error: GenerationError) -> dict:
    """JSON body for a failed generation request."""
    detail = {
        "error": "Failed to generate response",
        "details": str(error),
        "error_type": type(error).__name__,
    }
    if isinstance(error, RemoteConfigurationError):
        detail["missing"] = error.missing
    elif isinstance(error, RemoteAPIError):
        detail["kind"] = error.kind
        detail["status_code"] = error.status_code
    return detail


def create_app(
    config: Optional[RAGConfig] = None,
    service: Optional[RAGService] = None,
) -> FastAPI:
    """
    Create FastAPI application.

    Args:
        config: Server configuration (read from env if not provided)
        service: Prebuilt service (built from config if not provided)

    Returns:
        FastAPI application
    """
    if config is None:
        config = service.config if service else RAGConfig.from_env()
    if service is None:
        service = RAGService(config)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await service.startup()
        yield
        await service.shutdown()

    app = FastAPI(
        title="Site RAG Server",
        description="Website-grounded chatbot with in-memory retrieval",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.service = service

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Routes
    @app.post("/api/chat", response_model=ChatResult)
    async def chat(request: ChatRequest):
        """Answer a chat message, optionally grounded on indexed content."""
        if not request.message.strip():
            raise HTTPException(400, "Message is required")

        logger.info(
            f"Chat request received (RAG {'on' if request.use_rag else 'off'}, "
            f"website content {'on' if request.include_website_content else 'off'})"
        )
        try:
            return await service.respond(
                request.message,
                rag_enabled=request.use_rag,
                include_website_content=request.include_website_content,
            )
        except GenerationError as e:
            logger.error(f"Chat failed: {str(e)}")
            raise HTTPException(500, _generation_error_detail(e))

    @app.post("/api/website/crawl")
    async def crawl_website(request: Optional[CrawlRequest] = None):
        """Start a background crawl of a website."""
        request = request or CrawlRequest()
        options = service.default_crawl_options(
            max_pages=request.max_pages,
            respect_robots=request.respect_robots,
            include_external_links=request.include_external_links,
            crawl_delay=request.crawl_delay / 1000,
        )

        result = service.start_crawl(request.base_url, options)
        if not result.accepted:
            if result.reason == ALREADY_IN_PROGRESS:
                raise HTTPException(409, "Crawling already in progress")
            raise HTTPException(400, result.reason)

        return {
            "success": True,
            "message": "Website crawling started",
            "base_url": result.seed_url,
            "options": options.model_dump(),
        }

    @app.post("/api/website/auto-crawl")
    async def auto_crawl():
        """Crawl this deployment's own website."""
        result = service.start_auto_crawl()
        if not result.accepted:
            if result.reason == ALREADY_IN_PROGRESS:
                raise HTTPException(409, "Crawling already in progress")
            raise HTTPException(400, result.reason)
        return {
            "success": True,
            "message": "Auto-crawl started",
            "base_url": result.seed_url,
        }

    @app.get("/api/website/auto-crawl")
    async def auto_crawl_info():
        """Auto-crawl configuration and the detected base URL."""
        return {
            "enabled": config.website_auto_crawl,
            "detected_base_url": detect_base_url(),
            "max_pages": config.website_max_pages,
            "crawl_delay": config.website_crawl_delay,
            "status": service.crawl_status(),
        }

    @app.get("/api/website/status")
    async def website_status():
        """Crawl state and indexed website content counts."""
        return service.website_status()

    @app.post("/api/documents/upload", response_model=DocumentEntry)
    async def upload_document(file: UploadFile = File(...)):
        """Index an uploaded .txt, .md or .pdf document."""
        data = await file.read()
        if len(data) > config.max_upload_bytes:
            raise HTTPException(413, f"File too large (limit {config.max_upload_bytes} bytes)")

        try:
            return await service.ingest_document(file.filename or "", data)
        except UnsupportedDocumentError as e:
            raise HTTPException(415, str(e))
        except Exception as e:
            logger.error(f"Upload failed: {str(e)}", exc_info=True)
            raise HTTPException(500, f"Upload failed: {str(e)}")

    @app.post("/api/model/initialize", response_model=ModelInitResult)
    async def initialize_model(request: Optional[ModelInitRequest] = None):
        """Load a local generation model."""
        model_name = request.model_name if request else None
        result = await service.initialize_local_model(model_name)
        if not result.success:
            raise HTTPException(500, f"Failed to initialize model: {result.reason}")
        return result

    @app.get("/api/model/status", response_model=ModelStatus)
    async def model_status():
        """Local model and embedder readiness."""
        return service.model_status()

    @app.post("/api/azure-openai/test")
    async def test_azure_openai(request: Optional[RemoteTestRequest] = None):
        """Send a probe message straight to Azure OpenAI."""
        request = request or RemoteTestRequest()
        try:
            deployment, text = await service.test_remote_connection(request.message)
        except GenerationError as e:
            logger.error(f"Azure OpenAI test failed: {str(e)}")
            raise HTTPException(500, _generation_error_detail(e))
        return {
            "success": True,
            "deployment": deployment,
            "response": text,
        }

    @app.get("/api/health", response_model=HealthResponse)
    async def health_check():
        """Health check endpoint."""
        return service.health()

    @app.get("/")
    async def root():
        """Root endpoint."""
        return {
            "name": "Site RAG Server",
            "version": "1.0.0",
            "status": "running",
            "endpoints": {
                "chat": "/api/chat",
                "crawl": "/api/website/crawl",
                "auto_crawl": "/api/website/auto-crawl",
                "website_status": "/api/website/status",
                "upload": "/api/documents/upload",
                "model_initialize": "/api/model/initialize",
                "model_status": "/api/model/status",
                "azure_test": "/api/azure-openai/test",
                "health": "/api/health",
            },
        }

    return app
