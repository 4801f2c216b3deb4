"""Configuration for the site RAG server."""
from typing import Optional
from pydantic_settings import BaseSettings
from pydantic import Field
import os


def _env_flag(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() == "true"


def _env_int(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, ""))
    except ValueError:
        return default


def is_azure_app_service() -> bool:
    """True when running inside Azure App Service."""
    return bool(os.getenv("WEBSITE_SITE_NAME"))


def detect_base_url() -> str:
    """
    Work out the public URL of the site this server is deployed with.

    Used as the seed for auto-crawls when no URL is supplied.
    """
    site_name = os.getenv("WEBSITE_SITE_NAME")
    if not site_name:
        return f"http://localhost:{os.getenv('PORT') or 3000}"

    hostname = os.getenv("WEBSITE_HOSTNAME")
    if hostname:
        return f"https://{hostname}"

    candidates = [
        os.getenv("HTTP_HOST"),
        os.getenv("SERVER_NAME"),
        f"{site_name}.azurewebsites.net",
    ]
    host = next(c for c in candidates if c)
    return host if host.startswith("http") else f"https://{host}"


class RAGConfig(BaseSettings):
    """Site RAG server configuration."""

    # Generation backends
    use_local_model: bool = Field(
        default=False,
        description="Prefer the local transformers pipeline over the remote API"
    )
    local_model_name: str = Field(
        default="MBZUAI/LaMini-Flan-T5-248M",
        description="Local text generation model"
    )

    # Azure OpenAI
    azure_openai_endpoint: Optional[str] = Field(
        default=None,
        description="Azure OpenAI resource endpoint (https://...)"
    )
    azure_openai_key: Optional[str] = Field(
        default=None,
        description="Azure OpenAI API key"
    )
    azure_openai_deployment: Optional[str] = Field(
        default=None,
        description="Azure OpenAI deployment name"
    )
    azure_openai_version: str = Field(
        default="2024-08-01-preview",
        description="Azure OpenAI API version"
    )
    remote_timeout: float = Field(
        default=120.0,
        description="Remote generation request timeout in seconds"
    )

    # Embeddings
    embedding_model: str = Field(
        default="sentence-transformers/all-MiniLM-L6-v2",
        description="Sentence embedding model"
    )
    embeddings_enabled: bool = Field(
        default=True,
        description="Load the local embedder (disabled in cloud mode)"
    )

    # RAG Parameters
    chunk_size: int = Field(
        default=500,
        description="Chunk size in words"
    )
    chunk_overlap: int = Field(
        default=50,
        description="Overlap between consecutive chunks in words"
    )
    rag_top_k: int = Field(
        default=3,
        description="Number of chunks to retrieve"
    )

    # Website crawling
    website_auto_crawl: bool = Field(
        default=False,
        description="Crawl the deployed site shortly after startup"
    )
    website_max_pages: int = Field(
        default=50,
        description="Page budget for auto-crawls"
    )
    website_crawl_delay: float = Field(
        default=1.0,
        description="Delay between crawl requests in seconds"
    )
    crawl_user_agent: str = Field(
        default="WebAppChatbot/1.0",
        description="User agent for crawl requests"
    )
    request_timeout: float = Field(
        default=10.0,
        description="Per-page fetch timeout in seconds"
    )
    robots_timeout: float = Field(
        default=5.0,
        description="robots.txt fetch timeout in seconds"
    )

    # Uploads
    max_upload_bytes: int = Field(
        default=10 * 1024 * 1024,
        description="Maximum uploaded document size"
    )

    # Server Configuration
    host: str = Field(
        default="127.0.0.1",
        description="Server host"
    )
    port: int = Field(
        default=3000,
        description="Server port"
    )
    verbose: bool = Field(
        default=False,
        description="Enable verbose logging"
    )

    @classmethod
    def from_env(cls) -> "RAGConfig":
        """Load config from environment variables."""
        return cls(
            # Backends
            use_local_model=_env_flag("USE_LOCAL_MODEL"),
            local_model_name=os.getenv("LOCAL_MODEL_NAME", "MBZUAI/LaMini-Flan-T5-248M"),

            # Azure OpenAI
            azure_openai_endpoint=os.getenv("AZURE_OPENAI_ENDPOINT"),
            azure_openai_key=os.getenv("AZURE_OPENAI_KEY"),
            azure_openai_deployment=os.getenv("AZURE_OPENAI_DEPLOYMENT"),
            azure_openai_version=os.getenv("AZURE_OPENAI_VERSION", "2024-08-01-preview"),

            # Embeddings
            embedding_model=os.getenv(
                "RAG_EMBEDDING_MODEL",
                "sentence-transformers/all-MiniLM-L6-v2"
            ),
            embeddings_enabled=_env_flag(
                "RAG_EMBEDDINGS_ENABLED", not is_azure_app_service()
            ),

            # RAG Parameters
            chunk_size=_env_int("RAG_CHUNK_SIZE", 500),
            chunk_overlap=_env_int("RAG_CHUNK_OVERLAP", 50),
            rag_top_k=_env_int("RAG_TOP_K", 3),

            # Website crawling (delay is configured in milliseconds)
            website_auto_crawl=_env_flag("WEBSITE_AUTO_CRAWL"),
            website_max_pages=_env_int("WEBSITE_MAX_PAGES", 50),
            website_crawl_delay=_env_int("WEBSITE_CRAWL_DELAY", 1000) / 1000.0,

            # Server
            host=os.getenv("RAG_HOST", "127.0.0.1"),
            port=_env_int("PORT", 3000),
            verbose=_env_flag("RAG_VERBOSE"),
        )

    def missing_azure_settings(self) -> list:
        """Names of the Azure OpenAI env settings that are not set."""
        missing = []
        if not self.azure_openai_endpoint:
            missing.append("AZURE_OPENAI_ENDPOINT")
        if not self.azure_openai_key:
            missing.append("AZURE_OPENAI_KEY")
        if not self.azure_openai_deployment:
            missing.append("AZURE_OPENAI_DEPLOYMENT")
        return missing

    class Config:
        env_prefix = "RAG_"
        case_sensitive = False
