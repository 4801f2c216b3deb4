"""Main entry point for the site RAG server."""
import logging
import sys

import uvicorn
from dotenv import load_dotenv

from .config import RAGConfig
from .server import create_app


def main():
    """Start site RAG server."""
    load_dotenv()
    config = RAGConfig.from_env()

    logging.basicConfig(
        level=logging.DEBUG if config.verbose else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )

    backend = f"local ({config.local_model_name})" if config.use_local_model else "Azure OpenAI"
    print(f"=== Site RAG Server v1.0.0 ===")
    print(f"Backend: {backend}")
    print(f"Deployment: {config.azure_openai_deployment or 'not configured'}")
    print(f"Embedding: {config.embedding_model if config.embeddings_enabled else 'disabled'}")
    print(f"Auto-crawl: {'enabled' if config.website_auto_crawl else 'disabled'}")
    print(f"Server: http://{config.host}:{config.port}")
    print(f"==============================")

    app = create_app(config)

    try:
        uvicorn.run(
            app,
            host=config.host,
            port=config.port,
            log_level="debug" if config.verbose else "info",
        )
    except KeyboardInterrupt:
        print("\nShutting down site RAG server...")
        sys.exit(0)


if __name__ == "__main__":
    main()
