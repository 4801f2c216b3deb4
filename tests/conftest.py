"""Shared fixtures and fakes for the site RAG tests."""
from typing import Callable, Dict, Optional

import httpx
import numpy as np
import pytest

from site_rag.config import RAGConfig
from site_rag.embeddings import SentenceEmbedder
from site_rag.generation import AzureOpenAIClient, LocalEngine
from site_rag.indexing.models import CrawlOptions
from site_rag.service import RAGService

ALPHABET = "abcdefghijklmnopqrstuvwxyz"

LOREM = (
    "This page describes the services our small company offers to customers "
    "across the region, including consulting, training and support plans."
)


def html_page(title: str, body: str = LOREM, links=(), description: str = "") -> str:
    anchors = "".join(f'<a href="{href}">{href}</a>' for href in links)
    meta = f'<meta name="description" content="{description}">' if description else ""
    return (
        f"<html><head><title>{title}</title>{meta}</head>"
        f"<body><nav>Home | About</nav><main><h1>{title}</h1><p>{body}</p>{anchors}</main>"
        f"<footer>Copyright</footer></body></html>"
    )


class FakeSentenceModel:
    """Letter-frequency vectors, L2-normalized like the real model."""

    def get_sentence_embedding_dimension(self) -> int:
        return len(ALPHABET)

    def encode(self, text, convert_to_numpy=True, normalize_embeddings=True):
        vector = np.array([text.lower().count(c) for c in ALPHABET], dtype=np.float32)
        norm = np.linalg.norm(vector)
        return vector / norm if norm else vector


class FakeEmbedder(SentenceEmbedder):
    def __init__(self):
        super().__init__(model_name="fake-letters")

    def _load_model(self):
        return FakeSentenceModel()


class FakeLocalEngine(LocalEngine):
    """Local engine whose pipeline echoes the prompt or fails."""

    def __init__(self, fail: bool = False, model_name: str = "MBZUAI/LaMini-Flan-T5-248M"):
        super().__init__(model_name)
        self.fail = fail

    def _build_pipeline(self, task: str, model_name: str):
        def pipe(prompt, **kwargs):
            if self.fail:
                raise RuntimeError("out of memory")
            return [{"generated_text": "local answer"}]
        return pipe


def site_transport(pages: Dict[str, str], robots: Optional[str] = None) -> httpx.MockTransport:
    """Serve a fixed set of HTML pages; everything else is a 404."""

    def handler(request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        if url.endswith("/robots.txt"):
            if robots is None:
                return httpx.Response(404, text="")
            return httpx.Response(200, text=robots)
        if url in pages:
            return httpx.Response(200, text=pages[url], headers={"content-type": "text/html; charset=utf-8"})
        return httpx.Response(404, text="Not Found")

    return httpx.MockTransport(handler)


def client_factory_for(transport: httpx.MockTransport) -> Callable[[CrawlOptions], httpx.AsyncClient]:
    def factory(options: CrawlOptions) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=transport, follow_redirects=True)
    return factory


def azure_transport(content: str = "remote answer", status_code: int = 200, calls=None) -> httpx.MockTransport:
    """Fake Azure OpenAI chat-completions endpoint."""

    def handler(request: httpx.Request) -> httpx.Response:
        if calls is not None:
            calls.append(request)
        if status_code != 200:
            return httpx.Response(status_code, json={"error": {"message": "boom"}})
        return httpx.Response(200, json={"choices": [{"message": {"content": content}}]})

    return httpx.MockTransport(handler)


SITE = {
    "https://example.com/": html_page("Home", links=["/about", "/contact"]),
    "https://example.com/about": html_page("About", body=LOREM + " Our team has twenty engineers."),
    "https://example.com/contact": html_page("Contact", body=LOREM + " Email us at hello@example.com."),
}


@pytest.fixture
def config():
    return RAGConfig(
        azure_openai_endpoint="https://example.openai.azure.com",
        azure_openai_key="test-key",
        azure_openai_deployment="gpt-4o",
        chunk_size=20,
        chunk_overlap=5,
        website_crawl_delay=0,
    )


@pytest.fixture
def make_service(config):
    """Build a RAGService with fake backends and a fake website."""

    def build(
        pages: Optional[Dict[str, str]] = None,
        embedder: Optional[SentenceEmbedder] = None,
        local: Optional[LocalEngine] = None,
        remote_content: str = "remote answer",
        remote_status: int = 200,
        remote_calls=None,
    ) -> RAGService:
        remote = AzureOpenAIClient(
            config,
            transport=azure_transport(remote_content, remote_status, remote_calls),
        )
        return RAGService(
            config,
            embedder=embedder or FakeEmbedder(),
            local=local or FakeLocalEngine(),
            remote=remote,
            client_factory=client_factory_for(site_transport(pages or SITE)),
        )

    return build
