"""Test the FastAPI routes over a service with fake backends."""
import pytest
from fastapi.testclient import TestClient

from site_rag.server import create_app


@pytest.fixture
def client_for(make_service):
    clients = []

    def build(**kwargs):
        service = make_service(**kwargs)
        client = TestClient(create_app(service=service))
        client.__enter__()
        clients.append(client)
        return client, service

    yield build
    for client in clients:
        client.__exit__(None, None, None)


def test_root_lists_endpoints(client_for):
    client, _ = client_for()
    body = client.get("/").json()
    assert body["status"] == "running"
    assert body["endpoints"]["chat"] == "/api/chat"


def test_health(client_for):
    client, _ = client_for()
    body = client.get("/api/health").json()
    assert body["status"] == "healthy"
    assert body["documents"] == 0
    assert body["embedder_ready"] is True
    assert body["remote_configured"] is True
    assert body["crawl_in_progress"] is False


def test_upload_then_chat(client_for):
    client, _ = client_for()

    upload = client.post(
        "/api/documents/upload",
        files={"file": ("faq.txt", b"Refunds are issued within fourteen days.", "text/plain")},
    )
    assert upload.status_code == 200
    assert upload.json()["name"] == "faq.txt"

    response = client.post("/api/chat", json={"message": "refund policy", "useRAG": True})
    assert response.status_code == 200
    body = response.json()
    assert body["response"].startswith("remote answer")
    assert body["metadata"]["backend"] == "remote"
    assert body["metadata"]["sources"] == ["faq.txt"]


def test_upload_rejects_unsupported_and_oversized(client_for):
    client, service = client_for()

    response = client.post("/api/documents/upload", files={"file": ("slides.pptx", b"data")})
    assert response.status_code == 415

    service.config.max_upload_bytes = 4
    response = client.post("/api/documents/upload", files={"file": ("big.txt", b"too large")})
    assert response.status_code == 413


def test_chat_validation(client_for):
    client, _ = client_for()
    assert client.post("/api/chat", json={"message": ""}).status_code == 422
    assert client.post("/api/chat", json={"message": "   "}).status_code == 400


def test_chat_generation_error_body(client_for):
    client, _ = client_for(remote_status=401)

    response = client.post("/api/chat", json={"message": "hello"})

    assert response.status_code == 500
    detail = response.json()["detail"]
    assert detail["error"] == "Failed to generate response"
    assert detail["error_type"] == "RemoteAPIError"
    assert detail["kind"] == "unauthorized"


def test_crawl_conflict_and_bad_url(client_for):
    client, service = client_for()

    response = client.post("/api/website/crawl", json={"baseUrl": "notaurl"})
    assert response.status_code == 400

    service.crawl_state.in_progress = True
    response = client.post("/api/website/crawl", json={"baseUrl": "https://example.com/"})
    assert response.status_code == 409
    service.crawl_state.in_progress = False


def test_crawl_started(client_for):
    client, _ = client_for()

    response = client.post(
        "/api/website/crawl",
        json={"baseUrl": "https://example.com/", "maxPages": 2, "crawlDelay": 0},
    )

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["options"]["max_pages"] == 2
    assert body["options"]["crawl_delay"] == 0


def test_auto_crawl_info_and_website_status(client_for):
    client, _ = client_for()

    info = client.get("/api/website/auto-crawl").json()
    assert info["enabled"] is False
    assert info["detected_base_url"].startswith("http")

    status = client.get("/api/website/status").json()
    assert status["website_content"] == {"pages": 0, "chunks": 0}
    assert status["crawl"]["in_progress"] in (True, False)


def test_model_endpoints(client_for):
    client, _ = client_for()

    assert client.get("/api/model/status").json()["loaded"] is False

    response = client.post("/api/model/initialize", json={"modelName": "distilgpt2"})
    assert response.status_code == 200
    assert response.json()["model"] == "distilgpt2"
    assert client.get("/api/model/status").json()["loaded"] is True


def test_azure_openai_test_endpoint(client_for):
    client, _ = client_for(remote_content="pong")

    body = client.post("/api/azure-openai/test", json={}).json()

    assert body == {"success": True, "deployment": "gpt-4o", "response": "pong"}
