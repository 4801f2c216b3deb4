"""Test model family classification, prompts and the Azure OpenAI client."""
import json

import httpx
import pytest

from site_rag.config import RAGConfig
from site_rag.errors import RemoteAPIError, RemoteConfigurationError
from site_rag.generation import AzureOpenAIClient, ModelFamily, build_chat_request, classify_model, format_sources
from site_rag.generation.model_family import REASONING_API_VERSION
from site_rag.generation.prompts import SYSTEM_PROMPT, local_prompt

from conftest import azure_transport


@pytest.mark.parametrize("identifier,family", [
    ("o1-preview", ModelFamily.REASONING),
    ("o3-mini", ModelFamily.REASONING),
    ("prod-o4-mini", ModelFamily.REASONING),
    ("gpt-4o", ModelFamily.GPT4),
    ("GPT-4-turbo", ModelFamily.GPT4),
    ("gpt-35-turbo", ModelFamily.GPT35),
    ("gpt-3.5-turbo", ModelFamily.GPT35),
    ("my-deployment", ModelFamily.UNKNOWN),
    ("", ModelFamily.UNKNOWN),
])
def test_classify_model(identifier, family):
    assert classify_model(identifier).family == family


def test_reasoning_request_omits_system_and_sampling():
    payload = build_chat_request("What is RAG?", "Some context", classify_model("o1-mini"))

    assert [m["role"] for m in payload["messages"]] == ["user"]
    assert "Some context" in payload["messages"][0]["content"]
    assert payload["max_completion_tokens"] == 2000
    assert "max_tokens" not in payload
    assert "temperature" not in payload
    assert "top_p" not in payload


def test_chat_request_includes_system_and_sampling():
    payload = build_chat_request("What is RAG?", "", classify_model("gpt-4"))

    assert payload["messages"] == [
        {"role": "system", "content": SYSTEM_PROMPT},
        {"role": "user", "content": "What is RAG?"},
    ]
    assert payload["max_tokens"] == 1500
    assert payload["temperature"] == 0.7
    assert payload["top_p"] == 0.9
    assert "max_completion_tokens" not in payload


def test_local_prompt_by_task():
    assert local_prompt("text-generation", "hi", "") == "hi"
    assert "Context: No specific context provided." in local_prompt("text2text-generation", "hi", "")
    assert local_prompt("sentiment-analysis", "hi", "ctx") == "hi"


def test_format_sources():
    assert format_sources([]) == ""
    assert format_sources(["a.txt", "Home (https://example.com/)"]) == (
        "\n\n📚 **Sources:**\n• a.txt\n• Home (https://example.com/)"
    )


def make_client(transport, deployment="gpt-4o", **overrides):
    values = {
        "azure_openai_endpoint": "https://example.openai.azure.com/",
        "azure_openai_key": "secret",
        "azure_openai_deployment": deployment,
    }
    values.update(overrides)
    return AzureOpenAIClient(RAGConfig(**values), transport=transport)


@pytest.mark.asyncio
async def test_remote_client_posts_to_deployment():
    calls = []
    client = make_client(azure_transport("Hello!", calls=calls))

    text = await client.generate_with_context("Hi", "ctx")
    await client.close()

    assert text == "Hello!"
    request = calls[0]
    assert request.url.path == "/openai/deployments/gpt-4o/chat/completions"
    assert request.url.params["api-version"] == "2024-08-01-preview"
    assert request.headers["api-key"] == "secret"
    body = json.loads(request.content)
    assert body["messages"][0]["role"] == "system"


@pytest.mark.asyncio
async def test_remote_client_reasoning_api_version():
    calls = []
    client = make_client(azure_transport(calls=calls), deployment="o1-mini")

    await client.generate_with_context("Hi")
    await client.close()

    assert calls[0].url.params["api-version"] == REASONING_API_VERSION
    assert "max_completion_tokens" in json.loads(calls[0].content)


@pytest.mark.asyncio
@pytest.mark.parametrize("status_code,kind", [
    (401, "unauthorized"),
    (404, "deployment_not_found"),
    (429, "rate_limited"),
    (400, "bad_parameters"),
    (503, "service_error"),
    (418, "api_error"),
])
async def test_remote_client_classifies_errors(status_code, kind):
    client = make_client(azure_transport(status_code=status_code))

    with pytest.raises(RemoteAPIError) as exc_info:
        await client.generate_with_context("Hi")
    await client.close()

    assert exc_info.value.kind == kind
    assert exc_info.value.status_code == status_code


@pytest.mark.asyncio
async def test_remote_client_invalid_response_shape():
    transport = httpx.MockTransport(lambda request: httpx.Response(200, json={"choices": []}))
    client = make_client(transport)

    with pytest.raises(RemoteAPIError) as exc_info:
        await client.generate_with_context("Hi")
    await client.close()

    assert exc_info.value.kind == "invalid_response"


@pytest.mark.asyncio
async def test_remote_client_connection_error():
    def handler(request):
        raise httpx.ConnectError("refused", request=request)

    client = make_client(httpx.MockTransport(handler))

    with pytest.raises(RemoteAPIError) as exc_info:
        await client.generate_with_context("Hi")
    await client.close()

    assert exc_info.value.kind == "connection_error"


@pytest.mark.asyncio
async def test_remote_client_names_missing_settings():
    client = make_client(azure_transport(), azure_openai_key=None, azure_openai_deployment=None)

    assert not client.configured
    with pytest.raises(RemoteConfigurationError) as exc_info:
        await client.generate_with_context("Hi")

    assert exc_info.value.missing == ["AZURE_OPENAI_KEY", "AZURE_OPENAI_DEPLOYMENT"]
    assert "AZURE_OPENAI_KEY" in str(exc_info.value)


@pytest.mark.asyncio
async def test_remote_client_requires_https():
    client = make_client(azure_transport(), azure_openai_endpoint="http://example.openai.azure.com")

    with pytest.raises(RemoteConfigurationError):
        await client.generate_with_context("Hi")
