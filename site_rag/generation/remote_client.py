"""Azure OpenAI chat-completions client."""
import logging
from typing import Any, Dict, Optional

import httpx

from .model_family import ModelDescriptor, classify_model
from .prompts import build_chat_request
from ..config import RAGConfig
from ..errors import RemoteAPIError, RemoteConfigurationError

logger = logging.getLogger(__name__)


def classify_status(status_code: int, deployment: str, detail: str = "") -> RemoteAPIError:
    """Turn an error status into an actionable RemoteAPIError."""
    if status_code == 401:
        return RemoteAPIError(
            "Invalid Azure OpenAI API key. Please check your credentials.",
            kind="unauthorized",
            status_code=status_code,
        )
    if status_code == 404:
        return RemoteAPIError(
            f"Azure OpenAI deployment '{deployment}' not found. Please check your deployment name.",
            kind="deployment_not_found",
            status_code=status_code,
        )
    if status_code == 429:
        return RemoteAPIError(
            "Azure OpenAI quota exceeded. Please check your usage limits.",
            kind="rate_limited",
            status_code=status_code,
        )
    if status_code == 400:
        return RemoteAPIError(
            f"Azure OpenAI parameter error: {detail or 'bad request'}",
            kind="bad_parameters",
            status_code=status_code,
        )
    if status_code >= 500:
        return RemoteAPIError(
            f"Azure OpenAI service error (HTTP {status_code}). Try again later.",
            kind="service_error",
            status_code=status_code,
        )
    return RemoteAPIError(
        f"Azure OpenAI error (HTTP {status_code}): {detail}",
        kind="api_error",
        status_code=status_code,
    )


def _error_detail(response: httpx.Response) -> str:
    try:
        data = response.json()
    except ValueError:
        return response.text[:200]
    error = data.get("error") if isinstance(data, dict) else None
    if isinstance(error, dict):
        return error.get("message", "")
    return str(error or "")


class AzureOpenAIClient:
    """Client for an Azure OpenAI chat deployment."""

    def __init__(
        self,
        config: RAGConfig,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize Azure OpenAI client.

        Args:
            config: Server configuration holding the AZURE_OPENAI_* settings
            transport: Optional httpx transport (tests)
        """
        self.config = config
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    @property
    def deployment(self) -> Optional[str]:
        return self.config.azure_openai_deployment

    @property
    def configured(self) -> bool:
        return not self.config.missing_azure_settings()

    def validate_config(self) -> None:
        """Raise RemoteConfigurationError naming whatever is missing."""
        missing = self.config.missing_azure_settings()
        if missing:
            raise RemoteConfigurationError(
                f"Azure OpenAI configuration incomplete. Missing: {', '.join(missing)}",
                missing=missing,
            )
        if not self.config.azure_openai_endpoint.startswith("https://"):
            raise RemoteConfigurationError(
                "Invalid AZURE_OPENAI_ENDPOINT format. Must start with https://"
            )

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self.config.remote_timeout,
                transport=self._transport,
            )
        return self._client

    async def close(self):
        """Close HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    def descriptor(self) -> ModelDescriptor:
        return classify_model(self.deployment or "")

    def completions_url(self) -> str:
        endpoint = self.config.azure_openai_endpoint.rstrip("/")
        return f"{endpoint}/openai/deployments/{self.deployment}/chat/completions"

    async def chat(self, payload: Dict[str, Any], api_version: str) -> str:
        """
        Send a chat-completions request.

        Args:
            payload: Request body
            api_version: Azure OpenAI api-version query parameter

        Returns:
            Generated message content
        """
        self.validate_config()

        try:
            response = await self._get_client().post(
                self.completions_url(),
                params={"api-version": api_version},
                headers={"api-key": self.config.azure_openai_key},
                json=payload,
            )
        except httpx.HTTPError as e:
            raise RemoteAPIError(
                f"Azure OpenAI request failed: {e}",
                kind="connection_error",
            )

        if response.status_code >= 400:
            detail = _error_detail(response)
            logger.error(f"Azure OpenAI API error {response.status_code}: {detail}")
            raise classify_status(response.status_code, self.deployment, detail)

        try:
            data = response.json()
            content = data["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise RemoteAPIError(
                f"Invalid response structure from Azure OpenAI: {e}",
                kind="invalid_response",
                status_code=response.status_code,
            )

        return content or "I couldn't generate a response."

    async def generate_with_context(self, message: str, context: str = "") -> str:
        """
        Generate an answer shaped for the deployment's model family.

        Args:
            message: User message
            context: Retrieved context ("" for none)

        Returns:
            Generated answer without citations
        """
        self.validate_config()

        descriptor = self.descriptor()
        payload = build_chat_request(message, context, descriptor)
        api_version = descriptor.required_api_version or self.config.azure_openai_version

        logger.info(
            f"Calling Azure OpenAI deployment {self.deployment} "
            f"({descriptor.family.value}, api-version {api_version})"
        )
        return await self.chat(payload, api_version)
