"""Model family classification and request capabilities."""
import re
from enum import Enum
from typing import Optional

from pydantic import BaseModel


class ModelFamily(str, Enum):
    REASONING = "reasoning"
    GPT4 = "gpt-4"
    GPT35 = "gpt-3.5"
    UNKNOWN = "unknown"


class ModelDescriptor(BaseModel):
    """What a chat-completions request may contain for a model family."""

    family: ModelFamily
    supports_system_role: bool
    token_limit_field: str
    supports_sampling_params: bool
    required_api_version: Optional[str] = None
    max_tokens: int

    class Config:
        frozen = True


REASONING_API_VERSION = "2024-12-01-preview"

# o1 / o3 / o4 series, e.g. "o1-preview", "my-o3-mini", but not "gpt-4o"
_REASONING_PATTERN = re.compile(r"(?<![a-z0-9])o[134](?![0-9])")

_DESCRIPTORS = {
    ModelFamily.REASONING: ModelDescriptor(
        family=ModelFamily.REASONING,
        supports_system_role=False,
        token_limit_field="max_completion_tokens",
        supports_sampling_params=False,
        required_api_version=REASONING_API_VERSION,
        max_tokens=2000,
    ),
    ModelFamily.GPT4: ModelDescriptor(
        family=ModelFamily.GPT4,
        supports_system_role=True,
        token_limit_field="max_tokens",
        supports_sampling_params=True,
        max_tokens=1500,
    ),
    ModelFamily.GPT35: ModelDescriptor(
        family=ModelFamily.GPT35,
        supports_system_role=True,
        token_limit_field="max_tokens",
        supports_sampling_params=True,
        max_tokens=1000,
    ),
    ModelFamily.UNKNOWN: ModelDescriptor(
        family=ModelFamily.UNKNOWN,
        supports_system_role=True,
        token_limit_field="max_tokens",
        supports_sampling_params=True,
        max_tokens=1000,
    ),
}


def classify_family(identifier: str) -> ModelFamily:
    """Pick the model family for a deployment or model identifier."""
    name = (identifier or "").lower()
    if _REASONING_PATTERN.search(name):
        return ModelFamily.REASONING
    if "gpt-4" in name:
        return ModelFamily.GPT4
    if "gpt-3.5" in name or "gpt-35" in name:
        return ModelFamily.GPT35
    return ModelFamily.UNKNOWN


def classify_model(identifier: str) -> ModelDescriptor:
    """Request capabilities for a deployment or model identifier."""
    return _DESCRIPTORS[classify_family(identifier)]
