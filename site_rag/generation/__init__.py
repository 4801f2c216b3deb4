"""Generation backends and dispatch."""
from .dispatcher import GenerationDispatcher, GenerationResult, RetrievedContext, keyword_fallback
from .local_engine import LocalEngine, get_local_model_info
from .model_family import ModelDescriptor, ModelFamily, classify_model
from .prompts import build_chat_request, format_sources
from .remote_client import AzureOpenAIClient

__all__ = [
    "GenerationDispatcher",
    "GenerationResult",
    "RetrievedContext",
    "keyword_fallback",
    "LocalEngine",
    "get_local_model_info",
    "ModelDescriptor",
    "ModelFamily",
    "classify_model",
    "build_chat_request",
    "format_sources",
    "AzureOpenAIClient",
]
