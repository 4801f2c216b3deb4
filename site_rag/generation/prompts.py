"""Prompt templates and chat request construction."""
from typing import Any, Dict, List, Sequence

from .model_family import ModelDescriptor

SYSTEM_PROMPT = (
    "You are a helpful AI assistant. Provide accurate, helpful, and informative responses."
)

CONTEXT_SYSTEM_SUFFIX = (
    " Use the provided context to answer questions when relevant, "
    "but you can also use your general knowledge when appropriate."
)

SAMPLING_PARAMS = {
    "temperature": 0.7,
    "top_p": 0.9,
    "frequency_penalty": 0,
    "presence_penalty": 0,
}


def build_user_message(message: str, context: str = "") -> str:
    """User turn with retrieved context interpolated when present."""
    if not context:
        return message
    return f"""Context from documentation and website:
{context}

Question: {message}

Please provide a helpful and accurate answer based on the context above and your knowledge:"""


def build_messages(
    message: str,
    context: str,
    descriptor: ModelDescriptor,
) -> List[Dict[str, str]]:
    """
    Chat messages for a model family.

    Families without a system role get the user turn only.
    """
    user_message = build_user_message(message, context)
    if not descriptor.supports_system_role:
        return [{"role": "user", "content": user_message}]

    system_message = SYSTEM_PROMPT + (CONTEXT_SYSTEM_SUFFIX if context else "")
    return [
        {"role": "system", "content": system_message},
        {"role": "user", "content": user_message},
    ]


def build_chat_request(
    message: str,
    context: str,
    descriptor: ModelDescriptor,
) -> Dict[str, Any]:
    """
    Chat-completions request body shaped for a model family.

    Args:
        message: User message
        context: Retrieved context ("" for none)
        descriptor: Capabilities of the target model

    Returns:
        JSON-ready request body
    """
    payload: Dict[str, Any] = {
        "messages": build_messages(message, context, descriptor),
        descriptor.token_limit_field: descriptor.max_tokens,
    }
    if descriptor.supports_sampling_params:
        payload.update(SAMPLING_PARAMS)
    return payload


def local_prompt(task: str, message: str, context: str) -> str:
    """Prompt text for a local pipeline task."""
    if task == "text-generation":
        if not context:
            return message
        return f"""Context from documentation and website:
{context}

Question: {message}

Based on the context above, please provide a helpful and accurate answer:"""

    if task == "text2text-generation":
        return f"""Answer the following question based on the provided context.

Context: {context or 'No specific context provided.'}

Question: {message}

Answer:"""

    return message


def format_sources(sources: Sequence[str]) -> str:
    """Citation block appended to answers."""
    if not sources:
        return ""
    lines = "\n".join(f"• {source}" for source in sources)
    return f"\n\n📚 **Sources:**\n{lines}"
