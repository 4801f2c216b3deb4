"""Local text generation with transformers pipelines."""
import asyncio
import logging
from typing import Any, Dict, List, Optional

from .prompts import local_prompt
from ..errors import LocalModelError

logger = logging.getLogger(__name__)


LOCAL_MODEL_CATALOG: Dict[str, Dict[str, str]] = {
    "distilgpt2": {
        "task": "text-generation",
        "size": "small",
        "description": "Fast, lightweight text generation model",
        "memory_usage": "~250MB",
    },
    "gpt2": {
        "task": "text-generation",
        "size": "medium",
        "description": "Standard GPT-2 text generation model",
        "memory_usage": "~700MB",
    },
    "distilbert-base-uncased-finetuned-sst-2-english": {
        "task": "sentiment-analysis",
        "size": "small",
        "description": "Sentiment analysis with conversational responses",
        "memory_usage": "~400MB",
    },
    "distilbert-base-cased-distilled-squad": {
        "task": "question-answering",
        "size": "medium",
        "description": "Question answering with context",
        "memory_usage": "~400MB",
    },
    "google/flan-t5-small": {
        "task": "text2text-generation",
        "size": "small",
        "description": "Instruction-following text generation",
        "memory_usage": "~450MB",
    },
    "MBZUAI/LaMini-Flan-T5-248M": {
        "task": "text2text-generation",
        "size": "small",
        "description": "Conversational instruction-following model",
        "memory_usage": "~300MB",
    },
}

FALLBACK_MODELS = [
    "MBZUAI/LaMini-Flan-T5-248M",
    "distilbert-base-uncased-finetuned-sst-2-english",
    "distilgpt2",
    "gpt2",
]

SUPPORTED_TASKS = {
    "text-generation",
    "text2text-generation",
    "sentiment-analysis",
    "question-answering",
}


# Sentiment models classify instead of generating
SENTIMENT_REPLIES = {
    "POSITIVE": "That sounds great! I'm glad to hear it. How else can I help you?",
    "NEGATIVE": "I'm sorry to hear that. Let me know how I can help.",
}


def get_local_model_info(model_name: str) -> Dict[str, str]:
    """Catalog entry for a model, with an 'unknown' default."""
    return LOCAL_MODEL_CATALOG.get(model_name, {
        "task": "text-generation",
        "size": "unknown",
        "description": "Unknown model",
        "memory_usage": "Unknown",
    })


def _first_text(result: Any) -> Optional[str]:
    if isinstance(result, list) and result:
        result = result[0]
    if isinstance(result, dict):
        if "label" in result:
            return SENTIMENT_REPLIES.get(result["label"].upper())
        return result.get("generated_text") or result.get("answer")
    return None


class LocalEngine:
    """
    Holds at most one loaded transformers pipeline.

    Loading walks a fallback chain of models until one succeeds. A load
    requested while another is running is refused.
    """

    def __init__(self, model_name: str = "MBZUAI/LaMini-Flan-T5-248M"):
        self.model_name = model_name
        self._pipeline = None
        self._loading = False
        self._error: Optional[str] = None

    @property
    def loaded(self) -> bool:
        return self._pipeline is not None

    @property
    def loading(self) -> bool:
        return self._loading

    @property
    def error(self) -> Optional[str]:
        return self._error

    @property
    def task(self) -> str:
        return get_local_model_info(self.model_name)["task"]

    def _build_pipeline(self, task: str, model_name: str):
        from transformers import pipeline

        return pipeline(task, model=model_name)

    async def initialize(self, model_name: Optional[str] = None) -> bool:
        """
        Load a model, falling back through FALLBACK_MODELS on failure.

        Args:
            model_name: Preferred model (defaults to the configured one)

        Returns:
            True if a model is loaded
        """
        target = model_name or self.model_name

        if self._pipeline is not None and target == self.model_name:
            logger.info("Local model already initialized")
            return True

        if self._loading:
            logger.info("Model already loading...")
            self._error = "Model already loading"
            return False

        self._loading = True
        self._error = None
        candidates: List[str] = list(dict.fromkeys([target, *FALLBACK_MODELS]))

        try:
            for candidate in candidates:
                info = get_local_model_info(candidate)
                task = info["task"]
                logger.info(
                    f"Trying local model {candidate} (task {task}, "
                    f"expected memory {info['memory_usage']})"
                )
                try:
                    if task not in SUPPORTED_TASKS:
                        raise ValueError(f"Unsupported task type: {task}")
                    pipe = await asyncio.to_thread(self._build_pipeline, task, candidate)
                except Exception as e:
                    logger.warning(f"Failed to load {candidate}: {e}")
                    self._error = f"All model loading attempts failed. Last error: {e}"
                    continue

                self._pipeline = pipe
                self.model_name = candidate
                self._error = None
                logger.info(f"Successfully loaded model: {candidate}")
                return True

            logger.error("All fallback models failed")
            return False
        finally:
            self._loading = False

    def _run(self, prompt: str, task: str, context: str) -> Any:
        if task == "text-generation":
            return self._pipeline(
                prompt,
                max_new_tokens=200,
                temperature=0.7,
                do_sample=True,
                return_full_text=False,
            )
        if task == "text2text-generation":
            return self._pipeline(prompt, max_new_tokens=200)
        if task == "question-answering":
            return self._pipeline(question=prompt, context=context or prompt)
        return self._pipeline(prompt)

    async def generate(self, message: str, context: str = "") -> str:
        """
        Generate an answer with the loaded pipeline.

        Args:
            message: User message
            context: Retrieved context ("" for none)

        Returns:
            Generated answer without citations
        """
        if self._pipeline is None:
            raise LocalModelError("Local model not initialized")

        task = self.task
        prompt = local_prompt(task, message, context)

        try:
            result = await asyncio.to_thread(self._run, prompt, task, context)
        except Exception as e:
            logger.error(f"Error generating response with context: {e}")
            raise LocalModelError(f"Local inference failed: {e}") from e

        text = _first_text(result)
        return text.strip() if text else "I couldn't generate a response."
