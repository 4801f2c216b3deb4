"""Test local model loading and inference."""
import pytest

from site_rag.errors import LocalModelError
from site_rag.generation.local_engine import FALLBACK_MODELS, LocalEngine, get_local_model_info


class FlakyEngine(LocalEngine):
    """Only distilgpt2 loads."""

    def __init__(self):
        super().__init__("google/flan-t5-small")
        self.attempts = []

    def _build_pipeline(self, task, model_name):
        self.attempts.append(model_name)
        if model_name != "distilgpt2":
            raise OSError(f"cannot download {model_name}")
        return lambda prompt, **kwargs: [{"generated_text": f"  echo: {prompt}  "}]


class BrokenEngine(LocalEngine):
    def _build_pipeline(self, task, model_name):
        raise OSError("disk full")


def test_model_info_unknown_default():
    assert get_local_model_info("distilgpt2")["task"] == "text-generation"
    assert get_local_model_info("nope/never")["size"] == "unknown"


@pytest.mark.asyncio
async def test_initialize_walks_fallback_chain():
    engine = FlakyEngine()

    assert await engine.initialize()

    assert engine.attempts == ["google/flan-t5-small", *FALLBACK_MODELS[:3]]
    assert engine.model_name == "distilgpt2"
    assert engine.loaded
    assert engine.error is None


@pytest.mark.asyncio
async def test_initialize_records_last_error():
    engine = BrokenEngine("gpt2")

    assert not await engine.initialize()

    assert not engine.loaded
    assert not engine.loading
    assert "disk full" in engine.error


@pytest.mark.asyncio
async def test_generate_strips_output():
    engine = FlakyEngine()
    await engine.initialize()

    assert await engine.generate("hi") == "echo: hi"


@pytest.mark.asyncio
async def test_generate_requires_loaded_model():
    with pytest.raises(LocalModelError):
        await LocalEngine().generate("hi")


@pytest.mark.asyncio
async def test_sentiment_model_gives_conversational_reply():
    class SentimentEngine(LocalEngine):
        def _build_pipeline(self, task, model_name):
            return lambda prompt: [{"label": "NEGATIVE", "score": 0.98}]

    engine = SentimentEngine("distilbert-base-uncased-finetuned-sst-2-english")
    await engine.initialize()

    assert engine.task == "sentiment-analysis"
    assert (await engine.generate("this is broken")).startswith("I'm sorry to hear that")
