import pytest
from pydantic_ai.models.openai import OpenAIChatModel

from trainlog.services.llm.model import get_model


def test_openai_provider_returns_chat_model():
    model = get_model("openai", "gpt-4o-mini")

    assert isinstance(model, OpenAIChatModel)
    assert model.model_name == "gpt-4o-mini"


def test_unknown_provider_is_rejected():
    with pytest.raises(ValueError, match="Unsupported LLM provider: mistral"):
        get_model("mistral", "mistral-large")
