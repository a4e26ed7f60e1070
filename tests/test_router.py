"""Tests for debate_council/providers/router.py."""

import pytest

from debate_council.providers.base import ProviderError
from debate_council.providers.router import ModelRouter
from tests.conftest import FakeLLM, evaluation_dict


def test_prefix_route_wins_over_default():
    anthropic, gateway = FakeLLM(), FakeLLM()
    router = ModelRouter([("anthropic/", anthropic)], default=gateway)
    assert router.provider_for("anthropic/claude-opus-4.5") is anthropic
    assert router.provider_for("openai/gpt-5.1") is gateway


def test_first_matching_route_wins():
    first, second = FakeLLM(), FakeLLM()
    router = ModelRouter([("google/", first), ("google/gemini", second)])
    assert router.provider_for("google/gemini-3-pro") is first


def test_no_route_and_no_default():
    router = ModelRouter([("anthropic/", FakeLLM())])
    with pytest.raises(ProviderError, match="No endpoint serves model xai/grok"):
        router.provider_for("xai/grok")


async def test_evaluate_delegates_with_options():
    from debate_council.schemas import JUDGE_EVALUATION_SCHEMA

    target = FakeLLM(judge_results={"openai/gpt": evaluation_dict("A")})
    router = ModelRouter([], default=target)
    result = await router.evaluate_structured(
        "sys", "user", JUDGE_EVALUATION_SCHEMA, "openai/gpt", {"reasoning_effort": "high"}
    )
    assert result["winner"] == "A"
    assert target.calls[0]["options"] == {"reasoning_effort": "high"}
    assert router.name() == "router"
