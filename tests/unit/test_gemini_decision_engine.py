import json

import httpx
import pytest

from app.domain.errors import DecisionError
from app.domain.models import DecisionAction
from app.infrastructure.ai.gemini_client import (
    CHAT_FALLBACK_REPLY,
    GeminiDecisionEngine,
    build_decision_prompt,
    parse_decision,
)


def _gemini_reply(text: str) -> dict:
    return {"candidates": [{"content": {"parts": [{"text": text}]}}]}


def _engine(handler, api_key="gem-key"):
    return GeminiDecisionEngine(
        api_key=api_key,
        model="gemini-2.0-flash",
        api_base_url="https://gemini.test",
        transport=httpx.MockTransport(handler),
    )


def test_decision_prompt_mentions_inputs():
    prompt = build_decision_prompt(7.25, 0.05)
    assert "7.25%" in prompt
    assert "$0.05" in prompt
    assert "Optimistic" in prompt
    assert "Cautious" in build_decision_prompt(6.0, 0.05)


def test_decision_prompt_uses_configured_threshold():
    assert "Cautious" in build_decision_prompt(7.0, 0.05, sentiment_threshold=7.5)
    assert "Optimistic" in build_decision_prompt(5.0, 0.05, sentiment_threshold=4.0)


@pytest.mark.asyncio
async def test_decide_prompt_follows_engine_threshold():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["prompt"] = json.loads(request.content)["contents"][0]["parts"][0]["text"]
        return httpx.Response(200, json=_gemini_reply('{"action": "HOLD", "reason": "Waiting"}'))

    engine = GeminiDecisionEngine(
        api_key="gem-key",
        api_base_url="https://gemini.test",
        transport=httpx.MockTransport(handler),
        sentiment_threshold_apy=8.0,
    )
    await engine.decide(7.0, 0.05)

    assert "Market sentiment is Cautious." in seen["prompt"]


def test_from_settings_shares_sentiment_threshold(monkeypatch):
    from app import config as config_module
    from app.services.agent_service import AgentService

    settings = config_module.settings
    monkeypatch.setattr(settings, "HIGH_SENTIMENT_APY", 7.5)

    # Sessions are only opened when a collaborator runs
    service = AgentService.from_settings(settings, session_factory=object())

    assert service.explainer.sentiment_threshold_apy == 7.5
    assert service.orchestrator.sentiment_threshold_apy == 7.5


def test_parse_decision_rejects_bad_payloads():
    with pytest.raises(DecisionError):
        parse_decision("not json")
    with pytest.raises(DecisionError):
        parse_decision('["BUY"]')
    with pytest.raises(DecisionError):
        parse_decision('{"action": "SELL", "reason": "x"}')
    with pytest.raises(DecisionError):
        parse_decision('{"action": "BUY"}')


@pytest.mark.asyncio
async def test_decide_posts_json_request_and_parses_reply():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = request.url
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json=_gemini_reply('{"action": "BUY", "reason": "Yield is attractive"}'))

    decision = await _engine(handler).decide(7.0, 0.05)

    assert decision.action == DecisionAction.BUY
    assert decision.reason == "Yield is attractive"
    assert seen["url"].path == "/v1beta/models/gemini-2.0-flash:generateContent"
    assert seen["url"].params["key"] == "gem-key"
    assert seen["body"]["generationConfig"] == {"responseMimeType": "application/json"}


@pytest.mark.asyncio
async def test_decide_without_api_key_raises():
    def handler(request):
        raise AssertionError("no request expected")

    with pytest.raises(DecisionError, match="Missing API Key"):
        await _engine(handler, api_key="").decide(7.0, 0.05)


@pytest.mark.asyncio
async def test_decide_http_error_raises_decision_error():
    def handler(request):
        return httpx.Response(500, json={"error": "internal"})

    with pytest.raises(DecisionError):
        await _engine(handler).decide(7.0, 0.05)


@pytest.mark.asyncio
async def test_decide_invalid_action_raises_decision_error():
    def handler(request):
        return httpx.Response(200, json=_gemini_reply('{"action": "MAYBE", "reason": "unsure"}'))

    with pytest.raises(DecisionError, match="Invalid AI response"):
        await _engine(handler).decide(7.0, 0.05)


@pytest.mark.asyncio
async def test_explain_returns_model_text():
    def handler(request):
        body = json.loads(request.content)
        assert "generationConfig" not in body
        assert "Why did you hold?" in body["contents"][0]["parts"][0]["text"]
        return httpx.Response(200, json=_gemini_reply("Gas was higher than the daily yield."))

    reply = await _engine(handler).explain("[]", "Why did you hold?")
    assert reply == "Gas was higher than the daily yield."


@pytest.mark.asyncio
async def test_explain_falls_back_on_failure():
    def handler(request):
        return httpx.Response(503, text="unavailable")

    reply = await _engine(handler).explain("[]", "Why?")
    assert reply == CHAT_FALLBACK_REPLY
