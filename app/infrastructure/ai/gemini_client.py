"""Gemini-backed treasury decisions and chat explanations."""
from __future__ import annotations

import json
import logging
from typing import Any, Dict, Optional

import httpx

from app.domain.errors import DecisionError
from app.domain.models import Decision, DecisionAction

logger = logging.getLogger(__name__)

CHAT_FALLBACK_REPLY = "I'm having trouble retrieving my memory right now."


def build_decision_prompt(current_apy: float, gas_cost: float, sentiment_threshold: float = 6.0) -> str:
    sentiment = "Optimistic" if current_apy > sentiment_threshold else "Cautious"
    return (
        "You are a risk-averse treasury manager.\n"
        f"Current APY is {current_apy}%.\n"
        f"Gas cost is ${gas_cost}.\n"
        f"Market sentiment is {sentiment}.\n"
        "Should I move funds?\n"
        'Respond JSON: { "action": "BUY"|"HOLD", "reason": "..." }'
    )


def build_chat_prompt(logs_context: str, user_question: str) -> str:
    return (
        "Context: Here are my last few investment decisions:\n"
        f"{logs_context}\n\n"
        f'User Question: "{user_question}"\n\n'
        "Please explain your reasoning to the user based on the context provided."
    )


def _extract_text(payload: Dict[str, Any]) -> str:
    candidates = payload.get("candidates") or []
    for candidate in candidates:
        parts = (candidate.get("content") or {}).get("parts") or []
        for part in parts:
            text = part.get("text")
            if isinstance(text, str) and text.strip():
                return text
    return ""


def parse_decision(text: str) -> Decision:
    """Strict JSON -> Decision; anything else raises DecisionError."""
    try:
        data = json.loads(text)
    except (TypeError, ValueError) as exc:
        raise DecisionError(f"AI Error: response is not JSON: {str(text)[:120]!r}") from exc

    if not isinstance(data, dict):
        raise DecisionError("Invalid AI response: expected a JSON object")

    action = data.get("action")
    if action not in (DecisionAction.BUY.value, DecisionAction.HOLD.value):
        raise DecisionError(f"Invalid AI response: action={action!r}")

    reason = data.get("reason")
    if not isinstance(reason, str) or not reason.strip():
        raise DecisionError("Invalid AI response: missing reason")

    return Decision(action=DecisionAction(action), reason=reason)


class GeminiDecisionEngine:
    def __init__(
        self,
        api_key: Optional[str],
        model: str = "gemini-2.0-flash",
        api_base_url: str = "https://generativelanguage.googleapis.com",
        timeout: float = 15.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        sentiment_threshold_apy: float = 6.0,
    ):
        self.api_key = (api_key or "").strip() or None
        self.model = model
        self.sentiment_threshold_apy = sentiment_threshold_apy
        self.api_base_url = api_base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    async def _generate(self, prompt: str, json_response: bool) -> str:
        if not self.api_key:
            raise DecisionError("Missing API Key")

        url = f"{self.api_base_url}/v1beta/models/{self.model}:generateContent"
        body: Dict[str, Any] = {"contents": [{"parts": [{"text": prompt}]}]}
        if json_response:
            body["generationConfig"] = {"responseMimeType": "application/json"}

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                resp = await client.post(url, params={"key": self.api_key}, json=body)
        except httpx.HTTPError as exc:
            raise DecisionError(f"AI Error: {type(exc).__name__}: {exc}") from exc

        if resp.status_code != 200:
            raise DecisionError(f"AI Error: Gemini returned HTTP {resp.status_code}")
        try:
            payload = resp.json()
        except ValueError as exc:
            raise DecisionError("AI Error: Gemini returned non-JSON body") from exc

        text = _extract_text(payload) if isinstance(payload, dict) else ""
        if not text:
            raise DecisionError("AI Error: Gemini returned no content")
        return text

    async def decide(self, apy: float, gas_cost: float) -> Decision:
        """
        Ask Gemini whether to move funds.

        Args:
            apy: Current yield APY in percent (e.g. 5.5)
            gas_cost: Estimated gas cost in USD (e.g. 0.05)

        Returns:
            Decision with action BUY or HOLD
        """
        prompt = build_decision_prompt(apy, gas_cost, sentiment_threshold=self.sentiment_threshold_apy)
        text = await self._generate(prompt, json_response=True)
        return parse_decision(text)

    async def explain(self, logs_context: str, user_question: str) -> str:
        """Free-text explanation of past decisions; never raises."""
        try:
            return await self._generate(build_chat_prompt(logs_context, user_question), json_response=False)
        except DecisionError as exc:
            logger.error("Gemini chat error: %s", exc)
            return CHAT_FALLBACK_REPLY
