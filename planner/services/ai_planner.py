from __future__ import annotations

import json
import logging
from typing import Any

import httpx
from openai import OpenAI, OpenAIError

from planner.domain.entities import PlanStep
from planner.domain.enums import AIProvider
from planner.domain.errors import ExternalProviderError

logger = logging.getLogger(__name__)

GEMINI_URL = "https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent"

PROMPT = (
    'I want to reach this goal: "{goal}". You are a professional task planner. '
    "Break the goal into 5-8 concrete, short, sequential tasks. Every task has a "
    "title and daysOffset, the number of days from today (0 = today, 1 = tomorrow)."
)

PLAN_SCHEMA = {
    "type": "ARRAY",
    "items": {
        "type": "OBJECT",
        "properties": {
            "title": {"type": "STRING"},
            "daysOffset": {"type": "NUMBER"},
        },
        "required": ["title", "daysOffset"],
    },
}


def parse_plan(payload: Any) -> list[PlanStep]:
    if isinstance(payload, str):
        try:
            payload = json.loads(payload)
        except json.JSONDecodeError as exc:
            raise ExternalProviderError("provider returned invalid JSON") from exc
    if isinstance(payload, dict):
        payload = payload.get("tasks")
    if not isinstance(payload, list) or not payload:
        raise ExternalProviderError("provider returned no tasks")

    steps = []
    for entry in payload:
        if not isinstance(entry, dict):
            raise ExternalProviderError(f"malformed plan entry: {entry!r}")
        title = entry.get("title")
        offset = entry.get("daysOffset")
        if not isinstance(title, str) or not title.strip():
            raise ExternalProviderError(f"plan entry without title: {entry!r}")
        if isinstance(offset, bool) or not isinstance(offset, (int, float)) or offset < 0:
            raise ExternalProviderError(f"plan entry with bad daysOffset: {entry!r}")
        steps.append(PlanStep(title=title.strip(), days_offset=int(offset)))
    return steps


def mock_plan(goal: str) -> list[PlanStep]:
    words = goal.lower().split()
    topic = f"{words[0]} {words[1]}..." if len(words) > 2 else goal
    return [
        PlanStep(f"Research {topic} (basics)", 0),
        PlanStep("Set up the environment and dependencies", 1),
        PlanStep("Outline the project structure", 2),
        PlanStep(f"First hands-on implementation of {topic}", 4),
        PlanStep("Review progress and adjust the plan", 6),
        PlanStep("Final review and launch", 8),
    ]


class AIPlanner:
    def __init__(
        self,
        gemini_model: str = "gemini-2.5-flash",
        openai_model: str = "gpt-4o-mini",
        timeout: float = 30.0,
        http_client: httpx.Client | None = None,
    ) -> None:
        self.gemini_model = gemini_model
        self.openai_model = openai_model
        self.timeout = timeout
        self._http_client = http_client

    def generate_plan(self, goal: str, provider_id: str, credential: str | None) -> list[PlanStep]:
        if not goal or not goal.strip():
            raise ExternalProviderError("goal is empty")
        try:
            provider = AIProvider(provider_id)
        except ValueError as exc:
            raise ExternalProviderError(f"unknown provider: {provider_id}") from exc

        if provider == AIProvider.MOCK:
            return mock_plan(goal.strip())
        if not credential:
            raise ExternalProviderError(f"API key for {provider.value.upper()} is not provided")

        logger.info("requesting plan from %s", provider.value)
        if provider == AIProvider.GEMINI:
            return self._gemini(goal.strip(), credential)
        return self._openai(goal.strip(), credential)

    def _gemini(self, goal: str, api_key: str) -> list[PlanStep]:
        payload = {
            "contents": [{"parts": [{"text": PROMPT.format(goal=goal)}]}],
            "generationConfig": {
                "responseMimeType": "application/json",
                "responseSchema": PLAN_SCHEMA,
            },
        }
        url = GEMINI_URL.format(model=self.gemini_model)
        client = self._http_client or httpx.Client(timeout=self.timeout)
        try:
            response = client.post(url, params={"key": api_key}, json=payload)
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPStatusError as exc:
            raise ExternalProviderError(f"Gemini API error: {exc.response.status_code}") from exc
        except (httpx.HTTPError, ValueError) as exc:
            raise ExternalProviderError(f"Gemini request failed: {exc}") from exc
        finally:
            if self._http_client is None:
                client.close()

        try:
            text = data["candidates"][0]["content"]["parts"][0]["text"]
        except (KeyError, IndexError, TypeError) as exc:
            raise ExternalProviderError("Gemini did not return structured JSON") from exc
        return parse_plan(text)

    def _openai(self, goal: str, api_key: str) -> list[PlanStep]:
        client = OpenAI(api_key=api_key, timeout=self.timeout)
        try:
            completion = client.chat.completions.create(
                model=self.openai_model,
                response_format={"type": "json_object"},
                messages=[
                    {
                        "role": "system",
                        "content": 'Answer with a JSON object {"tasks": [{"title": str, "daysOffset": int}]}.',
                    },
                    {"role": "user", "content": PROMPT.format(goal=goal)},
                ],
            )
        except OpenAIError as exc:
            raise ExternalProviderError(f"OpenAI request failed: {exc}") from exc
        return parse_plan(completion.choices[0].message.content or "")
