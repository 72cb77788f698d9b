from __future__ import annotations

import json

import httpx
import pytest

from planner.domain.entities import PlanStep
from planner.domain.errors import ExternalProviderError
from planner.services.ai_planner import AIPlanner, mock_plan, parse_plan


def gemini_client(handler) -> httpx.Client:
    return httpx.Client(transport=httpx.MockTransport(handler))


def gemini_reply(text: str) -> dict:
    return {"candidates": [{"content": {"parts": [{"text": text}]}}]}


def test_mock_plan_uses_topic_of_long_goal() -> None:
    steps = AIPlanner().generate_plan("Learn Rust for embedded work", "mock", None)

    assert len(steps) == 6
    assert steps[0] == PlanStep("Research learn rust... (basics)", 0)
    assert [step.days_offset for step in steps] == [0, 1, 2, 4, 6, 8]


def test_mock_plan_keeps_short_goal() -> None:
    assert mock_plan("Run 5k")[3].title == "First hands-on implementation of Run 5k"


def test_real_provider_requires_credential() -> None:
    with pytest.raises(ExternalProviderError, match="GEMINI"):
        AIPlanner().generate_plan("Learn Go", "gemini", "")


def test_unknown_provider() -> None:
    with pytest.raises(ExternalProviderError, match="unknown provider"):
        AIPlanner().generate_plan("Learn Go", "claude", "key")


def test_empty_goal() -> None:
    with pytest.raises(ExternalProviderError):
        AIPlanner().generate_plan("  ", "mock", None)


def test_gemini_plan_is_parsed() -> None:
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["key"] = request.url.params["key"]
        seen["body"] = json.loads(request.content)
        plan = [{"title": "Install Go", "daysOffset": 0}, {"title": "Write a CLI", "daysOffset": 3.0}]
        return httpx.Response(200, json=gemini_reply(json.dumps(plan)))

    planner = AIPlanner(http_client=gemini_client(handler))
    steps = planner.generate_plan("Learn Go", "gemini", "secret")

    assert steps == [PlanStep("Install Go", 0), PlanStep("Write a CLI", 3)]
    assert seen["key"] == "secret"
    assert seen["body"]["generationConfig"]["responseMimeType"] == "application/json"
    assert "Learn Go" in seen["body"]["contents"][0]["parts"][0]["text"]


def test_gemini_http_error() -> None:
    planner = AIPlanner(http_client=gemini_client(lambda request: httpx.Response(403, json={"error": {}})))

    with pytest.raises(ExternalProviderError, match="403"):
        planner.generate_plan("Learn Go", "gemini", "bad-key")


def test_gemini_without_candidates() -> None:
    planner = AIPlanner(http_client=gemini_client(lambda request: httpx.Response(200, json={"candidates": []})))

    with pytest.raises(ExternalProviderError, match="structured JSON"):
        planner.generate_plan("Learn Go", "gemini", "key")


@pytest.mark.parametrize("payload", [
    "not json",
    "[]",
    '{"tasks": []}',
    '[{"daysOffset": 1}]',
    '[{"title": "Plan", "daysOffset": -1}]',
    '[{"title": "Plan", "daysOffset": "soon"}]',
    '[{"title": "Plan", "daysOffset": true}]',
    '["Plan"]',
])
def test_parse_plan_rejects_malformed(payload) -> None:
    with pytest.raises(ExternalProviderError):
        parse_plan(payload)


def test_parse_plan_accepts_wrapped_object() -> None:
    assert parse_plan({"tasks": [{"title": " Plan ", "daysOffset": 2}]}) == [PlanStep("Plan", 2)]
