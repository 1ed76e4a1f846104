import copy
import dataclasses
from typing import Any

import pytest

from siteproof.config import AIConfig, RetryPolicy
from siteproof.conversation import ConversationDriver
from siteproof.llm import ModelResponse
from siteproof.tools.registry import default_registry


def text_response(text: str, input_tokens: int = 10, output_tokens: int = 5) -> ModelResponse:
    return ModelResponse(
        content=[{"type": "text", "text": text}],
        stop_reason="end_turn",
        input_tokens=input_tokens,
        output_tokens=output_tokens,
    )


def tool_response(
    name: str, tool_input: dict[str, Any], tool_id: str = "toolu_1", text: str | None = None
) -> ModelResponse:
    content = []
    if text:
        content.append({"type": "text", "text": text})
    content.append({"type": "tool_use", "id": tool_id, "name": name, "input": tool_input})
    return ModelResponse(content=content, stop_reason="tool_use", input_tokens=10, output_tokens=5)


class FakeModelClient:
    """Returns scripted responses in order and records every request."""

    def __init__(self, responses: list[ModelResponse]):
        self.responses = list(responses)
        self.calls: list[dict[str, Any]] = []

    def create_message(self, **kwargs) -> ModelResponse:
        self.calls.append(copy.deepcopy(kwargs))
        if not self.responses:
            raise AssertionError("model called more times than scripted")
        return self.responses.pop(0)


class AlwaysToolClient(FakeModelClient):
    """Requests a tool on every call."""

    def __init__(self, name: str = "get_australian_standard", tool_input: dict | None = None):
        super().__init__([])
        self.name = name
        self.tool_input = tool_input or {"standard_code": "AS_3798"}

    def create_message(self, **kwargs) -> ModelResponse:
        self.calls.append(copy.deepcopy(kwargs))
        return tool_response(self.name, self.tool_input, tool_id=f"toolu_{len(self.calls)}")


@pytest.fixture
def config():
    return AIConfig(
        api_key="test-key",
        max_iterations=3,
        retry=RetryPolicy(max_attempts=3, initial_delay=0.01, max_delay=0.05),
    )


@pytest.fixture
def registry():
    return default_registry()


@pytest.fixture
def make_driver(config, registry):
    def factory(client, **overrides):
        cfg = dataclasses.replace(config, **overrides)
        return ConversationDriver(client, registry, cfg)
    return factory
