"""
Claude Messages API client.

Wraps the anthropic SDK with a request timeout and bounded retry on rate
limits and connection errors. Responses are normalized to plain dict blocks
so they can be appended straight back onto the conversation.
"""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Callable

from anthropic import Anthropic, APIConnectionError, APIError, APIStatusError, RateLimitError

from .config import AIConfig
from .errors import UpstreamError
from .models import ToolInvocation

LOGGER = logging.getLogger(__name__)


@dataclass
class ModelResponse:
    content: list[dict[str, Any]] = field(default_factory=list)
    stop_reason: str | None = None
    input_tokens: int = 0
    output_tokens: int = 0


def _block_to_dict(block: Any) -> dict[str, Any]:
    if isinstance(block, dict):
        return dict(block)
    if hasattr(block, "model_dump"):
        return block.model_dump(exclude_none=True)

    block_type = getattr(block, "type", "text")
    if block_type == "tool_use":
        return {
            "type": "tool_use",
            "id": getattr(block, "id", ""),
            "name": getattr(block, "name", ""),
            "input": dict(getattr(block, "input", None) or {}),
        }
    return {"type": block_type, "text": getattr(block, "text", "") or ""}


def normalize_response(resp: Any) -> ModelResponse:
    """Convert an SDK Message (or any look-alike) to a ModelResponse."""
    usage = getattr(resp, "usage", None)
    return ModelResponse(
        content=[_block_to_dict(block) for block in (getattr(resp, "content", None) or [])],
        stop_reason=getattr(resp, "stop_reason", None),
        input_tokens=int(getattr(usage, "input_tokens", 0) or 0) if usage else 0,
        output_tokens=int(getattr(usage, "output_tokens", 0) or 0) if usage else 0,
    )


def extract_tool_use(response: ModelResponse) -> ToolInvocation | None:
    """First tool_use block in the response, if any."""
    for block in response.content:
        if block.get("type") == "tool_use":
            return ToolInvocation(
                id=str(block.get("id", "")),
                name=str(block.get("name", "")),
                input=dict(block.get("input") or {}),
            )
    return None


def extract_text(response: ModelResponse) -> str:
    """All text blocks joined with newlines."""
    return "\n".join(
        block.get("text", "") for block in response.content if block.get("type") == "text"
    ).strip()


class ClaudeClient:
    def __init__(
        self,
        config: AIConfig,
        sdk_client: Any | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.config = config
        self._sdk_client = sdk_client
        self._sleep = sleep

    @property
    def sdk_client(self) -> Any:
        if self._sdk_client is None:
            # create_message does its own retrying
            self._sdk_client = Anthropic(
                api_key=self.config.require_api_key(),
                timeout=self.config.timeout,
                max_retries=0,
            )
        return self._sdk_client

    def create_message(
        self,
        *,
        system: str,
        messages: list[dict[str, Any]],
        tools: list[dict[str, Any]] | None = None,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> ModelResponse:
        """
        Send one Messages API request.

        Raises:
            ConfigurationError: If no API key is configured
            UpstreamError: On a non-retryable API error, or once retries
                are exhausted
        """
        request: dict[str, Any] = {
            "model": self.config.model,
            "max_tokens": max_tokens or self.config.max_tokens,
            "system": system,
            "messages": messages,
            "temperature": self.config.temperature if temperature is None else temperature,
        }
        if tools:
            request["tools"] = tools

        policy = self.config.retry
        client = self.sdk_client
        last_error: str | None = None

        for attempt in range(policy.max_attempts):
            try:
                LOGGER.debug(
                    "Calling %s (attempt %d/%d, %d messages)",
                    self.config.model, attempt + 1, policy.max_attempts, len(messages),
                )
                resp = client.messages.create(**request)
                return normalize_response(resp)

            except RateLimitError as e:
                last_error = f"Rate limit: {e}"
            except APIConnectionError as e:
                last_error = f"Connection error: {e}"
            except APIStatusError as e:
                raise UpstreamError(
                    f"API error: {e}", status_code=e.status_code, attempts=attempt + 1
                ) from e
            except APIError as e:
                raise UpstreamError(f"API error: {e}", attempts=attempt + 1) from e

            if attempt + 1 < policy.max_attempts:
                wait_time = policy.delay_for(attempt)
                LOGGER.warning("%s. Waiting %.1fs...", last_error, wait_time)
                self._sleep(wait_time)

        raise UpstreamError(
            f"Failed after {policy.max_attempts} attempts. Last error: {last_error}",
            attempts=policy.max_attempts,
        )
