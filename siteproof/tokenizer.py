"""Token counting and limit checking for model requests."""
from __future__ import annotations

import json
from dataclasses import dataclass
from functools import lru_cache
from typing import Any

import tiktoken


MAX_CONTEXT_TOKENS = 200_000
SAFETY_BUFFER = 50_000  # Leave room for the response and tool results
RECOMMENDED_MAX = MAX_CONTEXT_TOKENS - SAFETY_BUFFER


@dataclass
class TokenCount:
    """Token count for one part of a request."""
    name: str
    tokens: int
    chars: int


@dataclass
class TokenSummary:
    """Token estimate for a whole request."""
    items: list[TokenCount]
    system_prompt_tokens: int
    total_tokens: int
    within_limit: bool
    warning_message: str | None

    @property
    def content_tokens(self) -> int:
        return sum(item.tokens for item in self.items)


@lru_cache(maxsize=1)
def get_encoder():
    """Get the tiktoken encoder. cl100k_base is a close estimate for Claude."""
    return tiktoken.get_encoding("cl100k_base")


def _message_text(message: dict[str, Any]) -> str:
    content = message.get("content", "")
    if isinstance(content, str):
        return content
    return json.dumps(content, default=str)


def analyze_request_tokens(
    system_prompt: str,
    messages: list[dict[str, Any]],
    tools: list[dict[str, Any]] | None = None,
) -> TokenSummary:
    """
    Estimate token usage for one Messages API request.

    Args:
        system_prompt: System prompt text
        messages: Conversation so far
        tools: Tool definitions as sent to the API

    Returns:
        TokenSummary with a per-part breakdown and warnings
    """
    encoder = get_encoder()
    system_tokens = len(encoder.encode(system_prompt))

    items = []
    for index, message in enumerate(messages):
        text = _message_text(message)
        items.append(
            TokenCount(
                name=f"message {index + 1} ({message.get('role', '?')})",
                tokens=len(encoder.encode(text)),
                chars=len(text),
            )
        )
    if tools:
        tools_text = json.dumps(tools)
        items.append(
            TokenCount(name="tools", tokens=len(encoder.encode(tools_text)), chars=len(tools_text))
        )

    total_tokens = system_tokens + sum(item.tokens for item in items)
    within_limit = total_tokens <= RECOMMENDED_MAX
    warning_message = None

    if total_tokens > MAX_CONTEXT_TOKENS:
        warning_message = (
            f"CRITICAL: Total tokens ({total_tokens:,}) exceeds maximum context "
            f"({MAX_CONTEXT_TOKENS:,}). The request will be rejected."
        )
    elif total_tokens > RECOMMENDED_MAX:
        warning_message = (
            f"WARNING: Total tokens ({total_tokens:,}) exceeds recommended limit "
            f"({RECOMMENDED_MAX:,}). Response may be truncated."
        )
    elif total_tokens > RECOMMENDED_MAX * 0.8:
        warning_message = (
            f"Note: Using {total_tokens:,} of {RECOMMENDED_MAX:,} recommended tokens "
            f"({total_tokens / RECOMMENDED_MAX * 100:.0f}%). Approaching limit."
        )

    return TokenSummary(
        items=items,
        system_prompt_tokens=system_tokens,
        total_tokens=total_tokens,
        within_limit=within_limit,
        warning_message=warning_message,
    )


def format_token_summary(summary: TokenSummary) -> str:
    """Format a token summary for CLI display."""
    lines = ["Token Usage:"]
    for item in summary.items:
        lines.append(f"  • {item.name}: {item.tokens:,} tokens ({item.chars:,} chars)")
    lines.append(f"  System prompt: {summary.system_prompt_tokens:,} tokens")
    lines.append("  ─────────────────────")
    lines.append(f"  Total: {summary.total_tokens:,} / {RECOMMENDED_MAX:,} tokens")

    if summary.warning_message:
        lines.append(f"\n⚠️  {summary.warning_message}")
    else:
        lines.append("  ✓ Within recommended limits")
    return "\n".join(lines)
